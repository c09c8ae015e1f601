"""End-to-end conversion of a rust-project.json into a kzip."""

from __future__ import annotations

import json
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from kzip_tools.rust_project.assembler import build_compilation_unit
from kzip_tools.rust_project.closure import compute_closures
from kzip_tools.rust_project.collector import FileCollectionError
from kzip_tools.rust_project.config import ConfigError, ConverterConfig, get_default_config
from kzip_tools.rust_project.kzip import KzipError, KzipWriter, create_kzip
from kzip_tools.rust_project.manifest import CrateGraph, build_crate_graph, load_project
from kzip_tools.rust_project.sources import SourceDirs, aggregate_all


@dataclass
class ConversionResult:
    """Summary of a conversion run."""

    output: str
    crate_count: int = 0
    unit_digests: list[tuple[str, str]] = field(default_factory=list)  # (label, digest)
    skipped_crates: list[str] = field(default_factory=list)
    walk_errors: list[str] = field(default_factory=list)

    @property
    def unit_count(self) -> int:
        return len(self.unit_digests)


def prepare_project_root(project_root: str) -> str:
    """Check that the project root is a directory and end it with a separator.

    Raises:
        ConfigError: If the root is missing or not a directory.
    """
    if not project_root:
        raise ConfigError(
            "Project root is empty",
            error_type="project_root_missing",
        )

    if not project_root.endswith(os.sep):
        project_root += os.sep

    try:
        info = os.stat(project_root.rstrip(os.sep) or os.sep)
    except FileNotFoundError:
        raise ConfigError(
            f"Project root does not exist: {project_root}",
            file=project_root,
            error_type="project_root_missing",
        )
    except (OSError, ValueError) as e:
        raise ConfigError(
            f"Error checking project root: {e}",
            file=project_root,
            error_type="project_root_missing",
        )

    if not stat.S_ISDIR(info.st_mode):
        raise ConfigError(
            f"Project root is not a directory: {project_root}",
            file=project_root,
            error_type="project_root_not_dir",
        )
    return project_root


def load_graph(manifest_path: Path | str) -> CrateGraph:
    """Load the manifest and build its crate graph."""
    project = load_project(manifest_path)
    return build_crate_graph(project, str(manifest_path))


def describe_dependencies(
    graph: CrateGraph,
    closures: dict[int, tuple[int, ...]],
    source_dirs: dict[int, SourceDirs],
) -> None:
    """Print each crate's closure and aggregated include dirs."""
    for crate in graph.crates:
        dirs = source_dirs[crate.crate_id]
        print(f"{crate.label or crate.crate_id} (crate {crate.crate_id})")
        print(f"  transitive deps: {sorted(closures[crate.crate_id])}")
        print(f"  include dirs: {len(dirs.include_dirs)}")
        for include_dir in dirs.include_dirs:
            print(f"    {include_dir}")
        if dirs.exclude_dirs:
            print(f"  exclude dirs: {len(dirs.exclude_dirs)}")
            for exclude_dir in dirs.exclude_dirs:
                print(f"    {exclude_dir}")


def convert_project(
    manifest_path: Path | str,
    output: Path | str,
    project_root: str,
    config: Optional[ConverterConfig] = None,
) -> ConversionResult:
    """Convert a rust-project.json into a kzip with one unit per crate.

    Crates are processed in manifest order. A crate whose files cannot be
    read, or whose unit cannot be written, is reported and skipped.

    Raises:
        ConfigError: On any fatal setup error (project root, manifest, output).
    """
    config = config or get_default_config()
    project_root = prepare_project_root(str(project_root))
    output = str(output)

    print(f"rust-project.json path: {manifest_path}")
    graph = load_graph(manifest_path)

    if config.show_first_crate and graph.crates:
        print(json.dumps(graph.crates[0].to_json(), indent=4))

    closures = compute_closures(graph)
    if config.show_closures:
        for crate in graph.crates:
            print(f"crate {crate.crate_id} transitive deps: {list(closures[crate.crate_id])}")

    source_dirs = aggregate_all(graph, closures)

    try:
        writer = create_kzip(output)
    except KzipError as e:
        raise ConfigError(
            f"Error creating output: {e}",
            file=output,
            error_type="output_create_failed",
        )

    result = ConversionResult(output=output, crate_count=len(graph.crates))

    try:
        _add_units(graph, source_dirs, project_root, writer, config, result)
    except BaseException:
        # The in-flight error wins; a close failure is only reported.
        try:
            writer.close()
        except KzipError as close_error:
            print(f"Error finishing output after failure: {close_error}")
        raise

    try:
        writer.close()
    except KzipError as e:
        raise ConfigError(
            f"Error finishing output: {e}",
            file=output,
            error_type="output_write_failed",
        ) from e

    print(f"wrote kzip to {output}")
    return result


def _add_units(
    graph: CrateGraph,
    source_dirs: dict[int, SourceDirs],
    project_root: str,
    writer: KzipWriter,
    config: ConverterConfig,
    result: ConversionResult,
) -> None:
    """Build and store one unit per crate, recording skips in ``result``."""
    for crate in graph.crates:
        print(f"Adding crate {crate.label}...", end="")

        try:
            assembled = build_compilation_unit(
                crate, source_dirs[crate.crate_id], project_root, writer, config
            )
        except (FileCollectionError, KzipError) as e:
            print(f"Error getting source files for crate {crate.label}: {e}")
            result.skipped_crates.append(crate.label)
            continue

        unit = assembled.unit
        try:
            digest = writer.add_unit(unit)
        except KzipError as e:
            print(f"Error adding compilation unit to kzip: {e}, crate {crate.label}")
            inputs = [ri.info.path for ri in unit.required_input]
            print(f"required inputs for crate {crate.label} on platform {crate.target}: {inputs}")
            print(f"source include dirs for crate {crate.label}: {source_dirs[crate.crate_id].include_dirs}")
            result.skipped_crates.append(crate.label)
            continue

        print(" done.")
        for error in assembled.walk_errors:
            print(f"  Warning: could not walk {error}")
        result.walk_errors.extend(assembled.walk_errors)
        result.unit_digests.append((crate.label, digest))

    print(f"Added {result.crate_count} crates")
    print(f"Wrote {result.unit_count} units")
