"""Assembly of one compilation unit per crate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from kzip_tools.rust_project.collector import collect_files
from kzip_tools.rust_project.config import ConverterConfig, get_default_config
from kzip_tools.rust_project.kzip import KzipWriter
from kzip_tools.rust_project.manifest import Crate
from kzip_tools.rust_project.sources import SourceDirs
from kzip_tools.rust_project.units import CompilationUnit, VName


@dataclass
class AssembledUnit:
    """A compilation unit plus the diagnostics gathered while walking."""

    unit: CompilationUnit
    walk_errors: list[str] = field(default_factory=list)


def build_compilation_unit(
    crate: Crate,
    source_dirs: SourceDirs,
    project_root: str,
    writer: KzipWriter,
    config: Optional[ConverterConfig] = None,
) -> AssembledUnit:
    """Build the compilation unit for ``crate``.

    Source files are the crate's own walked files. Required inputs are
    every file under the aggregated dirs of the crate and its closure.

    Raises:
        FileCollectionError: If any discovered file cannot be read.
    """
    config = config or get_default_config()

    own = collect_files(
        crate.source.include_dirs,
        crate.source.exclude_dirs,
        project_root,
        writer,
        config,
    )
    closure = collect_files(
        source_dirs.include_dirs,
        source_dirs.exclude_dirs,
        project_root,
        writer,
        config,
    )

    unit = CompilationUnit(
        vname=VName(corpus=config.corpus, language=config.language, root=crate.label),
        required_input=closure.required_inputs,
        source_file=own.paths,
    )

    walk_errors = list(own.walk_errors)
    walk_errors.extend(e for e in closure.walk_errors if e not in walk_errors)
    return AssembledUnit(unit=unit, walk_errors=walk_errors)
