"""Crate graph model and rust-project.json loading."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from kzip_tools.rust_project.config import ConfigError


@dataclass(frozen=True)
class Source:
    """Directories a crate declares as its own sources."""

    include_dirs: tuple[str, ...] = ()
    exclude_dirs: tuple[str, ...] = ()
    # False when the manifest omits include_dirs or sets it to null.
    has_include_dirs: bool = False


@dataclass(frozen=True)
class Dep:
    """A direct dependency edge to another crate."""

    crate_id: int
    name: str = ""


@dataclass(frozen=True)
class Crate:
    """A single crate entry from the manifest."""

    crate_id: int
    label: str = ""
    root_module: str = ""
    edition: str = ""
    compiler_args: tuple[str, ...] = ()
    cfg: tuple[str, ...] = ()
    deps: tuple[Dep, ...] = ()
    source: Source = field(default_factory=Source)
    target: str = ""

    def to_json(self) -> dict[str, Any]:
        """Return the crate in its manifest JSON shape."""
        return {
            "crate_id": self.crate_id,
            "label": self.label,
            "root_module": self.root_module,
            "edition": self.edition,
            "deps": [{"crate": d.crate_id, "name": d.name} for d in self.deps],
            "cfg": list(self.cfg),
            "compiler_args": list(self.compiler_args),
            "target": self.target,
            "source": {
                "include_dirs": list(self.source.include_dirs),
                "exclude_dirs": list(self.source.exclude_dirs),
            },
        }


@dataclass(frozen=True)
class RustProject:
    """Root container of the manifest: crates in manifest order."""

    crates: tuple[Crate, ...] = ()


@dataclass(frozen=True)
class CrateGraph:
    """Read-only crate graph built once from a RustProject."""

    crates: tuple[Crate, ...]
    by_id: dict[int, Crate]
    adjacency: dict[int, tuple[int, ...]]

    def get(self, crate_id: int) -> Optional[Crate]:
        """Look up a crate by id; None for ids absent from the manifest."""
        return self.by_id.get(crate_id)


def _string_list(value: Any, what: str, manifest_file: Optional[str]) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(
            f"'{what}' must be a list of strings",
            file=manifest_file,
            error_type="manifest_invalid",
        )
    return tuple(value)


def _string_field(data: dict[str, Any], key: str, manifest_file: Optional[str]) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(
            f"'{key}' must be a string, got {type(value).__name__}",
            file=manifest_file,
            error_type="manifest_invalid",
        )
    return value


def _parse_dep(dep_dict: Any, manifest_file: Optional[str]) -> Dep:
    crate_id = dep_dict.get("crate") if isinstance(dep_dict, dict) else None
    if not isinstance(crate_id, int) or isinstance(crate_id, bool) or crate_id < 0:
        raise ConfigError(
            f"Invalid dependency entry: {dep_dict!r}",
            file=manifest_file,
            error_type="manifest_invalid",
        )
    return Dep(crate_id=crate_id, name=_string_field(dep_dict, "name", manifest_file))


def _parse_source(source_dict: Any, manifest_file: Optional[str]) -> Source:
    if source_dict is None:
        return Source()
    if not isinstance(source_dict, dict):
        raise ConfigError(
            "'source' must be a mapping",
            file=manifest_file,
            error_type="manifest_invalid",
        )
    return Source(
        include_dirs=_string_list(source_dict.get("include_dirs"), "include_dirs", manifest_file),
        exclude_dirs=_string_list(source_dict.get("exclude_dirs"), "exclude_dirs", manifest_file),
        has_include_dirs=source_dict.get("include_dirs") is not None,
    )


def parse_crate(
    crate_dict: Any,
    position: int,
    manifest_file: Optional[str] = None,
) -> Crate:
    """Parse one manifest crate entry.

    A crate without ``crate_id`` takes its position in the crate list,
    which is how rust-project.json addresses dependencies.
    """
    if not isinstance(crate_dict, dict):
        raise ConfigError(
            f"Crate #{position} must be a mapping",
            file=manifest_file,
            error_type="manifest_invalid",
        )

    crate_id = crate_dict.get("crate_id", position)
    if not isinstance(crate_id, int) or isinstance(crate_id, bool) or crate_id < 0:
        raise ConfigError(
            f"Crate #{position} has invalid crate_id: {crate_id!r}",
            file=manifest_file,
            error_type="manifest_invalid",
        )

    deps = crate_dict.get("deps") or []
    if not isinstance(deps, list):
        raise ConfigError(
            f"Crate #{position}: 'deps' must be a list",
            file=manifest_file,
            error_type="manifest_invalid",
        )

    return Crate(
        crate_id=crate_id,
        label=_string_field(crate_dict, "label", manifest_file),
        root_module=_string_field(crate_dict, "root_module", manifest_file),
        edition=_string_field(crate_dict, "edition", manifest_file),
        compiler_args=_string_list(crate_dict.get("compiler_args"), "compiler_args", manifest_file),
        cfg=_string_list(crate_dict.get("cfg"), "cfg", manifest_file),
        deps=tuple(_parse_dep(d, manifest_file) for d in deps),
        source=_parse_source(crate_dict.get("source"), manifest_file),
        target=_string_field(crate_dict, "target", manifest_file),
    )


def parse_project(data: Any, manifest_file: Optional[str] = None) -> RustProject:
    """Build a RustProject from decoded manifest JSON."""
    if not isinstance(data, dict):
        raise ConfigError(
            "Top-level manifest must be an object",
            file=manifest_file,
            error_type="manifest_invalid",
        )

    crates = data.get("crates") or []
    if not isinstance(crates, list):
        raise ConfigError(
            "'crates' must be a list",
            file=manifest_file,
            error_type="manifest_invalid",
        )

    return RustProject(
        crates=tuple(parse_crate(c, i, manifest_file) for i, c in enumerate(crates)),
    )


def load_project(manifest_path: Path | str) -> RustProject:
    """Load a rust-project.json manifest.

    Raises:
        ConfigError: If the file cannot be read or decoded.
    """
    manifest_path = Path(manifest_path)
    manifest_file = str(manifest_path)

    try:
        content = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"Error opening rust-project.json: {e}",
            file=manifest_file,
            error_type="manifest_unreadable",
        )

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Error decoding rust-project.json: {e.msg}",
            file=manifest_file,
            line=e.lineno,
            error_type="manifest_invalid",
        )

    return parse_project(data, manifest_file)


def build_crate_graph(project: RustProject, manifest_file: Optional[str] = None) -> CrateGraph:
    """Index crates by id and record each crate's direct dependency ids.

    Raises:
        ConfigError: If two crates share a crate_id.
    """
    by_id: dict[int, Crate] = {}
    adjacency: dict[int, tuple[int, ...]] = {}

    for crate in project.crates:
        if crate.crate_id in by_id:
            raise ConfigError(
                f"Duplicate crate_id {crate.crate_id} "
                f"({by_id[crate.crate_id].label!r} and {crate.label!r})",
                file=manifest_file,
                error_type="manifest_invalid",
            )
        by_id[crate.crate_id] = crate
        adjacency[crate.crate_id] = tuple(dep.crate_id for dep in crate.deps)

    return CrateGraph(crates=project.crates, by_id=by_id, adjacency=adjacency)
