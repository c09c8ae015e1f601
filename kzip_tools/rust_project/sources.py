"""Aggregation of source directories across a crate's dependency closure."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from kzip_tools.rust_project.manifest import Crate, CrateGraph


@dataclass
class SourceDirs:
    """Include/exclude directory lists for one crate."""

    include_dirs: list[str] = field(default_factory=list)
    exclude_dirs: list[str] = field(default_factory=list)


def aggregate_source_dirs(
    crate: Crate,
    closure: Sequence[int],
    graph: CrateGraph,
) -> SourceDirs:
    """Merge a crate's own source dirs with those of its dependency closure.

    The crate's own dirs come first, then each closure member's dirs in
    closure order. Members that do not declare include dirs contribute
    nothing, not even their excludes; a declared empty list still adds
    its excludes. Ids not present in the graph are ignored. Repeated
    directories are kept; the collector tolerates revisits.
    """
    dirs = SourceDirs(
        include_dirs=list(crate.source.include_dirs),
        exclude_dirs=list(crate.source.exclude_dirs),
    )

    for dep_id in closure:
        dep = graph.get(dep_id)
        if dep is None or not dep.source.has_include_dirs:
            continue
        dirs.include_dirs.extend(dep.source.include_dirs)
        dirs.exclude_dirs.extend(dep.source.exclude_dirs)

    return dirs


def aggregate_all(
    graph: CrateGraph,
    closures: Mapping[int, Sequence[int]],
) -> dict[int, SourceDirs]:
    """Aggregate source dirs for every crate; each entry owns its own lists."""
    return {
        crate.crate_id: aggregate_source_dirs(crate, closures.get(crate.crate_id, ()), graph)
        for crate in graph.crates
    }
