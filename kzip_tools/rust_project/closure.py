"""Transitive dependency closure over the crate graph."""

from __future__ import annotations

from collections import deque
from typing import Mapping, Sequence

from kzip_tools.rust_project.manifest import CrateGraph


def transitive_closure(
    crate_id: int,
    adjacency: Mapping[int, Sequence[int]],
) -> tuple[int, ...]:
    """Collect every crate reachable from ``crate_id`` through dependency edges.

    Breadth-first search with a visited set seeded with the start crate, so
    dependency cycles terminate. Ids missing from ``adjacency`` have no deps.

    Args:
        crate_id: Crate to start from.
        adjacency: Crate id -> direct dependency ids.

    Returns:
        Reachable crate ids in discovery order, excluding ``crate_id``.
        Callers should treat the result as a set.
    """
    visited = {crate_id}
    order: list[int] = []
    queue = deque([crate_id])

    while queue:
        current = queue.popleft()
        for dep in adjacency.get(current, ()):
            if dep not in visited:
                visited.add(dep)
                order.append(dep)
                queue.append(dep)

    return tuple(order)


def compute_closures(graph: CrateGraph) -> dict[int, tuple[int, ...]]:
    """Compute the transitive closure of every crate in manifest order."""
    return {
        crate.crate_id: transitive_closure(crate.crate_id, graph.adjacency)
        for crate in graph.crates
    }
