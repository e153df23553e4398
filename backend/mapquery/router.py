from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass
from math import inf

from .spatial_graph import SpatialGraph


@dataclass(frozen=True)
class SearchStats:
    expanded: int
    pushed: int
    stale_skipped: int


def _astar(graph: SpatialGraph, start: int, goal: int) -> tuple[list[int], SearchStats]:
    # All search state lives here, never on the shared vertices.
    best: dict[int, float] = {start: 0.0}
    edge_to: dict[int, int] = {}
    counter = itertools.count()
    frontier: list[tuple[float, int, float, int]] = [
        (graph.distance(start, goal), next(counter), 0.0, start)
    ]
    expanded = 0
    pushed = 1
    stale = 0

    while frontier:
        _priority, _seq, dist, v = heapq.heappop(frontier)
        if dist > best.get(v, inf):
            # Superseded by a later, shorter entry for the same vertex.
            stale += 1
            continue
        if v == goal:
            path = [goal]
            while path[-1] != start:
                path.append(edge_to[path[-1]])
            path.reverse()
            return path, SearchStats(expanded=expanded, pushed=pushed, stale_skipped=stale)
        expanded += 1
        for w in graph.neighbors(v) or ():
            candidate = dist + graph.distance(v, w)
            if candidate < best.get(w, inf):
                best[w] = candidate
                edge_to[w] = v
                heapq.heappush(
                    frontier,
                    (candidate + graph.distance(w, goal), next(counter), candidate, w),
                )
                pushed += 1

    return [], SearchStats(expanded=expanded, pushed=pushed, stale_skipped=stale)


def shortest_path_between(graph: SpatialGraph, start_id: int, dest_id: int) -> list[int]:
    """A* path between two vertex ids; empty when either is unknown or unreachable."""
    if start_id not in graph or dest_id not in graph:
        return []
    path, _stats = _astar(graph, start_id, dest_id)
    return path


def shortest_path_with_stats(
    graph: SpatialGraph,
    start_lon: float,
    start_lat: float,
    dest_lon: float,
    dest_lat: float,
) -> tuple[list[int], SearchStats]:
    start = graph.nearest_vertex(start_lon, start_lat)
    goal = graph.nearest_vertex(dest_lon, dest_lat)
    if start is None or goal is None:
        return [], SearchStats(expanded=0, pushed=0, stale_skipped=0)
    return _astar(graph, start, goal)


def shortest_path(
    graph: SpatialGraph,
    start_lon: float,
    start_lat: float,
    dest_lon: float,
    dest_lat: float,
) -> list[int]:
    """Vertex ids of the shortest route between the vertices nearest each point.

    The straight-line heuristic never overestimates because edge weights are
    straight-line distances in the same lon/lat space. An empty list means
    there is no route.
    """
    path, _stats = shortest_path_with_stats(graph, start_lon, start_lat, dest_lon, dest_lat)
    return path


def path_distance(graph: SpatialGraph, path: list[int]) -> float:
    return sum(graph.distance(a, b) for a, b in zip(path, path[1:]))
