from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Vertex:
    id: int
    lon: float
    lat: float
    name: str | None = None


@dataclass(frozen=True)
class ComponentSummary:
    component_by_vertex: dict[int, int]
    component_sizes: dict[int, int]
    component_count: int
    largest_component_vertices: int


class SpatialGraph:
    """Undirected road graph over lon/lat vertices.

    Built incrementally by a single writer, cleaned once with :meth:`cleanup`,
    then only read. Distances are Euclidean in lon/lat degrees, which is only
    a fair approximation over a small region such as a single city.
    """

    def __init__(self) -> None:
        self._vertices: dict[int, Vertex] = {}
        # Neighbour lists keep insertion order; the dict value is unused.
        self._adjacency: dict[int, dict[int, None]] = {}
        self._cleaned = False

    def __contains__(self, vertex_id: object) -> bool:
        return vertex_id in self._vertices

    def __len__(self) -> int:
        return len(self._vertices)

    @property
    def cleaned(self) -> bool:
        return self._cleaned

    def _require_writable(self) -> None:
        if self._cleaned:
            raise RuntimeError("graph is read-only after cleanup")

    def add_vertex(self, vertex: Vertex) -> bool:
        self._require_writable()
        if vertex.id in self._vertices:
            return False
        self._vertices[vertex.id] = vertex
        self._adjacency[vertex.id] = {}
        return True

    def add_edge_chain(self, ids: Iterable[int]) -> int:
        """Connect consecutive ids; pairs naming an unknown vertex are skipped.

        Returns the number of new undirected edges.
        """
        self._require_writable()
        added = 0
        previous: int | None = None
        for current in ids:
            if previous is not None and self._add_edge(previous, current):
                added += 1
            previous = current
        return added

    def _add_edge(self, v: int, w: int) -> bool:
        if v == w:
            return False
        v_adj = self._adjacency.get(v)
        w_adj = self._adjacency.get(w)
        if v_adj is None or w_adj is None:
            return False
        if w in v_adj:
            return False
        v_adj[w] = None
        w_adj[v] = None
        return True

    def cleanup(self) -> int:
        """Drop vertices without neighbours. Returns how many were removed."""
        if self._cleaned:
            raise RuntimeError("graph cleanup already ran")
        isolated = [v for v, adj in self._adjacency.items() if not adj]
        for v in isolated:
            del self._adjacency[v]
            del self._vertices[v]
        self._cleaned = True
        return len(isolated)

    def vertices(self) -> Iterator[int]:
        return iter(self._vertices)

    def vertex(self, vertex_id: int) -> Vertex | None:
        return self._vertices.get(vertex_id)

    def lon(self, vertex_id: int) -> float:
        return self._vertices[vertex_id].lon

    def lat(self, vertex_id: int) -> float:
        return self._vertices[vertex_id].lat

    def neighbors(self, vertex_id: int) -> tuple[int, ...] | None:
        adj = self._adjacency.get(vertex_id)
        if adj is None:
            return None
        return tuple(adj)

    def edge_count(self) -> int:
        return sum(len(adj) for adj in self._adjacency.values()) // 2

    def distance(self, v: int, w: int) -> float:
        a = self._vertices[v]
        b = self._vertices[w]
        return math.hypot(a.lon - b.lon, a.lat - b.lat)

    def distance_to_point(self, vertex_id: int, lon: float, lat: float) -> float:
        v = self._vertices[vertex_id]
        return math.hypot(v.lon - lon, v.lat - lat)

    def nearest_vertex(self, lon: float, lat: float) -> int | None:
        best_id: int | None = None
        best_dist = math.inf
        for vertex in self._vertices.values():
            dist = math.hypot(vertex.lon - lon, vertex.lat - lat)
            if dist < best_dist:
                best_id = vertex.id
                best_dist = dist
        return best_id

    def connected_components(self) -> ComponentSummary:
        component_by_vertex: dict[int, int] = {}
        component_sizes: dict[int, int] = {}
        component_idx = 0
        for vertex_id in self._vertices:
            if vertex_id in component_by_vertex:
                continue
            component_idx += 1
            q: deque[int] = deque([vertex_id])
            component_by_vertex[vertex_id] = component_idx
            size = 0
            while q:
                current = q.popleft()
                size += 1
                for nxt in self._adjacency.get(current, ()):
                    if nxt not in component_by_vertex:
                        component_by_vertex[nxt] = component_idx
                        q.append(nxt)
            component_sizes[component_idx] = size
        return ComponentSummary(
            component_by_vertex=component_by_vertex,
            component_sizes=component_sizes,
            component_count=component_idx,
            largest_component_vertices=max(component_sizes.values(), default=0),
        )
