from __future__ import annotations

import pytest

from mapquery.spatial_graph import SpatialGraph, Vertex


def _graph(points: dict[int, tuple[float, float]], chains: list[list[int]]) -> SpatialGraph:
    graph = SpatialGraph()
    for vertex_id, (lon, lat) in points.items():
        graph.add_vertex(Vertex(id=vertex_id, lon=lon, lat=lat))
    for chain in chains:
        graph.add_edge_chain(chain)
    return graph


def test_add_vertex_first_insert_wins() -> None:
    graph = SpatialGraph()
    assert graph.add_vertex(Vertex(id=1, lon=0.0, lat=0.0, name="first")) is True
    assert graph.add_vertex(Vertex(id=1, lon=5.0, lat=5.0, name="second")) is False

    vertex = graph.vertex(1)
    assert vertex is not None
    assert vertex.name == "first"
    assert (graph.lon(1), graph.lat(1)) == (0.0, 0.0)


def test_edge_chain_is_symmetric_and_skips_unknown_endpoints() -> None:
    graph = _graph({1: (0.0, 0.0), 2: (1.0, 0.0), 3: (2.0, 0.0)}, [])

    added = graph.add_edge_chain([1, 2, 99, 3])

    assert added == 1
    assert graph.neighbors(1) == (2,)
    assert graph.neighbors(2) == (1,)
    assert graph.neighbors(3) == ()
    assert 99 not in graph


def test_edge_chain_ignores_self_loops_and_duplicates() -> None:
    graph = _graph({1: (0.0, 0.0), 2: (1.0, 0.0)}, [])

    assert graph.add_edge_chain([1, 1, 2, 1, 2]) == 1
    assert graph.neighbors(1) == (2,)
    assert graph.edge_count() == 1


def test_cleanup_removes_isolated_vertices_and_keeps_dead_ends() -> None:
    graph = _graph(
        {1: (0.0, 0.0), 2: (1.0, 0.0), 3: (2.0, 0.0), 4: (9.0, 9.0)},
        [[1, 2, 3]],
    )

    removed = graph.cleanup()

    assert removed == 1
    assert 4 not in graph
    assert graph.neighbors(4) is None
    # 1 and 3 are dead ends with a single neighbour.
    assert graph.neighbors(1) == (2,)
    assert graph.neighbors(3) == (2,)
    assert sorted(graph.vertices()) == [1, 2, 3]


def test_cleanup_runs_once_and_freezes_graph() -> None:
    graph = _graph({1: (0.0, 0.0), 2: (1.0, 0.0)}, [[1, 2]])
    graph.cleanup()

    assert graph.cleaned is True
    with pytest.raises(RuntimeError):
        graph.cleanup()
    with pytest.raises(RuntimeError):
        graph.add_vertex(Vertex(id=3, lon=0.0, lat=1.0))
    with pytest.raises(RuntimeError):
        graph.add_edge_chain([1, 2])


def test_neighbors_distinguishes_unknown_from_empty() -> None:
    graph = _graph({1: (0.0, 0.0)}, [])

    assert graph.neighbors(1) == ()
    assert graph.neighbors(2) is None


def test_distance_is_euclidean_in_lon_lat() -> None:
    graph = _graph({1: (0.0, 0.0), 2: (3.0, 4.0)}, [[1, 2]])

    assert graph.distance(1, 2) == pytest.approx(5.0)
    assert graph.distance(2, 1) == pytest.approx(5.0)
    assert graph.distance_to_point(1, 0.0, 2.0) == pytest.approx(2.0)


def test_nearest_vertex_scans_all_vertices() -> None:
    graph = _graph({1: (0.0, 0.0), 2: (10.0, 0.0), 3: (5.0, 5.0)}, [[1, 2, 3]])

    assert graph.nearest_vertex(9.0, 1.0) == 2
    assert graph.nearest_vertex(4.0, 4.0) == 3
    assert graph.nearest_vertex(-100.0, -100.0) == 1


def test_nearest_vertex_on_empty_graph_is_none() -> None:
    assert SpatialGraph().nearest_vertex(0.0, 0.0) is None


def test_connected_components_counts_islands() -> None:
    graph = _graph(
        {1: (0.0, 0.0), 2: (1.0, 0.0), 3: (2.0, 0.0), 4: (10.0, 0.0), 5: (11.0, 0.0)},
        [[1, 2, 3], [4, 5]],
    )

    summary = graph.connected_components()

    assert summary.component_count == 2
    assert summary.largest_component_vertices == 3
    assert summary.component_by_vertex[1] == summary.component_by_vertex[3]
    assert summary.component_by_vertex[1] != summary.component_by_vertex[4]
    assert sum(summary.component_sizes.values()) == len(graph)
