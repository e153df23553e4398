from __future__ import annotations

import time
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

import ijson

from .logging_utils import log_event
from .map_data_errors import MapDataError
from .name_index import LocationRecord, NameIndex, clean_name
from .settings import settings
from .spatial_graph import SpatialGraph, Vertex

ALLOWED_HIGHWAYS = frozenset(
    {
        "motorway",
        "trunk",
        "primary",
        "secondary",
        "tertiary",
        "unclassified",
        "residential",
        "living_street",
        "motorway_link",
        "trunk_link",
        "primary_link",
        "secondary_link",
        "tertiary_link",
    }
)


@dataclass(frozen=True)
class IngestStats:
    vertices_seen: int
    ways_seen: int
    edges_added: int
    edge_pairs_skipped: int
    names_indexed: int
    names_skipped: int
    vertices_removed: int


@dataclass(frozen=True)
class MapDatabase:
    source: str
    graph: SpatialGraph
    names: NameIndex
    stats: IngestStats


class MapIngestor:
    """Receives parsed map data and builds the graph and name index.

    Vertices must be provided before the ways and names that reference them.
    :meth:`finish` runs the one-off graph cleanup; the ingestor is spent
    afterwards.
    """

    def __init__(self, *, source: str = "memory") -> None:
        self.source = source
        self._graph = SpatialGraph()
        self._names = NameIndex()
        self._vertices_seen = 0
        self._ways_seen = 0
        self._edges_added = 0
        self._edge_pairs_skipped = 0
        self._names_indexed = 0
        self._names_skipped = 0
        self._finished = False

    def provide_vertex(self, vertex_id: int, lon: float, lat: float) -> None:
        self._vertices_seen += 1
        self._graph.add_vertex(Vertex(id=int(vertex_id), lon=float(lon), lat=float(lat)))

    def provide_way_vertex_sequence(self, ordered_ids: Iterable[int]) -> None:
        ids = [int(v) for v in ordered_ids]
        self._ways_seen += 1
        added = self._graph.add_edge_chain(ids)
        self._edges_added += added
        pairs = max(0, len(ids) - 1)
        missing = sum(1 for a, b in zip(ids, ids[1:]) if a not in self._graph or b not in self._graph)
        self._edge_pairs_skipped += missing
        if missing:
            log_event(
                "map_ingest_edge_skipped",
                source=self.source,
                pair_count=pairs,
                missing_endpoint_pairs=missing,
            )

    def provide_named_location(self, raw_name: str, vertex_id: int) -> None:
        key = clean_name(raw_name)
        vertex = self._graph.vertex(int(vertex_id))
        if not key or vertex is None:
            self._names_skipped += 1
            return
        record = LocationRecord(id=vertex.id, lon=vertex.lon, lat=vertex.lat, name=raw_name)
        self._names.insert(key, raw_name, record)
        self._names_indexed += 1

    def finish(self) -> MapDatabase:
        if self._finished:
            raise RuntimeError("ingestor already finished")
        self._finished = True
        removed = self._graph.cleanup()
        stats = IngestStats(
            vertices_seen=self._vertices_seen,
            ways_seen=self._ways_seen,
            edges_added=self._edges_added,
            edge_pairs_skipped=self._edge_pairs_skipped,
            names_indexed=self._names_indexed,
            names_skipped=self._names_skipped,
            vertices_removed=removed,
        )
        components = self._graph.connected_components()
        log_event(
            "map_ingest_finished",
            source=self.source,
            vertex_count=len(self._graph),
            edge_count=self._graph.edge_count(),
            name_key_count=len(self._names),
            component_count=components.component_count,
            largest_component_vertices=components.largest_component_vertices,
            vertices_seen=stats.vertices_seen,
            ways_seen=stats.ways_seen,
            edge_pairs_skipped=stats.edge_pairs_skipped,
            names_skipped=stats.names_skipped,
            vertices_removed=stats.vertices_removed,
        )
        return MapDatabase(source=self.source, graph=self._graph, names=self._names, stats=stats)


def _parse_coord(raw: object) -> float | None:
    if not isinstance(raw, (int, float, str, Decimal)) or isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _parse_id(raw: object) -> int | None:
    if not isinstance(raw, (int, str, Decimal)) or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def ingest_osm_xml(path: Path, ingestor: MapIngestor) -> None:
    """Feed an OpenStreetMap XML extract into ``ingestor``.

    Every ``<node>`` becomes a vertex and a named node also becomes a named
    location. ``<way>`` elements tagged with a road ``highway`` value become
    edge chains.
    """
    try:
        for _event, elem in ET.iterparse(path, events=("end",)):
            if elem.tag == "node":
                node_id = _parse_id(elem.attrib.get("id"))
                lon = _parse_coord(elem.attrib.get("lon"))
                lat = _parse_coord(elem.attrib.get("lat"))
                if node_id is not None and lon is not None and lat is not None:
                    ingestor.provide_vertex(node_id, lon, lat)
                    for child in elem.iter("tag"):
                        if child.attrib.get("k") == "name" and child.attrib.get("v"):
                            ingestor.provide_named_location(child.attrib["v"], node_id)
                elem.clear()
            elif elem.tag == "way":
                highway = ""
                refs: list[int] = []
                for child in list(elem):
                    if child.tag == "tag" and child.attrib.get("k") == "highway":
                        highway = str(child.attrib.get("v", "")).strip().lower()
                    elif child.tag == "nd":
                        ref = _parse_id(child.attrib.get("ref"))
                        if ref is not None:
                            refs.append(ref)
                if highway in ALLOWED_HIGHWAYS and len(refs) >= 2:
                    ingestor.provide_way_vertex_sequence(refs)
                elem.clear()
    except ET.ParseError as exc:
        raise MapDataError(
            reason_code="map_data_invalid",
            message=f"invalid OSM XML: {exc}",
            details={"path": str(path)},
        ) from exc


def ingest_graph_json(path: Path, ingestor: MapIngestor) -> None:
    """Feed a JSON graph asset (``{"nodes": [...], "ways": [[...], ...]}``)."""
    try:
        with path.open("rb") as fh:
            for raw_node in ijson.items(fh, "nodes.item"):
                if not isinstance(raw_node, dict):
                    continue
                node_id = _parse_id(raw_node.get("id"))
                lon = _parse_coord(raw_node.get("lon"))
                lat = _parse_coord(raw_node.get("lat"))
                if node_id is None or lon is None or lat is None:
                    continue
                ingestor.provide_vertex(node_id, lon, lat)
                name = raw_node.get("name")
                if isinstance(name, str) and name:
                    ingestor.provide_named_location(name, node_id)
        with path.open("rb") as fh:
            for raw_way in ijson.items(fh, "ways.item"):
                if not isinstance(raw_way, list):
                    continue
                refs = [ref for ref in (_parse_id(v) for v in raw_way) if ref is not None]
                if len(refs) >= 2:
                    ingestor.provide_way_vertex_sequence(refs)
    except ijson.JSONError as exc:
        raise MapDataError(
            reason_code="map_data_invalid",
            message=f"invalid graph JSON: {exc}",
            details={"path": str(path)},
        ) from exc


def build_map_database(path: Path) -> MapDatabase:
    if not path.exists():
        raise MapDataError(
            reason_code="map_data_missing",
            message=f"map data file not found: {path}",
            details={"path": str(path)},
        )
    suffix = path.suffix.lower()
    ingestor = MapIngestor(source=str(path))
    t0 = time.perf_counter()
    if suffix in {".osm", ".xml"}:
        ingest_osm_xml(path, ingestor)
    elif suffix == ".json":
        ingest_graph_json(path, ingestor)
    else:
        raise MapDataError(
            reason_code="map_data_unsupported_format",
            message=f"unsupported map data format: {suffix or '<none>'}",
            details={"path": str(path)},
        )
    database = ingestor.finish()
    if len(database.graph) == 0:
        raise MapDataError(
            reason_code="map_data_empty",
            message="map data produced an empty road graph",
            details={"path": str(path), "vertices_seen": database.stats.vertices_seen},
        )
    log_event(
        "map_database_loaded",
        source=str(path),
        duration_ms=round((time.perf_counter() - t0) * 1000.0, 2),
    )
    return database


@lru_cache(maxsize=1)
def load_map_database() -> MapDatabase:
    return build_map_database(Path(settings.map_data_path))
