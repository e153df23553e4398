from __future__ import annotations

# ruff: noqa: E402
import argparse
import json
import math
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mapquery.map_loader import MapDatabase, build_map_database
from mapquery.name_index import clean_name
from mapquery.router import path_distance, shortest_path
from mapquery.settings import settings
from mapquery.tile_quadtree import TileQuadtree


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def run_raster(*, ullon: float, ullat: float, lrlon: float, lrlat: float, width: float) -> dict[str, Any]:
    quadtree = TileQuadtree(
        ullon=settings.root_ullon,
        ullat=settings.root_ullat,
        lrlon=settings.root_lrlon,
        lrlat=settings.root_lrlat,
        max_depth=settings.quadtree_max_depth,
        tile_size=settings.tile_size,
    )
    result = quadtree.select_tiles(ullon, ullat, lrlon, lrlat, width)
    return {
        "render_grid": [list(row) for row in result.render_grid] if result.render_grid else None,
        "raster_ul_lon": _finite_or_none(result.raster_ul_lon),
        "raster_ul_lat": _finite_or_none(result.raster_ul_lat),
        "raster_lr_lon": _finite_or_none(result.raster_lr_lon),
        "raster_lr_lat": _finite_or_none(result.raster_lr_lat),
        "depth": result.depth,
        "query_success": result.query_success,
    }


def run_route(
    db: MapDatabase,
    *,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
) -> dict[str, Any]:
    path = shortest_path(db.graph, start_lon, start_lat, end_lon, end_lat)
    return {
        "found": bool(path),
        "vertex_ids": path,
        "distance": path_distance(db.graph, path),
    }


def run_search(db: MapDatabase, *, term: str, full: bool, limit: int) -> dict[str, Any]:
    key = clean_name(term)
    if full:
        records = db.names.exact_lookup(key) or ()
        return {
            "term": term,
            "locations": [
                {"id": r.id, "lon": r.lon, "lat": r.lat, "name": r.name} for r in records
            ],
        }
    return {"term": term, "names": db.names.prefix_search(key)[:limit]}


def export_graph(db: MapDatabase, output: Path) -> dict[str, Any]:
    """Write the cleaned graph in the compact JSON form the loader streams."""
    graph = db.graph
    nodes: dict[int, dict[str, Any]] = {
        vertex_id: {"id": vertex_id, "lon": graph.lon(vertex_id), "lat": graph.lat(vertex_id)}
        for vertex_id in graph.vertices()
    }
    # Named places off the road network are kept so the name index survives a reload.
    for display_name in db.names.prefix_search(""):
        for record in db.names.exact_lookup(clean_name(display_name)) or ():
            node = nodes.setdefault(record.id, {"id": record.id, "lon": record.lon, "lat": record.lat})
            node.setdefault("name", record.name)
    ways = [
        [v, w]
        for v in graph.vertices()
        for w in graph.neighbors(v) or ()
        if v < w
    ]
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps({"source": db.source, "nodes": list(nodes.values()), "ways": ways}),
        encoding="utf-8",
    )
    return {"nodes": len(nodes), "ways": len(ways), "output": str(output)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run raster, route and search queries against a map file.")
    parser.add_argument(
        "--map",
        type=Path,
        default=Path(settings.map_data_path),
        help="Map data file (.osm XML or compact .json graph).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    raster = sub.add_parser("raster", help="Select tiles for a query box.")
    raster.add_argument("--ullon", type=float, required=True)
    raster.add_argument("--ullat", type=float, required=True)
    raster.add_argument("--lrlon", type=float, required=True)
    raster.add_argument("--lrlat", type=float, required=True)
    raster.add_argument("--width", type=float, required=True, help="Viewport width in pixels.")

    route = sub.add_parser("route", help="Shortest route between two points.")
    route.add_argument("--start-lon", type=float, required=True)
    route.add_argument("--start-lat", type=float, required=True)
    route.add_argument("--end-lon", type=float, required=True)
    route.add_argument("--end-lat", type=float, required=True)

    search = sub.add_parser("search", help="Autocomplete or exact place-name lookup.")
    search.add_argument("term")
    search.add_argument("--full", action="store_true", help="Return location records for the exact name.")
    search.add_argument("--limit", type=int, default=settings.search_max_results)

    export = sub.add_parser("export", help="Write the cleaned graph as a compact JSON asset.")
    export.add_argument("--output", type=Path, required=True)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.command == "raster":
        report = run_raster(
            ullon=args.ullon,
            ullat=args.ullat,
            lrlon=args.lrlon,
            lrlat=args.lrlat,
            width=args.width,
        )
    else:
        db = build_map_database(args.map)
        if args.command == "route":
            report = run_route(
                db,
                start_lon=args.start_lon,
                start_lat=args.start_lat,
                end_lon=args.end_lon,
                end_lat=args.end_lat,
            )
        elif args.command == "search":
            report = run_search(db, term=args.term, full=args.full, limit=max(1, int(args.limit)))
        else:
            report = export_graph(db, args.output)
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
