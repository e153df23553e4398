from __future__ import annotations

import math
import re
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from .logging_utils import log_event
from .map_data_errors import MapDataError, normalize_reason_code
from .map_loader import MapDatabase, load_map_database
from .models import (
    LocationOut,
    MapStatusResponse,
    RasterResponse,
    RouteResponse,
    RouteVertex,
    SearchResponse,
)
from .name_index import clean_name
from .router import path_distance, shortest_path_with_stats
from .settings import settings
from .tile_quadtree import RasterResult, TileQuadtree, tile_image_name

TILE_NAME_RE = re.compile(r"^(root|[1-4]+)\.png$")


def build_quadtree() -> TileQuadtree:
    return TileQuadtree(
        ullon=settings.root_ullon,
        ullat=settings.root_ullat,
        lrlon=settings.root_lrlon,
        lrlat=settings.root_lrlat,
        max_depth=settings.quadtree_max_depth,
        tile_size=settings.tile_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Everything shared is fully built here, before the first request.
    app.state.quadtree = build_quadtree()
    app.state.map_db = None
    app.state.map_error = None
    if settings.map_load_on_startup:
        try:
            app.state.map_db = load_map_database()
        except MapDataError as exc:
            app.state.map_error = exc
            log_event(
                "map_load_failed",
                reason_code=exc.reason_code,
                error_message=exc.message,
                details=exc.details,
            )
    yield


app = FastAPI(title="Map Query Engine", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def tile_quadtree(request: Request) -> TileQuadtree:
    quadtree: TileQuadtree | None = getattr(request.app.state, "quadtree", None)
    if quadtree is None:
        raise HTTPException(status_code=503, detail="tile quadtree not initialised")
    return quadtree


def map_database(request: Request) -> MapDatabase:
    db: MapDatabase | None = getattr(request.app.state, "map_db", None)
    if db is None:
        error: MapDataError | None = getattr(request.app.state, "map_error", None)
        reason = normalize_reason_code(error.reason_code if error is not None else "", default="map_not_loaded")
        raise HTTPException(status_code=503, detail={"reason_code": reason})
    return db


QuadtreeDep = Annotated[TileQuadtree, Depends(tile_quadtree)]
MapDep = Annotated[MapDatabase, Depends(map_database)]


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def raster_response(result: RasterResult) -> RasterResponse:
    return RasterResponse(
        render_grid=(
            [list(row) for row in result.render_grid] if result.render_grid is not None else None
        ),
        raster_ul_lon=_finite_or_none(result.raster_ul_lon),
        raster_ul_lat=_finite_or_none(result.raster_ul_lat),
        raster_lr_lon=_finite_or_none(result.raster_lr_lon),
        raster_lr_lat=_finite_or_none(result.raster_lr_lat),
        depth=result.depth,
        query_success=result.query_success,
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/map/status", response_model=MapStatusResponse)
async def map_status(request: Request, quadtree: QuadtreeDep) -> MapStatusResponse:
    db: MapDatabase | None = getattr(request.app.state, "map_db", None)
    error: MapDataError | None = getattr(request.app.state, "map_error", None)
    if db is None:
        return MapStatusResponse(
            loaded=False,
            quadtree_max_depth=quadtree.max_depth,
            reason_code=normalize_reason_code(error.reason_code if error is not None else "", default="map_not_loaded"),
            message=error.message if error is not None else None,
        )
    return MapStatusResponse(
        loaded=True,
        source=db.source,
        vertex_count=len(db.graph),
        edge_count=db.graph.edge_count(),
        name_key_count=len(db.names),
        quadtree_max_depth=quadtree.max_depth,
    )


@app.get("/raster", response_model=RasterResponse)
def raster(
    quadtree: QuadtreeDep,
    ullon: float,
    ullat: float,
    lrlon: float,
    lrlat: float,
    w: float,
    h: Annotated[float | None, Query(gt=0)] = None,
) -> RasterResponse:
    t0 = time.perf_counter()
    result = quadtree.select_tiles(ullon, ullat, lrlon, lrlat, w)
    log_event(
        "raster_request",
        query_success=result.query_success,
        depth=result.depth,
        rows=len(result.render_grid or ()),
        width_px=w,
        height_px=h,
        duration_ms=round((time.perf_counter() - t0) * 1000.0, 2),
    )
    return raster_response(result)


@app.get("/route", response_model=RouteResponse)
def route(
    db: MapDep,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
) -> RouteResponse:
    t0 = time.perf_counter()
    path, stats = shortest_path_with_stats(db.graph, start_lon, start_lat, end_lon, end_lat)
    vertices = [RouteVertex(id=v, lon=db.graph.lon(v), lat=db.graph.lat(v)) for v in path]
    distance = path_distance(db.graph, path)
    log_event(
        "route_request",
        found=bool(path),
        vertex_count=len(path),
        expanded=stats.expanded,
        stale_skipped=stats.stale_skipped,
        duration_ms=round((time.perf_counter() - t0) * 1000.0, 2),
    )
    return RouteResponse(found=bool(path), vertex_ids=path, vertices=vertices, distance=distance)


@app.get("/search", response_model=SearchResponse)
def search(
    db: MapDep,
    term: Annotated[str, Query(max_length=200)],
    full: bool = False,
) -> SearchResponse:
    key = clean_name(term)
    if full:
        records = db.names.exact_lookup(key) or ()
        locations = [LocationOut(id=r.id, lon=r.lon, lat=r.lat, name=r.name) for r in records]
        log_event("search_request", mode="full", result_count=len(locations))
        return SearchResponse(term=term, names=[r.name for r in records], locations=locations)
    names = db.names.prefix_search(key)[: settings.search_max_results]
    log_event("search_request", mode="prefix", result_count=len(names))
    return SearchResponse(term=term, names=names)


def _tile_path(tile_name: str) -> Path:
    if not TILE_NAME_RE.match(tile_name):
        raise HTTPException(status_code=400, detail={"reason_code": "tile_id_invalid"})
    tile_id = tile_name.removesuffix(".png")
    return Path(settings.tile_image_dir) / tile_image_name(tile_id)


@app.get("/tiles/{tile_name}")
async def get_tile(tile_name: str):
    path = _tile_path(tile_name)
    if not path.exists():
        raise HTTPException(status_code=404, detail={"reason_code": "tile_image_missing"})
    return FileResponse(str(path), media_type="image/png")
