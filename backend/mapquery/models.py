from __future__ import annotations

from pydantic import BaseModel, Field


class RasterResponse(BaseModel):
    """Tile grid for the front end to stitch; bounds are null when nothing matched."""

    render_grid: list[list[str]] | None = None
    raster_ul_lon: float | None = None
    raster_ul_lat: float | None = None
    raster_lr_lon: float | None = None
    raster_lr_lat: float | None = None
    depth: int = Field(default=0, ge=0)
    query_success: bool = False


class RouteVertex(BaseModel):
    id: int
    lon: float
    lat: float


class RouteResponse(BaseModel):
    found: bool
    vertex_ids: list[int]
    vertices: list[RouteVertex]
    distance: float = Field(..., ge=0.0)


class LocationOut(BaseModel):
    id: int
    lon: float
    lat: float
    name: str


class SearchResponse(BaseModel):
    term: str
    names: list[str] = Field(default_factory=list)
    locations: list[LocationOut] | None = None


class MapStatusResponse(BaseModel):
    loaded: bool
    source: str | None = None
    vertex_count: int = 0
    edge_count: int = 0
    name_key_count: int = 0
    quadtree_max_depth: int
    reason_code: str | None = None
    message: str | None = None
