from __future__ import annotations

import math
from dataclasses import dataclass

ROOT_TILE_ID = "root"

# Child digits, in traversal order.
NW, NE, SW, SE = 1, 2, 3, 4


@dataclass(frozen=True)
class Tile:
    index: int
    depth: int
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float
    lon_dpp: float

    @property
    def tile_id(self) -> str:
        return ROOT_TILE_ID if self.index == 0 else str(self.index)

    def intersects(self, ullon: float, ullat: float, lrlon: float, lrlat: float) -> bool:
        # Touching edges count as intersecting.
        return not (
            ullon > self.lrlon
            or ullat < self.lrlat
            or lrlon < self.ullon
            or lrlat > self.ullat
        )


@dataclass(frozen=True)
class QuadtreeNode:
    tile: Tile
    children: tuple[QuadtreeNode, ...] = ()


@dataclass(frozen=True)
class RasterResult:
    render_grid: tuple[tuple[str, ...], ...] | None
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    depth: int
    query_success: bool


def failed_raster() -> RasterResult:
    return RasterResult(
        render_grid=None,
        raster_ul_lon=math.inf,
        raster_ul_lat=-math.inf,
        raster_lr_lon=-math.inf,
        raster_lr_lat=math.inf,
        depth=0,
        query_success=False,
    )


def tile_image_name(tile_id: str) -> str:
    return f"{tile_id}.png"


class TileQuadtree:
    """Static 4-ary tile pyramid over the map bounds.

    Every node down to ``max_depth`` is built up front; queries only read it.
    A child's index is its parent's index with one more decimal digit
    (1=NW, 2=NE, 3=SW, 4=SE), which is how pre-rendered images are named.
    """

    def __init__(
        self,
        *,
        ullon: float,
        ullat: float,
        lrlon: float,
        lrlat: float,
        max_depth: int = 7,
        tile_size: int = 256,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be non-negative")
        if tile_size <= 0:
            raise ValueError("tile_size must be positive")
        self.max_depth = int(max_depth)
        self.tile_size = int(tile_size)
        self.root = self._build(0, 0, ullon, ullat, lrlon, lrlat)

    def _build(
        self,
        index: int,
        depth: int,
        ullon: float,
        ullat: float,
        lrlon: float,
        lrlat: float,
    ) -> QuadtreeNode:
        tile = Tile(
            index=index,
            depth=depth,
            ullon=ullon,
            ullat=ullat,
            lrlon=lrlon,
            lrlat=lrlat,
            lon_dpp=(lrlon - ullon) / self.tile_size,
        )
        if depth == self.max_depth:
            return QuadtreeNode(tile=tile)
        mid_lon = (ullon + lrlon) / 2
        mid_lat = (ullat + lrlat) / 2
        child_depth = depth + 1
        base = index * 10
        children = (
            self._build(base + NW, child_depth, ullon, ullat, mid_lon, mid_lat),
            self._build(base + NE, child_depth, mid_lon, ullat, lrlon, mid_lat),
            self._build(base + SW, child_depth, ullon, mid_lat, mid_lon, lrlat),
            self._build(base + SE, child_depth, mid_lon, mid_lat, lrlon, lrlat),
        )
        return QuadtreeNode(tile=tile, children=children)

    def _is_selected(self, tile: Tile, query_lon_dpp: float) -> bool:
        # Strict "<": may fetch one level finer than needed near the boundary.
        return tile.depth == self.max_depth or tile.lon_dpp < query_lon_dpp

    def select_tiles(
        self,
        ullon: float,
        ullat: float,
        lrlon: float,
        lrlat: float,
        width: float,
    ) -> RasterResult:
        if ullon > lrlon or ullat < lrlat or not width > 0:
            return failed_raster()

        query_lon_dpp = (lrlon - ullon) / width
        rows: dict[float, list[str]] = {}
        bounds = [math.inf, -math.inf, -math.inf, math.inf]
        depth = 0

        stack = [self.root]
        while stack:
            node = stack.pop()
            tile = node.tile
            if not tile.intersects(ullon, ullat, lrlon, lrlat):
                continue
            if node.children and not self._is_selected(tile, query_lon_dpp):
                nw, ne, sw, se = node.children
                wanted: list[QuadtreeNode] = []
                if ullon < tile.lrlon and ullat > tile.lrlat:
                    wanted.append(nw)
                if lrlon > tile.ullon and ullat > tile.lrlat:
                    wanted.append(ne)
                if ullon < tile.lrlon and lrlat < tile.ullat:
                    wanted.append(sw)
                if lrlon > tile.ullon and lrlat < tile.ullat:
                    wanted.append(se)
                # Reversed so NW is expanded first.
                stack.extend(reversed(wanted))
                continue

            bounds[0] = min(bounds[0], tile.ullon)
            bounds[1] = max(bounds[1], tile.ullat)
            bounds[2] = max(bounds[2], tile.lrlon)
            bounds[3] = min(bounds[3], tile.lrlat)
            depth = max(depth, tile.depth)
            rows.setdefault(tile.ullat, []).append(tile.tile_id)

        if not rows:
            return failed_raster()

        grid = tuple(tuple(rows[lat]) for lat in sorted(rows, reverse=True))
        return RasterResult(
            render_grid=grid,
            raster_ul_lon=bounds[0],
            raster_ul_lat=bounds[1],
            raster_lr_lon=bounds[2],
            raster_lr_lat=bounds[3],
            depth=depth,
            query_success=True,
        )

    def iter_tiles(self, depth: int | None = None) -> list[Tile]:
        out: list[Tile] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            if depth is None or node.tile.depth == depth:
                out.append(node.tile)
            if depth is None or node.tile.depth < depth:
                stack.extend(reversed(node.children))
        return out
