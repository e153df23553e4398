from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_map_data_path() -> str:
    # Keep map extracts in backend/data by default so the repo root stays clean.
    return str(Path(__file__).resolve().parents[1] / "data" / "berkeley.osm")


def _default_tile_image_dir() -> str:
    return str(Path(__file__).resolve().parents[1] / "data" / "img")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping config out of code for easy extension."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    map_data_path: str = Field(default_factory=_default_map_data_path, alias="MAP_DATA_PATH")
    tile_image_dir: str = Field(default_factory=_default_tile_image_dir, alias="TILE_IMAGE_DIR")
    map_load_on_startup: bool = Field(default=True, alias="MAP_LOAD_ON_STARTUP")

    out_dir: str = Field(default="/app/out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Bounds of the whole rastered map (the root tile).
    root_ullon: float = Field(default=-122.2998046875, ge=-180.0, le=180.0, alias="ROOT_ULLON")
    root_ullat: float = Field(default=37.892195547244356, ge=-90.0, le=90.0, alias="ROOT_ULLAT")
    root_lrlon: float = Field(default=-122.2119140625, ge=-180.0, le=180.0, alias="ROOT_LRLON")
    root_lrlat: float = Field(default=37.82280243352756, ge=-90.0, le=90.0, alias="ROOT_LRLAT")
    tile_size: int = Field(default=256, ge=1, le=4096, alias="TILE_SIZE")
    quadtree_max_depth: int = Field(default=7, ge=0, le=12, alias="QUADTREE_MAX_DEPTH")

    search_max_results: int = Field(default=50, ge=1, le=10_000, alias="SEARCH_MAX_RESULTS")

    @model_validator(mode="after")
    def _check_root_bounds(self) -> "Settings":
        if self.root_ullon >= self.root_lrlon or self.root_ullat <= self.root_lrlat:
            raise ValueError(
                "root bounds must satisfy ROOT_ULLON < ROOT_LRLON and ROOT_ULLAT > ROOT_LRLAT"
            )
        return self


settings = Settings()
