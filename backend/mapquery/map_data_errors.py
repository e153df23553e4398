from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "map_data_missing",
        "map_data_unsupported_format",
        "map_data_invalid",
        "map_data_empty",
        "map_not_loaded",
        "tile_image_missing",
        "tile_id_invalid",
    }
)


@dataclass
class MapDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def normalize_reason_code(reason_code: str, *, default: str = "map_data_invalid") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
