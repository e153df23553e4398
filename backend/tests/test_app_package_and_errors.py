from __future__ import annotations

from pathlib import Path

import pytest

import mapquery
from mapquery.logging_utils import _parse_level, get_logger, log_event
from mapquery.map_data_errors import FROZEN_REASON_CODES, MapDataError, normalize_reason_code
from mapquery.settings import Settings, settings


def test_package_imports() -> None:
    assert mapquery.__name__ == "mapquery"


def test_map_data_error_string_and_details() -> None:
    err = MapDataError(
        reason_code="map_data_missing",
        message="map data file not found",
        details={"path": "backend/data/berkeley.osm"},
    )
    assert str(err) == "map data file not found"
    assert isinstance(err, ValueError)
    assert err.details is not None
    assert err.details["path"].endswith("berkeley.osm")


def test_map_data_error_reason_code_normalization() -> None:
    for code in ("map_data_missing", "map_data_invalid", "map_data_empty", "map_not_loaded"):
        assert code in FROZEN_REASON_CODES
        assert normalize_reason_code(code) == code
    assert normalize_reason_code("unknown_reason") == "map_data_invalid"
    assert normalize_reason_code("", default="map_not_loaded") == "map_not_loaded"


def test_settings_reject_inverted_root_bounds(monkeypatch) -> None:
    monkeypatch.setenv("ROOT_ULLON", "-122.0")
    monkeypatch.setenv("ROOT_LRLON", "-123.0")

    with pytest.raises(ValueError, match="root bounds"):
        Settings()


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("QUADTREE_MAX_DEPTH", "3")
    monkeypatch.setenv("SEARCH_MAX_RESULTS", "5")

    configured = Settings()

    assert configured.quadtree_max_depth == 3
    assert configured.search_max_results == 5
    assert configured.tile_size == 256


def test_logging_helpers_parse_levels_and_emit_event(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "out_dir", str(tmp_path))

    assert _parse_level("debug") > 0
    assert _parse_level("not_a_level") > 0

    logger1 = get_logger()
    handlers_before = len(logger1.handlers)
    logger2 = get_logger()
    assert logger1 is logger2
    assert len(logger2.handlers) == handlers_before

    log_event("unit_test_event", path="/health", status=200)
