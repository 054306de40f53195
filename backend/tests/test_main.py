"""Tests for the FastAPI main application factory and health checks.

This module validates that:
    - The FastAPI app is correctly instantiated via main.create_app,
    - OpenAPI metadata (title, version) matches the project contract,
    - The health and conversion routes are registered,
    - The staging directory exists before any request is served,
    - The /health endpoint returns the expected response.

See Also:
    - backend/geoconvert/main.py for the application factory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi import testclient
from loguru import logger

from geoconvert import main
from geoconvert.core import config
from geoconvert.core import logging as logging_setup
from geoconvert.services import converter

if TYPE_CHECKING:
    import pathlib


def _test_settings(tmp_path: pathlib.Path) -> config.Settings:
    return config.Settings(storage_dir=tmp_path / "uploads")


def test_create_app(tmp_path: pathlib.Path) -> None:
    """Test that create_app returns a configured FastAPI instance."""
    app = main.create_app(settings=_test_settings(tmp_path))
    assert app.title == "Geometry Converter API"
    assert app.version == "0.1.0"
    assert (tmp_path / "uploads").is_dir()


def test_default_converter_is_ogr2ogr(tmp_path: pathlib.Path) -> None:
    settings = config.Settings(
        storage_dir=tmp_path,
        ogr2ogr_binary="/usr/local/bin/ogr2ogr",
        conversion_timeout_seconds=15,
    )
    app = main.create_app(settings=settings)
    default = app.state.converter
    assert isinstance(default, converter.Ogr2OgrConverter)
    assert default.binary == "/usr/local/bin/ogr2ogr"
    assert default.timeout == 15


def test_health_endpoint(tmp_path: pathlib.Path) -> None:
    """Test the health check endpoint returns ok status."""
    app = main.create_app(settings=_test_settings(tmp_path))
    client = testclient.TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_includes_routes(tmp_path: pathlib.Path) -> None:
    """Test that health and conversion routes answer requests."""
    app = main.create_app(settings=_test_settings(tmp_path))
    client = testclient.TestClient(app)
    assert app.url_path_for("health") == "/health"
    assert client.get("/health").status_code == 200
    response = client.post(
        "/convert",
        content=b"POINT (1 2)",
        headers={"Content-Type": "text/plain"},
    )
    assert response.status_code == 415


def test_lifespan_shutdown_purges_only_owned_paths(
    tmp_path: pathlib.Path,
) -> None:
    settings = _test_settings(tmp_path)
    app = main.create_app(settings=settings)
    foreign = settings.storage_dir / "upload-other-process.bin"
    with testclient.TestClient(app) as client:
        foreign.write_bytes(b"busy")
        staged = app.state.staging_area.allocate("DXF", "cut-off.geojson")
        staged.input_path.write_bytes(b"interrupted")
        assert client.get("/health").status_code == 200
    assert not staged.input_path.exists()
    assert foreign.read_bytes() == b"busy"
    assert app.state.staging_area.owned() == []


def test_setup_logging_replaces_default_sink(
    capsys: pytest.CaptureFixture[str],
) -> None:
    logging_setup.setup_logging("warning")
    logger.info("hidden message")
    logger.warning("visible message")
    captured = capsys.readouterr()
    assert "hidden message" not in captured.err
    assert "visible message" in captured.err
    logging_setup.setup_logging("INFO")
