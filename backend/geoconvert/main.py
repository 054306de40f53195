"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory. It prepares the
staging directory before any request is accepted, wires the converter used
by the conversion endpoint, registers the JSON error handlers and exposes a
health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn geoconvert.main:app --port 5000

    Or through the console script, which honours ``PORT``:
        $ PORT=8080 geoconvert

    Or imported and used programmatically:
        >>> from geoconvert.main import create_app
        >>> app = create_app(converter=FakeConverter())
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import fastapi
import uvicorn
from fastapi import responses
from loguru import logger

from geoconvert.api import convert
from geoconvert.core import config, errors
from geoconvert.core import logging as logging_setup
from geoconvert.services import converter as converter_service
from geoconvert.services import staging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@contextlib.asynccontextmanager
async def _lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
    staging_area: staging.UploadStagingArea = app.state.staging_area
    logger.info("Geometry Converter API staging files in {}", staging_area.root)
    yield
    # Best effort; only paths of this process's requests cut off by shutdown.
    await staging_area.remove_all(staging_area.owned())


async def _service_error_handler(
    request: fastapi.Request,
    exc: errors.ConversionServiceError,
) -> responses.JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc)
    return responses.JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


async def _unhandled_error_handler(
    request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    logger.opt(exception=exc).error(
        "Unhandled error on {} {}", request.method, request.url.path
    )
    return responses.JSONResponse(
        status_code=500,
        content={"error": str(exc) or errors.GENERIC_FAILURE_MESSAGE},
    )


def create_app(
    settings: config.Settings | None = None,
    converter: converter_service.ConverterProtocol | None = None,
) -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Ensures the staging directory exists, stores it together with the
    settings and the converter on ``app.state`` for the conversion endpoint,
    and adds the health check endpoint.

    Args:
        settings: Settings to use; defaults to the cached get_settings().
        converter: Converter implementation; defaults to an Ogr2OgrConverter
            configured from settings. Tests inject fakes here.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = settings or config.get_settings()
    staging_area = staging.UploadStagingArea(settings.storage_dir)
    staging_area.ensure()

    app = fastapi.FastAPI(
        title="Geometry Converter API",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.staging_area = staging_area
    app.state.converter = converter or converter_service.Ogr2OgrConverter(
        binary=settings.ogr2ogr_binary,
        timeout=settings.conversion_timeout_seconds,
    )

    app.include_router(convert.router)

    app.add_exception_handler(
        errors.ConversionServiceError,
        _service_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Start the HTTP server on the configured port."""
    settings = config.get_settings()
    logging_setup.setup_logging(settings.log_level)
    logger.info("Geometry Converter API listening on port {}", settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
