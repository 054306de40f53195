"""Geometry conversion API endpoint.

This module provides ``POST /convert``, which accepts a geospatial file and
streams it back converted to the requested OGR format. The request moves
through validation, staging, conversion and download in that order; the
staged input and output files are removed once the response lifecycle ends,
including when validation passes but conversion fails or the client
disconnects during the download.

Example:
    Convert a GeoJSON file to DXF using the JSON encoding:
        >>> payload = base64.b64encode(open("parcels.geojson", "rb").read())
        >>> response = client.post(
        ...     "/convert",
        ...     json={
        ...         "fileBase64": payload.decode(),
        ...         "targetFormat": "DXF",
        ...         "fileName": "parcels.geojson",
        ...     },
        ... )
        >>> response.headers["content-disposition"]
        'attachment; filename="converted-parcels.dxf"'

    The same conversion with a raw binary body:
        >>> response = client.post(
        ...     "/convert",
        ...     params={"targetFormat": "DXF", "fileName": "parcels.geojson"},
        ...     content=open("parcels.geojson", "rb").read(),
        ...     headers={"Content-Type": "application/octet-stream"},
        ... )
"""

from __future__ import annotations

import fastapi
from loguru import logger

from geoconvert.api import negotiation
from geoconvert.core import config, errors
from geoconvert.services import cleanup, converter, staging

router = fastapi.APIRouter(tags=["conversion"])


def _get_settings(request: fastapi.Request) -> config.Settings:
    return request.app.state.settings


def _get_staging_area(request: fastapi.Request) -> staging.UploadStagingArea:
    return request.app.state.staging_area


def _get_converter(request: fastapi.Request) -> converter.ConverterProtocol:
    return request.app.state.converter


async def _read_body(request: fastapi.Request, max_size_mb: int) -> bytes:
    """Read the request body, enforcing the upload size limit.

    Args:
        request: Incoming request.
        max_size_mb: Maximum allowed body size in megabytes.

    Returns:
        The complete body.

    Raises:
        PayloadTooLargeError: If Content-Length or the streamed body exceeds
            the limit.
    """
    max_size = max_size_mb * 1024 * 1024
    too_large = errors.PayloadTooLargeError(
        f"Upload too large (limit {max_size_mb} MB)."
    )

    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_size:
        raise too_large

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_size:
            raise too_large

    return bytes(body)


@router.post("/convert")
async def convert_geometry(
    request: fastapi.Request,
    settings: config.Settings = fastapi.Depends(_get_settings),  # noqa: B008
    staging_area: staging.UploadStagingArea = fastapi.Depends(  # noqa: B008
        _get_staging_area
    ),
    geometry_converter: converter.ConverterProtocol = fastapi.Depends(  # noqa: B008
        _get_converter
    ),
) -> fastapi.Response:
    """Convert an uploaded geometry file and stream back the result.

    Args:
        request: Incoming request; JSON or octet-stream body.
        settings: Application settings (injected via FastAPI Depends).
        staging_area: Staging directory for this process.
        geometry_converter: Converter used to run the conversion.

    Returns:
        File response with ``Content-Disposition: attachment`` naming the
        converted file.

    Raises:
        UnsupportedMediaTypeError: Content type is not accepted (415).
        PayloadTooLargeError: Body exceeds ``MAX_UPLOAD_MB`` (413).
        RequestValidationFailed: Parameters or payload are invalid (400).
        ConversionFailedError: ogr2ogr failed (500).
        InternalServerError: The upload could not be staged (500).
    """
    content_type = request.headers.get("content-type")
    negotiation.resolve_encoding(content_type)

    body = await _read_body(request, settings.max_upload_mb)
    conversion_request = negotiation.parse_conversion_request(
        content_type,
        body,
        request.query_params,
    )

    staged = staging_area.allocate(
        conversion_request.target_format,
        conversion_request.preferred_name,
    )
    guard = cleanup.CleanupGuard(
        staging_area,
        staged.input_path,
        staged.output_path,
    )
    logger.info(
        "Converting {} byte {} upload to {}",
        len(conversion_request.payload),
        conversion_request.encoding.name.lower(),
        conversion_request.target_format,
    )

    try:
        try:
            await staging_area.write(
                staged.input_path,
                conversion_request.payload,
            )
        except OSError as exc:
            logger.error("Failed to stage upload: {}", exc)
            raise errors.InternalServerError(
                f"Failed to stage upload: {exc}"
            ) from exc

        await geometry_converter.convert(
            input_path=staged.input_path,
            output_path=staged.output_path,
            target_format=conversion_request.target_format,
            source_srs=conversion_request.source_srs,
            target_srs=conversion_request.target_srs,
            timeout=settings.conversion_timeout_seconds,
        )
    except BaseException:
        await guard.release()
        raise

    return cleanup.CleanupFileResponse(
        staged.output_path,
        guard=guard,
        download_name=staged.download_name,
        media_type="application/octet-stream",
    )
