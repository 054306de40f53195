"""Content negotiation and validation for conversion requests.

``POST /convert`` accepts two encodings. JSON bodies carry the file as
base64 text in ``fileBase64`` next to the conversion parameters. Raw
``application/octet-stream`` bodies carry the file bytes directly while the
parameters travel in the query string. Both are reduced here to one
ConversionRequest so later stages never branch on the encoding.

Rules are applied in a fixed order: media type, target format, payload
presence, base64 validity, non-empty decoded payload.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import TYPE_CHECKING, Any

from geoconvert.core import errors
from geoconvert.models import conversion

if TYPE_CHECKING:
    from collections.abc import Mapping

UNSUPPORTED_MEDIA_TYPE_MESSAGE = (
    "Unsupported content type. Use application/json (with fileBase64) or "
    "application/octet-stream (binary body)."
)
MISSING_TARGET_FORMAT_MESSAGE = "Target format is required (e.g., DXF, GeoJSON)."
MISSING_BASE64_MESSAGE = "fileBase64 is required in the JSON payload."
INVALID_BASE64_MESSAGE = "fileBase64 must be valid base64 content."
INVALID_JSON_MESSAGE = "Request body must be a valid JSON object."
EMPTY_BINARY_MESSAGE = "Binary requests must include a non-empty body."
EMPTY_PAYLOAD_MESSAGE = "Uploaded file content cannot be empty."
INVALID_TARGET_FORMAT_MESSAGE = (
    "Target format may only contain letters, digits, spaces, '.', '_' or '-'."
)

_WHITESPACE = re.compile(r"\s+")
# OGR driver names, e.g. "GeoJSON", "ESRI Shapefile", "MapInfo File".
_TARGET_FORMAT = re.compile(r"[A-Za-z0-9][A-Za-z0-9 ._-]*")


def media_type(content_type: str | None) -> str:
    """Return the bare, lowercased media type of a Content-Type header."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def resolve_encoding(content_type: str | None) -> conversion.PayloadEncoding:
    """Map a Content-Type header to the payload encoding it declares.

    Raises:
        UnsupportedMediaTypeError: For anything but JSON or an octet stream.
    """
    try:
        return conversion.PayloadEncoding(media_type(content_type))
    except ValueError:
        raise errors.UnsupportedMediaTypeError(
            UNSUPPORTED_MEDIA_TYPE_MESSAGE
        ) from None


def _text(value: Any) -> str:
    """Trim a parameter value; ``None`` becomes the empty string."""
    if value is None:
        return ""
    return str(value).strip()


def _load_json_object(body: bytes) -> dict[str, Any]:
    try:
        document = json.loads(body) if body else None
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise errors.RequestValidationFailed(INVALID_JSON_MESSAGE) from None
    if not isinstance(document, dict):
        raise errors.RequestValidationFailed(INVALID_JSON_MESSAGE)
    return document


def decode_base64(encoded: str) -> bytes:
    """Strictly decode base64 text, ignoring embedded whitespace.

    Raises:
        RequestValidationFailed: If the text is not valid base64.
    """
    compact = _WHITESPACE.sub("", encoded)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        raise errors.RequestValidationFailed(INVALID_BASE64_MESSAGE) from None


def parse_conversion_request(
    content_type: str | None,
    body: bytes,
    query: Mapping[str, str],
) -> conversion.ConversionRequest:
    """Validate a raw request and decode it into a ConversionRequest.

    Args:
        content_type: Value of the Content-Type header, if any.
        body: Full request body.
        query: Query string parameters.

    Returns:
        ConversionRequest with normalized parameters and non-empty payload.

    Raises:
        UnsupportedMediaTypeError: Neither JSON nor octet-stream (415).
        RequestValidationFailed: Any parameter or payload rule violated (400).
    """
    encoding = resolve_encoding(content_type)

    if encoding is conversion.PayloadEncoding.STRUCTURED:
        params: Mapping[str, Any] = _load_json_object(body)
    else:
        params = query

    target_format = _text(params.get("targetFormat"))
    if not target_format:
        raise errors.RequestValidationFailed(MISSING_TARGET_FORMAT_MESSAGE)
    if not _TARGET_FORMAT.fullmatch(target_format):
        raise errors.RequestValidationFailed(INVALID_TARGET_FORMAT_MESSAGE)

    if encoding is conversion.PayloadEncoding.STRUCTURED:
        encoded = _text(params.get("fileBase64"))
        if not encoded:
            raise errors.RequestValidationFailed(MISSING_BASE64_MESSAGE)
        payload = decode_base64(encoded)
    else:
        if not body:
            raise errors.RequestValidationFailed(EMPTY_BINARY_MESSAGE)
        payload = body

    if not payload:
        raise errors.RequestValidationFailed(EMPTY_PAYLOAD_MESSAGE)

    return conversion.ConversionRequest(
        target_format=target_format.upper(),
        source_srs=_text(params.get("sourceSrs")),
        target_srs=_text(params.get("targetSrs")),
        preferred_name=_text(params.get("fileName")),
        payload=payload,
        encoding=encoding,
    )
