"""Exception taxonomy for the conversion pipeline.

Every failure a client can observe is a ``ConversionServiceError`` carrying
the HTTP status code it maps to. The application factory registers a single
handler that renders these as ``{"error": "<message>"}``.

Example:
    Raise a validation failure from anywhere in the request path:
        >>> from geoconvert.core import errors
        >>> raise errors.RequestValidationFailed("fileBase64 is required.")
"""

from __future__ import annotations

GENERIC_FAILURE_MESSAGE = "Unexpected error while converting the geospatial file."


class ConversionServiceError(Exception):
    """Base exception for all client-visible service errors.

    Attributes:
        message: Human readable reason returned in the ``error`` field.
        status_code: HTTP status code used for the response.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RequestValidationFailed(ConversionServiceError):
    """Missing or malformed conversion parameters or payload."""

    status_code = 400


class UnsupportedMediaTypeError(ConversionServiceError):
    """Request body is neither JSON nor a raw octet stream."""

    status_code = 415


class PayloadTooLargeError(ConversionServiceError):
    """Request body exceeds the configured upload limit."""

    status_code = 413


class ConversionFailedError(ConversionServiceError):
    """ogr2ogr failed, timed out or produced no output."""

    status_code = 500


class InternalServerError(ConversionServiceError):
    """Unexpected failure while staging or streaming files."""

    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or GENERIC_FAILURE_MESSAGE)
