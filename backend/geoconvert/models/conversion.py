"""Data models for a single conversion request.

This module defines the transient records that flow through the pipeline.
A ConversionRequest is produced once by content negotiation and carries the
decoded payload together with the normalized parameters, regardless of
which transport encoding the client used. StagedFiles holds the pair of
paths allocated for that request under the staging directory.

Example:
    Creating a request for a GeoJSON to DXF conversion:
        >>> from geoconvert.models.conversion import (
        ...     ConversionRequest,
        ...     PayloadEncoding,
        ... )
        >>> request = ConversionRequest(
        ...     target_format="DXF",
        ...     source_srs="EPSG:4326",
        ...     target_srs="",
        ...     preferred_name="parcels.geojson",
        ...     payload=b'{"type": "FeatureCollection", "features": []}',
        ...     encoding=PayloadEncoding.STRUCTURED,
        ... )
        >>> request.extension
        'dxf'
"""

from __future__ import annotations

import dataclasses
import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib


class PayloadEncoding(enum.Enum):
    """Transport encodings accepted by ``POST /convert``."""

    STRUCTURED = "application/json"
    BINARY = "application/octet-stream"


@dataclasses.dataclass(frozen=True)
class ConversionRequest:
    """Normalized conversion parameters plus the raw file bytes.

    Attributes:
        target_format: OGR driver name, trimmed and uppercased.
        source_srs: Source spatial reference, empty string when unset.
        target_srs: Target spatial reference, empty string when unset.
        preferred_name: Client supplied file name, empty string when unset.
        payload: Decoded file content, never empty.
        encoding: Transport encoding the payload arrived in.
    """

    target_format: str
    source_srs: str
    target_srs: str
    preferred_name: str
    payload: bytes = dataclasses.field(repr=False)
    encoding: PayloadEncoding = PayloadEncoding.STRUCTURED

    @property
    def extension(self) -> str:
        """File extension derived from the target format."""
        return self.target_format.lower()


@dataclasses.dataclass(frozen=True)
class StagedFiles:
    """Input and output paths owned by one request.

    Attributes:
        input_path: Where the uploaded payload is written.
        output_path: Where ogr2ogr is asked to write its result.
        download_name: File name announced in ``Content-Disposition``.
    """

    input_path: pathlib.Path
    output_path: pathlib.Path
    download_name: str
