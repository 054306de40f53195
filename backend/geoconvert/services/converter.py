"""Vector format conversion service using ogr2ogr.

This module wraps the ogr2ogr command-line tool. It builds the argument
vector for a single conversion, runs it through the async subprocess helper
with a bounded timeout and then checks that the output file was actually
written. ogr2ogr's exit code is not trusted as the only success signal.

Example:
    Convert a GeoJSON file to DXF, reprojecting on the way:
        >>> from pathlib import Path
        >>> from geoconvert.services.converter import Ogr2OgrConverter

        >>> converter = Ogr2OgrConverter()
        >>> await converter.convert(
        ...     input_path=Path("/tmp/upload.bin"),
        ...     output_path=Path("/tmp/converted-parcels.dxf"),
        ...     target_format="DXF",
        ...     source_srs="EPSG:4326",
        ...     target_srs="EPSG:3857",
        ... )

    The ogr2ogr command executed:
        $ ogr2ogr -f DXF /tmp/converted-parcels.dxf /tmp/upload.bin \\
        $    -s_srs EPSG:4326 -t_srs EPSG:3857
"""

from __future__ import annotations

import pathlib
from typing import Protocol

from loguru import logger

from geoconvert.core import errors
from geoconvert.utils import gdal_helpers

DEFAULT_TIMEOUT_SECONDS = 60.0


class ConverterProtocol(Protocol):
    """Protocol interface for the component that performs a conversion.

    Implementations write the converted file to ``output_path`` and return
    it, or raise ConversionFailedError.
    """

    async def convert(
        self,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        target_format: str,
        source_srs: str = "",
        target_srs: str = "",
        timeout: float | None = None,
    ) -> pathlib.Path: ...


class Ogr2OgrConverter(ConverterProtocol):
    """Runs ogr2ogr as a child process for each conversion."""

    def __init__(
        self,
        binary: str = "ogr2ogr",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the converter.

        Args:
            binary: ogr2ogr executable name or absolute path.
            timeout: Default timeout in seconds when ``convert`` gets none.
        """
        self.binary = binary
        self.timeout = timeout

    def build_command(
        self,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        target_format: str,
        source_srs: str = "",
        target_srs: str = "",
    ) -> list[str]:
        """Build the ogr2ogr argument vector.

        Args:
            input_path: Staged input file.
            output_path: Destination file ogr2ogr should create.
            target_format: OGR driver name passed to ``-f``.
            source_srs: Optional ``-s_srs`` value, skipped when empty.
            target_srs: Optional ``-t_srs`` value, skipped when empty.

        Returns:
            Full command line including the executable.
        """
        command = [
            self.binary,
            "-f",
            target_format,
            str(output_path),
            str(input_path),
        ]
        if source_srs:
            command.extend(["-s_srs", source_srs])
        if target_srs:
            command.extend(["-t_srs", target_srs])
        return command

    async def convert(
        self,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        target_format: str,
        source_srs: str = "",
        target_srs: str = "",
        timeout: float | None = None,
    ) -> pathlib.Path:
        """Convert ``input_path`` into ``output_path`` using ogr2ogr.

        Args:
            input_path: Staged input file (any OGR-readable format).
            output_path: Destination file path.
            target_format: OGR driver name, e.g. ``GeoJSON`` or ``DXF``.
            source_srs: Source spatial reference override.
            target_srs: Target spatial reference for reprojection.
            timeout: Seconds before ogr2ogr is killed; defaults to the
                converter's configured timeout.

        Returns:
            ``output_path`` unchanged.

        Raises:
            ConversionFailedError: If ogr2ogr exits non-zero, is killed by a
                signal, times out, or leaves no regular output file behind.
        """
        command = self.build_command(
            input_path,
            output_path,
            target_format,
            source_srs,
            target_srs,
        )
        try:
            await gdal_helpers.run_command(
                command,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except gdal_helpers.CommandError as exc:
            raise errors.ConversionFailedError(str(exc)) from exc

        if not output_path.is_file():
            raise errors.ConversionFailedError(
                "ogr2ogr reported success but produced no output file."
            )

        logger.info("Converted {} to {}", input_path.name, output_path.name)
        return output_path
