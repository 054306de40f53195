"""Upload staging area for conversion inputs and outputs.

All temporary files live under one root directory that is created once when
the application starts. Each request gets its own input and output paths
built from fresh uuid4 values, so concurrent requests never share a file
and no locking is needed.

Example:
    Stage a payload and remove it afterwards:
        >>> from pathlib import Path
        >>> from geoconvert.services.staging import UploadStagingArea

        >>> staging = UploadStagingArea(Path("/tmp/geometry-converter-uploads"))
        >>> staging.ensure()
        >>> staged = staging.allocate("GeoJSON", "parcels.shp")
        >>> staged.download_name
        'converted-parcels.geojson'
        >>> await staging.write(staged.input_path, b"...")
        >>> await staging.remove(staged.input_path)
        True
"""

from __future__ import annotations

import pathlib
import shutil
import uuid
from typing import TYPE_CHECKING

import aiofiles
import aiofiles.os
import anyio.to_thread
from loguru import logger

from geoconvert.models import conversion

if TYPE_CHECKING:
    from collections.abc import Iterable

OUTPUT_PREFIX = "converted-"


def _base_name(preferred_name: str) -> str:
    """Strip directories and the last extension from a client file name."""
    # Clients may send Windows-style paths.
    name = pathlib.PurePath(preferred_name.replace("\\", "/")).name
    return pathlib.PurePath(name).stem if name else ""


def download_name_for(target_format: str, preferred_name: str = "") -> str:
    """Derive the file name announced to the client.

    Args:
        target_format: Requested OGR format; lowercased into the extension.
        preferred_name: Optional client supplied file name.

    Returns:
        ``converted-<base>.<ext>`` where ``<base>`` is the client name without
        extension, or a fresh uuid4 when no usable name was supplied.
    """
    base = _base_name(preferred_name.strip()) or str(uuid.uuid4())
    return f"{OUTPUT_PREFIX}{base}.{target_format.lower()}"


class UploadStagingArea:
    """Process-wide directory that holds per-request temporary files.

    The root may be shared with other processes. Each instance only ever
    deletes the paths it allocated itself.
    """

    def __init__(self, root: pathlib.Path) -> None:
        self.root = root
        self._owned: set[pathlib.Path] = set()

    def ensure(self) -> None:
        """Create the root directory, tolerating pre-existence."""
        self.root.mkdir(parents=True, exist_ok=True)

    def allocate(
        self,
        target_format: str,
        preferred_name: str = "",
    ) -> conversion.StagedFiles:
        """Allocate unique input and output paths for one request.

        The on-disk output name carries its own uuid4 prefix, so two requests
        echoing the same client file name still get distinct paths while the
        announced download name stays ``converted-<base>.<ext>``.

        Args:
            target_format: Requested OGR format.
            preferred_name: Optional client supplied file name.

        Returns:
            StagedFiles whose paths are children of the staging root.
        """
        download_name = download_name_for(target_format, preferred_name)
        staged = conversion.StagedFiles(
            input_path=self.root / f"upload-{uuid.uuid4().hex}.bin",
            output_path=self.root / f"{uuid.uuid4().hex}-{download_name}",
            download_name=download_name,
        )
        self._owned.update((staged.input_path, staged.output_path))
        return staged

    def owned(self) -> list[pathlib.Path]:
        """Paths allocated by this instance and not yet removed."""
        return sorted(self._owned)

    async def write(self, path: pathlib.Path, data: bytes) -> None:
        """Persist ``data`` at ``path``."""
        async with aiofiles.open(path, "wb") as handle:
            await handle.write(data)

    async def remove(self, path: pathlib.Path) -> bool:
        """Remove a staged file, or a directory a converter left behind.

        Removing a path that does not exist is not an error. Any other
        OSError is logged and swallowed.

        Returns:
            True if something was deleted, False otherwise.
        """
        self._owned.discard(path)
        try:
            if await aiofiles.os.path.isdir(path):
                await anyio.to_thread.run_sync(shutil.rmtree, path)
            else:
                await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to remove staged path {}: {}", path, exc)
            return False
        logger.debug("Removed staged path {}", path.name)
        return True

    async def remove_all(self, paths: Iterable[pathlib.Path]) -> None:
        for path in paths:
            await self.remove(path)

    def leftovers(self) -> list[pathlib.Path]:
        """List files and directories currently under the staging root."""
        if not self.root.exists():
            return []
        return sorted(self.root.iterdir())
