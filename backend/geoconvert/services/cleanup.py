"""Cleanup of staged files bound to the HTTP response lifecycle.

A response can end in more than one way: the body is fully sent, the client
disconnects half-way, or streaming fails. Each of these paths triggers the
same CleanupGuard, which removes the request's staged files the first time
it is released and ignores every later call.

Example:
    Attach cleanup to a file download:
        >>> guard = CleanupGuard(staging, staged.input_path, staged.output_path)
        >>> return CleanupFileResponse(
        ...     staged.output_path,
        ...     guard=guard,
        ...     download_name=staged.download_name,
        ... )
"""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Any
from urllib import parse

import anyio
from starlette import background, responses

if TYPE_CHECKING:
    import pathlib

    from starlette.types import Receive, Scope, Send

    from geoconvert.services import staging

_UNSAFE_FILENAME_CHARS = re.compile(r'[\x00-\x1f\x7f"\\]')


class CleanupGuard:
    """One-shot release of the staged files owned by a single request."""

    def __init__(
        self,
        staging_area: staging.UploadStagingArea,
        *paths: pathlib.Path,
    ) -> None:
        self._staging_area = staging_area
        self._paths = paths
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def paths(self) -> tuple[pathlib.Path, ...]:
        return self._paths

    async def release(self) -> None:
        """Remove the guarded paths; subsequent calls are no-ops."""
        if self._released:
            return
        self._released = True
        # Must complete even when the request task is being cancelled.
        with anyio.CancelScope(shield=True):
            await self._staging_area.remove_all(self._paths)


def attachment_header(download_name: str) -> str:
    """Build a ``Content-Disposition`` value for a file download.

    The ``filename="..."`` form is always present, reduced to printable
    ASCII. Names that are not plain ASCII also get an RFC 5987
    ``filename*`` parameter carrying the exact UTF-8 name.
    """
    fallback = (
        unicodedata.normalize("NFKD", download_name)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", fallback) or "download"
    header = f'attachment; filename="{fallback}"'
    if fallback != download_name:
        header += f"; filename*=utf-8''{parse.quote(download_name, safe='')}"
    return header


class CleanupFileResponse(responses.FileResponse):
    """FileResponse that releases a CleanupGuard however sending ends.

    The guard runs as the response's background task after a complete send,
    and again from a ``finally`` block that also covers client disconnects
    and streaming errors. The guard turns the second call into a no-op.
    """

    def __init__(
        self,
        path: str | pathlib.Path,
        guard: CleanupGuard,
        download_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        headers = dict(kwargs.pop("headers", None) or {})
        if download_name is not None:
            headers["content-disposition"] = attachment_header(download_name)
        super().__init__(
            path,
            headers=headers,
            background=background.BackgroundTask(guard.release),
            **kwargs,
        )
        self.guard = guard

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.guard.release()
