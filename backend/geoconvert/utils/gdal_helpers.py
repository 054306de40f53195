"""Async execution wrapper for GDAL/OGR command-line utilities.

This module provides a safe interface for executing GDAL and OGR command-line
tools (ogr2ogr in particular) as child processes without blocking the event
loop. Each invocation is bounded by a timeout; when it expires the child is
killed and reaped before the error propagates.

Non-zero exit codes, termination by a signal and timeouts all result in
CommandError exceptions carrying the command's stderr output when any.

Example:
    Execute ogr2ogr command:
        >>> from geoconvert.utils.gdal_helpers import run_command, CommandError

        >>> try:
        ...     await run_command(
        ...         ["ogr2ogr", "-f", "DXF", "out.dxf", "in.geojson"],
        ...         timeout=60,
        ...     )
        ... except CommandError as e:
        ...     print(f"Command failed: {e}")
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, NamedTuple

from loguru import logger

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable


class CommandResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


class CommandError(RuntimeError):
    """Exception raised when a GDAL/OGR subprocess command fails.

    Contains the error message from the failed command's stderr output.
    Raised when the command exits with a non-zero status code, is terminated
    by a signal, or cannot be started at all.
    """


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout and has been killed."""

    def __init__(self, program: str, timeout: float) -> None:
        super().__init__(f"{program} timed out after {timeout:g} seconds")
        self.timeout = timeout


def _failure_message(returncode: int, stderr: str) -> str:
    if stderr:
        return stderr
    if returncode < 0:
        return f"Command terminated by signal {-returncode}"
    return "Unknown command failure"


async def run_command(
    command: Iterable[str | pathlib.Path],
    timeout: float,
    workdir: pathlib.Path | None = None,
) -> CommandResult:
    """Execute a command asynchronously and raise on failure.

    Args:
        command: Iterable arguments to execute (e.g., ["ogr2ogr", "-f", ...]).
        timeout: Seconds to wait before the child process is killed.
        workdir: Optional working directory for the command execution.

    Returns:
        CommandResult with the exit code and decoded output streams.

    Raises:
        CommandTimeoutError: if the command did not finish within ``timeout``.
        CommandError: if the command exits with a non-zero status code, is
            killed by a signal, or the executable cannot be found.
    """
    args = [str(part) for part in command]
    logger.debug("Running command: {}", " ".join(args))

    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=workdir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise CommandError(f"Executable not found: {args[0]}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.error("Command timed out after {}s: {}", timeout, args[0])
        raise CommandTimeoutError(args[0], timeout) from None
    except asyncio.CancelledError:
        # Request cancelled; the child must not outlive it.
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    result = CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace").strip(),
    )
    if result.returncode != 0:
        logger.error(
            "Command exited with {}: {}", result.returncode, result.stderr
        )
        raise CommandError(_failure_message(result.returncode, result.stderr))

    return result
