"""Asynchronous process runner used by the git client."""

import asyncio
import logging
import os
from pathlib import Path

from buildcache.errors import ProcessFailure
from buildcache.executor.base import ProcessResult

logger = logging.getLogger(__name__)


async def run_process(
    command: str,
    args: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> ProcessResult:
    """Run a command and capture stdout and stderr as one ordered text stream.

    Raises ProcessFailure when the process exits with a non-zero status, cannot be
    started, or runs longer than ``timeout`` seconds.
    """
    argv = [command, *args]
    work_dir = Path(cwd) if cwd else Path(os.getcwd())
    if not work_dir.is_dir():
        message = f"Working directory {work_dir} does not exist. (command: {' '.join(argv)})"
        raise ProcessFailure(126, message, argv)

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=work_dir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        raise ProcessFailure(127, str(e), argv) from e
    except OSError as e:
        raise ProcessFailure(126, str(e), argv) from e

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ProcessFailure(
            -1, f"Process timed out after {timeout}s. (command: {' '.join(argv)})", argv
        )

    output = stdout.decode("utf-8", errors="replace")
    result = ProcessResult(exit_code=proc.returncode, output=output, command=argv)
    if result.failed:
        logger.debug(f"Command exited with {result.exit_code}: {' '.join(argv)}")
        raise ProcessFailure(result.exit_code, output, argv)

    return result
