"""Async execution of external probe tools."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of an external command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout and stderr combined, like a shell 2>&1 redirect."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


async def run_command(
    argv: Sequence[str],
    timeout: float,
    logger: Optional[logging.Logger] = None
) -> CommandOutput:
    """
    Run an external command with a hard timeout.

    The child process is killed and reaped on every exit path, including
    timeout and task cancellation.

    Args:
        argv: Program and arguments
        timeout: Seconds before the command is killed
        logger: Optional logger instance

    Returns:
        CommandOutput: Exit code and decoded output

    Raises:
        asyncio.TimeoutError: If the command outlives ``timeout``
        OSError: If the program cannot be started
    """
    if logger:
        logger.debug(f"Executing command: {' '.join(argv)}")

    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    finally:
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            if logger:
                logger.debug(f"Killed unfinished command: {argv[0]}")

    result = CommandOutput(
        returncode=process.returncode,
        stdout=stdout.decode('utf-8', errors='replace'),
        stderr=stderr.decode('utf-8', errors='replace'),
    )

    if logger:
        logger.debug(f"Command exited with {result.returncode} ({len(result.stdout)} bytes)")

    return result
