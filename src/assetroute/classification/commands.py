"""Bounded execution of external commands."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandResult:
    """Captured outcome of one command run."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


CommandRunner = Callable[[Sequence[str], Optional[float]], Awaitable[CommandResult]]


async def run_command(args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """Run ``args`` and capture stdout and stderr.

    The process is killed when ``timeout`` elapses. A missing executable is
    reported as return code 127 rather than raised.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        return CommandResult(returncode=127, stderr=str(exc))

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        LOGGER.warning("Command timed out after %ss: %s", timeout, args[0])
        return CommandResult(returncode=-1, stderr=f"Timed out after {timeout}s", timed_out=True)

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


__all__ = ["CommandResult", "CommandRunner", "run_command"]
