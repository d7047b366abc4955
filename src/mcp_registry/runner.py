"""Subprocess-backed CommandRunner."""

import asyncio
import logging
from pathlib import Path

from .protocols import CommandResult

logger = logging.getLogger(__name__)


class SubprocessRunner:
    """Run commands with ``asyncio.create_subprocess_exec``.

    Waits for the process to exit; there is no timeout and no cancellation.
    """

    async def run(self, command: list[str], cwd: Path) -> CommandResult:
        logger.debug(f"Spawning {command} in {cwd}")
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()

        return CommandResult(
            command=list(command),
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
