"""Protocols for running external install tools.

The dispatcher only needs this interface. The real implementation spawns
processes (see ``runner.SubprocessRunner``); tests provide fakes that record
commands instead.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Protocol for running a command to completion.

    Example implementations:
    - SubprocessRunner: asyncio subprocesses
    - A recording fake in tests
    """

    async def run(self, command: list[str], cwd: Path) -> CommandResult:
        """Run ``command`` in ``cwd`` and wait for it to exit.

        Args:
            command: Program and arguments (no shell interpretation)
            cwd: Working directory

        Returns:
            CommandResult with exit status and captured output

        Raises:
            OSError: If the program cannot be started
        """
        ...
