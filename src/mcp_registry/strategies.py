"""Installation strategies - Fetch a server's payload into its directory.

The strategy is chosen by ``runtime.type``:

- node: ``npm install <npmPackage>``, else clone ``githubRepo`` and ``npm install``
- python: ``pip install <pypiPackage> --target .``, else clone and ``pip install -e .``
- docker: ``docker pull <dockerImage>`` plus a docker-compose.yml descriptor
- binary: not implemented, always fails

For node and python an explicit ``installation.command`` is used as a last
resort when neither a registry package nor a repository is given.

All commands run through an injected CommandRunner and block until they exit.
Failures are never retried.
"""

import logging
import shlex
import sys
from pathlib import Path

from .exceptions import NoInstallationMethodError
from .exceptions import StrategyError
from .exceptions import UnsupportedStrategyError
from .protocols import CommandRunner
from .schema import ServerManifest

logger = logging.getLogger(__name__)

COMPOSE_FILENAME = "docker-compose.yml"


class StrategyDispatcher:
    """Select and run the installation strategy for a manifest."""

    def __init__(self, runner: CommandRunner, python_executable: str | None = None):
        """Initialize dispatcher.

        Args:
            runner: Runs external commands (package managers, git, docker)
            python_executable: Interpreter used for ``-m pip``; defaults to the current one
        """
        self.runner = runner
        self.python_executable = python_executable or sys.executable

    async def run(self, manifest: ServerManifest, target_dir: Path) -> None:
        """
        Install the manifest's payload into ``target_dir``.

        Args:
            manifest: Server manifest
            target_dir: Existing, empty server directory

        Raises:
            NoInstallationMethodError: No usable hint for the runtime (nothing was run)
            UnsupportedStrategyError: Binary runtime
            StrategyError: An external command failed
        """
        runtime = manifest.runtime.type
        logger.debug(f"Dispatching {manifest.id} to {runtime} strategy")

        if runtime == "node":
            await self._install_node(manifest, target_dir)
        elif runtime == "python":
            await self._install_python(manifest, target_dir)
        elif runtime == "docker":
            await self._install_docker(manifest, target_dir)
        elif runtime == "binary":
            raise UnsupportedStrategyError(
                "Binary installation from source not yet implemented",
                context={"server_id": manifest.id},
            )
        else:
            raise NoInstallationMethodError(
                f"Unknown runtime type '{runtime}' for server {manifest.id}",
                context={"server_id": manifest.id, "runtime": runtime},
            )

    async def _install_node(self, manifest: ServerManifest, target_dir: Path) -> None:
        hints = manifest.installation
        if hints.npm_package:
            await self._execute(["npm", "install", hints.npm_package], target_dir)
        elif hints.github_repo:
            await self._execute(["git", "clone", hints.github_repo, "."], target_dir)
            await self._execute(["npm", "install"], target_dir)
        elif hints.command:
            await self._execute(_split_command(manifest), target_dir)
        else:
            raise _no_method(manifest)

    async def _install_python(self, manifest: ServerManifest, target_dir: Path) -> None:
        hints = manifest.installation
        pip = [self.python_executable, "-m", "pip", "install"]
        if hints.pypi_package:
            await self._execute([*pip, hints.pypi_package, "--target", "."], target_dir)
        elif hints.github_repo:
            await self._execute(["git", "clone", hints.github_repo, "."], target_dir)
            await self._execute([*pip, "-e", "."], target_dir)
        elif hints.command:
            await self._execute(_split_command(manifest), target_dir)
        else:
            raise _no_method(manifest)

    async def _install_docker(self, manifest: ServerManifest, target_dir: Path) -> None:
        image = manifest.installation.docker_image
        if not image:
            raise NoInstallationMethodError(
                f"No installation method available for server {manifest.id}: docker image not specified",
                context={"server_id": manifest.id, "runtime": "docker"},
            )

        await self._execute(["docker", "pull", image], target_dir)

        # The image stays in the docker daemon; only a run descriptor lands on disk
        compose = f"services:\n  {manifest.id}:\n    image: {image}\n"
        (target_dir / COMPOSE_FILENAME).write_text(compose, encoding="utf-8")
        logger.debug(f"Wrote {COMPOSE_FILENAME} for {manifest.id}")

    async def _execute(self, command: list[str], cwd: Path) -> None:
        logger.info(f"Running: {shlex.join(command)}")
        try:
            result = await self.runner.run(command, cwd)
        except Exception as e:
            raise StrategyError(
                f"Failed to run '{shlex.join(command)}': {e}",
                context={"command": command, "cwd": str(cwd)},
            ) from e

        if result.stdout:
            logger.debug(result.stdout.rstrip())

        if not result.ok:
            output = (result.stderr or result.stdout).strip()
            raise StrategyError(
                f"Command '{shlex.join(command)}' failed with exit code {result.returncode}: {output}",
                context={"command": command, "cwd": str(cwd), "returncode": result.returncode},
            )


def _no_method(manifest: ServerManifest, reason: str | None = None) -> NoInstallationMethodError:
    message = f"No installation method available for server {manifest.id}"
    return NoInstallationMethodError(
        f"{message}: {reason}" if reason else message,
        context={"server_id": manifest.id, "runtime": manifest.runtime.type},
    )


def _split_command(manifest: ServerManifest) -> list[str]:
    """Split ``installation.command`` into argv; unusable commands are rejected before anything runs."""
    try:
        argv = shlex.split(manifest.installation.command)
    except ValueError as e:
        raise _no_method(manifest, f"cannot parse install command: {e}") from e
    if not argv:
        raise _no_method(manifest, "install command is empty")
    return argv
