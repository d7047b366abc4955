"""Server installation manager.

Owns the install directory layout:

    <install_dir>/
      installed.json        ledger (see ledger.py)
      <id>/
        manifest.json       snapshot of the manifest used at install time
        ...                 strategy payload

The server directory is the source of truth for "is it installed" when
deciding whether install/update/remove may proceed. The ledger follows it:
stale ledger entries are dropped or overwritten when a mutation notices them.

Known gaps:
- A failed strategy leaves the partially created directory behind unless the
  manager was built with ``cleanup_on_failure=True``.
- ``update`` is remove-then-install; if the reinstall fails the server ends up
  uninstalled, not at its previous version.
- A crash between deleting a directory and updating the ledger leaves a ledger
  entry without a directory until the next mutation for that id.
"""

import logging
import shutil
from pathlib import Path

from .exceptions import AlreadyInstalledError
from .exceptions import ManifestSnapshotError
from .exceptions import NotInstalledError
from .exceptions import RemovalError
from .ledger import LEDGER_FILENAME
from .ledger import InstallationLedger
from .ledger import InstallationRecord
from .ledger import utc_now
from .protocols import CommandRunner
from .runner import SubprocessRunner
from .schema import ServerManifest
from .strategies import StrategyDispatcher

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


class InstallationManager:
    """
    Install, update and remove servers under an app-provided install directory.

    Example:
        >>> manager = InstallationManager(Path.home() / ".mcp-registry" / "servers")
        >>> record = await manager.install(manifest)
        >>> manager.get_run_command(record.id)
        'node /home/me/.mcp-registry/servers/filesystem/dist/index.js'
    """

    def __init__(
        self,
        install_dir: Path,
        runner: CommandRunner | None = None,
        *,
        cleanup_on_failure: bool = False,
    ):
        """Initialize manager.

        Args:
            install_dir: Root directory for server directories and the ledger
            runner: Runs external install commands (defaults to real subprocesses)
            cleanup_on_failure: Delete the server directory when installation fails
        """
        self.install_dir = Path(install_dir)
        self.ledger = InstallationLedger(self.install_dir / LEDGER_FILENAME)
        self.dispatcher = StrategyDispatcher(runner if runner is not None else SubprocessRunner())
        self.cleanup_on_failure = cleanup_on_failure

    def server_dir(self, server_id: str) -> Path:
        return self.install_dir / server_id

    async def install(self, manifest: ServerManifest) -> InstallationRecord:
        """
        Install a server from its manifest.

        Process:
        1. Refuse if the server directory already exists
        2. Create the directory and run the installation strategy
        3. Snapshot the manifest into the directory
        4. Record the installation in the ledger

        Args:
            manifest: Resolved server manifest

        Returns:
            The ledger record

        Raises:
            AlreadyInstalledError: Server directory exists (use update)
            InstallationError: Strategy failed or no usable installation hint
        """
        server_dir = self.server_dir(manifest.id)

        if server_dir.exists():
            if self.ledger.get(manifest.id) is None:
                logger.warning(f"{server_dir} exists but the ledger has no entry for {manifest.id}")
            raise AlreadyInstalledError(
                f"Server {manifest.id} is already installed. Use 'update' instead.",
                context={"server_id": manifest.id, "path": str(server_dir)},
            )

        stale = self.ledger.get(manifest.id) is not None
        if stale:
            logger.warning(f"Ledger lists {manifest.id} but {server_dir} is missing; entry will be replaced")

        logger.info(f"Installing server {manifest.id}@{manifest.version} to {server_dir}")
        self.install_dir.mkdir(parents=True, exist_ok=True)
        server_dir.mkdir()

        try:
            await self.dispatcher.run(manifest, server_dir)
        except Exception:
            if self.cleanup_on_failure:
                logger.info(f"Cleaning up {server_dir} after failed install")
                shutil.rmtree(server_dir, ignore_errors=True)
            raise

        (server_dir / MANIFEST_FILENAME).write_text(manifest.to_json(), encoding="utf-8")

        now = utc_now()
        record = InstallationRecord(
            id=manifest.id,
            version=manifest.version,
            path=str(server_dir),
            installed_at=now,
            updated_at=now,
        )
        if stale:
            # New install gets fresh timestamps, not the stale entry's
            self.ledger.remove(manifest.id)
        record = self.ledger.upsert(record)

        logger.info(f"Successfully installed server: {manifest.id}")
        return record

    async def update(self, manifest: ServerManifest) -> InstallationRecord:
        """
        Update an installed server by removing and reinstalling it.

        Not atomic: if the reinstall fails the server is left uninstalled.

        Raises:
            NotInstalledError: Server is not installed (use install)
            InstallationError: Reinstall failed
        """
        if not self.server_dir(manifest.id).exists():
            self._forget_stale_entry(manifest.id)
            raise NotInstalledError(
                f"Server {manifest.id} is not installed. Use 'install' first.",
                context={"server_id": manifest.id},
            )

        logger.info(f"Updating server {manifest.id} to {manifest.version}")
        await self.remove(manifest.id)
        return await self.install(manifest)

    async def remove(self, server_id: str) -> None:
        """
        Remove an installed server's directory and ledger entry.

        Raises:
            NotInstalledError: Server is not installed
            RemovalError: Directory could not be deleted (ledger left unchanged)
        """
        server_dir = self.server_dir(server_id)

        if not server_dir.exists():
            self._forget_stale_entry(server_id)
            raise NotInstalledError(
                f"Server {server_id} is not installed.",
                context={"server_id": server_id, "path": str(server_dir)},
            )

        logger.info(f"Removing server: {server_id}")
        try:
            shutil.rmtree(server_dir)
        except OSError as e:
            raise RemovalError(
                f"Failed to remove server {server_id}: {e}",
                context={"server_id": server_id, "path": str(server_dir)},
            ) from e
        self.ledger.remove(server_id)
        logger.info(f"Successfully removed: {server_id}")

    def list_installed(self) -> list[InstallationRecord]:
        """All ledger records. Never raises."""
        return self.ledger.load()

    def get_installed(self, server_id: str) -> InstallationRecord | None:
        for record in self.list_installed():
            if record.id == server_id:
                return record
        return None

    def is_installed(self, server_id: str) -> bool:
        return self.get_installed(server_id) is not None

    def get_run_command(self, server_id: str) -> str | None:
        """
        Build the command that starts an installed server.

        Uses the manifest snapshot in the server directory, so no catalog
        access is needed.

        Args:
            server_id: Server id

        Returns:
            Command string, or None if the server is not installed

        Raises:
            ManifestSnapshotError: manifest.json is missing or unreadable
        """
        if self.get_installed(server_id) is None:
            return None

        server_dir = self.server_dir(server_id)
        manifest_path = server_dir / MANIFEST_FILENAME
        try:
            manifest = ServerManifest.from_file(manifest_path)
        except Exception as e:
            raise ManifestSnapshotError(
                f"Cannot read manifest for server {server_id}: {e}",
                context={"server_id": server_id, "path": str(manifest_path)},
            ) from e

        runtime = manifest.runtime
        if runtime.type == "node":
            return f"node {server_dir / runtime.entry}"
        if runtime.type == "python":
            return f"python {server_dir / runtime.entry}"
        if runtime.type == "docker":
            return f"docker run {manifest.installation.docker_image}"
        return str(server_dir / runtime.entry)

    def _forget_stale_entry(self, server_id: str) -> None:
        if self.ledger.get(server_id) is not None:
            logger.warning(f"Ledger lists {server_id} but its directory is missing; dropping entry")
            self.ledger.remove(server_id)
