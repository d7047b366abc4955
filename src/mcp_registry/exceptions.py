"""Registry-specific exceptions.

Every failure a caller can act on carries a human-readable message plus a
context dict (ids, paths, commands) for front ends to render.
"""


class RegistryError(Exception):
    """Base exception for registry operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (server id, paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class AlreadyInstalledError(RegistryError):
    """Install attempted for a server whose directory already exists."""


class NotInstalledError(RegistryError):
    """Update or remove attempted for a server that is not installed."""


class RemovalError(RegistryError):
    """Server directory could not be deleted; the ledger entry is kept."""


class InstallationError(RegistryError):
    """Installation strategy failed."""


class NoInstallationMethodError(InstallationError):
    """Manifest has no installation hint usable for its runtime type."""


class StrategyError(InstallationError):
    """External install tool (package manager, git, docker) failed."""


class UnsupportedStrategyError(InstallationError):
    """Installation strategy is not implemented."""


class ManifestSnapshotError(RegistryError):
    """Local manifest.json snapshot is missing or unreadable."""


class CatalogError(RegistryError):
    """Remote catalog could not be fetched or parsed."""


class ServerNotFoundError(CatalogError):
    """Server id is not present in the remote catalog."""
