"""mcp-registry - Discover, search and locally install MCP servers.

Core library: manifest schema, installation ledger, strategy dispatch and the
installation manager. The catalog client, CLI and HTTP API build on it.
"""

from .catalog import RegistryClient
from .config import RegistryConfig
from .config import load_config
from .exceptions import AlreadyInstalledError
from .exceptions import CatalogError
from .exceptions import InstallationError
from .exceptions import ManifestSnapshotError
from .exceptions import NoInstallationMethodError
from .exceptions import NotInstalledError
from .exceptions import RegistryError
from .exceptions import RemovalError
from .exceptions import ServerNotFoundError
from .exceptions import StrategyError
from .exceptions import UnsupportedStrategyError
from .installer import InstallationManager
from .ledger import InstallationLedger
from .ledger import InstallationRecord
from .protocols import CommandResult
from .protocols import CommandRunner
from .runner import SubprocessRunner
from .schema import RegistryEntry
from .schema import RegistryIndex
from .schema import SearchResult
from .schema import ServerManifest
from .strategies import StrategyDispatcher

__all__ = [
    # Schema
    "ServerManifest",
    "RegistryEntry",
    "RegistryIndex",
    "SearchResult",
    # Installation
    "InstallationManager",
    "StrategyDispatcher",
    "CommandRunner",
    "CommandResult",
    "SubprocessRunner",
    # Ledger
    "InstallationLedger",
    "InstallationRecord",
    # Catalog
    "RegistryClient",
    # Config
    "RegistryConfig",
    "load_config",
    # Exceptions
    "RegistryError",
    "AlreadyInstalledError",
    "NotInstalledError",
    "RemovalError",
    "InstallationError",
    "NoInstallationMethodError",
    "StrategyError",
    "UnsupportedStrategyError",
    "ManifestSnapshotError",
    "CatalogError",
    "ServerNotFoundError",
]

__version__ = "0.1.0"
