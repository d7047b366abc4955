"""Server manifest and catalog schema - Parse registry JSON documents.

Registry documents use camelCase keys (``npmPackage``, ``mcpVersion``); models
expose snake_case attributes and serialize back to camelCase.
"""

import math
from pathlib import Path
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import computed_field
from pydantic import field_validator
from pydantic.alias_generators import to_camel

RuntimeType = Literal["node", "python", "docker", "binary"]

# Accepted on input, stored under the canonical runtime name
RUNTIME_ALIASES = {"container": "docker"}


class _RegistryModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Author(_RegistryModel):
    name: str
    email: str | None = None
    url: str | None = None


class Capability(_RegistryModel):
    """A tool, resource or prompt the server exposes."""

    type: Literal["tool", "resource", "prompt"]
    name: str
    description: str = ""
    input_schema: dict | None = None
    output_schema: dict | None = None


class Runtime(_RegistryModel):
    """How the server process is launched once installed."""

    type: RuntimeType
    entry: str
    env: list[str] = Field(default_factory=list)
    env_optional: dict[str, str] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        if isinstance(value, str):
            return RUNTIME_ALIASES.get(value, value)
        return value


class InstallationHints(_RegistryModel):
    """Where the server can be fetched from. Any subset may be present."""

    npm_package: str | None = None
    pypi_package: str | None = None
    docker_image: str | None = None
    github_repo: str | None = None
    command: str | None = None


class ServerStats(_RegistryModel):
    downloads: int = 0
    rating: float = 0.0
    review_count: int = 0
    last_updated: str | None = None


class ServerManifest(_RegistryModel):
    """
    Server manifest from the registry (``servers/<id>/manifest.json``).

    Immutable. The ``id`` doubles as the install directory name and the ledger
    key; callers are expected to pass ids that are safe path segments.
    """

    id: str
    name: str
    description: str = ""
    version: str
    author: Author
    repository: str | None = None
    homepage: str | None = None
    license: str = ""
    keywords: list[str] = Field(default_factory=list)
    mcp_version: str = ""
    runtime: Runtime
    installation: InstallationHints = Field(default_factory=InstallationHints)
    capabilities: list[Capability] = Field(default_factory=list)
    stats: ServerStats | None = None

    @classmethod
    def from_file(cls, manifest_path: Path) -> "ServerManifest":
        """
        Load a server manifest from a JSON file.

        Args:
            manifest_path: Path to manifest.json

        Returns:
            ServerManifest instance

        Raises:
            FileNotFoundError: If manifest.json doesn't exist
            pydantic.ValidationError: If the JSON is invalid or fields are missing
        """
        if not manifest_path.exists():
            raise FileNotFoundError(f"manifest.json not found: {manifest_path}")

        return cls.model_validate_json(manifest_path.read_text(encoding="utf-8"))

    def to_json(self) -> str:
        """Serialize to the camelCase JSON layout used on disk and by the registry."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RegistryEntry(_RegistryModel):
    """Lightweight index entry; the full manifest lives at ``manifest_path``."""

    id: str
    version: str
    description: str = ""
    author: str = ""
    keywords: list[str] = Field(default_factory=list)
    downloads: int = 0
    rating: float = 0.0
    manifest_path: str = ""


class RegistryIndex(_RegistryModel):
    version: str = "1.0"
    last_updated: str = ""
    total_servers: int = 0
    servers: list[RegistryEntry] = Field(default_factory=list)


class SearchResult(_RegistryModel):
    """One page of resolved manifests."""

    servers: list[ServerManifest] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @computed_field
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 1
        return max(1, math.ceil(self.total / self.page_size))
