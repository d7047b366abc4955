"""Registry configuration - defaults overlaid with the user's config.json.

The config is loaded by front ends and passed explicitly to the catalog client
and installation manager; library code never reads it on its own.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

REGISTRY_HOME = Path.home() / ".mcp-registry"
DEFAULT_CONFIG_PATH = REGISTRY_HOME / "config.json"
DEFAULT_REGISTRY_URL = "https://registry.mcp.dev"


class RegistryConfig(BaseModel):
    """User configuration. JSON keys are camelCase (``installDir``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    registry_url: str = DEFAULT_REGISTRY_URL
    cache_dir: Path = Field(default_factory=lambda: REGISTRY_HOME / "cache")
    install_dir: Path = Field(default_factory=lambda: REGISTRY_HOME / "servers")
    mcp_config_path: Path = Field(default_factory=lambda: Path.home() / ".config" / "mcp" / "settings.json")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RegistryConfig:
    """
    Load configuration, falling back to defaults.

    Args:
        config_path: Path to config.json

    Returns:
        Defaults overlaid with whatever the file sets. A missing or malformed
        file yields the defaults.
    """
    if not config_path.exists():
        return RegistryConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("config must be a JSON object")
        return RegistryConfig.model_validate(data)
    except Exception as e:
        logger.warning(f"Ignoring invalid config file {config_path}: {e}")
        return RegistryConfig()


def save_config(config: RegistryConfig, config_path: Path = DEFAULT_CONFIG_PATH) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.to_json(), encoding="utf-8")
    logger.debug(f"Saved config to {config_path}")


def set_config_value(key: str, value: str, config_path: Path = DEFAULT_CONFIG_PATH) -> RegistryConfig:
    """
    Set one config value and persist the merged config.

    Args:
        key: Field name, camelCase (``installDir``) or snake_case (``install_dir``)
        value: New value

    Returns:
        Updated config

    Raises:
        KeyError: Unknown config key
    """
    field_name = _field_name(key)
    config = load_config(config_path)
    setattr(config, field_name, value)
    save_config(config, config_path)
    return config


def get_config_value(config: RegistryConfig, key: str) -> str:
    return str(getattr(config, _field_name(key)))


def ensure_directories(config: RegistryConfig) -> None:
    """Create cache and install directories if missing."""
    for directory in (config.cache_dir, config.install_dir):
        directory.mkdir(parents=True, exist_ok=True)


def _field_name(key: str) -> str:
    for name in RegistryConfig.model_fields:
        if key in (name, to_camel(name)):
            return name
    raise KeyError(f"Unknown config key: {key}")
