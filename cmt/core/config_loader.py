"""Configuration management for the migration tool."""

import asyncio
import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ..constants import DEFAULT_SSH_PORT
from .exceptions import ConfigurationError
from .settings import MigrationSettings

logger = structlog.get_logger()


class HostConfig(BaseModel):
    """Configuration for a migration host alias."""

    hostname: str
    user: str | None = None
    port: int = DEFAULT_SSH_PORT
    identity_file: str | None = None
    description: str = ""


class CMTConfig(BaseModel):
    """Main configuration for the migration tool."""

    hosts: dict[str, HostConfig] = Field(default_factory=dict)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)
    config_file: str | None = None


def default_config_path() -> Path:
    """Hosts file location, honouring CMT_HOSTS_CONFIG."""
    return Path(
        os.getenv("CMT_HOSTS_CONFIG", str(Path.home() / ".config" / "cmt" / "hosts.yml"))
    )


def load_config(config_path: str | None = None) -> CMTConfig:
    """Load configuration (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration

    Note:
        Must not be called from a running event loop; use load_config_async() there.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_path))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_path: str | None = None) -> CMTConfig:
    """Load configuration from .env, environment and the YAML hosts file.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    load_dotenv()

    config = CMTConfig()
    path = Path(config_path) if config_path else default_config_path()

    if path.exists():
        yaml_config = await _load_yaml_config(path)
        _apply_host_config(config, yaml_config)
        _apply_migration_config(config, yaml_config)
        config.config_file = str(path)
    elif config_path:
        # An explicitly requested file must exist
        raise ConfigurationError(f"Config file not found: {config_path}")

    logger.debug("Configuration loaded", config_file=config.config_file, hosts=len(config.hosts))
    return config


def _apply_host_config(config: CMTConfig, yaml_config: dict[str, Any]) -> None:
    """Apply host aliases from YAML data."""
    hosts = yaml_config.get("hosts") or {}
    try:
        for host_id, host_data in hosts.items():
            config.hosts[host_id] = HostConfig(**host_data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid host configuration: {e}") from e


def _apply_migration_config(config: CMTConfig, yaml_config: dict[str, Any]) -> None:
    """Apply migration settings from YAML data; environment variables still win."""
    migration = yaml_config.get("migration")
    if not migration:
        return

    overrides = {
        key: value
        for key, value in migration.items()
        if key in MigrationSettings.model_fields
        and f"CMT_{key.upper()}" not in os.environ
    }
    try:
        config.migration = MigrationSettings(**{**config.migration.model_dump(), **overrides})
    except ValueError as e:
        raise ConfigurationError(f"Invalid migration settings: {e}") from e


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

    # yaml.safe_load can return None, str, list, etc.
    if not isinstance(loaded, dict):
        return {}
    return loaded
