"""Configuration management for Docker Copy."""

import asyncio
import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

logger = structlog.get_logger()

LOCAL_HOST_ID = "local"


class HostConfig(BaseModel):
    """Connection details for a Docker host.

    A host is local unless both ``address`` and ``user`` are set.
    """

    address: str | None = None
    user: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    identity_file: str | None = None
    description: str = ""

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def is_remote(self) -> bool:
        return bool(self.address and self.user)

    def describe(self) -> str:
        """Short human-readable label used in logs."""
        if not self.is_remote:
            return "local"
        port_suffix = f":{self.port}" if self.port else ""
        return f"{self.user}@{self.address}{port_suffix}"


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", alias="FASTMCP_HOST")
    port: int = Field(default=8000, alias="FASTMCP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {"populate_by_name": True}


class DockerCopyConfig(BaseSettings):
    """Main configuration for Docker Copy."""

    hosts: dict[str, HostConfig] = Field(default_factory=dict)
    server: ServerConfig = Field(default_factory=ServerConfig)
    config_file: str = Field(default="", alias="DOCKER_COPY_CONFIG")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def resolve_host(self, host_id: str | None) -> HostConfig:
        """Look up a configured host, treating an empty id or ``local`` as the local machine."""
        if not host_id or host_id == LOCAL_HOST_ID:
            return self.hosts.get(LOCAL_HOST_ID, HostConfig())
        try:
            return self.hosts[host_id]
        except KeyError:
            raise ConfigurationError(f"Host '{host_id}' not found") from None


def default_config_path() -> Path:
    """Default hosts file location, honouring ``DOCKER_COPY_CONFIG``."""
    if env_path := os.getenv("DOCKER_COPY_CONFIG"):
        return Path(env_path)
    return Path.home() / ".config" / "docker-copy" / "hosts.yml"


def load_config(config_path: str | None = None) -> DockerCopyConfig:
    """Load configuration from the hosts file and environment (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_path))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_path: str | None = None) -> DockerCopyConfig:
    """Load configuration from the hosts file and environment (async interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    load_dotenv()

    config = DockerCopyConfig()
    path = Path(config_path) if config_path else default_config_path()
    if path.exists():
        yaml_config = await _load_yaml_config(path)
        _apply_host_config(config, yaml_config)
        _apply_server_config(config, yaml_config)
    else:
        logger.debug("No hosts file found, using local host only", config_path=str(path))

    config.config_file = str(path)
    _apply_env_overrides(config)
    return config


def _apply_host_config(config: DockerCopyConfig, yaml_config: dict[str, Any]) -> None:
    """Apply host configuration from YAML data."""
    hosts = yaml_config.get("hosts") or {}
    if not isinstance(hosts, dict):
        raise ConfigurationError("'hosts' must be a mapping of host id to host settings")
    for host_id, host_data in hosts.items():
        host = HostConfig(**(host_data or {}))
        if (host.address or host.user) and not host.is_remote:
            raise ConfigurationError(
                f"Host '{host_id}' must set both address and user to be used remotely"
            )
        config.hosts[str(host_id)] = host


def _apply_server_config(config: DockerCopyConfig, yaml_config: dict[str, Any]) -> None:
    """Apply server configuration from YAML data."""
    for key, value in (yaml_config.get("server") or {}).items():
        if hasattr(config.server, key):
            setattr(config.server, key, value)


def _apply_env_overrides(config: DockerCopyConfig) -> None:
    """Apply environment variable overrides."""
    if os.getenv("FASTMCP_HOST"):
        config.server.host = os.getenv("FASTMCP_HOST", config.server.host)
    if port_env := os.getenv("FASTMCP_PORT"):
        config.server.port = int(port_env)
    if os.getenv("LOG_LEVEL"):
        config.server.log_level = os.getenv("LOG_LEVEL", config.server.log_level)


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e
    if not isinstance(loaded, dict):
        return {}
    return loaded
