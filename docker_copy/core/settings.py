"""Operational settings for Docker Copy.

Provides centralized timeout and migration tunables using Pydantic
BaseSettings with environment variable support.
"""

import tempfile

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerCopySettings(BaseSettings):
    """Timeouts and migration defaults."""

    docker_cli_timeout: int = Field(
        60, alias="DOCKER_CLI_TIMEOUT", description="Docker CLI command timeout in seconds"
    )

    subprocess_timeout: int = Field(
        120, alias="SUBPROCESS_TIMEOUT", description="General subprocess timeout in seconds"
    )

    image_transfer_timeout: int = Field(
        3600,
        alias="IMAGE_TRANSFER_TIMEOUT",
        description="Timeout for commit/save/transfer/load of a container image in seconds",
    )

    volume_sync_timeout: int = Field(
        3600, alias="VOLUME_SYNC_TIMEOUT", description="Timeout for streaming one volume in seconds"
    )

    volume_helper_image: str = Field(
        "alpine:3",
        alias="VOLUME_HELPER_IMAGE",
        description="Image providing tar/sh for mounting volumes during sync",
    )

    temp_dir: str = Field(
        default_factory=tempfile.gettempdir,
        alias="MIGRATION_TEMP_DIR",
        description="Local directory for image archives",
    )

    remote_temp_dir: str = Field(
        "/tmp",
        alias="REMOTE_TEMP_DIR",
        description="Directory for image archives on a remote target",
    )

    image_prefix: str = Field(
        "docker-copy",
        alias="MIGRATED_IMAGE_PREFIX",
        description="Repository prefix for committed container images",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


def get_settings() -> DockerCopySettings:
    """Read settings fresh from the environment."""
    return DockerCopySettings()
