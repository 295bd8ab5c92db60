"""Utility functions for Docker Copy.

Shared helpers for SSH argument construction and remote command quoting,
used by the dispatcher and the volume synchronizer alike.
"""

import re
import shlex
from collections.abc import Sequence

from .constants import SSH_BATCH_MODE, SSH_CONNECT_TIMEOUT, SSH_ERROR_LOG_LEVEL
from .core.config_loader import HostConfig
from .core.exceptions import ConfigurationError

_WINDOWS_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:\\")
_IMAGE_NAME_INVALID = re.compile(r"[^a-z0-9._-]+")


def build_ssh_command(host: HostConfig) -> list[str]:
    """Build SSH command for a host.

    Args:
        host: Remote host configuration (address and user required)

    Returns:
        List of SSH command components ready for subprocess execution

    Raises:
        ConfigurationError: If the host lacks an address or user

    Example:
        >>> build_ssh_command(HostConfig(address="server.com", user="docker", port=2222))
        ['ssh', '-o', 'BatchMode=yes', '-o', 'LogLevel=ERROR', '-o', 'ConnectTimeout=10',
         '-p', '2222', 'docker@server.com']
    """
    return [*build_ssh_transport(host), ssh_destination(host)]


def build_ssh_transport(host: HostConfig) -> list[str]:
    """SSH executable and options without the destination, as used by ``rsync -e``."""
    _require_remote(host)
    ssh_cmd = [
        "ssh",
        "-o", SSH_BATCH_MODE,
        "-o", SSH_ERROR_LOG_LEVEL,
        "-o", SSH_CONNECT_TIMEOUT,
    ]

    if host.port:
        ssh_cmd.extend(["-p", str(host.port)])

    if host.identity_file:
        ssh_cmd.extend(["-i", host.identity_file])

    return ssh_cmd


def build_scp_command(host: HostConfig, local_path: str, remote_path: str) -> list[str]:
    """Build an scp invocation copying a local file to ``remote_path`` on ``host``."""
    _require_remote(host)
    scp_cmd = ["scp", "-q", "-o", SSH_BATCH_MODE, "-o", SSH_CONNECT_TIMEOUT]

    if host.port:
        scp_cmd.extend(["-P", str(host.port)])

    if host.identity_file:
        scp_cmd.extend(["-i", host.identity_file])

    scp_cmd.extend([local_path, f"{ssh_destination(host)}:{remote_path}"])
    return scp_cmd


def ssh_destination(host: HostConfig) -> str:
    """``user@address`` with IPv6 addresses bracketed."""
    _require_remote(host)
    return f"{host.user}@{format_address(host.address or '')}"


def _require_remote(host: HostConfig) -> None:
    if not host.address or not host.user:
        raise ConfigurationError("Remote host and user are required for SSH commands.")


def format_address(address: str) -> str:
    """Bracket bare IPv6 addresses so they can be joined with a user or path."""
    if ":" in address and not (address.startswith("[") and address.endswith("]")):
        return f"[{address}]"
    return address


def build_remote_command(command: str, args: Sequence[str]) -> str:
    """Fold a command and its arguments into one shell-quoted remote command line."""
    return shlex.join([command, *args])


def is_windows_path(path: str) -> bool:
    """Check whether a host path uses a drive letter or backslashes."""
    return bool(_WINDOWS_DRIVE_PATTERN.match(path)) or "\\" in path


def image_repository_name(container: str) -> str:
    """Turn a container name into a valid image repository component."""
    cleaned = _IMAGE_NAME_INVALID.sub("-", container.lower()).strip("-._")
    return cleaned or "container"
