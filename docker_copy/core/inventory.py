"""Read-only Docker inventory queries and connection probing."""

import json
from typing import Any

import structlog

from ..models.container import (
    ConnectionTestResult,
    ContainerInfo,
    InspectedContainerConfig,
    InventorySnapshot,
    NetworkInfo,
    VolumeInfo,
)
from .config_loader import HostConfig
from .exceptions import CommandFailed, DockerCommandError, DockerCopyError
from .settings import DockerCopySettings, get_settings
from .subprocess_manager import CommandDispatcher

logger = structlog.get_logger()

JSON_FORMAT = "{{json .}}"


def parse_json_lines(output: str) -> list[dict[str, Any]]:
    """Parse ``--format '{{json .}}'`` output, one object per line."""
    records = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError:
            logger.warning("Failed to parse docker output line", line=line)
    return records


def _split_list(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def parse_inspected_containers(raw: str) -> list[InspectedContainerConfig]:
    """Decode ``docker inspect`` JSON text into inspected configurations.

    Raises:
        DockerCopyError: If the text is not a JSON array
    """
    if not raw.strip():
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DockerCopyError(f"Invalid docker inspect output: {e}") from e
    if not isinstance(payload, list):
        raise DockerCopyError("Invalid docker inspect output: expected a JSON array")
    return [InspectedContainerConfig.from_inspect(item) for item in payload if isinstance(item, dict)]


class DockerInventory:
    """Lists and inspects Docker resources on a host."""

    def __init__(
        self,
        dispatcher: CommandDispatcher | None = None,
        settings: DockerCopySettings | None = None,
    ):
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or CommandDispatcher(self.settings)
        self.logger = logger.bind(component="inventory")

    async def _docker(self, host: HostConfig, args: list[str]) -> str:
        result = await self.dispatcher.execute(
            host, "docker", args, timeout=self.settings.docker_cli_timeout
        )
        return result.stdout

    async def list_containers(self, host: HostConfig) -> list[ContainerInfo]:
        output = await self._docker(host, ["ps", "-a", "--no-trunc", "--format", JSON_FORMAT])
        return [
            ContainerInfo(
                id=item.get("ID", ""),
                name=item.get("Names", ""),
                image=item.get("Image"),
                status=item.get("Status"),
                state=item.get("State"),
                volumes=_split_list(item.get("Mounts")),
                networks=_split_list(item.get("Networks")),
            )
            for item in parse_json_lines(output)
        ]

    async def list_volumes(self, host: HostConfig) -> list[VolumeInfo]:
        output = await self._docker(host, ["volume", "ls", "--format", JSON_FORMAT])
        return [
            VolumeInfo(
                name=item.get("Name", ""),
                driver=item.get("Driver"),
                mountpoint=item.get("Mountpoint") or None,
            )
            for item in parse_json_lines(output)
        ]

    async def list_networks(self, host: HostConfig) -> list[NetworkInfo]:
        output = await self._docker(host, ["network", "ls", "--format", JSON_FORMAT])
        return [
            NetworkInfo(id=item.get("ID", ""), name=item.get("Name", ""), driver=item.get("Driver"))
            for item in parse_json_lines(output)
        ]

    async def list_inventory(self, host: HostConfig) -> InventorySnapshot:
        """Containers, volumes and networks of one host."""
        return InventorySnapshot(
            containers=await self.list_containers(host),
            volumes=await self.list_volumes(host),
            networks=await self.list_networks(host),
        )

    async def inspect_containers(self, host: HostConfig, names: list[str]) -> str:
        """Raw ``docker inspect`` JSON for the named containers; empty when none are named."""
        if not names:
            return ""
        try:
            return await self._docker(host, ["inspect", "--type", "container", *names])
        except CommandFailed as e:
            # docker inspect still prints the containers it found when some names are unknown
            if "no such" not in e.stderr.lower():
                raise
            self.logger.warning(
                "Some containers could not be inspected", names=names, error=e.stderr.strip()
            )
            return e.stdout

    async def inspect_volumes(self, host: HostConfig, names: list[str]) -> str:
        if not names:
            return ""
        return await self._docker(host, ["volume", "inspect", *names])

    async def test_connection(self, host: HostConfig) -> ConnectionTestResult:
        """Probe SSH (for remote hosts) and the Docker daemon. Never raises."""
        logs: list[str] = []
        try:
            if host.is_remote:
                result = await self.dispatcher.execute(
                    host, "echo", ["connected"], timeout=self.settings.docker_cli_timeout
                )
                logs.append(f"SSH: {result.stdout.strip() or 'connected'}")

            version = (
                await self._docker(host, ["version", "--format", "{{.Server.Version}}"])
            ).strip()
            if not version:
                raise DockerCommandError("Docker daemon responded with an empty version string.")
            logs.append(f"Docker Server: {version}")
        except (DockerCopyError, TimeoutError) as e:
            logs.append(str(e) or type(e).__name__)
            self.logger.warning("Connection test failed", host=host.describe(), error=str(e))
            return ConnectionTestResult(ok=False, message="Connection failed.", logs=logs)

        self.logger.info("Connection test succeeded", host=host.describe())
        return ConnectionTestResult(ok=True, message="Connection successful.", logs=logs)
