"""Container, volume and network data models."""

from typing import Any

from pydantic import BaseModel, Field, computed_field

from ..constants import DEFAULT_NETWORKS, RESTART_POLICY_NEVER


class MCPModel(BaseModel):
    """Base model with common MCP settings."""

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict with exclude_none by default."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


# Inventory records
class ContainerInfo(MCPModel):
    """A container as listed by ``docker ps``."""

    id: str
    name: str
    image: str | None = None
    status: str | None = None
    state: str | None = None
    volumes: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)


class VolumeInfo(MCPModel):
    """A named volume as listed by ``docker volume ls``."""

    name: str
    driver: str | None = None
    mountpoint: str | None = None


class NetworkInfo(MCPModel):
    """A network as listed by ``docker network ls``."""

    id: str
    name: str
    driver: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_default(self) -> bool:
        return self.name in DEFAULT_NETWORKS


class InventorySnapshot(MCPModel):
    """Everything a host offers for migration."""

    containers: list[ContainerInfo] = Field(default_factory=list)
    volumes: list[VolumeInfo] = Field(default_factory=list)
    networks: list[NetworkInfo] = Field(default_factory=list)


class ConnectionTestResult(MCPModel):
    """Outcome of probing a host for SSH and Docker daemon reachability."""

    ok: bool
    message: str
    logs: list[str] = Field(default_factory=list)


# Inspected configuration
class RestartPolicy(MCPModel):
    """Container restart policy."""

    name: str = RESTART_POLICY_NEVER
    maximum_retry_count: int = 0

    model_config = {"frozen": True}


class PortBinding(MCPModel):
    """One host-side binding of a published container port."""

    host_ip: str = ""
    host_port: str = ""

    model_config = {"frozen": True}


class InspectedContainerConfig(MCPModel):
    """Read-only projection of ``docker inspect`` output for one container."""

    id: str = ""
    name: str
    image: str = ""
    running: bool = False
    env: tuple[str, ...] = ()
    binds: tuple[str, ...] = ()
    port_bindings: dict[str, tuple[PortBinding, ...]] = Field(default_factory=dict)
    restart_policy: RestartPolicy = Field(default_factory=RestartPolicy)
    networks: tuple[str, ...] = ()
    working_dir: str = ""
    user: str = ""
    entrypoint: tuple[str, ...] = ()
    cmd: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_inspect(cls, payload: dict[str, Any]) -> "InspectedContainerConfig":
        """Build from one element of the ``docker inspect`` JSON array."""
        config = payload.get("Config") or {}
        host_config = payload.get("HostConfig") or {}
        state = payload.get("State") or {}
        network_settings = payload.get("NetworkSettings") or {}
        restart = host_config.get("RestartPolicy") or {}

        port_bindings: dict[str, tuple[PortBinding, ...]] = {}
        for container_port, bindings in (host_config.get("PortBindings") or {}).items():
            port_bindings[container_port] = tuple(
                PortBinding(
                    host_ip=binding.get("HostIp") or "",
                    host_port=binding.get("HostPort") or "",
                )
                for binding in (bindings or [])
            )

        return cls(
            id=payload.get("Id") or "",
            name=(payload.get("Name") or "").lstrip("/"),
            image=config.get("Image") or "",
            running=bool(state.get("Running")),
            env=tuple(config.get("Env") or ()),
            binds=tuple(host_config.get("Binds") or ()),
            port_bindings=port_bindings,
            restart_policy=RestartPolicy(
                name=restart.get("Name") or RESTART_POLICY_NEVER,
                maximum_retry_count=restart.get("MaximumRetryCount") or 0,
            ),
            networks=tuple((network_settings.get("Networks") or {}).keys()),
            working_dir=config.get("WorkingDir") or "",
            user=config.get("User") or "",
            entrypoint=_as_tuple(config.get("Entrypoint")),
            cmd=_as_tuple(config.get("Cmd")),
        )


def _as_tuple(value: Any) -> tuple[str, ...]:
    """Docker reports Entrypoint/Cmd as a list, a string, or null."""
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)
