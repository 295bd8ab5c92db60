"""Migration plan, options and result models."""

from enum import Enum

from pydantic import Field, field_validator

from .container import MCPModel


class ExecutionSite(Enum):
    """Where a plan step runs."""

    SOURCE = "source"
    TARGET = "target"
    LOCAL = "local-orchestrator"


class ResourceSelection(MCPModel):
    """Names of the containers, volumes and networks chosen for migration."""

    containers: list[str] = Field(default_factory=list)
    volumes: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("containers", "volumes", "networks")
    @classmethod
    def _dedupe(cls, names: list[str]) -> list[str]:
        return list(dict.fromkeys(name for name in names if name))


class MigrationOptions(MCPModel):
    """Which categories to migrate.

    ``dry_run`` is for the caller: the engine never looks at it.
    """

    include_containers: bool = True
    include_volumes: bool = True
    include_networks: bool = True
    dry_run: bool = False

    model_config = {"frozen": True}


class PlanStep(MCPModel):
    """One advisory step of a migration plan."""

    id: str
    label: str
    command: str | None = None
    site: ExecutionSite

    model_config = {"frozen": True}


class MigrationPlan(MCPModel):
    """Ordered steps plus warnings describing what a migration would do."""

    steps: tuple[PlanStep, ...] = ()
    warnings: tuple[str, ...] = ()

    model_config = {"frozen": True}


class MigrationResult(MCPModel):
    """Outcome of executing a migration."""

    ok: bool
    message: str
    logs: list[str] = Field(default_factory=list)


class ProgressUpdate(MCPModel):
    """Fractional progress emitted after each unit of work."""

    current: int = Field(ge=0)
    total: int = Field(ge=1)
    message: str

    model_config = {"frozen": True}
