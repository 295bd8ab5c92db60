"""Data models for Docker Copy."""

from .container import (  # noqa: F401
    ConnectionTestResult,
    ContainerInfo,
    InspectedContainerConfig,
    InventorySnapshot,
    MCPModel,
    NetworkInfo,
    PortBinding,
    RestartPolicy,
    VolumeInfo,
)
from .migration import (  # noqa: F401
    ExecutionSite,
    MigrationOptions,
    MigrationPlan,
    MigrationResult,
    PlanStep,
    ProgressUpdate,
    ResourceSelection,
)

__all__ = [
    # Inventory models
    "ConnectionTestResult",
    "ContainerInfo",
    "InventorySnapshot",
    "MCPModel",
    "NetworkInfo",
    "VolumeInfo",
    # Inspection models
    "InspectedContainerConfig",
    "PortBinding",
    "RestartPolicy",
    # Migration models
    "ExecutionSite",
    "MigrationOptions",
    "MigrationPlan",
    "MigrationResult",
    "PlanStep",
    "ProgressUpdate",
    "ResourceSelection",
]
