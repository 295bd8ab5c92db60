"""Migration planning and execution."""

from .engine import MigrationEngine, count_units  # noqa: F401
from .plan import build_plan  # noqa: F401
from .translator import CreationCommand, InspectionTranslator, SkippedBind  # noqa: F401
from .volume_sync import VolumeStreamSynchronizer  # noqa: F401

__all__ = [
    "CreationCommand",
    "InspectionTranslator",
    "MigrationEngine",
    "SkippedBind",
    "VolumeStreamSynchronizer",
    "build_plan",
    "count_units",
]
