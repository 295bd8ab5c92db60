"""
Docker Copy Services

Service layer between the MCP tool surface and the migration core.
"""

from .migration import MigrationService  # noqa: F401

__all__ = [
    "MigrationService",
]
