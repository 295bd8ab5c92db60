"""
Migration Service

Resolves configured hosts and connects callers to planning, execution
and inventory operations.
"""

from typing import Any

import structlog

from ..core.config_loader import DockerCopyConfig
from ..core.inventory import DockerInventory
from ..core.migration import MigrationEngine, build_plan
from ..core.migration.engine import ProgressCallback
from ..core.settings import DockerCopySettings, get_settings
from ..core.subprocess_manager import CommandDispatcher
from ..models.migration import MigrationOptions, ResourceSelection


class MigrationService:
    """Service for inventory, planning and migration operations."""

    def __init__(
        self,
        config: DockerCopyConfig,
        settings: DockerCopySettings | None = None,
        engine: MigrationEngine | None = None,
        inventory: DockerInventory | None = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        dispatcher = CommandDispatcher(self.settings)
        self.inventory = inventory or DockerInventory(dispatcher, self.settings)
        self.engine = engine or MigrationEngine(
            dispatcher=dispatcher, inventory=self.inventory, settings=self.settings
        )
        self.logger = structlog.get_logger()

    def list_hosts(self) -> dict[str, Any]:
        hosts = [
            {"host_id": host_id, "remote": host.is_remote, "label": host.describe(),
             "description": host.description}
            for host_id, host in self.config.hosts.items()
        ]
        return {"success": True, "hosts": hosts, "count": len(hosts)}

    async def list_inventory(self, host_id: str) -> dict[str, Any]:
        host = self.config.resolve_host(host_id)
        snapshot = await self.inventory.list_inventory(host)
        return {"success": True, "host_id": host_id or "local", **snapshot.model_dump(mode="json")}

    async def test_connection(self, host_id: str) -> dict[str, Any]:
        host = self.config.resolve_host(host_id)
        result = await self.inventory.test_connection(host)
        return {"host_id": host_id or "local", **result.model_dump(mode="json")}

    def build_plan(
        self,
        source_host_id: str,
        target_host_id: str,
        selection: ResourceSelection,
        options: MigrationOptions,
    ) -> dict[str, Any]:
        source = self.config.resolve_host(source_host_id)
        target = self.config.resolve_host(target_host_id)
        plan = build_plan(source, target, selection, options, self.settings)
        self.logger.info(
            "Built migration plan",
            source=source.describe(),
            target=target.describe(),
            steps=len(plan.steps),
            warnings=len(plan.warnings),
        )
        return {"dry_run": options.dry_run, **plan.model_dump(mode="json")}

    async def run_migration(
        self,
        source_host_id: str,
        target_host_id: str,
        selection: ResourceSelection,
        options: MigrationOptions,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Execute a migration, or only preview it when ``options.dry_run`` is set."""
        if options.dry_run:
            return self.build_plan(source_host_id, target_host_id, selection, options)

        source = self.config.resolve_host(source_host_id)
        target = self.config.resolve_host(target_host_id)
        result = await self.engine.execute(source, target, selection, options, on_progress)
        return {"dry_run": False, **result.model_dump(mode="json")}
