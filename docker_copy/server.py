"""
FastMCP Docker Copy Server

Exposes inventory listing, connection testing, migration planning and
migration execution for Docker hosts reached locally or over SSH.
"""

import argparse
import os
import sys
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from .core.config_loader import DockerCopyConfig, default_config_path, load_config
from .core.exceptions import ConfigurationError
from .core.logging_config import get_server_logger, setup_logging
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware
from .models.migration import MigrationOptions, ProgressUpdate, ResourceSelection
from .services import MigrationService

HostId = Annotated[str, Field(description="Configured host id; 'local' for this machine")]
NameList = Annotated[list[str] | None, Field(description="Resource names")]


class DockerCopyServer:
    """Docker Copy MCP server."""

    def __init__(self, config: DockerCopyConfig, service: MigrationService | None = None):
        self.config = config
        self.logger = get_server_logger()
        self.migration_service = service or MigrationService(config)
        self.app: FastMCP | None = None

        self.logger.info(
            "Docker Copy server initialized",
            hosts=list(config.hosts.keys()),
            server_config=config.server.model_dump(),
        )

    def _initialize_app(self) -> None:
        """Initialize FastMCP app, middleware, and register tools."""
        self.app = FastMCP("Docker Copy")
        self.app.add_middleware(ErrorHandlingMiddleware())
        self.app.add_middleware(LoggingMiddleware())

        read_only = {"readOnlyHint": True, "destructiveHint": False, "openWorldHint": True}
        self.app.tool(self.list_hosts, annotations={"title": "List Hosts", "readOnlyHint": True})
        self.app.tool(self.list_inventory, annotations={"title": "List Inventory", **read_only})
        self.app.tool(self.test_connection, annotations={"title": "Test Connection", **read_only})
        self.app.tool(
            self.build_migration_plan,
            annotations={"title": "Preview Migration", "readOnlyHint": True},
        )
        self.app.tool(
            self.run_migration,
            annotations={
                "title": "Run Migration",
                "readOnlyHint": False,
                "destructiveHint": True,  # target volumes are overwritten
                "idempotentHint": False,
                "openWorldHint": True,
            },
        )

    async def list_hosts(self) -> dict[str, Any]:
        """List configured Docker hosts."""
        return self.migration_service.list_hosts()

    async def list_inventory(self, host_id: HostId = "local") -> dict[str, Any]:
        """List containers, volumes and networks on a host."""
        return await self.migration_service.list_inventory(host_id)

    async def test_connection(self, host_id: HostId = "local") -> dict[str, Any]:
        """Check SSH reachability (remote hosts) and the Docker daemon version."""
        return await self.migration_service.test_connection(host_id)

    async def build_migration_plan(
        self,
        source_host_id: HostId = "local",
        target_host_id: HostId = "local",
        containers: NameList = None,
        volumes: NameList = None,
        networks: NameList = None,
        include_containers: bool = True,
        include_volumes: bool = True,
        include_networks: bool = True,
        dry_run: bool = True,
    ) -> dict[str, Any]:
        """Preview the steps and warnings of a migration without touching either host."""
        selection, options = _selection_and_options(
            containers, volumes, networks, include_containers, include_volumes,
            include_networks, dry_run,
        )
        return self.migration_service.build_plan(
            source_host_id, target_host_id, selection, options
        )

    async def run_migration(
        self,
        ctx: Context,
        source_host_id: HostId = "local",
        target_host_id: HostId = "local",
        containers: NameList = None,
        volumes: NameList = None,
        networks: NameList = None,
        include_containers: bool = True,
        include_volumes: bool = True,
        include_networks: bool = True,
        dry_run: bool = False,
    ) -> dict[str, Any]:
        """Migrate networks, then volumes, then containers from source to target.

        With dry_run the plan is returned instead and nothing is executed.
        Target volumes are emptied before the source data is copied in.
        """
        selection, options = _selection_and_options(
            containers, volumes, networks, include_containers, include_volumes,
            include_networks, dry_run,
        )

        async def report(update: ProgressUpdate) -> None:
            await ctx.report_progress(
                progress=update.current, total=update.total, message=update.message
            )

        return await self.migration_service.run_migration(
            source_host_id, target_host_id, selection, options, on_progress=report
        )

    def run(self) -> None:
        """Run the FastMCP server."""
        self._initialize_app()
        if self.app is None:
            raise RuntimeError("FastMCP app not initialized")

        self.logger.info(
            "Starting Docker Copy server",
            host=self.config.server.host,
            port=self.config.server.port,
        )
        self.app.run(
            transport="http",
            host=self.config.server.host,
            port=self.config.server.port,
        )


def _selection_and_options(
    containers: list[str] | None,
    volumes: list[str] | None,
    networks: list[str] | None,
    include_containers: bool,
    include_volumes: bool,
    include_networks: bool,
    dry_run: bool,
) -> tuple[ResourceSelection, MigrationOptions]:
    selection = ResourceSelection(
        containers=containers or [], volumes=volumes or [], networks=networks or []
    )
    options = MigrationOptions(
        include_containers=include_containers,
        include_volumes=include_volumes,
        include_networks=include_networks,
        dry_run=dry_run,
    )
    return selection, options


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Docker Copy migration server")
    parser.add_argument("--host", default=os.getenv("FASTMCP_HOST"), help="Server host")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("FASTMCP_PORT")) if os.getenv("FASTMCP_PORT") else None,
        help="Server port",
    )
    parser.add_argument("--config", default=None, help="Hosts file path")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Directory for log file")
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir, log_level=args.log_level)
    logger = get_server_logger()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error("Configuration invalid", error=str(e))
        sys.exit(1)

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    config.server.log_level = args.log_level

    if args.validate_config:
        logger.info(
            "Configuration is valid",
            config_path=args.config or str(default_config_path()),
            hosts=list(config.hosts.keys()),
        )
        return

    server = DockerCopyServer(config)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")


if __name__ == "__main__":
    main()
