"""Migration execution engine.

Runs the network, volume and container phases strictly one after the
other, reporting a ProgressUpdate after every unit of work and keeping a
chronological, append-only text log for the caller.
"""

import asyncio
import inspect
import json
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path

import structlog

from ...constants import (
    CONTAINER_STEP_COUNT,
    DEFAULT_NETWORKS,
    MESSAGE_REMOTE_SOURCE_CONTAINERS,
    MESSAGE_REMOTE_SOURCE_VOLUMES,
    MESSAGE_SUCCESS,
    MESSAGE_SUCCESS_WITH_CONTAINERS,
)
from ...models.container import InspectedContainerConfig
from ...models.migration import (
    MigrationOptions,
    MigrationResult,
    ProgressUpdate,
    ResourceSelection,
)
from ...utils import build_scp_command, build_ssh_transport
from ..config_loader import HostConfig
from ..exceptions import (
    CommandFailed,
    ConfigurationUnavailable,
    DockerCopyError,
    MigrationError,
)
from ..inventory import DockerInventory, parse_inspected_containers
from ..settings import DockerCopySettings, get_settings
from ..subprocess_manager import CommandDispatcher
from .plan import (
    local_archive_path,
    migrated_image,
    migration_stamp,
    new_run_token,
    remote_destination,
    target_archive_path,
)
from .translator import InspectionTranslator
from .volume_sync import VolumeStreamSynchronizer

logger = structlog.get_logger()

LOCAL_HOST = HostConfig()

ProgressCallback = Callable[[ProgressUpdate], Awaitable[None] | None]


def count_units(selection: ResourceSelection, options: MigrationOptions) -> int:
    """Total units of work: one per non-default network and volume, five per container."""
    total = 0
    if options.include_networks:
        total += sum(1 for n in selection.networks if n not in DEFAULT_NETWORKS)
    if options.include_volumes:
        total += len(selection.volumes)
    if options.include_containers:
        total += CONTAINER_STEP_COUNT * len(selection.containers)
    return max(total, 1)


class _MigrationRun:
    """Log and progress state of a single execution."""

    def __init__(self, total: int, on_progress: ProgressCallback | None, log):
        self.total = total
        self.current = 0
        self.logs: list[str] = []
        self._on_progress = on_progress
        self._log = log

    def record(self, message: str, **fields) -> None:
        self.logs.append(message)
        self._log.info(message, **fields)

    async def advance(self, message: str) -> None:
        self.current = min(self.current + 1, self.total)
        if self._on_progress is None:
            return
        update = ProgressUpdate(current=self.current, total=self.total, message=message)
        outcome = self._on_progress(update)
        if inspect.isawaitable(outcome):
            await outcome

    def fail(self, message: str) -> MigrationResult:
        self.logs.append(message)
        self._log.error("Migration failed", reason=message)
        return MigrationResult(ok=False, message=message, logs=list(self.logs))


class MigrationEngine:
    """Performs networks, volumes and containers migration between two hosts."""

    def __init__(
        self,
        dispatcher: CommandDispatcher | None = None,
        inventory: DockerInventory | None = None,
        synchronizer: VolumeStreamSynchronizer | None = None,
        translator: InspectionTranslator | None = None,
        settings: DockerCopySettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
        run_token: Callable[[], str] = new_run_token,
    ):
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or CommandDispatcher(self.settings)
        self.inventory = inventory or DockerInventory(self.dispatcher, self.settings)
        self.synchronizer = synchronizer or VolumeStreamSynchronizer(
            self.dispatcher, self.settings
        )
        self.translator = translator or InspectionTranslator()
        self.clock = clock
        self.run_token = run_token
        self.logger = logger.bind(component="migration_engine")

    async def execute(
        self,
        source: HostConfig,
        target: HostConfig,
        selection: ResourceSelection,
        options: MigrationOptions,
        on_progress: ProgressCallback | None = None,
    ) -> MigrationResult:
        """Migrate the selected resources from ``source`` to ``target``.

        Args:
            source: Source host configuration
            target: Target host configuration
            selection: Selected resource names
            options: Category switches
            on_progress: Sync or async callable receiving each ProgressUpdate in order

        Returns:
            MigrationResult; ``ok`` is False only when a phase could not proceed
        """
        log = self.logger.bind(source=source.describe(), target=target.describe())
        run = _MigrationRun(count_units(selection, options), on_progress, log)
        containers_included = options.include_containers and bool(selection.containers)

        log.info(
            "Starting migration",
            containers=selection.containers,
            volumes=selection.volumes,
            networks=selection.networks,
            total_units=run.total,
        )

        try:
            if options.include_networks:
                await self._network_phase(run, target, selection.networks)

            if options.include_volumes and selection.volumes:
                if source.is_remote:
                    return run.fail(MESSAGE_REMOTE_SOURCE_VOLUMES)
                await self._volume_phase(run, source, target, selection.volumes)

            if containers_included:
                if source.is_remote:
                    return run.fail(MESSAGE_REMOTE_SOURCE_CONTAINERS)
                await self._container_phase(run, source, target, selection.containers)
        except (DockerCopyError, asyncio.TimeoutError) as e:
            return run.fail(f"Migration stopped: {e}")

        message = MESSAGE_SUCCESS_WITH_CONTAINERS if containers_included else MESSAGE_SUCCESS
        log.info("Migration finished", units=run.current, total_units=run.total)
        return MigrationResult(ok=True, message=message, logs=list(run.logs))

    async def _network_phase(
        self, run: _MigrationRun, target: HostConfig, networks: list[str]
    ) -> None:
        for network in networks:
            if network in DEFAULT_NETWORKS:
                run.record(f"Skipping default network {network}", network=network)
                continue

            run.record(f"Creating network {network} on target", network=network)
            try:
                await self._docker(target, ["network", "create", network])
            except CommandFailed as e:
                if "already exists" not in e.stderr.lower():
                    raise
                run.record(f"Network {network} already exists on target", network=network)
            await run.advance(f"Network {network} ready on target")

    async def _volume_phase(
        self, run: _MigrationRun, source: HostConfig, target: HostConfig, volumes: list[str]
    ) -> None:
        if source.is_remote:
            raise MigrationError(MESSAGE_REMOTE_SOURCE_VOLUMES)

        for volume in volumes:
            run.record(f"Preparing volume {volume} on target", volume=volume)
            await self._docker(target, ["volume", "create", volume])

            run.record(f"Syncing volume {volume} to {target.describe()}", volume=volume)
            await self.synchronizer.sync(source, target, volume)
            run.record(f"Volume {volume} synchronized", volume=volume)
            await run.advance(f"Volume {volume} synchronized")

        await self._record_volume_details(run, source, volumes)

    async def _record_volume_details(
        self, run: _MigrationRun, source: HostConfig, volumes: list[str]
    ) -> None:
        try:
            raw = await self.inventory.inspect_volumes(source, volumes)
            details = json.loads(raw) if raw.strip() else []
        except (DockerCopyError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            run.record(f"Volume inspection data unavailable: {e}")
            return

        run.record("Volume inspection data captured.")
        for item in details:
            run.record(
                f"Source volume {item.get('Name')}: driver={item.get('Driver')}, "
                f"mountpoint={item.get('Mountpoint')}"
            )

    async def _container_phase(
        self, run: _MigrationRun, source: HostConfig, target: HostConfig, containers: list[str]
    ) -> None:
        if source.is_remote:
            raise MigrationError(MESSAGE_REMOTE_SOURCE_CONTAINERS)

        raw = await self.inventory.inspect_containers(source, containers)
        configs = parse_inspected_containers(raw)
        run.record(f"Container inspection data captured for {len(configs)} container(s).")

        stamp = migration_stamp(self.clock(), self.run_token())
        for container in containers:
            await self._migrate_container(run, source, target, container, configs, stamp)

    async def _migrate_container(
        self,
        run: _MigrationRun,
        source: HostConfig,
        target: HostConfig,
        container: str,
        configs: list[InspectedContainerConfig],
        stamp: str,
    ) -> None:
        try:
            config = self.translator.find_config(configs, container)
        except ConfigurationUnavailable as e:
            run.record(f"Skipping container {container}: {e}", container=container)
            for _ in range(CONTAINER_STEP_COUNT):
                await run.advance(f"Skipped container {container}")
            return

        image = migrated_image(self.settings, container, stamp)
        local_archive = local_archive_path(self.settings, container, stamp)
        target_archive = target_archive_path(self.settings, target, container, stamp)
        timeout = self.settings.image_transfer_timeout
        completed = 0
        stage = "commit"

        try:
            run.record(f"Committing container {container} to image {image}", container=container)
            await self._docker(source, ["commit", container, image], timeout=timeout)
            completed += 1
            await run.advance(f"Committed container {container}")

            stage = "save"
            run.record(f"Saving image {image} to {local_archive}", container=container)
            await self._docker(source, ["save", "-o", local_archive, image], timeout=timeout)
            completed += 1
            await run.advance(f"Saved image of {container}")

            stage = "transfer"
            run.record(f"Transferring image archive of {container} to target", container=container)
            await self._transfer_archive(run, target, local_archive, target_archive)
            completed += 1
            await run.advance(f"Transferred image of {container}")

            stage = "load"
            run.record(f"Loading image archive of {container} on target", container=container)
            await self._docker(target, ["load", "-i", target_archive], timeout=timeout)
            completed += 1
            await run.advance(f"Loaded image of {container}")

            stage = "create"
            creation = self.translator.translate(config, image)
            for skipped in creation.skipped_binds:
                run.record(
                    f"Skipped bind mount {skipped.bind} for {container}: {skipped.reason}",
                    container=container,
                )
            if creation.unattached_networks:
                run.record(
                    f"Container {container} was also attached to "
                    f"{', '.join(creation.unattached_networks)}; reconnect manually",
                    container=container,
                )
            run.record(
                f"Recreating container {container} on target: "
                f"{shlex.join(['docker', *creation.args])}",
                container=container,
            )
            await self._docker(target, creation.args)
            completed += 1
            await run.advance(f"Recreated container {container}")
        except (CommandFailed, asyncio.TimeoutError) as e:
            run.record(
                f"Container {container} failed during {stage}: {e}; skipping remaining steps",
                container=container,
            )
            for _ in range(CONTAINER_STEP_COUNT - completed):
                await run.advance(f"Skipped {stage} of container {container}")
        finally:
            await self._cleanup_archives(target, local_archive, target_archive)

    async def _transfer_archive(
        self, run: _MigrationRun, target: HostConfig, local_archive: str, target_archive: str
    ) -> None:
        timeout = self.settings.image_transfer_timeout
        if not target.is_remote:
            await self.dispatcher.execute(
                LOCAL_HOST, "cp", [local_archive, target_archive], timeout=timeout
            )
            return

        rsync_args = [
            "-a",
            "-e", shlex.join(build_ssh_transport(target)),
            local_archive,
            remote_destination(target, target_archive),
        ]
        try:
            await self.dispatcher.execute(LOCAL_HOST, "rsync", rsync_args, timeout=timeout)
        except CommandFailed as e:
            if not e.command_not_found:
                raise
            run.record("rsync is not available, falling back to scp")
            scp_cmd = build_scp_command(target, local_archive, target_archive)
            await self.dispatcher.execute(LOCAL_HOST, scp_cmd[0], scp_cmd[1:], timeout=timeout)

    async def _cleanup_archives(
        self, target: HostConfig, local_archive: str, target_archive: str
    ) -> None:
        """Remove temporary archives on both ends; failures are only logged."""
        try:
            await asyncio.to_thread(Path(local_archive).unlink, missing_ok=True)
        except OSError as e:
            self.logger.debug("Local archive cleanup failed", path=local_archive, error=str(e))

        if not target.is_remote:
            try:
                await asyncio.to_thread(Path(target_archive).unlink, missing_ok=True)
            except OSError as e:
                self.logger.debug("Archive cleanup failed", path=target_archive, error=str(e))
            return

        try:
            await self.dispatcher.execute(
                target, "rm", ["-f", target_archive], timeout=self.settings.docker_cli_timeout
            )
        except (DockerCopyError, asyncio.TimeoutError) as e:
            self.logger.debug("Remote archive cleanup failed", path=target_archive, error=str(e))

    async def _docker(
        self, host: HostConfig, args: list[str], timeout: float | None = None
    ):
        return await self.dispatcher.execute(
            host, "docker", args, timeout=timeout or self.settings.docker_cli_timeout
        )
