"""Side-effect-free migration planning.

``build_plan`` previews what the execution engine would do for a given
selection. It never touches a host; the commands it shows are advisory
and the engine derives its own invocations from the same inputs.
"""

import posixpath
import shlex
import uuid
from datetime import datetime

from ...constants import (
    ARCHIVE_TIMESTAMP_FORMAT,
    DEFAULT_NETWORKS,
    WARNING_CONTAINER_BEST_EFFORT,
    WARNING_EMPTY_SELECTION,
    WARNING_SINGLE_NETWORK,
)
from ...models.migration import (
    ExecutionSite,
    MigrationOptions,
    MigrationPlan,
    PlanStep,
    ResourceSelection,
)
from ...utils import (
    build_ssh_command,
    build_ssh_transport,
    image_repository_name,
    ssh_destination,
)
from ..config_loader import HostConfig
from ..settings import DockerCopySettings, get_settings
from ..subprocess_manager import CommandDispatcher
from .volume_sync import VolumeStreamSynchronizer

PLACEHOLDER_STAMP = "<timestamp>-<run>"
RUN_TOKEN_LENGTH = 8


def new_run_token() -> str:
    return uuid.uuid4().hex[:RUN_TOKEN_LENGTH]


def migration_stamp(now: datetime | None = None, token: str | None = None) -> str:
    """``<timestamp>-<token>`` keeping image tags and archive names unique per run.

    The random token separates runs started within the same second.
    """
    timestamp = (now or datetime.now()).strftime(ARCHIVE_TIMESTAMP_FORMAT)
    return f"{timestamp}-{token or new_run_token()}"


def migrated_image(settings: DockerCopySettings, container: str, stamp: str) -> str:
    """Image reference a container is committed to."""
    return f"{settings.image_prefix}/{image_repository_name(container)}:migrated-{stamp}"


def archive_filename(container: str, stamp: str) -> str:
    return f"{image_repository_name(container)}-{stamp}.tar"


def local_archive_path(settings: DockerCopySettings, container: str, stamp: str) -> str:
    return posixpath.join(settings.temp_dir, archive_filename(container, stamp))


def target_archive_path(
    settings: DockerCopySettings, target: HostConfig, container: str, stamp: str
) -> str:
    """Where the archive lands on the target host."""
    if not target.is_remote:
        return posixpath.join(
            settings.temp_dir, f"target-{archive_filename(container, stamp)}"
        )
    return posixpath.join(settings.remote_temp_dir, archive_filename(container, stamp))


def remote_destination(target: HostConfig, path: str) -> str:
    """``user@host:path`` for file copy tools."""
    return f"{ssh_destination(target)}:{path}"


class _StepCounter:
    def __init__(self):
        self.steps: list[PlanStep] = []

    def add(self, kind: str, label: str, command: str | None, site: ExecutionSite) -> None:
        step_id = f"step-{len(self.steps) + 1}-{kind}"
        self.steps.append(PlanStep(id=step_id, label=label, command=command, site=site))


def build_plan(
    source: HostConfig,
    target: HostConfig,
    selection: ResourceSelection,
    options: MigrationOptions,
    settings: DockerCopySettings | None = None,
) -> MigrationPlan:
    """Preview the steps and warnings of a migration.

    Args:
        source: Source host configuration
        target: Target host configuration
        selection: Selected resource names
        options: Category switches
        settings: Tunables used to render image and archive names

    Returns:
        Immutable MigrationPlan ordered networks, then volumes, then containers
    """
    settings = settings or get_settings()
    counter = _StepCounter()
    warnings: list[str] = []

    if options.include_networks:
        for network in selection.networks:
            if network in DEFAULT_NETWORKS:
                warnings.append(
                    f"Network {network} is a Docker default network and will not be created."
                )
                continue
            counter.add(
                "network",
                f"Create network {network} on target",
                shlex.join(["docker", "network", "create", network]),
                ExecutionSite.TARGET,
            )

    if options.include_volumes and selection.volumes:
        if source.is_remote:
            warnings.append(
                "Volume sync requires a local source host; execution will stop at the volume phase."
            )
        synchronizer = VolumeStreamSynchronizer(CommandDispatcher(settings), settings)
        for volume in selection.volumes:
            counter.add(
                "volume",
                f"Ensure volume {volume} exists on target",
                shlex.join(["docker", "volume", "create", volume]),
                ExecutionSite.TARGET,
            )
            counter.add(
                "volume-sync",
                f"Sync volume {volume} data to target",
                _sync_preview(synchronizer, source, target, volume),
                ExecutionSite.LOCAL,
            )

    if options.include_containers and selection.containers:
        if source.is_remote:
            warnings.append(
                "Container migration requires a local source host; "
                "execution will stop at the container phase."
            )
        warnings.append(WARNING_CONTAINER_BEST_EFFORT)
        warnings.append(WARNING_SINGLE_NETWORK)
        for container in selection.containers:
            _add_container_steps(counter, settings, target, container)

    if not counter.steps:
        warnings.append(WARNING_EMPTY_SELECTION)

    return MigrationPlan(steps=tuple(counter.steps), warnings=tuple(warnings))


def _sync_preview(
    synchronizer: VolumeStreamSynchronizer, source: HostConfig, target: HostConfig, volume: str
) -> str:
    pack = ["docker", *synchronizer.pack_args(volume)]
    unpack = ["docker", *synchronizer.unpack_args(volume)]
    if target.is_remote:
        unpack = [*build_ssh_command(target), "--", shlex.join(unpack)]
    return f"{shlex.join(pack)} | {shlex.join(unpack)}"


def _add_container_steps(
    counter: _StepCounter, settings: DockerCopySettings, target: HostConfig, container: str
) -> None:
    image = migrated_image(settings, container, PLACEHOLDER_STAMP)
    local_archive = local_archive_path(settings, container, PLACEHOLDER_STAMP)
    target_archive = target_archive_path(settings, target, container, PLACEHOLDER_STAMP)

    if target.is_remote:
        ssh_transport = shlex.join(build_ssh_transport(target))
        transfer = shlex.join(
            ["rsync", "-a", "-e", ssh_transport, local_archive,
             remote_destination(target, target_archive)]
        )
    else:
        transfer = shlex.join(["cp", local_archive, target_archive])

    counter.add(
        "commit",
        f"Commit container {container} to an image on source",
        shlex.join(["docker", "commit", container, image]),
        ExecutionSite.SOURCE,
    )
    counter.add(
        "save",
        f"Save image {image} to {local_archive}",
        shlex.join(["docker", "save", "-o", local_archive, image]),
        ExecutionSite.SOURCE,
    )
    counter.add(
        "transfer",
        f"Transfer image archive of {container} to target",
        transfer,
        ExecutionSite.LOCAL,
    )
    counter.add(
        "load",
        f"Load image archive of {container} on target",
        shlex.join(["docker", "load", "-i", target_archive]),
        ExecutionSite.TARGET,
    )
    counter.add(
        "recreate",
        f"Recreate container {container} on target from its inspected configuration",
        shlex.join(["docker", "run", "--name", container, image]),
        ExecutionSite.TARGET,
    )
