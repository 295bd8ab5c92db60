"""Translate inspected container configuration into ``docker run``/``docker create`` arguments."""

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, Field

from ...constants import DEFAULT_NETWORKS, RESTART_POLICY_NEVER
from ...models.container import InspectedContainerConfig, PortBinding, RestartPolicy
from ...utils import is_windows_path
from ..exceptions import ConfigurationUnavailable

logger = structlog.get_logger()

REASON_NON_PORTABLE_BIND = "host path not portable across platforms"

# Length of the container ID shown by ``docker ps``
SHORT_ID_LENGTH = 12


class SkippedBind(BaseModel):
    """A bind mount that could not be carried over."""

    bind: str
    reason: str


class CreationCommand(BaseModel):
    """Docker arguments that recreate a container, plus what was left behind."""

    args: list[str]
    skipped_binds: list[SkippedBind] = Field(default_factory=list)
    unattached_networks: list[str] = Field(default_factory=list)


class InspectionTranslator:
    """Derives creation arguments from ``docker inspect`` output."""

    def __init__(self):
        self.logger = logger.bind(component="inspection_translator")

    def find_config(
        self, configs: Iterable[InspectedContainerConfig], container: str
    ) -> InspectedContainerConfig:
        """Pick the inspected configuration for a selected container.

        An exact name match always wins. ID prefixes are only considered
        for references at least as long as Docker's short ID, since short
        names such as ``db`` or ``cafe`` are also valid hex prefixes.

        Raises:
            ConfigurationUnavailable: If nothing was returned for ``container``
        """
        name = container.lstrip("/")
        configs = list(configs)
        for config in configs:
            if config.name == name:
                return config
        if len(name) >= SHORT_ID_LENGTH:
            for config in configs:
                if config.id and config.id.startswith(name):
                    return config
        raise ConfigurationUnavailable(container)

    def translate(self, config: InspectedContainerConfig, image: str) -> CreationCommand:
        """Build the argument list (without the leading ``docker``) to recreate ``config``.

        Args:
            config: Inspected configuration of the original container
            image: Image reference to create the container from

        Returns:
            CreationCommand with the ordered arguments and any skipped binds
        """
        if config.running:
            args = ["run", "-d"]
        else:
            args = ["create"]
        args.extend(["--name", config.name])

        for env in config.env:
            args.extend(["-e", env])

        skipped: list[SkippedBind] = []
        for bind in config.binds:
            host_path = _bind_host_path(bind)
            if is_windows_path(host_path):
                skipped.append(SkippedBind(bind=bind, reason=REASON_NON_PORTABLE_BIND))
                continue
            args.extend(["-v", bind])

        for container_port, bindings in config.port_bindings.items():
            for binding in bindings:
                args.extend(["-p", format_port_binding(container_port, binding)])

        if restart_flag := format_restart_policy(config.restart_policy):
            args.append(restart_flag)

        custom_networks = [n for n in config.networks if n not in DEFAULT_NETWORKS]
        if custom_networks:
            args.extend(["--network", custom_networks[0]])

        if config.working_dir:
            args.extend(["-w", config.working_dir])
        if config.user:
            args.extend(["-u", config.user])
        if config.entrypoint:
            args.extend(["--entrypoint", " ".join(config.entrypoint)])

        args.append(image)
        args.extend(config.cmd)

        if skipped:
            self.logger.info(
                "Skipped non-portable bind mounts",
                container=config.name,
                binds=[s.bind for s in skipped],
            )

        return CreationCommand(
            args=args,
            skipped_binds=skipped,
            unattached_networks=custom_networks[1:],
        )


def _bind_host_path(bind: str) -> str:
    """Host side of a ``host:container[:mode]`` bind string."""
    if len(bind) > 1 and bind[1] == ":" and bind[0].isalpha():
        return bind[:2] + bind[2:].split(":", 1)[0]
    return bind.split(":", 1)[0]


def format_port_binding(container_port: str, binding: PortBinding) -> str:
    """Render one ``-p`` value, dropping the host IP and host port only when empty."""
    if binding.host_ip:
        return f"{binding.host_ip}:{binding.host_port}:{container_port}"
    if binding.host_port:
        return f"{binding.host_port}:{container_port}"
    return container_port


def format_restart_policy(policy: RestartPolicy) -> str | None:
    """Render ``--restart=...`` or None for the never-restart default."""
    if not policy.name or policy.name == RESTART_POLICY_NEVER:
        return None
    if policy.name == "on-failure" and policy.maximum_retry_count > 0:
        return f"--restart=on-failure:{policy.maximum_retry_count}"
    return f"--restart={policy.name}"
