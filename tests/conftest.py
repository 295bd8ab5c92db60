"""Shared pytest fixtures for Docker Copy tests."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from docker_copy.core.config_loader import DockerCopyConfig, HostConfig
from docker_copy.core.settings import DockerCopySettings
from docker_copy.core.subprocess_manager import CommandDispatcher, SubprocessResult


@dataclass
class RecordedCall:
    """One command the fake dispatcher was asked to run."""

    host: HostConfig
    command: str
    args: list[str]

    @property
    def line(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass
class _Rule:
    command: str
    prefix: tuple[str, ...]
    stdout: str = ""
    error: Exception | None = None
    host: HostConfig | None = None
    times: int | None = None
    hits: int = field(default=0)


class FakeDispatcher(CommandDispatcher):
    """Records every command instead of running it.

    Rules registered with ``when`` are matched in order against the
    command name and the leading arguments; unmatched commands succeed
    with empty output.
    """

    def __init__(self):
        self.calls: list[RecordedCall] = []
        self._rules: list[_Rule] = []

    def when(
        self,
        command: str,
        *prefix: str,
        stdout: str = "",
        error: Exception | None = None,
        host: HostConfig | None = None,
        times: int | None = None,
    ) -> None:
        self._rules.append(_Rule(command, prefix, stdout, error, host, times))

    async def execute(
        self,
        host: HostConfig,
        command: str,
        args: Sequence[str] = (),
        *,
        timeout: float | None = None,
        stdin: str | None = None,
    ) -> SubprocessResult:
        args = list(args)
        self.calls.append(RecordedCall(host, command, args))
        for rule in self._rules:
            if rule.command != command or tuple(args[: len(rule.prefix)]) != rule.prefix:
                continue
            if rule.host is not None and rule.host != host:
                continue
            if rule.times is not None and rule.hits >= rule.times:
                continue
            rule.hits += 1
            if rule.error is not None:
                raise rule.error
            return SubprocessResult(0, rule.stdout, "", [command, *args])
        return SubprocessResult(0, "", "", [command, *args])

    def lines(self) -> list[str]:
        return [call.line for call in self.calls]

    def calls_for(self, command: str, *prefix: str) -> list[RecordedCall]:
        return [
            call for call in self.calls
            if call.command == command and tuple(call.args[: len(prefix)]) == prefix
        ]


class FakeSynchronizer:
    """Stands in for the volume stream synchronizer."""

    def __init__(self, errors: dict[str, Exception] | None = None):
        self.synced: list[tuple[HostConfig, HostConfig, str]] = []
        self.errors = errors or {}

    async def sync(self, source: HostConfig, target: HostConfig, volume: str) -> None:
        self.synced.append((source, target, volume))
        if volume in self.errors:
            raise self.errors[volume]


class MockCall:
    """Mock call_next function for middleware testing."""

    def __init__(self, return_value=None, exception=None, delay=0):
        self.return_value = return_value or {"status": "success"}
        self.exception = exception
        self.delay = delay
        self.call_count = 0

    async def __call__(self, context):
        self.call_count += 1
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self.exception:
            raise self.exception
        return self.return_value


def inspect_payload(
    name: str,
    *,
    running: bool = True,
    env: list[str] | None = None,
    binds: list[str] | None = None,
    port_bindings: dict[str, Any] | None = None,
    restart: dict[str, Any] | None = None,
    networks: list[str] | None = None,
    working_dir: str = "",
    user: str = "",
    entrypoint: list[str] | None = None,
    cmd: list[str] | None = None,
    image: str = "nginx:alpine",
) -> dict[str, Any]:
    """One element of ``docker inspect`` output."""
    return {
        "Id": f"{name}0123456789abcdef",
        "Name": f"/{name}",
        "State": {"Running": running, "Status": "running" if running else "exited"},
        "Config": {
            "Image": image,
            "Env": env,
            "WorkingDir": working_dir,
            "User": user,
            "Entrypoint": entrypoint,
            "Cmd": cmd,
        },
        "HostConfig": {
            "Binds": binds,
            "PortBindings": port_bindings,
            "RestartPolicy": restart or {"Name": "no", "MaximumRetryCount": 0},
        },
        "NetworkSettings": {"Networks": {n: {} for n in (networks or ["bridge"])}},
    }


@pytest.fixture
def local_host() -> HostConfig:
    return HostConfig()


@pytest.fixture
def remote_host() -> HostConfig:
    return HostConfig(address="target.example.com", user="deploy", port=2222,
                      identity_file="/home/me/.ssh/id_ed25519")


@pytest.fixture
def settings(tmp_path) -> DockerCopySettings:
    """Settings pinned for predictable names."""
    return DockerCopySettings(
        DOCKER_CLI_TIMEOUT=5,
        SUBPROCESS_TIMEOUT=5,
        IMAGE_TRANSFER_TIMEOUT=5,
        VOLUME_SYNC_TIMEOUT=5,
        VOLUME_HELPER_IMAGE="alpine:3",
        MIGRATION_TEMP_DIR=str(tmp_path),
        REMOTE_TEMP_DIR="/tmp",
        MIGRATED_IMAGE_PREFIX="docker-copy",
    )


@pytest.fixture
def fake_dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def fake_synchronizer() -> FakeSynchronizer:
    return FakeSynchronizer()


@pytest.fixture
def config(remote_host) -> DockerCopyConfig:
    """Configuration with one remote host."""
    return DockerCopyConfig(hosts={"target": remote_host})


@pytest.fixture
def mock_context():
    """Create mock MiddlewareContext for unit tests."""
    context = MagicMock()
    context.method = "tools/call"
    context.source = "client"
    context.type = "request"
    context.timestamp = 1640995200.0
    context.message = SimpleNamespace(
        name="run_migration",
        arguments={"source_host_id": "local", "identity_file": "/root/.ssh/id"},
    )
    return context
