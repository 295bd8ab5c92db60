"""Command dispatch for local and SSH-remote hosts with proper resource handling."""

import asyncio
import os
from collections.abc import Sequence
from typing import Any

import structlog

from ..constants import COMMAND_NOT_FOUND_EXIT_CODE
from ..utils import build_remote_command, build_ssh_command
from .config_loader import HostConfig
from .exceptions import CommandFailed
from .settings import DockerCopySettings, get_settings

logger = structlog.get_logger()

KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(self, returncode: int, stdout: str, stderr: str, cmd: list[str]):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0


async def terminate_process(process: asyncio.subprocess.Process) -> None:
    """Terminate a child process, escalating to SIGKILL if it lingers."""
    if process.returncode is not None:
        return
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
        process.kill()
        await process.wait()
    except ProcessLookupError:
        pass


class CommandDispatcher:
    """Runs a named command on the local machine or through SSH on a remote host."""

    def __init__(self, settings: DockerCopySettings | None = None):
        self.settings = settings or get_settings()

    def build_argv(self, host: HostConfig, command: str, args: Sequence[str]) -> list[str]:
        """Build the argv that runs ``command args`` on ``host``.

        Local hosts get the command directly. Remote hosts get an SSH
        invocation whose single trailing argument is the shell-quoted
        command line.
        """
        if not host.is_remote:
            return [command, *args]
        return [*build_ssh_command(host), "--", build_remote_command(command, args)]

    async def execute(
        self,
        host: HostConfig,
        command: str,
        args: Sequence[str] = (),
        *,
        timeout: float | None = None,
        stdin: str | None = None,
    ) -> SubprocessResult:
        """Run a command on a host and capture its output.

        Args:
            host: Host to run on
            command: Executable name
            args: Arguments, quoted individually for remote hosts
            timeout: Seconds before the process is terminated; defaults to
                the ``SUBPROCESS_TIMEOUT`` setting
            stdin: Optional text fed to the process

        Returns:
            SubprocessResult with returncode, stdout, and stderr

        Raises:
            CommandFailed: On non-zero exit or a missing executable
            asyncio.TimeoutError: If the command times out
        """
        if timeout is None:
            timeout = self.settings.subprocess_timeout
        argv = self.build_argv(host, command, args)
        return await self.run_command(argv, timeout=timeout, stdin=stdin, label=command)

    async def run_command(
        self,
        cmd: list[str],
        *,
        timeout: float | None = None,
        stdin: str | None = None,
        label: str | None = None,
    ) -> SubprocessResult:
        """Run an argv locally, raising CommandFailed when it exits non-zero."""
        logger.debug("Executing command", command=" ".join(cmd), timeout=timeout)

        kwargs: dict[str, Any] = {
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "env": os.environ.copy(),
        }
        if stdin is not None:
            kwargs["stdin"] = asyncio.subprocess.PIPE

        try:
            process = await asyncio.create_subprocess_exec(*cmd, **kwargs)
        except FileNotFoundError as e:
            raise CommandFailed(
                COMMAND_NOT_FOUND_EXIT_CODE,
                f"{cmd[0]}: command not found",
                label or cmd[0],
            ) from e

        try:
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(input=stdin.encode() if stdin is not None else None),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Command timed out, terminating process",
                    command=" ".join(cmd),
                    timeout=timeout,
                    pid=process.pid,
                )
                await terminate_process(process)
                raise asyncio.TimeoutError(
                    f"Command timed out after {timeout} seconds: {' '.join(cmd)}"
                ) from None
        finally:
            await terminate_process(process)

        result = SubprocessResult(
            returncode=process.returncode or 0,
            stdout=stdout_bytes.decode(errors="replace") if stdout_bytes else "",
            stderr=stderr_bytes.decode(errors="replace") if stderr_bytes else "",
            cmd=cmd,
        )
        if not result.success:
            raise CommandFailed(result.returncode, result.stderr, label or cmd[0], result.stdout)
        return result
