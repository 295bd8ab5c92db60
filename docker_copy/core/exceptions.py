"""Core exceptions for Docker Copy operations."""


class DockerCopyError(Exception):
    """Base exception for Docker Copy operations."""


class ConfigurationError(DockerCopyError):
    """Configuration validation or loading failed."""


class DockerCommandError(DockerCopyError):
    """Docker command execution failed."""


class CommandFailed(DockerCommandError):
    """A dispatched process exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str = "", command: str = "", stdout: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        self.command = command
        detail = stderr.strip() or "no error output"
        prefix = f"{command}: " if command else ""
        super().__init__(f"{prefix}command failed with exit code {exit_code}: {detail}")

    @property
    def command_not_found(self) -> bool:
        """True when the executable itself was missing, locally or on the remote shell."""
        if self.exit_code == 127:
            return True
        return "command not found" in self.stderr.lower()


class ConfigurationUnavailable(DockerCopyError):
    """No inspected configuration was returned for a container."""

    def __init__(self, container: str):
        self.container = container
        super().__init__(f"No inspected configuration available for container {container}")


class VolumeSyncError(DockerCopyError):
    """Streaming a volume between hosts failed on one or both sides of the pipe."""

    def __init__(
        self,
        volume: str,
        pack_exit_code: int | None,
        pack_stderr: str,
        unpack_exit_code: int | None,
        unpack_stderr: str,
    ):
        self.volume = volume
        self.pack_exit_code = pack_exit_code
        self.pack_stderr = pack_stderr
        self.unpack_exit_code = unpack_exit_code
        self.unpack_stderr = unpack_stderr
        super().__init__(
            f"Volume sync for {volume} failed "
            f"(pack exit {pack_exit_code}: {pack_stderr.strip() or 'no error output'}; "
            f"unpack exit {unpack_exit_code}: {unpack_stderr.strip() or 'no error output'})"
        )


class MigrationError(DockerCopyError):
    """Migration precondition violated."""
