"""Stream a named volume between hosts through a tar pipe.

A packaging process on the source writes an uncompressed tar of the
volume to its stdout. An unpacking process on the target (wrapped in SSH
when the target is remote) reads that stream from its stdin after
clearing the destination. The two are joined by an OS pipe, so the
packer blocks whenever the unpacker falls behind.

Both sides run inside a throwaway helper container with the volume
mounted, which gives root access to the volume's storage path without
sudo on either host and keeps ownership and modes intact.
"""

import asyncio
import os

import structlog

from ...constants import COMMAND_NOT_FOUND_EXIT_CODE, VOLUME_SOURCE_MOUNT, VOLUME_TARGET_MOUNT
from ..config_loader import HostConfig
from ..exceptions import CommandFailed, MigrationError, VolumeSyncError
from ..settings import DockerCopySettings, get_settings
from ..subprocess_manager import CommandDispatcher, terminate_process

logger = structlog.get_logger()


class VolumeStreamSynchronizer:
    """Copies a volume's contents from a local source to a local or remote target."""

    def __init__(
        self,
        dispatcher: CommandDispatcher | None = None,
        settings: DockerCopySettings | None = None,
    ):
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or CommandDispatcher(self.settings)
        self.logger = logger.bind(component="volume_sync")

    def pack_args(self, volume: str) -> list[str]:
        """``docker`` arguments that write the volume as a tar stream to stdout."""
        return [
            "run", "--rm",
            "-v", f"{volume}:{VOLUME_SOURCE_MOUNT}:ro",
            self.settings.volume_helper_image,
            "tar", "-C", VOLUME_SOURCE_MOUNT, "-cf", "-", ".",
        ]

    def unpack_args(self, volume: str) -> list[str]:
        """``docker`` arguments that empty the volume and extract a tar stream from stdin."""
        target = VOLUME_TARGET_MOUNT
        script = (
            f"rm -rf {target}/* {target}/.[!.]* {target}/..?* "
            f"&& tar -C {target} -xpf - --numeric-owner"
        )
        return [
            "run", "--rm", "-i",
            "-v", f"{volume}:{target}",
            self.settings.volume_helper_image,
            "sh", "-c", script,
        ]

    async def sync(self, source: HostConfig, target: HostConfig, volume: str) -> None:
        """Replace the target volume's contents with the source volume's.

        Args:
            source: Source host, which must be local
            target: Target host, local or remote
            volume: Volume name, which must already exist on the target

        Raises:
            MigrationError: If the source host is remote
            CommandFailed: If either process could not be spawned
            VolumeSyncError: If either process exited non-zero
            asyncio.TimeoutError: If the transfer exceeds the sync timeout
        """
        if source.is_remote:
            raise MigrationError("Volume sync requires a local source host.")

        pack_argv = self.dispatcher.build_argv(source, "docker", self.pack_args(volume))
        unpack_argv = self.dispatcher.build_argv(target, "docker", self.unpack_args(volume))

        self.logger.info(
            "Starting volume stream",
            volume=volume,
            target=target.describe(),
            helper_image=self.settings.volume_helper_image,
        )

        read_fd, write_fd = os.pipe()
        try:
            packer = await _spawn(
                pack_argv, stdin=asyncio.subprocess.DEVNULL, stdout=write_fd
            )
            try:
                unpacker = await _spawn(
                    unpack_argv, stdin=read_fd, stdout=asyncio.subprocess.DEVNULL
                )
            except CommandFailed:
                await terminate_process(packer)
                raise
        finally:
            # The children hold their own copies; ours must go so EOF reaches the unpacker.
            os.close(read_fd)
            os.close(write_fd)

        try:
            (pack_code, pack_err), (unpack_code, unpack_err) = await asyncio.wait_for(
                asyncio.gather(_collect(packer), _collect(unpacker)),
                timeout=self.settings.volume_sync_timeout,
            )
        except asyncio.TimeoutError:
            self.logger.warning("Volume stream timed out", volume=volume)
            await terminate_process(packer)
            await terminate_process(unpacker)
            raise asyncio.TimeoutError(
                f"Volume sync for {volume} timed out after {self.settings.volume_sync_timeout} seconds"
            ) from None

        if pack_code != 0 or unpack_code != 0:
            self.logger.error(
                "Volume stream failed",
                volume=volume,
                pack_exit_code=pack_code,
                unpack_exit_code=unpack_code,
            )
            raise VolumeSyncError(volume, pack_code, pack_err, unpack_code, unpack_err)

        self.logger.info("Volume stream completed", volume=volume)


async def _spawn(argv: list[str], *, stdin, stdout) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *argv, stdin=stdin, stdout=stdout, stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise CommandFailed(
            COMMAND_NOT_FOUND_EXIT_CODE, f"{argv[0]}: command not found", argv[0]
        ) from e


async def _collect(process: asyncio.subprocess.Process) -> tuple[int | None, str]:
    """Drain stderr and wait for exit."""
    stderr = await process.stderr.read() if process.stderr else b""
    code = await process.wait()
    return code, stderr.decode(errors="replace")
