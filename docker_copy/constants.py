"""Centralized constants for Docker Copy to eliminate duplicate strings."""

# SSH Configuration Options
SSH_BATCH_MODE = "BatchMode=yes"
SSH_ERROR_LOG_LEVEL = "LogLevel=ERROR"
SSH_CONNECT_TIMEOUT = "ConnectTimeout=10"

# Networks that exist on every Docker installation and are never created
DEFAULT_NETWORKS = frozenset({"bridge", "host", "none"})

# Restart policy that means "never restart"
RESTART_POLICY_NEVER = "no"

# Units of work per container: commit, save, transfer, load, create
CONTAINER_STEP_COUNT = 5

# Exit status shells use for a missing executable
COMMAND_NOT_FOUND_EXIT_CODE = 127

# Date/Time Formats
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Mount points used inside the volume helper container
VOLUME_SOURCE_MOUNT = "/from"
VOLUME_TARGET_MOUNT = "/to"

# Result messages
MESSAGE_SUCCESS = "Migration finished successfully."
MESSAGE_SUCCESS_WITH_CONTAINERS = (
    "Migration finished; container steps may require manual verification."
)
MESSAGE_REMOTE_SOURCE_VOLUMES = (
    "Remote source volume sync is not supported. Use a local source host for volumes."
)
MESSAGE_REMOTE_SOURCE_CONTAINERS = (
    "Remote source container migration is not supported. Use a local source host for containers."
)
WARNING_EMPTY_SELECTION = "Select at least one container, volume, or network to migrate."
WARNING_CONTAINER_BEST_EFFORT = (
    "Container recreation is best-effort: review the recreated containers on the target."
)
WARNING_SINGLE_NETWORK = (
    "Only the first user-defined network of each container is reattached on the target."
)
