"""Error handling middleware for the Docker Copy server."""

from collections import defaultdict
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.exceptions import ConfigurationError, DockerCommandError
from ..core.logging_config import get_middleware_logger


class ErrorHandlingMiddleware(Middleware):
    """Tracks and logs tool errors by type, then re-raises them for FastMCP."""

    def __init__(self, include_traceback: bool = True):
        self.logger = get_middleware_logger()
        self.include_traceback = include_traceback
        self.error_stats: dict[str, int] = defaultdict(int)

    async def on_message(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except Exception as e:
            self._handle_error(e, context)
            raise

    def _handle_error(self, error: Exception, context: MiddlewareContext) -> None:
        error_type = type(error).__name__
        self.error_stats[f"{error_type}:{context.method}"] += 1

        error_data = {
            "error_type": error_type,
            "error_message": str(error),
            "method": context.method,
            "occurrences": self.error_stats[f"{error_type}:{context.method}"],
        }

        # Bad input and failing hosts are expected in normal operation
        if isinstance(error, (ConfigurationError, DockerCommandError, TimeoutError)):
            self.logger.warning("Expected error in MCP request", **error_data)
        else:
            self.logger.error(
                "Error in MCP request", **error_data, exc_info=self.include_traceback
            )

    def get_error_statistics(self) -> dict[str, Any]:
        """Counts of errors keyed by ``<type>:<method>``."""
        return {
            "total_errors": sum(self.error_stats.values()),
            "error_distribution": dict(self.error_stats),
        }
