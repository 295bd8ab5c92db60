"""FastMCP middleware for the Docker Copy server.

- LoggingMiddleware: Structured request logging with timing
- ErrorHandlingMiddleware: Error classification and statistics
"""

from .error_handling import ErrorHandlingMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
]
