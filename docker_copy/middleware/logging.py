"""Logging middleware for the Docker Copy server using the FastMCP Middleware base class."""

import time
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger

SENSITIVE_KEYWORDS = (
    "password", "passwd", "token", "key", "identity_file",
    "secret", "credential", "auth",
)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name suggests data that must not be logged."""
    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in SENSITIVE_KEYWORDS)


class LoggingMiddleware(Middleware):
    """Logs each MCP request with sanitized parameters, outcome and duration."""

    def __init__(self, include_payloads: bool = True, max_payload_length: int = 1000):
        """Initialize logging middleware.

        Args:
            include_payloads: Whether to include request payloads in logs
            max_payload_length: Maximum length for payload strings before truncation
        """
        self.logger = get_middleware_logger()
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length

    async def on_message(self, context: MiddlewareContext, call_next):
        """Log all MCP messages with timing."""
        start_time = time.perf_counter()

        log_data: dict[str, Any] = {
            "method": context.method,
            "source": context.source,
            "message_type": context.type,
        }
        if self.include_payloads and hasattr(context.message, "__dict__"):
            log_data["params"] = self._sanitize_message(context.message)

        self.logger.info("MCP request started", **log_data)

        try:
            result = await call_next(context)
        except Exception as e:
            self.logger.error(
                "MCP request failed",
                method=context.method,
                success=False,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self.logger.info(
            "MCP request completed",
            method=context.method,
            success=True,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result

    def _sanitize_message(self, message: Any) -> dict[str, Any]:
        """Redact sensitive fields and truncate long values."""
        sanitized: dict[str, Any] = {}
        for key, value in message.__dict__.items():
            if key.startswith("_"):
                continue
            if is_sensitive_field(key):
                sanitized[key] = "[REDACTED]"
                continue
            if isinstance(value, dict):
                value = {
                    k: "[REDACTED]" if is_sensitive_field(str(k)) else v for k, v in value.items()
                }
            text = value if isinstance(value, str) else str(value)
            if len(text) > self.max_payload_length:
                sanitized[key] = text[: self.max_payload_length] + "... [TRUNCATED]"
            else:
                sanitized[key] = value
        return sanitized
