"""Tests for Docker Copy middleware."""

from types import SimpleNamespace

import pytest

from conftest import MockCall
from docker_copy.core.exceptions import CommandFailed, ConfigurationError
from docker_copy.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from docker_copy.middleware.logging import is_sensitive_field


@pytest.fixture
def logging_middleware():
    return LoggingMiddleware(include_payloads=True, max_payload_length=20)


@pytest.fixture
def error_middleware():
    return ErrorHandlingMiddleware(include_traceback=False)


class TestLoggingMiddleware:
    """Test suite for LoggingMiddleware."""

    async def test_passes_result_through(self, logging_middleware, mock_context):
        call_next = MockCall(return_value={"ok": True})

        result = await logging_middleware.on_message(mock_context, call_next)

        assert result == {"ok": True}
        assert call_next.call_count == 1

    async def test_reraises_failure(self, logging_middleware, mock_context):
        call_next = MockCall(exception=ValueError("Test error"))

        with pytest.raises(ValueError, match="Test error"):
            await logging_middleware.on_message(mock_context, call_next)

    def test_sensitive_arguments_redacted(self, logging_middleware):
        message = SimpleNamespace(
            name="test_connection",
            arguments={"host_id": "nas", "identity_file": "/root/.ssh/id"},
            api_token="abc",
        )

        sanitized = logging_middleware._sanitize_message(message)

        assert sanitized["api_token"] == "[REDACTED]"
        assert "/root/.ssh/id" not in str(sanitized["arguments"])
        assert sanitized["name"] == "test_connection"

    def test_long_values_truncated(self, logging_middleware):
        message = SimpleNamespace(name="x" * 50)

        sanitized = logging_middleware._sanitize_message(message)

        assert sanitized["name"].endswith("... [TRUNCATED]")
        assert sanitized["name"].startswith("x" * 20)

    @pytest.mark.parametrize(
        "name,expected",
        [("password", True), ("identity_file", True), ("API_KEY", True), ("host_id", False)],
    )
    def test_is_sensitive_field(self, name, expected):
        assert is_sensitive_field(name) is expected


class TestErrorHandlingMiddleware:
    """Test suite for ErrorHandlingMiddleware."""

    async def test_success_untouched(self, error_middleware, mock_context):
        result = await error_middleware.on_message(mock_context, MockCall())

        assert result == {"status": "success"}
        assert error_middleware.get_error_statistics()["total_errors"] == 0

    async def test_errors_counted_and_reraised(self, error_middleware, mock_context):
        with pytest.raises(ConfigurationError):
            await error_middleware.on_message(
                mock_context, MockCall(exception=ConfigurationError("Host 'x' not found"))
            )
        with pytest.raises(CommandFailed):
            await error_middleware.on_message(
                mock_context, MockCall(exception=CommandFailed(1, "boom", "docker"))
            )
        with pytest.raises(CommandFailed):
            await error_middleware.on_message(
                mock_context, MockCall(exception=CommandFailed(1, "boom", "docker"))
            )

        stats = error_middleware.get_error_statistics()

        assert stats["total_errors"] == 3
        assert stats["error_distribution"] == {
            "ConfigurationError:tools/call": 1,
            "CommandFailed:tools/call": 2,
        }

    async def test_unexpected_error(self, error_middleware, mock_context):
        with pytest.raises(RuntimeError):
            await error_middleware.on_message(mock_context, MockCall(exception=RuntimeError("x")))

        assert error_middleware.get_error_statistics()["error_distribution"] == {
            "RuntimeError:tools/call": 1
        }
