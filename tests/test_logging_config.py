"""Tests for logging setup."""

import json
import logging

import structlog

from docker_copy.core.logging_config import get_server_logger, setup_logging


def test_log_file_written_as_json(tmp_path):
    setup_logging(log_dir=tmp_path, log_level="DEBUG")
    try:
        get_server_logger().info("Migration finished", units=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / "docker_copy.log").read_text().splitlines()
        events = [json.loads(line) for line in lines]

        assert any(e["event"] == "Logging system initialized" for e in events)
        finished = next(e for e in events if e["event"] == "Migration finished")
        assert finished["units"] == 3
        assert finished["level"] == "info"
    finally:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()


def test_console_only(tmp_path):
    setup_logging(log_level="WARNING")
    try:
        assert logging.getLogger().level == logging.WARNING
        assert not (tmp_path / "docker_copy.log").exists()
    finally:
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()
