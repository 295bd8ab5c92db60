"""Logging configuration for Docker Copy with dual output (console + file)."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter


def setup_logging(
    log_dir: Path | str | None = None,
    log_level: str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Setup logging: console always, plus ``docker_copy.log`` when a directory is given.

    Args:
        log_dir: Directory for the log file, or None for console-only logging
        log_level: Log level (defaults to LOG_LEVEL env var or INFO)
        max_file_size_mb: Max file size before truncation (no backup files kept)
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    log_level_num = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing handlers to prevent duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level_num)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if sys.stdout.isatty()
        else structlog.processors.JSONRenderer()
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level_num)
    console_handler.setFormatter(ProcessorFormatter(processor=renderer))
    root_logger.addHandler(console_handler)

    log_file: Path | None = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "docker_copy.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=0,  # Don't keep old files, just truncate
            encoding="utf-8",
        )
        file_handler.setLevel(log_level_num)
        file_handler.setFormatter(
            ProcessorFormatter(processor=structlog.processors.JSONRenderer())
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    get_server_logger().info(
        "Logging system initialized",
        log_level=log_level,
        log_file=str(log_file) if log_file else None,
        max_file_size_mb=max_file_size_mb,
    )


def get_server_logger() -> Any:
    """Get logger for general server operations."""
    return structlog.get_logger("server")


def get_middleware_logger() -> Any:
    """Get logger for middleware request tracking."""
    return structlog.get_logger("middleware")
