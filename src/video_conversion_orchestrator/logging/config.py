"""Logging setup for the orchestrator's own loggers.

configure_logging() attaches handlers to the package logger rather than
the root logger, so an application embedding the library keeps control of
its own logging. The engine logger can run at a different level from the
rest of the package: at DEBUG it logs every ffmpeg command line.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from video_conversion_orchestrator.logging.context import OperationContextFilter
from video_conversion_orchestrator.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from video_conversion_orchestrator.config.models import (
        LoggingConfig,
        OrchestratorConfig,
    )

PACKAGE_LOGGER = "video_conversion_orchestrator"
ENGINE_LOGGER = "video_conversion_orchestrator.executor"

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = "%(asctime)s - %(op_tag)s%(name)s - %(levelname)s - %(message)s"


def _level(name: str | None) -> int:
    if name is None:
        return logging.NOTSET
    return _LEVEL_MAP.get(name.casefold(), logging.INFO)


def _formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.casefold() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")


def configure_logging(config: LoggingConfig) -> None:
    """Configure the package and engine loggers from LoggingConfig.

    Replaces handlers installed by a previous call. Records are written to
    a rotating file when one is configured, and to stderr when requested
    or when the file cannot be opened. Package records stop at the package
    logger and are not passed on to the root logger.

    Args:
        config: Logging configuration.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.setLevel(_level(config.level))
    package_logger.propagate = False
    # NOTSET lets the engine logger follow the package level
    logging.getLogger(ENGINE_LOGGER).setLevel(_level(config.engine_level))

    formatter = _formatter(config)
    context_filter = OperationContextFilter()
    handlers: list[logging.Handler] = []

    if config.file:
        file_path = Path(config.file).expanduser()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    file_path,
                    maxBytes=config.max_bytes,
                    backupCount=config.backup_count,
                    encoding="utf-8",
                )
            )
        except OSError as e:
            # Log file unavailable - fall back to stderr
            sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")

    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        package_logger.addHandler(handler)


def build_logging_config(base: LoggingConfig, **overrides: object) -> LoggingConfig:
    """Return a copy of ``base`` with the non-None overrides applied.

    Raises:
        ValueError: If an override fails LoggingConfig validation.
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(base, **changes)


def setup_logging(
    config: OrchestratorConfig | None = None,
    *,
    level: str | None = None,
    engine_level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
) -> LoggingConfig:
    """Apply the logging section of ``config`` with optional overrides.

    Args:
        config: Configuration to use (default: get_config()).
        level: Override package log level.
        engine_level: Override engine log level.
        file: Override log file path.
        format: Override log format (text, json).

    Returns:
        The LoggingConfig that was applied.
    """
    if config is None:
        from video_conversion_orchestrator.config import get_config

        config = get_config()

    applied = build_logging_config(
        config.logging,
        level=level,
        engine_level=engine_level,
        file=file,
        format=format,
    )
    configure_logging(applied)
    return applied
