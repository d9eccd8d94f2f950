"""Structured logging for the conversion orchestrator.

Provides configurable logging with JSON format support, file rotation and
per-operation context tags.
"""

from video_conversion_orchestrator.logging.config import (
    build_logging_config,
    configure_logging,
    setup_logging,
)
from video_conversion_orchestrator.logging.context import (
    OperationContextFilter,
    get_operation_context,
    operation_context,
)
from video_conversion_orchestrator.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "OperationContextFilter",
    "build_logging_config",
    "configure_logging",
    "get_operation_context",
    "operation_context",
    "setup_logging",
]
