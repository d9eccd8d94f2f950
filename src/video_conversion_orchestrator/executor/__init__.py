"""Executor module: the conversion engine and its execution results."""

from video_conversion_orchestrator.executor.engine import (
    ConversionEngine,
    EngineState,
    ExecutionResult,
)

__all__ = [
    "ConversionEngine",
    "EngineState",
    "ExecutionResult",
]
