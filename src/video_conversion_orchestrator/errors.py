"""Exception hierarchy for media inspection and conversion.

Construction and argument errors (MediaNotFoundError,
UnsupportedOperationError, BusyError) are raised before any process is
spawned. Process-level errors (ProcessSpawnError, ProbeError,
ConversionFailedError) report the outcome of an external tool run.
Nothing here is retried implicitly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from video_conversion_orchestrator.executor.engine import ExecutionResult


class MediaOrchestratorError(Exception):
    """Base class for all orchestrator errors."""

    pass


class MediaNotFoundError(MediaOrchestratorError, FileNotFoundError):
    """Raised when a source, audio or join input file does not exist."""

    pass


class UnsupportedOperationError(MediaOrchestratorError, ValueError):
    """Raised when an option value is outside the recognized set."""

    pass


class BusyError(MediaOrchestratorError, RuntimeError):
    """Raised when an operation is requested while another one is running."""

    pass


class ProbeError(MediaOrchestratorError):
    """Raised when metadata extraction fails or yields no usable report."""

    pass


class ProcessSpawnError(MediaOrchestratorError):
    """Raised when an external tool cannot be started at all."""

    pass


class ConversionFailedError(MediaOrchestratorError):
    """Raised when ffmpeg ran but did not succeed.

    Attributes:
        result: The engine's ExecutionResult for the failed run, if any.
    """

    def __init__(self, message: str, result: ExecutionResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class ConversionCancelledError(ConversionFailedError):
    """Raised when an operation was terminated by stop() or handle disposal."""

    pass
