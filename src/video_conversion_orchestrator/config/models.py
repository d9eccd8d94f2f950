"""Configuration data models.

This module defines dataclasses for orchestrator configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class EngineConfig:
    """Configuration for the conversion engine's process supervision."""

    stop_timeout: float = 5.0
    """Seconds to wait after SIGTERM before killing the ffmpeg process."""

    reader_join_timeout: float = 5.0
    """Seconds to wait for the stderr reader thread after the process exits."""

    callback_drain_timeout: float = 2.0
    """Seconds to wait for queued progress callbacks after the process exits."""

    stderr_tail_lines: int = 50
    """Number of trailing stderr lines kept for diagnostics."""

    stats_period: int = 1
    """Progress update interval in seconds (FFmpeg 4.3+)."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.stop_timeout <= 0:
            raise ValueError(f"stop_timeout must be positive, got {self.stop_timeout}")
        if self.reader_join_timeout <= 0:
            raise ValueError(
                f"reader_join_timeout must be positive, got {self.reader_join_timeout}"
            )
        if self.callback_drain_timeout < 0:
            raise ValueError(
                "callback_drain_timeout must be non-negative, "
                f"got {self.callback_drain_timeout}"
            )
        if self.stderr_tail_lines < 1:
            raise ValueError(
                f"stderr_tail_lines must be at least 1, got {self.stderr_tail_lines}"
            )
        if self.stats_period < 1:
            raise ValueError(
                f"stats_period must be at least 1, got {self.stats_period}"
            )


@dataclass
class ProbeConfig:
    """Configuration for metadata probing."""

    # Seconds before an ffprobe run is abandoned
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Level for the conversion engine (None = same as level)
    engine_level: str | None = None

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        if self.engine_level is not None and (
            self.engine_level.lower() not in valid_levels
        ):
            raise ValueError(
                f"engine_level must be one of {valid_levels}, got {self.engine_level}"
            )
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class OrchestratorConfig:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Staging directory for snapshots without an explicit output (None = system temp)
    temp_directory: Path | None = None

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Get configured path for a tool.

        Args:
            tool_name: Name of the tool (ffmpeg, ffprobe).

        Returns:
            Configured path or None if not configured.
        """
        return getattr(self.tools, tool_name.lower(), None)
