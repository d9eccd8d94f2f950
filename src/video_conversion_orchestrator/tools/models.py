"""Data models for external tool detection.

This module defines dataclasses for representing detected ffmpeg/ffprobe
information and the aggregated tool registry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ToolStatus(Enum):
    """Status of an external tool."""

    AVAILABLE = "available"  # Tool found and version detected
    MISSING = "missing"  # Tool not found in PATH or configured location
    ERROR = "error"  # Tool found but detection failed


@dataclass
class ToolInfo:
    """Detection result for one external tool."""

    name: str
    path: Path | None = None
    version: str | None = None
    version_tuple: tuple[int, ...] | None = None  # Parsed version for comparison
    status: ToolStatus = ToolStatus.MISSING
    status_message: str | None = None
    detected_at: datetime | None = None

    def is_available(self) -> bool:
        """Return True if the tool is available and usable."""
        return self.status == ToolStatus.AVAILABLE and self.path is not None

    def meets_version(self, min_version: tuple[int, ...]) -> bool:
        """Check if tool version meets minimum requirement.

        Args:
            min_version: Minimum version as tuple (e.g., (4, 3) for 4.3).

        Returns:
            True if tool version >= min_version, False otherwise.
        """
        if self.version_tuple is None:
            return False
        max_len = max(len(self.version_tuple), len(min_version))
        v1 = self.version_tuple + (0,) * (max_len - len(self.version_tuple))
        v2 = min_version + (0,) * (max_len - len(min_version))
        return v1 >= v2


# Install hints shown when a required tool is missing
INSTALL_HINTS: dict[str, str] = {
    "ffmpeg": (
        "Install FFmpeg (https://ffmpeg.org/download.html) or set VCO_FFMPEG_PATH."
    ),
    "ffprobe": (
        "ffprobe ships with FFmpeg (https://ffmpeg.org/download.html); "
        "or set VCO_FFPROBE_PATH."
    ),
}


@dataclass
class ToolRegistry:
    """Detected external tools, keyed by name."""

    ffmpeg: ToolInfo = field(default_factory=lambda: ToolInfo(name="ffmpeg"))
    ffprobe: ToolInfo = field(default_factory=lambda: ToolInfo(name="ffprobe"))

    def get_tool(self, name: str) -> ToolInfo | None:
        """Get tool info by name, or None for unknown tools."""
        return {"ffmpeg": self.ffmpeg, "ffprobe": self.ffprobe}.get(name)

    def is_available(self, name: str) -> bool:
        tool = self.get_tool(name)
        return tool is not None and tool.is_available()

    def get_missing_tools(self) -> list[str]:
        """Names of tools that were not detected."""
        return [t.name for t in (self.ffmpeg, self.ffprobe) if not t.is_available()]
