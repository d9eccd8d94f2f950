"""External tool discovery for ffmpeg and ffprobe.

Tool paths are resolved with support for:
- Configured paths (via config file or VCO_FFMPEG_PATH / VCO_FFPROBE_PATH)
- System PATH fallback

Detection runs once per process; call refresh_tool_registry() if tool
paths or availability may have changed.
"""

import threading
from pathlib import Path

from video_conversion_orchestrator.errors import ProcessSpawnError
from video_conversion_orchestrator.tools.detection import (
    detect_all_tools,
    detect_tool,
    find_tool,
    parse_version_string,
)
from video_conversion_orchestrator.tools.models import (
    INSTALL_HINTS,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)

# Module-level registry cache (lazy-loaded)
_tool_registry: ToolRegistry | None = None
_registry_lock = threading.Lock()


def get_tool_registry() -> ToolRegistry:
    """Get or create the tool registry (lazy initialization).

    Returns:
        ToolRegistry with detected tool information.
    """
    global _tool_registry

    with _registry_lock:
        if _tool_registry is None:
            from video_conversion_orchestrator.config import get_config

            config = get_config()
            _tool_registry = detect_all_tools(
                ffmpeg_path=config.tools.ffmpeg,
                ffprobe_path=config.tools.ffprobe,
            )
        return _tool_registry


def refresh_tool_registry() -> None:
    """Force re-detection of tools on next access."""
    global _tool_registry
    with _registry_lock:
        _tool_registry = None


def require_tool(tool_name: str) -> Path:
    """Get path to a required tool, raising an error if not available.

    Args:
        tool_name: Name of the tool ("ffmpeg" or "ffprobe").

    Returns:
        Path to the tool executable.

    Raises:
        ProcessSpawnError: If the tool is not available.
    """
    return available_path(get_tool_registry().get_tool(tool_name), tool_name)


def available_path(tool: ToolInfo | None, tool_name: str) -> Path:
    """Return the executable path of a detected tool.

    Raises:
        ProcessSpawnError: If the tool was not found or is unusable.
    """
    if tool is None or not tool.is_available() or tool.path is None:
        hint = INSTALL_HINTS.get(tool_name, "")
        detail = f" ({tool.status_message})" if tool and tool.status_message else ""
        raise ProcessSpawnError(
            f"Required tool not available: {tool_name}{detail}. {hint}".rstrip()
        )

    return tool.path


__all__ = [
    "ToolInfo",
    "ToolRegistry",
    "ToolStatus",
    "available_path",
    "detect_all_tools",
    "detect_tool",
    "find_tool",
    "get_tool_registry",
    "parse_version_string",
    "refresh_tool_registry",
    "require_tool",
]
