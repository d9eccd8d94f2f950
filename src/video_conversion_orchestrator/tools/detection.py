"""External tool detection and version parsing.

This module locates ffmpeg and ffprobe (configured path first, then PATH)
and parses their versions so the argument builder can adapt to the
installed build.
"""

import logging
import re
import shutil
import subprocess  # nosec B404 - subprocess is required for version detection
from datetime import datetime, timezone
from pathlib import Path

from video_conversion_orchestrator.tools.models import (
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)

logger = logging.getLogger(__name__)

# Timeout for version detection commands (seconds)
DETECTION_TIMEOUT = 10


def parse_version_string(version_str: str) -> tuple[int, ...] | None:
    """Parse a version string into a comparable tuple.

    Handles various version formats:
    - "6.1.1" -> (6, 1, 1)
    - "6.1" -> (6, 1)
    - "n6.1.1" -> (6, 1, 1)  (ffmpeg nightlies)
    - "7.0-static" -> (7, 0)  (static builds)

    Args:
        version_str: Version string to parse.

    Returns:
        Tuple of version components, or None if parsing fails.
    """
    if not version_str:
        return None

    # Strip leading 'n' or 'v' prefix
    version_str = version_str.lstrip("nv")

    match = re.match(r"(\d+(?:\.\d+)*)", version_str)
    if not match:
        return None

    return tuple(int(p) for p in match.group(1).split("."))


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path and configured_path.exists():
        return configured_path
    if configured_path:
        logger.warning(
            "Configured %s path does not exist: %s (falling back to PATH)",
            name,
            configured_path,
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def _run_command(
    args: list[str], timeout: int = DETECTION_TIMEOUT
) -> tuple[str, str, int]:
    """Run a command and capture output.

    Args:
        args: Command and arguments.
        timeout: Timeout in seconds.

    Returns:
        Tuple of (stdout, stderr, returncode).
    """
    try:
        result = subprocess.run(  # nosec B603 - tool path comes from detection
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
        return result.stdout, result.stderr, result.returncode
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out: %s", " ".join(args))
        return "", "timeout", -1
    except OSError as e:
        logger.warning("Command failed: %s - %s", " ".join(args), e)
        return "", str(e), -1


def detect_tool(name: str, configured_path: Path | None = None) -> ToolInfo:
    """Detect an ffmpeg-suite tool and its version.

    Args:
        name: Tool name ("ffmpeg" or "ffprobe").
        configured_path: Optional configured path to the tool.

    Returns:
        ToolInfo with path, version and status.
    """
    info = ToolInfo(name=name, detected_at=datetime.now(timezone.utc))

    path = find_tool(name, configured_path)
    if not path:
        info.status = ToolStatus.MISSING
        info.status_message = f"{name} not found in PATH"
        return info

    info.path = path

    stdout, stderr, rc = _run_command([str(path), "-version"])
    if rc != 0:
        info.status = ToolStatus.ERROR
        info.status_message = f"Failed to get {name} version: {stderr.strip()}"
        return info

    # First line: "ffmpeg version 6.1.1 Copyright..."
    version_match = re.search(rf"{re.escape(name)} version (\S+)", stdout)
    if version_match:
        info.version = version_match.group(1)
        info.version_tuple = parse_version_string(info.version)
        if info.version_tuple is None:
            logger.warning(
                "Could not parse %s version '%s' into comparable tuple",
                name,
                info.version,
            )

    info.status = ToolStatus.AVAILABLE
    logger.debug("Detected %s %s at %s", name, info.version or "(unknown)", path)
    return info


def detect_all_tools(
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
) -> ToolRegistry:
    """Detect ffmpeg and ffprobe.

    Args:
        ffmpeg_path: Optional configured path to ffmpeg.
        ffprobe_path: Optional configured path to ffprobe.

    Returns:
        ToolRegistry with both detection results.
    """
    return ToolRegistry(
        ffmpeg=detect_tool("ffmpeg", ffmpeg_path),
        ffprobe=detect_tool("ffprobe", ffprobe_path),
    )
