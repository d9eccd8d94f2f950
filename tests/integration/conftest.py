"""Integration test fixtures that run the real ffmpeg and ffprobe.

This module provides pytest fixtures for:
- Tool and encoder availability detection
- Test media generation using ffmpeg's lavfi sources
"""

from __future__ import annotations

import shutil
import subprocess  # nosec B404 - generating test media
from collections.abc import Callable
from pathlib import Path

import pytest

REQUIRED_ENCODERS = ("libx264", "aac")


def _tool_available(name: str) -> bool:
    """Check if an external tool is available in PATH."""
    return shutil.which(name) is not None


@pytest.fixture(scope="session")
def ffmpeg_tools() -> str:
    """Path to ffmpeg; skips when ffmpeg, ffprobe or needed encoders are missing."""
    if not (_tool_available("ffmpeg") and _tool_available("ffprobe")):
        pytest.skip("ffmpeg and ffprobe are required")

    ffmpeg = shutil.which("ffmpeg")
    result = subprocess.run(  # nosec B603
        [ffmpeg, "-hide_banner", "-encoders"],
        capture_output=True,
        text=True,
        check=False,
    )
    missing = [enc for enc in REQUIRED_ENCODERS if f" {enc} " not in result.stdout]
    if missing:
        pytest.skip(f"ffmpeg lacks encoders: {', '.join(missing)}")
    return ffmpeg


@pytest.fixture
def generate_clip(ffmpeg_tools: str, temp_dir: Path) -> Callable[..., Path]:
    """Factory that renders a synthetic clip with ffmpeg.

    Args:
        name: Output file name inside the temp directory.
        duration: Clip length in seconds.
        audio: Include a sine-wave audio track.
        size: Frame size as WIDTHxHEIGHT.
    """

    def _generate(
        name: str = "source.mkv",
        duration: float = 10.0,
        audio: bool = True,
        size: str = "1280x720",
    ) -> Path:
        output = temp_dir / name
        cmd = [
            ffmpeg_tools,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-f",
            "lavfi",
            "-i",
            f"testsrc=duration={duration}:size={size}:rate=30",
        ]
        if audio:
            cmd += ["-f", "lavfi", "-i", f"sine=frequency=440:duration={duration}"]
        cmd += ["-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p"]
        cmd += ["-c:a", "aac"] if audio else ["-an"]
        cmd.append(str(output))
        subprocess.run(cmd, check=True, capture_output=True)  # nosec B603
        return output

    return _generate
