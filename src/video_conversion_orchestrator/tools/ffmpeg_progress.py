"""FFmpeg progress parsing.

FFmpeg writes a stats line to stderr roughly once per ``-stats_period``:

    frame=  500 fps= 30 q=25.0 size=   10000kB time=00:00:16.67 bitrate=4914.3kbits/s speed=1.00x

Audio-only outputs omit ``frame=`` and ``fps=``. This module turns those
lines into FFmpegProgress records and wraps them into the
ConversionProgress events delivered to progress callbacks.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

_FRAME_RE = re.compile(r"frame=\s*(\d+)")
_FPS_RE = re.compile(r"fps=\s*([\d.]+)")
_SIZE_RE = re.compile(r"size=\s*(\d+)\s*([kKmM]i?B)")
_TIME_RE = re.compile(r"time=\s*(-?)(\d+):(\d{2}):(\d{2})(?:\.(\d+))?")
_BITRATE_RE = re.compile(r"bitrate=\s*(\S+)")
_SPEED_RE = re.compile(r"speed=\s*(\S+)")

_SIZE_UNITS = {"k": 1024, "m": 1024 * 1024}


@dataclass(frozen=True)
class FFmpegProgress:
    """One stats update parsed from ffmpeg stderr."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    total_size: int | None = None
    out_time_us: int | None = None
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        """Processed media time in seconds."""
        if self.out_time_us is None:
            return None
        return self.out_time_us / 1_000_000

    @property
    def out_time(self) -> timedelta:
        """Processed media time (zero when unknown)."""
        return timedelta(microseconds=self.out_time_us or 0)

    def get_percent(self, duration_seconds: float | None) -> float:
        """Completion percentage against a total duration, capped at 100."""
        if not duration_seconds or duration_seconds <= 0:
            return 0.0
        if self.out_time_seconds is None:
            return 0.0
        return min(100.0, self.out_time_seconds / duration_seconds * 100.0)


@dataclass(frozen=True)
class ConversionProgress:
    """Progress event delivered to callbacks while an operation runs.

    Attributes:
        processed: Media time processed so far.
        total: Expected total media time, when the input duration is known.
        stats: The raw stats record this event was built from.
    """

    processed: timedelta
    total: timedelta | None
    stats: FFmpegProgress

    @property
    def percent(self) -> float:
        if self.total is None:
            return 0.0
        return self.stats.get_percent(self.total.total_seconds())


ProgressCallback = Callable[[ConversionProgress], None]


def _na(value: str) -> str | None:
    return None if value.upper() == "N/A" else value


def _parse_time_us(line: str) -> int | None:
    match = _TIME_RE.search(line)
    if not match:
        return None
    sign, hours, minutes, seconds, fraction = match.groups()
    if sign:
        # ffmpeg prints negative times before the first packet is muxed
        return 0
    fraction = (fraction or "0")[:6].ljust(6, "0")
    total_seconds = int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    return total_seconds * 1_000_000 + int(fraction)


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse an ffmpeg stderr stats line.

    Args:
        line: One line of ffmpeg stderr output.

    Returns:
        FFmpegProgress, or None if the line is not a stats line.
    """
    out_time_us = _parse_time_us(line)
    if out_time_us is None or ("size=" not in line and "frame=" not in line):
        return None

    frame_match = _FRAME_RE.search(line)
    fps_match = _FPS_RE.search(line)
    bitrate_match = _BITRATE_RE.search(line)
    speed_match = _SPEED_RE.search(line)

    total_size = None
    size_match = _SIZE_RE.search(line)
    if size_match:
        unit = size_match.group(2)[0].lower()
        total_size = int(size_match.group(1)) * _SIZE_UNITS[unit]

    return FFmpegProgress(
        frame=int(frame_match.group(1)) if frame_match else None,
        fps=float(fps_match.group(1)) if fps_match else None,
        bitrate=_na(bitrate_match.group(1)) if bitrate_match else None,
        total_size=total_size,
        out_time_us=out_time_us,
        speed=_na(speed_match.group(1)) if speed_match else None,
    )
