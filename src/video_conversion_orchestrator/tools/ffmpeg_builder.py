"""Version-aware FFmpeg command builder.

This module owns the argument grammar for every engine operation. Option
enums map to argument fragments through fixed tables; each table is
checked against its enum when the module is imported, so a new enum
member without a mapping fails loudly instead of falling through.

Example:
    >>> from video_conversion_orchestrator.tools.ffmpeg_builder import get_ffmpeg_builder
    >>> builder = get_ffmpeg_builder()
    >>> cmd = builder.extract_audio_command(Path("in.mkv"), Path("out.m4a"))
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path

from video_conversion_orchestrator.errors import UnsupportedOperationError
from video_conversion_orchestrator.media.models import MediaDescriptor
from video_conversion_orchestrator.media.options import (
    AudioQuality,
    Dimensions,
    Speed,
    VideoSize,
    VideoType,
)

# -stats_period was added in FFmpeg 4.3
STATS_PERIOD_MIN_VERSION = (4, 3)

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".bmp"})
DEFAULT_SNAPSHOT_EXTENSION = ".png"

SPEED_PRESETS: dict[Speed, str] = {
    Speed.VERY_SLOW: "veryslow",
    Speed.SLOWER: "slower",
    Speed.SLOW: "slow",
    Speed.MEDIUM: "medium",
    Speed.FAST: "fast",
    Speed.FASTER: "faster",
    Speed.VERY_FAST: "veryfast",
    Speed.SUPER_FAST: "superfast",
    Speed.ULTRA_FAST: "ultrafast",
}

# -2 keeps the aspect ratio with an even width (required by libx264)
VIDEO_SIZE_ARGS: dict[VideoSize, tuple[str, ...]] = {
    VideoSize.ORIGINAL: (),
    VideoSize.FULL_HD: ("-vf", "scale=-2:1080"),
    VideoSize.HD: ("-vf", "scale=-2:720"),
    VideoSize.ED: ("-vf", "scale=-2:480"),
    VideoSize.LD: ("-vf", "scale=-2:360"),
}

AUDIO_BITRATES: dict[AudioQuality, str] = {
    AudioQuality.ULTRA: "384k",
    AudioQuality.VERY_HIGH: "256k",
    AudioQuality.GOOD: "192k",
    AudioQuality.NORMAL: "128k",
    AudioQuality.BELOW_NORMAL: "96k",
    AudioQuality.LOW: "64k",
}


@dataclass(frozen=True)
class ConvertOptions:
    """Resolved knobs for one conversion."""

    speed: Speed
    size: VideoSize
    audio_quality: AudioQuality
    threads: int


def _thread_args(options: ConvertOptions) -> list[str]:
    return ["-threads", str(options.threads)]


def _mp4_args(options: ConvertOptions) -> list[str]:
    return [
        *_thread_args(options),
        "-c:v",
        "libx264",
        "-preset",
        SPEED_PRESETS[options.speed],
        *VIDEO_SIZE_ARGS[options.size],
        "-c:a",
        "aac",
        "-b:a",
        AUDIO_BITRATES[options.audio_quality],
        "-movflags",
        "+faststart",
    ]


def _ogv_args(options: ConvertOptions) -> list[str]:
    return [
        *_thread_args(options),
        "-c:v",
        "libtheora",
        "-qscale:v",
        "7",
        *VIDEO_SIZE_ARGS[options.size],
        "-c:a",
        "libvorbis",
        "-b:a",
        AUDIO_BITRATES[options.audio_quality],
    ]


def _webm_args(options: ConvertOptions) -> list[str]:
    return [
        *_thread_args(options),
        "-c:v",
        "libvpx",
        "-quality",
        "good",
        "-cpu-used",
        "0",
        "-b:v",
        "1k",
        "-qmin",
        "10",
        "-qmax",
        "42",
        "-maxrate",
        "500k",
        "-bufsize",
        "1000k",
        *VIDEO_SIZE_ARGS[options.size],
        "-c:a",
        "libvorbis",
        "-b:a",
        AUDIO_BITRATES[options.audio_quality],
    ]


def _ts_args(options: ConvertOptions) -> list[str]:
    # Remux only; the quality knobs do not apply to stream copy
    return ["-c", "copy", "-bsf:v", "h264_mp4toannexb", "-f", "mpegts"]


CONVERT_ARGS: dict[VideoType, Callable[[ConvertOptions], list[str]]] = {
    VideoType.MP4: _mp4_args,
    VideoType.OGV: _ogv_args,
    VideoType.WEBM: _webm_args,
    VideoType.TS: _ts_args,
}


def _require_total(table: Mapping[Enum, object], enum_cls: type[Enum]) -> None:
    missing = [m.name for m in enum_cls if m not in table]
    if missing:
        raise TypeError(f"No argument mapping for {enum_cls.__name__}: {missing}")


for _table, _enum_cls in (
    (SPEED_PRESETS, Speed),
    (VIDEO_SIZE_ARGS, VideoSize),
    (AUDIO_BITRATES, AudioQuality),
    (CONVERT_ARGS, VideoType),
):
    _require_total(_table, _enum_cls)


def format_timestamp(value: timedelta) -> str:
    """Format a timedelta as ffmpeg's HH:MM:SS.mmm."""
    total_ms = int(round(value.total_seconds() * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def snapshot_output_path(path: Path) -> Path:
    """Return ``path`` with an image extension (``.png`` if it has none)."""
    if path.suffix.lower() in IMAGE_EXTENSIONS:
        return path
    return path.with_suffix(DEFAULT_SNAPSHOT_EXTENSION)


def default_capture_time(descriptor: MediaDescriptor) -> timedelta:
    """Default snapshot instant: one third into the file, or the start."""
    if descriptor.duration > timedelta(0):
        return descriptor.duration / 3
    return timedelta(0)


@dataclass
class FFmpegCommandBuilder:
    """Version-aware FFmpeg command builder.

    Attributes:
        ffmpeg_path: Path to the ffmpeg executable.
        version: Detected ffmpeg version tuple, if known.
        stats_period: Progress update interval in seconds.
    """

    ffmpeg_path: Path
    version: tuple[int, ...] | None = None
    stats_period: int = 1

    @property
    def supports_stats_period(self) -> bool:
        if self.version is None:
            return False
        return self.version >= STATS_PERIOD_MIN_VERSION

    def base_command(self) -> list[str]:
        """Get base ffmpeg command with standard flags.

        Returns:
            Command list starting with ffmpeg path, common flags and
            progress reporting flags.
        """
        cmd = [str(self.ffmpeg_path), "-hide_banner", "-y", "-nostdin"]
        return self.with_progress(cmd)

    def with_progress(self, cmd: list[str]) -> list[str]:
        """Add progress reporting flags (version-aware).

        Uses -stats_period for FFmpeg 4.3+, falls back to -stats for older.
        """
        if self.supports_stats_period:
            return cmd + ["-stats", "-stats_period", str(self.stats_period)]
        return cmd + ["-stats"]

    def convert_command(
        self,
        source: Path,
        output: Path,
        video_type: VideoType,
        speed: Speed,
        size: VideoSize,
        audio_quality: AudioQuality,
        multithread: bool,
    ) -> list[str]:
        """Build a full conversion command for ``video_type``."""
        options = ConvertOptions(
            speed=speed,
            size=size,
            audio_quality=audio_quality,
            threads=(os.cpu_count() or 1) if multithread else 1,
        )
        cmd = self.base_command()
        cmd.extend(["-i", str(source)])
        cmd.extend(CONVERT_ARGS[video_type](options))
        cmd.append(str(output))
        return cmd

    def extract_video_command(self, source: Path, output: Path) -> list[str]:
        """Copy the first video stream, dropping audio."""
        cmd = self.base_command()
        cmd.extend(["-i", str(source), "-map", "0:v:0", "-an", "-c:v", "copy"])
        cmd.append(str(output))
        return cmd

    def extract_audio_command(self, source: Path, output: Path) -> list[str]:
        """Extract the first audio stream, dropping video.

        The explicit map makes ffmpeg fail when there is no audio stream.
        """
        cmd = self.base_command()
        cmd.extend(["-i", str(source), "-map", "0:a:0", "-vn"])
        cmd.append(str(output))
        return cmd

    def add_audio_command(self, video: Path, audio: Path, output: Path) -> list[str]:
        """Mux the first audio stream of ``audio`` onto the video of ``video``."""
        cmd = self.base_command()
        cmd.extend(["-i", str(video), "-i", str(audio)])
        cmd.extend(["-map", "0:v:0", "-map", "1:a:0"])
        cmd.extend(["-c:v", "copy", "-c:a", "aac", "-shortest"])
        cmd.append(str(output))
        return cmd

    def snapshot_command(
        self,
        source: Path,
        output: Path,
        capture_time: timedelta,
        size: Dimensions | None = None,
    ) -> list[str]:
        """Capture a single frame at ``capture_time``."""
        cmd = self.base_command()
        # Seek before -i for fast input seeking
        cmd.extend(["-ss", format_timestamp(capture_time), "-i", str(source)])
        cmd.extend(["-frames:v", "1"])
        if size is not None:
            cmd.extend(["-s", str(size)])
        cmd.append(str(output))
        return cmd

    def join_command(
        self, output: Path, descriptors: Sequence[MediaDescriptor]
    ) -> list[str]:
        """Concatenate inputs, in the given order, into one output.

        Every video input is scaled to the first input's resolution. Audio
        is concatenated only when every input has an audio stream.

        Raises:
            UnsupportedOperationError: If no inputs are given.
        """
        if not descriptors:
            raise UnsupportedOperationError("join requires at least one input")

        cmd = self.base_command()
        for descriptor in descriptors:
            cmd.extend(["-i", str(descriptor.path)])

        first = descriptors[0]
        with_audio = all(d.has_audio for d in descriptors)
        scale = (
            f"scale={first.width}:{first.height},"
            if first.width > 0 and first.height > 0
            else ""
        )

        filters = [f"[{i}:v:0]{scale}setsar=1[v{i}]" for i in range(len(descriptors))]
        concat_inputs = "".join(
            f"[v{i}][{i}:a:0]" if with_audio else f"[v{i}]"
            for i in range(len(descriptors))
        )
        concat_outputs = "[outv][outa]" if with_audio else "[outv]"
        filters.append(
            f"{concat_inputs}concat=n={len(descriptors)}:v=1:a={int(with_audio)}"
            f"{concat_outputs}"
        )

        cmd.extend(["-filter_complex", ";".join(filters), "-map", "[outv]"])
        if with_audio:
            cmd.extend(["-map", "[outa]"])
        cmd.append(str(output))
        return cmd


def get_ffmpeg_builder(
    ffmpeg_path: Path | None = None, stats_period: int | None = None
) -> FFmpegCommandBuilder:
    """Get FFmpegCommandBuilder for a configured or detected ffmpeg.

    Args:
        ffmpeg_path: Explicit ffmpeg executable. It is detected on its own
            (version included); if None, the cached tool registry is used.
        stats_period: Progress interval in seconds. Defaults to the
            configured engine section.

    Returns:
        FFmpegCommandBuilder configured for the resolved ffmpeg.

    Raises:
        ProcessSpawnError: If FFmpeg is not available.
    """
    from video_conversion_orchestrator.config import get_config
    from video_conversion_orchestrator.tools import (
        available_path,
        detect_tool,
        get_tool_registry,
    )

    if ffmpeg_path is not None:
        tool = detect_tool("ffmpeg", ffmpeg_path)
    else:
        tool = get_tool_registry().ffmpeg
    if stats_period is None:
        stats_period = get_config().engine.stats_period

    return FFmpegCommandBuilder(
        ffmpeg_path=available_path(tool, "ffmpeg"),
        version=tool.version_tuple,
        stats_period=stats_period,
    )
