"""Pure parsing functions for ffprobe JSON reports.

These functions hold no state and never spawn processes, so they can be
tested directly against captured report dictionaries.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from video_conversion_orchestrator.errors import ProbeError
from video_conversion_orchestrator.media.models import MediaMetadata

_BYTES_PER_MB = 1024 * 1024


def parse_number(value: Any) -> float | None:
    """Parse a numeric report value.

    Accepts ints, floats and strings. A decimal comma (``"29,97"``) is
    treated as a decimal point. ``"N/A"``, empty and non-finite values
    yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    else:
        text = str(value).strip()
        if not text or text.upper() == "N/A":
            return None
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_rational(value: Any) -> float | None:
    """Parse a rational like ``"30000/1001"`` (or a plain number).

    Returns None for a zero denominator (ffprobe reports ``"0/0"`` when the
    rate is unknown) or an unparseable value.
    """
    if isinstance(value, str) and "/" in value:
        numerator_text, _, denominator_text = value.partition("/")
        numerator = parse_number(numerator_text)
        denominator = parse_number(denominator_text)
        if numerator is None or not denominator:
            return None
        return numerator / denominator
    return parse_number(value)


def parse_duration(value: Any) -> timedelta | None:
    """Parse a duration in seconds into a timedelta."""
    seconds = parse_number(value)
    if seconds is None or seconds < 0:
        return None
    return timedelta(seconds=seconds)


def parse_aspect_ratio(stream: Mapping[str, Any]) -> str:
    """Get the display aspect ratio of a video stream.

    Uses ``display_aspect_ratio`` when reported; otherwise reduces the
    stream's width:height. Returns an empty string when neither is known.
    """
    ratio = stream.get("display_aspect_ratio")
    if isinstance(ratio, str) and ratio and ratio not in ("0:1", "N/A"):
        return ratio

    width = int(parse_number(stream.get("width")) or 0)
    height = int(parse_number(stream.get("height")) or 0)
    if width <= 0 or height <= 0:
        return ""
    divisor = math.gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def _first_stream(
    streams: list[Mapping[str, Any]], codec_type: str
) -> Mapping[str, Any] | None:
    for stream in streams:
        if stream.get("codec_type") != codec_type:
            continue
        # Cover art is reported as a video stream; it is not playable video
        disposition = stream.get("disposition") or {}
        if codec_type == "video" and disposition.get("attached_pic"):
            continue
        return stream
    return None


def parse_probe_report(data: Mapping[str, Any]) -> MediaMetadata:
    """Build MediaMetadata from an ffprobe ``-show_streams -show_format`` report.

    The first video and first audio stream are used. Fields absent from the
    report keep their defaults.

    Args:
        data: Decoded ffprobe JSON output.

    Returns:
        Parsed metadata.

    Raises:
        ProbeError: If the report contains no video or audio stream.
    """
    streams = [s for s in data.get("streams") or [] if isinstance(s, Mapping)]
    fmt = data.get("format") or {}

    video = _first_stream(streams, "video")
    audio = _first_stream(streams, "audio")
    if video is None and audio is None:
        raise ProbeError("Report contains no video or audio stream")

    duration = parse_duration(fmt.get("duration"))
    if duration is None:
        stream_durations = [
            d for d in (parse_duration(s.get("duration")) for s in streams) if d
        ]
        duration = max(stream_durations, default=timedelta(0))

    size_bytes = parse_number(fmt.get("size")) or 0.0

    frame_rate = 0.0
    width = height = 0
    ratio = ""
    if video is not None:
        rate = parse_rational(video.get("r_frame_rate")) or parse_rational(
            video.get("avg_frame_rate")
        )
        frame_rate = round(rate, 3) if rate else 0.0
        width = int(parse_number(video.get("width")) or 0)
        height = int(parse_number(video.get("height")) or 0)
        ratio = parse_aspect_ratio(video)

    return MediaMetadata(
        duration=duration,
        audio_format=str(audio.get("codec_name") or "") if audio is not None else "",
        video_format=str(video.get("codec_name") or "") if video is not None else "",
        ratio=ratio,
        frame_rate=frame_rate,
        width=width,
        height=height,
        size=round(size_bytes / _BYTES_PER_MB, 2),
    )
