"""Closed option sets for conversion operations.

Every enum here is a closed set: the argument builder keeps one mapping
table per enum and checks each table for totality at import time.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import NamedTuple, TypeVar

from video_conversion_orchestrator.errors import UnsupportedOperationError


class VideoType(Enum):
    """Output container/codec family for conversions."""

    MP4 = "mp4"
    OGV = "ogv"
    WEBM = "webm"
    TS = "ts"

    @property
    def extension(self) -> str:
        """File extension (with leading dot) for this output type."""
        return f".{self.value}"


class Speed(Enum):
    """Encoder speed preset (slowest compresses best)."""

    VERY_SLOW = "very_slow"
    SLOWER = "slower"
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"
    FASTER = "faster"
    VERY_FAST = "very_fast"
    SUPER_FAST = "super_fast"
    ULTRA_FAST = "ultra_fast"


class VideoSize(Enum):
    """Target output height; ORIGINAL keeps the source dimensions."""

    ORIGINAL = "original"
    FULL_HD = "1080p"
    HD = "720p"
    ED = "480p"
    LD = "360p"


class AudioQuality(Enum):
    """Target audio bitrate class."""

    ULTRA = "ultra"
    VERY_HIGH = "very_high"
    GOOD = "good"
    NORMAL = "normal"
    BELOW_NORMAL = "below_normal"
    LOW = "low"


class Dimensions(NamedTuple):
    """Pixel dimensions for snapshot output."""

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


_E = TypeVar("_E", bound=Enum)


def coerce_option(enum_cls: type[_E], value: object, label: str) -> _E:
    """Coerce a member, value or name into a member of ``enum_cls``.

    Accepts the member itself, its value (``"mp4"``) or its name
    (``"MP4"``, case-insensitive).

    Args:
        enum_cls: Target enum class.
        value: Value supplied by the caller.
        label: Human-readable option name for error messages.

    Returns:
        The matching enum member.

    Raises:
        UnsupportedOperationError: If the value is not recognized.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        text = value.strip()
        for member in enum_cls:
            if text.lower() == str(member.value).lower():
                return member
            if text.upper() == member.name:
                return member
    valid = ", ".join(str(m.value) for m in enum_cls)
    raise UnsupportedOperationError(
        f"Unsupported {label}: {value!r} (expected one of: {valid})"
    )


def coerce_dimensions(value: object) -> Dimensions | None:
    """Coerce a (width, height) pair into Dimensions.

    Raises:
        UnsupportedOperationError: If the value is not a positive pair.
    """
    if value is None:
        return None
    try:
        width, height = value  # type: ignore[misc]
        dims = Dimensions(int(width), int(height))
    except (TypeError, ValueError) as e:
        raise UnsupportedOperationError(f"Invalid snapshot size: {value!r}") from e
    if dims.width <= 0 or dims.height <= 0:
        raise UnsupportedOperationError(f"Snapshot size must be positive: {dims}")
    return dims


def coerce_timestamp(value: timedelta | float | int | None) -> timedelta | None:
    """Coerce seconds or a timedelta into a non-negative timedelta."""
    if value is None:
        return None
    if not isinstance(value, timedelta):
        try:
            value = timedelta(seconds=float(value))
        except (TypeError, ValueError) as e:
            raise UnsupportedOperationError(f"Invalid capture time: {value!r}") from e
    if value < timedelta(0):
        raise UnsupportedOperationError(f"Capture time must not be negative: {value}")
    return value
