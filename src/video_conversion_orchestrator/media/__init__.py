"""Media data models and conversion options."""

from video_conversion_orchestrator.media.models import MediaDescriptor, MediaMetadata
from video_conversion_orchestrator.media.options import (
    AudioQuality,
    Dimensions,
    Speed,
    VideoSize,
    VideoType,
    coerce_dimensions,
    coerce_option,
    coerce_timestamp,
)

__all__ = [
    "AudioQuality",
    "Dimensions",
    "MediaDescriptor",
    "MediaMetadata",
    "Speed",
    "VideoSize",
    "VideoType",
    "coerce_dimensions",
    "coerce_option",
    "coerce_timestamp",
]
