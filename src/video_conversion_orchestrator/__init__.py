"""Video Conversion Orchestrator.

Inspect media files with ffprobe and drive ffmpeg conversions, stream
extraction, audio muxing, snapshots and concatenation through a
per-file handle.

Example:
    >>> from video_conversion_orchestrator import MediaHandle, VideoType
    >>> with MediaHandle("clip.mkv") as clip:
    ...     mp4 = clip.convert_to(VideoType.MP4)
"""

from video_conversion_orchestrator.errors import (
    BusyError,
    ConversionCancelledError,
    ConversionFailedError,
    MediaNotFoundError,
    MediaOrchestratorError,
    ProbeError,
    ProcessSpawnError,
    UnsupportedOperationError,
)
from video_conversion_orchestrator.executor import ConversionEngine, EngineState
from video_conversion_orchestrator.handle import MediaHandle
from video_conversion_orchestrator.media import (
    AudioQuality,
    Dimensions,
    MediaDescriptor,
    MediaMetadata,
    Speed,
    VideoSize,
    VideoType,
)
from video_conversion_orchestrator.tools.ffmpeg_progress import ConversionProgress

__version__ = "0.1.0"

__all__ = [
    "AudioQuality",
    "BusyError",
    "ConversionCancelledError",
    "ConversionEngine",
    "ConversionFailedError",
    "ConversionProgress",
    "Dimensions",
    "EngineState",
    "MediaDescriptor",
    "MediaHandle",
    "MediaMetadata",
    "MediaNotFoundError",
    "MediaOrchestratorError",
    "ProbeError",
    "ProcessSpawnError",
    "Speed",
    "UnsupportedOperationError",
    "VideoSize",
    "VideoType",
]
