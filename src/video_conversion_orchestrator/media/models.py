"""Media descriptor data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from video_conversion_orchestrator.executor.engine import ConversionEngine


@dataclass(frozen=True)
class MediaMetadata:
    """Technical metadata parsed from one probe report.

    Fields that the report does not contain keep their zero/empty defaults.
    """

    duration: timedelta = timedelta(0)
    audio_format: str = ""
    video_format: str = ""
    ratio: str = ""
    frame_rate: float = 0.0
    width: int = 0
    height: int = 0
    size: float = 0.0
    """File size in megabytes."""

    @property
    def has_video(self) -> bool:
        return bool(self.video_format)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_format)


class MediaDescriptor:
    """One media file and its last-known probed attributes.

    ``path`` is the identity of the descriptor and is read-only. The
    metadata fields are written by the probe; ``running_operation`` is
    managed by the owning MediaHandle and references the engine while an
    operation is in flight.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self.duration: timedelta = timedelta(0)
        self.audio_format: str = ""
        self.video_format: str = ""
        self.ratio: str = ""
        self.frame_rate: float = 0.0
        self.width: int = 0
        self.height: int = 0
        self.size: float = 0.0
        self.running_operation: ConversionEngine | None = None

    def __repr__(self) -> str:
        return (
            f"MediaDescriptor(path={str(self._path)!r}, duration={self.duration}, "
            f"video_format={self.video_format!r}, audio_format={self.audio_format!r}, "
            f"resolution={self.width}x{self.height})"
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def extension(self) -> str:
        return self._path.suffix

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_format)

    @property
    def has_video(self) -> bool:
        return bool(self.video_format)

    def apply(self, metadata: MediaMetadata) -> None:
        """Copy probed metadata onto this descriptor."""
        self.duration = metadata.duration
        self.audio_format = metadata.audio_format
        self.video_format = metadata.video_format
        self.ratio = metadata.ratio
        self.frame_rate = metadata.frame_rate
        self.width = metadata.width
        self.height = metadata.height
        self.size = metadata.size

    def describe(self) -> str:
        """Multi-line human-readable summary of the file and its metadata."""
        resolved = self._path.resolve()
        lines = [
            f"Video Path : {resolved}",
            f"Video Root : {resolved.parent}",
            f"Video Name : {self._path.name}",
            f"Video Extension : {self.extension}",
            f"Video Duration : {self.duration}",
            f"Audio Format : {self.audio_format}",
            f"Video Format : {self.video_format}",
            f"Aspect Ratio : {self.ratio}",
            f"Framerate : {self.frame_rate:g}fps",
            f"Resolution : {self.width}x{self.height}",
            f"Size : {self.size:g} MB",
        ]
        return "\n".join(lines)
