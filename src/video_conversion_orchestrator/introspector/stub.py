"""Stub implementation of MetadataProbe for development and testing."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from video_conversion_orchestrator.media.models import MediaMetadata

# Extensions treated as audio-only by the stub
AUDIO_EXTENSIONS = frozenset({".aac", ".flac", ".m4a", ".mp3", ".ogg", ".opus", ".wav"})

# Codec names reported for known containers
VIDEO_CODECS = {
    ".mp4": "h264",
    ".m4v": "h264",
    ".mkv": "h264",
    ".mov": "h264",
    ".ts": "h264",
    ".webm": "vp8",
    ".ogv": "theora",
    ".avi": "mpeg4",
}

AUDIO_CODECS = {
    ".webm": "vorbis",
    ".ogv": "vorbis",
    ".ogg": "vorbis",
    ".mp3": "mp3",
    ".flac": "flac",
    ".wav": "pcm_s16le",
    ".opus": "opus",
}


class StubProbe:
    """Stub implementation that returns placeholder metadata.

    Without explicit metadata, fields are inferred from the file extension.
    Every probed path is recorded in ``calls`` so tests can assert how
    often (and on what) probing happened.
    """

    def __init__(self, metadata: MediaMetadata | None = None) -> None:
        self._metadata = metadata
        self.calls: list[Path] = []

    def probe(self, path: Path) -> MediaMetadata:
        path = Path(path)
        self.calls.append(path)
        if self._metadata is not None:
            return self._metadata
        return self._infer(path)

    @staticmethod
    def _infer(path: Path) -> MediaMetadata:
        ext = path.suffix.lower()
        size = round(path.stat().st_size / (1024 * 1024), 2) if path.exists() else 0.0
        if ext in AUDIO_EXTENSIONS:
            return MediaMetadata(
                duration=timedelta(seconds=10),
                audio_format=AUDIO_CODECS.get(ext, "aac"),
                size=size,
            )
        return MediaMetadata(
            duration=timedelta(seconds=10),
            audio_format=AUDIO_CODECS.get(ext, "aac"),
            video_format=VIDEO_CODECS.get(ext, "h264"),
            ratio="16:9",
            frame_rate=30.0,
            width=1280,
            height=720,
            size=size,
        )
