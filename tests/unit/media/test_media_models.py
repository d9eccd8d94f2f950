"""Unit tests for media/models.py."""

from datetime import timedelta
from pathlib import Path

import pytest

from video_conversion_orchestrator.media import MediaDescriptor, MediaMetadata


class TestMediaDescriptor:
    """Tests for MediaDescriptor."""

    def test_defaults(self) -> None:
        descriptor = MediaDescriptor("clip.mkv")
        assert descriptor.path == Path("clip.mkv")
        assert descriptor.extension == ".mkv"
        assert descriptor.duration == timedelta(0)
        assert descriptor.width == 0
        assert descriptor.frame_rate == 0.0
        assert not descriptor.has_audio
        assert not descriptor.has_video
        assert descriptor.running_operation is None

    def test_path_is_read_only(self) -> None:
        descriptor = MediaDescriptor("clip.mkv")
        with pytest.raises(AttributeError):
            descriptor.path = Path("other.mkv")

    def test_apply_copies_metadata(self) -> None:
        descriptor = MediaDescriptor("clip.mkv")
        descriptor.apply(
            MediaMetadata(
                duration=timedelta(seconds=10),
                audio_format="aac",
                video_format="h264",
                ratio="16:9",
                frame_rate=29.97,
                width=1280,
                height=720,
                size=12.5,
            )
        )
        assert descriptor.duration == timedelta(seconds=10)
        assert descriptor.video_format == "h264"
        assert descriptor.has_audio
        assert (descriptor.width, descriptor.height) == (1280, 720)
        assert descriptor.size == 12.5

    def test_describe(self, make_descriptor) -> None:
        descriptor = make_descriptor("clip.mkv")
        text = descriptor.describe()

        assert f"Video Path : {descriptor.path.resolve()}" in text
        assert "Video Name : clip.mkv" in text
        assert "Video Extension : .mkv" in text
        assert "Video Duration : 0:00:10" in text
        assert "Framerate : 30fps" in text
        assert "Resolution : 1280x720" in text
        assert "Size : 1.5 MB" in text
