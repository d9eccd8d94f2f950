"""Unit tests for tools/ffmpeg_builder.py."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from video_conversion_orchestrator.errors import UnsupportedOperationError
from video_conversion_orchestrator.media import (
    AudioQuality,
    Dimensions,
    Speed,
    VideoSize,
    VideoType,
)
from video_conversion_orchestrator.tools import ffmpeg_builder
from video_conversion_orchestrator.tools.ffmpeg_builder import (
    AUDIO_BITRATES,
    CONVERT_ARGS,
    SPEED_PRESETS,
    VIDEO_SIZE_ARGS,
    FFmpegCommandBuilder,
    default_capture_time,
    format_timestamp,
    snapshot_output_path,
)

SOURCE = Path("/media/in.mkv")
OUTPUT = Path("/media/out.mp4")


@pytest.fixture
def builder() -> FFmpegCommandBuilder:
    return FFmpegCommandBuilder(ffmpeg_path=Path("/usr/bin/ffmpeg"), version=(6, 1))


def _value_after(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


def _convert(
    builder: FFmpegCommandBuilder,
    video_type: VideoType,
    speed: Speed = Speed.SUPER_FAST,
    size: VideoSize = VideoSize.ORIGINAL,
    audio_quality: AudioQuality = AudioQuality.NORMAL,
    multithread: bool = False,
) -> list[str]:
    output = OUTPUT.with_suffix(video_type.extension)
    return builder.convert_command(
        SOURCE, output, video_type, speed, size, audio_quality, multithread
    )


class TestMappingTables:
    """Every enum member has exactly one mapping."""

    @pytest.mark.parametrize(
        ("table", "enum_cls"),
        [
            (SPEED_PRESETS, Speed),
            (VIDEO_SIZE_ARGS, VideoSize),
            (AUDIO_BITRATES, AudioQuality),
            (CONVERT_ARGS, VideoType),
        ],
    )
    def test_tables_are_total(self, table, enum_cls) -> None:
        assert set(table) == set(enum_cls)

    def test_incomplete_table_is_rejected(self) -> None:
        partial = {Speed.FAST: "fast"}
        with pytest.raises(TypeError, match="VERY_SLOW"):
            ffmpeg_builder._require_total(partial, Speed)


class TestBaseCommand:
    """Tests for base command and progress flags."""

    def test_stats_period_on_new_ffmpeg(self, builder: FFmpegCommandBuilder) -> None:
        cmd = builder.base_command()
        assert cmd[:4] == ["/usr/bin/ffmpeg", "-hide_banner", "-y", "-nostdin"]
        assert cmd[4:] == ["-stats", "-stats_period", "1"]

    def test_plain_stats_on_old_ffmpeg(self) -> None:
        builder = FFmpegCommandBuilder(ffmpeg_path=Path("ffmpeg"), version=(4, 2))
        assert builder.base_command()[-1] == "-stats"
        assert "-stats_period" not in builder.base_command()

    def test_plain_stats_on_unknown_version(self) -> None:
        builder = FFmpegCommandBuilder(ffmpeg_path=Path("ffmpeg"))
        assert not builder.supports_stats_period


class TestConvertCommand:
    """Tests for convert_command."""

    def test_mp4(self, builder: FFmpegCommandBuilder) -> None:
        cmd = _convert(
            builder, VideoType.MP4, Speed.SLOW, VideoSize.HD, AudioQuality.GOOD
        )
        assert _value_after(cmd, "-i") == str(SOURCE)
        assert cmd[-1] == str(OUTPUT)
        assert _value_after(cmd, "-c:v") == "libx264"
        assert _value_after(cmd, "-preset") == "slow"
        assert _value_after(cmd, "-vf") == "scale=-2:720"
        assert _value_after(cmd, "-c:a") == "aac"
        assert _value_after(cmd, "-b:a") == "192k"
        assert _value_after(cmd, "-threads") == "1"
        assert _value_after(cmd, "-movflags") == "+faststart"

    def test_original_size_has_no_scale(self, builder: FFmpegCommandBuilder) -> None:
        cmd = _convert(builder, VideoType.MP4)
        assert "-vf" not in cmd
        assert _value_after(cmd, "-preset") == "superfast"

    @patch("video_conversion_orchestrator.tools.ffmpeg_builder.os.cpu_count")
    def test_multithread_uses_cpu_count(
        self, mock_cpu_count, builder: FFmpegCommandBuilder
    ) -> None:
        mock_cpu_count.return_value = 8
        cmd = _convert(
            builder,
            VideoType.WEBM,
            Speed.FAST,
            VideoSize.LD,
            AudioQuality.LOW,
            multithread=True,
        )
        assert _value_after(cmd, "-threads") == "8"
        assert _value_after(cmd, "-c:v") == "libvpx"
        assert _value_after(cmd, "-c:a") == "libvorbis"
        assert _value_after(cmd, "-b:a") == "64k"

    def test_ogv(self, builder: FFmpegCommandBuilder) -> None:
        cmd = _convert(
            builder, VideoType.OGV, Speed.FAST, VideoSize.ED, AudioQuality.ULTRA
        )
        assert _value_after(cmd, "-c:v") == "libtheora"
        assert _value_after(cmd, "-vf") == "scale=-2:480"
        assert _value_after(cmd, "-b:a") == "384k"

    def test_ts_is_a_remux(self, builder: FFmpegCommandBuilder) -> None:
        cmd = _convert(
            builder,
            VideoType.TS,
            Speed.VERY_SLOW,
            VideoSize.FULL_HD,
            AudioQuality.ULTRA,
            multithread=True,
        )
        assert _value_after(cmd, "-c") == "copy"
        assert _value_after(cmd, "-f") == "mpegts"
        assert "-preset" not in cmd
        assert "-vf" not in cmd


class TestStreamCommands:
    """Tests for extract and add-audio commands."""

    def test_extract_video(self, builder: FFmpegCommandBuilder) -> None:
        cmd = builder.extract_video_command(SOURCE, OUTPUT)
        assert cmd[-6:] == ["-map", "0:v:0", "-an", "-c:v", "copy", str(OUTPUT)]

    def test_extract_audio(self, builder: FFmpegCommandBuilder) -> None:
        cmd = builder.extract_audio_command(SOURCE, Path("out.m4a"))
        assert cmd[-4:] == ["-map", "0:a:0", "-vn", "out.m4a"]

    def test_add_audio_has_two_inputs(self, builder: FFmpegCommandBuilder) -> None:
        audio = Path("/media/track.mp3")
        cmd = builder.add_audio_command(SOURCE, audio, OUTPUT)

        inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
        assert inputs == [str(SOURCE), str(audio)]
        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["0:v:0", "1:a:0"]
        assert "-shortest" in cmd
        assert cmd[-1] == str(OUTPUT)


class TestSnapshotCommand:
    """Tests for snapshot_command and its helpers."""

    def test_seeks_before_input(self, builder: FFmpegCommandBuilder) -> None:
        cmd = builder.snapshot_command(
            SOURCE, Path("frame.png"), timedelta(seconds=3.5), Dimensions(320, 180)
        )
        assert cmd.index("-ss") < cmd.index("-i")
        assert _value_after(cmd, "-ss") == "00:00:03.500"
        assert _value_after(cmd, "-frames:v") == "1"
        assert _value_after(cmd, "-s") == "320x180"
        assert cmd[-1] == "frame.png"

    def test_without_size(self, builder: FFmpegCommandBuilder) -> None:
        cmd = builder.snapshot_command(SOURCE, Path("frame.png"), timedelta(0))
        assert "-s" not in cmd

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (timedelta(0), "00:00:00.000"),
            (timedelta(hours=1, minutes=2, seconds=3, milliseconds=45), "01:02:03.045"),
            (timedelta(seconds=10) / 3, "00:00:03.333"),
        ],
    )
    def test_format_timestamp(self, value: timedelta, expected: str) -> None:
        assert format_timestamp(value) == expected

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("frame.png", "frame.png"),
            ("frame.JPG", "frame.JPG"),
            ("frame.dat", "frame.png"),
            ("frame", "frame.png"),
        ],
    )
    def test_snapshot_output_path(self, name: str, expected: str) -> None:
        assert snapshot_output_path(Path(name)) == Path(expected)

    def test_default_capture_time(self, make_descriptor) -> None:
        assert default_capture_time(make_descriptor(duration=9.0)) == timedelta(
            seconds=3
        )
        assert default_capture_time(make_descriptor(duration=0.0)) == timedelta(0)


class TestJoinCommand:
    """Tests for join_command."""

    def test_preserves_input_order(
        self, builder: FFmpegCommandBuilder, make_descriptor
    ) -> None:
        first = make_descriptor("a.mp4")
        second = make_descriptor("b.mp4", width=640, height=360)
        third = make_descriptor("c.mp4")

        cmd = builder.join_command(OUTPUT, [first, second, third])

        inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
        assert inputs == [str(first.path), str(second.path), str(third.path)]
        graph = _value_after(cmd, "-filter_complex")
        assert "[1:v:0]scale=1280:720,setsar=1[v1]" in graph
        assert graph.endswith(
            "[v0][0:a:0][v1][1:a:0][v2][2:a:0]concat=n=3:v=1:a=1[outv][outa]"
        )
        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["[outv]", "[outa]"]
        assert cmd[-1] == str(OUTPUT)

    def test_drops_audio_when_an_input_lacks_it(
        self, builder: FFmpegCommandBuilder, make_descriptor
    ) -> None:
        with_audio = make_descriptor("a.mp4")
        silent = make_descriptor("b.mp4", audio_format="")

        cmd = builder.join_command(OUTPUT, [with_audio, silent])

        graph = _value_after(cmd, "-filter_complex")
        assert graph.endswith("[v0][v1]concat=n=2:v=1:a=0[outv]")
        assert "[outa]" not in cmd

    def test_empty_inputs_raise(self, builder: FFmpegCommandBuilder) -> None:
        with pytest.raises(UnsupportedOperationError):
            builder.join_command(OUTPUT, [])
