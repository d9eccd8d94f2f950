"""Shared test fixtures for the conversion orchestrator."""

import json
import os
import shutil
import stat
import tempfile
from collections.abc import Callable, Sequence
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from video_conversion_orchestrator.config import EngineConfig, clear_config_cache
from video_conversion_orchestrator.executor import ConversionEngine
from video_conversion_orchestrator.media import MediaDescriptor, MediaMetadata
from video_conversion_orchestrator.tools import refresh_tool_registry
from video_conversion_orchestrator.tools.ffmpeg_builder import FFmpegCommandBuilder

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Typical ffmpeg stats line; {t} is the processed time
STATS_LINE = (
    "frame=  {frame} fps= 30 q=28.0 size=     256kB time={t} "
    "bitrate=2097.2kbits/s speed=1.01x"
)


def load_ffprobe_fixture(name: str) -> dict:
    """Load an ffprobe JSON fixture by name.

    Args:
        name: Name of the fixture file (without .json extension).

    Returns:
        Parsed JSON data from the fixture.
    """
    fixture_path = FIXTURES_DIR / "ffprobe" / f"{name}.json"
    return json.loads(fixture_path.read_text())


def _stats_lines(seconds: Sequence[int]) -> list[str]:
    return [
        STATS_LINE.format(frame=s * 30, t=f"00:00:{s:02d}.00") for s in seconds
    ]


@pytest.fixture
def stats_lines() -> Callable[[Sequence[int]], list[str]]:
    """Build one ffmpeg stats line per processed second."""
    return _stats_lines


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir: Path):
    """Keep user configuration and cached tool detection out of every test.

    Points VCO_CONFIG_PATH at a file that does not exist, removes other
    VCO_* variables, and resets the config and tool registry caches.
    """
    env = {k: v for k, v in os.environ.items() if not k.startswith("VCO_")}
    env["VCO_CONFIG_PATH"] = str(temp_dir / "no-such-config.toml")
    clear_config_cache()
    refresh_tool_registry()
    with patch.dict(os.environ, env, clear=True):
        yield
    clear_config_cache()
    refresh_tool_registry()


@pytest.fixture
def engine_config() -> EngineConfig:
    """Engine settings with short timeouts for tests."""
    return EngineConfig(
        stop_timeout=2.0, reader_join_timeout=2.0, callback_drain_timeout=2.0
    )


@pytest.fixture
def fake_ffmpeg(temp_dir: Path) -> Callable[..., Path]:
    """Factory for executable scripts that stand in for ffmpeg.

    Called with ``-version`` the script reports itself as ffmpeg 6.1, so it
    can go through tool detection. Otherwise it writes ``stderr_lines`` to
    stderr, creates its last argument (the output path) when ``touch_output``
    is set, then either sleeps (``block=True``, for stop/busy tests) or
    exits with ``exit_code``.
    """
    counter = iter(range(1000))

    def _make(
        stderr_lines: Sequence[str] = (),
        exit_code: int = 0,
        touch_output: bool = True,
        block: bool = False,
    ) -> Path:
        script = temp_dir / f"fake-ffmpeg-{next(counter)}"
        body = [
            "#!/bin/sh",
            'if [ "$1" = "-version" ]; then',
            '    echo "ffmpeg version 6.1-fake"; exit 0',
            "fi",
        ]
        for line in stderr_lines:
            quoted = line.replace("'", "'\\''")
            body.append(f"printf '%s\\n' '{quoted}' >&2")
        if touch_output:
            body.append('for last; do :; done; : > "$last"')
        if block:
            body.append("exec sleep 30")
        body.append(f"exit {exit_code}")
        script.write_text("\n".join(body) + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def make_engine(engine_config: EngineConfig) -> Callable[[Path], ConversionEngine]:
    """Factory for engines that run a given ffmpeg executable."""
    engines: list[ConversionEngine] = []

    def _make(ffmpeg_path: Path) -> ConversionEngine:
        builder = FFmpegCommandBuilder(ffmpeg_path=ffmpeg_path, version=(6, 1))
        engine = ConversionEngine(builder=builder, config=engine_config)
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        engine.close()


@pytest.fixture
def make_descriptor(temp_dir: Path) -> Callable[..., MediaDescriptor]:
    """Factory for descriptors backed by an (empty) file in temp_dir."""

    def _make(
        name: str = "clip.mkv",
        duration: float = 10.0,
        audio_format: str = "aac",
        video_format: str = "h264",
        width: int = 1280,
        height: int = 720,
    ) -> MediaDescriptor:
        path = temp_dir / name
        path.touch()
        descriptor = MediaDescriptor(path)
        descriptor.apply(
            MediaMetadata(
                duration=timedelta(seconds=duration),
                audio_format=audio_format,
                video_format=video_format,
                ratio="16:9",
                frame_rate=30.0,
                width=width,
                height=height,
                size=1.5,
            )
        )
        return descriptor

    return _make


@pytest.fixture
def source_file(temp_dir: Path) -> Path:
    """An existing (empty) source media file."""
    path = temp_dir / "clip.mkv"
    path.touch()
    return path


@pytest.fixture
def simple_report() -> dict:
    """ffprobe report for a 10s 1280x720 H.264/AAC file."""
    return load_ffprobe_fixture("simple_h264_aac")


@pytest.fixture
def video_only_report() -> dict:
    """ffprobe report for a file without an audio stream."""
    return load_ffprobe_fixture("video_only")


@pytest.fixture
def missing_fields_report() -> dict:
    """ffprobe report with N/A and missing fields."""
    return load_ffprobe_fixture("missing_fields")
