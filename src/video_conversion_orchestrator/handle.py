"""MediaHandle: the per-file facade over probing and conversion.

A handle wraps one existing media file. Construction probes the file
synchronously; each operation then runs on the handle's single engine,
which is created on first use. Operations block until ffmpeg finishes and
either return a result (a new handle, a decoded image, or True) or raise.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

from PIL import Image

from video_conversion_orchestrator.config.loader import get_config, get_temp_directory
from video_conversion_orchestrator.config.models import OrchestratorConfig
from video_conversion_orchestrator.errors import (
    BusyError,
    ConversionCancelledError,
    ConversionFailedError,
    MediaNotFoundError,
    UnsupportedOperationError,
)
from video_conversion_orchestrator.executor.engine import (
    ConversionEngine,
    EngineState,
)
from video_conversion_orchestrator.introspector.ffprobe import FFprobeProbe
from video_conversion_orchestrator.introspector.interface import MetadataProbe
from video_conversion_orchestrator.media.images import ImageLoader, load_image
from video_conversion_orchestrator.media.models import MediaDescriptor
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
from video_conversion_orchestrator.tools.ffmpeg_builder import snapshot_output_path
from video_conversion_orchestrator.tools.ffmpeg_progress import ProgressCallback

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], ConversionEngine]


class MediaHandle:
    """One media file plus at most one in-flight engine operation.

    Attributes:
        descriptor: Probed metadata for the file.
        on_progress: Optional observer attached to each operation for the
            duration of that call only.

    Example:
        with MediaHandle("clip.mkv") as clip:
            clip.on_progress = lambda p: print(f"{p.percent:.0f}%")
            mp4 = clip.convert_to(VideoType.MP4, size=VideoSize.HD)
    """

    def __init__(
        self,
        path: str | Path,
        *,
        probe: MetadataProbe | None = None,
        engine_factory: EngineFactory | None = None,
        image_loader: ImageLoader | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        """Open and probe a media file.

        Args:
            path: Path to an existing media file.
            probe: Metadata probe (default: FFprobeProbe).
            engine_factory: Creates the handle's engine on first use
                (default: ConversionEngine with the configured settings).
            image_loader: Decodes snapshot files (default: Pillow).
            config: Configuration (default: get_config()).

        Raises:
            MediaNotFoundError: If ``path`` is not an existing file.
            ProbeError: If the file cannot be probed.
        """
        path = Path(path)
        if not path.is_file():
            raise MediaNotFoundError(f"Media file not found: {path}")

        self._config = config
        self._probe = probe if probe is not None else FFprobeProbe(
            ffprobe_path=config.tools.ffprobe if config else None,
            timeout=config.probe.timeout if config else None,
        )
        self._engine_factory = engine_factory
        self._image_loader = image_loader or load_image
        self._engine: ConversionEngine | None = None
        self._lock = threading.Lock()
        self._closed = False
        self.on_progress: ProgressCallback | None = None

        self.descriptor = MediaDescriptor(path)
        self.descriptor.apply(self._probe.probe(path))
        logger.debug("Opened %r", self.descriptor)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> MediaHandle:
        """Alternate constructor; same as ``MediaHandle(path, **kwargs)``."""
        return cls(path, **kwargs)

    def __repr__(self) -> str:
        return f"MediaHandle({str(self.path)!r})"

    def __str__(self) -> str:
        return self.descriptor.describe()

    @property
    def path(self) -> Path:
        return self.descriptor.path

    @property
    def extension(self) -> str:
        return self.descriptor.extension

    @property
    def is_running(self) -> bool:
        """True while an operation is in flight. Never creates an engine."""
        engine = self._engine
        return engine is not None and engine.is_running

    @property
    def closed(self) -> bool:
        return self._closed

    # Engine ownership

    def _create_engine(self) -> ConversionEngine:
        if self._engine_factory is not None:
            return self._engine_factory()
        if self._config is None:
            return ConversionEngine(config=get_config().engine)
        # An explicit config overrides the process-wide tool registry
        return ConversionEngine(
            config=self._config.engine, ffmpeg_path=self._config.tools.ffmpeg
        )

    def _acquire_engine(self) -> ConversionEngine:
        """Return the handle's engine, creating it on first use.

        Raises:
            ValueError: If the handle is closed.
            BusyError: If an operation is already running.
        """
        with self._lock:
            if self._closed:
                raise ValueError(f"{self!r} is closed")
            if self._engine is None:
                self._engine = self._create_engine()
            elif self._engine.is_running:
                raise BusyError(f"An operation is already running on {self.path}")
            return self._engine

    @contextmanager
    def _operation(self) -> Iterator[ConversionEngine]:
        engine = self._acquire_engine()
        self.descriptor.running_operation = engine
        try:
            yield engine
        finally:
            if not engine.is_running:
                self.descriptor.running_operation = None

    def _raise_failure(self, engine: ConversionEngine, description: str) -> None:
        result = engine.last_result
        if result is not None and result.state == EngineState.CANCELLED:
            raise ConversionCancelledError(f"{description} was cancelled", result)
        detail = ""
        if result is not None:
            detail = f" (exit code {result.return_code})"
            if result.error_summary:
                detail += f":\n{result.error_summary}"
        raise ConversionFailedError(f"{description} failed{detail}", result)

    def _derive(self, path: Path) -> MediaHandle:
        """Open a new handle for an output file with this handle's collaborators."""
        return MediaHandle(
            path,
            probe=self._probe,
            engine_factory=self._engine_factory,
            image_loader=self._image_loader,
            config=self._config,
        )

    # Operations

    def convert_to(
        self,
        video_type: VideoType | str,
        output_path: str | Path | None = None,
        speed: Speed | str = Speed.SUPER_FAST,
        size: VideoSize | str = VideoSize.ORIGINAL,
        audio_quality: AudioQuality | str = AudioQuality.NORMAL,
        multithread: bool = False,
    ) -> MediaHandle:
        """Convert the file and return a handle for the freshly probed output.

        Args:
            video_type: Target type.
            output_path: Output file. Defaults to the source path with the
                target's extension; a mismatched extension is replaced.
            speed: Encoder speed preset.
            size: Target height.
            audio_quality: Audio bitrate class.
            multithread: Use one encoder thread per CPU.

        Returns:
            New MediaHandle for the output file.

        Raises:
            UnsupportedOperationError: If an option is not recognized or the
                output would overwrite the source.
            BusyError: If another operation is running on this handle.
            ConversionFailedError: If ffmpeg did not succeed.
        """
        video_type = coerce_option(VideoType, video_type, "video type")
        speed = coerce_option(Speed, speed, "speed")
        size = coerce_option(VideoSize, size, "video size")
        audio_quality = coerce_option(AudioQuality, audio_quality, "audio quality")

        output = Path(output_path) if output_path is not None else self.path
        if output.suffix.lower() != video_type.extension:
            output = output.with_suffix(video_type.extension)
        if output.resolve() == self.path.resolve():
            raise UnsupportedOperationError(
                f"Converting {self.path} to {video_type.value} would overwrite "
                "the source; pass an output_path"
            )

        with self._operation() as engine:
            ok = engine.convert(
                self.descriptor,
                output,
                video_type,
                speed=speed,
                size=size,
                audio_quality=audio_quality,
                multithread=multithread,
                progress_callback=self.on_progress,
            )
            if not ok:
                self._raise_failure(
                    engine, f"Conversion of {self.path} to {video_type.value}"
                )
        return self._derive(output)

    def extract_video(self, output_path: str | Path) -> bool:
        """Write the video stream (without audio) to ``output_path``.

        Raises:
            ConversionFailedError: If ffmpeg did not succeed.
        """
        with self._operation() as engine:
            if not engine.extract_video(
                self.descriptor, Path(output_path), progress_callback=self.on_progress
            ):
                self._raise_failure(engine, f"Video extraction from {self.path}")
        return True

    def extract_audio(self, output_path: str | Path) -> bool:
        """Write the audio stream to ``output_path``.

        Raises:
            ConversionFailedError: If ffmpeg did not succeed, including when
                the file has no audio stream.
        """
        with self._operation() as engine:
            if not engine.extract_audio(
                self.descriptor, Path(output_path), progress_callback=self.on_progress
            ):
                self._raise_failure(engine, f"Audio extraction from {self.path}")
        return True

    def add_audio(self, audio_path: str | Path, output_path: str | Path) -> bool:
        """Mux the audio of ``audio_path`` onto this file's video.

        Raises:
            MediaNotFoundError: If ``audio_path`` does not exist.
            ConversionFailedError: If ffmpeg did not succeed.
        """
        audio_path = Path(audio_path)
        if not audio_path.is_file():
            raise MediaNotFoundError(f"Audio file not found: {audio_path}")

        with self._operation() as engine:
            if not engine.add_audio(
                self.descriptor,
                audio_path,
                Path(output_path),
                progress_callback=self.on_progress,
            ):
                self._raise_failure(engine, f"Adding {audio_path.name} to {self.path}")
        return True

    def snapshot(
        self,
        output_path: str | Path | None = None,
        size: Dimensions | tuple[int, int] | None = None,
        capture_time: timedelta | float | None = None,
    ) -> Image.Image:
        """Capture one frame and return it decoded.

        Args:
            output_path: Image file to keep. If None, the frame is staged in
                a temporary file that is removed after decoding.
            size: Output dimensions (default: source dimensions).
            capture_time: Frame position (default: a third of the duration).

        Returns:
            The decoded frame.

        Raises:
            ConversionFailedError: If ffmpeg did not succeed.
        """
        dims = coerce_dimensions(size)
        at = coerce_timestamp(capture_time)

        if output_path is not None:
            return self._snapshot_to(snapshot_output_path(Path(output_path)), dims, at)

        temp_dir = get_temp_directory(self._config or get_config())
        fd, name = tempfile.mkstemp(
            prefix=f"{self.path.stem}-", suffix=".png", dir=temp_dir
        )
        os.close(fd)
        staged = Path(name)
        try:
            return self._snapshot_to(staged, dims, at)
        finally:
            staged.unlink(missing_ok=True)

    def _snapshot_to(
        self, output: Path, size: Dimensions | None, at: timedelta | None
    ) -> Image.Image:
        with self._operation() as engine:
            if not engine.snapshot(
                self.descriptor,
                output,
                size=size,
                capture_time=at,
                progress_callback=self.on_progress,
            ):
                self._raise_failure(engine, f"Snapshot of {self.path}")
        return self._image_loader(output)

    def join_with(self, output_path: str | Path, others: Sequence[MediaHandle]) -> bool:
        """Concatenate this file followed by ``others`` into ``output_path``.

        Input order is exactly ``[self, *others]``.

        Raises:
            ConversionFailedError: If ffmpeg did not succeed.
        """
        descriptors = [self.descriptor, *(other.descriptor for other in others)]
        with self._operation() as engine:
            if not engine.join(
                Path(output_path), descriptors, progress_callback=self.on_progress
            ):
                self._raise_failure(engine, f"Join into {output_path}")
        return True

    # Lifecycle

    def stop(self) -> None:
        """Stop the running operation, if any. Safe to call at any time."""
        engine = self._engine
        if engine is not None:
            engine.stop()

    def close(self) -> None:
        """Stop any running operation and release the engine.

        The handle cannot run operations afterwards. Idempotent.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            engine = self._engine
        if engine is not None:
            engine.close()
        self.descriptor.running_operation = None
        logger.debug("Closed %r", self)

    def __enter__(self) -> MediaHandle:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
