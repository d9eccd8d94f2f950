"""Conversion engine: one supervised ffmpeg process at a time.

The engine is a small state machine::

    IDLE -> RUNNING -> {COMPLETED, FAILED, CANCELLED}

Every public operation builds an argument list with FFmpegCommandBuilder
and hands it to the shared execute-and-monitor routine, which spawns
ffmpeg, drains its stderr on a reader thread, forwards parsed progress to
the caller's callback on a dispatch thread, and maps the exit status to a
terminal state. Operations return True only for COMPLETED; the details of
the last run are kept in ``last_result``.
"""

from __future__ import annotations

import contextvars
import logging
import queue
import subprocess  # nosec B404 - subprocess is required for ffmpeg execution
import threading
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path

from video_conversion_orchestrator.config.models import EngineConfig
from video_conversion_orchestrator.errors import (
    BusyError,
    ProcessSpawnError,
    UnsupportedOperationError,
)
from video_conversion_orchestrator.logging.context import operation_context
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
from video_conversion_orchestrator.tools.ffmpeg_builder import (
    FFmpegCommandBuilder,
    default_capture_time,
    get_ffmpeg_builder,
    snapshot_output_path,
)
from video_conversion_orchestrator.tools.ffmpeg_progress import (
    ConversionProgress,
    ProgressCallback,
    parse_stderr_progress,
)

logger = logging.getLogger(__name__)

# Queue poll interval while waiting for stderr lines
_POLL_INTERVAL = 0.25


class EngineState(Enum):
    """Lifecycle state of the engine's current (or last) operation."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            EngineState.COMPLETED,
            EngineState.FAILED,
            EngineState.CANCELLED,
        )


@dataclass
class ExecutionResult:
    """Outcome of one engine operation.

    Attributes:
        state: Terminal state reached.
        return_code: ffmpeg exit status (None if it never ran).
        stderr_tail: Last stderr lines, for diagnostics.
    """

    state: EngineState
    return_code: int | None = None
    stderr_tail: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == EngineState.COMPLETED

    @property
    def error_summary(self) -> str:
        """Last few non-empty stderr lines joined for an error message."""
        lines = [line for line in self.stderr_tail if line.strip()]
        return "\n".join(lines[-5:])


class _ProgressDispatcher:
    """Deliver progress events to a callback on a dedicated thread.

    Events are delivered in submission order. Callback exceptions are
    logged and do not stop delivery. After close() returns, no further
    event is delivered even if a slow callback outlived the drain timeout.
    """

    _SENTINEL = object()

    def __init__(self, callback: ProgressCallback, description: str) -> None:
        self._callback = callback
        self._description = description
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = threading.Event()
        context = contextvars.copy_context()
        self._thread = threading.Thread(
            target=context.run,
            args=(self._run,),
            name=f"vco-progress-{description}",
            daemon=True,
        )
        self._thread.start()

    def submit(self, event: ConversionProgress) -> None:
        self._queue.put(event)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._SENTINEL or self._closed.is_set():
                return
            try:
                self._callback(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception(
                    "Progress callback failed during %s", self._description
                )

    def close(self, timeout: float) -> None:
        self._queue.put(self._SENTINEL)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning(
                "Progress callback still busy after %.1fs; dropping remaining events",
                timeout,
            )
        self._closed.set()


class ConversionEngine:
    """Supervises at most one ffmpeg process on behalf of one media handle.

    Operations block until ffmpeg exits or is stopped. Starting an
    operation while another is RUNNING raises BusyError; the IDLE to
    RUNNING transition and the spawn happen under one lock, so two threads
    can never both start a process.

    Example:
        engine = ConversionEngine()
        ok = engine.extract_audio(descriptor, Path("audio.m4a"))
        if not ok:
            print(engine.last_result.error_summary)
    """

    def __init__(
        self,
        builder: FFmpegCommandBuilder | None = None,
        config: EngineConfig | None = None,
        ffmpeg_path: Path | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            builder: Command builder to use. If None, one is created on the
                first operation for ``ffmpeg_path`` (or the detected ffmpeg).
            config: Process supervision settings. Defaults to the
                configured engine section.
            ffmpeg_path: Explicit ffmpeg executable for the lazy builder.
        """
        if config is None:
            from video_conversion_orchestrator.config import get_config

            config = get_config().engine
        self._builder = builder
        self._config = config
        self._ffmpeg_path = ffmpeg_path
        self._lock = threading.Lock()
        self._state = EngineState.IDLE
        self._process: subprocess.Popen[str] | None = None
        self._cancelled = False
        self._closed = False
        self.last_result: ExecutionResult | None = None

    def __repr__(self) -> str:
        return f"ConversionEngine(state={self._state.value}, pid={self.pid})"

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == EngineState.RUNNING

    @property
    def pid(self) -> int | None:
        """PID of the running ffmpeg process, or None when idle."""
        process = self._process
        return process.pid if process is not None else None

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_builder(self) -> FFmpegCommandBuilder:
        if self._builder is None:
            self._builder = get_ffmpeg_builder(
                self._ffmpeg_path, stats_period=self._config.stats_period
            )
        return self._builder

    # Operations

    def convert(
        self,
        descriptor: MediaDescriptor,
        output_path: Path,
        video_type: VideoType | str,
        speed: Speed | str = Speed.SUPER_FAST,
        size: VideoSize | str = VideoSize.ORIGINAL,
        audio_quality: AudioQuality | str = AudioQuality.NORMAL,
        multithread: bool = False,
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Convert ``descriptor`` into ``video_type`` at ``output_path``.

        Raises:
            UnsupportedOperationError: If an option is not recognized. No
                process is spawned in that case.
        """
        video_type = coerce_option(VideoType, video_type, "video type")
        speed = coerce_option(Speed, speed, "speed")
        size = coerce_option(VideoSize, size, "video size")
        audio_quality = coerce_option(AudioQuality, audio_quality, "audio quality")

        cmd = self._get_builder().convert_command(
            descriptor.path,
            Path(output_path),
            video_type,
            speed,
            size,
            audio_quality,
            multithread,
        )
        return self._execute(
            cmd,
            f"convert-{video_type.value}",
            descriptor.path,
            _known_duration(descriptor.duration),
            progress_callback,
        )

    def extract_video(
        self,
        descriptor: MediaDescriptor,
        output_path: Path,
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Copy the video stream of ``descriptor`` without audio."""
        cmd = self._get_builder().extract_video_command(
            descriptor.path, Path(output_path)
        )
        return self._execute(
            cmd,
            "extract-video",
            descriptor.path,
            _known_duration(descriptor.duration),
            progress_callback,
        )

    def extract_audio(
        self,
        descriptor: MediaDescriptor,
        output_path: Path,
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Extract the audio stream of ``descriptor``.

        Fails (returns False) when the source has no audio stream.
        """
        cmd = self._get_builder().extract_audio_command(
            descriptor.path, Path(output_path)
        )
        return self._execute(
            cmd,
            "extract-audio",
            descriptor.path,
            _known_duration(descriptor.duration),
            progress_callback,
        )

    def add_audio(
        self,
        descriptor: MediaDescriptor,
        audio_path: Path,
        output_path: Path,
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Replace the audio of ``descriptor`` with the audio of ``audio_path``."""
        cmd = self._get_builder().add_audio_command(
            descriptor.path, Path(audio_path), Path(output_path)
        )
        return self._execute(
            cmd,
            "add-audio",
            descriptor.path,
            _known_duration(descriptor.duration),
            progress_callback,
        )

    def snapshot(
        self,
        descriptor: MediaDescriptor,
        output_path: Path,
        size: Dimensions | tuple[int, int] | None = None,
        capture_time: timedelta | float | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Write one frame of ``descriptor`` to an image file.

        A non-image extension on ``output_path`` is replaced with ``.png``.
        The capture time defaults to a third of the probed duration.
        """
        dims = coerce_dimensions(size)
        at = coerce_timestamp(capture_time)
        if at is None:
            at = default_capture_time(descriptor)

        cmd = self._get_builder().snapshot_command(
            descriptor.path, snapshot_output_path(Path(output_path)), at, dims
        )
        return self._execute(cmd, "snapshot", descriptor.path, None, progress_callback)

    def join(
        self,
        output_path: Path,
        descriptors: Sequence[MediaDescriptor],
        progress_callback: ProgressCallback | None = None,
    ) -> bool:
        """Concatenate ``descriptors``, in the given order, into ``output_path``.

        Raises:
            UnsupportedOperationError: If ``descriptors`` is empty.
        """
        if not descriptors:
            raise UnsupportedOperationError("join requires at least one input")

        cmd = self._get_builder().join_command(Path(output_path), descriptors)
        total = sum((d.duration for d in descriptors), timedelta(0))
        return self._execute(
            cmd,
            "join",
            descriptors[0].path,
            _known_duration(total),
            progress_callback,
        )

    # Lifecycle

    def stop(self) -> None:
        """Terminate the running ffmpeg process, if any.

        Safe to call at any time; a no-op unless RUNNING. Returns only after
        the process has exited (SIGTERM, then SIGKILL after
        ``stop_timeout``).
        """
        with self._lock:
            process = self._process
            if self._state != EngineState.RUNNING or process is None:
                return
            if process.poll() is not None:
                return
            self._cancelled = True

        logger.info("Stopping ffmpeg (pid %d)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self._config.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "ffmpeg (pid %d) ignored SIGTERM for %.1fs, killing",
                process.pid,
                self._config.stop_timeout,
            )
            process.kill()
            process.wait()

    def close(self) -> None:
        """Refuse new operations, then stop the running one, if any."""
        with self._lock:
            self._closed = True
        self.stop()

    def __enter__(self) -> ConversionEngine:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # Execute and monitor

    def _start(self, cmd: list[str], description: str) -> subprocess.Popen[str]:
        """Atomically move IDLE/terminal -> RUNNING and spawn ffmpeg."""
        with self._lock:
            if self._closed:
                raise ValueError("Engine is closed")
            if self._state == EngineState.RUNNING:
                raise BusyError(
                    f"Cannot start {description}: another operation is running"
                )
            self._cancelled = False
            try:
                process = subprocess.Popen(  # nosec B603
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    text=True,
                    errors="replace",
                )
            except OSError as e:
                self._state = EngineState.FAILED
                self.last_result = ExecutionResult(state=EngineState.FAILED)
                raise ProcessSpawnError(f"Could not start {cmd[0]}: {e}") from e
            self._process = process
            self._state = EngineState.RUNNING
            return process

    def _execute(
        self,
        cmd: list[str],
        description: str,
        source: Path,
        total: timedelta | None,
        progress_callback: ProgressCallback | None,
    ) -> bool:
        with operation_context(description, source):
            logger.debug("Running: %s", " ".join(cmd))
            process = self._start(cmd, description)
            logger.info(
                "Started %s (pid %d)",
                description,
                process.pid,
                extra={"ffmpeg_pid": process.pid},
            )

            dispatcher = (
                _ProgressDispatcher(progress_callback, description)
                if progress_callback is not None
                else None
            )
            tail: deque[str] = deque(maxlen=self._config.stderr_tail_lines)
            try:
                self._monitor(process, total, dispatcher, tail)
            finally:
                if dispatcher is not None:
                    dispatcher.close(self._config.callback_drain_timeout)
                result = self._finish(process, tail)

            outcome = {"ffmpeg_pid": process.pid, "exit_code": result.return_code}
            if result.state == EngineState.COMPLETED:
                logger.info("%s completed", description, extra=outcome)
            elif result.state == EngineState.CANCELLED:
                logger.info("%s cancelled", description, extra=outcome)
            else:
                logger.warning(
                    "%s failed with exit code %s:\n%s",
                    description,
                    result.return_code,
                    result.error_summary,
                    extra=outcome,
                )
            return result.success

    def _monitor(
        self,
        process: subprocess.Popen[str],
        total: timedelta | None,
        dispatcher: _ProgressDispatcher | None,
        tail: deque[str],
    ) -> None:
        """Drain stderr into ``tail`` until ffmpeg exits, forwarding progress."""
        stderr_queue: queue.Queue[str | None] = queue.Queue()

        def read_stderr() -> None:
            """Read stderr lines and put them in the queue."""
            try:
                assert process.stderr is not None
                for line in process.stderr:
                    stderr_queue.put(line)
            except (ValueError, OSError):
                # Pipe closed or process terminated
                pass
            finally:
                stderr_queue.put(None)  # Signal end of output

        context = contextvars.copy_context()
        reader_thread = threading.Thread(
            target=context.run, args=(read_stderr,), name="vco-stderr", daemon=True
        )
        reader_thread.start()

        def handle(line: str) -> None:
            # ffmpeg separates stats updates with \r on a terminal
            for part in line.replace("\r", "\n").splitlines():
                if not part.strip():
                    continue
                tail.append(part.rstrip())
                if dispatcher is None:
                    continue
                stats = parse_stderr_progress(part)
                if stats is not None:
                    dispatcher.submit(
                        ConversionProgress(
                            processed=stats.out_time, total=total, stats=stats
                        )
                    )

        while True:
            try:
                line = stderr_queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if process.poll() is not None:
                    break
                continue
            if line is None:
                break  # End of stderr
            handle(line)

        reader_thread.join(timeout=self._config.reader_join_timeout)
        if reader_thread.is_alive():
            logger.warning("Stderr reader thread did not terminate cleanly")
        elif process.stderr is not None:
            process.stderr.close()
        while True:
            try:
                line = stderr_queue.get_nowait()
            except queue.Empty:
                break
            if line is None:
                break
            handle(line)

        process.wait()

    def _finish(
        self, process: subprocess.Popen[str], tail: deque[str]
    ) -> ExecutionResult:
        """Map the exit status to a terminal state and release the process."""
        if process.returncode is None:
            # Monitoring was interrupted; do not leave ffmpeg behind
            process.kill()
            process.wait()

        with self._lock:
            # A clean exit that raced stop() still produced complete output
            if process.returncode == 0:
                state = EngineState.COMPLETED
            elif self._cancelled:
                state = EngineState.CANCELLED
            else:
                state = EngineState.FAILED
            result = ExecutionResult(
                state=state, return_code=process.returncode, stderr_tail=list(tail)
            )
            self._process = None
            self._state = state
            self.last_result = result
        return result


def _known_duration(duration: timedelta) -> timedelta | None:
    return duration if duration > timedelta(0) else None
