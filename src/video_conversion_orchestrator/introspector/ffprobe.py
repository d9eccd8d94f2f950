"""FFprobe-based implementation of the MetadataProbe protocol."""

from __future__ import annotations

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path
from typing import Any

from video_conversion_orchestrator.errors import ProbeError, ProcessSpawnError
from video_conversion_orchestrator.introspector.parsers import parse_probe_report
from video_conversion_orchestrator.media.models import MediaMetadata

logger = logging.getLogger(__name__)


class FFprobeProbe:
    """ffprobe-based implementation of MetadataProbe.

    The ffprobe path is resolved lazily on the first probe, so creating a
    probe never spawns a process. Paths come from the argument, then
    configuration (VCO_FFPROBE_PATH or ~/.vco/config.toml), then PATH.
    """

    def __init__(
        self, ffprobe_path: Path | None = None, timeout: float | None = None
    ) -> None:
        """Initialize the probe.

        Args:
            ffprobe_path: Optional explicit path to ffprobe.
            timeout: Seconds before an ffprobe run is abandoned. Defaults to
                the configured probe timeout.
        """
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout

    def _resolve_path(self) -> Path:
        if self._ffprobe_path is None:
            from video_conversion_orchestrator.tools import require_tool

            try:
                self._ffprobe_path = require_tool("ffprobe")
            except ProcessSpawnError as e:
                raise ProbeError(str(e)) from e
        return self._ffprobe_path

    def _resolve_timeout(self) -> float:
        if self._timeout is None:
            from video_conversion_orchestrator.config import get_config

            self._timeout = get_config().probe.timeout
        return self._timeout

    def probe(self, path: Path) -> MediaMetadata:
        """Extract metadata from a media file.

        Args:
            path: Path to the media file.

        Returns:
            Parsed MediaMetadata.

        Raises:
            ProbeError: If ffprobe cannot be started, fails, times out, or
                reports no media streams.
        """
        path = Path(path)
        data = self._run_ffprobe(path)
        try:
            metadata = parse_probe_report(data)
        except ProbeError as e:
            raise ProbeError(f"No media streams found in {path}: {e}") from e

        logger.debug(
            "Probed %s: duration=%s video=%s audio=%s %dx%d",
            path,
            metadata.duration,
            metadata.video_format or "-",
            metadata.audio_format or "-",
            metadata.width,
            metadata.height,
        )
        return metadata

    def _run_ffprobe(self, path: Path) -> dict[str, Any]:
        """Run ffprobe once and return its decoded JSON report."""
        cmd = [
            str(self._resolve_path()),
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            "-show_format",
            str(path),
        ]
        try:
            result = subprocess.run(  # nosec B603 - ffprobe path is validated
                cmd,
                capture_output=True,
                text=True,
                errors="replace",  # Handle non-UTF8 characters by replacing them
                timeout=self._resolve_timeout(),
                check=True,
            )
        except OSError as e:
            raise ProbeError(f"Could not start ffprobe for {path}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(
                f"ffprobe timed out after {e.timeout}s for {path}"
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ProbeError(
                f"ffprobe failed for {path} (exit {e.returncode}): {stderr or e}"
            ) from e

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Invalid ffprobe output for {path}: {e}") from e
        if not isinstance(data, dict):
            raise ProbeError(f"Invalid ffprobe output for {path}: not an object")
        return data
