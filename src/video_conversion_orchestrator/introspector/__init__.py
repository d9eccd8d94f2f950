"""Introspector module for the conversion orchestrator.

This module provides metadata probing:

- MetadataProbe: Protocol defining the probe interface
- FFprobeProbe: Production implementation using ffprobe
- StubProbe: Stub implementation for testing
- parse_probe_report: Pure ffprobe JSON report parsing
"""

from video_conversion_orchestrator.introspector.ffprobe import FFprobeProbe
from video_conversion_orchestrator.introspector.interface import (
    MetadataProbe,
    ProbeError,
)
from video_conversion_orchestrator.introspector.parsers import (
    parse_aspect_ratio,
    parse_duration,
    parse_number,
    parse_probe_report,
    parse_rational,
)
from video_conversion_orchestrator.introspector.stub import StubProbe

__all__ = [
    "FFprobeProbe",
    "MetadataProbe",
    "ProbeError",
    "StubProbe",
    # Parsers
    "parse_aspect_ratio",
    "parse_duration",
    "parse_number",
    "parse_probe_report",
    "parse_rational",
]
