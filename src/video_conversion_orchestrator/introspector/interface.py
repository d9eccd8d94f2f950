"""MetadataProbe interface for media metadata extraction."""

from pathlib import Path
from typing import Protocol

from video_conversion_orchestrator.errors import ProbeError
from video_conversion_orchestrator.media.models import MediaMetadata


class MetadataProbe(Protocol):
    """Protocol for metadata probe implementations.

    A probe is stateless across calls: each call inspects one file once
    and returns the parsed metadata without touching any descriptor.
    """

    def probe(self, path: Path) -> MediaMetadata:
        """Extract technical metadata from a media file.

        Args:
            path: Path to an existing media file.

        Returns:
            MediaMetadata with the fields the report contained; missing
            fields keep their zero/empty defaults.

        Raises:
            ProbeError: If the file cannot be probed.
        """
        ...


__all__ = ["MetadataProbe", "ProbeError"]
