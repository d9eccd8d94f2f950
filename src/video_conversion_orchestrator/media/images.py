"""Snapshot image loading."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from PIL import Image

ImageLoader = Callable[[Path], Image.Image]


def load_image(path: Path) -> Image.Image:
    """Decode an image file fully into memory.

    The returned image holds no reference to the file, so the file can be
    deleted right after this call.

    Args:
        path: Path to the image file.

    Returns:
        Decoded Pillow image.
    """
    with Image.open(path) as img:
        img.load()
        return img.copy()
