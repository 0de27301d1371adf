"""Bitmap loading boundary.

The harness never decodes images itself; it awaits a ``BitmapLoader``.
``PillowBitmapLoader`` is the default implementation: it resolves a source
reference against an assets directory and decodes it with Pillow in a worker
thread, so decoding is the suspension point of ``CanvasSurface.load_image``.

Bitmaps are RGB uint8, shape (H, W, 3).  Alpha is composited onto black,
matching a canvas whose background was cleared to black before drawing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
from PIL import Image, UnidentifiedImageError

from repair_harness.errors import ImageLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bitmap:
    """Decoded image.

    Attributes
    ----------
    width, height : int
        Dimensions in pixels.
    pixels : np.ndarray
        RGB uint8, shape (height, width, 3).
    """

    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> Bitmap:
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) pixels, got shape {pixels.shape}")
        return cls(width=int(pixels.shape[1]), height=int(pixels.shape[0]), pixels=pixels)


@runtime_checkable
class BitmapLoader(Protocol):
    """Async image decoder.

    Implementations raise ``ImageLoadError`` when the source is unreachable
    or cannot be decoded.
    """

    async def load(self, source: str) -> Bitmap:
        ...


def decode_image(path: Path) -> Bitmap:
    """Decode an image file into an RGB bitmap (blocking)."""
    with Image.open(path) as img:
        img.load()
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, (0, 0, 0))
            flat.paste(rgba, mask=rgba.getchannel("A"))
            rgb = flat
        else:
            rgb = img.convert("RGB")
        pixels = np.asarray(rgb, dtype=np.uint8).copy()
    return Bitmap.from_array(pixels)


class PillowBitmapLoader:
    """Load bitmaps from disk with Pillow.

    Parameters
    ----------
    base_dir : str | Path | None
        Relative sources are resolved against this directory.  ``None``
        resolves against the current working directory.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def resolve(self, source: str) -> Path:
        path = Path(source)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    async def load(self, source: str) -> Bitmap:
        path = self.resolve(source)
        if not path.is_file():
            raise ImageLoadError(source, f"not found at {path}")
        try:
            bitmap = await asyncio.to_thread(decode_image, path)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ImageLoadError(source, str(exc)) from exc
        logger.debug("Decoded %s (%dx%d)", path, bitmap.width, bitmap.height)
        return bitmap
