"""Pixel-space value types and clamping.

Provides:
    - Rect: integer hole rectangle (x, y, w, h)
    - Size: positive integer extent (w, h)
    - Point: float buffer-space point, possibly unset (NaN sentinel)
    - ClientRect: bounding box of a displayed surface in client space
    - clamp(), round_half_up(), is_nan()

All coordinates are buffer pixels: origin top-left, +X right, +Y down.
Client-space values (pointer events, element geometry) only enter through
``CanvasSurface.to_buffer_point``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def clamp(v: float, lo: float, hi: float) -> float:
    """Clamp ``v`` into ``[lo, hi]`` as ``min(hi, max(lo, v))``.

    When ``lo > hi`` the upper bound wins, so a hole larger than its
    surface resolves to a negative origin and is rejected downstream.
    """
    return min(hi, max(lo, v))


def round_half_up(v: float) -> int:
    """Round to the nearest integer, halves toward +inf."""
    return int(math.floor(v + 0.5))


def is_nan(v: float) -> bool:
    """Return True if ``v`` is the not-a-number sentinel."""
    return isinstance(v, float) and math.isnan(v)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Size:
    """Hole extent in pixels."""

    w: int
    h: int

    def __post_init__(self) -> None:
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"Size must be positive, got {self.w}x{self.h}")


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle in buffer pixels.

    ``w`` and ``h`` are always positive.  The origin may lie outside a
    surface until the rectangle is resolved against it; use ``fits`` to
    check before handing it to an engine.
    """

    x: int
    y: int
    w: int
    h: int

    def __post_init__(self) -> None:
        if self.w <= 0 or self.h <= 0:
            raise ValueError(
                f"Rect width and height must be positive, got {self.w}x{self.h}"
            )

    @property
    def size(self) -> Size:
        return Size(self.w, self.h)

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)

    def fits(self, width: int, height: int) -> bool:
        """Return True if the rectangle lies inside a ``width x height`` surface."""
        return (
            self.x >= 0
            and self.y >= 0
            and self.right <= width
            and self.bottom <= height
        )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.w, self.h)

    def as_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True, slots=True)
class Point:
    """Buffer-space point.

    ``Point.unset()`` is the state before any pointer interaction; test it
    with ``is_unset`` rather than comparing against NaN.
    """

    x: float
    y: float

    @classmethod
    def unset(cls) -> Point:
        return cls(math.nan, math.nan)

    @property
    def is_unset(self) -> bool:
        return is_nan(self.x) or is_nan(self.y)


@dataclass(frozen=True, slots=True)
class ClientRect:
    """Bounding box of a displayed surface in client (CSS) coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_origin(cls, left: float, top: float, width: float, height: float) -> ClientRect:
        return cls(left, top, left + width, top + height)
