"""Hole rectangle resolution.

Every hole handed to an engine passes through ``RegionSelector.resolve``,
which places a rectangle of the requested size around a candidate center
and clamps it inside the surface:

    x = round(clamp(center.x - w/2, 0, width - w))
    y = round(clamp(center.y - h/2, 0, height - h))

The selector is pure: it reads surface bounds but owns no surface, so the
same code serves fixture resolution and live pointer tracking.

Hole-size inputs arrive as free text on the custom page.  Absent or
unparseable values fall back to ``DEFAULT_HOLE_SIZE``; this is a policy,
not an error.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from repair_harness.geometry import Point, Rect, Size, clamp, is_nan, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_HOLE_SIZE = Size(15, 15)

# Fraction of a freshly loaded image used as the initial hole size
INITIAL_HOLE_RATIO = 0.3


def parse_int(raw: Any) -> int | None:
    """Parse a base-10 integer input, returning None when it is not one.

    Accepts ints and numeric strings with an optional leading sign.
    Trailing garbage after the digits is ignored (``"12px"`` → 12).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return None if is_nan(raw) or math.isinf(raw) else int(raw)
    text = str(raw).strip()
    digits = ""
    for i, ch in enumerate(text):
        if ch.isdigit():
            digits += ch
        elif i == 0 and ch in "+-":
            digits += ch
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


class RegionSelector:
    """Pure hole-rectangle resolver.

    Parameters
    ----------
    default_size : Size
        Fallback hole size for absent or invalid size inputs.
    initial_ratio : float
        Fraction of each image dimension used by ``initial_size_for``.
    """

    def __init__(
        self,
        default_size: Size = DEFAULT_HOLE_SIZE,
        initial_ratio: float = INITIAL_HOLE_RATIO,
    ) -> None:
        self.default_size = default_size
        self.initial_ratio = initial_ratio

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    @staticmethod
    def resolve(center: Point, size: Size, bounds: tuple[int, int]) -> Rect:
        """Place a ``size`` hole around ``center`` inside ``bounds``.

        Parameters
        ----------
        center : Point
            Candidate hole center in buffer space.
        size : Size
            Desired hole size.
        bounds : tuple[int, int]
            Surface ``(width, height)``.

        Returns
        -------
        Rect
            Top-left corner clamped so the hole fits the surface whenever
            the hole is no larger than the surface.
        """
        width, height = bounds
        x = round_half_up(clamp(center.x - size.w / 2, 0, width - size.w))
        y = round_half_up(clamp(center.y - size.h / 2, 0, height - size.h))
        return Rect(x, y, size.w, size.h)

    def resolve_fixture(self, rect: Rect, bounds: tuple[int, int]) -> Rect:
        """Resolve a fixture rectangle; in-bounds fixtures come back unchanged."""
        resolved = self.resolve(rect.center(), rect.size, bounds)
        if resolved != rect:
            logger.info("Fixture hole %s clamped to %s", rect.as_tuple(), resolved.as_tuple())
        return resolved

    def resolve_pointer(self, point: Point, size: Size, bounds: tuple[int, int]) -> Rect:
        """Resolve a hole around the last pointer position.

        An unset pointer (no interaction yet) falls back to the surface
        center.
        """
        if point.is_unset:
            logger.info("Last pointer position is unset; using surface center")
            point = Point(bounds[0] / 2, bounds[1] / 2)
        return self.resolve(point, size, bounds)

    # ------------------------------------------------------------------
    # Size inputs
    # ------------------------------------------------------------------

    def parse_size(self, raw_w: Any, raw_h: Any) -> Size:
        """Parse hole-size inputs, falling back to the default size."""
        w, h = parse_int(raw_w), parse_int(raw_h)
        if w is None or h is None or w <= 0 or h <= 0:
            logger.info(
                "Hole size %r x %r is invalid; using default %dx%d",
                raw_w, raw_h, self.default_size.w, self.default_size.h,
            )
            return self.default_size
        return Size(w, h)

    @staticmethod
    def clip_size_input(raw: Any, maximum: int) -> int | None:
        """Clip one size input to ``[1, maximum]``.

        Returns None when the input is not a number, leaving the fallback
        to ``parse_size``.
        """
        value = parse_int(raw)
        if value is None:
            return None
        return int(clamp(value, 1, maximum))

    def initial_size_for(self, width: int, height: int) -> Size:
        """Initial hole size for a freshly loaded image."""
        return Size(
            max(1, round_half_up(width * self.initial_ratio)),
            max(1, round_half_up(height * self.initial_ratio)),
        )
