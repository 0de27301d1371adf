"""Drawing surfaces and the registry engines resolve them through.

A ``CanvasSurface`` exclusively owns an RGB uint8 pixel buffer of shape
(H, W, 3) and provides the small set of paint operations test fixtures need:
solid background, filled rectangles and ellipses (OpenCV), and bitmap
loading.  It also maps pointer coordinates from client space (the displayed,
possibly CSS-scaled element) into buffer space.

``SurfaceRegistry`` stands in for the page's element lookup: engines receive
a surface id and resolve it here, failing when the id is not live.

Usage::

    surface = CanvasSurface.create_blank("top center", 200, 300)
    surface.paint_default_foreground()
    surface.hole_rect = Rect(70, 10, 60, 40)
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

import cv2
import numpy as np
from PIL import Image

from repair_harness.bitmap import Bitmap, BitmapLoader
from repair_harness.errors import ImageLoadError
from repair_harness.geometry import ClientRect, Point, Rect

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

BLACK: Color = (0, 0, 0)
WHITE: Color = (255, 255, 255)
RED: Color = (255, 0, 0)

# Fixed reference shape painted by synthetic cases without a custom painter
DEFAULT_ELLIPSE_RADII = (50.0, 120.0)

# Fractional bits for sub-pixel ellipse centres in cv2.ellipse
_SHIFT = 4

Painter = Callable[["CanvasSurface"], None]


def parse_color(value: str | tuple | list) -> Color:
    """Parse ``"#RRGGBB"`` or an ``(r, g, b)`` sequence into a color tuple."""
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) != 6:
            raise ValueError(f"Expected #RRGGBB color, got {value!r}")
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    if len(value) != 3:
        raise ValueError(f"Expected 3 color components, got {value!r}")
    r, g, b = (int(c) for c in value)
    for c in (r, g, b):
        if not 0 <= c <= 255:
            raise ValueError(f"Color component out of range: {value!r}")
    return (r, g, b)


async def decode_bitmap(source: str, loader: BitmapLoader) -> Bitmap:
    """Decode ``source``; any loader failure becomes ``ImageLoadError``."""
    try:
        return await loader.load(source)
    except ImageLoadError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ImageLoadError(source, f"{type(exc).__name__}: {exc}") from exc


# ---------------------------------------------------------------------------
# Surface
# ---------------------------------------------------------------------------


class CanvasSurface:
    """Owned pixel buffer with paint operations and a coordinate transform.

    Parameters
    ----------
    surface_id : str
        Identifier engines use to resolve this surface.
    width, height : int
        Buffer size in pixels.
    background, foreground : Color
        Colors used by ``draw_background`` and the default foreground.
    """

    def __init__(
        self,
        surface_id: str,
        width: int,
        height: int,
        background: Color = BLACK,
        foreground: Color = RED,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")
        self.surface_id = surface_id
        self.background = background
        self.foreground = foreground
        self.pixels = np.zeros((height, width, 3), dtype=np.uint8)
        self.hole_rect: Rect | None = None

    @classmethod
    def create_blank(
        cls,
        surface_id: str,
        width: int,
        height: int,
        background: Color = BLACK,
        foreground: Color = RED,
    ) -> CanvasSurface:
        """Create a surface filled with its background color."""
        surface = cls(surface_id, width, height, background, foreground)
        surface.draw_background()
        return surface

    def __repr__(self) -> str:
        return f"CanvasSurface({self.surface_id!r}, {self.width}x{self.height})"

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def bounds(self) -> tuple[int, int]:
        return (self.width, self.height)

    def center(self) -> Point:
        return Point(self.width / 2, self.height / 2)

    def to_buffer_point(self, client_point: Point, client_rect: ClientRect) -> Point:
        """Map a client-space pointer coordinate into buffer space.

        Parameters
        ----------
        client_point : Point
            Pointer position in client coordinates.
        client_rect : ClientRect
            Bounding box of the displayed surface in client coordinates.

        Returns
        -------
        Point
            ``(cx - left) / (right - left) * width``, analogously for y.

        Notes
        -----
        The displayed element may be scaled relative to its buffer, so the
        two need not match 1:1.
        """
        span_x = client_rect.right - client_rect.left
        span_y = client_rect.bottom - client_rect.top
        if span_x == 0 or span_y == 0:
            raise ValueError(f"Client rect has zero extent: {client_rect}")
        return Point(
            (client_point.x - client_rect.left) / span_x * self.width,
            (client_point.y - client_rect.top) / span_y * self.height,
        )

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def draw_background(self) -> None:
        self.pixels[:, :] = self.background

    def fill_rect(self, x: int, y: int, w: int, h: int, color: Color | None = None) -> None:
        """Fill an axis-aligned rectangle, clipped to the buffer."""
        color = self.foreground if color is None else color
        x0, y0 = max(0, int(x)), max(0, int(y))
        x1, y1 = min(self.width, int(x + w)), min(self.height, int(y + h))
        if x1 > x0 and y1 > y0:
            self.pixels[y0:y1, x0:x1] = color

    def fill_ellipse(
        self,
        center: Point,
        radii: tuple[float, float],
        color: Color | None = None,
        rotation_deg: float = 0.0,
    ) -> None:
        """Fill an ellipse with sub-pixel center and radii."""
        color = self.foreground if color is None else color
        scale = 1 << _SHIFT
        cv2.ellipse(
            self.pixels,
            (int(round(center.x * scale)), int(round(center.y * scale))),
            (int(round(radii[0] * scale)), int(round(radii[1] * scale))),
            rotation_deg,
            0.0,
            360.0,
            tuple(int(c) for c in color),
            thickness=cv2.FILLED,
            lineType=cv2.LINE_8,
            shift=_SHIFT,
        )

    def paint_default_foreground(self) -> None:
        """Paint the reference ellipse centered on the surface."""
        self.fill_ellipse(self.center(), DEFAULT_ELLIPSE_RADII)

    def paint_custom_foreground(self, fn: Painter) -> None:
        """Delegate painting to a case-supplied routine."""
        fn(self)

    def paint_foreground(self, fn: Painter | None = None) -> None:
        if fn is None:
            self.paint_default_foreground()
        else:
            self.paint_custom_foreground(fn)

    async def load_image(self, source: str, loader: BitmapLoader) -> None:
        """Replace the buffer with a decoded bitmap.

        The surface takes the bitmap's dimensions.  On failure the prior
        buffer is left untouched and ``ImageLoadError`` is raised.
        """
        self.draw_bitmap(await decode_bitmap(source, loader), source)

    def draw_bitmap(self, bitmap: Bitmap, source: str = "") -> None:
        """Replace the buffer with an already decoded bitmap."""
        self.pixels = np.ascontiguousarray(bitmap.pixels, dtype=np.uint8).copy()
        logger.debug(
            "Surface %r loaded %s (%dx%d)",
            self.surface_id, source, self.width, self.height,
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class SurfaceRegistry:
    """Live surfaces keyed by id."""

    def __init__(self) -> None:
        self._surfaces: dict[str, CanvasSurface] = {}

    def register(self, surface: CanvasSurface) -> None:
        if surface.surface_id in self._surfaces:
            logger.debug("Replacing surface %r", surface.surface_id)
        self._surfaces[surface.surface_id] = surface

    def unregister(self, surface_id: str) -> None:
        self._surfaces.pop(surface_id, None)

    def get(self, surface_id: str) -> CanvasSurface:
        """Resolve a surface id, raising ``LookupError`` if it is not live."""
        try:
            return self._surfaces[surface_id]
        except KeyError:
            raise LookupError(f"No live surface with id {surface_id!r}") from None

    def clear(self) -> None:
        self._surfaces.clear()

    def __contains__(self, surface_id: object) -> bool:
        return surface_id in self._surfaces

    def __len__(self) -> int:
        return len(self._surfaces)

    def __iter__(self) -> Iterator[CanvasSurface]:
        return iter(list(self._surfaces.values()))
