"""Pointer tracking with an explicit subscription list.

``PointerTracker`` follows press/move/release events on one displayed
surface.  While the button is held, every press or move converts the client
coordinate into buffer space and notifies subscribers in subscription
order.  Moves while released are ignored.

Usage::

    tracker = PointerTracker(surface)
    unsubscribe = tracker.subscribe(lambda point: ...)
    tracker.press(Point(120, 40), client_rect)
    tracker.move(Point(125, 42), client_rect)
    tracker.release()
    unsubscribe()
"""

from __future__ import annotations

import logging
from typing import Callable

from repair_harness.geometry import ClientRect, Point
from repair_harness.surface import CanvasSurface

logger = logging.getLogger(__name__)

PointerListener = Callable[[Point], None]


class PointerTracker:
    """Pressed state and last buffer-space position for one surface."""

    def __init__(self, surface: CanvasSurface) -> None:
        self.surface = surface
        self.last_position = Point.unset()
        self.is_pressed = False
        self._listeners: list[PointerListener] = []

    def subscribe(self, fn: PointerListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(fn)

        def unsubscribe() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def press(self, client_point: Point, client_rect: ClientRect) -> None:
        self.is_pressed = True
        self._update(client_point, client_rect)

    def move(self, client_point: Point, client_rect: ClientRect) -> None:
        if not self.is_pressed:
            return
        self._update(client_point, client_rect)

    def release(self) -> None:
        self.is_pressed = False

    def _update(self, client_point: Point, client_rect: ClientRect) -> None:
        self.last_position = self.surface.to_buffer_point(client_point, client_rect)
        for fn in list(self._listeners):
            fn(self.last_position)
