"""Repair engine capability interface and adapters.

The harness talks to every engine through one contract::

    engine.repair(config: RepairConfig) -> None | Awaitable[None]

Returning normally means the engine accepted the hole; raising means it
rejected it or failed.  Engines must raise when ``config.surface_id`` does not
resolve to a live surface or the rectangle lies outside the surface.

Two concrete call shapes exist in the wild and are adapted here:

Positional
    ``factory(surface_id, [selector, tangents, control_points], x, y, w, h)``
    returns an object with ``repair()`` and optionally ``free()``.

Builder
    ``config_factory(surface_id)`` returns a builder whose setters chain
    (each returns the builder); the built value is handed to ``submit``.

``InpaintEngine`` is a reference engine backed by ``cv2.inpaint`` so the
harness can run end to end without an external engine wired in.
"""

from __future__ import annotations

import inspect
import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

import cv2
import numpy as np

from repair_harness.geometry import Rect
from repair_harness.options import DisplayOptions, DisplaySelector
from repair_harness.surface import WHITE, SurfaceRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineTuning:
    """Algorithm parameters forwarded to engines that accept them.

    The harness does not interpret these; defaults are the engine's own.
    """

    simplify_tolerance: float = 2.0
    outset_ratio: float = 8.0
    min_segment_length: float = 4.0
    smooth_max_iterations: int = 2
    corner_threshold: float = math.pi / 2
    tail_tangent_num_points: int = 5
    tail_weight_multiplier: float = 1.5
    control_points_retract_ratio: float = 0.4


@dataclass(frozen=True)
class RepairConfig:
    """Everything an engine needs to repair one hole."""

    surface_id: str
    hole_rect: Rect
    options: DisplayOptions = field(default_factory=DisplayOptions)
    tuning: EngineTuning = field(default_factory=EngineTuning)


@runtime_checkable
class RepairEngine(Protocol):
    """Capability interface every engine is adapted to."""

    def repair(self, config: RepairConfig) -> Awaitable[None] | None:
        ...


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class PositionalEngineAdapter:
    """Adapt a positional-constructor engine.

    Parameters
    ----------
    factory : Callable
        ``factory(surface_id, flags, x, y, w, h)`` returning an object with
        ``repair()``.  If the object has ``free()`` it is always called,
        even when ``repair()`` raises.  When ``repair()`` returns an
        awaitable, ``free()`` runs once that awaitable has settled.
    """

    def __init__(self, factory: Callable[..., Any]) -> None:
        self.factory = factory

    def repair(self, config: RepairConfig) -> Any:
        rect = config.hole_rect
        instance = self.factory(
            config.surface_id, config.options.as_flags(),
            rect.x, rect.y, rect.w, rect.h,
        )
        try:
            result = instance.repair()
        except BaseException:
            _free(instance)
            raise
        if inspect.isawaitable(result):
            return _await_then_free(result, instance)
        _free(instance)
        return result


def _free(instance: Any) -> None:
    free = getattr(instance, "free", None)
    if callable(free):
        free()


async def _await_then_free(result: Awaitable[Any], instance: Any) -> Any:
    try:
        return await result
    finally:
        _free(instance)


# Tuning field -> builder setter name; setters the builder lacks are skipped
_TUNING_SETTERS = {
    "simplify_tolerance": "path_simplify_tolerance",
    "outset_ratio": "curve_outset_ratio",
    "min_segment_length": "curve_min_segment_length",
    "smooth_max_iterations": "curve_smooth_max_iterations",
    "corner_threshold": "curve_corner_threshold",
    "tail_tangent_num_points": "curve_tail_tangent_num_points",
    "tail_weight_multiplier": "curve_tail_weight_multiplier",
    "control_points_retract_ratio": "curve_control_points_retract_ratio",
}


class BuilderEngineAdapter:
    """Adapt a fluent configuration-builder engine.

    Parameters
    ----------
    config_factory : Callable[[str], Any]
        Creates a builder keyed by surface id.  The builder must provide
        ``display_selector``, ``display_tangents``,
        ``display_control_points`` and ``hole_rect``; tuning setters are
        optional.
    submit : Callable[[Any], Any]
        Runs the engine on the built configuration.
    """

    def __init__(
        self,
        config_factory: Callable[[str], Any],
        submit: Callable[[Any], Any],
    ) -> None:
        self.config_factory = config_factory
        self.submit = submit

    def build(self, config: RepairConfig) -> Any:
        rect = config.hole_rect
        opts = config.options
        builder = (
            self.config_factory(config.surface_id)
            .display_selector(opts.selector)
            .display_tangents(opts.show_tangents)
            .display_control_points(opts.show_control_points)
            .hole_rect(rect.x, rect.y, rect.w, rect.h)
        )
        for f in fields(config.tuning):
            setter = getattr(builder, _TUNING_SETTERS[f.name], None)
            if callable(setter):
                builder = setter(getattr(config.tuning, f.name))
        return builder

    def repair(self, config: RepairConfig) -> Any:
        return self.submit(self.build(config))


# ---------------------------------------------------------------------------
# Reference engine
# ---------------------------------------------------------------------------

_INPAINT_FLAGS = {
    "telea": cv2.INPAINT_TELEA,
    "ns": cv2.INPAINT_NS,
}

_OUTLINE_COLOR = (0, 255, 255)
_CONTROL_POINT_COLOR = (0, 255, 0)


class InpaintEngine:
    """Repair holes with OpenCV inpainting.

    The hole is blanked to white, then reconstructed from its surroundings.
    A non-NONE selector outlines the hole; ``show_control_points`` marks its
    corners.

    Parameters
    ----------
    registry : SurfaceRegistry
        Where surface ids are resolved.
    method : str
        ``"telea"`` or ``"ns"``.
    radius : float
        Inpainting neighbourhood radius in pixels.
    """

    def __init__(
        self,
        registry: SurfaceRegistry,
        method: str = "telea",
        radius: float = 3.0,
    ) -> None:
        if method not in _INPAINT_FLAGS:
            raise ValueError(f"Unknown inpaint method {method!r}; use one of {sorted(_INPAINT_FLAGS)}")
        self.registry = registry
        self.method = method
        self.radius = radius

    def repair(self, config: RepairConfig) -> None:
        surface = self.registry.get(config.surface_id)
        rect = config.hole_rect
        if not rect.fits(surface.width, surface.height):
            raise ValueError(
                f"Hole {rect.as_tuple()} lies outside surface "
                f"{surface.width}x{surface.height}"
            )

        surface.fill_rect(rect.x, rect.y, rect.w, rect.h, WHITE)
        mask = np.zeros((surface.height, surface.width), dtype=np.uint8)
        mask[rect.y:rect.bottom, rect.x:rect.right] = 255
        surface.pixels = np.ascontiguousarray(
            cv2.inpaint(surface.pixels, mask, self.radius, _INPAINT_FLAGS[self.method])
        )

        opts = config.options
        if opts.selector is not DisplaySelector.NONE:
            cv2.rectangle(
                surface.pixels, (rect.x, rect.y), (rect.right - 1, rect.bottom - 1),
                _OUTLINE_COLOR, thickness=1,
            )
        if opts.show_control_points:
            for corner in (
                (rect.x, rect.y), (rect.right - 1, rect.y),
                (rect.x, rect.bottom - 1), (rect.right - 1, rect.bottom - 1),
            ):
                cv2.circle(surface.pixels, corner, 2, _CONTROL_POINT_COLOR, thickness=cv2.FILLED)
        logger.debug(
            "Inpainted %r hole %s (%s, r=%.1f)",
            config.surface_id, rect.as_tuple(), self.method, self.radius,
        )
