"""Custom test page: user-supplied image, pointer-driven holes.

``CustomTestSession`` holds one test surface.  While the pointer button is
held, every press or move on the surface triggers one repair run:

    reload image -> resolve hole around the pointer -> invoke engine

Runs are serialized by a lock, so a burst of pointer events repairs in
event order on a freshly reloaded image each time.  Runs are numbered from
0; a failed run logs ``Test #n failed`` with the full test input.

Hole-size inputs are kept as raw text, the way the page's number inputs
hold them.  ``set_hole_size`` clips them to the surface, and invalid values
fall back to the selector's default size when a run reads them.

Usage::

    session = CustomTestSession(registry, invoker, loader)
    await session.load("shape4.png")
    session.attach()
    session.tracker.press(Point(120, 40), client_rect)
    await session.drain()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from repair_harness.bitmap import BitmapLoader
from repair_harness.catalog import TestCase
from repair_harness.config import HarnessConfig
from repair_harness.errors import ImageLoadError
from repair_harness.geometry import Point, Size
from repair_harness.invoker import RepairInvoker
from repair_harness.logging_config import case_context
from repair_harness.options import DisplayOptions
from repair_harness.pointer import PointerTracker
from repair_harness.selector import RegionSelector
from repair_harness.status import RunStatus
from repair_harness.surface import CanvasSurface, SurfaceRegistry, decode_bitmap

logger = logging.getLogger(__name__)

CUSTOM_SURFACE_ID = "testCanvas"


class CustomTestSession:
    """Interactive repair session on one user-supplied image.

    Parameters
    ----------
    registry : SurfaceRegistry
        The test surface is registered here for the engine to resolve.
    invoker : RepairInvoker
        Engine call adapter.
    loader : BitmapLoader
        Decoder for the session image.
    config : HarnessConfig | None
        Surface colors, selector policy and initial display options.
    """

    def __init__(
        self,
        registry: SurfaceRegistry,
        invoker: RepairInvoker,
        loader: BitmapLoader,
        config: HarnessConfig | None = None,
    ) -> None:
        self.registry = registry
        self.invoker = invoker
        self.loader = loader
        self.config = config or HarnessConfig()
        self.selector = RegionSelector(
            self.config.selector.default_hole, self.config.selector.initial_ratio,
        )
        self.options: DisplayOptions = self.config.display

        cfg = self.config.surface
        self.reference = CanvasSurface.create_blank(
            "reference", cfg.width, cfg.height, cfg.background, cfg.foreground,
        )
        self.surface = CanvasSurface.create_blank(
            CUSTOM_SURFACE_ID, cfg.width, cfg.height, cfg.background, cfg.foreground,
        )
        self.registry.register(self.surface)
        self.tracker = PointerTracker(self.surface)

        self.source: str | None = None
        default = self.selector.default_size
        self.hole_inputs: tuple[Any, Any] = (str(default.w), str(default.h))
        self.run_counter = 0
        self.last_status: RunStatus | None = None

        self._lock = asyncio.Lock()
        self._pending: list[asyncio.Task] = []
        self._unsubscribe = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    async def load(self, source: str) -> Size:
        """Load ``source`` into both surfaces and reset the hole size.

        Returns
        -------
        Size
            The new initial hole size (30% of the image by default).

        Raises
        ------
        ImageLoadError
            If the image cannot be loaded; the session keeps its previous
            image and inputs.
        """
        bitmap = await decode_bitmap(source, self.loader)
        self.reference.draw_bitmap(bitmap, source)
        self.surface.draw_bitmap(bitmap, source)
        self.source = source
        size = self.selector.initial_size_for(self.surface.width, self.surface.height)
        self.hole_inputs = (str(size.w), str(size.h))
        logger.info(
            "Loaded %s (%dx%d); hole size reset to %dx%d",
            source, self.surface.width, self.surface.height, size.w, size.h,
        )
        return size

    def set_hole_size(self, raw_w: Any, raw_h: Any) -> tuple[Any, Any]:
        """Store hole-size inputs, clipped to ``[1, surface size]``.

        Non-numeric inputs are stored as given and fall back to the default
        size when a run reads them.
        """
        w = self.selector.clip_size_input(raw_w, self.surface.width)
        h = self.selector.clip_size_input(raw_h, self.surface.height)
        self.hole_inputs = (
            str(w) if w is not None else raw_w,
            str(h) if h is not None else raw_h,
        )
        return self.hole_inputs

    @property
    def hole_size(self) -> Size:
        return self.selector.parse_size(*self.hole_inputs)

    def test_input(self, point: Point | None = None) -> TestCase:
        """The case a run at ``point`` (default: last pointer position) executes."""
        point = self.tracker.last_position if point is None else point
        rect = self.selector.resolve_pointer(point, self.hole_size, self.surface.bounds)
        return TestCase(CUSTOM_SURFACE_ID, rect, source=self.source)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def run_once(self, point: Point | None = None) -> RunStatus:
        """Reload the image and repair around ``point``.

        ``point`` defaults to the last pointer position at call time, so
        queued runs keep the position of the event that scheduled them.
        """
        point = self.tracker.last_position if point is None else point
        async with self._lock:
            number = self.run_counter
            self.run_counter += 1
            with case_context(f"#{number}"):
                self.last_status = await self._run(number, point)
            return self.last_status

    async def _run(self, number: int, point: Point) -> RunStatus:
        if self.source is not None:
            try:
                await self.surface.load_image(self.source, self.loader)
            except ImageLoadError as exc:
                logger.error("Test #%d failed: %s", number, exc)
                return RunStatus.failed(CUSTOM_SURFACE_ID, exc.kind, str(exc))

        case = self.test_input(point)
        self.surface.hole_rect = case.hole_rect
        status = await self.invoker.invoke_surface(self.surface, self.options)
        if not status.success:
            logger.error(
                "Test #%d failed. Test input: %s options=%s",
                number, case.describe(), self.options.as_dict(),
            )
        return status

    async def run_at(self, point: Point) -> RunStatus:
        """Run once with the pointer placed at buffer-space ``point``."""
        self.tracker.last_position = point
        return await self.run_once(point)

    # ------------------------------------------------------------------
    # Pointer wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Start scheduling a run for every pointer event while pressed.

        Must be called with a running event loop.  Settled runs drop out of
        the pending list on their own; their statuses land in
        ``last_status``.
        """
        if self._unsubscribe is not None:
            return
        loop = asyncio.get_running_loop()

        def on_pointer(point: Point) -> None:
            task = loop.create_task(self.run_once(point))
            self._pending.append(task)
            task.add_done_callback(self._on_run_done)

        self._unsubscribe = self.tracker.subscribe(on_pointer)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def pending(self) -> int:
        """Number of scheduled runs that have not settled yet."""
        return len(self._pending)

    def _on_run_done(self, task: asyncio.Task) -> None:
        if task in self._pending:
            self._pending.remove(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Custom run raised: %r", exc)

    async def drain(self) -> list[RunStatus]:
        """Wait for the runs still outstanding; returns their statuses in order."""
        pending = list(self._pending)
        results = await asyncio.gather(*pending, return_exceptions=True)
        return [r for r in results if not isinstance(r, BaseException)]
