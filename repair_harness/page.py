"""Predefined test pages.

A page is one catalog together with its reference surface, the live display
options and the surfaces of its last run.  ``TestPage.run_all`` is the
harness's main entry point:

    1. snapshot the display options (changes mid-run apply to the next run)
    2. drop the previous run's surfaces
    3. paint the reference surface (default foreground, or the page image)
    4. run one thunk per case through ``SequentialRunner``
    5. emit the failure summary

Each case thunk renders a fresh surface sized like the reference surface,
takes exactly one rendering path (file-backed or synthetic), resolves the
fixture hole against the surface and invokes the engine.  An image that
fails to load fails the case and skips the repair step.

Navigation helpers reproduce the bench's shape-page links.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any

from repair_harness.bitmap import BitmapLoader
from repair_harness.catalog import TestCase, TestCatalog, shape_count
from repair_harness.config import HarnessConfig
from repair_harness.errors import ImageLoadError
from repair_harness.invoker import RepairInvoker
from repair_harness.logging_config import log_context
from repair_harness.options import DisplayOption, DisplayOptions
from repair_harness.reporter import StatusReporter
from repair_harness.runner import SequentialRunner, StatusCallback
from repair_harness.selector import RegionSelector, parse_int
from repair_harness.status import RunStatus
from repair_harness.surface import CanvasSurface, SurfaceRegistry

logger = logging.getLogger(__name__)

REFERENCE_SURFACE_ID = "reference"


class TestPage:
    """One catalog run against one engine.

    Parameters
    ----------
    name : str
        Page id used in logs and reports (``"index"``, ``"shape2"`` ...).
    catalog : TestCatalog
        Cases, run in catalog order.
    registry : SurfaceRegistry
        Where case surfaces are registered for the engine to resolve.
    invoker : RepairInvoker
        Engine call adapter.
    reporter : StatusReporter
        Reporting surface for case starts, failures and the summary.
    loader : BitmapLoader
        Decoder for file-backed cases and the page image.
    config : HarnessConfig
        Surface size/colors, selector policy and initial display options.
    """

    __test__ = False

    def __init__(
        self,
        name: str,
        catalog: TestCatalog,
        registry: SurfaceRegistry,
        invoker: RepairInvoker,
        reporter: StatusReporter,
        loader: BitmapLoader,
        config: HarnessConfig | None = None,
    ) -> None:
        self.name = name
        self.catalog = catalog
        self.registry = registry
        self.invoker = invoker
        self.reporter = reporter
        self.loader = loader
        self.config = config or HarnessConfig()
        self.selector = RegionSelector(
            self.config.selector.default_hole, self.config.selector.initial_ratio,
        )
        self._options = self.config.display
        self.reference = self._blank_surface(REFERENCE_SURFACE_ID)
        self.last_statuses: list[RunStatus] = []

    # ------------------------------------------------------------------
    # Display options
    # ------------------------------------------------------------------

    @property
    def options(self) -> DisplayOptions:
        return self._options

    @options.setter
    def options(self, value: DisplayOptions) -> None:
        self._options = value

    def set_option(self, key: DisplayOption, value: Any) -> DisplayOptions:
        """Change one option; takes effect on the next run."""
        self._options = self._options.with_option(key, value)
        return self._options

    @property
    def surfaces(self) -> list[CanvasSurface]:
        """Case surfaces from the last run, in registration order."""
        return list(self.registry)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run_all(self, on_status: StatusCallback | None = None) -> list[RunStatus]:
        """Run every case in order and return their statuses.

        Parameters
        ----------
        on_status : StatusCallback | None
            Receives each status as soon as its case settles.
        """
        options = self._options
        with log_context(page=self.name):
            self.registry.clear()
            await self.prepare_reference()
            self.reporter.start_run(self.name, options)
            entries = [
                (case, partial(self._run_case, case, options)) for case in self.catalog
            ]
            runner = SequentialRunner(self.reporter)
            self.last_statuses = await runner.run(entries, on_status)
        return self.last_statuses

    async def prepare_reference(self) -> None:
        """Paint the reference surface shown above the cases."""
        self.reference = self._blank_surface(REFERENCE_SURFACE_ID)
        sources = self.catalog.sources
        if not sources:
            self.reference.paint_default_foreground()
            return
        try:
            await self.reference.load_image(sources[0], self.loader)
        except ImageLoadError as exc:
            logger.warning("Reference image unavailable, continuing: %s", exc)

    async def _run_case(self, case: TestCase, options: DisplayOptions) -> RunStatus:
        surface = self._blank_surface(case.case_id, self.reference.width, self.reference.height)
        self.registry.register(surface)

        if case.is_file_backed:
            await surface.load_image(case.source, self.loader)
        else:
            surface.paint_foreground(case.foreground)

        surface.hole_rect = self.selector.resolve_fixture(case.hole_rect, surface.bounds)
        return await self.invoker.invoke_surface(surface, options, case.case_id)

    def _blank_surface(
        self,
        surface_id: str,
        width: int | None = None,
        height: int | None = None,
    ) -> CanvasSurface:
        cfg = self.config.surface
        return CanvasSurface.create_blank(
            surface_id,
            width or cfg.width,
            height or cfg.height,
            cfg.background,
            cfg.foreground,
        )


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def parse_page_id(raw: Any, count: int | None = None) -> int | None:
    """Parse a shape page id; None when it is not a number in ``1..count``."""
    count = shape_count() if count is None else count
    value = parse_int(raw)
    if value is None or not 1 <= value <= count:
        return None
    return value


def shape_page_links(count: int | None = None) -> list[str]:
    """Page names for every shape catalog (``shape1`` .. ``shapeN``)."""
    count = shape_count() if count is None else count
    return [f"shape{i}" for i in range(1, count + 1)]


def neighbour_pages(current: Any, count: int | None = None) -> tuple[str | None, str | None]:
    """Back/next page names around ``current``; None where there is no link."""
    count = shape_count() if count is None else count
    page = parse_page_id(current, count)
    if page is None:
        return (None, None)
    back = f"shape{page - 1}" if page > 1 else None
    following = f"shape{page + 1}" if page < count else None
    return (back, following)
