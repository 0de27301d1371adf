"""Adapter from a rendered surface to one engine call.

``RepairInvoker`` checks that a hole has been assigned, builds a
``RepairConfig`` and calls the engine.  Engine calls are blocking from the
harness's point of view: a returned awaitable is awaited before the status
is produced.  Any engine exception becomes ``EngineError`` and the case is
marked failed.  The failure marker itself is logged by the caller (the
runner's reporter, or the custom session), so the invoker only logs the
cause at DEBUG.
"""

from __future__ import annotations

import inspect
import logging

from repair_harness.engine import EngineTuning, RepairConfig, RepairEngine
from repair_harness.errors import CaseError, EngineError, MissingRegionError
from repair_harness.geometry import Rect
from repair_harness.options import DisplayOptions
from repair_harness.status import RunStatus
from repair_harness.surface import CanvasSurface

logger = logging.getLogger(__name__)


class RepairInvoker:
    """Call a repair engine for one surface.

    Parameters
    ----------
    engine : RepairEngine
        Any engine satisfying the ``repair(config)`` contract.
    tuning : EngineTuning
        Algorithm parameters forwarded with every call.
    """

    def __init__(self, engine: RepairEngine, tuning: EngineTuning | None = None) -> None:
        self.engine = engine
        self.tuning = tuning or EngineTuning()

    async def repair(
        self,
        surface_id: str,
        hole_rect: Rect | None,
        options: DisplayOptions,
    ) -> None:
        """Run the engine, raising ``MissingRegionError`` or ``EngineError``."""
        if hole_rect is None:
            raise MissingRegionError(surface_id)
        config = RepairConfig(surface_id, hole_rect, options, self.tuning)
        try:
            result = self.engine.repair(config)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001
            raise EngineError(surface_id, exc) from exc

    async def invoke(
        self,
        surface_id: str,
        hole_rect: Rect | None,
        options: DisplayOptions,
        case_id: str | None = None,
    ) -> RunStatus:
        """Repair one hole and convert the outcome into a ``RunStatus``."""
        case_id = surface_id if case_id is None else case_id
        try:
            await self.repair(surface_id, hole_rect, options)
        except CaseError as exc:
            logger.debug("%s", exc, exc_info=isinstance(exc, EngineError))
            return RunStatus.failed(case_id, exc.kind, str(exc))
        return RunStatus.passed(case_id)

    async def invoke_surface(
        self,
        surface: CanvasSurface,
        options: DisplayOptions,
        case_id: str | None = None,
    ) -> RunStatus:
        """Repair the hole currently assigned to ``surface``."""
        return await self.invoke(surface.surface_id, surface.hole_rect, options, case_id)
