"""Test the repair invoker.

Tests for repair_harness.invoker:
    - Missing hole → MissingRegionError / failed status, engine not called
    - Accepting engine → passed status with the full RepairConfig
    - Awaitable engine results are awaited
    - Engine exceptions → EngineError / failed status

Run:
    pytest tests/test_invoker.py -v
"""

import asyncio

import pytest

from repair_harness.engine import EngineTuning
from repair_harness.errors import EngineError, MissingRegionError
from repair_harness.geometry import Rect
from repair_harness.invoker import RepairInvoker
from repair_harness.options import DisplayOptions, DisplaySelector
from repair_harness.surface import CanvasSurface

from conftest import AsyncEngine, RecordingEngine, RejectingEngine

OPTIONS = DisplayOptions(DisplaySelector.SIMPLIFIED, False, True)
HOLE = Rect(70, 10, 60, 40)


class TestRepair:
    def test_missing_region(self):
        engine = RecordingEngine()
        with pytest.raises(MissingRegionError, match="no hole defined"):
            asyncio.run(RepairInvoker(engine).repair("s", None, OPTIONS))
        assert engine.calls == []

    def test_config_forwarded(self):
        engine = RecordingEngine()
        tuning = EngineTuning(simplify_tolerance=1.0)
        asyncio.run(RepairInvoker(engine, tuning).repair("s", HOLE, OPTIONS))
        config = engine.calls[0]
        assert config.surface_id == "s"
        assert config.hole_rect == HOLE
        assert config.options == OPTIONS
        assert config.tuning == tuning

    def test_async_engine_awaited(self):
        engine = AsyncEngine()
        asyncio.run(RepairInvoker(engine).repair("s", HOLE, OPTIONS))
        assert len(engine.calls) == 1

    def test_engine_error_wrapped(self):
        with pytest.raises(EngineError) as info:
            asyncio.run(RepairInvoker(RejectingEngine()).repair("s", HOLE, OPTIONS))
        assert isinstance(info.value.cause, RuntimeError)
        assert info.value.kind == "engine"


class TestInvoke:
    def test_passed(self):
        status = asyncio.run(RepairInvoker(RecordingEngine()).invoke("s", HOLE, OPTIONS))
        assert status.success
        assert status.case_id == "s"

    def test_failed_engine(self):
        status = asyncio.run(
            RepairInvoker(RejectingEngine()).invoke("s", HOLE, OPTIONS, case_id="case")
        )
        assert not status.success
        assert status.case_id == "case"
        assert status.error == "engine"
        assert "rejected" in status.message

    def test_failed_missing_region(self):
        status = asyncio.run(RepairInvoker(RecordingEngine()).invoke("s", None, OPTIONS))
        assert status.error == "missing_region"

    def test_invoke_surface(self):
        surface = CanvasSurface.create_blank("top center", 200, 300)
        surface.hole_rect = HOLE
        engine = RecordingEngine()
        status = asyncio.run(RepairInvoker(engine).invoke_surface(surface, OPTIONS))
        assert status.success
        assert engine.calls[0].surface_id == "top center"
