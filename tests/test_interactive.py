"""Test the custom (interactive) test session.

Tests for repair_harness.interactive:
    - load() sizes both surfaces from the image and resets the hole to 30%;
      a failed load leaves both surfaces and the inputs as they were
    - set_hole_size() clips to the surface; junk falls back to 15x15
    - run_at() reloads the image, places the hole and counts runs
    - Unset pointer → hole centered on the surface
    - Pointer events while pressed schedule one run each, in order;
      settled runs leave the pending list without drain()
    - Failed runs log "Test #n failed" with the full input

Run:
    pytest tests/test_interactive.py -v
"""

import asyncio
import logging

import pytest

from repair_harness.errors import ImageLoadError
from repair_harness.geometry import ClientRect, Point, Rect, Size
from repair_harness.interactive import CUSTOM_SURFACE_ID, CustomTestSession
from repair_harness.invoker import RepairInvoker

from conftest import MemoryBitmapLoader, RecordingEngine, RejectingEngine

CLIENT = ClientRect.from_origin(0, 0, 200, 100)


class OneShotLoader(MemoryBitmapLoader):
    """Serves each image once; later requests for it fail."""

    async def load(self, source: str):
        if source in self.loads:
            self.loads.append(source)
            raise ImageLoadError(source, "already consumed")
        return await super().load(source)


@pytest.fixture()
def loader() -> MemoryBitmapLoader:
    return MemoryBitmapLoader({"shape6.png": (200, 100, (255, 0, 0))})


def make_session(registry, loader, engine=None) -> CustomTestSession:
    return CustomTestSession(registry, RepairInvoker(engine or RecordingEngine()), loader)


class TestInputs:
    def test_load_resets_hole_size(self, registry, loader):
        session = make_session(registry, loader)
        size = asyncio.run(session.load("shape6.png"))
        assert size == Size(60, 30)
        assert session.hole_inputs == ("60", "30")
        assert session.surface.bounds == (200, 100)
        assert session.reference.bounds == (200, 100)
        assert registry.get(CUSTOM_SURFACE_ID) is session.surface

    def test_load_failure_keeps_state(self, registry, loader):
        session = make_session(registry, loader)
        with pytest.raises(ImageLoadError):
            asyncio.run(session.load("nope.png"))
        assert session.source is None
        assert session.hole_size == Size(15, 15)

    def test_failed_load_leaves_both_surfaces(self, registry, loader):
        loader.images["small.png"] = (50, 40, (0, 0, 255))
        session = make_session(registry, loader)
        asyncio.run(session.load("small.png"))
        with pytest.raises(ImageLoadError):
            asyncio.run(session.load("nope.png"))
        assert session.reference.bounds == (50, 40)
        assert session.surface.bounds == (50, 40)
        assert session.source == "small.png"

    def test_load_decodes_once(self, registry):
        loader = OneShotLoader({"new.png": (50, 40, (0, 0, 255))})
        session = make_session(registry, loader)
        asyncio.run(session.load("new.png"))
        assert loader.loads == ["new.png"]
        assert session.reference.bounds == session.surface.bounds == (50, 40)
        assert tuple(session.reference.pixels[0, 0]) == (0, 0, 255)

    def test_set_hole_size_clips(self, registry, loader):
        session = make_session(registry, loader)
        asyncio.run(session.load("shape6.png"))
        assert session.set_hole_size("500", "0") == ("200", "1")
        assert session.hole_size == Size(200, 1)

    def test_set_hole_size_junk_falls_back(self, registry, loader):
        session = make_session(registry, loader)
        session.set_hole_size("abc", "20")
        assert session.hole_size == Size(15, 15)


class TestRuns:
    def test_run_at(self, registry, loader):
        engine = RecordingEngine()
        session = make_session(registry, loader, engine)

        async def scenario():
            await session.load("shape6.png")
            return await session.run_at(Point(10, 10))

        status = asyncio.run(scenario())
        assert status.success
        assert engine.calls[0].hole_rect == Rect(0, 0, 60, 30)
        assert session.run_counter == 1
        assert loader.loads == ["shape6.png"] * 3

    def test_unset_pointer_uses_center(self, registry, loader):
        engine = RecordingEngine()
        session = make_session(registry, loader, engine)

        async def scenario():
            await session.load("shape6.png")
            return await session.run_once()

        asyncio.run(scenario())
        assert engine.calls[0].hole_rect == Rect(70, 35, 60, 30)

    def test_without_image_uses_blank_surface(self, registry, loader):
        engine = RecordingEngine()
        session = make_session(registry, loader, engine)
        status = asyncio.run(session.run_once())
        assert status.success
        assert engine.calls[0].hole_rect == Rect(93, 143, 15, 15)

    def test_failed_run_logged(self, registry, loader, caplog):
        session = make_session(registry, loader, RejectingEngine())

        async def scenario():
            await session.load("shape6.png")
            await session.run_at(Point(100, 50))
            return await session.run_at(Point(100, 50))

        with caplog.at_level(logging.ERROR):
            status = asyncio.run(scenario())
        assert not status.success
        assert "Test #0 failed" in caplog.text
        assert "Test #1 failed" in caplog.text
        assert "'x': 70, 'y': 35, 'w': 60, 'h': 30" in caplog.text

    def test_reload_failure(self, registry, loader):
        engine = RecordingEngine()
        session = make_session(registry, loader, engine)

        async def scenario():
            await session.load("shape6.png")
            del loader.images["shape6.png"]
            return await session.run_at(Point(10, 10))

        status = asyncio.run(scenario())
        assert status.error == "image_load"
        assert engine.calls == []


class TestPointerWiring:
    def test_runs_per_pointer_event_while_pressed(self, registry, loader):
        engine = RecordingEngine()
        session = make_session(registry, loader, engine)

        async def scenario():
            await session.load("shape6.png")
            session.attach()
            session.tracker.press(Point(30, 30), CLIENT)
            session.tracker.move(Point(150, 50), CLIENT)
            session.tracker.release()
            session.tracker.move(Point(0, 0), CLIENT)
            return await session.drain()

        statuses = asyncio.run(scenario())
        assert len(statuses) == 2
        assert all(s.success for s in statuses)
        assert [c.hole_rect for c in engine.calls] == [Rect(0, 15, 60, 30), Rect(120, 35, 60, 30)]
        assert session.run_counter == 2

    def test_detach(self, registry, loader):
        session = make_session(registry, loader)

        async def scenario():
            session.attach()
            session.detach()
            session.tracker.press(Point(30, 30), CLIENT)
            return await session.drain()

        assert asyncio.run(scenario()) == []
        assert session.tracker.listener_count == 0

    def test_settled_runs_leave_pending(self, registry, loader):
        session = make_session(registry, loader)

        async def scenario():
            await session.load("shape6.png")
            session.attach()
            session.tracker.press(Point(30, 30), CLIENT)
            session.tracker.release()
            for _ in range(10):
                if not session.pending:
                    break
                await asyncio.sleep(0)
            return session.pending, await session.drain()

        pending, drained = asyncio.run(scenario())
        assert pending == 0
        assert drained == []
        assert session.last_status.success
        assert session.run_counter == 1

    def test_raising_run_logged_when_settled(self, registry, loader, caplog):
        session = make_session(registry, loader)

        async def broken(number, point):
            raise RuntimeError("surface gone")

        session._run = broken

        async def scenario():
            session.attach()
            session.tracker.press(Point(30, 30), CLIENT)
            for _ in range(10):
                if not session.pending:
                    break
                await asyncio.sleep(0)
            return session.pending

        with caplog.at_level(logging.ERROR):
            assert asyncio.run(scenario()) == 0
        assert "Custom run raised: RuntimeError('surface gone')" in caplog.text
