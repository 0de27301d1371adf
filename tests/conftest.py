"""Shared fixtures: fake engines, in-memory loaders, PNG writers."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from repair_harness.bitmap import Bitmap
from repair_harness.engine import RepairConfig
from repair_harness.errors import ImageLoadError
from repair_harness.reporter import StatusReporter
from repair_harness.surface import SurfaceRegistry


# ---------------------------------------------------------------------------
# Fake engines
# ---------------------------------------------------------------------------


class RecordingEngine:
    """Accepts every hole and records the configs it was given."""

    def __init__(self) -> None:
        self.calls: list[RepairConfig] = []

    def repair(self, config: RepairConfig) -> None:
        self.calls.append(config)


class RejectingEngine(RecordingEngine):
    """Records, then rejects every hole."""

    def repair(self, config: RepairConfig) -> None:
        super().repair(config)
        raise RuntimeError(f"rejected {config.hole_rect.as_tuple()}")


class AsyncEngine(RecordingEngine):
    """Accepts holes through an awaitable result."""

    async def repair(self, config: RepairConfig) -> None:  # type: ignore[override]
        self.calls.append(config)


class SelectiveEngine(RecordingEngine):
    """Rejects only the listed surface ids."""

    def __init__(self, reject: set[str]) -> None:
        super().__init__()
        self.reject = reject

    def repair(self, config: RepairConfig) -> None:
        super().repair(config)
        if config.surface_id in self.reject:
            raise ValueError(f"cannot repair {config.surface_id}")


# ---------------------------------------------------------------------------
# Fake loader
# ---------------------------------------------------------------------------


class MemoryBitmapLoader:
    """Serves solid-color bitmaps by source name; unknown names fail."""

    def __init__(self, images: dict[str, tuple[int, int, tuple[int, int, int]]] | None = None) -> None:
        self.images = dict(images or {})
        self.loads: list[str] = []

    async def load(self, source: str) -> Bitmap:
        self.loads.append(source)
        if source not in self.images:
            raise ImageLoadError(source, "not in memory")
        w, h, color = self.images[source]
        pixels = np.zeros((h, w, 3), dtype=np.uint8)
        pixels[:, :] = color
        return Bitmap.from_array(pixels)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> SurfaceRegistry:
    return SurfaceRegistry()


@pytest.fixture()
def reporter() -> StatusReporter:
    return StatusReporter()


@pytest.fixture()
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture()
def write_png(tmp_path: Path) -> Callable[..., Path]:
    """Write a solid-color PNG into tmp_path and return its path."""

    def _write(name: str, width: int = 120, height: int = 100,
               color: tuple[int, ...] = (255, 0, 0), mode: str = "RGB") -> Path:
        path = tmp_path / name
        Image.new(mode, (width, height), color).save(path)
        return path

    return _write
