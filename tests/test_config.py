"""Tests for the harness config loader.

Validates that:
    - load_config() with no path returns the built-in defaults
    - Partial files override only the keys they set
    - Invalid values and unknown tuning keys raise ConfigError
    - A missing file raises FileNotFoundError
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from repair_harness.config import HarnessConfig, load_config
from repair_harness.errors import ConfigError
from repair_harness.geometry import Size
from repair_harness.options import DisplaySelector
from repair_harness.surface import BLACK, RED


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_config(tmp_path: Path):
    def _write(data) -> Path:
        path = tmp_path / "harness.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_no_path(self) -> None:
        cfg = load_config()
        assert cfg == HarnessConfig()
        assert (cfg.surface.width, cfg.surface.height) == (200, 300)
        assert cfg.surface.background == BLACK
        assert cfg.surface.foreground == RED
        assert cfg.selector.default_hole == Size(15, 15)
        assert cfg.selector.initial_ratio == pytest.approx(0.3)
        assert cfg.assets.shape_pattern == "shape{index}.png"
        assert cfg.engine.method == "telea"
        assert cfg.display.selector is DisplaySelector.NONE
        assert cfg.report.output_dir is None

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == HarnessConfig()


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestOverrides:
    def test_partial_sections(self, write_config) -> None:
        cfg = load_config(write_config({
            "surface": {"width": 120, "background": "#FFFFFF"},
            "selector": {"default_hole": [20, 10]},
            "engine": {"method": "NS", "tuning": {"simplify_tolerance": 1.5}},
            "display": {"selector": "smoothed", "show_control_points": True},
            "report": {"output_dir": "reports", "snapshots": False},
            "logging": {"level": "debug", "json": True},
        }))
        assert cfg.surface.width == 120
        assert cfg.surface.height == 300
        assert cfg.surface.background == (255, 255, 255)
        assert cfg.selector.default_hole == Size(20, 10)
        assert cfg.engine.method == "ns"
        assert cfg.engine.tuning.simplify_tolerance == pytest.approx(1.5)
        assert cfg.engine.tuning.smooth_max_iterations == 2
        assert cfg.display.selector is DisplaySelector.SMOOTHED
        assert cfg.display.show_control_points
        assert cfg.report.output_dir == "reports"
        assert not cfg.report.snapshots
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.json

    def test_assets(self, write_config, tmp_path: Path) -> None:
        cfg = load_config(write_config({"assets": {"dir": "img", "shape_pattern": "s{index}.png"}}))
        assert cfg.assets_dir(tmp_path) == tmp_path / "img"
        assert cfg.assets.shape_pattern == "s{index}.png"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("data", [
        {"surface": {"width": 0}},
        {"surface": {"foreground": "#12"}},
        {"surface": "big"},
        {"selector": {"default_hole": [15]}},
        {"selector": {"default_hole": [0, 15]}},
        {"selector": {"initial_ratio": 1.5}},
        {"assets": {"shape_pattern": "shape.png"}},
        {"engine": {"method": "magic"}},
        {"engine": {"radius": 0}},
        {"engine": {"tuning": {"unknown_knob": 1}}},
        {"display": {"selector": "fancy"}},
        {"logging": {"level": "LOUD"}},
    ])
    def test_invalid(self, write_config, data) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config(data))

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")
