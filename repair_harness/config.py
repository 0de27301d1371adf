"""Configuration loader for harness runs.

Loads an optional ``harness.yaml`` into typed, frozen dataclasses.  Every
key is optional: a missing file section, or ``load_config()`` with no path,
yields the defaults below, which reproduce the reference bench (200x300
black surfaces, red foreground, 15x15 fallback hole).

Example file::

    surface:
      width: 200
      height: 300
      background: "#000000"
      foreground: "#ff0000"
    selector:
      default_hole: [15, 15]
      initial_ratio: 0.3
    assets:
      dir: assets
      shape_pattern: "shape{index}.png"
    engine:
      method: telea
      radius: 3.0
      tuning:
        simplify_tolerance: 2.0
    display:
      selector: smoothed
      show_tangents: false
      show_control_points: true
    report:
      output_dir: reports
      snapshots: true
    logging:
      level: INFO
      file: null
      json: false

Usage::

    from repair_harness.config import load_config
    cfg = load_config()                     # defaults
    cfg = load_config("configs/ci.yaml")    # explicit path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from repair_harness.catalog import DEFAULT_SHAPE_PATTERN
from repair_harness.engine import EngineTuning
from repair_harness.errors import ConfigError
from repair_harness.fs import load_yaml
from repair_harness.geometry import Size
from repair_harness.options import DisplayOptions, DisplaySelector
from repair_harness.selector import DEFAULT_HOLE_SIZE, INITIAL_HOLE_RATIO
from repair_harness.surface import BLACK, RED, Color, parse_color

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_INPAINT_METHODS = ("telea", "ns")


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SurfaceConfig:
    """Size and colors of synthetic surfaces."""

    width: int = 200
    height: int = 300
    background: Color = BLACK
    foreground: Color = RED


@dataclass(frozen=True)
class SelectorConfig:
    """Hole-size policy for the custom page."""

    default_hole: Size = DEFAULT_HOLE_SIZE
    initial_ratio: float = INITIAL_HOLE_RATIO


@dataclass(frozen=True)
class AssetsConfig:
    """Where file-backed case images live."""

    dir: str = "assets"
    shape_pattern: str = DEFAULT_SHAPE_PATTERN


@dataclass(frozen=True)
class EngineConfig:
    """Reference engine settings plus tuning passed to every engine."""

    method: str = "telea"
    radius: float = 3.0
    tuning: EngineTuning = field(default_factory=EngineTuning)


@dataclass(frozen=True)
class ReportConfig:
    """Report output.  ``output_dir`` None disables report files."""

    output_dir: str | None = None
    snapshots: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None
    json: bool = False


@dataclass(frozen=True)
class HarnessConfig:
    """Top-level harness configuration."""

    surface: SurfaceConfig = field(default_factory=SurfaceConfig)
    selector: SelectorConfig = field(default_factory=SelectorConfig)
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    display: DisplayOptions = field(default_factory=DisplayOptions)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def assets_dir(self, base: Path | None = None) -> Path:
        """Assets directory, resolved against ``base`` when relative."""
        path = Path(self.assets.dir)
        if base is not None and not path.is_absolute():
            path = base / path
        return path


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_surface(data: dict[str, Any]) -> SurfaceConfig:
    default = SurfaceConfig()
    return SurfaceConfig(
        width=int(data.get("width", default.width)),
        height=int(data.get("height", default.height)),
        background=parse_color(data.get("background", default.background)),
        foreground=parse_color(data.get("foreground", default.foreground)),
    )


def _parse_selector(data: dict[str, Any]) -> SelectorConfig:
    default = SelectorConfig()
    raw = data.get("default_hole", [default.default_hole.w, default.default_hole.h])
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigError(f"selector.default_hole must be [w, h], got {raw!r}")
    return SelectorConfig(
        default_hole=Size(int(raw[0]), int(raw[1])),
        initial_ratio=float(data.get("initial_ratio", default.initial_ratio)),
    )


def _parse_tuning(data: dict[str, Any]) -> EngineTuning:
    known = {f.name: f for f in fields(EngineTuning)}
    unknown = set(data) - set(known)
    if unknown:
        raise ConfigError(f"Unknown engine.tuning keys: {sorted(unknown)}")
    defaults = EngineTuning()
    values: dict[str, Any] = {}
    for name in known:
        default = getattr(defaults, name)
        values[name] = type(default)(data.get(name, default))
    return EngineTuning(**values)


def _parse_engine(data: dict[str, Any]) -> EngineConfig:
    default = EngineConfig()
    return EngineConfig(
        method=str(data.get("method", default.method)).lower(),
        radius=float(data.get("radius", default.radius)),
        tuning=_parse_tuning(_section(data, "tuning")),
    )


def _parse_display(data: dict[str, Any]) -> DisplayOptions:
    raw_selector = data.get("selector", DisplaySelector.NONE.value)
    selector = DisplaySelector.parse(raw_selector)
    if selector is DisplaySelector.NONE and str(raw_selector).lower() != "none":
        raise ConfigError(
            f"display.selector must be one of "
            f"{[s.value for s in DisplaySelector]}, got {raw_selector!r}"
        )
    return DisplayOptions(
        selector=selector,
        show_tangents=bool(data.get("show_tangents", False)),
        show_control_points=bool(data.get("show_control_points", False)),
    )


def _parse_report(data: dict[str, Any]) -> ReportConfig:
    output_dir = data.get("output_dir")
    return ReportConfig(
        output_dir=str(output_dir) if output_dir is not None else None,
        snapshots=bool(data.get("snapshots", True)),
    )


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    log_file = data.get("file")
    return LoggingConfig(
        level=str(data.get("level", "INFO")).upper(),
        file=str(log_file) if log_file is not None else None,
        json=bool(data.get("json", False)),
    )


def _validate_config(cfg: HarnessConfig) -> None:
    """Validate value ranges.

    Raises
    ------
    ConfigError
        On any invalid value.
    """
    if cfg.surface.width <= 0 or cfg.surface.height <= 0:
        raise ConfigError(
            f"Surface size must be positive, got {cfg.surface.width}x{cfg.surface.height}"
        )
    if not 0.0 < cfg.selector.initial_ratio <= 1.0:
        raise ConfigError(
            f"selector.initial_ratio must be in (0, 1], got {cfg.selector.initial_ratio}"
        )
    if "{index}" not in cfg.assets.shape_pattern:
        raise ConfigError(
            f"assets.shape_pattern must contain '{{index}}', got {cfg.assets.shape_pattern!r}"
        )
    if cfg.engine.method not in _INPAINT_METHODS:
        raise ConfigError(
            f"engine.method must be one of {list(_INPAINT_METHODS)}, got {cfg.engine.method!r}"
        )
    if cfg.engine.radius <= 0:
        raise ConfigError(f"engine.radius must be > 0, got {cfg.engine.radius}")
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {list(_LOG_LEVELS)}, got {cfg.logging.level!r}"
        )


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(path: str | Path | None = None) -> HarnessConfig:
    """Load and validate harness configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to a YAML file.  ``None`` returns the built-in defaults.

    Returns
    -------
    HarnessConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If a value fails validation or the file is not a YAML mapping.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        return HarnessConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)
    try:
        data: dict[str, Any] = load_yaml(path)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    try:
        config = HarnessConfig(
            surface=_parse_surface(_section(data, "surface")),
            selector=_parse_selector(_section(data, "selector")),
            assets=AssetsConfig(
                dir=str(_section(data, "assets").get("dir", AssetsConfig.dir)),
                shape_pattern=str(
                    _section(data, "assets").get("shape_pattern", AssetsConfig.shape_pattern)
                ),
            ),
            engine=_parse_engine(_section(data, "engine")),
            display=_parse_display(_section(data, "display")),
            report=_parse_report(_section(data, "report")),
            logging=_parse_logging(_section(data, "logging")),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc

    _validate_config(config)
    logger.info("Configuration loaded successfully")
    return config
