"""Display options passed to the repair engine.

Options are an immutable record.  UI controls produce a new record through
``DisplayOptions.with_option`` keyed by the ``DisplayOption`` enum, and the
page holding them hands a snapshot to each run.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class DisplaySelector(Enum):
    """Which intermediate curve the engine overlays on the surface."""

    NONE = "none"
    SIMPLIFIED = "simplified"
    SMOOTHED = "smoothed"

    @classmethod
    def parse(cls, value: str | DisplaySelector | None) -> DisplaySelector:
        """Parse a control value; unknown values select ``NONE``."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NONE


class DisplayOption(Enum):
    """Recognised option keys."""

    SELECTOR = "selector"
    SHOW_TANGENTS = "show_tangents"
    SHOW_CONTROL_POINTS = "show_control_points"


@dataclass(frozen=True)
class DisplayOptions:
    """Engine overlay options for one run."""

    selector: DisplaySelector = DisplaySelector.NONE
    show_tangents: bool = False
    show_control_points: bool = False

    def with_option(self, key: DisplayOption, value: object) -> DisplayOptions:
        """Return a copy with one option changed."""
        if key is DisplayOption.SELECTOR:
            return replace(self, selector=DisplaySelector.parse(value))  # type: ignore[arg-type]
        if key is DisplayOption.SHOW_TANGENTS:
            return replace(self, show_tangents=bool(value))
        if key is DisplayOption.SHOW_CONTROL_POINTS:
            return replace(self, show_control_points=bool(value))
        raise KeyError(key)

    def as_flags(self) -> list:
        """Positional engine form: ``[selector, show_tangents, show_control_points]``."""
        return [self.selector, self.show_tangents, self.show_control_points]

    def as_dict(self) -> dict[str, object]:
        return {
            "selector": self.selector.value,
            "show_tangents": self.show_tangents,
            "show_control_points": self.show_control_points,
        }
