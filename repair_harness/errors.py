"""Harness exception hierarchy.

Case-level errors (``ImageLoadError``, ``MissingRegionError``,
``EngineError``) are recovered at the case boundary and turned into a failed
``RunStatus``.  ``CatalogError`` and ``ConfigError`` are programming or
input errors outside any single case and abort the run.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness errors."""

    pass


# ---------------------------------------------------------------------------
# Case-level (recovered locally)
# ---------------------------------------------------------------------------


class CaseError(HarnessError):
    """Error confined to a single test case."""

    kind = "case"


class ImageLoadError(CaseError):
    """Source image is missing, unreachable or undecodable."""

    kind = "image_load"

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = source
        self.reason = reason
        msg = f"Cannot load image {source!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class MissingRegionError(CaseError):
    """A case reached the repair step with no hole rectangle assigned."""

    kind = "missing_region"

    def __init__(self, surface_id: str) -> None:
        self.surface_id = surface_id
        super().__init__(f"There is no hole defined for surface {surface_id!r}")


class EngineError(CaseError):
    """The repair engine raised while repairing a surface."""

    kind = "engine"

    def __init__(self, surface_id: str, cause: BaseException) -> None:
        self.surface_id = surface_id
        self.cause = cause
        super().__init__(
            f"Engine failed on surface {surface_id!r}: "
            f"{type(cause).__name__}: {cause}"
        )


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class CatalogError(HarnessError):
    """Raised when a test catalog is malformed."""

    pass


class ConfigError(HarnessError):
    """Raised when configuration validation fails."""

    pass
