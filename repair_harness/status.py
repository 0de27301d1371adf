"""Per-case outcome record."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunStatus:
    """Outcome of one case; produced exactly once per case, in case order.

    Attributes
    ----------
    case_id : str
        Catalog id of the case.
    success : bool
        True if the case rendered and the engine accepted the hole.
    error : str | None
        Error kind for failed cases (``"image_load"``, ``"missing_region"``,
        ``"engine"`` or ``"internal"``).
    message : str
        Human-readable failure reason.
    """

    case_id: str
    success: bool
    error: str | None = None
    message: str = ""

    @classmethod
    def passed(cls, case_id: str) -> RunStatus:
        return cls(case_id, True)

    @classmethod
    def failed(cls, case_id: str, error: str, message: str = "") -> RunStatus:
        return cls(case_id, False, error, message)

    def as_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"case": self.case_id, "success": self.success}
        if not self.success:
            data["error"] = self.error
            data["message"] = self.message
        return data
