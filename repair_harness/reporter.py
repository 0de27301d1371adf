"""Status aggregation, failure logging and run reports.

``StatusReporter`` is the harness's single reporting surface:
    - a log line per case start
    - a failure marker with the full case input per failed case
    - a final summary line per failed case id, in catalog order
    - report.yaml + report.md and per-case PNG snapshots on request

Report layout::

    <output_dir>/
        report.yaml         # run metadata + one entry per case
        report.md           # PASS/FAIL list for humans
        snapshots/<case>.png
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from repair_harness import fs
from repair_harness.catalog import TestCase
from repair_harness.options import DisplayOptions
from repair_harness.status import RunStatus
from repair_harness.surface import CanvasSurface

logger = logging.getLogger(__name__)


class StatusReporter:
    """Collect per-case outcomes for one run at a time."""

    def __init__(self) -> None:
        self.page: str = ""
        self.options: DisplayOptions | None = None
        self.started_at: datetime | None = None
        self._statuses: list[RunStatus] = []
        self._inputs: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(self, page: str, options: DisplayOptions) -> None:
        """Reset state for a new run."""
        self.page = page
        self.options = options
        self.started_at = datetime.now(timezone.utc)
        self._statuses = []
        self._inputs = {}
        logger.info("Run started: page=%s options=%s", page, options.as_dict())

    def case_started(self, case: TestCase) -> None:
        self._inputs[case.case_id] = case.describe()
        logger.info("Case started: %s", case.case_id)

    def record(self, status: RunStatus, case: TestCase | None = None) -> None:
        """Record one status; failed cases get a failure marker."""
        self._statuses.append(status)
        if status.success:
            logger.info("Case passed: %s", status.case_id)
        elif case is not None:
            self.case_failed(case, status)
        else:
            logger.error(
                "Case FAILED: %s [%s] %s | input=%s",
                status.case_id, status.error, status.message,
                self._inputs.get(status.case_id, {}),
            )

    def case_failed(self, case: TestCase, status: RunStatus) -> None:
        """Failure marker carrying the full case input and run options."""
        self._inputs[case.case_id] = case.describe()
        logger.error(
            "Case FAILED: %s [%s] %s | input=%s options=%s",
            case.case_id, status.error, status.message, case.describe(),
            self.options.as_dict() if self.options else {},
        )

    def finish_run(self) -> list[str]:
        """Log the summary; returns the summary lines."""
        lines = self.summary_lines()
        for line in lines:
            logger.error(line)
        logger.info(
            "Run finished: page=%s %d/%d passed",
            self.page, len(self._statuses) - len(lines), len(self._statuses),
        )
        return lines

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def statuses(self) -> list[RunStatus]:
        return list(self._statuses)

    def summary(self) -> list[str]:
        """Ids of failed cases, in record order."""
        return [s.case_id for s in self._statuses if not s.success]

    def summary_lines(self) -> list[str]:
        return [f"Test {case_id} failed!" for case_id in self.summary()]

    @property
    def all_passed(self) -> bool:
        return all(s.success for s in self._statuses)

    def as_dict(self) -> dict[str, Any]:
        cases = []
        for status in self._statuses:
            entry = status.as_dict()
            entry["input"] = self._inputs.get(status.case_id, {})
            cases.append(entry)
        return {
            "page": self.page,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "options": self.options.as_dict() if self.options else None,
            "total": len(self._statuses),
            "failures": len(self.summary()),
            "cases": cases,
        }

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def write_report(
        self,
        output_dir: str | Path,
        surfaces: Iterable[CanvasSurface] = (),
    ) -> Path:
        """Write report.yaml, report.md and surface snapshots.

        Returns
        -------
        Path
            Path of report.yaml.
        """
        output_dir = fs.ensure_dir(output_dir)
        snapshot_names: dict[str, str] = {}
        for surface in surfaces:
            name = f"{fs.safe_filename(surface.surface_id)}.png"
            fs.atomic_save_image(surface.pixels, output_dir / "snapshots" / name)
            snapshot_names[surface.surface_id] = f"snapshots/{name}"

        data = self.as_dict()
        for entry in data["cases"]:
            if entry["case"] in snapshot_names:
                entry["snapshot"] = snapshot_names[entry["case"]]

        report_yaml = output_dir / "report.yaml"
        fs.atomic_yaml_dump(data, report_yaml)

        lines = [f"# Repair Report: {self.page}", "", f"Failures: {data['failures']}/{data['total']}", ""]
        for status in self._statuses:
            mark = "PASS" if status.success else "FAIL"
            line = f"- {mark} {status.case_id}"
            if not status.success:
                line += f" ({status.error}: {status.message})"
            lines.append(line)
        fs.atomic_write_text(output_dir / "report.md", "\n".join(lines) + "\n")

        logger.info("Report written to %s", report_yaml)
        return report_yaml
