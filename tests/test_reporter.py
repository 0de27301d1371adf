"""Test status reporting and report files.

Tests for repair_harness.reporter:
    - summary() / summary_lines() list failed ids in record order
    - Failure marker carries the case input and run options
    - write_report() writes report.yaml, report.md and PNG snapshots

Run:
    pytest tests/test_reporter.py -v
"""

import logging

import numpy as np
import yaml
from PIL import Image

from repair_harness.catalog import TestCase
from repair_harness.geometry import Rect
from repair_harness.options import DisplayOptions, DisplaySelector
from repair_harness.reporter import StatusReporter
from repair_harness.status import RunStatus
from repair_harness.surface import CanvasSurface

TOP_CENTER = TestCase("top center", Rect(70, 10, 60, 40))
THIN = TestCase("thin", Rect(70, 10, 60, 40))


def filled_reporter() -> StatusReporter:
    reporter = StatusReporter()
    reporter.start_run("index", DisplayOptions(DisplaySelector.SMOOTHED))
    reporter.case_started(TOP_CENTER)
    reporter.record(RunStatus.failed("top center", "engine", "no curve"), TOP_CENTER)
    reporter.case_started(THIN)
    reporter.record(RunStatus.passed("thin"), THIN)
    return reporter


class TestSummary:
    def test_summary(self):
        reporter = filled_reporter()
        assert reporter.summary() == ["top center"]
        assert reporter.summary_lines() == ["Test top center failed!"]
        assert not reporter.all_passed

    def test_start_run_resets(self):
        reporter = filled_reporter()
        reporter.start_run("index", DisplayOptions())
        assert reporter.statuses == []
        assert reporter.all_passed

    def test_failure_marker(self, caplog):
        with caplog.at_level(logging.ERROR):
            filled_reporter()
        assert "Case FAILED: top center [engine] no curve" in caplog.text
        assert "'selector': 'smoothed'" in caplog.text

    def test_finish_run_logs_summary(self, caplog):
        reporter = filled_reporter()
        with caplog.at_level(logging.INFO):
            lines = reporter.finish_run()
        assert lines == ["Test top center failed!"]
        assert "1/2 passed" in caplog.text

    def test_as_dict(self):
        data = filled_reporter().as_dict()
        assert data["page"] == "index"
        assert data["total"] == 2
        assert data["failures"] == 1
        assert data["cases"][0]["input"]["hole_rect"] == {"x": 70, "y": 10, "w": 60, "h": 40}
        assert data["cases"][1] == {
            "case": "thin",
            "success": True,
            "input": {"id": "thin", "hole_rect": {"x": 70, "y": 10, "w": 60, "h": 40}},
        }


class TestWriteReport:
    def test_files(self, tmp_path):
        reporter = filled_reporter()
        surface = CanvasSurface.create_blank("top center", 20, 10)
        surface.fill_rect(0, 0, 5, 5)

        path = reporter.write_report(tmp_path / "out", [surface])

        assert path == tmp_path / "out" / "report.yaml"
        data = yaml.safe_load(path.read_text())
        assert data["failures"] == 1
        assert data["cases"][0]["snapshot"] == "snapshots/top-center.png"
        assert "snapshot" not in data["cases"][1]

        md = (tmp_path / "out" / "report.md").read_text()
        assert "- FAIL top center (engine: no curve)" in md
        assert "- PASS thin" in md

        with Image.open(tmp_path / "out" / "snapshots" / "top-center.png") as img:
            pixels = np.asarray(img.convert("RGB"))
        assert pixels.shape == (10, 20, 3)
        assert tuple(pixels[0, 0]) == (255, 0, 0)

    def test_without_surfaces(self, tmp_path):
        reporter = filled_reporter()
        reporter.write_report(tmp_path)
        assert (tmp_path / "report.md").exists()
        assert not (tmp_path / "snapshots").exists()
