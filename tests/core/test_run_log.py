"""Tests for RunLog."""

import csv
from datetime import datetime
from pathlib import Path

from cim_tools.core.run_log import RunLog


def fixed_clock():
    return datetime(2024, 3, 5, 14, 30, 15)


class TestRunLog:
    """Tests for RunLog."""

    def test_path_includes_pipeline_label_and_start_time(self, tmp_path: Path):
        """Test the log file name is derived from pipeline, label and start."""
        run_log = RunLog("reassign", "full", tmp_path, clock=fixed_clock)

        assert run_log.run_id == "reassign_full_20240305_143015"
        assert run_log.path == tmp_path / "reassign_full_20240305_143015.log"

    def test_empty_label(self, tmp_path: Path):
        run_log = RunLog("audit", "", tmp_path, clock=fixed_clock)

        assert run_log.run_id == "audit_20240305_143015"

    def test_events_are_timestamped(self):
        """Test every recorded line carries a timestamp."""
        run_log = RunLog("reassign", "full", clock=fixed_clock)

        run_log.event("Processing group 1")
        run_log.warning("Master image not found")

        assert run_log.lines == [
            "[14:30:15] Processing group 1",
            "[14:30:15] Master image not found",
        ]

    def test_summary_block(self):
        run_log = RunLog("reclaim", "analyze", clock=fixed_clock)

        run_log.summary("SUMMARY", {"Deleted": 3, "Failed": 0})

        assert "[14:30:15] === SUMMARY ===" in run_log.lines
        assert "[14:30:15] Deleted: 3" in run_log.lines
        assert "[14:30:15] Failed: 0" in run_log.lines

    def test_flush_writes_everything_so_far(self, tmp_path: Path):
        """Test flush persists lines and can be repeated."""
        run_log = RunLog("reassign", "full", tmp_path / "logs", clock=fixed_clock)

        run_log.event("first")
        path = run_log.flush()
        assert path.read_text(encoding="utf-8").splitlines() == ["[14:30:15] first"]

        run_log.event("second")
        run_log.flush()
        assert path.read_text(encoding="utf-8").splitlines() == [
            "[14:30:15] first",
            "[14:30:15] second",
        ]

    def test_in_memory_log(self):
        """Test a log without directory never touches disk."""
        run_log = RunLog("reassign", "full")

        run_log.event("hello")

        assert run_log.path is None
        assert run_log.flush() is None
        assert run_log.write_report("x", ["a"], [{"a": 1}]) is None

    def test_write_report(self, tmp_path: Path):
        """Test detail reports are written as CSV next to the log."""
        run_log = RunLog("audit", "", tmp_path, clock=fixed_clock)

        path = run_log.write_report(
            "mismatches",
            ["identifier", "status"],
            [
                {"identifier": "A1", "status": "wrong_image"},
                {"identifier": "B2", "status": "no_image"},
            ],
        )

        assert path == tmp_path / "mismatches_20240305_143015.csv"
        assert run_log.reports == [path]
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows == [
            {"identifier": "A1", "status": "wrong_image"},
            {"identifier": "B2", "status": "no_image"},
        ]
        assert any(str(path) in line for line in run_log.lines)
