"""
Run log and detail reports.

Every pipeline run gets its own RunLog, passed explicitly into the
components. Events are mirrored to the standard logging system and kept as
timestamped lines that are flushed to a file at checkpoints, so a run that
is interrupted still leaves a valid partial log behind.
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

run_logger = logging.getLogger("cim_tools.run")


class RunLog:
    """Timestamped, persisted log of one pipeline run."""

    def __init__(
        self,
        pipeline: str,
        label: str,
        log_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize run log.

        Args:
            pipeline: Pipeline name (reassign, reclaim, audit, ...)
            label: Stage or mode of this run
            log_dir: Directory for the log and reports; None keeps it in memory
            clock: Source of timestamps
        """
        self.pipeline = pipeline
        self.label = label
        self.log_dir = Path(log_dir) if log_dir else None
        self._clock = clock
        self.started_at = clock()
        self.lines: List[str] = []
        self.reports: List[Path] = []

    @property
    def run_id(self) -> str:
        stamp = self.started_at.strftime("%Y%m%d_%H%M%S")
        if self.label:
            return f"{self.pipeline}_{self.label}_{stamp}"
        return f"{self.pipeline}_{stamp}"

    @property
    def path(self) -> Optional[Path]:
        """Where the log is flushed, None for an in-memory log."""
        if self.log_dir is None:
            return None
        return self.log_dir / f"{self.run_id}.log"

    def event(self, message: str, level: int = logging.INFO) -> None:
        """Record one event."""
        self.lines.append(f"[{self._clock().strftime('%H:%M:%S')}] {message}")
        run_logger.log(level, message)

    def warning(self, message: str) -> None:
        self.event(message, level=logging.WARNING)

    def error(self, message: str) -> None:
        self.event(message, level=logging.ERROR)

    def section(self, title: str) -> None:
        self.event("")
        self.event(f"=== {title} ===")

    def summary(self, title: str, values: Mapping[str, object]) -> None:
        """Record a summary block of label/value pairs."""
        self.section(title)
        for label, value in values.items():
            self.event(f"{label}: {value}")

    def flush(self) -> Optional[Path]:
        """
        Write every line recorded so far to the log file.

        Returns:
            Path of the log file, or None for an in-memory log
        """
        path = self.path
        if path is None:
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(self.lines))
            f.write("\n")

        logger.debug(f"Flushed {len(self.lines)} lines to {path}")
        return path

    def write_report(
        self,
        name: str,
        fieldnames: Sequence[str],
        rows: Iterable[Dict[str, object]],
    ) -> Optional[Path]:
        """
        Write a structured detail report next to the log.

        Args:
            name: Report name, used as the file prefix
            fieldnames: CSV columns
            rows: One dict per detail row

        Returns:
            Path of the report, or None for an in-memory log
        """
        if self.log_dir is None:
            return None

        stamp = self.started_at.strftime("%Y%m%d_%H%M%S")
        path = self.log_dir / f"{name}_{stamp}.csv"
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(fieldnames))
            writer.writeheader()
            for row in rows:
                writer.writerow(row)

        self.reports.append(path)
        self.event(f"Detail report: {path}")
        return path
