"""
Loader progress statistics and the periodic reporter.

Provides:
- WorkerStats: per-worker counters, written by one worker, snapshotted by the reporter
- ReportFormat: column selection flags
- ProgressReport: rates derived from two snapshots, renderable as a table row
- StatsReporter: polls all workers on an interval until every assigned file is done

Report format flags:
    l - Per worker lines processed per second
    f - Per worker (files processed/files assigned)
    d - Per worker read bandwidth in KB/s
    L - Total lines processed per second
    F - Total (files processed/files assigned)
    D - Total read bandwidth in MB/s
    T - Total time elapsed, in minutes
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional, Sequence, TextIO, Union

from snb_loader.errors import ConfigurationError

logger = logging.getLogger(__name__)

COLUMN_WIDTH = 10

# Rows kept in StatsReporter.reports; older ones are only in the printed table.
MAX_KEPT_REPORTS = 100


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of a worker's counters."""
    lines_processed: int = 0
    bytes_read: int = 0
    files_processed: int = 0
    files_assigned: int = 0


class WorkerStats:
    """
    Counters for one loader worker.

    Only the owning worker increments them; the reporter reads consistent
    copies through ``snapshot()``. There are no operations that decrease a
    counter.
    """

    def __init__(self, files_assigned: int = 0):
        if files_assigned < 0:
            raise ValueError("files_assigned must be non-negative")
        self._lock = threading.Lock()
        self._lines_processed = 0
        self._bytes_read = 0
        self._files_processed = 0
        self._files_assigned = files_assigned

    def record_line(self, nbytes: int) -> None:
        """Count one processed line of ``nbytes`` bytes."""
        with self._lock:
            self._lines_processed += 1
            self._bytes_read += nbytes

    def add_bytes(self, nbytes: int) -> None:
        """Count bytes read that are not a data line (headers)."""
        if nbytes < 0:
            raise ValueError("nbytes must be non-negative")
        with self._lock:
            self._bytes_read += nbytes

    def file_processed(self) -> None:
        with self._lock:
            if self._files_processed >= self._files_assigned:
                raise RuntimeError("more files processed than assigned")
            self._files_processed += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                lines_processed=self._lines_processed,
                bytes_read=self._bytes_read,
                files_processed=self._files_processed,
                files_assigned=self._files_assigned,
            )

    @property
    def files_assigned(self) -> int:
        return self._files_assigned

    def __repr__(self) -> str:
        s = self.snapshot()
        return (
            f"WorkerStats(lines={s.lines_processed}, bytes={s.bytes_read}, "
            f"files={s.files_processed}/{s.files_assigned})"
        )


class ReportFormat:
    """Parsed report format string, e.g. ``"LFDT"``."""

    FLAGS = {
        "l": "per worker lines/s",
        "f": "per worker files processed/assigned",
        "d": "per worker KB/s",
        "L": "total lines/s",
        "F": "total files processed/assigned",
        "D": "total MB/s",
        "T": "elapsed minutes",
    }
    PER_WORKER = "lfd"
    TOTALS = "LFDT"

    def __init__(self, flags: str = "LFDT"):
        unknown = sorted(set(flags) - set(self.FLAGS))
        if unknown:
            raise ConfigurationError(
                f"Unknown report format flag(s) {''.join(unknown)!r}; "
                f"valid flags are {''.join(self.FLAGS)}"
            )
        self.flags = flags
        self._flags = frozenset(flags)

    def __contains__(self, flag: str) -> bool:
        return flag in self._flags

    def __repr__(self) -> str:
        return f"ReportFormat({self.flags!r})"

    def header(self, num_workers: int) -> str:
        columns = []
        for i in range(num_workers):
            columns.extend(f"{i}.{flag}" for flag in self.PER_WORKER if flag in self)
        columns.extend(flag for flag in self.TOTALS if flag in self)
        return "".join(f"{c:>{COLUMN_WIDTH}}" for c in columns)


@dataclass
class WorkerRates:
    """One worker's throughput over a reporting interval."""
    line_rate: int
    byte_rate: int
    files_processed: int
    files_assigned: int


@dataclass
class ProgressReport:
    """Throughput of all workers over one reporting interval."""
    elapsed_seconds: float
    workers: List[WorkerRates] = field(default_factory=list)

    @property
    def total_line_rate(self) -> int:
        return sum(w.line_rate for w in self.workers)

    @property
    def total_byte_rate(self) -> int:
        return sum(w.byte_rate for w in self.workers)

    @property
    def files_processed(self) -> int:
        return sum(w.files_processed for w in self.workers)

    @property
    def files_assigned(self) -> int:
        return sum(w.files_assigned for w in self.workers)

    @property
    def complete(self) -> bool:
        return self.files_processed == self.files_assigned

    def render(self, fmt: ReportFormat) -> str:
        cells = []
        for w in self.workers:
            if "l" in fmt:
                cells.append(str(w.line_rate))
            if "f" in fmt:
                cells.append(f"({w.files_processed}/{w.files_assigned})")
            if "d" in fmt:
                cells.append(f"{w.byte_rate // 1000}KB/s")
        if "L" in fmt:
            cells.append(str(self.total_line_rate))
        if "F" in fmt:
            cells.append(f"({self.files_processed}/{self.files_assigned})")
        if "D" in fmt:
            cells.append(f"{self.total_byte_rate // 1000000}MB/s")
        if "T" in fmt:
            cells.append(f"{int(self.elapsed_seconds) // 60}m")
        return "".join(f"{c:>{COLUMN_WIDTH}}" for c in cells)


def compute_report(
    previous: Sequence[StatsSnapshot],
    current: Sequence[StatsSnapshot],
    interval_seconds: float,
    elapsed_seconds: float,
) -> ProgressReport:
    """
    Derive per-worker rates from two snapshot lists.

    Args:
        previous: Snapshots taken at the start of the interval
        current: Snapshots taken now
        interval_seconds: Time between the two snapshot lists
        elapsed_seconds: Time since reporting started
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")
    workers = []
    for last, curr in zip(previous, current):
        lines = curr.lines_processed - last.lines_processed
        nbytes = curr.bytes_read - last.bytes_read
        workers.append(WorkerRates(
            line_rate=int(lines / interval_seconds),
            byte_rate=int(nbytes / interval_seconds),
            files_processed=curr.files_processed,
            files_assigned=curr.files_assigned,
        ))
    return ProgressReport(elapsed_seconds=elapsed_seconds, workers=workers)


class ReporterState(Enum):
    NOT_STARTED = "not_started"
    REPORTING = "reporting"
    STOPPED = "stopped"


class StatsReporter:
    """
    Prints a progress table until every worker has processed its files.

    The reporter never blocks workers: it only takes snapshots. Completion
    is detected by polling, at most one interval after the last file is done.
    ``stop()`` interrupts the wait and ends the loop without a final row.

    Args:
        stats: One WorkerStats per worker, in worker order
        interval: Seconds between rows
        fmt: Format flags (string or ReportFormat)
        out: Stream for the table; defaults to sys.stdout at write time
        clock: Monotonic time source
        sleep: Called with the interval; returns True to stop. Defaults to
            waiting on the reporter's stop event.
        keep_reports: Most recent rows kept in ``reports``
    """

    def __init__(
        self,
        stats: Sequence[WorkerStats],
        interval: float = 10.0,
        fmt: Union[str, ReportFormat] = "LFDT",
        out: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], bool]] = None,
        keep_reports: int = MAX_KEPT_REPORTS,
    ):
        if interval <= 0:
            raise ConfigurationError(f"Report interval must be positive, got {interval}")
        if keep_reports < 1:
            raise ValueError("keep_reports must be at least 1")
        self.stats = list(stats)
        self.interval = interval
        self.fmt = fmt if isinstance(fmt, ReportFormat) else ReportFormat(fmt)
        self._out = out
        self._clock = clock
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._thread: Optional[threading.Thread] = None
        self.state = ReporterState.NOT_STARTED
        self.reports: Deque[ProgressReport] = deque(maxlen=keep_reports)

    def _write(self, text: str) -> None:
        out = self._out or sys.stdout
        out.write(text + "\n")
        out.flush()

    def _snapshots(self) -> List[StatsSnapshot]:
        return [s.snapshot() for s in self.stats]

    def stop(self) -> None:
        """Ask the reporting loop to end after its current wait."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> List[ProgressReport]:
        """Report until all files are processed or ``stop()`` is called."""
        self.state = ReporterState.REPORTING
        try:
            self._write(self.fmt.header(len(self.stats)))
            last = self._snapshots()
            start = last_time = self._clock()
            while True:
                if self._sleep(self.interval) or self._stop_event.is_set():
                    logger.debug("Stats reporter interrupted")
                    break
                now = self._clock()
                current = self._snapshots()
                measured = now - last_time
                report = compute_report(
                    last, current,
                    interval_seconds=measured if measured > 0 else self.interval,
                    elapsed_seconds=now - start,
                )
                self.reports.append(report)
                self._write(report.render(self.fmt))
                last, last_time = current, now
                if report.complete:
                    break
        finally:
            self.state = ReporterState.STOPPED
        return list(self.reports)

    def start(self) -> threading.Thread:
        """Run the reporter on its own daemon thread."""
        self._thread = threading.Thread(target=self.run, name="stats-reporter", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
