"""
Tests for worker statistics and the progress reporter.
"""

import io
import threading

import pytest

from snb_loader.errors import ConfigurationError
from snb_loader.stats import (
    ProgressReport,
    ReportFormat,
    ReporterState,
    StatsReporter,
    StatsSnapshot,
    WorkerRates,
    WorkerStats,
    compute_report,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def ticking_sleep(clock, ticks=(), advance=True):
    """Sleep that advances the clock and runs one callback per call."""
    ticks = list(ticks)

    def sleep(seconds):
        if advance:
            clock.now += seconds
        if ticks:
            ticks.pop(0)()
        return False

    return sleep


def cells(*values):
    return "".join(v.rjust(10) for v in values)


# ========== WorkerStats Tests ==========

class TestWorkerStats:
    def test_initial_snapshot(self):
        stats = WorkerStats(files_assigned=3)
        assert stats.snapshot() == StatsSnapshot(files_assigned=3)

    def test_record_line_and_bytes(self):
        stats = WorkerStats(files_assigned=1)
        stats.add_bytes(20)
        stats.record_line(10)
        stats.record_line(15)
        snap = stats.snapshot()
        assert snap.lines_processed == 2
        assert snap.bytes_read == 45

    def test_cannot_process_more_files_than_assigned(self):
        stats = WorkerStats(files_assigned=1)
        stats.file_processed()
        with pytest.raises(RuntimeError):
            stats.file_processed()

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            WorkerStats(files_assigned=-1)
        with pytest.raises(ValueError):
            WorkerStats().add_bytes(-5)

    def test_snapshots_are_monotonic_under_concurrent_writes(self):
        """A reader never sees a counter go backwards."""
        stats = WorkerStats(files_assigned=0)
        done = threading.Event()

        def writer():
            for _ in range(20000):
                stats.record_line(3)
            done.set()

        t = threading.Thread(target=writer)
        t.start()
        last = stats.snapshot()
        while not done.is_set():
            snap = stats.snapshot()
            assert snap.lines_processed >= last.lines_processed
            assert snap.bytes_read >= last.bytes_read
            assert snap.bytes_read == 3 * snap.lines_processed
            last = snap
        t.join()
        assert stats.snapshot().lines_processed == 20000


# ========== ReportFormat Tests ==========

class TestReportFormat:
    def test_unknown_flag(self):
        with pytest.raises(ConfigurationError):
            ReportFormat("LQ")

    def test_contains(self):
        fmt = ReportFormat("lT")
        assert "l" in fmt
        assert "T" in fmt
        assert "L" not in fmt

    def test_header(self):
        fmt = ReportFormat("lfL")
        assert fmt.header(2) == cells("0.l", "0.f", "1.l", "1.f", "L")

    def test_header_order_ignores_flag_order(self):
        assert ReportFormat("TDFL").header(1) == ReportFormat("LFDT").header(1)


# ========== ProgressReport Tests ==========

class TestProgressReport:
    def test_render_all_columns(self):
        report = ProgressReport(
            elapsed_seconds=125,
            workers=[WorkerRates(line_rate=1500, byte_rate=2500000, files_processed=1, files_assigned=3)],
        )
        assert report.render(ReportFormat("lfdLFDT")) == cells(
            "1500", "(1/3)", "2500KB/s", "1500", "(1/3)", "2MB/s", "2m"
        )

    def test_totals(self):
        report = ProgressReport(elapsed_seconds=0, workers=[
            WorkerRates(10, 100, 1, 2),
            WorkerRates(20, 200, 2, 2),
        ])
        assert report.total_line_rate == 30
        assert report.total_byte_rate == 300
        assert report.files_processed == 3
        assert report.files_assigned == 4
        assert not report.complete

    def test_compute_report_rates(self):
        previous = [StatsSnapshot(lines_processed=100, bytes_read=1000, files_assigned=2)]
        current = [StatsSnapshot(lines_processed=600, bytes_read=6000, files_processed=1, files_assigned=2)]
        report = compute_report(previous, current, interval_seconds=5.0, elapsed_seconds=5.0)
        assert report.workers[0].line_rate == 100
        assert report.workers[0].byte_rate == 1000
        assert report.workers[0].files_processed == 1


# ========== StatsReporter Tests ==========

class TestStatsReporter:
    def test_reports_until_complete(self):
        clock = FakeClock()
        stats = WorkerStats(files_assigned=2)

        def first():
            for _ in range(100):
                stats.record_line(10)
            stats.file_processed()

        out = io.StringIO()
        reporter = StatsReporter(
            [stats], interval=1.0, fmt="lfdLFDT", out=out,
            clock=clock, sleep=ticking_sleep(clock, [first, stats.file_processed]),
        )
        reports = reporter.run()

        assert len(reports) == 2
        assert reports[0].workers[0].line_rate == 100
        assert reports[0].workers[0].byte_rate == 1000
        assert reports[0].files_processed == 1
        assert reports[1].complete
        assert reports[1].total_line_rate == 0
        lines = out.getvalue().splitlines()
        assert len(lines) == 3
        assert lines[0] == ReportFormat("lfdLFDT").header(1)
        assert reporter.state == ReporterState.STOPPED

    def test_no_assigned_files_completes_on_first_row(self):
        clock = FakeClock()
        reporter = StatsReporter(
            [WorkerStats(0), WorkerStats(0)], interval=10, out=io.StringIO(),
            clock=clock, sleep=ticking_sleep(clock),
        )
        reports = reporter.run()
        assert len(reports) == 1
        assert reports[0].complete

    def test_elapsed_minutes(self):
        clock = FakeClock()
        stats = WorkerStats(files_assigned=1)
        out = io.StringIO()
        reporter = StatsReporter(
            [stats], interval=90, fmt="T", out=out,
            clock=clock, sleep=ticking_sleep(clock, [lambda: None, stats.file_processed]),
        )
        reporter.run()
        assert out.getvalue().splitlines()[1:] == [cells("1m"), cells("3m")]

    def test_rate_falls_back_to_interval_when_clock_stalls(self):
        clock = FakeClock()
        stats = WorkerStats(files_assigned=1)

        def work():
            for _ in range(50):
                stats.record_line(1)
            stats.file_processed()

        reporter = StatsReporter(
            [stats], interval=5, out=io.StringIO(),
            clock=clock, sleep=ticking_sleep(clock, [work], advance=False),
        )
        (report,) = reporter.run()
        assert report.total_line_rate == 10

    def test_stop_interrupts_wait(self):
        """stop() ends the loop without another row."""
        reporter = StatsReporter([WorkerStats(1)], interval=60, out=io.StringIO())
        reporter.start()
        reporter.stop()
        reporter.join(timeout=5)
        assert reporter.state == ReporterState.STOPPED
        assert list(reporter.reports) == []

    def test_stop_with_injected_sleep(self):
        clock = FakeClock()
        reporter = StatsReporter(
            [WorkerStats(1)], interval=1, out=io.StringIO(),
            clock=clock, sleep=ticking_sleep(clock),
        )
        reporter.stop()
        assert reporter.run() == []

    def test_kept_reports_are_capped(self):
        clock = FakeClock()
        stats = WorkerStats(files_assigned=1)
        ticks = [lambda: stats.record_line(1)] * 9 + [stats.file_processed]
        out = io.StringIO()
        reporter = StatsReporter(
            [stats], interval=1, fmt="F", out=out,
            clock=clock, sleep=ticking_sleep(clock, ticks), keep_reports=3,
        )
        reports = reporter.run()

        assert len(out.getvalue().splitlines()) == 11
        assert len(reports) == 3
        assert len(reporter.reports) == 3
        assert [r.elapsed_seconds for r in reports] == [8.0, 9.0, 10.0]
        assert reports[-1].complete

    def test_invalid_keep_reports(self):
        with pytest.raises(ValueError):
            StatsReporter([WorkerStats(1)], interval=1, keep_reports=0)

    def test_invalid_interval(self):
        with pytest.raises(ConfigurationError):
            StatsReporter([WorkerStats(1)], interval=0)

    def test_invalid_format(self):
        with pytest.raises(ConfigurationError):
            StatsReporter([WorkerStats(1)], interval=1, fmt="z")
