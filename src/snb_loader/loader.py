"""
Parallel bulk loading of an LDBC SNB dataset into graph sinks.

Provides:
- LoaderWorker: loads its assigned files, in order, into its own sink
- LoadCoordinator: partitions the catalog, runs one thread per worker plus
  the stats reporter, and collects the outcome
- LoadResult: per-worker outcome with failure reporting

Workers share nothing but the read-only catalog. A worker that hits a bad
file stops and reports the error; the other workers keep going.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from snb_loader.batching import EdgeBatcher
from snb_loader.catalog import CatalogEntry, LoadCatalog, discover_catalog
from snb_loader.config import RunConfig
from snb_loader.errors import FileLoadError, LoadFailedError
from snb_loader.models import EdgeBatch
from snb_loader.partition import WorkerAssignment, partition_catalog
from snb_loader.sinks import GraphSink, SinkConfig, create_sink
from snb_loader.stats import ProgressReport, StatsReporter, WorkerStats
from snb_loader.transform import RecordTransformer, read_header, read_lines

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Lifecycle of a loader worker."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LoaderWorker:
    """
    Loads one worker's assignment into a sink.

    ``run()`` is the thread target. It never raises: a failure while
    loading a file is wrapped in FileLoadError, logged, stored in ``error``,
    and ends the worker in FAILED.
    """

    def __init__(
        self,
        assignment: WorkerAssignment,
        sink: GraphSink,
        stats: Optional[WorkerStats] = None,
    ):
        self.assignment = assignment
        self.sink = sink
        self.stats = stats or WorkerStats(files_assigned=len(assignment))
        if self.stats.files_assigned != len(assignment):
            raise ValueError(
                f"stats expect {self.stats.files_assigned} files, assignment has {len(assignment)}"
            )
        self.state = WorkerState.IDLE
        self.error: Optional[FileLoadError] = None
        self.vertices_loaded = 0
        self.edges_loaded = 0

    @property
    def rank(self) -> int:
        return self.assignment.rank

    @property
    def name(self) -> str:
        return f"loader-{self.rank}"

    def run(self) -> None:
        if self.state != WorkerState.IDLE:
            raise RuntimeError(f"Worker {self.rank} already ran ({self.state.value})")
        self.state = WorkerState.RUNNING
        logger.info(f"Worker {self.rank} starting with {len(self.assignment)} files")

        for entry in self.assignment:
            try:
                self.load_file(entry)
            except Exception as e:
                self.error = FileLoadError(entry.path, str(e))
                self.error.__cause__ = e
                self.state = WorkerState.FAILED
                logger.error(f"Worker {self.rank} aborted on {entry.path}: {e}")
                return

        self.state = WorkerState.COMPLETED
        logger.info(
            f"Worker {self.rank} finished: {self.vertices_loaded} vertices, "
            f"{self.edges_loaded} edges"
        )

    def load_file(self, entry: CatalogEntry) -> None:
        """Load every line of one file, then mark it processed."""
        logger.info(f"Loading file {entry.path}")
        with open(entry.path, "rb") as fh:
            header = read_header(fh)
            if header is None:
                logger.warning(f"{entry.path} is empty")
            else:
                self.stats.add_bytes(header.nbytes)
                transformer = RecordTransformer.from_header(entry, header)
                if entry.is_vertex_file:
                    self._load_vertices(transformer, fh)
                else:
                    self._load_edges(entry, transformer, fh)
        self.stats.file_processed()

    def _load_vertices(self, transformer: RecordTransformer, fh) -> None:
        for line in read_lines(fh):
            self.sink.load_vertex(transformer.parse_vertex(line))
            self.vertices_loaded += 1
            self.stats.record_line(line.nbytes)

    def _load_edges(self, entry: CatalogEntry, transformer: RecordTransformer, fh) -> None:
        batcher = EdgeBatcher(
            entry.relation.relation_name,
            entry.direction,
            entry.target_entity.label,
            carries_properties=transformer.carries_properties,
        )
        for line in read_lines(fh):
            batch = batcher.add(transformer.parse_edge(line))
            if batch is not None:
                self._emit(batch)
            self.stats.record_line(line.nbytes)
        batch = batcher.finish()
        if batch is not None:
            self._emit(batch)

    def _emit(self, batch: EdgeBatch) -> None:
        self.sink.load_edges(batch)
        self.edges_loaded += len(batch)


# ========== Coordination ==========

@dataclass
class WorkerOutcome:
    """Final state of one worker."""
    rank: int
    state: WorkerState
    files_processed: int
    files_assigned: int
    lines_processed: int
    vertices_loaded: int
    edges_loaded: int
    error: Optional[FileLoadError] = None

    @classmethod
    def from_worker(cls, worker: LoaderWorker) -> "WorkerOutcome":
        snap = worker.stats.snapshot()
        return cls(
            rank=worker.rank,
            state=worker.state,
            files_processed=snap.files_processed,
            files_assigned=snap.files_assigned,
            lines_processed=snap.lines_processed,
            vertices_loaded=worker.vertices_loaded,
            edges_loaded=worker.edges_loaded,
            error=worker.error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "state": self.state.value,
            "files_processed": self.files_processed,
            "files_assigned": self.files_assigned,
            "lines_processed": self.lines_processed,
            "vertices_loaded": self.vertices_loaded,
            "edges_loaded": self.edges_loaded,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class LoadResult:
    """Outcome of a loader process run."""
    workers: List[WorkerOutcome] = field(default_factory=list)
    reports: List[ProgressReport] = field(default_factory=list)
    close_errors: List[Tuple[int, BaseException]] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def failures(self) -> List[Tuple[int, BaseException]]:
        failed = [(w.rank, w.error) for w in self.workers if w.state == WorkerState.FAILED]
        return failed + list(self.close_errors)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def files_processed(self) -> int:
        return sum(w.files_processed for w in self.workers)

    @property
    def lines_processed(self) -> int:
        return sum(w.lines_processed for w in self.workers)

    def raise_on_failure(self) -> None:
        """
        Raises:
            LoadFailedError: If any worker failed or any sink failed to close
        """
        if not self.succeeded:
            raise LoadFailedError(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "elapsed_seconds": self.elapsed_seconds,
            "workers": [w.to_dict() for w in self.workers],
            "close_errors": [(rank, str(e)) for rank, e in self.close_errors],
        }


SinkFactory = Callable[[SinkConfig], GraphSink]


class LoadCoordinator:
    """
    Runs one loader process: ``num_threads`` workers over this loader's
    share of the catalog.

    Args:
        config: Run configuration (validated before anything starts)
        catalog: Pre-built catalog; discovered from the config's directories if None
        sink_factory: Builds each worker's sink; defaults to the configured sink kind
        out: Stream for the progress table
        clock: Time source for the reporter and the elapsed time
        sleep: Reporter wait function (see StatsReporter)
    """

    def __init__(
        self,
        config: RunConfig,
        catalog: Optional[LoadCatalog] = None,
        sink_factory: Optional[SinkFactory] = None,
        out: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], bool]] = None,
    ):
        self.config = config
        self.catalog = catalog
        self.sink_factory = sink_factory or (lambda sink_config: create_sink(config.sink, sink_config))
        self._out = out
        self._clock = clock
        self._sleep = sleep
        self.workers: List[LoaderWorker] = []
        self.sinks: List[Tuple[int, GraphSink]] = []

    def _sink_config(self, thread_idx: int, rank: int) -> SinkConfig:
        return SinkConfig(
            output_dir=self.config.output_dir,
            partition_label=self.config.partition_label(thread_idx),
            rank=rank,
            flush_rows=self.config.sink_flush_rows,
        )

    def _close_sinks(self) -> List[Tuple[int, BaseException]]:
        errors = []
        for worker_rank, sink in self.sinks:
            try:
                sink.close()
            except Exception as e:
                logger.error(f"Closing sink of worker {worker_rank} failed: {e}")
                errors.append((worker_rank, e))
        return errors

    def run(self) -> LoadResult:
        """
        Load this process's share of the dataset.

        Raises:
            ConfigurationError: If the configuration or directories are invalid
        """
        config = self.config
        config.validate()
        catalog = self.catalog
        if catalog is None:
            catalog = discover_catalog(config.base_dir, config.supp_dir, config.mode)

        assignments = partition_catalog(
            catalog,
            config.num_loaders, config.loader_idx, config.num_threads,
        )
        logger.info(
            f"Loader {config.loader_idx}/{config.num_loaders}: {len(catalog)} catalog entries, "
            f"{config.num_threads} threads, {sum(len(a) for a in assignments)} files assigned"
        )

        self.sinks = []
        try:
            for thread_idx, assignment in enumerate(assignments):
                sink = self.sink_factory(self._sink_config(thread_idx, assignment.rank))
                self.sinks.append((assignment.rank, sink))
        except Exception:
            self._close_sinks()
            raise
        self.workers = [
            LoaderWorker(assignment, sink)
            for assignment, (_, sink) in zip(assignments, self.sinks)
        ]

        reporter = StatsReporter(
            [w.stats for w in self.workers],
            interval=config.report_interval,
            fmt=config.report_format,
            out=self._out,
            clock=self._clock,
            sleep=self._sleep,
        )

        start = self._clock()
        threads = [threading.Thread(target=w.run, name=w.name) for w in self.workers]
        reporter.start()
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        if any(w.state == WorkerState.FAILED for w in self.workers):
            reporter.stop()
        reporter.join()

        close_errors = self._close_sinks()
        result = LoadResult(
            workers=[WorkerOutcome.from_worker(w) for w in self.workers],
            reports=list(reporter.reports),
            close_errors=close_errors,
            elapsed_seconds=self._clock() - start,
        )
        if result.succeeded:
            logger.info(
                f"Load complete: {result.files_processed} files, "
                f"{result.lines_processed} lines in {result.elapsed_seconds:.1f}s"
            )
        else:
            logger.error(f"Load finished with {len(result.failures)} failure(s)")
        return result
