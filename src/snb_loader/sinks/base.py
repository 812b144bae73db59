"""
Graph sink contract.

A sink receives the records one worker produces. Each worker owns its own
sink instance, so implementations need no locking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from snb_loader.errors import SinkError
from snb_loader.models import EdgeBatch, VertexRecord


@dataclass(frozen=True)
class SinkConfig:
    """Where and how one worker's sink persists its records."""
    output_dir: Union[str, Path] = "./"
    partition_label: str = "part1.graph"
    rank: int = 0
    flush_rows: int = 100000

    @property
    def partition_dir(self) -> Path:
        return Path(self.output_dir) / self.partition_label


class GraphSink(ABC):
    """Destination for vertices and edge batches."""

    def __init__(self, config: SinkConfig):
        self.config = config
        self._closed = False
        self.vertex_count = 0
        self.edge_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise SinkError(f"Sink for {self.config.partition_label} is closed")

    def load_vertex(self, vertex: VertexRecord) -> None:
        self._check_open()
        self._write_vertex(vertex)
        self.vertex_count += 1

    def load_edges(self, batch: EdgeBatch) -> None:
        """Persist every edge of a batch."""
        self._check_open()
        self._write_edges(batch)
        self.edge_count += len(batch)

    def close(self) -> None:
        """Flush and release resources. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._close()

    @abstractmethod
    def _write_vertex(self, vertex: VertexRecord) -> None:
        ...

    @abstractmethod
    def _write_edges(self, batch: EdgeBatch) -> None:
        ...

    def _close(self) -> None:
        pass

    def __enter__(self) -> "GraphSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
