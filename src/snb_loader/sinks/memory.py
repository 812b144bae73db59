"""
In-memory sink for tests and dry runs.
"""

from __future__ import annotations

from typing import List, Optional

from snb_loader.models import EdgeBatch, VertexRecord
from snb_loader.sinks.base import GraphSink, SinkConfig


class MemorySink(GraphSink):
    """Keeps every record it receives, in arrival order."""

    def __init__(self, config: Optional[SinkConfig] = None):
        super().__init__(config or SinkConfig())
        self.vertices: List[VertexRecord] = []
        self.batches: List[EdgeBatch] = []

    def _write_vertex(self, vertex: VertexRecord) -> None:
        self.vertices.append(vertex)

    def _write_edges(self, batch: EdgeBatch) -> None:
        self.batches.append(batch)
