"""
Edge batching by contiguous source vertex.

Relation files list all edges of a source vertex on consecutive lines (the
generator sorts them), so a batch is closed as soon as the source id
changes. Input is not re-sorted: a source whose lines are not contiguous
produces one batch per run.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from snb_loader.models import CompositeId, Direction, EdgeBatch, TypedValue
from snb_loader.transform import EdgeRow


class EdgeBatcher:
    """
    Accumulates rows for the current source vertex.

    Example:
        batcher = EdgeBatcher("knows", Direction.OUT, "Person", carries_properties=True)
        for row in rows:
            batch = batcher.add(row)
            if batch is not None:
                sink.load_edges(batch)
        batch = batcher.finish()
    """

    def __init__(
        self,
        relation_name: str,
        direction: Direction,
        target_label: str,
        carries_properties: bool = False,
    ):
        self.relation_name = relation_name
        self.direction = direction
        self.target_label = target_label
        self.carries_properties = carries_properties

        self._source: Optional[CompositeId] = None
        self._targets: List[CompositeId] = []
        self._properties: List[Dict[str, TypedValue]] = []

        self.rows_seen = 0
        self.batches_emitted = 0

    @property
    def pending(self) -> int:
        """Rows buffered for the current source."""
        return len(self._targets)

    def _take(self) -> EdgeBatch:
        batch = EdgeBatch(
            source_id=self._source,
            relation_name=self.relation_name,
            direction=self.direction,
            target_label=self.target_label,
            targets=self._targets,
            per_target_properties=self._properties,
        )
        self._targets = []
        self._properties = []
        self.batches_emitted += 1
        return batch

    def add(self, row: EdgeRow) -> Optional[EdgeBatch]:
        """Buffer a row; returns the previous source's batch when the source changes."""
        completed = None
        if self._source is not None and row.source_id != self._source:
            completed = self._take()
        self._source = row.source_id

        self._targets.append(row.target_id)
        if self.carries_properties:
            self._properties.append(row.properties if row.properties is not None else {})
        self.rows_seen += 1
        return completed

    def finish(self) -> Optional[EdgeBatch]:
        """Flush the last run at end of file."""
        if not self._targets:
            return None
        batch = self._take()
        self._source = None
        return batch


def iter_batches(
    rows: Iterable[EdgeRow],
    relation_name: str,
    direction: Direction,
    target_label: str,
    carries_properties: bool = False,
) -> Iterator[EdgeBatch]:
    """Lazily group rows into batches, one per maximal run of a source id."""
    batcher = EdgeBatcher(relation_name, direction, target_label, carries_properties)
    for row in rows:
        batch = batcher.add(row)
        if batch is not None:
            yield batch
    last = batcher.finish()
    if last is not None:
        yield last
