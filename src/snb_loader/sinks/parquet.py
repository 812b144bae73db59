"""
Parquet image sink.

Writes one worker's records as numbered Parquet segments under
``<output_dir>/<partition label>/``:

    vertices_000001.parquet, vertices_000002.parquet, ...
    edges_000001.parquet, ...

Rows are buffered and a segment is written whenever ``flush_rows`` rows of
one kind are pending, and once more on close. Segments already in the
partition directory are removed when the sink opens. Properties are stored
as JSON text so that every entity and relation shares one column layout.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import polars as pl

from snb_loader.errors import SinkError
from snb_loader.models import EdgeBatch, VertexRecord, plain_properties
from snb_loader.sinks.base import GraphSink, SinkConfig

logger = logging.getLogger(__name__)

VERTEX_PREFIX = "vertices"
EDGE_PREFIX = "edges"

VERTEX_SCHEMA = {
    "id_space": pl.Int32,
    "local_id": pl.Int64,
    "label": pl.Utf8,
    "properties": pl.Utf8,
}

EDGE_SCHEMA = {
    "source_id_space": pl.Int32,
    "source_local_id": pl.Int64,
    "relation": pl.Utf8,
    "direction": pl.Utf8,
    "target_label": pl.Utf8,
    "target_id_space": pl.Int32,
    "target_local_id": pl.Int64,
    "properties": pl.Utf8,
}


class ParquetImageSink(GraphSink):
    """Columnar image files for one loader worker."""

    def __init__(self, config: SinkConfig):
        super().__init__(config)
        self.directory = config.partition_dir
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkError(f"Cannot create image directory {self.directory}: {e}") from e
        self._clear_segments()

        self._vertex_rows: Dict[str, List[Any]] = {name: [] for name in VERTEX_SCHEMA}
        self._edge_rows: Dict[str, List[Any]] = {name: [] for name in EDGE_SCHEMA}
        self._segments = {VERTEX_PREFIX: 0, EDGE_PREFIX: 0}

    def _clear_segments(self) -> None:
        """Remove segments left in the partition directory by an earlier run."""
        stale = self.segment_paths(VERTEX_PREFIX) + self.segment_paths(EDGE_PREFIX)
        for path in stale:
            try:
                path.unlink()
            except OSError as e:
                raise SinkError(f"Cannot remove old segment {path}: {e}") from e
        if stale:
            logger.info(f"Removed {len(stale)} old segments from {self.directory}")

    # ========== Buffering ==========

    def _write_vertex(self, vertex: VertexRecord) -> None:
        rows = self._vertex_rows
        rows["id_space"].append(vertex.id.id_space)
        rows["local_id"].append(vertex.id.local_id)
        rows["label"].append(vertex.label)
        rows["properties"].append(json.dumps(plain_properties(vertex.properties)))
        if len(rows["local_id"]) >= self.config.flush_rows:
            self._flush(VERTEX_PREFIX, rows, VERTEX_SCHEMA)

    def _write_edges(self, batch: EdgeBatch) -> None:
        rows = self._edge_rows
        for i, target in enumerate(batch.targets):
            rows["source_id_space"].append(batch.source_id.id_space)
            rows["source_local_id"].append(batch.source_id.local_id)
            rows["relation"].append(batch.relation_name)
            rows["direction"].append(batch.direction.value)
            rows["target_label"].append(batch.target_label)
            rows["target_id_space"].append(target.id_space)
            rows["target_local_id"].append(target.local_id)
            if batch.per_target_properties:
                rows["properties"].append(json.dumps(plain_properties(batch.per_target_properties[i])))
            else:
                rows["properties"].append(None)
        if len(rows["source_local_id"]) >= self.config.flush_rows:
            self._flush(EDGE_PREFIX, rows, EDGE_SCHEMA)

    def _flush(self, prefix: str, rows: Dict[str, List[Any]], schema: Dict[str, Any]) -> None:
        count = len(next(iter(rows.values())))
        if count == 0:
            return
        self._segments[prefix] += 1
        path = self.directory / f"{prefix}_{self._segments[prefix]:06d}.parquet"
        df = pl.DataFrame(
            {name: pl.Series(values, dtype=schema[name]) for name, values in rows.items()}
        )
        try:
            df.write_parquet(path)
        except OSError as e:
            raise SinkError(f"Failed to write segment {path}: {e}") from e
        for values in rows.values():
            values.clear()
        logger.debug(f"Wrote {count} rows to {path}")

    def flush(self) -> None:
        """Write any buffered rows as new segments."""
        self._check_open()
        self._flush(VERTEX_PREFIX, self._vertex_rows, VERTEX_SCHEMA)
        self._flush(EDGE_PREFIX, self._edge_rows, EDGE_SCHEMA)

    def _close(self) -> None:
        self._flush(VERTEX_PREFIX, self._vertex_rows, VERTEX_SCHEMA)
        self._flush(EDGE_PREFIX, self._edge_rows, EDGE_SCHEMA)
        logger.info(
            f"Closed image {self.config.partition_label}: "
            f"{self.vertex_count} vertices, {self.edge_count} edges"
        )

    # ========== Inspection ==========

    @property
    def segment_count(self) -> int:
        return sum(self._segments.values())

    def segment_paths(self, prefix: str) -> List[Path]:
        return sorted(self.directory.glob(f"{prefix}_*.parquet"))

    def _read(self, prefix: str, schema: Dict[str, Any]) -> pl.DataFrame:
        paths = self.segment_paths(prefix)
        if not paths:
            return pl.DataFrame(schema=schema)
        return pl.concat([pl.read_parquet(p) for p in paths])

    def read_vertices(self) -> pl.DataFrame:
        """All vertex rows written so far, in segment order."""
        return self._read(VERTEX_PREFIX, VERTEX_SCHEMA)

    def read_edges(self) -> pl.DataFrame:
        return self._read(EDGE_PREFIX, EDGE_SCHEMA)
