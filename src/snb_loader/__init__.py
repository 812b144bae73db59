"""
snb-loader: partitioned parallel bulk loader for LDBC SNB datasets.

Turns the generator's delimited vertex and relation files into typed
vertex records and per-source edge batches, loaded by many workers at once.
"""

__version__ = "0.1.0"

from snb_loader.schema import PropertyKind, SnbEntity, SnbRelation
from snb_loader.models import CompositeId, Direction, EdgeBatch, TypedValue, ValueKind, VertexRecord
from snb_loader.errors import (
    SnbLoaderError,
    ConfigurationError,
    FieldParseError,
    FileLoadError,
    LoadFailedError,
    SinkError,
)
from snb_loader.config import LoadMode, RunConfig
from snb_loader.catalog import CatalogEntry, EntryKind, LoadCatalog, discover_catalog
from snb_loader.partition import WorkerAssignment, partition_catalog
from snb_loader.transform import RecordTransformer
from snb_loader.batching import EdgeBatcher, iter_batches
from snb_loader.stats import ProgressReport, ReportFormat, StatsReporter, WorkerStats
from snb_loader.sinks import GraphSink, MemorySink, ParquetImageSink, SinkConfig, create_sink
from snb_loader.loader import LoadCoordinator, LoaderWorker, LoadResult, WorkerState

__all__ = [
    # Schema
    "PropertyKind",
    "SnbEntity",
    "SnbRelation",
    # Records
    "CompositeId",
    "Direction",
    "EdgeBatch",
    "TypedValue",
    "ValueKind",
    "VertexRecord",
    # Errors
    "SnbLoaderError",
    "ConfigurationError",
    "FieldParseError",
    "FileLoadError",
    "LoadFailedError",
    "SinkError",
    # Configuration and catalog
    "LoadMode",
    "RunConfig",
    "CatalogEntry",
    "EntryKind",
    "LoadCatalog",
    "discover_catalog",
    # Loading
    "WorkerAssignment",
    "partition_catalog",
    "RecordTransformer",
    "EdgeBatcher",
    "iter_batches",
    "ProgressReport",
    "ReportFormat",
    "StatsReporter",
    "WorkerStats",
    "GraphSink",
    "MemorySink",
    "ParquetImageSink",
    "SinkConfig",
    "create_sink",
    "LoadCoordinator",
    "LoaderWorker",
    "LoadResult",
    "WorkerState",
]
