"""
Graph sinks: where loader workers put their records.
"""

from snb_loader.errors import ConfigurationError
from snb_loader.sinks.base import GraphSink, SinkConfig
from snb_loader.sinks.memory import MemorySink
from snb_loader.sinks.parquet import ParquetImageSink

SINK_TYPES = {
    "memory": MemorySink,
    "parquet": ParquetImageSink,
}


def create_sink(kind: str, config: SinkConfig) -> GraphSink:
    """Build a sink of the named kind."""
    try:
        sink_cls = SINK_TYPES[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown sink {kind!r}; expected one of {', '.join(SINK_TYPES)}"
        ) from None
    return sink_cls(config)


__all__ = [
    "GraphSink",
    "SinkConfig",
    "MemorySink",
    "ParquetImageSink",
    "SINK_TYPES",
    "create_sink",
]
