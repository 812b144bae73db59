"""
Run configuration for a loader process.

Provides:
- LoadMode: which part of the dataset to load
- RunConfig: every knob of a run, with validation and YAML round-trip
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from snb_loader.errors import ConfigurationError

logger = logging.getLogger(__name__)

SINK_KINDS = ("parquet", "memory")

# Accepted value types of the settings read from YAML; bool is never a number here.
_INT_KEYS = ("num_loaders", "loader_idx", "num_threads", "sink_flush_rows")
_NUMBER_KEYS = ("report_interval",)
_STRING_KEYS = ("base_dir", "supp_dir", "mode", "output_dir", "graph_name", "report_format", "sink")


class LoadMode(Enum):
    """Dataset subset to load."""
    NODES = "nodes"
    EDGES = "edges"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union[str, "LoadMode"]) -> "LoadMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Unknown load mode {value!r}; expected one of {valid}") from None


@dataclass
class RunConfig:
    """
    Configuration of one loader process.

    ``base_dir`` holds the generator's output; ``supp_dir`` holds the
    supplementary files (merged person files, reverse-indexed and
    undirected relation files).
    """
    base_dir: str
    supp_dir: str
    mode: LoadMode = LoadMode.ALL
    output_dir: str = "./"
    graph_name: str = "graph"
    num_loaders: int = 1
    loader_idx: int = 0
    num_threads: int = 1
    report_interval: float = 10.0
    report_format: str = "LFDT"
    sink: str = "parquet"
    sink_flush_rows: int = 100000

    def __post_init__(self):
        self.mode = LoadMode.parse(self.mode)

    @property
    def total_workers(self) -> int:
        return self.num_loaders * self.num_threads

    def partition_label(self, thread_idx: int) -> str:
        """Name of the image partition written by one of this loader's threads."""
        rank = self.loader_idx * self.num_threads + thread_idx
        return f"part{rank + 1}.{self.graph_name}"

    def validate(self) -> None:
        """
        Check the configuration before any thread is started.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        from snb_loader.partition import validate_layout
        from snb_loader.stats import ReportFormat

        validate_layout(self.num_loaders, self.loader_idx, self.num_threads)
        if self.report_interval <= 0:
            raise ConfigurationError(f"reportInt must be positive, got {self.report_interval}")
        ReportFormat(self.report_format)
        if self.sink not in SINK_KINDS:
            raise ConfigurationError(f"Unknown sink {self.sink!r}; expected one of {', '.join(SINK_KINDS)}")
        if self.sink_flush_rows <= 0:
            raise ConfigurationError(f"sink_flush_rows must be positive, got {self.sink_flush_rows}")
        if not self.graph_name:
            raise ConfigurationError("graph_name must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_dir": self.base_dir,
            "supp_dir": self.supp_dir,
            "mode": self.mode.value,
            "output_dir": self.output_dir,
            "graph_name": self.graph_name,
            "num_loaders": self.num_loaders,
            "loader_idx": self.loader_idx,
            "num_threads": self.num_threads,
            "report_interval": self.report_interval,
            "report_format": self.report_format,
            "sink": self.sink,
            "sink_flush_rows": self.sink_flush_rows,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(unknown)}")
        for required in ("base_dir", "supp_dir"):
            if data.get(required) is None:
                raise ConfigurationError(f"Missing required configuration key: {required}")
        _check_types(data)
        return cls(**data)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RunConfig":
        """Load a configuration file holding a complete YAML mapping."""
        return cls.from_dict(read_config_file(path))


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML configuration mapping without building a RunConfig.

    The CLI merges its flags over this mapping before validation, so keys
    such as ``base_dir`` may be absent here.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    logger.debug(f"Loaded configuration from {path}")
    return doc


def _check_types(data: Dict[str, Any]) -> None:
    """Reject values of the wrong type before they reach validation."""
    for key, value in data.items():
        if key in _INT_KEYS:
            ok = isinstance(value, int) and not isinstance(value, bool)
            expected = "an integer"
        elif key in _NUMBER_KEYS:
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            expected = "a number"
        elif key == "mode":
            ok = isinstance(value, (str, LoadMode))
            expected = "a string"
        elif key in _STRING_KEYS:
            ok = isinstance(value, str)
            expected = "a string"
        else:
            continue
        if not ok:
            raise ConfigurationError(
                f"Configuration key {key} must be {expected}, got {type(value).__name__} {value!r}"
            )
