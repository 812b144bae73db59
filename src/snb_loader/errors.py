"""
Exceptions raised by the SNB loader.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple


class SnbLoaderError(Exception):
    """Base class for loader errors."""
    pass


class ConfigurationError(SnbLoaderError):
    """Invalid run configuration; raised before any worker starts."""
    pass


class SinkError(SnbLoaderError):
    """A graph sink failed to persist or close."""
    pass


class FieldParseError(SnbLoaderError):
    """A raw field could not be coerced to its schema type."""

    def __init__(
        self,
        field: str,
        raw_value: Optional[str],
        line_number: int,
        line: Optional[str] = None,
        reason: str = "",
    ):
        self.field = field
        self.raw_value = raw_value
        self.line_number = line_number
        self.line = line
        self.reason = reason
        message = (
            f"Encountered error processing field {field} with value {raw_value} "
            f"of line {line_number}"
        )
        if reason:
            message += f" ({reason})"
        if line is not None:
            message += f'. Line: "{line}"'
        super().__init__(message)


class FileLoadError(SnbLoaderError):
    """A worker could not load one of its files. The cause is chained."""

    def __init__(self, path: Path, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path.name}: {message}")


class LoadFailedError(SnbLoaderError):
    """One or more workers aborted, or sinks failed to close."""

    def __init__(self, failures: List[Tuple[int, BaseException]]):
        self.failures = failures
        if failures:
            rank, first = failures[0]
            message = f"{len(failures)} failure(s); first in worker {rank}: {first}"
        else:
            message = "load failed"
        super().__init__(message)
