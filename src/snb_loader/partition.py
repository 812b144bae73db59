"""
Work partitioning across loader instances and their threads.

Every worker has a global rank ``loader_idx * num_threads + thread_idx`` and
takes the catalog entries at positions ``rank``, ``rank + total``,
``rank + 2 * total``, ... where ``total = num_loaders * num_threads``.
Striping rather than chunking spreads large files, which the catalog lists
next to each other, over all workers. The result depends only on the catalog
order and the layout, so loader processes never need to coordinate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from snb_loader.catalog import CatalogEntry
from snb_loader.errors import ConfigurationError


@dataclass(frozen=True)
class WorkerAssignment:
    """The ordered files one worker loads."""
    rank: int
    total_workers: int
    entries: Tuple[CatalogEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)


def validate_layout(num_loaders: int, loader_idx: int, num_threads: int) -> None:
    """Raise ConfigurationError unless the loader/thread layout is usable."""
    if num_loaders <= 0:
        raise ConfigurationError(f"numLoaders must be positive, got {num_loaders}")
    if num_threads <= 0:
        raise ConfigurationError(f"numThreads must be positive, got {num_threads}")
    if loader_idx < 0 or loader_idx >= num_loaders:
        raise ConfigurationError(
            f"loaderIdx must be in [0, {num_loaders}), got {loader_idx}"
        )


def worker_rank(loader_idx: int, thread_idx: int, num_threads: int) -> int:
    return loader_idx * num_threads + thread_idx


def files_for_rank(catalog_size: int, rank: int, total_workers: int) -> int:
    """Number of entries striping gives to ``rank``."""
    q, r = divmod(catalog_size, total_workers)
    return q + 1 if rank < r else q


def assign_worker(
    catalog: Sequence[CatalogEntry],
    rank: int,
    total_workers: int,
) -> WorkerAssignment:
    entries = tuple(catalog[pos] for pos in range(rank, len(catalog), total_workers))
    return WorkerAssignment(rank=rank, total_workers=total_workers, entries=entries)


def partition_catalog(
    catalog: Sequence[CatalogEntry],
    num_loaders: int,
    loader_idx: int,
    num_threads: int,
) -> List[WorkerAssignment]:
    """
    Compute this loader's per-thread assignments.

    Args:
        catalog: Full, ordered catalog (identical on every loader)
        num_loaders: Total loader instances
        loader_idx: This loader's index, 0-based
        num_threads: Threads per loader

    Returns:
        ``num_threads`` assignments, indexed by thread

    Raises:
        ConfigurationError: If the layout is invalid
    """
    validate_layout(num_loaders, loader_idx, num_threads)
    total = num_loaders * num_threads
    return [
        assign_worker(catalog, worker_rank(loader_idx, t, num_threads), total)
        for t in range(num_threads)
    ]
