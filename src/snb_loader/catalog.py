"""
Load catalog: the typed list of dataset files to load.

Provides:
- EntryKind / CatalogEntry: one input file and what it represents
- LoadCatalog: immutable, ordered list of entries
- discover_catalog: filesystem scan following the generator's file naming
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Pattern, Tuple, Union

from snb_loader.config import LoadMode
from snb_loader.errors import ConfigurationError
from snb_loader.models import Direction
from snb_loader.schema import SnbEntity, SnbRelation

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    VERTEX_FILE = "vertex"
    EDGE_FILE = "edge"


@dataclass(frozen=True)
class CatalogEntry:
    """
    A single dataset file tagged with the entity or relation it holds.

    Use the ``vertex_file`` and ``edge_file`` constructors rather than
    building entries field by field.
    """
    kind: EntryKind
    path: Path
    entity: Optional[SnbEntity] = None
    relation: Optional[SnbRelation] = None
    reverse_indexed: bool = False

    def __post_init__(self):
        if self.kind == EntryKind.VERTEX_FILE and (self.entity is None or self.relation is not None):
            raise ValueError("Vertex file entries need an entity and no relation")
        if self.kind == EntryKind.EDGE_FILE and (self.relation is None or self.entity is not None):
            raise ValueError("Edge file entries need a relation and no entity")
        if self.reverse_indexed and self.kind != EntryKind.EDGE_FILE:
            raise ValueError("Only edge files can be reverse indexed")

    @classmethod
    def vertex_file(cls, entity: SnbEntity, path: Union[str, Path]) -> "CatalogEntry":
        return cls(kind=EntryKind.VERTEX_FILE, path=Path(path), entity=entity)

    @classmethod
    def edge_file(
        cls,
        relation: SnbRelation,
        path: Union[str, Path],
        reverse_indexed: bool = False,
    ) -> "CatalogEntry":
        return cls(
            kind=EntryKind.EDGE_FILE,
            path=Path(path),
            relation=relation,
            reverse_indexed=reverse_indexed,
        )

    @property
    def is_vertex_file(self) -> bool:
        return self.kind == EntryKind.VERTEX_FILE

    @property
    def subject(self) -> Union[SnbEntity, SnbRelation]:
        return self.entity if self.is_vertex_file else self.relation

    @property
    def direction(self) -> Direction:
        """OUT for forward files (tail|head), IN for reverse-indexed ones (head|tail)."""
        return Direction.IN if self.reverse_indexed else Direction.OUT

    @property
    def source_entity(self) -> SnbEntity:
        """Entity whose ids appear in the first column of an edge file."""
        return self.relation.head if self.reverse_indexed else self.relation.tail

    @property
    def target_entity(self) -> SnbEntity:
        return self.relation.tail if self.reverse_indexed else self.relation.head

    def describe(self) -> str:
        if self.is_vertex_file:
            return f"{self.entity.file_tag} nodes ({self.path})"
        suffix = " [reverse]" if self.reverse_indexed else ""
        return f"{self.relation.describe()} edges{suffix} ({self.path})"


class LoadCatalog:
    """Ordered, read-only sequence of catalog entries."""

    def __init__(self, entries: Iterable[CatalogEntry] = ()):
        self._entries: Tuple[CatalogEntry, ...] = tuple(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> CatalogEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LoadCatalog):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"LoadCatalog({len(self._entries)} entries)"

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def vertex_file_count(self) -> int:
        return sum(1 for e in self._entries if e.is_vertex_file)

    @property
    def edge_file_count(self) -> int:
        return len(self._entries) - self.vertex_file_count


# ========== Discovery ==========

_PART_SUFFIX = r"_[0-9]+_[0-9]+\.csv$"


def _list_matching(directory: Path, pattern: Pattern[str]) -> List[Path]:
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and pattern.match(p.name)
    )


def _require_dir(path: Union[str, Path]) -> Path:
    directory = Path(path)
    if not directory.is_dir():
        raise ConfigurationError(f"Dataset directory not found: {directory}")
    return directory


def discover_catalog(
    base_dir: Union[str, Path],
    supp_dir: Union[str, Path],
    mode: LoadMode = LoadMode.ALL,
) -> LoadCatalog:
    """
    Scan the dataset directories and build the load catalog.

    Person files and reverse-indexed / undirected relation files come from the
    supplementary directory; everything else from the base directory. Entry
    order is registry order, then file name, so every loader instance scanning
    the same directories builds the same catalog.

    Args:
        base_dir: Directory holding the generator's original files
        supp_dir: Directory holding the supplementary files
        mode: Which file groups to include

    Returns:
        The discovered LoadCatalog
    """
    base = _require_dir(base_dir)
    supp = _require_dir(supp_dir)
    entries: List[CatalogEntry] = []

    if mode in (LoadMode.ALL, LoadMode.NODES):
        node_files = 0
        for entity in SnbEntity:
            directory = supp if entity == SnbEntity.PERSON else base
            pattern = re.compile("^" + re.escape(entity.file_tag) + _PART_SUFFIX)
            found = _list_matching(directory, pattern)
            if not found:
                logger.warning(f"Missing files for {entity.file_tag} nodes")
            for path in found:
                logger.info(f"Found file for {entity.file_tag} nodes ({path})")
                entries.append(CatalogEntry.vertex_file(entity, path))
            node_files += len(found)
        logger.info(f"Found {node_files} total node files")

    if mode in (LoadMode.ALL, LoadMode.EDGES):
        edge_files = 0
        for relation in SnbRelation:
            stem = re.escape(relation.file_stem)
            forward = re.compile("^" + stem + _PART_SUFFIX)
            if relation.directed:
                found = _list_matching(base, forward)
                reverse = _list_matching(supp, re.compile("^" + stem + "_ridx" + _PART_SUFFIX))
            else:
                found = _list_matching(supp, forward)
                reverse = []

            if not found:
                logger.warning(f"Missing file for {relation.describe()} edges")
            for path in found:
                logger.info(f"Found edge list file for {relation.describe()} edges ({path})")
                entries.append(CatalogEntry.edge_file(relation, path))

            if relation.directed:
                if not reverse:
                    logger.warning(f"Missing reverse edge file for {relation.describe()} edges")
                for path in reverse:
                    logger.info(f"Found reverse edge list file for {relation.describe()} edges ({path})")
                    entries.append(CatalogEntry.edge_file(relation, path, reverse_indexed=True))

            edge_files += len(found) + len(reverse)
        logger.info(f"Found {edge_files} total edge files")

    return LoadCatalog(entries)
