"""
Record types flowing from the transformer to a graph sink.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping


class Direction(Enum):
    """Edge direction relative to the batch's source vertex."""
    OUT = "out"
    IN = "in"


class ValueKind(Enum):
    """Tag of a coerced property value."""
    INT64 = "int64"
    INT32 = "int32"
    STRING = "string"
    STRING_LIST = "string_list"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class CompositeId:
    """Vertex id: a local id qualified by the id space it is unique in."""
    id_space: int
    local_id: int

    def __str__(self) -> str:
        return f"{self.id_space}:{self.local_id}"


@dataclass(frozen=True)
class TypedValue:
    """A property value tagged with its kind."""
    kind: ValueKind
    value: Any

    def to_python(self) -> Any:
        if self.kind == ValueKind.STRING_LIST:
            return list(self.value)
        return self.value


def plain_properties(properties: Mapping[str, TypedValue]) -> Dict[str, Any]:
    """Unwrap a property mapping into plain Python values."""
    return {name: value.to_python() for name, value in properties.items()}


@dataclass
class VertexRecord:
    """One vertex row of an entity file."""
    id: CompositeId
    label: str
    properties: Dict[str, TypedValue] = field(default_factory=dict)


@dataclass
class EdgeBatch:
    """
    All edges of one relation file sharing a source vertex.

    ``per_target_properties`` is either empty (the relation carries no
    properties) or parallel to ``targets``.
    """
    source_id: CompositeId
    relation_name: str
    direction: Direction
    target_label: str
    targets: List[CompositeId] = field(default_factory=list)
    per_target_properties: List[Dict[str, TypedValue]] = field(default_factory=list)

    def __post_init__(self):
        if self.per_target_properties and len(self.per_target_properties) != len(self.targets):
            raise ValueError(
                f"Edge batch for {self.source_id} has {len(self.targets)} targets "
                f"but {len(self.per_target_properties)} property maps"
            )

    def __len__(self) -> int:
        return len(self.targets)
