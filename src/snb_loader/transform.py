"""
Record transformer: delimited dataset lines to typed vertex and edge records.

Provides:
- Field coercion following the fixed schema (dates, timestamps, lists, ints)
- read_lines: streaming line reader that reports bytes consumed
- RecordTransformer: header-driven parsing of one file's rows

Dates are converted to milliseconds since the epoch (UTC) once at load time,
so queries never pay for parsing "1989-12-04" or
"2010-03-17T23:32:10.447+0000".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from snb_loader.catalog import CatalogEntry
from snb_loader.errors import FieldParseError
from snb_loader.models import CompositeId, TypedValue, ValueKind, VertexRecord
from snb_loader.schema import PropertyKind

FIELD_DELIMITER = "|"
LIST_DELIMITER = ";"
ID_FIELD = "id"

BIRTHDAY_FORMAT = "%Y-%m-%d"
CREATION_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLI = timedelta(milliseconds=1)

INT32_RANGE = (-(2 ** 31), 2 ** 31 - 1)
INT64_RANGE = (-(2 ** 63), 2 ** 63 - 1)

# Optional minus sign followed by ASCII digits.
_INT_PATTERN = re.compile(r"-?[0-9]+")


# ========== Field coercion ==========

def parse_date_millis(raw: str) -> int:
    """``yyyy-MM-dd`` -> epoch millis at UTC midnight."""
    day = datetime.strptime(raw, BIRTHDAY_FORMAT).replace(tzinfo=timezone.utc)
    return (day - EPOCH) // _ONE_MILLI


def parse_timestamp_millis(raw: str) -> int:
    """``yyyy-MM-dd'T'HH:mm:ss.SSSZ`` -> epoch millis."""
    moment = datetime.strptime(raw, CREATION_DATE_FORMAT)
    return (moment - EPOCH) // _ONE_MILLI


def parse_string_list(raw: str) -> List[str]:
    """Split a multi-valued field, dropping empty tokens."""
    return [token for token in raw.split(LIST_DELIMITER) if token]


def parse_int(raw: str, bounds=INT64_RANGE) -> int:
    if not _INT_PATTERN.fullmatch(raw):
        raise ValueError(f"not an integer: {raw!r}")
    value = int(raw)
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{value} out of range [{low}, {high}]")
    return value


def coerce_value(kind: PropertyKind, raw: str) -> TypedValue:
    """
    Coerce a raw field according to its property kind.

    Raises:
        ValueError: If the raw text does not match the kind's format
    """
    if kind == PropertyKind.DATE:
        return TypedValue(ValueKind.INT64, parse_date_millis(raw))
    if kind == PropertyKind.TIMESTAMP:
        return TypedValue(ValueKind.TIMESTAMP, parse_timestamp_millis(raw))
    if kind == PropertyKind.STRING_LIST:
        return TypedValue(ValueKind.STRING_LIST, parse_string_list(raw))
    if kind == PropertyKind.INT32:
        return TypedValue(ValueKind.INT32, parse_int(raw, INT32_RANGE))
    return TypedValue(ValueKind.STRING, raw)


# ========== Line reading ==========

@dataclass
class RawLine:
    """A data line of a file; ``number`` is 1-based and excludes the header."""
    number: int
    text: str
    nbytes: int

    @property
    def fields(self) -> List[str]:
        return self.text.split(FIELD_DELIMITER)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8").rstrip("\r\n")


def read_header(fh: BinaryIO) -> Optional[RawLine]:
    """Read the header line; None for an empty file."""
    raw = fh.readline()
    if not raw:
        return None
    return RawLine(number=0, text=_decode(raw), nbytes=len(raw))


def read_lines(fh: BinaryIO) -> Iterator[RawLine]:
    """Yield the remaining lines of a binary file handle, in order."""
    for number, raw in enumerate(fh, start=1):
        yield RawLine(number=number, text=_decode(raw), nbytes=len(raw))


# ========== Records ==========

@dataclass
class EdgeRow:
    """One parsed line of a relation file."""
    source_id: CompositeId
    target_id: CompositeId
    properties: Optional[Dict[str, TypedValue]] = None


class RecordTransformer:
    """
    Parses the data lines of one catalog entry using its header.

    Vertex files map each header column through the entity's schema; the
    ``id`` column becomes the vertex id in the entity's id space. Edge files
    hold source id, target id, then the relation's property columns. Which
    entity the source and target ids belong to follows from the entry's
    forward/reverse classification.
    """

    def __init__(self, entry: CatalogEntry, header: Sequence[str]):
        self.entry = entry
        self.header: List[str] = list(header)
        if entry.is_vertex_file:
            self._kinds = [entry.entity.property_kind(name) for name in self.header]
        else:
            self._kinds = [entry.relation.property_kind(name) for name in self.header]
            self._source_space = entry.source_entity.id_space
            self._target_space = entry.target_entity.id_space

    @classmethod
    def from_header(cls, entry: CatalogEntry, header_line: Union[RawLine, str]) -> "RecordTransformer":
        text = header_line.text if isinstance(header_line, RawLine) else header_line
        return cls(entry, text.split(FIELD_DELIMITER))

    @property
    def carries_properties(self) -> bool:
        """Whether edge rows of this file carry property columns."""
        return not self.entry.is_vertex_file and len(self.header) > 2

    def _field_name(self, index: int, fields: List[str], line: RawLine) -> str:
        if index >= len(self.header):
            raise FieldParseError(
                f"<column {index + 1}>", fields[index], line.number, line.text,
                reason=f"header names only {len(self.header)} columns",
            )
        return self.header[index]

    def _coerce(self, index: int, raw: str, line: RawLine) -> TypedValue:
        try:
            return coerce_value(self._kinds[index], raw)
        except ValueError as e:
            raise FieldParseError(self.header[index], raw, line.number, line.text, reason=str(e)) from e

    def _parse_id(self, name: str, raw: str, id_space: int, line: RawLine) -> CompositeId:
        try:
            return CompositeId(id_space, parse_int(raw))
        except ValueError as e:
            raise FieldParseError(name, raw, line.number, line.text, reason=str(e)) from e

    def parse_vertex(self, line: RawLine) -> VertexRecord:
        """Parse a vertex file line."""
        entity = self.entry.entity
        fields = line.fields
        vertex_id = None
        properties: Dict[str, TypedValue] = {}
        for j, raw in enumerate(fields):
            name = self._field_name(j, fields, line)
            if name == ID_FIELD:
                vertex_id = self._parse_id(name, raw, entity.id_space, line)
            else:
                properties[name] = self._coerce(j, raw, line)
        if vertex_id is None:
            raise FieldParseError(ID_FIELD, None, line.number, line.text, reason="row has no id value")
        return VertexRecord(id=vertex_id, label=entity.label, properties=properties)

    def parse_edge(self, line: RawLine) -> EdgeRow:
        """Parse a relation file line."""
        fields = line.fields
        if len(fields) < 2:
            name = self.header[1] if len(self.header) > 1 else "<column 2>"
            raise FieldParseError(name, None, line.number, line.text, reason="missing target id")
        source = self._parse_id(self.header[0], fields[0], self._source_space, line)
        target = self._parse_id(self._field_name(1, fields, line), fields[1], self._target_space, line)

        properties = None
        if self.carries_properties:
            properties = {}
            for j in range(2, len(fields)):
                name = self._field_name(j, fields, line)
                properties[name] = self._coerce(j, fields[j], line)
        elif len(fields) > len(self.header):
            self._field_name(len(self.header), fields, line)  # raises
        return EdgeRow(source_id=source, target_id=target, properties=properties)

    def records(self, lines: Iterable[RawLine]) -> Iterator[Union[VertexRecord, EdgeRow]]:
        parse = self.parse_vertex if self.entry.is_vertex_file else self.parse_edge
        for line in lines:
            yield parse(line)
