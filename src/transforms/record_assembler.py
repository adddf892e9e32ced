"""Per-geography assembly of enriched output records.

Each joined row becomes one output record per resolvable variable column,
tagged with the geography's ZCTA5 and serialized as newline-delimited JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, TextIO

from core.constants import ADMINISTRATIVE_FIELDS, GEO_IDENTIFIER_FIELDS, ZCTA_FIELD
from core.types import OutputRecord
from store.join_query import split_namespace
from transforms.metadata_resolver import MetadataResolver

_ADMINISTRATIVE_FIELDS = frozenset(ADMINISTRATIVE_FIELDS)
_GEO_IDENTIFIER_FIELDS = frozenset(GEO_IDENTIFIER_FIELDS)


@dataclass
class AssemblyStats:
    """Counters surfaced for diagnostics after an export."""

    rows: int = 0
    records_emitted: int = 0
    administrative_fields_dropped: int = 0
    metadata_misses: int = 0


class RecordAssembler:
    """Turn joined rows into enriched output records."""

    def __init__(self, resolver: MetadataResolver) -> None:
        self._resolver = resolver
        self.stats = AssemblyStats()

    def assemble(self, row: Mapping[str, object]) -> Iterator[OutputRecord]:
        """Yield one output record per resolvable variable column.

        Administrative columns are dropped, and a name repeated across
        namespaces counts as one dropped field. Of the geography identifiers
        only ZCTA5 is carried, on every emitted record.

        Args:
            row: Joined row keyed by namespaced column name.

        Yields:
            Output records in column order.
        """
        self.stats.rows += 1
        zcta5 = _find_zcta5(row)
        dropped_fields: set[str] = set()
        for column, value in row.items():
            _, column_code = split_namespace(column)
            field_name = column_code.upper()
            if field_name in _ADMINISTRATIVE_FIELDS:
                if field_name not in dropped_fields:
                    dropped_fields.add(field_name)
                    self.stats.administrative_fields_dropped += 1
                continue
            if field_name in _GEO_IDENTIFIER_FIELDS:
                continue
            resolved = self._resolver.resolve(column_code)
            if resolved is None:
                self.stats.metadata_misses += 1
                continue
            self.stats.records_emitted += 1
            yield OutputRecord(
                name=resolved.name,
                universe=resolved.universe,
                text=resolved.text,
                key=column_code,
                value=value,
                zcta5=zcta5,
            )

    def assemble_rows(self, rows: Iterable[Mapping[str, object]]) -> Iterator[OutputRecord]:
        """Chain :meth:`assemble` over a row stream."""
        for row in rows:
            yield from self.assemble(row)


def write_ndjson(records: Iterable[OutputRecord], stream: TextIO) -> int:
    """Write records as newline-delimited JSON.

    Returns:
        Number of lines written.
    """
    written = 0
    for record in records:
        stream.write(json.dumps(record.to_payload(), sort_keys=True, default=_json_default))
        stream.write("\n")
        written += 1
    return written


def _find_zcta5(row: Mapping[str, object]) -> str | None:
    for column, value in row.items():
        _, name = split_namespace(column)
        if name.upper() == ZCTA_FIELD:
            return None if value is None else str(value)
    return None


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
