"""Relational store collaborator interface.

The pipeline talks to storage only through this protocol so the concrete
transport (embedded DuckDB, a server database, a test double) is swappable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, Union

from ingest.geo_layout import GEO_FIELDS, GeoField

Row = dict[str, object]


@dataclass(frozen=True)
class FixedWidthLoadSpec:
    """Load a fixed-width file by positional substring mapping.

    Attributes:
        table: Destination table name.
        path: Source file path.
        fields: Layout fields mapped onto same-named columns.
        encoding: Source file encoding.
    """

    table: str
    path: Path
    fields: tuple[GeoField, ...] = GEO_FIELDS
    encoding: str = "latin-1"


@dataclass(frozen=True)
class DelimitedLoadSpec:
    """Load a delimited file positionally onto a table's columns."""

    table: str
    path: Path
    delimiter: str = ","
    encoding: str = "latin-1"


LoadSpec = Union[FixedWidthLoadSpec, DelimitedLoadSpec]


class CensusStore(Protocol):
    """Operations the pipeline needs from relational storage."""

    def execute_script(self, script: str) -> None:
        """Execute DDL or other multi-statement SQL."""

    def bulk_load(self, spec: LoadSpec) -> int:
        """Load a file into a table and return inserted row count."""

    def query(self, sql: str, parameters: Sequence[object] = ()) -> list[Row]:
        """Run a query and return rows keyed by output column name."""

    def row_count(self, table: str) -> int:
        """Return the number of rows in a table."""

    def table_columns(self, table: str) -> tuple[str, ...]:
        """Return a table's column names in declaration order."""

    def close(self) -> None:
        """Release the underlying connection."""


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier, doubling embedded quotes."""
    escaped = name.replace('"', '""')
    return f'"{escaped}"'
