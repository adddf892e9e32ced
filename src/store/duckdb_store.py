"""DuckDB implementation of the census store collaborator.

Files are streamed line by line and inserted in bounded batches, so loads
never hold a whole source file in memory.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

import duckdb

from core.errors import CensusStoreError
from core.logging_config import get_logger
from ingest.fixed_width import decode_geo_line
from store.census_store import (
    DelimitedLoadSpec,
    FixedWidthLoadSpec,
    LoadSpec,
    Row,
    quote_identifier,
)

_LOGGER = get_logger(__name__)

DEFAULT_INSERT_BATCH_SIZE = 1000
_INTEGER_TYPES = ("TINYINT", "SMALLINT", "INTEGER", "BIGINT", "HUGEINT", "UBIGINT", "UINTEGER")
_FLOAT_TYPES = ("DOUBLE", "FLOAT", "REAL")


class DuckDBCensusStore:
    """Census store backed by an embedded DuckDB database."""

    def __init__(
        self,
        database_path: Path | str = ":memory:",
        insert_batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
    ) -> None:
        """Open a DuckDB connection.

        Args:
            database_path: Database file path, or ``:memory:``.
            insert_batch_size: Rows per executemany call during loads.

        Raises:
            CensusStoreError: If the database cannot be opened.
        """
        if isinstance(database_path, Path):
            database_path.parent.mkdir(parents=True, exist_ok=True)
        self._insert_batch_size = insert_batch_size
        try:
            self._connection = duckdb.connect(str(database_path))
        except duckdb.Error as error:
            raise CensusStoreError(
                f"Could not connect to database {database_path}: {error}. "
                "Check CENSUSFLOW_DATABASE_PATH and rerun."
            ) from error

    def execute_script(self, script: str) -> None:
        """Execute semicolon-separated SQL statements in order.

        Raises:
            CensusStoreError: If any statement fails.
        """
        for statement in _split_statements(script):
            try:
                self._connection.execute(statement)
            except duckdb.Error as error:
                raise CensusStoreError(
                    f"Schema statement failed: {error}. Fix the DDL script and rerun."
                ) from error

    def bulk_load(self, spec: LoadSpec) -> int:
        """Load a fixed-width or delimited file into its table.

        Returns:
            Number of inserted rows.

        Raises:
            CensusStoreError: If the file cannot be read or inserted.
        """
        columns = self.table_columns(spec.table)
        converters = self._column_converters(spec.table)
        if isinstance(spec, FixedWidthLoadSpec):
            target_columns = tuple(item.name for item in spec.fields)
            rows = _fixed_width_rows(spec)
        else:
            target_columns = columns
            rows = _delimited_rows(spec, len(columns))
        row_converters = [converters[name] for name in target_columns]
        statement = _build_insert_statement(spec.table, target_columns)
        inserted = 0
        self._connection.begin()
        try:
            for batch in _batched(rows, self._insert_batch_size):
                converted = [
                    [convert(value) for convert, value in zip(row_converters, row)]
                    for row in batch
                ]
                self._connection.executemany(statement, converted)
                inserted += len(converted)
        except OSError as error:
            self._connection.rollback()
            raise CensusStoreError(
                f"Failed to read load source {spec.path}: {error}. Rerun after fixing the file."
            ) from error
        except (duckdb.Error, ValueError, InvalidOperation) as error:
            self._connection.rollback()
            raise CensusStoreError(
                f"Failed to load {spec.path} into {spec.table}: {error}. "
                "The table was left empty; fix the file and rerun."
            ) from error
        except BaseException:
            self._connection.rollback()
            raise
        self._connection.commit()
        _LOGGER.info("table_loaded", table=spec.table, path=str(spec.path), row_count=inserted)
        return inserted

    def query(self, sql: str, parameters: Sequence[object] = ()) -> list[Row]:
        """Run a query and return rows keyed by output column name.

        Raises:
            CensusStoreError: If the query fails.
        """
        try:
            cursor = self._connection.execute(sql, list(parameters))
            names = [description[0] for description in cursor.description]
            return [dict(zip(names, values)) for values in cursor.fetchall()]
        except duckdb.Error as error:
            raise CensusStoreError(f"Query failed: {error}.") from error

    def row_count(self, table: str) -> int:
        """Return a table's row count."""
        rows = self.query(f"SELECT count(*) AS row_count FROM {quote_identifier(table)}")
        return int(rows[0]["row_count"])  # type: ignore[arg-type]

    def table_columns(self, table: str) -> tuple[str, ...]:
        """Return column names in declaration order.

        Raises:
            CensusStoreError: If the table does not exist.
        """
        return tuple(name for name, _ in self._describe(table))

    def close(self) -> None:
        """Close the DuckDB connection."""
        self._connection.close()

    def _describe(self, table: str) -> list[tuple[str, str]]:
        rows = self.query(
            "SELECT column_name, data_type FROM information_schema.columns "
            "WHERE table_name = ? ORDER BY ordinal_position",
            (table,),
        )
        if not rows:
            raise CensusStoreError(
                f"Table {table} does not exist. Run the schema script before loading."
            )
        return [(str(row["column_name"]), str(row["data_type"])) for row in rows]

    def _column_converters(self, table: str) -> dict[str, Callable[[str], object]]:
        return {name: _converter_for(data_type) for name, data_type in self._describe(table)}


def _split_statements(script: str) -> list[str]:
    return [statement.strip() for statement in script.split(";") if statement.strip()]


def _build_insert_statement(table: str, columns: Sequence[str]) -> str:
    column_sql = ", ".join(quote_identifier(name) for name in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(table)} ({column_sql}) VALUES ({placeholders})"


def _fixed_width_rows(spec: FixedWidthLoadSpec) -> Iterator[list[str]]:
    with spec.path.open("r", encoding=spec.encoding) as source:
        for line_number, line in enumerate(source, 1):
            if not line.strip():
                continue
            record = decode_geo_line(line, line_number)
            yield [record.fields[item.name] for item in spec.fields]


def _delimited_rows(spec: DelimitedLoadSpec, column_count: int) -> Iterator[list[str]]:
    with spec.path.open("r", encoding=spec.encoding) as source:
        for line_number, line in enumerate(source, 1):
            record_text = line.rstrip("\r\n")
            if not record_text.strip():
                continue
            values = record_text.split(spec.delimiter)
            if len(values) != column_count:
                raise ValueError(
                    f"line {line_number} has {len(values)} fields, "
                    f"table {spec.table} has {column_count} columns"
                )
            yield values


def _batched(rows: Iterable[list[str]], batch_size: int) -> Iterator[list[list[str]]]:
    batch: list[list[str]] = []
    for row in rows:
        batch.append(row)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch


def _converter_for(data_type: str) -> Callable[[str], object]:
    """Map a DuckDB column type onto a text-to-Python converter."""
    normalized_type = data_type.upper()
    if normalized_type.startswith(_INTEGER_TYPES):
        return _nullable(int)
    if normalized_type.startswith(_FLOAT_TYPES):
        return _nullable(float)
    if normalized_type.startswith("DECIMAL"):
        return _nullable(Decimal)
    return _nullable(str)


def _nullable(convert: Callable[[str], object]) -> Callable[[str], object]:
    def _convert(value: str) -> object:
        stripped = value.strip()
        if not stripped:
            return None
        return convert(stripped)

    return _convert
