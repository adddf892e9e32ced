"""DDL helpers for the geography and segment tables.

The geography table is derived from the fixed-width layout. Segment tables
normally come from an external script; a builder is provided for fixtures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from core.constants import (
    ADMINISTRATIVE_FIELDS,
    GEO_TABLE_NAME,
    RECORD_SEQUENCE_FIELD,
    SEGMENT_TABLE_TEMPLATE,
)
from core.errors import CensusStoreError
from ingest.geo_layout import GEO_FIELDS
from store.census_store import CensusStore, quote_identifier


def segment_table_name(dataset: str, segment: int) -> str:
    """Return a segment table name, e.g. ``sf1_01``."""
    return SEGMENT_TABLE_TEMPLATE.format(dataset=dataset, segment=segment)


def build_geo_table_ddl(table: str = GEO_TABLE_NAME) -> str:
    """Build CREATE TABLE DDL for the geography header table."""
    column_lines = [
        f"    {quote_identifier(item.name)} {_geo_column_type(item.name)}"
        for item in GEO_FIELDS
    ]
    columns_sql = ",\n".join(column_lines)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} (\n{columns_sql}\n);"


def build_segment_table_ddl(
    table: str,
    variable_columns: Sequence[str],
    variable_type: str = "BIGINT",
) -> str:
    """Build CREATE TABLE DDL for one segment table.

    Args:
        table: Segment table name.
        variable_columns: Variable column codes in file order.
        variable_type: SQL type used for every variable column.

    Returns:
        DDL statement text.
    """
    column_lines = [f"    {quote_identifier(name)} VARCHAR" for name in ADMINISTRATIVE_FIELDS]
    column_lines.append(f"    {quote_identifier(RECORD_SEQUENCE_FIELD)} INTEGER")
    column_lines.extend(
        f"    {quote_identifier(name)} {variable_type}" for name in variable_columns
    )
    columns_sql = ",\n".join(column_lines)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} (\n{columns_sql}\n);"


def create_schema(store: CensusStore, schema_script: Path | None = None) -> None:
    """Create the geography table and run an optional segment DDL script.

    Raises:
        CensusStoreError: If the script cannot be read or executed.
    """
    store.execute_script(build_geo_table_ddl())
    if schema_script is None:
        return
    try:
        script = schema_script.read_text(encoding="utf-8")
    except OSError as error:
        raise CensusStoreError(
            f"Failed to read schema script {schema_script}: {error}. "
            "Provide a readable DDL script and rerun."
        ) from error
    store.execute_script(script)


def _geo_column_type(name: str) -> str:
    return "INTEGER" if name == RECORD_SEQUENCE_FIELD else "VARCHAR"
