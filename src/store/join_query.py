"""Construction of the wide geography-to-segments join query.

Every selected column is aliased with its source namespace (``geo.`` or
``sNN.``) so same-named columns from different tables never collide.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from core.constants import (
    ADMINISTRATIVE_FIELDS,
    GEO_ALIAS,
    GEO_IDENTIFIER_FIELDS,
    GEO_TABLE_NAME,
    RECORD_SEQUENCE_FIELD,
    SEGMENT_ALIAS_TEMPLATE,
    SEGMENT_COUNT,
    SUMMARY_LEVEL_FIELD,
)
from core.errors import CensusStoreError
from core.types import JoinQuery
from store.census_store import CensusStore, quote_identifier
from store.schema import segment_table_name

NAMESPACE_SEPARATOR = "."
_SEGMENT_SHARED_FIELDS = frozenset(ADMINISTRATIVE_FIELDS + (RECORD_SEQUENCE_FIELD,))


def segment_alias(segment: int) -> str:
    """Return the namespace alias of a segment, e.g. ``s07``."""
    return SEGMENT_ALIAS_TEMPLATE.format(segment=segment)


def namespaced(namespace: str, column: str) -> str:
    """Join a namespace and a column name."""
    return f"{namespace}{NAMESPACE_SEPARATOR}{column}"


def split_namespace(column: str) -> tuple[str, str]:
    """Split a namespaced column into ``(namespace, column)``.

    Columns without a namespace return an empty namespace.
    """
    namespace, separator, name = column.partition(NAMESPACE_SEPARATOR)
    if not separator:
        return "", column
    return namespace, name


def build_join_query(
    segment_columns: Mapping[int, Sequence[str]],
    summary_level: str,
    dataset: str = "sf1",
) -> JoinQuery:
    """Build the left join of the geography table against segment tables.

    Args:
        segment_columns: Column names per one-based segment number.
        summary_level: SUMLEV code the geography rows must match.
        dataset: Segment table prefix.

    Returns:
        Query ordered by LOGRECNO, with its bound parameters and column names.
    """
    select_items: list[str] = []
    output_columns: list[str] = []
    for column in GEO_IDENTIFIER_FIELDS + ADMINISTRATIVE_FIELDS:
        select_items.append(_select_item(GEO_ALIAS, column))
        output_columns.append(namespaced(GEO_ALIAS, column))
    join_clauses: list[str] = []
    geo_key = f"{GEO_ALIAS}.{quote_identifier(RECORD_SEQUENCE_FIELD)}"
    for segment in sorted(segment_columns):
        alias = segment_alias(segment)
        for column in segment_columns[segment]:
            if column in _SEGMENT_SHARED_FIELDS:
                continue
            select_items.append(_select_item(alias, column))
            output_columns.append(namespaced(alias, column))
        table = quote_identifier(segment_table_name(dataset, segment))
        join_clauses.append(
            f"LEFT JOIN {table} {alias} "
            f"ON {geo_key} = {alias}.{quote_identifier(RECORD_SEQUENCE_FIELD)}"
        )
    select_sql = ",\n    ".join(select_items)
    joins_sql = "\n".join(join_clauses)
    sql = (
        f"SELECT\n    {select_sql}\n"
        f"FROM {quote_identifier(GEO_TABLE_NAME)} {GEO_ALIAS}\n"
        f"{joins_sql}\n"
        f"WHERE {GEO_ALIAS}.{quote_identifier(SUMMARY_LEVEL_FIELD)} = ?\n"
        f"ORDER BY {geo_key}"
    )
    return JoinQuery(sql=sql, parameters=(summary_level,), columns=tuple(output_columns))


def build_count_query(summary_level: str) -> JoinQuery:
    """Build the geography row-count query used as the pagination total."""
    sql = (
        f"SELECT count(*) AS row_count FROM {quote_identifier(GEO_TABLE_NAME)} "
        f"WHERE {quote_identifier(SUMMARY_LEVEL_FIELD)} = ?"
    )
    return JoinQuery(sql=sql, parameters=(summary_level,), columns=("row_count",))


def discover_segment_columns(
    store: CensusStore,
    dataset: str,
    segment_count: int = SEGMENT_COUNT,
) -> dict[int, tuple[str, ...]]:
    """Read each segment table's column list from the store.

    Raises:
        CensusStoreError: If a segment table lacks the LOGRECNO join key.
    """
    segment_columns: dict[int, tuple[str, ...]] = {}
    for segment in range(1, segment_count + 1):
        table = segment_table_name(dataset, segment)
        columns = store.table_columns(table)
        if RECORD_SEQUENCE_FIELD not in columns:
            raise CensusStoreError(
                f"Segment table {table} has no {RECORD_SEQUENCE_FIELD} column. "
                "Recreate the schema from the SF1 DDL script."
            )
        segment_columns[segment] = columns
    return segment_columns


def _select_item(alias: str, column: str) -> str:
    return f"{alias}.{quote_identifier(column)} AS {quote_identifier(namespaced(alias, column))}"
