"""Unit tests for join query construction."""

from __future__ import annotations

import pytest

from core.errors import CensusStoreError
from store.duckdb_store import DuckDBCensusStore
from store.join_query import (
    build_join_query,
    discover_segment_columns,
    split_namespace,
)

_SEGMENT_COLUMNS = {
    1: ("FILEID", "STUSAB", "CHARITER", "CIFSN", "LOGRECNO", "P0010001"),
    2: ("FILEID", "STUSAB", "CHARITER", "CIFSN", "LOGRECNO", "P0020001", "P0020002"),
}


def test_join_query_namespaces_every_column() -> None:
    """Each selected column should carry its source namespace."""
    query = build_join_query(_SEGMENT_COLUMNS, "880")

    assert all(split_namespace(column)[0] in {"geo", "s01", "s02"} for column in query.columns)
    assert "s01.P0010001" in query.columns and "s02.P0020002" in query.columns


def test_join_query_selects_shared_fields_once() -> None:
    """Administrative fields and LOGRECNO should come only from the geography table."""
    query = build_join_query(_SEGMENT_COLUMNS, "880")
    names = [split_namespace(column)[1] for column in query.columns]

    assert names.count("FILEID") == 1 and names.count("LOGRECNO") == 1
    assert "geo.FILEID" in query.columns


def test_join_query_binds_summary_level_and_orders_by_record_id() -> None:
    """Query should filter by a bound summary level and order deterministically."""
    query = build_join_query(_SEGMENT_COLUMNS, "880")

    assert query.parameters == ("880",)
    assert 'LEFT JOIN "sf1_02" s02' in query.sql
    assert query.sql.rstrip().endswith('ORDER BY geo."LOGRECNO"')


def test_discover_segment_columns_requires_join_key() -> None:
    """Segment tables without LOGRECNO should be rejected."""
    store = DuckDBCensusStore()
    store.execute_script('CREATE TABLE sf1_01 ("P0010001" BIGINT)')

    with pytest.raises(CensusStoreError):
        discover_segment_columns(store, "sf1", segment_count=1)


def test_split_namespace_without_separator() -> None:
    """Bare names should return an empty namespace."""
    assert split_namespace("P0010001") == ("", "P0010001")
