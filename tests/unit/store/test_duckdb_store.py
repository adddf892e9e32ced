"""Unit tests for the DuckDB census store."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import CensusStoreError
from store.census_store import DelimitedLoadSpec, FixedWidthLoadSpec
from store.duckdb_store import DuckDBCensusStore
from store.schema import build_geo_table_ddl, build_segment_table_ddl
from tests.census_fixtures import build_geo_line, build_segment_line, write_lines


def test_bulk_load_fixed_width_header(tmp_path: Path) -> None:
    """Fixed-width load should insert decoded header rows with typed LOGRECNO."""
    store = DuckDBCensusStore()
    store.execute_script(build_geo_table_ddl())
    path = write_lines(
        tmp_path / "usgeo2010.csv",
        [build_geo_line("880", 2, ZCTA5="00601"), build_geo_line("880", 5, ZCTA5="00602")],
    )

    inserted = store.bulk_load(FixedWidthLoadSpec(table="geo2010", path=path))
    rows = store.query('SELECT "LOGRECNO", "ZCTA5" FROM geo2010 ORDER BY "LOGRECNO"')

    assert inserted == 2
    assert rows == [{"LOGRECNO": 2, "ZCTA5": "00601"}, {"LOGRECNO": 5, "ZCTA5": "00602"}]


def test_bulk_load_delimited_segment(tmp_path: Path) -> None:
    """Delimited load should convert numeric columns."""
    store = DuckDBCensusStore(insert_batch_size=1)
    store.execute_script(build_segment_table_ddl("sf1_01", ["P0010001"]))
    path = write_lines(tmp_path / "seg.cs1", [build_segment_line(1, [37]), build_segment_line(2, [""])])

    store.bulk_load(DelimitedLoadSpec(table="sf1_01", path=path))

    assert store.query('SELECT "P0010001" FROM sf1_01 ORDER BY "LOGRECNO"') == [
        {"P0010001": 37},
        {"P0010001": None},
    ]


def test_bulk_load_rejects_field_count_mismatch(tmp_path: Path) -> None:
    """Rows with the wrong field count should fail the load."""
    store = DuckDBCensusStore()
    store.execute_script(build_segment_table_ddl("sf1_01", ["P0010001"]))
    path = write_lines(tmp_path / "seg.cs1", [build_segment_line(1, [1, 2])])

    with pytest.raises(CensusStoreError):
        store.bulk_load(DelimitedLoadSpec(table="sf1_01", path=path))


def test_table_columns_preserve_declaration_order() -> None:
    """Column listing should follow the DDL order."""
    store = DuckDBCensusStore()
    store.execute_script(build_segment_table_ddl("sf1_02", ["P0020001", "P0020002"]))

    columns = store.table_columns("sf1_02")

    assert columns == ("FILEID", "STUSAB", "CHARITER", "CIFSN", "LOGRECNO", "P0020001", "P0020002")


def test_table_columns_raises_for_unknown_table() -> None:
    """Unknown tables should raise a store error."""
    with pytest.raises(CensusStoreError):
        DuckDBCensusStore().table_columns("missing")


def test_execute_script_wraps_sql_errors() -> None:
    """Invalid DDL should be reported as a store error."""
    with pytest.raises(CensusStoreError):
        DuckDBCensusStore().execute_script("CREATE TABLE broken (;")


def test_failed_load_leaves_table_empty(tmp_path: Path) -> None:
    """A load failing in a later batch should roll back earlier batches."""
    store = DuckDBCensusStore(insert_batch_size=2)
    store.execute_script(build_segment_table_ddl("sf1_01", ["P0010001"]))
    path = write_lines(
        tmp_path / "seg.cs1",
        [build_segment_line(record_id, [record_id]) for record_id in (1, 2, 3)]
        + [build_segment_line(4, [4, 5])],
    )

    with pytest.raises(CensusStoreError):
        store.bulk_load(DelimitedLoadSpec(table="sf1_01", path=path))

    assert store.row_count("sf1_01") == 0
