"""Unit tests for enriched record assembly."""

from __future__ import annotations

import io
import json
from decimal import Decimal

from core.types import OutputRecord, TableDescriptor
from store.join_query import build_join_query
from transforms.metadata_resolver import MetadataResolver
from transforms.record_assembler import RecordAssembler, write_ndjson

_ADMIN = ("FILEID", "STUSAB", "CHARITER", "CIFSN", "LOGRECNO")
_TREE = {
    "P001": TableDescriptor("TOTAL POPULATION", "Total population", {"P0010001": "Total"}),
    "P002": TableDescriptor(
        "URBAN AND RURAL",
        "Total population",
        {"P0020001": "Total", "P0020002": "Urban"},
    ),
}


def _joined_row() -> dict[str, object]:
    query = build_join_query(
        {1: _ADMIN + ("P0010001",), 2: _ADMIN + ("P0020001", "P0020002", "P0020003")},
        "880",
    )
    values: dict[str, object] = {
        "geo.STATE": "72",
        "geo.COUNTY": None,
        "geo.ZCTA5": "00601",
        "geo.LOGRECNO": 7,
        "geo.FILEID": "SF1ST",
        "geo.STUSAB": "US",
        "geo.CHARITER": "000",
        "geo.CIFSN": "01",
        "s01.P0010001": 18570,
        "s02.P0020001": 18570,
        "s02.P0020002": 8914,
        "s02.P0020003": 9656,
    }
    return {column: values[column] for column in query.columns}


def test_assembler_drops_each_administrative_field_once() -> None:
    """Shared admin names across segments should be dropped once per row."""
    resolver = MetadataResolver(_TREE)
    assembler = RecordAssembler(resolver)

    records = list(assembler.assemble(_joined_row()))

    assert assembler.stats.administrative_fields_dropped == 4
    assert len(records) + resolver.stats.total == 4
    assert [record.key for record in records] == ["P0010001", "P0020001", "P0020002"]
    assert resolver.stats.missing_labels == {"P0020003"}


def test_assembler_attaches_zcta_and_no_other_identifiers() -> None:
    """Every record should carry ZCTA5 and no identifier should become a record."""
    assembler = RecordAssembler(MetadataResolver(_TREE))

    records = list(assembler.assemble(_joined_row()))

    assert {record.zcta5 for record in records} == {"00601"}
    assert not {"STATE", "COUNTY", "ZCTA5", "LOGRECNO"} & {record.key for record in records}


def test_write_ndjson_emits_one_object_per_line() -> None:
    """Serialized records should be newline-delimited JSON objects."""
    stream = io.StringIO()
    records = [
        OutputRecord("TOTAL POPULATION", "Total population", "Total", "P0010001", 5, "00601"),
        OutputRecord("TOTAL POPULATION", "Total population", "Total", "P0010001", Decimal("2"), None),
    ]

    written = write_ndjson(records, stream)
    payloads = [json.loads(line) for line in stream.getvalue().splitlines()]

    assert written == 2
    assert payloads[0] == {
        "key": "P0010001",
        "name": "TOTAL POPULATION",
        "text": "Total",
        "universe": "Total population",
        "value": 5,
        "zcta5": "00601",
    }
    assert payloads[1]["value"] == 2 and payloads[1]["zcta5"] is None


def test_assembler_drops_repeated_segment_admin_fields_once() -> None:
    """Admin names repeated in every segment namespace should count once per row."""
    row: dict[str, object] = {"geo.ZCTA5": "00601", "geo.LOGRECNO": 7}
    for alias in ("s01", "s02"):
        for name in _ADMIN:
            row[f"{alias}.{name}"] = "SF1ST" if name == "FILEID" else "0"
    row["s01.P0010001"] = 18570
    row["s02.P0020001"] = 18570
    resolver = MetadataResolver(_TREE)
    assembler = RecordAssembler(resolver)

    records = list(assembler.assemble(row))

    assert assembler.stats.administrative_fields_dropped == 4
    assert [record.key for record in records] == ["P0010001", "P0020001"]
    assert resolver.stats.total == 0
