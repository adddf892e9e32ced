"""Unit tests for fixed-width header decoding."""

from __future__ import annotations

from dataclasses import replace

import pytest

from core.errors import FormatError, GeoFormatError
from ingest.fixed_width import decode_geo_line, read_record_sequence_id
from ingest.geo_layout import GEO_FIELDS, GEO_RECORD_WIDTH, geo_field, validate_layout
from tests.census_fixtures import build_geo_line


def test_layout_is_contiguous_and_500_wide() -> None:
    """Layout should tile positions 1..500 without gaps or overlaps."""
    width = validate_layout()

    assert width == GEO_RECORD_WIDTH == 500 and len(GEO_FIELDS) == 101


def test_layout_key_field_positions() -> None:
    """Key fields should sit at their published one-based positions."""
    positions = {name: geo_field(name).start for name in ("SUMLEV", "LOGRECNO", "ZCTA5", "POP100")}

    assert positions == {"SUMLEV": 9, "LOGRECNO": 19, "ZCTA5": 172, "POP100": 319}


def test_validate_layout_rejects_overlap() -> None:
    """Overlapping fields should be reported as a layout error."""
    fields = list(GEO_FIELDS)
    fields[1] = replace(fields[1], start=fields[1].start - 1)

    with pytest.raises(FormatError):
        validate_layout(tuple(fields))


def test_decode_geo_line_reads_named_fields() -> None:
    """Decoded record should expose typed key fields."""
    line = build_geo_line("880", 42, ZCTA5="00601", NAME="ZCTA5 00601")

    record = decode_geo_line(line + "\r\n")

    assert record.summary_level == "880"
    assert record.record_sequence_id == 42
    assert record.zcta5 == "00601"
    assert record.fields["NAME"].rstrip() == "ZCTA5 00601"


def test_decode_geo_line_rejects_short_line() -> None:
    """Short line should raise instead of decoding partially."""
    with pytest.raises(GeoFormatError, match="line 7"):
        decode_geo_line("SF1ST US880", line_number=7)


def test_read_record_sequence_id_rejects_non_numeric() -> None:
    """Non-numeric LOGRECNO should raise a format error."""
    line = build_geo_line("880", 1)
    start = geo_field("LOGRECNO").start - 1
    corrupted = line[:start] + "ABCDEFG" + line[start + 7 :]

    with pytest.raises(GeoFormatError):
        read_record_sequence_id(corrupted)
