"""Fixed-width decoding of geographic header lines.

This module turns one latin-1 header line into a typed GeoRecord.
Lines shorter than the layout width are rejected, never partially decoded.
"""

from __future__ import annotations

from core.errors import GeoFormatError
from core.types import GeoRecord
from ingest.geo_layout import GEO_FIELDS, GEO_RECORD_WIDTH, GeoField, geo_field

_SUMMARY_LEVEL_FIELD = geo_field("SUMLEV")
_RECORD_SEQUENCE_FIELD = geo_field("LOGRECNO")


def decode_geo_line(line: str, line_number: int | None = None) -> GeoRecord:
    """Decode a header line into named fields.

    Args:
        line: Raw header line, with or without its line terminator.
        line_number: Optional one-based position used in error messages.

    Returns:
        Decoded record with every layout field.

    Raises:
        GeoFormatError: If the line is shorter than the layout width.
    """
    record_text = strip_line_terminator(line)
    require_record_width(record_text, line_number)
    return GeoRecord(fields={item.name: item.slice(record_text) for item in GEO_FIELDS})


def read_summary_level(record_text: str) -> str:
    """Return the raw SUMLEV substring of a full-width line."""
    return _SUMMARY_LEVEL_FIELD.slice(record_text)


def read_record_sequence_id(record_text: str, line_number: int | None = None) -> int:
    """Return LOGRECNO of a full-width line as an integer.

    Raises:
        GeoFormatError: If LOGRECNO is not numeric.
    """
    return _parse_numeric_field(_RECORD_SEQUENCE_FIELD, record_text, line_number)


def require_record_width(record_text: str, line_number: int | None = None) -> None:
    """Raise unless a line covers the full layout width.

    Raises:
        GeoFormatError: If the line is too short.
    """
    if len(record_text) >= GEO_RECORD_WIDTH:
        return
    raise GeoFormatError(
        f"Malformed geographic header{_location(line_number)}: "
        f"expected at least {GEO_RECORD_WIDTH} characters, got {len(record_text)}. "
        "Check that the header file is an unmodified SF1 extract."
    )


def strip_line_terminator(line: str) -> str:
    """Remove a trailing ``\\n`` or ``\\r\\n`` without touching padding."""
    return line.rstrip("\r\n")


def _parse_numeric_field(item: GeoField, record_text: str, line_number: int | None) -> int:
    raw_value = item.slice(record_text)
    try:
        return int(raw_value)
    except ValueError as error:
        raise GeoFormatError(
            f"Malformed geographic header{_location(line_number)}: "
            f"{item.name} '{raw_value}' is not numeric."
        ) from error


def _location(line_number: int | None) -> str:
    return "" if line_number is None else f" at line {line_number}"
