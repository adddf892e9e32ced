"""Fixed-width layout of the 2010 SF1 geographic header record.

Positions are 1-indexed and contiguous; the record is 500 characters wide.
The same table drives line decoding and positional bulk loading.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import FormatError

GEO_LAYOUT_VERSION = "sf1-2010"


@dataclass(frozen=True)
class GeoField:
    """One fixed-width field.

    Attributes:
        name: Column name in the geography table.
        start: One-based starting character position.
        length: Field width in characters.
    """

    name: str
    start: int
    length: int

    @property
    def end(self) -> int:
        """Return the exclusive zero-based end offset."""
        return self.start - 1 + self.length

    def slice(self, line: str) -> str:
        """Return this field's raw text from a decoded line."""
        return line[self.start - 1 : self.end]


_FIELD_WIDTHS: tuple[tuple[str, int], ...] = (
    ("FILEID", 6),
    ("STUSAB", 2),
    ("SUMLEV", 3),
    ("GEOCOMP", 2),
    ("CHARITER", 3),
    ("CIFSN", 2),
    ("LOGRECNO", 7),
    ("REGION", 1),
    ("DIVISION", 1),
    ("STATE", 2),
    ("COUNTY", 3),
    ("COUNTYCC", 2),
    ("COUNTYSC", 2),
    ("COUSUB", 5),
    ("COUSUBCC", 2),
    ("COUSUBSC", 2),
    ("PLACE", 5),
    ("PLACECC", 2),
    ("PLACESC", 2),
    ("TRACT", 6),
    ("BLKGRP", 1),
    ("BLOCK", 4),
    ("IUC", 2),
    ("CONCIT", 5),
    ("CONCITCC", 2),
    ("CONCITSC", 2),
    ("AIANHH", 4),
    ("AIANHHFP", 5),
    ("AIANHHCC", 2),
    ("AIHHTLI", 1),
    ("AITSCE", 3),
    ("AITS", 5),
    ("AITSCC", 2),
    ("TTRACT", 6),
    ("TBLKGRP", 1),
    ("ANRC", 5),
    ("ANRCCC", 2),
    ("CBSA", 5),
    ("CBSASC", 2),
    ("METDIV", 5),
    ("CSA", 3),
    ("NECTA", 5),
    ("NECTASC", 2),
    ("NECTADIV", 5),
    ("CNECTA", 3),
    ("CBSAPCI", 1),
    ("NECTAPCI", 1),
    ("UA", 5),
    ("UASC", 2),
    ("UATYPE", 1),
    ("UR", 1),
    ("CD", 2),
    ("SLDU", 3),
    ("SLDL", 3),
    ("VTD", 6),
    ("VTDI", 1),
    ("RESERVE2", 3),
    ("ZCTA5", 5),
    ("SUBMCD", 5),
    ("SUBMCDCC", 2),
    ("SDELM", 5),
    ("SDSEC", 5),
    ("SDUNI", 5),
    ("AREALAND", 14),
    ("AREAWATR", 14),
    ("NAME", 90),
    ("FUNCSTAT", 1),
    ("GCUNI", 1),
    ("POP100", 9),
    ("HU100", 9),
    ("INTPTLAT", 11),
    ("INTPTLON", 12),
    ("LSADC", 2),
    ("PARTFLAG", 1),
    ("RESERVE3", 6),
    ("UGA", 5),
    ("STATENS", 8),
    ("COUNTYNS", 8),
    ("COUSUBNS", 8),
    ("PLACENS", 8),
    ("CONCITNS", 8),
    ("AIANHHNS", 8),
    ("AITSNS", 8),
    ("ANRCNS", 8),
    ("SUBMCDNS", 8),
    ("CD113", 2),
    ("CD114", 2),
    ("CD115", 2),
    ("SLDU2", 3),
    ("SLDU3", 3),
    ("SLDU4", 3),
    ("SLDL2", 3),
    ("SLDL3", 3),
    ("SLDL4", 3),
    ("AIANHHSC", 2),
    ("CSASC", 2),
    ("CNECTASC", 2),
    ("MEMI", 1),
    ("NMEMI", 1),
    ("PUMA", 5),
    ("RESERVED", 18),
)


def _build_fields(widths: tuple[tuple[str, int], ...]) -> tuple[GeoField, ...]:
    fields: list[GeoField] = []
    start = 1
    for name, length in widths:
        fields.append(GeoField(name=name, start=start, length=length))
        start += length
    return tuple(fields)


GEO_FIELDS: tuple[GeoField, ...] = _build_fields(_FIELD_WIDTHS)
GEO_FIELDS_BY_NAME: dict[str, GeoField] = {item.name: item for item in GEO_FIELDS}
GEO_RECORD_WIDTH = max(item.end for item in GEO_FIELDS)


def geo_field(name: str) -> GeoField:
    """Return a layout field by name.

    Raises:
        FormatError: If the layout has no such field.
    """
    try:
        return GEO_FIELDS_BY_NAME[name]
    except KeyError as error:
        raise FormatError(
            f"Unknown geographic header field '{name}' in layout {GEO_LAYOUT_VERSION}."
        ) from error


def validate_layout(fields: tuple[GeoField, ...] = GEO_FIELDS) -> int:
    """Check that a layout is 1-indexed, contiguous, and non-overlapping.

    Args:
        fields: Ordered layout fields.

    Returns:
        Total record width in characters.

    Raises:
        FormatError: If the layout has gaps, overlaps, or duplicate names.
    """
    expected_start = 1
    seen_names: set[str] = set()
    for item in fields:
        if item.name in seen_names:
            raise FormatError(f"Duplicate layout field '{item.name}'.")
        if item.length <= 0 or item.start != expected_start:
            raise FormatError(
                f"Layout field '{item.name}' starts at {item.start}, "
                f"expected {expected_start} with a positive length."
            )
        seen_names.add(item.name)
        expected_start = item.start + item.length
    return expected_start - 1
