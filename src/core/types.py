"""Shared typed models.

This module defines immutable data models used by the ingest, store,
and transform layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from core.constants import DEFAULT_DATASET


@dataclass(frozen=True)
class GeoRecord:
    """Decoded geographic header line.

    Attributes:
        fields: Field values keyed by layout name, in layout order.
    """

    fields: Mapping[str, str]

    @property
    def summary_level(self) -> str:
        return self.fields["SUMLEV"]

    @property
    def record_sequence_id(self) -> int:
        """Return LOGRECNO as an integer join key."""
        return int(self.fields["LOGRECNO"])

    @property
    def zcta5(self) -> str:
        return self.fields["ZCTA5"]


@dataclass(frozen=True)
class RecordBounds:
    """Inclusive record-sequence id range found by the header filter.

    Attributes:
        min_id: Smallest matched LOGRECNO.
        max_id: Largest matched LOGRECNO.
        matched_count: Number of header lines that produced the bounds.
    """

    min_id: int
    max_id: int
    matched_count: int

    def contains(self, record_sequence_id: int) -> bool:
        """Return whether an id lies inside the inclusive bounds."""
        return self.min_id <= record_sequence_id <= self.max_id


@dataclass(frozen=True)
class GeoFilterResult:
    """Outcome of filtering the geographic header file.

    Attributes:
        bounds: Record-sequence bounds of matched lines.
        output_path: Filtered header file path, when written to disk.
        scanned_count: Header lines read.
        malformed_count: Lines skipped as too short (skip mode only).
        matched_ids: Matched ids, collected only for exact segment matching.
        skipped: Whether an existing filtered file was reused.
    """

    bounds: RecordBounds
    output_path: Path | None = None
    scanned_count: int = 0
    malformed_count: int = 0
    matched_ids: frozenset[int] | None = None
    skipped: bool = False


@dataclass(frozen=True)
class SegmentExtractResult:
    """Outcome of extracting one segment file.

    Attributes:
        segment: One-based segment number.
        source_path: Raw segment file path.
        output_path: Filtered segment file path.
        kept_count: Records written to output.
        scanned_count: Records read from source.
        skipped: ``cached`` or ``missing_source`` when no extraction ran.
    """

    segment: int
    source_path: Path
    output_path: Path
    kept_count: int = 0
    scanned_count: int = 0
    skipped: str | None = None


@dataclass(frozen=True)
class TableDescriptor:
    """Metadata for one census table.

    Attributes:
        name: Human-readable table title.
        universe: Population the table describes.
        labels: Label text keyed by full column code.
    """

    name: str
    universe: str
    labels: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedLabel:
    """Successful metadata resolution for one column code."""

    table_code: str
    name: str
    universe: str
    text: str


@dataclass(frozen=True)
class OutputRecord:
    """One enriched (geography, variable) output record."""

    name: str
    universe: str
    text: str
    key: str
    value: object
    zcta5: str | None

    def to_payload(self) -> dict[str, object]:
        """Serialize into the NDJSON object layout."""
        return {
            "name": self.name,
            "universe": self.universe,
            "text": self.text,
            "key": self.key,
            "value": self.value,
            "zcta5": self.zcta5,
        }


@dataclass(frozen=True)
class JoinQuery:
    """Paginatable join query.

    Attributes:
        sql: Query text without LIMIT/OFFSET.
        parameters: Positional parameters bound before LIMIT/OFFSET.
        columns: Namespaced output column names in select order.
    """

    sql: str
    parameters: tuple[object, ...]
    columns: tuple[str, ...]


@dataclass(frozen=True)
class PipelineOptions:
    """Pipeline run options.

    Attributes:
        archive_uri: Optional local path or ``s3://`` URI of the source zip.
        schema_script: Optional SQL script creating the segment tables.
        dataset: Source file suffix and segment table prefix.
        skip_malformed: Count and skip short header lines instead of failing.
    """

    archive_uri: str | None = None
    schema_script: Path | None = None
    dataset: str = DEFAULT_DATASET
    skip_malformed: bool = False


@dataclass(frozen=True)
class PipelineResult:
    """Summary of one pipeline run."""

    output_path: Path
    geography_count: int
    segments_extracted: int
    segments_skipped: int
    tables_loaded: int
    tables_skipped: int
    records_written: int
    metadata_misses: int
