"""Runtime configuration model for censusflow.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DATABASE_FILE_NAME,
    DEFAULT_METADATA_FILE_NAME,
    DEFAULT_OUTPUT_FILE_NAME,
    DEFAULT_SEGMENT_MATCH_MODE,
    DEFAULT_SUMMARY_LEVEL,
    DEFAULT_WORK_DIR,
    SUPPORTED_SEGMENT_MATCH_MODES,
)
from core.errors import CensusConfigError


@dataclass(frozen=True)
class CensusFlowConfig:
    """Validated runtime configuration.

    Attributes:
        work_dir: Directory holding extracted, filtered, and output files.
        database_path: DuckDB database file used as the relational store.
        metadata_path: JSON label tree keyed by table code.
        summary_level: Three-character SUMLEV code to keep.
        chunk_size: Rows fetched per paginated join query.
        segment_match_mode: ``range`` or ``exact`` segment record matching.
        s3_region: Optional default AWS region for archive downloads.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    work_dir: Path
    database_path: Path
    metadata_path: Path
    summary_level: str
    chunk_size: int
    segment_match_mode: str
    s3_region: str | None
    s3_profile: str | None

    @property
    def output_path(self) -> Path:
        """Return the newline-delimited JSON output path."""
        return self.work_dir / DEFAULT_OUTPUT_FILE_NAME

    @classmethod
    def from_env(cls) -> "CensusFlowConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            CensusConfigError: If environment values are invalid.
        """
        work_dir = Path(os.getenv("CENSUSFLOW_WORK_DIR", str(DEFAULT_WORK_DIR)))
        work_dir = work_dir.expanduser().resolve()
        database_value = os.getenv("CENSUSFLOW_DATABASE_PATH")
        metadata_value = os.getenv("CENSUSFLOW_METADATA_PATH")
        return cls(
            work_dir=work_dir,
            database_path=_resolve_path(database_value, work_dir / DEFAULT_DATABASE_FILE_NAME),
            metadata_path=_resolve_path(metadata_value, work_dir / DEFAULT_METADATA_FILE_NAME),
            summary_level=parse_summary_level(
                os.getenv("CENSUSFLOW_SUMMARY_LEVEL", DEFAULT_SUMMARY_LEVEL)
            ),
            chunk_size=parse_chunk_size(
                os.getenv("CENSUSFLOW_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))
            ),
            segment_match_mode=parse_segment_match_mode(
                os.getenv("CENSUSFLOW_SEGMENT_MATCH", DEFAULT_SEGMENT_MATCH_MODE)
            ),
            s3_region=os.getenv("CENSUSFLOW_S3_REGION"),
            s3_profile=os.getenv("CENSUSFLOW_S3_PROFILE"),
        )


def parse_summary_level(raw_value: str) -> str:
    """Validate a summary-level code.

    Args:
        raw_value: Raw string from environment or CLI.

    Returns:
        The three-digit code, kept as a string.

    Raises:
        CensusConfigError: If value is not exactly three digits.
    """
    if len(raw_value) != 3 or not raw_value.isdigit():
        raise CensusConfigError(
            "Invalid CENSUSFLOW_SUMMARY_LEVEL value: "
            f"expected a three-digit code such as '880', got '{raw_value}'."
        )
    return raw_value


def parse_chunk_size(raw_value: str) -> int:
    """Parse and validate the pagination chunk size.

    Args:
        raw_value: Raw string from environment or CLI.

    Returns:
        Positive chunk size.

    Raises:
        CensusConfigError: If value is not a positive integer.
    """
    try:
        chunk_size = int(raw_value)
    except ValueError as error:
        raise CensusConfigError(
            "Invalid CENSUSFLOW_CHUNK_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set CENSUSFLOW_CHUNK_SIZE to a positive number."
        ) from error
    if chunk_size <= 0:
        raise CensusConfigError(
            f"Invalid CENSUSFLOW_CHUNK_SIZE value: expected a positive integer, got {chunk_size}."
        )
    return chunk_size


def parse_segment_match_mode(raw_value: str) -> str:
    """Validate the segment match mode.

    Raises:
        CensusConfigError: If the mode is not supported.
    """
    normalized_value = raw_value.strip().lower()
    if normalized_value not in SUPPORTED_SEGMENT_MATCH_MODES:
        raise CensusConfigError(
            f"Invalid CENSUSFLOW_SEGMENT_MATCH value '{raw_value}'. "
            f"Supported modes: {', '.join(SUPPORTED_SEGMENT_MATCH_MODES)}."
        )
    return normalized_value


def _resolve_path(raw_value: str | None, default_path: Path) -> Path:
    if not raw_value:
        return default_path
    return Path(raw_value).expanduser().resolve()
