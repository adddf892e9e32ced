"""Core constants used across censusflow modules.

This module centralizes file naming, table naming, and layout constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_WORK_DIR = Path(".censusflow")
DEFAULT_DATABASE_FILE_NAME = "census.duckdb"
DEFAULT_METADATA_FILE_NAME = "sf1_labels.json"
DEFAULT_OUTPUT_FILE_NAME = "census.json"
DEFAULT_SUMMARY_LEVEL = "880"
DEFAULT_CHUNK_SIZE = 5000
DEFAULT_DATASET = "sf1"
SOURCE_ENCODING = "latin-1"
SEGMENT_COUNT = 47
ARCHIVE_MEMBER_COUNT = SEGMENT_COUNT + 1
SEGMENT_DELIMITER = ","
GEO_TABLE_NAME = "geo2010"
GEO_SOURCE_FILE_TEMPLATE = "usgeo2010.{suffix}"
GEO_FILTERED_FILE_NAME = "usgeo2010.csv"
SEGMENT_FILE_TEMPLATE = "us000{segment:02d}2010.{suffix}"
SEGMENT_TABLE_TEMPLATE = "{dataset}_{segment:02d}"
SEGMENT_ALIAS_TEMPLATE = "s{segment:02d}"
FILTERED_SEGMENT_SUFFIX = "cs1"
GEO_ALIAS = "geo"
RECORD_SEQUENCE_FIELD = "LOGRECNO"
SUMMARY_LEVEL_FIELD = "SUMLEV"
ZCTA_FIELD = "ZCTA5"
ADMINISTRATIVE_FIELDS = ("FILEID", "STUSAB", "CHARITER", "CIFSN")
GEO_IDENTIFIER_FIELDS = ("STATE", "COUNTY", "ZCTA5", "LOGRECNO")
SEGMENT_RECORD_SEQUENCE_INDEX = 4
CANCELLATION_CHECK_INTERVAL = 10_000
SUPPORTED_SEGMENT_MATCH_MODES = ("range", "exact")
DEFAULT_SEGMENT_MATCH_MODE = "range"
