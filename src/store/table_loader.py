"""Resumable bulk loading of the filtered census files.

A table that already holds rows is treated as loaded and skipped, which
lets an interrupted load resume without truncating completed tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.cancellation import CancellationToken, check_cancelled
from core.constants import GEO_FILTERED_FILE_NAME, GEO_TABLE_NAME, SEGMENT_COUNT
from core.errors import EmptyInputError
from core.logging_config import get_logger
from ingest.file_checkpoint import has_checkpoint
from ingest.segment_extractor import segment_output_path
from store.census_store import CensusStore, DelimitedLoadSpec, FixedWidthLoadSpec
from store.schema import segment_table_name

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class LoadSummary:
    """Counts of loaded, already-populated, and missing tables."""

    loaded_tables: tuple[str, ...]
    skipped_tables: tuple[str, ...]
    missing_tables: tuple[str, ...]


def load_census_tables(
    store: CensusStore,
    work_dir: Path,
    dataset: str,
    segment_count: int = SEGMENT_COUNT,
    cancel_token: CancellationToken | None = None,
) -> LoadSummary:
    """Load the filtered header and segment files into the store.

    Args:
        store: Relational store collaborator.
        work_dir: Directory holding filtered files.
        dataset: Segment table prefix.
        segment_count: Number of segment tables.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Load summary.

    Raises:
        EmptyInputError: If the filtered header file is missing or empty.
        CensusStoreError: If a load fails.
    """
    loaded: list[str] = []
    skipped: list[str] = []
    missing: list[str] = []
    geo_path = work_dir / GEO_FILTERED_FILE_NAME
    if store.row_count(GEO_TABLE_NAME) > 0:
        _log_table_skipped(GEO_TABLE_NAME)
        skipped.append(GEO_TABLE_NAME)
    else:
        if not has_checkpoint(geo_path):
            raise EmptyInputError(
                f"Filtered header file {geo_path} not found or empty. "
                "Run the filter stage first, then rerun the load."
            )
        store.bulk_load(FixedWidthLoadSpec(table=GEO_TABLE_NAME, path=geo_path))
        loaded.append(GEO_TABLE_NAME)
    for segment in range(1, segment_count + 1):
        check_cancelled(cancel_token, "table_load")
        table = segment_table_name(dataset, segment)
        if store.row_count(table) > 0:
            _log_table_skipped(table)
            skipped.append(table)
            continue
        segment_path = segment_output_path(work_dir, segment)
        if not has_checkpoint(segment_path):
            _LOGGER.warning("segment_file_missing", table=table, path=str(segment_path))
            missing.append(table)
            continue
        store.bulk_load(DelimitedLoadSpec(table=table, path=segment_path))
        loaded.append(table)
    _LOGGER.info(
        "table_load_completed",
        loaded_count=len(loaded),
        skipped_count=len(skipped),
        missing_count=len(missing),
    )
    return LoadSummary(tuple(loaded), tuple(skipped), tuple(missing))


def _log_table_skipped(table: str) -> None:
    _LOGGER.info("table_load_skipped", table=table, reason="already_populated")
