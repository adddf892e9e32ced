"""Summary-level filtering of the geographic header file.

This module keeps header lines whose SUMLEV exactly matches a target code
and tracks the LOGRECNO bounds of the matches in a single streaming pass.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, TextIO

from core.cancellation import CancellationToken, check_cancelled
from core.constants import CANCELLATION_CHECK_INTERVAL, GEO_SOURCE_FILE_TEMPLATE, SOURCE_ENCODING
from core.errors import EmptyInputError, GeoFormatError
from core.logging_config import get_logger
from core.types import GeoFilterResult, RecordBounds
from ingest.file_checkpoint import has_checkpoint, partial_path_for
from ingest.fixed_width import (
    read_record_sequence_id,
    read_summary_level,
    require_record_width,
    strip_line_terminator,
)

_LOGGER = get_logger(__name__)


def geo_source_path(work_dir: Path, dataset: str) -> Path:
    """Return the raw header file path, e.g. ``usgeo2010.sf1``."""
    return work_dir / GEO_SOURCE_FILE_TEMPLATE.format(suffix=dataset)


class RecordBoundsTracker:
    """Running min/max of matched record-sequence ids."""

    def __init__(self) -> None:
        self._min_id: int | None = None
        self._max_id: int | None = None
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def observe(self, record_sequence_id: int) -> None:
        """Fold one matched id into the running bounds."""
        if self._min_id is None or record_sequence_id < self._min_id:
            self._min_id = record_sequence_id
        if self._max_id is None or record_sequence_id > self._max_id:
            self._max_id = record_sequence_id
        self._count += 1

    def bounds(self, summary_level: str) -> RecordBounds:
        """Return the observed bounds.

        Raises:
            EmptyInputError: If no id was observed.
        """
        if self._min_id is None or self._max_id is None:
            raise EmptyInputError(
                f"No geographic header lines matched summary level '{summary_level}'. "
                "Check CENSUSFLOW_SUMMARY_LEVEL and the header file, then rerun."
            )
        return RecordBounds(min_id=self._min_id, max_id=self._max_id, matched_count=self._count)


def filter_geo_lines(
    lines: Iterable[str],
    summary_level: str,
    output: TextIO | None = None,
    collect_ids: bool = False,
    skip_malformed: bool = False,
    cancel_token: CancellationToken | None = None,
) -> GeoFilterResult:
    """Filter header lines by exact summary-level match.

    Args:
        lines: Header lines in file order.
        summary_level: Target SUMLEV code.
        output: Optional stream receiving matched lines in original order.
        collect_ids: Also return the set of matched ids for exact matching.
        skip_malformed: Count and skip short lines instead of raising.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Filter result with bounds and counters.

    Raises:
        GeoFormatError: If a line is malformed and skipping is disabled.
        EmptyInputError: If no line matches.
    """
    tracker = RecordBoundsTracker()
    matched_ids: set[int] | None = set() if collect_ids else None
    scanned_count = 0
    malformed_count = 0
    for line_number, line in enumerate(lines, 1):
        if line_number % CANCELLATION_CHECK_INTERVAL == 0:
            check_cancelled(cancel_token, "geo_filter")
        record_text = strip_line_terminator(line)
        if not record_text.strip():
            continue
        scanned_count += 1
        try:
            require_record_width(record_text, line_number)
        except GeoFormatError:
            if not skip_malformed:
                raise
            malformed_count += 1
            _LOGGER.warning("geo_line_malformed", line_number=line_number, length=len(record_text))
            continue
        if read_summary_level(record_text) != summary_level:
            continue
        record_sequence_id = read_record_sequence_id(record_text, line_number)
        tracker.observe(record_sequence_id)
        if matched_ids is not None:
            matched_ids.add(record_sequence_id)
        if output is not None:
            output.write(record_text + "\n")
    return GeoFilterResult(
        bounds=tracker.bounds(summary_level),
        scanned_count=scanned_count,
        malformed_count=malformed_count,
        matched_ids=frozenset(matched_ids) if matched_ids is not None else None,
    )


def filter_geo_file(
    source_path: Path,
    output_path: Path,
    summary_level: str,
    collect_ids: bool = False,
    skip_malformed: bool = False,
    cancel_token: CancellationToken | None = None,
) -> GeoFilterResult:
    """Filter the header file to disk, reusing a completed output.

    Args:
        source_path: Raw fixed-width header file.
        output_path: Filtered header destination.
        summary_level: Target SUMLEV code.
        collect_ids: Also return matched ids for exact segment matching.
        skip_malformed: Count and skip short lines instead of raising.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Filter result; ``skipped`` is set when an existing output was reused.

    Raises:
        EmptyInputError: If the source is missing, empty, or has no matches.
        GeoFormatError: If a line is malformed and skipping is disabled.
    """
    if has_checkpoint(output_path):
        result = _rescan_filtered_file(output_path, summary_level, collect_ids, cancel_token)
        _LOGGER.info(
            "geo_filter_skipped",
            output_path=str(output_path),
            matched_count=result.bounds.matched_count,
            min_id=result.bounds.min_id,
            max_id=result.bounds.max_id,
        )
        return result
    _require_source(source_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = partial_path_for(output_path)
    try:
        with source_path.open("r", encoding=SOURCE_ENCODING) as source, partial_path.open(
            "w", encoding=SOURCE_ENCODING
        ) as output:
            result = filter_geo_lines(
                source,
                summary_level,
                output=output,
                collect_ids=collect_ids,
                skip_malformed=skip_malformed,
                cancel_token=cancel_token,
            )
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise
    partial_path.replace(output_path)
    _LOGGER.info(
        "geo_filter_completed",
        source_path=str(source_path),
        output_path=str(output_path),
        scanned_count=result.scanned_count,
        matched_count=result.bounds.matched_count,
        malformed_count=result.malformed_count,
        min_id=result.bounds.min_id,
        max_id=result.bounds.max_id,
    )
    return GeoFilterResult(
        bounds=result.bounds,
        output_path=output_path,
        scanned_count=result.scanned_count,
        malformed_count=result.malformed_count,
        matched_ids=result.matched_ids,
    )


def _rescan_filtered_file(
    output_path: Path,
    summary_level: str,
    collect_ids: bool,
    cancel_token: CancellationToken | None,
) -> GeoFilterResult:
    """Recompute bounds from an already-filtered header file."""
    with output_path.open("r", encoding=SOURCE_ENCODING) as filtered:
        result = filter_geo_lines(
            filtered, summary_level, collect_ids=collect_ids, cancel_token=cancel_token
        )
    return GeoFilterResult(
        bounds=result.bounds,
        output_path=output_path,
        scanned_count=result.scanned_count,
        matched_ids=result.matched_ids,
        skipped=True,
    )


def _require_source(source_path: Path) -> None:
    if not source_path.is_file() or source_path.stat().st_size == 0:
        raise EmptyInputError(
            f"Geographic header file {source_path} not found or empty. "
            "Fetch and extract the SF1 archive, then rerun."
        )
