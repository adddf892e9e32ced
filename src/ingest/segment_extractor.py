"""Record-range extraction for SF1 segment files.

This module streams each comma-delimited segment file once and keeps the
records whose LOGRECNO, compared numerically, falls inside the header bounds.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Iterator, Literal

from core.cancellation import CancellationToken, check_cancelled
from core.constants import (
    CANCELLATION_CHECK_INTERVAL,
    FILTERED_SEGMENT_SUFFIX,
    SEGMENT_COUNT,
    SEGMENT_DELIMITER,
    SEGMENT_FILE_TEMPLATE,
    SEGMENT_RECORD_SEQUENCE_INDEX,
    SOURCE_ENCODING,
)
from core.errors import CensusConfigError, FormatError
from core.logging_config import get_logger
from core.types import GeoFilterResult, RecordBounds, SegmentExtractResult
from ingest.file_checkpoint import has_checkpoint, partial_path_for

_LOGGER = get_logger(__name__)

SegmentMatchMode = Literal["range", "exact"]


def segment_source_path(work_dir: Path, segment: int, dataset: str) -> Path:
    """Return the raw segment file path, e.g. ``us000012010.sf1``."""
    return work_dir / SEGMENT_FILE_TEMPLATE.format(segment=segment, suffix=dataset)


def segment_output_path(work_dir: Path, segment: int) -> Path:
    """Return the filtered segment file path, e.g. ``us000012010.cs1``."""
    return work_dir / SEGMENT_FILE_TEMPLATE.format(
        segment=segment, suffix=FILTERED_SEGMENT_SUFFIX
    )


def parse_segment_record_sequence_id(line: str, line_number: int | None = None) -> int:
    """Return the LOGRECNO field of a segment record as an integer.

    Raises:
        FormatError: If the record has too few fields or a non-numeric id.
    """
    parts = line.split(SEGMENT_DELIMITER, SEGMENT_RECORD_SEQUENCE_INDEX + 1)
    location = "" if line_number is None else f" at line {line_number}"
    if len(parts) <= SEGMENT_RECORD_SEQUENCE_INDEX:
        raise FormatError(
            f"Malformed segment record{location}: expected at least "
            f"{SEGMENT_RECORD_SEQUENCE_INDEX + 1} comma-delimited fields."
        )
    raw_value = parts[SEGMENT_RECORD_SEQUENCE_INDEX].strip()
    try:
        return int(raw_value)
    except ValueError as error:
        raise FormatError(
            f"Malformed segment record{location}: LOGRECNO '{raw_value}' is not numeric."
        ) from error


def iter_segment_range(
    lines: Iterable[str],
    bounds: RecordBounds,
    cancel_token: CancellationToken | None = None,
) -> Iterator[str]:
    """Yield segment lines whose id satisfies ``min_id <= id <= max_id``.

    Args:
        lines: Segment lines in file order.
        bounds: Inclusive bounds from the header filter.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Lazy iterator of matching lines without line terminators.
    """
    return _iter_matching(lines, bounds.contains, cancel_token)


def iter_segment_exact(
    lines: Iterable[str],
    matched_ids: frozenset[int],
    cancel_token: CancellationToken | None = None,
) -> Iterator[str]:
    """Yield segment lines whose id is one of the matched header ids."""
    return _iter_matching(lines, matched_ids.__contains__, cancel_token)


def extract_segment(
    segment: int,
    source_path: Path,
    output_path: Path,
    filter_result: GeoFilterResult,
    match_mode: SegmentMatchMode = "range",
    cancel_token: CancellationToken | None = None,
) -> SegmentExtractResult:
    """Filter one segment file to disk, reusing a completed output.

    Args:
        segment: One-based segment number.
        source_path: Raw segment file.
        output_path: Filtered segment destination.
        filter_result: Header filter result carrying bounds and ids.
        match_mode: ``range`` for numeric bounds or ``exact`` for id set.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Extraction result; ``skipped`` names why no extraction ran.

    Raises:
        FormatError: If a segment record is malformed.
        CensusConfigError: If exact mode is requested without matched ids.
    """
    if has_checkpoint(output_path):
        _LOGGER.info("segment_extract_skipped", segment=segment, reason="cached")
        return SegmentExtractResult(segment, source_path, output_path, skipped="cached")
    if not source_path.is_file() or source_path.stat().st_size == 0:
        _LOGGER.warning(
            "segment_source_missing", segment=segment, source_path=str(source_path)
        )
        return SegmentExtractResult(segment, source_path, output_path, skipped="missing_source")
    partial_path = partial_path_for(output_path)
    scanned_count = 0
    kept_count = 0
    try:
        with source_path.open("r", encoding=SOURCE_ENCODING) as source, partial_path.open(
            "w", encoding=SOURCE_ENCODING
        ) as output:
            counted_lines = _CountingLines(source)
            for line in _select_lines(counted_lines, filter_result, match_mode, cancel_token):
                output.write(line + "\n")
                kept_count += 1
            scanned_count = counted_lines.count
    except FormatError as error:
        partial_path.unlink(missing_ok=True)
        raise FormatError(f"{source_path}: {error}") from error
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise
    partial_path.replace(output_path)
    _LOGGER.info(
        "segment_extract_completed",
        segment=segment,
        match_mode=match_mode,
        scanned_count=scanned_count,
        kept_count=kept_count,
    )
    return SegmentExtractResult(
        segment=segment,
        source_path=source_path,
        output_path=output_path,
        kept_count=kept_count,
        scanned_count=scanned_count,
    )


def extract_all_segments(
    work_dir: Path,
    filter_result: GeoFilterResult,
    dataset: str,
    match_mode: SegmentMatchMode = "range",
    segment_count: int = SEGMENT_COUNT,
    cancel_token: CancellationToken | None = None,
) -> list[SegmentExtractResult]:
    """Extract every segment file of a dataset in segment order."""
    results: list[SegmentExtractResult] = []
    for segment in range(1, segment_count + 1):
        check_cancelled(cancel_token, "segment_extract")
        results.append(
            extract_segment(
                segment,
                segment_source_path(work_dir, segment, dataset),
                segment_output_path(work_dir, segment),
                filter_result,
                match_mode=match_mode,
                cancel_token=cancel_token,
            )
        )
    missing_count = sum(1 for result in results if result.skipped == "missing_source")
    if missing_count:
        _LOGGER.warning("segments_missing", missing_count=missing_count, total=segment_count)
    return results


class _CountingLines:
    """Line iterator wrapper that counts consumed lines."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = iter(lines)
        self.count = 0

    def __iter__(self) -> "_CountingLines":
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.count += 1
        return line


def _select_lines(
    lines: Iterable[str],
    filter_result: GeoFilterResult,
    match_mode: SegmentMatchMode,
    cancel_token: CancellationToken | None,
) -> Iterator[str]:
    if match_mode == "range":
        return iter_segment_range(lines, filter_result.bounds, cancel_token)
    if match_mode == "exact":
        if filter_result.matched_ids is None:
            raise CensusConfigError(
                "Exact segment matching requires matched header ids. "
                "Run the header filter with collect_ids enabled."
            )
        return iter_segment_exact(lines, filter_result.matched_ids, cancel_token)
    raise CensusConfigError(f"Unsupported segment match mode '{match_mode}'.")


def _iter_matching(
    lines: Iterable[str],
    predicate: Callable[[int], bool],
    cancel_token: CancellationToken | None,
) -> Iterator[str]:
    for line_number, line in enumerate(lines, 1):
        if line_number % CANCELLATION_CHECK_INTERVAL == 0:
            check_cancelled(cancel_token, "segment_extract")
        record_text = line.rstrip("\r\n")
        if not record_text.strip():
            continue
        if predicate(parse_segment_record_sequence_id(record_text, line_number)):
            yield record_text
