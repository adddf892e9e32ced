"""Chunked execution of the join query.

Rows are fetched with LIMIT/OFFSET one chunk at a time and yielded lazily,
so at most one chunk of the wide join result is held in memory.
"""

from __future__ import annotations

from typing import Iterator

from core.cancellation import CancellationToken, check_cancelled
from core.errors import CensusConfigError
from core.logging_config import get_logger
from core.types import JoinQuery
from store.census_store import CensusStore, Row
from store.join_query import build_count_query

_LOGGER = get_logger(__name__)


def chunk_offsets(total_row_estimate: int, chunk_size: int) -> range:
    """Return the offsets visited for a row total and chunk size.

    The last offset is the largest multiple of ``chunk_size`` below the
    total, so a final partial chunk is always fetched.

    Raises:
        CensusConfigError: If chunk size is not positive.
    """
    if chunk_size <= 0:
        raise CensusConfigError(f"Chunk size must be positive, got {chunk_size}.")
    return range(0, max(total_row_estimate, 0), chunk_size)


def iter_paginated_rows(
    store: CensusStore,
    query: JoinQuery,
    chunk_size: int,
    total_row_estimate: int,
    cancel_token: CancellationToken | None = None,
) -> Iterator[Row]:
    """Yield query rows chunk by chunk.

    Args:
        store: Relational store collaborator.
        query: Ordered query without LIMIT/OFFSET.
        chunk_size: Rows per chunk.
        total_row_estimate: Expected total rows; iteration runs while
            ``offset < total_row_estimate``.
        cancel_token: Optional token checked before each chunk.

    Yields:
        Joined rows in query order.
    """
    for offset in chunk_offsets(total_row_estimate, chunk_size):
        check_cancelled(cancel_token, "paginated_query")
        paged_sql = f"{query.sql}\nLIMIT {int(chunk_size)} OFFSET {int(offset)}"
        rows = store.query(paged_sql, query.parameters)
        _LOGGER.info("query_chunk_fetched", offset=offset, chunk_size=chunk_size, rows=len(rows))
        if not rows:
            return
        yield from rows


def count_geographies(store: CensusStore, summary_level: str) -> int:
    """Return the number of geography rows at a summary level."""
    count_query = build_count_query(summary_level)
    rows = store.query(count_query.sql, count_query.parameters)
    return int(rows[0]["row_count"])  # type: ignore[arg-type]
