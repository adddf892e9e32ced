"""Export of enriched census records from the relational store.

This module wires the join query, chunked execution, metadata resolution,
and record assembly into one streaming NDJSON export.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.cancellation import CancellationToken
from core.constants import SEGMENT_COUNT
from core.logging_config import get_logger
from ingest.file_checkpoint import partial_path_for
from store.census_store import CensusStore
from store.join_query import build_join_query, discover_segment_columns
from store.paginated_query import count_geographies, iter_paginated_rows
from transforms.metadata_resolver import MetadataResolver, MetadataTree
from transforms.record_assembler import AssemblyStats, RecordAssembler, write_ndjson

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ExportRequest:
    """Inputs of one export run.

    Attributes:
        output_path: NDJSON destination.
        summary_level: SUMLEV code to export.
        chunk_size: Rows per paginated query.
        dataset: Segment table prefix.
        segment_count: Number of segment tables to join.
    """

    output_path: Path
    summary_level: str
    chunk_size: int
    dataset: str = "sf1"
    segment_count: int = SEGMENT_COUNT


def export_census_records(
    store: CensusStore,
    tree: MetadataTree,
    request: ExportRequest,
    cancel_token: CancellationToken | None = None,
) -> AssemblyStats:
    """Stream the joined geography rows to enriched NDJSON.

    Args:
        store: Loaded relational store.
        tree: Metadata tree keyed by table code.
        request: Export parameters.
        cancel_token: Optional token checked between chunks.

    Returns:
        Assembly counters, including metadata misses.

    Raises:
        CensusStoreError: If the join or count query fails.
        CancelledError: If cancellation is requested mid-export.
    """
    segment_columns = discover_segment_columns(store, request.dataset, request.segment_count)
    query = build_join_query(segment_columns, request.summary_level, request.dataset)
    total_rows = count_geographies(store, request.summary_level)
    resolver = MetadataResolver(tree)
    assembler = RecordAssembler(resolver)
    rows = iter_paginated_rows(store, query, request.chunk_size, total_rows, cancel_token)
    request.output_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = partial_path_for(request.output_path)
    try:
        with partial_path.open("w", encoding="utf-8") as output:
            write_ndjson(assembler.assemble_rows(rows), output)
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise
    partial_path.replace(request.output_path)
    stats = assembler.stats
    _LOGGER.info(
        "export_completed",
        output_path=str(request.output_path),
        column_count=len(query.columns),
        geography_count=stats.rows,
        records_written=stats.records_emitted,
        administrative_fields_dropped=stats.administrative_fields_dropped,
        metadata_misses=stats.metadata_misses,
        missing_tables=sorted(resolver.stats.missing_tables),
    )
    return stats
