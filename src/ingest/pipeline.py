"""Census pipeline orchestration.

This module coordinates archive retrieval, header and segment filtering,
table loading, and enriched export. Each stage skips work it already
completed, so an interrupted run is resumed by rerunning it.
"""

from __future__ import annotations

from core.cancellation import CancellationToken, check_cancelled
from core.config import CensusFlowConfig
from core.constants import GEO_FILTERED_FILE_NAME, SEGMENT_COUNT
from core.logging_config import get_logger
from core.types import GeoFilterResult, PipelineOptions, PipelineResult, SegmentExtractResult
from ingest.archive_fetch import fetch_archive
from ingest.geo_filter import filter_geo_file, geo_source_path
from ingest.segment_extractor import SegmentMatchMode, extract_all_segments
from store.census_store import CensusStore
from store.duckdb_store import DuckDBCensusStore
from store.schema import create_schema
from store.table_loader import LoadSummary, load_census_tables
from transforms.census_export import ExportRequest, export_census_records
from transforms.metadata_resolver import load_metadata_tree
from transforms.record_assembler import AssemblyStats

_LOGGER = get_logger(__name__)


class CensusPipelineRunner:
    """Sequential runner for the filter, load, and export stages."""

    def __init__(
        self,
        options: PipelineOptions,
        config: CensusFlowConfig,
        store: CensusStore | None = None,
        cancel_token: CancellationToken | None = None,
        segment_count: int = SEGMENT_COUNT,
    ) -> None:
        self._options = options
        self._config = config
        self._store = store
        self._owns_store = store is None
        self._cancel_token = cancel_token
        self._segment_count = segment_count

    def run(self) -> PipelineResult:
        """Execute every stage and return a run summary."""
        self.fetch()
        filter_result, segment_results = self.filter_sources()
        load_summary = self.load_tables()
        export_stats = self.export_records()
        result = PipelineResult(
            output_path=self._config.output_path,
            geography_count=filter_result.bounds.matched_count,
            segments_extracted=sum(1 for item in segment_results if item.skipped is None),
            segments_skipped=sum(1 for item in segment_results if item.skipped is not None),
            tables_loaded=len(load_summary.loaded_tables),
            tables_skipped=len(load_summary.skipped_tables),
            records_written=export_stats.records_emitted,
            metadata_misses=export_stats.metadata_misses,
        )
        _LOGGER.info("pipeline_completed", **_result_fields(result))
        return result

    def fetch(self) -> None:
        """Fetch and extract the archive when one is configured."""
        if not self._options.archive_uri:
            return
        fetch_archive(self._options.archive_uri, self._config)

    def filter_sources(self) -> tuple[GeoFilterResult, list[SegmentExtractResult]]:
        """Filter the header file, then extract matching segment records."""
        match_mode: SegmentMatchMode = (
            "exact" if self._config.segment_match_mode == "exact" else "range"
        )
        work_dir = self._config.work_dir
        filter_result = filter_geo_file(
            geo_source_path(work_dir, self._options.dataset),
            work_dir / GEO_FILTERED_FILE_NAME,
            self._config.summary_level,
            collect_ids=match_mode == "exact",
            skip_malformed=self._options.skip_malformed,
            cancel_token=self._cancel_token,
        )
        segment_results = extract_all_segments(
            work_dir,
            filter_result,
            self._options.dataset,
            match_mode=match_mode,
            segment_count=self._segment_count,
            cancel_token=self._cancel_token,
        )
        return filter_result, segment_results

    def load_tables(self) -> LoadSummary:
        """Create the schema and load any table that is still empty."""
        store = self._get_store()
        check_cancelled(self._cancel_token, "table_load")
        create_schema(store, self._options.schema_script)
        return load_census_tables(
            store,
            self._config.work_dir,
            self._options.dataset,
            segment_count=self._segment_count,
            cancel_token=self._cancel_token,
        )

    def export_records(self) -> AssemblyStats:
        """Write the enriched NDJSON export."""
        tree = load_metadata_tree(self._config.metadata_path)
        request = ExportRequest(
            output_path=self._config.output_path,
            summary_level=self._config.summary_level,
            chunk_size=self._config.chunk_size,
            dataset=self._options.dataset,
            segment_count=self._segment_count,
        )
        return export_census_records(self._get_store(), tree, request, self._cancel_token)

    def close(self) -> None:
        """Close a store opened by this runner."""
        if self._owns_store and self._store is not None:
            self._store.close()
            self._store = None

    def _get_store(self) -> CensusStore:
        if self._store is None:
            self._store = DuckDBCensusStore(self._config.database_path)
        return self._store


def run_pipeline(
    options: PipelineOptions,
    config: CensusFlowConfig,
    cancel_token: CancellationToken | None = None,
) -> PipelineResult:
    """Run the full pipeline against the configured DuckDB store.

    Args:
        options: Pipeline run options.
        config: Runtime configuration.
        cancel_token: Optional cooperative cancellation token.

    Returns:
        Run summary.

    Raises:
        CensusIngestError: If retrieval or filtering fails.
        CensusStoreError: If schema creation, loading, or querying fails.
        MetadataError: If the label tree cannot be loaded.
    """
    runner = CensusPipelineRunner(options, config, cancel_token=cancel_token)
    try:
        return runner.run()
    finally:
        runner.close()


def _result_fields(result: PipelineResult) -> dict[str, object]:
    return {
        "output_path": str(result.output_path),
        "geography_count": result.geography_count,
        "segments_extracted": result.segments_extracted,
        "segments_skipped": result.segments_skipped,
        "tables_loaded": result.tables_loaded,
        "tables_skipped": result.tables_skipped,
        "records_written": result.records_written,
        "metadata_misses": result.metadata_misses,
    }
