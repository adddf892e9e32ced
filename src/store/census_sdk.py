"""Python SDK for census pipeline operations.

This module exposes high-level APIs for fetching, filtering, loading,
and exporting SF1 data backed by the pipeline runner.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Callable, TypeVar

from core.cancellation import CancellationToken
from core.config import CensusFlowConfig
from core.types import (
    GeoFilterResult,
    PipelineOptions,
    PipelineResult,
    SegmentExtractResult,
)
from ingest.pipeline import CensusPipelineRunner
from store.census_store import CensusStore
from store.table_loader import LoadSummary
from transforms.record_assembler import AssemblyStats

_T = TypeVar("_T")


class CensusFlowClient:
    """Primary SDK entry point for census workflows."""

    def __init__(
        self,
        config: CensusFlowConfig | None = None,
        store: CensusStore | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            store: Optional store collaborator; DuckDB at the configured path otherwise.
            cancel_token: Optional cooperative cancellation token.
        """
        self._config = config or CensusFlowConfig.from_env()
        self._store = store
        self._cancel_token = cancel_token

    @property
    def config(self) -> CensusFlowConfig:
        return self._config

    def fetch(self, archive_uri: str) -> None:
        """Fetch and extract an SF1 archive into the work directory."""
        self._run(PipelineOptions(archive_uri=archive_uri), lambda runner: runner.fetch())

    def filter(
        self,
        options: PipelineOptions | None = None,
    ) -> tuple[GeoFilterResult, list[SegmentExtractResult]]:
        """Filter the header and segment files for the configured summary level."""
        return self._run(options or PipelineOptions(), lambda runner: runner.filter_sources())

    def load(self, options: PipelineOptions | None = None) -> LoadSummary:
        """Create the schema and load filtered files into the store."""
        return self._run(options or PipelineOptions(), lambda runner: runner.load_tables())

    def export(self, options: PipelineOptions | None = None) -> AssemblyStats:
        """Write enriched NDJSON records for the configured summary level."""
        return self._run(options or PipelineOptions(), lambda runner: runner.export_records())

    def run(self, options: PipelineOptions | None = None) -> PipelineResult:
        """Run fetch, filter, load, and export in order."""
        return self._run(options or PipelineOptions(), lambda runner: runner.run())

    def with_work_dir(self, work_dir: str) -> "CensusFlowClient":
        """Clone the client with a different work directory.

        Database and metadata paths are kept as configured.
        """
        resolved_dir = Path(work_dir).expanduser().resolve()
        updated_config = replace(self._config, work_dir=resolved_dir)
        return CensusFlowClient(updated_config, self._store, self._cancel_token)

    def _run(
        self,
        options: PipelineOptions,
        action: Callable[[CensusPipelineRunner], _T],
    ) -> _T:
        runner = CensusPipelineRunner(
            options, self._config, store=self._store, cancel_token=self._cancel_token
        )
        try:
            return action(runner)
        finally:
            runner.close()
