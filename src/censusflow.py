"""Public SDK surface for censusflow.

This module provides a stable import path for pipeline users.
It re-exports the primary client and typed option models.
"""

from __future__ import annotations

from core.cancellation import CancellationToken
from core.config import CensusFlowConfig
from core.types import OutputRecord, PipelineOptions, PipelineResult
from ingest.pipeline import run_pipeline
from store.census_sdk import CensusFlowClient
from store.duckdb_store import DuckDBCensusStore
from transforms.metadata_resolver import MetadataResolver, normalize_table_code

__all__ = [
    "CancellationToken",
    "CensusFlowClient",
    "CensusFlowConfig",
    "DuckDBCensusStore",
    "MetadataResolver",
    "OutputRecord",
    "PipelineOptions",
    "PipelineResult",
    "normalize_table_code",
    "run_pipeline",
]
