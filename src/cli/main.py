"""censusflow CLI entry points.

This module exposes commands for fetching, filtering, loading, and exporting.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.cancellation import CancellationToken
from core.config import (
    CensusFlowConfig,
    parse_chunk_size,
    parse_segment_match_mode,
    parse_summary_level,
)
from core.constants import DEFAULT_DATASET, SUPPORTED_SEGMENT_MATCH_MODES
from core.errors import CensusFlowError
from core.types import PipelineOptions
from store.census_sdk import CensusFlowClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="censusflow", description="SF1 census pipeline CLI")
    parser.add_argument("--work-dir", help="Override CENSUSFLOW_WORK_DIR for this command")
    parser.add_argument("--database", help="Override CENSUSFLOW_DATABASE_PATH")
    parser.add_argument("--metadata", help="Override CENSUSFLOW_METADATA_PATH")
    parser.add_argument("--summary-level", help="Override CENSUSFLOW_SUMMARY_LEVEL, e.g. 880")
    parser.add_argument("--chunk-size", help="Override CENSUSFLOW_CHUNK_SIZE")
    parser.add_argument(
        "--segment-match",
        choices=SUPPORTED_SEGMENT_MATCH_MODES,
        help="Override CENSUSFLOW_SEGMENT_MATCH",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        help="Cancel cooperatively once this many seconds have elapsed",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_fetch_command(subparsers)
    _add_filter_command(subparsers)
    _add_load_command(subparsers)
    _add_export_command(subparsers)
    _add_run_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the censusflow CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args)
        if args.command == "fetch":
            return _run_fetch_command(client, args)
        if args.command == "filter":
            return _run_filter_command(client, args)
        if args.command == "load":
            return _run_load_command(client, args)
        if args.command == "export":
            return _run_export_command(client, args)
        if args.command == "run":
            return _run_pipeline_command(client, args)
    except CensusFlowError as error:
        print(f"censusflow: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(args: argparse.Namespace) -> CensusFlowClient:
    """Build SDK client with optional config overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured SDK client.
    """
    config = _apply_overrides(CensusFlowConfig.from_env(), args)
    cancel_token = None
    if args.timeout_seconds is not None:
        cancel_token = CancellationToken(timeout_seconds=args.timeout_seconds)
    return CensusFlowClient(config, cancel_token=cancel_token)


def _apply_overrides(config: CensusFlowConfig, args: argparse.Namespace) -> CensusFlowConfig:
    if args.work_dir:
        work_dir = Path(args.work_dir).expanduser().resolve()
        config = replace(
            config,
            work_dir=work_dir,
            database_path=_rebase_default(config.database_path, config.work_dir, work_dir),
            metadata_path=_rebase_default(config.metadata_path, config.work_dir, work_dir),
        )
    if args.database:
        config = replace(config, database_path=Path(args.database).expanduser().resolve())
    if args.metadata:
        config = replace(config, metadata_path=Path(args.metadata).expanduser().resolve())
    if args.summary_level:
        config = replace(config, summary_level=parse_summary_level(args.summary_level))
    if args.chunk_size:
        config = replace(config, chunk_size=parse_chunk_size(args.chunk_size))
    if args.segment_match:
        config = replace(config, segment_match_mode=parse_segment_match_mode(args.segment_match))
    return config


def _rebase_default(path: Path, old_work_dir: Path, new_work_dir: Path) -> Path:
    """Move a path that defaulted into the old work dir under the new one."""
    if path.parent == old_work_dir:
        return new_work_dir / path.name
    return path


def _build_options(args: argparse.Namespace) -> PipelineOptions:
    schema_script = getattr(args, "schema_script", None)
    return PipelineOptions(
        archive_uri=getattr(args, "archive", None),
        schema_script=Path(schema_script).expanduser() if schema_script else None,
        dataset=getattr(args, "dataset", DEFAULT_DATASET),
        skip_malformed=getattr(args, "skip_malformed", False),
    )


def _run_fetch_command(client: CensusFlowClient, args: argparse.Namespace) -> int:
    """Handle fetch command."""
    client.fetch(args.archive)
    print(client.config.work_dir)
    return 0


def _run_filter_command(client: CensusFlowClient, args: argparse.Namespace) -> int:
    """Handle filter command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    filter_result, segment_results = client.filter(_build_options(args))
    bounds = filter_result.bounds
    print(f"matched={bounds.matched_count}")
    print(f"min_id={bounds.min_id}")
    print(f"max_id={bounds.max_id}")
    print(f"malformed={filter_result.malformed_count}")
    for result in segment_results:
        print(f"segment={result.segment:02d}\t{result.skipped or 'extracted'}\t{result.kept_count}")
    return 0


def _run_load_command(client: CensusFlowClient, args: argparse.Namespace) -> int:
    """Handle load command."""
    summary = client.load(_build_options(args))
    print(f"loaded={len(summary.loaded_tables)}")
    print(f"skipped={len(summary.skipped_tables)}")
    print(f"missing={','.join(summary.missing_tables) or '-'}")
    return 0


def _run_export_command(client: CensusFlowClient, args: argparse.Namespace) -> int:
    """Handle export command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    stats = client.export(_build_options(args))
    print(f"output_path={client.config.output_path}")
    print(f"geographies={stats.rows}")
    print(f"records_written={stats.records_emitted}")
    print(f"metadata_misses={stats.metadata_misses}")
    return 0


def _run_pipeline_command(client: CensusFlowClient, args: argparse.Namespace) -> int:
    """Handle run command."""
    result = client.run(_build_options(args))
    print(f"output_path={result.output_path}")
    print(f"geographies={result.geography_count}")
    print(f"segments_extracted={result.segments_extracted}")
    print(f"segments_skipped={result.segments_skipped}")
    print(f"tables_loaded={result.tables_loaded}")
    print(f"tables_skipped={result.tables_skipped}")
    print(f"records_written={result.records_written}")
    print(f"metadata_misses={result.metadata_misses}")
    return 0


def _add_fetch_command(subparsers: Any) -> None:
    """Register fetch subcommand."""
    parser = subparsers.add_parser("fetch", help="Fetch and extract an SF1 zip archive")
    parser.add_argument("archive", help="Local zip path or s3://bucket/key")


def _add_filter_command(subparsers: Any) -> None:
    """Register filter subcommand."""
    parser = subparsers.add_parser("filter", help="Filter header and segment files")
    _add_dataset_argument(parser)
    _add_skip_malformed_argument(parser)


def _add_load_command(subparsers: Any) -> None:
    """Register load subcommand."""
    parser = subparsers.add_parser("load", help="Create schema and load filtered files")
    _add_dataset_argument(parser)
    _add_schema_script_argument(parser)


def _add_export_command(subparsers: Any) -> None:
    """Register export subcommand."""
    parser = subparsers.add_parser("export", help="Write enriched newline-delimited JSON")
    _add_dataset_argument(parser)


def _add_run_command(subparsers: Any) -> None:
    """Register run subcommand."""
    parser = subparsers.add_parser("run", help="Run fetch, filter, load, and export")
    parser.add_argument("--archive", help="Optional local zip path or s3://bucket/key")
    _add_dataset_argument(parser)
    _add_schema_script_argument(parser)
    _add_skip_malformed_argument(parser)


def _add_dataset_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dataset",
        default=DEFAULT_DATASET,
        help="Source file suffix and segment table prefix",
    )


def _add_schema_script_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--schema-script", help="SQL script creating the segment tables")


def _add_skip_malformed_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--skip-malformed",
        action="store_true",
        help="Count and skip short header lines instead of aborting",
    )
