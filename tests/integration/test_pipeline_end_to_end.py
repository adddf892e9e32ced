"""Integration tests for the filter, load, and export workflow."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from core.cancellation import CancellationToken
from core.config import CensusFlowConfig
from core.errors import CancelledError
from core.types import PipelineOptions
from ingest.pipeline import CensusPipelineRunner
from ingest.segment_extractor import segment_output_path, segment_source_path
from store.schema import build_segment_table_ddl
from tests.census_fixtures import build_geo_line, build_segment_line, write_lines, write_metadata


def _prepare_work_dir(tmp_path: Path) -> tuple[CensusFlowConfig, PipelineOptions]:
    work_dir = tmp_path / "work"
    write_lines(
        work_dir / "usgeo2010.sf1",
        [
            build_geo_line("880", 2, ZCTA5="00601"),
            build_geo_line("040", 3),
            build_geo_line("880", 4, ZCTA5="00602"),
        ],
    )
    write_lines(
        segment_source_path(work_dir, 1, "sf1"),
        [build_segment_line(record_id, [record_id * 100]) for record_id in (1, 2, 3, 4, 5)],
    )
    write_lines(
        segment_source_path(work_dir, 2, "sf1"),
        [
            build_segment_line(record_id, [record_id * 100, record_id * 10], segment=2)
            for record_id in (4, 3, 2, 1)
        ],
    )
    schema_script = tmp_path / "sf1_schema.sql"
    schema_script.write_text(
        build_segment_table_ddl("sf1_01", ["P0010001"])
        + "\n"
        + build_segment_table_ddl("sf1_02", ["P0020001", "P0020002"]),
        encoding="utf-8",
    )
    metadata_path = write_metadata(
        tmp_path / "sf1_labels.json",
        {
            "P001": {
                "name": "TOTAL POPULATION",
                "universe": "Total population",
                "labels": {"P0010001": {"text": "Total"}},
            },
            "P002": {
                "name": "URBAN AND RURAL",
                "universe": "Total population",
                "labels": {"P0020001": "Total", "P0020002": "Urban"},
            },
        },
    )
    config = replace(
        CensusFlowConfig.from_env(),
        work_dir=work_dir,
        database_path=tmp_path / "census.duckdb",
        metadata_path=metadata_path,
        summary_level="880",
        chunk_size=1,
        segment_match_mode="range",
    )
    return config, PipelineOptions(schema_script=schema_script)


def _run(
    config: CensusFlowConfig,
    options: PipelineOptions,
    cancel_token: CancellationToken | None = None,
):
    runner = CensusPipelineRunner(options, config, cancel_token=cancel_token, segment_count=2)
    try:
        return runner.run()
    finally:
        runner.close()


def _read_output(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_pipeline_writes_enriched_records(tmp_path: Path) -> None:
    """Full run should emit one record per geography and variable."""
    config, options = _prepare_work_dir(tmp_path)

    result = _run(config, options)
    records = _read_output(result.output_path)

    assert result.geography_count == 2 and result.records_written == 6
    assert [record["zcta5"] for record in records] == ["00601"] * 3 + ["00602"] * 3
    assert records[0] == {
        "key": "P0010001",
        "name": "TOTAL POPULATION",
        "text": "Total",
        "universe": "Total population",
        "value": 200,
        "zcta5": "00601",
    }
    assert records[-1]["key"] == "P0020002" and records[-1]["value"] == 40


def test_pipeline_rerun_skips_completed_stages(tmp_path: Path) -> None:
    """Rerun should reuse filtered files and populated tables."""
    config, options = _prepare_work_dir(tmp_path)

    first = _run(config, options)
    first_output = first.output_path.read_text(encoding="utf-8")
    second = _run(config, options)

    assert (second.segments_skipped, second.tables_skipped, second.tables_loaded) == (2, 3, 0)
    assert second.output_path.read_text(encoding="utf-8") == first_output


def test_range_mode_keeps_unmatched_ids_inside_bounds(tmp_path: Path) -> None:
    """Range mode should keep id 3 while exact mode drops it."""
    config, options = _prepare_work_dir(tmp_path)
    exact_config = replace(
        config,
        work_dir=tmp_path / "exact",
        database_path=tmp_path / "exact.duckdb",
    )
    for name in ("usgeo2010.sf1", "us000012010.sf1", "us000022010.sf1"):
        write_lines(exact_config.work_dir / name, (config.work_dir / name).read_text().splitlines())

    _run(config, options)
    _run(replace(exact_config, segment_match_mode="exact"), options)

    range_lines = segment_output_path(config.work_dir, 1).read_text().splitlines()
    exact_lines = segment_output_path(exact_config.work_dir, 1).read_text().splitlines()
    assert len(range_lines) == 3 and len(exact_lines) == 2


def test_pipeline_cancellation_leaves_no_partial_output(tmp_path: Path) -> None:
    """Cancelled run should raise and leave no export file."""
    config, options = _prepare_work_dir(tmp_path)
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CancelledError):
        _run(config, options, cancel_token=token)

    assert not config.output_path.exists()


def test_filter_reads_header_for_selected_dataset(tmp_path: Path) -> None:
    """Non-sf1 datasets should read their own header and segment files."""
    work_dir = tmp_path / "work"
    write_lines(work_dir / "usgeo2010.ur1", [build_geo_line("880", 5), build_geo_line("880", 6)])
    write_lines(segment_source_path(work_dir, 1, "ur1"), [build_segment_line(6, [60])])
    config = replace(CensusFlowConfig.from_env(), work_dir=work_dir, summary_level="880")
    runner = CensusPipelineRunner(PipelineOptions(dataset="ur1"), config, segment_count=2)

    try:
        filter_result, segment_results = runner.filter_sources()
    finally:
        runner.close()

    assert (filter_result.bounds.min_id, filter_result.bounds.max_id) == (5, 6)
    assert [result.skipped for result in segment_results] == [None, "missing_source"]
