"""Unit tests for CLI command handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from cli.main import build_parser, main
from tests.census_fixtures import build_geo_line, build_segment_line, write_lines


def test_cli_filter_prints_bounds(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """CLI filter should print matched count and record bounds."""
    write_lines(
        tmp_path / "usgeo2010.sf1",
        [build_geo_line("880", 6), build_geo_line("040", 7), build_geo_line("880", 9)],
    )
    write_lines(tmp_path / "us000012010.sf1", [build_segment_line(6, [1])])

    exit_code = main(["--work-dir", str(tmp_path), "--summary-level", "880", "filter"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert output[:3] == ["matched=2", "min_id=6", "max_id=9"]
    assert "segment=01\textracted\t1" in output


def test_cli_reports_missing_header_as_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Missing inputs should exit non-zero with an actionable message."""
    exit_code = main(["--work-dir", str(tmp_path), "filter"])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "rerun" in captured.err and captured.out == ""


def test_cli_rejects_invalid_summary_level(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Invalid overrides should be reported as configuration errors."""
    exit_code = main(["--work-dir", str(tmp_path), "--summary-level", "88", "filter"])

    assert exit_code == 1 and "CENSUSFLOW_SUMMARY_LEVEL" in capsys.readouterr().err


def test_parser_reads_run_options() -> None:
    """Run command should accept archive and schema options."""
    args = build_parser().parse_args(
        ["--segment-match", "exact", "run", "--archive", "s3://bucket/sf1.zip", "--skip-malformed"]
    )

    assert (args.segment_match, args.archive, args.skip_malformed) == (
        "exact",
        "s3://bucket/sf1.zip",
        True,
    )
