"""Unit tests for archive extraction."""

from __future__ import annotations

import zipfile
from dataclasses import replace
from pathlib import Path

import pytest

from core.config import CensusFlowConfig
from core.errors import CensusIngestError
from ingest.archive_fetch import extract_archive, fetch_archive


def _write_archive(path: Path, member_names: list[str]) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        for name in member_names:
            archive.writestr(name, f"{name}\n")
    return path


def test_fetch_archive_extracts_local_zip(tmp_path: Path) -> None:
    """Local archive should be extracted into the work dir."""
    archive_path = _write_archive(tmp_path / "us2010.sf1.zip", ["usgeo2010.sf1", "us000012010.sf1"])
    config = replace(CensusFlowConfig.from_env(), work_dir=tmp_path / "work")

    extracted = fetch_archive(str(archive_path), config, expected_members=2)

    assert [path.name for path in extracted] == ["usgeo2010.sf1", "us000012010.sf1"]
    assert (config.work_dir / "usgeo2010.sf1").read_text() == "usgeo2010.sf1\n"


def test_extract_archive_rejects_wrong_member_count(tmp_path: Path) -> None:
    """Archive with an unexpected file count should fail."""
    archive_path = _write_archive(tmp_path / "us2010.sf1.zip", ["usgeo2010.sf1"])

    with pytest.raises(CensusIngestError, match="expected 48"):
        extract_archive(archive_path, tmp_path, expected_members=48)


def test_extract_archive_keeps_existing_members(tmp_path: Path) -> None:
    """Members already on disk should not be overwritten."""
    archive_path = _write_archive(tmp_path / "us2010.sf1.zip", ["usgeo2010.sf1"])
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    (work_dir / "usgeo2010.sf1").write_text("kept\n")

    extract_archive(archive_path, work_dir, expected_members=1)

    assert (work_dir / "usgeo2010.sf1").read_text() == "kept\n"


def test_extract_archive_rejects_corrupt_zip(tmp_path: Path) -> None:
    """Corrupt archive should raise an ingest error."""
    archive_path = tmp_path / "broken.zip"
    archive_path.write_bytes(b"not a zip")

    with pytest.raises(CensusIngestError):
        extract_archive(archive_path, tmp_path, expected_members=1)


def test_extract_archive_replaces_leftover_partial_member(tmp_path: Path) -> None:
    """An interrupted member extraction should be redone on the next run."""
    archive_path = _write_archive(tmp_path / "us2010.sf1.zip", ["usgeo2010.sf1"])
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    (work_dir / "usgeo2010.sf1.partial").write_text("trunc")

    extract_archive(archive_path, work_dir, expected_members=1)

    assert (work_dir / "usgeo2010.sf1").read_text() == "usgeo2010.sf1\n"
    assert not (work_dir / "usgeo2010.sf1.partial").exists()


def test_extract_archive_leaves_no_member_after_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failed member write should leave neither the member nor its partial file."""
    archive_path = _write_archive(tmp_path / "us2010.sf1.zip", ["usgeo2010.sf1"])
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    def _failing_read(self, size=-1):
        raise OSError("disk read interrupted")

    monkeypatch.setattr(zipfile.ZipExtFile, "read", _failing_read)
    with pytest.raises(CensusIngestError):
        extract_archive(archive_path, work_dir, expected_members=1)

    assert list(work_dir.iterdir()) == []
