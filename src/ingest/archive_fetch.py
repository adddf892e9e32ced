"""SF1 archive retrieval and extraction.

This module copies a zip archive from a local path or S3 object into the
work directory and extracts the header and segment files it contains.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import CensusFlowConfig
from core.constants import ARCHIVE_MEMBER_COUNT
from core.errors import CensusIngestError
from core.logging_config import get_logger
from core.s3_uri import is_s3_uri, parse_s3_uri
from ingest.file_checkpoint import partial_path_for

_LOGGER = get_logger(__name__)


def fetch_archive(
    archive_uri: str,
    config: CensusFlowConfig,
    expected_members: int = ARCHIVE_MEMBER_COUNT,
) -> list[Path]:
    """Fetch and extract an SF1 archive into the work directory.

    Args:
        archive_uri: Local zip path or ``s3://bucket/key`` URI.
        config: Runtime configuration with work dir and S3 defaults.
        expected_members: File count the archive must contain.

    Returns:
        Extracted file paths in archive order.

    Raises:
        CensusIngestError: If download, extraction, or member validation fails.
    """
    config.work_dir.mkdir(parents=True, exist_ok=True)
    if is_s3_uri(archive_uri):
        archive_path = _download_s3_archive(archive_uri, config)
    else:
        archive_path = Path(archive_uri).expanduser()
    return extract_archive(archive_path, config.work_dir, expected_members)


def extract_archive(archive_path: Path, work_dir: Path, expected_members: int) -> list[Path]:
    """Extract archive members that are not already present.

    Raises:
        CensusIngestError: If the archive is unreadable or has the wrong member count.
    """
    if not archive_path.is_file():
        raise CensusIngestError(
            f"Archive not found at {archive_path}. Provide an existing SF1 zip and rerun."
        )
    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            if len(members) != expected_members:
                raise CensusIngestError(
                    f"Archive {archive_path} holds {len(members)} files, "
                    f"expected {expected_members}. Download the archive again and rerun."
                )
            extracted = [_extract_member(archive, info, work_dir) for info in members]
    except zipfile.BadZipFile as error:
        raise CensusIngestError(
            f"Failed to read archive {archive_path}: {error}. "
            "Download the archive again and rerun."
        ) from error
    except OSError as error:
        raise CensusIngestError(
            f"Failed to extract archive {archive_path} into {work_dir}: {error}. "
            "Check free disk space and rerun."
        ) from error
    _LOGGER.info("archive_extracted", archive_path=str(archive_path), member_count=len(extracted))
    return extracted


def _extract_member(archive: zipfile.ZipFile, info: zipfile.ZipInfo, work_dir: Path) -> Path:
    target_path = work_dir / Path(info.filename).name
    if target_path.exists():
        _LOGGER.info("archive_member_skipped", member=info.filename)
        return target_path
    partial_path = partial_path_for(target_path)
    try:
        with archive.open(info) as source, partial_path.open("wb") as target:
            while chunk := source.read(1 << 20):
                target.write(chunk)
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise
    partial_path.replace(target_path)
    return target_path


def _download_s3_archive(archive_uri: str, config: CensusFlowConfig) -> Path:
    """Download an S3 archive unless a local copy already exists.

    Raises:
        CensusIngestError: If the S3 download fails.
    """
    location = parse_s3_uri(archive_uri)
    local_path = config.work_dir / Path(location.key).name
    if local_path.is_file() and local_path.stat().st_size > 0:
        return local_path
    s3_client = _create_s3_client(config)
    try:
        s3_client.download_file(location.bucket, location.key, str(local_path))
    except (BotoCoreError, ClientError) as error:
        local_path.unlink(missing_ok=True)
        raise CensusIngestError(
            f"Failed to download {archive_uri}: {error}. Check credentials and rerun."
        ) from error
    _LOGGER.info("archive_downloaded", archive_uri=archive_uri, local_path=str(local_path))
    return local_path


def _create_s3_client(config: CensusFlowConfig) -> Any:
    """Create a boto3 S3 client from config profile and region."""
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
