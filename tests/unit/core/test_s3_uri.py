"""Unit tests for S3 URI parsing."""

from __future__ import annotations

import pytest

from core.errors import CensusIngestError
from core.s3_uri import is_s3_uri, parse_s3_uri


def test_parse_s3_uri_splits_bucket_and_key() -> None:
    """Parser should split bucket and object key."""
    location = parse_s3_uri("s3://census-data/2010/us2010.sf1.zip")

    assert (location.bucket, location.key) == ("census-data", "2010/us2010.sf1.zip")


def test_parse_s3_uri_rejects_missing_key() -> None:
    """Parser should reject URIs without an object key."""
    with pytest.raises(CensusIngestError):
        parse_s3_uri("s3://census-data")


def test_is_s3_uri_detects_local_paths() -> None:
    """Local paths should not be treated as S3 URIs."""
    assert not is_s3_uri("/tmp/us2010.sf1.zip")
