"""censusflow exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class CensusFlowError(Exception):
    """Base exception for all censusflow failures."""


class CensusConfigError(CensusFlowError):
    """Raised for invalid runtime configuration."""


class CensusIngestError(CensusFlowError):
    """Raised for archive, header, and segment file failures."""


class FormatError(CensusIngestError):
    """Raised when a source record does not match its declared layout."""


class GeoFormatError(FormatError):
    """Raised for fixed-width geographic header lines that are too short."""


class EmptyInputError(CensusIngestError):
    """Raised when a required source file is absent, empty, or unmatched."""


class CensusStoreError(CensusFlowError):
    """Raised for relational store schema, load, and query failures."""


class MetadataError(CensusFlowError):
    """Raised when the label metadata tree cannot be loaded."""


class CancelledError(CensusFlowError):
    """Raised when a cooperative cancellation request is observed."""
