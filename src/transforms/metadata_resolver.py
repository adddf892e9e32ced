"""Column-code to human-readable label resolution.

This module loads the SF1 label tree and resolves each column code through
its normalized table code to the table name, universe, and label text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from core.errors import MetadataError
from core.logging_config import get_logger
from core.types import ResolvedLabel, TableDescriptor

_LOGGER = get_logger(__name__)

MetadataTree = Mapping[str, TableDescriptor]

_COLUMN_CODE_PATTERN = re.compile(r"^([A-Za-z]+)(\d{3})([A-Za-z]*)(\d{3,4})$")
_ZERO_PADDED_PATTERN = re.compile(r"([A-Za-z]+)0+([1-9][0-9]*)")
_CELL_SUFFIX_LENGTH = 3


def normalize_table_code(column_code: str) -> str:
    """Derive the table code of a column code.

    ``P0010001`` becomes ``P001`` and ``PCT012G001`` becomes ``PCT012G``.
    Codes outside the SF1 pattern drop their last three characters and
    collapse zero padding.
    """
    match = _COLUMN_CODE_PATTERN.match(column_code)
    if match is None:
        return canonical_table_code(column_code[:-_CELL_SUFFIX_LENGTH])
    prefix, number, iteration, _cell = match.groups()
    return f"{prefix}{number}{iteration}"


def canonical_table_code(table_code: str) -> str:
    """Collapse zero-padded table numbers, e.g. ``PCT012G`` to ``PCT12G``."""
    return _ZERO_PADDED_PATTERN.sub(r"\1\2", table_code)


def table_code_candidates(column_code: str) -> tuple[str, ...]:
    """Return lookup keys for a column code, padded form first."""
    table_code = normalize_table_code(column_code)
    canonical = canonical_table_code(table_code)
    if canonical == table_code:
        return (table_code,)
    return (table_code, canonical)


def load_metadata_tree(metadata_path: Path) -> dict[str, TableDescriptor]:
    """Load the JSON label tree.

    Args:
        metadata_path: JSON file keyed by table code.

    Returns:
        Table descriptors keyed by table code.

    Raises:
        MetadataError: If the file is missing or malformed.
    """
    try:
        payload = json.loads(metadata_path.read_text(encoding="utf-8"))
    except OSError as error:
        raise MetadataError(
            f"Could not open metadata file {metadata_path}: {error}. "
            "Set CENSUSFLOW_METADATA_PATH to the SF1 label JSON and rerun."
        ) from error
    except json.JSONDecodeError as error:
        raise MetadataError(
            f"Could not parse metadata file {metadata_path}: {error.msg} "
            f"at line {error.lineno}."
        ) from error
    if not isinstance(payload, dict) or not payload:
        raise MetadataError(
            f"Metadata file {metadata_path} must hold a non-empty JSON object keyed by table code."
        )
    return {
        str(table_code): _descriptor_from_payload(str(table_code), entry)
        for table_code, entry in payload.items()
    }


@dataclass
class MetadataMissStats:
    """Counters of non-fatal metadata misses."""

    table_misses: int = 0
    label_misses: int = 0
    missing_tables: set[str] = field(default_factory=set)
    missing_labels: set[str] = field(default_factory=set)

    @property
    def total(self) -> int:
        return self.table_misses + self.label_misses


class MetadataResolver:
    """Resolve column codes against a metadata tree."""

    def __init__(self, tree: MetadataTree) -> None:
        self._tree = tree
        self._cache: dict[str, ResolvedLabel | None] = {}
        self.stats = MetadataMissStats()

    def resolve(self, column_code: str) -> ResolvedLabel | None:
        """Resolve one column code.

        Args:
            column_code: Full column code such as ``P0010001``.

        Returns:
            Resolved label, or ``None`` when the table or label is missing.
        """
        if column_code in self._cache:
            resolved = self._cache[column_code]
            if resolved is None:
                self._count_repeat_miss(column_code)
            return resolved
        resolved = self._resolve_uncached(column_code)
        self._cache[column_code] = resolved
        return resolved

    def _resolve_uncached(self, column_code: str) -> ResolvedLabel | None:
        candidates = table_code_candidates(column_code)
        found_tables: list[str] = []
        for table_code in candidates:
            descriptor = self._tree.get(table_code)
            if descriptor is None:
                continue
            found_tables.append(table_code)
            text = descriptor.labels.get(column_code)
            if text is None:
                continue
            return ResolvedLabel(
                table_code=table_code,
                name=descriptor.name,
                universe=descriptor.universe,
                text=text,
            )
        if found_tables:
            self.stats.label_misses += 1
            self.stats.missing_labels.add(column_code)
            _LOGGER.warning(
                "metadata_label_missing", table_code=found_tables[0], column_code=column_code
            )
            return None
        self.stats.table_misses += 1
        self.stats.missing_tables.add(candidates[0])
        _LOGGER.warning(
            "metadata_table_missing", table_code=candidates[0], column_code=column_code
        )
        return None

    def _count_repeat_miss(self, column_code: str) -> None:
        if column_code in self.stats.missing_labels:
            self.stats.label_misses += 1
        else:
            self.stats.table_misses += 1


def _descriptor_from_payload(table_code: str, entry: Any) -> TableDescriptor:
    """Build a table descriptor from one JSON tree entry.

    Raises:
        MetadataError: If the entry is not an object.
    """
    if not isinstance(entry, dict):
        raise MetadataError(f"Metadata entry for table {table_code} must be a JSON object.")
    raw_labels = entry.get("labels") or {}
    if not isinstance(raw_labels, dict):
        raise MetadataError(f"Metadata labels for table {table_code} must be a JSON object.")
    labels = {
        str(column_code): _label_text(label) for column_code, label in raw_labels.items()
    }
    return TableDescriptor(
        name=str(entry.get("name", "")),
        universe=str(entry.get("universe", "")),
        labels=labels,
    )


def _label_text(label: Any) -> str:
    if isinstance(label, dict):
        return str(label.get("text", ""))
    return str(label)
