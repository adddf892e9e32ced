"""File-based resume checks for filtering stages.

A stage output counts as complete once it exists and is non-empty.
Outputs are written to a partial sibling and renamed on success.
"""

from __future__ import annotations

from pathlib import Path

PARTIAL_SUFFIX = ".partial"


def has_checkpoint(output_path: Path) -> bool:
    """Return whether a stage output already exists and is non-empty."""
    return output_path.is_file() and output_path.stat().st_size > 0


def partial_path_for(output_path: Path) -> Path:
    """Return the in-progress path used before an output is published."""
    return output_path.with_name(output_path.name + PARTIAL_SUFFIX)
