"""Deterministic diff engines for schema versions."""

from diff_engine.diff.lcs import compute_lcs
from diff_engine.diff.structural_diff import compare_schemas
from diff_engine.diff.text_diff import (
    DiffInputTooLargeError,
    compute_diff_blocks,
    compute_diff_stats,
    merge_adjacent_blocks,
)

__all__ = [
    "DiffInputTooLargeError",
    "compare_schemas",
    "compute_diff_blocks",
    "compute_diff_stats",
    "compute_lcs",
    "merge_adjacent_blocks",
]
