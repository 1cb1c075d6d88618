"""Line-based text diff with version attribution.

Diffs two raw-text versions of a schema definition into contiguous blocks of
added, removed or modified lines.  Every block is stamped with the single
identity supplied by the caller: this is version-to-version attribution
("who saved the new version"), not per-line blame.

The algorithm:

1. Split both texts on ``"\\n"`` and compute their LCS
   (:func:`diff_engine.diff.lcs.compute_lcs`).
2. Walk both line lists against the LCS.  At each divergence, consume every
   old line up to the next LCS line (the removed run) and every new line up
   to it (the added run).  Both runs non-empty gives a ``modified`` block
   positioned on the new side; a lone removed run gives a ``removed`` block
   positioned on the old side; a lone added run gives an ``added`` block.
3. Merge neighbouring blocks of the same type and author when the next
   block starts no more than ``merge_gap`` lines after the current one ends,
   then renumber.  Blocks are always separated by at least one unchanged
   line, so the default gap of 2 joins blocks that a single unchanged line
   splits apart.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from diff_engine.diff.lcs import compute_lcs
from diff_engine.models.diff import BlockChangeType, DiffBlock, DiffStats
from diff_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

DEFAULT_MERGE_GAP = 2


class DiffInputTooLargeError(ValueError):
    """Raised when a text exceeds the caller's line bound for the LCS table."""

    def __init__(self, side: str, line_count: int, max_lines: int) -> None:
        self.side = side
        self.line_count = line_count
        self.max_lines = max_lines
        super().__init__(f"{side} text has {line_count} lines, exceeding the limit of {max_lines}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@profile_operation("diff.text")
def compute_diff_blocks(
    old_text: str,
    new_text: str,
    editor_user_id: str,
    editor_username: str,
    *,
    merge_gap: int = DEFAULT_MERGE_GAP,
    max_lines: int | None = None,
) -> list[DiffBlock]:
    """Diff two texts into attributed, merged blocks.

    Parameters
    ----------
    old_text:
        Raw text of the previous version.
    new_text:
        Raw text of the new version.
    editor_user_id:
        Id of the author of the new version, stamped on every block as
        given.
    editor_username:
        Display name of that author, as resolved at save time.
    merge_gap:
        Maximum number of unchanged lines allowed between two blocks that
        are still merged into one.
    max_lines:
        Optional bound on the line count of either side.

    Returns
    -------
    list[DiffBlock]
        Empty when the texts are identical.

    Raises
    ------
    TypeError
        If a text or identity argument is not a string.
    ValueError
        If ``merge_gap`` is negative.
    DiffInputTooLargeError
        If ``max_lines`` is given and either text exceeds it.
    """
    for arg_name, value in (
        ("old_text", old_text),
        ("new_text", new_text),
        ("editor_user_id", editor_user_id),
        ("editor_username", editor_username),
    ):
        if not isinstance(value, str):
            raise TypeError(f"{arg_name} must be a str, got {type(value).__name__}")
    if merge_gap < 0:
        raise ValueError(f"merge_gap must be >= 0, got {merge_gap}")

    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")

    if max_lines is not None:
        if len(old_lines) > max_lines:
            raise DiffInputTooLargeError("old", len(old_lines), max_lines)
        if len(new_lines) > max_lines:
            raise DiffInputTooLargeError("new", len(new_lines), max_lines)

    lcs = compute_lcs(old_lines, new_lines)
    raw_blocks = _build_blocks(old_lines, new_lines, lcs, editor_user_id, editor_username)
    blocks = merge_adjacent_blocks(raw_blocks, gap=merge_gap)

    logger.debug(
        "Text diff: %d -> %d line(s), %d common, %d block(s) (%d before merge)",
        len(old_lines),
        len(new_lines),
        len(lcs),
        len(blocks),
        len(raw_blocks),
    )
    return blocks


def merge_adjacent_blocks(blocks: Sequence[DiffBlock], *, gap: int = DEFAULT_MERGE_GAP) -> list[DiffBlock]:
    """Merge neighbouring same-type, same-author blocks and renumber.

    ``next`` is folded into ``current`` when both have the same change type
    and author and ``next.block_start <= current.block_end + gap``.  Texts
    are joined with a newline and ``block_end`` is extended.  The returned
    blocks are indexed ``0..n-1``.
    """
    if not blocks:
        return []

    merged: list[DiffBlock] = []
    current = blocks[0]

    for nxt in blocks[1:]:
        if (
            current.change_type == nxt.change_type
            and current.edited_by_user_id == nxt.edited_by_user_id
            and nxt.block_start <= current.block_end + gap
        ):
            current = current.model_copy(
                update={
                    "block_end": nxt.block_end,
                    "before_text": _join_optional(current.before_text, nxt.before_text),
                    "after_text": _join_optional(current.after_text, nxt.after_text),
                }
            )
        else:
            merged.append(current)
            current = nxt
    merged.append(current)

    return [block.model_copy(update={"block_index": idx}) for idx, block in enumerate(merged)]


def compute_diff_stats(blocks: Sequence[DiffBlock]) -> DiffStats:
    """Count changed lines per change type.

    A modified block counts ``max(before lines, after lines)``, an upper
    bound rather than the number of lines that actually differ.
    """
    added = 0
    removed = 0
    modified = 0

    for block in blocks:
        if block.change_type is BlockChangeType.ADDED:
            added += _line_count(block.after_text)
        elif block.change_type is BlockChangeType.REMOVED:
            removed += _line_count(block.before_text)
        else:
            modified += max(_line_count(block.before_text), _line_count(block.after_text))

    return DiffStats(added=added, removed=removed, modified=modified)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_blocks(
    old_lines: Sequence[str],
    new_lines: Sequence[str],
    lcs: Sequence[str],
    user_id: str,
    username: str,
) -> list[DiffBlock]:
    blocks: list[DiffBlock] = []
    old_len, new_len, lcs_len = len(old_lines), len(new_lines), len(lcs)
    old_idx = new_idx = lcs_idx = 0

    while old_idx < old_len or new_idx < new_len:
        if (
            lcs_idx < lcs_len
            and old_idx < old_len
            and new_idx < new_len
            and old_lines[old_idx] == lcs[lcs_idx]
            and new_lines[new_idx] == lcs[lcs_idx]
        ):
            old_idx += 1
            new_idx += 1
            lcs_idx += 1
            continue

        removed_start = old_idx
        while old_idx < old_len and (lcs_idx >= lcs_len or old_lines[old_idx] != lcs[lcs_idx]):
            old_idx += 1
        removed = old_lines[removed_start:old_idx]

        added_start = new_idx
        while new_idx < new_len and (lcs_idx >= lcs_len or new_lines[new_idx] != lcs[lcs_idx]):
            new_idx += 1
        added = new_lines[added_start:new_idx]

        if removed and added:
            change_type = BlockChangeType.MODIFIED
            start, length = added_start, len(added)
        elif removed:
            change_type = BlockChangeType.REMOVED
            start, length = removed_start, len(removed)
        else:
            change_type = BlockChangeType.ADDED
            start, length = added_start, len(added)

        blocks.append(
            DiffBlock(
                block_index=len(blocks),
                block_start=start + 1,
                block_end=start + length,
                change_type=change_type,
                before_text="\n".join(removed) if removed else None,
                after_text="\n".join(added) if added else None,
                edited_by_user_id=user_id,
                edited_by_username=username,
            )
        )

    return blocks


def _join_optional(first: str | None, second: str | None) -> str | None:
    if first is not None and second is not None:
        return f"{first}\n{second}"
    return first


def _line_count(text: str | None) -> int:
    if text is None:
        return 0
    return len(text.split("\n"))
