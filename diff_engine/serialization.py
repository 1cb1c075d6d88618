"""Deterministic serialization of diff results and storage row formatting.

Change records and diff blocks are persisted by the change-tracking store and
replayed by the version compare UI.  The JSON produced here uses sorted keys
and 2-space indentation so that identical diffs always produce
byte-identical output, and stored block rows round-trip back into
:class:`DiffBlock` instances with the same boundaries.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import TypeAdapter, ValidationError

from diff_engine.models.diff import ChangeRecord, DiffBlock
from diff_engine.models.schema import NormalizedSchema

_CHANGES_ADAPTER = TypeAdapter(list[ChangeRecord])
_BLOCKS_ADAPTER = TypeAdapter(list[DiffBlock])

_BLOCK_ROW_FIELDS = (
    "block_index",
    "block_start",
    "block_end",
    "change_type",
    "before_text",
    "after_text",
    "edited_by_user_id",
    "edited_by_username",
)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def serialize_changes(changes: Sequence[ChangeRecord]) -> str:
    """Serialize change records to deterministic JSON.

    Record order is preserved; only object keys are sorted.
    """
    raw = [change.to_dict() for change in changes]
    return json.dumps(raw, indent=2, sort_keys=True, ensure_ascii=False)


def deserialize_changes(json_str: str) -> list[ChangeRecord]:
    """Hydrate change records from JSON.

    Raises
    ------
    pydantic.ValidationError
        If the JSON does not describe a list of change records, or a
        record's ``details`` do not match its ``change_type``.
    """
    return _CHANGES_ADAPTER.validate_json(json_str)


def serialize_blocks(blocks: Sequence[DiffBlock]) -> str:
    """Serialize diff blocks to deterministic JSON."""
    raw = [block.to_dict() for block in blocks]
    return json.dumps(raw, indent=2, sort_keys=True, ensure_ascii=False)


def deserialize_blocks(json_str: str) -> list[DiffBlock]:
    """Hydrate diff blocks from JSON (snake_case or camelCase keys)."""
    return _BLOCKS_ADAPTER.validate_json(json_str)


def validate_blocks_payload(json_str: str) -> list[str]:
    """Validate a JSON list of blocks without raising.

    Returns
    -------
    list[str]
        Human-readable error messages; empty when the payload is valid.
    """
    try:
        _BLOCKS_ADAPTER.validate_json(json_str)
    except ValidationError as exc:
        return [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" if err.get("loc") else err["msg"]
            for err in exc.errors()
        ]
    except (ValueError, TypeError) as exc:
        return [f"Invalid JSON: {exc}"]

    return []


# ---------------------------------------------------------------------------
# Storage rows
# ---------------------------------------------------------------------------


def format_changes_for_storage(
    changes: Sequence[ChangeRecord],
    project_id: str,
    from_version: int,
    to_version: int,
) -> list[dict[str, Any]]:
    """Build ``schema_changes`` rows for one version transition."""
    return [
        {
            "project_id": project_id,
            "from_version": from_version,
            "to_version": to_version,
            **change.to_dict(),
        }
        for change in changes
    ]


def format_blocks_for_storage(
    blocks: Sequence[DiffBlock],
    workspace_id: str,
    from_version: int,
    to_version: int,
) -> list[dict[str, Any]]:
    """Build diff-block rows for one version transition."""
    return [
        {
            "workspace_id": workspace_id,
            "from_version": from_version,
            "to_version": to_version,
            **block.to_dict(),
        }
        for block in blocks
    ]


def blocks_from_storage(rows: Iterable[dict[str, Any]]) -> list[DiffBlock]:
    """Rebuild blocks from stored rows, ignoring the transition columns.

    Rows are ordered by ``block_index`` so a store that returns them
    unordered still replays the original sequence.
    """
    blocks = [DiffBlock.model_validate({k: row[k] for k in _BLOCK_ROW_FIELDS if k in row}) for row in rows]
    return sorted(blocks, key=lambda b: b.block_index)


# ---------------------------------------------------------------------------
# Schema hash
# ---------------------------------------------------------------------------


def compute_schema_hash(schema: NormalizedSchema) -> str:
    """MD5 hex digest of the compact JSON form of *schema*.

    Unset optional fields are omitted and mapping order is kept, so the
    digest changes whenever the parser output changes, including a pure
    reordering of tables or columns.
    """
    raw = schema.model_dump(mode="json", by_alias=True, exclude_none=True)
    payload = json.dumps(raw, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()  # noqa: S324
