"""Comparison of stored schema versions.

This is the caller that composes the two diff engines.  It works on version
records that have already been fetched from the version store; it performs
no I/O itself.

* :func:`compare_versions` -- compare any two versions of a project:
  structural changes, attributed text blocks and line statistics.
* :func:`track_changes` -- ingest-time change tracking between the previous
  and the newly saved version, skipped when the schema hash is unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from diff_engine.config import Settings, load_settings
from diff_engine.diff.structural_diff import compare_schemas
from diff_engine.diff.text_diff import compute_diff_blocks, compute_diff_stats
from diff_engine.models.diff import ChangeRecord, DiffBlock, DiffStats, EditorIdentity
from diff_engine.models.schema import NormalizedSchema
from diff_engine.serialization import compute_schema_hash

logger = logging.getLogger(__name__)


class VersionNotFoundError(LookupError):
    """Raised when a requested version is not among the supplied records."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Schema version {version} not found")


class SchemaVersion(BaseModel):
    """One saved version of a project's schema."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(..., ge=1)
    raw_schema: str = Field(default="", description="Schema source text as saved.")
    normalized_schema: NormalizedSchema = Field(default_factory=NormalizedSchema)
    schema_hash: str = Field(
        default="",
        description="Digest of normalized_schema; computed when left empty.",
    )
    edited_by_user_id: str = Field(..., min_length=1)
    edited_by_username: str = ""

    @model_validator(mode="after")
    def _fill_hash(self) -> SchemaVersion:
        if not self.schema_hash:
            # Frozen model: bypass __setattr__ for the derived field.
            object.__setattr__(self, "schema_hash", compute_schema_hash(self.normalized_schema))
        return self

    @property
    def editor(self) -> EditorIdentity:
        """Author of this version, as attributed on its diff blocks."""
        return EditorIdentity(user_id=self.edited_by_user_id, username=self.edited_by_username)


class VersionComparison(BaseModel):
    """Result of comparing two versions."""

    model_config = ConfigDict(frozen=True)

    from_version: int
    to_version: int
    changes: list[ChangeRecord] = Field(default_factory=list)
    blocks: list[DiffBlock] = Field(default_factory=list)
    stats: DiffStats = Field(default_factory=DiffStats)

    @property
    def is_empty(self) -> bool:
        """True when neither the structure nor the text changed."""
        return not self.changes and not self.blocks


def _index_versions(
    versions: Mapping[int, SchemaVersion] | Iterable[SchemaVersion],
) -> dict[int, SchemaVersion]:
    if isinstance(versions, Mapping):
        return dict(versions)
    return {v.version: v for v in versions}


def compare_versions(
    versions: Mapping[int, SchemaVersion] | Iterable[SchemaVersion],
    from_version: int,
    to_version: int,
    *,
    settings: Settings | None = None,
) -> VersionComparison:
    """Compare two versions picked from *versions*.

    Text blocks are attributed to the author of ``to_version``.  Comparing a
    version with itself returns an empty comparison, provided the version
    exists.

    Raises
    ------
    VersionNotFoundError
        If either version is missing.
    DiffInputTooLargeError
        If either raw schema exceeds ``settings.max_diff_lines``.
    """
    settings = settings or load_settings()
    by_number = _index_versions(versions)

    for number in (from_version, to_version):
        if number not in by_number:
            raise VersionNotFoundError(number)

    if from_version == to_version:
        return VersionComparison(from_version=from_version, to_version=to_version)

    old = by_number[from_version]
    new = by_number[to_version]
    editor = new.editor

    changes = compare_schemas(old.normalized_schema, new.normalized_schema)
    blocks = compute_diff_blocks(
        old.raw_schema,
        new.raw_schema,
        editor.user_id,
        editor.username,
        merge_gap=settings.merge_gap,
        max_lines=settings.max_diff_lines,
    )
    stats = compute_diff_stats(blocks)

    logger.info(
        "Compared versions %d -> %d: %d change(s), %d block(s)",
        from_version,
        to_version,
        len(changes),
        len(blocks),
        extra={
            "comparison": {
                "from_version": from_version,
                "to_version": to_version,
                "changes": len(changes),
                "blocks": len(blocks),
                "stats": stats.model_dump(),
            }
        },
    )
    return VersionComparison(
        from_version=from_version,
        to_version=to_version,
        changes=changes,
        blocks=blocks,
        stats=stats,
    )


def track_changes(previous: SchemaVersion | None, current: SchemaVersion) -> list[ChangeRecord]:
    """Structural changes introduced by *current* relative to *previous*.

    The first version of a project has no predecessor and yields no
    records.  When both versions share a schema hash the comparator is not
    run at all.
    """
    if previous is None:
        logger.debug("Version %d has no predecessor; nothing to track", current.version)
        return []
    if previous.schema_hash == current.schema_hash:
        logger.debug(
            "Versions %d and %d share schema hash %s; skipping diff",
            previous.version,
            current.version,
            current.schema_hash,
        )
        return []
    return compare_schemas(previous.normalized_schema, current.normalized_schema)
