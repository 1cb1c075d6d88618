"""Diff output models.

Two families of transient results live here:

* :class:`ChangeRecord` -- one typed entry of a structural schema diff.  Its
  ``details`` payload is a tagged variant whose shape is fixed by the
  record's :class:`ChangeKind`.
* :class:`DiffBlock` -- one contiguous run of added, removed or modified
  lines from a textual diff, stamped with the identity that produced the new
  version.

Both are frozen.  They are built fresh for every comparison and carry no
identity beyond structural equality.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from diff_engine.models.schema import Relation


class ChangeKind(str, Enum):
    """Kind of a structural change between two schema versions."""

    TABLE_ADDED = "table_added"
    TABLE_REMOVED = "table_removed"
    COLUMN_ADDED = "column_added"
    COLUMN_REMOVED = "column_removed"
    COLUMN_MODIFIED = "column_modified"
    RELATION_ADDED = "relation_added"
    RELATION_REMOVED = "relation_removed"
    # Declared for storage compatibility.  The comparator keys relations by
    # their endpoints, so it never emits this kind.
    RELATION_MODIFIED = "relation_modified"


# ---------------------------------------------------------------------------
# Change details
# ---------------------------------------------------------------------------


class TableDetails(BaseModel):
    """Payload for ``table_added`` and ``table_removed``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str


class ColumnAddedDetails(BaseModel):
    """Payload for ``column_added``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str
    column: str
    type: str = Field(..., description="Type of the new column.")


class ColumnRemovedDetails(BaseModel):
    """Payload for ``column_removed``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str
    column: str


class ColumnTypeChangeDetails(BaseModel):
    """Payload for a ``column_modified`` record whose type changed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str
    column: str
    old_type: str
    new_type: str
    diff: Literal["type"] = "type"


class ColumnNullabilityChangeDetails(BaseModel):
    """Payload for a ``column_modified`` record whose nullability changed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str
    column: str
    old_nullable: bool | None
    new_nullable: bool | None
    diff: Literal["nullability"] = "nullability"


class RelationDetails(Relation):
    """Payload for relation records: the raw relation as declared."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_by_name=True, serialize_by_alias=True)

    @classmethod
    def from_relation(cls, relation: Relation) -> RelationDetails:
        return cls(type=relation.type, from_=relation.from_, to=relation.to)


ChangeDetails = (
    TableDetails
    | ColumnAddedDetails
    | ColumnRemovedDetails
    | ColumnTypeChangeDetails
    | ColumnNullabilityChangeDetails
    | RelationDetails
)

_DETAILS_BY_KIND: dict[ChangeKind, tuple[type[BaseModel], ...]] = {
    ChangeKind.TABLE_ADDED: (TableDetails,),
    ChangeKind.TABLE_REMOVED: (TableDetails,),
    ChangeKind.COLUMN_ADDED: (ColumnAddedDetails,),
    ChangeKind.COLUMN_REMOVED: (ColumnRemovedDetails,),
    ChangeKind.COLUMN_MODIFIED: (ColumnTypeChangeDetails, ColumnNullabilityChangeDetails),
    ChangeKind.RELATION_ADDED: (RelationDetails,),
    ChangeKind.RELATION_REMOVED: (RelationDetails,),
    ChangeKind.RELATION_MODIFIED: (RelationDetails,),
}


def _details_model_for(kind: ChangeKind, raw: dict[str, Any]) -> type[BaseModel]:
    if kind is ChangeKind.COLUMN_MODIFIED:
        if raw.get("diff") == "nullability":
            return ColumnNullabilityChangeDetails
        return ColumnTypeChangeDetails
    return _DETAILS_BY_KIND[kind][0]


class ChangeRecord(BaseModel):
    """One typed change produced by the structural comparator.

    ``entity_name`` is ``"<table>"`` for table records,
    ``"<table>.<column>"`` for column records and ``"<from>-><to>"`` for
    relation records.
    """

    model_config = ConfigDict(frozen=True)

    change_type: ChangeKind = Field(..., description="Kind of change.")
    entity_name: str = Field(
        ...,
        min_length=1,
        description="Human-readable key of the changed entity.",
    )
    details: ChangeDetails = Field(..., description="Kind-specific payload.")

    @model_validator(mode="before")
    @classmethod
    def _resolve_details_variant(cls, data: Any) -> Any:
        # Stored records arrive as plain dicts; pick the variant from the kind.
        if isinstance(data, dict) and isinstance(data.get("details"), dict) and "change_type" in data:
            kind = ChangeKind(data["change_type"])
            model = _details_model_for(kind, data["details"])
            data = {**data, "details": model.model_validate(data["details"])}
        return data

    @model_validator(mode="after")
    def _check_details_match_kind(self) -> ChangeRecord:
        allowed = _DETAILS_BY_KIND[self.change_type]
        if not isinstance(self.details, allowed):
            raise ValueError(
                f"details of type {type(self.details).__name__} are not valid for {self.change_type.value}"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialized form: ``{change_type, entity_name, details}``."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Text diff blocks
# ---------------------------------------------------------------------------


class BlockChangeType(str, Enum):
    """Classification of a text diff block."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class EditorIdentity(BaseModel):
    """Pre-resolved author of a version, stamped onto every block of a diff."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    username: str


class DiffBlock(BaseModel):
    """A contiguous run of changed lines.

    Line numbers are 1-indexed and inclusive.  They refer to the new text for
    ``added`` and ``modified`` blocks and to the old text for ``removed``
    blocks.  ``block_index`` is positional and is reassigned whenever blocks
    are merged.
    """

    model_config = ConfigDict(frozen=True)

    block_index: int = Field(..., ge=0, validation_alias=AliasChoices("block_index", "blockIndex"))
    block_start: int = Field(..., ge=1, validation_alias=AliasChoices("block_start", "blockStart"))
    block_end: int = Field(..., ge=1, validation_alias=AliasChoices("block_end", "blockEnd"))
    change_type: BlockChangeType = Field(
        ...,
        validation_alias=AliasChoices("change_type", "changeType"),
    )
    before_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("before_text", "beforeText"),
        description="Old lines joined by newlines; None for added blocks.",
    )
    after_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("after_text", "afterText"),
        description="New lines joined by newlines; None for removed blocks.",
    )
    edited_by_user_id: str = Field(
        ...,
        validation_alias=AliasChoices("edited_by_user_id", "editedByUserId"),
    )
    edited_by_username: str = Field(
        ...,
        validation_alias=AliasChoices("edited_by_username", "editedByUsername"),
    )

    @model_validator(mode="after")
    def _check_shape(self) -> DiffBlock:
        if self.block_end < self.block_start:
            raise ValueError(f"block_end ({self.block_end}) precedes block_start ({self.block_start})")
        has_before = self.before_text is not None
        has_after = self.after_text is not None
        expected = {
            BlockChangeType.ADDED: (False, True),
            BlockChangeType.REMOVED: (True, False),
            BlockChangeType.MODIFIED: (True, True),
        }[self.change_type]
        if (has_before, has_after) != expected:
            raise ValueError(f"{self.change_type.value} block has the wrong before/after text")
        return self

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class DiffStats(BaseModel):
    """Line counts over a list of blocks (not block counts)."""

    model_config = ConfigDict(frozen=True)

    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.modified
