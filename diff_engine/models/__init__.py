"""Domain models for the version diff engine."""

from diff_engine.models.diff import (
    BlockChangeType,
    ChangeKind,
    ChangeRecord,
    ColumnAddedDetails,
    ColumnNullabilityChangeDetails,
    ColumnRemovedDetails,
    ColumnTypeChangeDetails,
    DiffBlock,
    DiffStats,
    EditorIdentity,
    RelationDetails,
    TableDetails,
)
from diff_engine.models.schema import (
    ColumnDefinition,
    IndexDefinition,
    NormalizedSchema,
    Relation,
    RelationType,
    TableDefinition,
)

__all__ = [
    "BlockChangeType",
    "ChangeKind",
    "ChangeRecord",
    "ColumnAddedDetails",
    "ColumnDefinition",
    "ColumnNullabilityChangeDetails",
    "ColumnRemovedDetails",
    "ColumnTypeChangeDetails",
    "DiffBlock",
    "DiffStats",
    "EditorIdentity",
    "IndexDefinition",
    "NormalizedSchema",
    "Relation",
    "RelationDetails",
    "RelationType",
    "TableDefinition",
    "TableDetails",
]
