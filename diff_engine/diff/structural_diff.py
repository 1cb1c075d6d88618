"""Structural diff engine for comparing two normalized schema snapshots.

Produces an ordered list of :class:`ChangeRecord` entries.  The order is part
of the contract consumed by the change-tracking feed:

1. ``table_added`` for tables only in the new snapshot (new order), then
   ``table_removed`` for tables only in the old snapshot (old order).
2. For each table present in both snapshots, in new-snapshot order:
   ``column_added``, ``column_removed``, ``column_modified``, then
   ``relation_added`` and ``relation_removed``.

Only column ``type`` and ``nullable`` and relation endpoints are inspected.
A column whose type changed is reported once with ``diff="type"``; its
nullability is not compared in the same pass.  Relations are keyed by
``"from->to"``, so a relation whose cardinality changed shows up as nothing
at all, and a relation whose endpoint changed shows up as a removal plus an
addition.  ``relation_modified`` is never emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from diff_engine.models.diff import (
    ChangeKind,
    ChangeRecord,
    ColumnAddedDetails,
    ColumnNullabilityChangeDetails,
    ColumnRemovedDetails,
    ColumnTypeChangeDetails,
    RelationDetails,
    TableDetails,
)
from diff_engine.models.schema import NormalizedSchema, TableDefinition
from diff_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


def _as_schema(schema: NormalizedSchema | Mapping[str, Any]) -> NormalizedSchema:
    if isinstance(schema, NormalizedSchema):
        return schema
    if not isinstance(schema, Mapping):
        raise TypeError(f"expected a normalized schema, got {type(schema).__name__}")
    return NormalizedSchema.model_validate(schema)


@profile_operation("diff.structural")
def compare_schemas(
    old_schema: NormalizedSchema | Mapping[str, Any],
    new_schema: NormalizedSchema | Mapping[str, Any],
) -> list[ChangeRecord]:
    """Compare two schema snapshots and return the ordered change records.

    Parameters
    ----------
    old_schema:
        The *base* snapshot, as a model or in its serialized
        ``{"tables": {...}}`` shape.
    new_schema:
        The *target* snapshot.

    Returns
    -------
    list[ChangeRecord]
        Empty when the snapshots are structurally identical.

    Raises
    ------
    TypeError
        If either argument is not a schema or mapping (e.g. ``None``).
    pydantic.ValidationError
        If a mapping does not have the normalized schema shape.
    """
    old = _as_schema(old_schema)
    new = _as_schema(new_schema)

    changes: list[ChangeRecord] = []

    for table in new.tables:
        if table not in old.tables:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.TABLE_ADDED,
                    entity_name=table,
                    details=TableDetails(table=table),
                )
            )
    for table in old.tables:
        if table not in new.tables:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.TABLE_REMOVED,
                    entity_name=table,
                    details=TableDetails(table=table),
                )
            )

    for table, new_table in new.tables.items():
        old_table = old.tables.get(table)
        if old_table is None:
            continue
        changes.extend(_compare_columns(table, old_table, new_table))
        changes.extend(_compare_relations(old_table, new_table))

    logger.debug(
        "Structural diff: %d table(s) -> %d table(s), %d change(s)",
        old.table_count,
        new.table_count,
        len(changes),
    )
    return changes


def _compare_columns(
    table: str,
    old_table: TableDefinition,
    new_table: TableDefinition,
) -> list[ChangeRecord]:
    changes: list[ChangeRecord] = []
    old_cols = old_table.columns
    new_cols = new_table.columns

    for name, col in new_cols.items():
        if name not in old_cols:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.COLUMN_ADDED,
                    entity_name=f"{table}.{name}",
                    details=ColumnAddedDetails(table=table, column=name, type=col.type),
                )
            )
    for name in old_cols:
        if name not in new_cols:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.COLUMN_REMOVED,
                    entity_name=f"{table}.{name}",
                    details=ColumnRemovedDetails(table=table, column=name),
                )
            )

    for name, new_col in new_cols.items():
        old_col = old_cols.get(name)
        if old_col is None:
            continue
        # Type wins: nullability is only compared when the type is unchanged.
        if old_col.type != new_col.type:
            details: ColumnTypeChangeDetails | ColumnNullabilityChangeDetails = ColumnTypeChangeDetails(
                table=table,
                column=name,
                old_type=old_col.type,
                new_type=new_col.type,
            )
        elif old_col.nullable != new_col.nullable:
            details = ColumnNullabilityChangeDetails(
                table=table,
                column=name,
                old_nullable=old_col.nullable,
                new_nullable=new_col.nullable,
            )
        else:
            continue
        changes.append(
            ChangeRecord(
                change_type=ChangeKind.COLUMN_MODIFIED,
                entity_name=f"{table}.{name}",
                details=details,
            )
        )

    return changes


def _compare_relations(old_table: TableDefinition, new_table: TableDefinition) -> list[ChangeRecord]:
    changes: list[ChangeRecord] = []
    old_keys = {rel.key for rel in old_table.relations}
    new_keys = {rel.key for rel in new_table.relations}

    for rel in new_table.relations:
        if rel.key not in old_keys:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.RELATION_ADDED,
                    entity_name=rel.key,
                    details=RelationDetails.from_relation(rel),
                )
            )
    for rel in old_table.relations:
        if rel.key not in new_keys:
            changes.append(
                ChangeRecord(
                    change_type=ChangeKind.RELATION_REMOVED,
                    entity_name=rel.key,
                    details=RelationDetails.from_relation(rel),
                )
            )

    return changes
