"""Unit tests for diff_engine.diff.structural_diff."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from diff_engine.diff.structural_diff import compare_schemas
from diff_engine.models.diff import (
    ChangeKind,
    ChangeRecord,
    ColumnAddedDetails,
    ColumnNullabilityChangeDetails,
    ColumnTypeChangeDetails,
    RelationDetails,
)
from diff_engine.models.schema import NormalizedSchema

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _col(type_: str, nullable: bool | None = False) -> dict[str, Any]:
    return {"type": type_, "nullable": nullable}


def _rel(src: str, dst: str, rel_type: str = "many_to_one") -> dict[str, Any]:
    return {"type": rel_type, "from": src, "to": dst}


def _table(columns: dict[str, Any] | None = None, relations: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {"columns": columns or {}, "relations": relations or []}


def _schema(**tables: dict[str, Any]) -> NormalizedSchema:
    return NormalizedSchema.model_validate({"tables": tables})


def _kinds(changes: list[ChangeRecord]) -> list[tuple[ChangeKind, str]]:
    return [(c.change_type, c.entity_name) for c in changes]


# ---------------------------------------------------------------------------
# Table level
# ---------------------------------------------------------------------------


class TestTableChanges:
    def test_empty_schemas(self):
        assert compare_schemas(_schema(), _schema()) == []

    def test_added_tables_in_new_order(self):
        new = _schema(zeta=_table(), alpha=_table())
        changes = compare_schemas(_schema(), new)
        assert _kinds(changes) == [
            (ChangeKind.TABLE_ADDED, "zeta"),
            (ChangeKind.TABLE_ADDED, "alpha"),
        ]
        assert changes[0].details.table == "zeta"

    def test_removed_tables_in_old_order(self):
        old = _schema(m=_table(), b=_table())
        changes = compare_schemas(old, _schema())
        assert _kinds(changes) == [
            (ChangeKind.TABLE_REMOVED, "m"),
            (ChangeKind.TABLE_REMOVED, "b"),
        ]

    def test_adds_before_removes(self):
        old = _schema(gone=_table())
        new = _schema(fresh=_table())
        assert _kinds(compare_schemas(old, new)) == [
            (ChangeKind.TABLE_ADDED, "fresh"),
            (ChangeKind.TABLE_REMOVED, "gone"),
        ]

    def test_removed_table_columns_not_reported(self):
        old = _schema(users=_table({"id": _col("int"), "email": _col("varchar")}, [_rel("users.org_id", "orgs.id")]))
        changes = compare_schemas(old, _schema())
        assert _kinds(changes) == [(ChangeKind.TABLE_REMOVED, "users")]

    def test_added_table_columns_not_reported(self):
        new = _schema(users=_table({"id": _col("int")}))
        changes = compare_schemas(_schema(), new)
        assert _kinds(changes) == [(ChangeKind.TABLE_ADDED, "users")]

    def test_each_table_reported_at_most_once(self):
        old = _schema(a=_table(), b=_table(), c=_table())
        new = _schema(b=_table(), c=_table(), d=_table(), e=_table())
        changes = compare_schemas(old, new)
        added = [c.entity_name for c in changes if c.change_type is ChangeKind.TABLE_ADDED]
        removed = [c.entity_name for c in changes if c.change_type is ChangeKind.TABLE_REMOVED]
        assert added == ["d", "e"]
        assert removed == ["a"]
        assert not set(added) & set(removed)


# ---------------------------------------------------------------------------
# Column level
# ---------------------------------------------------------------------------


class TestColumnChanges:
    def test_concrete_scenario_table_then_column(self):
        old = _schema(users=_table({"id": _col("int"), "email": _col("varchar")}))
        new = _schema(
            users=_table({"id": _col("int"), "email": _col("varchar"), "name": _col("varchar")}),
            orders=_table({"id": _col("int")}),
        )
        changes = compare_schemas(old, new)
        assert _kinds(changes) == [
            (ChangeKind.TABLE_ADDED, "orders"),
            (ChangeKind.COLUMN_ADDED, "users.name"),
        ]
        details = changes[1].details
        assert isinstance(details, ColumnAddedDetails)
        assert details.type == "varchar"
        assert details.table == "users"
        assert details.column == "name"

    def test_column_removed(self):
        old = _schema(users=_table({"id": _col("int"), "legacy": _col("text")}))
        new = _schema(users=_table({"id": _col("int")}))
        changes = compare_schemas(old, new)
        assert _kinds(changes) == [(ChangeKind.COLUMN_REMOVED, "users.legacy")]
        assert changes[0].details.model_dump() == {"table": "users", "column": "legacy"}

    def test_type_change(self):
        old = _schema(users=_table({"email": _col("varchar(100)")}))
        new = _schema(users=_table({"email": _col("varchar(255)")}))
        changes = compare_schemas(old, new)
        assert len(changes) == 1
        details = changes[0].details
        assert isinstance(details, ColumnTypeChangeDetails)
        assert details.old_type == "varchar(100)"
        assert details.new_type == "varchar(255)"
        assert details.diff == "type"

    def test_nullability_change(self):
        old = _schema(users=_table({"email": _col("varchar", nullable=True)}))
        new = _schema(users=_table({"email": _col("varchar", nullable=False)}))
        changes = compare_schemas(old, new)
        assert len(changes) == 1
        details = changes[0].details
        assert isinstance(details, ColumnNullabilityChangeDetails)
        assert details.old_nullable is True
        assert details.new_nullable is False
        assert details.diff == "nullability"

    def test_type_wins_over_nullability(self):
        old = _schema(users=_table({"age": _col("int", nullable=True)}))
        new = _schema(users=_table({"age": _col("bigint", nullable=False)}))
        changes = compare_schemas(old, new)
        assert len(changes) == 1
        assert changes[0].change_type is ChangeKind.COLUMN_MODIFIED
        assert changes[0].details.diff == "type"

    def test_missing_nullable_differs_from_false(self):
        old = _schema(users=_table({"id": {"type": "int"}}))
        new = _schema(users=_table({"id": _col("int", nullable=False)}))
        changes = compare_schemas(old, new)
        assert len(changes) == 1
        assert changes[0].details.old_nullable is None
        assert changes[0].details.new_nullable is False

    def test_other_column_fields_ignored(self):
        old = _schema(users=_table({"id": {"type": "int", "nullable": False, "primary": True, "default": "1"}}))
        new = _schema(users=_table({"id": {"type": "int", "nullable": False, "unique": True, "foreign_key": "a.b"}}))
        assert compare_schemas(old, new) == []

    def test_per_table_order(self):
        old = _schema(
            t=_table({"keep": _col("int"), "drop": _col("int"), "retype": _col("int")}),
        )
        new = _schema(
            t=_table({"retype": _col("text"), "keep": _col("int"), "new": _col("int")}),
        )
        assert _kinds(compare_schemas(old, new)) == [
            (ChangeKind.COLUMN_ADDED, "t.new"),
            (ChangeKind.COLUMN_REMOVED, "t.drop"),
            (ChangeKind.COLUMN_MODIFIED, "t.retype"),
        ]

    def test_records_grouped_by_table(self):
        old = _schema(a=_table({"x": _col("int")}), b=_table({"y": _col("int")}))
        new = _schema(b=_table({"y": _col("text")}), a=_table({"x": _col("int"), "z": _col("int")}))
        assert _kinds(compare_schemas(old, new)) == [
            (ChangeKind.COLUMN_MODIFIED, "b.y"),
            (ChangeKind.COLUMN_ADDED, "a.z"),
        ]


# ---------------------------------------------------------------------------
# Relation level
# ---------------------------------------------------------------------------


class TestRelationChanges:
    def test_relation_added(self):
        old = _schema(orders=_table({"user_id": _col("int")}))
        new = _schema(orders=_table({"user_id": _col("int")}, [_rel("orders.user_id", "users.id")]))
        changes = compare_schemas(old, new)
        assert _kinds(changes) == [(ChangeKind.RELATION_ADDED, "orders.user_id->users.id")]
        details = changes[0].details
        assert isinstance(details, RelationDetails)
        assert details.from_ == "orders.user_id"
        assert details.to == "users.id"

    def test_relation_removed(self):
        old = _schema(orders=_table(relations=[_rel("orders.user_id", "users.id")]))
        new = _schema(orders=_table())
        assert _kinds(compare_schemas(old, new)) == [(ChangeKind.RELATION_REMOVED, "orders.user_id->users.id")]

    def test_relation_endpoint_change_is_remove_plus_add(self):
        old = _schema(orders=_table(relations=[_rel("orders.user_id", "users.id")]))
        new = _schema(orders=_table(relations=[_rel("orders.user_id", "accounts.id")]))
        assert _kinds(compare_schemas(old, new)) == [
            (ChangeKind.RELATION_ADDED, "orders.user_id->accounts.id"),
            (ChangeKind.RELATION_REMOVED, "orders.user_id->users.id"),
        ]

    def test_relation_type_change_not_detected(self):
        old = _schema(orders=_table(relations=[_rel("orders.user_id", "users.id", "many_to_one")]))
        new = _schema(orders=_table(relations=[_rel("orders.user_id", "users.id", "one_to_one")]))
        assert compare_schemas(old, new) == []

    def test_relation_modified_never_emitted(self):
        old = _schema(
            t=_table({"a": _col("int")}, [_rel("t.a", "u.id"), _rel("t.b", "v.id", "one_to_one")]),
        )
        new = _schema(
            t=_table({"a": _col("text")}, [_rel("t.a", "w.id"), _rel("t.b", "v.id", "many_to_many")]),
        )
        changes = compare_schemas(old, new)
        assert changes
        assert all(c.change_type is not ChangeKind.RELATION_MODIFIED for c in changes)

    def test_relations_after_columns(self):
        old = _schema(t=_table({"a": _col("int")}))
        new = _schema(t=_table({"a": _col("int"), "b": _col("int")}, [_rel("t.b", "u.id")]))
        assert [c.change_type for c in compare_schemas(old, new)] == [
            ChangeKind.COLUMN_ADDED,
            ChangeKind.RELATION_ADDED,
        ]

    def test_relation_details_serialize_with_from_key(self):
        new = _schema(t=_table(relations=[_rel("t.a", "u.id")]))
        change = compare_schemas(_schema(t=_table()), new)[0]
        assert change.to_dict() == {
            "change_type": "relation_added",
            "entity_name": "t.a->u.id",
            "details": {"type": "many_to_one", "from": "t.a", "to": "u.id"},
        }


# ---------------------------------------------------------------------------
# Properties & input handling
# ---------------------------------------------------------------------------


class TestComparatorProperties:
    def test_identical_schema_yields_nothing(self):
        schema = _schema(
            users=_table({"id": _col("int"), "email": _col("varchar", True)}),
            orders=_table({"user_id": _col("int")}, [_rel("orders.user_id", "users.id")]),
        )
        assert compare_schemas(schema, schema) == []

    def test_deterministic(self):
        old = _schema(a=_table({"x": _col("int")}), b=_table())
        new = _schema(a=_table({"x": _col("text"), "y": _col("int")}), c=_table())
        assert compare_schemas(old, new) == compare_schemas(old, new)

    def test_accepts_plain_mappings(self):
        old = {"tables": {"users": {"columns": {"id": {"type": "int"}}, "relations": []}}}
        new = {"tables": {"users": {"columns": {"id": {"type": "bigint"}}, "relations": []}}}
        changes = compare_schemas(old, new)
        assert _kinds(changes) == [(ChangeKind.COLUMN_MODIFIED, "users.id")]

    def test_none_schema_raises(self):
        with pytest.raises(TypeError):
            compare_schemas(None, _schema())  # type: ignore[arg-type]

    def test_malformed_mapping_raises(self):
        with pytest.raises(ValidationError):
            compare_schemas({"tables": {"users": {"columns": {"id": {"nullable": True}}}}}, _schema())
