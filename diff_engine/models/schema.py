"""Normalized schema models.

A normalized schema is the table/column/relation graph produced by the
upstream SQL and Prisma parsers.  It is independent of the source syntax and
is the only input the structural comparator understands.

Mappings keep their insertion order.  The comparator iterates them in that
order, so two schemas built from the same parser output always diff to the
same record sequence.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RelationType(str, Enum):
    """Cardinality of a relation between two tables."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


class ColumnDefinition(BaseModel):
    """A single column.  Only ``type`` and ``nullable`` take part in diffing."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(
        ...,
        description="Declared column type, e.g. 'varchar(255)'.",
    )
    nullable: bool | None = Field(
        default=None,
        description="Whether the column accepts NULL.  None when the parser did not say.",
    )
    primary: bool | None = Field(default=None, description="Part of the primary key.")
    unique: bool | None = Field(default=None, description="Carries a unique constraint.")
    default: str | None = Field(default=None, description="Default value expression.")
    foreign_key: str | None = Field(
        default=None,
        description="Referenced column in 'table.column' form.",
    )


class Relation(BaseModel):
    """A foreign-key style relation.

    Two relations are the same relation iff both endpoints match exactly;
    see :attr:`key`.
    """

    model_config = ConfigDict(frozen=True, validate_by_name=True, serialize_by_alias=True)

    type: RelationType = Field(
        ...,
        description="Cardinality, carried through unchanged in change details.",
    )
    from_: str = Field(
        ...,
        alias="from",
        description="Source endpoint in 'table.column' form.",
    )
    to: str = Field(
        ...,
        description="Target endpoint in 'table.column' form.",
    )

    @property
    def key(self) -> str:
        """Identity key used by the comparator: ``"from->to"``."""
        return f"{self.from_}->{self.to}"


class IndexDefinition(BaseModel):
    """Index metadata.  Carried for completeness, never compared."""

    model_config = ConfigDict(frozen=True)

    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False


class TableDefinition(BaseModel):
    """Columns and relations of one table."""

    model_config = ConfigDict(frozen=True)

    columns: dict[str, ColumnDefinition] = Field(
        default_factory=dict,
        description="Column name -> definition, in declaration order.",
    )
    relations: list[Relation] = Field(
        default_factory=list,
        description="Outgoing relations, in declaration order.",
    )
    indexes: list[IndexDefinition] = Field(default_factory=list)


class NormalizedSchema(BaseModel):
    """Point-in-time schema graph keyed by table name."""

    model_config = ConfigDict(frozen=True)

    tables: dict[str, TableDefinition] = Field(
        default_factory=dict,
        description="Table name -> definition, in declaration order.",
    )

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def column_count(self) -> int:
        return sum(len(t.columns) for t in self.tables.values())

    @property
    def relation_count(self) -> int:
        return sum(len(t.relations) for t in self.tables.values())
