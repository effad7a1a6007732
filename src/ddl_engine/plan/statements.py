"""
Statements: immutable, declarative migration operations.

Conventions
-----------
- One frozen dataclass per (entity kind x operation). Each carries everything
  a renderer needs; no statement looks at a catalog after generation.
- Verbs:
  - Create*/Add* and Drop* for structural changes
  - Rename*/Move* for identity changes (Move = change of schema)
  - Alter* for in-place changes, Recreate* for drop-and-rebuild of one object
- `resource_key` is the id of the entity the statement mutates, as it is
  named in the `from` catalog (renames and moves use the old id).
- `requires` lists ids the statement depends on; `invalidates` lists ids that
  stop existing under their old name once the statement runs. Together they
  drive structural conflict detection in merge/conflicts.py.
- `removes` is True for pure drops only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from src.ddl_engine.catalog.entities import (
    Check,
    Column,
    EntityId,
    EntityKind,
    Enum,
    ForeignKey,
    Index,
    PrimaryKey,
    Table,
    UniqueConstraint,
    View,
    column_id,
    table_id,
)
from src.ddl_engine.diff.policy import ColumnAttribute


def schema_id(name: str) -> EntityId:
    return EntityId(EntityKind.SCHEMA, "", "", name)


def _schema_requirement(schema: str) -> tuple[EntityId, ...]:
    return (schema_id(schema),) if schema else ()


# ---------- base ----------


@dataclass(frozen=True)
class Statement:
    """Base migration statement."""

    removes: ClassVar[bool] = False

    @property
    def resource_key(self) -> EntityId:
        raise NotImplementedError

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return ()

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return ()

    def describe(self) -> str:
        """Short display form, e.g. 'DropTable table:public.users'."""
        return f"{type(self).__name__} {self.resource_key}"


# ---------- schemas ----------


@dataclass(frozen=True)
class CreateSchema(Statement):
    name: str

    @property
    def resource_key(self) -> EntityId:
        return schema_id(self.name)


@dataclass(frozen=True)
class DropSchema(Statement):
    name: str

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return schema_id(self.name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class RenameSchema(Statement):
    from_name: str
    to_name: str

    @property
    def resource_key(self) -> EntityId:
        return schema_id(self.from_name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


# ---------- enums ----------


@dataclass(frozen=True)
class CreateEnum(Statement):
    enum: Enum

    @property
    def resource_key(self) -> EntityId:
        return self.enum.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return _schema_requirement(self.enum.schema)


@dataclass(frozen=True)
class DropEnum(Statement):
    enum: Enum

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.enum.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.enum.id,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.enum.id,)


@dataclass(frozen=True)
class RenameEnum(Statement):
    schema: str
    from_name: str
    to_name: str

    @property
    def resource_key(self) -> EntityId:
        return EntityId(EntityKind.ENUM, self.schema, "", self.from_name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class MoveEnum(Statement):
    name: str
    from_schema: str
    to_schema: str

    @property
    def resource_key(self) -> EntityId:
        return EntityId(EntityKind.ENUM, self.from_schema, "", self.name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key, *_schema_requirement(self.to_schema))

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class AlterEnum(Statement):
    """
    Add values to an enum in place.

    `added` holds (value, before) pairs in application order; `before` is the
    existing value the new one is inserted in front of, or None to append.
    """

    enum: Enum
    added: tuple[tuple[str, str | None], ...]

    @property
    def resource_key(self) -> EntityId:
        return self.enum.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.enum.id,)


@dataclass(frozen=True)
class RecreateEnum(Statement):
    """
    Rebuild an enum whose values were removed or reordered.

    `columns` are the columns typed with the enum; they are cast to text while
    the type is rebuilt and cast back afterwards.
    """

    before: Enum
    after: Enum
    columns: tuple[Column, ...] = ()

    @property
    def resource_key(self) -> EntityId:
        return self.before.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.before.id, *(c.id for c in self.columns))

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.before.id,)


# ---------- tables ----------


@dataclass(frozen=True)
class CreateTable(Statement):
    """
    Create a table in one shot.

    `foreign_keys` is only populated for dialects that declare foreign keys
    inline (SQLite); elsewhere they are separate AddForeignKey statements.
    """

    table: Table
    columns: tuple[Column, ...]
    primary_key: PrimaryKey | None = None
    uniques: tuple[UniqueConstraint, ...] = ()
    checks: tuple[Check, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    @property
    def resource_key(self) -> EntityId:
        return self.table.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        targets = tuple(
            fk.target_id for fk in self.foreign_keys if fk.target_id != self.table.id
        )
        return (*_schema_requirement(self.table.schema), *targets)


@dataclass(frozen=True)
class DropTable(Statement):
    """
    Drop a table.

    `foreign_keys` mirrors CreateTable: populated only where foreign keys are
    inline (SQLite) so referencing tables can be dropped first.
    """

    table: Table
    foreign_keys: tuple[ForeignKey, ...] = ()

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.table.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.table.id,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.table.id,)


@dataclass(frozen=True)
class RenameTable(Statement):
    """
    Rename a table in place.

    `defaulted_columns` names the columns holding a named default constraint
    (MSSQL); those constraints are renamed along with the table.
    """

    schema: str
    from_name: str
    to_name: str
    defaulted_columns: tuple[str, ...] = ()

    @property
    def resource_key(self) -> EntityId:
        return table_id(self.schema, self.from_name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class MoveTable(Statement):
    name: str
    from_schema: str
    to_schema: str

    @property
    def resource_key(self) -> EntityId:
        return table_id(self.from_schema, self.name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key, *_schema_requirement(self.to_schema))

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class RecreateTable(Statement):
    """
    Rebuild a table (SQLite): create a copy with the new definition, copy the
    `copied_columns` over, drop the old table and rename the copy.
    """

    table: Table
    columns: tuple[Column, ...]
    copied_columns: tuple[str, ...]
    primary_key: PrimaryKey | None = None
    uniques: tuple[UniqueConstraint, ...] = ()
    checks: tuple[Check, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    @property
    def resource_key(self) -> EntityId:
        return self.table.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.table.id, *(fk.target_id for fk in self.foreign_keys))


# ---------- columns ----------


@dataclass(frozen=True)
class AddColumn(Statement):
    column: Column

    @property
    def resource_key(self) -> EntityId:
        return self.column.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (table_id(self.column.schema, self.column.table),)


@dataclass(frozen=True)
class AlterColumn(Statement):
    """In-place change of one column; `changes` names the attributes that differ."""

    before: Column
    after: Column
    changes: frozenset[ColumnAttribute]

    @property
    def resource_key(self) -> EntityId:
        return self.after.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (table_id(self.after.schema, self.after.table), self.after.id)


@dataclass(frozen=True)
class RecreateColumn(Statement):
    """Drop and re-add one column with its new definition."""

    before: Column
    after: Column

    @property
    def resource_key(self) -> EntityId:
        return self.after.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (table_id(self.after.schema, self.after.table), self.after.id)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.after.id,)


@dataclass(frozen=True)
class DropColumn(Statement):
    column: Column

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.column.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.column.id,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.column.id,)


@dataclass(frozen=True)
class RenameColumn(Statement):
    schema: str
    table: str
    from_name: str
    to_name: str
    has_default_constraint: bool = False

    @property
    def resource_key(self) -> EntityId:
        return column_id(self.schema, self.table, self.from_name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


# ---------- indexes and constraints ----------


def _column_requirements(schema: str, table: str, columns: tuple[str, ...]) -> tuple[EntityId, ...]:
    return (table_id(schema, table), *(column_id(schema, table, name) for name in columns))


@dataclass(frozen=True)
class CreateIndex(Statement):
    index: Index

    @property
    def resource_key(self) -> EntityId:
        return self.index.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return _column_requirements(self.index.schema, self.index.table, self.index.column_names)


@dataclass(frozen=True)
class DropIndex(Statement):
    index: Index

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.index.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.index.id,)


@dataclass(frozen=True)
class AddPrimaryKey(Statement):
    primary_key: PrimaryKey

    @property
    def resource_key(self) -> EntityId:
        return self.primary_key.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        pk = self.primary_key
        return _column_requirements(pk.schema, pk.table, pk.columns)


@dataclass(frozen=True)
class DropPrimaryKey(Statement):
    primary_key: PrimaryKey

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.primary_key.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.primary_key.id,)


@dataclass(frozen=True)
class AddUnique(Statement):
    unique: UniqueConstraint

    @property
    def resource_key(self) -> EntityId:
        return self.unique.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        u = self.unique
        return _column_requirements(u.schema, u.table, u.columns)


@dataclass(frozen=True)
class DropUnique(Statement):
    unique: UniqueConstraint

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.unique.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.unique.id,)


@dataclass(frozen=True)
class CreateCheck(Statement):
    check: Check

    @property
    def resource_key(self) -> EntityId:
        return self.check.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (table_id(self.check.schema, self.check.table),)


@dataclass(frozen=True)
class DropCheck(Statement):
    check: Check

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.check.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.check.id,)


@dataclass(frozen=True)
class AddForeignKey(Statement):
    foreign_key: ForeignKey

    @property
    def resource_key(self) -> EntityId:
        return self.foreign_key.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        fk = self.foreign_key
        return (
            *_column_requirements(fk.schema, fk.table, fk.columns),
            *_column_requirements(fk.schema_to, fk.table_to, fk.columns_to),
        )


@dataclass(frozen=True)
class DropForeignKey(Statement):
    foreign_key: ForeignKey

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.foreign_key.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.foreign_key.id,)


# ---------- views ----------


@dataclass(frozen=True)
class CreateView(Statement):
    view: View

    @property
    def resource_key(self) -> EntityId:
        return self.view.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return _schema_requirement(self.view.schema)


@dataclass(frozen=True)
class DropView(Statement):
    view: View

    removes: ClassVar[bool] = True

    @property
    def resource_key(self) -> EntityId:
        return self.view.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.view.id,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.view.id,)


@dataclass(frozen=True)
class RenameView(Statement):
    schema: str
    from_name: str
    to_name: str
    materialized: bool = False

    @property
    def resource_key(self) -> EntityId:
        return EntityId(EntityKind.VIEW, self.schema, "", self.from_name)

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)

    @property
    def invalidates(self) -> tuple[EntityId, ...]:
        return (self.resource_key,)


@dataclass(frozen=True)
class AlterView(Statement):
    """Change a view's definition or options; `before` is the current view."""

    before: View
    after: View

    @property
    def resource_key(self) -> EntityId:
        return self.after.id

    @property
    def requires(self) -> tuple[EntityId, ...]:
        return (self.after.id,)

    @property
    def definition_changed(self) -> bool:
        return self.before.definition != self.after.definition
