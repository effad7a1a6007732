"""
Entity model: immutable, dialect-neutral DDL objects.

Conventions
-----------
- Every entity is a frozen dataclass with a class-level `kind` and an `id`
  property returning an `EntityId`.
- Top-level kinds (schema, enum, table, view) leave `EntityId.table` empty.
  Table-scoped kinds (column, index, constraints) carry the owning table name.
- Entities reference each other only by name (`ForeignKey.table_to`,
  `Column.table`, ...). Names are resolved against the catalog being queried.
- An empty `schema` means "dialect default"; `build_catalog` fills it in.
- A table has at most one primary key, so its id uses an empty name.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any, ClassVar, TypeAlias

# ---------- kinds and ids ----------


class EntityKind(StrEnum):
    SCHEMA = "schema"
    ENUM = "enum"
    TABLE = "table"
    COLUMN = "column"
    INDEX = "index"
    PRIMARY_KEY = "primary_key"
    UNIQUE = "unique"
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"
    VIEW = "view"


TOP_LEVEL_KINDS: frozenset[EntityKind] = frozenset(
    {EntityKind.SCHEMA, EntityKind.ENUM, EntityKind.TABLE, EntityKind.VIEW}
)


@dataclass(frozen=True, slots=True, order=True)
class EntityId:
    """Composite key, unique within one catalog."""

    kind: EntityKind
    schema: str
    table: str
    name: str

    @property
    def label(self) -> str:
        """Dotted display name without the kind, e.g. 'public.users.id'."""
        return ".".join(part for part in (self.schema, self.table, self.name) if part)

    def owner_table(self) -> EntityId | None:
        """Id of the table owning this entity, or None for top-level entities."""
        if self.kind is EntityKind.TABLE:
            return self
        if not self.table:
            return None
        return table_id(self.schema, self.table)

    def is_within(self, container: EntityId) -> bool:
        """True when this id is `container` itself or lives inside it."""
        if self == container:
            return True
        if container.kind is EntityKind.SCHEMA:
            return self.kind is not EntityKind.SCHEMA and self.schema == container.name
        if container.kind is EntityKind.TABLE:
            return bool(self.table) and self.schema == container.schema and self.table == container.name
        return False

    def __str__(self) -> str:
        return f"{self.kind}:{self.label}"


def table_id(schema: str, name: str) -> EntityId:
    return EntityId(EntityKind.TABLE, schema, "", name)


def column_id(schema: str, table: str, name: str) -> EntityId:
    return EntityId(EntityKind.COLUMN, schema, table, name)


# ---------- attribute value types ----------


class GeneratedMode(StrEnum):
    STORED = "stored"
    VIRTUAL = "virtual"


class ReferentialAction(StrEnum):
    NO_ACTION = "NO ACTION"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"


class ViewAlgorithm(StrEnum):
    UNDEFINED = "undefined"
    MERGE = "merge"
    TEMPTABLE = "temptable"


class ViewSecurity(StrEnum):
    DEFINER = "definer"
    INVOKER = "invoker"


class CheckOption(StrEnum):
    CASCADED = "cascaded"
    LOCAL = "local"


@dataclass(frozen=True, slots=True)
class SqlExpression:
    """Raw SQL passed through untouched, e.g. `now()` or `CURRENT_TIMESTAMP`."""

    sql: str


# A column default: typed literal, JSON document, or raw SQL.
DefaultValue: TypeAlias = bool | int | float | Decimal | str | SqlExpression | dict[str, Any] | list[Any]


@dataclass(frozen=True, slots=True)
class Generated:
    """Generated (computed) column definition."""

    mode: GeneratedMode
    expression: str


@dataclass(frozen=True, slots=True)
class IndexColumn:
    """One indexed column or expression."""

    value: str
    is_expression: bool = False
    ascending: bool = True


# ---------- entities ----------


@dataclass(frozen=True, slots=True)
class Schema:
    name: str

    kind: ClassVar[EntityKind] = EntityKind.SCHEMA

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, "", "", self.name)


@dataclass(frozen=True, slots=True)
class Enum:
    """Standalone enum type (Postgres)."""

    name: str
    values: tuple[str, ...]
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.ENUM

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, "", self.name)


@dataclass(frozen=True, slots=True)
class Table:
    name: str
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.TABLE

    @property
    def id(self) -> EntityId:
        return table_id(self.schema, self.name)


@dataclass(frozen=True, slots=True)
class Column:
    """
    A table column.

    `type` is the full SQL type as declared (length, precision and scale
    included), e.g. "varchar(255)" or "decimal(10,2)". `default=None` means the
    column has no default; an explicit NULL default is `SqlExpression("NULL")`.
    """

    table: str
    name: str
    type: str
    not_null: bool = False
    default: DefaultValue | None = None
    generated: Generated | None = None
    auto_increment: bool = False
    on_update_now: bool = False
    on_update_now_fsp: int | None = None
    charset: str | None = None
    collation: str | None = None
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.COLUMN

    @property
    def id(self) -> EntityId:
        return column_id(self.schema, self.table, self.name)


@dataclass(frozen=True, slots=True)
class Index:
    table: str
    name: str
    columns: tuple[IndexColumn, ...]
    unique: bool = False
    where: str | None = None
    method: str | None = None
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.INDEX

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, self.table, self.name)

    @property
    def column_names(self) -> tuple[str, ...]:
        """Plain (non-expression) column names."""
        return tuple(c.value for c in self.columns if not c.is_expression)


@dataclass(frozen=True, slots=True)
class PrimaryKey:
    table: str
    columns: tuple[str, ...]
    name: str = ""
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.PRIMARY_KEY

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, self.table, "")


@dataclass(frozen=True, slots=True)
class UniqueConstraint:
    table: str
    columns: tuple[str, ...]
    name: str = ""
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.UNIQUE

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, self.table, self.name)


@dataclass(frozen=True, slots=True)
class Check:
    table: str
    name: str
    value: str
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.CHECK

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, self.table, self.name)


@dataclass(frozen=True, slots=True)
class ForeignKey:
    table: str
    columns: tuple[str, ...]
    table_to: str
    columns_to: tuple[str, ...]
    name: str = ""
    on_update: ReferentialAction | None = None
    on_delete: ReferentialAction | None = None
    schema: str = ""
    schema_to: str = ""

    kind: ClassVar[EntityKind] = EntityKind.FOREIGN_KEY

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, self.table, self.name)

    @property
    def target_id(self) -> EntityId:
        return table_id(self.schema_to, self.table_to)


@dataclass(frozen=True, slots=True)
class View:
    """
    A view. `definition` is the SELECT body; `None` only for existing views.

    `is_existing` marks views managed outside the engine: they are kept in the
    catalog for reference but never created, altered or dropped.
    """

    name: str
    definition: str | None = None
    algorithm: ViewAlgorithm | None = None
    sql_security: ViewSecurity | None = None
    with_check_option: CheckOption | None = None
    is_existing: bool = False
    materialized: bool = False
    schema: str = ""

    kind: ClassVar[EntityKind] = EntityKind.VIEW

    @property
    def id(self) -> EntityId:
        return EntityId(self.kind, self.schema, "", self.name)


Entity: TypeAlias = (
    Schema | Enum | Table | Column | Index | PrimaryKey | UniqueConstraint | Check | ForeignKey | View
)

TableScoped: TypeAlias = Column | Index | PrimaryKey | UniqueConstraint | Check | ForeignKey

ENTITY_TYPES: dict[EntityKind, type] = {
    EntityKind.SCHEMA: Schema,
    EntityKind.ENUM: Enum,
    EntityKind.TABLE: Table,
    EntityKind.COLUMN: Column,
    EntityKind.INDEX: Index,
    EntityKind.PRIMARY_KEY: PrimaryKey,
    EntityKind.UNIQUE: UniqueConstraint,
    EntityKind.CHECK: Check,
    EntityKind.FOREIGN_KEY: ForeignKey,
    EntityKind.VIEW: View,
}
