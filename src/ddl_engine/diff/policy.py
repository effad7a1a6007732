"""
Per-dialect column change policy.

Which attribute changes a dialect can apply in place, and which need the
column (or, on SQLite, the whole table) rebuilt, is a property of each
engine's ALTER support. It is written down here as one explicit table per
dialect rather than inferred.

Outcomes
--------
- ALTER:            AlterColumn (MySQL renders the full MODIFY COLUMN)
- RECREATE_COLUMN:  RecreateColumn (drop + add)
- RECREATE_TABLE:   RecreateTable (SQLite table rebuild)
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Protocol

from src.ddl_engine.catalog.entities import Column, Generated, GeneratedMode
from src.ddl_engine.grammar.literals import codec_for
from src.enums import Dialect


class ColumnAttribute(StrEnum):
    TYPE = "type"
    NOT_NULL = "not_null"
    DEFAULT = "default"
    GENERATED = "generated"
    AUTO_INCREMENT = "auto_increment"
    ON_UPDATE = "on_update"
    CHARSET = "charset"
    COLLATION = "collation"


class ChangeOutcome(StrEnum):
    ALTER = "alter"
    RECREATE_COLUMN = "recreate_column"
    RECREATE_TABLE = "recreate_table"


def changed_attributes(before: Column, after: Column, dialect: Dialect) -> frozenset[ColumnAttribute]:
    """Attributes that differ between two versions of one column (names ignored)."""
    codec = codec_for(dialect)
    changed: set[ColumnAttribute] = set()
    if before.type != after.type:
        changed.add(ColumnAttribute.TYPE)
    if before.not_null != after.not_null:
        changed.add(ColumnAttribute.NOT_NULL)
    if codec.canonical(before.default, before.type) != codec.canonical(after.default, after.type):
        changed.add(ColumnAttribute.DEFAULT)
    if before.generated != after.generated:
        changed.add(ColumnAttribute.GENERATED)
    if before.auto_increment != after.auto_increment:
        changed.add(ColumnAttribute.AUTO_INCREMENT)
    if (before.on_update_now, before.on_update_now_fsp) != (after.on_update_now, after.on_update_now_fsp):
        changed.add(ColumnAttribute.ON_UPDATE)
    if before.charset != after.charset:
        changed.add(ColumnAttribute.CHARSET)
    if before.collation != after.collation:
        changed.add(ColumnAttribute.COLLATION)
    return frozenset(changed)


# ---------- policies ----------


class ColumnChangePolicy(Protocol):
    def classify(
        self, before: Column, after: Column, changed: frozenset[ColumnAttribute]
    ) -> ChangeOutcome: ...

    def add_requires_rebuild(self, column: Column) -> bool: ...


class MySqlColumnPolicy:
    """
    MySQL / SingleStore.

    Stored generated columns can be modified in place; virtual ones cannot, and
    neither can a plain column become generated or switch storage mode.
    """

    def classify(
        self, before: Column, after: Column, changed: frozenset[ColumnAttribute]
    ) -> ChangeOutcome:
        if ColumnAttribute.GENERATED not in changed:
            return ChangeOutcome.ALTER
        return self._classify_generation(before.generated, after.generated)

    @staticmethod
    def _classify_generation(old: Generated | None, new: Generated | None) -> ChangeOutcome:
        if old is None:
            return ChangeOutcome.RECREATE_COLUMN
        if new is None:
            if old.mode is GeneratedMode.STORED:
                return ChangeOutcome.ALTER
            return ChangeOutcome.RECREATE_COLUMN
        if old.mode is not new.mode:
            return ChangeOutcome.RECREATE_COLUMN
        if new.mode is GeneratedMode.STORED:
            return ChangeOutcome.ALTER
        return ChangeOutcome.RECREATE_COLUMN

    def add_requires_rebuild(self, column: Column) -> bool:
        return False


class PostgresColumnPolicy:
    """Postgres: only DROP EXPRESSION exists for generated columns."""

    def classify(
        self, before: Column, after: Column, changed: frozenset[ColumnAttribute]
    ) -> ChangeOutcome:
        if ColumnAttribute.GENERATED in changed:
            if before.generated is not None and after.generated is None:
                # DROP EXPRESSION; other attributes can change alongside
                return ChangeOutcome.ALTER
            return ChangeOutcome.RECREATE_COLUMN
        if ColumnAttribute.AUTO_INCREMENT in changed:
            return ChangeOutcome.RECREATE_COLUMN
        return ChangeOutcome.ALTER

    def add_requires_rebuild(self, column: Column) -> bool:
        return False


class MsSqlColumnPolicy:
    """MSSQL: computed and identity columns cannot be altered in place."""

    def classify(
        self, before: Column, after: Column, changed: frozenset[ColumnAttribute]
    ) -> ChangeOutcome:
        if changed & {ColumnAttribute.GENERATED, ColumnAttribute.AUTO_INCREMENT}:
            return ChangeOutcome.RECREATE_COLUMN
        return ChangeOutcome.ALTER

    def add_requires_rebuild(self, column: Column) -> bool:
        return False


class SqliteColumnPolicy:
    """SQLite has no ALTER COLUMN: every change rebuilds the table."""

    def classify(
        self, before: Column, after: Column, changed: frozenset[ColumnAttribute]
    ) -> ChangeOutcome:
        return ChangeOutcome.RECREATE_TABLE

    def add_requires_rebuild(self, column: Column) -> bool:
        """ADD COLUMN rejects stored generated columns and NOT NULL without default."""
        if column.generated is not None and column.generated.mode is GeneratedMode.STORED:
            return True
        return column.not_null and column.default is None and column.generated is None


COLUMN_POLICIES: MappingProxyType[Dialect, ColumnChangePolicy] = MappingProxyType(
    {
        Dialect.MYSQL: MySqlColumnPolicy(),
        Dialect.SINGLESTORE: MySqlColumnPolicy(),
        Dialect.POSTGRES: PostgresColumnPolicy(),
        Dialect.MSSQL: MsSqlColumnPolicy(),
        Dialect.SQLITE: SqliteColumnPolicy(),
    }
)


def policy_for(dialect: Dialect) -> ColumnChangePolicy:
    return COLUMN_POLICIES[Dialect(dialect)]
