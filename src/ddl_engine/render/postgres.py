"""
Postgres renderer.

Notes
-----
- Identifiers in the `public` schema are rendered unqualified.
- AlterColumn is rendered as narrow ALTER COLUMN clauses, one statement each,
  in this order: DROP DEFAULT, SET DATA TYPE, SET DEFAULT, SET/DROP NOT NULL,
  DROP EXPRESSION.
- RecreateEnum casts dependent columns to text, rebuilds the type and casts
  them back with USING.
"""

from __future__ import annotations

from collections.abc import Mapping

from src.ddl_engine.catalog.entities import Column, Enum, View
from src.ddl_engine.diff.policy import ColumnAttribute
from src.ddl_engine.grammar.literals import quote_string
from src.ddl_engine.grammar.types import render_enum_values
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AddPrimaryKey,
    AddUnique,
    AlterColumn,
    AlterEnum,
    AlterView,
    CreateCheck,
    CreateEnum,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropEnum,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropSchema,
    DropTable,
    DropUnique,
    DropView,
    MoveEnum,
    MoveTable,
    RecreateColumn,
    RecreateEnum,
    RenameColumn,
    RenameEnum,
    RenameSchema,
    RenameTable,
    RenameView,
    Statement,
)
from src.ddl_engine.render.base import Handler, StatementRenderer, inline_primary_key
from src.enums import Dialect

_UNSUPPORTED_ALTERS = frozenset({ColumnAttribute.CHARSET, ColumnAttribute.ON_UPDATE})


class PostgresRenderer(StatementRenderer):
    dialect = Dialect.POSTGRES
    descending_keyword = "DESC"

    def handlers(self) -> Mapping[type[Statement], Handler]:
        return {
            CreateSchema: self.create_schema,
            DropSchema: self.drop_schema,
            RenameSchema: self.rename_schema,
            CreateEnum: self.create_enum,
            DropEnum: self.drop_enum,
            RenameEnum: self.rename_enum,
            MoveEnum: self.move_enum,
            AlterEnum: self.alter_enum,
            RecreateEnum: self.recreate_enum,
            CreateTable: self.create_table,
            DropTable: self.drop_table,
            RenameTable: self.rename_table,
            MoveTable: self.move_table,
            AddColumn: self.add_column,
            AlterColumn: self.alter_column,
            RecreateColumn: self.recreate_column,
            DropColumn: self.drop_column,
            RenameColumn: self.rename_column,
            AddPrimaryKey: self.add_primary_key,
            DropPrimaryKey: self.drop_primary_key,
            AddUnique: self.add_unique,
            DropUnique: self.drop_unique,
            CreateCheck: self.create_check,
            DropCheck: self.drop_check,
            AddForeignKey: self.add_foreign_key,
            DropForeignKey: self.drop_foreign_key,
            CreateIndex: self.create_index,
            DropIndex: self.drop_index,
            CreateView: self.create_view,
            AlterView: self.alter_view,
            DropView: self.drop_view,
            RenameView: self.rename_view,
        }

    # ---------- schemas ----------

    def create_schema(self, s: CreateSchema) -> str:
        return f"CREATE SCHEMA {self.q(s.name)};"

    def drop_schema(self, s: DropSchema) -> str:
        return f"DROP SCHEMA {self.q(s.name)};"

    def rename_schema(self, s: RenameSchema) -> str:
        return f"ALTER SCHEMA {self.q(s.from_name)} RENAME TO {self.q(s.to_name)};"

    # ---------- enums ----------

    def _enum_definition(self, enum: Enum) -> str:
        return f"CREATE TYPE {self.name(enum.schema, enum.name)} AS ENUM({render_enum_values(enum.values, ', ')});"

    def create_enum(self, s: CreateEnum) -> str:
        return self._enum_definition(s.enum)

    def drop_enum(self, s: DropEnum) -> str:
        return f"DROP TYPE {self.name(s.enum.schema, s.enum.name)};"

    def rename_enum(self, s: RenameEnum) -> str:
        return f"ALTER TYPE {self.name(s.schema, s.from_name)} RENAME TO {self.q(s.to_name)};"

    def move_enum(self, s: MoveEnum) -> str:
        return f"ALTER TYPE {self.name(s.from_schema, s.name)} SET SCHEMA {self.q(s.to_schema)};"

    def alter_enum(self, s: AlterEnum) -> list[str]:
        name = self.name(s.enum.schema, s.enum.name)
        statements = []
        for value, before in s.added:
            position = f" BEFORE {quote_string(before)}" if before is not None else ""
            statements.append(f"ALTER TYPE {name} ADD VALUE {quote_string(value)}{position};")
        return statements

    def recreate_enum(self, s: RecreateEnum) -> list[str]:
        type_name = self.name(s.after.schema, s.after.name)
        statements: list[str] = []
        for column in s.columns:
            if column.default is not None:
                statements.append(f"{self._alter_column_prefix(column)} DROP DEFAULT;")
            statements.append(f"{self._alter_column_prefix(column)} SET DATA TYPE text;")
        statements.append(f"DROP TYPE {self.name(s.before.schema, s.before.name)};")
        statements.append(self._enum_definition(s.after))
        for column in s.columns:
            statements.append(
                f"{self._alter_column_prefix(column)} SET DATA TYPE {type_name} "
                f"USING {self.q(column.name)}::{type_name};"
            )
            default = self.default_literal(column)
            if default is not None:
                statements.append(f"{self._alter_column_prefix(column)} SET DEFAULT {default};")
        return statements

    # ---------- tables ----------

    def column_definition(self, column: Column, primary_key: bool = False) -> str:
        sql = f"{self.q(column.name)} {column.type}"
        if column.collation:
            sql += f' COLLATE "{column.collation}"'
        if column.auto_increment and "serial" not in column.type:
            sql += " GENERATED BY DEFAULT AS IDENTITY"
        if primary_key:
            sql += " PRIMARY KEY"
        default = self.default_literal(column)
        if default is not None:
            sql += f" DEFAULT {default}"
        if column.generated is not None:
            mode = column.generated.mode.value.upper()
            sql += f" GENERATED ALWAYS AS ({column.generated.expression}) {mode}"
        if column.not_null and not primary_key:
            sql += " NOT NULL"
        return sql

    def create_table(self, s: CreateTable) -> str:
        inline = inline_primary_key(s.primary_key)
        lines = [self.column_definition(c, primary_key=c.name == inline) for c in s.columns]
        if s.primary_key is not None and inline is None:
            lines.append(self.primary_key_line(s.primary_key))
        lines.extend(self.unique_line(u) for u in s.uniques)
        lines.extend(self.check_line(c) for c in s.checks)
        lines.extend(f"CONSTRAINT {self.q(fk.name)} {self.foreign_key_clause(fk)}" for fk in s.foreign_keys)
        return f"CREATE TABLE {self.name(s.table.schema, s.table.name)} {self.table_body(lines)};"

    def drop_table(self, s: DropTable) -> str:
        return f"DROP TABLE {self.name(s.table.schema, s.table.name)} CASCADE;"

    def rename_table(self, s: RenameTable) -> str:
        return f"ALTER TABLE {self.name(s.schema, s.from_name)} RENAME TO {self.q(s.to_name)};"

    def move_table(self, s: MoveTable) -> str:
        return f"ALTER TABLE {self.name(s.from_schema, s.name)} SET SCHEMA {self.q(s.to_schema)};"

    # ---------- columns ----------

    def _alter_table(self, schema: str, table: str) -> str:
        return f"ALTER TABLE {self.name(schema, table)}"

    def _alter_column_prefix(self, column: Column) -> str:
        return f"{self._alter_table(column.schema, column.table)} ALTER COLUMN {self.q(column.name)}"

    def add_column(self, s: AddColumn) -> str:
        c = s.column
        return f"{self._alter_table(c.schema, c.table)} ADD COLUMN {self.column_definition(c)};"

    def alter_column(self, s: AlterColumn) -> list[str]:
        if s.changes & _UNSUPPORTED_ALTERS:
            attributes = ", ".join(sorted(str(a) for a in s.changes & _UNSUPPORTED_ALTERS))
            raise self.unsupported(s, attributes)

        before, after = s.before, s.after
        prefix = self._alter_column_prefix(after)
        retyped = bool(s.changes & {ColumnAttribute.TYPE, ColumnAttribute.COLLATION})
        default_touched = ColumnAttribute.DEFAULT in s.changes or (retyped and before.default is not None)

        statements: list[str] = []
        if default_touched and before.default is not None:
            statements.append(f"{prefix} DROP DEFAULT;")
        if retyped:
            collation = f' COLLATE "{after.collation}"' if after.collation else ""
            statements.append(f"{prefix} SET DATA TYPE {after.type}{collation};")
        if default_touched and after.default is not None:
            statements.append(f"{prefix} SET DEFAULT {self.default_literal(after)};")
        if ColumnAttribute.NOT_NULL in s.changes:
            statements.append(f"{prefix} {'SET' if after.not_null else 'DROP'} NOT NULL;")
        if ColumnAttribute.GENERATED in s.changes and after.generated is None:
            statements.append(f"{prefix} DROP EXPRESSION;")
        return statements

    def recreate_column(self, s: RecreateColumn) -> tuple[str, ...]:
        return (
            self.drop_column(DropColumn(column=s.before)),
            self.add_column(AddColumn(column=s.after)),
        )

    def drop_column(self, s: DropColumn) -> str:
        c = s.column
        return f"{self._alter_table(c.schema, c.table)} DROP COLUMN {self.q(c.name)};"

    def rename_column(self, s: RenameColumn) -> str:
        return (
            f"{self._alter_table(s.schema, s.table)} "
            f"RENAME COLUMN {self.q(s.from_name)} TO {self.q(s.to_name)};"
        )

    # ---------- constraints ----------

    def _drop_constraint(self, schema: str, table: str, name: str) -> str:
        return f"{self._alter_table(schema, table)} DROP CONSTRAINT {self.q(name)};"

    def add_primary_key(self, s: AddPrimaryKey) -> str:
        pk = s.primary_key
        return f"{self._alter_table(pk.schema, pk.table)} ADD {self.primary_key_line(pk)};"

    def drop_primary_key(self, s: DropPrimaryKey) -> str:
        pk = s.primary_key
        return self._drop_constraint(pk.schema, pk.table, pk.name)

    def add_unique(self, s: AddUnique) -> str:
        u = s.unique
        return f"{self._alter_table(u.schema, u.table)} ADD {self.unique_line(u)};"

    def drop_unique(self, s: DropUnique) -> str:
        u = s.unique
        return self._drop_constraint(u.schema, u.table, u.name)

    def create_check(self, s: CreateCheck) -> str:
        c = s.check
        return f"{self._alter_table(c.schema, c.table)} ADD {self.check_line(c)};"

    def drop_check(self, s: DropCheck) -> str:
        c = s.check
        return self._drop_constraint(c.schema, c.table, c.name)

    def add_foreign_key(self, s: AddForeignKey) -> str:
        fk = s.foreign_key
        return (
            f"{self._alter_table(fk.schema, fk.table)} "
            f"ADD CONSTRAINT {self.q(fk.name)} {self.foreign_key_clause(fk)};"
        )

    def drop_foreign_key(self, s: DropForeignKey) -> str:
        fk = s.foreign_key
        return self._drop_constraint(fk.schema, fk.table, fk.name)

    # ---------- indexes ----------

    def create_index(self, s: CreateIndex) -> str:
        index = s.index
        unique = "UNIQUE " if index.unique else ""
        where = f" WHERE {index.where}" if index.where else ""
        return (
            f"CREATE {unique}INDEX {self.q(index.name)} ON {self.name(index.schema, index.table)} "
            f"USING {index.method or 'btree'} ({self.index_columns(index)}){where};"
        )

    def drop_index(self, s: DropIndex) -> str:
        return f"DROP INDEX {self.name(s.index.schema, s.index.name)};"

    # ---------- views ----------

    @staticmethod
    def _view_kind(view: View) -> str:
        return "MATERIALIZED VIEW" if view.materialized else "VIEW"

    def _view_definition(self, view: View, verb: str) -> str:
        options = ""
        if view.with_check_option is not None and not view.materialized:
            options = f" WITH (check_option = {view.with_check_option.value})"
        return (
            f"{verb} {self._view_kind(view)} {self.name(view.schema, view.name)}"
            f"{options} AS ({view.definition});"
        )

    def create_view(self, s: CreateView) -> str:
        return self._view_definition(s.view, "CREATE")

    def alter_view(self, s: AlterView) -> tuple[str, ...]:
        if s.before.materialized or s.after.materialized:
            return (
                self.drop_view(DropView(view=s.before)),
                self._view_definition(s.after, "CREATE"),
            )
        return (self._view_definition(s.after, "CREATE OR REPLACE"),)

    def drop_view(self, s: DropView) -> str:
        return f"DROP {self._view_kind(s.view)} {self.name(s.view.schema, s.view.name)};"

    def rename_view(self, s: RenameView) -> str:
        kind = "MATERIALIZED VIEW" if s.materialized else "VIEW"
        return f"ALTER {kind} {self.name(s.schema, s.from_name)} RENAME TO {self.q(s.to_name)};"
