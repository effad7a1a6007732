"""
MSSQL renderer.

Notes
-----
- Defaults are named constraints (`<table>_<column>_default`): they are
  declared inline on CREATE/ADD and dropped before the column is altered or
  dropped.
- Renames go through `sp_rename`; schema moves through `ALTER SCHEMA ... TRANSFER`.
- Computed columns carry no type: `[c] AS (expr) PERSISTED`.
- No standalone enums, no schema renames, no table rebuilds.
"""

from __future__ import annotations

from collections.abc import Mapping

from src.ddl_engine.catalog.entities import Column, GeneratedMode
from src.ddl_engine.diff.policy import ColumnAttribute
from src.ddl_engine.identifiers import build_default_constraint_name
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AddPrimaryKey,
    AddUnique,
    AlterColumn,
    AlterView,
    CreateCheck,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropSchema,
    DropTable,
    DropUnique,
    DropView,
    MoveTable,
    RecreateColumn,
    RenameColumn,
    RenameTable,
    RenameView,
    Statement,
)
from src.ddl_engine.render.base import Handler, StatementRenderer
from src.enums import Dialect

_RETYPING = frozenset({ColumnAttribute.TYPE, ColumnAttribute.NOT_NULL, ColumnAttribute.COLLATION})


class MsSqlRenderer(StatementRenderer):
    dialect = Dialect.MSSQL
    descending_keyword = "DESC"

    def handlers(self) -> Mapping[type[Statement], Handler]:
        return {
            CreateSchema: self.create_schema,
            DropSchema: self.drop_schema,
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

    # ---------- helpers ----------

    def _object_path(self, schema: str, name: str) -> str:
        """Unquoted 'schema.name' as sp_rename expects; dbo is left out."""
        if not schema or schema == self.quoting.default_schema:
            return name
        return f"{schema}.{name}"

    def _alter_table(self, schema: str, table: str) -> str:
        return f"ALTER TABLE {self.name(schema, table)}"

    def default_constraint_name(self, column: Column) -> str:
        return build_default_constraint_name(self.dialect, column.table, column.name)

    def _drop_default(self, column: Column) -> str:
        return (
            f"{self._alter_table(column.schema, column.table)} "
            f"DROP CONSTRAINT {self.q(self.default_constraint_name(column))};"
        )

    # ---------- schemas ----------

    def create_schema(self, s: CreateSchema) -> str:
        return f"CREATE SCHEMA {self.q(s.name)};"

    def drop_schema(self, s: DropSchema) -> str:
        return f"DROP SCHEMA {self.q(s.name)};"

    # ---------- tables ----------

    def column_definition(self, column: Column, primary_key: bool = False) -> str:
        name = self.q(column.name)
        if column.generated is not None:
            persisted = " PERSISTED" if column.generated.mode is GeneratedMode.STORED else ""
            return f"{name} AS ({column.generated.expression}){persisted}"

        sql = f"{name} {column.type}"
        if column.collation:
            sql += f" COLLATE {column.collation}"
        if column.auto_increment:
            sql += " IDENTITY(1, 1)"
        if column.not_null and not primary_key and not column.auto_increment:
            sql += " NOT NULL"
        default = self.default_literal(column)
        if default is not None:
            sql += f" CONSTRAINT {self.q(self.default_constraint_name(column))} DEFAULT {default}"
        return sql

    def create_table(self, s: CreateTable) -> str:
        key_columns = set(s.primary_key.columns) if s.primary_key is not None else set()
        lines = [self.column_definition(c, primary_key=c.name in key_columns) for c in s.columns]
        if s.primary_key is not None:
            lines.append(self.primary_key_line(s.primary_key))
        lines.extend(self.unique_line(u) for u in s.uniques)
        lines.extend(self.check_line(c) for c in s.checks)
        lines.extend(f"CONSTRAINT {self.q(fk.name)} {self.foreign_key_clause(fk)}" for fk in s.foreign_keys)
        return f"CREATE TABLE {self.name(s.table.schema, s.table.name)} {self.table_body(lines)};"

    def drop_table(self, s: DropTable) -> str:
        return f"DROP TABLE {self.name(s.table.schema, s.table.name)};"

    def _rename_default(
        self, schema: str, table: str, from_column: str, to_table: str, to_column: str
    ) -> str:
        """Rename the default constraint of `table.from_column` to its `to_table.to_column` name."""
        current = build_default_constraint_name(self.dialect, table, from_column)
        renamed = build_default_constraint_name(self.dialect, to_table, to_column)
        return f"EXEC sp_rename '{self._object_path(schema, current)}', {self.q(renamed)}, 'OBJECT';"

    def rename_table(self, s: RenameTable) -> list[str]:
        statements = [f"EXEC sp_rename '{self._object_path(s.schema, s.from_name)}', {self.q(s.to_name)};"]
        statements.extend(
            self._rename_default(s.schema, s.from_name, column, s.to_name, column)
            for column in s.defaulted_columns
        )
        return statements

    def move_table(self, s: MoveTable) -> str:
        return f"ALTER SCHEMA {self.q(s.to_schema)} TRANSFER {self.q(s.from_schema)}.{self.q(s.name)};"

    # ---------- columns ----------

    def add_column(self, s: AddColumn) -> str:
        c = s.column
        return f"{self._alter_table(c.schema, c.table)} ADD {self.column_definition(c)};"

    def alter_column(self, s: AlterColumn) -> list[str]:
        before, after = s.before, s.after
        table = self._alter_table(after.schema, after.table)
        default_changed = ColumnAttribute.DEFAULT in s.changes

        statements: list[str] = []
        if default_changed and before.default is not None:
            statements.append(self._drop_default(before))
        if s.changes & _RETYPING:
            collation = f" COLLATE {after.collation}" if after.collation else ""
            not_null = " NOT NULL" if after.not_null else ""
            statements.append(
                f"{table} ALTER COLUMN {self.q(after.name)} {after.type}{collation}{not_null};"
            )
        if default_changed and after.default is not None:
            statements.append(
                f"{table} ADD CONSTRAINT {self.q(self.default_constraint_name(after))} "
                f"DEFAULT {self.default_literal(after)} FOR {self.q(after.name)};"
            )
        if not statements:
            attributes = ", ".join(sorted(str(a) for a in s.changes))
            raise self.unsupported(s, attributes)
        return statements

    def recreate_column(self, s: RecreateColumn) -> list[str]:
        return [*self.drop_column(DropColumn(column=s.before)), self.add_column(AddColumn(column=s.after))]

    def drop_column(self, s: DropColumn) -> list[str]:
        c = s.column
        statements = [self._drop_default(c)] if c.default is not None else []
        statements.append(f"{self._alter_table(c.schema, c.table)} DROP COLUMN {self.q(c.name)};")
        return statements

    def rename_column(self, s: RenameColumn) -> list[str]:
        path = self._object_path(s.schema, s.table)
        statements = [f"EXEC sp_rename '{path}.{s.from_name}', {self.q(s.to_name)}, 'COLUMN';"]
        if s.has_default_constraint:
            statements.append(self._rename_default(s.schema, s.table, s.from_name, s.table, s.to_name))
        return statements

    # ---------- constraints ----------

    def _drop_constraint(self, schema: str, table: str, name: str) -> str:
        return f"{self._alter_table(schema, table)} DROP CONSTRAINT {self.q(name)};"

    def add_primary_key(self, s: AddPrimaryKey) -> str:
        pk = s.primary_key
        return (
            f"{self._alter_table(pk.schema, pk.table)} "
            f"ADD CONSTRAINT {self.q(pk.name)} PRIMARY KEY ({self.columns(pk.columns)});"
        )

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
            f"({self.index_columns(index)}){where};"
        )

    def drop_index(self, s: DropIndex) -> str:
        index = s.index
        return f"DROP INDEX {self.q(index.name)} ON {self.name(index.schema, index.table)};"

    # ---------- views ----------

    def _view_sql(self, s: CreateView | AlterView, verb: str) -> str:
        view = s.view if isinstance(s, CreateView) else s.after
        if view.materialized:
            raise self.unsupported(s, "materialized views")
        check_option = " WITH CHECK OPTION" if view.with_check_option is not None else ""
        return f"{verb} VIEW {self.name(view.schema, view.name)} AS {view.definition}{check_option};"

    def create_view(self, s: CreateView) -> str:
        return self._view_sql(s, "CREATE")

    def alter_view(self, s: AlterView) -> str:
        return self._view_sql(s, "ALTER")

    def drop_view(self, s: DropView) -> str:
        return f"DROP VIEW {self.name(s.view.schema, s.view.name)};"

    def rename_view(self, s: RenameView) -> str:
        return f"EXEC sp_rename '{self._object_path(s.schema, s.from_name)}', {self.q(s.to_name)};"
