"""
MySQL renderer.

Notes
-----
- No schema objects and no standalone enums: schema, enum and table move
  statements are refused.
- Single-column primary keys are declared inline on the column; composite
  keys become a `CONSTRAINT `PRIMARY` PRIMARY KEY(...)` line.
- AlterColumn renders the full column definition via MODIFY COLUMN.
"""

from __future__ import annotations

from collections.abc import Mapping

from src.ddl_engine.catalog.entities import Column, View
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AddPrimaryKey,
    AddUnique,
    AlterColumn,
    AlterView,
    CreateCheck,
    CreateIndex,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropTable,
    DropUnique,
    DropView,
    RecreateColumn,
    RenameColumn,
    RenameTable,
    RenameView,
    Statement,
)
from src.ddl_engine.render.base import Handler, StatementRenderer, inline_primary_key
from src.enums import Dialect


class MySqlRenderer(StatementRenderer):
    dialect = Dialect.MYSQL

    def handlers(self) -> Mapping[type[Statement], Handler]:
        return {
            CreateTable: self.create_table,
            DropTable: self.drop_table,
            RenameTable: self.rename_table,
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

    # ---------- columns ----------

    def column_definition(self, column: Column, primary_key: bool = False) -> str:
        sql = f"{self.q(column.name)} {column.type}"
        if column.auto_increment:
            sql += " AUTO_INCREMENT"
        if primary_key:
            sql += " PRIMARY KEY"
        if column.charset:
            sql += f" CHARACTER SET {column.charset}"
        if column.collation:
            sql += f" COLLATE {column.collation}"
        if column.generated is not None:
            mode = column.generated.mode.value.upper()
            sql += f" GENERATED ALWAYS AS ({column.generated.expression}) {mode}"
        if column.not_null and not primary_key:
            sql += " NOT NULL"
        default = self.default_literal(column)
        if default is not None:
            sql += f" DEFAULT {default}"
        if column.on_update_now:
            fsp = f"({column.on_update_now_fsp})" if column.on_update_now_fsp is not None else ""
            sql += f" ON UPDATE CURRENT_TIMESTAMP{fsp}"
        return sql

    def _table(self, column: Column) -> str:
        return self.name(column.schema, column.table)

    def add_column(self, s: AddColumn) -> str:
        return f"ALTER TABLE {self._table(s.column)} ADD {self.column_definition(s.column)};"

    def alter_column(self, s: AlterColumn) -> str:
        return f"ALTER TABLE {self._table(s.after)} MODIFY COLUMN {self.column_definition(s.after)};"

    def recreate_column(self, s: RecreateColumn) -> tuple[str, ...]:
        return (
            self.drop_column(DropColumn(column=s.before)),
            self.add_column(AddColumn(column=s.after)),
        )

    def drop_column(self, s: DropColumn) -> str:
        return f"ALTER TABLE {self._table(s.column)} DROP COLUMN {self.q(s.column.name)};"

    def rename_column(self, s: RenameColumn) -> str:
        return (
            f"ALTER TABLE {self.name(s.schema, s.table)} "
            f"RENAME COLUMN {self.q(s.from_name)} TO {self.q(s.to_name)};"
        )

    # ---------- tables ----------

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
        return f"DROP TABLE {self.name(s.table.schema, s.table.name)};"

    def rename_table(self, s: RenameTable) -> str:
        return f"RENAME TABLE {self.name(s.schema, s.from_name)} TO {self.name(s.schema, s.to_name)};"

    # ---------- constraints ----------

    def add_primary_key(self, s: AddPrimaryKey) -> str:
        pk = s.primary_key
        return f"ALTER TABLE {self.name(pk.schema, pk.table)} ADD PRIMARY KEY ({self.columns(pk.columns)});"

    def drop_primary_key(self, s: DropPrimaryKey) -> str:
        pk = s.primary_key
        return f"ALTER TABLE {self.name(pk.schema, pk.table)} DROP PRIMARY KEY;"

    def add_unique(self, s: AddUnique) -> str:
        u = s.unique
        return f"ALTER TABLE {self.name(u.schema, u.table)} ADD {self.unique_line(u)};"

    def drop_unique(self, s: DropUnique) -> str:
        u = s.unique
        return f"DROP INDEX {self.q(u.name)} ON {self.name(u.schema, u.table)};"

    def create_check(self, s: CreateCheck) -> str:
        c = s.check
        return f"ALTER TABLE {self.name(c.schema, c.table)} ADD {self.check_line(c)};"

    def drop_check(self, s: DropCheck) -> str:
        c = s.check
        return f"ALTER TABLE {self.name(c.schema, c.table)} DROP CONSTRAINT {self.q(c.name)};"

    def add_foreign_key(self, s: AddForeignKey) -> str:
        fk = s.foreign_key
        return (
            f"ALTER TABLE {self.name(fk.schema, fk.table)} "
            f"ADD CONSTRAINT {self.q(fk.name)} {self.foreign_key_clause(fk)};"
        )

    def drop_foreign_key(self, s: DropForeignKey) -> str:
        fk = s.foreign_key
        return f"ALTER TABLE {self.name(fk.schema, fk.table)} DROP FOREIGN KEY {self.q(fk.name)};"

    # ---------- indexes ----------

    def create_index(self, s: CreateIndex) -> str:
        index = s.index
        if index.where:
            raise self.unsupported(s, "partial indexes")
        unique = "UNIQUE " if index.unique else ""
        using = f" USING {index.method}" if index.method else ""
        return (
            f"CREATE {unique}INDEX {self.q(index.name)} ON {self.name(index.schema, index.table)} "
            f"({self.index_columns(index)}){using};"
        )

    def drop_index(self, s: DropIndex) -> str:
        index = s.index
        return f"DROP INDEX {self.q(index.name)} ON {self.name(index.schema, index.table)};"

    # ---------- views ----------

    def _view_options(self, view: View) -> str:
        options = ""
        if view.algorithm is not None:
            options += f" ALGORITHM = {view.algorithm.value}"
        if view.sql_security is not None:
            options += f" SQL SECURITY {view.sql_security.value}"
        return options

    @staticmethod
    def _check_option(view: View) -> str:
        if view.with_check_option is None:
            return ""
        return f" WITH {view.with_check_option.value} CHECK OPTION"

    def _create_view(self, s: Statement, view: View, verb: str) -> str:
        if view.materialized:
            raise self.unsupported(s, "materialized views")
        return (
            f"{verb}{self._view_options(view)} VIEW {self.name(view.schema, view.name)} "
            f"AS ({view.definition}){self._check_option(view)};"
        )

    def create_view(self, s: CreateView) -> str:
        return self._create_view(s, s.view, "CREATE")

    def alter_view(self, s: AlterView) -> str:
        if s.definition_changed:
            return self._create_view(s, s.after, "CREATE OR REPLACE")
        view = s.after
        return (
            f"ALTER{self._view_options(view)} VIEW {self.name(view.schema, view.name)} "
            f"AS ({view.definition}){self._check_option(view)};"
        )

    def drop_view(self, s: DropView) -> str:
        return f"DROP VIEW {self.name(s.view.schema, s.view.name)};"

    def rename_view(self, s: RenameView) -> str:
        return f"RENAME TABLE {self.name(s.schema, s.from_name)} TO {self.name(s.schema, s.to_name)};"
