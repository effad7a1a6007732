"""
SQLite renderer.

SQLite has no ALTER COLUMN and no constraint statements: every such change
arrives here as a RecreateTable, rendered as the usual copy-and-swap:

    PRAGMA foreign_keys=OFF;
    CREATE TABLE `__new_t` (...);
    INSERT INTO `__new_t`(...) SELECT ... FROM `t`;
    DROP TABLE `t`;
    ALTER TABLE `__new_t` RENAME TO `t`;
    PRAGMA foreign_keys=ON;
"""

from __future__ import annotations

from collections.abc import Mapping

from src.constants import SQLITE_REBUILD_PREFIX
from src.ddl_engine.catalog.entities import Column
from src.ddl_engine.plan.statements import (
    AddColumn,
    AlterView,
    CreateIndex,
    CreateTable,
    CreateView,
    DropColumn,
    DropIndex,
    DropTable,
    DropView,
    RecreateTable,
    RenameColumn,
    RenameTable,
    Statement,
)
from src.ddl_engine.render.base import Handler, StatementRenderer, inline_primary_key
from src.enums import Dialect


class SqliteRenderer(StatementRenderer):
    dialect = Dialect.SQLITE

    def handlers(self) -> Mapping[type[Statement], Handler]:
        return {
            CreateTable: self.create_table,
            DropTable: self.drop_table,
            RenameTable: self.rename_table,
            RecreateTable: self.recreate_table,
            AddColumn: self.add_column,
            DropColumn: self.drop_column,
            RenameColumn: self.rename_column,
            CreateIndex: self.create_index,
            DropIndex: self.drop_index,
            CreateView: self.create_view,
            AlterView: self.alter_view,
            DropView: self.drop_view,
        }

    # ---------- tables ----------

    def column_definition(self, column: Column, primary_key: bool = False) -> str:
        sql = f"{self.q(column.name)} {column.type}"
        if primary_key:
            sql += " PRIMARY KEY"
            if column.auto_increment:
                sql += " AUTOINCREMENT"
        default = self.default_literal(column)
        if default is not None:
            sql += f" DEFAULT {default}"
        if column.generated is not None:
            mode = column.generated.mode.value.upper()
            sql += f" GENERATED ALWAYS AS ({column.generated.expression}) {mode}"
        if column.not_null and not primary_key:
            sql += " NOT NULL"
        return sql

    def _create_table_sql(self, s: CreateTable | RecreateTable, name: str) -> str:
        pk = s.primary_key
        inline = inline_primary_key(pk)
        lines = [self.column_definition(c, primary_key=c.name == inline) for c in s.columns]
        if pk is not None and inline is None:
            lines.append(f"PRIMARY KEY({self.columns(pk.columns, ', ')})")
        lines.extend(self.foreign_key_clause(fk) for fk in s.foreign_keys)
        lines.extend(self.unique_line(u) for u in s.uniques)
        lines.extend(self.check_line(c) for c in s.checks)
        return f"CREATE TABLE {self.q(name)} {self.table_body(lines)};"

    def create_table(self, s: CreateTable) -> str:
        return self._create_table_sql(s, s.table.name)

    def drop_table(self, s: DropTable) -> str:
        return f"DROP TABLE {self.q(s.table.name)};"

    def rename_table(self, s: RenameTable) -> str:
        return f"ALTER TABLE {self.q(s.from_name)} RENAME TO {self.q(s.to_name)};"

    def recreate_table(self, s: RecreateTable) -> list[str]:
        name = s.table.name
        staging = f"{SQLITE_REBUILD_PREFIX}{name}"
        statements = ["PRAGMA foreign_keys=OFF;", self._create_table_sql(s, staging)]
        if s.copied_columns:
            copied = self.columns(s.copied_columns, ", ")
            statements.append(
                f"INSERT INTO {self.q(staging)}({copied}) SELECT {copied} FROM {self.q(name)};"
            )
        statements.extend(
            [
                f"DROP TABLE {self.q(name)};",
                f"ALTER TABLE {self.q(staging)} RENAME TO {self.q(name)};",
                "PRAGMA foreign_keys=ON;",
            ]
        )
        return statements

    def cleanup(self, statement: Statement) -> tuple[str, ...]:
        return ("PRAGMA foreign_keys=ON;",) if isinstance(statement, RecreateTable) else ()

    # ---------- columns ----------

    def add_column(self, s: AddColumn) -> str:
        return f"ALTER TABLE {self.q(s.column.table)} ADD {self.column_definition(s.column)};"

    def drop_column(self, s: DropColumn) -> str:
        return f"ALTER TABLE {self.q(s.column.table)} DROP COLUMN {self.q(s.column.name)};"

    def rename_column(self, s: RenameColumn) -> str:
        return f"ALTER TABLE {self.q(s.table)} RENAME COLUMN {self.q(s.from_name)} TO {self.q(s.to_name)};"

    # ---------- indexes ----------

    def create_index(self, s: CreateIndex) -> str:
        index = s.index
        unique = "UNIQUE " if index.unique else ""
        where = f" WHERE {index.where}" if index.where else ""
        return (
            f"CREATE {unique}INDEX {self.q(index.name)} ON {self.q(index.table)} "
            f"({self.index_columns(index)}){where};"
        )

    def drop_index(self, s: DropIndex) -> str:
        return f"DROP INDEX {self.q(s.index.name)};"

    # ---------- views ----------

    def create_view(self, s: CreateView) -> str:
        if s.view.materialized:
            raise self.unsupported(s, "materialized views")
        return f"CREATE VIEW {self.q(s.view.name)} AS {s.view.definition};"

    def alter_view(self, s: AlterView) -> tuple[str, ...]:
        return (
            self.drop_view(DropView(view=s.before)),
            self.create_view(CreateView(view=s.after)),
        )

    def drop_view(self, s: DropView) -> str:
        return f"DROP VIEW {self.q(s.view.name)};"
