"""SingleStore renderer: MySQL syntax without foreign keys, CHANGE for column renames."""

from __future__ import annotations

from collections.abc import Mapping

from src.ddl_engine.plan.statements import (
    AddForeignKey,
    CreateTable,
    DropForeignKey,
    RenameColumn,
    Statement,
)
from src.ddl_engine.render.base import Handler
from src.ddl_engine.render.mysql import MySqlRenderer
from src.enums import Dialect


class SingleStoreRenderer(MySqlRenderer):
    dialect = Dialect.SINGLESTORE

    def handlers(self) -> Mapping[type[Statement], Handler]:
        handlers = dict(super().handlers())
        del handlers[AddForeignKey]
        del handlers[DropForeignKey]
        return handlers

    def create_table(self, s: CreateTable) -> str:
        if s.foreign_keys:
            raise self.unsupported(s, "foreign keys")
        return super().create_table(s)

    def rename_column(self, s: RenameColumn) -> str:
        return (
            f"ALTER TABLE {self.name(s.schema, s.table)} "
            f"CHANGE {self.q(s.from_name)} {self.q(s.to_name)};"
        )
