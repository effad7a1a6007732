"""
Statement renderer core.

Responsibilities
----------------
- Turn one statement into SQL text for one dialect; no knowledge of other
  statements or of any catalog.
- Dispatch by statement type through a per-dialect handler table.
- Refuse what a dialect cannot express with UnsupportedConstructError,
  carrying the statement's entity id.

Conventions
-----------
- `render` always returns a tuple of SQL strings; most statements produce one.
- Every SQL string ends with ';'.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from src.ddl_engine.catalog.entities import (
    Check,
    Column,
    ForeignKey,
    Index,
    IndexColumn,
    PrimaryKey,
    UniqueConstraint,
)
from src.ddl_engine.errors import UnsupportedConstructError
from src.ddl_engine.grammar.literals import LiteralCodec, codec_for
from src.ddl_engine.grammar.quoting import IdentifierQuoting, quoting_for
from src.ddl_engine.plan.statements import Statement
from src.enums import Dialect

Handler = Callable[[Statement], "str | tuple[str, ...] | list[str]"]


@dataclass(frozen=True)
class RenderedStatement:
    """
    A statement paired with the SQL it renders to.

    `cleanup` restores connection state (for example SQLite's foreign key
    pragma) when only part of `sql` ran.
    """

    statement: Statement
    sql: tuple[str, ...]
    cleanup: tuple[str, ...] = ()


class StatementRenderer:
    """Base renderer; subclasses provide `dialect` and `handlers()`."""

    dialect: Dialect
    descending_keyword = "desc"

    def __init__(self) -> None:
        self.quoting: IdentifierQuoting = quoting_for(self.dialect)
        self.codec: LiteralCodec = codec_for(self.dialect)
        self._handlers: Mapping[type[Statement], Handler] = self.handlers()

    def handlers(self) -> Mapping[type[Statement], Handler]:
        raise NotImplementedError

    # ---------- public API ----------

    def supports(self, statement: Statement) -> bool:
        return type(statement) in self._handlers

    def render(self, statement: Statement) -> tuple[str, ...]:
        handler = self._handlers.get(type(statement))
        if handler is None:
            raise self.unsupported(statement)
        sql = handler(statement)
        return (sql,) if isinstance(sql, str) else tuple(sql)

    def render_plan(self, statements: Iterable[Statement]) -> list[RenderedStatement]:
        return [
            RenderedStatement(statement=s, sql=self.render(s), cleanup=self.cleanup(s))
            for s in statements
        ]

    def cleanup(self, statement: Statement) -> tuple[str, ...]:
        return ()

    def unsupported(self, statement: Statement, detail: str = "") -> UnsupportedConstructError:
        message = f"{self.dialect} cannot express {type(statement).__name__}"
        if detail:
            message = f"{message}: {detail}"
        return UnsupportedConstructError(message, entity_ids=[statement.resource_key])

    # ---------- identifier helpers ----------

    def q(self, identifier: str) -> str:
        return self.quoting.quote(identifier)

    def name(self, schema: str, name: str) -> str:
        return self.quoting.qualified(schema, name)

    def columns(self, names: Iterable[str], separator: str = ",") -> str:
        return self.quoting.join(tuple(names), separator)

    # ---------- shared fragments ----------

    def default_literal(self, column: Column) -> str | None:
        if column.default is None:
            return None
        return self.codec.render(column.default, column.type)

    def index_column(self, column: IndexColumn) -> str:
        value = f"({column.value})" if column.is_expression else self.q(column.value)
        return value if column.ascending else f"{value} {self.descending_keyword}"

    def index_columns(self, index: Index) -> str:
        return ",".join(self.index_column(c) for c in index.columns)

    def referential_actions(self, fk: ForeignKey) -> str:
        text = ""
        if fk.on_delete is not None:
            text += f" ON DELETE {fk.on_delete.value.lower()}"
        if fk.on_update is not None:
            text += f" ON UPDATE {fk.on_update.value.lower()}"
        return text

    def foreign_key_clause(self, fk: ForeignKey) -> str:
        return (
            f"FOREIGN KEY ({self.columns(fk.columns)}) "
            f"REFERENCES {self.name(fk.schema_to, fk.table_to)}({self.columns(fk.columns_to)})"
            f"{self.referential_actions(fk)}"
        )

    def primary_key_line(self, pk: PrimaryKey) -> str:
        return f"CONSTRAINT {self.q(pk.name)} PRIMARY KEY({self.columns(pk.columns)})"

    def unique_line(self, unique: UniqueConstraint) -> str:
        return f"CONSTRAINT {self.q(unique.name)} UNIQUE({self.columns(unique.columns)})"

    def check_line(self, check: Check) -> str:
        return f"CONSTRAINT {self.q(check.name)} CHECK ({check.value})"

    @staticmethod
    def table_body(lines: Iterable[str]) -> str:
        return "(\n\t" + ",\n\t".join(lines) + "\n)"


def inline_primary_key(pk: PrimaryKey | None) -> str | None:
    """Name of the column carrying an inline PRIMARY KEY, for single-column keys."""
    if pk is not None and len(pk.columns) == 1:
        return pk.columns[0]
    return None
