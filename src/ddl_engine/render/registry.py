from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from src.ddl_engine.plan.statements import Statement
from src.ddl_engine.render.base import RenderedStatement, StatementRenderer
from src.ddl_engine.render.mssql import MsSqlRenderer
from src.ddl_engine.render.mysql import MySqlRenderer
from src.ddl_engine.render.postgres import PostgresRenderer
from src.ddl_engine.render.singlestore import SingleStoreRenderer
from src.ddl_engine.render.sqlite import SqliteRenderer
from src.enums import Dialect

RENDERERS: MappingProxyType[Dialect, type[StatementRenderer]] = MappingProxyType(
    {
        Dialect.MYSQL: MySqlRenderer,
        Dialect.SINGLESTORE: SingleStoreRenderer,
        Dialect.POSTGRES: PostgresRenderer,
        Dialect.SQLITE: SqliteRenderer,
        Dialect.MSSQL: MsSqlRenderer,
    }
)


def get_renderer(dialect: Dialect | str) -> StatementRenderer:
    return RENDERERS[Dialect(dialect)]()


def render_plan(statements: Iterable[Statement], dialect: Dialect | str) -> list[RenderedStatement]:
    """Render statements in order for one dialect."""
    return get_renderer(dialect).render_plan(statements)
