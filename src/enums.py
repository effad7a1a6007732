"""Enumerations shared by settings and the DDL engine."""

from enum import StrEnum


class Dialect(StrEnum):
    """Target SQL engine."""

    MYSQL = "mysql"
    POSTGRES = "postgresql"
    SQLITE = "sqlite"
    MSSQL = "mssql"
    SINGLESTORE = "singlestore"

    @property
    def has_schemas(self) -> bool:
        """Whether the engine has first-class schema (namespace) objects."""
        return self in (Dialect.POSTGRES, Dialect.MSSQL)

    @property
    def has_enums(self) -> bool:
        """Whether enums are standalone types rather than column types."""
        return self is Dialect.POSTGRES
