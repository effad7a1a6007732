"""Shared constant values used across the DDL engine."""

from types import MappingProxyType
from typing import Final

from src.enums import Dialect

SNAPSHOT_VERSION: Final[str] = "1"
ORIGIN_SNAPSHOT_ID: Final[str] = "00000000-0000-0000-0000-000000000000"
SNAPSHOT_FILE_NAME: Final[str] = "snapshot.json"

DEFAULT_SCHEMAS: Final = MappingProxyType(
    {
        Dialect.POSTGRES: "public",
        Dialect.MSSQL: "dbo",
        Dialect.MYSQL: "",
        Dialect.SINGLESTORE: "",
        Dialect.SQLITE: "",
    }
)

# Longest identifier each engine accepts; derived names are truncated with a hash suffix.
MAX_IDENTIFIER_LENGTHS: Final = MappingProxyType(
    {
        Dialect.POSTGRES: 63,
        Dialect.MYSQL: 64,
        Dialect.SINGLESTORE: 64,
        Dialect.MSSQL: 128,
        Dialect.SQLITE: 128,
    }
)

MYSQL_PRIMARY_KEY_NAME: Final[str] = "PRIMARY"
SQLITE_REBUILD_PREFIX: Final[str] = "__new_"
