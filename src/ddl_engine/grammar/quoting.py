from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from src.constants import DEFAULT_SCHEMAS
from src.enums import Dialect


@dataclass(frozen=True)
class IdentifierQuoting:
    """Identifier quoting rules for one dialect."""

    open: str
    close: str
    default_schema: str = ""

    def quote(self, identifier: str) -> str:
        """Quote a single identifier, doubling any embedded closing quote."""
        text = str(identifier)
        return f"{self.open}{text.replace(self.close, self.close * 2)}{self.close}"

    def qualified(self, schema: str, name: str) -> str:
        """Quoted `schema.name`; the schema part is omitted for the default schema."""
        if not schema or schema == self.default_schema:
            return self.quote(name)
        return f"{self.quote(schema)}.{self.quote(name)}"

    def join(self, identifiers: tuple[str, ...] | list[str], separator: str = ",") -> str:
        return separator.join(self.quote(identifier) for identifier in identifiers)


def escape_sql_literal(value: str | None) -> str:
    """
    Escape a Python string for use inside a single-quoted SQL literal.
    Doubles single quotes per SQL rules. Empty/None -> empty string.
    """
    return (value or "").replace("'", "''")


QUOTING: MappingProxyType[Dialect, IdentifierQuoting] = MappingProxyType(
    {
        Dialect.MYSQL: IdentifierQuoting("`", "`"),
        Dialect.SINGLESTORE: IdentifierQuoting("`", "`"),
        Dialect.SQLITE: IdentifierQuoting("`", "`"),
        Dialect.POSTGRES: IdentifierQuoting('"', '"', DEFAULT_SCHEMAS[Dialect.POSTGRES]),
        Dialect.MSSQL: IdentifierQuoting("[", "]", DEFAULT_SCHEMAS[Dialect.MSSQL]),
    }
)


def quoting_for(dialect: Dialect) -> IdentifierQuoting:
    return QUOTING[Dialect(dialect)]
