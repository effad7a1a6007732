"""
Literal codec: column default values <-> dialect SQL literal text.

Supported literal classes
-------------------------
- numeric: int, Decimal, float (parsed back according to the column type)
- boolean: `true`/`false` (MySQL, Postgres) or `1`/`0` (SQLite, MSSQL)
- string: single-quoted, embedded quotes doubled (`'` -> `''`)
- JSON: dict/list (or any value on a json column), compact, keys in the
  object's own insertion order, then quoted like a string
- raw SQL: `SqlExpression`, passed through untouched

Round-trip law: `parse(render(v, t), t) == v` for every value the schema DSL
produces on a column of type `t`.

Dialect notes
-------------
- MySQL/SingleStore wrap expressions as `(expr)`, and literal defaults on
  text/blob/json columns as `('literal')`.
- SQLite wraps expressions as `(expr)`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from src.ddl_engine.catalog.entities import DefaultValue, SqlExpression
from src.ddl_engine.grammar.types import ColumnType
from src.enums import Dialect

_INTEGER = re.compile(r"[+-]?\d+")
_NUMBER = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class LiteralCodec:
    """Dialect-specific default literal rendering and parsing."""

    dialect: Dialect
    true_literal: str = "true"
    false_literal: str = "false"
    wrap_expressions: bool = False
    wrap_text_literals: bool = False

    # ---------- public API ----------

    def render(self, value: DefaultValue, column_type: str) -> str:
        """Render a default value as SQL literal text for a column of `column_type`."""
        parsed = ColumnType.parse(column_type)

        if isinstance(value, SqlExpression):
            return f"({value.sql})" if self.wrap_expressions else value.sql

        if parsed.is_json or isinstance(value, (dict, list)):
            return self._wrap_literal(quote_string(dump_json(value)), parsed)

        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return self.true_literal if value else self.false_literal
        if isinstance(value, (int, Decimal)):
            return str(value)
        if isinstance(value, float):
            return repr(value)
        if isinstance(value, str):
            return self._wrap_literal(quote_string(value), parsed)

        raise TypeError(f"Unsupported default value type: {type(value).__name__}")

    def parse(self, literal: str, column_type: str) -> DefaultValue:
        """Parse SQL literal text back into the value `render` was given."""
        parsed = ColumnType.parse(column_type)
        text = literal.strip()

        if self._is_wrapped(text):
            inner = text[1:-1].strip()
            if not (self.wrap_text_literals and parsed.needs_expression_default and is_quoted(inner)):
                return SqlExpression(inner)
            text = inner

        if is_quoted(text):
            raw = unquote_string(text)
            return json.loads(raw) if parsed.is_json else raw

        lowered = text.lower()
        if parsed.is_boolean and lowered in (self.true_literal, self.false_literal):
            return lowered == self.true_literal
        if parsed.is_integer and _INTEGER.fullmatch(text):
            return int(text)
        if parsed.is_decimal and _NUMBER.fullmatch(text):
            return Decimal(text)
        if parsed.is_float and _NUMBER.fullmatch(text):
            return float(text)
        return SqlExpression(text)

    def canonical(self, value: DefaultValue | None, column_type: str) -> str | None:
        """Rendered form used to compare defaults; None when there is no default."""
        if value is None:
            return None
        return self.render(value, column_type)

    # ---------- helpers ----------

    def _wrap_literal(self, literal: str, parsed: ColumnType) -> str:
        if self.wrap_text_literals and parsed.needs_expression_default:
            return f"({literal})"
        return literal

    def _is_wrapped(self, text: str) -> bool:
        if not (self.wrap_expressions and text.startswith("(") and text.endswith(")")):
            return False
        return _outer_parentheses_match(text)


# ---------- string helpers ----------


def quote_string(value: str) -> str:
    """Single-quote a string, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def unquote_string(text: str) -> str:
    """Inverse of `quote_string`."""
    return text[1:-1].replace("''", "'")


def is_quoted(text: str) -> bool:
    """True when `text` is exactly one single-quoted string literal."""
    if len(text) < 2 or not (text.startswith("'") and text.endswith("'")):
        return False
    body = text[1:-1]
    return "'" not in body.replace("''", "")


def dump_json(value: object) -> str:
    """Compact JSON keeping the object's own key order."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _outer_parentheses_match(text: str) -> bool:
    """True when the first '(' closes at the last character (quotes respected)."""
    depth = 0
    in_quote = False
    for position, ch in enumerate(text):
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote and ch == "(":
            depth += 1
        elif not in_quote and ch == ")":
            depth -= 1
            if depth == 0 and position != len(text) - 1:
                return False
    return depth == 0


# ---------- registry ----------


CODECS: MappingProxyType[Dialect, LiteralCodec] = MappingProxyType(
    {
        Dialect.MYSQL: LiteralCodec(Dialect.MYSQL, wrap_expressions=True, wrap_text_literals=True),
        Dialect.SINGLESTORE: LiteralCodec(
            Dialect.SINGLESTORE, wrap_expressions=True, wrap_text_literals=True
        ),
        Dialect.POSTGRES: LiteralCodec(Dialect.POSTGRES),
        Dialect.SQLITE: LiteralCodec(
            Dialect.SQLITE, true_literal="1", false_literal="0", wrap_expressions=True
        ),
        Dialect.MSSQL: LiteralCodec(Dialect.MSSQL, true_literal="1", false_literal="0"),
    }
)


def codec_for(dialect: Dialect) -> LiteralCodec:
    return CODECS[Dialect(dialect)]
