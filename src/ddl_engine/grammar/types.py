"""
Column type parsing and normalisation.

A column type is kept as the declared SQL text ("varchar(255)",
"decimal(10, 2)", "enum('a','b')"). `normalize_type` gives one canonical
spelling so that cosmetic differences never show up as diffs, and
`ColumnType.parse` splits it into a base name and arguments so the literal
codec can pick a literal family.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PAREN = re.compile(r"\s+\(")
_SPACE_AFTER_OPEN = re.compile(r"\(\s+")
_SPACE_BEFORE_CLOSE = re.compile(r"\s+\)")
_SPACE_AROUND_COMMA = re.compile(r"\s*,\s*")

_INTEGER_TYPES = frozenset(
    {
        "int", "integer", "tinyint", "smallint", "mediumint", "bigint",
        "int2", "int4", "int8", "serial", "smallserial", "bigserial",
    }
)
_DECIMAL_TYPES = frozenset({"decimal", "numeric", "dec", "fixed", "money", "smallmoney"})
_FLOAT_TYPES = frozenset({"float", "double", "double precision", "real", "float4", "float8"})
_BOOLEAN_TYPES = frozenset({"boolean", "bool", "bit"})
_JSON_TYPES = frozenset({"json", "jsonb"})
# MySQL only accepts literal defaults on these types as parenthesised expressions.
_MYSQL_EXPRESSION_DEFAULT_TYPES = frozenset(
    {
        "text", "tinytext", "mediumtext", "longtext",
        "blob", "tinyblob", "mediumblob", "longblob",
        "json", "geometry", "point", "linestring", "polygon",
    }
)


@dataclass(frozen=True, slots=True)
class ColumnType:
    """A parsed column type: base name plus raw arguments."""

    base: str
    args: tuple[str, ...] = ()
    array: bool = False

    @classmethod
    def parse(cls, text: str) -> ColumnType:
        normalized = normalize_type(text)
        array = normalized.endswith("[]")
        while normalized.endswith("[]"):
            normalized = normalized[:-2]
        if "(" not in normalized or not normalized.endswith(")"):
            return cls(base=normalized.lower(), array=array)
        base, _, rest = normalized.partition("(")
        return cls(base=base.strip().lower(), args=tuple(_split_args(rest[:-1])), array=array)

    @property
    def is_integer(self) -> bool:
        return not self.array and self.base.split(" ")[0] in _INTEGER_TYPES

    @property
    def is_decimal(self) -> bool:
        return not self.array and self.base in _DECIMAL_TYPES

    @property
    def is_float(self) -> bool:
        return not self.array and self.base in _FLOAT_TYPES

    @property
    def is_boolean(self) -> bool:
        return not self.array and self.base in _BOOLEAN_TYPES

    @property
    def is_json(self) -> bool:
        return self.base in _JSON_TYPES

    @property
    def is_enum(self) -> bool:
        return self.base == "enum"

    @property
    def needs_expression_default(self) -> bool:
        """MySQL: literal defaults must be wrapped as `(literal)`."""
        return self.base in _MYSQL_EXPRESSION_DEFAULT_TYPES

    @property
    def precision(self) -> int | None:
        return int(self.args[0]) if self.args and self.args[0].isdigit() else None

    @property
    def scale(self) -> int | None:
        return int(self.args[1]) if len(self.args) > 1 and self.args[1].isdigit() else None


def normalize_type(text: str) -> str:
    """
    Canonical spelling of a type: trimmed, single spaces, no space around commas
    or parentheses, lowercase outside quoted enum values.
    """
    out: list[str] = []
    for chunk, quoted in _split_quoted(text.strip()):
        if quoted:
            out.append(chunk)
            continue
        chunk = _WHITESPACE.sub(" ", chunk.lower())
        chunk = _SPACE_BEFORE_PAREN.sub("(", chunk)
        chunk = _SPACE_AFTER_OPEN.sub("(", chunk)
        chunk = _SPACE_BEFORE_CLOSE.sub(")", chunk)
        chunk = _SPACE_AROUND_COMMA.sub(",", chunk)
        out.append(chunk)
    return "".join(out).strip()


def parse_enum_values(type_text: str) -> tuple[str, ...]:
    """Values of an inline enum type, e.g. "enum('a','b')" -> ('a', 'b')."""
    parsed = ColumnType.parse(type_text)
    if not parsed.is_enum:
        raise ValueError(f"Not an enum type: {type_text!r}")
    return tuple(_unquote(arg) for arg in parsed.args)


def render_enum_values(values: tuple[str, ...], separator: str = ",") -> str:
    """Quote and join enum values, doubling embedded quotes."""
    return separator.join("'" + value.replace("'", "''") + "'" for value in values)


# ---------- utilities ----------


def _split_quoted(text: str) -> list[tuple[str, bool]]:
    """Split into (chunk, is_quoted) runs; quoted runs keep their quotes."""
    parts: list[tuple[str, bool]] = []
    buf: list[str] = []
    in_quote = False
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "'":
            if in_quote and i + 1 < len(text) and text[i + 1] == "'":
                buf.append("''")
                i += 2
                continue
            if not in_quote:
                if buf:
                    parts.append(("".join(buf), False))
                buf = ["'"]
                in_quote = True
            else:
                buf.append("'")
                parts.append(("".join(buf), True))
                buf = []
                in_quote = False
            i += 1
            continue
        buf.append(ch)
        i += 1
    if buf:
        parts.append(("".join(buf), in_quote))
    return parts


def _split_args(text: str) -> list[str]:
    args: list[str] = []
    current: list[str] = []
    for chunk, quoted in _split_quoted(text):
        if quoted:
            current.append(chunk)
            continue
        pieces = chunk.split(",")
        current.append(pieces[0])
        for piece in pieces[1:]:
            args.append("".join(current).strip())
            current = [piece]
    if current and "".join(current).strip():
        args.append("".join(current).strip())
    return args


def _unquote(text: str) -> str:
    if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
        return text[1:-1].replace("''", "'")
    return text
