"""
Deterministic names for constraints and indexes declared without one.

Conventions:
- Verbs: build_*.
- Patterns follow what the engines generate themselves:
    primary key   <table>_pkey            (MySQL: PRIMARY)
    foreign key   <table>_<cols>_<table_to>_<cols_to>_fkey
    unique        <table>_<cols>_unique
    index         <table>_<cols>_index
    default       <table>_<column>_default (MSSQL default constraints)
- Names longer than the dialect limit are truncated with a stable hash suffix.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

from src.constants import MAX_IDENTIFIER_LENGTHS, MYSQL_PRIMARY_KEY_NAME
from src.enums import Dialect


def _short_hash(*parts: str) -> str:
    """
    Deterministic 8-char hex hash for disambiguation in truncated identifiers.
    Uses BLAKE2b. The input is joined with '|' to keep boundaries.
    """
    joined = "|".join(parts).encode("utf-8")
    return hashlib.blake2b(joined, digest_size=4).hexdigest()


def _truncate_with_hash(base: str, max_len: int) -> str:
    """
    Truncate a long identifier to `max_len`, appending a suffix of the form '_hhhhhhhh'.
    Guarantees the returned string length is <= `max_len` even for very small limits.
    """
    if len(base) <= max_len:
        return base

    digest = _short_hash(base)
    if max_len <= len(digest):
        return digest[:max_len]

    keep = max_len - 1 - len(digest)
    if keep <= 0:
        return base[: max_len - len(digest)] + digest
    return f"{base[:keep]}_{digest}"


def _bounded(dialect: Dialect, *parts: str) -> str:
    base = "_".join(part for part in parts if part)
    return _truncate_with_hash(base, MAX_IDENTIFIER_LENGTHS[Dialect(dialect)])


def build_primary_key_name(dialect: Dialect, table_name: str) -> str:
    """MySQL always names the primary key PRIMARY; other engines use <table>_pkey."""
    if Dialect(dialect) in (Dialect.MYSQL, Dialect.SINGLESTORE):
        return MYSQL_PRIMARY_KEY_NAME
    return _bounded(dialect, table_name, "pkey")


def build_foreign_key_name(
    dialect: Dialect,
    table_name: str,
    columns: Sequence[str],
    table_to: str,
    columns_to: Sequence[str],
) -> str:
    if not columns or not columns_to:
        raise ValueError("Cannot build foreign key name with no columns.")
    return _bounded(dialect, table_name, "_".join(columns), table_to, "_".join(columns_to), "fkey")


def build_unique_name(dialect: Dialect, table_name: str, columns: Sequence[str]) -> str:
    if not columns:
        raise ValueError("Cannot build unique constraint name with no columns.")
    return _bounded(dialect, table_name, "_".join(columns), "unique")


def build_index_name(dialect: Dialect, table_name: str, columns: Sequence[str]) -> str:
    if not columns:
        raise ValueError("Cannot build index name with no columns.")
    return _bounded(dialect, table_name, "_".join(columns), "index")


def build_default_constraint_name(dialect: Dialect, table_name: str, column_name: str) -> str:
    return _bounded(dialect, table_name, column_name, "default")
