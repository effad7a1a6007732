"""
Rename resolution port and its in-process implementations.

The differ offers every group of unmatched entities (same kind; catalog-wide
for schemas, enums, tables and views, per table for columns) as a list of
candidate pairs. The resolver confirms at most one pair per call; the differ
removes the confirmed pair and asks again until the resolver answers None or
the group is exhausted.

Contract
--------
- The answer must be one of the offered candidates (or None).
- Answers are deterministic for the same input.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from src.ddl_engine.catalog.entities import EntityId

RENAME_SEPARATOR = "->"


@dataclass(frozen=True, slots=True)
class RenameCandidate:
    """A possible rename: `from_id` in the old catalog became `to_id`."""

    from_id: EntityId
    to_id: EntityId

    @property
    def label(self) -> str:
        return f"{self.from_id.label}{RENAME_SEPARATOR}{self.to_id.label}"


class RenameResolver(Protocol):
    def resolve(self, candidates: Sequence[RenameCandidate]) -> RenameCandidate | None: ...


class NoRenames:
    """Never confirms a rename: every unmatched entity is a create or a drop."""

    def resolve(self, candidates: Sequence[RenameCandidate]) -> RenameCandidate | None:
        return None


class PresetRenameResolver:
    """
    Confirms renames from a preset list of "old->new" labels.

    Labels are the dotted non-empty parts of an entity id, e.g.
    "public.users->public.accounts" or "users.name->users.full_name".

    Matching does not depend on earlier calls, so one resolver can serve any
    number of diffs. Confirmed labels are only recorded for `unconsumed()`.
    """

    def __init__(self, renames: Iterable[str] = ()) -> None:
        self._expected: tuple[str, ...] = tuple(_normalize(rename) for rename in renames)
        self._consumed: set[str] = set()

    @property
    def expected(self) -> tuple[str, ...]:
        return self._expected

    def resolve(self, candidates: Sequence[RenameCandidate]) -> RenameCandidate | None:
        for candidate in candidates:
            label = candidate.label
            if label in self._expected:
                self._consumed.add(label)
                return candidate
        return None

    def unconsumed(self) -> tuple[str, ...]:
        return tuple(rename for rename in self._expected if rename not in self._consumed)

    def assert_all_consumed(self) -> None:
        missing = self.unconsumed()
        if missing:
            raise AssertionError(f"Expected renames were never offered: {list(missing)}")


def _normalize(rename: str) -> str:
    old, separator, new = rename.partition(RENAME_SEPARATOR)
    if not separator or not old.strip() or not new.strip():
        raise ValueError(f"Invalid rename {rename!r}; expected 'old->new'")
    return f"{old.strip()}{RENAME_SEPARATOR}{new.strip()}"
