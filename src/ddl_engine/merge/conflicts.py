"""
Three-way conflict detection.

Given a parent catalog and two children evolved from it independently, decide
whether the two deltas commute.

Rules
-----
Both deltas are diffed from the parent and ordered. Walking the left delta in
order, the first match wins:

1) same resource on both sides (statements grouped per `resource_key`):
   - identical statement groups            -> no conflict (edits converge)
   - both sides end up removing it         -> no conflict
   - exactly one side removes it           -> SAME_RESOURCE_OPPOSING_OPS
   - both change it differently            -> SAME_RESOURCE_DIVERGENT_ALTER
2) structural: a statement on one side invalidates an id (drop, rename, move)
   that a statement on the other side requires, directly or through
   containment (a table's children, a schema's objects)
                                           -> STRUCTURAL_DEPENDENCY
   Two removals never conflict structurally.

Conflicts are values: `detect_conflict` returns one or None and never raises
for a conflicting pair.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.catalog.entities import EntityId
from src.ddl_engine.diff.differ import Differ
from src.ddl_engine.diff.resolver import RenameResolver
from src.ddl_engine.plan.orderer import DependencyOrderer
from src.ddl_engine.plan.statements import Statement


class ConflictReason(StrEnum):
    SAME_RESOURCE_OPPOSING_OPS = "same-resource-opposing-ops"
    SAME_RESOURCE_DIVERGENT_ALTER = "same-resource-divergent-alter"
    STRUCTURAL_DEPENDENCY = "structural-dependency"


@dataclass(frozen=True)
class Conflict:
    """Why two branches cannot be merged; `left_statement` comes from the first child."""

    left_statement: Statement
    right_statement: Statement
    reason: ConflictReason
    message: str


def detect_conflict(
    parent: Catalog,
    child1: Catalog,
    child2: Catalog,
    *,
    differ: Differ | None = None,
    orderer: DependencyOrderer | None = None,
    resolver1: RenameResolver | None = None,
    resolver2: RenameResolver | None = None,
) -> Conflict | None:
    differ = differ or Differ()
    orderer = orderer or DependencyOrderer()
    delta1 = orderer.order(differ.diff(parent, child1, resolver1))
    delta2 = orderer.order(differ.diff(parent, child2, resolver2))
    return find_conflict(delta1, delta2)


def find_conflict(delta1: Sequence[Statement], delta2: Sequence[Statement]) -> Conflict | None:
    """First conflict between two ordered deltas taken from the same parent."""
    groups1 = _group(delta1)
    groups2 = _group(delta2)

    for left in delta1:
        key = left.resource_key
        if key in groups2:
            conflict = _same_resource(key, groups1[key], groups2[key])
            if conflict is not None:
                return conflict
        for right in delta2:
            conflict = _structural(left, right)
            if conflict is not None:
                return conflict
    return None


# ---------- rules ----------


def _group(delta: Sequence[Statement]) -> dict[EntityId, list[Statement]]:
    groups: dict[EntityId, list[Statement]] = {}
    for statement in delta:
        groups.setdefault(statement.resource_key, []).append(statement)
    return groups


def _same_resource(key: EntityId, left: list[Statement], right: list[Statement]) -> Conflict | None:
    if left == right:
        return None
    left_removes = left[-1].removes
    right_removes = right[-1].removes
    if left_removes and right_removes:
        return None
    if left_removes != right_removes:
        remover, keeper = (left[-1], right[-1]) if left_removes else (right[-1], left[-1])
        return Conflict(
            left_statement=left[-1],
            right_statement=right[-1],
            reason=ConflictReason.SAME_RESOURCE_OPPOSING_OPS,
            message=(
                f"{key} is removed on one branch ({remover.describe()}) "
                f"and kept on the other ({keeper.describe()})"
            ),
        )
    return Conflict(
        left_statement=left[-1],
        right_statement=right[-1],
        reason=ConflictReason.SAME_RESOURCE_DIVERGENT_ALTER,
        message=f"{key} is changed differently on both branches",
    )


def _structural(left: Statement, right: Statement) -> Conflict | None:
    if left.removes and right.removes:
        return None
    if left.resource_key == right.resource_key:
        return None
    for invalidator, dependent in ((left, right), (right, left)):
        hit = _invalidated_requirement(invalidator, dependent)
        if hit is not None:
            return Conflict(
                left_statement=left,
                right_statement=right,
                reason=ConflictReason.STRUCTURAL_DEPENDENCY,
                message=(
                    f"{invalidator.describe()} invalidates {hit}, "
                    f"required by {dependent.describe()}"
                ),
            )
    return None


def _invalidated_requirement(invalidator: Statement, dependent: Statement) -> EntityId | None:
    for gone in invalidator.invalidates:
        for needed in dependent.requires:
            if needed == gone or needed.is_within(gone):
                return needed
    return None
