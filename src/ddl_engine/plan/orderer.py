"""
Dependency Orderer

Purpose
-------
Convert the differ's flat statement list into an execution-ready,
deterministic sequence. Statements are bucketed into phases:

   1) schema creates and renames
   2) enum creates, renames, moves, alters and rebuilds
   3) table creates (SQLite: referenced tables first, FKs are inline)
   4) view drops and renames
   5) table renames and moves, then column renames
   6) foreign key drops, then unique/check/index drops, then primary key drops
   7) table rebuilds (SQLite)
   8) column adds, alters and rebuilds
   9) primary key adds, then unique/check adds, then foreign key adds
  10) index creates
  11) column drops, then table drops (SQLite: referencing tables first)
  12) view creates and alters
  13) enum drops, then schema drops

Notes
-----
- Sorting is stable: inside a phase the differ's order is kept (`to`
  declaration order for creates, `from` order for drops).
- Unexpected statement types are appended last for visibility.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType

from src.ddl_engine.catalog.entities import EntityId
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AddPrimaryKey,
    AddUnique,
    AlterColumn,
    AlterEnum,
    AlterView,
    CreateCheck,
    CreateEnum,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropEnum,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropSchema,
    DropTable,
    DropUnique,
    DropView,
    MoveEnum,
    MoveTable,
    RecreateColumn,
    RecreateEnum,
    RecreateTable,
    RenameColumn,
    RenameEnum,
    RenameSchema,
    RenameTable,
    RenameView,
    Statement,
)

PHASES: MappingProxyType[type[Statement], int] = MappingProxyType(
    {
        CreateSchema: 10,
        RenameSchema: 20,
        CreateEnum: 30,
        RenameEnum: 31,
        MoveEnum: 32,
        AlterEnum: 33,
        RecreateEnum: 34,
        CreateTable: 40,
        DropView: 50,
        RenameView: 51,
        RenameTable: 60,
        MoveTable: 61,
        RenameColumn: 62,
        DropForeignKey: 70,
        DropUnique: 80,
        DropCheck: 80,
        DropIndex: 80,
        DropPrimaryKey: 90,
        RecreateTable: 100,
        AddColumn: 110,
        AlterColumn: 110,
        RecreateColumn: 110,
        AddPrimaryKey: 120,
        AddUnique: 130,
        CreateCheck: 130,
        AddForeignKey: 140,
        CreateIndex: 150,
        DropColumn: 160,
        DropTable: 170,
        AlterView: 180,
        CreateView: 180,
        DropEnum: 190,
        DropSchema: 200,
    }
)
UNKNOWN_PHASE = 1_000


@dataclass(frozen=True)
class Plan:
    """An ordered, execution-ready sequence of statements."""

    statements: tuple[Statement, ...] = ()

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)

    def __len__(self) -> int:
        return len(self.statements)

    @property
    def is_empty(self) -> bool:
        return not self.statements


class DependencyOrderer:
    """
    Order statements by phase, keeping input order within a phase.

    Where foreign keys are inline (SQLite), CreateTable statements are
    additionally ordered so a referenced table is created before its
    referrers, and DropTable statements so referrers are dropped first.
    """

    def order(self, statements: Iterable[Statement]) -> list[Statement]:
        items = list(statements)
        ordered = sorted(items, key=lambda s: PHASES.get(type(s), UNKNOWN_PHASE))
        ordered = _reorder(ordered, CreateTable, _referenced_first)
        ordered = _reorder(ordered, DropTable, _referencing_first)
        return ordered

    def build(self, statements: Iterable[Statement]) -> Plan:
        return Plan(statements=tuple(self.order(statements)))


_TableStatement = CreateTable | DropTable


def _reorder(
    ordered: list[Statement],
    kind: type[_TableStatement],
    arrange: Callable[[list[_TableStatement]], list[_TableStatement]],
) -> list[Statement]:
    """Replace the `kind` statements in place with their arranged order."""
    selected = [s for s in ordered if isinstance(s, kind)]
    if not any(s.foreign_keys for s in selected):
        return ordered
    arranged = iter(arrange(selected))
    return [next(arranged) if isinstance(s, kind) else s for s in ordered]


def _referenced_first(creates: list[_TableStatement]) -> list[_TableStatement]:
    created_ids = {s.table.id for s in creates}

    def waits_for(statement: _TableStatement) -> set[EntityId]:
        return {
            fk.target_id
            for fk in statement.foreign_keys
            if fk.target_id in created_ids and fk.target_id != statement.table.id
        }

    return _stable_topological(creates, waits_for)


def _referencing_first(drops: list[_TableStatement]) -> list[_TableStatement]:
    referrers: dict[EntityId, set[EntityId]] = {s.table.id: set() for s in drops}
    for statement in drops:
        for fk in statement.foreign_keys:
            if fk.target_id in referrers and fk.target_id != statement.table.id:
                referrers[fk.target_id].add(statement.table.id)
    return _stable_topological(drops, lambda s: referrers[s.table.id])


def _stable_topological(
    statements: list[_TableStatement],
    waits_for: Callable[[_TableStatement], set[EntityId]],
) -> list[_TableStatement]:
    """
    Place each statement once every table it waits for is placed, earliest
    input first. Cycles cannot be satisfied and keep their input order.
    """
    pending = list(statements)
    placed: set[EntityId] = set()
    result: list[_TableStatement] = []
    while pending:
        for position, statement in enumerate(pending):
            if waits_for(statement) <= placed:
                break
        else:
            position = 0
        statement = pending.pop(position)
        placed.add(statement.table.id)
        result.append(statement)
    return result
