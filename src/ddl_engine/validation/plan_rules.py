"""
Plan rules: diagnostics over an ordered plan.

These never block by themselves; they report. `PlanValidator.ensure_safe`
decides (errors always block, warnings block in strict mode).
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from src.ddl_engine.catalog.entities import Column
from src.ddl_engine.plan.statements import AddColumn, DropColumn, DropTable, RecreateColumn
from src.ddl_engine.validation.diagnostics import Diagnostic, DiagnosticLevel

if TYPE_CHECKING:
    from src.ddl_engine.catalog.catalog import Catalog
    from src.ddl_engine.plan.orderer import Plan


class PlanRuleCode(StrEnum):
    NOT_NULL_COLUMN_WITHOUT_DEFAULT = "NOT_NULL_COLUMN_WITHOUT_DEFAULT"
    DESTRUCTIVE_CHANGE = "DESTRUCTIVE_CHANGE"


def _needs_value(column: Column) -> bool:
    return (
        column.not_null
        and column.default is None
        and column.generated is None
        and not column.auto_increment
    )


class NotNullColumnWithoutDefaultRule:
    """A NOT NULL column without default cannot be added to a table holding rows."""

    code = PlanRuleCode.NOT_NULL_COLUMN_WITHOUT_DEFAULT.value
    description = "Columns added to existing tables need a default when NOT NULL."

    def check(self, plan: Plan, current: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for statement in plan:
            if isinstance(statement, AddColumn):
                column = statement.column
            elif isinstance(statement, RecreateColumn):
                column = statement.after
            else:
                continue
            if not _needs_value(column):
                continue
            findings.append(
                Diagnostic(
                    entity_key=str(column.id),
                    level=DiagnosticLevel.WARNING,
                    code=self.code,
                    message=(
                        f"Adding NOT NULL column {column.name!r} without a default "
                        f"fails if {column.table!r} has rows"
                    ),
                    hint="Add a default, make the column nullable, or backfill first.",
                )
            )
        return findings


class DestructiveChangeRule:
    """Dropping tables or columns, or rebuilding a column, loses data."""

    code = PlanRuleCode.DESTRUCTIVE_CHANGE.value
    description = "Statements that delete stored data."

    def check(self, plan: Plan, current: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for statement in plan:
            if isinstance(statement, DropTable):
                message = f"Drops table {statement.table.name!r} and all its rows"
            elif isinstance(statement, DropColumn):
                message = f"Drops column {statement.column.table}.{statement.column.name}"
            elif isinstance(statement, RecreateColumn):
                message = (
                    f"Recreates column {statement.after.table}.{statement.after.name}; "
                    "existing values are lost"
                )
            else:
                continue
            findings.append(
                Diagnostic(
                    entity_key=str(statement.resource_key),
                    level=DiagnosticLevel.WARNING,
                    code=self.code,
                    message=message,
                )
            )
        return findings


def default_rule_set() -> tuple[object, ...]:
    """Rules in evaluation order."""
    return (NotNullColumnWithoutDefaultRule(), DestructiveChangeRule())
