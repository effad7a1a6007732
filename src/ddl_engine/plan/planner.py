"""
Planner: diff two catalogs, order the result and validate it.

The outcome carries both the plan and the plan diagnostics; callers decide
whether to refuse it (see PlanValidator.ensure_safe).
"""

from __future__ import annotations

from dataclasses import dataclass

from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.diff.differ import Differ
from src.ddl_engine.diff.resolver import RenameResolver
from src.ddl_engine.plan.orderer import DependencyOrderer, Plan
from src.ddl_engine.validation.diagnostics import ValidationReport
from src.ddl_engine.validation.validator import PlanValidator


@dataclass(frozen=True)
class PlanOutcome:
    plan: Plan
    report: ValidationReport


class Planner:
    """Compose Differ -> DependencyOrderer -> PlanValidator."""

    def __init__(
        self,
        differ: Differ | None = None,
        orderer: DependencyOrderer | None = None,
        validator: PlanValidator | None = None,
    ) -> None:
        self.differ = differ or Differ()
        self.orderer = orderer or DependencyOrderer()
        self.validator = validator or PlanValidator()

    def plan(
        self, source: Catalog, target: Catalog, resolver: RenameResolver | None = None
    ) -> PlanOutcome:
        statements = self.differ.diff(source, target, resolver)
        plan = self.orderer.build(statements)
        report = self.validator.validate(plan, source)
        return PlanOutcome(plan=plan, report=report)
