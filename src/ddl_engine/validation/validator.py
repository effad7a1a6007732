"""
Validator core: run catalog rules over a catalog, plan rules over a plan.

Responsibilities
----------------
- Keep rules decoupled via simple Protocols (each rule receives only what it needs).
- Perform no I/O.
- Produce a ValidationReport (immutable) with a convenience .ok flag.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from src.ddl_engine.errors import UnsafePlanError
from src.ddl_engine.validation import catalog_rules, plan_rules
from src.ddl_engine.validation.diagnostics import Diagnostic, ValidationReport

if TYPE_CHECKING:
    from src.ddl_engine.catalog.catalog import Catalog
    from src.ddl_engine.plan.orderer import Plan

# ---------- rule protocols ----------


class CatalogRule(Protocol):
    """
    A rule over one whole catalog.

    Contract
    --------
    - Returns zero or more diagnostics; must not raise for normal invalid input.
    """

    code: str
    description: str

    def check(self, catalog: Catalog) -> list[Diagnostic]: ...


class PlanRule(Protocol):
    """
    A rule over an ordered plan and the catalog it moves towards.

    Contract
    --------
    - Receives the plan and the `from` catalog (the state the plan runs against).
    - Returns zero or more diagnostics.
    """

    code: str
    description: str

    def check(self, plan: Plan, current: Catalog) -> list[Diagnostic]: ...


# ---------- validators ----------


class CatalogValidator:
    """Run catalog rules in order and collect their findings."""

    def __init__(self, rules: Iterable[CatalogRule] | None = None) -> None:
        self._rules = tuple(rules) if rules is not None else catalog_rules.default_rule_set()

    @property
    def rules(self) -> tuple[CatalogRule, ...]:
        return self._rules

    def validate(self, catalog: Catalog) -> ValidationReport:
        diagnostics: list[Diagnostic] = []
        for rule in self._rules:
            diagnostics.extend(rule.check(catalog))
        return ValidationReport(diagnostics=tuple(diagnostics))


class PlanValidator:
    """
    Run plan rules; optionally refuse unsafe plans.

    With `strict=True`, warnings are promoted: `ensure_safe` raises
    UnsafePlanError when the report has any error or warning.
    """

    def __init__(self, rules: Iterable[PlanRule] | None = None, *, strict: bool = False) -> None:
        self._rules = tuple(rules) if rules is not None else plan_rules.default_rule_set()
        self.strict = strict

    @property
    def rules(self) -> tuple[PlanRule, ...]:
        return self._rules

    def validate(self, plan: Plan, current: Catalog) -> ValidationReport:
        diagnostics: list[Diagnostic] = []
        for rule in self._rules:
            diagnostics.extend(rule.check(plan, current))
        return ValidationReport(diagnostics=tuple(diagnostics))

    def ensure_safe(self, report: ValidationReport) -> None:
        """Raise UnsafePlanError when the report blocks execution."""
        blocking = report.errors + (report.warnings if self.strict else ())
        if blocking:
            lines = [d.describe() for d in blocking]
            raise UnsafePlanError(
                "Unsafe plan:\n  " + "\n  ".join(lines),
                entity_ids=[d.entity_key for d in blocking],
            )
