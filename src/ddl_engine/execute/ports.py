"""
Execution ports and result types.

- Database: protocol for anything that can run one SQL string (a DB-API
  cursor wrapper, a fake in tests, ...)
- ExecutionPolicy: toggles for dry-run and error handling
- ActionResult / ApplyReport: structured outcomes to log or surface upstream
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from src.ddl_engine.plan.statements import Statement


class Database(Protocol):
    """Runs a single SQL statement; raises on failure."""

    def query(self, sql: str) -> Any: ...


class ApplyStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"  # dry-run or short-circuited after a failure


@dataclass(frozen=True)
class ExecutionPolicy:
    """Controls how the runner behaves."""

    dry_run: bool = False
    stop_on_first_error: bool = True


@dataclass(frozen=True)
class ActionResult:
    """Outcome for a single statement."""

    statement: Statement
    status: ApplyStatus
    message: str  # one line; includes the rendered SQL in dry-run
    sql: tuple[str, ...] = ()


@dataclass(frozen=True)
class ApplyReport:
    """Outcome for applying a whole plan."""

    results: tuple[ActionResult, ...]

    @property
    def ok(self) -> bool:
        return all(result.status != ApplyStatus.FAILED for result in self.results)

    @property
    def failures(self) -> tuple[ActionResult, ...]:
        return tuple(r for r in self.results if r.status == ApplyStatus.FAILED)
