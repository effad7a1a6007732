"""
Push Runner

Purpose
-------
Apply an ordered plan to a live database through the `Database` port.

Design
------
- The whole plan is rendered before anything runs, so a statement the
  dialect cannot express (UnsupportedConstructError) stops the push before
  the first SQL string is sent.
- Respects ExecutionPolicy:
  - dry_run=True: nothing is executed; every statement is reported SKIPPED
    with its SQL in the message.
  - stop_on_first_error=True: after the first FAILED result, remaining
    statements are marked SKIPPED with a short-circuit message.
- Driver exceptions become FAILED results; they are not re-raised.
- A statement that fails after some of its SQL ran is reported as partially
  applied, and the renderer's cleanup SQL for it is run.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.ddl_engine.execute.ports import (
    ActionResult,
    ApplyReport,
    ApplyStatus,
    Database,
    ExecutionPolicy,
)
from src.ddl_engine.plan.statements import Statement
from src.ddl_engine.render.base import RenderedStatement, StatementRenderer
from src.logger import LOGGER


class PushRunner:
    """Execute every statement of a plan, in order, against one database."""

    def __init__(self, database: Database, renderer: StatementRenderer) -> None:
        self._database = database
        self._renderer = renderer

    def apply(self, statements: Iterable[Statement], *, policy: ExecutionPolicy) -> ApplyReport:
        rendered = self._renderer.render_plan(statements)
        results: list[ActionResult] = []

        for position, item in enumerate(rendered):
            result = self._apply_one(item, policy=policy)
            results.append(result)
            if result.status == ApplyStatus.FAILED and policy.stop_on_first_error:
                results.extend(self._skip_remaining(rendered[position + 1 :]))
                break

        return ApplyReport(results=tuple(results))

    # ---------- helpers ----------

    def _apply_one(self, item: RenderedStatement, *, policy: ExecutionPolicy) -> ActionResult:
        statement = item.statement
        label = statement.describe()

        if policy.dry_run:
            return ActionResult(
                statement=statement,
                status=ApplyStatus.SKIPPED,
                message=f"(dry-run) {label}: {' '.join(item.sql)}",
                sql=item.sql,
            )

        ran = 0
        try:
            for sql in item.sql:
                self._database.query(sql)
                ran += 1
        except Exception as error:
            message = f"Failed {label}: {type(error).__name__}: {error}"
            if ran:
                message += f" (partially applied: {ran} of {len(item.sql)} SQL strings ran"
                message += f"{self._run_cleanup(item)})"
            LOGGER.error(message)
            return ActionResult(
                statement=statement,
                status=ApplyStatus.FAILED,
                message=message,
                sql=item.sql,
            )

        LOGGER.info(f"Applied {label}")
        return ActionResult(
            statement=statement, status=ApplyStatus.OK, message=f"Applied {label}", sql=item.sql
        )

    def _run_cleanup(self, item: RenderedStatement) -> str:
        """Run the statement's cleanup SQL; returns a note for the failure message."""
        if not item.cleanup:
            return ""
        try:
            for sql in item.cleanup:
                self._database.query(sql)
        except Exception as error:
            LOGGER.error(f"Cleanup after {item.statement.describe()} failed: {error}")
            return f"; cleanup failed: {type(error).__name__}: {error}"
        return "; cleanup ran"

    @staticmethod
    def _skip_remaining(items: list[RenderedStatement]) -> list[ActionResult]:
        """SKIPPED stubs for the statements left after a failure when short-circuiting."""
        return [
            ActionResult(
                statement=item.statement,
                status=ApplyStatus.SKIPPED,
                message="Skipped due to previous failure (stop_on_first_error)",
                sql=item.sql,
            )
            for item in items
        ]
