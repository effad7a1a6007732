"""
Engine: high-level entry point for the DDL engine.

Responsibilities
----------------
- Wire default components (differ, orderer, plan validator, renderer).
- Expose the workflows callers need:
    - plan(source, target)          -> PlanOutcome (statements + diagnostics)
    - generate(source, target)      -> rendered SQL, refused when unsafe
    - push(database, source, target) -> ApplyReport
    - check_merge(parent, a, b)     -> Conflict | None
    - check_snapshots(directory)    -> NonCommutativityReport

Notes:
-----
- No SQL here; rendering is delegated to the dialect renderer.
- Defaults are provided, but everything can be overridden for testing or custom behaviour.
"""

from __future__ import annotations

from pathlib import Path

from src import settings
from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.diff.differ import Differ
from src.ddl_engine.diff.resolver import PresetRenameResolver, RenameResolver
from src.ddl_engine.execute.ports import ApplyReport, Database, ExecutionPolicy
from src.ddl_engine.execute.runner import PushRunner
from src.ddl_engine.io.config import load_project_config
from src.ddl_engine.io.snapshot import load_snapshots
from src.ddl_engine.merge.conflicts import Conflict, detect_conflict
from src.ddl_engine.merge.graph import NonCommutativityReport, detect_non_commutative
from src.ddl_engine.plan.orderer import DependencyOrderer
from src.ddl_engine.plan.planner import PlanOutcome, Planner
from src.ddl_engine.render.base import RenderedStatement, StatementRenderer
from src.ddl_engine.render.registry import get_renderer
from src.ddl_engine.validation.validator import PlanValidator
from src.enums import Dialect
from src.logger import LOGGER


class Engine:
    """
    High-level entry point for the DDL engine.

    You can:
      - pass your own components (for custom behaviour), or
      - rely on defaults (simple, batteries included).
    """

    def __init__(
        self,
        dialect: Dialect | str = settings.DIALECT,
        *,
        differ: Differ | None = None,
        orderer: DependencyOrderer | None = None,
        validator: PlanValidator | None = None,
        renderer: StatementRenderer | None = None,
        resolver: RenameResolver | None = None,
        strict: bool = settings.STRICT_PLAN,
        snapshot_dir: str = settings.SNAPSHOT_DIR,
        stop_on_first_error: bool = True,
    ) -> None:
        self.dialect = Dialect(dialect)

        # Wire defaults if not supplied
        self.differ = differ or Differ()
        self.orderer = orderer or DependencyOrderer()
        self.validator = validator or PlanValidator(strict=strict)
        self.renderer = renderer or get_renderer(self.dialect)
        self.resolver = resolver
        self.snapshot_dir = snapshot_dir
        self.stop_on_first_error = stop_on_first_error

        self.planner = Planner(differ=self.differ, orderer=self.orderer, validator=self.validator)

    @classmethod
    def from_config(cls, path: str | Path) -> Engine:
        """Build an engine from a project YAML file (see io/config.py)."""
        config = load_project_config(path)
        resolver = PresetRenameResolver(config.renames) if config.renames else None
        return cls(
            config.dialect,
            resolver=resolver,
            strict=config.strict,
            snapshot_dir=config.snapshots,
            stop_on_first_error=config.stop_on_first_error,
        )

    # ---------- planning ----------

    def plan(
        self, source: Catalog, target: Catalog, resolver: RenameResolver | None = None
    ) -> PlanOutcome:
        self._check_dialect(target)
        outcome = self.planner.plan(source, target, resolver or self.resolver)
        LOGGER.info(
            f"Planned {len(outcome.plan)} statement(s) for {self.dialect}: "
            f"{len(outcome.report.errors)} error(s), {len(outcome.report.warnings)} warning(s)"
        )
        return outcome

    def generate(
        self, source: Catalog, target: Catalog, resolver: RenameResolver | None = None
    ) -> list[RenderedStatement]:
        """Plan, refuse unsafe plans, and render the SQL."""
        outcome = self.plan(source, target, resolver)
        self.validator.ensure_safe(outcome.report)
        return self.renderer.render_plan(outcome.plan)

    def push(
        self,
        database: Database,
        source: Catalog,
        target: Catalog,
        resolver: RenameResolver | None = None,
        policy: ExecutionPolicy | None = None,
    ) -> ApplyReport:
        outcome = self.plan(source, target, resolver)
        self.validator.ensure_safe(outcome.report)
        policy = policy or ExecutionPolicy(stop_on_first_error=self.stop_on_first_error)
        report = PushRunner(database, self.renderer).apply(outcome.plan, policy=policy)
        LOGGER.info(
            f"Push finished: {len(report.results)} result(s), {len(report.failures)} failure(s)"
        )
        return report

    # ---------- merge analysis ----------

    def check_merge(
        self,
        parent: Catalog,
        child1: Catalog,
        child2: Catalog,
        resolver: RenameResolver | None = None,
    ) -> Conflict | None:
        """Both branches are diffed from `parent` with the same rename answers."""
        resolver = resolver or self.resolver
        return detect_conflict(
            parent,
            child1,
            child2,
            differ=self.differ,
            orderer=self.orderer,
            resolver1=resolver,
            resolver2=resolver,
        )

    def check_snapshots(self, directory: str | Path | None = None) -> NonCommutativityReport:
        files = load_snapshots(directory or self.snapshot_dir)
        return detect_non_commutative(
            [f.catalog for f in files],
            paths={f.catalog.id: str(f.path) for f in files},
            differ=self.differ,
            orderer=self.orderer,
        )

    # ---------- helpers ----------

    def _check_dialect(self, catalog: Catalog) -> None:
        if catalog.dialect is not self.dialect:
            raise ValueError(f"Engine is configured for {self.dialect}, got a {catalog.dialect} catalog")
