import pytest

from src.ddl_engine.catalog.builder import build_catalog
from src.ddl_engine.catalog.entities import Column, Table
from src.ddl_engine.diff.differ import Differ
from src.ddl_engine.plan.orderer import DependencyOrderer
from src.enums import Dialect


@pytest.fixture
def make_catalog():
    """Factory: make_catalog(*entities, dialect=..., snapshot_id=..., prev_ids=...)."""

    def _make(*entities, dialect=Dialect.POSTGRES, snapshot_id="", prev_ids=()):
        return build_catalog(entities, dialect=dialect, snapshot_id=snapshot_id, prev_ids=prev_ids)

    return _make


@pytest.fixture
def make_table():
    """Factory: make_table("users", ("id", "int"), ("name", "text", {"not_null": True}))."""

    def _make(name, *columns, schema=""):
        entities = [Table(name=name, schema=schema)]
        for definition in columns:
            column_name, column_type, *rest = definition
            options = rest[0] if rest else {}
            entities.append(
                Column(table=name, name=column_name, type=column_type, schema=schema, **options)
            )
        return entities

    return _make


@pytest.fixture
def plan_between():
    """Factory: ordered statements moving `source` to `target`."""

    def _plan(source, target, resolver=None):
        return DependencyOrderer().order(Differ().diff(source, target, resolver))

    return _plan
