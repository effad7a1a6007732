from src.ddl_engine.diff.resolver import PresetRenameResolver
from src.ddl_engine.plan.planner import Planner
from src.ddl_engine.plan.statements import AddColumn, CreateTable, RenameColumn
from src.ddl_engine.validation.validator import PlanValidator


class RecordingRule:
    code = "RECORDING"
    description = "Records what it was given."

    def __init__(self):
        self.seen = []

    def check(self, plan, current):
        self.seen.append((plan, current))
        return []


def test_plan_is_ordered_and_validated(make_catalog, make_table):
    source = make_catalog(*make_table("users", ("id", "integer")))
    target = make_catalog(
        *make_table("users", ("id", "integer"), ("age", "integer", {"not_null": True})),
        *make_table("orders", ("id", "integer")),
    )

    outcome = Planner().plan(source, target)

    assert [type(s) for s in outcome.plan] == [CreateTable, AddColumn]
    [warning] = outcome.report.warnings
    assert warning.code == "NOT_NULL_COLUMN_WITHOUT_DEFAULT"
    assert warning.entity_key == "column:public.users.age"


def test_rules_see_the_ordered_plan_and_source(make_catalog, make_table):
    rule = RecordingRule()
    source = make_catalog(*make_table("t", ("a", "integer")))
    target = make_catalog(*make_table("t", ("b", "integer")))

    outcome = Planner(validator=PlanValidator([rule])).plan(
        source, target, PresetRenameResolver(["public.t.a->public.t.b"])
    )

    assert rule.seen == [(outcome.plan, source)]
    assert [type(s) for s in outcome.plan] == [RenameColumn]
    assert outcome.report.ok


def test_identical_catalogs_give_empty_plan(make_catalog, make_table):
    catalog = make_catalog(*make_table("t", ("a", "integer")))

    outcome = Planner().plan(catalog, catalog)

    assert outcome.plan.is_empty
    assert outcome.report.diagnostics == ()
