import pytest

from src.ddl_engine.catalog.entities import (
    Check,
    Enum,
    ForeignKey,
    Index,
    IndexColumn,
    PrimaryKey,
    Schema,
    Table,
    View,
    table_id,
)
from src.ddl_engine.diff.differ import Differ, enum_additions
from src.ddl_engine.diff.resolver import PresetRenameResolver, RenameCandidate
from src.ddl_engine.errors import AmbiguousNameError, ResolverContractViolation
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddPrimaryKey,
    AlterEnum,
    AlterView,
    CreateCheck,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropForeignKey,
    DropPrimaryKey,
    DropTable,
    DropView,
    MoveTable,
    RecreateEnum,
    RecreateTable,
    RenameColumn,
    RenameEnum,
    RenameSchema,
    RenameTable,
    RenameView,
)
from src.enums import Dialect

# ---------- helpers ----------


def _diff(source, target, *renames):
    resolver = PresetRenameResolver(renames) if renames else None
    return Differ().diff(source, target, resolver)


class ScriptedResolver:
    """Answers with the given callables, one per call."""

    def __init__(self, *answers):
        self.answers = list(answers)

    def resolve(self, candidates):
        return self.answers.pop(0)(candidates) if self.answers else None


# ---------- renames ----------


def test_column_rename(make_catalog, make_table):
    source = make_catalog(*make_table("users", ("id", "integer"), ("name", "text")))
    target = make_catalog(*make_table("users", ("id", "integer"), ("full_name", "text")))

    statements = _diff(source, target, "public.users.name->public.users.full_name")

    assert statements == [
        RenameColumn(schema="public", table="users", from_name="name", to_name="full_name")
    ]


def test_without_confirmation_a_rename_is_create_plus_drop(make_catalog, make_table):
    source = make_catalog(*make_table("users", ("id", "integer")))
    target = make_catalog(*make_table("accounts", ("id", "integer")))

    statements = _diff(source, target)

    assert [type(s) for s in statements] == [CreateTable, DropTable]


def test_table_and_column_rename_together(make_catalog, make_table):
    source = make_catalog(*make_table("users", ("name", "text")))
    target = make_catalog(*make_table("accounts", ("full_name", "text")))

    statements = _diff(
        source,
        target,
        "public.users->public.accounts",
        "public.users.name->public.accounts.full_name",
    )

    assert statements == [
        RenameTable(schema="public", from_name="users", to_name="accounts"),
        RenameColumn(schema="public", table="accounts", from_name="name", to_name="full_name"),
    ]


def test_renamed_table_keeps_diffing_its_columns(make_catalog, make_table):
    source = make_catalog(*make_table("users", ("id", "integer")))
    target = make_catalog(*make_table("accounts", ("id", "integer"), ("email", "text")))

    statements = _diff(source, target, "public.users->public.accounts")

    assert [type(s) for s in statements] == [RenameTable, AddColumn]
    assert statements[1].column.table == "accounts"


def test_table_moved_to_another_schema(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer")))
    target = make_catalog(Schema("app"), *make_table("t", ("a", "integer"), schema="app"))

    statements = _diff(source, target, "public.t->app.t")

    assert statements == [
        MoveTable(name="t", from_schema="public", to_schema="app"),
        CreateSchema(name="app"),
    ]


def test_schema_rename_carries_its_tables(make_catalog, make_table):
    source = make_catalog(Schema("app"), *make_table("t", ("a", "integer"), schema="app"))
    target = make_catalog(Schema("data"), *make_table("t", ("a", "integer"), schema="data"))

    statements = _diff(source, target, "app->data")

    assert statements == [RenameSchema(from_name="app", to_name="data")]


def test_resolver_answer_outside_candidates_is_rejected(make_catalog, make_table):
    source = make_catalog(*make_table("a", ("id", "integer")))
    target = make_catalog(*make_table("b", ("id", "integer")))
    stray = RenameCandidate(table_id("public", "x"), table_id("public", "y"))

    with pytest.raises(ResolverContractViolation) as excinfo:
        Differ().diff(source, target, ScriptedResolver(lambda _: stray))

    assert excinfo.value.entity_ids == ("table:public.x", "table:public.y")


def test_two_renames_onto_one_target_are_rejected(make_catalog, make_table):
    source = make_catalog(*make_table("a", ("id", "integer")), *make_table("b", ("id", "integer")))
    target = make_catalog(*make_table("c", ("id", "integer")), *make_table("d", ("id", "integer")))
    resolver = ScriptedResolver(
        lambda candidates: candidates[0],
        lambda _: RenameCandidate(table_id("public", "b"), table_id("public", "c")),
    )

    with pytest.raises(AmbiguousNameError):
        Differ().diff(source, target, resolver)


def test_dialect_mismatch(make_catalog):
    with pytest.raises(ValueError, match="different dialects"):
        Differ().diff(make_catalog(), make_catalog(dialect=Dialect.MYSQL))


# ---------- enums ----------


def test_enum_values_appended_alter_in_place(make_catalog):
    source = make_catalog(Enum("mood", ("sad", "ok")))
    target = make_catalog(Enum("mood", ("sad", "meh", "ok", "happy")))

    [statement] = _diff(source, target)

    assert isinstance(statement, AlterEnum)
    assert statement.added == (("meh", "ok"), ("happy", None))


def test_enum_values_reordered_recreate_with_columns(make_catalog, make_table):
    source = make_catalog(Enum("mood", ("sad", "ok")), *make_table("t", ("m", "mood")))
    target = make_catalog(Enum("mood", ("ok", "sad")), *make_table("t", ("m", "mood")))

    [statement] = _diff(source, target)

    assert isinstance(statement, RecreateEnum)
    assert statement.after.values == ("ok", "sad")
    assert [c.name for c in statement.columns] == ["m"]


def test_enum_rename_retypes_columns(make_catalog, make_table):
    source = make_catalog(Enum("mood", ("a",)), *make_table("t", ("m", "mood")))
    target = make_catalog(Enum("feeling", ("a",)), *make_table("t", ("m", "feeling")))

    statements = _diff(source, target, "public.mood->public.feeling")

    assert statements == [RenameEnum(schema="public", from_name="mood", to_name="feeling")]


@pytest.mark.parametrize(
    ("before", "after", "expected"),
    [
        (("a", "b"), ("a", "b"), ()),
        (("a", "b"), ("x", "a", "b"), (("x", "a"),)),
        (("a", "b"), ("a", "b", "c"), (("c", None),)),
        (("a", "b"), ("b", "a"), None),
        (("a", "b"), ("a",), None),
    ],
)
def test_enum_additions(before, after, expected):
    assert enum_additions(before, after) == expected


# ---------- tables and constraints ----------


def test_primary_key_change_is_drop_then_add(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer"), ("b", "integer")), PrimaryKey("t", ("a",)))
    target = make_catalog(
        *make_table("t", ("a", "integer"), ("b", "integer")), PrimaryKey("t", ("a", "b"))
    )

    statements = _diff(source, target)

    assert [type(s) for s in statements] == [DropPrimaryKey, AddPrimaryKey]
    assert statements[1].primary_key.name == "t_pkey"
    assert statements[1].primary_key.columns == ("a", "b")


def test_changed_check_is_drop_then_create(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer")), Check("t", "positive", "a > 0"))
    target = make_catalog(*make_table("t", ("a", "integer")), Check("t", "positive", "a >= 0"))

    statements = _diff(source, target)

    assert [type(s) for s in statements] == [DropCheck, CreateCheck]


def test_dropped_table_drops_its_foreign_keys_first(make_catalog, make_table):
    source = make_catalog(
        *make_table("users", ("id", "integer")),
        *make_table("orders", ("id", "integer"), ("user_id", "integer")),
        ForeignKey("orders", ("user_id",), "users", ("id",)),
    )

    statements = _diff(source, make_catalog())

    assert [type(s) for s in statements] == [DropTable, DropForeignKey, DropTable]
    assert statements[1].foreign_key.name == "orders_user_id_users_id_fkey"


def test_sqlite_dropped_table_needs_no_foreign_key_drop(make_catalog, make_table):
    source = make_catalog(
        *make_table("users", ("id", "integer")),
        *make_table("orders", ("user_id", "integer")),
        ForeignKey("orders", ("user_id",), "users", ("id",)),
        dialect=Dialect.SQLITE,
    )

    statements = _diff(source, make_catalog(dialect=Dialect.SQLITE))

    assert [type(s) for s in statements] == [DropTable, DropTable]
    assert statements[0].foreign_keys == ()
    assert [fk.table_to for fk in statements[1].foreign_keys] == ["users"]


def test_new_table_gets_foreign_keys_and_indexes_separately(make_catalog, make_table):
    target = make_catalog(
        *make_table("users", ("id", "integer")),
        *make_table("orders", ("user_id", "integer")),
        ForeignKey("orders", ("user_id",), "users", ("id",)),
        Index("orders", "", (IndexColumn("user_id"),)),
    )

    statements = _diff(make_catalog(), target)

    assert [type(s).__name__ for s in statements] == [
        "CreateTable",
        "CreateTable",
        "AddForeignKey",
        "CreateIndex",
    ]
    assert statements[3].index.name == "orders_user_id_index"


# ---------- sqlite table rebuilds ----------


def test_sqlite_column_change_rebuilds_table(make_catalog, make_table):
    index = Index("t", "t_a_idx", (IndexColumn("a"),))
    source = make_catalog(
        *make_table("t", ("a", "integer"), ("b", "integer"), ("c", "integer")),
        index,
        dialect=Dialect.SQLITE,
    )
    target = make_catalog(
        *make_table("t", ("a", "integer"), ("b", "text")), index, dialect=Dialect.SQLITE
    )

    statements = _diff(source, target)

    assert [type(s) for s in statements] == [RecreateTable, CreateIndex]
    assert statements[0].copied_columns == ("a", "b")
    assert [c.type for c in statements[0].columns] == ["integer", "text"]


def test_sqlite_nullable_add_is_plain_add(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer")), dialect=Dialect.SQLITE)
    target = make_catalog(*make_table("t", ("a", "integer"), ("b", "integer")), dialect=Dialect.SQLITE)

    assert [type(s) for s in _diff(source, target)] == [AddColumn]


def test_sqlite_not_null_add_without_default_rebuilds(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer")), dialect=Dialect.SQLITE)
    target = make_catalog(
        *make_table("t", ("a", "integer"), ("b", "integer", {"not_null": True})),
        dialect=Dialect.SQLITE,
    )

    [statement] = _diff(source, target)

    assert isinstance(statement, RecreateTable)
    assert statement.copied_columns == ("a",)


def test_sqlite_column_drop_is_plain_drop(make_catalog, make_table):
    source = make_catalog(*make_table("t", ("a", "integer"), ("b", "integer")), dialect=Dialect.SQLITE)
    target = make_catalog(*make_table("t", ("a", "integer")), dialect=Dialect.SQLITE)

    assert [type(s) for s in _diff(source, target)] == [DropColumn]


# ---------- views ----------


def test_view_lifecycle(make_catalog):
    source = make_catalog(View("kept", definition="select 1"), View("gone", definition="select 2"))
    target = make_catalog(View("kept", definition="select 10"), View("new", definition="select 3"))

    statements = _diff(source, target)

    assert [type(s) for s in statements] == [AlterView, CreateView, DropView]


def test_existing_views_are_left_alone(make_catalog):
    source = make_catalog(View("legacy", is_existing=True))

    assert _diff(source, make_catalog()) == []


def test_view_rename(make_catalog):
    source = make_catalog(View("v", definition="select 1", materialized=True))
    target = make_catalog(View("v2", definition="select 1", materialized=True))

    statements = _diff(source, target, "public.v->public.v2")

    assert statements == [RenameView(schema="public", from_name="v", to_name="v2", materialized=True)]


def test_sqlite_view_rename_falls_back_to_drop_and_create(make_catalog):
    source = make_catalog(View("v", definition="select 1"), dialect=Dialect.SQLITE)
    target = make_catalog(View("v2", definition="select 1"), dialect=Dialect.SQLITE)

    statements = _diff(source, target, "v->v2")

    assert [type(s) for s in statements] == [CreateView, DropView]


def test_table_is_unaffected_by_unrelated_view(make_catalog):
    source = make_catalog(Table("t"))
    target = make_catalog(Table("t"), View("v", definition="select 1"))

    assert [type(s) for s in _diff(source, target)] == [CreateView]
