from dataclasses import dataclass

from src.ddl_engine.catalog.entities import Column, ForeignKey, Index, IndexColumn, Table, View
from src.ddl_engine.plan.orderer import DependencyOrderer, Plan
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropColumn,
    DropForeignKey,
    DropSchema,
    DropTable,
    DropView,
    RenameColumn,
    RenameTable,
    Statement,
)

# ---------- helpers ----------


def _create(name, *references):
    return CreateTable(
        table=Table(name),
        columns=(Column(name, "id", "integer"),),
        foreign_keys=tuple(
            ForeignKey(name, ("id",), target, ("id",), name=f"{name}_{target}_fk")
            for target in references
        ),
    )


def _drop(name, *references):
    return DropTable(
        table=Table(name),
        foreign_keys=tuple(
            ForeignKey(name, ("id",), target, ("id",), name=f"{name}_{target}_fk")
            for target in references
        ),
    )


@dataclass(frozen=True)
class Comment(Statement):
    text: str


# ---------- phases ----------


def test_statements_follow_phase_order():
    fk = ForeignKey("orders", ("user_id",), "users", ("id",), name="orders_fk")
    statements = [
        DropSchema(name="old"),
        CreateView(view=View("v", definition="select 1")),
        DropTable(table=Table("legacy")),
        DropColumn(column=Column("users", "nickname", "text")),
        CreateIndex(index=Index("users", "users_email_idx", (IndexColumn("email"),))),
        AddForeignKey(foreign_key=fk),
        AddColumn(column=Column("users", "email", "text")),
        DropForeignKey(foreign_key=fk),
        RenameColumn(schema="", table="users", from_name="name", to_name="full_name"),
        RenameTable(schema="", from_name="people", to_name="users"),
        DropView(view=View("old_v", definition="select 1")),
        _create("orders"),
        CreateSchema(name="app"),
    ]

    ordered = DependencyOrderer().order(statements)

    assert [type(s).__name__ for s in ordered] == [
        "CreateSchema",
        "CreateTable",
        "DropView",
        "RenameTable",
        "RenameColumn",
        "DropForeignKey",
        "AddColumn",
        "AddForeignKey",
        "CreateIndex",
        "DropColumn",
        "DropTable",
        "CreateView",
        "DropSchema",
    ]


def test_order_within_a_phase_is_kept():
    statements = [AddColumn(column=Column("t", name, "integer")) for name in ("c", "a", "b")]

    ordered = DependencyOrderer().order(statements)

    assert [s.column.name for s in ordered] == ["c", "a", "b"]


def test_unknown_statements_go_last():
    statements = [Comment("note"), DropTable(table=Table("t")), CreateSchema(name="app")]

    ordered = DependencyOrderer().order(statements)

    assert ordered[-1] == Comment("note")


# ---------- inline foreign keys ----------


def test_referenced_tables_are_created_first():
    statements = [_create("order_items", "orders"), _create("orders", "users"), _create("users")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["users", "orders", "order_items"]


def test_self_reference_does_not_block():
    statements = [_create("nodes", "nodes"), _create("users")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["nodes", "users"]


def test_cycles_keep_input_order():
    statements = [_create("a", "b"), _create("b", "a")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["a", "b"]


def test_references_to_existing_tables_are_ignored():
    statements = [_create("orders", "users"), _create("audit")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["orders", "audit"]



def test_referencing_tables_are_dropped_first():
    statements = [_drop("users"), _drop("orders", "users"), _drop("order_items", "orders")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["order_items", "orders", "users"]


def test_drops_without_references_keep_input_order():
    statements = [_drop("b"), _drop("a", "a"), _drop("c", "elsewhere")]

    ordered = DependencyOrderer().order(statements)

    assert [s.table.name for s in ordered] == ["b", "a", "c"]

# ---------- plan ----------


def test_build_wraps_ordered_statements():
    plan = DependencyOrderer().build([DropTable(table=Table("t")), CreateSchema(name="app")])

    assert isinstance(plan, Plan)
    assert len(plan) == 2
    assert isinstance(next(iter(plan)), CreateSchema)
    assert not plan.is_empty
    assert Plan().is_empty
