import pytest

from src.ddl_engine.catalog.entities import (
    Column,
    ForeignKey,
    Index,
    IndexColumn,
    PrimaryKey,
    ReferentialAction,
    SqlExpression,
    Table,
    UniqueConstraint,
    View,
)
from src.ddl_engine.diff.policy import ColumnAttribute
from src.ddl_engine.errors import UnsupportedConstructError
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AlterColumn,
    AlterView,
    CreateIndex,
    CreateTable,
    CreateView,
    DropIndex,
    RecreateTable,
    RenameColumn,
    RenameTable,
)
from src.ddl_engine.render.sqlite import SqliteRenderer


def _render(statement):
    return SqliteRenderer().render(statement)


# ---------- tables ----------


def test_create_table_with_inline_foreign_key():
    statement = CreateTable(
        table=Table("orders"),
        columns=(
            Column("orders", "id", "integer", not_null=True, auto_increment=True),
            Column("orders", "user_id", "integer"),
            Column("orders", "paid", "integer", default=True),
        ),
        primary_key=PrimaryKey("orders", ("id",), name="orders_pkey"),
        foreign_keys=(
            ForeignKey(
                "orders",
                ("user_id",),
                "users",
                ("id",),
                name="orders_user_id_users_id_fkey",
                on_delete=ReferentialAction.CASCADE,
            ),
        ),
    )

    assert _render(statement) == (
        "CREATE TABLE `orders` (\n"
        "\t`id` integer PRIMARY KEY AUTOINCREMENT,\n"
        "\t`user_id` integer,\n"
        "\t`paid` integer DEFAULT 1,\n"
        "\tFOREIGN KEY (`user_id`) REFERENCES `users`(`id`) ON DELETE cascade\n"
        ");",
    )


def test_create_table_with_composite_key_and_unique():
    statement = CreateTable(
        table=Table("pairs"),
        columns=(Column("pairs", "a", "integer"), Column("pairs", "b", "integer")),
        primary_key=PrimaryKey("pairs", ("a", "b"), name="pairs_pkey"),
        uniques=(UniqueConstraint("pairs", ("b",), name="pairs_b_unique"),),
    )

    assert _render(statement) == (
        "CREATE TABLE `pairs` (\n"
        "\t`a` integer,\n"
        "\t`b` integer,\n"
        "\tPRIMARY KEY(`a`, `b`),\n"
        "\tCONSTRAINT `pairs_b_unique` UNIQUE(`b`)\n"
        ");",
    )


def test_recreate_table_copies_and_swaps():
    statement = RecreateTable(
        table=Table("t"),
        columns=(Column("t", "a", "integer", not_null=True), Column("t", "b", "text")),
        copied_columns=("a", "b"),
    )

    assert _render(statement) == (
        "PRAGMA foreign_keys=OFF;",
        "CREATE TABLE `__new_t` (\n\t`a` integer NOT NULL,\n\t`b` text\n);",
        "INSERT INTO `__new_t`(`a`, `b`) SELECT `a`, `b` FROM `t`;",
        "DROP TABLE `t`;",
        "ALTER TABLE `__new_t` RENAME TO `t`;",
        "PRAGMA foreign_keys=ON;",
    )


def test_recreate_table_without_copied_columns_skips_insert():
    statement = RecreateTable(table=Table("t"), columns=(Column("t", "a", "integer"),), copied_columns=())

    assert not any(sql.startswith("INSERT") for sql in _render(statement))


def test_rename_table():
    assert _render(RenameTable(schema="", from_name="a", to_name="b")) == ("ALTER TABLE `a` RENAME TO `b`;",)


# ---------- columns ----------


def test_add_and_rename_column():
    column = Column("t", "created", "text", default=SqlExpression("CURRENT_TIMESTAMP"))

    assert _render(AddColumn(column)) == ("ALTER TABLE `t` ADD `created` text DEFAULT (CURRENT_TIMESTAMP);",)
    assert _render(RenameColumn(schema="", table="t", from_name="a", to_name="b")) == (
        "ALTER TABLE `t` RENAME COLUMN `a` TO `b`;",
    )


@pytest.mark.parametrize(
    "statement",
    [
        AlterColumn(
            before=Column("t", "c", "integer"),
            after=Column("t", "c", "integer", not_null=True),
            changes=frozenset({ColumnAttribute.NOT_NULL}),
        ),
        AddForeignKey(ForeignKey("t", ("a",), "u", ("id",), name="t_fk")),
    ],
)
def test_in_place_alters_are_unsupported(statement):
    with pytest.raises(UnsupportedConstructError):
        _render(statement)


# ---------- indexes and views ----------


def test_partial_index():
    index = Index("t", "t_a_index", (IndexColumn("a", ascending=False),), unique=True, where="a > 0")

    assert _render(CreateIndex(index)) == ("CREATE UNIQUE INDEX `t_a_index` ON `t` (`a` desc) WHERE a > 0;",)
    assert _render(DropIndex(index)) == ("DROP INDEX `t_a_index`;",)


def test_alter_view_is_drop_and_create():
    before = View("v", definition="select 1")
    after = View("v", definition="select 2")

    assert _render(AlterView(before=before, after=after)) == (
        "DROP VIEW `v`;",
        "CREATE VIEW `v` AS select 2;",
    )


def test_materialized_view_is_unsupported():
    with pytest.raises(UnsupportedConstructError):
        _render(CreateView(View("mv", definition="select 1", materialized=True)))
