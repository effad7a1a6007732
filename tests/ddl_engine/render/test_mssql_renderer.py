import pytest

from src.ddl_engine.catalog.entities import (
    CheckOption,
    Column,
    Enum,
    Generated,
    GeneratedMode,
    Index,
    IndexColumn,
    PrimaryKey,
    Table,
    View,
)
from src.ddl_engine.diff.policy import ColumnAttribute
from src.ddl_engine.errors import UnsupportedConstructError
from src.ddl_engine.plan.statements import (
    AddPrimaryKey,
    AlterColumn,
    AlterView,
    CreateEnum,
    CreateTable,
    CreateView,
    DropColumn,
    DropIndex,
    MoveTable,
    RenameColumn,
    RenameTable,
)
from src.ddl_engine.render.mssql import MsSqlRenderer

# ---------- helpers ----------


def _render(statement):
    return MsSqlRenderer().render(statement)


# ---------- tables ----------


def test_create_table_names_defaults_and_primary_key():
    statement = CreateTable(
        table=Table("users", schema="dbo"),
        columns=(
            Column("users", "id", "int", not_null=True, auto_increment=True, schema="dbo"),
            Column("users", "active", "bit", not_null=True, default=True, schema="dbo"),
            Column(
                "users",
                "total",
                "int",
                generated=Generated(GeneratedMode.STORED, "[a] + [b]"),
                schema="dbo",
            ),
        ),
        primary_key=PrimaryKey("users", ("id",), name="users_pkey", schema="dbo"),
    )

    assert _render(statement) == (
        "CREATE TABLE [users] (\n"
        "\t[id] int IDENTITY(1, 1),\n"
        "\t[active] bit NOT NULL CONSTRAINT [users_active_default] DEFAULT 1,\n"
        "\t[total] AS ([a] + [b]) PERSISTED,\n"
        "\tCONSTRAINT [users_pkey] PRIMARY KEY([id])\n"
        ");",
    )


def test_renames_use_sp_rename():
    assert _render(RenameTable(schema="dbo", from_name="a", to_name="b")) == ("EXEC sp_rename 'a', [b];",)
    assert _render(RenameTable(schema="sales", from_name="a", to_name="b")) == (
        "EXEC sp_rename 'sales.a', [b];",
    )
    assert _render(RenameColumn(schema="dbo", table="t", from_name="x", to_name="y")) == (
        "EXEC sp_rename 't.x', [y], 'COLUMN';",
    )


def test_renames_carry_default_constraints_along():
    assert _render(
        RenameColumn(schema="dbo", table="t", from_name="c", to_name="c2", has_default_constraint=True)
    ) == (
        "EXEC sp_rename 't.c', [c2], 'COLUMN';",
        "EXEC sp_rename 't_c_default', [t_c2_default], 'OBJECT';",
    )
    assert _render(
        RenameTable(schema="sales", from_name="a", to_name="b", defaulted_columns=("x", "y"))
    ) == (
        "EXEC sp_rename 'sales.a', [b];",
        "EXEC sp_rename 'sales.a_x_default', [b_x_default], 'OBJECT';",
        "EXEC sp_rename 'sales.a_y_default', [b_y_default], 'OBJECT';",
    )


def test_move_table_transfers_schema():
    assert _render(MoveTable(name="t", from_schema="dbo", to_schema="sales")) == (
        "ALTER SCHEMA [sales] TRANSFER [dbo].[t];",
    )


# ---------- columns ----------


def test_alter_default_swaps_named_constraint():
    before = Column("t", "c", "int", default=0, schema="dbo")
    after = Column("t", "c", "int", default=5, schema="dbo")
    statement = AlterColumn(before=before, after=after, changes=frozenset({ColumnAttribute.DEFAULT}))

    assert _render(statement) == (
        "ALTER TABLE [t] DROP CONSTRAINT [t_c_default];",
        "ALTER TABLE [t] ADD CONSTRAINT [t_c_default] DEFAULT 5 FOR [c];",
    )


def test_alter_type_restates_nullability():
    before = Column("t", "c", "int", not_null=True, schema="dbo")
    after = Column("t", "c", "bigint", not_null=True, schema="dbo")
    statement = AlterColumn(before=before, after=after, changes=frozenset({ColumnAttribute.TYPE}))

    assert _render(statement) == ("ALTER TABLE [t] ALTER COLUMN [c] bigint NOT NULL;",)


def test_alter_without_sql_is_unsupported():
    before = Column("t", "c", "int", schema="dbo")
    after = Column("t", "c", "int", auto_increment=True, schema="dbo")
    statement = AlterColumn(before=before, after=after, changes=frozenset({ColumnAttribute.AUTO_INCREMENT}))

    with pytest.raises(UnsupportedConstructError):
        _render(statement)


def test_drop_column_drops_default_first():
    column = Column("t", "c", "int", default=1, schema="dbo")

    assert _render(DropColumn(column)) == (
        "ALTER TABLE [t] DROP CONSTRAINT [t_c_default];",
        "ALTER TABLE [t] DROP COLUMN [c];",
    )


# ---------- constraints, indexes, views ----------


def test_add_primary_key():
    pk = PrimaryKey("t", ("a", "b"), name="t_pkey", schema="dbo")

    assert _render(AddPrimaryKey(pk)) == ("ALTER TABLE [t] ADD CONSTRAINT [t_pkey] PRIMARY KEY ([a],[b]);",)


def test_drop_index_names_table():
    index = Index("t", "t_a_index", (IndexColumn("a"),), schema="sales")

    assert _render(DropIndex(index)) == ("DROP INDEX [t_a_index] ON [sales].[t];",)


def test_views():
    view = View("v", definition="select 1 as x", with_check_option=CheckOption.CASCADED, schema="dbo")

    assert _render(CreateView(view)) == ("CREATE VIEW [v] AS select 1 as x WITH CHECK OPTION;",)
    assert _render(AlterView(before=view, after=View("v", definition="select 2 as x", schema="dbo"))) == (
        "ALTER VIEW [v] AS select 2 as x;",
    )


def test_enums_are_unsupported():
    with pytest.raises(UnsupportedConstructError) as excinfo:
        _render(CreateEnum(Enum(name="mood", values=("a",), schema="dbo")))

    assert "mssql" in str(excinfo.value)
