import pytest

from src.ddl_engine.catalog.entities import Column, ForeignKey, Table
from src.ddl_engine.errors import UnsupportedConstructError
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    CreateTable,
    DropForeignKey,
    RenameColumn,
)
from src.ddl_engine.render.singlestore import SingleStoreRenderer


def _fk():
    return ForeignKey("orders", ("user_id",), "users", ("id",), name="orders_fk")


def test_rename_column_uses_change():
    statement = RenameColumn(schema="", table="t", from_name="a", to_name="b")

    assert SingleStoreRenderer().render(statement) == ("ALTER TABLE `t` CHANGE `a` `b`;",)


@pytest.mark.parametrize("statement", [AddForeignKey(_fk()), DropForeignKey(_fk())])
def test_foreign_keys_are_unsupported(statement):
    with pytest.raises(UnsupportedConstructError) as excinfo:
        SingleStoreRenderer().render(statement)

    assert excinfo.value.entity_ids == ("foreign_key:orders.orders_fk",)


def test_inline_foreign_keys_are_unsupported():
    statement = CreateTable(
        table=Table("orders"),
        columns=(Column("orders", "user_id", "int"),),
        foreign_keys=(_fk(),),
    )

    with pytest.raises(UnsupportedConstructError):
        SingleStoreRenderer().render(statement)


def test_inherits_mysql_column_syntax():
    column = Column("t", "c", "int", not_null=True, default=1)

    assert SingleStoreRenderer().render(AddColumn(column)) == ("ALTER TABLE `t` ADD `c` int NOT NULL DEFAULT 1;",)
