import pytest

from src.ddl_engine.catalog.entities import (
    CheckOption,
    Column,
    ForeignKey,
    Generated,
    GeneratedMode,
    Index,
    IndexColumn,
    ReferentialAction,
    SqlExpression,
    View,
    ViewAlgorithm,
)
from src.ddl_engine.catalog.serde import entity_from_dict, entity_to_dict
from src.ddl_engine.errors import SnapshotFormatError
from src.enums import Dialect

# ---------- encode ----------


def test_column_shape():
    column = Column(
        "users",
        "created_at",
        "timestamp(3)",
        not_null=True,
        default=SqlExpression("now(3)"),
        on_update_now=True,
        on_update_now_fsp=3,
    )

    assert entity_to_dict(column, Dialect.MYSQL) == {
        "entityType": "columns",
        "schema": "",
        "table": "users",
        "name": "created_at",
        "type": "timestamp(3)",
        "notNull": True,
        "default": "(now(3))",
        "generated": None,
        "autoIncrement": False,
        "onUpdateNow": True,
        "onUpdateNowFsp": 3,
        "charSet": None,
        "collation": None,
    }


def test_generated_column_shape():
    column = Column("t", "total", "int", generated=Generated(GeneratedMode.VIRTUAL, "a + b"))

    assert entity_to_dict(column, Dialect.MYSQL)["generated"] == {"type": "virtual", "as": "a + b"}


def test_foreign_key_shape():
    fk = ForeignKey(
        "orders",
        ("user_id",),
        "users",
        ("id",),
        name="orders_fk",
        on_delete=ReferentialAction.SET_NULL,
        schema="public",
        schema_to="public",
    )

    body = entity_to_dict(fk, Dialect.POSTGRES)

    assert body["entityType"] == "fks"
    assert (body["tableTo"], body["columnsTo"]) == ("users", ["id"])
    assert (body["onUpdate"], body["onDelete"]) == (None, "SET NULL")


def test_unsupported_entity():
    with pytest.raises(TypeError):
        entity_to_dict(object(), Dialect.POSTGRES)


# ---------- decode ----------


@pytest.mark.parametrize(
    "entity",
    [
        Index(
            "t",
            "t_idx",
            (IndexColumn("a", ascending=False), IndexColumn("lower(b)", is_expression=True)),
            unique=True,
            where="a > 0",
            method="btree",
        ),
        View(
            "v",
            definition="select 1",
            algorithm=ViewAlgorithm.MERGE,
            with_check_option=CheckOption.LOCAL,
        ),
        ForeignKey(
            "orders", ("a", "b"), "users", ("x", "y"), name="fk", on_update=ReferentialAction.CASCADE
        ),
        Column("t", "flag", "boolean", not_null=True, default=False),
    ],
)
def test_decode_inverts_encode(entity):
    assert entity_from_dict(entity_to_dict(entity, Dialect.POSTGRES), Dialect.POSTGRES) == entity


def test_missing_optional_keys_take_defaults():
    column = entity_from_dict(
        {"entityType": "columns", "table": "t", "name": "c", "type": "text"}, Dialect.SQLITE
    )

    assert column == Column("t", "c", "text")


def test_unknown_keys_are_ignored():
    raw = {"entityType": "tables", "name": "t", "comment": "ignored"}

    assert entity_from_dict(raw, Dialect.SQLITE).name == "t"


@pytest.mark.parametrize(
    ("raw", "match"),
    [
        ({"entityType": "sequences", "name": "s"}, "Unknown entityType"),
        ({"name": "t"}, "Unknown entityType"),
        ({"entityType": "columns", "name": "c", "type": "int"}, "Invalid columns entry 'c': KeyError"),
        (
            {
                "entityType": "fks",
                "table": "a",
                "name": "fk",
                "columns": ["x"],
                "tableTo": "b",
                "columnsTo": ["y"],
                "onDelete": "EXPLODE",
            },
            "Invalid fks entry 'fk': ValueError",
        ),
    ],
)
def test_malformed_entries(raw, match):
    with pytest.raises(SnapshotFormatError, match=match):
        entity_from_dict(raw, Dialect.POSTGRES)
