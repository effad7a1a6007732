import dataclasses

from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.catalog.entities import (
    Column,
    EntityId,
    EntityKind,
    Index,
    IndexColumn,
    Schema,
    Table,
    column_id,
    table_id,
)
from src.enums import Dialect

# ---------- entity ids ----------


def test_entity_id_display():
    assert str(column_id("public", "users", "id")) == "column:public.users.id"
    assert str(table_id("", "users")) == "table:users"
    assert Schema("app").id.label == "app"


def test_owner_table():
    assert column_id("s", "t", "c").owner_table() == table_id("s", "t")
    assert table_id("s", "t").owner_table() == table_id("s", "t")
    assert Schema("s").id.owner_table() is None


def test_is_within():
    column = column_id("app", "t", "c")

    assert column.is_within(table_id("app", "t"))
    assert column.is_within(Schema("app").id)
    assert table_id("app", "t").is_within(Schema("app").id)
    assert not column.is_within(table_id("app", "other"))
    assert not Schema("app").id.is_within(Schema("other").id)
    assert not table_id("app", "t").is_within(column)


def test_ids_sort_deterministically():
    ids = [column_id("", "t", "b"), table_id("", "t"), column_id("", "t", "a")]

    assert sorted(ids)[0].kind is EntityKind.COLUMN
    assert [i.name for i in sorted(ids)] == ["a", "b", "t"]


# ---------- catalog lookups ----------


def test_lookups(make_catalog, make_table):
    index = Index("users", "users_email_idx", (IndexColumn("email"),))
    catalog = make_catalog(
        *make_table("users", ("id", "int"), ("email", "text")),
        *make_table("orders", ("id", "int")),
        index,
        dialect=Dialect.SQLITE,
    )

    assert len(catalog) == 6
    assert table_id("", "users") in catalog
    assert catalog.get(column_id("", "users", "email")) == Column("users", "email", "text")
    assert catalog.get(table_id("", "missing")) is None
    assert [t.name for t in catalog.tables()] == ["users", "orders"]
    assert catalog.table("", "orders") == Table("orders")
    assert catalog.table("", "users_email_idx") is None
    assert [c.name for c in catalog.columns("", "users")] == ["id", "email"]
    assert catalog.children_of_kind("", "users", EntityKind.INDEX) == (index,)
    assert catalog.children("", "missing") == ()
    assert list(catalog)[0] == Table("users")


def test_default_schema(make_catalog):
    assert make_catalog().default_schema == "public"
    assert make_catalog(dialect=Dialect.MSSQL).default_schema == "dbo"


def test_empty_catalog():
    catalog = Catalog.empty(Dialect.POSTGRES, "s0")

    assert len(catalog) == 0
    assert catalog.id == "s0"
    assert catalog.prev_ids == ()


def test_catalog_equality_ignores_lookup_tables(make_catalog, make_table):
    first = make_catalog(*make_table("t", ("a", "int")))
    second = make_catalog(*make_table("t", ("a", "int")))

    assert first == second
    assert first != make_catalog(*make_table("t", ("a", "bigint")))
    assert EntityId(EntityKind.TABLE, "public", "", "t") in first


def test_lookup_tables_have_no_shared_default():
    lookups = [f for f in dataclasses.fields(Catalog) if not f.init]

    assert [f.name for f in lookups] == ["_by_id", "_by_table"]
    assert all(f.default is dataclasses.MISSING for f in lookups)
    assert all(f.default_factory() == {} for f in lookups)
