import pytest

from src.ddl_engine.catalog.entities import (
    Check,
    CheckOption,
    Column,
    Enum,
    ForeignKey,
    Generated,
    GeneratedMode,
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
    AlterEnum,
    AlterView,
    CreateCheck,
    CreateEnum,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropIndex,
    DropTable,
    DropView,
    MoveTable,
    RecreateEnum,
    RecreateTable,
    RenameSchema,
    RenameTable,
    RenameView,
)
from src.ddl_engine.render.postgres import PostgresRenderer

# ---------- helpers ----------


def _render(statement):
    return PostgresRenderer().render(statement)


def _alter(before, after, *changes):
    return AlterColumn(before=before, after=after, changes=frozenset(changes))


# ---------- schemas and enums ----------


def test_schema_statements():
    assert _render(CreateSchema(name="billing")) == ('CREATE SCHEMA "billing";',)
    assert _render(RenameSchema(from_name="billing", to_name="finance")) == (
        'ALTER SCHEMA "billing" RENAME TO "finance";',
    )


def test_create_enum_in_public_is_unqualified():
    enum = Enum(name="mood", values=("sad", "ok", "it's fine"), schema="public")

    assert _render(CreateEnum(enum)) == ("CREATE TYPE \"mood\" AS ENUM('sad', 'ok', 'it''s fine');",)


def test_alter_enum_adds_each_value():
    enum = Enum(name="mood", values=("sad", "meh", "ok", "happy"), schema="app")
    statement = AlterEnum(enum=enum, added=(("meh", "ok"), ("happy", None)))

    assert _render(statement) == (
        "ALTER TYPE \"app\".\"mood\" ADD VALUE 'meh' BEFORE 'ok';",
        "ALTER TYPE \"app\".\"mood\" ADD VALUE 'happy';",
    )


def test_recreate_enum_round_trips_columns_through_text():
    before = Enum(name="mood", values=("sad", "ok"), schema="public")
    after = Enum(name="mood", values=("ok",), schema="public")
    column = Column("people", "mood", "mood", default="ok", schema="public")

    assert _render(RecreateEnum(before=before, after=after, columns=(column,))) == (
        'ALTER TABLE "people" ALTER COLUMN "mood" DROP DEFAULT;',
        'ALTER TABLE "people" ALTER COLUMN "mood" SET DATA TYPE text;',
        'DROP TYPE "mood";',
        "CREATE TYPE \"mood\" AS ENUM('ok');",
        'ALTER TABLE "people" ALTER COLUMN "mood" SET DATA TYPE "mood" USING "mood"::"mood";',
        "ALTER TABLE \"people\" ALTER COLUMN \"mood\" SET DEFAULT 'ok';",
    )


# ---------- tables ----------


def test_create_table():
    statement = CreateTable(
        table=Table("users", schema="public"),
        columns=(
            Column("users", "id", "integer", not_null=True, auto_increment=True, schema="public"),
            Column("users", "email", "text", not_null=True, schema="public"),
            Column("users", "active", "boolean", default=True, schema="public"),
            Column(
                "users",
                "email_lower",
                "text",
                generated=Generated(GeneratedMode.STORED, "lower(email)"),
                schema="public",
            ),
        ),
        primary_key=PrimaryKey("users", ("id",), name="users_pkey", schema="public"),
        uniques=(UniqueConstraint("users", ("email",), name="users_email_unique", schema="public"),),
    )

    assert _render(statement) == (
        'CREATE TABLE "users" (\n'
        '\t"id" integer GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,\n'
        '\t"email" text NOT NULL,\n'
        '\t"active" boolean DEFAULT true,\n'
        '\t"email_lower" text GENERATED ALWAYS AS (lower(email)) STORED,\n'
        '\tCONSTRAINT "users_email_unique" UNIQUE("email")\n'
        ");",
    )


def test_table_drop_rename_and_move():
    assert _render(DropTable(Table("users", schema="app"))) == ('DROP TABLE "app"."users" CASCADE;',)
    assert _render(RenameTable(schema="public", from_name="users", to_name="accounts")) == (
        'ALTER TABLE "users" RENAME TO "accounts";',
    )
    assert _render(MoveTable(name="users", from_schema="public", to_schema="app")) == (
        'ALTER TABLE "users" SET SCHEMA "app";',
    )


def test_recreate_table_is_unsupported():
    statement = RecreateTable(table=Table("t", schema="public"), columns=(), copied_columns=())

    with pytest.raises(UnsupportedConstructError):
        _render(statement)


# ---------- columns ----------


def test_add_column_with_expression_default():
    column = Column("t", "created_at", "timestamp", default=SqlExpression("now()"), schema="public")

    assert _render(AddColumn(column)) == ('ALTER TABLE "t" ADD COLUMN "created_at" timestamp DEFAULT now();',)


def test_alter_column_emits_narrow_clauses_in_order():
    before = Column("t", "c", "integer", default=0, schema="public")
    after = Column("t", "c", "bigint", not_null=True, default=1, schema="public")
    statement = _alter(before, after, ColumnAttribute.TYPE, ColumnAttribute.DEFAULT, ColumnAttribute.NOT_NULL)

    assert _render(statement) == (
        'ALTER TABLE "t" ALTER COLUMN "c" DROP DEFAULT;',
        'ALTER TABLE "t" ALTER COLUMN "c" SET DATA TYPE bigint;',
        'ALTER TABLE "t" ALTER COLUMN "c" SET DEFAULT 1;',
        'ALTER TABLE "t" ALTER COLUMN "c" SET NOT NULL;',
    )


def test_alter_column_drops_not_null_and_expression():
    before = Column(
        "t", "c", "integer", not_null=True, generated=Generated(GeneratedMode.STORED, "a + 1"), schema="public"
    )
    after = Column("t", "c", "integer", schema="public")
    statement = _alter(before, after, ColumnAttribute.NOT_NULL, ColumnAttribute.GENERATED)

    assert _render(statement) == (
        'ALTER TABLE "t" ALTER COLUMN "c" DROP NOT NULL;',
        'ALTER TABLE "t" ALTER COLUMN "c" DROP EXPRESSION;',
    )


def test_alter_column_charset_is_unsupported():
    before = Column("t", "c", "text", schema="public")
    after = Column("t", "c", "text", charset="utf8", schema="public")

    with pytest.raises(UnsupportedConstructError):
        _render(_alter(before, after, ColumnAttribute.CHARSET))


# ---------- constraints and indexes ----------


def test_check_and_foreign_key():
    check = Check("orders", "orders_total_check", "total >= 0", schema="public")
    fk = ForeignKey(
        "orders",
        ("user_id",),
        "users",
        ("id",),
        name="orders_user_fk",
        on_delete=ReferentialAction.SET_NULL,
        schema="public",
        schema_to="app",
    )

    assert _render(CreateCheck(check)) == (
        'ALTER TABLE "orders" ADD CONSTRAINT "orders_total_check" CHECK (total >= 0);',
    )
    assert _render(AddForeignKey(fk)) == (
        'ALTER TABLE "orders" ADD CONSTRAINT "orders_user_fk" FOREIGN KEY ("user_id") '
        'REFERENCES "app"."users"("id") ON DELETE set null;',
    )


def test_index_create_and_drop():
    index = Index(
        "t",
        "t_idx",
        (IndexColumn("a"), IndexColumn("b", ascending=False)),
        where="a is not null",
        schema="app",
    )

    assert _render(CreateIndex(index)) == (
        'CREATE INDEX "t_idx" ON "app"."t" USING btree ("a","b" DESC) WHERE a is not null;',
    )
    assert _render(DropIndex(index)) == ('DROP INDEX "app"."t_idx";',)


# ---------- views ----------


def test_view_create_with_check_option():
    view = View("v", definition="select 1", with_check_option=CheckOption.LOCAL, schema="public")

    assert _render(CreateView(view)) == ('CREATE VIEW "v" WITH (check_option = local) AS (select 1);',)


def test_materialized_view_alter_is_drop_and_create():
    before = View("mv", definition="select 1", materialized=True, schema="public")
    after = View("mv", definition="select 2", materialized=True, schema="public")

    assert _render(AlterView(before=before, after=after)) == (
        'DROP MATERIALIZED VIEW "mv";',
        'CREATE MATERIALIZED VIEW "mv" AS (select 2);',
    )


def test_plain_view_alter_is_create_or_replace():
    before = View("v", definition="select 1", schema="public")
    after = View("v", definition="select 2", schema="public")

    assert _render(AlterView(before=before, after=after)) == ('CREATE OR REPLACE VIEW "v" AS (select 2);',)


def test_view_drop_and_rename():
    assert _render(DropView(View("v", definition="select 1", schema="app"))) == ('DROP VIEW "app"."v";',)
    assert _render(RenameView(schema="public", from_name="mv", to_name="mv2", materialized=True)) == (
        'ALTER MATERIALIZED VIEW "mv" RENAME TO "mv2";',
    )
