"""
Entity <-> JSON-compatible dict codec.

Shape
-----
Every entity becomes a flat dict with an `entityType` tag and camelCase keys,
e.g. {"entityType": "columns", "schema": "public", "table": "users",
"name": "id", "type": "integer", "notNull": true, "default": null, ...}.

Notes
-----
- Column defaults are stored as rendered SQL literals and parsed back with the
  dialect's LiteralCodec, so a snapshot never depends on Python value types.
- `generated` is {"type": "stored"|"virtual", "as": "<expression>"}.
- Index columns are {"value", "isExpression", "asc"}.
- Unknown keys are ignored on decode; missing optional keys take entity defaults.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.ddl_engine.catalog.entities import (
    Check,
    CheckOption,
    Column,
    Entity,
    EntityKind,
    Enum,
    ForeignKey,
    Generated,
    GeneratedMode,
    Index,
    IndexColumn,
    PrimaryKey,
    ReferentialAction,
    Schema,
    Table,
    UniqueConstraint,
    View,
    ViewAlgorithm,
    ViewSecurity,
)
from src.ddl_engine.errors import SnapshotFormatError
from src.ddl_engine.grammar.literals import codec_for
from src.enums import Dialect

ENTITY_TYPE_KEY = "entityType"

# Plural tags as stored in snapshot files.
ENTITY_TYPE_TAGS: dict[EntityKind, str] = {
    EntityKind.SCHEMA: "schemas",
    EntityKind.ENUM: "enums",
    EntityKind.TABLE: "tables",
    EntityKind.COLUMN: "columns",
    EntityKind.INDEX: "indexes",
    EntityKind.PRIMARY_KEY: "pks",
    EntityKind.UNIQUE: "uniques",
    EntityKind.CHECK: "checks",
    EntityKind.FOREIGN_KEY: "fks",
    EntityKind.VIEW: "views",
}
_KIND_BY_TAG: dict[str, EntityKind] = {tag: kind for kind, tag in ENTITY_TYPE_TAGS.items()}


# ---------- encode ----------


def entity_to_dict(entity: Entity, dialect: Dialect) -> dict[str, Any]:
    """Encode one entity as a JSON-compatible dict."""
    body: dict[str, Any] = {ENTITY_TYPE_KEY: ENTITY_TYPE_TAGS[entity.kind]}

    if isinstance(entity, Schema):
        body["name"] = entity.name
    elif isinstance(entity, Enum):
        body.update(schema=entity.schema, name=entity.name, values=list(entity.values))
    elif isinstance(entity, Table):
        body.update(schema=entity.schema, name=entity.name)
    elif isinstance(entity, Column):
        body.update(_column_to_dict(entity, dialect))
    elif isinstance(entity, Index):
        body.update(
            schema=entity.schema,
            table=entity.table,
            name=entity.name,
            columns=[
                {"value": c.value, "isExpression": c.is_expression, "asc": c.ascending}
                for c in entity.columns
            ],
            isUnique=entity.unique,
            where=entity.where,
            method=entity.method,
        )
    elif isinstance(entity, (PrimaryKey, UniqueConstraint)):
        body.update(
            schema=entity.schema,
            table=entity.table,
            name=entity.name,
            columns=list(entity.columns),
        )
    elif isinstance(entity, Check):
        body.update(schema=entity.schema, table=entity.table, name=entity.name, value=entity.value)
    elif isinstance(entity, ForeignKey):
        body.update(
            schema=entity.schema,
            table=entity.table,
            name=entity.name,
            columns=list(entity.columns),
            schemaTo=entity.schema_to,
            tableTo=entity.table_to,
            columnsTo=list(entity.columns_to),
            onUpdate=_enum_value(entity.on_update),
            onDelete=_enum_value(entity.on_delete),
        )
    elif isinstance(entity, View):
        body.update(
            schema=entity.schema,
            name=entity.name,
            definition=entity.definition,
            algorithm=_enum_value(entity.algorithm),
            sqlSecurity=_enum_value(entity.sql_security),
            withCheckOption=_enum_value(entity.with_check_option),
            isExisting=entity.is_existing,
            materialized=entity.materialized,
        )
    else:
        raise TypeError(f"Unsupported entity: {type(entity).__name__}")
    return body


def _column_to_dict(column: Column, dialect: Dialect) -> dict[str, Any]:
    default = None
    if column.default is not None:
        default = codec_for(dialect).render(column.default, column.type)
    generated = None
    if column.generated is not None:
        generated = {"type": column.generated.mode.value, "as": column.generated.expression}
    return {
        "schema": column.schema,
        "table": column.table,
        "name": column.name,
        "type": column.type,
        "notNull": column.not_null,
        "default": default,
        "generated": generated,
        "autoIncrement": column.auto_increment,
        "onUpdateNow": column.on_update_now,
        "onUpdateNowFsp": column.on_update_now_fsp,
        "charSet": column.charset,
        "collation": column.collation,
    }


def _enum_value(value: Any) -> str | None:
    return None if value is None else str(value.value)


# ---------- decode ----------


def entity_from_dict(raw: Mapping[str, Any], dialect: Dialect) -> Entity:
    """
    Decode one entity dict.

    Raises
    ------
    SnapshotFormatError
        Unknown `entityType`, missing required keys or invalid enum values.
    """
    tag = raw.get(ENTITY_TYPE_KEY)
    kind = _KIND_BY_TAG.get(str(tag))
    if kind is None:
        raise SnapshotFormatError(f"Unknown entityType: {tag!r}")
    try:
        return _DECODERS[kind](raw, Dialect(dialect))
    except (KeyError, ValueError, TypeError) as error:
        raise SnapshotFormatError(
            f"Invalid {tag} entry {raw.get('name')!r}: {type(error).__name__}: {error}"
        ) from error


def _schema(raw: Mapping[str, Any], dialect: Dialect) -> Schema:
    return Schema(name=raw["name"])


def _enum(raw: Mapping[str, Any], dialect: Dialect) -> Enum:
    return Enum(name=raw["name"], values=tuple(raw["values"]), schema=raw.get("schema", ""))


def _table(raw: Mapping[str, Any], dialect: Dialect) -> Table:
    return Table(name=raw["name"], schema=raw.get("schema", ""))


def _column(raw: Mapping[str, Any], dialect: Dialect) -> Column:
    column_type = raw["type"]
    default = raw.get("default")
    generated = raw.get("generated")
    return Column(
        schema=raw.get("schema", ""),
        table=raw["table"],
        name=raw["name"],
        type=column_type,
        not_null=bool(raw.get("notNull", False)),
        default=None if default is None else codec_for(dialect).parse(default, column_type),
        generated=(
            None
            if generated is None
            else Generated(mode=GeneratedMode(generated["type"]), expression=generated["as"])
        ),
        auto_increment=bool(raw.get("autoIncrement", False)),
        on_update_now=bool(raw.get("onUpdateNow", False)),
        on_update_now_fsp=raw.get("onUpdateNowFsp"),
        charset=raw.get("charSet"),
        collation=raw.get("collation"),
    )


def _index(raw: Mapping[str, Any], dialect: Dialect) -> Index:
    return Index(
        schema=raw.get("schema", ""),
        table=raw["table"],
        name=raw["name"],
        columns=tuple(
            IndexColumn(
                value=c["value"],
                is_expression=bool(c.get("isExpression", False)),
                ascending=bool(c.get("asc", True)),
            )
            for c in raw["columns"]
        ),
        unique=bool(raw.get("isUnique", False)),
        where=raw.get("where"),
        method=raw.get("method"),
    )


def _primary_key(raw: Mapping[str, Any], dialect: Dialect) -> PrimaryKey:
    return PrimaryKey(
        schema=raw.get("schema", ""),
        table=raw["table"],
        name=raw.get("name", ""),
        columns=tuple(raw["columns"]),
    )


def _unique(raw: Mapping[str, Any], dialect: Dialect) -> UniqueConstraint:
    return UniqueConstraint(
        schema=raw.get("schema", ""),
        table=raw["table"],
        name=raw.get("name", ""),
        columns=tuple(raw["columns"]),
    )


def _check(raw: Mapping[str, Any], dialect: Dialect) -> Check:
    return Check(
        schema=raw.get("schema", ""), table=raw["table"], name=raw["name"], value=raw["value"]
    )


def _foreign_key(raw: Mapping[str, Any], dialect: Dialect) -> ForeignKey:
    return ForeignKey(
        schema=raw.get("schema", ""),
        table=raw["table"],
        name=raw.get("name", ""),
        columns=tuple(raw["columns"]),
        schema_to=raw.get("schemaTo", ""),
        table_to=raw["tableTo"],
        columns_to=tuple(raw["columnsTo"]),
        on_update=_optional(ReferentialAction, raw.get("onUpdate")),
        on_delete=_optional(ReferentialAction, raw.get("onDelete")),
    )


def _view(raw: Mapping[str, Any], dialect: Dialect) -> View:
    return View(
        schema=raw.get("schema", ""),
        name=raw["name"],
        definition=raw.get("definition"),
        algorithm=_optional(ViewAlgorithm, raw.get("algorithm")),
        sql_security=_optional(ViewSecurity, raw.get("sqlSecurity")),
        with_check_option=_optional(CheckOption, raw.get("withCheckOption")),
        is_existing=bool(raw.get("isExisting", False)),
        materialized=bool(raw.get("materialized", False)),
    )


def _optional(enum_type: Any, value: Any) -> Any:
    return None if value is None else enum_type(value)


_DECODERS = {
    EntityKind.SCHEMA: _schema,
    EntityKind.ENUM: _enum,
    EntityKind.TABLE: _table,
    EntityKind.COLUMN: _column,
    EntityKind.INDEX: _index,
    EntityKind.PRIMARY_KEY: _primary_key,
    EntityKind.UNIQUE: _unique,
    EntityKind.CHECK: _check,
    EntityKind.FOREIGN_KEY: _foreign_key,
    EntityKind.VIEW: _view,
}
