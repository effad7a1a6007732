"""
Catalog builder: raw schema items -> validated Catalog.

Normalisation (applied in this order, per entity):
- dict items are decoded through catalog/serde.py
- empty schema -> dialect default schema; dialects without schemas drop it
- missing primary key / unique / foreign key / index names -> deterministic names
- column types -> canonical spelling (see grammar/types.py)

Validation happens in Catalog construction; errors surface as ValidationError.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from src.constants import DEFAULT_SCHEMAS
from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.catalog.entities import (
    Column,
    Entity,
    ForeignKey,
    Index,
    PrimaryKey,
    Schema,
    UniqueConstraint,
)
from src.ddl_engine.catalog.serde import entity_from_dict
from src.ddl_engine.grammar.types import normalize_type
from src.ddl_engine.identifiers import (
    build_foreign_key_name,
    build_index_name,
    build_primary_key_name,
    build_unique_name,
)
from src.enums import Dialect

RawSchemaItem = Entity | Mapping[str, Any]


def build_catalog(
    raw_schema: Iterable[RawSchemaItem],
    *,
    dialect: Dialect,
    snapshot_id: str = "",
    prev_ids: Iterable[str] = (),
) -> Catalog:
    """
    Build and validate a catalog from entity values or their dict form.

    Raises
    ------
    ValidationError
        The normalised entities do not form a valid catalog.
    SnapshotFormatError
        A dict item cannot be decoded.
    """
    dialect = Dialect(dialect)
    entities = [
        normalize_entity(
            entity_from_dict(item, dialect) if isinstance(item, Mapping) else item, dialect
        )
        for item in raw_schema
    ]
    return Catalog(
        dialect=dialect,
        entities=tuple(entities),
        id=snapshot_id,
        prev_ids=tuple(prev_ids),
    )


def normalize_entity(entity: Entity, dialect: Dialect) -> Entity:
    """Apply schema, naming and type normalisation to one entity."""
    if isinstance(entity, Schema):
        return entity

    entity = replace(entity, schema=_schema_for(entity.schema, dialect))

    if isinstance(entity, Column):
        return replace(entity, type=normalize_type(entity.type))
    if isinstance(entity, PrimaryKey) and not entity.name:
        return replace(entity, name=build_primary_key_name(dialect, entity.table))
    if isinstance(entity, UniqueConstraint) and not entity.name:
        return replace(entity, name=build_unique_name(dialect, entity.table, entity.columns))
    if isinstance(entity, ForeignKey):
        # an unqualified target lives in the referencing table's schema
        entity = replace(entity, schema_to=_schema_for(entity.schema_to or entity.schema, dialect))
        if not entity.name:
            entity = replace(
                entity,
                name=build_foreign_key_name(
                    dialect, entity.table, entity.columns, entity.table_to, entity.columns_to
                ),
            )
        return entity
    if isinstance(entity, Index) and not entity.name:
        names = [c.value for c in entity.columns if not c.is_expression] or ["expr"]
        return replace(entity, name=build_index_name(dialect, entity.table, names))
    return entity


def _schema_for(schema: str, dialect: Dialect) -> str:
    if not dialect.has_schemas:
        return ""
    return schema or DEFAULT_SCHEMAS[dialect]
