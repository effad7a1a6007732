"""
Catalog: an immutable, ordered snapshot of DDL entities.

- Entities keep their declaration order; lookups go through read-only indexes
  built once at construction.
- Construction validates the catalog (see validation/catalog_rules.py) and
  raises ValidationError on any error-level diagnostic.
- `id` / `prev_ids` identify the snapshot in a migration history; they are
  only used by merge analysis.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from src.constants import DEFAULT_SCHEMAS
from src.ddl_engine.catalog.entities import (
    Column,
    Entity,
    EntityId,
    EntityKind,
    Table,
    TableScoped,
    table_id,
)
from src.ddl_engine.errors import ValidationError
from src.ddl_engine.validation.validator import CatalogValidator
from src.enums import Dialect


@dataclass(frozen=True)
class Catalog:
    """Immutable collection of entities for one dialect."""

    dialect: Dialect
    entities: tuple[Entity, ...] = ()
    id: str = ""
    prev_ids: tuple[str, ...] = ()

    _by_id: MappingProxyType[EntityId, Entity] = field(
        init=False, repr=False, compare=False, default_factory=lambda: MappingProxyType({})
    )
    _by_table: MappingProxyType[EntityId, tuple[TableScoped, ...]] = field(
        init=False, repr=False, compare=False, default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "dialect", Dialect(self.dialect))
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "prev_ids", tuple(self.prev_ids))

        by_id: dict[EntityId, Entity] = {}
        by_table: dict[EntityId, list[Any]] = {}
        for entity in self.entities:
            entity_id = entity.id
            by_id.setdefault(entity_id, entity)
            owner = entity_id.owner_table()
            if owner is not None and entity.kind is not EntityKind.TABLE:
                by_table.setdefault(owner, []).append(entity)
        object.__setattr__(self, "_by_id", MappingProxyType(by_id))
        object.__setattr__(
            self,
            "_by_table",
            MappingProxyType({key: tuple(items) for key, items in by_table.items()}),
        )

        report = CatalogValidator().validate(self)
        if not report.ok:
            raise ValidationError(report)

    # ---------- constructors ----------

    @classmethod
    def empty(cls, dialect: Dialect, snapshot_id: str = "") -> Catalog:
        return cls(dialect=dialect, entities=(), id=snapshot_id)

    # ---------- lookups ----------

    @property
    def default_schema(self) -> str:
        return DEFAULT_SCHEMAS[self.dialect]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._by_id

    def get(self, entity_id: EntityId) -> Entity | None:
        return self._by_id.get(entity_id)

    def of_kind(self, kind: EntityKind) -> tuple[Any, ...]:
        """Entities of one kind in declaration order."""
        return tuple(entity for entity in self.entities if entity.kind is kind)

    def tables(self) -> tuple[Table, ...]:
        return self.of_kind(EntityKind.TABLE)

    def table(self, schema: str, name: str) -> Table | None:
        found = self._by_id.get(table_id(schema, name))
        return found if isinstance(found, Table) else None

    def children(self, schema: str, table: str) -> tuple[TableScoped, ...]:
        """Table-scoped entities of one table in declaration order."""
        return self._by_table.get(table_id(schema, table), ())

    def columns(self, schema: str, table: str) -> tuple[Column, ...]:
        return tuple(c for c in self.children(schema, table) if isinstance(c, Column))

    def children_of_kind(self, schema: str, table: str, kind: EntityKind) -> tuple[Any, ...]:
        return tuple(c for c in self.children(schema, table) if c.kind is kind)
