"""
Diff engine: `from` catalog + `to` catalog -> migration statements.

Principles
----------
- Pure: catalogs in, statements out. Rename answers come from the resolver
  value passed to `diff`; nothing is remembered between calls.
- Renames are resolved first (schemas, enums, tables, views, then columns per
  table) and applied to the `from` side, so that every later comparison is a
  plain match by id.
- Column changes go through the dialect's ColumnChangePolicy (diff/policy.py).
- Constraints and indexes are matched by name only; a changed definition is a
  drop plus an add.

Output
------
Flat list of statements: renames first, then creates and alters in `to`
declaration order, then drops in `from` declaration order. DependencyOrderer
turns it into the final sequence.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from src.constants import DEFAULT_SCHEMAS
from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.catalog.entities import (
    Check,
    Column,
    Entity,
    EntityId,
    EntityKind,
    Enum,
    ForeignKey,
    Index,
    IndexColumn,
    PrimaryKey,
    Schema,
    Table,
    UniqueConstraint,
    View,
)
from src.ddl_engine.diff.policy import ChangeOutcome, changed_attributes, policy_for
from src.ddl_engine.diff.resolver import NoRenames, RenameCandidate, RenameResolver
from src.ddl_engine.errors import AmbiguousNameError, ResolverContractViolation
from src.ddl_engine.plan.statements import (
    AddColumn,
    AddForeignKey,
    AddPrimaryKey,
    AddUnique,
    AlterColumn,
    AlterEnum,
    AlterView,
    CreateCheck,
    CreateEnum,
    CreateIndex,
    CreateSchema,
    CreateTable,
    CreateView,
    DropCheck,
    DropColumn,
    DropEnum,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropSchema,
    DropTable,
    DropUnique,
    DropView,
    MoveEnum,
    MoveTable,
    RecreateColumn,
    RecreateEnum,
    RecreateTable,
    RenameColumn,
    RenameEnum,
    RenameSchema,
    RenameTable,
    RenameView,
    Statement,
)
from src.enums import Dialect
from src.logger import LOGGER

QualifiedName = tuple[str, str]


# ---------- public API ----------


class Differ:
    """
    Compute the statements that move a `from` catalog to a `to` catalog.

    Workflow
    --------
    1. Resolve renames group by group through the RenameResolver.
    2. Rewrite the `from` entities under their new names.
    3. Compare schemas, enums, tables (with their children) and views by id.
    """

    def diff(
        self,
        source: Catalog,
        target: Catalog,
        resolver: RenameResolver | None = None,
    ) -> list[Statement]:
        if source.dialect is not target.dialect:
            raise ValueError(
                f"Cannot diff catalogs of different dialects: {source.dialect} -> {target.dialect}"
            )
        return _DiffSession(source, target, resolver or NoRenames()).run()


# ---------- session (state for one diff call) ----------


class _DiffSession:
    def __init__(self, source: Catalog, target: Catalog, resolver: RenameResolver) -> None:
        self.dialect: Dialect = target.dialect
        self.policy = policy_for(self.dialect)
        self.resolver = resolver
        self.old_entities: list[Entity] = _managed(source.entities)
        self.new_entities: list[Entity] = _managed(target.entities)

        self.schema_map: dict[str, str] = {}
        self.enum_map: dict[QualifiedName, QualifiedName] = {}
        self.table_map: dict[QualifiedName, QualifiedName] = {}
        self.view_map: dict[QualifiedName, QualifiedName] = {}
        self.column_map: dict[tuple[str, str, str], str] = {}
        self.enum_type_map: dict[str, str] = {}

        self.rebuilt: set[EntityId] = set()

        self.renames: list[Statement] = []
        self.creates: list[Statement] = []
        self.drops: list[Statement] = []

    def run(self) -> list[Statement]:
        self._resolve_schemas()
        self._resolve_top_level(EntityKind.ENUM, self.enum_map)
        self._resolve_top_level(EntityKind.TABLE, self.table_map)
        self._resolve_top_level(EntityKind.VIEW, self.view_map)
        self._resolve_columns()

        old = [self._translate(entity) for entity in self.old_entities]
        new = self.new_entities

        if self.dialect.has_schemas:
            self._diff_schemas(old, new)
        self._diff_enums(old, new)
        self._diff_tables(old, new)
        self._diff_views(old, new)
        return [*self.renames, *self.creates, *self.drops]

    # ---------- rename resolution ----------

    def _confirm_renames(
        self, removed: Sequence[EntityId], added: Sequence[EntityId]
    ) -> list[tuple[EntityId, EntityId]]:
        """Ask the resolver until it declines or one side of the group is exhausted."""
        remaining_from = list(removed)
        remaining_to = list(added)
        confirmed: list[tuple[EntityId, EntityId]] = []
        confirmed_targets: set[EntityId] = set()

        while remaining_from and remaining_to:
            candidates = [RenameCandidate(f, t) for f in remaining_from for t in remaining_to]
            answer = self.resolver.resolve(candidates)
            if answer is None:
                break
            if answer.to_id in confirmed_targets:
                raise AmbiguousNameError(
                    f"Two renames target {answer.to_id.label!r}",
                    entity_ids=[answer.from_id, answer.to_id],
                )
            if answer not in candidates:
                raise ResolverContractViolation(
                    f"Resolver confirmed {answer.label!r}, which was not offered",
                    entity_ids=[answer.from_id, answer.to_id],
                )
            LOGGER.debug("Rename confirmed: %s %s", answer.from_id.kind, answer.label)
            confirmed.append((answer.from_id, answer.to_id))
            confirmed_targets.add(answer.to_id)
            remaining_from.remove(answer.from_id)
            remaining_to.remove(answer.to_id)
        return confirmed

    def _resolve_schemas(self) -> None:
        old_names = [e.name for e in self.old_entities if isinstance(e, Schema)]
        new_names = [e.name for e in self.new_entities if isinstance(e, Schema)]
        removed = [Schema(name).id for name in old_names if name not in new_names]
        added = [Schema(name).id for name in new_names if name not in old_names]
        for from_id, to_id in self._confirm_renames(removed, added):
            self.schema_map[from_id.name] = to_id.name
            if self.dialect.has_schemas:
                self.renames.append(RenameSchema(from_name=from_id.name, to_name=to_id.name))

    def _resolve_top_level(
        self, kind: EntityKind, mapping: dict[QualifiedName, QualifiedName]
    ) -> None:
        old = [e for e in self.old_entities if e.kind is kind]
        new = [e for e in self.new_entities if e.kind is kind]
        new_keys = {(e.schema, e.name) for e in new}
        old_keys = {(self._schema(e.schema), e.name) for e in old}
        removed = [e.id for e in old if (self._schema(e.schema), e.name) not in new_keys]
        added = [e.id for e in new if (e.schema, e.name) not in old_keys]

        for from_id, to_id in self._confirm_renames(removed, added):
            moved_from = self._schema(from_id.schema)
            if kind is EntityKind.VIEW and (
                self.dialect is Dialect.SQLITE or moved_from != to_id.schema
            ):
                # no in-place rename: falls through to drop + create
                continue
            mapping[(from_id.schema, from_id.name)] = (to_id.schema, to_id.name)
            self.renames.extend(self._rename_statements(kind, from_id, to_id, moved_from))
            if kind is EntityKind.ENUM:
                self._remember_enum_rename(from_id, to_id)

    def _rename_statements(
        self, kind: EntityKind, from_id: EntityId, to_id: EntityId, schema: str
    ) -> list[Statement]:
        statements: list[Statement] = []
        renamed = from_id.name != to_id.name
        moved = schema != to_id.schema
        if kind is EntityKind.TABLE:
            if renamed:
                statements.append(
                    RenameTable(
                        schema=schema,
                        from_name=from_id.name,
                        to_name=to_id.name,
                        defaulted_columns=tuple(
                            c.name for c in self._constrained_defaults(from_id.schema, from_id.name)
                        ),
                    )
                )
            if moved:
                statements.append(MoveTable(name=to_id.name, from_schema=schema, to_schema=to_id.schema))
        elif kind is EntityKind.ENUM:
            if renamed:
                statements.append(RenameEnum(schema=schema, from_name=from_id.name, to_name=to_id.name))
            if moved:
                statements.append(MoveEnum(name=to_id.name, from_schema=schema, to_schema=to_id.schema))
        elif kind is EntityKind.VIEW and renamed:
            view = next(e for e in self.new_entities if e.id == to_id)
            statements.append(
                RenameView(
                    schema=schema,
                    from_name=from_id.name,
                    to_name=to_id.name,
                    materialized=view.materialized,
                )
            )
        return statements

    def _remember_enum_rename(self, from_id: EntityId, to_id: EntityId) -> None:
        self.enum_type_map[from_id.name.lower()] = to_id.name.lower()
        if from_id.schema:
            self.enum_type_map[f"{from_id.schema}.{from_id.name}".lower()] = (
                f"{to_id.schema}.{to_id.name}".lower()
            )

    def _resolve_columns(self) -> None:
        new_columns: dict[QualifiedName, list[Column]] = {}
        for entity in self.new_entities:
            if isinstance(entity, Column):
                new_columns.setdefault((entity.schema, entity.table), []).append(entity)

        old_columns: dict[QualifiedName, list[Column]] = {}
        for entity in self.old_entities:
            if isinstance(entity, Column):
                old_columns.setdefault((entity.schema, entity.table), []).append(entity)

        for (schema, table), columns in old_columns.items():
            target_key = self._table_key(schema, table)
            targets = new_columns.get(target_key)
            if targets is None:
                continue
            target_names = {c.name for c in targets}
            old_names = {c.name for c in columns}
            removed = [c.id for c in columns if c.name not in target_names]
            added = [c.id for c in targets if c.name not in old_names]
            defaulted = {c.name for c in self._constrained_defaults(schema, table)}
            for from_id, to_id in self._confirm_renames(removed, added):
                self.column_map[(schema, table, from_id.name)] = to_id.name
                self.renames.append(
                    RenameColumn(
                        schema=target_key[0],
                        table=target_key[1],
                        from_name=from_id.name,
                        to_name=to_id.name,
                        has_default_constraint=from_id.name in defaulted,
                    )
                )

    def _constrained_defaults(self, schema: str, table: str) -> list[Column]:
        """Columns of a `from` table whose default is a named constraint (MSSQL)."""
        if self.dialect is not Dialect.MSSQL:
            return []
        return [
            e
            for e in self.old_entities
            if isinstance(e, Column)
            and (e.schema, e.table) == (schema, table)
            and e.default is not None
            and e.generated is None
        ]

    # ---------- translation of the `from` side ----------

    def _schema(self, schema: str) -> str:
        return self.schema_map.get(schema, schema)

    def _table_key(self, schema: str, table: str) -> QualifiedName:
        return self.table_map.get((schema, table), (self._schema(schema), table))

    def _column_name(self, schema: str, table: str, name: str) -> str:
        return self.column_map.get((schema, table, name), name)

    def _column_names(self, schema: str, table: str, names: Iterable[str]) -> tuple[str, ...]:
        return tuple(self._column_name(schema, table, name) for name in names)

    def _translate_type(self, column_type: str) -> str:
        if not self.enum_type_map:
            return column_type
        base = column_type.removesuffix("[]")
        renamed = self.enum_type_map.get(base.lower())
        if renamed is None:
            return column_type
        return renamed + column_type[len(base):]

    def _translate(self, entity: Entity) -> Entity:
        """`entity` as it is named once every confirmed rename has run."""
        if isinstance(entity, Schema):
            return replace(entity, name=self._schema(entity.name))
        if isinstance(entity, Enum):
            schema, name = self.enum_map.get(
                (entity.schema, entity.name), (self._schema(entity.schema), entity.name)
            )
            return replace(entity, schema=schema, name=name)
        if isinstance(entity, Table):
            schema, name = self._table_key(entity.schema, entity.name)
            return replace(entity, schema=schema, name=name)
        if isinstance(entity, View):
            schema, name = self.view_map.get(
                (entity.schema, entity.name), (self._schema(entity.schema), entity.name)
            )
            return replace(entity, schema=schema, name=name)

        schema, table = self._table_key(entity.schema, entity.table)
        if isinstance(entity, Column):
            return replace(
                entity,
                schema=schema,
                table=table,
                name=self._column_name(entity.schema, entity.table, entity.name),
                type=self._translate_type(entity.type),
            )
        if isinstance(entity, Index):
            columns = tuple(
                c
                if c.is_expression
                else IndexColumn(
                    value=self._column_name(entity.schema, entity.table, c.value),
                    is_expression=False,
                    ascending=c.ascending,
                )
                for c in entity.columns
            )
            return replace(entity, schema=schema, table=table, columns=columns)
        if isinstance(entity, (PrimaryKey, UniqueConstraint)):
            columns = self._column_names(entity.schema, entity.table, entity.columns)
            return replace(entity, schema=schema, table=table, columns=columns)
        if isinstance(entity, ForeignKey):
            schema_to, table_to = self._table_key(entity.schema_to, entity.table_to)
            return replace(
                entity,
                schema=schema,
                table=table,
                columns=self._column_names(entity.schema, entity.table, entity.columns),
                schema_to=schema_to,
                table_to=table_to,
                columns_to=self._column_names(entity.schema_to, entity.table_to, entity.columns_to),
            )
        return replace(entity, schema=schema, table=table)

    # ---------- schemas ----------

    def _diff_schemas(self, old: list[Entity], new: list[Entity]) -> None:
        default = DEFAULT_SCHEMAS[self.dialect]
        old_names = [e.name for e in old if isinstance(e, Schema) and e.name != default]
        new_names = [e.name for e in new if isinstance(e, Schema) and e.name != default]
        self.creates.extend(CreateSchema(name=n) for n in new_names if n not in old_names)
        self.drops.extend(DropSchema(name=n) for n in old_names if n not in new_names)

    # ---------- enums ----------

    def _diff_enums(self, old: list[Entity], new: list[Entity]) -> None:
        old_enums = {e.id: e for e in old if isinstance(e, Enum)}
        new_enums = {e.id: e for e in new if isinstance(e, Enum)}

        for enum_id, enum in new_enums.items():
            before = old_enums.get(enum_id)
            if before is None:
                self.creates.append(CreateEnum(enum=enum))
            elif before.values != enum.values:
                self.creates.append(self._enum_change(before, enum, old, new))
        for enum_id, enum in old_enums.items():
            if enum_id not in new_enums:
                self.drops.append(DropEnum(enum=enum))

    def _enum_change(
        self, before: Enum, after: Enum, old: list[Entity], new: list[Entity]
    ) -> Statement:
        added = enum_additions(before.values, after.values)
        if added is not None:
            return AlterEnum(enum=after, added=added)
        existing = {e.id for e in old if isinstance(e, Column)}
        columns = tuple(
            c
            for c in new
            if isinstance(c, Column) and c.id in existing and _uses_enum(c.type, after)
        )
        return RecreateEnum(before=before, after=after, columns=columns)

    # ---------- tables ----------

    def _diff_tables(self, old: list[Entity], new: list[Entity]) -> None:
        old_tables = [e for e in old if isinstance(e, Table)]
        new_tables = [e for e in new if isinstance(e, Table)]
        old_by_id = {t.id: t for t in old_tables}
        new_ids = {t.id for t in new_tables}
        old_children = _children_by_table(old)
        new_children = _children_by_table(new)

        for table in new_tables:
            children = new_children.get(table.id, [])
            if table.id not in old_by_id:
                self._create_table(table, children)
            else:
                self._alter_table(table, old_children.get(table.id, []), children)

        for table in old_tables:
            if table.id in new_ids:
                if table.id not in self.rebuilt:
                    self._drop_columns(
                        old_children.get(table.id, []), new_children.get(table.id, [])
                    )
                continue
            foreign_keys = tuple(
                fk for fk in old_children.get(table.id, []) if isinstance(fk, ForeignKey)
            )
            if self.dialect is Dialect.SQLITE:
                self.drops.append(DropTable(table=table, foreign_keys=foreign_keys))
                continue
            self.drops.extend(DropForeignKey(foreign_key=fk) for fk in foreign_keys)
            self.drops.append(DropTable(table=table))

    def _create_table(self, table: Table, children: list[Any]) -> None:
        parts = _TableParts.of(children)
        inline_fks = self.dialect is Dialect.SQLITE
        self.creates.append(
            CreateTable(
                table=table,
                columns=parts.columns,
                primary_key=parts.primary_key,
                uniques=parts.uniques,
                checks=parts.checks,
                foreign_keys=parts.foreign_keys if inline_fks else (),
            )
        )
        if not inline_fks:
            self.creates.extend(AddForeignKey(foreign_key=fk) for fk in parts.foreign_keys)
        self.creates.extend(CreateIndex(index=index) for index in parts.indexes)

    def _alter_table(self, table: Table, old_children: list[Any], new_children: list[Any]) -> None:
        before = _TableParts.of(old_children)
        after = _TableParts.of(new_children)
        statements: list[Statement] = []
        rebuild = False

        old_columns = {c.name: c for c in before.columns}
        for column in after.columns:
            previous = old_columns.get(column.name)
            if previous is None:
                rebuild = rebuild or self.policy.add_requires_rebuild(column)
                statements.append(AddColumn(column=column))
                continue
            changed = changed_attributes(previous, column, self.dialect)
            if not changed:
                continue
            outcome = self.policy.classify(previous, column, changed)
            if outcome is ChangeOutcome.RECREATE_TABLE:
                rebuild = True
            elif outcome is ChangeOutcome.RECREATE_COLUMN:
                statements.append(RecreateColumn(before=previous, after=column))
            else:
                statements.append(AlterColumn(before=previous, after=column, changes=changed))

        constraint_changes = self._constraint_changes(before, after)
        if self.dialect is Dialect.SQLITE and constraint_changes:
            rebuild = True

        if rebuild:
            self.rebuilt.add(table.id)
            self.creates.append(self._recreate_table(table, before, after))
            self.creates.extend(CreateIndex(index=index) for index in after.indexes)
            return

        self.creates.extend(statements)
        self.creates.extend(constraint_changes)
        self.creates.extend(self._index_changes(before, after))

    def _drop_columns(self, old_children: list[Any], new_children: list[Any]) -> None:
        new_names = {c.name for c in new_children if isinstance(c, Column)}
        self.drops.extend(
            DropColumn(column=c)
            for c in old_children
            if isinstance(c, Column) and c.name not in new_names
        )

    def _constraint_changes(self, before: _TableParts, after: _TableParts) -> list[Statement]:
        """Drop/add pairs for primary key, unique, check and foreign key changes."""
        statements: list[Statement] = []
        if before.primary_key != after.primary_key:
            if before.primary_key is not None:
                statements.append(DropPrimaryKey(primary_key=before.primary_key))
            if after.primary_key is not None:
                statements.append(AddPrimaryKey(primary_key=after.primary_key))
        statements.extend(_named_changes(before.uniques, after.uniques, DropUnique, AddUnique, "unique"))
        statements.extend(_named_changes(before.checks, after.checks, DropCheck, CreateCheck, "check"))
        statements.extend(
            _named_changes(
                before.foreign_keys, after.foreign_keys, DropForeignKey, AddForeignKey, "foreign_key"
            )
        )
        return statements

    @staticmethod
    def _index_changes(before: _TableParts, after: _TableParts) -> list[Statement]:
        return _named_changes(before.indexes, after.indexes, DropIndex, CreateIndex, "index")

    def _recreate_table(self, table: Table, before: _TableParts, after: _TableParts) -> RecreateTable:
        old_names = {c.name for c in before.columns}
        copied = tuple(
            c.name for c in after.columns if c.name in old_names and c.generated is None
        )
        return RecreateTable(
            table=table,
            columns=after.columns,
            copied_columns=copied,
            primary_key=after.primary_key,
            uniques=after.uniques,
            checks=after.checks,
            foreign_keys=after.foreign_keys,
        )

    # ---------- views ----------

    def _diff_views(self, old: list[Entity], new: list[Entity]) -> None:
        old_views = {e.id: e for e in old if isinstance(e, View)}
        new_views = {e.id: e for e in new if isinstance(e, View)}
        for view_id, view in new_views.items():
            before = old_views.get(view_id)
            if before is None:
                self.creates.append(CreateView(view=view))
            elif before != view:
                self.creates.append(AlterView(before=before, after=view))
        for view_id, view in old_views.items():
            if view_id not in new_views:
                self.drops.append(DropView(view=view))


# ---------- helpers ----------


class _TableParts:
    """Children of one table split by kind, in declaration order."""

    def __init__(self) -> None:
        self.columns: tuple[Column, ...] = ()
        self.primary_key: PrimaryKey | None = None
        self.uniques: tuple[UniqueConstraint, ...] = ()
        self.checks: tuple[Check, ...] = ()
        self.foreign_keys: tuple[ForeignKey, ...] = ()
        self.indexes: tuple[Index, ...] = ()

    @classmethod
    def of(cls, children: Iterable[Any]) -> _TableParts:
        parts = cls()
        children = list(children)
        parts.columns = tuple(c for c in children if isinstance(c, Column))
        parts.primary_key = next((c for c in children if isinstance(c, PrimaryKey)), None)
        parts.uniques = tuple(c for c in children if isinstance(c, UniqueConstraint))
        parts.checks = tuple(c for c in children if isinstance(c, Check))
        parts.foreign_keys = tuple(c for c in children if isinstance(c, ForeignKey))
        parts.indexes = tuple(c for c in children if isinstance(c, Index))
        return parts


def _named_changes(
    before: Sequence[Any],
    after: Sequence[Any],
    drop: type[Statement],
    add: type[Statement],
    field_name: str,
) -> list[Statement]:
    """Drops (in `before` order) then adds (in `after` order) for a set of named children."""
    old = {item.name: item for item in before}
    new = {item.name: item for item in after}
    drops = [
        drop(**{field_name: item}) for item in before if new.get(item.name) != item
    ]
    adds = [add(**{field_name: item}) for item in after if old.get(item.name) != item]
    return [*drops, *adds]


def _managed(entities: Iterable[Entity]) -> list[Entity]:
    """Entities the engine manages: views marked `is_existing` are left alone."""
    return [e for e in entities if not (isinstance(e, View) and e.is_existing)]


def _children_by_table(entities: Iterable[Entity]) -> dict[EntityId, list[Any]]:
    children: dict[EntityId, list[Any]] = {}
    for entity in entities:
        if entity.kind in (EntityKind.SCHEMA, EntityKind.ENUM, EntityKind.TABLE, EntityKind.VIEW):
            continue
        owner = entity.id.owner_table()
        if owner is not None:
            children.setdefault(owner, []).append(entity)
    return children


def _uses_enum(column_type: str, enum: Enum) -> bool:
    base = column_type.removesuffix("[]").lower()
    names = {enum.name.lower()}
    if enum.schema:
        names.add(f"{enum.schema}.{enum.name}".lower())
        names.add(f'"{enum.schema}"."{enum.name}"'.lower())
    return base in names


def enum_additions(
    before: Sequence[str], after: Sequence[str]
) -> tuple[tuple[str, str | None], ...] | None:
    """
    Values added to an enum as (value, before) pairs, or None when values were
    removed or reordered (in-place ADD VALUE cannot express that).
    """
    kept = [value for value in after if value in before]
    if kept != list(before):
        return None
    added: list[tuple[str, str | None]] = []
    for position, value in enumerate(after):
        if value in before:
            continue
        following = next((v for v in after[position + 1 :] if v in before), None)
        added.append((value, following))
    return tuple(added)
