"""
Concrete catalog validation rules.

- Centralised RuleCode (StrEnum)
- One rule class per invariant; each exposes `code`, `description`, `check(catalog)`
- A 'default_rule_set()' factory returning the rules in evaluation order

Rules never raise for invalid input; they return diagnostics. `Catalog`
construction turns a non-ok report into a ValidationError.
"""

from __future__ import annotations

import re
from collections import Counter
from enum import StrEnum
from typing import TYPE_CHECKING

from src.ddl_engine.catalog.entities import (
    Column,
    EntityKind,
    ForeignKey,
    Index,
    PrimaryKey,
    UniqueConstraint,
    table_id,
)
from src.ddl_engine.validation.diagnostics import Diagnostic, DiagnosticLevel

if TYPE_CHECKING:
    from src.ddl_engine.catalog.catalog import Catalog

# ---------- Centralised rule codes (full words, no abbreviations) ----------


class RuleCode(StrEnum):
    """Stable codes for catalog diagnostics."""

    DUPLICATE_ENTITY = "DUPLICATE_ENTITY"
    MISSING_NAME = "MISSING_NAME"
    DUPLICATE_CONSTRAINT_NAME = "DUPLICATE_CONSTRAINT_NAME"
    UNKNOWN_TABLE = "UNKNOWN_TABLE"
    UNKNOWN_COLUMN = "UNKNOWN_COLUMN"
    UNKNOWN_FOREIGN_TABLE = "UNKNOWN_FOREIGN_TABLE"
    UNKNOWN_FOREIGN_COLUMN = "UNKNOWN_FOREIGN_COLUMN"
    FOREIGN_KEY_COLUMN_COUNT_MISMATCH = "FOREIGN_KEY_COLUMN_COUNT_MISMATCH"
    GENERATED_COLUMN_UNKNOWN_REFERENCE = "GENERATED_COLUMN_UNKNOWN_REFERENCE"
    GENERATED_COLUMN_FORWARD_REFERENCE = "GENERATED_COLUMN_FORWARD_REFERENCE"
    UNKNOWN_SCHEMA = "UNKNOWN_SCHEMA"
    DUPLICATE_RELATION_NAME = "DUPLICATE_RELATION_NAME"
    UNSUPPORTED_ENTITY_KIND = "UNSUPPORTED_ENTITY_KIND"


def _error(entity_key: object, code: RuleCode, message: str, hint: str = "") -> Diagnostic:
    return Diagnostic(
        entity_key=str(entity_key),
        level=DiagnosticLevel.ERROR,
        code=code.value,
        message=message,
        hint=hint,
    )


# ---------- identity ----------


class EntityIdsMustBeUnique:
    """Within one catalog, entity ids are unique."""

    code = RuleCode.DUPLICATE_ENTITY.value
    description = "Entity ids must be unique within a catalog."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        counts = Counter(entity.id for entity in catalog.entities)
        return [
            _error(entity_id, RuleCode.DUPLICATE_ENTITY, f"Declared {count} times")
            for entity_id, count in counts.items()
            if count > 1
        ]


class EntitiesMustBeNamed:
    """Every entity has a non-empty name (primary keys get one from the builder)."""

    code = RuleCode.MISSING_NAME.value
    description = "Entities must have a name."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for entity in catalog.entities:
            if not entity.name:
                findings.append(
                    _error(entity.id, RuleCode.MISSING_NAME, f"{entity.kind} has an empty name")
                )
        return findings


class ConstraintNamesMustBeUniquePerTable:
    """Index and constraint names share one namespace per table."""

    code = RuleCode.DUPLICATE_CONSTRAINT_NAME.value
    description = "Constraint and index names must be unique per table."

    _KINDS = (
        EntityKind.PRIMARY_KEY,
        EntityKind.INDEX,
        EntityKind.UNIQUE,
        EntityKind.CHECK,
        EntityKind.FOREIGN_KEY,
    )

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for table in catalog.tables():
            names: Counter[str] = Counter()
            for child in catalog.children(table.schema, table.name):
                if child.kind in self._KINDS:
                    names[child.name] += 1
            for name, count in names.items():
                if name and count > 1:
                    findings.append(
                        _error(
                            table.id,
                            RuleCode.DUPLICATE_CONSTRAINT_NAME,
                            f"Constraint or index name {name!r} is used {count} times",
                        )
                    )
        return findings


# ---------- references ----------


class TableReferencesMustResolve:
    """Every table-scoped entity belongs to a table of the same catalog."""

    code = RuleCode.UNKNOWN_TABLE.value
    description = "Table-scoped entities must reference an existing table."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for entity in catalog.entities:
            owner = entity.id.owner_table()
            if owner is None or entity.kind is EntityKind.TABLE:
                continue
            if catalog.get(owner) is None:
                findings.append(
                    _error(entity.id, RuleCode.UNKNOWN_TABLE, f"Table {owner.label!r} does not exist")
                )
        return findings


class ConstraintColumnsMustExist:
    """Primary key, unique, index and foreign key columns exist on their table."""

    code = RuleCode.UNKNOWN_COLUMN.value
    description = "Constraint columns must exist on the owning table."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for entity in catalog.entities:
            if isinstance(entity, (PrimaryKey, UniqueConstraint, ForeignKey)):
                names = entity.columns
            elif isinstance(entity, Index):
                names = entity.column_names
            else:
                continue
            if catalog.get(table_id(entity.schema, entity.table)) is None:
                continue  # reported by TableReferencesMustResolve
            known = {c.name for c in catalog.columns(entity.schema, entity.table)}
            missing = [name for name in names if name not in known]
            if missing:
                findings.append(
                    _error(entity.id, RuleCode.UNKNOWN_COLUMN, f"Unknown columns: {missing}")
                )
        return findings


class ForeignKeyTargetsMustResolve:
    """Foreign keys point at an existing table and columns, with matching arity."""

    code = RuleCode.UNKNOWN_FOREIGN_TABLE.value
    description = "Foreign key targets must exist."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for fk in catalog.of_kind(EntityKind.FOREIGN_KEY):
            if len(fk.columns) != len(fk.columns_to) or not fk.columns:
                findings.append(
                    _error(
                        fk.id,
                        RuleCode.FOREIGN_KEY_COLUMN_COUNT_MISMATCH,
                        f"{len(fk.columns)} column(s) reference {len(fk.columns_to)} column(s)",
                    )
                )
            if catalog.get(fk.target_id) is None:
                findings.append(
                    _error(
                        fk.id,
                        RuleCode.UNKNOWN_FOREIGN_TABLE,
                        f"Referenced table {fk.target_id.label!r} does not exist",
                    )
                )
                continue
            known = {c.name for c in catalog.columns(fk.schema_to, fk.table_to)}
            missing = [name for name in fk.columns_to if name not in known]
            if missing:
                findings.append(
                    _error(
                        fk.id,
                        RuleCode.UNKNOWN_FOREIGN_COLUMN,
                        f"Referenced columns do not exist on {fk.table_to!r}: {missing}",
                    )
                )
        return findings


_QUOTED_IDENTIFIER = re.compile(r'`((?:[^`]|``)+)`|"((?:[^"]|"")+)"|\[((?:[^\]]|\]\])+)\]')


def referenced_identifiers(expression: str) -> list[tuple[str | None, str]]:
    """
    Quoted identifiers in a generated-column expression as (qualifier, name).

    Only quoted identifiers are recognised; bare words are ambiguous with
    functions and keywords. A `table`.`column` pair yields ('table', 'column').
    """
    matches = list(_QUOTED_IDENTIFIER.finditer(expression))
    refs: list[tuple[str | None, str]] = []
    skip_next = False
    for i, match in enumerate(matches):
        if skip_next:
            skip_next = False
            continue
        name = _identifier_text(match)
        following = matches[i + 1] if i + 1 < len(matches) else None
        if following is not None and expression[match.end() : following.start()] == ".":
            refs.append((name, _identifier_text(following)))
            skip_next = True
        else:
            refs.append((None, name))
    return refs


def _identifier_text(match: re.Match[str]) -> str:
    return next(group for group in match.groups() if group is not None)


class GeneratedColumnsMustReferenceDeclaredColumns:
    """
    Generated expressions reference only columns of their own table, and any
    generated column they reference must be declared before them.
    """

    code = RuleCode.GENERATED_COLUMN_FORWARD_REFERENCE.value
    description = "Generated columns must reference declared columns."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        findings: list[Diagnostic] = []
        for table in catalog.tables():
            columns = catalog.columns(table.schema, table.name)
            position = {c.name: i for i, c in enumerate(columns)}
            for i, column in enumerate(columns):
                if column.generated is None:
                    continue
                for qualifier, name in referenced_identifiers(column.generated.expression):
                    if qualifier is not None and qualifier != table.name:
                        continue  # another relation; not checked here
                    findings.extend(_check_reference(column, name, i, position, columns))
        return findings


def _check_reference(
    column: Column,
    name: str,
    index: int,
    position: dict[str, int],
    columns: tuple[Column, ...],
) -> list[Diagnostic]:
    if name not in position:
        return [
            _error(
                column.id,
                RuleCode.GENERATED_COLUMN_UNKNOWN_REFERENCE,
                f"Generated expression references unknown column {name!r}",
            )
        ]
    target = columns[position[name]]
    if target.generated is not None and position[name] >= index:
        return [
            _error(
                column.id,
                RuleCode.GENERATED_COLUMN_FORWARD_REFERENCE,
                f"Generated expression references generated column {name!r} declared later",
                hint="Declare referenced generated columns first.",
            )
        ]
    return []


class SchemasMustBeDeclared:
    """On dialects with schemas, every non-default schema in use is declared."""

    code = RuleCode.UNKNOWN_SCHEMA.value
    description = "Non-default schemas must be declared."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        if not catalog.dialect.has_schemas:
            return []
        declared = {entity.name for entity in catalog.of_kind(EntityKind.SCHEMA)}
        findings: list[Diagnostic] = []
        for entity in catalog.entities:
            if entity.kind is EntityKind.SCHEMA or entity.id.table:
                continue
            schema = entity.schema
            if schema and schema != catalog.default_schema and schema not in declared:
                findings.append(
                    _error(entity.id, RuleCode.UNKNOWN_SCHEMA, f"Schema {schema!r} is not declared")
                )
        return findings


class RelationNamesMustNotClash:
    """A view cannot share its name with a table in the same schema."""

    code = RuleCode.DUPLICATE_RELATION_NAME.value
    description = "Views and tables share one namespace."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        tables = {(t.schema, t.name) for t in catalog.tables()}
        return [
            _error(view.id, RuleCode.DUPLICATE_RELATION_NAME, f"A table named {view.name!r} exists")
            for view in catalog.of_kind(EntityKind.VIEW)
            if (view.schema, view.name) in tables
        ]


class EntityKindsMustBeSupported:
    """Standalone enums exist only on dialects with enum types."""

    code = RuleCode.UNSUPPORTED_ENTITY_KIND.value
    description = "Entity kinds must be supported by the dialect."

    def check(self, catalog: Catalog) -> list[Diagnostic]:
        if catalog.dialect.has_enums:
            return []
        return [
            _error(
                enum.id,
                RuleCode.UNSUPPORTED_ENTITY_KIND,
                f"{catalog.dialect} has no standalone enum types",
                hint="Declare the enum inline in the column type.",
            )
            for enum in catalog.of_kind(EntityKind.ENUM)
        ]


def default_rule_set() -> tuple[object, ...]:
    """Rules in evaluation order."""
    return (
        EntityIdsMustBeUnique(),
        EntitiesMustBeNamed(),
        ConstraintNamesMustBeUniquePerTable(),
        TableReferencesMustResolve(),
        ConstraintColumnsMustExist(),
        ForeignKeyTargetsMustResolve(),
        GeneratedColumnsMustReferenceDeclaredColumns(),
        SchemasMustBeDeclared(),
        RelationNamesMustNotClash(),
        EntityKindsMustBeSupported(),
    )
