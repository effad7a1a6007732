"""
Error taxonomy for the DDL engine.

Every error carries the ids of the offending entities (as display strings) so
tooling can point at the exact table, column or constraint.

- ValidationError: malformed catalog; carries the full ValidationReport.
- AmbiguousNameError / ResolverContractViolation: rename resolution could not
  produce a consistent mapping.
- UnsupportedConstructError: a dialect renderer cannot express a statement.
- UnsafePlanError: strict plan validation refused the plan.
- SnapshotFormatError / ConfigurationError: unreadable input files.

Conflicts found by the merge analysis are results, not errors.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.ddl_engine.validation.diagnostics import ValidationReport


class DdlEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, entity_ids: Iterable[object] = ()) -> None:
        super().__init__(message)
        self.entity_ids: tuple[str, ...] = tuple(str(entity_id) for entity_id in entity_ids)


class ValidationError(DdlEngineError):
    """A catalog failed validation."""

    def __init__(self, report: ValidationReport) -> None:
        errors = report.errors
        lines = [d.describe() for d in errors]
        super().__init__(
            "Catalog validation failed:\n  " + "\n  ".join(lines),
            entity_ids=[d.entity_key for d in errors if d.entity_key],
        )
        self.report = report


class AmbiguousNameError(DdlEngineError):
    """Two confirmed renames target the same name."""


class ResolverContractViolation(DdlEngineError):
    """The rename resolver answered outside the candidates it was offered."""


class UnsupportedConstructError(DdlEngineError):
    """A dialect cannot express the requested statement."""


class UnsafePlanError(DdlEngineError):
    """Plan violates safety rules."""


class SnapshotFormatError(DdlEngineError):
    """A snapshot document could not be decoded."""


class ConfigurationError(DdlEngineError):
    """A project configuration file is invalid."""
