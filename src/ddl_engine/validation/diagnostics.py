"""
Findings produced by catalog and plan validation.

A `Diagnostic` points at one entity through `entity_key`, the display form of
its EntityId (for example "column:public.users.id"), or at the whole catalog
when the key is "". Codes are stable UPPER_SNAKE_CASE words such as
"UNKNOWN_FOREIGN_TABLE"; tests and callers match on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

EntityKey: TypeAlias = str


class DiagnosticLevel(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    entity_key: EntityKey
    level: DiagnosticLevel
    code: str
    message: str
    hint: str = ""

    def describe(self) -> str:
        """Single line suitable for logs and exception messages."""
        where = self.entity_key or "<catalog>"
        line = f"[{self.level}] {self.code} at {where}: {self.message}"
        return f"{line} ({self.hint})" if self.hint else line


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Ordered diagnostics. `ok` is False as soon as one error is present."""

    diagnostics: tuple[Diagnostic, ...] = ()

    def _at(self, level: DiagnosticLevel) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.level == level)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return self._at(DiagnosticLevel.ERROR)

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return self._at(DiagnosticLevel.WARNING)

    def codes(self) -> list[str]:
        return [d.code for d in self.diagnostics]

    def merged(self, other: ValidationReport) -> ValidationReport:
        return ValidationReport(diagnostics=self.diagnostics + other.diagnostics)
