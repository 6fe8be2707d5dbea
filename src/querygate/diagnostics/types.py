"""Rust compiler-inspired diagnostics for statement analysis and access decisions.

Analysis never raises on user input: everything worth reporting about a
statement (grammar fallback, ambiguous batches, denials) is a Diagnostic
value with a stable code, so callers and audit logs can match on it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from querygate.diagnostics.codes import DiagnosticCode


class Level(enum.IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2


@dataclass
class Diagnostic:
    level: Level
    code: DiagnosticCode
    message: str
    notes: list[str] = field(default_factory=list)

    # -- Builder classmethods ---------------------------------------------------

    @classmethod
    def error(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.ERROR, code=code, message=message)

    @classmethod
    def warning(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.WARNING, code=code, message=message)

    @classmethod
    def info(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.INFO, code=code, message=message)

    # -- Builder chain methods --------------------------------------------------

    def note(self, note: str) -> Diagnostic:
        self.notes.append(note)
        return self

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
