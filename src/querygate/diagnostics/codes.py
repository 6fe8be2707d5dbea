"""Stable, searchable diagnostic code registry.

Ranges:
- Q00xx  Statement analysis (grammar fallback, ambiguity)
- Q01xx  Authentication / input
- Q02xx  Role permission checks
- Q03xx  Object grant checks
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DiagnosticCode:
    value: int

    def __str__(self) -> str:
        return f"Q{self.value:04d}"


# Statement analysis (Q00xx)
GRAMMAR_FALLBACK = DiagnosticCode(1)
MULTIPLE_STATEMENTS = DiagnosticCode(2)

# Authentication / input (Q01xx)
AUTH_REQUIRED = DiagnosticCode(101)
NO_STATEMENTS = DiagnosticCode(102)

# Role permission (Q02xx)
PERMISSION_DENIED = DiagnosticCode(201)

# Object grants (Q03xx)
GRANT_DENIED = DiagnosticCode(301)
GRANT_UNAVAILABLE = DiagnosticCode(302)
