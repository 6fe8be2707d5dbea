"""Diagnostic system: types, codes, and rendering."""

from querygate.diagnostics.codes import DiagnosticCode
from querygate.diagnostics.types import Diagnostic, Level

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "Level",
]
