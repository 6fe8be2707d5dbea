"""Render validation and parse results for terminal (text) and agent (JSON) output."""

from __future__ import annotations

from querygate.access._types import ValidationResult
from querygate.diagnostics.types import Diagnostic
from querygate.policy._types import ParsedStatement, TableReference
from querygate.policy.classify import classify_access_type


def render_json(result: ValidationResult) -> dict:
    """Render a ValidationResult as a JSON-serializable dict."""
    return {
        "decision": "allow" if result.allowed else "deny",
        "allowed": result.allowed,
        "reason": result.reason,
        "statement_index": result.statement_index,
        "code": str(result.code) if result.code is not None else None,
    }


def render_text(result: ValidationResult) -> str:
    """Render a ValidationResult as human-readable text."""
    if result.allowed:
        return "decision: allow"
    lines = ["decision: deny"]
    diagnostic = result.diagnostic
    if diagnostic is None:
        lines.append(f"error: {result.reason or ''}")
    else:
        lines.extend(_diagnostic_lines(diagnostic, indent=""))
    return "\n".join(lines)


def render_parse_json(
    parsed: ParsedStatement, resolved: list[TableReference], index: int
) -> dict:
    return {
        "index": index,
        "text": parsed.text,
        "operation_kind": parsed.operation_kind.value,
        "access_type": classify_access_type(parsed.operation_kind).value,
        "tables": [_table_to_dict(t) for t in parsed.tables],
        "resolved": [_table_to_dict(t) for t in resolved],
        "used_fallback": parsed.used_fallback,
        "diagnostics": [_diagnostic_to_dict(d) for d in parsed.diagnostics],
    }


def render_parse_text(
    parsed: ParsedStatement, resolved: list[TableReference], index: int
) -> str:
    access = classify_access_type(parsed.operation_kind).value
    lines = [f"[{index}] {parsed.operation_kind.value} ({access}): {parsed.text}"]
    if parsed.tables:
        lines.append(f"  tables: {', '.join(t.qualified_name for t in parsed.tables)}")
    if resolved:
        lines.append(f"  resolved: {', '.join(t.qualified_name for t in resolved)}")
    for d in parsed.diagnostics:
        lines.extend(_diagnostic_lines(d, indent="  "))
    return "\n".join(lines)


def _table_to_dict(t: TableReference) -> dict:
    return {"database": t.database, "table": t.table}


def _diagnostic_to_dict(d: Diagnostic) -> dict:
    return {
        "level": d.level.name.lower(),
        "code": str(d.code),
        "message": d.message,
        "notes": d.notes,
    }


def _diagnostic_lines(d: Diagnostic, *, indent: str) -> list[str]:
    lines = [f"{indent}{d.level.name.lower()}[{d.code}]: {d.message}"]
    lines.extend(f"{indent}  = note: {note}" for note in d.notes)
    return lines
