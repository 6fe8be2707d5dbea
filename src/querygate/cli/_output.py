"""Shared output formatting for CLI commands."""

from __future__ import annotations

import json

from querygate.access._types import ValidationResult
from querygate.diagnostics.render import (
    render_json,
    render_parse_json,
    render_parse_text,
    render_text,
)
from querygate.policy._types import ParsedStatement, TableReference


def format_result(result: ValidationResult, *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps(render_json(result), indent=2)
    return render_text(result)


def format_parsed(
    statements: list[tuple[ParsedStatement, list[TableReference]]],
    *,
    output_format: str = "text",
) -> str:
    if output_format == "json":
        data = [
            render_parse_json(parsed, resolved, i)
            for i, (parsed, resolved) in enumerate(statements)
        ]
        return json.dumps({"statements": data}, indent=2)
    return "\n".join(
        render_parse_text(parsed, resolved, i)
        for i, (parsed, resolved) in enumerate(statements)
    )


def format_statements(statements: list[str], *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps({"statements": statements}, indent=2)
    return "\n".join(f"[{i}] {s}" for i, s in enumerate(statements))
