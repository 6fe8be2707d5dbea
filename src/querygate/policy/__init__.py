"""Statement analysis: split, parse, classify, extract tables."""

from __future__ import annotations

from dataclasses import dataclass

import sqlglot
from sqlglot import exp

from querygate.diagnostics import Diagnostic, codes
from querygate.policy._types import AccessType, OperationKind, ParsedStatement, TableReference
from querygate.policy.classify import classify_access_type, classify_keyword, classify_tree
from querygate.policy.reconcile import resolve_tables
from querygate.policy.split import split_statements
from querygate.policy.tables import extract_tables, extract_tables_heuristic

DEFAULT_DIALECT = "clickhouse"


@dataclass(frozen=True)
class Parsed:
    """Grammar outcome: the statement trees sqlglot produced."""

    trees: tuple[exp.Expression, ...]


@dataclass(frozen=True)
class Heuristic:
    """Grammar outcome: no usable tree, fall back to keyword/regex analysis."""

    reason: str


GrammarOutcome = Parsed | Heuristic


def grammar_parse(sql: str, dialect: str | None = DEFAULT_DIALECT) -> GrammarOutcome:
    """Parse ``sql`` with sqlglot, never raising.

    Anything sqlglot cannot turn into a recognised statement tree becomes a
    ``Heuristic`` outcome carrying the reason.
    """
    try:
        trees = tuple(t for t in sqlglot.parse(sql, dialect=dialect) if t is not None)
    except Exception as e:  # ParseError, TokenError, or an unsupported dialect feature
        lines = str(e).strip().splitlines()
        return Heuristic(lines[0] if lines else type(e).__name__)

    if not trees:
        return Heuristic("no statement found")
    for tree in trees:
        if isinstance(tree, exp.Command):
            return Heuristic(f"unsupported syntax: {tree.name or 'command'}")
        if classify_tree(tree) is None:
            return Heuristic(f"unrecognised statement type: {type(tree).__name__}")
    return Parsed(trees)


def parse_statement(sql: str, *, dialect: str | None = DEFAULT_DIALECT) -> ParsedStatement:
    """Classify one statement and extract the tables it touches.

    Never raises. When the grammar path cannot produce a tree the statement
    is classified by its leading keyword and tables are pulled out with
    regexes; a ``GRAMMAR_FALLBACK`` diagnostic records why.
    """
    text = sql.strip()
    outcome = grammar_parse(text, dialect)

    if isinstance(outcome, Heuristic):
        return ParsedStatement(
            text=text,
            operation_kind=classify_keyword(text),
            tables=extract_tables_heuristic(text),
            diagnostics=(
                Diagnostic.info(
                    codes.GRAMMAR_FALLBACK,
                    f"grammar parse failed, using heuristic extraction: {outcome.reason}",
                ),
            ),
        )

    tables: list[TableReference] = []
    for tree in outcome.trees:
        tables.extend(extract_tables(tree))
    tables_tuple = tuple(dict.fromkeys(tables))

    if len(outcome.trees) > 1:
        return ParsedStatement(
            text=text,
            operation_kind=OperationKind.UNKNOWN,
            tables=tables_tuple,
            diagnostics=(
                Diagnostic.warning(
                    codes.MULTIPLE_STATEMENTS,
                    f"fragment parsed into {len(outcome.trees)} statements",
                ).note("classified as unknown; split the batch on ';' first"),
            ),
        )

    kind = classify_tree(outcome.trees[0])
    if kind is None:
        kind = OperationKind.UNKNOWN
    return ParsedStatement(text=text, operation_kind=kind, tables=tables_tuple)


__all__ = [
    "DEFAULT_DIALECT",
    "AccessType",
    "GrammarOutcome",
    "Heuristic",
    "OperationKind",
    "Parsed",
    "ParsedStatement",
    "TableReference",
    "classify_access_type",
    "grammar_parse",
    "parse_statement",
    "resolve_tables",
    "split_statements",
]
