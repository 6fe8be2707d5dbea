"""CTE-aware table extraction: sqlglot tree walk plus a regex fallback."""

from __future__ import annotations

import re

from sqlglot import exp

from querygate.policy._types import TableReference

WILDCARD = "*"

_DATABASE_KINDS = {"DATABASE", "SCHEMA"}


def _clean(name: str) -> str:
    return name.replace("`", "").replace('"', "")


def _dedupe(refs: list[TableReference]) -> tuple[TableReference, ...]:
    return tuple(dict.fromkeys(refs))


# -- Grammar path ----------------------------------------------------------------


def extract_tables(statement: exp.Expression) -> tuple[TableReference, ...]:
    """Extract every real table a parsed statement reads or writes.

    Subqueries are flattened into one set. Names introduced by a WITH clause
    are excluded wherever they are in scope; the tables inside CTE bodies are
    kept since they are what the statement really touches.
    """
    found: list[TableReference] = []
    _visit(statement, frozenset(), found)
    return _dedupe(found)


def _visit(node: exp.Expression, scope: frozenset[str], found: list[TableReference]) -> None:
    if isinstance(node, exp.Table):
        _add_table(node, scope, found)
        # Parenthesized joins and table-function arguments hang off the Table.
        _collect(node, scope, found)
    else:
        _collect(node, scope, found)


def _collect(
    node: exp.Expression, scope: frozenset[str], found: list[TableReference]
) -> None:
    database_target = _ddl_database_target(node)
    if database_target is not None:
        found.append(TableReference(table=WILDCARD, database=database_target))
        return

    with_ = next(
        (child for child in node.iter_expressions() if isinstance(child, exp.With)), None
    )
    if with_ is not None:
        scope = _enter_with(with_, scope, found)

    for child in node.iter_expressions():
        if child is not with_:
            _visit(child, scope, found)


def _enter_with(
    with_: exp.With, scope: frozenset[str], found: list[TableReference]
) -> frozenset[str]:
    """Register each CTE name, then collect real tables from its body.

    A body sees every sibling defined before it, and its own name only under
    WITH RECURSIVE: otherwise ``WITH t AS (SELECT * FROM t)`` reads the real
    table ``t``. Each body gets its own copy of the scope.
    """
    recursive = bool(with_.args.get("recursive"))
    names = set(scope)
    for cte in with_.expressions:
        name = _clean(cte.alias_or_name or "").lower()
        body_scope = names | {name} if recursive and name else names
        if cte.this is not None:
            _visit(cte.this, frozenset(body_scope), found)
        if name:
            names.add(name)
    return frozenset(names)


def _add_table(
    table: exp.Table, scope: frozenset[str], found: list[TableReference]
) -> None:
    name = _clean(table.name)
    database = _clean(table.db) or None
    if not name or (database is None and name.lower() in scope):
        return
    found.append(TableReference(table=name, database=database))


def _ddl_database_target(node: exp.Expression) -> str | None:
    """Return the database named by CREATE/DROP/ALTER DATABASE, else None."""
    if not isinstance(node, (exp.Create, exp.Drop, exp.Alter)):
        return None
    kind = str(node.args.get("kind") or "").upper()
    if kind not in _DATABASE_KINDS:
        return None
    target = node.this
    if isinstance(target, exp.Schema):
        target = target.this
    name = _clean(target.name) if isinstance(target, exp.Expression) else ""
    return name or None


# -- Heuristic path ---------------------------------------------------------------

_IDENT = r"([`\"]?\w+[`\"]?)"
_QUALIFIED = _IDENT + r"(?:\." + _IDENT + r")?"
_IF_EXISTS = r"(?:IF\s+(?:NOT\s+)?EXISTS\s+)?"

_FALLBACK_PATTERNS = [
    re.compile(r"\bFROM\s+" + _QUALIFIED, re.IGNORECASE),
    re.compile(r"\bINTO\s+" + _QUALIFIED, re.IGNORECASE),
    re.compile(r"\bUPDATE\s+" + _QUALIFIED, re.IGNORECASE),
    re.compile(
        r"\b(?:DROP|CREATE|ALTER|TRUNCATE)\s+TABLE\s+" + _IF_EXISTS + _QUALIFIED,
        re.IGNORECASE,
    ),
    re.compile(r"\bTABLE\s+" + _IF_EXISTS + _QUALIFIED, re.IGNORECASE),
    re.compile(r"\bJOIN\s+" + _QUALIFIED, re.IGNORECASE),
]


def extract_tables_heuristic(statement: str) -> tuple[TableReference, ...]:
    """Regex fallback used when the grammar parse fails.

    Every FROM / INTO / UPDATE / ``<DDL> TABLE`` / TABLE / JOIN followed by
    ``db.table`` or ``table`` contributes one reference. Over-matching is
    accepted: an extra reference can only add checks, never skip one.
    """
    normalized = re.sub(r"\s+", " ", statement).strip()
    cte_names = extract_cte_names_heuristic(statement)

    found: list[TableReference] = []
    for pattern in _FALLBACK_PATTERNS:
        for match in pattern.finditer(normalized):
            first, second = match.group(1), match.group(2)
            if second:
                database, table = _clean(first), _clean(second)
            else:
                database, table = None, _clean(first)
            if table and not (database is None and table.lower() in cte_names):
                found.append(TableReference(table=table, database=database))
    return _dedupe(found)


_LINE_COMMENT = re.compile(r"--[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING = re.compile(r"'(?:[^'\\]|\\.)*'")
_WITH = re.compile(r"\bWITH\b", re.IGNORECASE)
_TOKEN = re.compile(r"`[^`]*`|\"[^\"]*\"|[A-Za-z_]\w*|\S")

# Keywords that end a CTE list: the main statement has started.
_STATEMENT_KEYWORDS = {"SELECT", "INSERT", "UPDATE", "DELETE"}


def extract_cte_names_heuristic(sql: str) -> set[str]:
    """Find CTE names by bracket-depth scanning, without a grammar.

    Every WITH clause is scanned, including those nested inside subqueries
    or CTE bodies. Names are returned lower-cased.
    """
    clean = _LINE_COMMENT.sub("", sql)
    clean = _BLOCK_COMMENT.sub("", clean)
    clean = _STRING.sub("''", clean)

    names: set[str] = set()
    for match in _WITH.finditer(clean):
        names |= _scan_cte_list(clean, match.end())
    return names


def _scan_cte_list(sql: str, start: int) -> set[str]:
    names: set[str] = set()
    depth = 0
    pending: str | None = None
    expect_body = False
    in_body = False

    for match in _TOKEN.finditer(sql, start):
        token = match.group()
        if token == "(":
            if depth == 0 and expect_body and pending:
                names.add(pending.lower())
                expect_body = False
                in_body = True
            depth += 1
        elif token == ")":
            depth -= 1
            if depth < 0:
                break  # closed the subquery that held this WITH
            if depth == 0 and in_body:
                pending = None
                in_body = False
        elif depth > 0:
            continue
        elif token == ",":
            pending = None
            expect_body = False
        else:
            upper = token.upper()
            if upper in _STATEMENT_KEYWORDS:
                break
            if upper == "AS":
                expect_body = True
            elif upper != "RECURSIVE" and not expect_body and (
                token[0].isalpha() or token[0] in "_`\""
            ):
                pending = _clean(token)
    return names
