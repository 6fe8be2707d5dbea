"""Classify statements by operation kind and map kinds to access types."""

from __future__ import annotations

from sqlglot import exp

from querygate.policy._types import AccessType, OperationKind

_READ_TYPES = (exp.Select, exp.Union, exp.Intersect, exp.Except)
_DML_KINDS = {
    exp.Insert: OperationKind.INSERT,
    exp.Update: OperationKind.UPDATE,
    exp.Delete: OperationKind.DELETE,
}

# Checked in order with isinstance; first match wins.
_NODE_KINDS: tuple[tuple[type[exp.Expression], OperationKind], ...] = (
    (exp.Insert, OperationKind.INSERT),
    (exp.Update, OperationKind.UPDATE),
    (exp.Delete, OperationKind.DELETE),
    (exp.Create, OperationKind.CREATE),
    (exp.Drop, OperationKind.DROP),
    (exp.Alter, OperationKind.ALTER),
    (exp.TruncateTable, OperationKind.TRUNCATE),
    (exp.Show, OperationKind.SHOW),
    (exp.Describe, OperationKind.DESCRIBE),
    (exp.Use, OperationKind.USE),
    (exp.Set, OperationKind.SET),
    (exp.Exists, OperationKind.EXISTS),
    (exp.Kill, OperationKind.KILL),
)

# Leading-keyword fallback, in test order. DESC also covers DESCRIBE.
_KEYWORD_KINDS: tuple[tuple[str, OperationKind], ...] = (
    ("SELECT", OperationKind.SELECT),
    ("WITH", OperationKind.SELECT),
    ("INSERT", OperationKind.INSERT),
    ("UPDATE", OperationKind.UPDATE),
    ("DELETE", OperationKind.DELETE),
    ("CREATE", OperationKind.CREATE),
    ("DROP", OperationKind.DROP),
    ("ALTER", OperationKind.ALTER),
    ("TRUNCATE", OperationKind.TRUNCATE),
    ("SHOW", OperationKind.SHOW),
    ("DESCRIBE", OperationKind.DESCRIBE),
    ("DESC", OperationKind.DESCRIBE),
    ("USE", OperationKind.USE),
    ("SET", OperationKind.SET),
    ("EXPLAIN", OperationKind.EXPLAIN),
    ("EXISTS", OperationKind.EXISTS),
    ("CHECK", OperationKind.CHECK),
    ("KILL", OperationKind.KILL),
)

_ACCESS_TYPES = {
    OperationKind.SELECT: AccessType.READ,
    OperationKind.INSERT: AccessType.WRITE,
    OperationKind.UPDATE: AccessType.WRITE,
    OperationKind.DELETE: AccessType.WRITE,
    OperationKind.CREATE: AccessType.ADMIN,
    OperationKind.DROP: AccessType.ADMIN,
    OperationKind.ALTER: AccessType.ADMIN,
    OperationKind.TRUNCATE: AccessType.ADMIN,
}


def _writable_cte_kind(statement: exp.Expression) -> OperationKind | None:
    """Return the DML kind of the first CTE body that writes, if any."""
    for cte in statement.find_all(exp.CTE):
        for node_type, kind in _DML_KINDS.items():
            if isinstance(cte.this, node_type):
                return kind
    return None


def _has_into(statement: exp.Expression) -> bool:
    """Check for SELECT INTO (creates a table despite being a SELECT)."""
    return isinstance(statement, exp.Select) and statement.find(exp.Into) is not None


def classify_tree(statement: exp.Expression) -> OperationKind | None:
    """Classify a parsed statement, or return None if the node is not a statement.

    Security-critical: a SELECT is only reported as ``select`` when nothing in
    it writes. Writable CTEs report the DML kind they hide and SELECT INTO
    reports ``create``. Opaque ``Command`` nodes and bare expressions return
    None so the caller falls back to keyword classification.
    """
    if isinstance(statement, _READ_TYPES):
        cte_kind = _writable_cte_kind(statement)
        if cte_kind is not None:
            return cte_kind
        if _has_into(statement):
            return OperationKind.CREATE
        return OperationKind.SELECT
    for node_type, kind in _NODE_KINDS:
        if isinstance(statement, node_type):
            return kind
    return None


def classify_keyword(statement: str) -> OperationKind:
    """Classify by the statement's leading keyword (grammar-free fallback)."""
    normalized = statement.strip().upper()
    for keyword, kind in _KEYWORD_KINDS:
        if normalized.startswith(keyword):
            return kind
    return OperationKind.UNKNOWN


def classify_access_type(kind: OperationKind) -> AccessType:
    """Map an operation kind to its access type.

    Total: everything that is not a read, write or DDL kind (including
    ``unknown``) is ``misc``, which no role permission satisfies.
    """
    return _ACCESS_TYPES.get(kind, AccessType.MISC)
