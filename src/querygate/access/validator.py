"""Multi-statement access validation.

Every statement in a batch is checked in order against the principal's role
permissions, then against the grant store for each object it touches. The
first failure ends validation: later statements are never examined, so a
denial leaks nothing about objects further down the batch.

Grant-store calls are awaited one at a time for the same reason.
"""

from __future__ import annotations

import re

from querygate.access._types import (
    DEFAULT_CATALOG,
    GrantDecision,
    GrantStore,
    GrantStoreError,
    MissingPrincipalError,
    PermissionCatalog,
    Principal,
    ValidationResult,
)
from querygate.diagnostics import codes
from querygate.policy import DEFAULT_DIALECT, parse_statement
from querygate.policy._types import AccessType, ParsedStatement
from querygate.policy.classify import classify_access_type
from querygate.policy.reconcile import resolve_tables
from querygate.policy.split import split_statements

_CONTEXT_CHARS = 50


def _with_context(reason: str, statement: str, batch_size: int) -> str:
    """Point at the offending statement when the batch holds more than one."""
    if batch_size <= 1:
        return reason
    snippet = re.sub(r"\s+", " ", statement).strip()[:_CONTEXT_CHARS]
    return f"{reason}\nStatement: {snippet}..."


def _permission_reason(
    number: int, parsed: ParsedStatement, access_type: AccessType, catalog: PermissionCatalog
) -> str:
    reason = (
        f"Statement {number}: No permission for {access_type.value} operations "
        f"({parsed.operation_kind.value.upper()} statement)"
    )
    family = catalog.family(access_type)
    if family:
        reason += f". Requires one of: {', '.join(sorted(family))}"
    return reason


def _granted(decision: GrantDecision | None) -> bool:
    return decision is not None and decision.allowed is True


async def validate_query_access(
    principal: Principal,
    sql: str,
    default_database: str | None = None,
    connection_id: str | None = None,
    *,
    grants: GrantStore,
    catalog: PermissionCatalog = DEFAULT_CATALOG,
    dialect: str | None = DEFAULT_DIALECT,
) -> ValidationResult:
    """Decide whether ``principal`` may run every statement in ``sql``.

    Fail-closed: an unclassifiable statement maps to ``misc`` (never
    satisfied), a missing or non-True grant answer is a denial, and a grant
    store that raises ``GrantStoreError`` denies with ``GRANT_UNAVAILABLE``.

    A statement with no resolvable table (``SET``, ``SHOW DATABASES``) is
    authorized by its role permission alone.
    """
    if principal.is_admin:
        return ValidationResult.allow()
    if not principal.id:
        return ValidationResult.deny("Authentication required", code=codes.AUTH_REQUIRED)

    statements = split_statements(sql)
    if not statements:
        return ValidationResult.deny("No valid SQL statements found", code=codes.NO_STATEMENTS)

    for index, text in enumerate(statements):
        number = index + 1
        parsed = parse_statement(text, dialect=dialect)
        access_type = classify_access_type(parsed.operation_kind)

        if not catalog.satisfies(principal.permissions, access_type):
            reason = _permission_reason(number, parsed, access_type, catalog)
            return ValidationResult.deny(
                _with_context(reason, text, len(statements)),
                code=codes.PERMISSION_DENIED,
                statement_index=index,
            )

        for ref in resolve_tables(parsed, default_database):
            try:
                decision = await grants.check(
                    principal.id, ref.database, ref.table, access_type, connection_id
                )
            except GrantStoreError as e:
                reason = (
                    f"Statement {number}: Access check unavailable for "
                    f"{ref.database}.{ref.table}: {e}"
                )
                return ValidationResult.deny(
                    _with_context(reason, text, len(statements)),
                    code=codes.GRANT_UNAVAILABLE,
                    statement_index=index,
                )
            if not _granted(decision):
                reason = (
                    f"Statement {number}: Access denied to {ref.database}.{ref.table} "
                    f"(requires {access_type.value} permission)"
                )
                return ValidationResult.deny(
                    _with_context(reason, text, len(statements)),
                    code=codes.GRANT_DENIED,
                    statement_index=index,
                )

    return ValidationResult.allow()


async def check_table_access(
    principal: Principal,
    database: str,
    table: str | None,
    connection_id: str | None = None,
    access_type: AccessType = AccessType.READ,
    *,
    grants: GrantStore,
) -> bool:
    """Ask the grant store about one object. Admins always pass.

    Raises:
        MissingPrincipalError: ``principal`` has no id.
        GrantStoreError: the store could not answer.
    """
    if principal.is_admin:
        return True
    if not principal.id:
        raise MissingPrincipalError("principal id is required for object access checks")
    decision = await grants.check(principal.id, database, table, access_type, connection_id)
    return _granted(decision)


async def check_database_access(
    principal: Principal,
    database: str,
    connection_id: str | None = None,
    access_type: AccessType = AccessType.READ,
    *,
    grants: GrantStore,
) -> bool:
    """Database-level variant of :func:`check_table_access` (no table)."""
    return await check_table_access(
        principal, database, None, connection_id, access_type, grants=grants
    )
