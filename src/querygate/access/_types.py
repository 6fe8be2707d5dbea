"""Authorization value types, the grant store protocol, and access errors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from querygate.diagnostics import Diagnostic, DiagnosticCode
from querygate.policy._types import AccessType

ADMIN_ROLES = frozenset({"admin", "super_admin"})


class AccessError(Exception):
    """Base class for access-layer failures."""


class MissingPrincipalError(AccessError):
    """Raised when a per-object check is called without a principal id (caller bug)."""


class GrantStoreError(AccessError):
    """Raised by a grant store that cannot answer a check."""


class ConfigError(AccessError):
    """Raised for a malformed access configuration file."""


@dataclass(frozen=True)
class Principal:
    """An authenticated-but-untrusted caller.

    ``id`` is None for an unauthenticated request; such principals are
    always denied unless they are admins.
    """

    id: str | None
    roles: tuple[str, ...] = ()
    permissions: frozenset[str] = frozenset()
    is_admin: bool = False

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Principal:
        """Build a principal from verified token claims (``sub``, ``roles``, ``permissions``)."""
        roles = tuple(claims.get("roles") or ())
        return cls(
            id=claims.get("sub") or None,
            roles=roles,
            permissions=frozenset(claims.get("permissions") or ()),
            is_admin=bool(ADMIN_ROLES.intersection(roles)),
        )


@dataclass(frozen=True)
class PermissionCatalog:
    """The permission strings that satisfy each access type.

    ``misc`` has no family: no permission satisfies it.
    """

    read: frozenset[str] = frozenset()
    write: frozenset[str] = frozenset()
    admin: frozenset[str] = frozenset()

    def family(self, access_type: AccessType) -> frozenset[str]:
        if access_type is AccessType.READ:
            return self.read
        if access_type is AccessType.WRITE:
            return self.write
        if access_type is AccessType.ADMIN:
            return self.admin
        return frozenset()

    def satisfies(self, permissions: frozenset[str], access_type: AccessType) -> bool:
        return bool(self.family(access_type) & permissions)


DEFAULT_CATALOG = PermissionCatalog(
    read=frozenset({"table:select", "query:execute", "database:view", "table:view"}),
    write=frozenset({"table:insert", "table:update", "table:delete", "query:execute:dml"}),
    admin=frozenset({
        "table:create", "table:alter", "table:drop",
        "database:create", "database:drop", "query:execute:ddl",
    }),
)


@dataclass(frozen=True)
class GrantDecision:
    allowed: bool
    reason: str | None = None


@runtime_checkable
class GrantStore(Protocol):
    """Per-object grant store.

    ``table`` is None for a database-level check; the validator passes the
    literal ``"*"`` for statements that target a whole database.
    """

    async def check(
        self,
        principal_id: str,
        database: str,
        table: str | None,
        access_type: AccessType,
        connection_id: str | None,
    ) -> GrantDecision | None: ...


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a (possibly multi-statement) SQL string.

    ``statement_index`` is the zero-based index of the first failing
    statement, None when allowed or when the failure is not tied to one.
    """

    allowed: bool
    reason: str | None = None
    statement_index: int | None = None
    code: DiagnosticCode | None = field(default=None, compare=False)

    @classmethod
    def allow(cls) -> ValidationResult:
        return cls(allowed=True)

    @classmethod
    def deny(
        cls, reason: str, *, code: DiagnosticCode, statement_index: int | None = None
    ) -> ValidationResult:
        return cls(allowed=False, reason=reason, statement_index=statement_index, code=code)

    @property
    def diagnostic(self) -> Diagnostic | None:
        """The denial as an error diagnostic; extra reason lines become notes."""
        if self.allowed or self.code is None:
            return None
        message, *context = (self.reason or "").split("\n")
        diagnostic = Diagnostic.error(self.code, message)
        for line in context:
            diagnostic.note(line)
        return diagnostic
