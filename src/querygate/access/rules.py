"""Rule-based grant store.

Rules attach to a role or a single principal and match databases and tables
by pattern. The highest-priority matching rule decides; deny wins ties.
Anything not explicitly allowed is denied.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from querygate.access._types import GrantDecision
from querygate.policy._types import AccessType

SYSTEM_DATABASES = frozenset({"system", "information_schema", "INFORMATION_SCHEMA"})


@dataclass(frozen=True)
class DataAccessRule:
    """One allow/deny rule, owned by exactly one of ``role`` or ``principal``."""

    database: str = "*"
    table: str = "*"
    allowed: bool = True
    priority: int = 0
    role: str | None = None
    principal: str | None = None
    connection: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if (self.role is None) == (self.principal is None):
            raise ValueError("rule must name exactly one of 'role' or 'principal'")

    def applies_to_connection(self, connection_id: str | None) -> bool:
        return self.connection is None or self.connection == connection_id


def _glob_to_regex(pattern: str) -> str:
    return "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"


def matches_pattern(value: str, pattern: str) -> bool:
    """Match ``value`` against a rule pattern.

    ``*`` matches anything, ``/expr/`` is a case-insensitive regex search,
    a pattern containing ``*`` is a glob, and anything else is a
    case-insensitive exact match. An invalid regex never matches.
    """
    if pattern == "*":
        return True
    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            return re.search(pattern[1:-1], value, re.IGNORECASE) is not None
        except re.error:
            return False
    if "*" in pattern:
        return re.match(_glob_to_regex(pattern), value, re.IGNORECASE) is not None
    return value.lower() == pattern.lower()


def evaluate_rules(
    rules: Iterable[DataAccessRule], database: str, table: str | None = None
) -> GrantDecision:
    rules = list(rules)
    if not rules:
        return GrantDecision(False, "no access rules defined")

    # Priority descending, then deny (False) before allow (True).
    for rule in sorted(rules, key=lambda r: (-r.priority, r.allowed)):
        if not matches_pattern(database, rule.database):
            continue
        if table is not None and not matches_pattern(table, rule.table):
            continue
        verb = "allowed" if rule.allowed else "denied"
        return GrantDecision(rule.allowed, rule.description or f"{verb} by rule")
    return GrantDecision(False, "no matching access rule")


class RuleGrantStore:
    """In-memory grant store backed by :class:`DataAccessRule` lists.

    ``memberships`` maps principal ids to the roles they hold. The access
    type is not used for matching: role permissions already decide which
    operations a principal may run.
    """

    def __init__(
        self,
        rules: Iterable[DataAccessRule],
        memberships: Mapping[str, Iterable[str]] | None = None,
        *,
        open_system_databases: bool = False,
    ) -> None:
        self._rules = list(rules)
        self._memberships = {pid: frozenset(roles) for pid, roles in (memberships or {}).items()}
        self._open_system_databases = open_system_databases

    def rules_for(self, principal_id: str, connection_id: str | None = None) -> list[DataAccessRule]:
        roles = self._memberships.get(principal_id, frozenset())
        return [
            rule
            for rule in self._rules
            if (rule.principal == principal_id or rule.role in roles)
            and rule.applies_to_connection(connection_id)
        ]

    async def check(
        self,
        principal_id: str,
        database: str,
        table: str | None,
        access_type: AccessType,
        connection_id: str | None,
    ) -> GrantDecision:
        if self._open_system_databases and database in SYSTEM_DATABASES:
            return GrantDecision(True, "system database")
        return evaluate_rules(self.rules_for(principal_id, connection_id), database, table)
