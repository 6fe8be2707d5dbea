"""Access decisions: role permissions plus per-object grants."""

from querygate.access._types import (
    DEFAULT_CATALOG,
    AccessError,
    ConfigError,
    GrantDecision,
    GrantStore,
    GrantStoreError,
    MissingPrincipalError,
    PermissionCatalog,
    Principal,
    ValidationResult,
)
from querygate.access.rules import DataAccessRule, RuleGrantStore, evaluate_rules, matches_pattern
from querygate.access.validator import (
    check_database_access,
    check_table_access,
    validate_query_access,
)

__all__ = [
    "DEFAULT_CATALOG",
    "AccessError",
    "ConfigError",
    "DataAccessRule",
    "GrantDecision",
    "GrantStore",
    "GrantStoreError",
    "MissingPrincipalError",
    "PermissionCatalog",
    "Principal",
    "RuleGrantStore",
    "ValidationResult",
    "check_database_access",
    "check_table_access",
    "evaluate_rules",
    "matches_pattern",
    "validate_query_access",
]
