"""querygate: SQL statement analysis and access control."""

from querygate.access import (
    DEFAULT_CATALOG,
    GrantDecision,
    GrantStore,
    PermissionCatalog,
    Principal,
    RuleGrantStore,
    ValidationResult,
    check_database_access,
    check_table_access,
    validate_query_access,
)
from querygate.policy import (
    AccessType,
    OperationKind,
    ParsedStatement,
    TableReference,
    classify_access_type,
    parse_statement,
    split_statements,
)

__all__ = [
    "DEFAULT_CATALOG",
    "AccessType",
    "GrantDecision",
    "GrantStore",
    "OperationKind",
    "ParsedStatement",
    "PermissionCatalog",
    "Principal",
    "RuleGrantStore",
    "TableReference",
    "ValidationResult",
    "check_database_access",
    "check_table_access",
    "classify_access_type",
    "parse_statement",
    "split_statements",
    "validate_query_access",
]
