"""System-object reconciliation: repair (database, table) attribution.

Extraction can misattribute references: ``db.table`` read as just ``table``
or as a table named ``db``, or well-known system tables attributed to the
default database. Before grants are checked every reference is repaired
against the raw statement text, in a fixed order. The order is a
security-relevant tie-break and must not be rearranged.
"""

from __future__ import annotations

import re

from querygate.policy._types import ParsedStatement, TableReference
from querygate.policy.tables import WILDCARD

FALLBACK_DATABASE = "default"
SYSTEM_DATABASE = "system"

# Names only meaningful under the system database.
SYSTEM_TABLES = frozenset({
    # Log tables
    "query_log", "query_thread_log", "part_log", "metric_log", "trace_log",
    "text_log", "asynchronous_metric_log", "session_log", "zookeeper_log",
    "system_log", "crash_log", "asynchronous_insert_log", "backup_log",
    # Metric tables
    "metrics", "asynchronous_metrics",
    # Catalog / introspection tables
    "processes", "mutations", "replicas", "databases", "tables", "columns",
    "functions", "dictionaries", "formats", "table_functions", "table_engines",
    "settings", "users", "roles", "quotas", "row_policies", "grants",
    "clusters", "macros", "merges", "parts", "detached_parts", "data_skipping_indices",
    "distribution_queue", "distributed_ddl_queue", "replication_queue",
    "zookeeper", "disks", "storage_policies", "merge_tree_settings",
    "build_options", "licenses", "server_settings", "time_zones",
})

_ID = r"([`\"]?\w+[`\"]?)"

# Step 1, in priority order.
_QUALIFIED_PATTERNS = [
    re.compile(r"(?:DROP|CREATE|ALTER|TRUNCATE)\s+TABLE\s+" + _ID + r"\." + _ID, re.IGNORECASE),
    re.compile(r"(?:FROM|JOIN|INTO|UPDATE)\s+" + _ID + r"\." + _ID, re.IGNORECASE),
    re.compile(r"TABLE\s+" + _ID + r"\." + _ID, re.IGNORECASE),
    re.compile(r"SELECT\s+.*?\s+FROM\s+" + _ID + r"\." + _ID, re.IGNORECASE),
]

_SYSTEM_FROM = re.compile(r"FROM\s+system\." + _ID, re.IGNORECASE)


def _clean(name: str) -> str:
    return name.replace("`", "").replace('"', "")


def _recover_qualified(statement: str, table: str) -> tuple[str, str] | None:
    """Step 1: find an explicit ``db.table`` that agrees with the known table."""
    for pattern in _QUALIFIED_PATTERNS:
        match = pattern.search(statement)
        if match is None or not match.group(2):
            continue
        database, extracted = _clean(match.group(1)), _clean(match.group(2))
        if extracted == table or table == WILDCARD:
            return database, extracted
    return None


def _recover_database_read_as_table(statement: str, table: str) -> tuple[str, str] | None:
    """Step 2: the "table" was really the qualifier of ``table.<real table>``."""
    name = r"([`\"]?" + re.escape(table) + r"[`\"]?)"
    patterns = [
        re.compile(r"(?:FROM|JOIN|INTO|UPDATE)\s+" + name + r"\." + _ID, re.IGNORECASE),
        re.compile(
            r"(?:DROP|CREATE|ALTER|TRUNCATE)\s+TABLE\s+" + name + r"\." + _ID, re.IGNORECASE
        ),
    ]
    for pattern in patterns:
        match = pattern.search(statement)
        if match is None or not match.group(2):
            continue
        database, extracted = _clean(match.group(1)), _clean(match.group(2))
        if database == table and extracted:
            return database, extracted
    return None


def _system_table_from(statement: str) -> str | None:
    match = _SYSTEM_FROM.search(statement)
    return _clean(match.group(1)) if match else None


def reconcile(
    ref: TableReference, statement: str, default_database: str | None = None
) -> TableReference:
    """Resolve a reference to an explicit (database, table) pair.

    Never drops a reference; only corrects its attribution. Deterministic for
    a given statement text.
    """
    default = default_database or FALLBACK_DATABASE
    database = ref.database or default
    table = ref.table or WILDCARD

    if ref.database is None and table != WILDCARD and database == default:
        recovered = _recover_qualified(statement, table)
        if recovered is None:
            recovered = _recover_database_read_as_table(statement, table)
        if recovered is not None:
            database, table = recovered

    if database != SYSTEM_DATABASE and table == SYSTEM_DATABASE:
        system_table = _system_table_from(statement)
        if system_table:
            database, table = SYSTEM_DATABASE, system_table

    if table != WILDCARD and table.lower() in SYSTEM_TABLES and database != SYSTEM_DATABASE:
        database = SYSTEM_DATABASE

    if database == SYSTEM_DATABASE and table in (SYSTEM_DATABASE, WILDCARD):
        system_table = _system_table_from(statement)
        if system_table:
            table = system_table

    return TableReference(table=table, database=database)


def dedupe_references(refs: tuple[TableReference, ...]) -> list[TableReference]:
    """Drop unqualified references shadowed by a qualified one of the same table.

    Distinct qualified pairs are all kept: ``a.users`` and ``b.users`` are two
    objects and both must be checked.
    """
    qualified = {ref.table for ref in refs if ref.database}
    return [
        ref for ref in dict.fromkeys(refs) if ref.database or ref.table not in qualified
    ]


def resolve_tables(
    parsed: ParsedStatement, default_database: str | None = None
) -> list[TableReference]:
    """Dedupe, default and reconcile a statement's references for grant checks."""
    resolved = [
        reconcile(ref, parsed.text, default_database)
        for ref in dedupe_references(parsed.tables)
    ]
    return list(dict.fromkeys(resolved))
