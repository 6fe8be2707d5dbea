"""Test multi-statement access validation."""

import asyncio

import pytest

from querygate.access import (
    GrantDecision,
    GrantStore,
    GrantStoreError,
    MissingPrincipalError,
    Principal,
    check_database_access,
    check_table_access,
    validate_query_access,
)
from querygate.diagnostics import codes
from querygate.policy._types import AccessType

READ = frozenset({"table:select"})
READ_WRITE = READ | {"table:insert"}
EVERYTHING = READ_WRITE | {"table:drop", "database:drop"}


class RecordingGrantStore:
    """Allows everything except ``denied`` pairs and records every call."""

    def __init__(self, denied=(), *, answer_none=False, fail=False) -> None:
        self.denied = set(denied)
        self.answer_none = answer_none
        self.fail = fail
        self.calls: list[tuple[str, str | None, AccessType]] = []

    async def check(self, principal_id, database, table, access_type, connection_id):
        self.calls.append((database, table, access_type))
        if self.fail:
            raise GrantStoreError("grant backend unreachable")
        if self.answer_none:
            return None
        return GrantDecision((database, table) not in self.denied)


def _principal(permissions=READ, principal_id="alice") -> Principal:
    return Principal(id=principal_id, roles=("analyst",), permissions=frozenset(permissions))


def _validate(principal, sql, grants, default_database=None, connection_id=None):
    return asyncio.run(
        validate_query_access(principal, sql, default_database, connection_id, grants=grants)
    )


def test_recording_store_satisfies_protocol() -> None:
    assert isinstance(RecordingGrantStore(), GrantStore)


class TestShortCircuits:
    def test_admin_bypasses_everything(self) -> None:
        grants = RecordingGrantStore(fail=True)
        admin = Principal(id=None, roles=("admin",), is_admin=True)
        result = _validate(admin, "DROP DATABASE prod; SHOW TABLES", grants)
        assert result.allowed
        assert grants.calls == []

    def test_missing_principal_id(self) -> None:
        result = _validate(Principal(id=None), "SELECT 1", RecordingGrantStore())
        assert not result.allowed
        assert result.code == codes.AUTH_REQUIRED
        assert result.statement_index is None

    @pytest.mark.parametrize("sql", ["", "  ;; ", "-- only a comment"])
    def test_no_statements(self, sql: str) -> None:
        result = _validate(_principal(), sql, RecordingGrantStore())
        assert not result.allowed
        assert result.code == codes.NO_STATEMENTS


class TestRolePermissions:
    def test_read_allowed(self) -> None:
        grants = RecordingGrantStore()
        result = _validate(_principal(), "SELECT * FROM app.orders", grants)
        assert result.allowed
        assert result.reason is None
        assert grants.calls == [("app", "orders", AccessType.READ)]

    def test_smuggled_drop_denied_at_second_statement(self) -> None:
        grants = RecordingGrantStore()
        result = _validate(_principal(READ_WRITE), "SELECT * FROM safe; DROP TABLE sensitive", grants)
        assert not result.allowed
        assert result.statement_index == 1
        assert result.code == codes.PERMISSION_DENIED
        assert "Statement 2" in result.reason
        assert "admin" in result.reason
        assert "DROP" in result.reason
        assert "\nStatement: DROP TABLE sensitive..." in result.reason
        assert grants.calls == [("default", "safe", AccessType.READ)]

    def test_write_denied_for_reader(self) -> None:
        result = _validate(_principal(), "INSERT INTO orders VALUES (1)", RecordingGrantStore())
        assert not result.allowed
        assert result.statement_index == 0
        assert result.reason.startswith("Statement 1: No permission for write operations")
        assert "table:insert" in result.reason

    def test_single_statement_reason_has_no_context(self) -> None:
        result = _validate(_principal(), "DROP TABLE t", RecordingGrantStore())
        assert "\nStatement:" not in result.reason

    @pytest.mark.parametrize("sql", ["SHOW TABLES", "SET max_threads = 4", "KILL QUERY WHERE 1"])
    def test_misc_never_satisfied(self, sql: str) -> None:
        result = _validate(_principal(EVERYTHING), sql, RecordingGrantStore())
        assert not result.allowed
        assert result.code == codes.PERMISSION_DENIED
        assert "misc" in result.reason

    def test_unparseable_statement_denied(self) -> None:
        result = _validate(_principal(EVERYTHING), "SELEC * FROM orders", RecordingGrantStore())
        assert not result.allowed
        assert "UNKNOWN statement" in result.reason

    def test_later_statements_never_examined(self) -> None:
        grants = RecordingGrantStore()
        _validate(_principal(), "DROP TABLE a; SELECT * FROM app.b", grants)
        assert grants.calls == []


class TestObjectGrants:
    def test_denied_pair(self) -> None:
        grants = RecordingGrantStore(denied={("app", "secrets")})
        result = _validate(_principal(), "SELECT * FROM app.secrets", grants)
        assert not result.allowed
        assert result.code == codes.GRANT_DENIED
        assert result.statement_index == 0
        assert result.reason == (
            "Statement 1: Access denied to app.secrets (requires read permission)"
        )

    def test_first_denied_pair_stops_validation(self) -> None:
        grants = RecordingGrantStore(denied={("app", "b")})
        sql = "SELECT * FROM app.b; SELECT * FROM app.c"
        result = _validate(_principal(), sql, grants)
        assert not result.allowed
        assert result.statement_index == 0
        assert ("app", "c", AccessType.READ) not in grants.calls

    def test_default_database_used(self) -> None:
        grants = RecordingGrantStore()
        _validate(_principal(), "SELECT * FROM orders", grants, default_database="app")
        assert grants.calls == [("app", "orders", AccessType.READ)]

    def test_no_tables_authorized_by_role_alone(self) -> None:
        grants = RecordingGrantStore(fail=True)
        assert _validate(_principal(), "SELECT 1", grants).allowed
        assert grants.calls == []

    def test_cte_not_checked(self) -> None:
        grants = RecordingGrantStore()
        sql = "WITH recent AS (SELECT * FROM app.orders) SELECT * FROM recent"
        assert _validate(_principal(), sql, grants).allowed
        assert grants.calls == [("app", "orders", AccessType.READ)]

    def test_every_distinct_pair_checked(self) -> None:
        grants = RecordingGrantStore()
        _validate(_principal(), "SELECT * FROM a.orders JOIN b.orders ON 1=1", grants)
        assert {(db, t) for db, t, _ in grants.calls} == {("a", "orders"), ("b", "orders")}

    def test_unqualified_duplicate_dropped(self) -> None:
        grants = RecordingGrantStore()
        _validate(_principal(), "SELECT * FROM app.orders JOIN orders ON 1=1", grants)
        assert grants.calls == [("app", "orders", AccessType.READ)]

    def test_system_table_checked_under_system(self) -> None:
        grants = RecordingGrantStore()
        _validate(_principal(), "SELECT * FROM query_log", grants, default_database="app")
        assert grants.calls == [("system", "query_log", AccessType.READ)]

    def test_database_ddl_checks_whole_database(self) -> None:
        grants = RecordingGrantStore()
        assert _validate(_principal(EVERYTHING), "DROP DATABASE analytics", grants).allowed
        assert grants.calls == [("analytics", "*", AccessType.ADMIN)]

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM (a JOIN secret ON a.id = secret.id)",
            "SELECT * FROM numbers((SELECT count() FROM secret))",
            "WITH secret AS (SELECT * FROM secret) SELECT * FROM secret",
        ],
    )
    def test_hidden_table_still_checked(self, sql: str) -> None:
        grants = RecordingGrantStore(denied={("app", "secret")})
        result = _validate(_principal(), sql, grants, default_database="app")
        assert not result.allowed
        assert result.code == codes.GRANT_DENIED
        assert "app.secret" in result.reason

    def test_missing_answer_denies(self) -> None:
        grants = RecordingGrantStore(answer_none=True)
        result = _validate(_principal(), "SELECT * FROM app.orders", grants)
        assert not result.allowed
        assert result.code == codes.GRANT_DENIED

    def test_grant_store_failure_denies(self) -> None:
        grants = RecordingGrantStore(fail=True)
        result = _validate(_principal(), "SELECT * FROM app.orders", grants)
        assert not result.allowed
        assert result.code == codes.GRANT_UNAVAILABLE
        assert "grant backend unreachable" in result.reason


class TestObjectChecks:
    def test_admin_always_allowed(self) -> None:
        grants = RecordingGrantStore(fail=True)
        admin = Principal(id="root", is_admin=True)
        assert asyncio.run(check_table_access(admin, "app", "orders", grants=grants))

    def test_missing_principal_raises(self) -> None:
        with pytest.raises(MissingPrincipalError):
            asyncio.run(
                check_table_access(Principal(id=None), "app", "orders", grants=RecordingGrantStore())
            )

    def test_table_access_delegates(self) -> None:
        grants = RecordingGrantStore(denied={("app", "secrets")})
        principal = _principal()
        assert asyncio.run(check_table_access(principal, "app", "orders", grants=grants))
        assert not asyncio.run(check_table_access(principal, "app", "secrets", grants=grants))

    def test_database_access_passes_no_table(self) -> None:
        grants = RecordingGrantStore()
        assert asyncio.run(
            check_database_access(_principal(), "app", access_type=AccessType.WRITE, grants=grants)
        )
        assert grants.calls == [("app", None, AccessType.WRITE)]
