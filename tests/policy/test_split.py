"""Test the lexical statement splitter."""

import pytest

from querygate.policy.split import split_statements


@pytest.mark.parametrize(
    "sql,expected",
    [
        ("SELECT 1", ["SELECT 1"]),
        ("SELECT 1;", ["SELECT 1"]),
        ("SELECT 1; SELECT 2", ["SELECT 1", "SELECT 2"]),
        ("  SELECT 1 ;\n\n SELECT 2 ;  ", ["SELECT 1", "SELECT 2"]),
        ("SELECT 'a;b'; SELECT 1", ["SELECT 'a;b'", "SELECT 1"]),
        ('SELECT "a;b" FROM t; SELECT 1', ['SELECT "a;b" FROM t', "SELECT 1"]),
        ("SELECT `a;b` FROM t; SELECT 1", ["SELECT `a;b` FROM t", "SELECT 1"]),
        ("SELECT 1 -- a;b\n; SELECT 2", ["SELECT 1 -- a;b", "SELECT 2"]),
        ("SELECT /* ; */ 1; SELECT 2", ["SELECT /* ; */ 1", "SELECT 2"]),
        ("SELECT \"it's\"; SELECT 2", ["SELECT \"it's\"", "SELECT 2"]),
    ],
)
def test_split(sql: str, expected: list[str]) -> None:
    assert split_statements(sql) == expected


class TestEscapes:
    def test_escaped_single_quote_does_not_close(self) -> None:
        assert split_statements(r"SELECT 'it\'s;'; SELECT 2") == [r"SELECT 'it\'s;'", "SELECT 2"]

    def test_escaped_backtick_does_not_close(self) -> None:
        assert split_statements(r"SELECT `a\`;b`; SELECT 2") == [r"SELECT `a\`;b`", "SELECT 2"]

    def test_escaped_backslash_closes(self) -> None:
        assert split_statements(r"SELECT '\\'; SELECT 2") == [r"SELECT '\\'", "SELECT 2"]


class TestEmptyFragments:
    @pytest.mark.parametrize("sql", ["", "   ", ";", ";;  ;", "\n;\n"])
    def test_no_statements(self, sql: str) -> None:
        assert split_statements(sql) == []

    def test_consecutive_separators_dropped(self) -> None:
        assert split_statements("SELECT 1;;;SELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_comment_only_fragment_dropped(self) -> None:
        assert split_statements("SELECT 1; -- trailing comment") == ["SELECT 1"]
        assert split_statements("/* header */; SELECT 1") == ["SELECT 1"]


class TestNeverRaises:
    def test_unterminated_quote_swallows_rest(self) -> None:
        assert split_statements("SELECT 'abc; SELECT 2") == ["SELECT 'abc; SELECT 2"]

    def test_unterminated_block_comment(self) -> None:
        assert split_statements("SELECT 1 /* ; SELECT 2") == ["SELECT 1 /* ; SELECT 2"]

    def test_order_preserved(self) -> None:
        sql = ";".join(f"SELECT {i}" for i in range(5))
        assert split_statements(sql) == [f"SELECT {i}" for i in range(5)]
