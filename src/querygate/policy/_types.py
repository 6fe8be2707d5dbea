"""Value types shared by the statement analysis pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from querygate.diagnostics import Diagnostic, codes


class OperationKind(enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE = "create"
    DROP = "drop"
    ALTER = "alter"
    TRUNCATE = "truncate"
    SHOW = "show"
    DESCRIBE = "describe"
    USE = "use"
    SET = "set"
    EXPLAIN = "explain"
    EXISTS = "exists"
    CHECK = "check"
    KILL = "kill"
    UNKNOWN = "unknown"  # Anything we can't classify → misc → denied


class AccessType(enum.Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    MISC = "misc"  # No permission family; never satisfied for non-admins


@dataclass(frozen=True)
class TableReference:
    """One object a statement reads or writes.

    ``database`` is None when the statement did not qualify the table; it is
    resolved against the default database at validation time.
    """

    table: str
    database: str | None = None

    def __post_init__(self) -> None:
        if not self.table:
            raise ValueError("TableReference.table must not be empty")

    @property
    def qualified_name(self) -> str:
        if self.database:
            return f"{self.database}.{self.table}"
        return self.table


@dataclass(frozen=True)
class ParsedStatement:
    text: str
    operation_kind: OperationKind
    tables: tuple[TableReference, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default=(), compare=False)

    @property
    def used_fallback(self) -> bool:
        return any(d.code == codes.GRAMMAR_FALLBACK for d in self.diagnostics)
