"""Decision audit log: daily JSONL files per project, with retention cleanup."""

from __future__ import annotations

import contextlib
import json
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

from querygate.access._types import ValidationResult

DEFAULT_RETENTION_DAYS = 30
_LOG_ROOT = Path.home() / ".querygate" / "logs"


def _project_slug() -> str:
    """Encode cwd into a directory-safe slug."""
    return os.getcwd().replace("/", "-").lstrip("-")


def _log_dir() -> Path:
    return _LOG_ROOT / _project_slug()


def _today_file() -> Path:
    today = datetime.now(UTC).strftime("%Y-%m-%d")
    return _log_dir() / f"{today}.jsonl"


def log_decision(
    *,
    sql: str,
    result: ValidationResult,
    principal: str | None = None,
    connection: str | None = None,
    default_database: str | None = None,
) -> Path:
    """Append one validation decision to today's JSONL file and return its path."""
    entry = {
        "ts": datetime.now(UTC).isoformat(),
        "sql": sql,
        "principal": principal,
        "connection": connection,
        "default_database": default_database,
        "allowed": result.allowed,
        "reason": result.reason,
        "statement_index": result.statement_index,
        "code": str(result.code) if result.code is not None else None,
    }

    log_file = _today_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "a") as f:
        f.write(json.dumps(entry) + "\n")
    return log_file


def cleanup_old_logs(*, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
    """Delete day files older than ``retention_days``. Returns how many were deleted."""
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    log_dir = _log_dir()
    if not log_dir.exists():
        return 0

    deleted = 0
    for log_file in log_dir.glob("*.jsonl"):
        try:
            file_date = datetime.strptime(log_file.stem, "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            continue  # not a day file
        if file_date < cutoff:
            log_file.unlink()
            deleted += 1

    with contextlib.suppress(OSError):
        log_dir.rmdir()  # only succeeds when empty

    return deleted
