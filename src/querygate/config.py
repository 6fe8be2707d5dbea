"""Access configuration: ~/.querygate/access.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from querygate.access._types import ADMIN_ROLES, ConfigError, Principal
from querygate.access.rules import DataAccessRule

_CONFIG_FILE = Path.home() / ".querygate" / "access.toml"

_RULE_KEYS = {
    "role", "principal", "database", "table", "allowed",
    "priority", "connection", "description",
}


@dataclass
class AccessConfig:
    principals: dict[str, Principal] = field(default_factory=dict)
    rules: list[DataAccessRule] = field(default_factory=list)
    default_database: str | None = None

    @property
    def memberships(self) -> dict[str, tuple[str, ...]]:
        return {pid: p.roles for pid, p in self.principals.items()}

    def principal(self, principal_id: str | None) -> Principal:
        """Look up a principal. Unknown ids are unauthenticated (no id)."""
        if principal_id and principal_id in self.principals:
            return self.principals[principal_id]
        return Principal(id=None)


def _load_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: invalid TOML: {e}") from e


def _string_list(value: object, where: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of strings")
    return tuple(value)


def _parse_principal(pid: str, entry: object) -> Principal:
    if not isinstance(entry, dict):
        raise ConfigError(f"principals.{pid} must be a table")
    roles = _string_list(entry.get("roles", []), f"principals.{pid}.roles")
    permissions = _string_list(entry.get("permissions", []), f"principals.{pid}.permissions")
    admin = entry.get("admin", False)
    if not isinstance(admin, bool):
        raise ConfigError(f"principals.{pid}.admin must be a boolean")
    return Principal(
        id=pid,
        roles=roles,
        permissions=frozenset(permissions),
        is_admin=admin or bool(ADMIN_ROLES.intersection(roles)),
    )


def _parse_rule(index: int, entry: object) -> DataAccessRule:
    where = f"rules[{index}]"
    if not isinstance(entry, dict):
        raise ConfigError(f"{where} must be a table")
    unknown = set(entry) - _RULE_KEYS
    if unknown:
        raise ConfigError(f"{where}: unknown keys: {', '.join(sorted(unknown))}")
    if not isinstance(entry.get("allowed", True), bool):
        raise ConfigError(f"{where}.allowed must be a boolean")
    if not isinstance(entry.get("priority", 0), int):
        raise ConfigError(f"{where}.priority must be an integer")
    try:
        return DataAccessRule(**entry)
    except ValueError as e:
        raise ConfigError(f"{where}: {e}") from e


def load_access_config(path: Path | str | None = None) -> AccessConfig:
    """Load principals and rules. A missing file yields an empty config.

    Raises:
        ConfigError: the file is not valid TOML or an entry is malformed.
    """
    config_path = Path(path) if path is not None else _CONFIG_FILE
    data = _load_file(config_path)

    principals_data = data.get("principals", {})
    if not isinstance(principals_data, dict):
        raise ConfigError("principals must be a table")
    rules_data = data.get("rules", [])
    if not isinstance(rules_data, list):
        raise ConfigError("rules must be an array of tables")
    default_database = data.get("default_database")
    if default_database is not None and not isinstance(default_database, str):
        raise ConfigError("default_database must be a string")

    return AccessConfig(
        principals={pid: _parse_principal(pid, e) for pid, e in principals_data.items()},
        rules=[_parse_rule(i, e) for i, e in enumerate(rules_data)],
        default_database=default_database,
    )
