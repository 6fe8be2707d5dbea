"""The `validate` command: decide whether a principal may run SQL, without executing."""

from __future__ import annotations

import asyncio

import click

from querygate.access import ConfigError, RuleGrantStore, validate_query_access
from querygate.auditlog import cleanup_old_logs, log_decision
from querygate.cli._output import format_result
from querygate.cli._shared import FORMAT_OPTION, dialect_or_default, resolve_sql_stdin
from querygate.config import load_access_config
from querygate.policy import DEFAULT_DIALECT


@click.command()
@click.argument("sql", required=False, default=None)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin instead of argument.")
@click.option("--user", "user", envvar="QUERYGATE_USER", default=None, help="Principal id.")
@click.option(
    "--config",
    "config_path",
    envvar="QUERYGATE_CONFIG",
    type=click.Path(dir_okay=False),
    default=None,
    help="Access config (default ~/.querygate/access.toml).",
)
@click.option("--default-database", default=None, help="Database for unqualified tables.")
@click.option("--connection", default=None, help="Connection id rules are scoped to.")
@click.option(
    "--dialect",
    default=DEFAULT_DIALECT,
    show_default=True,
    help="sqlglot dialect ('default' for sqlglot's own).",
)
@click.option(
    "--open-system-databases",
    is_flag=True,
    help="Allow system/information_schema without a rule.",
)
@FORMAT_OPTION
def validate(
    sql: str | None,
    from_stdin: bool,
    user: str | None,
    config_path: str | None,
    default_database: str | None,
    connection: str | None,
    dialect: str,
    open_system_databases: bool,
    output_format: str,
) -> None:
    """Validate SQL against role permissions and access rules without executing."""
    sql = resolve_sql_stdin(sql, from_stdin)
    try:
        config = load_access_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    principal = config.principal(user)
    grants = RuleGrantStore(
        config.rules,
        config.memberships,
        open_system_databases=open_system_databases,
    )
    database = default_database or config.default_database
    result = asyncio.run(
        validate_query_access(
            principal,
            sql,
            database,
            connection,
            grants=grants,
            dialect=dialect_or_default(dialect),
        )
    )

    log_decision(
        sql=sql,
        result=result,
        principal=principal.id,
        connection=connection,
        default_database=database,
    )
    cleanup_old_logs()

    output = format_result(result, output_format=output_format)
    if output:
        click.echo(output)
    if not result.allowed:
        raise SystemExit(1)
