"""The `parse` command: classify each statement and show the tables it touches."""

from __future__ import annotations

import click

from querygate.cli._output import format_parsed
from querygate.cli._shared import FORMAT_OPTION, dialect_or_default, resolve_sql_stdin
from querygate.policy import DEFAULT_DIALECT, parse_statement
from querygate.policy.reconcile import resolve_tables
from querygate.policy.split import split_statements


@click.command("parse")
@click.argument("sql", required=False, default=None)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin instead of argument.")
@click.option(
    "--dialect",
    default=DEFAULT_DIALECT,
    show_default=True,
    help="sqlglot dialect ('default' for sqlglot's own).",
)
@click.option("--default-database", default=None, help="Database for unqualified tables.")
@FORMAT_OPTION
def parse(
    sql: str | None,
    from_stdin: bool,
    dialect: str,
    default_database: str | None,
    output_format: str,
) -> None:
    """Show operation kind, access type and tables per statement."""
    sql = resolve_sql_stdin(sql, from_stdin)
    results = []
    for text in split_statements(sql):
        parsed = parse_statement(text, dialect=dialect_or_default(dialect))
        results.append((parsed, resolve_tables(parsed, default_database)))
    output = format_parsed(results, output_format=output_format)
    if output:
        click.echo(output)
