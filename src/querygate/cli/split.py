"""The `split` command: show how a batch is split into statements."""

from __future__ import annotations

import click

from querygate.cli._output import format_statements
from querygate.cli._shared import FORMAT_OPTION, resolve_sql_stdin
from querygate.policy.split import split_statements


@click.command("split")
@click.argument("sql", required=False, default=None)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin instead of argument.")
@FORMAT_OPTION
def split(sql: str | None, from_stdin: bool, output_format: str) -> None:
    """Split SQL on top-level semicolons."""
    sql = resolve_sql_stdin(sql, from_stdin)
    output = format_statements(split_statements(sql), output_format=output_format)
    if output:
        click.echo(output)
