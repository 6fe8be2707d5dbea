"""CLI entry point for `querygate`."""

from __future__ import annotations

import click

from querygate.cli.parse import parse
from querygate.cli.split import split
from querygate.cli.validate import validate


@click.group()
@click.version_option(package_name="querygate")
def main() -> None:
    """querygate: statement analysis and access control for SQL batches."""


main.add_command(split)
main.add_command(parse)
main.add_command(validate)
