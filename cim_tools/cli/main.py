"""
Main CLI entry point for CIM Tools.

Typical sequence:
    cim-tools init-db
    cim-tools reassign --stage validate
    cim-tools reassign --stage dry-run
    cim-tools reassign --stage small-batch
    cim-tools reassign --stage full
    cim-tools reclaim --mode analyze --pattern <regex>
    cim-tools reclaim --mode delete --pattern <regex>
    cim-tools audit
"""

import click

from .. import __version__
from .audit_cli import audit
from .db_cli import init_db_command
from .reassign_cli import reassign
from .reclaim_cli import reclaim, scan


@click.group()
@click.version_option(__version__, prog_name="cim-tools")
def cli() -> None:
    """Consolidate duplicate catalog images, reclaim unused ones and audit."""


cli.add_command(init_db_command)
cli.add_command(reassign)
cli.add_command(scan)
cli.add_command(reclaim)
cli.add_command(audit)


if __name__ == "__main__":
    cli()
