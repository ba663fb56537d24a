"""
CLI command for preparing an empty catalog database.
"""

from typing import Optional

import click
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import CimToolsError
from ..shared.media_utils import setup_logging
from .common import build_settings, common_options, console, fail, open_stores


@click.command("init-db")
@common_options
def init_db_command(
    database_url: Optional[str],
    media_root: Optional[str],
    base_url: Optional[str],
    log_dir: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Create the catalog and asset tables if they do not exist yet.

    The other commands never change the database schema, so a new
    database has to be initialized with this command first. Existing
    tables are left as they are.
    """
    setup_logging(verbose=verbose, quiet=quiet, console=console)
    settings = build_settings(
        database_url=database_url,
        media_root=media_root,
        base_url=base_url,
        log_dir=log_dir,
    )

    try:
        with open_stores(settings, create_schema=True) as (catalog, _):
            entries = catalog.count_entries()
    except (CimToolsError, SQLAlchemyError) as e:
        fail(str(e), verbose)
        return

    if not quiet:
        console.print("\n[green]✓ Database initialized[/green]")
        console.print(f"  Catalog entries: {entries}")
