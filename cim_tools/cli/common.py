"""
Helpers shared by the CLI commands.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Settings
from ..core.groups import GroupLoader, GroupLoadResult
from ..core.run_log import RunLog
from ..db import SqlAssetStore, SqlCatalogStore, create_db_engine, get_db_context, init_db

console = Console()
logger = logging.getLogger(__name__)


def common_options(func: Callable) -> Callable:
    """Options every command accepts to override the configured settings."""
    options = [
        click.option(
            "--database-url",
            type=str,
            default=None,
            help="SQLAlchemy URL of the catalog database (CIM_DATABASE_URL)",
        ),
        click.option(
            "--media-root",
            type=click.Path(file_okay=False),
            default=None,
            help="Directory holding the asset files (CIM_MEDIA_ROOT)",
        ),
        click.option(
            "--base-url",
            type=str,
            default=None,
            help="Public URL of the media root (CIM_MEDIA_BASE_URL)",
        ),
        click.option(
            "--log-dir",
            type=click.Path(file_okay=False),
            default=None,
            help="Directory for run logs and reports (CIM_LOG_DIR)",
        ),
        click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging"),
        click.option(
            "-q", "--quiet", is_flag=True, help="Suppress all output except errors"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def dataset_option(func: Callable) -> Callable:
    return click.option(
        "--dataset",
        type=click.Path(dir_okay=False),
        default=None,
        help="Duplicate-group CSV (CIM_DATASET_PATH)",
    )(func)


def build_settings(**overrides: Any) -> Settings:
    """Load settings and apply the command-line overrides that were given."""
    settings = Settings()
    mapping = {
        "database_url": "database_url",
        "media_root": "media_root",
        "base_url": "media_base_url",
        "log_dir": "log_dir",
        "dataset": "dataset_path",
        "pattern": "deletable_pattern",
        "multiplier": "variant_size_multiplier",
    }
    path_fields = {"media_root", "log_dir", "dataset_path"}
    update: Dict[str, Any] = {}
    for option, field in mapping.items():
        value = overrides.get(option)
        if value is None:
            continue
        update[field] = Path(value) if field in path_fields else value
    return settings.model_copy(update=update)


def load_groups(settings: Settings) -> GroupLoadResult:
    """Load the dataset. Raises before any store is opened."""
    loader = GroupLoader(
        settings.dataset_path,
        member_column=settings.member_column,
        master_column=settings.master_column,
        duplicates_column=settings.duplicates_column,
        member_delimiter=settings.member_delimiter,
    )
    return loader.load()


@contextmanager
def open_stores(
    settings: Settings,
    create_schema: bool = False,
) -> Generator[Tuple[SqlCatalogStore, SqlAssetStore], None, None]:
    """
    Open the catalog and asset stores on one database session.

    The schema of an existing catalog is never touched unless create_schema
    is set.
    """
    engine = create_db_engine(settings)
    if create_schema:
        init_db(engine)
    try:
        with get_db_context(engine) as session:
            yield (
                SqlCatalogStore(session),
                SqlAssetStore(session, settings.media_root, settings.media_base_url),
            )
    finally:
        engine.dispose()


def log_dataset(run_log: RunLog, loaded: GroupLoadResult) -> None:
    run_log.event(f"Loaded {len(loaded.groups)} groups")
    if loaded.malformed_rows:
        run_log.warning(
            f"Skipped {loaded.malformed_rows} malformed rows "
            f"(lines {', '.join(str(n) for n in loaded.malformed_lines[:20])})"
        )
    if loaded.missing_master:
        run_log.warning(f"{loaded.missing_master} groups have no master image")


def metrics_table(title: str, rows: Dict[str, Any]) -> Table:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for label, value in rows.items():
        table.add_row(label, str(value))
    return table


def print_outputs(run_log: RunLog, quiet: bool = False) -> None:
    """Point the user at the persisted log and detail reports."""
    if quiet:
        return
    if run_log.path is not None:
        console.print(f"\n[dim]Log: {run_log.path}[/dim]")
    for report in run_log.reports:
        console.print(f"[dim]Detail report: {report}[/dim]")


def fail(message: str, verbose: bool = False) -> None:
    console.print(f"\n[red]✗ Error: {escape(message)}[/red]")
    if verbose:
        console.print_exception()
    sys.exit(1)


def display_errors(errors: List[str], limit: int = 10) -> None:
    if not errors:
        return
    console.print("\n[red]Errors:[/red]")
    for error in errors[:limit]:
        console.print(f"  [red]• {escape(error)}[/red]")
    if len(errors) > limit:
        console.print(f"  [dim]... and {len(errors) - limit} more[/dim]")

