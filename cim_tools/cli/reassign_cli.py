"""
CLI command for reassigning duplicate groups to their master image.
"""

from typing import Optional

import click

from ..core.errors import CimToolsError
from ..core.run_log import RunLog
from ..core.types import RunStage
from ..reconcile.reassign import ReassignmentEngine, ReassignmentResult, StageConfig
from ..shared.media_utils import setup_logging
from .common import (
    build_settings,
    common_options,
    console,
    dataset_option,
    display_errors,
    fail,
    load_groups,
    log_dataset,
    metrics_table,
    open_stores,
    print_outputs,
)


@click.command("reassign")
@click.option(
    "--stage",
    type=click.Choice([s.value for s in RunStage], case_sensitive=False),
    required=True,
    help="validate, dry-run, small-batch (10 groups), medium-batch (50) or full",
)
@dataset_option
@common_options
def reassign(
    stage: str,
    dataset: Optional[str],
    database_url: Optional[str],
    media_root: Optional[str],
    base_url: Optional[str],
    log_dir: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Point every member of each duplicate group at the group's master image.

    \b
    Stages:
        validate       Resolve a sample of members and masters (no changes)
        dry-run        Report what would change for all groups (no changes)
        small-batch    Apply to the first 10 groups
        medium-batch   Apply to the first 50 groups
        full           Apply to all groups

    Runs are idempotent: entries already on their master image are skipped,
    so a stage can be re-run or followed by a larger one at any time.
    """
    setup_logging(verbose=verbose, quiet=quiet, console=console)
    settings = build_settings(
        dataset=dataset,
        database_url=database_url,
        media_root=media_root,
        base_url=base_url,
        log_dir=log_dir,
    )
    config = StageConfig.for_stage(RunStage(stage.lower()))

    try:
        loaded = load_groups(settings)

        if not quiet:
            console.print("\n[bold cyan]Master Image Reassignment[/bold cyan]\n")
            console.print(f"  Dataset: {settings.dataset_path}")
            console.print(f"  Stage: {config.stage.value}")
            console.print(f"  Groups loaded: {len(loaded.groups)}")
            if config.mutates:
                console.print("\n[red]⚠ This stage makes REAL CHANGES to the catalog[/red]")
            else:
                console.print("\n[yellow]⚠ No changes will be made[/yellow]")
            console.print()

        with open_stores(settings) as (catalog, assets):
            run_log = RunLog("reassign", config.stage.value, settings.log_dir)
            log_dataset(run_log, loaded)
            engine = ReassignmentEngine(
                catalog,
                assets,
                run_log,
                checkpoint_interval=settings.checkpoint_interval,
                show_progress=not quiet,
            )
            result = engine.run(loaded.groups, config)

    except CimToolsError as e:
        fail(str(e), verbose)
        return

    if not quiet:
        _display_result(result, loaded.malformed_rows)
    print_outputs(run_log, quiet)


def _display_result(result: ReassignmentResult, malformed_rows: int) -> None:
    counters = result.counters

    if result.stage == RunStage.VALIDATE:
        table = metrics_table(
            "Validation",
            {
                "Groups checked": counters.groups_processed,
                "Members not found": counters.not_found,
                "Master images missing": counters.missing_master,
                "Total groups": result.total_groups,
                "Total unique members": result.total_members,
            },
        )
    else:
        table = metrics_table(
            "Results",
            {
                "Groups processed": f"{counters.groups_processed} / {result.total_groups}",
                "Updated" if result.mutates else "Would update": counters.updated,
                "Already correct": counters.skipped,
                "Not found": counters.not_found,
                "Master missing": counters.missing_master,
                "Failed": counters.failed,
                "Malformed rows": malformed_rows,
            },
        )

    console.print(table)

    if not result.mutates:
        console.print("\n[yellow]No changes were made[/yellow]")
    else:
        console.print("\n[green]✓ Reassignment complete![/green]")

    display_errors(result.errors)
