"""
CLI commands for the reachability scan and unused image reclamation.
"""

from typing import Optional

import click
from pydantic import ValidationError
from rich.markup import escape

from ..core.errors import CimToolsError
from ..core.run_log import RunLog
from ..core.types import ReclaimMode
from ..reconcile.reachability import ReachabilityScanner
from ..reconcile.reclamation import DeletionPolicy, ReclamationPlanner, ReclamationResult
from ..shared.media_utils import format_bytes, setup_logging
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


@click.command("reclaim")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ReclaimMode], case_sensitive=False),
    required=True,
    help="analyze (report only) or delete (PERMANENT)",
)
@click.option(
    "--pattern",
    type=str,
    default=None,
    help="Regular expression an unused filename must match to be deleted "
    "(CIM_DELETABLE_PATTERN)",
)
@click.option(
    "--multiplier",
    type=float,
    default=None,
    help="Size multiplier estimating resized variants (default: 4.0)",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask before deleting")
@dataset_option
@common_options
def reclaim(
    mode: str,
    pattern: Optional[str],
    multiplier: Optional[float],
    yes: bool,
    dataset: Optional[str],
    database_url: Optional[str],
    media_root: Optional[str],
    base_url: Optional[str],
    log_dir: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Find and delete images that no catalog entry uses anymore.

    Run this only after `cim-tools reassign --stage full` has converged.
    Images still referenced by any published, private, draft or pending
    entry are kept, master images from the dataset are never deleted, and
    only unused images whose filename matches the configured pattern are
    considered at all.
    """
    setup_logging(verbose=verbose, quiet=quiet, console=console)
    settings = build_settings(
        dataset=dataset,
        database_url=database_url,
        media_root=media_root,
        base_url=base_url,
        log_dir=log_dir,
        pattern=pattern,
        multiplier=multiplier,
    )
    reclaim_mode = ReclaimMode(mode.lower())

    if not settings.deletable_pattern:
        fail(
            "No deletable pattern configured. Pass --pattern or set "
            "CIM_DELETABLE_PATTERN to match your imported product image names."
        )
        return

    try:
        policy = DeletionPolicy(
            pattern=settings.deletable_pattern,
            variant_size_multiplier=settings.variant_size_multiplier,
        )
    except ValidationError as e:
        fail(f"Invalid deletion policy: {e}")
        return

    try:
        loaded = load_groups(settings)
        protected = loaded.protected_filenames()

        if not quiet:
            console.print("\n[bold cyan]Unused Image Cleanup[/bold cyan]\n")
            console.print(f"  Dataset: {settings.dataset_path}")
            console.print(f"  Mode: {reclaim_mode.value}")
            console.print(f"  Deletable pattern: {escape(policy.pattern)}")
            console.print(f"  Protected master images: {len(protected)}")
            console.print()

        if reclaim_mode == ReclaimMode.DELETE and not yes:
            console.print("[red]⚠ WARNING: deleted images cannot be recovered![/red]")
            if not click.confirm("Delete all unused images matching the pattern?"):
                console.print("[yellow]Cancelled[/yellow]")
                return

        with open_stores(settings) as (catalog, assets):
            run_log = RunLog("reclaim", reclaim_mode.value, settings.log_dir)
            log_dataset(run_log, loaded)
            run_log.event(f"Protected master images: {len(protected)}")

            reachable = ReachabilityScanner(
                catalog, run_log, page_size=settings.page_size
            ).scan()
            planner = ReclamationPlanner(
                assets,
                policy,
                run_log,
                page_size=settings.page_size,
                show_progress=not quiet,
            )
            result = planner.run(reclaim_mode, reachable, protected)

    except CimToolsError as e:
        fail(str(e), verbose)
        return

    if not quiet:
        _display_result(result)
    print_outputs(run_log, quiet)


@click.command("scan")
@common_options
def scan(
    database_url: Optional[str],
    media_root: Optional[str],
    base_url: Optional[str],
    log_dir: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """Report which images the catalog currently references (no changes)."""
    setup_logging(verbose=verbose, quiet=quiet, console=console)
    settings = build_settings(
        database_url=database_url,
        media_root=media_root,
        base_url=base_url,
        log_dir=log_dir,
    )

    try:
        with open_stores(settings) as (catalog, _):
            run_log = RunLog("scan", "", settings.log_dir)
            reachable = ReachabilityScanner(
                catalog, run_log, page_size=settings.page_size
            ).scan()
            run_log.flush()
    except CimToolsError as e:
        fail(str(e), verbose)
        return

    if not quiet:
        console.print(
            metrics_table(
                "Reachability",
                {
                    "Entries scanned": reachable.entries_scanned,
                    "Primary image references": reachable.primary_references,
                    "Gallery references": reachable.gallery_references,
                    "Distinct images in use": len(reachable),
                },
            )
        )
    print_outputs(run_log, quiet)


def _display_result(result: ReclamationResult) -> None:
    counters = result.counters
    rows = {
        "Image assets scanned": result.assets_scanned,
        "In use": counters.in_use,
        "Protected": counters.protected,
        "Out of policy": counters.out_of_policy,
        "Deletion candidates": counters.candidates,
        "Candidate size": format_bytes(result.candidate_bytes),
        "Estimated with variants": format_bytes(result.estimated_bytes_with_variants),
    }
    if result.mode == ReclaimMode.DELETE:
        rows["Deleted"] = counters.deleted
        rows["Failed"] = counters.failed
        rows["Space freed"] = format_bytes(result.freed_bytes)

    console.print(metrics_table("Reclamation", rows))

    if result.mode == ReclaimMode.ANALYZE:
        console.print("\n[yellow]This was an ANALYSIS - no images were deleted[/yellow]")
        console.print("Run with --mode delete to remove the candidates.")
    else:
        console.print("\n[green]✓ Cleanup complete![/green]")

    display_errors(result.errors)
