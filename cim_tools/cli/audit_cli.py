"""
CLI command for auditing the catalog after reassignment and cleanup.
"""

from typing import Optional

import click

from ..core.errors import CimToolsError
from ..core.run_log import RunLog
from ..reconcile.audit import AuditReconciler, AuditReport
from ..shared.media_utils import setup_logging
from .common import (
    build_settings,
    common_options,
    console,
    dataset_option,
    fail,
    load_groups,
    log_dataset,
    metrics_table,
    open_stores,
    print_outputs,
)


@click.command("audit")
@dataset_option
@common_options
def audit(
    dataset: Optional[str],
    database_url: Optional[str],
    media_root: Optional[str],
    base_url: Optional[str],
    log_dir: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Verify the catalog against the dataset (read-only).

    Reports members that are not on their master image, master images
    missing from the media library, known duplicates still present and how
    much of the visible catalog the dataset covers.
    """
    setup_logging(verbose=verbose, quiet=quiet, console=console)
    settings = build_settings(
        dataset=dataset,
        database_url=database_url,
        media_root=media_root,
        base_url=base_url,
        log_dir=log_dir,
    )

    try:
        loaded = load_groups(settings)
        with open_stores(settings) as (catalog, assets):
            run_log = RunLog("audit", "", settings.log_dir)
            log_dataset(run_log, loaded)
            auditor = AuditReconciler(
                catalog,
                assets,
                run_log,
                preview_limit=settings.mismatch_preview_limit,
            )
            report = auditor.run(loaded.groups)
    except CimToolsError as e:
        fail(str(e), verbose)
        return

    if not quiet:
        _display_report(report)
    print_outputs(run_log, quiet)


def _display_report(report: AuditReport) -> None:
    members = report.members
    masters = report.masters
    coverage = report.coverage

    console.print(
        metrics_table(
            "Members",
            {
                "Correct": members.correct,
                "Wrong image": members.wrong_image,
                "No image": members.no_image,
                "Not found": members.not_found,
            },
        )
    )
    console.print(
        metrics_table(
            "Master images",
            {
                "Found": f"{masters.found} / {masters.total_groups}",
                "Missing": masters.missing,
                "Known duplicates still present": report.residue.still_present,
                "Known duplicates removed": report.residue.already_removed,
            },
        )
    )
    console.print(
        metrics_table(
            "Coverage",
            {
                "Visible entries": coverage.total_visible,
                "With image": coverage.with_image,
                "Without image": coverage.without_image,
                "Identifiers in dataset": coverage.dataset_members,
                "Covered by dataset": coverage.covered,
                "Not covered": coverage.not_covered,
            },
        )
    )

    if masters.missing_masters:
        console.print("\n[red]Groups with a missing master image:[/red]")
        for m in masters.missing_masters[:10]:
            console.print(
                f"  [red]• Group {m.group_index}: {m.filename} "
                f"({m.member_count} members)[/red]"
            )
        if len(masters.missing_masters) > 10:
            console.print(f"  [dim]... and {len(masters.missing_masters) - 10} more[/dim]")
