"""
Master image reassignment.

Points every member of a duplicate group at the group's master image. One
pipeline serves all stages; stages only differ in whether they mutate the
catalog and in how many leading groups they touch, so an operator can check
the behaviour on a small slice before running unbounded.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

from ..core.errors import StoreError
from ..core.run_log import RunLog
from ..core.types import DuplicateGroup, MemberAction, RunCounters, RunStage
from ..shared.media_utils import filename_from_locator
from ..stores.base import AssetStore, CatalogStore

logger = logging.getLogger(__name__)

VALIDATION_SAMPLE = 5

STAGE_LIMITS: Dict[RunStage, Optional[int]] = {
    RunStage.VALIDATE: VALIDATION_SAMPLE,
    RunStage.DRY_RUN: None,
    RunStage.SMALL_BATCH: 10,
    RunStage.MEDIUM_BATCH: 50,
    RunStage.FULL: None,
}

MUTATING_STAGES = {RunStage.SMALL_BATCH, RunStage.MEDIUM_BATCH, RunStage.FULL}


class StageConfig(BaseModel):
    """Run configuration selected once at startup."""

    stage: RunStage
    limit: Optional[int] = None  # None = all groups
    mutates: bool = False

    @classmethod
    def for_stage(cls, stage: RunStage) -> "StageConfig":
        stage = RunStage(stage)
        return cls(
            stage=stage,
            limit=STAGE_LIMITS[stage],
            mutates=stage in MUTATING_STAGES,
        )

    def select(self, groups: Sequence[DuplicateGroup]) -> List[DuplicateGroup]:
        """Leading slice of groups this stage touches."""
        if self.limit is None:
            return list(groups)
        return list(groups[: self.limit])


class MemberOutcome(BaseModel):
    """What happened to one member during a run."""

    group_index: int
    identifier: str
    action: MemberAction
    previous_filename: str = ""
    error: Optional[str] = None


class ValidationCheck(BaseModel):
    """Resolution check of one sampled group."""

    group_index: int
    identifier: Optional[str] = None
    entry_name: Optional[str] = None
    master_locator: str = ""
    master_asset_id: Optional[int] = None

    @property
    def entry_found(self) -> bool:
        return self.entry_name is not None


class ReassignmentResult(BaseModel):
    """Result of a reassignment run."""

    stage: RunStage
    mutates: bool = False
    total_groups: int = 0
    groups_in_scope: int = 0
    total_members: int = 0
    counters: RunCounters = Field(default_factory=RunCounters)
    outcomes: List[MemberOutcome] = Field(default_factory=list)
    validation: List[ValidationCheck] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class ReassignmentEngine:
    """Assign each group's master image to all of its members."""

    def __init__(
        self,
        catalog: CatalogStore,
        assets: AssetStore,
        run_log: RunLog,
        checkpoint_interval: int = 25,
        show_progress: bool = False,
    ):
        """
        Initialize reassignment engine.

        Args:
            catalog: Catalog store holding the entries
            assets: Asset store the master locators resolve against
            run_log: Log of this run
            checkpoint_interval: Flush the run log every N groups
            show_progress: Display a progress bar
        """
        self.catalog = catalog
        self.assets = assets
        self.run_log = run_log
        self.checkpoint_interval = max(1, checkpoint_interval)
        self.show_progress = show_progress

    def run(
        self, groups: Sequence[DuplicateGroup], config: StageConfig
    ) -> ReassignmentResult:
        """
        Run one stage over the loaded groups.

        Args:
            groups: Groups in dataset order
            config: Stage configuration

        Returns:
            Counters and per-member outcomes of the run
        """
        result = ReassignmentResult(
            stage=config.stage, mutates=config.mutates, total_groups=len(groups)
        )
        result.total_members = sum(len(g.members) for g in groups)

        if config.stage == RunStage.VALIDATE:
            self._validate(config.select(groups), result)
        else:
            self._reassign(config.select(groups), config, result)

        self._write_summary(result)
        if result.outcomes:
            self.run_log.write_report(
                f"reassign_{config.stage.value}",
                ["group", "identifier", "action", "previous_image", "error"],
                (
                    {
                        "group": o.group_index,
                        "identifier": o.identifier,
                        "action": o.action.value,
                        "previous_image": o.previous_filename,
                        "error": o.error or "",
                    }
                    for o in result.outcomes
                ),
            )
        self.run_log.flush()
        return result

    def _validate(self, sample: List[DuplicateGroup], result: ReassignmentResult) -> None:
        self.run_log.section("VALIDATION (no changes)")
        result.groups_in_scope = len(sample)

        for group in sample:
            check = ValidationCheck(
                group_index=group.index, master_locator=group.master_locator
            )
            result.validation.append(check)
            result.counters.groups_processed += 1

            if group.members:
                check.identifier = group.members[0]
                self.run_log.event(f"Checking: {check.identifier}")
                try:
                    entry_id = self.catalog.resolve_identifier(check.identifier)
                    entry = self.catalog.get_entry(entry_id) if entry_id else None
                except StoreError as e:
                    entry = None
                    result.errors.append(str(e))
                    self.run_log.error(f"  Lookup failed: {e}")

                if entry is not None:
                    check.entry_name = entry.name
                    self.run_log.event(f"  Found: {entry.name}")
                else:
                    result.counters.not_found += 1
                    self.run_log.warning("  Not found")

            check.master_asset_id = self._resolve_master(group, result)
            if check.master_asset_id:
                self.run_log.event(f"  Master image found (ID: {check.master_asset_id})")
            else:
                result.counters.missing_master += 1
                self.run_log.warning(
                    f"  Master image NOT found in media library: "
                    f"{group.master_locator or '(empty)'}"
                )

        self.run_log.summary(
            "Quick stats",
            {
                "Total groups": result.total_groups,
                "Total unique members": result.total_members,
            },
        )

    def _reassign(
        self,
        groups: List[DuplicateGroup],
        config: StageConfig,
        result: ReassignmentResult,
    ) -> None:
        mode = "REAL CHANGES" if config.mutates else "no changes"
        self.run_log.section(
            f"STAGE {config.stage.value}: processing {len(groups)} groups ({mode})"
        )
        result.groups_in_scope = len(groups)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            disable=not self.show_progress,
        ) as progress:
            task = progress.add_task("Reassigning images...", total=len(groups))

            for position, group in enumerate(groups, 1):
                self._process_group(group, len(groups), config.mutates, result)
                result.counters.groups_processed += 1
                progress.advance(task)

                if position % self.checkpoint_interval == 0:
                    self.run_log.flush()

    def _resolve_master(
        self, group: DuplicateGroup, result: ReassignmentResult
    ) -> Optional[int]:
        if not group.eligible:
            return None
        try:
            return self.assets.resolve_locator(group.master_locator)
        except StoreError as e:
            result.errors.append(str(e))
            self.run_log.error(f"  Master lookup failed: {e}")
            return None

    def _process_group(
        self,
        group: DuplicateGroup,
        total: int,
        mutate: bool,
        result: ReassignmentResult,
    ) -> None:
        self.run_log.event(f"=== Group {group.index}/{total} ===")
        self.run_log.event(f"Master: {group.master_filename or '(empty)'}")

        # Resolved once per group, never per member
        master_id = self._resolve_master(group, result)
        if not master_id:
            result.counters.missing_master += 1
            self.run_log.warning(
                "  Master image not found in media library - SKIPPING GROUP"
            )
            return

        for identifier in group.members:
            outcome = self._process_member(
                identifier, group, master_id, mutate, result.counters
            )
            result.outcomes.append(outcome)
            if outcome.error:
                result.errors.append(f"{identifier}: {outcome.error}")

    def _process_member(
        self,
        identifier: str,
        group: DuplicateGroup,
        master_id: int,
        mutate: bool,
        counters: RunCounters,
    ) -> MemberOutcome:
        self.run_log.event(f"Member: {identifier}")
        outcome = MemberOutcome(
            group_index=group.index,
            identifier=identifier,
            action=MemberAction.NOT_FOUND,
        )

        try:
            entry_id = self.catalog.resolve_identifier(identifier)
            entry = self.catalog.get_entry(entry_id) if entry_id else None
            if entry is None:
                counters.not_found += 1
                self.run_log.warning("  Entry not found")
                return outcome

            current = ""
            if entry.primary_image_id and entry.primary_image_id > 0:
                current = (self.assets.get_locator(entry.primary_image_id) or "").strip()
            outcome.previous_filename = filename_from_locator(current)

            # Compared by asset id: stored and dataset locators may differ in encoding
            if entry.primary_image_id == master_id:
                counters.skipped += 1
                outcome.action = MemberAction.ALREADY_CORRECT
                self.run_log.event("  Already correct")
                return outcome

            was = outcome.previous_filename or "no image"
            if not mutate:
                counters.updated += 1
                outcome.action = MemberAction.WOULD_UPDATE
                self.run_log.event(f"  Would update (was: {was})")
                return outcome

            self.catalog.set_primary_image(entry.entry_id, master_id)
            counters.updated += 1
            outcome.action = MemberAction.UPDATED
            self.run_log.event(f"  UPDATED (was: {was})")

        except StoreError as e:
            counters.failed += 1
            outcome.action = MemberAction.FAILED
            outcome.error = str(e)
            self.run_log.error(f"  Failed: {e}")
            logger.debug(f"Member {identifier} failed", exc_info=True)

        return outcome

    def _write_summary(self, result: ReassignmentResult) -> None:
        counters = result.counters
        updated_label = "Entries updated" if result.mutates else "Entries to update"
        self.run_log.summary(
            "SUMMARY",
            {
                "Stage": result.stage.value,
                "Groups processed": counters.groups_processed,
                updated_label: counters.updated,
                "Already correct (skipped)": counters.skipped,
                "Entries not found": counters.not_found,
                "Master images missing": counters.missing_master,
                "Failures": counters.failed,
            },
        )
