"""
Post-run audit.

Read-only verification of the catalog against the dataset: are members on
their master image, do the masters still exist, how much of the catalog
does the dataset reach, and which known duplicates are still around.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from ..core.errors import StoreError
from ..core.run_log import RunLog
from ..core.types import DuplicateGroup, EntryKind, EntryStatus, MemberStatus
from ..shared.media_utils import filename_from_locator
from ..stores.base import AssetStore, CatalogStore

logger = logging.getLogger(__name__)

VISIBLE_STATUSES = [EntryStatus.PUBLISH]
VISIBLE_KINDS = [EntryKind.PRODUCT]


class Mismatch(BaseModel):
    """A member that is not on its group's master image."""

    identifier: str
    issue: MemberStatus
    expected: str
    actual: str
    group_index: int


class MemberReport(BaseModel):
    correct: int = 0
    wrong_image: int = 0
    no_image: int = 0
    not_found: int = 0
    errors: int = 0
    mismatches: List[Mismatch] = Field(default_factory=list)


class MissingMaster(BaseModel):
    group_index: int
    locator: str
    filename: str
    member_count: int


class MasterHealthReport(BaseModel):
    total_groups: int = 0
    found: int = 0
    missing: int = 0
    missing_masters: List[MissingMaster] = Field(default_factory=list)


class CoverageReport(BaseModel):
    total_visible: int = 0
    with_image: int = 0
    without_image: int = 0
    dataset_members: int = 0
    covered: int = 0
    not_covered: int = 0


class DuplicateResidueReport(BaseModel):
    still_present: int = 0
    already_removed: int = 0


class AuditReport(BaseModel):
    """All audit reports of one run."""

    members: MemberReport = Field(default_factory=MemberReport)
    masters: MasterHealthReport = Field(default_factory=MasterHealthReport)
    coverage: CoverageReport = Field(default_factory=CoverageReport)
    residue: DuplicateResidueReport = Field(default_factory=DuplicateResidueReport)
    mismatch_report: Optional[str] = None


class AuditReconciler:
    """Verify catalog state against the duplicate-group dataset."""

    def __init__(
        self,
        catalog: CatalogStore,
        assets: AssetStore,
        run_log: RunLog,
        preview_limit: int = 20,
    ):
        """
        Initialize auditor.

        Args:
            catalog: Catalog store
            assets: Asset store
            run_log: Log of this run
            preview_limit: Mismatches shown in the log (all go to the report)
        """
        self.catalog = catalog
        self.assets = assets
        self.run_log = run_log
        self.preview_limit = preview_limit

    def run(self, groups: Sequence[DuplicateGroup]) -> AuditReport:
        """
        Produce every audit report.

        Args:
            groups: Groups loaded from the dataset

        Returns:
            Combined audit report
        """
        report = AuditReport()
        self.run_log.event(f"Loaded {len(groups)} groups from dataset")

        report.members = self.check_members(groups)
        report.masters = self.check_masters(groups)
        report.residue = self.check_duplicate_residue(groups)
        report.coverage = self.check_coverage(groups)

        if report.members.mismatches:
            path = self.run_log.write_report(
                "mismatches",
                ["identifier", "issue", "expected_image", "actual_image", "group"],
                (
                    {
                        "identifier": m.identifier,
                        "issue": m.issue.value,
                        "expected_image": m.expected,
                        "actual_image": m.actual,
                        "group": m.group_index,
                    }
                    for m in report.members.mismatches
                ),
            )
            report.mismatch_report = str(path) if path else None

        self.run_log.section("AUDIT COMPLETE")
        self.run_log.flush()
        return report

    def _current_image(self, identifier: str) -> Optional[Tuple[Optional[int], str]]:
        """Primary image id and locator of an entry; None if the entry is unknown."""
        entry_id = self.catalog.resolve_identifier(identifier)
        entry = self.catalog.get_entry(entry_id) if entry_id else None
        if entry is None:
            return None
        if not entry.primary_image_id or entry.primary_image_id <= 0:
            return None, ""
        locator = (self.assets.get_locator(entry.primary_image_id) or "").strip()
        return entry.primary_image_id, locator

    def _resolve_master(self, group: DuplicateGroup) -> Optional[int]:
        if not group.eligible:
            return None
        try:
            return self.assets.resolve_locator(group.master_locator)
        except StoreError as e:
            self.run_log.error(f"Master lookup failed for group {group.index}: {e}")
            return None

    def check_members(self, groups: Sequence[DuplicateGroup]) -> MemberReport:
        """Classify every member of every group against its master."""
        self.run_log.section("AUDIT 1: ENTRIES NOT MATCHING MASTER IMAGE")
        report = MemberReport()

        for group in groups:
            expected = group.master_filename or "(none)"
            # Compared by asset id: stored and dataset locators may differ in encoding
            master_id = self._resolve_master(group)
            for identifier in group.members:
                try:
                    current = self._current_image(identifier)
                except StoreError as e:
                    report.errors += 1
                    self.run_log.error(f"Lookup failed for {identifier}: {e}")
                    continue

                if current is None:
                    report.not_found += 1
                    continue

                image_id, locator = current
                if image_id is None:
                    report.no_image += 1
                    report.mismatches.append(
                        Mismatch(
                            identifier=identifier,
                            issue=MemberStatus.NO_IMAGE,
                            expected=expected,
                            actual="(none)",
                            group_index=group.index,
                        )
                    )
                elif master_id is None or image_id != master_id:
                    report.wrong_image += 1
                    report.mismatches.append(
                        Mismatch(
                            identifier=identifier,
                            issue=MemberStatus.WRONG_IMAGE,
                            expected=expected,
                            actual=filename_from_locator(locator) or "(missing asset)",
                            group_index=group.index,
                        )
                    )
                else:
                    report.correct += 1

        self.run_log.event(f"Correct (has master image): {report.correct}")
        self.run_log.event(f"Wrong image (has different image): {report.wrong_image}")
        self.run_log.event(f"No image at all: {report.no_image}")
        self.run_log.event(f"Identifier not found in catalog: {report.not_found}")
        if report.errors:
            self.run_log.event(f"Lookup errors: {report.errors}")

        if report.mismatches:
            self.run_log.event(f"--- First {self.preview_limit} mismatches ---")
            for m in report.mismatches[: self.preview_limit]:
                issue = m.issue.value.replace("_", " ").upper()
                self.run_log.event(f"  [{issue}] {m.identifier} (Group {m.group_index})")
                self.run_log.event(f"    Expected: {m.expected}")
                self.run_log.event(f"    Actual:   {m.actual}")

        return report

    def check_masters(self, groups: Sequence[DuplicateGroup]) -> MasterHealthReport:
        """Verify every group's master still resolves in the asset store."""
        self.run_log.section("AUDIT 2: MASTER IMAGE HEALTH CHECK")
        report = MasterHealthReport(total_groups=len(groups))

        for group in groups:
            if self._resolve_master(group):
                report.found += 1
                continue

            report.missing += 1
            report.missing_masters.append(
                MissingMaster(
                    group_index=group.index,
                    locator=group.master_locator,
                    filename=group.master_filename or "(empty)",
                    member_count=len(group.members),
                )
            )

        self.run_log.event(f"Master images found: {report.found} / {report.total_groups}")
        self.run_log.event(f"Master images MISSING: {report.missing}")
        if report.missing_masters:
            self.run_log.event("--- Missing master images ---")
            for m in report.missing_masters:
                self.run_log.event(
                    f"  Group {m.group_index}: {m.member_count} members affected"
                )
                self.run_log.event(f"    Image: {m.filename}")

        return report

    def check_duplicate_residue(
        self, groups: Sequence[DuplicateGroup]
    ) -> DuplicateResidueReport:
        """Count known duplicate images still present in the asset store."""
        self.run_log.section("AUDIT 3: DUPLICATE IMAGES STILL IN MEDIA LIBRARY")
        report = DuplicateResidueReport()

        for group in groups:
            for duplicate in group.known_duplicates:
                try:
                    asset_id = self.assets.resolve_locator(duplicate.locator)
                except StoreError as e:
                    self.run_log.error(f"Lookup failed for {duplicate.filename}: {e}")
                    continue
                if asset_id:
                    report.still_present += 1
                else:
                    report.already_removed += 1

        self.run_log.event(
            f"Duplicate images still in media library: {report.still_present}"
        )
        self.run_log.event(f"Duplicate images already removed: {report.already_removed}")
        return report

    def check_coverage(self, groups: Sequence[DuplicateGroup]) -> CoverageReport:
        """Measure how much of the visible catalog the dataset reaches."""
        self.run_log.section("AUDIT 4: CATALOG COVERAGE")
        members = {m for group in groups for m in group.members}

        report = CoverageReport(dataset_members=len(members))
        report.total_visible = self.catalog.count_entries(
            statuses=VISIBLE_STATUSES, kinds=VISIBLE_KINDS
        )
        report.with_image = self.catalog.count_entries(
            statuses=VISIBLE_STATUSES, kinds=VISIBLE_KINDS, has_primary_image=True
        )
        report.without_image = report.total_visible - report.with_image
        report.covered = self.catalog.count_entries(
            statuses=VISIBLE_STATUSES, kinds=VISIBLE_KINDS, identifiers=members
        )
        report.not_covered = report.total_visible - report.covered

        self.run_log.event(f"Total visible entries: {report.total_visible}")
        self.run_log.event(f"Entries with images: {report.with_image}")
        self.run_log.event(f"Entries WITHOUT images: {report.without_image}")
        self.run_log.event(f"Distinct identifiers in dataset: {report.dataset_members}")
        self.run_log.event(f"Visible entries covered by dataset: {report.covered}")
        self.run_log.event(f"Visible entries NOT in dataset: {report.not_covered}")
        return report
