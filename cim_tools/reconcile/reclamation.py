"""
Unused image reclamation (sweep phase).

Classifies every image asset as in use, protected, deletion candidate or
out of policy, and optionally deletes the candidates. Reachability and
protection are checked before the naming pattern, and the pattern only ever
includes assets: anything it does not match is left alone even if nothing
references it.
"""

import logging
import re
from typing import AbstractSet, List, Optional, Pattern

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

from ..core.errors import StoreError
from ..core.run_log import RunLog
from ..core.types import (
    AssetClass,
    AssetRecord,
    ReachabilitySet,
    ReclaimMode,
    RunCounters,
)
from ..shared.media_utils import format_bytes
from ..stores.base import DEFAULT_PAGE_SIZE, AssetStore

logger = logging.getLogger(__name__)


class DeletionPolicy(BaseModel):
    """Which orphaned assets may be deleted."""

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(
        description="Regular expression searched in the filename of an asset"
    )
    variant_size_multiplier: float = Field(
        default=4.0,
        ge=1.0,
        description="Estimated total size of an asset and its variants, "
        "as a multiple of the original",
    )

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("deletable pattern must not be empty")
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression: {e}") from e
        return value

    @property
    def compiled(self) -> Pattern[str]:
        return re.compile(self.pattern)

    def matches(self, filename: str) -> bool:
        return bool(self.compiled.search(filename))


class Candidate(BaseModel):
    """An asset eligible for deletion."""

    asset: AssetRecord
    deleted: bool = False
    freed_bytes: int = 0
    error: Optional[str] = None


class ReclamationResult(BaseModel):
    """Result of a reclamation run."""

    mode: ReclaimMode
    assets_scanned: int = 0
    counters: RunCounters = Field(default_factory=RunCounters)
    candidates: List[Candidate] = Field(default_factory=list)
    candidate_bytes: int = 0
    estimated_bytes_with_variants: int = 0
    freed_bytes: int = 0
    errors: List[str] = Field(default_factory=list)


def classify_asset(
    asset: AssetRecord,
    reachable: ReachabilitySet,
    protected: AbstractSet[str],
    policy: DeletionPolicy,
) -> AssetClass:
    """
    Classify one asset. The first matching rule wins.

    Args:
        asset: Asset to classify
        reachable: Asset ids referenced by the catalog
        protected: Master image filenames
        policy: Deletion policy

    Returns:
        Asset class
    """
    if asset.asset_id in reachable:
        return AssetClass.IN_USE
    if asset.filename in protected:
        return AssetClass.PROTECTED
    if policy.matches(asset.filename):
        return AssetClass.CANDIDATE
    return AssetClass.OUT_OF_POLICY


class ReclamationPlanner:
    """Find and optionally delete images no catalog entry uses anymore."""

    def __init__(
        self,
        assets: AssetStore,
        policy: DeletionPolicy,
        run_log: RunLog,
        page_size: int = DEFAULT_PAGE_SIZE,
        show_progress: bool = False,
    ):
        """
        Initialize reclamation planner.

        Args:
            assets: Asset store to sweep
            policy: Deletion policy
            run_log: Log of this run
            page_size: Assets fetched per page
            show_progress: Display a progress bar while deleting
        """
        self.assets = assets
        self.policy = policy
        self.run_log = run_log
        self.page_size = page_size
        self.show_progress = show_progress

    def run(
        self,
        mode: ReclaimMode,
        reachable: ReachabilitySet,
        protected: AbstractSet[str],
    ) -> ReclamationResult:
        """
        Classify every image asset and, in delete mode, remove the candidates.

        Args:
            mode: analyze or delete
            reachable: Fresh reachability set
            protected: Master image filenames from the whole dataset

        Returns:
            Classification tallies and the candidate list
        """
        mode = ReclaimMode(mode)
        result = ReclamationResult(mode=mode)

        self._classify(reachable, protected, result)

        if mode == ReclaimMode.DELETE:
            self._delete(result)
        else:
            self._analyze(result)

        self.run_log.write_report(
            f"reclaim_{mode.value}",
            ["asset_id", "filename", "storage_path", "size_bytes", "status", "error"],
            (
                {
                    "asset_id": c.asset.asset_id,
                    "filename": c.asset.filename,
                    "storage_path": c.asset.storage_path,
                    "size_bytes": c.asset.size_bytes,
                    "status": self._status(c, mode),
                    "error": c.error or "",
                }
                for c in result.candidates
            ),
        )
        self.run_log.flush()
        return result

    @staticmethod
    def _status(candidate: Candidate, mode: ReclaimMode) -> str:
        if mode == ReclaimMode.ANALYZE:
            return "candidate"
        return "deleted" if candidate.deleted else "failed"

    def _classify(
        self,
        reachable: ReachabilitySet,
        protected: AbstractSet[str],
        result: ReclamationResult,
    ) -> None:
        counters = result.counters
        self.run_log.section("CLASSIFYING ASSETS")

        # The whole library is classified before anything is deleted
        for asset in self.assets.iter_assets(page_size=self.page_size):
            result.assets_scanned += 1
            asset_class = classify_asset(asset, reachable, protected, self.policy)

            if asset_class == AssetClass.IN_USE:
                counters.in_use += 1
            elif asset_class == AssetClass.PROTECTED:
                counters.protected += 1
                logger.debug(f"Protected master image: {asset.filename}")
            elif asset_class == AssetClass.CANDIDATE:
                counters.candidates += 1
                result.candidates.append(Candidate(asset=asset))
                result.candidate_bytes += asset.size_bytes
            else:
                counters.out_of_policy += 1

        result.estimated_bytes_with_variants = int(
            result.candidate_bytes * self.policy.variant_size_multiplier
        )

        self.run_log.summary(
            "CLASSIFICATION",
            {
                "Image assets scanned": result.assets_scanned,
                "In use": counters.in_use,
                "Protected (master images)": counters.protected,
                "Deletion candidates": counters.candidates,
                "Out of policy (left untouched)": counters.out_of_policy,
            },
        )

    def _analyze(self, result: ReclamationResult) -> None:
        self.run_log.section("UNUSED IMAGES")
        for candidate in result.candidates:
            asset = candidate.asset
            self.run_log.event(
                f"  ID: {asset.asset_id} | {asset.filename} | "
                f"{format_bytes(asset.size_bytes)}"
            )

        self.run_log.summary(
            "SUMMARY",
            {
                "Mode": result.mode.value,
                "Total unused images": len(result.candidates),
                "Total size": format_bytes(result.candidate_bytes),
                "Estimated size with variants": format_bytes(
                    result.estimated_bytes_with_variants
                ),
            },
        )
        self.run_log.event("NO CHANGES MADE")

    def _delete(self, result: ReclamationResult) -> None:
        counters = result.counters
        self.run_log.section("DELETING UNUSED IMAGES")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            disable=not self.show_progress,
        ) as progress:
            task = progress.add_task("Deleting images...", total=len(result.candidates))

            for candidate in result.candidates:
                asset = candidate.asset
                self.run_log.event(f"Deleting: {asset.filename}")
                try:
                    candidate.freed_bytes = self.assets.delete_asset(asset.asset_id)
                    candidate.deleted = True
                    counters.deleted += 1
                    result.freed_bytes += candidate.freed_bytes
                    self.run_log.event("  Deleted")
                except StoreError as e:
                    candidate.error = str(e)
                    counters.failed += 1
                    result.errors.append(f"{asset.filename}: {e}")
                    self.run_log.error(f"  Failed: {e}")

                progress.advance(task)

        self.run_log.summary(
            "SUMMARY",
            {
                "Mode": result.mode.value,
                "Deleted": counters.deleted,
                "Failed": counters.failed,
                "Space freed": format_bytes(result.freed_bytes),
            },
        )
