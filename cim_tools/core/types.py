"""
Type definitions for the reconciliation pipeline.
"""

from enum import Enum
from typing import Any, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..shared.media_utils import filename_from_locator


class RunStage(str, Enum):
    """Stage of a reassignment run."""

    VALIDATE = "validate"
    DRY_RUN = "dry-run"
    SMALL_BATCH = "small-batch"
    MEDIUM_BATCH = "medium-batch"
    FULL = "full"


class ReclaimMode(str, Enum):
    """Execution mode of a reclamation run."""

    ANALYZE = "analyze"
    DELETE = "delete"


class EntryKind(str, Enum):
    """Kind of catalog entry."""

    PRODUCT = "product"
    VARIATION = "variation"


class EntryStatus(str, Enum):
    """Lifecycle state of a catalog entry."""

    PUBLISH = "publish"
    PRIVATE = "private"
    DRAFT = "draft"
    PENDING = "pending"
    FUTURE = "future"
    TRASH = "trash"


class AssetClass(str, Enum):
    """Classification of an asset during the sweep phase."""

    IN_USE = "in_use"
    PROTECTED = "protected"
    CANDIDATE = "candidate"
    OUT_OF_POLICY = "out_of_policy"


class MemberStatus(str, Enum):
    """Audit classification of a group member."""

    CORRECT = "correct"
    WRONG_IMAGE = "wrong_image"
    NO_IMAGE = "no_image"
    NOT_FOUND = "not_found"


class MemberAction(str, Enum):
    """What the reassignment engine did (or would do) to a member."""

    UPDATED = "updated"
    WOULD_UPDATE = "would_update"
    ALREADY_CORRECT = "already_correct"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ImageRef(BaseModel):
    """Canonical image locator with an optional resolved asset id."""

    model_config = ConfigDict(frozen=True)

    locator: str
    asset_id: Optional[int] = None

    @field_validator("locator")
    @classmethod
    def _strip_locator(cls, value: str) -> str:
        return value.strip()

    @property
    def filename(self) -> str:
        return filename_from_locator(self.locator)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ImageRef):
            return self.locator == other.locator
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.locator)


class DuplicateGroup(BaseModel):
    """A set of catalog entries consolidated onto one master image."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(description="1-based position in the dataset")
    members: Tuple[str, ...] = Field(default_factory=tuple)
    master: Optional[ImageRef] = None
    known_duplicates: Tuple[ImageRef, ...] = Field(default_factory=tuple)
    line_number: int = 0

    @property
    def eligible(self) -> bool:
        """Whether the group can be reassigned (has a master locator)."""
        return self.master is not None

    @property
    def master_locator(self) -> str:
        return self.master.locator if self.master else ""

    @property
    def master_filename(self) -> str:
        return self.master.filename if self.master else ""


class CatalogEntry(BaseModel):
    """A catalog entry as exposed by a catalog store."""

    entry_id: int
    identifier: Optional[str] = None
    name: str = ""
    kind: EntryKind = EntryKind.PRODUCT
    parent_id: Optional[int] = None
    status: EntryStatus = EntryStatus.PUBLISH
    primary_image_id: Optional[int] = None
    gallery: Optional[str] = None


class AssetRecord(BaseModel):
    """An image-type asset in the asset store."""

    asset_id: int
    locator: str
    filename: str
    storage_path: str
    size_bytes: int = 0


class ReachabilitySet(BaseModel):
    """Asset ids referenced by any catalog entry at scan time."""

    asset_ids: Set[int] = Field(default_factory=set)
    entries_scanned: int = 0
    primary_references: int = 0
    gallery_references: int = 0

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self.asset_ids

    def __len__(self) -> int:
        return len(self.asset_ids)

    def add(self, asset_id: int) -> None:
        self.asset_ids.add(asset_id)


class RunCounters(BaseModel):
    """Aggregate tallies for a single run."""

    groups_processed: int = 0
    updated: int = 0
    skipped: int = 0
    not_found: int = 0
    missing_master: int = 0
    failed: int = 0
    malformed_rows: int = 0

    in_use: int = 0
    protected: int = 0
    candidates: int = 0
    out_of_policy: int = 0
    deleted: int = 0
