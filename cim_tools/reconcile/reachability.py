"""
Reachability scan (mark phase).

Builds the set of asset ids referenced by any catalog entry that is still
visible or could become visible again. Hidden entries count: a draft or
private entry can be reactivated and must keep its images.
"""

import logging
from typing import FrozenSet, List, Optional

from ..core.run_log import RunLog
from ..core.types import EntryKind, EntryStatus, ReachabilitySet
from ..stores.base import DEFAULT_PAGE_SIZE, CatalogStore

logger = logging.getLogger(__name__)

REACHABLE_STATUSES: FrozenSet[EntryStatus] = frozenset(
    {
        EntryStatus.PUBLISH,
        EntryStatus.PRIVATE,
        EntryStatus.DRAFT,
        EntryStatus.PENDING,
        EntryStatus.FUTURE,
    }
)


def parse_id_list(raw: Optional[str], delimiter: str = ",") -> List[int]:
    """
    Parse a delimited list of asset ids.

    Non-numeric and non-positive pieces are dropped.

    Args:
        raw: Stored list value, e.g. "12,13, 14"
        delimiter: Separator between ids

    Returns:
        Valid ids in stored order
    """
    if not raw:
        return []

    ids: List[int] = []
    for piece in raw.split(delimiter):
        try:
            value = int(piece.strip())
        except ValueError:
            continue
        if value > 0:
            ids.append(value)
    return ids


class ReachabilityScanner:
    """Collect every asset id referenced by the catalog."""

    def __init__(
        self,
        catalog: CatalogStore,
        run_log: Optional[RunLog] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.catalog = catalog
        self.run_log = run_log
        self.page_size = page_size

    def scan(self) -> ReachabilitySet:
        """
        Scan primary images and gallery lists of all reachable entries.

        Returns:
            Fresh reachability set reflecting the catalog right now
        """
        reachable = ReachabilitySet()

        for entry in self.catalog.iter_entries(
            statuses=REACHABLE_STATUSES,
            kinds=list(EntryKind),
            page_size=self.page_size,
        ):
            reachable.entries_scanned += 1

            if entry.primary_image_id is not None and entry.primary_image_id > 0:
                reachable.add(entry.primary_image_id)
                reachable.primary_references += 1

            for asset_id in parse_id_list(entry.gallery):
                reachable.add(asset_id)
                reachable.gallery_references += 1

        logger.info(
            f"Reachability scan: {len(reachable)} assets referenced by "
            f"{reachable.entries_scanned} entries"
        )
        if self.run_log is not None:
            self.run_log.summary(
                "REACHABILITY SCAN",
                {
                    "Entries scanned": reachable.entries_scanned,
                    "Primary image references": reachable.primary_references,
                    "Gallery references": reachable.gallery_references,
                    "Distinct assets in use": len(reachable),
                },
            )
        return reachable
