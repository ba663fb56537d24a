"""
Duplicate-group dataset loader.

Reads the CSV that maps each group of visually duplicate catalog entries to
the master image they should all share.
"""

import csv
import logging
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import DatasetFormatError, DatasetUnavailable
from .types import DuplicateGroup, ImageRef

logger = logging.getLogger(__name__)

BYTE_ORDER_MARK = "\ufeff"


def split_members(raw: str, delimiter: str = ",") -> Tuple[str, ...]:
    """
    Split a member list into unique, trimmed identifiers.

    Args:
        raw: Delimiter-joined member identifiers
        delimiter: Separator between identifiers

    Returns:
        Identifiers in first-seen order, without blanks or repeats
    """
    members: List[str] = []
    seen = set()
    for piece in raw.split(delimiter):
        member = piece.strip()
        if member and member not in seen:
            seen.add(member)
            members.append(member)
    return tuple(members)


def split_locators(raw: str) -> Tuple[ImageRef, ...]:
    """Split a newline-joined locator list into image refs."""
    refs: List[ImageRef] = []
    for line in raw.splitlines():
        if line.strip():
            refs.append(ImageRef(locator=line))
    return tuple(refs)


class GroupLoadResult(BaseModel):
    """Groups parsed from the dataset plus the rows that were set aside."""

    groups: List[DuplicateGroup] = Field(default_factory=list)
    malformed_rows: int = 0
    missing_master: int = 0
    malformed_lines: List[int] = Field(default_factory=list)

    def unique_members(self) -> FrozenSet[str]:
        """Distinct member identifiers across the whole dataset."""
        return frozenset(m for group in self.groups for m in group.members)

    def protected_filenames(self) -> FrozenSet[str]:
        """Filenames of every master image in the dataset."""
        return frozenset(
            group.master_filename for group in self.groups if group.master_filename
        )


class GroupLoader:
    """Parse the duplicate-group dataset into DuplicateGroup records."""

    def __init__(
        self,
        dataset_path: Path,
        member_column: str = "skus",
        master_column: str = "master_image_to_keep",
        duplicates_column: Optional[str] = "images_to_delete",
        member_delimiter: str = ",",
    ):
        """
        Initialize group loader.

        Args:
            dataset_path: Path to the CSV dataset
            member_column: Column holding the delimiter-joined member list
            master_column: Column holding the master image locator
            duplicates_column: Optional column of newline-joined duplicates
            member_delimiter: Separator used in the member column
        """
        self.dataset_path = Path(dataset_path)
        self.member_column = member_column
        self.master_column = master_column
        self.duplicates_column = duplicates_column
        self.member_delimiter = member_delimiter

    def load(self) -> GroupLoadResult:
        """
        Load every group from the dataset.

        Returns:
            Parsed groups with malformed-row and missing-master tallies

        Raises:
            DatasetUnavailable: If the dataset file does not exist
            DatasetFormatError: If the file is empty or misses a column
        """
        if not self.dataset_path.is_file():
            raise DatasetUnavailable(f"Dataset not found at {self.dataset_path}")

        result = GroupLoadResult()

        with open(self.dataset_path, "r", encoding="utf-8", newline="") as f:
            reader = csv.reader(f)
            headers = next(reader, None)
            if not headers:
                raise DatasetFormatError(f"Dataset is empty: {self.dataset_path}")

            headers[0] = headers[0].lstrip(BYTE_ORDER_MARK)
            headers = [h.strip() for h in headers]
            for column in (self.member_column, self.master_column):
                if column not in headers:
                    raise DatasetFormatError(
                        f"Dataset is missing required column '{column}'"
                    )

            for row in reader:
                if not row:
                    continue  # blank line
                if len(row) != len(headers):
                    result.malformed_rows += 1
                    result.malformed_lines.append(reader.line_num)
                    logger.warning(
                        f"Skipping malformed row at line {reader.line_num}: "
                        f"expected {len(headers)} fields, got {len(row)}"
                    )
                    continue

                group = self._build_group(
                    dict(zip(headers, row)),
                    index=len(result.groups) + 1,
                    line_number=reader.line_num,
                )
                if not group.eligible:
                    result.missing_master += 1
                    logger.warning(
                        f"Group {group.index} (line {group.line_number}) has no "
                        f"master image and will not be reassigned"
                    )
                result.groups.append(group)

        logger.info(
            f"Loaded {len(result.groups)} groups from {self.dataset_path} "
            f"({result.malformed_rows} malformed rows skipped)"
        )
        return result

    def _build_group(self, record: dict, index: int, line_number: int) -> DuplicateGroup:
        master_locator = record[self.master_column].strip()
        duplicates = ()
        if self.duplicates_column and self.duplicates_column in record:
            duplicates = split_locators(record[self.duplicates_column])

        return DuplicateGroup(
            index=index,
            members=split_members(record[self.member_column], self.member_delimiter),
            master=ImageRef(locator=master_locator) if master_locator else None,
            known_duplicates=duplicates,
            line_number=line_number,
        )
