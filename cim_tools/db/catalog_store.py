"""
Catalog store backed by SQLAlchemy.

Implements the CatalogStore protocol on top of the ``entries`` table.
"""

import logging
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import CatalogStoreError
from ..core.types import CatalogEntry, EntryKind, EntryStatus
from ..stores.base import DEFAULT_PAGE_SIZE
from .models import Entry

logger = logging.getLogger(__name__)

# Keeps IN (...) lists below the bound-parameter limits of SQLite and friends
_IDENTIFIER_CHUNK = 500


def _to_entry(row: Entry) -> CatalogEntry:
    try:
        kind = EntryKind(row.kind)
        status = EntryStatus(row.status)
    except ValueError as e:
        raise CatalogStoreError(f"Entry {row.id} has an unsupported value: {e}") from e

    return CatalogEntry(
        entry_id=row.id,
        identifier=row.identifier,
        name=row.name or "",
        kind=kind,
        parent_id=row.parent_id,
        status=status,
        primary_image_id=row.primary_image_id,
        gallery=row.gallery,
    )


class SqlCatalogStore:
    """PostgreSQL/SQLite catalog store using a SQLAlchemy session."""

    def __init__(self, session: Session):
        """
        Initialize catalog store.

        Args:
            session: SQLAlchemy session owned by the caller
        """
        self.session = session

    def _filtered(
        self,
        stmt,
        statuses: Optional[Iterable[EntryStatus]],
        kinds: Optional[Iterable[EntryKind]],
    ):
        if statuses is not None:
            stmt = stmt.where(Entry.status.in_([EntryStatus(s).value for s in statuses]))
        if kinds is not None:
            stmt = stmt.where(Entry.kind.in_([EntryKind(k).value for k in kinds]))
        return stmt

    def add_entry(
        self,
        identifier: Optional[str],
        name: str = "",
        kind: EntryKind = EntryKind.PRODUCT,
        status: EntryStatus = EntryStatus.PUBLISH,
        primary_image_id: Optional[int] = None,
        gallery: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> int:
        """
        Create a catalog entry.

        Returns:
            Id of the new entry
        """
        row = Entry(
            identifier=identifier,
            name=name,
            kind=EntryKind(kind).value,
            status=EntryStatus(status).value,
            primary_image_id=primary_image_id,
            gallery=gallery,
            parent_id=parent_id,
        )
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CatalogStoreError(f"Failed to add entry {identifier}: {e}") from e
        return row.id

    def resolve_identifier(self, identifier: str) -> Optional[int]:
        identifier = identifier.strip()
        if not identifier:
            return None
        try:
            return self.session.scalar(
                select(Entry.id).where(Entry.identifier == identifier)
            )
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"Failed to resolve '{identifier}': {e}") from e

    def get_entry(self, entry_id: int) -> Optional[CatalogEntry]:
        try:
            row = self.session.get(Entry, entry_id)
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"Failed to load entry {entry_id}: {e}") from e
        return _to_entry(row) if row else None

    def set_primary_image(self, entry_id: int, asset_id: int) -> None:
        try:
            row = self.session.get(Entry, entry_id)
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"Failed to load entry {entry_id}: {e}") from e
        if row is None:
            raise CatalogStoreError(f"Entry {entry_id} does not exist")

        try:
            row.primary_image_id = asset_id
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CatalogStoreError(f"Failed to save entry {entry_id}: {e}") from e

        logger.debug(f"Entry {entry_id} primary image set to {asset_id}")

    def iter_entries(
        self,
        statuses: Optional[Iterable[EntryStatus]] = None,
        kinds: Optional[Iterable[EntryKind]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[CatalogEntry]:
        statuses = list(statuses) if statuses is not None else None
        kinds = list(kinds) if kinds is not None else None
        last_id = 0

        while True:
            stmt = self._filtered(select(Entry), statuses, kinds)
            stmt = stmt.where(Entry.id > last_id).order_by(Entry.id).limit(page_size)
            try:
                page: List[Entry] = list(self.session.scalars(stmt))
            except SQLAlchemyError as e:
                raise CatalogStoreError(f"Failed to list entries: {e}") from e

            if not page:
                return
            for row in page:
                yield _to_entry(row)
            last_id = page[-1].id

    def count_entries(
        self,
        statuses: Optional[Iterable[EntryStatus]] = None,
        kinds: Optional[Iterable[EntryKind]] = None,
        has_primary_image: Optional[bool] = None,
        identifiers: Optional[Iterable[str]] = None,
    ) -> int:
        stmt = self._filtered(select(func.count(Entry.id)), statuses, kinds)
        if has_primary_image is True:
            stmt = stmt.where(Entry.primary_image_id > 0)
        elif has_primary_image is False:
            stmt = stmt.where(
                (Entry.primary_image_id.is_(None)) | (Entry.primary_image_id <= 0)
            )

        try:
            if identifiers is None:
                return self.session.scalar(stmt) or 0

            wanted = sorted(set(identifiers))
            total = 0
            for start in range(0, len(wanted), _IDENTIFIER_CHUNK):
                chunk = wanted[start : start + _IDENTIFIER_CHUNK]
                total += self.session.scalar(stmt.where(Entry.identifier.in_(chunk))) or 0
            return total
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"Failed to count entries: {e}") from e
