"""
Store interfaces consumed by the reconciliation pipelines.

The pipelines only talk to the catalog and the asset library through these
protocols, so any backend offering paginated listing and lookups can be
plugged in. ``cim_tools.db`` provides the SQLAlchemy implementation.
"""

from typing import Iterable, Iterator, Optional, Protocol, runtime_checkable

from ..core.types import AssetRecord, CatalogEntry, EntryKind, EntryStatus

DEFAULT_PAGE_SIZE = 500


@runtime_checkable
class CatalogStore(Protocol):
    """Catalog of entries that reference images."""

    def resolve_identifier(self, identifier: str) -> Optional[int]:
        """Return the id of the entry with this identifier, or None."""
        ...

    def get_entry(self, entry_id: int) -> Optional[CatalogEntry]:
        """Return one entry by id, or None."""
        ...

    def set_primary_image(self, entry_id: int, asset_id: int) -> None:
        """
        Set an entry's primary image and persist it in one step.

        Raises:
            CatalogStoreError: If the entry is missing or cannot be saved
        """
        ...

    def iter_entries(
        self,
        statuses: Optional[Iterable[EntryStatus]] = None,
        kinds: Optional[Iterable[EntryKind]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[CatalogEntry]:
        """Iterate entries page by page, optionally filtered."""
        ...

    def count_entries(
        self,
        statuses: Optional[Iterable[EntryStatus]] = None,
        kinds: Optional[Iterable[EntryKind]] = None,
        has_primary_image: Optional[bool] = None,
        identifiers: Optional[Iterable[str]] = None,
    ) -> int:
        """Count entries matching every given criterion."""
        ...


@runtime_checkable
class AssetStore(Protocol):
    """Library of image assets referenced by catalog entries."""

    def resolve_locator(self, locator: str) -> Optional[int]:
        """Return the id of the asset a locator points to, or None."""
        ...

    def get_locator(self, asset_id: int) -> Optional[str]:
        """Return the public locator of an asset, or None if it is gone."""
        ...

    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        """Return one asset with its file size, or None."""
        ...

    def iter_assets(self, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[AssetRecord]:
        """Iterate every image-type asset page by page."""
        ...

    def delete_asset(self, asset_id: int) -> int:
        """
        Delete an asset together with its derived variants.

        Returns:
            Bytes freed on disk (original plus variants)

        Raises:
            AssetStoreError: If the asset cannot be deleted
        """
        ...
