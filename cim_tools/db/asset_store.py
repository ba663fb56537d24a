"""
Asset store backed by SQLAlchemy and the media directory.

Asset rows live in the ``assets`` table; their files (and the resized
variants generated next to them) live under the media root.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional
from urllib.parse import unquote

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import AssetStoreError
from ..core.types import AssetRecord
from ..shared.media_utils import file_size, find_variant_files
from ..stores.base import DEFAULT_PAGE_SIZE
from .models import Asset

logger = logging.getLogger(__name__)


class SqlAssetStore:
    """Media library whose records are in the database and files on disk."""

    def __init__(self, session: Session, media_root: Path, base_url: str = ""):
        """
        Initialize asset store.

        Args:
            session: SQLAlchemy session owned by the caller
            media_root: Directory holding the asset files
            base_url: Public URL prefix of the media root
        """
        self.session = session
        self.media_root = Path(media_root)
        self.base_url = base_url.rstrip("/")

    def _locator_for(self, storage_path: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{storage_path}"
        return storage_path

    def _storage_path_for(self, locator: str) -> Optional[str]:
        """Map a locator back to a storage path relative to the media root."""
        locator = locator.strip()
        if not locator:
            return None
        if self.base_url and locator.startswith(self.base_url + "/"):
            return unquote(locator[len(self.base_url) + 1 :])
        if not self.base_url and "://" not in locator:
            return unquote(locator.lstrip("/"))
        return None

    def _to_record(self, row: Asset) -> AssetRecord:
        return AssetRecord(
            asset_id=row.id,
            locator=self._locator_for(row.storage_path),
            filename=PurePosixPath(row.storage_path).name,
            storage_path=row.storage_path,
            size_bytes=file_size(self.media_root / row.storage_path),
        )

    def resolve_locator(self, locator: str) -> Optional[int]:
        storage_path = self._storage_path_for(locator)
        if storage_path is None:
            logger.debug(f"Locator outside the media library: {locator}")
            return None
        try:
            return self.session.scalar(
                select(Asset.id).where(Asset.storage_path == storage_path)
            )
        except SQLAlchemyError as e:
            raise AssetStoreError(f"Failed to resolve {locator}: {e}") from e

    def get_locator(self, asset_id: int) -> Optional[str]:
        try:
            row = self.session.get(Asset, asset_id)
        except SQLAlchemyError as e:
            raise AssetStoreError(f"Failed to load asset {asset_id}: {e}") from e
        return self._locator_for(row.storage_path) if row else None

    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        try:
            row = self.session.get(Asset, asset_id)
        except SQLAlchemyError as e:
            raise AssetStoreError(f"Failed to load asset {asset_id}: {e}") from e
        return self._to_record(row) if row else None

    def iter_assets(self, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[AssetRecord]:
        last_id = 0
        while True:
            stmt = (
                select(Asset)
                .where(Asset.mime_type.like("image/%"), Asset.id > last_id)
                .order_by(Asset.id)
                .limit(page_size)
            )
            try:
                page: List[Asset] = list(self.session.scalars(stmt))
            except SQLAlchemyError as e:
                raise AssetStoreError(f"Failed to list assets: {e}") from e

            if not page:
                return
            for row in page:
                yield self._to_record(row)
            last_id = page[-1].id

    def delete_asset(self, asset_id: int) -> int:
        try:
            row = self.session.get(Asset, asset_id)
        except SQLAlchemyError as e:
            raise AssetStoreError(f"Failed to load asset {asset_id}: {e}") from e
        if row is None:
            raise AssetStoreError(f"Asset {asset_id} does not exist")

        original = self.media_root / row.storage_path
        files = find_variant_files(original)
        if original.exists():
            files.insert(0, original)

        freed = 0
        try:
            # Row removal is flushed before any file is touched; a failed
            # commit afterwards leaves the row, which a re-run deletes
            self.session.delete(row)
            self.session.flush()
            for path in files:
                size = file_size(path)
                path.unlink()
                freed += size
                logger.debug(f"Removed {path}")
            self.session.commit()
        except (OSError, SQLAlchemyError) as e:
            self.session.rollback()
            raise AssetStoreError(f"Failed to delete asset {asset_id}: {e}") from e

        return freed

    def add_asset(self, storage_path: str, mime_type: str = "image/jpeg", title: str = "") -> int:
        """
        Register a file under the media root as an asset.

        Args:
            storage_path: Path relative to the media root
            mime_type: MIME type of the file
            title: Display title

        Returns:
            Id of the new asset
        """
        row = Asset(storage_path=storage_path, mime_type=mime_type, title=title)
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise AssetStoreError(f"Failed to add asset {storage_path}: {e}") from e
        return row.id
