"""Store interfaces for the catalog and the asset library."""

from .base import DEFAULT_PAGE_SIZE, AssetStore, CatalogStore

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "AssetStore",
    "CatalogStore",
]
