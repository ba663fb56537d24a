"""Core types, dataset loading and run logging."""

from .errors import (
    AssetStoreError,
    CatalogStoreError,
    CimToolsError,
    DatasetError,
    DatasetFormatError,
    DatasetUnavailable,
    StoreError,
)
from .groups import GroupLoader, GroupLoadResult
from .run_log import RunLog

__all__ = [
    "AssetStoreError",
    "CatalogStoreError",
    "CimToolsError",
    "DatasetError",
    "DatasetFormatError",
    "DatasetUnavailable",
    "StoreError",
    "GroupLoader",
    "GroupLoadResult",
    "RunLog",
]
