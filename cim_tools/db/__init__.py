"""Database module for the CIM Tools catalog and asset stores."""

from .asset_store import SqlAssetStore
from .catalog_store import SqlCatalogStore
from .connection import create_db_engine, get_db_context, init_db
from .models import Asset, Base, Entry

__all__ = [
    "create_db_engine",
    "get_db_context",
    "init_db",
    "Asset",
    "Base",
    "Entry",
    "SqlAssetStore",
    "SqlCatalogStore",
]
