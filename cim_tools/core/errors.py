"""
Exceptions raised by CIM Tools.

Dataset errors are fatal and raised before any store is touched. Store
errors are absorbed per member or per asset by the pipelines.
"""


class CimToolsError(Exception):
    """Base class for all CIM Tools errors."""

    pass


class DatasetError(CimToolsError):
    """The duplicate-group dataset cannot be used."""

    pass


class DatasetUnavailable(DatasetError):
    """Raised when the dataset file cannot be located."""

    pass


class DatasetFormatError(DatasetError):
    """Raised when the dataset is empty or lacks a required column."""

    pass


class StoreError(CimToolsError):
    """A catalog or asset store operation failed."""

    pass


class CatalogStoreError(StoreError):
    """Raised when the catalog store fails to read or persist an entry."""

    pass


class AssetStoreError(StoreError):
    """Raised when the asset store fails to read or delete an asset."""

    pass
