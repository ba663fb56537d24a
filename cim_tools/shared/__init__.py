"""
Shared utilities for CIM Tools.
"""

from .media_utils import (
    IMAGE_EXTENSIONS,
    file_size,
    filename_from_locator,
    find_variant_files,
    format_bytes,
    is_derived_variant,
    is_image_file,
    setup_logging,
)

__all__ = [
    "IMAGE_EXTENSIONS",
    "is_image_file",
    "filename_from_locator",
    "is_derived_variant",
    "find_variant_files",
    "file_size",
    "format_bytes",
    "setup_logging",
]
