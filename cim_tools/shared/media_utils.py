"""
Media file utilities for CIM Tools.

Filename and locator helpers, derived-variant detection, formatting and
logging setup shared by the stores, the pipelines and the CLI.
"""

import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set
from urllib.parse import unquote, urlparse

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: Set[str] = {
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".bmp",
    ".tiff",
    ".tif",
    ".webp",
    ".avif",
    ".heic",
}

# Resized copies generated next to an original: photo-300x200.jpg
_VARIANT_SUFFIX = re.compile(r"-\d+x\d+$")


def is_image_file(file_path: Path) -> bool:
    """
    Check if a file is an image based on extension.

    Args:
        file_path: Path to check

    Returns:
        True if image file, False otherwise
    """
    return file_path.suffix.lower() in IMAGE_EXTENSIONS


def filename_from_locator(locator: str) -> str:
    """
    Get the final path segment of an image locator.

    Stored locators and in-store paths may differ in directory structure,
    so filenames are what gets compared across them. Percent-encoding is
    decoded, matching how locators resolve to stored files.

    Args:
        locator: URL or relative path of the image

    Returns:
        Filename, or an empty string for an empty locator
    """
    locator = locator.strip()
    if not locator:
        return ""
    return PurePosixPath(unquote(urlparse(locator).path)).name


def is_derived_variant(candidate: Path, original: Path) -> bool:
    """
    Check whether candidate is a resized copy of original.

    Args:
        candidate: File that may be a variant
        original: Original asset file

    Returns:
        True if candidate is named <stem>-<W>x<H><suffix> next to original
    """
    if candidate.parent != original.parent or candidate == original:
        return False
    if candidate.suffix.lower() != original.suffix.lower():
        return False
    stem = candidate.stem
    if not stem.startswith(original.stem):
        return False
    return bool(_VARIANT_SUFFIX.fullmatch(stem[len(original.stem) :]))


def find_variant_files(original: Path) -> List[Path]:
    """
    Find the derived variants stored next to an original asset file.

    Args:
        original: Original asset file

    Returns:
        Sorted list of variant files (empty if the directory is missing)
    """
    if not original.parent.is_dir():
        return []
    return sorted(
        path
        for path in original.parent.iterdir()
        if is_image_file(path) and is_derived_variant(path, original) and path.is_file()
    )


def file_size(file_path: Path) -> int:
    """
    Size of a file in bytes, 0 if it does not exist.

    Args:
        file_path: Path to the file

    Returns:
        Size in bytes
    """
    try:
        return os.path.getsize(file_path)
    except OSError:
        return 0


def format_bytes(size_bytes: int) -> str:
    """
    Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "2.50 GB")
    """
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"


def setup_logging(
    verbose: bool = False, quiet: bool = False, console: Optional[Console] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set logging level to DEBUG
        quiet: If True, set logging level to WARNING
        console: Rich console the handler writes to
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
        force=True,
    )
