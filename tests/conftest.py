"""
Pytest configuration and fixtures for cim_tools tests.

Every test gets its own SQLite catalog database and media directory under
tmp_path, so nothing touches a real catalog.
"""

import csv
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cim_tools.core.run_log import RunLog
from cim_tools.db import Base, SqlAssetStore, SqlCatalogStore

BASE_URL = "https://shop.example/wp-content/uploads"

DATASET_HEADERS = ["skus", "master_image_to_keep", "images_to_delete"]


def public_url(storage_path: str) -> str:
    """Public locator of a file under the media root."""
    return f"{BASE_URL}/{storage_path}"


@pytest.fixture
def url():
    return public_url


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """SQLite engine with all tables created."""
    db_engine = create_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    Base.metadata.create_all(bind=db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def catalog(session: Session) -> SqlCatalogStore:
    return SqlCatalogStore(session)


@pytest.fixture
def assets(session: Session, media_root: Path) -> SqlAssetStore:
    return SqlAssetStore(session, media_root, BASE_URL)


@pytest.fixture
def run_log(tmp_path: Path) -> RunLog:
    return RunLog("test", "run", tmp_path / "logs")


@pytest.fixture
def make_image(media_root: Path) -> Callable[..., Path]:
    """Write a real JPEG under the media root."""

    def _make(storage_path: str, size: tuple = (64, 64), color: str = "red") -> Path:
        path = media_root / storage_path
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=color).save(path, format="JPEG")
        return path

    return _make


@pytest.fixture
def add_image(
    make_image: Callable[..., Path], assets: SqlAssetStore
) -> Callable[..., int]:
    """Write a JPEG and register it as an asset; returns the asset id."""

    def _add(storage_path: str, variants: Optional[List[str]] = None) -> int:
        original = make_image(storage_path)
        for variant in variants or []:
            make_image(str(Path(storage_path).parent / variant), size=(16, 16))
        return assets.add_asset(storage_path, title=original.stem)

    return _add


@pytest.fixture
def write_dataset(tmp_path: Path) -> Callable[..., Path]:
    """Write a duplicate-group CSV and return its path."""

    def _write(
        rows: List[Dict[str, str]],
        headers: Optional[List[str]] = None,
        bom: bool = False,
        name: str = "visual_duplicates.csv",
    ) -> Path:
        headers = headers or DATASET_HEADERS
        path = tmp_path / name
        with open(path, "w", encoding="utf-8", newline="") as f:
            if bom:
                f.write("\ufeff")
            writer = csv.writer(f)
            writer.writerow(headers)
            for row in rows:
                writer.writerow([row.get(h, "") for h in headers])
        return path

    return _write
