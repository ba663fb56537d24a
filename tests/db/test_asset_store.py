"""Tests for the SQLAlchemy asset store."""

from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from cim_tools.core.errors import AssetStoreError
from cim_tools.db import SqlAssetStore
from cim_tools.stores import AssetStore


class TestSqlAssetStore:
    """Tests for SqlAssetStore."""

    def test_satisfies_protocol(self, assets):
        assert isinstance(assets, AssetStore)

    def test_locator_round_trip(self, assets: SqlAssetStore, add_image, url):
        """Test locators are built from and resolved to storage paths."""
        asset_id = add_image("2023/06/photo.jpg")

        assert assets.get_locator(asset_id) == url("2023/06/photo.jpg")
        assert assets.resolve_locator(url("2023/06/photo.jpg")) == asset_id
        assert assets.resolve_locator(f"  {url('2023/06/photo.jpg')}  ") == asset_id

    def test_resolve_percent_encoded_locator(self, assets: SqlAssetStore, add_image, url):
        asset_id = add_image("2023/06/blue mug.jpg")

        assert assets.resolve_locator(url("2023/06/blue%20mug.jpg")) == asset_id

    def test_resolve_unknown_locators(self, assets: SqlAssetStore, add_image, url):
        """Test unknown or foreign locators do not resolve."""
        add_image("2023/06/photo.jpg")

        assert assets.resolve_locator(url("2023/06/missing.jpg")) is None
        assert assets.resolve_locator("https://elsewhere.example/photo.jpg") is None
        assert assets.resolve_locator("") is None

    def test_without_base_url(self, session, media_root: Path, make_image, url):
        """Test relative locators when no public URL is configured."""
        store = SqlAssetStore(session, media_root)
        make_image("a/b.jpg")
        asset_id = store.add_asset("a/b.jpg")

        assert store.get_locator(asset_id) == "a/b.jpg"
        assert store.resolve_locator("/a/b.jpg") == asset_id
        assert store.resolve_locator(url("a/b.jpg")) is None

    def test_get_asset(self, assets: SqlAssetStore, add_image, media_root: Path):
        asset_id = add_image("2023/06/photo.jpg")

        record = assets.get_asset(asset_id)

        assert record.filename == "photo.jpg"
        assert record.storage_path == "2023/06/photo.jpg"
        assert record.size_bytes == (media_root / "2023/06/photo.jpg").stat().st_size
        assert assets.get_asset(999) is None
        assert assets.get_locator(999) is None

    def test_iter_assets_only_images(self, assets: SqlAssetStore, add_image, media_root):
        """Test non-image assets are not part of the library sweep."""
        first = add_image("a.jpg")
        (media_root / "manual.pdf").write_bytes(b"%PDF")
        assets.add_asset("manual.pdf", mime_type="application/pdf")
        second = add_image("b.jpg")

        ids = [a.asset_id for a in assets.iter_assets(page_size=1)]

        assert ids == [first, second]

    def test_delete_asset_removes_variants(
        self, assets: SqlAssetStore, add_image, media_root: Path
    ):
        """Test deleting an asset removes its file, variants and record."""
        asset_id = add_image(
            "2023/06/photo.jpg", variants=["photo-150x150.jpg", "photo-300x300.jpg"]
        )
        add_image("2023/06/photo-2.jpg")
        folder = media_root / "2023/06"
        expected = sum(
            (folder / name).stat().st_size
            for name in ["photo.jpg", "photo-150x150.jpg", "photo-300x300.jpg"]
        )

        freed = assets.delete_asset(asset_id)

        assert freed == expected
        assert sorted(p.name for p in folder.iterdir()) == ["photo-2.jpg"]
        assert assets.get_asset(asset_id) is None

    def test_delete_asset_with_missing_file(self, assets: SqlAssetStore):
        """Test a record whose file is already gone is still removed."""
        asset_id = assets.add_asset("gone/photo.jpg")

        assert assets.delete_asset(asset_id) == 0
        assert assets.get_asset(asset_id) is None

    def test_delete_unknown_asset(self, assets: SqlAssetStore):
        with pytest.raises(AssetStoreError):
            assets.delete_asset(12345)

    def test_resolve_encoded_relative_locator(self, session, media_root: Path, make_image):
        store = SqlAssetStore(session, media_root)
        make_image("a/blue mug.jpg")
        asset_id = store.add_asset("a/blue mug.jpg")

        assert store.resolve_locator("a/blue%20mug.jpg") == asset_id

    def test_delete_lookup_failure_is_store_error(
        self, assets: SqlAssetStore, session, add_image, monkeypatch
    ):
        """Test a database error while loading the asset is wrapped."""
        asset_id = add_image("photo.jpg")

        def locked(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "get", locked)

        with pytest.raises(AssetStoreError):
            assets.delete_asset(asset_id)

    def test_failed_row_delete_keeps_files(
        self, assets: SqlAssetStore, session, add_image, media_root: Path, monkeypatch
    ):
        """Test files stay on disk when the record cannot be removed."""
        asset_id = add_image("2023/06/photo.jpg", variants=["photo-150x150.jpg"])

        def locked(*args, **kwargs):
            raise OperationalError("DELETE", {}, Exception("database is locked"))

        with monkeypatch.context() as m:
            m.setattr(session, "flush", locked)
            with pytest.raises(AssetStoreError):
                assets.delete_asset(asset_id)

        assert (media_root / "2023/06/photo.jpg").exists()
        assert (media_root / "2023/06/photo-150x150.jpg").exists()
        assert assets.get_asset(asset_id) is not None
