"""Tests for the reachability scan."""

from cim_tools.core.types import EntryKind, EntryStatus
from cim_tools.reconcile.reachability import ReachabilityScanner, parse_id_list


class TestParseIdList:
    """Tests for parse_id_list."""

    def test_plain_list(self):
        assert parse_id_list("12,13, 14") == [12, 13, 14]

    def test_drops_invalid_pieces(self):
        """Test non-numeric, zero and negative ids are ignored."""
        assert parse_id_list("12,,abc,0,-3, 7 ") == [12, 7]

    def test_empty(self):
        assert parse_id_list(None) == []
        assert parse_id_list("") == []


class TestReachabilityScanner:
    """Tests for ReachabilityScanner."""

    def test_collects_primary_and_gallery_images(self, catalog):
        """Test both primary images and galleries are marked."""
        catalog.add_entry("A", primary_image_id=1, gallery="2,3")
        catalog.add_entry("B", primary_image_id=3)
        catalog.add_entry("C", primary_image_id=0, gallery="")

        reachable = ReachabilityScanner(catalog).scan()

        assert reachable.asset_ids == {1, 2, 3}
        assert reachable.entries_scanned == 3
        assert reachable.primary_references == 2
        assert reachable.gallery_references == 2

    def test_hidden_entries_keep_their_images(self, catalog):
        """Test draft, private, pending and scheduled entries count."""
        catalog.add_entry("D", status=EntryStatus.DRAFT, primary_image_id=10)
        catalog.add_entry("P", status=EntryStatus.PRIVATE, gallery="11")
        catalog.add_entry("Q", status=EntryStatus.PENDING, primary_image_id=12)
        catalog.add_entry("F", status=EntryStatus.FUTURE, primary_image_id=13)

        reachable = ReachabilityScanner(catalog).scan()

        assert reachable.asset_ids == {10, 11, 12, 13}

    def test_trashed_entries_are_ignored(self, catalog):
        catalog.add_entry("T", status=EntryStatus.TRASH, primary_image_id=20)

        reachable = ReachabilityScanner(catalog).scan()

        assert 20 not in reachable
        assert len(reachable) == 0

    def test_variations_are_scanned(self, catalog):
        """Test variation entries contribute their images."""
        parent = catalog.add_entry("SHIRT", primary_image_id=30)
        catalog.add_entry(
            "SHIRT-RED", kind=EntryKind.VARIATION, primary_image_id=31, parent_id=parent
        )

        reachable = ReachabilityScanner(catalog, page_size=1).scan()

        assert reachable.asset_ids == {30, 31}

    def test_summary_logged(self, catalog, run_log):
        catalog.add_entry("A", primary_image_id=1)

        ReachabilityScanner(catalog, run_log).scan()

        assert any("Distinct assets in use: 1" in line for line in run_log.lines)
