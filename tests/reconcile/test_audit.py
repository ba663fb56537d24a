"""Tests for the post-run audit."""

import pytest

from cim_tools.core.types import DuplicateGroup, EntryKind, EntryStatus, ImageRef, MemberStatus
from cim_tools.reconcile.audit import AuditReconciler


def make_group(index, members, master="", duplicates=()):
    return DuplicateGroup(
        index=index,
        members=tuple(members),
        master=ImageRef(locator=master) if master else None,
        known_duplicates=tuple(ImageRef(locator=d) for d in duplicates),
    )


@pytest.fixture
def library(add_image, url):
    return {
        "master_id": add_image("img/m.jpg"),
        "other_id": add_image("img/other.jpg"),
        "dup_id": add_image("img/dup.jpg"),
        "master_url": url("img/m.jpg"),
    }


class TestMemberCheck:
    """Tests for AuditReconciler.check_members."""

    def test_classifies_members(self, catalog, assets, run_log, library):
        """Test correct, wrong, missing-image and unknown members."""
        catalog.add_entry("OK", primary_image_id=library["master_id"])
        catalog.add_entry("WRONG", primary_image_id=library["other_id"])
        catalog.add_entry("BARE")
        groups = [make_group(1, ["OK", "WRONG", "BARE", "GHOST"], library["master_url"])]

        report = AuditReconciler(catalog, assets, run_log).check_members(groups)

        assert report.correct == 1
        assert report.wrong_image == 1
        assert report.no_image == 1
        assert report.not_found == 1
        wrong, bare = report.mismatches
        assert wrong.issue == MemberStatus.WRONG_IMAGE
        assert wrong.expected == "m.jpg"
        assert wrong.actual == "other.jpg"
        assert bare.issue == MemberStatus.NO_IMAGE
        assert bare.actual == "(none)"

    def test_encoded_master_counts_as_correct(
        self, catalog, assets, run_log, add_image, url
    ):
        """Test a member on the master is correct whatever the locator encoding."""
        master_id = add_image("2023/01/image 1.jpg")
        catalog.add_entry("A100", primary_image_id=master_id)
        groups = [make_group(1, ["A100"], url("2023/01/image%201.jpg"))]

        report = AuditReconciler(catalog, assets, run_log).check_members(groups)

        assert report.correct == 1
        assert report.wrong_image == 0
        assert report.mismatches == []

    def test_group_without_master(self, catalog, assets, run_log, library):
        """Test members of a master-less group are reported against (none)."""
        catalog.add_entry("A", primary_image_id=library["other_id"])
        groups = [make_group(1, ["A"])]

        report = AuditReconciler(catalog, assets, run_log).check_members(groups)

        assert report.wrong_image == 1
        assert report.mismatches[0].expected == "(none)"

    def test_preview_is_limited(self, catalog, assets, run_log, library):
        """Test only the first mismatches are logged, all are reported."""
        members = [f"S{i}" for i in range(5)]
        for sku in members:
            catalog.add_entry(sku)
        groups = [make_group(1, members, library["master_url"])]

        report = AuditReconciler(catalog, assets, run_log, preview_limit=2).check_members(
            groups
        )

        assert len(report.mismatches) == 5
        assert sum("[NO IMAGE]" in line for line in run_log.lines) == 2


class TestMasterHealth:
    def test_missing_masters(self, catalog, assets, run_log, library, url):
        """Test unresolvable and empty masters are reported with member counts."""
        groups = [
            make_group(1, ["A"], library["master_url"]),
            make_group(2, ["B", "C"], url("img/gone.jpg")),
            make_group(3, ["D"]),
        ]

        report = AuditReconciler(catalog, assets, run_log).check_masters(groups)

        assert report.total_groups == 3
        assert report.found == 1
        assert report.missing == 2
        assert [(m.group_index, m.member_count) for m in report.missing_masters] == [
            (2, 2),
            (3, 1),
        ]
        assert report.missing_masters[0].filename == "gone.jpg"
        assert report.missing_masters[1].filename == "(empty)"


class TestDuplicateResidue:
    def test_counts_remaining_duplicates(self, catalog, assets, run_log, library, url):
        groups = [
            make_group(
                1,
                ["A"],
                library["master_url"],
                duplicates=[url("img/dup.jpg"), url("img/deleted.jpg")],
            )
        ]

        report = AuditReconciler(catalog, assets, run_log).check_duplicate_residue(groups)

        assert report.still_present == 1
        assert report.already_removed == 1


class TestCoverage:
    """Tests for AuditReconciler.check_coverage."""

    def test_coverage_is_additive(self, catalog, assets, run_log, library):
        """Test covered plus not covered equals all visible entries."""
        catalog.add_entry("A", primary_image_id=library["master_id"])
        catalog.add_entry("B")
        catalog.add_entry("C", primary_image_id=library["other_id"])
        catalog.add_entry("HIDDEN", status=EntryStatus.DRAFT)
        catalog.add_entry("VAR", kind=EntryKind.VARIATION)
        groups = [make_group(1, ["A", "HIDDEN", "VAR", "GHOST"], library["master_url"])]

        report = AuditReconciler(catalog, assets, run_log).check_coverage(groups)

        assert report.total_visible == 3
        assert report.with_image == 2
        assert report.without_image == 1
        assert report.dataset_members == 4
        assert report.covered == 1
        assert report.not_covered == 2
        assert report.covered + report.not_covered == report.total_visible


class TestAuditRun:
    def test_full_audit(self, catalog, assets, run_log, library):
        """Test the combined report and the mismatch detail file."""
        catalog.add_entry("OK", primary_image_id=library["master_id"])
        catalog.add_entry("BARE")
        groups = [make_group(1, ["OK", "BARE"], library["master_url"])]

        report = AuditReconciler(catalog, assets, run_log).run(groups)

        assert report.members.correct == 1
        assert report.members.no_image == 1
        assert report.masters.found == 1
        assert report.coverage.covered == 2
        assert report.mismatch_report is not None
        assert "BARE,no_image" in run_log.reports[0].read_text(encoding="utf-8")
        assert run_log.path.exists()

    def test_audit_is_read_only(self, catalog, assets, run_log, library):
        entry = catalog.add_entry("WRONG", primary_image_id=library["other_id"])
        groups = [make_group(1, ["WRONG"], library["master_url"])]

        AuditReconciler(catalog, assets, run_log).run(groups)

        assert catalog.get_entry(entry).primary_image_id == library["other_id"]
