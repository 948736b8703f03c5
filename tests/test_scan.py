"""Tests for scan passes over HTML snapshots."""

from conftest import card, page

from group_scanner_pkg.dom import parse_html
from group_scanner_pkg.models import ExtractedAttributes, ScanFilters
from group_scanner_pkg.scan import explain, passes_filters, scan
from group_scanner_pkg.selectors import find_group_anchors
from group_scanner_pkg.store import RecordStore


class TestScanPass:
    """A pass over a groups page."""

    def test_finds_groups(self, store, groups_page):
        report = scan(parse_html(groups_page), store)
        assert report.added == 3
        assert report.total == 3
        assert report.candidates == 6
        assert report.rejected == {"bad_url": 3}
        assert [r.key for r in store.list()] == ["123456789", "gardening.club", "555"]

    def test_record_fields(self, store, groups_page):
        scan(parse_html(groups_page), store)
        python = store.get("123456789")
        assert python.name == "Python Developers"
        assert python.url == "https://www.facebook.com/groups/123456789"
        assert python.members_raw == "12.3K"
        assert python.members_count == 12300
        assert python.last_active_raw == "3 days"

        garden = store.get("gardening.club")
        assert garden.members_count == 3241
        assert garden.last_active_raw == "2 hours"

        assert store.get("555").name == "Quiet Readers"

    def test_second_pass_is_idempotent(self, fixed_store, groups_page):
        root = parse_html(groups_page)
        scan(root, fixed_store)
        before = fixed_store.list()
        report = scan(root, fixed_store)
        assert report.added == 0
        assert fixed_store.list() == before

    def test_later_pass_fills_missing_fields(self, store):
        scan(parse_html(page(card("777", "Night Owls"))), store)
        assert store.get("777").last_active_raw == ""

        scan(parse_html(page(card("777", "Night Owls", "Last active: 2 hours ago · 40 members"))), store)
        record = store.get("777")
        assert record.last_active_raw == "2 hours"
        assert record.members_count == 40
        assert len(store) == 1

    def test_duplicate_links_collapse(self, store):
        html = page(
            card("777", "Night Owls"),
            card("777/?ref=bookmarks", "Night Owls"),
            card("777/about", "Night Owls Club"),
        )
        report = scan(parse_html(html), store)
        assert report.added == 1
        assert store.get("777").name == "Night Owls Club"

    def test_store_cap(self):
        store = RecordStore(max_items=2)
        html = page(card("a1", "Alpha Group"), card("b2", "Beta Group"), card("c3", "Gamma Group"))
        report = scan(parse_html(html), store)
        assert report.added == 2
        assert report.rejected == {"store_full": 1}
        assert [r.key for r in store.list()] == ["a1", "b2"]

    def test_unnamed_anchor_rejected(self, store):
        html = page('<div class="x1lliihq"><a href="/groups/888/"><img src="x.png"></a></div>')
        report = scan(parse_html(html), store)
        assert report.added == 0
        assert report.rejected == {"no_name": 1}

    def test_empty_snapshot(self, store):
        report = scan(parse_html(""), store)
        assert report.added == 0
        assert report.candidates == 0
        assert report.rejected == {}

    def test_anchor_matched_by_both_strategies_counted_once(self):
        root = parse_html(page(card("777", "Night Owls")))
        assert len(find_group_anchors(root)) == 1


class TestFilters:
    def test_min_members(self, store, groups_page):
        report = scan(parse_html(groups_page), store, ScanFilters(min_members=1000))
        assert [r.key for r in store.list()] == ["123456789", "gardening.club"]
        assert report.rejected["min_members"] == 1

    def test_activity_threshold(self, store, groups_page):
        report = scan(parse_html(groups_page), store, ScanFilters(activity_threshold_days=1))
        assert [r.key for r in store.list()] == ["gardening.club"]
        assert report.rejected["activity"] == 2

    def test_passes_filters(self):
        attrs = ExtractedAttributes(name="Group", members_count=50, last_active_raw="2 weeks")
        assert passes_filters(attrs, ScanFilters()) is None
        assert passes_filters(attrs, ScanFilters(min_members=51)) == "min_members"
        assert passes_filters(attrs, ScanFilters(activity_threshold_days=7)) == "activity"
        assert passes_filters(attrs, ScanFilters(activity_threshold_days=30)) is None


class TestExplain:
    def test_verdicts(self, groups_page):
        rows = explain(parse_html(groups_page))
        verdicts = [(r.get("key"), r["verdict"]) for r in rows]
        assert verdicts == [
            ("123456789", "accepted"),
            ("gardening.club", "accepted"),
            (None, "bad_url"),
            (None, "bad_url"),
            (None, "bad_url"),
            ("555", "accepted"),
        ]
        assert rows[0]["name"] == "Python Developers"
