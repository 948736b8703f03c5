"""Tests for the command line entry point."""

import asyncio
import sys

import pytest

import scraper
from group_scanner_pkg.dom import parse_html
from group_scanner_pkg.exporter import BOM
from group_scanner_pkg.models import ScanRequest
from group_scanner_pkg.session import ScannerSession


def run_main(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["scraper.py", *argv])
    with pytest.raises(SystemExit) as exc:
        scraper.main()
    return exc.value.code


class TestSnapshotScan:
    def test_writes_export_to_directory(self, monkeypatch, tmp_path, groups_page):
        snapshot = tmp_path / "page.html"
        snapshot.write_text(groups_page, encoding="utf-8")
        out_dir = tmp_path / "exports"
        out_dir.mkdir()

        code = run_main(monkeypatch, "--html", str(snapshot), "--format", "json", "-o", str(out_dir))

        assert code == 0
        files = list(out_dir.iterdir())
        assert len(files) == 1
        assert files[0].name.startswith("groups-json-")
        assert '"total": 3' in files[0].read_text(encoding="utf-8")

    def test_filters_from_flags(self, monkeypatch, tmp_path, groups_page):
        snapshot = tmp_path / "page.html"
        snapshot.write_text(groups_page, encoding="utf-8")
        out = tmp_path / "groups.csv"

        code = run_main(monkeypatch, "--html", str(snapshot), "--min-members", "5000", "-o", str(out))

        assert code == 0
        lines = out.read_text(encoding="utf-8-sig").splitlines()
        assert len(lines) == 2
        assert lines[1].startswith("Python Developers,")

    def test_export_bytes_written_as_rendered(self, tmp_path, groups_page):
        session = ScannerSession()
        session.scan_now(parse_html(groups_page))
        out = tmp_path / "groups.csv"

        assert scraper.write_export(session, "csv", str(out)) == str(out)

        data = out.read_bytes()
        assert data == session.export("csv").encode("utf-8")
        assert b"\r\r\n" not in data
        assert data.count(b"\r\n") == 4

    def test_missing_snapshot(self, monkeypatch, tmp_path):
        assert run_main(monkeypatch, "--html", str(tmp_path / "nope.html")) == 1

    def test_nothing_found(self, monkeypatch, tmp_path, capsys):
        snapshot = tmp_path / "empty.html"
        snapshot.write_text("<html><body><p>No groups</p></body></html>", encoding="utf-8")
        assert run_main(monkeypatch, "--html", str(snapshot)) == 1
        out = capsys.readouterr().out
        assert out.lstrip(BOM).startswith("Group Name,Members")


class TestLiveScan:
    def test_foreign_url_refused(self):
        result = asyncio.run(scraper.scan_groups(ScanRequest(url="https://example.com/groups/1"), ScannerSession()))
        assert result["found"] is False
        assert result["error"] == "Invalid URL"
