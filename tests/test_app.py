"""Tests for the HTTP control service."""

import json

import pytest
from fastapi.testclient import TestClient

import app as app_module
from conftest import FakePage, batches
from group_scanner_pkg.navigation import MUTATION_BINDING
from group_scanner_pkg.session import ScannerSession


@pytest.fixture
def client():
    app_module.app.state.session = ScannerSession()
    app_module.app.state.page = None
    with TestClient(app_module.app) as c:
        yield c


class TestStatus:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_initial_status(self, client):
        body = client.get("/api/status").json()
        assert body["count"] == 0
        assert body["found"] is False
        assert body["export_format"] == "csv"


class TestScan:
    def test_scan_posted_html(self, client, groups_page):
        resp = client.post("/api/scan", json={"html": groups_page})
        assert resp.status_code == 200
        body = resp.json()
        assert body["added"] == 3
        assert body["total_groups"] == 3
        assert body["rejected"] == {"bad_url": 3}

    def test_scan_without_page(self, client):
        resp = client.post("/api/scan")
        assert resp.status_code == 409
        assert "No page open" in resp.json()["error"]

    def test_auto_scan_without_page(self, client):
        resp = client.post("/api/auto-scan/start", json={"duration": 5})
        assert resp.status_code == 409

    def test_stop_when_idle(self, client):
        resp = client.post("/api/auto-scan/stop")
        assert resp.status_code == 200
        assert resp.json()["auto_scanning"] is False

    def test_clear(self, client, groups_page):
        client.post("/api/scan", json={"html": groups_page})
        body = client.post("/api/clear").json()
        assert body["count"] == 0
        assert body["status"] == "Data cleared."


class TestSettings:
    def test_filter(self, client, groups_page):
        client.post("/api/filter", json={"min_members": 1000})
        body = client.post("/api/scan", json={"html": groups_page}).json()
        assert body["total_groups"] == 2
        assert body["rejected"]["min_members"] == 1

    def test_invalid_filter(self, client):
        assert client.post("/api/filter", json={"min_members": -1}).status_code == 422

    def test_format(self, client):
        body = client.post("/api/format", json={"format": "json"}).json()
        assert body["export_format"] == "json"
        assert client.post("/api/format", json={"format": "xml"}).status_code == 422


class TestExport:
    def test_csv_download(self, client, groups_page):
        client.post("/api/scan", json={"html": groups_page})
        resp = client.get("/api/export")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert 'filename="groups-csv-' in resp.headers["content-disposition"]
        lines = resp.content.decode("utf-8-sig").splitlines()
        assert lines[0] == "Group Name,Members,Last Active,URL,Scanned At"
        assert lines[1].startswith("Python Developers,12.3K,3 days,")

    def test_json_download(self, client, groups_page):
        client.post("/api/scan", json={"html": groups_page})
        resp = client.get("/api/export", params={"format": "json"})
        doc = json.loads(resp.content)
        assert doc["total"] == 3
        assert [g["name"] for g in doc["groups"]] == ["Python Developers", "Gardening Club", "Quiet Readers"]


class FakeContext:
    def __init__(self, page):
        self.page = page

    async def new_page(self):
        return self.page


class FakeBrowser:
    def __init__(self, page):
        self.contexts = [FakeContext(page)]


@pytest.fixture
def open_page(client, monkeypatch):
    fake = FakePage(batches(2))

    async def connect(cdp_url):
        return FakeBrowser(fake)

    async def goto(page, url, timeout_ms):
        return True, ""

    monkeypatch.setattr(app_module, "connect_over_cdp", connect)
    monkeypatch.setattr(app_module, "goto_with_retry", goto)
    return fake


class TestOpenPage:
    def test_open_then_scan(self, client, open_page):
        body = client.post("/api/open", json={}).json()
        assert body["status"].startswith("Opened https://www.facebook.com/groups/joins/")
        assert body["auto_scanning"] is False

        body = client.post("/api/scan").json()
        assert body["total_groups"] == 2

    def test_auto_start_scans_opened_page(self, client, open_page):
        body = client.post("/api/auto-start", json={"enabled": True}).json()
        assert body["auto_start"] is True

        body = client.post("/api/open", json={}).json()
        assert body["auto_scanning"] is True
        assert MUTATION_BINDING in open_page.exposed

        body = client.post("/api/auto-scan/stop").json()
        assert body["auto_scanning"] is False
        assert body["status"].startswith("Auto-scan")

    def test_cdp_failure(self, client, monkeypatch):
        async def refuse(cdp_url):
            raise RuntimeError("connection refused")

        monkeypatch.setattr(app_module, "connect_over_cdp", refuse)
        resp = client.post("/api/open", json={})
        assert resp.status_code == 502
        assert "CDP connection failed" in resp.json()["error"]
