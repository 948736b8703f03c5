import asyncio
import logging
from typing import List, Optional

from playwright.async_api import Page

from .config import (
    AUTO_SCAN_SECONDS,
    BASE_URL,
    DATA_FILE,
    MAX_IDLE_PASSES,
    SCAN_INTERVAL_S,
    SCROLL_INTERVAL_S,
    SETTINGS_FILE,
)
from .dom import TreeNode
from .exporter import export_filename, render
from .models import ScannerSettings, ScanReport
from .navigation import install_mutation_hook, scroll_step, snapshot
from .scan import scan
from .storage import load_records, load_settings, save_records, save_settings
from .store import RecordStore


logger = logging.getLogger(__name__)


class ScannerSession:
    """Owns one record store and drives scans, auto-scans and exports.

    This is the single writer of the store. Manual scans run synchronously
    on a snapshot; auto-scan runs two independent tasks (scan and scroll)
    that share only the store and a stop event. Stopping never interrupts a
    pass in flight.
    """

    def __init__(
        self,
        settings: Optional[ScannerSettings] = None,
        base_url: str = BASE_URL,
        persist: bool = False,
        settings_path: str = SETTINGS_FILE,
        data_path: str = DATA_FILE,
        scan_interval: float = SCAN_INTERVAL_S,
        scroll_interval: float = SCROLL_INTERVAL_S,
        max_idle_passes: int = MAX_IDLE_PASSES,
    ):
        self.settings = settings or ScannerSettings()
        self.store = RecordStore(max_items=self.settings.max_items)
        self.base_url = base_url
        self.persist = persist
        self.settings_path = settings_path
        self.data_path = data_path
        self.scan_interval = scan_interval
        self.scroll_interval = scroll_interval
        self.max_idle_passes = max_idle_passes

        self.last_added = 0
        self.last_report: Optional[ScanReport] = None
        self.status = "Ready"

        self._stop: Optional[asyncio.Event] = None
        self._dirty: Optional[asyncio.Event] = None
        self._tasks: List[asyncio.Task] = []

    @classmethod
    def from_storage(
        cls,
        settings_path: str = SETTINGS_FILE,
        data_path: str = DATA_FILE,
        **kwargs,
    ) -> "ScannerSession":
        """Build a session from persisted settings and records.

        Unreadable files leave the defaults in place; the problem is shown in
        `status` instead of raised.
        """
        settings, settings_status = load_settings(settings_path)
        session = cls(settings=settings, persist=True, settings_path=settings_path, data_path=data_path, **kwargs)
        records, records_status = load_records(data_path)
        loaded = session.store.restore(records)
        notes = [s for s in (settings_status, records_status) if s]
        session.status = "; ".join(notes) if notes else f"Loaded {loaded} saved groups"
        return session

    # --- state ---

    @property
    def record_count(self) -> int:
        return len(self.store)

    @property
    def progress(self) -> float:
        return min(1.0, len(self.store) / self.settings.max_items)

    @property
    def is_auto_scanning(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def status_dict(self) -> dict:
        return {
            "count": self.record_count,
            "last_added": self.last_added,
            "max_items": self.settings.max_items,
            "progress": round(self.progress, 4) if self.settings.show_progress else None,
            "auto_scanning": self.is_auto_scanning,
            "export_format": self.settings.export_format,
            "auto_start": self.settings.auto_start,
            "status": self.status,
        }

    # --- triggers ---

    def scan_now(self, root: TreeNode, base_url: Optional[str] = None) -> ScanReport:
        """Run one pass over `root` and update the counters."""
        report = scan(root, self.store, self.settings.filters(), base_url or self.base_url)
        self.last_added = report.added
        self.last_report = report
        if self.store.is_full:
            self.status = f"Max items ({self.settings.max_items}) reached!"
        else:
            self.status = f"Scan complete. +{report.added} new ({report.total} total)"
        if report.added and self.persist:
            save_records(self.store.list(), self.data_path)
        return report

    async def scan_page(self, page: Page) -> ScanReport:
        root = await snapshot(page)
        if root is None:
            report = ScanReport(total=len(self.store), debug=["SnapshotFailed"])
            self.last_added = 0
            self.last_report = report
            return report
        return self.scan_now(root, base_url=page.url or self.base_url)

    async def start_auto_scan(self, page: Page, duration: float = AUTO_SCAN_SECONDS) -> bool:
        """Start scanning and scrolling `page` for `duration` seconds.

        Returns False when an auto-scan is already running.
        """
        if self.is_auto_scanning:
            return False
        self._stop = asyncio.Event()
        self._dirty = asyncio.Event()
        await install_mutation_hook(page, self._on_mutation)

        deadline = asyncio.get_running_loop().time() + duration
        self._tasks = [
            asyncio.create_task(self._scan_loop(page, deadline)),
            asyncio.create_task(self._scroll_loop(page)),
        ]
        self.status = f"Auto-scan started ({duration:g}s)"
        logger.info(self.status)
        return True

    async def on_page_opened(self, page: Page, duration: float = AUTO_SCAN_SECONDS) -> bool:
        """Kick off an auto-scan on a freshly opened page when `auto_start` is on."""
        if not self.settings.auto_start:
            return False
        return await self.start_auto_scan(page, duration)

    async def stop_auto_scan(self) -> None:
        """Schedule no further passes and wait for the loops to wind down."""
        if self._stop is not None:
            self._stop.set()
        if self._dirty is not None:
            self._dirty.set()
        await self.wait_auto_scan()

    async def wait_auto_scan(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def clear_all(self) -> None:
        self.store.clear()
        self.last_added = 0
        self.status = "Data cleared."
        if self.persist:
            save_records([], self.data_path)

    def set_filter(self, min_members: int = 0, activity_threshold_days: Optional[float] = None) -> None:
        self.settings = ScannerSettings.model_validate(
            {
                **self.settings.model_dump(),
                "min_members": min_members,
                "activity_threshold_days": activity_threshold_days,
            }
        )
        self._save_settings()

    def set_export_format(self, fmt: str) -> None:
        self.settings = ScannerSettings.model_validate({**self.settings.model_dump(), "export_format": fmt})
        self._save_settings()

    def set_sort_order(self, sort_by: str) -> None:
        self.settings = ScannerSettings.model_validate({**self.settings.model_dump(), "sort_by": sort_by})
        self._save_settings()

    def set_auto_start(self, enabled: bool) -> None:
        self.settings = ScannerSettings.model_validate({**self.settings.model_dump(), "auto_start": enabled})
        self._save_settings()

    def set_max_items(self, max_items: int) -> None:
        self.settings = ScannerSettings.model_validate({**self.settings.model_dump(), "max_items": max_items})
        self.store.max_items = self.settings.max_items
        if len(self.store) > self.store.max_items:
            # Keep the earliest groups
            self.store.restore(self.store.list())
            if self.persist:
                save_records(self.store.list(), self.data_path)
        self._save_settings()

    # --- outputs ---

    def export(self, fmt: Optional[str] = None) -> str:
        return render(self.store.list(), fmt or self.settings.export_format, self.settings.sort_by)

    def export_filename(self, fmt: Optional[str] = None) -> str:
        return export_filename(fmt or self.settings.export_format)

    # --- internals ---

    def _save_settings(self) -> None:
        if self.persist:
            save_settings(self.settings, self.settings_path)

    def _on_mutation(self) -> None:
        if self._dirty is not None and self.is_auto_scanning:
            self._dirty.set()

    async def _scan_loop(self, page: Page, deadline: float) -> None:
        loop = asyncio.get_running_loop()
        idle = 0
        while not self._stop.is_set():
            report = await self.scan_page(page)
            idle = idle + 1 if report.added == 0 else 0
            self.status = f"Auto-scan: +{report.added} ({len(self.store)} total)"

            if self.store.is_full:
                self.status = f"Max items ({self.settings.max_items}) reached!"
                break
            if loop.time() >= deadline:
                self.status = f"Auto-scan done. {len(self.store)} groups found."
                break
            if self.max_idle_passes and idle >= self.max_idle_passes:
                self.status = f"Auto-scan idle. {len(self.store)} groups found."
                break

            try:
                timeout = min(self.scan_interval, max(0.0, deadline - loop.time()))
                await asyncio.wait_for(self._dirty.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
            self._dirty.clear()
        else:
            self.status = "Auto-scan stopped."
        self._stop.set()
        logger.info(self.status)

    async def _scroll_loop(self, page: Page) -> None:
        while not self._stop.is_set():
            await scroll_step(page)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.scroll_interval)
            except asyncio.TimeoutError:
                pass
