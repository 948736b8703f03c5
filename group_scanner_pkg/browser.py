import logging
from typing import Optional

import httpx
from playwright.async_api import Browser, BrowserContext, async_playwright

from .config import SLOW_MO_MS, random_user_agent


logger = logging.getLogger(__name__)

# Keep a module-level reference to prevent garbage collection
_playwright_instance = None

CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-infobars",
    "--window-size=1440,1000",
    "--disable-dev-shm-usage",
    "--mute-audio",
    "--no-first-run",
    "--disable-extensions",
]


async def _playwright():
    global _playwright_instance
    if _playwright_instance is None:
        _playwright_instance = await async_playwright().start()
    return _playwright_instance


async def launch_browser(headless: bool = True, proxy: Optional[str] = None) -> Browser:
    """Launch a fresh Chromium for scanning public or already-open pages."""
    p = await _playwright()
    return await p.chromium.launch(
        headless=headless,
        proxy={"server": proxy} if proxy else None,
        slow_mo=SLOW_MO_MS if SLOW_MO_MS > 0 else None,
        args=CHROMIUM_ARGS,
    )


async def launch_persistent_context(
    user_data_dir: str,
    headless: bool = False,
    proxy: Optional[str] = None,
) -> BrowserContext:
    """Launch Chromium on a persistent profile directory.

    A profile the user has logged into once keeps its session between runs,
    which is how a scan sees the same groups list the user sees.
    """
    p = await _playwright()
    return await p.chromium.launch_persistent_context(
        user_data_dir,
        headless=headless,
        proxy={"server": proxy} if proxy else None,
        slow_mo=SLOW_MO_MS if SLOW_MO_MS > 0 else None,
        user_agent=random_user_agent(),
        viewport={"width": 1440, "height": 1000},
        locale="en-US",
        args=CHROMIUM_ARGS,
    )


async def new_context(browser: Browser, locale: str = "en-US", user_agent: Optional[str] = None) -> BrowserContext:
    context = await browser.new_context(
        user_agent=user_agent or random_user_agent(),
        viewport={"width": 1440, "height": 1000},
        locale=locale,
        extra_http_headers={"Accept-Language": f"{locale},en;q=0.9"},
    )
    await context.add_init_script(
        "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
    )
    return context


async def resolve_cdp_endpoint(cdp_url: str, timeout: float = 10.0) -> str:
    """Return the browser WebSocket URL behind a CDP HTTP endpoint.

    Falls back to `cdp_url` itself when the version endpoint cannot be read,
    letting Playwright try the HTTP form directly.
    """
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(cdp_url.rstrip("/") + "/json/version", timeout=timeout)
            if response.status_code == 200:
                ws_url = response.json().get("webSocketDebuggerUrl", "")
                if ws_url:
                    return ws_url
    except (httpx.HTTPError, ValueError) as e:
        logger.info("CDP version probe failed (%s); connecting directly", e)
    return cdp_url


async def connect_over_cdp(cdp_url: str) -> Browser:
    """Attach to a running Chrome started with `--remote-debugging-port`."""
    p = await _playwright()
    endpoint = await resolve_cdp_endpoint(cdp_url)
    return await p.chromium.connect_over_cdp(endpoint)


async def stop_playwright() -> None:
    global _playwright_instance
    if _playwright_instance is not None:
        try:
            await _playwright_instance.stop()
        finally:
            _playwright_instance = None
