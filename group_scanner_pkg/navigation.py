import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, Tuple

from playwright.async_api import Page

from .config import SCROLL_STEP
from .dom import SoupNode, parse_html


logger = logging.getLogger(__name__)

MUTATION_BINDING = "__groupScannerMutated"

# Throttled so a burst of DOM writes produces one notification
MUTATION_OBSERVER_JS = """
(binding) => {
  if (window.__groupScannerObserver) return;
  let pending = false;
  const obs = new MutationObserver(() => {
    if (pending) return;
    pending = true;
    setTimeout(() => { pending = false; window[binding](); }, 250);
  });
  obs.observe(document.documentElement, { childList: true, subtree: true });
  window.__groupScannerObserver = obs;
}
"""


async def random_delay(min_sec: float = 0.5, max_sec: float = 1.5) -> None:
    await asyncio.sleep(random.uniform(min_sec, max_sec))


async def goto_with_retry(page: Page, url: str, timeout_ms: int, tries: int = 2) -> Tuple[bool, str]:
    """Navigate to a URL with bounded retries.

    Returns (success, error_message). Group lists keep streaming requests,
    so the wait stops at `domcontentloaded` rather than network idle.
    """
    last_err = ""
    for attempt in range(tries):
        try:
            await page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
            await random_delay(1.0, 2.0)
            return True, ""
        except Exception as e:
            last_err = str(e)
            if attempt < tries - 1:
                await random_delay(1.0, 2.0)
    return False, last_err


async def scroll_step(page: Page, step: int = SCROLL_STEP) -> bool:
    """Scroll the window down by `step` pixels; False when the page refused."""
    try:
        await page.evaluate("(dy) => window.scrollBy({ top: dy, behavior: 'smooth' })", step)
        return True
    except Exception as e:
        logger.debug("Scroll failed: %s", e)
        return False


async def snapshot(page: Page) -> Optional[SoupNode]:
    """Capture the current DOM as a parsed, read-only tree.

    Returns None when the page is navigating or closed; callers skip that
    pass and try again on the next tick.
    """
    try:
        html = await page.content()
    except Exception as e:
        logger.debug("Snapshot failed: %s", e)
        return None
    return parse_html(html)


async def install_mutation_hook(page: Page, on_mutation: Callable[[], Awaitable[None] | None]) -> bool:
    """Call `on_mutation` (throttled) whenever the page's DOM changes.

    Returns False when the hook could not be installed; auto-scan then runs
    on its timer alone.
    """
    try:
        try:
            await page.expose_function(MUTATION_BINDING, on_mutation)
        except Exception as e:
            # Already exposed on this page by an earlier auto-scan
            if "has been already registered" not in str(e):
                raise
        await page.evaluate(MUTATION_OBSERVER_JS, MUTATION_BINDING)
        return True
    except Exception as e:
        logger.info("Mutation hook unavailable: %s", e)
        return False
