import logging
import time
from pathlib import Path
from typing import List, Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Route package loggers to stderr; DEBUG when `debug` is set."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)


def add_debug(debug_list: List[str], tag: str) -> None:
    """Append a short debug tag to the in-flight list."""
    debug_list.append(tag)


async def save_debug_files(page, prefix: str = "debug", output_dir: str = "/tmp") -> Optional[dict]:
    """Save a full-page screenshot and the HTML snapshot for diagnostics.

    Returns the file paths, or None when the page could not be captured.
    """
    try:
        ts = int(time.time())
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        screenshot_path = out / f"{prefix}_{ts}.png"
        html_path = out / f"{prefix}_{ts}.html"
        await page.screenshot(path=str(screenshot_path), full_page=True)
        content = await page.content()
        html_path.write_text(content, encoding="utf-8")
        return {"screenshot": str(screenshot_path), "html": str(html_path)}
    except Exception:
        return None
