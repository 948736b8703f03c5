#!/usr/bin/env python3
"""
Facebook Group Scanner - CLI

Opens a Facebook groups page (your joined groups by default), keeps scrolling
and scanning it for a while, and writes every group found as CSV or JSON.
A saved HTML snapshot can be scanned offline instead of a live page.

Usage:
    python scraper.py [URL] [OPTIONS]

Example:
    python scraper.py --use-cdp --duration 120 -o exports/
    python scraper.py https://www.facebook.com/groups/joins/ --user-data-dir browser_data
    python scraper.py --html saved_page.html --format json
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from urllib.parse import urlsplit

from playwright.async_api import Route

from group_scanner_pkg.browser import (
    connect_over_cdp,
    launch_browser,
    launch_persistent_context,
    new_context,
    stop_playwright,
)
from group_scanner_pkg.canonical import is_target_host
from group_scanner_pkg.config import BLOCK_IMAGES, CDP_URL, START_URL, USE_CDP, USER_DATA_DIR
from group_scanner_pkg.dom import parse_html
from group_scanner_pkg.models import ScannerSettings, ScanRequest
from group_scanner_pkg.navigation import goto_with_retry
from group_scanner_pkg.response import build_error, build_response
from group_scanner_pkg.scraper_logging import add_debug, configure_logging, save_debug_files
from group_scanner_pkg.session import ScannerSession


def log(msg: str) -> None:
    print(msg, file=sys.stderr)


def scan_html_file(data: ScanRequest, session: ScannerSession) -> dict:
    """Scan a saved page snapshot without a browser."""
    debug_msg = ["HTML_FILE"]
    try:
        html = Path(data.html_file).read_text(encoding="utf-8")
    except OSError as e:
        return build_error(data.html_file, f"Could not read HTML file: {e}", debug_msg)
    report = session.scan_now(parse_html(html), base_url=data.url or session.base_url)
    log(f"✅ Snapshot scanned: +{report.added} new ({report.total} total)")
    return build_response(session, report, debug_msg)


async def scan_groups(data: ScanRequest, session: ScannerSession) -> dict:
    """
    Open the page described by `data`, run one scan and then an auto-scan.

    Args:
        data: ScanRequest with the page URL and browser options
        session: ScannerSession that accumulates the records

    Returns:
        Status dictionary (see `build_response`), or an error payload
    """
    url = data.url or START_URL
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""
    if not is_target_host(host):
        return build_error(url, "Invalid URL", [])

    debug_msg = []
    debug_files = None
    browser = None
    context = None
    page = None
    owns_browser = True

    use_cdp = USE_CDP or data.use_cdp
    cdp_url = data.cdp_url or CDP_URL
    user_data_dir = data.user_data_dir or USER_DATA_DIR
    headless = data.headless if data.headless is not None else True

    if use_cdp:
        log(f"🚀 Connecting via CDP: {cdp_url}")
        try:
            browser = await connect_over_cdp(cdp_url)
            context = browser.contexts[0] if browser.contexts else await browser.new_context()
            owns_browser = False
            add_debug(debug_msg, "CDP_MODE")
        except Exception as e:
            log(f"❌ CDP connection failed: {e}. Falling back to a launched browser")
            add_debug(debug_msg, "CDP_FAIL_FALLBACK")
            use_cdp = False

    if not use_cdp:
        if user_data_dir:
            context = await launch_persistent_context(user_data_dir, headless=headless, proxy=data.proxy)
            add_debug(debug_msg, "PERSISTENT_PROFILE")
        else:
            browser = await launch_browser(headless=headless, proxy=data.proxy)
            context = await new_context(browser)

    async def _cleanup():
        try:
            if page:
                await page.close()
        except Exception:
            pass
        if owns_browser:
            try:
                if browser:
                    await browser.close()
                elif context:
                    await context.close()
            except Exception:
                pass
        await stop_playwright()

    try:
        page = await context.new_page()
        if BLOCK_IMAGES and not data.debug:
            async def _block_images(route: Route):
                await route.abort()
            await page.route("**/*.{png,jpg,jpeg,gif,svg,ico,webp}", _block_images)

        log(f"🚀 Opening: {url}")
        ok, err = await goto_with_retry(page, url, timeout_ms=max(20000, data.max_wait), tries=2)
        if not ok:
            log(f"❌ Navigation failed: {err}")
            return build_error(url, f"Navigation failed: {err}", debug_msg)
        if data.debug:
            await save_debug_files(page, "landing")

        report = await session.scan_page(page)
        log(f"🔍 Initial scan: +{report.added} new ({report.total} total)")

        if data.duration > 0 and not session.store.is_full:
            await session.start_auto_scan(page, data.duration)
            log(f"🤖 Auto-scan running for {data.duration:g}s (Ctrl+C to stop early)")
            try:
                await session.wait_auto_scan()
            finally:
                await session.stop_auto_scan()
            log(f"✅ {session.status}")

        if data.debug and session.record_count == 0:
            debug_files = await save_debug_files(page, "no_results")

        return build_response(session, session.last_report, debug_msg, debug_files)

    except Exception as e:
        log(f"❌ Fatal error: {e}")
        return build_error(url, str(e), debug_msg)

    finally:
        await _cleanup()


def write_export(session: ScannerSession, fmt: str, output: str = None) -> str:
    """Write the export to `output` (file or directory) or stdout.

    Returns the path written, or "-" for stdout.
    """
    text = session.export(fmt)
    if not output:
        sys.stdout.write(text)
        sys.stdout.write("\n")
        return "-"
    path = Path(output)
    if path.is_dir() or output.endswith(os.sep):
        path.mkdir(parents=True, exist_ok=True)
        path = path / session.export_filename(fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="")
    return str(path)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Facebook Group Scanner - collect groups from a Facebook groups page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --use-cdp
  %(prog)s https://www.facebook.com/groups/joins/ --user-data-dir browser_data --duration 120
  %(prog)s --html saved_page.html --format json -o exports/
  %(prog)s --use-cdp --min-members 1000 --active-within-days 7
        """
    )

    parser.add_argument("url", nargs="?", help=f"Groups page to scan (default: {START_URL})")
    parser.add_argument("--html", dest="html_file", help="Scan a saved HTML snapshot instead of a live page")
    parser.add_argument("--duration", type=float, default=60.0,
                        help="Seconds of auto-scroll + scan after the first pass (default: 60, 0 = single pass)")
    parser.add_argument("--debug", action="store_true", help="Save screenshots/HTML and log at DEBUG level")
    parser.add_argument("--headless", type=lambda x: x.lower() in ("true", "1", "yes"), default=None,
                        help="Run a launched browser headless (default: true)")
    parser.add_argument("--max-wait", type=int, default=25000,
                        help="Maximum wait time in milliseconds for page loads (default: 25000)")
    parser.add_argument("--use-cdp", action="store_true", help="Attach to a running Chrome over CDP")
    parser.add_argument("--cdp-url", default=None, help=f"CDP endpoint URL (default: {CDP_URL})")
    parser.add_argument("--user-data-dir", default=None, help="Persistent Chromium profile directory")
    parser.add_argument("--proxy", help="Proxy URL for a launched browser")
    parser.add_argument("--format", choices=["csv", "json"], default=None, help="Export format (default: settings)")
    parser.add_argument("--sort", choices=["members", "insertion", "name"], default=None,
                        help="Export order (default: members, largest first)")
    parser.add_argument("--min-members", type=int, default=None, help="Only keep groups with at least N members")
    parser.add_argument("--active-within-days", type=float, default=None,
                        help="Only keep groups active within the last N days")
    parser.add_argument("--max-items", type=int, default=None, help="Stop collecting after N groups")
    parser.add_argument("--state", action="store_true",
                        help="Load and save settings and collected groups between runs")
    parser.add_argument("--output", "-o", help="Output file or directory. If not specified, prints to stdout")

    args = parser.parse_args()
    configure_logging(args.debug)

    if args.state:
        session = ScannerSession.from_storage()
        log(f"💾 {session.status}")
    else:
        session = ScannerSession(settings=ScannerSettings())

    if args.min_members is not None or args.active_within_days is not None:
        session.set_filter(
            args.min_members if args.min_members is not None else session.settings.min_members,
            args.active_within_days if args.active_within_days is not None else session.settings.activity_threshold_days,
        )
    if args.format:
        session.set_export_format(args.format)
    if args.max_items:
        session.set_max_items(args.max_items)
    if args.sort:
        session.set_sort_order(args.sort)

    request_data = ScanRequest(
        url=args.url,
        html_file=args.html_file,
        duration=args.duration,
        debug=args.debug,
        headless=args.headless,
        max_wait=args.max_wait,
        use_cdp=args.use_cdp,
        cdp_url=args.cdp_url,
        user_data_dir=args.user_data_dir,
        proxy=args.proxy,
    )

    try:
        if request_data.html_file:
            result = scan_html_file(request_data, session)
        else:
            result = asyncio.run(scan_groups(request_data, session))
    except KeyboardInterrupt:
        log("\n⚠️ Interrupted by user")
        result = build_response(session)

    if result.get("error"):
        log(f"❌ {result['error']}")
        sys.exit(1)

    fmt = session.settings.export_format
    where = write_export(session, fmt, args.output)
    if where != "-":
        log(f"📁 {fmt.upper()} saved to: {where} ({session.record_count} groups)")

    sys.exit(0 if result.get("found") else 1)


if __name__ == "__main__":
    main()
