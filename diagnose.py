#!/usr/bin/env python3
"""
Diagnostic tool for the Facebook Group Scanner
Shows, for every group-like link on a page, whether a scan would keep it
and why not when it would not.
"""

import asyncio
import json
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path

from group_scanner_pkg.browser import connect_over_cdp, launch_browser, new_context, stop_playwright
from group_scanner_pkg.config import BASE_URL, CDP_URL, USE_CDP
from group_scanner_pkg.dom import parse_html
from group_scanner_pkg.navigation import goto_with_retry
from group_scanner_pkg.scan import explain


def print_rows(rows):
    for row in rows:
        verdict = row["verdict"]
        mark = "✅" if verdict == "accepted" else "⏭️ "
        detail = ""
        if verdict == "accepted":
            detail = f"{row['name']!r} members={row['members_raw'] or '-'} active={row['last_active_raw'] or '-'}"
        print(f"  {mark} {verdict:<12} {row.get('key') or '-':<30} {detail}")
        if verdict != "accepted":
            print(f"       href: {row['href'][:100]}")


async def snapshot_url(url: str, output_path: Path, safe_name: str) -> str:
    """Open `url`, save screenshot + HTML, and return the HTML."""
    owns_browser = not USE_CDP
    if USE_CDP:
        browser = await connect_over_cdp(CDP_URL)
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
    else:
        browser = await launch_browser(headless=True)
        context = await new_context(browser)
    page = await context.new_page()
    try:
        ok, err = await goto_with_retry(page, url, timeout_ms=30000)
        if not ok:
            raise RuntimeError(f"Failed to load: {err}")
        await asyncio.sleep(3)
        print(f"  📍 Final URL: {page.url}")

        screenshot_file = output_path / f"{safe_name}_page.png"
        try:
            await page.screenshot(path=str(screenshot_file), full_page=True)
            print(f"  💾 Screenshot: {screenshot_file}")
        except Exception as e:
            print(f"  ⚠️  Could not save screenshot: {str(e)[:100]}")

        html = await page.content()
        html_file = output_path / f"{safe_name}_page.html"
        html_file.write_text(html, encoding="utf-8")
        print(f"  💾 HTML: {html_file}")
        return html
    finally:
        await page.close()
        if owns_browser:
            await browser.close()
        await stop_playwright()


async def diagnose(source: str, output_dir: str = "/tmp"):
    """
    Explain how a scan pass treats each group link of a page.

    Args:
        source: Facebook URL, or path to a saved HTML snapshot
        output_dir: Directory for screenshots, HTML and the JSON report
    """
    print("\n" + "=" * 80)
    print("Facebook Group Scanner Diagnostic Tool")
    print("=" * 80)
    print(f"\nSource: {source}")
    print(f"Output directory: {output_dir}")
    print(f"Timestamp: {datetime.now().isoformat()}")
    print("\n" + "=" * 80 + "\n")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    if source.startswith("http"):
        safe_name = source.rstrip("/").split("/")[-1] or "page"
        safe_name = safe_name.replace("?", "_").replace("&", "_")
        print("Step 1: Loading page...")
        html = await snapshot_url(source, output_path, safe_name)
        base_url = source
    else:
        safe_name = Path(source).stem
        print("Step 1: Reading snapshot...")
        html = Path(source).read_text(encoding="utf-8")
        base_url = BASE_URL

    print("\nStep 2: Evaluating group links...")
    rows = explain(parse_html(html), base_url=base_url)
    print_rows(rows)

    verdicts = Counter(r["verdict"] for r in rows)
    keys = {r["key"] for r in rows if r["verdict"] == "accepted"}
    print(f"\n  Links: {len(rows)}  distinct groups kept: {len(keys)}")
    for verdict, count in verdicts.most_common():
        print(f"    {verdict}: {count}")

    results = {
        "source": source,
        "timestamp": datetime.now().isoformat(),
        "verdicts": dict(verdicts),
        "distinct_groups": len(keys),
        "links": rows,
    }
    result_file = output_path / f"{safe_name}_diagnostic.json"
    with open(result_file, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2, default=str)

    print("\n" + "=" * 80)
    print(f"Results saved to: {result_file}")
    print("=" * 80 + "\n")
    return results


async def main():
    if len(sys.argv) < 2:
        print("Usage: python3 diagnose.py <facebook_url | snapshot.html> [output_dir]")
        print("\nExample:")
        print("  python3 diagnose.py https://www.facebook.com/groups/joins/")
        print("  python3 diagnose.py /tmp/landing_1700000000.html /tmp/diagnostics")
        sys.exit(1)

    source = sys.argv[1]
    output_dir = sys.argv[2] if len(sys.argv) > 2 else "/tmp"

    try:
        await diagnose(source, output_dir)
    except KeyboardInterrupt:
        print("\n\nDiagnostic interrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n\n❌ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
