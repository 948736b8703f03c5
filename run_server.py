#!/usr/bin/env python3
"""
Facebook Group Scanner - server launcher

Makes sure a Chrome with remote debugging is available (starting one on a
dedicated profile when needed), then serves the control API. Log in to
Facebook once in that Chrome window; the profile keeps the session.

When the saved settings have auto-start enabled, the groups page is opened
as soon as the API is up, which starts an auto-scan right away.

Usage:
    python run_server.py [--port 8787] [--cdp-port 9222] [--no-chrome]
"""

import argparse
import os
import shutil
import subprocess
import sys
import tempfile
import time
from threading import Thread
from typing import List, Optional

import httpx
import uvicorn


CHROME_PATHS = {
    "darwin": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
    "win32": [
        r"C:\Program Files\Google\Chrome\Application\chrome.exe",
        r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
    ],
}
CHROME_COMMANDS = ["google-chrome", "chrome", "chromium", "chromium-browser"]


def find_chrome(platform: str = sys.platform) -> Optional[str]:
    """CHROME_PATH first, then the platform's usual install paths, then PATH."""
    override = os.environ.get("CHROME_PATH")
    if override and os.path.exists(override):
        return override
    for path in CHROME_PATHS.get(platform, []):
        if os.path.exists(path):
            return path
    for name in CHROME_COMMANDS:
        found = shutil.which(name)
        if found:
            return found
    return None


def cdp_ready(cdp_url: str, timeout: float = 2.0) -> bool:
    try:
        return httpx.get(cdp_url.rstrip("/") + "/json/version", timeout=timeout).status_code == 200
    except httpx.HTTPError:
        return False


def chrome_command(chrome: str, cdp_port: int, profile_dir: str, start_url: Optional[str] = None) -> List[str]:
    cmd = [
        chrome,
        f"--remote-debugging-port={cdp_port}",
        f"--user-data-dir={profile_dir}",
        "--no-first-run",
        "--no-default-browser-check",
    ]
    if start_url:
        cmd.append(start_url)
    return cmd


def ensure_chrome(cdp_port: int, profile_dir: str, start_url: Optional[str] = None, wait_s: float = 10.0) -> bool:
    """Return True once a CDP endpoint answers on `cdp_port`."""
    cdp_url = f"http://127.0.0.1:{cdp_port}"
    if cdp_ready(cdp_url):
        print(f"✅ Chrome CDP already running on port {cdp_port}")
        return True

    chrome = find_chrome()
    if not chrome:
        print("⚠️ Chrome not found. Install Chrome or set CHROME_PATH, or start it yourself with:")
        print(f"   chrome --remote-debugging-port={cdp_port} --user-data-dir={profile_dir}")
        return False

    # Detached so closing the server leaves the logged-in browser open
    detach = (
        {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
        if sys.platform.startswith("win")
        else {"start_new_session": True}
    )
    subprocess.Popen(
        chrome_command(chrome, cdp_port, profile_dir, start_url),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        **detach,
    )

    deadline = time.monotonic() + wait_s
    while time.monotonic() < deadline:
        if cdp_ready(cdp_url):
            print(f"✅ Chrome CDP started on port {cdp_port} (profile: {profile_dir})")
            return True
        time.sleep(0.5)
    print(f"⚠️ Chrome did not expose CDP on port {cdp_port} within {wait_s:g}s")
    return False


def open_when_ready(api_url: str, cdp_url: str, wait_s: float = 30.0) -> bool:
    """Wait for the API to answer, then ask it to open the groups page."""
    deadline = time.monotonic() + wait_s
    with httpx.Client(base_url=api_url, timeout=60.0) as client:
        while time.monotonic() < deadline:
            try:
                client.get("/health").raise_for_status()
                break
            except httpx.HTTPError:
                time.sleep(0.5)
        else:
            print("⚠️ API did not come up; skipping auto-start")
            return False
        try:
            response = client.post("/api/open", json={"cdp_url": cdp_url})
        except httpx.HTTPError as e:
            print(f"⚠️ Auto-start failed: {e}")
            return False
    body = response.json()
    if response.status_code != 200:
        print(f"⚠️ Auto-start failed: {body.get('error')}")
        return False
    print(f"▶️ {body.get('status')}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Start Chrome (CDP) and the Facebook Group Scanner API")
    parser.add_argument("--host", default=os.environ.get("API_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("API_PORT", "8787")))
    parser.add_argument("--cdp-port", type=int, default=int(os.environ.get("SCRAPER_CDP_PORT", "9222")))
    parser.add_argument(
        "--profile-dir",
        default=os.environ.get("SCRAPER_USER_DATA_DIR")
        or os.path.join(tempfile.gettempdir(), "group_scanner_cdp_profile"),
        help="Chrome profile that keeps the Facebook login",
    )
    parser.add_argument("--no-chrome", action="store_true", help="Do not start Chrome; only serve the API")
    args = parser.parse_args()

    cdp_url = f"http://127.0.0.1:{args.cdp_port}"
    os.environ.setdefault("SCRAPER_USE_CDP", "true")
    os.environ.setdefault("SCRAPER_CDP_URL", cdp_url)

    # Imported after the environment is set; config reads it at import time
    from app import app
    from group_scanner_pkg.config import START_URL

    session = app.state.session
    print(f"💾 {session.status}")

    chrome_up = args.no_chrome or ensure_chrome(args.cdp_port, args.profile_dir, START_URL)
    if chrome_up and session.settings.auto_start:
        api_url = f"http://{args.host}:{args.port}"
        Thread(target=open_when_ready, args=(api_url, cdp_url), daemon=True).start()

    print(f"\nFacebook Group Scanner API: http://{args.host}:{args.port}/docs")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
