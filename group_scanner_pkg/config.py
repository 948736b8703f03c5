import os
import random


TARGET_DOMAIN = os.environ.get("GROUP_SCANNER_DOMAIN", "facebook.com")
BASE_URL = os.environ.get("GROUP_SCANNER_BASE_URL", "https://www.facebook.com")
START_URL = os.environ.get("GROUP_SCANNER_START_URL", f"{BASE_URL}/groups/joins/")

SLOW_MO_MS = int(os.environ.get("SCRAPER_SLOW_MO_MS", "0"))
BLOCK_IMAGES = os.environ.get("SCRAPER_BLOCK_IMAGES", "true").lower() != "false"
USE_CDP = os.environ.get("SCRAPER_USE_CDP", "false").lower() in ["1", "true", "yes"]
CDP_URL = os.environ.get("SCRAPER_CDP_URL", "http://127.0.0.1:9222")
USER_DATA_DIR = os.environ.get("SCRAPER_USER_DATA_DIR", "")

SETTINGS_FILE = os.environ.get("GROUP_SCANNER_SETTINGS_PATH", "group_scanner_settings.json")
DATA_FILE = os.environ.get("GROUP_SCANNER_DATA_PATH", "group_scanner_data.json")
STORE_KEY = "GROUP_SCANNER_DATA_V1"

MAX_ITEMS = int(os.environ.get("GROUP_SCANNER_MAX_ITEMS", "1000"))

# Auto-scan timing
SCAN_INTERVAL_S = float(os.environ.get("GROUP_SCANNER_SCAN_INTERVAL", "1.5"))
SCROLL_INTERVAL_S = float(os.environ.get("GROUP_SCANNER_SCROLL_INTERVAL", "2.5"))
SCROLL_STEP = int(os.environ.get("GROUP_SCANNER_SCROLL_STEP", "900"))
AUTO_SCAN_SECONDS = float(os.environ.get("GROUP_SCANNER_AUTO_SCAN_SECONDS", "60"))
MAX_IDLE_PASSES = int(os.environ.get("GROUP_SCANNER_MAX_IDLE_PASSES", "20"))

# Name heuristics
MAX_NAME_LEN = 180
ALT_NAME_MAX_LEN = 120
MIN_NAME_LEN = 3

GROUPS_MARKER = "groups"
DENYLIST = ("feed", "joins", "discover", "create", "requests", "browse", "categories")


def user_agents():
    """Return a small pool of desktop Chrome user agents."""
    return [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    ]


def random_user_agent():
    return random.choice(user_agents())
