import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from .config import BASE_URL, DENYLIST, GROUPS_MARKER, TARGET_DOMAIN


_KEY_PREFIX_RE = re.compile(r"^https?://[^/]+/%s/" % GROUPS_MARKER)


def is_target_host(hostname: str, domain: str = TARGET_DOMAIN) -> bool:
    """True when `hostname` is `domain` itself or one of its subdomains."""
    hostname = (hostname or "").lower().rstrip(".")
    domain = domain.lower()
    return hostname == domain or hostname.endswith("." + domain)


def canonicalize(raw_href: str, base_url: str = BASE_URL, domain: str = TARGET_DOMAIN) -> Optional[str]:
    """Turn a raw link into `origin/groups/<slug>`, or None when it is not a group page.

    The href is resolved against `base_url`; query strings, fragments and
    trailing path components are dropped so that every spelling of the same
    group link yields the same string.
    """
    if not raw_href or not isinstance(raw_href, str):
        return None
    try:
        parts = urlsplit(urljoin(base_url, raw_href.strip()))
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if parts.scheme not in ("http", "https") or not hostname:
        return None
    if not is_target_host(hostname, domain):
        return None

    segments = parts.path.split("/")
    try:
        idx = segments.index(GROUPS_MARKER)
    except ValueError:
        return None
    if idx + 1 >= len(segments):
        return None
    slug = segments[idx + 1]
    if not slug:
        return None

    if slug in DENYLIST:
        return None
    if any(f"/{GROUPS_MARKER}/{word}/" in parts.path for word in DENYLIST):
        return None

    origin = f"{parts.scheme}://{hostname}"
    if port:
        origin += f":{port}"
    return f"{origin}/{GROUPS_MARKER}/{slug}"


def group_key(canonical_url: str) -> str:
    """Dedup key of a canonical URL: the slug that follows `/groups/`."""
    return _KEY_PREFIX_RE.sub("", canonical_url or "", count=1)
