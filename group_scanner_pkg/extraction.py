import re
from datetime import timedelta
from typing import Iterable, Optional, Tuple

from .config import ALT_NAME_MAX_LEN, MAX_NAME_LEN, MIN_NAME_LEN
from .models import ExtractedAttributes


_WS_RE = re.compile(r"\s+")

# Text that describes a group rather than naming it
_VOCABULARY_RE = re.compile(r"members|active|joined|posts|see all|create", re.I)
_PENALTY_RE = re.compile(r"members?|active", re.I)
_UPPER_START_RE = re.compile(r"^[A-Z]")

_MEMBERS_RE = re.compile(
    r"(?<![\d.,])(\d[\d,]*(?:\.\d+)?)\s*([km])?\+?\s*members?\b",
    re.I,
)
_RAW_COUNT_RE = re.compile(r"^\s*(\d[\d,]*(?:\.\d+)?)\s*([km])?", re.I)

_UNIT = r"(?:second|minute|hour|day|week|month|year)s?"
_DURATION = r"(\d+(?:[.,]\d+)?\s*%s)" % _UNIT
_LAST_ACTIVE_PATTERNS = [
    re.compile(r"last\s+active\s*[:.]?\s*%s\s+ago\b" % _DURATION, re.I),
    re.compile(r"\bactive\s*[:.]?\s*%s\s+ago\b" % _DURATION, re.I),
    re.compile(r"\b%s\s+ago\b" % _DURATION, re.I),
]
_AGE_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(second|minute|hour|day|week|month|year)s?", re.I)

_UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 7 * 86400,
    "month": 30 * 86400,
    "year": 365 * 86400,
}

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}


def normalize_text(s: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and trim the ends."""
    if not s:
        return ""
    return _WS_RE.sub(" ", str(s)).strip()


def sanitize_name(name: Optional[str]) -> str:
    return normalize_text(name)[:MAX_NAME_LEN]


def parse_member_count(number: str, unit: str = "") -> int:
    try:
        value = float(number.replace(",", ""))
    except (AttributeError, ValueError):
        return 0
    value *= _MULTIPLIERS.get((unit or "").lower(), 1)
    return int(round(value))


def count_from_raw(raw: str) -> int:
    """Numeric value of a stored `members_raw` such as "12.3K"."""
    m = _RAW_COUNT_RE.match(raw or "")
    if not m:
        return 0
    return parse_member_count(m.group(1), m.group(2) or "")


def find_members(text: str) -> Tuple[str, int]:
    """Return (raw, count) for the first `<number><K|M> members` phrase.

    `raw` keeps the number and unit as written ("12.3K"); both values are
    empty/zero when the text carries no member count.
    """
    m = _MEMBERS_RE.search(text or "")
    if not m:
        return "", 0
    number, unit = m.group(1), m.group(2) or ""
    return f"{number}{unit}", parse_member_count(number, unit)


def find_last_active(text: str) -> str:
    """Return the duration of the first relative-activity phrase, e.g. "3 days".

    Explicit "last active"/"active" phrases win over a bare "<n> <unit> ago".
    """
    text = text or ""
    for pattern in _LAST_ACTIVE_PATTERNS:
        m = pattern.search(text)
        if m:
            return normalize_text(m.group(1))
    return ""


def parse_activity_age(raw: str) -> Optional[timedelta]:
    m = _AGE_RE.search(raw or "")
    if not m:
        return None
    try:
        amount = float(m.group(1).replace(",", "."))
    except ValueError:
        return None
    return timedelta(seconds=amount * _UNIT_SECONDS[m.group(2).lower()])


def find_alt_name(text_nodes: Iterable[str]) -> str:
    """Pick the longest short text in a container that reads like a name."""
    best = ""
    for node_text in text_nodes or ():
        t = normalize_text(node_text)
        if len(t) > len(best) and len(t) < ALT_NAME_MAX_LEN and not _VOCABULARY_RE.search(t):
            best = t
    return best


def score_name(s: str) -> float:
    score = len(s) * 0.3
    if len(s) > ALT_NAME_MAX_LEN:
        score -= 50
    if _UPPER_START_RE.search(s):
        score += 10
    if _PENALTY_RE.search(s):
        score -= 20
    return score


def pick_best_name(primary: str, alternative: str) -> str:
    """Choose between the anchor's own name and a container-derived one.

    The alternative only wins on a strictly higher score.
    """
    if not primary:
        return alternative or ""
    if not alternative:
        return primary
    return alternative if score_name(alternative) > score_name(primary) else primary


def extract(
    anchor_text: str,
    container_text: str,
    aria_label: str = "",
    text_nodes: Iterable[str] = (),
) -> ExtractedAttributes:
    """Recover name, member count and last activity from flattened text.

    A missing or too-short name comes back as an empty string; callers
    treat that as a rejected candidate.
    """
    container_text = normalize_text(container_text)

    primary = sanitize_name(anchor_text) or sanitize_name(aria_label)
    name = sanitize_name(pick_best_name(primary, find_alt_name(text_nodes)))
    if len(name) < MIN_NAME_LEN:
        name = ""

    members_raw, members_count = find_members(container_text)
    return ExtractedAttributes(
        name=name,
        members_raw=members_raw,
        members_count=members_count,
        last_active_raw=find_last_active(container_text),
    )
