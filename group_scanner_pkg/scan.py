import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from .canonical import canonicalize, group_key
from .config import BASE_URL, TARGET_DOMAIN
from .dom import TreeNode
from .extraction import extract, parse_activity_age
from .models import ExtractedAttributes, GroupCandidate, ScanFilters, ScanReport
from .scraper_logging import add_debug
from .selectors import NAME_NODE_SELECTOR, find_container, find_group_anchors
from .store import RecordStore


logger = logging.getLogger(__name__)


def passes_filters(attrs: ExtractedAttributes, filters: ScanFilters) -> Optional[str]:
    """Return the name of the first failing filter, or None when admitted."""
    if attrs.members_count < filters.min_members:
        return "min_members"
    if filters.activity_threshold_days is not None:
        age = parse_activity_age(attrs.last_active_raw)
        if age is None or age > timedelta(days=filters.activity_threshold_days):
            return "activity"
    return None


def extract_from_anchor(anchor: TreeNode) -> ExtractedAttributes:
    container = find_container(anchor)
    if container is None:
        return extract(anchor.text(), "", aria_label=anchor.attr("aria-label") or "")
    return extract(
        anchor.text(),
        container.text(),
        aria_label=anchor.attr("aria-label") or "",
        text_nodes=[n.text() for n in container.select(NAME_NODE_SELECTOR)],
    )


def evaluate_anchor(
    anchor: TreeNode,
    filters: ScanFilters,
    base_url: str = BASE_URL,
    domain: str = TARGET_DOMAIN,
) -> Tuple[Optional[str], Optional[GroupCandidate], Optional[str]]:
    """Turn one anchor into (key, candidate, rejection_reason).

    Exactly one of `candidate` and `rejection_reason` is set.
    """
    url = canonicalize(anchor.attr("href") or "", base_url, domain)
    if not url:
        return None, None, "bad_url"
    key = group_key(url)

    attrs = extract_from_anchor(anchor)
    if not attrs.name:
        return key, None, "no_name"

    reason = passes_filters(attrs, filters)
    if reason:
        return key, None, reason
    return key, GroupCandidate(url=url, **attrs.model_dump()), None


def scan(
    root: TreeNode,
    store: RecordStore,
    filters: Optional[ScanFilters] = None,
    base_url: str = BASE_URL,
    domain: str = TARGET_DOMAIN,
) -> ScanReport:
    """Run one pass over a page snapshot and reconcile what it finds into `store`.

    Each group anchor is canonicalized, its card text is mined for name,
    member count and activity, the filters are applied, and the result is
    upserted. Bad elements are counted and skipped; the pass always runs to
    the end. `report.added` is the number of keys inserted by this pass.
    """
    filters = filters or ScanFilters()
    report = ScanReport()

    anchors = find_group_anchors(root)
    report.candidates = len(anchors)
    add_debug(report.debug, f"Anchors:{len(anchors)}")

    for anchor in anchors:
        try:
            key, candidate, reason = evaluate_anchor(anchor, filters, base_url, domain)
            if reason:
                report.reject(reason)
                continue
            if key not in store and store.is_full:
                report.reject("store_full")
                continue
            if store.upsert(key, candidate).inserted:
                report.added += 1
        except Exception as e:
            logger.debug("Skipping unreadable anchor: %s", e)
            report.reject("error")

    report.total = len(store)
    if report.rejected:
        add_debug(report.debug, "Rejected:" + ",".join(f"{k}={v}" for k, v in sorted(report.rejected.items())))
    logger.info("Scan pass: +%d new (%d total, %d candidates)", report.added, report.total, report.candidates)
    return report


def explain(
    root: TreeNode,
    filters: Optional[ScanFilters] = None,
    base_url: str = BASE_URL,
    domain: str = TARGET_DOMAIN,
) -> List[dict]:
    """Per-anchor verdicts for a snapshot, without touching any store."""
    filters = filters or ScanFilters()
    rows = []
    for anchor in find_group_anchors(root):
        row = {"href": anchor.attr("href") or ""}
        try:
            key, candidate, reason = evaluate_anchor(anchor, filters, base_url, domain)
        except Exception as e:
            row.update(verdict="error", error=str(e))
            rows.append(row)
            continue
        row["key"] = key
        row["verdict"] = reason or "accepted"
        if candidate is not None:
            row.update(candidate.model_dump())
        rows.append(row)
    return rows
