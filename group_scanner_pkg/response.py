from typing import Any, Dict, List, Optional

from .models import ScanReport


def build_response(
    session,
    report: Optional[ScanReport] = None,
    debug_msgs: Optional[List[str]] = None,
    debug_files: Optional[dict] = None,
) -> Dict[str, Any]:
    """Compose the status payload shared by the CLI and the HTTP service.

    `found` and `total_groups` reflect the whole store, `added` only the
    latest pass.
    """
    debug = list(debug_msgs or [])
    if report is not None:
        debug.extend(report.debug)
    resp = {
        **session.status_dict(),
        "found": session.record_count > 0,
        "total_groups": session.record_count,
        "added": report.added if report is not None else session.last_added,
        "rejected": report.rejected if report is not None else {},
        "debug": " | ".join(debug),
    }
    if debug_files:
        resp["debug_files"] = debug_files
    return resp


def build_error(url: Optional[str], error: str, debug_msgs: List[str]) -> Dict[str, Any]:
    return {
        "url": url,
        "found": False,
        "error": error,
        "debug": " | ".join(debug_msgs),
    }
