from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

import pandas as pd

from .models import ExportDocument, GroupRecord


CSV_HEADER = ["Group Name", "Members", "Last Active", "URL", "Scanned At"]
BOM = "\ufeff"
EXTENSIONS = {"csv": "csv", "json": "json"}


def format_timestamp(ts: datetime) -> str:
    """Locale-independent UTC timestamp used in the `Scanned At` column."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def sort_records(records: Iterable[GroupRecord], sort_by: str = "members") -> List[GroupRecord]:
    """Order records for export.

    `members` sorts by member count, largest first, keeping insertion order
    among equal counts; `insertion` keeps store order; `name` is
    case-insensitive alphabetical.
    """
    records = list(records)
    if sort_by == "members":
        return sorted(records, key=lambda r: r.members_count, reverse=True)
    if sort_by == "name":
        return sorted(records, key=lambda r: r.name.lower())
    if sort_by == "insertion":
        return records
    raise ValueError(f"Unknown sort order: {sort_by}")


def render_csv(records: List[GroupRecord]) -> str:
    rows = [
        [r.name, r.members_raw, r.last_active_raw, r.url, format_timestamp(r.last_updated_at)]
        for r in records
    ]
    df = pd.DataFrame(rows, columns=CSV_HEADER, dtype=str)
    return BOM + df.to_csv(index=False, lineterminator="\r\n")


def render_json(records: List[GroupRecord], exported_at: Optional[datetime] = None) -> str:
    doc = ExportDocument(
        exported_at=exported_at or datetime.now(timezone.utc),
        total=len(records),
        groups=records,
    )
    return doc.model_dump_json(by_alias=True, indent=2)


def render(
    records: Iterable[GroupRecord],
    fmt: str = "csv",
    sort_by: str = "members",
    exported_at: Optional[datetime] = None,
) -> str:
    """Render a snapshot of records as BOM-prefixed CSV or pretty JSON.

    The input is copied before sorting, so callers may pass the store's
    live list without it being reordered.
    """
    ordered = sort_records([r.model_copy() for r in records], sort_by)
    if fmt == "csv":
        return render_csv(ordered)
    if fmt == "json":
        return render_json(ordered, exported_at)
    raise ValueError(f"Unknown export format: {fmt}")


def export_filename(fmt: str, today: Optional[date] = None) -> str:
    """File name for a download, e.g. `groups-csv-2026-01-31.csv`."""
    if fmt not in EXTENSIONS:
        raise ValueError(f"Unknown export format: {fmt}")
    today = today or datetime.now(timezone.utc).date()
    return f"groups-{fmt}-{today.isoformat()}.{EXTENSIONS[fmt]}"
