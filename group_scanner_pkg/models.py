from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import MAX_ITEMS


ExportFormat = Literal["csv", "json"]
SortOrder = Literal["members", "insertion", "name"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GroupCandidate(_CamelModel):
    """One observation of a group produced by a scan pass.

    Candidates are never stored as-is; the record store either turns the
    first one for a key into a `GroupRecord` or merges later ones into it.
    """
    url: str
    name: str
    members_raw: str = ""
    members_count: int = 0
    last_active_raw: str = ""


class GroupRecord(_CamelModel):
    """A deduplicated group as held by the record store and exported."""
    key: str
    name: str
    members_raw: str = ""
    members_count: int = 0
    last_active_raw: str = ""
    url: str
    first_seen_at: datetime
    last_updated_at: datetime


class ExtractedAttributes(BaseModel):
    name: str = ""
    members_raw: str = ""
    members_count: int = 0
    last_active_raw: str = ""


class UpsertResult(BaseModel):
    inserted: bool
    record: Optional[GroupRecord] = None


class ScanFilters(BaseModel):
    """Admission filters applied to each candidate before it reaches the store.

    `activity_threshold_days` of None disables the activity filter; when set,
    candidates with no parseable last-active text are rejected.
    """
    min_members: int = Field(default=0, ge=0)
    activity_threshold_days: Optional[float] = Field(default=None, gt=0)


class ScannerSettings(_CamelModel):
    """Persisted scanner settings.

    Mirrors the settings object the control surfaces read and write; any
    unknown keys in a stored file are ignored.
    """
    max_items: int = Field(default=MAX_ITEMS, ge=1)
    export_format: ExportFormat = "csv"
    min_members: int = Field(default=0, ge=0)
    activity_threshold_days: Optional[float] = Field(default=None, gt=0)
    show_progress: bool = True
    auto_start: bool = False
    sort_by: SortOrder = "members"

    def filters(self) -> ScanFilters:
        return ScanFilters(
            min_members=self.min_members,
            activity_threshold_days=self.activity_threshold_days,
        )


class ScanReport(BaseModel):
    """Outcome of a single scan pass."""
    added: int = 0
    candidates: int = 0
    total: int = 0
    rejected: Dict[str, int] = Field(default_factory=dict)
    debug: List[str] = Field(default_factory=list)

    def reject(self, reason: str) -> None:
        self.rejected[reason] = self.rejected.get(reason, 0) + 1


class ExportDocument(_CamelModel):
    exported_at: datetime
    total: int
    groups: List[GroupRecord]


class ScanRequest(BaseModel):
    """Options for a browser-driven scan run (CLI and HTTP surfaces)."""
    url: Optional[str] = None
    html_file: Optional[str] = None
    duration: float = Field(default=60.0, ge=0)
    debug: bool = False
    headless: Optional[bool] = None
    max_wait: int = 25000
    proxy: Optional[str] = None
    use_cdp: bool = False
    cdp_url: Optional[str] = None
    user_data_dir: Optional[str] = None


class SnapshotScanRequest(BaseModel):
    """Scan an HTML snapshot posted by the caller instead of the open page."""
    html: Optional[str] = None
    base_url: Optional[str] = None


class OpenPageRequest(BaseModel):
    url: Optional[str] = None
    cdp_url: Optional[str] = None
    max_wait: int = 25000


class AutoScanRequest(BaseModel):
    duration: float = Field(default=60.0, gt=0)


class FilterRequest(BaseModel):
    min_members: int = Field(default=0, ge=0)
    activity_threshold_days: Optional[float] = Field(default=None, gt=0)


class FormatRequest(BaseModel):
    format: ExportFormat


class AutoStartRequest(BaseModel):
    enabled: bool
