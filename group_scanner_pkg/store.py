from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from .config import MAX_ITEMS
from .extraction import count_from_raw
from .models import GroupCandidate, GroupRecord, UpsertResult


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """Bounded, insertion-ordered set of group records keyed by slug.

    The mapping and the order list always hold the same keys. A key keeps
    its position for life; re-observations only merge into the existing
    record. New keys are refused once `max_items` records are held.
    """

    def __init__(self, max_items: int = MAX_ITEMS, clock: Callable[[], datetime] = utcnow):
        self.max_items = max_items
        self._clock = clock
        self._records: Dict[str, GroupRecord] = {}
        self._order: List[str] = []

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    @property
    def is_full(self) -> bool:
        return len(self._order) >= self.max_items

    def get(self, key: str) -> Optional[GroupRecord]:
        record = self._records.get(key)
        return record.model_copy() if record is not None else None

    def upsert(self, key: str, candidate: GroupCandidate) -> UpsertResult:
        now = self._clock()
        existing = self._records.get(key)

        if existing is None:
            if self.is_full:
                return UpsertResult(inserted=False)
            record = GroupRecord(
                key=key,
                name=candidate.name,
                members_raw=candidate.members_raw,
                members_count=count_from_raw(candidate.members_raw),
                last_active_raw=candidate.last_active_raw,
                url=candidate.url,
                first_seen_at=now,
                last_updated_at=now,
            )
            self._records[key] = record
            self._order.append(key)
            return UpsertResult(inserted=True, record=record.model_copy())

        merged = self._merge(existing, candidate, now)
        self._records[key] = merged
        return UpsertResult(inserted=False, record=merged.model_copy())

    @staticmethod
    def _merge(existing: GroupRecord, candidate: GroupCandidate, now: datetime) -> GroupRecord:
        name = candidate.name if len(candidate.name) > len(existing.name) else existing.name

        members_raw = existing.members_raw or candidate.members_raw
        last_active_raw = existing.last_active_raw or candidate.last_active_raw

        return existing.model_copy(
            update={
                "name": name,
                "members_raw": members_raw,
                "members_count": count_from_raw(members_raw),
                "last_active_raw": last_active_raw,
                "last_updated_at": now,
            }
        )

    def clear(self) -> None:
        self._records = {}
        self._order = []

    def list(self) -> List[GroupRecord]:
        """Copy of all records in insertion order."""
        return [self._records[k].model_copy() for k in self._order]

    def restore(self, records: Iterable[GroupRecord]) -> int:
        """Reload previously saved records, keeping their order and timestamps.

        Duplicates keep their first occurrence and loading stops at the cap.
        Returns the number of records loaded.
        """
        self.clear()
        for record in records:
            if self.is_full:
                break
            if record.key in self._records:
                continue
            self._records[record.key] = record.model_copy()
            self._order.append(record.key)
        return len(self._order)
