"""Cursor over a persisted batch, shared by the curated and trending feeds."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, Optional, TypeVar

from repo_discovery.core.cache_store import LocalCacheStore
from repo_discovery.core.entities import CacheRecord

T = TypeVar("T")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class CachePolicy:
    """How long a record lives and what it is keyed on."""

    key: str
    ttl: timedelta
    same_day: bool = False
    requires_user: bool = False


class RecordCache(Generic[T]):
    """In-memory items and cursor mirrored into one persisted record.

    The persisted record is deleted, never kept around as stale, as soon
    as a check finds it belongs to another user, another day, another
    filter snapshot, or has outlived the TTL.
    """

    def __init__(
        self,
        store: LocalCacheStore,
        policy: CachePolicy,
        decode_item: Callable[[dict[str, Any]], T],
        encode_item: Callable[[T], dict[str, Any]],
        clock: Clock = datetime.now,
    ) -> None:
        self.store = store
        self.policy = policy
        self.decode_item = decode_item
        self.encode_item = encode_item
        self.clock = clock
        self.items: list[T] = []
        self.cursor = 0
        self._filters: Optional[dict[str, Any]] = None
        self._user: Optional[str] = None
        self._created_at: Optional[datetime] = None

    @property
    def has_next(self) -> bool:
        return self.cursor < len(self.items)

    @property
    def remaining(self) -> int:
        return max(0, len(self.items) - self.cursor)

    @property
    def created_at(self) -> Optional[datetime]:
        return self._created_at

    def check(self, filters: dict[str, Any], user: Optional[str] = None) -> Optional[CacheRecord]:
        """Return the persisted record if it is still usable, deleting it otherwise."""
        data = self.store.load(self.policy.key)
        if data is None:
            return None

        try:
            record = CacheRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            print(f"⚠️  Warning: Dropping corrupt cache {self.policy.key}: {e}")
            self.store.delete(self.policy.key)
            return None

        reason = self._invalid_reason(record, filters, user, self.clock())
        if reason:
            print(f"  └─ Cache {self.policy.key} invalidated: {reason}")
            self.store.delete(self.policy.key)
            return None

        return record

    def _invalid_reason(
        self,
        record: CacheRecord,
        filters: dict[str, Any],
        user: Optional[str],
        now: datetime,
    ) -> Optional[str]:
        if self.policy.requires_user and record.user != user:
            return "different user"

        if self.policy.same_day and record.created_at.date() != now.date():
            return "created on another day"

        if now - record.created_at >= self.policy.ttl:
            return "expired"

        if record.filters != filters:
            return "filters changed"

        return None

    def load(self, filters: dict[str, Any], user: Optional[str] = None) -> bool:
        """Replace memory with the persisted record and refresh its last-used time."""
        record = self.check(filters, user)
        if record is None:
            return False

        try:
            items = [self.decode_item(data) for data in record.items]
        except (KeyError, TypeError, ValueError) as e:
            print(f"⚠️  Warning: Dropping cache {self.policy.key} with bad items: {e}")
            self.store.delete(self.policy.key)
            return False

        self.items = items
        self.cursor = record.cursor
        self._filters = record.filters
        self._user = record.user
        self._created_at = record.created_at
        self.persist()
        return True

    def replace(self, items: list[T], filters: dict[str, Any], user: Optional[str] = None) -> None:
        """Start a fresh record from a newly fetched batch."""
        self.items = list(items)
        self.cursor = 0
        self._filters = filters
        self._user = user
        self._created_at = self.clock()
        self.persist()

    def current(self) -> Optional[T]:
        if not self.has_next:
            return None
        return self.items[self.cursor]

    def advance(self) -> bool:
        """Move the cursor by one. At the end this is a no-op and nothing is written."""
        if not self.has_next:
            return False
        self.cursor += 1
        self.persist()
        return True

    def remove_current(self) -> Optional[T]:
        """Drop the item under the cursor; the cursor stays where it is."""
        if not self.has_next:
            return None
        removed = self.items.pop(self.cursor)
        self.persist()
        return removed

    def reset(self) -> None:
        """Forget the in-memory batch. Persisted state is untouched."""
        self.items = []
        self.cursor = 0
        self._filters = None
        self._user = None
        self._created_at = None

    def clear(self) -> None:
        """Forget the batch in memory and in storage."""
        self.reset()
        self.store.delete(self.policy.key)

    def persist(self) -> None:
        if self._created_at is None or self._filters is None:
            return

        record = CacheRecord(
            items=[self.encode_item(item) for item in self.items],
            cursor=self.cursor,
            filters=self._filters,
            user=self._user,
            created_at=self._created_at,
            last_used_at=self.clock(),
        )
        self.store.save(self.policy.key, record.to_dict())
