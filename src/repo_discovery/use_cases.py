"""Business logic use cases."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from repo_discovery.core import (
    BatchResponse,
    CachePolicy,
    CanonicalIdResolver,
    CuratedFeedClient,
    CuratedFilters,
    EnrichedTrendingItem,
    InteractionAction,
    InteractionOracle,
    ItemSummary,
    LocalCacheStore,
    QuotaService,
    RecordCache,
    RepositoryStarrer,
    TrendingFeedClient,
    TrendingFilters,
    TrendingItem,
    TrendingPeriod,
    UserIdentity,
)
from repo_discovery.core.batch_cache import Clock

FETCH_FAILED_MESSAGE = "Failed to fetch trending repos"
NO_RESULTS_WARNING = "No uninteracted trending repos found"
FILTERS_CHANGED_MESSAGE = "Filters changed while fetching, batch discarded"


class CuratedBatchCache:
    """Cursor over a daily batch of curated repositories.

    A persisted batch is reused only by the same user, on the same
    calendar day, within 24 hours, under the same filters. Checking the
    daily quota before asking for a new batch is the caller's job.
    """

    def __init__(
        self,
        client: CuratedFeedClient,
        store: LocalCacheStore,
        quota: Optional[QuotaService] = None,
        cache_key: str = "curated_batch",
        ttl: timedelta = timedelta(hours=24),
        batch_size: int = 10,
        clock: Clock = datetime.now,
        filters: Optional[CuratedFilters] = None,
    ) -> None:
        self.client = client
        self.quota = quota
        self.requested_batch_size = batch_size
        self.filters = filters or CuratedFilters()
        self.cache: RecordCache[ItemSummary] = RecordCache(
            store,
            CachePolicy(key=cache_key, ttl=ttl, same_day=True, requires_user=True),
            decode_item=ItemSummary.from_dict,
            encode_item=ItemSummary.to_dict,
            clock=clock,
        )

    @property
    def batch_size(self) -> int:
        """Number of items actually in the current batch."""
        return len(self.cache.items)

    @property
    def remaining(self) -> int:
        return self.cache.remaining

    @property
    def has_next(self) -> bool:
        return self.cache.has_next

    @property
    def position(self) -> int:
        """1-based position of the current item."""
        return self.cache.cursor + 1

    def update_filters(self, filters: CuratedFilters) -> None:
        self.filters = filters

    def has_valid_cache(self, user: UserIdentity) -> bool:
        """Whether a persisted batch can be reused. Invalid batches are deleted."""
        return self.cache.check(self.filters.to_dict(), user.username) is not None

    def load_from_storage(self, user: UserIdentity) -> bool:
        return self.cache.load(self.filters.to_dict(), user.username)

    async def fetch_batch(self, user: UserIdentity, log_quota: bool = False) -> bool:
        """Serve from storage when possible, otherwise fetch a batch."""
        if self.load_from_storage(user) and self.has_next:
            print(f"  └─ Resuming cached batch ({self.remaining} left)")
            return True

        return await self._fetch_from_api(user, log_quota)

    async def fetch_new_batch(self, user: UserIdentity) -> bool:
        """Throw away any batch and fetch a fresh one, logging it against the quota."""
        self.cache.clear()
        return await self._fetch_from_api(user, log_quota=True)

    async def fetch_batch_preview(self, user: UserIdentity) -> Optional[int]:
        """How many items a new batch would hold. Leaves the cache alone."""
        response = await self._request_batch(user)
        if response is None:
            return None
        return len(response.items)

    def get_next(self) -> Optional[ItemSummary]:
        """Item under the cursor; the cursor does not move."""
        return self.cache.current()

    def move_to_next(self) -> None:
        self.cache.advance()

    def reset(self) -> None:
        self.cache.reset()

    async def _fetch_from_api(self, user: UserIdentity, log_quota: bool) -> bool:
        self.cache.reset()

        response = await self._request_batch(user)
        if response is None:
            print("  └─ ❌ Could not fetch curated batch")
            return False

        self.cache.replace(response.items, self.filters.to_dict(), user.username)
        print(f"  └─ Fetched {len(response.items)} curated repositories")

        if log_quota and self.quota is not None and user.user_id is not None:
            # A failed log does not fail the batch
            if not await self.quota.log_batch_generation(user.user_id):
                print("  └─ ⚠️  Batch generation was not logged")

        return True

    async def _request_batch(self, user: UserIdentity) -> Optional[BatchResponse]:
        params = self.filters.request_params()
        return await self.client.fetch_uninteracted(
            user.username,
            self.requested_batch_size,
            categories=params["categories"] or None,
            min_stars=params["min_stars"],
            max_stars=params["max_stars"],
            languages=params["languages"] or None,
        )


class TrendingEnrichmentPipeline:
    """Fetch trending repositories, resolve their ids and hide seen ones.

    Lookups for every raw item run concurrently; results are funneled
    through a queue that is drained only after all lookups finished.
    """

    emoji = "🔥"

    def __init__(
        self,
        feed: TrendingFeedClient,
        oracle: InteractionOracle,
        store: LocalCacheStore,
        resolver: Optional[CanonicalIdResolver] = None,
        cache_key: str = "trending_batch",
        ttl: timedelta = timedelta(hours=1),
        batch_size: int = 30,
        max_concurrent_lookups: int = 8,
        clock: Clock = datetime.now,
        filters: Optional[TrendingFilters] = None,
    ) -> None:
        self.feed = feed
        self.oracle = oracle
        self.resolver = resolver
        self.batch_size = batch_size
        self.max_concurrent_lookups = max(1, max_concurrent_lookups)
        self.clock = clock
        self.filters = filters or TrendingFilters()
        self.cache: RecordCache[EnrichedTrendingItem] = RecordCache(
            store,
            CachePolicy(key=cache_key, ttl=ttl),
            decode_item=EnrichedTrendingItem.from_dict,
            encode_item=EnrichedTrendingItem.to_dict,
            clock=clock,
        )
        self._lock = asyncio.Lock()
        self._inflight: Optional[tuple[tuple[str, TrendingFilters], asyncio.Task]] = None
        # Bumped whenever the cache is cleared; a fetch started under an
        # older generation must not commit its batch
        self._generation = 0

    @property
    def remaining(self) -> int:
        return self.cache.remaining

    @property
    def has_next(self) -> bool:
        return self.cache.has_next

    @property
    def position(self) -> int:
        return self.cache.cursor

    async def fetch_trending(
        self, user: UserIdentity, filters: Optional[TrendingFilters] = None
    ) -> tuple[bool, Optional[str]]:
        """Replace the cache with a freshly enriched batch.

        Returns (success, message). The message is an error on failure
        and a warning when nothing survived filtering.
        """
        filters = filters or self.filters
        flight_key = (user.username, filters)

        inflight = self._inflight
        if inflight is not None and inflight[0] == flight_key and not inflight[1].done():
            print("  └─ Joining trending fetch already in progress")
            return await asyncio.shield(inflight[1])

        task = asyncio.ensure_future(self._fetch_serialized(user, filters))
        self._inflight = (flight_key, task)
        return await asyncio.shield(task)

    async def _fetch_serialized(
        self, user: UserIdentity, filters: TrendingFilters
    ) -> tuple[bool, Optional[str]]:
        async with self._lock:
            return await self._fetch(user, filters)

    async def _fetch(
        self, user: UserIdentity, filters: TrendingFilters
    ) -> tuple[bool, Optional[str]]:
        self.update_filters(filters.language, filters.period)
        self.clear_cache()
        generation = self._generation

        print(f"\n{self.emoji} Trending: {filters.period.value}, {filters.language or 'all languages'}")
        raw = await self.feed.fetch_trending(user.username, self.batch_size, filters)
        if raw is None:
            print(f"  └─ ❌ {FETCH_FAILED_MESSAGE}")
            return False, FETCH_FAILED_MESSAGE

        enriched = await self.enrich(user, raw) if raw else []

        if generation != self._generation:
            print(f"  └─ ⚠️  {FILTERS_CHANGED_MESSAGE}")
            return False, FILTERS_CHANGED_MESSAGE

        self.cache.replace(enriched, filters.to_dict())

        if raw and not enriched:
            return True, NO_RESULTS_WARNING
        return True, None

    async def enrich(
        self, user: UserIdentity, raw: list[TrendingItem]
    ) -> list[EnrichedTrendingItem]:
        """Resolve canonical ids and drop unresolved or already seen items."""
        interacted = await self.oracle.fetch_interacted_ids(user.username)

        results: asyncio.Queue[tuple[int, TrendingItem, Optional[int]]] = asyncio.Queue()
        semaphore = asyncio.Semaphore(self.max_concurrent_lookups)

        async def lookup(index: int, item: TrendingItem) -> None:
            canonical_id = item.canonical_id
            if canonical_id is None:
                canonical_id = await self._resolve(item, semaphore)
            await results.put((index, item, canonical_id))

        await asyncio.gather(*(lookup(i, item) for i, item in enumerate(raw)))

        # Every lookup is done; drain with a single consumer
        resolved: list[tuple[int, TrendingItem, int]] = []
        unresolved = 0
        while not results.empty():
            index, item, canonical_id = results.get_nowait()
            if canonical_id is None:
                unresolved += 1
                continue
            resolved.append((index, item, canonical_id))

        resolved.sort(key=lambda entry: entry[0])

        fetched_at = self.clock()
        seen_ids: set[int] = set()
        survivors: list[tuple[int, EnrichedTrendingItem]] = []
        already_seen = 0
        for index, item, canonical_id in resolved:
            if canonical_id in interacted:
                already_seen += 1
                continue
            if canonical_id in seen_ids:
                continue
            seen_ids.add(canonical_id)
            survivors.append((index, EnrichedTrendingItem(item, canonical_id, fetched_at)))

        survivors.sort(key=lambda entry: (-entry[1].stars, entry[0]))

        print(f"  └─ Raw: {len(raw)}, unresolved: {unresolved}, already seen: {already_seen}")
        print(f"  └─ New trending repositories: {len(survivors)}")

        return [enriched for _, enriched in survivors]

    async def _resolve(self, item: TrendingItem, semaphore: asyncio.Semaphore) -> Optional[int]:
        if self.resolver is None:
            return None

        async with semaphore:
            try:
                return await self.resolver.resolve_canonical_id(item.owner, item.name)
            except Exception as e:
                print(f"      ⚠️  Lookup error for {item.full_name}: {e}")
                return None

    def get_next(self) -> Optional[EnrichedTrendingItem]:
        return self.cache.current()

    def move_to_next(self) -> None:
        self.cache.advance()

    def remove_current(self) -> Optional[EnrichedTrendingItem]:
        """Drop the current item so a reload cannot show it again."""
        return self.cache.remove_current()

    def update_filters(self, language: Optional[str], period: TrendingPeriod) -> None:
        """Change filters; any change clears the cache and a new fetch is needed."""
        changed = language != self.filters.language or period != self.filters.period
        self.filters = TrendingFilters(language=language, period=period)
        if changed:
            self.clear_cache()

    def load_from_storage(self) -> bool:
        """Restore a persisted batch younger than the TTL with matching filters."""
        return self.cache.load(self.filters.to_dict())

    def clear_cache(self) -> None:
        self._generation += 1
        self.cache.clear()

    def reset(self) -> None:
        self.clear_cache()


@dataclass
class GenerationResult:
    """Outcome of asking for a new curated batch."""

    success: bool
    quota_exceeded: bool = False
    daily_count: Optional[int] = None


class DiscoveryService:
    """Quota gate and interaction recording on top of both caches."""

    def __init__(
        self,
        feed: CuratedFeedClient,
        quota: QuotaService,
        oracle: InteractionOracle,
        curated: CuratedBatchCache,
        trending: Optional[TrendingEnrichmentPipeline] = None,
        daily_limit: int = 10,
        starrer: Optional[RepositoryStarrer] = None,
    ) -> None:
        self.feed = feed
        self.quota = quota
        self.oracle = oracle
        self.curated = curated
        self.trending = trending
        self.daily_limit = daily_limit
        self.starrer = starrer

    async def daily_batch_count(self) -> Optional[int]:
        return await self.quota.fetch_daily_batch_count()

    async def can_generate_batch(self) -> Optional[bool]:
        """None when the count cannot be read."""
        count = await self.daily_batch_count()
        if count is None:
            return None
        return count < self.daily_limit

    async def generate_batch(self, user: UserIdentity) -> GenerationResult:
        """Generate a new curated batch if today's quota allows it."""
        count = await self.daily_batch_count()
        if count is None:
            print("  └─ ❌ Could not read daily batch count")
            return GenerationResult(success=False)

        if count >= self.daily_limit:
            print(f"  └─ Daily limit reached ({count}/{self.daily_limit})")
            return GenerationResult(success=False, quota_exceeded=True, daily_count=count)

        success = await self.curated.fetch_new_batch(user)
        return GenerationResult(success=success, daily_count=count)

    async def record_interaction(
        self, user: UserIdentity, canonical_id: int, action: InteractionAction
    ) -> bool:
        return await self.oracle.record_interaction(user.username, canonical_id, action)

    async def star_repository(self, owner: str, name: str, action: InteractionAction) -> bool:
        """Star on the code host first when the action is a Star. Pass always succeeds."""
        if action != InteractionAction.STAR or self.starrer is None:
            return True
        return await self.starrer.star_repository(owner, name)

    async def act_on_curated(self, user: UserIdentity, action: InteractionAction) -> Optional[bool]:
        """Record an action on the current curated item and move past it.

        A Star that could not be placed leaves the item current and
        records nothing.
        """
        item = self.curated.get_next()
        if item is None:
            return None

        if not await self.star_repository(item.owner, item.name, action):
            print(f"  └─ ❌ Could not star {item.full_name}")
            return False

        recorded = await self.record_interaction(user, item.github_id, action)
        self.curated.move_to_next()
        return recorded

    async def act_on_trending(self, user: UserIdentity, action: InteractionAction) -> Optional[bool]:
        """Record an action on the current trending item.

        A recorded item is removed from the batch; otherwise the cursor
        just moves past it. A Star that could not be placed changes nothing.
        """
        if self.trending is None:
            return None

        enriched = self.trending.get_next()
        if enriched is None:
            return None

        item = enriched.item
        if not await self.star_repository(item.owner, item.name, action):
            print(f"  └─ ❌ Could not star {item.full_name}")
            return False

        recorded = await self.record_interaction(user, enriched.canonical_id, action)
        if recorded:
            self.trending.remove_current()
        else:
            self.trending.move_to_next()
        return recorded

    async def categories(self) -> list[str]:
        return await self.feed.fetch_categories()
