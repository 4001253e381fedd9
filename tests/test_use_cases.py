"""Tests for use cases."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from repo_discovery.core import (
    BatchResponse,
    CuratedFilters,
    InteractionAction,
    ItemSummary,
    LocalCacheStore,
    MemoryMedium,
    TrendingFilters,
    TrendingItem,
    TrendingPeriod,
    UserIdentity,
)
from repo_discovery.use_cases import (
    FILTERS_CHANGED_MESSAGE,
    NO_RESULTS_WARNING,
    CuratedBatchCache,
    DiscoveryService,
    TrendingEnrichmentPipeline,
)

USER = UserIdentity(username="alice", user_id=5)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _curated_item(n: int, stars: int = 100) -> ItemSummary:
    return ItemSummary(id=n, github_id=1000 + n, owner="octo", name=f"repo{n}", stargazer_count=stars)


def _trending_item(name: str, stars: int, canonical_id=None) -> TrendingItem:
    return TrendingItem(owner="octo", name=name, stars=stars, canonical_id=canonical_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 9, 0))


@pytest.fixture
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture
def curated_client() -> AsyncMock:
    client = AsyncMock()
    client.fetch_uninteracted.return_value = BatchResponse(
        count=4, items=[_curated_item(i) for i in range(4)]
    )
    return client


def _curated_cache(client, medium, clock, quota=None) -> CuratedBatchCache:
    cache = CuratedBatchCache(client, LocalCacheStore(medium), quota=quota, clock=clock)
    cache.update_filters(CuratedFilters.create(categories=["ml"], min_stars="100"))
    return cache


@pytest.mark.asyncio
async def test_curated_scenario_consumes_short_batch(curated_client, medium, clock) -> None:
    """Ask for 10, get 4, consume all 4."""
    cache = _curated_cache(curated_client, medium, clock)

    assert await cache.fetch_batch(USER)

    curated_client.fetch_uninteracted.assert_called_once_with(
        "alice", 10, categories=["ml"], min_stars=100, max_stars=None, languages=None
    )
    assert cache.remaining == 4
    assert cache.batch_size == 4

    seen = []
    while cache.get_next() is not None:
        seen.append(cache.get_next().id)
        cache.move_to_next()

    assert seen == [0, 1, 2, 3]
    assert cache.remaining == 0
    assert cache.get_next() is None


@pytest.mark.asyncio
async def test_curated_get_next_does_not_advance(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)

    assert cache.get_next() == cache.get_next()
    assert cache.position == 1


@pytest.mark.asyncio
async def test_curated_fetch_batch_resumes_from_storage(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)
    cache.move_to_next()

    # A new process with the same storage
    restored = _curated_cache(curated_client, medium, clock)
    assert restored.has_valid_cache(USER)
    assert await restored.fetch_batch(USER)

    assert curated_client.fetch_uninteracted.call_count == 1
    assert restored.get_next().id == 1
    assert restored.remaining == 3


@pytest.mark.asyncio
async def test_curated_filter_change_invalidates(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)

    cache.update_filters(CuratedFilters.create(categories=["web"]))

    assert not cache.has_valid_cache(USER)
    assert "curated_batch" not in medium.blobs
    assert not cache.load_from_storage(USER)


@pytest.mark.asyncio
async def test_curated_other_user_invalidates(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)

    assert not cache.load_from_storage(UserIdentity(username="bob"))
    assert "curated_batch" not in medium.blobs


@pytest.mark.asyncio
async def test_curated_exhausted_cache_triggers_remote_fetch(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)
    for _ in range(4):
        cache.move_to_next()

    assert await cache.fetch_batch(USER)

    assert curated_client.fetch_uninteracted.call_count == 2
    assert cache.remaining == 4
    assert cache.get_next().id == 0


@pytest.mark.asyncio
async def test_curated_fetch_failure(medium, clock) -> None:
    client = AsyncMock()
    client.fetch_uninteracted.return_value = None
    cache = _curated_cache(client, medium, clock)

    assert not await cache.fetch_batch(USER)
    assert cache.get_next() is None
    assert "curated_batch" not in medium.blobs


@pytest.mark.asyncio
async def test_curated_new_batch_logs_quota(curated_client, medium, clock) -> None:
    quota = AsyncMock()
    quota.log_batch_generation.return_value = True
    cache = _curated_cache(curated_client, medium, clock, quota=quota)
    await cache.fetch_batch(USER)
    cache.move_to_next()

    assert await cache.fetch_new_batch(USER)

    assert curated_client.fetch_uninteracted.call_count == 2
    assert cache.get_next().id == 0
    quota.log_batch_generation.assert_called_once_with(5)


@pytest.mark.asyncio
async def test_curated_quota_log_failure_does_not_fail_batch(curated_client, medium, clock) -> None:
    quota = AsyncMock()
    quota.log_batch_generation.return_value = False
    cache = _curated_cache(curated_client, medium, clock, quota=quota)

    assert await cache.fetch_new_batch(USER)
    assert cache.remaining == 4


@pytest.mark.asyncio
async def test_curated_plain_fetch_does_not_log_quota(curated_client, medium, clock) -> None:
    quota = AsyncMock()
    cache = _curated_cache(curated_client, medium, clock, quota=quota)

    await cache.fetch_batch(USER)

    quota.log_batch_generation.assert_not_called()


@pytest.mark.asyncio
async def test_curated_preview_leaves_cache_alone(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)

    assert await cache.fetch_batch_preview(USER) == 4

    assert cache.get_next() is None
    assert medium.blobs == {}

    curated_client.fetch_uninteracted.return_value = None
    assert await cache.fetch_batch_preview(USER) is None


@pytest.mark.asyncio
async def test_curated_reset_keeps_storage(curated_client, medium, clock) -> None:
    cache = _curated_cache(curated_client, medium, clock)
    await cache.fetch_batch(USER)

    cache.reset()

    assert cache.get_next() is None
    assert "curated_batch" in medium.blobs


def _pipeline(feed, oracle, medium, clock, resolver=None, **kwargs) -> TrendingEnrichmentPipeline:
    return TrendingEnrichmentPipeline(
        feed, oracle, LocalCacheStore(medium), resolver=resolver, clock=clock, **kwargs
    )


class SlowResolver:
    """Resolves ids after a delay that finishes in reverse order."""

    def __init__(self, ids: dict[str, int], fail: frozenset = frozenset()) -> None:
        self.ids = ids
        self.fail = fail
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def resolve_canonical_id(self, owner: str, name: str):
        self.calls.append(name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.001 * (10 - len(self.calls)))
        self.active -= 1
        if name in self.fail:
            raise RuntimeError("boom")
        return self.ids.get(name)


@pytest.fixture
def raw_batch() -> list[TrendingItem]:
    return [
        _trending_item("one", stars=50),
        _trending_item("two", stars=500),
        _trending_item("three", stars=200),
    ]


@pytest.mark.asyncio
async def test_enrichment_filters_interacted(raw_batch, medium, clock) -> None:
    """Ids {1,2,3} with interactions {2} leave {1,3}, sorted by stars."""
    feed = AsyncMock()
    feed.fetch_trending.return_value = raw_batch
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = {2}
    resolver = SlowResolver({"one": 1, "two": 2, "three": 3})
    pipeline = _pipeline(feed, oracle, medium, clock, resolver=resolver)

    success, message = await pipeline.fetch_trending(USER, TrendingFilters())

    assert success
    assert message is None
    assert [e.canonical_id for e in pipeline.cache.items] == [3, 1]
    assert pipeline.remaining == 2
    oracle.fetch_interacted_ids.assert_called_once_with("alice")
    assert sorted(resolver.calls) == ["one", "three", "two"]


@pytest.mark.asyncio
async def test_enrichment_is_idempotent(medium, clock) -> None:
    raw = [
        _trending_item("a", stars=10),
        _trending_item("b", stars=30),
        _trending_item("c", stars=10),
        _trending_item("d", stars=30),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    resolver = SlowResolver({"a": 1, "b": 2, "c": 3, "d": 4})
    pipeline = _pipeline(AsyncMock(), oracle, medium, clock, resolver=resolver)

    first = await pipeline.enrich(USER, raw)
    resolver.calls.clear()
    second = await pipeline.enrich(USER, raw)

    assert [e.canonical_id for e in first] == [2, 4, 1, 3]
    assert [e.canonical_id for e in second] == [e.canonical_id for e in first]


@pytest.mark.asyncio
async def test_enrichment_drops_failed_lookups(medium, clock) -> None:
    raw = [
        _trending_item("ok", stars=1),
        _trending_item("missing", stars=2),
        _trending_item("explodes", stars=3),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    resolver = SlowResolver({"ok": 1, "explodes": 3}, fail=frozenset({"explodes"}))
    pipeline = _pipeline(AsyncMock(), oracle, medium, clock, resolver=resolver)

    enriched = await pipeline.enrich(USER, raw)

    assert [e.canonical_id for e in enriched] == [1]
    assert enriched[0].fetched_at == clock.now


@pytest.mark.asyncio
async def test_enrichment_respects_concurrency_bound(medium, clock) -> None:
    raw = [_trending_item(f"r{i}", stars=i) for i in range(6)]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    resolver = SlowResolver({f"r{i}": i + 1 for i in range(6)})
    pipeline = _pipeline(AsyncMock(), oracle, medium, clock, resolver=resolver, max_concurrent_lookups=2)

    enriched = await pipeline.enrich(USER, raw)

    assert len(enriched) == 6
    assert resolver.max_active <= 2


@pytest.mark.asyncio
async def test_server_resolved_items_skip_lookup(medium, clock) -> None:
    raw = [
        _trending_item("a", stars=5, canonical_id=11),
        _trending_item("b", stars=9, canonical_id=12),
        _trending_item("dup", stars=1, canonical_id=11),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(AsyncMock(), oracle, medium, clock)

    enriched = await pipeline.enrich(USER, raw)

    assert [e.canonical_id for e in enriched] == [12, 11]
    assert enriched[1].item.name == "a"


@pytest.mark.asyncio
async def test_fetch_trending_failure(medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = None
    oracle = AsyncMock()
    pipeline = _pipeline(feed, oracle, medium, clock)

    success, message = await pipeline.fetch_trending(USER, TrendingFilters())

    assert not success
    assert message
    assert pipeline.get_next() is None
    oracle.fetch_interacted_ids.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_trending_empty_batch(medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = []
    oracle = AsyncMock()
    pipeline = _pipeline(feed, oracle, medium, clock)

    assert await pipeline.fetch_trending(USER, TrendingFilters()) == (True, None)
    assert pipeline.remaining == 0
    assert "trending_batch" in medium.blobs
    oracle.fetch_interacted_ids.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_trending_all_seen_warns(raw_batch, medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = raw_batch
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = {1, 2, 3}
    resolver = SlowResolver({"one": 1, "two": 2, "three": 3})
    pipeline = _pipeline(feed, oracle, medium, clock, resolver=resolver)

    success, message = await pipeline.fetch_trending(USER, TrendingFilters())

    assert success
    assert message == NO_RESULTS_WARNING
    assert pipeline.get_next() is None


@pytest.mark.asyncio
async def test_sequential_fetches_clear_previous_record(medium, clock) -> None:
    """Each fetch starts from an empty store."""
    store = LocalCacheStore(medium)
    records_seen_at_fetch = []

    async def fetch_trending(username, batch_size, filters):
        records_seen_at_fetch.append(store.load("trending_batch"))
        return [_trending_item(filters.language or "any", stars=1, canonical_id=len(records_seen_at_fetch))]

    feed = AsyncMock()
    feed.fetch_trending.side_effect = fetch_trending
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)

    await pipeline.fetch_trending(USER, TrendingFilters(language="python"))
    assert store.load("trending_batch") is not None

    await pipeline.fetch_trending(USER, TrendingFilters(language="rust"))

    assert records_seen_at_fetch == [None, None]
    assert pipeline.get_next().item.name == "rust"
    assert pipeline.filters.language == "rust"


@pytest.mark.asyncio
async def test_concurrent_fetches_share_one_request(medium, clock) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def fetch_trending(username, batch_size, filters):
        started.set()
        await release.wait()
        return [_trending_item("a", stars=1, canonical_id=1)]

    feed = AsyncMock()
    feed.fetch_trending.side_effect = fetch_trending
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)

    first = asyncio.ensure_future(pipeline.fetch_trending(USER, TrendingFilters()))
    await started.wait()
    second = asyncio.ensure_future(pipeline.fetch_trending(USER, TrendingFilters()))
    await asyncio.sleep(0)
    release.set()

    assert await first == (True, None)
    assert await second == (True, None)
    assert feed.fetch_trending.call_count == 1
    assert pipeline.remaining == 1


@pytest.mark.asyncio
async def test_remove_current_after_interaction(medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = [
        _trending_item("a", stars=3, canonical_id=1),
        _trending_item("b", stars=2, canonical_id=2),
        _trending_item("c", stars=1, canonical_id=3),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)
    await pipeline.fetch_trending(USER, TrendingFilters())
    pipeline.move_to_next()

    pipeline.remove_current()

    assert [e.canonical_id for e in pipeline.cache.items] == [1, 3]
    assert pipeline.position == 1
    assert pipeline.get_next().canonical_id == 3

    reloaded = _pipeline(feed, oracle, medium, clock)
    assert reloaded.load_from_storage()
    assert [e.canonical_id for e in reloaded.cache.items] == [1, 3]


@pytest.mark.asyncio
async def test_update_filters_clears_only_on_change(medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = [_trending_item("a", stars=3, canonical_id=1)]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)
    await pipeline.fetch_trending(USER, TrendingFilters())

    pipeline.update_filters(None, TrendingPeriod.DAILY)
    assert pipeline.remaining == 1
    assert "trending_batch" in medium.blobs

    pipeline.update_filters(None, TrendingPeriod.WEEKLY)
    assert pipeline.remaining == 0
    assert "trending_batch" not in medium.blobs


@pytest.mark.asyncio
async def test_trending_cache_expires_after_an_hour(medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = [_trending_item("a", stars=3, canonical_id=1)]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)
    await pipeline.fetch_trending(USER, TrendingFilters())

    clock.now += timedelta(minutes=59)
    assert _pipeline(feed, oracle, medium, clock).load_from_storage()

    clock.now += timedelta(minutes=2)
    assert not _pipeline(feed, oracle, medium, clock).load_from_storage()
    assert "trending_batch" not in medium.blobs


def _service(quota_count, curated_client, medium, clock, trending=None, oracle=None, starrer=None):
    quota = AsyncMock()
    quota.fetch_daily_batch_count.return_value = quota_count
    quota.log_batch_generation.return_value = True
    oracle = oracle or AsyncMock()
    curated = _curated_cache(curated_client, medium, clock, quota=quota)
    service = DiscoveryService(
        curated_client, quota, oracle, curated, trending=trending, daily_limit=10, starrer=starrer
    )
    return service, quota, oracle


@pytest.mark.asyncio
async def test_generate_batch_under_quota(curated_client, medium, clock) -> None:
    service, quota, _ = _service(3, curated_client, medium, clock)

    result = await service.generate_batch(USER)

    assert result.success
    assert not result.quota_exceeded
    assert result.daily_count == 3
    assert service.curated.remaining == 4
    quota.log_batch_generation.assert_called_once_with(5)


@pytest.mark.asyncio
async def test_generate_batch_at_quota(curated_client, medium, clock) -> None:
    service, _, _ = _service(10, curated_client, medium, clock)

    result = await service.generate_batch(USER)

    assert not result.success
    assert result.quota_exceeded
    curated_client.fetch_uninteracted.assert_not_called()
    assert await service.can_generate_batch() is False


@pytest.mark.asyncio
async def test_generate_batch_unknown_quota(curated_client, medium, clock) -> None:
    service, _, _ = _service(None, curated_client, medium, clock)

    result = await service.generate_batch(USER)

    assert not result.success
    assert not result.quota_exceeded
    assert await service.can_generate_batch() is None
    curated_client.fetch_uninteracted.assert_not_called()


@pytest.mark.asyncio
async def test_act_on_curated_records_and_advances(curated_client, medium, clock) -> None:
    service, _, oracle = _service(0, curated_client, medium, clock)
    oracle.record_interaction.return_value = True
    await service.curated.fetch_batch(USER)

    assert await service.act_on_curated(USER, InteractionAction.STAR) is True

    oracle.record_interaction.assert_called_once_with("alice", 1000, InteractionAction.STAR)
    assert service.curated.get_next().id == 1


@pytest.mark.asyncio
async def test_act_on_trending(curated_client, medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = [
        _trending_item("a", stars=3, canonical_id=1),
        _trending_item("b", stars=2, canonical_id=2),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)
    service, _, _ = _service(0, curated_client, medium, clock, trending=pipeline, oracle=oracle)
    await pipeline.fetch_trending(USER, TrendingFilters())

    oracle.record_interaction.return_value = False
    assert await service.act_on_trending(USER, InteractionAction.PASS) is False
    assert [e.canonical_id for e in pipeline.cache.items] == [1, 2]
    assert pipeline.get_next().canonical_id == 2

    oracle.record_interaction.return_value = True
    assert await service.act_on_trending(USER, InteractionAction.STAR) is True
    assert [e.canonical_id for e in pipeline.cache.items] == [1]
    assert pipeline.get_next() is None
    assert await service.act_on_trending(USER, InteractionAction.STAR) is None


@pytest.mark.asyncio
async def test_filter_change_during_fetch_discards_batch(medium, clock) -> None:
    """A batch fetched for filters the user already left is never served."""
    gate = asyncio.Event()
    started = asyncio.Event()

    async def fetch_trending(username, batch_size, filters):
        started.set()
        await gate.wait()
        return [_trending_item("py-repo", stars=5, canonical_id=1)]

    feed = AsyncMock()
    feed.fetch_trending.side_effect = fetch_trending
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)

    fetch = asyncio.ensure_future(pipeline.fetch_trending(USER, TrendingFilters(language="python")))
    await started.wait()
    pipeline.update_filters("rust", TrendingPeriod.DAILY)
    gate.set()

    assert await fetch == (False, FILTERS_CHANGED_MESSAGE)
    assert pipeline.filters.language == "rust"
    assert pipeline.get_next() is None
    assert "trending_batch" not in medium.blobs


@pytest.mark.asyncio
async def test_clear_during_fetch_discards_batch(medium, clock) -> None:
    gate = asyncio.Event()
    started = asyncio.Event()

    async def fetch_trending(username, batch_size, filters):
        started.set()
        await gate.wait()
        return [_trending_item("a", stars=5, canonical_id=1)]

    feed = AsyncMock()
    feed.fetch_trending.side_effect = fetch_trending
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)

    fetch = asyncio.ensure_future(pipeline.fetch_trending(USER, TrendingFilters()))
    await started.wait()
    pipeline.reset()
    gate.set()

    success, _ = await fetch
    assert not success
    assert pipeline.get_next() is None

    # The next fetch commits normally
    gate.set()
    assert await pipeline.fetch_trending(USER, TrendingFilters()) == (True, None)
    assert pipeline.get_next().canonical_id == 1


@pytest.mark.asyncio
async def test_star_on_curated_stars_before_recording(curated_client, medium, clock) -> None:
    starrer = AsyncMock()
    starrer.star_repository.return_value = True
    service, _, oracle = _service(0, curated_client, medium, clock, starrer=starrer)
    oracle.record_interaction.return_value = True
    await service.curated.fetch_batch(USER)

    assert await service.act_on_curated(USER, InteractionAction.STAR) is True

    starrer.star_repository.assert_called_once_with("octo", "repo0")
    oracle.record_interaction.assert_called_once_with("alice", 1000, InteractionAction.STAR)
    assert service.curated.get_next().id == 1


@pytest.mark.asyncio
async def test_failed_star_keeps_curated_item(curated_client, medium, clock) -> None:
    starrer = AsyncMock()
    starrer.star_repository.return_value = False
    service, _, oracle = _service(0, curated_client, medium, clock, starrer=starrer)
    await service.curated.fetch_batch(USER)

    assert await service.act_on_curated(USER, InteractionAction.STAR) is False

    oracle.record_interaction.assert_not_called()
    assert service.curated.get_next().id == 0


@pytest.mark.asyncio
async def test_pass_does_not_star(curated_client, medium, clock) -> None:
    starrer = AsyncMock()
    service, _, oracle = _service(0, curated_client, medium, clock, starrer=starrer)
    oracle.record_interaction.return_value = True
    await service.curated.fetch_batch(USER)

    assert await service.act_on_curated(USER, InteractionAction.PASS) is True

    starrer.star_repository.assert_not_called()
    assert service.curated.get_next().id == 1


@pytest.mark.asyncio
async def test_failed_star_keeps_trending_item(curated_client, medium, clock) -> None:
    feed = AsyncMock()
    feed.fetch_trending.return_value = [
        _trending_item("a", stars=3, canonical_id=1),
        _trending_item("b", stars=2, canonical_id=2),
    ]
    oracle = AsyncMock()
    oracle.fetch_interacted_ids.return_value = set()
    pipeline = _pipeline(feed, oracle, medium, clock)
    starrer = AsyncMock()
    starrer.star_repository.return_value = False
    service, _, _ = _service(
        0, curated_client, medium, clock, trending=pipeline, oracle=oracle, starrer=starrer
    )
    await pipeline.fetch_trending(USER, TrendingFilters())

    assert await service.act_on_trending(USER, InteractionAction.STAR) is False

    starrer.star_repository.assert_called_once_with("octo", "a")
    oracle.record_interaction.assert_not_called()
    assert [e.canonical_id for e in pipeline.cache.items] == [1, 2]
    assert pipeline.get_next().canonical_id == 1

    starrer.star_repository.return_value = True
    oracle.record_interaction.return_value = True
    assert await service.act_on_trending(USER, InteractionAction.STAR) is True
    assert [e.canonical_id for e in pipeline.cache.items] == [2]
