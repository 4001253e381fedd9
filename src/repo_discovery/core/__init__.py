"""Core domain layer."""

from repo_discovery.core.batch_cache import CachePolicy, RecordCache
from repo_discovery.core.cache_store import DirectoryMedium, LocalCacheStore, MemoryMedium
from repo_discovery.core.entities import (
    BatchResponse,
    CacheRecord,
    CuratedFilters,
    EnrichedTrendingItem,
    InteractionAction,
    ItemSummary,
    TrendingFilters,
    TrendingItem,
    TrendingPeriod,
    UserIdentity,
)
from repo_discovery.core.interfaces import (
    CanonicalIdResolver,
    CuratedFeedClient,
    InteractionOracle,
    KeyValueMedium,
    QuotaService,
    RepositoryStarrer,
    TrendingFeedClient,
)
from repo_discovery.core.session import AuthEvents, TokenStore

__all__ = [
    "BatchResponse",
    "CacheRecord",
    "CuratedFilters",
    "EnrichedTrendingItem",
    "InteractionAction",
    "ItemSummary",
    "TrendingFilters",
    "TrendingItem",
    "TrendingPeriod",
    "UserIdentity",
    "CanonicalIdResolver",
    "CuratedFeedClient",
    "InteractionOracle",
    "KeyValueMedium",
    "QuotaService",
    "RepositoryStarrer",
    "TrendingFeedClient",
    "CachePolicy",
    "RecordCache",
    "DirectoryMedium",
    "LocalCacheStore",
    "MemoryMedium",
    "AuthEvents",
    "TokenStore",
]
