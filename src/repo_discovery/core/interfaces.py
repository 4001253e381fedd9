"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from repo_discovery.core.entities import (
    BatchResponse,
    InteractionAction,
    TrendingFilters,
    TrendingItem,
)


class CuratedFeedClient(ABC):
    """Interface for the curated batch feed."""

    @abstractmethod
    async def fetch_uninteracted(
        self,
        username: str,
        batch_size: int,
        categories: Optional[list[str]] = None,
        min_stars: Optional[int] = None,
        max_stars: Optional[int] = None,
        languages: Optional[list[str]] = None,
    ) -> Optional[BatchResponse]:
        """Fetch a bounded batch of items the user has not seen. None on failure."""
        pass

    @abstractmethod
    async def fetch_categories(self) -> list[str]:
        """Categories the curated feed can be filtered by."""
        pass


class QuotaService(ABC):
    """Interface for daily batch generation accounting."""

    @abstractmethod
    async def log_batch_generation(self, user_id: int) -> bool:
        """Record that a batch was generated."""
        pass

    @abstractmethod
    async def fetch_daily_batch_count(self) -> Optional[int]:
        """How many batches were generated today. None on failure."""
        pass


class TrendingFeedClient(ABC):
    """Interface for the trending feed."""

    @abstractmethod
    async def fetch_trending(
        self, username: str, batch_size: int, filters: TrendingFilters
    ) -> Optional[list[TrendingItem]]:
        """Fetch a raw trending batch. None on failure."""
        pass


class CanonicalIdResolver(ABC):
    """Interface for resolving an owner/name pair to a canonical id."""

    @abstractmethod
    async def resolve_canonical_id(self, owner: str, name: str) -> Optional[int]:
        """Look up the canonical id. None when it cannot be resolved."""
        pass


class RepositoryStarrer(ABC):
    """Interface for starring a repository on the user's code host."""

    @abstractmethod
    async def star_repository(self, owner: str, name: str) -> bool:
        """Star owner/name. False when it was not starred."""
        pass


class InteractionOracle(ABC):
    """Interface for the user's interaction history."""

    @abstractmethod
    async def fetch_interacted_ids(self, username: str) -> set[int]:
        """Canonical ids the user already starred or passed."""
        pass

    @abstractmethod
    async def record_interaction(
        self, username: str, canonical_id: int, action: InteractionAction
    ) -> bool:
        """Record an interaction. Not retried."""
        pass


class KeyValueMedium(ABC):
    """Durable storage of opaque text blobs by key."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def write(self, key: str, blob: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass
