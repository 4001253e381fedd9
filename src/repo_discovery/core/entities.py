"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TrendingPeriod(str, Enum):
    """Time window of the trending feed."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def days_ago(self) -> int:
        return {"daily": 1, "weekly": 7, "monthly": 30}[self.value]


class InteractionAction(str, Enum):
    """What the user did with a candidate."""

    STAR = "Star"
    PASS = "Pass"


@dataclass(frozen=True)
class UserIdentity:
    """Who is browsing.

    The username keys the curated cache; the numeric id is only needed
    for batch generation logging.
    """

    username: str
    user_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.username:
            raise ValueError("Username cannot be empty")


@dataclass(frozen=True)
class ItemSummary:
    """Curated repository candidate as served by the backend."""

    id: int
    github_id: int
    owner: str
    name: str
    description: str = ""
    stargazer_count: int = 0
    fork_count: int = 0
    watcher_count: int = 0
    languages: dict[str, int] = field(default_factory=dict)
    license: Optional[str] = None
    topics: list[str] = field(default_factory=list)
    repo_creation_date: str = ""
    repo_update_date: str = ""
    category: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Owner cannot be empty")
        if not self.name:
            raise ValueError("Name cannot be empty")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def primary_language(self) -> Optional[str]:
        """Language with the most bytes, if any."""
        if not self.languages:
            return None
        return max(self.languages, key=lambda lang: self.languages[lang])

    @property
    def display_description(self) -> str:
        return self.description or "No description available"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ItemSummary":
        return cls(
            id=int(data["id"]),
            github_id=int(data["github_id"]),
            owner=data["owner"],
            name=data["name"],
            description=data.get("description") or "",
            stargazer_count=int(data.get("stargazer_count", 0)),
            fork_count=int(data.get("fork_count", 0)),
            watcher_count=int(data.get("watcher_count", 0)),
            languages={str(k): int(v) for k, v in (data.get("languages") or {}).items()},
            license=data.get("license"),
            topics=list(data.get("topics") or []),
            repo_creation_date=data.get("repo_creation_date") or "",
            repo_update_date=data.get("repo_update_date") or "",
            category=data.get("category"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "github_id": self.github_id,
            "owner": self.owner,
            "name": self.name,
            "description": self.description,
            "stargazer_count": self.stargazer_count,
            "fork_count": self.fork_count,
            "watcher_count": self.watcher_count,
            "languages": dict(self.languages),
            "license": self.license,
            "topics": list(self.topics),
            "repo_creation_date": self.repo_creation_date,
            "repo_update_date": self.repo_update_date,
            "category": self.category,
        }


@dataclass(frozen=True)
class TrendingItem:
    """Raw trending repository.

    ``canonical_id`` is filled in when the source resolved it already;
    otherwise it has to be looked up before the item can be shown.
    """

    owner: str
    name: str
    url: str = ""
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    canonical_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Owner cannot be empty")
        if not self.name:
            raise ValueError("Name cannot be empty")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrendingItem":
        canonical_id = data.get("canonical_id", data.get("github_id"))
        return cls(
            owner=data["owner"],
            name=data["name"],
            url=data.get("url") or f"https://github.com/{data['owner']}/{data['name']}",
            description=data.get("description"),
            language=data.get("language"),
            stars=int(data.get("stars", 0)),
            forks=int(data.get("forks", 0)),
            canonical_id=int(canonical_id) if canonical_id is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "language": self.language,
            "stars": self.stars,
            "forks": self.forks,
            "canonical_id": self.canonical_id,
        }


@dataclass(frozen=True)
class EnrichedTrendingItem:
    """Trending item with a resolved canonical id."""

    item: TrendingItem
    canonical_id: int
    fetched_at: datetime

    @property
    def stars(self) -> int:
        return self.item.stars

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnrichedTrendingItem":
        return cls(
            item=TrendingItem.from_dict(data["item"]),
            canonical_id=int(data["canonical_id"]),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item.to_dict(),
            "canonical_id": self.canonical_id,
            "fetched_at": self.fetched_at.isoformat(),
        }


def _parse_star_bound(text: str) -> Optional[int]:
    text = text.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class CuratedFilters:
    """Filter snapshot of the curated feed.

    Star bounds stay as the text the user typed so that "100" and "0100"
    are different snapshots, exactly as they were entered.
    """

    categories: frozenset[str] = frozenset()
    min_stars: str = ""
    max_stars: str = ""
    languages: frozenset[str] = frozenset()

    @classmethod
    def create(
        cls,
        categories: Optional[list[str]] = None,
        min_stars: str = "",
        max_stars: str = "",
        languages: Optional[list[str]] = None,
    ) -> "CuratedFilters":
        return cls(
            categories=frozenset(categories or []),
            min_stars=min_stars,
            max_stars=max_stars,
            languages=frozenset(languages or []),
        )

    @property
    def is_active(self) -> bool:
        return bool(self.categories or self.min_stars or self.max_stars or self.languages)

    def request_params(self) -> dict[str, Any]:
        """Translate into curated feed request parameters."""
        return {
            "categories": sorted(self.categories),
            "min_stars": _parse_star_bound(self.min_stars),
            "max_stars": _parse_star_bound(self.max_stars),
            "languages": sorted(self.languages),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": sorted(self.categories),
            "min_stars": self.min_stars,
            "max_stars": self.max_stars,
            "languages": sorted(self.languages),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CuratedFilters":
        return cls.create(
            categories=data.get("categories"),
            min_stars=data.get("min_stars") or "",
            max_stars=data.get("max_stars") or "",
            languages=data.get("languages"),
        )


@dataclass(frozen=True)
class TrendingFilters:
    """Filter snapshot of the trending feed."""

    language: Optional[str] = None
    period: TrendingPeriod = TrendingPeriod.DAILY

    def to_dict(self) -> dict[str, Any]:
        return {"language": self.language, "period": self.period.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrendingFilters":
        return cls(
            language=data.get("language"),
            period=TrendingPeriod(data.get("period", TrendingPeriod.DAILY.value)),
        )


@dataclass
class BatchResponse:
    """Decoded curated batch."""

    count: int
    items: list[ItemSummary]


@dataclass
class CacheRecord:
    """Persisted batch of one feed.

    Items are kept as plain dicts here; the owning cache decodes them.
    """

    items: list[dict[str, Any]]
    cursor: int
    filters: dict[str, Any]
    created_at: datetime
    last_used_at: datetime
    user: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 <= self.cursor <= len(self.items):
            raise ValueError(f"Cursor {self.cursor} outside 0..{len(self.items)}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": self.items,
            "cursor": self.cursor,
            "filters": self.filters,
            "user": self.user,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheRecord":
        return cls(
            items=list(data["items"]),
            cursor=int(data["cursor"]),
            filters=dict(data["filters"]),
            user=data.get("user"),
            created_at=datetime.fromisoformat(data["created_at"]),
            last_used_at=datetime.fromisoformat(data["last_used_at"]),
        )
