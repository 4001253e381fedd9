"""GitHub source for trending repositories and canonical id lookups."""

from datetime import date, timedelta
from typing import Callable, Optional

import httpx

from repo_discovery.core import (
    CanonicalIdResolver,
    RepositoryStarrer,
    TrendingFeedClient,
    TrendingFilters,
    TrendingItem,
)


class GitHubTrendingSource(TrendingFeedClient, CanonicalIdResolver, RepositoryStarrer):
    """Approximate "trending" with the search API: newest repos by stars.

    Items come back without a canonical id; resolve each one with
    ``resolve_canonical_id`` before it can be matched against interactions.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: str = "https://api.github.com",
        timeout: float = 30.0,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.today = today

    async def fetch_trending(
        self, username: str, batch_size: int, filters: TrendingFilters
    ) -> Optional[list[TrendingItem]]:
        """Search repositories created within the period, sorted by stars."""
        query = self.build_query(filters)
        print(f"  └─ Search query: {query}")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.api_base}/search/repositories",
                    headers=self._get_headers(),
                    params={"q": query, "sort": "stars", "order": "desc", "per_page": batch_size},
                )
            except httpx.HTTPError as e:
                print(f"  └─ ⚠️  GitHub search failed: {e}")
                return None

        if response.status_code != 200:
            print(f"  └─ ⚠️  GitHub API error: {response.status_code} for query: {query}")
            if response.status_code == 403:
                print("      Rate limit or authentication required")
            return None

        try:
            data = response.json()
            repos = data["items"]
        except (ValueError, KeyError, TypeError) as e:
            print(f"  └─ ⚠️  Could not decode search results: {e}")
            return None

        items: list[TrendingItem] = []
        for repo in repos:
            item = self._create_item_from_search_result(repo)
            if item:
                items.append(item)

        print(f"  └─ Found {len(items)} repositories")
        return items

    def build_query(self, filters: TrendingFilters) -> str:
        since = self.today() - timedelta(days=filters.period.days_ago)
        query = f"created:>{since.isoformat()}"
        if filters.language:
            query += f" language:{filters.language}"
        return query

    async def resolve_canonical_id(self, owner: str, name: str) -> Optional[int]:
        """Look up GitHub's numeric id for owner/name."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.api_base}/repos/{owner}/{name}",
                    headers=self._get_headers(),
                )
            except httpx.HTTPError as e:
                print(f"      ⚠️  Lookup failed for {owner}/{name}: {e}")
                return None

        if response.status_code != 200:
            print(f"      ⚠️  GitHub API error: {response.status_code} for {owner}/{name}")
            return None

        try:
            return int(response.json()["id"])
        except (ValueError, KeyError, TypeError) as e:
            print(f"      ⚠️  No id in details for {owner}/{name}: {e}")
            return None

    async def star_repository(self, owner: str, name: str) -> bool:
        """Star owner/name for the token's user. Needs a token."""
        if not self.token:
            print(f"      ⚠️  Cannot star {owner}/{name} without a GitHub token")
            return False

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.put(
                    f"{self.api_base}/user/starred/{owner}/{name}",
                    headers=self._get_headers(),
                )
            except httpx.HTTPError as e:
                print(f"      ⚠️  Star failed for {owner}/{name}: {e}")
                return False

        if response.status_code != 204:
            print(f"      ⚠️  GitHub API error: {response.status_code} starring {owner}/{name}")
            return False
        return True

    def _create_item_from_search_result(self, repo: dict) -> Optional[TrendingItem]:
        """Create item from search API result (no additional requests)."""
        try:
            return TrendingItem(
                owner=repo["owner"]["login"],
                name=repo["name"],
                url=repo.get("html_url", ""),
                description=repo.get("description"),
                language=repo.get("language"),
                stars=int(repo.get("stargazers_count", 0)),
                forks=int(repo.get("forks_count", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            print(f"      ⚠️  Error processing {repo.get('full_name', '?')}: {e}")
            return None

    def _get_headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        return headers
