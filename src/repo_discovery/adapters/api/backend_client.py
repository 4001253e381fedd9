"""Client for the discovery backend API."""

from typing import Any, Optional

import httpx

from repo_discovery.core import (
    AuthEvents,
    BatchResponse,
    CuratedFeedClient,
    InteractionAction,
    InteractionOracle,
    ItemSummary,
    QuotaService,
    TokenStore,
    TrendingFeedClient,
    TrendingFilters,
    TrendingItem,
)


class BackendClient(CuratedFeedClient, TrendingFeedClient, InteractionOracle, QuotaService):
    """Curated batches, server-resolved trending, interactions and quota.

    Every failure comes back as None/False/empty. A 401 additionally
    drops the stored token and fires ``AuthEvents.token_invalidated`` so
    the caller can ask the user to sign in again.
    """

    def __init__(
        self,
        base_url: str,
        tokens: TokenStore,
        auth_events: Optional[AuthEvents] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.tokens = tokens
        self.auth_events = auth_events or AuthEvents()
        self.timeout = timeout

    async def fetch_uninteracted(
        self,
        username: str,
        batch_size: int,
        categories: Optional[list[str]] = None,
        min_stars: Optional[int] = None,
        max_stars: Optional[int] = None,
        languages: Optional[list[str]] = None,
    ) -> Optional[BatchResponse]:
        """Fetch a curated batch of repositories the user has not acted on."""
        params: list[tuple[str, Any]] = [
            ("username", username),
            ("batch_size", str(batch_size)),
        ]
        for category in categories or []:
            params.append(("category", category))
        if min_stars is not None:
            params.append(("min_star_count", str(min_stars)))
        if max_stars is not None:
            params.append(("max_star_count", str(max_stars)))
        if languages:
            params.append(("languages", ",".join(languages)))

        data = await self._get_json("repos/uninteracted/", params)
        if not isinstance(data, dict):
            return None

        try:
            items = [ItemSummary.from_dict(repo) for repo in data["repositories"]]
            return BatchResponse(count=int(data.get("count", len(items))), items=items)
        except (KeyError, TypeError, ValueError) as e:
            print(f"  └─ ⚠️  Could not decode curated batch: {e}")
            return None

    async def fetch_trending(
        self, username: str, batch_size: int, filters: TrendingFilters
    ) -> Optional[list[TrendingItem]]:
        """Fetch trending repositories with canonical ids resolved server-side."""
        params: list[tuple[str, Any]] = [
            ("username", username),
            ("batch_size", str(batch_size)),
            ("period", filters.period.value),
        ]
        if filters.language:
            params.append(("language", filters.language))

        data = await self._get_json("repos/trending/uninteracted/", params)
        if not isinstance(data, dict):
            return None

        try:
            return [TrendingItem.from_dict(repo) for repo in data["repositories"]]
        except (KeyError, TypeError, ValueError) as e:
            print(f"  └─ ⚠️  Could not decode trending batch: {e}")
            return None

    async def fetch_interacted_ids(self, username: str) -> set[int]:
        data = await self._get_json("users/interactions/", [("username", username)])
        if not isinstance(data, list):
            return set()

        ids: set[int] = set()
        for interaction in data:
            try:
                ids.add(int(interaction["repository"]))
            except (KeyError, TypeError, ValueError):
                print(f"  └─ ⚠️  Skipping malformed interaction: {interaction!r}")
        return ids

    async def record_interaction(
        self, username: str, canonical_id: int, action: InteractionAction
    ) -> bool:
        body = {
            "user": username,
            "repository": canonical_id,
            "interaction": action.value,
        }
        response = await self._request("POST", "interactions/", json=body)
        if response is None:
            return False
        if response.status_code != 201:
            print(f"  └─ ⚠️  Failed to record {action.value} for {canonical_id}: HTTP {response.status_code}")
            return False
        return True

    async def log_batch_generation(self, user_id: int) -> bool:
        response = await self._request("POST", "batch/log/", json={"user_id": user_id})
        return response is not None and response.status_code == 201

    async def fetch_daily_batch_count(self) -> Optional[int]:
        data = await self._get_json("batch/daily-count/")
        if not isinstance(data, dict):
            return None
        try:
            return int(data["batch_count"])
        except (KeyError, TypeError, ValueError):
            return None

    async def fetch_categories(self) -> list[str]:
        data = await self._get_json("repos/categories/")
        if not isinstance(data, dict):
            return []
        categories = data.get("categories")
        if not isinstance(categories, list):
            return []
        return [str(c) for c in categories]

    async def _get_json(
        self, path: str, params: Optional[list[tuple[str, Any]]] = None
    ) -> Optional[Any]:
        """GET a path and decode JSON; None unless the answer is a 200 with valid JSON."""
        response = await self._request("GET", path, params=params)
        if response is None:
            return None

        if response.status_code != 200:
            print(f"  └─ ⚠️  Backend error: {response.status_code} for {path}")
            return None

        try:
            return response.json()
        except ValueError as e:
            print(f"  └─ ⚠️  Invalid JSON from {path}: {e}")
            return None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[list[tuple[str, Any]]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Optional[httpx.Response]:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method, url, headers=self._get_headers(), params=params, json=json
                )
            except httpx.HTTPError as e:
                print(f"  └─ ⚠️  Network error for {path}: {e}")
                return None

        if response.status_code == 401:
            print(f"  └─ 🔐 Unauthorized on {path}, clearing token")
            self.tokens.delete_token()
            self.auth_events.token_invalidated()
            return None

        return response

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}

        token = self.tokens.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        return headers
