"""Source adapters for fetching trending items."""

from repo_discovery.adapters.sources.github_source import GitHubTrendingSource

__all__ = ["GitHubTrendingSource"]
