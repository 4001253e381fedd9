"""CLI entry point for repository discovery."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from repo_discovery.adapters.api import BackendClient
from repo_discovery.adapters.sources import GitHubTrendingSource
from repo_discovery.config import Settings, get_settings
from repo_discovery.core import (
    AuthEvents,
    CuratedFilters,
    DirectoryMedium,
    InteractionAction,
    ItemSummary,
    LocalCacheStore,
    TokenStore,
    TrendingFilters,
    TrendingPeriod,
    UserIdentity,
)
from repo_discovery.use_cases import (
    CuratedBatchCache,
    DiscoveryService,
    TrendingEnrichmentPipeline,
)

cli = typer.Typer(help="Browse curated and trending repositories one at a time.")

CONFIG_OPTION = typer.Option(Path("config.yaml"), "--config", help="Path to config.yaml")


@dataclass
class Components:
    """Everything a command needs, wired from settings."""

    client: BackendClient
    curated: CuratedBatchCache
    trending: TrendingEnrichmentPipeline
    service: DiscoveryService


def build_components(
    settings: Settings, trending_filters: Optional[TrendingFilters] = None
) -> Components:
    tokens = TokenStore(token=settings.api_key, path=settings.paths.token_file)
    auth_events = AuthEvents()
    auth_events.subscribe(
        lambda: print("🔐 API token was rejected. Set REPOMANCE_API_KEY and sign in again.")
    )

    client = BackendClient(
        settings.api.base_url,
        tokens,
        auth_events=auth_events,
        timeout=settings.api.timeout,
    )
    store = LocalCacheStore(DirectoryMedium(settings.paths.cache_dir))

    curated = CuratedBatchCache(
        client,
        store,
        quota=client,
        cache_key=settings.cache.curated_key,
        ttl=settings.curated_ttl,
        batch_size=settings.cache.curated_batch_size,
    )

    github = GitHubTrendingSource(
        token=settings.github_token,
        api_base=settings.api.github_api_url,
        timeout=settings.api.timeout,
    )

    if settings.trending.source == "github":
        trending = TrendingEnrichmentPipeline(
            github,
            client,
            store,
            resolver=github,
            cache_key=settings.cache.trending_key,
            ttl=settings.trending_ttl,
            batch_size=settings.cache.trending_batch_size,
            max_concurrent_lookups=settings.trending.max_concurrent_lookups,
            filters=trending_filters,
        )
    else:
        trending = TrendingEnrichmentPipeline(
            client,
            client,
            store,
            cache_key=settings.cache.trending_key,
            ttl=settings.trending_ttl,
            batch_size=settings.cache.trending_batch_size,
            max_concurrent_lookups=settings.trending.max_concurrent_lookups,
            filters=trending_filters,
        )

    service = DiscoveryService(
        client,
        client,
        client,
        curated,
        trending=trending,
        daily_limit=settings.daily_batch_limit,
        starrer=github,
    )
    return Components(client=client, curated=curated, trending=trending, service=service)


def _require_user(settings: Settings) -> UserIdentity:
    if not settings.username:
        print("✗ REPOMANCE_USERNAME is not set")
        raise typer.Exit(code=1)
    return UserIdentity(username=settings.username, user_id=settings.user_id)


def _print_curated(item: ItemSummary, position: int, total: int) -> None:
    print(f"\n[{position}/{total}] 💻 {item.full_name}  ⭐ {item.stargazer_count}")
    print(f"  └─ {item.display_description}")
    details = [item.primary_language or "unknown language", f"{item.fork_count} forks"]
    if item.category:
        details.append(item.category)
    if item.license:
        details.append(item.license)
    print(f"  └─ {' • '.join(details)}")


@cli.command()
def curated(
    category: Optional[list[str]] = typer.Option(None, "--category", "-c"),
    min_stars: str = typer.Option("", "--min-stars"),
    max_stars: str = typer.Option("", "--max-stars"),
    language: Optional[list[str]] = typer.Option(None, "--language", "-l"),
    new: bool = typer.Option(False, "--new", help="Generate a new batch (uses daily quota)"),
    preview: bool = typer.Option(False, "--preview", help="Only count what a new batch would hold"),
    action: Optional[InteractionAction] = typer.Option(None, "--act", help="Star or Pass the current item"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Show the next curated repository."""
    asyncio.run(async_curated(category, min_stars, max_stars, language, new, preview, action, config))


async def async_curated(
    category: Optional[list[str]],
    min_stars: str,
    max_stars: str,
    language: Optional[list[str]],
    new: bool,
    preview: bool,
    action: Optional[InteractionAction],
    config: Path,
) -> None:
    settings = get_settings(config)
    user = _require_user(settings)
    components = build_components(settings)
    cache = components.curated
    cache.update_filters(CuratedFilters.create(category, min_stars, max_stars, language))

    if preview:
        count = await cache.fetch_batch_preview(user)
        if count is None:
            print("❌ Could not preview batch")
            raise typer.Exit(code=1)
        print(f"A new batch would hold {count} repositories")
        return

    if new:
        result = await components.service.generate_batch(user)
        if result.quota_exceeded:
            print(f"⏳ Daily limit reached: {result.daily_count}/{settings.daily_batch_limit}")
            raise typer.Exit(code=1)
        if not result.success:
            print("❌ Could not generate batch, try again")
            raise typer.Exit(code=1)
    elif not cache.load_from_storage(user):
        print("No batch for today yet. Run with --new to generate one.")
        return

    if action is not None:
        recorded = await components.service.act_on_curated(user, action)
        if recorded is False:
            print(f"⚠️  {action.value} was not recorded")

    item = cache.get_next()
    if item is None:
        print("✅ Batch finished. Run with --new for another one.")
        return
    _print_curated(item, cache.position, cache.batch_size)


@cli.command()
def trending(
    language: Optional[str] = typer.Option(None, "--language", "-l"),
    period: TrendingPeriod = typer.Option(TrendingPeriod.DAILY, "--period", "-p"),
    refresh: bool = typer.Option(False, "--refresh", help="Ignore the cached batch"),
    action: Optional[InteractionAction] = typer.Option(None, "--act", help="Star or Pass the current item"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Show the next trending repository."""
    asyncio.run(async_trending(language, period, refresh, action, config))


async def async_trending(
    language: Optional[str],
    period: TrendingPeriod,
    refresh: bool,
    action: Optional[InteractionAction],
    config: Path,
) -> None:
    settings = get_settings(config)
    user = _require_user(settings)
    filters = TrendingFilters(language=language, period=period)
    components = build_components(settings, trending_filters=filters)
    pipeline = components.trending

    if refresh or not pipeline.load_from_storage():
        success, message = await pipeline.fetch_trending(user, filters)
        if not success:
            print(f"❌ {message}")
            raise typer.Exit(code=1)
        if message:
            print(f"⚠️  {message}")

    if action is not None:
        recorded = await components.service.act_on_trending(user, action)
        if recorded is False:
            print(f"⚠️  {action.value} was not recorded")

    enriched = pipeline.get_next()
    if enriched is None:
        print("Nothing left in trending. Try --refresh or another period.")
        return

    item = enriched.item
    print(f"\n🔥 {item.full_name}  ⭐ {item.stars}  ({pipeline.remaining} left)")
    print(f"  └─ {item.description or 'No description available'}")
    print(f"  └─ {item.language or 'unknown language'} • {item.forks} forks • {item.url}")


@cli.command()
def quota(config: Path = CONFIG_OPTION) -> None:
    """Show today's batch generation count."""
    asyncio.run(async_quota(config))


async def async_quota(config: Path) -> None:
    settings = get_settings(config)
    components = build_components(settings)
    count = await components.service.daily_batch_count()
    if count is None:
        print("❌ Could not read daily batch count")
        raise typer.Exit(code=1)
    print(f"Batches today: {count}/{settings.daily_batch_limit}")


@cli.command()
def categories(config: Path = CONFIG_OPTION) -> None:
    """List curated categories."""
    asyncio.run(async_categories(config))


async def async_categories(config: Path) -> None:
    settings = get_settings(config)
    components = build_components(settings)
    names = await components.service.categories()
    if not names:
        print("No categories available")
        return
    for name in names:
        print(f"  • {name}")


def app() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    app()
