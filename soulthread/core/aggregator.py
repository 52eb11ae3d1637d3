"""Multi-provider news aggregation with per-provider failure isolation."""

import asyncio
import logging
from typing import Awaitable, Dict, List, Optional

from soulthread.clients.github import GitHubClient
from soulthread.clients.hackernews import HackerNewsClient
from soulthread.clients.newsapi import NewsAPIClient
from soulthread.clients.perplexity import PerplexityClient
from soulthread.clients.reddit import RedditClient
from soulthread.models.content import AggregatedNews, NewsItem
from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)


class NewsAggregator:
    """Fetches every configured provider concurrently.

    A failing provider contributes zero items; the aggregate never raises.
    Items are concatenated in the order providers finish, so callers must
    not rely on any ordering across providers.
    """

    def __init__(
        self,
        settings: Settings,
        news_api: Optional[NewsAPIClient] = None,
        reddit: Optional[RedditClient] = None,
        hacker_news: Optional[HackerNewsClient] = None,
        github: Optional[GitHubClient] = None,
        perplexity: Optional[PerplexityClient] = None,
    ):
        self.settings = settings
        self.news_api = news_api or NewsAPIClient(settings.news_api_key, settings)
        self.reddit = reddit or RedditClient(settings)
        self.hacker_news = hacker_news or HackerNewsClient(settings)
        self.github = github or GitHubClient(settings)
        self.perplexity = perplexity or PerplexityClient(settings.perplexity_api_key, settings)

    async def fetch_all_news_sources(self) -> AggregatedNews:
        """Fetch News API, Reddit, Hacker News and GitHub together."""
        count = self.settings.news_items_per_source
        providers: Dict[str, Awaitable[List[NewsItem]]] = {
            "news_api": self.news_api.get_top_headlines(self.settings.news_api_category, count),
            "reddit": self.reddit.get_hot_posts(self.settings.reddit_subreddit, count),
            "hacker_news": self.hacker_news.get_top_stories(count),
            "github": self.github.get_trending(self.settings.github_language, count),
        }

        grouped: Dict[str, List[NewsItem]] = {name: [] for name in providers}
        all_sources: List[NewsItem] = []

        async def run(name: str, call: Awaitable[List[NewsItem]]) -> None:
            items = await self._isolated(name, call)
            grouped[name] = items
            all_sources.extend(items)

        await asyncio.gather(*(run(name, call) for name, call in providers.items()))

        logger.info(
            f"Fetched {len(all_sources)} news items from all sources "
            f"({', '.join(f'{name}={len(items)}' for name, items in grouped.items())})"
        )
        return AggregatedNews(all_sources=all_sources, **grouped)

    async def fetch_perplexity_news(self, topic: str = "technology", count: int = 5) -> List[NewsItem]:
        return await self._isolated("perplexity", self.perplexity.get_news(topic, count))

    async def fetch_trending_topics(self, category: str = "technology") -> List[str]:
        try:
            return await self.perplexity.get_trending_topics(category)
        except Exception as e:
            logger.error(f"Unexpected error fetching trending topics: {e}")
            return []

    @property
    def perplexity_configured(self) -> bool:
        return bool(self.perplexity.api_key)

    @staticmethod
    async def _isolated(name: str, call: Awaitable[List[NewsItem]]) -> List[NewsItem]:
        try:
            return list(await call)
        except Exception as e:
            logger.error(f"Provider {name} failed, continuing without it: {e}")
            return []
