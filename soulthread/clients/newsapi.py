"""News API client for top technology headlines."""

import logging
from typing import Any, Dict, List, Optional

from soulthread.clients.http import safe_fetch_json
from soulthread.core.utils import truncate_summary
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)


class NewsAPIClient:
    """Client for newsapi.org top headlines (keyed, free tier 100 req/day)."""

    provider = "News API"

    def __init__(self, api_key: Optional[str], settings=None):
        self.api_key = api_key
        self.base_url = "https://newsapi.org/v2"
        self.timeout = settings.provider_timeout if settings else 15.0
        self.user_agent = settings.default_user_agent if settings else "SoulThread/1.0"

    async def get_top_headlines(
        self, category: str = "technology", page_size: int = 10
    ) -> List[NewsItem]:
        """Get top headlines for a category, or an empty list on any failure."""
        if not self.api_key:
            logger.warning("NEWS_API_KEY not configured, skipping News API fetch")
            return []

        data = await safe_fetch_json(
            f"{self.base_url}/top-headlines",
            provider=self.provider,
            timeout=self.timeout,
            params={"category": category, "pageSize": page_size, "apiKey": self.api_key},
            headers={"User-Agent": self.user_agent},
        )
        if not isinstance(data, dict):
            return []
        return self.parse_articles(data.get("articles") or [])

    def parse_articles(self, articles: List[Dict[str, Any]]) -> List[NewsItem]:
        items = []
        for article in articles:
            title = article.get("title")
            if not title or title == "[Removed]":
                continue
            try:
                summary = article.get("description") or truncate_summary(
                    article.get("content") or ""
                )
                items.append(
                    NewsItem(
                        title=title,
                        summary=truncate_summary(summary),
                        url=article.get("url"),
                        source=(article.get("source") or {}).get("name") or self.provider,
                        published_at=article.get("publishedAt"),
                    )
                )
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed News API article: {e}")
        return items
