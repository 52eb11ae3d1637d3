"""Reddit public JSON client for hot subreddit posts."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from soulthread.clients.http import safe_fetch_json
from soulthread.core.utils import truncate_summary
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)


class RedditClient:
    """Client for Reddit's unauthenticated ``hot.json`` listings."""

    provider = "Reddit"

    def __init__(self, settings=None):
        self.base_url = "https://www.reddit.com"
        self.timeout = settings.provider_timeout if settings else 15.0
        # Reddit rejects requests with generic user agents
        self.user_agent = settings.default_user_agent if settings else "SoulThread/1.0"

    async def get_hot_posts(self, subreddit: str = "technology", limit: int = 10) -> List[NewsItem]:
        data = await safe_fetch_json(
            f"{self.base_url}/r/{subreddit}/hot.json",
            provider=self.provider,
            timeout=self.timeout,
            params={"limit": limit},
            headers={"User-Agent": self.user_agent},
        )
        if not isinstance(data, dict):
            return []
        children = (data.get("data") or {}).get("children") or []
        return self.parse_posts([child.get("data") or {} for child in children])

    def parse_posts(self, posts: List[Dict[str, Any]]) -> List[NewsItem]:
        items = []
        for post in posts:
            if not post.get("title") or post.get("stickied"):
                continue
            created = post.get("created_utc")
            try:
                items.append(
                    NewsItem(
                        title=post["title"],
                        summary=truncate_summary(post.get("selftext") or "") or "Reddit discussion",
                        url=f"https://reddit.com{post.get('permalink', '')}",
                        source=self.provider,
                        score=post.get("score"),
                        comments=post.get("num_comments"),
                        published_at=(
                            datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
                            if created
                            else None
                        ),
                    )
                )
            except (ValueError, TypeError, OverflowError) as e:
                logger.warning(f"Skipping malformed Reddit post: {e}")
        return items
