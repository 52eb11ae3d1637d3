"""Hacker News Firebase API client."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from soulthread.clients.http import fetch_json, safe_fetch_json
from soulthread.core.utils import truncate_summary
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)


class HackerNewsClient:
    """Client for the public Hacker News top stories feed."""

    provider = "Hacker News"

    def __init__(self, settings=None):
        self.base_url = "https://hacker-news.firebaseio.com/v0"
        self.timeout = settings.provider_timeout if settings else 15.0

    async def get_top_stories(self, limit: int = 10) -> List[NewsItem]:
        """Fetch the top ``limit`` stories, skipping any story that fails to load."""
        story_ids = await safe_fetch_json(
            f"{self.base_url}/topstories.json",
            provider=self.provider,
            timeout=self.timeout,
        )
        if not isinstance(story_ids, list):
            return []

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            tasks = [self._fetch_story(session, story_id) for story_id in story_ids[:limit]]
            stories = await asyncio.gather(*tasks)

        return self.parse_stories([story for story in stories if story])

    async def _fetch_story(
        self, session: aiohttp.ClientSession, story_id: int
    ) -> Optional[Dict[str, Any]]:
        try:
            return await fetch_json(
                f"{self.base_url}/item/{story_id}.json",
                provider=self.provider,
                timeout=self.timeout,
                session=session,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Network error fetching Hacker News item {story_id}: {e}")
        except Exception as e:
            logger.debug(f"Error fetching Hacker News item {story_id}: {e}")
        return None

    def parse_stories(self, stories: List[Dict[str, Any]]) -> List[NewsItem]:
        items = []
        for story in stories:
            if not isinstance(story, dict) or not story.get("title"):
                continue
            story_time = story.get("time")
            try:
                items.append(
                    NewsItem(
                        title=story["title"],
                        summary=truncate_summary(story.get("text") or "") or "Hacker News discussion",
                        url=story.get("url") or f"https://news.ycombinator.com/item?id={story.get('id')}",
                        source=self.provider,
                        score=story.get("score"),
                        comments=story.get("descendants"),
                        published_at=(
                            datetime.fromtimestamp(story_time, tz=timezone.utc).isoformat()
                            if story_time
                            else None
                        ),
                    )
                )
            except (ValueError, TypeError, OverflowError) as e:
                logger.warning(f"Skipping malformed Hacker News story {story.get('id')}: {e}")
        return items
