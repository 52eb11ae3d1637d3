"""GitHub search client used as a trending repositories feed."""

import logging
from typing import Any, Dict, List

from soulthread.clients.http import safe_fetch_json
from soulthread.core.utils import truncate_summary
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)


class GitHubClient:
    """Client for GitHub repository search sorted by stars."""

    provider = "GitHub"

    def __init__(self, settings=None):
        self.base_url = "https://api.github.com"
        self.timeout = settings.provider_timeout if settings else 15.0
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": settings.default_user_agent if settings else "SoulThread/1.0",
        }

    async def get_trending(self, language: str = "javascript", per_page: int = 10) -> List[NewsItem]:
        data = await safe_fetch_json(
            f"{self.base_url}/search/repositories",
            provider=self.provider,
            timeout=self.timeout,
            params={
                "q": f"language:{language}",
                "sort": "stars",
                "order": "desc",
                "per_page": per_page,
            },
            headers=self.headers,
        )
        if not isinstance(data, dict):
            return []
        return self.parse_repositories(data.get("items") or [])

    def parse_repositories(self, repos: List[Dict[str, Any]]) -> List[NewsItem]:
        items = []
        for repo in repos:
            if not repo.get("name"):
                continue
            try:
                items.append(
                    NewsItem(
                        title=repo["name"],
                        summary=truncate_summary(repo.get("description") or "") or "GitHub repository",
                        url=repo.get("html_url"),
                        source=self.provider,
                        stars=repo.get("stargazers_count"),
                        language=repo.get("language"),
                        published_at=repo.get("updated_at"),
                    )
                )
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed GitHub repository: {e}")
        return items
