"""Perplexity API client for real-time, search-backed news curation."""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from soulthread.clients.http import ProviderHTTPError, fetch_json
from soulthread.core.utils import extract_source_from_url, truncate_summary
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)

PERPLEXITY_SOURCE = "Perplexity AI"
PERPLEXITY_SUMMARY_LENGTH = 300


class PerplexityClient:
    """Client for Perplexity's Sonar chat completions with web search."""

    def __init__(self, api_key: Optional[str], settings=None):
        self.api_key = api_key
        self.base_url = "https://api.perplexity.ai"
        self.model = "sonar"
        self.timeout = settings.perplexity_timeout if settings else 30.0
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def get_news(self, topic: str = "technology", count: int = 5) -> List[NewsItem]:
        """Fetch ``count`` recent stories about ``topic``.

        Returns an empty list when the key is missing or the call fails.
        """
        if not self.api_key:
            logger.warning("PERPLEXITY_API_KEY not configured, skipping Perplexity fetch")
            return []

        logger.info(f"[Perplexity] Fetching {count} news items for topic: {topic}")
        content = await self._complete(
            [
                {
                    "role": "system",
                    "content": "You are a news curator. Return only valid JSON arrays "
                    "with news items. Be concise and factual.",
                },
                {"role": "user", "content": self.build_news_query(topic, count)},
            ],
            temperature=0.2,
            max_tokens=1500,
            extra={"return_citations": True, "return_related_questions": False},
        )
        if not content:
            return []

        items = self.parse_response(content)
        logger.info(f"[Perplexity] Successfully fetched {len(items)} news items")
        return items

    async def get_trending_topics(self, category: str = "technology") -> List[str]:
        """Top five trending topic strings for ``category``."""
        if not self.api_key:
            return []

        content = await self._complete(
            [
                {
                    "role": "user",
                    "content": f"What are the top 5 trending topics in {category} today? "
                    'Return ONLY a JSON array of topic strings, like: ["AI Regulation", '
                    '"New iPhone Release"]',
                }
            ],
            temperature=0.3,
            max_tokens=200,
        )
        if not content:
            return []

        match = re.search(r"\[[\s\S]*\]", content)
        if not match:
            return []
        try:
            topics = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"[Perplexity] Trending topics parse error: {e}")
            return []
        return [str(topic) for topic in topics] if isinstance(topics, list) else []

    async def _complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "search_recency_filter": "day",
        }
        payload.update(extra or {})

        try:
            data = await fetch_json(
                f"{self.base_url}/chat/completions",
                provider="Perplexity",
                method="POST",
                timeout=self.timeout,
                headers=self.headers,
                payload=payload,
            )
            content = data["choices"][0]["message"]["content"]
        except ProviderHTTPError as e:
            logger.error(f"[Perplexity] {e}")
            return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[Perplexity] Network error: {e}")
            return None
        except (KeyError, IndexError, ValueError, TypeError) as e:
            logger.error(f"[Perplexity] Unexpected response shape: {e}")
            return None

        if not content:
            logger.warning("[Perplexity] No content in response")
        return content

    @staticmethod
    def build_news_query(topic: str, count: int) -> str:
        today = datetime.now(timezone.utc).date().isoformat()
        return f"""Find the top {count} most important and trending news stories about "{topic}" from the last 24 hours ({today}).

For each story, provide:
1. Title (clear and concise)
2. Summary (2-3 sentences explaining what happened)
3. Source (publication name)
4. URL (direct link to article)

Return ONLY a valid JSON array in this exact format:
[
  {{
    "title": "News headline here",
    "summary": "Brief description of the story...",
    "source": "Source publication",
    "url": "https://example.com/article"
  }}
]

Requirements:
- Return ONLY the JSON array, no additional text
- Include only verified, recent news from reputable sources
- Prioritize significant developments and trending stories
- Ensure all URLs are valid and direct article links
- Keep summaries factual and concise"""

    def parse_response(self, content: str) -> List[NewsItem]:
        """Extract items from a JSON array, falling back to numbered markdown."""
        match = re.search(r"\[[\s\S]*\]", content)
        if not match:
            logger.warning("[Perplexity] No JSON array found in response")
            return self.parse_fallback_format(content)

        try:
            records = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"[Perplexity] Parse error: {e}")
            return self.parse_fallback_format(content)

        if not isinstance(records, list):
            logger.warning("[Perplexity] Response is not an array")
            return []

        now = datetime.now(timezone.utc).isoformat()
        items = []
        for index, record in enumerate(records):
            if not isinstance(record, dict) or not record.get("title"):
                continue
            url = record.get("url") or record.get("link")
            try:
                items.append(
                    NewsItem(
                        title=record["title"],
                        summary=truncate_summary(
                            record.get("summary") or record.get("description") or "No summary available",
                            PERPLEXITY_SUMMARY_LENGTH,
                        ),
                        url=url,
                        source=record.get("source") or extract_source_from_url(url or "") or PERPLEXITY_SOURCE,
                        published_at=now,
                        relevance_score=round(1.0 - index * 0.1, 2),
                    )
                )
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed Perplexity item: {e}")
        return items

    def parse_fallback_format(self, content: str) -> List[NewsItem]:
        """Parse ``1. **Title** ... Source: x URL: y`` style free text."""
        now = datetime.now(timezone.utc).isoformat()
        items = []
        for section in re.split(r"\d+\.\s+", content):
            if not section.strip():
                continue
            title_match = re.search(r"\*\*(.+?)\*\*|^(.+?)[\r\n]", section)
            title = (title_match.group(1) or title_match.group(2)).strip() if title_match else ""

            summary = re.sub(r"\*\*(.+?)\*\*", "", section)
            summary = re.sub(r"Source:.+", "", summary, flags=re.IGNORECASE)
            summary = re.sub(r"URL:.+", "", summary, flags=re.IGNORECASE).strip()

            source_match = re.search(r"Source:\s*(.+?)[\r\n]", section, flags=re.IGNORECASE)
            url_match = re.search(r"URL:\s*(https?://\S+)", section, flags=re.IGNORECASE)

            if title and len(summary) > 20:
                items.append(
                    NewsItem(
                        title=title,
                        summary=summary[:PERPLEXITY_SUMMARY_LENGTH],
                        source=source_match.group(1).strip() if source_match else PERPLEXITY_SOURCE,
                        url=url_match.group(1).strip() if url_match else None,
                        published_at=now,
                        relevance_score=0.8,
                    )
                )
        return items[:5]
