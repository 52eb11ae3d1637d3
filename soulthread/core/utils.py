"""Utility functions for text normalization and item filtering."""

from __future__ import annotations

import re
from typing import Iterable, List
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from soulthread.models.content import NewsItem

SUMMARY_MAX_LENGTH = 200


def strip_html(text: str) -> str:
    """Return the visible text of an HTML fragment with collapsed whitespace."""
    if not text:
        return ""
    if "<" not in text and "&" not in text:
        return " ".join(text.split())
    soup = BeautifulSoup(text, "html.parser")
    return " ".join(soup.get_text(" ").split())


def truncate_summary(text: str, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """Bound a summary to ``max_length`` characters, marking the cut with '...'."""
    text = strip_html(text)
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def filter_by_topic(items: Iterable[NewsItem], topic: str) -> List[NewsItem]:
    """Keep items whose title or summary contains ``topic``, case-insensitively.

    Input order is preserved.
    """
    needle = topic.lower()
    return [
        item
        for item in items
        if needle in item.title.lower() or needle in item.summary.lower()
    ]


def extract_source_from_url(url: str) -> str:
    """Extract a human friendly source name from a URL.

    Removes common subdomains and TLDs, applies known mappings and
    returns a title-cased domain name. Returns an empty string if the
    URL cannot be parsed.
    """
    if not url:
        return ""

    parsed = urlparse(url)
    domain = parsed.netloc.lower()
    if not domain:
        return ""

    domain = re.sub(r"^(www\.|m\.|mobile\.)", "", domain)
    domain = re.sub(r"\.(com|org|net|edu|gov|io|co\.uk|ai)$", "", domain)

    source_mapping = {
        "techcrunch": "TechCrunch",
        "arstechnica": "Ars Technica",
        "wired": "WIRED",
        "theverge": "The Verge",
        "github": "GitHub",
        "reddit": "Reddit",
        "news.ycombinator": "Hacker News",
        "technologyreview": "MIT Technology Review",
    }
    if domain in source_mapping:
        return source_mapping[domain]

    main_domain = domain.split(".")[0]
    return main_domain.replace("-", " ").replace("_", " ").title()


def unique_sources(items: Iterable[NewsItem]) -> List[str]:
    """Distinct provenance labels in first-seen order."""
    seen: List[str] = []
    for item in items:
        if item.source and item.source not in seen:
            seen.append(item.source)
    return seen
