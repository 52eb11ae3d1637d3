"""Curated fallback dataset bundled with the package."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from soulthread.core.errors import NoContentAvailableError
from soulthread.models.content import NewsItem

logger = logging.getLogger(__name__)

CURATED_SOURCE = "Curated Trends"
DEFAULT_DATASET = Path(__file__).resolve().parent.parent / "data" / "trends.json"


class CuratedDataset:
    """Static ordered list of curated items, loaded once and sliced as needed."""

    def __init__(self, path: Optional[Path] = None, records: Optional[list] = None):
        self.path = Path(path) if path else DEFAULT_DATASET
        self._records = records

    def _load(self) -> list:
        if self._records is None:
            try:
                self._records = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load curated dataset {self.path}: {e}")
                self._records = []
        return self._records

    def items(self, count: int) -> List[NewsItem]:
        """Return the first ``count`` curated items tagged ``Curated Trends``.

        Raises:
            NoContentAvailableError: If the dataset is missing or empty.
        """
        items = []
        for record in self._load()[:count]:
            try:
                items.append(
                    NewsItem(
                        title=record["title"],
                        summary=record.get("summary", ""),
                        source=CURATED_SOURCE,
                    )
                )
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed curated record: {e}")

        if not items:
            raise NoContentAvailableError(
                "No news items available from live providers or curated dataset"
            )
        return items

    def __len__(self) -> int:
        return len(self._load())


@lru_cache(maxsize=1)
def get_curated_dataset() -> CuratedDataset:
    """Process-wide curated dataset loaded from the bundled JSON file."""
    return CuratedDataset()
