"""Hourly scheduled newsletter delivery."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from soulthread.core.aggregator import NewsAggregator
from soulthread.core.ai_generator import AIGenerator
from soulthread.core.curated import CuratedDataset
from soulthread.core.delivery import DeliveryBatcher
from soulthread.core.errors import AIGenerationError, StoreError
from soulthread.core.stores import PreferencesStore, UserStore, VoiceProfileStore
from soulthread.core.template_generator import TemplateGenerator
from soulthread.models.content import (
    DEFAULT_TOPICS,
    DeliveryJob,
    EmailPreferences,
    GenerationMethod,
    NewsItem,
    Recipient,
    VoiceProfile,
)
from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = ["reddit", "hackernews", "github"]
SUBJECT_TITLE_LENGTH = 60
MAX_REPORTED_ERRORS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_subject(items: List[NewsItem]) -> str:
    main_story = items[0].title if items else "Latest Updates"
    suffix = "..." if len(main_story) > SUBJECT_TITLE_LENGTH else ""
    return f"📰 {main_story[:SUBJECT_TITLE_LENGTH]}{suffix}"


class ScheduledSendJob:
    """Generates and delivers the newsletters due in the current UTC hour.

    Users are processed one at a time; a failure for one user is counted in
    ``generationErrors`` and never stops the run. Only an unreadable
    preferences store is fatal.
    """

    def __init__(
        self,
        settings: Settings,
        aggregator: NewsAggregator,
        template_generator: TemplateGenerator,
        ai_generator: AIGenerator,
        users: UserStore,
        profiles: VoiceProfileStore,
        preferences: PreferencesStore,
        batcher: DeliveryBatcher,
        curated: CuratedDataset,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.aggregator = aggregator
        self.template_generator = template_generator
        self.ai_generator = ai_generator
        self.users = users
        self.profiles = profiles
        self.preferences = preferences
        self.batcher = batcher
        self.curated = curated
        self.clock = clock
        self._shared_news: Optional[List[NewsItem]] = None

    async def run(self, hour: Optional[int] = None) -> Dict[str, Any]:
        """Run one delivery pass and return the summary dict."""
        started = time.monotonic()
        current_hour = self.clock().hour if hour is None else hour
        logger.info(f"[Cron] ===== Starting daily newsletter send (UTC hour {current_hour}) =====")

        try:
            subscribers = await self.preferences.list_daily_subscribers()
        except StoreError as e:
            logger.error(f"[Cron] Fatal error: {e}")
            return {"success": False, "error": str(e)}

        due = [pref for pref in subscribers if pref.delivery_hour == current_hour]
        logger.info(
            f"[Cron] {len(subscribers)} users with email enabled, "
            f"{len(due)} scheduled for hour {current_hour}"
        )

        recipients: List[Recipient] = []
        jobs: Dict[str, DeliveryJob] = {}
        generation_errors = 0
        self._shared_news = None

        for preference in due:
            try:
                prepared = await self.prepare_delivery(preference)
            except Exception as e:
                logger.error(f"[Cron] Error generating newsletter for user {preference.user_id}: {e}")
                prepared = None
            if prepared is None:
                generation_errors += 1
                continue
            recipient, job = prepared
            recipients.append(recipient)
            jobs[recipient.user_id] = job

        logger.info(f"[Cron] Generated {len(recipients)} newsletters, {generation_errors} errors")

        if recipients:
            results = await self.batcher.send_batch(recipients, jobs)
            sent, failed, errors = results.sent, results.failed, results.errors
        else:
            sent, failed, errors = 0, len(due), []

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"[Cron] ===== Newsletter send complete in {duration_ms}ms =====")
        return {
            "success": True,
            "totalUsers": len(due),
            "generated": len(recipients),
            "generationErrors": generation_errors,
            "sent": sent,
            "failed": failed,
            "errors": errors[:MAX_REPORTED_ERRORS],
            "durationMs": duration_ms,
        }

    async def prepare_delivery(
        self, preference: EmailPreferences
    ) -> Optional[Tuple[Recipient, DeliveryJob]]:
        """Build the recipient and newsletter for one subscriber.

        Returns None when the user has no resolvable email address.
        """
        logger.info(f"[Cron] Generating newsletter for user: {preference.user_id}")
        recipient = await self.users.get_user(preference.user_id)
        if recipient is None or not recipient.email:
            logger.error(f"[Cron] Cannot get email for user {preference.user_id}")
            return None

        voice_profile = await self._voice_profile(preference.user_id)
        sources = preference.preferred_sources or list(DEFAULT_SOURCES)
        items = await self.collect_items(preference, sources)
        content, method = await self._render(preference, voice_profile, items)

        job = DeliveryJob(
            subject=build_subject(items),
            content=content,
            news_item_count=len(items),
            generation_method=method,
            data_sources=sources,
        )
        logger.info(f"[Cron] Newsletter generated for {recipient.email}")
        return recipient, job

    async def collect_items(self, preference: EmailPreferences, sources: List[str]) -> List[NewsItem]:
        """Perplexity first when preferred, then every provider, then curated.

        Raises:
            NoContentAvailableError: If even the curated dataset is empty.
        """
        max_items = preference.max_items or self.settings.default_max_items
        topic = preference.topics[0] if preference.topics else DEFAULT_TOPICS
        logger.info(f"[Cron] Fetching news for topic: {topic}, sources: {sources}")

        items: List[NewsItem] = []
        if "perplexity" in sources and self.aggregator.perplexity_configured:
            perplexity_items = await self.aggregator.fetch_perplexity_news(topic, max_items)
            items.extend(perplexity_items)
            logger.info(f"[Cron] Fetched {len(perplexity_items)} items from Perplexity")

        if len(items) < max_items:
            items.extend(await self._all_sources())

        if not items:
            logger.info("[Cron] Using curated fallback")
            items = self.curated.items(max_items)

        items = items[:max_items]
        logger.info(f"[Cron] Final news count: {len(items)}")
        return items

    async def _all_sources(self) -> List[NewsItem]:
        # One aggregate fetch per run, shared by every subscriber.
        if self._shared_news is None:
            try:
                news = await self.aggregator.fetch_all_news_sources()
                self._shared_news = list(news.all_sources)
            except Exception as e:
                logger.warning(f"[Cron] Other sources fetch failed: {e}")
                return []
            logger.info(f"[Cron] Fetched {len(self._shared_news)} items from other sources")
        return list(self._shared_news)

    async def _voice_profile(self, user_id: str) -> Optional[VoiceProfile]:
        try:
            return await self.profiles.get_latest_voice_profile(user_id)
        except StoreError as e:
            logger.warning(f"[Cron] Voice profile unavailable for {user_id}: {e}")
            return None

    async def _render(
        self,
        preference: EmailPreferences,
        voice_profile: Optional[VoiceProfile],
        items: List[NewsItem],
    ) -> Tuple[str, GenerationMethod]:
        if preference.use_ai_generation and self.ai_generator.available:
            try:
                logger.info("[Cron] Using AI generation")
                content = await self.ai_generator.generate_newsletter(voice_profile, items)
                return content, GenerationMethod.AI
            except AIGenerationError as e:
                logger.warning(
                    f"[Cron] AI generation failed for user {preference.user_id}, using template: {e}"
                )
            except Exception as e:
                logger.error(
                    f"[Cron] Unexpected AI error for user {preference.user_id}, using template: {e}"
                )
        else:
            logger.info("[Cron] Using template generation")
        return self.template_generator.generate_newsletter(voice_profile, items), GenerationMethod.TEMPLATE
