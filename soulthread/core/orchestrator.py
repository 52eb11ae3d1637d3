"""Generation orchestration: data source, method choice and fallback policy."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Tuple, Union

from soulthread.core.aggregator import NewsAggregator
from soulthread.core.ai_generator import AIGenerator
from soulthread.core.curated import CuratedDataset
from soulthread.core.errors import AIGenerationError, InvalidRequestError, NoContentAvailableError, StoreError
from soulthread.core.stores import VoiceProfileStore
from soulthread.core.template_generator import TemplateGenerator
from soulthread.core.utils import filter_by_topic
from soulthread.models.content import (
    DataSource,
    GenerationMethod,
    GenerationOutcome,
    GenerationRequest,
    GenerationResult,
    NewsItem,
    VoiceProfile,
)
from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class GeneratedContent:
    """Content plus the method that actually produced it."""

    content: str
    method: GenerationMethod
    degraded: bool = False


@dataclass
class StreamingGeneration:
    """Raw AI byte stream handed straight to the transport."""

    chunks: AsyncIterator[bytes]
    news_item_count: int
    data_source: DataSource


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationOrchestrator:
    """Runs one generation request through the tiered fallback chain.

    Only two outcomes reach callers: a :class:`GenerationResult` (possibly
    template-degraded) or a hard failure raised as
    :class:`InvalidRequestError` / :class:`NoContentAvailableError`.
    """

    def __init__(
        self,
        settings: Settings,
        aggregator: NewsAggregator,
        template_generator: TemplateGenerator,
        ai_generator: AIGenerator,
        profiles: VoiceProfileStore,
        curated: CuratedDataset,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.aggregator = aggregator
        self.template_generator = template_generator
        self.ai_generator = ai_generator
        self.profiles = profiles
        self.curated = curated
        self.clock = clock

    async def generate(
        self, request: GenerationRequest
    ) -> Union[GenerationResult, StreamingGeneration]:
        """Generate a newsletter for ``request``.

        Returns a :class:`StreamingGeneration` only when streaming was
        requested and the AI path produced a first chunk; every other path
        returns the metadata envelope.
        """
        if not request.user_id:
            raise InvalidRequestError("userId is required")

        voice_profile = await self.resolve_voice_profile(request.user_id)
        items, data_source = await self.resolve_news_items(request.use_real_time_data, request.topic)
        logger.info(f"Final news items count: {len(items)}")

        if request.stream and self._should_use_ai(request.use_template):
            stream = await self._open_stream(voice_profile, items)
            if stream is not None:
                return StreamingGeneration(
                    chunks=stream, news_item_count=len(items), data_source=data_source
                )
            generated = GeneratedContent(
                content=self.template_generator.generate_newsletter(voice_profile, items),
                method=GenerationMethod.TEMPLATE,
                degraded=True,
            )
        else:
            generated = await self.generate_content(voice_profile, items, use_ai=not request.use_template)

        return GenerationResult(
            content=generated.content,
            generated_at=self.clock(),
            data_source=data_source,
            topic=request.topic or "general",
            ai_generated=generated.method == GenerationMethod.AI,
            news_item_count=len(items),
            outcome=GenerationOutcome.DEGRADED if generated.degraded else GenerationOutcome.SUCCESS,
        )

    async def resolve_voice_profile(self, user_id: str) -> Optional[VoiceProfile]:
        """Latest profile, or None so generators apply their defaults."""
        try:
            return await self.profiles.get_latest_voice_profile(user_id)
        except StoreError as e:
            logger.warning(f"Error loading voice profile, using defaults: {e}")
            return None

    async def resolve_news_items(
        self, use_real_time_data: bool, topic: Optional[str] = None
    ) -> Tuple[List[NewsItem], DataSource]:
        """Pick live or curated items.

        The mock path takes ``curated_mock_count`` items while a failed or
        empty live fetch takes the smaller ``curated_fallback_count`` slice.
        Any curated result is reported as ``DataSource.MOCK``.

        Raises:
            NoContentAvailableError: If the curated fallback is needed but empty.
        """
        if not use_real_time_data:
            return self.curated.items(self.settings.curated_mock_count), DataSource.MOCK

        try:
            logger.info("Fetching real-time news...")
            news = await self.aggregator.fetch_all_news_sources()
            items = list(news.all_sources)
        except Exception as e:
            logger.error(f"Error fetching real-time data, using curated fallback: {e}")
            return self.curated.items(self.settings.curated_fallback_count), DataSource.MOCK

        if topic:
            items = filter_by_topic(items, topic)
            logger.info(f'After filtering by topic "{topic}": {len(items)} items')

        if not items:
            logger.info("No real-time news found, falling back to curated dataset")
            return self.curated.items(self.settings.curated_fallback_count), DataSource.MOCK
        return items, DataSource.REAL_TIME

    def _should_use_ai(self, use_template: bool) -> bool:
        return not use_template and self.ai_generator.available

    async def generate_content(
        self,
        voice_profile: Optional[VoiceProfile],
        items: List[NewsItem],
        use_ai: bool = True,
    ) -> GeneratedContent:
        """Template when asked for or when AI is unavailable, else AI with template fallback."""
        if not (use_ai and self.ai_generator.available):
            logger.info("Using template-based generation")
            return GeneratedContent(
                content=self.template_generator.generate_newsletter(voice_profile, items),
                method=GenerationMethod.TEMPLATE,
            )

        try:
            logger.info("Using AI generation")
            content = await self.ai_generator.generate_newsletter(voice_profile, items)
            return GeneratedContent(content=content, method=GenerationMethod.AI)
        except AIGenerationError as e:
            logger.warning(f"AI generation failed, falling back to template: {e}")
        except Exception as e:
            logger.error(f"Unexpected AI generation error, falling back to template: {e}")

        return GeneratedContent(
            content=self.template_generator.generate_newsletter(voice_profile, items),
            method=GenerationMethod.TEMPLATE,
            degraded=True,
        )

    async def _open_stream(
        self, voice_profile: Optional[VoiceProfile], items: List[NewsItem]
    ) -> Optional[AsyncIterator[bytes]]:
        """Start the AI stream and wait for its first chunk.

        Returns None if the provider fails before producing anything, so the
        caller can fall back to a template envelope.
        """
        stream = self.ai_generator.generate_newsletter_stream(voice_profile, items)
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = None
        except AIGenerationError as e:
            logger.warning(f"AI streaming failed to start, falling back to template: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected AI streaming error, falling back to template: {e}")
            return None

        async def relay() -> AsyncIterator[bytes]:
            if first is not None:
                yield first
            async for chunk in stream:
                yield chunk

        return relay()

    async def generate_enhanced_draft(
        self,
        user_id: Optional[str],
        topic: Optional[str] = None,
        use_real_time_data: bool = True,
    ) -> GenerationResult:
        """Sectioned digest: AI when configured, enhanced template otherwise.

        A topic that matches nothing uses the unfiltered live items rather
        than the curated dataset.
        """
        if not user_id:
            raise InvalidRequestError("userId is required")

        voice_profile = await self.resolve_voice_profile(user_id)

        if use_real_time_data:
            try:
                news = await self.aggregator.fetch_all_news_sources()
                items = list(news.all_sources)
            except Exception as e:
                logger.error(f"Error fetching real-time data for enhanced draft: {e}")
                items = []
            if topic:
                items = filter_by_topic(items, topic) or items
            data_source = DataSource.REAL_TIME
            if not items:
                items = self.curated.items(self.settings.curated_fallback_count)
                data_source = DataSource.MOCK
        else:
            items = self.curated.items(self.settings.curated_mock_count)
            data_source = DataSource.MOCK

        degraded = False
        method = GenerationMethod.TEMPLATE
        content = None
        if self.ai_generator.available:
            try:
                content = await self.ai_generator.generate_newsletter(voice_profile, items)
                method = GenerationMethod.AI
            except AIGenerationError as e:
                logger.warning(f"AI generation failed, falling back to enhanced template: {e}")
                degraded = True
            except Exception as e:
                logger.error(f"Unexpected AI error, falling back to enhanced template: {e}")
                degraded = True

        if content is None:
            content = self.template_generator.generate_enhanced_newsletter(voice_profile, items)

        return GenerationResult(
            content=content,
            generated_at=self.clock(),
            data_source=data_source,
            topic=topic or "general",
            ai_generated=method == GenerationMethod.AI,
            news_item_count=len(items),
            outcome=GenerationOutcome.DEGRADED if degraded else GenerationOutcome.SUCCESS,
        )
