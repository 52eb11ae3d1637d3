"""Service wiring: builds every client once and hands them to the pipeline."""

import logging
from typing import Dict, Optional

from soulthread.clients.openai_chat import OpenAIChatClient
from soulthread.clients.resend import ResendClient
from soulthread.clients.supabase import SupabaseStore
from soulthread.core.aggregator import NewsAggregator
from soulthread.core.ai_generator import AIGenerator
from soulthread.core.curated import CuratedDataset, get_curated_dataset
from soulthread.core.delivery import DeliveryBatcher, EmailService
from soulthread.core.orchestrator import GenerationOrchestrator
from soulthread.core.scheduled import ScheduledSendJob
from soulthread.core.stores import InMemoryStore
from soulthread.core.template_generator import PhraseSelector, TemplateGenerator
from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)


def build_store(settings: Settings):
    """Supabase when configured, otherwise an empty process-local store."""
    if settings.supabase_enabled:
        return SupabaseStore(settings.supabase_url, settings.supabase_service_key, settings)
    logger.warning("Supabase not configured, using in-memory store")
    return InMemoryStore()


class NewsletterService:
    """Owns the clients and exposes the orchestrator and the scheduled job.

    Every collaborator can be injected; anything left out is built from
    ``settings``.
    """

    def __init__(
        self,
        settings: Settings,
        store=None,
        aggregator: Optional[NewsAggregator] = None,
        openai_client: Optional[OpenAIChatClient] = None,
        resend_client: Optional[ResendClient] = None,
        selector: Optional[PhraseSelector] = None,
        curated: Optional[CuratedDataset] = None,
    ):
        self.settings = settings
        self.store = store if store is not None else build_store(settings)
        self.aggregator = aggregator if aggregator is not None else NewsAggregator(settings)
        self.curated = curated if curated is not None else get_curated_dataset()

        self.openai_client = openai_client if openai_client is not None else OpenAIChatClient(
            settings.openai_api_key, settings.openai_model, settings
        )
        self.ai_generator = AIGenerator(
            self.openai_client,
            stream_model=settings.openai_stream_model,
            helper_model=settings.openai_helper_model,
        )
        self.template_generator = TemplateGenerator(selector=selector)

        self.resend_client = (
            resend_client if resend_client is not None else ResendClient(settings.resend_api_key, settings)
        )
        self.email_service = EmailService(self.resend_client, self.store)
        self.batcher = DeliveryBatcher(
            self.email_service,
            batch_size=settings.email_batch_size,
            delay=settings.email_batch_delay,
        )

        self.orchestrator = GenerationOrchestrator(
            settings,
            self.aggregator,
            self.template_generator,
            self.ai_generator,
            self.store,
            self.curated,
        )
        self.scheduled_job = ScheduledSendJob(
            settings,
            self.aggregator,
            self.template_generator,
            self.ai_generator,
            users=self.store,
            profiles=self.store,
            preferences=self.store,
            batcher=self.batcher,
            curated=self.curated,
        )

    def service_status(self) -> Dict[str, bool]:
        """Which external services have credentials configured."""
        return {
            "openai": self.ai_generator.available,
            "news_api": bool(self.settings.news_api_key),
            "perplexity": self.aggregator.perplexity_configured,
            "resend": self.email_service.configured,
            "supabase": self.settings.supabase_enabled,
            "curated_dataset": len(self.curated) > 0,
        }
