from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from soulthread.clients.openai_chat import OpenAIChatClient
from soulthread.core.aggregator import NewsAggregator
from soulthread.core.ai_generator import AIGenerator
from soulthread.core.curated import CuratedDataset
from soulthread.core.orchestrator import GenerationOrchestrator
from soulthread.core.stores import InMemoryStore
from soulthread.core.template_generator import FirstPhraseSelector, TemplateGenerator
from soulthread.models.content import AggregatedNews, NewsItem, Recipient, VoiceProfile
from soulthread.models.settings import Settings

FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

CURATED_RECORDS = [
    {"title": f"Curated story {n}", "summary": f"Curated summary number {n}"} for n in range(1, 11)
]


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def mock_settings():
    """Settings with every credential cleared so no test reaches the network."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        news_api_key=None,
        perplexity_api_key=None,
        resend_api_key=None,
        supabase_url=None,
        supabase_service_key=None,
        cron_secret="test-secret",
    )


@pytest.fixture
def curated():
    return CuratedDataset(records=list(CURATED_RECORDS))


@pytest.fixture
def voice_profile():
    return VoiceProfile(topics="AI", tone="casual", feeling="inspired")


@pytest.fixture
def store(voice_profile):
    return InMemoryStore(
        users={"u1": Recipient(user_id="u1", email="u1@example.com", name="Ada")},
        profiles={"u1": [VoiceProfile(), voice_profile]},
    )


@pytest.fixture
def live_items():
    return [
        NewsItem(title="OpenAI ships new model", summary="A new AI model", url="https://a.example", source="Hacker News"),
        NewsItem(title="Rust 2.0 released", summary="Systems language update", source="Reddit", score=420),
        NewsItem(title="awesome-ai", summary="Curated AI tools", source="GitHub", stars=1200, language="Python"),
    ]


@pytest.fixture
def aggregator(mock_settings, live_items):
    aggregator = NewsAggregator(mock_settings)
    aggregator.fetch_all_news_sources = AsyncMock(
        return_value=AggregatedNews(all_sources=list(live_items))
    )
    return aggregator


@pytest.fixture
def template_generator(fixed_clock):
    return TemplateGenerator(selector=FirstPhraseSelector(), clock=fixed_clock)


@pytest.fixture
def ai_generator():
    """AI generator with credentials but no network; tests replace its calls."""
    generator = AIGenerator(OpenAIChatClient("test-key"))
    generator.generate_newsletter = AsyncMock(return_value="# AI newsletter")
    return generator


@pytest.fixture
def orchestrator(mock_settings, aggregator, template_generator, ai_generator, store, curated, fixed_clock):
    return GenerationOrchestrator(
        mock_settings,
        aggregator,
        template_generator,
        ai_generator,
        store,
        curated,
        clock=fixed_clock,
    )
