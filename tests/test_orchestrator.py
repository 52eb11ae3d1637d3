"""Tests for the generation fallback chain."""

from unittest.mock import AsyncMock

import pytest

from soulthread.clients.openai_chat import OpenAIChatClient
from soulthread.core.ai_generator import AIGenerator
from soulthread.core.curated import CURATED_SOURCE, CuratedDataset
from soulthread.core.errors import AIGenerationError, InvalidRequestError, NoContentAvailableError, StoreError
from soulthread.core.orchestrator import GenerationOrchestrator, StreamingGeneration
from soulthread.models.content import (
    AggregatedNews,
    DataSource,
    GenerationOutcome,
    GenerationRequest,
)


def _request(**kwargs):
    kwargs.setdefault("user_id", "u1")
    return GenerationRequest(**kwargs)


@pytest.mark.asyncio
async def test_missing_user_id_is_invalid(orchestrator):
    with pytest.raises(InvalidRequestError):
        await orchestrator.generate(GenerationRequest(user_id=None))


@pytest.mark.asyncio
async def test_mock_path_uses_curated_mock_slice(orchestrator, ai_generator):
    # Curated "mock" slice through the template generator
    result = await orchestrator.generate(_request(use_real_time_data=False, use_template=True))
    assert result.data_source == DataSource.MOCK
    assert result.news_item_count == 8
    assert result.ai_generated is False
    assert result.topic == "general"
    assert result.content.count(f"*Source: {CURATED_SOURCE}*") == 8
    assert "- Items: 8" in result.content
    assert "Hey there! 👋" in result.content
    ai_generator.generate_newsletter.assert_not_called()


@pytest.mark.asyncio
async def test_live_items_with_ai(orchestrator, fixed_clock):
    result = await orchestrator.generate(_request())
    assert result.content == "# AI newsletter"
    assert result.ai_generated is True
    assert result.data_source == DataSource.REAL_TIME
    assert result.news_item_count == 3
    assert result.outcome == GenerationOutcome.SUCCESS
    assert result.generated_at == fixed_clock()


@pytest.mark.asyncio
async def test_latest_voice_profile_reaches_generator(orchestrator, ai_generator, voice_profile):
    await orchestrator.generate(_request())
    profile, items = ai_generator.generate_newsletter.await_args.args
    assert profile == voice_profile
    assert len(items) == 3


@pytest.mark.asyncio
async def test_topic_filter_keeps_matching_items(orchestrator, ai_generator):
    result = await orchestrator.generate(_request(topic="ai"))
    _, items = ai_generator.generate_newsletter.await_args.args
    assert [item.title for item in items] == ["OpenAI ships new model", "awesome-ai"]
    assert result.topic == "ai"
    assert result.news_item_count == 2


@pytest.mark.asyncio
async def test_unmatched_topic_falls_back_to_curated_slice(orchestrator):
    result = await orchestrator.generate(_request(topic="Quantum", use_template=True))
    assert result.data_source == DataSource.MOCK
    assert result.news_item_count == 5
    assert f"*Source: {CURATED_SOURCE}*" in result.content


@pytest.mark.asyncio
async def test_all_providers_failing_still_produces_items(orchestrator, aggregator):
    aggregator.fetch_all_news_sources.return_value = AggregatedNews()
    result = await orchestrator.generate(_request(use_template=True))
    assert result.news_item_count == 5
    assert result.data_source == DataSource.MOCK


@pytest.mark.asyncio
async def test_aggregator_exception_falls_back(orchestrator, aggregator):
    aggregator.fetch_all_news_sources.side_effect = RuntimeError("unexpected")
    result = await orchestrator.generate(_request(use_template=True))
    assert result.news_item_count == 5
    assert result.data_source == DataSource.MOCK


@pytest.mark.asyncio
async def test_ai_failure_degrades_to_template(orchestrator, ai_generator, template_generator, voice_profile, live_items):
    ai_generator.generate_newsletter.side_effect = AIGenerationError("OpenAI Error: 429 - quota exceeded", status=429)
    result = await orchestrator.generate(_request())
    assert result.ai_generated is False
    assert result.template_generated is True
    assert result.outcome == GenerationOutcome.DEGRADED
    assert result.content == template_generator.generate_newsletter(voice_profile, live_items)


@pytest.mark.asyncio
async def test_unexpected_ai_error_is_masked(orchestrator, ai_generator):
    ai_generator.generate_newsletter.side_effect = KeyError("choices")
    result = await orchestrator.generate(_request())
    assert result.ai_generated is False
    assert result.content


@pytest.mark.asyncio
async def test_no_ai_key_uses_template(mock_settings, aggregator, template_generator, store, curated):
    orchestrator = GenerationOrchestrator(
        mock_settings, aggregator, template_generator, AIGenerator(OpenAIChatClient(None)), store, curated
    )
    result = await orchestrator.generate(_request())
    assert result.ai_generated is False
    assert result.outcome == GenerationOutcome.SUCCESS


@pytest.mark.asyncio
async def test_store_error_uses_default_profile(orchestrator, store):
    store.get_latest_voice_profile = AsyncMock(side_effect=StoreError("voicedna", "down"))
    result = await orchestrator.generate(_request(use_template=True))
    assert "- Topics: technology" in result.content


@pytest.mark.asyncio
async def test_empty_curated_dataset_is_hard_failure(mock_settings, aggregator, template_generator, ai_generator, store):
    aggregator.fetch_all_news_sources.return_value = AggregatedNews()
    orchestrator = GenerationOrchestrator(
        mock_settings, aggregator, template_generator, ai_generator, store, CuratedDataset(records=[])
    )
    with pytest.raises(NoContentAvailableError):
        await orchestrator.generate(_request())


@pytest.mark.asyncio
async def test_streaming_returns_raw_chunks(orchestrator, ai_generator):
    async def chunks(profile, items):
        yield b"Hello "
        yield b"world"

    ai_generator.generate_newsletter_stream = chunks
    result = await orchestrator.generate(_request(stream=True))
    assert isinstance(result, StreamingGeneration)
    assert result.news_item_count == 3
    assert b"".join([chunk async for chunk in result.chunks]) == b"Hello world"


@pytest.mark.asyncio
async def test_stream_failing_before_first_chunk_falls_back(orchestrator, ai_generator):
    async def failing(profile, items):
        raise AIGenerationError("OpenAI Error: 401 - bad key")
        yield b""  # pragma: no cover

    ai_generator.generate_newsletter_stream = failing
    result = await orchestrator.generate(_request(stream=True))
    assert not isinstance(result, StreamingGeneration)
    assert result.ai_generated is False
    assert result.outcome == GenerationOutcome.DEGRADED


@pytest.mark.asyncio
async def test_stream_with_template_returns_envelope(orchestrator):
    result = await orchestrator.generate(_request(stream=True, use_template=True))
    assert not isinstance(result, StreamingGeneration)
    assert result.ai_generated is False


@pytest.mark.asyncio
async def test_enhanced_draft_uses_unfiltered_items_when_topic_misses(orchestrator, ai_generator):
    ai_generator.generate_newsletter.side_effect = AIGenerationError("down")
    result = await orchestrator.generate_enhanced_draft("u1", topic="quantum")
    assert result.data_source == DataSource.REAL_TIME
    assert result.news_item_count == 3
    assert result.outcome == GenerationOutcome.DEGRADED
    assert "## 📈 Trending Topics" in result.content


@pytest.mark.asyncio
async def test_enhanced_draft_requires_user(orchestrator):
    with pytest.raises(InvalidRequestError):
        await orchestrator.generate_enhanced_draft(None)


@pytest.mark.asyncio
async def test_enhanced_draft_prefers_ai(orchestrator):
    result = await orchestrator.generate_enhanced_draft("u1", topic="ai")
    assert result.ai_generated is True
    assert result.content == "# AI newsletter"
    assert result.news_item_count == 2


@pytest.mark.asyncio
async def test_enhanced_draft_survives_unexpected_ai_error(orchestrator, ai_generator):
    ai_generator.generate_newsletter.side_effect = ValueError("Expecting value")
    result = await orchestrator.generate_enhanced_draft("u1")
    assert result.ai_generated is False
    assert result.outcome == GenerationOutcome.DEGRADED
    assert "## 📈 Trending Topics" in result.content


@pytest.mark.asyncio
async def test_stream_unexpected_error_before_first_chunk_falls_back(orchestrator, ai_generator):
    async def failing(profile, items):
        raise ValueError("bad bytes")
        yield b""  # pragma: no cover

    ai_generator.generate_newsletter_stream = failing
    result = await orchestrator.generate(_request(stream=True))
    assert not isinstance(result, StreamingGeneration)
    assert result.outcome == GenerationOutcome.DEGRADED
