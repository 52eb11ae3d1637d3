"""Tests for the content models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from soulthread.models.content import (
    DataSource,
    EmailPreferences,
    GenerationOutcome,
    GenerationRequest,
    GenerationResult,
    NewsItem,
    VoiceAnalysis,
    VoiceProfile,
)

FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


class TestVoiceProfile:
    def test_defaults(self):
        profile = VoiceProfile()
        assert profile.topics == "technology"
        assert profile.tone == "professional"
        assert profile.feeling == "informed"
        assert profile.analysis is None

    def test_blank_fields_fall_back_to_defaults(self):
        profile = VoiceProfile(topics="  ", tone="", feeling=None)
        assert profile.topics == "technology"
        assert profile.tone == "professional"
        assert profile.feeling == "informed"

    def test_unknown_tone_is_kept_but_treated_as_professional(self):
        profile = VoiceProfile(tone="Sarcastic")
        assert profile.tone == "sarcastic"
        assert profile.known_tone == "professional"

    def test_is_immutable(self):
        profile = VoiceProfile()
        with pytest.raises(ValidationError):
            profile.tone = "casual"

    def test_analysis_accepts_camel_case(self):
        analysis = VoiceAnalysis.model_validate(
            {"avgSentenceLength": 14.5, "sentiment": "POSITIVE", "wordCount": 300, "keywords": list("abcdefg")}
        )
        assert analysis.avg_sentence_length == 14.5
        assert analysis.sentiment == "positive"
        assert analysis.word_count == 300
        assert analysis.keywords == ["a", "b", "c", "d", "e"]


class TestNewsItem:
    def test_title_whitespace_is_collapsed(self):
        assert NewsItem(title="  Big   news \n today ").title == "Big news today"

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_is_rejected(self, title):
        with pytest.raises(ValidationError):
            NewsItem(title=title)

    def test_missing_summary_becomes_empty_string(self):
        assert NewsItem(title="x", summary=None).summary == ""


class TestGenerationRequest:
    def test_parses_camel_case_body(self):
        request = GenerationRequest.model_validate(
            {"userId": "u1", "topic": "AI", "useRealTimeData": False, "useTemplate": True, "stream": True}
        )
        assert request.user_id == "u1"
        assert request.use_real_time_data is False
        assert request.use_template is True
        assert request.stream is True

    def test_defaults(self):
        request = GenerationRequest()
        assert request.user_id is None
        assert request.use_real_time_data is True
        assert request.use_template is False
        assert request.stream is False

    def test_blank_topic_means_no_topic(self):
        assert GenerationRequest(user_id="u1", topic="  ").topic is None


def test_generation_result_response_shape():
    result = GenerationResult(
        content="# Hi",
        generated_at=FIXED_NOW,
        data_source=DataSource.MOCK,
        ai_generated=False,
        news_item_count=8,
        outcome=GenerationOutcome.DEGRADED,
    )
    assert result.to_response() == {
        "draft": "# Hi",
        "generatedAt": FIXED_NOW.isoformat(),
        "dataSource": "mock",
        "topic": "general",
        "aiGenerated": False,
        "templateGenerated": True,
        "newsItemCount": 8,
        "outcome": "degraded",
    }


def test_generation_result_rejects_negative_count():
    with pytest.raises(ValidationError):
        GenerationResult(content="", data_source=DataSource.MOCK, ai_generated=False, news_item_count=-1)


class TestEmailPreferences:
    def test_comma_separated_lists_are_split(self):
        prefs = EmailPreferences(user_id="u1", topics="ai, startups", preferred_sources="perplexity,reddit")
        assert prefs.topics == ["ai", "startups"]
        assert prefs.preferred_sources == ["perplexity", "reddit"]

    def test_defaults(self):
        prefs = EmailPreferences(user_id="u1")
        assert prefs.preferred_sources == ["reddit", "hackernews", "github"]
        assert prefs.max_items is None
        assert prefs.use_ai_generation is False

    @pytest.mark.parametrize("hour", [-1, 24])
    def test_delivery_hour_bounds(self, hour):
        with pytest.raises(ValidationError):
            EmailPreferences(user_id="u1", delivery_hour=hour)
