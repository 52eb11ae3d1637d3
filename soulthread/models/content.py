"""Content models for newsletter generation and delivery."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

KNOWN_TONES = ("casual", "professional", "friendly", "authoritative")
DEFAULT_TOPICS = "technology"
DEFAULT_TONE = "professional"
DEFAULT_FEELING = "informed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DataSource(str, Enum):
    """Where the news items of a generation came from."""

    REAL_TIME = "real-time"
    MOCK = "mock"


class GenerationMethod(str, Enum):
    """Which generator produced the content."""

    TEMPLATE = "template"
    AI = "ai"


class GenerationOutcome(str, Enum):
    """Structured status of a generation request."""

    SUCCESS = "success"
    DEGRADED = "degraded"
    HARD_FAILURE = "hard_failure"


class VoiceAnalysis(BaseModel):
    """Derived text metrics from a user's writing sample."""

    avg_sentence_length: float = Field(0.0, alias="avgSentenceLength")
    sentiment: str = Field("neutral", description="positive, negative or neutral")
    keywords: List[str] = Field(default_factory=list)
    word_count: int = Field(0, alias="wordCount")
    complex_words: int = Field(0, alias="complexWords")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("sentiment")
    @classmethod
    def normalize_sentiment(cls, value: str) -> str:
        value = (value or "").lower()
        return value if value in ("positive", "negative", "neutral") else "neutral"

    @field_validator("keywords")
    @classmethod
    def limit_keywords(cls, value: List[str]) -> List[str]:
        return value[:5]


class VoiceProfile(BaseModel):
    """User specific style parameters used to flavor generated content."""

    topics: str = Field(DEFAULT_TOPICS, description="Free text topic list")
    tone: str = Field(DEFAULT_TONE, description="Writing tone preset")
    feeling: str = Field(DEFAULT_FEELING, description="How readers should feel")
    analysis: Optional[VoiceAnalysis] = Field(None, description="Derived metrics")

    model_config = ConfigDict(frozen=True)

    @field_validator("topics", "feeling", mode="before")
    @classmethod
    def blank_to_default(cls, value, info):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TOPICS if info.field_name == "topics" else DEFAULT_FEELING
        return value

    @field_validator("tone", mode="before")
    @classmethod
    def normalize_tone(cls, value) -> str:
        if not value or not isinstance(value, str):
            return DEFAULT_TONE
        return value.strip().lower()

    @property
    def known_tone(self) -> str:
        """Tone preset, or ``professional`` for anything unrecognised."""
        return self.tone if self.tone in KNOWN_TONES else DEFAULT_TONE


class NewsItem(BaseModel):
    """A normalized news item from any provider."""

    title: str = Field(..., min_length=1, description="Headline")
    summary: str = Field("", description="Short summary")
    url: Optional[str] = Field(None, description="Original URL")
    source: Optional[str] = Field(None, description="Provenance label")
    published_at: Optional[str] = Field(None, description="ISO-8601 timestamp")
    score: Optional[int] = Field(None, description="Upvotes or points")
    comments: Optional[int] = Field(None, description="Comment count")
    stars: Optional[int] = Field(None, description="GitHub stars")
    language: Optional[str] = Field(None, description="Repository language")
    relevance_score: Optional[float] = Field(None, description="Provider ranking")

    model_config = ConfigDict(frozen=True)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = " ".join(value.split())
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("summary", mode="before")
    @classmethod
    def none_summary(cls, value) -> str:
        return value or ""


class AggregatedNews(BaseModel):
    """News items grouped by provider plus the flattened list."""

    news_api: List[NewsItem] = Field(default_factory=list)
    reddit: List[NewsItem] = Field(default_factory=list)
    hacker_news: List[NewsItem] = Field(default_factory=list)
    github: List[NewsItem] = Field(default_factory=list)
    all_sources: List[NewsItem] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    """Parameters of one newsletter generation."""

    user_id: Optional[str] = Field(None, alias="userId")
    topic: Optional[str] = Field(None, description="Case-insensitive filter")
    use_real_time_data: bool = Field(True, alias="useRealTimeData")
    use_template: bool = Field(False, alias="useTemplate")
    stream: bool = Field(False, description="Stream AI output")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("topic", mode="before")
    @classmethod
    def blank_topic(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class GenerationResult(BaseModel):
    """Envelope returned for interactive generation."""

    content: str = Field(..., description="Generated newsletter markdown")
    generated_at: datetime = Field(default_factory=_utcnow)
    data_source: DataSource = Field(..., description="real-time or mock")
    topic: str = Field("general", description="Requested topic")
    ai_generated: bool = Field(..., description="True only if AI wrote content")
    news_item_count: int = Field(..., ge=0)
    outcome: GenerationOutcome = Field(GenerationOutcome.SUCCESS)

    @property
    def template_generated(self) -> bool:
        return not self.ai_generated

    def to_response(self) -> Dict[str, object]:
        """Serialize to the JSON shape the web clients expect.

        The newsletter text goes out under ``draft``, the key the
        ai-generate clients read.
        """
        return {
            "draft": self.content,
            "generatedAt": self.generated_at.isoformat(),
            "dataSource": self.data_source.value,
            "topic": self.topic,
            "aiGenerated": self.ai_generated,
            "templateGenerated": self.template_generated,
            "newsItemCount": self.news_item_count,
            "outcome": self.outcome.value,
        }


class Recipient(BaseModel):
    """Email recipient for scheduled delivery."""

    user_id: str
    email: str
    name: Optional[str] = None


class DeliveryJob(BaseModel):
    """Newsletter content prepared for one recipient."""

    subject: str
    content: str
    news_item_count: int = 0
    generation_method: GenerationMethod = GenerationMethod.TEMPLATE
    data_sources: List[str] = Field(default_factory=list)


class EmailResult(BaseModel):
    """Outcome of sending a single email."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Aggregate outcome of a batch send."""

    sent: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


class EmailPreferences(BaseModel):
    """Per-user scheduled delivery preferences."""

    user_id: str
    email_enabled: bool = True
    email_frequency: str = "daily"
    delivery_hour: int = Field(9, ge=0, le=23)
    timezone: str = "UTC"
    topics: List[str] = Field(default_factory=lambda: [DEFAULT_TOPICS])
    preferred_sources: List[str] = Field(
        default_factory=lambda: ["reddit", "hackernews", "github"]
    )
    use_ai_generation: bool = False
    max_items: Optional[int] = Field(None, ge=1, le=50)

    @field_validator("topics", "preferred_sources", mode="before")
    @classmethod
    def coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class DeliveryRecord(BaseModel):
    """Row written to the email delivery log."""

    user_id: str
    email_to: str
    subject_line: str
    status: str = Field(..., description="pending, sent or failed")
    provider_message_id: Optional[str] = None
    error_message: Optional[str] = None
    news_items_count: int = 0
    generation_method: GenerationMethod = GenerationMethod.TEMPLATE
    data_sources: List[str] = Field(default_factory=list)
    sent_at: Optional[datetime] = None
