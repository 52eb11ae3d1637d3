"""Settings and configuration management."""

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # AI Generation
    openai_api_key: Optional[str] = Field(None, description="OpenAI key")
    openai_model: str = Field(
        "gpt-4o-mini", description="Chat model used for newsletter generation"
    )
    openai_stream_model: Optional[str] = Field(
        None, description="Chat model used for streamed generation (defaults to openai_model)"
    )
    openai_helper_model: str = Field(
        "gpt-3.5-turbo", description="Model for subject lines and enhancements"
    )
    openai_base_url: str = Field(
        "https://api.openai.com/v1", description="Chat completions API base URL"
    )

    # News Sources
    news_api_key: Optional[str] = Field(None, description="News API key")
    perplexity_api_key: Optional[str] = Field(None, description="Perplexity key")
    news_api_category: str = Field("technology", description="News API category")
    reddit_subreddit: str = Field("technology", description="Subreddit to poll")
    github_language: str = Field(
        "javascript", description="Language filter for GitHub trending search"
    )
    news_items_per_source: int = Field(
        5, ge=1, le=50, description="Items requested from each news provider"
    )

    # Email Delivery
    resend_api_key: Optional[str] = Field(None, description="Resend key")
    email_from: str = Field(
        "SoulThread Newsletter <newsletter@soulthread.app>",
        description="Sender address for newsletter emails",
    )
    email_batch_size: int = Field(
        10, ge=1, le=100, description="Emails dispatched concurrently per batch"
    )
    email_batch_delay: float = Field(
        1.0, ge=0.0, le=60.0, description="Seconds to wait between email batches"
    )

    # Stores
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_service_key: Optional[str] = Field(
        None, description="Supabase service role key"
    )

    # Scheduled Delivery
    cron_secret: Optional[str] = Field(
        None, description="Bearer token required by the scheduled send endpoint"
    )
    default_max_items: int = Field(
        8, ge=1, le=50, description="Default item count for scheduled newsletters"
    )
    celery_broker_url: str = Field(
        "redis://localhost:6379/0", description="Celery broker and result backend for the hourly beat"
    )

    # Curated Fallback
    curated_mock_count: int = Field(
        8, ge=1, le=50, description="Curated items used when real-time data is off"
    )
    curated_fallback_count: int = Field(
        5, ge=1, le=50, description="Curated items used when real-time data is empty"
    )

    # Application Settings
    debug: bool = Field(False, description="Debug mode")
    log_level: str = Field("INFO", description="Log level")

    # API Timeout Settings (in seconds)
    provider_timeout: float = Field(
        15.0, ge=1.0, le=60.0, description="News provider request timeout in seconds"
    )
    openai_timeout: float = Field(
        60.0, ge=5.0, le=300.0, description="Chat completions request timeout in seconds"
    )
    perplexity_timeout: float = Field(
        30.0, ge=5.0, le=120.0, description="Perplexity request timeout in seconds"
    )
    resend_timeout: float = Field(
        15.0, ge=3.0, le=60.0, description="Resend API request timeout in seconds"
    )
    supabase_timeout: float = Field(
        10.0, ge=1.0, le=60.0, description="Supabase REST request timeout in seconds"
    )

    default_user_agent: str = Field(
        "SoulThread/1.0",
        min_length=5,
        max_length=100,
        description="Default User-Agent for HTTP requests",
    )

    @model_validator(mode="after")
    def check_curated_slices(self) -> "Settings":
        """Keep the mock slice at least as large as the real-time fallback slice."""
        if self.curated_mock_count < self.curated_fallback_count:
            logger.warning(
                f"curated_mock_count ({self.curated_mock_count}) is smaller than "
                f"curated_fallback_count ({self.curated_fallback_count})"
            )
        return self

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)
