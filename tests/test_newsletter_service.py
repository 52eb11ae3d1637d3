"""Tests for service wiring."""

from soulthread.clients.supabase import SupabaseStore
from soulthread.core.curated import CuratedDataset
from soulthread.core.newsletter import NewsletterService, build_store
from soulthread.core.stores import InMemoryStore


def test_in_memory_store_without_supabase(mock_settings):
    assert isinstance(build_store(mock_settings), InMemoryStore)


def test_supabase_store_when_configured(mock_settings):
    mock_settings.supabase_url = "https://proj.supabase.co"
    mock_settings.supabase_service_key = "service-key"
    assert isinstance(build_store(mock_settings), SupabaseStore)


def test_service_status_without_credentials(mock_settings, curated):
    status = NewsletterService(mock_settings, curated=curated).service_status()
    assert status == {
        "openai": False,
        "news_api": False,
        "perplexity": False,
        "resend": False,
        "supabase": False,
        "curated_dataset": True,
    }


def test_service_status_with_credentials(mock_settings, curated):
    mock_settings.openai_api_key = "sk-test"
    mock_settings.resend_api_key = "re_test"
    status = NewsletterService(mock_settings, curated=curated).service_status()
    assert status["openai"] is True
    assert status["resend"] is True


def test_empty_curated_dataset_is_reported(mock_settings):
    status = NewsletterService(mock_settings, curated=CuratedDataset(records=[])).service_status()
    assert status["curated_dataset"] is False


def test_batcher_uses_settings(mock_settings, curated):
    mock_settings.email_batch_size = 3
    mock_settings.email_batch_delay = 0.5
    service = NewsletterService(mock_settings, curated=curated)
    assert service.batcher.batch_size == 3
    assert service.batcher.delay == 0.5
