"""Tests for the Supabase and in-memory stores."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from soulthread.clients.http import ProviderHTTPError
from soulthread.clients.supabase import SupabaseStore
from soulthread.core.errors import StoreError
from soulthread.core.stores import InMemoryStore
from soulthread.models.content import DeliveryRecord, EmailPreferences

FETCH = "soulthread.clients.supabase.fetch_json"


@pytest.fixture
def supabase():
    return SupabaseStore("https://proj.supabase.co/", "service-key")


@pytest.mark.asyncio
async def test_get_user_reads_auth_admin(supabase):
    user = {"user": {"email": "ada@example.com", "user_metadata": {"name": "Ada"}}}
    with patch(FETCH, new=AsyncMock(return_value=user)) as fetch:
        recipient = await supabase.get_user("u1")
    assert fetch.await_args.args[0] == "https://proj.supabase.co/auth/v1/admin/users/u1"
    assert recipient.email == "ada@example.com"
    assert recipient.name == "Ada"


@pytest.mark.asyncio
async def test_get_user_missing_is_none(supabase):
    with patch(FETCH, new=AsyncMock(side_effect=ProviderHTTPError("Supabase Auth", 404, "not found"))):
        assert await supabase.get_user("u1") is None


@pytest.mark.asyncio
async def test_latest_voice_profile(supabase):
    rows = [{"data": {"topics": "Rust", "tone": "friendly", "feeling": "excited"}}]
    with patch(FETCH, new=AsyncMock(return_value=rows)) as fetch:
        profile = await supabase.get_latest_voice_profile("u1")
    assert profile.topics == "Rust"
    params = fetch.await_args.kwargs["params"]
    assert params["order"] == "created_at.desc"
    assert params["user_id"] == "eq.u1"


@pytest.mark.asyncio
async def test_voice_profile_store_failure(supabase):
    with patch(FETCH, new=AsyncMock(side_effect=aiohttp.ClientError("reset"))):
        with pytest.raises(StoreError):
            await supabase.get_latest_voice_profile("u1")


@pytest.mark.asyncio
async def test_daily_subscribers_skip_malformed_rows(supabase):
    rows = [
        {"user_id": "u1", "delivery_hour": 9, "topics": "AI, Rust", "preferred_sources": None},
        {"user_id": "u2", "delivery_hour": 99},
    ]
    with patch(FETCH, new=AsyncMock(return_value=rows)):
        preferences = await supabase.list_daily_subscribers()
    assert [pref.user_id for pref in preferences] == ["u1"]
    assert preferences[0].topics == ["AI", "Rust"]
    assert preferences[0].preferred_sources == []


@pytest.mark.asyncio
async def test_daily_subscribers_store_failure(supabase):
    with patch(FETCH, new=AsyncMock(side_effect=ProviderHTTPError("Supabase", 500, "boom"))):
        with pytest.raises(StoreError, match="email_preferences"):
            await supabase.list_daily_subscribers()


@pytest.mark.asyncio
async def test_delivery_logging_failures_are_not_raised(supabase):
    record = DeliveryRecord(user_id="u1", email_to="a@b.c", subject_line="Hi", status="sent")
    with patch(FETCH, new=AsyncMock(side_effect=aiohttp.ClientError("down"))):
        await supabase.record_delivery(record)
        await supabase.mark_email_sent("u1")


@pytest.mark.asyncio
async def test_in_memory_subscribers_filter():
    store = InMemoryStore(
        preferences=[
            EmailPreferences(user_id="u1"),
            EmailPreferences(user_id="u2", email_frequency="weekly"),
            EmailPreferences(user_id="u3", email_enabled=False),
        ]
    )
    assert [pref.user_id for pref in await store.list_daily_subscribers()] == ["u1"]
