"""Supabase REST (PostgREST) backed stores."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from soulthread.clients.http import ProviderHTTPError, fetch_json
from soulthread.core.errors import StoreError
from soulthread.core.stores import DeliveryLog, PreferencesStore, UserStore, VoiceProfileStore
from soulthread.models.content import DeliveryRecord, EmailPreferences, Recipient, VoiceProfile

logger = logging.getLogger(__name__)


class SupabaseStore(UserStore, VoiceProfileStore, PreferencesStore, DeliveryLog):
    """All pipeline stores over a Supabase project's REST and auth admin APIs."""

    def __init__(self, url: str, service_key: str, settings=None):
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.auth_url = f"{url.rstrip('/')}/auth/v1"
        self.timeout = settings.supabase_timeout if settings else 10.0
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, table: str, method: str = "GET", **kwargs) -> List[Dict[str, Any]]:
        headers = dict(self.headers)
        if method != "GET":
            headers["Prefer"] = "return=representation"
        data = await fetch_json(
            f"{self.rest_url}/{table}",
            provider="Supabase",
            method=method,
            timeout=self.timeout,
            headers=headers,
            **kwargs,
        )
        return data if isinstance(data, list) else []

    async def get_user(self, user_id: str) -> Optional[Recipient]:
        try:
            data = await fetch_json(
                f"{self.auth_url}/admin/users/{user_id}",
                provider="Supabase Auth",
                timeout=self.timeout,
                headers=self.headers,
            )
        except ProviderHTTPError as e:
            logger.error(f"Cannot get user {user_id}: {e}")
            return None
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Network error getting user {user_id}: {e}")
            return None

        user = data.get("user", data) if isinstance(data, dict) else {}
        if not user.get("email"):
            return None
        metadata = user.get("user_metadata") or {}
        return Recipient(user_id=user_id, email=user["email"], name=metadata.get("name"))

    async def get_latest_voice_profile(self, user_id: str) -> Optional[VoiceProfile]:
        try:
            rows = await self._request(
                "voicedna",
                params={
                    "select": "data",
                    "user_id": f"eq.{user_id}",
                    "order": "created_at.desc",
                    "limit": 1,
                },
            )
        except (ProviderHTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise StoreError("voicedna", str(e)) from e

        if not rows or not rows[0].get("data"):
            return None
        try:
            return VoiceProfile.model_validate(rows[0]["data"])
        except ValidationError as e:
            logger.warning(f"Ignoring malformed voice profile for {user_id}: {e}")
            return None

    async def list_daily_subscribers(self) -> List[EmailPreferences]:
        try:
            rows = await self._request(
                "email_preferences",
                params={
                    "select": "user_id,delivery_hour,timezone,topics,preferred_sources,"
                    "use_ai_generation,max_items",
                    "email_enabled": "eq.true",
                    "email_frequency": "eq.daily",
                },
            )
        except (ProviderHTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise StoreError("email_preferences", str(e)) from e

        preferences = []
        for row in rows:
            try:
                preferences.append(EmailPreferences.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed preferences row {row.get('user_id')}: {e}")
        return preferences

    async def record_delivery(self, record: DeliveryRecord) -> None:
        try:
            await self._request(
                "email_delivery_log",
                method="POST",
                payload=record.model_dump(mode="json"),
            )
        except (ProviderHTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"[Email] Failed to log delivery: {e}")

    async def mark_email_sent(self, user_id: str) -> None:
        try:
            await self._request(
                "email_preferences",
                method="PATCH",
                params={"user_id": f"eq.{user_id}"},
                payload={"last_email_sent_at": datetime.now(timezone.utc).isoformat()},
            )
        except (ProviderHTTPError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"[Email] Failed to update last sent timestamp: {e}")
