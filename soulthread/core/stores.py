"""Interfaces for the external stores the pipeline reads and writes."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from soulthread.models.content import DeliveryRecord, EmailPreferences, Recipient, VoiceProfile


class UserStore(ABC):
    """Resolves user ids to contact details."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Recipient]:
        """Return the user's email identity, or None if unknown."""
        pass


class VoiceProfileStore(ABC):
    """Read access to trained voice profiles."""

    @abstractmethod
    async def get_latest_voice_profile(self, user_id: str) -> Optional[VoiceProfile]:
        """Most recent profile for ``user_id``, or None if the user has none."""
        pass


class PreferencesStore(ABC):
    """Read access to scheduled delivery preferences."""

    @abstractmethod
    async def list_daily_subscribers(self) -> List[EmailPreferences]:
        """All preferences with email enabled and a daily frequency.

        Raises:
            StoreError: If the store cannot be read.
        """
        pass


class DeliveryLog(ABC):
    """Write access for delivery bookkeeping."""

    @abstractmethod
    async def record_delivery(self, record: DeliveryRecord) -> None:
        pass

    @abstractmethod
    async def mark_email_sent(self, user_id: str) -> None:
        pass


class InMemoryStore(UserStore, VoiceProfileStore, PreferencesStore, DeliveryLog):
    """Process-local implementation of every store, used by tests and the CLI."""

    def __init__(
        self,
        users: Optional[Dict[str, Recipient]] = None,
        profiles: Optional[Dict[str, List[VoiceProfile]]] = None,
        preferences: Optional[List[EmailPreferences]] = None,
    ):
        self.users = users or {}
        self.profiles = profiles or {}
        self.preferences = preferences or []
        self.deliveries: List[DeliveryRecord] = []
        self.last_sent: Dict[str, datetime] = {}

    async def get_user(self, user_id: str) -> Optional[Recipient]:
        return self.users.get(user_id)

    async def get_latest_voice_profile(self, user_id: str) -> Optional[VoiceProfile]:
        history = self.profiles.get(user_id) or []
        return history[-1] if history else None

    async def list_daily_subscribers(self) -> List[EmailPreferences]:
        return [
            pref
            for pref in self.preferences
            if pref.email_enabled and pref.email_frequency == "daily"
        ]

    async def record_delivery(self, record: DeliveryRecord) -> None:
        self.deliveries.append(record)

    async def mark_email_sent(self, user_id: str) -> None:
        self.last_sent[user_id] = datetime.now(timezone.utc)
