"""Resend API client for transactional newsletter email."""

import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from soulthread.models.content import EmailResult

logger = logging.getLogger(__name__)


class ResendClient:
    """Client for the Resend ``/emails`` endpoint."""

    def __init__(self, api_key: Optional[str], settings=None):
        self.api_key = api_key
        self.base_url = "https://api.resend.com"
        self.sender = (
            settings.email_from if settings else "SoulThread Newsletter <newsletter@soulthread.app>"
        )
        self.timeout = settings.resend_timeout if settings else 15.0
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        tags: Optional[List[Dict[str, str]]] = None,
        sender: Optional[str] = None,
    ) -> EmailResult:
        """Send one email. Never raises; failures come back in the result."""
        if not self.api_key:
            logger.error("[Email] RESEND_API_KEY not configured")
            return EmailResult(success=False, error="Email service not configured")

        payload = {
            "from": sender or self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text
        if headers:
            payload["headers"] = headers
        if tags:
            payload["tags"] = tags

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self.base_url}/emails", headers=self.headers, json=payload
                ) as response:
                    if response.status not in (200, 201):
                        error_detail = await response.text()
                        short_detail = (
                            error_detail[:200] + "..." if len(error_detail) > 200 else error_detail
                        )
                        logger.error(f"[Email] Resend API error: {response.status} - {short_detail}")
                        return EmailResult(
                            success=False, error=f"Resend error {response.status}: {short_detail}"
                        )
                    data = await response.json()
                    return EmailResult(success=True, message_id=data.get("id"))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[Email] Network error sending to {to}: {e}")
            return EmailResult(success=False, error=f"Network error: {e}")
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"[Email] Data parsing error sending to {to}: {e}")
            return EmailResult(success=False, error=f"Unexpected response: {e}")
