"""OpenAI chat completions client (blocking and streaming)."""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from soulthread.core.errors import AIGenerationError

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Thin client for an OpenAI-compatible ``/chat/completions`` endpoint.

    Failures are never retried: every error is raised as
    :class:`AIGenerationError` so callers decide what happens next.
    """

    def __init__(self, api_key: Optional[str], model: str = None, settings=None):
        """Initialize the chat client.

        Args:
            api_key: OpenAI API key
            model: Default model (falls back to settings, then gpt-4o-mini)
            settings: Settings instance for configuration values
        """
        self.api_key = api_key
        self.base_url = (settings.openai_base_url if settings else "https://api.openai.com/v1").rstrip("/")
        self.default_model = model or (settings.openai_model if settings else "gpt-4o-mini")
        self.timeout = settings.openai_timeout if settings else 60.0
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _payload(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        temperature: float,
        max_tokens: int,
        stream: bool,
    ) -> Dict[str, Any]:
        return {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": stream,
        }

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        """Return the first choice's message content.

        Raises:
            AIGenerationError: If the key is missing, the request fails or the
                response carries no content.
        """
        if not self.api_key:
            raise AIGenerationError("OpenAI API key not configured")

        payload = self._payload(messages, model, temperature, max_tokens, stream=False)
        logger.debug(f"Calling chat completions with model: {payload['model']}")

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self.base_url}/chat/completions",
                    headers=self.headers,
                    json=payload,
                ) as response:
                    if response.status != 200:
                        raise AIGenerationError(
                            f"OpenAI Error: {response.status} - {await self._error_message(response)}",
                            status=response.status,
                        )
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AIGenerationError(f"OpenAI Error: network failure: {e}") from e
        except ValueError as e:
            raise AIGenerationError(f"OpenAI Error: invalid JSON body: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIGenerationError(f"OpenAI Error: malformed response: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise AIGenerationError("OpenAI Error: empty completion")
        return content

    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> AsyncIterator[str]:
        """Yield content deltas in the order the provider sends them.

        The generator finishes on ``[DONE]`` or end of body and raises
        :class:`AIGenerationError` if the provider fails at any point.
        """
        if not self.api_key:
            raise AIGenerationError("OpenAI API key not configured")

        payload = self._payload(messages, model, temperature, max_tokens, stream=True)
        try:
            timeout = aiohttp.ClientTimeout(total=None, sock_read=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self.base_url}/chat/completions",
                    headers=self.headers,
                    json=payload,
                ) as response:
                    if response.status != 200:
                        raise AIGenerationError(
                            f"OpenAI Error: {response.status} - {await self._error_message(response)}",
                            status=response.status,
                        )
                    async for raw_line in response.content:
                        delta = self.parse_stream_line(raw_line.decode("utf-8"))
                        if delta is None:
                            return
                        if delta:
                            yield delta
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AIGenerationError(f"OpenAI streaming error: {e}") from e
        except ValueError as e:
            raise AIGenerationError(f"OpenAI streaming error: undecodable event: {e}") from e

    @staticmethod
    def parse_stream_line(line: str) -> Optional[str]:
        """Decode one server-sent-events line.

        Returns the content delta (``""`` for lines carrying none) or ``None``
        once the ``[DONE]`` sentinel arrives.

        Raises:
            AIGenerationError: If the event carries a provider error.
        """
        line = line.strip()
        if not line.startswith("data:"):
            return ""
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return None
        try:
            event = json.loads(data)
        except json.JSONDecodeError as e:
            raise AIGenerationError(f"OpenAI streaming error: bad event: {e}") from e
        if event.get("error"):
            message = event["error"].get("message", "unknown error") if isinstance(event["error"], dict) else event["error"]
            raise AIGenerationError(f"OpenAI streaming error: {message}")
        choices = event.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        text = await response.text()
        try:
            return json.loads(text)["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return text[:200]
