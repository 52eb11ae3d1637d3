"""Shared JSON-over-HTTP helper for the provider clients."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class ProviderHTTPError(Exception):
    """Non-2xx response from an external provider."""

    def __init__(self, provider: str, status: int, detail: str = "") -> None:
        self.provider = provider
        self.status = status
        self.detail = detail
        short_detail = detail[:200] + "..." if len(detail) > 200 else detail
        super().__init__(f"{provider} API error: {status} - {short_detail}")


async def fetch_json(
    url: str,
    *,
    provider: str,
    timeout: float,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    payload: Optional[Dict[str, Any]] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> Any:
    """Perform one request and decode the JSON body.

    Raises:
        ProviderHTTPError: On a non-2xx status.
        aiohttp.ClientError, asyncio.TimeoutError: On transport failures.
        ValueError: If the body is not valid JSON.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    async def _do(active: aiohttp.ClientSession) -> Any:
        async with active.request(
            method,
            url,
            params=params,
            headers=headers,
            json=payload,
            timeout=client_timeout,
        ) as response:
            if response.status >= 400:
                raise ProviderHTTPError(provider, response.status, await response.text())
            try:
                return await response.json(content_type=None)
            except aiohttp.ContentTypeError as e:
                raise ValueError(f"{provider} returned non-JSON body: {e}") from e

    if session is not None:
        return await _do(session)

    async with aiohttp.ClientSession(timeout=client_timeout) as owned:
        return await _do(owned)


async def safe_fetch_json(url: str, *, provider: str, **kwargs) -> Optional[Any]:
    """Like :func:`fetch_json` but logs and returns ``None`` on any failure."""
    try:
        return await fetch_json(url, provider=provider, **kwargs)
    except ProviderHTTPError as e:
        logger.error(str(e))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Network error fetching {provider}: {e}")
    except (KeyError, ValueError, TypeError) as e:
        logger.error(f"Data parsing error fetching {provider}: {e}")
    return None
