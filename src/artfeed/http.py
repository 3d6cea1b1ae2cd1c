"""Standard HTTP client helpers for the museum integrations."""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from .config import Settings, get_settings
from .logging import get_logger

LOGGER = get_logger(__name__)


def _build_headers(user_agent: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers: Dict[str, str] = {"User-Agent": user_agent, "Accept": "application/json"}
    if extra:
        headers.update(extra)
    return headers


async def _log_request(request: httpx.Request) -> None:
    LOGGER.debug("HTTP request", method=request.method, url=str(request.url))


async def _log_response(response: httpx.Response) -> None:
    LOGGER.debug(
        "HTTP response",
        status=response.status_code,
        url=str(response.request.url),
    )


def build_http_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Provide a configured async HTTP client.

    The caller owns the client and must ``aclose()`` it.
    """

    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers=_build_headers(settings.user_agent, headers),
        follow_redirects=True,
        transport=transport,
        event_hooks={"request": [_log_request], "response": [_log_response]},
    )


__all__ = ["build_http_client"]
