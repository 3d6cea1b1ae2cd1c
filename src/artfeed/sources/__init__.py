"""Museum data sources."""
from __future__ import annotations

from typing import List, Optional

import httpx

from ..config import Settings, get_settings
from .aic import AICSource
from .base import BaseSource
from .cma import CMASource
from .met import MetSource


def default_sources(client: httpx.AsyncClient, settings: Optional[Settings] = None) -> List[BaseSource]:
    """Build every bundled source on a shared client."""
    settings = settings or get_settings()
    return [
        MetSource(client, settings.met_base_url),
        AICSource(client, settings.aic_base_url, user_agent=settings.aic_user_agent),
        CMASource(client, settings.cma_base_url),
    ]


__all__ = [
    "AICSource",
    "BaseSource",
    "CMASource",
    "MetSource",
    "default_sources",
]
