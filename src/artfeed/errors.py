"""Error taxonomy for the artwork pipeline.

Source-level failures (``SourceError`` subclasses) are absorbed by the pool
aggregator and the resolution sampler. The remaining errors surface only when
every avenue is exhausted.
"""

from __future__ import annotations

from typing import Optional


class ArtFeedError(Exception):
    """Base class for all pipeline errors."""


class SourceError(ArtFeedError):
    """A single museum source could not produce what was asked of it."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class SourceUnavailable(SourceError):
    """Transport or HTTP failure talking to a source."""


class RightsRejected(SourceError):
    """The resolved item failed the source's license check."""


class NotFound(SourceError):
    """The source has no usable item (or no results) for the request."""


class Malformed(SourceError):
    """The source answered with something that could not be decoded."""


class PoolExhausted(ArtFeedError):
    """The sampler ran out of attempts or candidates."""


class UnknownSource(ArtFeedError):
    """No registered source owns the identifier's tag."""


class AllSourcesFailed(ArtFeedError):
    """Pool building produced no identifiers from any source."""

    def __init__(self, message: str, errors: Optional[dict] = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


__all__ = [
    "AllSourcesFailed",
    "ArtFeedError",
    "Malformed",
    "NotFound",
    "PoolExhausted",
    "RightsRejected",
    "SourceError",
    "SourceUnavailable",
    "UnknownSource",
]
