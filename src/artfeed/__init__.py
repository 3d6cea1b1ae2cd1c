"""Continuous feed of public-domain artwork aggregated from museum APIs."""

from .errors import (
    AllSourcesFailed,
    ArtFeedError,
    Malformed,
    NotFound,
    PoolExhausted,
    RightsRejected,
    SourceError,
    SourceUnavailable,
    UnknownSource,
)
from .feed import ArtFeed
from .history import NavigationHistory
from .image_cache import ImageCache, ImageCacheStats
from .models import Filters, PeriodPreset, Record, SourceSelection
from .pool import IdentifierPool, PoolAggregator
from .prefetch import PrefetchController
from .sampler import ResolutionSampler

__version__ = "0.1.0"

__all__ = [
    "AllSourcesFailed",
    "ArtFeed",
    "ArtFeedError",
    "Filters",
    "IdentifierPool",
    "ImageCache",
    "ImageCacheStats",
    "Malformed",
    "NavigationHistory",
    "NotFound",
    "PeriodPreset",
    "PoolAggregator",
    "PoolExhausted",
    "PrefetchController",
    "Record",
    "ResolutionSampler",
    "RightsRejected",
    "SourceError",
    "SourceSelection",
    "SourceUnavailable",
    "UnknownSource",
]
