"""
Identifier pool aggregation across museum sources.

Builds one balanced pool per filter configuration:
- Every eligible source is queried concurrently
- Failing sources are logged and skipped
- Each list is shuffled and capped so one prolific museum can't dominate
- Lists are merged round-robin so the pool alternates sources
"""

from __future__ import annotations

import asyncio
import random
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .errors import AllSourcesFailed, UnknownSource
from .logging import get_logger
from .models import Filters, Record, split_identifier
from .sources.base import BaseSource

LOGGER = get_logger(__name__)

DEFAULT_PER_SOURCE_CAP = 350


class IdentifierPool:
    """Candidate identifiers for one filter configuration plus their used-set.

    A fresh pool always starts with an empty used-set, so rebuilding the pool
    clears it.
    """

    def __init__(self, identifiers: Iterable[str]):
        self._identifiers: Tuple[str, ...] = tuple(identifiers)
        self.used: Set[str] = set()

    @property
    def identifiers(self) -> Tuple[str, ...]:
        return self._identifiers

    def remaining(self, exclude: AbstractSet[str] = frozenset()) -> List[str]:
        """Identifiers not yet used and not in ``exclude``, in pool order."""
        return [
            identifier
            for identifier in self._identifiers
            if identifier not in self.used and identifier not in exclude
        ]

    def mark_used(self, identifier: str) -> None:
        self.used.add(identifier)

    def __len__(self) -> int:
        return len(self._identifiers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._identifiers

    def __repr__(self) -> str:
        return f"IdentifierPool(size={len(self)}, used={len(self.used)})"


def round_robin_merge(lists: Sequence[Sequence[str]]) -> List[str]:
    """Take index 0 of every list in turn, then index 1, and so on."""
    merged: List[str] = []
    longest = max((len(items) for items in lists), default=0)
    for index in range(longest):
        for items in lists:
            if index < len(items):
                merged.append(items[index])
    return merged


class PoolAggregator:
    """
    Merge per-source identifier lists and route resolution to the owning source.

    Usage:
        aggregator = PoolAggregator(sources)
        pool = await aggregator.build(Filters(medium="Paintings"))
        record = await aggregator.resolve_by_id(pool.identifiers[0])
    """

    def __init__(
        self,
        sources: Iterable[BaseSource],
        per_source_cap: int = DEFAULT_PER_SOURCE_CAP,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize aggregator.

        Args:
            sources: Source implementations; tags must be unique
            per_source_cap: Max identifiers any one source contributes
            rng: Random generator used for shuffling (tests pass a seeded one)
        """
        if per_source_cap < 1:
            raise ValueError("per_source_cap must be positive")

        self._sources: Dict[str, BaseSource] = {}
        for source in sources:
            if source.tag in self._sources:
                raise ValueError(f"Duplicate source tag: {source.tag}")
            self._sources[source.tag] = source

        self._per_source_cap = per_source_cap
        self._rng = rng or random.Random()

    @property
    def tags(self) -> List[str]:
        return list(self._sources)

    @property
    def sources(self) -> List[BaseSource]:
        return list(self._sources.values())

    async def build(
        self,
        filters: Filters,
        allowed_tags: Optional[AbstractSet[str]] = None,
    ) -> IdentifierPool:
        """
        Build the identifier pool.

        Args:
            filters: Filters forwarded to each source
            allowed_tags: Restrict to these source tags (None = all)

        Returns:
            IdentifierPool with the interleaved identifiers

        Raises:
            AllSourcesFailed: If no eligible source produced identifiers
        """
        eligible = [
            source
            for tag, source in self._sources.items()
            if allowed_tags is None or tag in allowed_tags
        ]
        if not eligible:
            raise AllSourcesFailed(f"No registered source matches {sorted(allowed_tags or ())}")

        results = await asyncio.gather(
            *(source.list_identifiers(filters) for source in eligible),
            return_exceptions=True,
        )

        lists: List[List[str]] = []
        errors: Dict[str, str] = {}
        for source, result in zip(eligible, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors[source.tag] = str(result)
                LOGGER.warning("Source listing failed", source=source.tag, error=str(result))
                continue

            identifiers = list(result)
            if not identifiers:
                LOGGER.info("Source returned no identifiers", source=source.tag)
                continue

            self._rng.shuffle(identifiers)
            capped = identifiers[: self._per_source_cap]
            lists.append(capped)
            LOGGER.debug(
                "Source listed identifiers",
                source=source.tag,
                raw=len(identifiers),
                kept=len(capped),
            )

        if not lists:
            raise AllSourcesFailed("Every source failed to list identifiers", errors=errors)

        pool = IdentifierPool(round_robin_merge(lists))
        LOGGER.info(
            "Identifier pool built",
            size=len(pool),
            sources=len(lists),
            failed=sorted(errors),
        )
        return pool

    def source_for(self, identifier: str) -> BaseSource:
        tag, _ = split_identifier(identifier)
        source = self._sources.get(tag)
        if source is None:
            raise UnknownSource(f"No source registered for tag {tag!r}")
        return source

    async def resolve_by_id(self, identifier: str) -> Record:
        """Dispatch to the source whose tag prefixes ``identifier``."""
        return await self.source_for(identifier).resolve(identifier)
