"""Bounded-retry sampling of fresh records from an identifier pool."""

from __future__ import annotations

import random
from typing import AbstractSet, Awaitable, Callable, Optional

from .errors import PoolExhausted, SourceError, UnknownSource
from .logging import get_logger
from .models import Record
from .pool import IdentifierPool

LOGGER = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 200

Resolver = Callable[[str], Awaitable[Record]]


class ResolutionSampler:
    """Draw random unused identifiers and resolve them until one succeeds.

    A meaningful fraction of candidates is rights-rejected or transiently
    unavailable, so individual failures are skipped rather than surfaced.
    Anything a resolver raises short of cancellation counts as one failed
    candidate.
    Every drawn identifier is marked used before resolution, success or not.
    """

    def __init__(
        self,
        resolver: Resolver,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self._resolve = resolver
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def pick_next(
        self,
        pool: IdentifierPool,
        avoid_ids: AbstractSet[str] = frozenset(),
        avoid_image_url: Optional[str] = None,
    ) -> Record:
        """
        Resolve one not-yet-used identifier from ``pool``.

        Args:
            pool: Session pool; its used-set is updated in place
            avoid_ids: Identifiers to skip (current record, buffered records, ...)
            avoid_image_url: Reject results pointing at this exact image URL

        Raises:
            PoolExhausted: No candidates remain or the attempt bound was hit
        """
        failures = 0
        for attempt in range(1, self._max_attempts + 1):
            candidates = pool.remaining(avoid_ids)
            if not candidates:
                raise PoolExhausted(
                    f"No unused identifiers left after {attempt - 1} attempts "
                    f"({len(pool.used)}/{len(pool)} used)"
                )

            identifier = self._rng.choice(candidates)
            pool.mark_used(identifier)

            try:
                record = await self._resolve(identifier)
            except (SourceError, UnknownSource) as exc:
                failures += 1
                LOGGER.debug(
                    "Candidate rejected",
                    identifier=identifier,
                    reason=type(exc).__name__,
                    error=str(exc),
                )
                continue
            except Exception as exc:  # noqa: BLE001
                failures += 1
                LOGGER.warning(
                    "Candidate resolution raised",
                    identifier=identifier,
                    error=str(exc),
                    exc_info=True,
                )
                continue

            if avoid_image_url is not None and record.image_url == avoid_image_url:
                LOGGER.debug("Candidate duplicates current image", identifier=identifier)
                continue

            if failures:
                LOGGER.debug("Resolved after failures", identifier=identifier, failures=failures)
            return record

        raise PoolExhausted(f"No record resolved in {self._max_attempts} attempts")
