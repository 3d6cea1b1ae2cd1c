"""
Look-ahead prefetching for the artwork feed.

Provides:
- Neighbor slots (previous / next) computed after every display change
- A background buffer filler keeping resolved records ready
- Image cache priming for every record placed in a slot or the buffer
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, List, Optional, Set

from .errors import PoolExhausted
from .history import NavigationHistory
from .image_cache import ImageCache
from .logging import get_logger
from .models import Record
from .pool import IdentifierPool
from .sampler import ResolutionSampler

LOGGER = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 3


class PrefetchController:
    """
    Keeps the next swipe instantaneous.

    The "next" slot is the forward history entry when one exists (replay,
    no resolution). Otherwise it is a pending fresh record taken from the
    buffer, or resolved synchronously when the buffer is empty. The buffer
    is refilled by a single background task.

    Usage:
        prefetch = PrefetchController(history, sampler, image_cache)
        prefetch.bind(pool)
        await prefetch.refresh_neighbors()
        fresh = prefetch.take_next()
    """

    def __init__(
        self,
        history: NavigationHistory,
        sampler: ResolutionSampler,
        image_cache: ImageCache,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        """
        Initialize prefetch controller.

        Args:
            history: Navigation history shared with the feed
            sampler: Resolution sampler used for fresh records
            image_cache: Cache primed for every prefetched record
            buffer_size: Target number of buffered records
        """
        if buffer_size < 0:
            raise ValueError("buffer_size must not be negative")
        self._history = history
        self._sampler = sampler
        self._image_cache = image_cache
        self._buffer_size = buffer_size

        self._pool: Optional[IdentifierPool] = None
        self._buffer: Deque[Record] = deque()
        self._pending: Optional[Record] = None
        self._fill_task: Optional[asyncio.Task] = None

    @property
    def pool(self) -> Optional[IdentifierPool]:
        return self._pool

    @property
    def buffer(self) -> List[Record]:
        return list(self._buffer)

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def next_record(self) -> Optional[Record]:
        forward = self._history.peek_next()
        return forward if forward is not None else self._pending

    @property
    def prev_record(self) -> Optional[Record]:
        return self._history.peek_previous()

    @property
    def is_filling(self) -> bool:
        return self._fill_task is not None and not self._fill_task.done()

    def bind(self, pool: IdentifierPool) -> None:
        """Attach the session pool. Call reset() first when replacing one."""
        self._pool = pool

    def take_next(self) -> Optional[Record]:
        """Consume the pending fresh record, if any."""
        record, self._pending = self._pending, None
        return record

    async def refresh_neighbors(self) -> None:
        """Recompute prev/next after a display change and prime their images."""
        if self._history.peek_next() is None and self._pending is None:
            if self._buffer:
                self._pending = self._buffer.popleft()
            else:
                pool = self._pool
                record = await self._sample_pending()
                if self._pool is not pool:
                    return
                self._pending = record

        urls = [record.image_url for record in (self.next_record, self.prev_record) if record]
        if urls:
            await self._image_cache.prefetch(urls)

        self.schedule_fill()

    def schedule_fill(self) -> None:
        """Start the buffer filler unless one is already running."""
        if self._pool is None or self.is_filling:
            return
        if len(self._buffer) >= self._buffer_size:
            return
        self._fill_task = asyncio.create_task(self._fill_buffer(self._pool), name="prefetch-fill")
        self._fill_task.add_done_callback(_log_fill_failure)

    async def wait_for_fill(self) -> None:
        """Wait for the running filler (if any) to finish."""
        if self._fill_task is not None:
            await asyncio.shield(self._fill_task)

    async def reset(self) -> None:
        """Stop the filler and forget the pool, buffer and pending record."""
        task, self._fill_task = self._fill_task, None
        self._pool = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._buffer.clear()
        self._pending = None

    def _avoid_ids(self) -> Set[str]:
        avoid = self._history.ids()
        avoid.update(record.id for record in self._buffer)
        if self._pending is not None:
            avoid.add(self._pending.id)
        return avoid

    def _avoid_image_url(self) -> Optional[str]:
        current = self._history.current
        return current.image_url if current else None

    async def _sample_pending(self) -> Optional[Record]:
        pool = self._pool
        if pool is None:
            return None
        try:
            record = await self._sampler.pick_next(
                pool,
                avoid_ids=self._avoid_ids(),
                avoid_image_url=self._avoid_image_url(),
            )
        except PoolExhausted as exc:
            LOGGER.info("No next record available", error=str(exc))
            return None
        if self._pool is not pool:
            return None
        return record

    async def _fill_buffer(self, pool: IdentifierPool) -> None:
        while self._pool is pool and len(self._buffer) < self._buffer_size:
            try:
                record = await self._sampler.pick_next(
                    pool,
                    avoid_ids=self._avoid_ids(),
                    avoid_image_url=self._avoid_image_url(),
                )
            except PoolExhausted as exc:
                LOGGER.info("Prefetch buffer stopped, pool exhausted", error=str(exc))
                return

            # The pool may have been replaced while resolving.
            if self._pool is not pool:
                return

            self._buffer.append(record)
            await self._image_cache.prefetch([record.image_url])
            LOGGER.debug("Record buffered", identifier=record.id, buffered=len(self._buffer))


def _log_fill_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.error("Prefetch buffer filler failed", error=str(exc), exc_info=exc)
