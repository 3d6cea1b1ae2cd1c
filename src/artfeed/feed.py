"""
Session controller for the swipeable artwork feed.

Owns the per-session pool and coordinates the explicitly injected services:
aggregator -> sampler -> history, with the prefetch controller keeping the
neighbors warm and the image cache consulted on every display.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
from PIL import Image

from .config import Settings, get_settings
from .errors import ArtFeedError, PoolExhausted
from .history import NavigationHistory
from .http import build_http_client
from .image_cache import HttpImageFetcher, ImageCache
from .logging import get_logger
from .models import Filters, Record, SourceSelection
from .pool import IdentifierPool, PoolAggregator
from .prefetch import PrefetchController
from .sampler import ResolutionSampler
from .sources import default_sources

LOGGER = get_logger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load artwork. Please try again."
NEXT_FAILED_MESSAGE = "Failed to load next artwork."


class ArtFeed:
    """
    Swipeable feed over the aggregated museum pool.

    Swipes are mutually exclusive (a second swipe while one is advancing is
    rejected) but run alongside the background buffer filler. Swipes are
    also rejected while a session loads, and a swipe that outlives its
    session is dropped instead of touching the new one. Session
    rebuilds (start / apply_filters) are serialized and fully reset pool,
    used-set, history, buffer and image cache before building again.

    Usage:
        async with ArtFeed.create() as feed:
            if await feed.start():
                print(feed.current.title)
                await feed.swipe_next()
    """

    def __init__(
        self,
        aggregator: PoolAggregator,
        sampler: ResolutionSampler,
        history: NavigationHistory,
        prefetch: PrefetchController,
        image_cache: ImageCache,
        settings: Optional[Settings] = None,
        filters: Optional[Filters] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings()
        self._aggregator = aggregator
        self._sampler = sampler
        self._history = history
        self._prefetch = prefetch
        self._image_cache = image_cache
        self._http_client = http_client

        self._filters = filters or Filters(query=self._settings.default_query)
        self._selection = SourceSelection.MIXED
        self._pool: Optional[IdentifierPool] = None
        self._current_image: Optional[Image.Image] = None
        self._session_lock = asyncio.Lock()
        # Bumped on every session reset; in-flight swipes compare against it.
        self._generation = 0

        self.is_loading = False
        self.is_advancing = False
        self.error_message: Optional[str] = None

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ArtFeed":
        """Wire the bundled sources and default services on one HTTP client."""
        settings = settings or get_settings()
        client = build_http_client(settings, transport=transport)

        aggregator = PoolAggregator(
            default_sources(client, settings),
            per_source_cap=settings.per_source_cap,
        )
        sampler = ResolutionSampler(
            aggregator.resolve_by_id,
            max_attempts=settings.sampler_max_attempts,
        )
        history = NavigationHistory(cap=settings.history_cap)
        image_cache = ImageCache(
            HttpImageFetcher(client),
            capacity=settings.image_cache_capacity,
        )
        prefetch = PrefetchController(
            history,
            sampler,
            image_cache,
            buffer_size=settings.prefetch_buffer_size,
        )
        return cls(
            aggregator,
            sampler,
            history,
            prefetch,
            image_cache,
            settings=settings,
            http_client=client,
        )

    # ------------------------------------------------------------------ state

    @property
    def filters(self) -> Filters:
        return self._filters

    @property
    def selection(self) -> SourceSelection:
        return self._selection

    @property
    def pool(self) -> Optional[IdentifierPool]:
        return self._pool

    @property
    def history(self) -> NavigationHistory:
        return self._history

    @property
    def image_cache(self) -> ImageCache:
        return self._image_cache

    @property
    def prefetch(self) -> PrefetchController:
        return self._prefetch

    @property
    def current(self) -> Optional[Record]:
        return self._history.current

    @property
    def current_image(self) -> Optional[Image.Image]:
        return self._current_image

    @property
    def next_record(self) -> Optional[Record]:
        return self._prefetch.next_record

    @property
    def prev_record(self) -> Optional[Record]:
        return self._prefetch.prev_record

    @property
    def can_go_back(self) -> bool:
        return self._history.can_go_back

    async def is_next_image_ready(self) -> bool:
        record = self.next_record
        return record is not None and await self._image_cache.is_cached(record.image_url)

    async def is_prev_image_ready(self) -> bool:
        record = self.prev_record
        return record is not None and await self._image_cache.is_cached(record.image_url)

    # ---------------------------------------------------------------- session

    async def start(self) -> bool:
        """Build the pool and show the first record, retrying once on failure."""
        async with self._session_lock:
            self.is_loading = True
            try:
                return await self._load_with_retry()
            finally:
                self.is_loading = False

    async def apply_filters(
        self,
        filters: Filters,
        selection: SourceSelection = SourceSelection.MIXED,
    ) -> bool:
        """Replace the filter configuration and start a fresh session.

        A swipe still in flight from the previous session is dropped when it
        completes; its record never reaches the new history.
        """
        async with self._session_lock:
            self.is_loading = True
            try:
                self._filters = filters
                self._selection = selection
                await self._reset_session()
                await self._image_cache.clear()
                LOGGER.info(
                    "Filters applied",
                    query=filters.query,
                    medium=filters.medium,
                    geo=filters.geo,
                    period=filters.period.value,
                    selection=selection.value,
                )
                return await self._load_with_retry()
            finally:
                self.is_loading = False

    async def aclose(self) -> None:
        await self._prefetch.reset()
        await self._image_cache.clear()
        if self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self) -> "ArtFeed":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ----------------------------------------------------------------- swipes

    async def swipe_next(self) -> bool:
        """Advance one record.

        Returns False if rejected (already advancing, or a session is
        loading), if nothing could be loaded, or if a filter change replaced
        the session while this swipe was resolving.
        """
        if self.is_advancing or self.is_loading:
            return False
        self.is_advancing = True
        self.error_message = None
        generation = self._generation

        try:
            if self._history.can_go_forward:
                record = self._history.step_forward()
            else:
                record = self._prefetch.take_next()
                if record is None:
                    record = await self._resolve_fresh()
                    if generation != self._generation:
                        LOGGER.info("Swipe dropped, session replaced", identifier=record.id)
                        return False
                self._history.push(record)

            if not await self._show(record, generation):
                return False
            await self._prefetch.refresh_neighbors()
            return True
        except ArtFeedError as exc:
            LOGGER.warning("Swipe forward failed", error=str(exc))
            if generation == self._generation:
                self.error_message = NEXT_FAILED_MESSAGE
            return False
        finally:
            self.is_advancing = False

    async def swipe_previous(self) -> bool:
        """Step back one record from history. Never resolves anything new."""
        if self.is_advancing or self.is_loading or not self._history.can_go_back:
            return False
        self.is_advancing = True
        generation = self._generation

        try:
            record = self._history.step_backward()
            if not await self._show(record, generation):
                return False
            await self._prefetch.refresh_neighbors()
            return True
        finally:
            self.is_advancing = False

    # ---------------------------------------------------------------- helpers

    async def _reset_session(self) -> None:
        self._generation += 1
        await self._prefetch.reset()
        self._history.reset()
        self._pool = None
        self._current_image = None

    async def _load_once(self) -> None:
        await self._reset_session()
        generation = self._generation

        pool = await self._aggregator.build(self._filters, self._selection.allowed_tags)
        self._pool = pool
        self._prefetch.bind(pool)

        record = await self._sampler.pick_next(pool)
        self._history.push(record)
        await self._show(record, generation)
        await self._prefetch.refresh_neighbors()

    async def _load_with_retry(self) -> bool:
        self.error_message = None
        attempts = self._settings.max_auto_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                await self._load_once()
            except ArtFeedError as exc:
                LOGGER.warning(
                    "Initial load failed",
                    attempt=attempt,
                    attempts=attempts,
                    error=str(exc),
                )
                if attempt < attempts:
                    await asyncio.sleep(self._settings.retry_delay_seconds)
                continue

            LOGGER.info("Feed started", pool_size=len(self._pool), first=self.current.id)
            return True

        self.error_message = LOAD_FAILED_MESSAGE
        return False

    async def _resolve_fresh(self) -> Record:
        if self._pool is None:
            raise PoolExhausted("No identifier pool loaded")
        current = self._history.current
        avoid_ids = {current.id} if current else set()
        avoid_ids.update(record.id for record in self._prefetch.buffer)
        return await self._sampler.pick_next(
            self._pool,
            avoid_ids=avoid_ids,
            avoid_image_url=current.image_url if current else None,
        )

    async def _show(self, record: Record, generation: int) -> bool:
        image = await self._image_cache.load(record.image_url)
        if generation != self._generation:
            LOGGER.info("Display dropped, session replaced", identifier=record.id)
            return False
        self._current_image = image
        return True
