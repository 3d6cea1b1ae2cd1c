"""In-memory LRU cache of decoded artwork images with coalesced loads."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from io import BytesIO
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from .logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_CAPACITY = 20

ImageFetcher = Callable[[str], Awaitable[Optional[Image.Image]]]


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes eagerly so later access never touches the buffer."""
    image = Image.open(BytesIO(data))
    image.load()
    return image


class HttpImageFetcher:
    """Download an image with httpx and decode it with Pillow off the event loop.

    Returns None on any transport, HTTP or decoding failure.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def __call__(self, url: str) -> Optional[Image.Image]:
        try:
            response = await self._client.get(url, headers={"Accept": "image/*"})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Image download failed", url=url, error=str(exc))
            return None

        try:
            return await asyncio.to_thread(decode_image, response.content)
        except (UnidentifiedImageError, OSError) as exc:
            LOGGER.warning("Image decode failed", url=url, error=str(exc))
            return None


@dataclass
class ImageCacheStats:
    """Cache statistics for monitoring."""
    entries: int
    capacity: int
    hits: int
    misses: int
    in_flight: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ImageCache:
    """URL -> decoded image store.

    Features:
    - Bounded size with least-recently-accessed eviction
    - One fetch per URL no matter how many callers ask concurrently
    - Background prefetch that fills the cache as a side effect
    - clear() cancels in-flight fetches (used on filter change)

    All state is touched under a single asyncio.Lock; the lock is never held
    across a network call.
    """

    def __init__(self, fetcher: ImageFetcher, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("Image cache capacity must be positive")
        self._fetcher = fetcher
        self._capacity = capacity
        self._entries: "OrderedDict[str, Image.Image]" = OrderedDict()
        self._in_flight: Dict[str, "asyncio.Task[Optional[Image.Image]]"] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    async def get(self, url: str) -> Optional[Image.Image]:
        """Cached image or None. Never touches the network."""
        async with self._lock:
            image = self._touch(url)
            if image is not None:
                self._hits += 1
            return image

    async def load(self, url: str) -> Optional[Image.Image]:
        """Cached image, or join/start the single fetch for ``url``."""
        async with self._lock:
            image = self._touch(url)
            if image is not None:
                self._hits += 1
                return image
            self._misses += 1
            task = self._in_flight.get(url)
            if task is None:
                task = self._start_fetch(url)

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The shared fetch was dropped by clear(); only the caller's own
            # cancellation propagates.
            if task.cancelled():
                return None
            raise

    async def prefetch(self, urls: Iterable[str]) -> None:
        """Start background loads for URLs not already cached or in flight."""
        async with self._lock:
            for url in urls:
                if url in self._entries or url in self._in_flight:
                    continue
                self._start_fetch(url)

    async def is_cached(self, url: str) -> bool:
        async with self._lock:
            return url in self._entries

    async def remove(self, url: str) -> None:
        async with self._lock:
            self._entries.pop(url, None)

    async def clear(self) -> None:
        """Drop every entry and cancel in-flight fetches."""
        async with self._lock:
            tasks = list(self._in_flight.values())
            self._in_flight.clear()
            self._entries.clear()
        for task in tasks:
            task.cancel()
        LOGGER.debug("Image cache cleared", cancelled=len(tasks))

    async def cached_urls(self) -> List[str]:
        """URLs from least to most recently accessed."""
        async with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def stats(self) -> ImageCacheStats:
        async with self._lock:
            return ImageCacheStats(
                entries=len(self._entries),
                capacity=self._capacity,
                hits=self._hits,
                misses=self._misses,
                in_flight=len(self._in_flight),
            )

    # Helpers below expect the lock to be held.

    def _touch(self, url: str) -> Optional[Image.Image]:
        image = self._entries.get(url)
        if image is not None:
            self._entries.move_to_end(url)
        return image

    def _insert(self, url: str, image: Image.Image) -> None:
        if url in self._entries:
            self._entries.move_to_end(url)
        else:
            while len(self._entries) >= self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("Image evicted", url=evicted)
        self._entries[url] = image

    def _start_fetch(self, url: str) -> "asyncio.Task[Optional[Image.Image]]":
        task = asyncio.create_task(self._fetch_and_store(url), name=f"image-fetch:{url}")
        self._in_flight[url] = task
        return task

    async def _fetch_and_store(self, url: str) -> Optional[Image.Image]:
        try:
            image = await self._fetcher(url)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Image fetcher raised", url=url, error=str(exc), exc_info=True)
            image = None

        async with self._lock:
            if self._in_flight.get(url) is asyncio.current_task():
                del self._in_flight[url]
            if image is not None:
                self._insert(url, image)
        return image
