"""
Shared fixtures for artfeed tests.

Sources and image fetchers are in-memory fakes; nothing touches the network.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

import pytest
from PIL import Image

from artfeed.config import Settings
from artfeed.errors import RightsRejected
from artfeed.models import Filters, Record
from artfeed.sources.base import BaseSource


# ============================================================================
# Records
# ============================================================================

def build_record(identifier: str, image_url: Optional[str] = None) -> Record:
    return Record(
        id=identifier,
        title=f"Title {identifier}",
        artist="Test Artist",
        image_url=image_url or f"https://img.test/{identifier.replace(':', '/')}.jpg",
        source_name=f"Museum {identifier.split(':')[0]}",
    )


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory for Records with predictable image URLs."""
    return build_record


# ============================================================================
# Sources
# ============================================================================

class FakeSource(BaseSource):
    """In-memory source with scripted listings and failures."""

    def __init__(
        self,
        tag: str,
        identifiers: Iterable[str] = (),
        list_error: Optional[Exception] = None,
        resolve_errors: Optional[Dict[str, Exception]] = None,
        image_urls: Optional[Dict[str, str]] = None,
    ):
        super().__init__(client=None, base_url="https://fake.test")  # type: ignore[arg-type]
        self._tag = tag
        self._identifiers = list(identifiers)
        self._list_error = list_error
        self._resolve_errors = resolve_errors or {}
        self._image_urls = image_urls or {}
        self.list_calls: List[Filters] = []
        self.resolve_calls: List[str] = []
        # When set, resolve() waits on it after recording the call.
        self.gate: Optional[asyncio.Event] = None

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def source_name(self) -> str:
        return f"Museum {self._tag}"

    async def list_identifiers(self, filters: Filters) -> List[str]:
        self.list_calls.append(filters)
        if self._list_error is not None:
            raise self._list_error
        return list(self._identifiers)

    async def resolve(self, identifier: str) -> Record:
        self.resolve_calls.append(identifier)
        if self.gate is not None:
            await self.gate.wait()
        if identifier in self._resolve_errors:
            raise self._resolve_errors[identifier]
        return build_record(identifier, self._image_urls.get(identifier))


@pytest.fixture
def make_source() -> Callable[..., FakeSource]:
    """Factory for FakeSource instances."""
    return FakeSource


@pytest.fixture
def rejected() -> RightsRejected:
    return RightsRejected("not public domain", source="test")


# ============================================================================
# Image fetching
# ============================================================================

class FakeFetcher:
    """Counts fetches per URL; optionally blocks until ``release()``."""

    def __init__(self, fail: Iterable[str] = (), blocking: bool = False):
        self.calls: Dict[str, int] = {}
        self._fail = set(fail)
        self._gate = asyncio.Event()
        if not blocking:
            self._gate.set()

    def release(self) -> None:
        self._gate.set()

    def count(self, url: str) -> int:
        return self.calls.get(url, 0)

    @property
    def total(self) -> int:
        return sum(self.calls.values())

    async def __call__(self, url: str) -> Optional[Image.Image]:
        self.calls[url] = self.calls.get(url, 0) + 1
        await self._gate.wait()
        if url in self._fail:
            return None
        return Image.new("RGB", (4, 3))


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    """Fast settings: no retry delay, small buffer."""
    return Settings(
        retry_delay_seconds=0.0,
        prefetch_buffer_size=2,
        history_cap=20,
        image_cache_capacity=20,
        sampler_max_attempts=50,
    )
