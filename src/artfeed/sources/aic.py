"""Art Institute of Chicago (AIC) source.

Public domain is enforced twice: the search filters on
``query[term][is_public_domain]=true`` and resolve() re-checks the flag.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import Malformed, NotFound, RightsRejected, SourceError
from ..logging import get_logger
from ..models import Filters, Record
from .base import BaseSource, non_empty

LOGGER = get_logger(__name__)

MAX_IDS = 400
PAGE_LIMIT = 100
MAX_RANDOM_PAGE = 25
MAX_PAGES = 8
DEFAULT_IIIF_URL = "https://www.artic.edu/iiif/2"
ARTWORK_FIELDS = ",".join(
    [
        "id",
        "title",
        "artist_display",
        "date_display",
        "medium_display",
        "image_id",
        "is_public_domain",
    ]
)


class AICSource(BaseSource):
    """Art Institute of Chicago public API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        user_agent: str,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(client, base_url)
        self._headers = {"AIC-User-Agent": user_agent}
        self._rng = rng or random.Random()

    @property
    def tag(self) -> str:
        return "aic"

    @property
    def source_name(self) -> str:
        return "Art Institute of Chicago"

    async def list_identifiers(self, filters: Filters) -> List[str]:
        query = " ".join(filters.query_terms())

        # Page 1 first, to learn how many pages actually exist.
        first = await self._search(query, page=1)
        with self._parsing("search pagination"):
            pagination = first.get("pagination") or {}
            total_pages = max(1, int(pagination.get("total_pages") or 1))

        page = self._rng.randint(1, min(total_pages, MAX_RANDOM_PAGE))
        collected: List[int] = []
        pages_seen = 0

        while len(collected) < MAX_IDS:
            try:
                payload = first if page == 1 else await self._search(query, page=page)
            except SourceError:
                if page != 1 and pages_seen == 0:
                    LOGGER.info("AIC random page failed, falling back to page 1", page=page)
                    page = 1
                    continue
                if collected:
                    break
                raise

            ids, is_last = self._read_page(payload)
            if not ids:
                break
            collected.extend(ids)
            pages_seen += 1
            page += 1

            if is_last:
                break
            if pages_seen >= MAX_PAGES:
                break

        with self._parsing("search results"):
            unique = list(dict.fromkeys(collected))
        self._rng.shuffle(unique)
        return [self._identifier(artwork_id) for artwork_id in unique[:MAX_IDS]]

    async def resolve(self, identifier: str) -> Record:
        artwork_id = self._int_local_id(identifier)
        payload = await self._get_json(
            f"artworks/{artwork_id}",
            params={"fields": ARTWORK_FIELDS},
            headers=self._headers,
        )
        with self._parsing(f"artwork {artwork_id}"):
            return self._to_record(identifier, artwork_id, payload)

    def _to_record(self, identifier: str, artwork_id: int, payload: Dict[str, Any]) -> Record:
        artwork = payload.get("data")
        if not isinstance(artwork, dict):
            raise Malformed(f"AIC artwork {artwork_id} has no data block", source=self.tag)
        if artwork.get("is_public_domain") is not True:
            raise RightsRejected(f"AIC artwork {artwork_id} is not public domain", source=self.tag)

        image_id = non_empty(artwork.get("image_id"))
        if image_id is None:
            raise NotFound(f"AIC artwork {artwork_id} has no image", source=self.tag)

        config = payload.get("config") or {}
        iiif_base = non_empty(config.get("iiif_url")) or DEFAULT_IIIF_URL

        return Record(
            id=identifier,
            title=non_empty(artwork.get("title")) or "Untitled",
            artist=non_empty(artwork.get("artist_display")) or "Unknown artist",
            date=non_empty(artwork.get("date_display")),
            medium=non_empty(artwork.get("medium_display")),
            image_url=f"{iiif_base}/{image_id}/full/843,/0/default.jpg",
            source_name=self.source_name,
            source_url=f"https://www.artic.edu/artworks/{artwork_id}",
            debug_fields={"provider": self.tag, "aic_id": str(artwork_id), "image_id": image_id},
        )

    def _read_page(self, payload: Dict[str, Any]) -> Tuple[List[int], bool]:
        """Artwork ids on one search page, and whether it is the last page."""
        with self._parsing("search page"):
            ids = [hit["id"] for hit in payload.get("data") or [] if "id" in hit]
            pagination = payload.get("pagination") or {}
            current_page = pagination.get("current_page")
            last_page = pagination.get("total_pages")
            is_last = (
                current_page is not None
                and last_page is not None
                and int(current_page) >= int(last_page)
            )
        return ids, is_last

    async def _search(self, query: str, page: int) -> Dict[str, Any]:
        params = {
            "q": query,
            "query[term][is_public_domain]": "true",
            "fields": "id",
            "page": max(1, page),
            "limit": PAGE_LIMIT,
        }
        return await self._get_json("artworks/search", params=params, headers=self._headers)
