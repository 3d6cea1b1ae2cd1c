"""Cleveland Museum of Art open access source."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import httpx

from ..errors import Malformed, NotFound, RightsRejected
from ..models import Filters, Record
from .base import BaseSource, non_empty

MAX_IDS = 600
SEARCH_LIMIT = 1000
MAX_SKIP = 8000

# Series that flood results.
SERIES_TITLE_BLOCKS = ("tuti-nama", "tutinama")

TECHNIQUE_BLOCKS = (
    "palm leaves", "palm leaf", "on palm",
    "vellum", "parchment",
    "handscroll", "scroll", "album", "codex", "manuscript",
    "sutra", "prayerbook", "prayer book",
)

TITLE_BLOCKS = (
    "text,", "folio", "fol.", "leaf", "page",
    "manuscript", "sutra", "prajnaparamita",
    "hours of", "book of hours",
    "prayerbook", "prayer book",
    "song of songs",
    "illustrated tale",
)

DEPARTMENT_BLOCKS = ("manuscript", "rare book", "library", "archives")


def is_book_like(
    title: str,
    technique: Optional[str],
    object_type: Optional[str],
    department: Optional[str],
) -> bool:
    """True for pages, folios, bound volumes and other non-display objects."""
    title = title.lower()
    technique = (technique or "").lower()
    object_type = (object_type or "").lower()
    department = (department or "").lower()

    if any(block in title for block in SERIES_TITLE_BLOCKS):
        return True
    if "bound volume" in object_type:
        return True
    if any(block in technique for block in TECHNIQUE_BLOCKS):
        return True
    if any(block in title for block in TITLE_BLOCKS):
        return True
    return any(block in department for block in DEPARTMENT_BLOCKS)


class CMASource(BaseSource):
    """Cleveland Museum of Art open access API (CC0 only)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(client, base_url)
        self._rng = rng or random.Random()

    @property
    def tag(self) -> str:
        return "cma"

    @property
    def source_name(self) -> str:
        return "Cleveland Museum of Art"

    async def list_identifiers(self, filters: Filters) -> List[str]:
        params: Dict[str, Any] = {
            "cc0": "",
            "has_image": 1,
            "limit": SEARCH_LIMIT,
            "skip": self._rng.randint(0, MAX_SKIP),
        }
        terms = filters.query_terms()
        if terms:
            params["q"] = " ".join(terms)

        payload = await self._get_json("artworks/", params=params)
        with self._parsing("search payload"):
            ids = [item["id"] for item in payload.get("data") or [] if "id" in item]
        if not ids:
            raise NotFound("Cleveland search returned no artworks", source=self.tag)
        return [self._identifier(artwork_id) for artwork_id in ids[:MAX_IDS]]

    async def resolve(self, identifier: str) -> Record:
        artwork_id = self._int_local_id(identifier)
        payload = await self._get_json(f"artworks/{artwork_id}")
        with self._parsing(f"artwork {artwork_id}"):
            return self._to_record(identifier, artwork_id, payload)

    def _to_record(self, identifier: str, artwork_id: int, payload: Dict[str, Any]) -> Record:
        artwork = payload.get("data")
        if not isinstance(artwork, dict):
            raise Malformed(f"Cleveland artwork {artwork_id} has no data block", source=self.tag)

        status = non_empty(artwork.get("share_license_status"))
        if status and status.upper() != "CC0":
            raise RightsRejected(
                f"Cleveland artwork {artwork_id} is licensed {status}", source=self.tag
            )

        image_url = _best_image_url(artwork.get("images") or {})
        if image_url is None:
            raise NotFound(f"Cleveland artwork {artwork_id} has no image", source=self.tag)

        title = non_empty(artwork.get("title")) or "Untitled"
        technique = non_empty(artwork.get("technique"))
        object_type = non_empty(artwork.get("type"))
        department = non_empty(artwork.get("department"))
        if is_book_like(title, technique, object_type, department):
            raise RightsRejected(
                f"Cleveland artwork {artwork_id} is a book or manuscript page", source=self.tag
            )

        creators = artwork.get("creators") or []
        artist = non_empty(creators[0].get("description")) if creators else None

        return Record(
            id=identifier,
            title=title,
            artist=artist or "Unknown artist",
            date=non_empty(artwork.get("creation_date")),
            medium=technique,
            image_url=image_url,
            source_name=self.source_name,
            source_url=non_empty(artwork.get("url"))
            or f"https://www.clevelandart.org/art/{artwork_id}",
            debug_fields=self._debug_fields(artwork, object_type, department, technique, status),
        )

    def _debug_fields(
        self,
        artwork: Dict[str, Any],
        object_type: Optional[str],
        department: Optional[str],
        technique: Optional[str],
        status: Optional[str],
    ) -> Dict[str, str]:
        debug = {"provider": self.tag, "cma_id": str(artwork.get("id"))}
        optional = {
            "type": object_type,
            "department": department,
            "technique": technique,
            "share_license_status": status,
        }
        debug.update({key: value for key, value in optional.items() if value})

        culture = artwork.get("culture") or []
        if culture:
            debug["culture"] = str(culture[0])
        for key in ("inseparable_parts", "part_visible"):
            value = artwork.get(key)
            if isinstance(value, bool):
                debug[key] = "true" if value else "false"
        return debug


def _best_image_url(images: Dict[str, Any]) -> Optional[str]:
    for size in ("web", "print", "full"):
        image = images.get(size) or {}
        url = non_empty(image.get("url"))
        if url:
            return url
    return None
