"""Metropolitan Museum of Art collection API source."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import Malformed, NotFound, RightsRejected
from ..models import Filters, Record
from .base import BaseSource, non_empty

MAX_IDS = 2000


class MetSource(BaseSource):
    """The Met open access API. Public domain is checked per object."""

    @property
    def tag(self) -> str:
        return "met"

    @property
    def source_name(self) -> str:
        return "The Met"

    async def list_identifiers(self, filters: Filters) -> List[str]:
        params: Dict[str, Any] = {
            "q": filters.query or "painting",
            "hasImages": "true",
        }
        if filters.medium:
            params["medium"] = filters.medium
        if filters.geo:
            params["geoLocation"] = filters.geo
        if filters.period.year_range:
            start, end = filters.period.year_range
            params["dateBegin"] = start
            params["dateEnd"] = end

        payload = await self._get_json("search", params=params)
        with self._parsing("search payload"):
            object_ids = payload.get("objectIDs") or []
            if not object_ids:
                raise NotFound("Met search returned no objects", source=self.tag)
            return [self._identifier(object_id) for object_id in object_ids[:MAX_IDS]]

    async def resolve(self, identifier: str) -> Record:
        object_id = self._int_local_id(identifier)
        obj = await self._get_json(f"objects/{object_id}")
        with self._parsing(f"object {object_id}"):
            return self._to_record(identifier, object_id, obj)

    def _to_record(self, identifier: str, object_id: int, obj: Dict[str, Any]) -> Record:
        if "objectID" not in obj:
            raise Malformed(f"Met object {object_id} has no objectID", source=self.tag)
        if not obj.get("isPublicDomain", False):
            raise RightsRejected(f"Met object {object_id} is not public domain", source=self.tag)

        image_url = non_empty(obj.get("primaryImageSmall")) or non_empty(obj.get("primaryImage"))
        if image_url is None:
            raise NotFound(f"Met object {object_id} has no image", source=self.tag)

        return Record(
            id=identifier,
            title=non_empty(obj.get("title")) or "Untitled",
            artist=non_empty(obj.get("artistDisplayName")) or "Unknown artist",
            date=non_empty(obj.get("objectDate")),
            medium=non_empty(obj.get("medium")),
            image_url=image_url,
            source_name=self.source_name,
            source_url=non_empty(obj.get("objectURL")),
            debug_fields=self._debug_fields(obj),
        )

    def _debug_fields(self, obj: Dict[str, Any]) -> Dict[str, str]:
        debug = {
            "provider": self.tag,
            "met_objectID": str(obj["objectID"]),
            "isPublicDomain": "true" if obj.get("isPublicDomain") else "false",
        }
        for key, field_name in (
            ("creditLine", "creditLine"),
            ("medium_raw", "medium"),
            ("country", "country"),
            ("culture", "culture"),
        ):
            value = non_empty(obj.get(field_name))
            if value:
                debug[key] = value
        year = _best_year(obj)
        if year is not None:
            debug["year"] = str(year)
        return debug


def _best_year(obj: Dict[str, Any]) -> Optional[int]:
    for key in ("objectBeginDate", "objectEndDate"):
        value = obj.get(key)
        if isinstance(value, int) and value != 0:
            return value
    return None
