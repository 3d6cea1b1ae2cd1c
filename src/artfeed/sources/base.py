"""
Base source interface for museum catalogs.

All sources inherit from BaseSource and implement list_identifiers() and resolve().
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

import httpx

from ..errors import Malformed, NotFound, SourceUnavailable
from ..logging import get_logger
from ..models import Filters, Record, make_identifier

LOGGER = get_logger(__name__)

# Raised by dict/list access on a payload whose shape differs from the documented one.
PAYLOAD_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError)


def non_empty(value: Any) -> Optional[str]:
    """Return a stripped string, or None for missing/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class BaseSource(ABC):
    """
    Abstract base class for museum data sources.

    Sources communicate failure, not partial records: a Record handed back by
    resolve() is complete, anything else raises a SourceError subclass.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        """
        Initialize source.

        Args:
            client: Shared async HTTP client (owned by the caller)
            base_url: API root for this museum
        """
        self._client = client
        self._base_url = base_url.rstrip("/")

    @property
    @abstractmethod
    def tag(self) -> str:
        """Short lowercase identifier prefix (e.g., 'met', 'aic')."""
        pass

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable museum name."""
        pass

    @abstractmethod
    async def list_identifiers(self, filters: Filters) -> List[str]:
        """
        List candidate identifiers for the filters.

        Returns:
            Tagged identifiers; may be fewer than the source holds
        """
        pass

    @abstractmethod
    async def resolve(self, identifier: str) -> Record:
        """
        Resolve one tagged identifier to a full record.

        Raises:
            RightsRejected, NotFound, Malformed or SourceUnavailable
        """
        pass

    @contextmanager
    def _parsing(self, what: str) -> Iterator[None]:
        """Re-raise payload shape errors inside the block as ``Malformed``."""
        try:
            yield
        except PAYLOAD_ERRORS as exc:
            raise Malformed(
                f"{self.tag} {what} has an unexpected shape: {exc!r}", source=self.tag
            ) from exc

    def _identifier(self, local_id: object) -> str:
        return make_identifier(self.tag, local_id)

    def _local_id(self, identifier: str) -> str:
        prefix = f"{self.tag}:"
        if not identifier.startswith(prefix) or len(identifier) == len(prefix):
            raise Malformed(f"Identifier {identifier!r} does not belong to {self.tag}", source=self.tag)
        return identifier[len(prefix):]

    def _int_local_id(self, identifier: str) -> int:
        raw = self._local_id(identifier)
        try:
            return int(raw)
        except ValueError as exc:
            raise Malformed(f"Non-numeric {self.tag} id: {raw!r}", source=self.tag) from exc

    async def _get_json(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """GET ``path`` under the base URL and decode a JSON object."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"{self.tag} request failed: {exc}", source=self.tag) from exc

        if response.status_code == 404:
            raise NotFound(f"{self.tag} returned 404 for {url}", source=self.tag)
        if not response.is_success:
            raise SourceUnavailable(
                f"{self.tag} returned HTTP {response.status_code} for {url}", source=self.tag
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise Malformed(f"{self.tag} returned undecodable JSON", source=self.tag) from exc
        if not isinstance(payload, dict):
            raise Malformed(f"{self.tag} returned a non-object payload", source=self.tag)
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r})"
