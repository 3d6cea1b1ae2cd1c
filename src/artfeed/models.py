"""Core data types shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from .errors import UnknownSource


class PeriodPreset(str, Enum):
    """Period filter presets with their closed year ranges."""

    ANY = "any"
    MEDIEVAL = "medieval"
    RENAISSANCE = "renaissance"
    BAROQUE = "baroque"
    MODERN = "modern"
    CONTEMPORARY = "contemporary"

    @property
    def label(self) -> str:
        return _PERIOD_LABELS[self]

    @property
    def year_range(self) -> Optional[Tuple[int, int]]:
        return _PERIOD_RANGES.get(self)


_PERIOD_LABELS: Dict[PeriodPreset, str] = {
    PeriodPreset.ANY: "Any",
    PeriodPreset.MEDIEVAL: "Medieval (500-1400)",
    PeriodPreset.RENAISSANCE: "Renaissance (1400-1600)",
    PeriodPreset.BAROQUE: "Baroque (1600-1750)",
    PeriodPreset.MODERN: "Modern (1750-1950)",
    PeriodPreset.CONTEMPORARY: "Contemporary (1950-Now)",
}

_PERIOD_RANGES: Dict[PeriodPreset, Tuple[int, int]] = {
    PeriodPreset.MEDIEVAL: (500, 1400),
    PeriodPreset.RENAISSANCE: (1400, 1600),
    PeriodPreset.BAROQUE: (1600, 1750),
    PeriodPreset.MODERN: (1750, 1950),
    PeriodPreset.CONTEMPORARY: (1950, 9999),
}


class SourceSelection(str, Enum):
    """Which bundled museums participate in the pool."""

    MIXED = "mixed"
    MET = "met"
    AIC = "aic"
    CMA = "cma"

    @property
    def allowed_tags(self) -> Optional[FrozenSet[str]]:
        """Tag prefixes allowed in the pool; ``None`` means every source."""
        if self is SourceSelection.MIXED:
            return None
        return frozenset({self.value})


MEDIUM_OPTIONS: List[str] = [
    "Paintings",
    "Photographs",
    "Prints",
    "Drawings",
    "Sculpture",
    "Ceramics",
    "Textiles",
    "Furniture",
    "Arms and Armor",
]

GEO_OPTIONS: List[str] = [
    "United States",
    "France",
    "Italy",
    "Netherlands",
    "Spain",
    "England",
    "Germany",
    "Japan",
    "China",
    "India",
    "Mexico",
    "Greece",
    "Egypt",
]


@dataclass(frozen=True)
class Filters:
    """Search filters handed to every source's ``list_identifiers``."""

    query: str = "painting"
    medium: Optional[str] = None
    geo: Optional[str] = None
    period: PeriodPreset = PeriodPreset.ANY

    def query_terms(self) -> List[str]:
        """Non-empty query, medium and geo terms, in that order."""
        return [term for term in (self.query, self.medium, self.geo) if term]


@dataclass(frozen=True)
class Record:
    """A resolved artwork. Immutable once a source hands it back."""

    id: str
    title: str
    artist: str
    image_url: str
    source_name: str
    date: Optional[str] = None
    medium: Optional[str] = None
    source_url: Optional[str] = None
    debug_fields: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def tag(self) -> str:
        return split_identifier(self.id)[0]

    @property
    def debug_text(self) -> str:
        """Human-readable dump for copy/share."""
        lines = [f"id: {self.id}", f"source: {self.source_name}"]
        if self.source_url:
            lines.append(f"source_url: {self.source_url}")
        lines.append(f"title: {self.title}")
        lines.append(f"artist: {self.artist}")
        if self.date:
            lines.append(f"date: {self.date}")
        if self.medium:
            lines.append(f"medium: {self.medium}")
        lines.append(f"image_url: {self.image_url}")

        if self.debug_fields:
            lines.append("")
            lines.append("---- debug_fields ----")
            for key in sorted(self.debug_fields):
                lines.append(f"{key}: {self.debug_fields[key]}")
        return "\n".join(lines)


def make_identifier(tag: str, local_id: object) -> str:
    return f"{tag}:{local_id}"


def split_identifier(identifier: str) -> Tuple[str, str]:
    """Split ``"<tag>:<local-id>"`` on the first colon."""
    tag, sep, local_id = identifier.partition(":")
    if not sep or not tag:
        raise UnknownSource(f"Identifier has no source tag: {identifier!r}")
    return tag, local_id


__all__ = [
    "Filters",
    "GEO_OPTIONS",
    "MEDIUM_OPTIONS",
    "PeriodPreset",
    "Record",
    "SourceSelection",
    "make_identifier",
    "split_identifier",
]
