"""
models.py — Typed Records for the Streamgraph Pipeline
=======================================================
Plain dataclasses flowing between the ranker, the normaliser, the stack
layout engine and the colour assigner, plus the pipeline error hierarchy.

Every record is constructed explicitly; derived fields live on their own
variant (``RankedArtist``) instead of being merged into the raw record.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


# ═════════════════════════════════════════════════════════════════════════════
#  ERRORS
# ═════════════════════════════════════════════════════════════════════════════

class StreamgraphError(ValueError):
    """Base class for every input-validation failure in the pipeline."""


class MalformedRecordError(StreamgraphError):
    """Raised when an artist record, sample or dataset is structurally invalid."""


class MalformedDateError(StreamgraphError):
    """Raised when a time sample's date string cannot be parsed."""

    def __init__(self, index: int, value: Any, fmt: str) -> None:
        self.index = index
        self.value = value
        super().__init__(
            f"Sample {index}: cannot parse date {value!r} with format {fmt!r}"
        )


class InvalidAgeError(StreamgraphError):
    """Raised when an artist's age makes popularity non-finite."""

    def __init__(self, record: "ArtistRecord") -> None:
        self.record = record
        super().__init__(
            f"Artist {record.id!r} ({record.name or 'unnamed'}) has invalid "
            f"age {record.age!r} — popularity would be non-finite"
        )


class EmptyDatasetError(StreamgraphError):
    """Raised when there is nothing to stack (no artists or no samples)."""


class InvalidColorError(StreamgraphError):
    """Raised when a configured colour is not a hex string."""


def as_number(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise MalformedRecordError(f"{what} must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(f"{what} must be numeric, got {value!r}") from None


# ═════════════════════════════════════════════════════════════════════════════
#  ARTISTS
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ArtistRecord:
    """One entry of ``top_artists`` as delivered by the export."""

    id: Any
    name: str
    age: Optional[float]    # missing age is rejected by the ranker
    count: float            # raw listen count

    @property
    def key(self) -> str:
        """Category key used by samples and bands."""
        return str(self.id)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ArtistRecord":
        if "id" not in raw or raw["id"] is None:
            raise MalformedRecordError(f"Artist record without id: {dict(raw)!r}")
        if "count" not in raw:
            raise MalformedRecordError(f"Artist {raw['id']!r} has no count")

        age = raw.get("age")
        return cls(
            id=raw["id"],
            name=str(raw.get("name") or ""),
            age=None if age is None else as_number(age, f"Artist {raw['id']!r} age"),
            count=as_number(raw["count"], f"Artist {raw['id']!r} count"),
        )


@dataclass(frozen=True)
class RankedArtist(ArtistRecord):
    """An ``ArtistRecord`` carrying its derived popularity fields."""

    popularity: float = math.nan        # count / age
    popularity_rank: int = 0            # 1-based, by descending popularity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "count": self.count,
            "popularity": self.popularity,
            "popularityRank": self.popularity_rank,
        }


# ═════════════════════════════════════════════════════════════════════════════
#  SAMPLES & BANDS
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TimeSample:
    """
    One normalised point on the time axis.

    ``values`` holds the category series, ``extras`` any other field the
    export carried; both are read-only mappings.
    """

    date: datetime.date
    other: float
    other0: float
    other1: float
    values: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    def get(self, key: str) -> float:
        """Value of a category or padding field (0.0 for unknown keys)."""
        if key == "other":
            return self.other
        if key == "other0":
            return self.other0
        if key == "other1":
            return self.other1
        return self.values.get(key, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "date": self.date.isoformat(),
            "other": self.other,
            "other0": self.other0,
            "other1": self.other1,
        }
        record.update(self.extras)
        record.update(self.values)
        return record


@dataclass(frozen=True)
class StackedBand:
    """Geometry of one stacked layer: lower/upper offset per sample."""

    key: str
    index: int
    y0: Tuple[float, ...]
    y1: Tuple[float, ...]

    @property
    def per_sample(self) -> List[Tuple[float, float]]:
        return list(zip(self.y0, self.y1))

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "index": self.index, "y0": list(self.y0), "y1": list(self.y1)}


# ═════════════════════════════════════════════════════════════════════════════
#  COLOUR
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Color:
    """8-bit sRGB colour."""

    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse ``#RRGGBB`` (or ``#RGB``)."""
        if not isinstance(value, str):
            raise InvalidColorError(f"Not a hex colour: {value!r}")
        digits = value.strip().lstrip("#")
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        if len(digits) != 6:
            raise InvalidColorError(f"Not a hex colour: {value!r}")
        try:
            return cls(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
        except ValueError:
            raise InvalidColorError(f"Not a hex colour: {value!r}") from None

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    @property
    def css(self) -> str:
        return f"rgb({self.r}, {self.g}, {self.b})"
