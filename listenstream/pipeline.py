"""
pipeline.py — Streamgraph Pipeline Orchestration
=================================================
Runs the four stages over one raw dataset and bundles everything a
renderer needs:

    top_artists ──► rank_artists ──► artists ──┬──► artist_color_scale ──► color
                                               │
    data ────────► normalize_samples ──────────┴──► stack_layout ──► bands

The layout is a pure function of the dataset and settings: no state is
kept between calls, so re-running on the same input yields identical
bands and colours.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from listenstream.colors import ColorAssignment, artist_color_scale
from listenstream.config import Settings, load_settings
from listenstream.models import (
    MalformedRecordError,
    RankedArtist,
    StackedBand,
    TimeSample,
)
from listenstream.normalizer import normalize_samples
from listenstream.ranker import rank_artists
from listenstream.stack_layout import stack_layout
from listenstream.utils import get_logger, is_padding_key

logger = get_logger("listenstream.pipeline")


@dataclass(frozen=True)
class StreamgraphLayout:
    """Everything the renderer consumes for one dataset."""

    artists: Mapping[str, RankedArtist]
    samples: List[TimeSample]
    bands: List[StackedBand]
    color: ColorAssignment

    @property
    def keys(self) -> List[str]:
        """Band keys in stacking order."""
        return [b.key for b in self.bands]

    @property
    def date_extent(self) -> Tuple[datetime.date, datetime.date]:
        dates = [s.date for s in self.samples]
        return min(dates), max(dates)

    @property
    def value_extent(self) -> Tuple[float, float]:
        """Lowest baseline and highest top over all bands (the y domain)."""
        return (
            min(min(b.y0) for b in self.bands),
            max(max(b.y1) for b in self.bands),
        )

    def year_ticks(self) -> List[datetime.date]:
        """1 January of each year after the first, before the last sample."""
        start, end = self.date_extent
        return [
            datetime.date(year, 1, 1)
            for year in range(start.year + 1, end.year + 1)
            if datetime.date(year, 1, 1) < end
        ]

    @staticmethod
    def layer_kind(key: str) -> str:
        return "background" if is_padding_key(key) else "artist"

    def artist_label(self, key: str) -> str:
        """Display name for a band; empty for padding or unknown keys."""
        artist = self.artists.get(key)
        return artist.name if artist else ""

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view of the layout."""
        start, end = self.date_extent
        low, high = self.value_extent
        return {
            "dates": [s.date.isoformat() for s in self.samples],
            "date_extent": [start.isoformat(), end.isoformat()],
            "value_extent": [low, high],
            "year_ticks": [d.isoformat() for d in self.year_ticks()],
            "artists": {k: a.to_dict() for k, a in self.artists.items()},
            "layers": [
                {
                    **band.to_dict(),
                    "kind": self.layer_kind(band.key),
                    "label": self.artist_label(band.key),
                    "color": self.color(band.key).hex,
                }
                for band in self.bands
            ],
        }


def build_streamgraph(
    dataset: Mapping[str, Any],
    settings: Settings | None = None,
) -> StreamgraphLayout:
    """
    Run ranker → normaliser → stack layout → colour scale.

    Parameters
    ----------
    dataset : mapping
        Parsed export with ``top_artists`` and ``data``.
    settings : Settings, optional
        Palette and date format; loaded from ``.env`` if not supplied.
    """
    settings = settings or load_settings()
    for field_name in ("top_artists", "data"):
        if field_name not in dataset:
            raise MalformedRecordError(f"Dataset has no '{field_name}' field")

    artists = rank_artists(dataset["top_artists"])
    keys = list(artists)
    samples = normalize_samples(dataset["data"], keys, settings.date_format)
    bands = stack_layout(samples, keys)
    color = artist_color_scale(
        artists,
        low=settings.color_low,
        high=settings.color_high,
        padding=settings.padding_color,
    )

    logger.info(
        "Streamgraph ready — %d artists, %d samples, %d bands",
        len(artists), len(samples), len(bands),
    )
    return StreamgraphLayout(artists=artists, samples=samples, bands=bands, color=color)
