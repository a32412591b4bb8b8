"""
utils.py — Shared helpers for listenstream
===========================================
"""

from __future__ import annotations

import logging
import math
import re
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from listenstream.pipeline import StreamgraphLayout


# ── structured logger ───────────────────────────────────────────────────────

def get_logger(name: str = "listenstream", level: int = logging.INFO) -> logging.Logger:
    """
    Return a consistently-formatted logger.

    Format: ``[2026-02-10 08:15:23 UTC] [INFO] module — message``
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="[%(asctime)s UTC] [%(levelname)s] %(name)s — %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        formatter.converter = lambda *_: datetime.now(timezone.utc).timetuple()
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# ── padding keys ────────────────────────────────────────────────────────────

PADDING_LOW = "other0"
PADDING_HIGH = "other1"

# Matches "other", "other0", "other1" (and any key containing "othe").
_PADDING_PATTERN = re.compile(r"other?")


def is_padding_key(key: str) -> bool:
    """True for the background bands that absorb unclassified volume."""
    return _PADDING_PATTERN.search(key) is not None


# ── numeric helpers ─────────────────────────────────────────────────────────

def round_half_up(x: float) -> int:
    """
    Round to the nearest integer, halves toward +inf.

    Python's ``round`` uses banker's rounding; colour channels are
    quantised the way browsers do it.
    """
    return int(math.floor(x + 0.5))


def clamp_channel(x: float) -> int:
    """Quantise a colour channel to [0, 255]; NaN maps to 0."""
    if math.isnan(x):
        return 0
    return max(0, min(255, round_half_up(x)))


# ── reporting ───────────────────────────────────────────────────────────────

def format_layout_summary(layout: "StreamgraphLayout", top: int = 10) -> str:
    """Return a multi-line report string suitable for logging / stdout."""
    start, end = layout.date_extent
    low, high = layout.value_extent
    lines = [
        "=" * 64,
        "  STREAMGRAPH LAYOUT",
        "=" * 64,
        f"  Samples               : {len(layout.samples):>15,d}",
        f"  Date range            : {start.isoformat():>15} → {end.isoformat()}",
        f"  Artists               : {len(layout.artists):>15,d}",
        f"  Bands                 : {len(layout.bands):>15,d}",
        f"  Value extent          : {low:>15,.1f} → {high:,.1f}",
        "-" * 64,
        f"  {'#':>3}  {'Band':<28} {'Rank':>5} {'Colour':>9}",
    ]
    artist_bands = [b for b in layout.bands if not is_padding_key(b.key)]
    for band in artist_bands[:top]:
        artist = layout.artists.get(band.key)
        label = artist.name if artist else band.key
        rank = f"{artist.popularity_rank:d}" if artist else "-"
        lines.append(
            f"  {band.index:>3}  {label[:28]:<28} {rank:>5} {layout.color(band.key).hex:>9}"
        )
    if len(artist_bands) > top:
        lines.append(f"  ... {len(artist_bands) - top} more")
    lines.append("=" * 64)
    return "\n".join(lines)
