"""
normalizer.py — Time-Series Normalisation
==========================================
Turns the raw ``data`` rows of the export into ``TimeSample`` records.

Per sample, in order:

1.  Parse ``date`` with a fixed calendar format (default ``%Y-%m-%d``).
    An unparseable date fails the whole run — there is no fallback date.
2.  Split ``other`` into two symmetric padding fields:
    ``other0 = other1 = other / 2``.
3.  Zero-fill every category key the sample does not carry.  Values that
    are present are never overwritten.  Fields that are not categories
    are carried through unchanged in ``TimeSample.extras``.

Time order is a precondition and is not checked here.
"""

from __future__ import annotations

import datetime
import math
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from listenstream.config import DEFAULT_DATE_FORMAT
from listenstream.models import (
    MalformedDateError,
    MalformedRecordError,
    TimeSample,
    as_number,
)
from listenstream.utils import get_logger

logger = get_logger("listenstream.normalizer")

_RESERVED = {"date", "other", "other0", "other1"}


def parse_sample_date(
    value: Any, index: int, fmt: str = DEFAULT_DATE_FORMAT,
) -> datetime.date:
    """Parse one sample date, raising ``MalformedDateError`` on failure."""
    if not isinstance(value, str):
        raise MalformedDateError(index, value, fmt)
    try:
        ts = pd.to_datetime(value, format=fmt)
    except (ValueError, TypeError, OverflowError):
        raise MalformedDateError(index, value, fmt) from None
    if pd.isna(ts):
        raise MalformedDateError(index, value, fmt)
    return ts.date()


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def normalize_sample(
    raw: Mapping[str, Any],
    index: int,
    category_keys: Iterable[str],
    date_format: str = DEFAULT_DATE_FORMAT,
) -> TimeSample:
    """Normalise a single raw sample (see module docstring for the steps)."""
    date = parse_sample_date(raw.get("date"), index, date_format)

    if "other" not in raw:
        raise MalformedRecordError(f"Sample {index} ({raw.get('date')}) has no 'other' field")
    other = as_number(raw["other"], f"Sample {index} 'other'")
    half = other / 2.0

    values: Dict[str, float] = {}
    for key in category_keys:
        value = raw.get(key)
        values[key] = 0.0 if _is_missing(value) else as_number(
            value, f"Sample {index} field {key!r}",
        )

    # Fields that are not categories are carried through untouched.
    extras = {
        key: value for key, value in raw.items()
        if key not in _RESERVED and key not in values
    }

    return TimeSample(
        date=date, other=other, other0=half, other1=half,
        values=values, extras=extras,
    )


def normalize_samples(
    data: Iterable[Mapping[str, Any]],
    category_keys: Sequence[str],
    date_format: str = DEFAULT_DATE_FORMAT,
) -> List[TimeSample]:
    """Normalise every raw sample, preserving input order."""
    keys = list(category_keys)
    samples = [
        normalize_sample(raw, i, keys, date_format)
        for i, raw in enumerate(data)
    ]
    if samples:
        logger.info(
            "Normalised %d samples × %d categories (%s → %s)",
            len(samples), len(keys),
            samples[0].date.isoformat(), samples[-1].date.isoformat(),
        )
    return samples


def samples_to_frame(
    samples: Sequence[TimeSample],
    keys: Sequence[str],
) -> pd.DataFrame:
    """
    Wide DataFrame view of the samples: one row per sample, one float
    column per requested key (padding keys allowed), indexed by date.
    """
    rows = [[s.get(k) for k in keys] for s in samples]
    frame = pd.DataFrame(rows, columns=list(keys), dtype=float)
    frame.index = pd.Index([s.date for s in samples], name="date")
    return frame
