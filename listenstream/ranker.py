"""
ranker.py — Artist Popularity Ranking
======================================
Scores every artist by listens per year of age and assigns a 1-based rank.

    popularity = count / age

Pipeline
--------
1.  Score each record (age must be a positive, finite number).
2.  Stable sort by descending popularity — ties keep input order.
3.  Rank = position in that order (1-based).
4.  Deduplicate by id, keeping the first record seen.  Ranks of discarded
    duplicates are *not* reused, so the surviving ranks may have gaps.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Union

from listenstream.models import (
    ArtistRecord,
    InvalidAgeError,
    MalformedRecordError,
    RankedArtist,
)
from listenstream.utils import get_logger

logger = get_logger("listenstream.ranker")

ArtistInput = Union[ArtistRecord, Mapping[str, Any]]


def popularity(record: ArtistRecord) -> float:
    """
    Listens per year of age; raises ``InvalidAgeError`` when undefined.

    A non-finite ``count`` is a malformed record, not an age problem.
    """
    if not math.isfinite(record.count):
        raise MalformedRecordError(
            f"Artist {record.id!r} has non-finite count {record.count!r}"
        )
    age = record.age
    if age is None or not math.isfinite(age) or age <= 0:
        raise InvalidAgeError(record)
    score = record.count / age
    if not math.isfinite(score):
        raise InvalidAgeError(record)
    return score


def rank_artists(artists: Iterable[ArtistInput]) -> Mapping[str, RankedArtist]:
    """
    Build the ranked artist map keyed by ``str(id)``.

    Insertion order of the returned mapping is the popularity order of the
    surviving records.  The mapping is read-only.
    """
    records: List[ArtistRecord] = [
        a if isinstance(a, ArtistRecord) else ArtistRecord.from_dict(a)
        for a in artists
    ]
    scores = [popularity(r) for r in records]

    order = sorted(range(len(records)), key=lambda i: -scores[i])

    ranked: Dict[str, RankedArtist] = {}
    dropped = 0
    for rank, i in enumerate(order, start=1):
        record = records[i]
        if record.key in ranked:
            dropped += 1
            logger.debug(
                "Dropping duplicate artist id %s (rank %d) — kept rank %d",
                record.key, rank, ranked[record.key].popularity_rank,
            )
            continue
        ranked[record.key] = RankedArtist(
            id=record.id,
            name=record.name,
            age=record.age,
            count=record.count,
            popularity=scores[i],
            popularity_rank=rank,
        )

    if ranked:
        top = next(iter(ranked.values()))
        logger.info(
            "Ranked %d artists (%d duplicates dropped) — top: %s (%.2f)",
            len(ranked), dropped, top.name or top.key, top.popularity,
        )
    else:
        logger.warning("No artists to rank")
    return MappingProxyType(ranked)
