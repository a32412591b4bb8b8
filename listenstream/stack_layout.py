"""
stack_layout.py — Streamgraph Stack Layout Engine
===================================================
Computes band geometry for the streamgraph in two passes.

**Pass 1 — order discovery**
    Stack the real categories with the *inside-out* order and the
    *wiggle* offset.  Only the position each category lands on is kept;
    the offsets of this pass are thrown away.

**Pass 2 — final geometry**
    Stack ``other0 + categories (by pass-1 position) + other1`` in exactly
    that order, again with the wiggle offset, so the padding bands take
    part in wiggle minimisation while the category → slot mapping stays
    fixed across re-renders.

Primitives work on a value matrix ``F`` of shape ``(n_series, n_samples)``.

Wiggle offset (Byron & Wattenberg), for stacking order ``o``:

    s1(j) = Σ_i F[o_i, j]
    s2(j) = Σ_i F[o_i, j] · ( ΔF[o_i, j] / 2 + Σ_{k<i} ΔF[o_k, j] )
    g(0)  = 0
    g(j)  = g(j-1) − s2(j) / s1(j)          (g(j-1) when s1(j) == 0)

where ``ΔF[:, j] = F[:, j] − F[:, j-1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from listenstream.models import EmptyDatasetError, StackedBand, TimeSample
from listenstream.normalizer import samples_to_frame
from listenstream.utils import PADDING_HIGH, PADDING_LOW, get_logger

logger = get_logger("listenstream.stack_layout")


# ═════════════════════════════════════════════════════════════════════════════
#  ORDERS
# ═════════════════════════════════════════════════════════════════════════════

def _clean(values: np.ndarray) -> np.ndarray:
    """Float copy with NaN treated as zero."""
    return np.nan_to_num(np.asarray(values, dtype=float), nan=0.0)


def order_none(values: np.ndarray) -> np.ndarray:
    """Keep the series in the order given."""
    return np.arange(np.asarray(values).shape[0])


def order_appearance(values: np.ndarray) -> np.ndarray:
    """Series sorted by the sample index of their (first) peak value."""
    values = np.asarray(values, dtype=float)
    if values.shape[0] == 0:
        return np.arange(0)
    if values.shape[1] == 0:
        return order_none(values)
    peaks = np.argmax(np.where(np.isnan(values), -np.inf, values), axis=1)
    return np.argsort(peaks, kind="stable")


def order_inside_out(values: np.ndarray) -> np.ndarray:
    """
    Inside-out order: early-peaking series sit in the middle of the stack,
    later ones are added alternately above and below, always to the
    lighter side.
    """
    sums = _clean(values).sum(axis=1)
    top = bottom = 0.0
    tops: List[int] = []
    bottoms: List[int] = []
    for j in order_appearance(values):
        if top < bottom:
            top += sums[j]
            tops.append(int(j))
        else:
            bottom += sums[j]
            bottoms.append(int(j))
    return np.array(bottoms[::-1] + tops, dtype=int)


# ═════════════════════════════════════════════════════════════════════════════
#  OFFSETS
# ═════════════════════════════════════════════════════════════════════════════

def offset_wiggle(values: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """Wiggle-minimising baseline, one value per sample (see module docstring)."""
    F = _clean(values)[np.asarray(order, dtype=int)]
    m = F.shape[1]
    if F.shape[0] == 0 or m == 0:
        return np.zeros(m, dtype=float)

    delta = np.diff(F, axis=1)                              # (n, m-1)
    below = np.cumsum(delta, axis=0) - delta                # Σ_{k<i} ΔF
    current = F[:, 1:]
    s1 = current.sum(axis=0)
    s2 = (current * (delta / 2.0 + below)).sum(axis=0)

    step = np.divide(s2, s1, out=np.zeros_like(s1), where=s1 != 0)
    return np.concatenate(([0.0], -np.cumsum(step)))


def stack(
    values: np.ndarray,
    order: Sequence[int],
    baseline: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack the series on ``baseline`` following ``order``.

    Returns ``(y0, y1)`` arrays shaped like ``values`` (row = series, in the
    original row order, not the stacking order).
    """
    F = _clean(values)
    order = np.asarray(order, dtype=int)
    y0 = np.zeros_like(F)
    y1 = np.zeros_like(F)
    if F.shape[0] == 0:
        return y0, y1

    tops = np.cumsum(F[order], axis=0) + baseline
    y1[order] = tops
    y0[order] = np.vstack([baseline[np.newaxis, :], tops[:-1]])
    return y0, y1


# ═════════════════════════════════════════════════════════════════════════════
#  TWO-PASS LAYOUT
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StackOrder:
    """Result of pass 1: stacking slot per category key."""

    positions: Dict[str, int]

    def sorted_keys(self, keys: Sequence[str]) -> List[str]:
        """``keys`` by position; equal positions fall back to input order."""
        rank = {k: i for i, k in enumerate(keys)}
        return sorted(keys, key=lambda k: (self.positions[k], rank[k]))


def _value_matrix(samples: Sequence[TimeSample], keys: Sequence[str]) -> np.ndarray:
    if not samples:
        raise EmptyDatasetError("No time samples to stack")
    if not keys:
        raise EmptyDatasetError("No categories to stack")
    return samples_to_frame(samples, keys).to_numpy(dtype=float).T


def discover_order(samples: Sequence[TimeSample], keys: Sequence[str]) -> StackOrder:
    """
    Pass 1: inside-out positions of the real categories (no padding).

    The order is fixed before any offset is applied, so the wiggle
    baseline of this pass never needs to be computed.
    """
    keys = list(keys)
    values = _value_matrix(samples, keys)
    order = order_inside_out(values)

    positions = {keys[series]: slot for slot, series in enumerate(order)}
    logger.debug("Pass-1 order: %s", [keys[i] for i in order])
    return StackOrder(positions=positions)


def final_key_order(keys: Sequence[str], stack_order: StackOrder) -> List[str]:
    """``other0`` + categories by pass-1 position + ``other1``."""
    return [PADDING_LOW] + stack_order.sorted_keys(list(keys)) + [PADDING_HIGH]


def stack_fixed(samples: Sequence[TimeSample], keys: Sequence[str]) -> List[StackedBand]:
    """Stack ``keys`` strictly in the given order with the wiggle offset."""
    keys = list(keys)
    values = _value_matrix(samples, keys)
    order = order_none(values)
    baseline = offset_wiggle(values, order)
    y0, y1 = stack(values, order, baseline)
    return [
        StackedBand(
            key=key,
            index=i,
            y0=tuple(float(v) for v in y0[i]),
            y1=tuple(float(v) for v in y1[i]),
        )
        for i, key in enumerate(keys)
    ]


def stack_layout(samples: Sequence[TimeSample], keys: Sequence[str]) -> List[StackedBand]:
    """
    Full two-pass layout.

    Parameters
    ----------
    samples : sequence of TimeSample
        Normalised samples in time order.
    keys : sequence of str
        Category keys of the ranked artist map (no padding keys).

    Returns
    -------
    list of StackedBand
        ``len(keys) + 2`` bands, ``other0`` first and ``other1`` last.
    """
    stack_order = discover_order(samples, keys)
    ordered = final_key_order(keys, stack_order)
    bands = stack_fixed(samples, ordered)

    logger.info(
        "Stacked %d bands over %d samples", len(bands), len(samples),
    )
    return bands
