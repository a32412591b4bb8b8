"""
colors.py — Two-Axis Artist Colour Scale
=========================================
Colours every band by artist *age* (hue axis) and *popularity*
(brightness axis).

Stage 1 — age
    A sequential scale over the domain ``[max_age, -min_age]``
    interpolating in CIELAB between two reference colours.  The domain
    is intentionally inverted and asymmetric; ages only ever cover part
    of the gradient.

Stage 2 — popularity
    For one artist, interpolate in CIELAB from its stage-1 colour to a
    brightened copy of it over ``[min_popularity, max_popularity]``.

Padding bands (``other``, ``other0``, ``other1``) bypass both stages and
get a constant light grey.

CIELAB conversion uses the D50 reference white with sRGB companding:

    L = 116 · f(Y/Yn) − 16
    a = 500 · (f(X/Xn) − f(Y/Yn))
    b = 200 · (f(Y/Yn) − f(Z/Zn))
"""

from __future__ import annotations

import math
from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from listenstream.config import (
    DEFAULT_COLOR_HIGH,
    DEFAULT_COLOR_LOW,
    DEFAULT_PADDING_COLOR,
)
from listenstream.models import Color, RankedArtist
from listenstream.utils import clamp_channel, get_logger, is_padding_key

logger = get_logger("listenstream.colors")

RGB = Tuple[float, float, float]
ColorLike = Union[Color, str, RGB]
ColorAssignment = Callable[[str], Color]

BRIGHTER = 1 / 0.7


# ── CIELAB constants ────────────────────────────────────────────────────────

_XN, _YN, _ZN = 0.96422, 1.0, 0.82521
_T0 = 4 / 29
_T1 = 6 / 29
_T2 = 3 * _T1 * _T1
_T3 = _T1 * _T1 * _T1

_RGB_TO_XYZ = np.array([
    [0.4360747, 0.3850649, 0.1430804],
    [0.2225045, 0.7168786, 0.0606169],
    [0.0139322, 0.0971045, 0.7141733],
])
_XYZ_TO_RGB = np.array([
    [3.1338561, -1.6168667, -0.4906146],
    [-0.9787684, 1.9161415, 0.0334540],
    [0.0719453, -0.2289914, 1.4052427],
])


def _rgb2lrgb(x: float) -> float:
    x /= 255
    return x / 12.92 if x <= 0.04045 else ((x + 0.055) / 1.055) ** 2.4


def _lrgb2rgb(x: float) -> float:
    return 255 * (12.92 * x if x <= 0.0031308 else 1.055 * x ** (1 / 2.4) - 0.055)


def _xyz2lab(t: float) -> float:
    return t ** (1 / 3) if t > _T3 else t / _T2 + _T0


def _lab2xyz(t: float) -> float:
    return t * t * t if t > _T1 else _T2 * (t - _T0)


def _as_rgb(color: ColorLike) -> RGB:
    if isinstance(color, str):
        color = Color.from_hex(color)
    if isinstance(color, Color):
        return (float(color.r), float(color.g), float(color.b))
    r, g, b = color
    return (float(r), float(g), float(b))


def rgb_to_lab(color: ColorLike) -> np.ndarray:
    """sRGB (0–255, unclamped) → ``[L, a, b]``."""
    r, g, b = (_rgb2lrgb(c) for c in _as_rgb(color))
    x, y, z = _RGB_TO_XYZ @ np.array([r, g, b])
    fy = _xyz2lab(y / _YN)
    if r == g == b:
        fx = fz = fy
    else:
        fx = _xyz2lab(x / _XN)
        fz = _xyz2lab(z / _ZN)
    return np.array([116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz)])


def lab_to_rgb(lab: Sequence[float]) -> RGB:
    """``[L, a, b]`` → sRGB floats (0–255, unclamped)."""
    l, a, b = lab
    fy = (l + 16) / 116
    xyz = np.array([
        _XN * _lab2xyz(fy + a / 500),
        _YN * _lab2xyz(fy),
        _ZN * _lab2xyz(fy - b / 200),
    ])
    r, g, b = (_lrgb2rgb(float(c)) for c in _XYZ_TO_RGB @ xyz)
    return (r, g, b)


def quantize(color: RGB) -> Color:
    """Round half-up and clamp every channel to 8 bits."""
    r, g, b = color
    return Color(clamp_channel(r), clamp_channel(g), clamp_channel(b))


def brighter(color: ColorLike, k: float = 1.0) -> RGB:
    """Scale every channel by ``(1/0.7) ** k``; the result is not clamped."""
    factor = BRIGHTER ** k
    r, g, b = _as_rgb(color)
    return (r * factor, g * factor, b * factor)


# ── interpolators & scales ──────────────────────────────────────────────────

def interpolate_lab(start: ColorLike, end: ColorLike) -> Callable[[float], Color]:
    """
    Linear interpolation in CIELAB.

    ``t`` is not clamped: values outside [0, 1] extrapolate along the same
    line before the result is quantised.
    """
    lab0 = rgb_to_lab(start)
    delta = rgb_to_lab(end) - lab0

    def interpolator(t: float) -> Color:
        return quantize(lab_to_rgb(lab0 + t * delta))

    return interpolator


def sequential_scale(
    interpolator: Callable[[float], Color],
    domain: Tuple[float, float],
) -> Callable[[float], Color]:
    """
    Map ``domain`` linearly onto the interpolator's [0, 1] input.

    Unclamped.  A degenerate domain (``x0 == x1``) always evaluates at 0.
    """
    x0, x1 = float(domain[0]), float(domain[1])
    k10 = 0.0 if x0 == x1 else 1.0 / (x1 - x0)

    def scale(x: float) -> Color:
        return interpolator((x - x0) * k10)

    return scale


def _extent(values: Iterable[Optional[float]]) -> Tuple[Optional[float], Optional[float]]:
    """Min/max ignoring falsy entries (``None``, 0, NaN)."""
    kept = sorted(v for v in values if v and not math.isnan(v))
    if not kept:
        return None, None
    return kept[0], kept[-1]


# ── artist colour scale ─────────────────────────────────────────────────────

def artist_color_scale(
    artists: Mapping[str, RankedArtist],
    low: ColorLike = DEFAULT_COLOR_LOW,
    high: ColorLike = DEFAULT_COLOR_HIGH,
    padding: ColorLike = DEFAULT_PADDING_COLOR,
) -> ColorAssignment:
    """
    Build the ``key → Color`` function for one ranked artist map.

    Raises ``KeyError`` for a non-padding key that is not in ``artists``.
    """
    min_age, max_age = _extent(a.age for a in artists.values())
    min_pop, max_pop = _extent(a.popularity for a in artists.values())
    padding_color = quantize(_as_rgb(padding))

    # Without usable values the domain collapses and every artist sits at t = 0.
    if min_age is None:
        logger.warning("No usable artist ages — age axis collapsed")
        min_age = max_age = 0.0
    if min_pop is None:
        logger.warning("No usable popularity values — popularity axis collapsed")
        min_pop = max_pop = 0.0

    logger.debug(
        "Colour domains — age [%s, %s], popularity [%.3f, %.3f]",
        max_age, -min_age, min_pop, max_pop,
    )
    base_scale = sequential_scale(interpolate_lab(low, high), (max_age, -min_age))

    def color(key: str) -> Color:
        if is_padding_key(key):
            return padding_color

        artist = artists[key]
        primary = base_scale(artist.age or 0.0)
        secondary = brighter(primary, 1)
        popularity_scale = sequential_scale(
            interpolate_lab(primary, secondary), (min_pop, max_pop),
        )
        return popularity_scale(artist.popularity)

    return color
