"""Shared 2-D vector helpers used by every effector module.

This module provides:

* **Type alias**: :data:`_F`
* **Vector constructors**: :func:`vec2`, :func:`vec3`, :func:`as_point`
* **Math helpers**: :func:`length`, :func:`dot`, :func:`dot2`, :func:`clamp`,
  :func:`sign`, :func:`normalized`, :func:`rotate90_ccw`,
  :func:`project_onto`, :func:`approx_equal`
* **Intersections**: :func:`line_line_intersection`,
  :func:`line_circle_intersection`
* **Angular sectors**: :func:`in_sector`

All vectors are float64 arrays of shape ``(2,)``.  Helpers never modify
their arguments in place.

Not meant to be imported directly by end users.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------
_F = npt.NDArray[np.floating]
_PointLike = Union[Sequence[float], _F]

# Magnitudes below this are treated as zero-length (matches the tolerance used
# when normalising handle directions).
NORMALIZE_EPS = 1e-5
# Squared distance below which two points are the same point.
POINT_EQUAL_EPS_SQR = 1e-10
# Determinant guard for parallel lines.
PARALLEL_EPS = 1e-5

__all__ = [
    "_F",
    "vec2", "vec3", "as_point", "ZERO2",
    "length", "dot", "dot2", "clamp", "sign",
    "normalized", "rotate90_ccw", "project_onto", "approx_equal",
    "line_line_intersection", "line_circle_intersection",
    "in_sector",
]


# ===========================================================================
# Vector constructors
# ===========================================================================

def vec2(x: float, y: float) -> _F:
    """Return a new ``(2,)`` float array."""
    return np.array([x, y], dtype=float)


def vec3(x: float, y: float, z: float) -> _F:
    """Return a new ``(3,)`` float array."""
    return np.array([x, y, z], dtype=float)


def as_point(p: _PointLike) -> _F:
    """Copy *p* into a fresh ``(2,)`` float array."""
    arr = np.array(p, dtype=float).reshape(-1)
    if arr.shape != (2,):
        raise ValueError(f"expected a 2-D point, got shape {np.shape(p)}")
    return arr


ZERO2 = vec2(0.0, 0.0)
ZERO2.setflags(write=False)


# ===========================================================================
# Math helpers
# ===========================================================================

def length(v: _F) -> float:
    """Euclidean length of *v*."""
    return math.hypot(v[0], v[1])


def dot(a: _F, b: _F) -> float:
    """Dot product of two 2-D vectors."""
    return float(a[0] * b[0] + a[1] * b[1])


def dot2(a: _F) -> float:
    """Squared length: ``dot(a, a)``."""
    return dot(a, a)


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp scalar *x* to ``[lo, hi]``."""
    return min(max(x, lo), hi)


def sign(x: float) -> float:
    """Sign of *x* with ``sign(0) == 1``."""
    return 1.0 if x >= 0.0 else -1.0


def normalized(v: _F) -> _F:
    """Unit vector along *v*, or the zero vector when *v* is shorter than
    :data:`NORMALIZE_EPS`."""
    mag = length(v)
    if mag > NORMALIZE_EPS:
        return v / mag
    return vec2(0.0, 0.0)


def rotate90_ccw(v: _F) -> _F:
    """Rotate *v* by 90 degrees counter-clockwise."""
    return vec2(-v[1], v[0])


def project_onto(a: _F, b: _F) -> _F:
    """Vector projection of *a* onto *b* (zero when *b* has no length)."""
    bb = dot2(b)
    if bb < POINT_EQUAL_EPS_SQR:
        return vec2(0.0, 0.0)
    return dot(a, b) / bb * b


def approx_equal(a: _F, b: _F) -> bool:
    """True when *a* and *b* are the same point up to float noise."""
    d = a - b
    return dot2(d) < POINT_EQUAL_EPS_SQR


# ===========================================================================
# Intersections
# ===========================================================================

def line_line_intersection(
    p1: _F, p2: _F, p3: _F, p4: _F, eps: float = PARALLEL_EPS
) -> Optional[_F]:
    """Intersection of the infinite lines ``p1-p2`` and ``p3-p4``.

    Returns ``None`` when the lines are (nearly) parallel, i.e. the
    determinant magnitude is not above *eps*.
    """
    d = (p1[0] - p2[0]) * (p3[1] - p4[1]) - (p1[1] - p2[1]) * (p3[0] - p4[0])
    if abs(d) <= eps:
        return None
    a = p1[0] * p2[1] - p1[1] * p2[0]
    b = p3[0] * p4[1] - p3[1] * p4[0]
    x = (a * (p3[0] - p4[0]) - (p1[0] - p2[0]) * b) / d
    y = (a * (p3[1] - p4[1]) - (p1[1] - p2[1]) * b) / d
    return vec2(x, y)


def line_circle_intersection(
    c: _F, radius: float, p1: _F, p2: _F
) -> Optional[Tuple[_F, _F]]:
    """Intersections of the infinite line ``p1-p2`` with a circle.

    A tangent line returns the same point twice.  Returns ``None`` when the
    line misses the circle or ``p1 == p2``.
    """
    a1 = p1 - c
    a2 = p2 - c
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    dr_sqr = dx * dx + dy * dy
    if dr_sqr < POINT_EQUAL_EPS_SQR:
        return None

    det = a1[0] * a2[1] - a2[0] * a1[1]
    disc = radius * radius * dr_sqr - det * det
    if -1e-6 < disc < 0.0:
        disc = 0.0
    if disc < 0.0:
        return None

    root = math.sqrt(disc)
    sdy = -1.0 if dy < 0 else 1.0
    inv = 1.0 / dr_sqr
    isect1 = vec2((det * dy + sdy * dx * root) * inv, (-det * dx + abs(dy) * root) * inv)
    isect2 = vec2((det * dy - sdy * dx * root) * inv, (-det * dx - abs(dy) * root) * inv)
    return isect1 + c, isect2 + c


# ===========================================================================
# Angular sectors
# ===========================================================================

def in_sector(d_point: _F, d_h1: _F, d_h2: _F) -> bool:
    """Is the direction *d_point* inside the short-way sector from *d_h1* to
    *d_h2*?

    All three vectors are relative to the sector apex.  The handles are not
    ordered; the sign of ``dot(normal(h1), h2)`` decides which way round.
    """
    n1 = rotate90_ccw(d_h1)
    n2 = rotate90_ccw(d_h2)
    if dot(n1, d_h2) < 0:
        return dot(d_point, n1) <= 0 and dot(d_point, n2) >= 0
    return dot(d_point, n1) >= 0 and dot(d_point, n2) <= 0
