"""Editable boundary polygon used to clip an effector's influence."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence

from ._math import _F, _PointLike, approx_equal, as_point, dot, sign, vec2

logger = logging.getLogger(__name__)

_INITIAL_HALF_SIZE = 5.0
_MIN_POINTS = 3
_X_RAY_EPS = 1e-5

# Direction of the containment ray and its normal.
_RAY_DIR = vec2(1.0, 0.0)
_RAY_NORMAL = vec2(0.0, 1.0)


class BoundaryRegion:
    """Closed simple polygon with a point-in-polygon test.

    Parameters
    ----------
    points:
        Polygon vertices in order.  Defaults to a square with half size 5
        around the origin.
    root_position:
        Reference point for :meth:`move_to`.

    Notes
    -----
    Containment casts a ray towards +x and counts edge crossings.  A point
    lying exactly on the polygon is inside when the ray still crosses the
    opposite side an odd number of times; for the default square this
    makes the left edge inside and the right edge outside.
    """

    def __init__(
        self,
        points: Optional[Iterable[_PointLike]] = None,
        root_position: _PointLike = (0.0, 0.0),
    ) -> None:
        if points is None:
            h = _INITIAL_HALF_SIZE
            points = [(-h, -h), (-h, h), (h, h), (h, -h)]
        self.points: List[_F] = [as_point(p) for p in points]
        self.root_position = as_point(root_position)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[_F]:
        return iter(self.points)

    def __repr__(self) -> str:
        pts = ", ".join(f"({p[0]:g}, {p[1]:g})" for p in self.points)
        return f"BoundaryRegion([{pts}])"

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_point(self, point: _PointLike) -> None:
        self.points.append(as_point(point))

    def insert_point_at(self, index: int, point: _PointLike) -> bool:
        """Insert *point* before *index*; out-of-range indices are ignored."""
        if index < 0 or index > len(self.points):
            logger.debug("Ignoring boundary insert at %d (size %d)", index, len(self.points))
            return False
        self.points.insert(index, as_point(point))
        return True

    def remove_point_at(self, index: int) -> bool:
        """Remove the point at *index*.

        Refused when the index is out of range or the polygon would drop
        below three points.
        """
        if 0 <= index < len(self.points) and len(self.points) > _MIN_POINTS:
            del self.points[index]
            return True
        logger.debug("Refusing boundary removal at %d (size %d)", index, len(self.points))
        return False

    def set_points(self, points: Sequence[_PointLike]) -> bool:
        """Replace all points; refused for fewer than three."""
        if len(points) < _MIN_POINTS:
            logger.debug("Refusing boundary with %d points", len(points))
            return False
        self.points = [as_point(p) for p in points]
        return True

    def move_by(self, delta: _PointLike) -> None:
        """Translate every point and the root by *delta*."""
        d = as_point(delta)
        self.points = [p + d for p in self.points]
        self.root_position = self.root_position + d

    def move_to(self, point: _PointLike) -> None:
        """Translate so the root lands on *point*."""
        self.move_by(as_point(point) - self.root_position)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_point_inside(self, point: _PointLike) -> bool:
        """Ray-casting point-in-polygon test (see class notes for the edge
        convention)."""
        pts = self.points
        n = len(pts)
        if n < _MIN_POINTS:
            return False

        start = as_point(point)
        n_isects = 0

        p_prev = pts[-1]
        p_cur = pts[0]
        p_next = pts[1]
        tangent = vec2(-(p_next[1] - p_cur[1]), p_next[0] - p_cur[0])
        prev_isect = p_cur + tangent  # not on any edge

        for i in range(n):
            p_cur = pts[i]
            p_next = pts[(i + 1) % n]

            isect = _x_ray_segment_intersection(p_cur, p_next, start)
            if isect is None:
                p_prev = p_cur
                continue

            if dot(isect - start, _RAY_DIR) <= 0:
                continue
            if approx_equal(prev_isect, isect):
                # shared vertex already counted on the previous edge
                continue
            if approx_equal(p_cur, isect):
                s1 = sign(dot(p_prev - p_cur, _RAY_NORMAL))
                s2 = sign(dot(p_next - p_cur, _RAY_NORMAL))
                if s1 == s2:
                    prev_isect = isect
                    continue
            elif approx_equal(p_next, isect):
                s1 = sign(dot(p_cur - p_next, _RAY_NORMAL))
                s2 = sign(dot(pts[(i + 2) % n] - p_next, _RAY_NORMAL))
                if s1 == s2:
                    prev_isect = isect
                    continue

            n_isects += 1
            prev_isect = isect
            p_prev = p_cur

        return n_isects % 2 == 1

    def copy(self) -> "BoundaryRegion":
        return BoundaryRegion(self.points, self.root_position)


# ===========================================================================
# Internal helpers
# ===========================================================================

def _x_ray_line_intersection(p1: _F, p2: _F, p3: _F) -> Optional[_F]:
    """Intersection of line ``p1-p2`` with the horizontal line through *p3*."""
    d = p1[1] - p2[1]
    if abs(d) <= _X_RAY_EPS:
        return None
    p4 = p3 + _RAY_DIR
    b = p3[0] * p4[1] - p3[1] * p4[0]
    x = (-(p1[0] * p2[1] - p1[1] * p2[0]) - (p1[0] - p2[0]) * b) / d
    y = (-(p1[1] - p2[1]) * b) / d
    return vec2(x, y)


def _x_ray_segment_intersection(p1: _F, p2: _F, p3: _F) -> Optional[_F]:
    """Like :func:`_x_ray_line_intersection` but limited to the segment;
    the hit may lie behind the ray origin."""
    isect = _x_ray_line_intersection(p1, p2, p3)
    if isect is None:
        return None
    if approx_equal(p1, isect) or approx_equal(p2, isect):
        return isect
    if dot(isect - p1, p2 - isect) >= 0:
        return isect
    return None
