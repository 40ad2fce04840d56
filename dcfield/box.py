"""Symmetric trapezoid ("box") effector.

The strip runs along the centre line ``position1 -> position2`` and reaches
``distance1`` to each side at ``position1`` and ``distance2`` at
``position2``.  The four corner handles (``handle1a`` ... ``handle2b``) are
derived by :meth:`BoxEffector.update_handle_points`; side A lies to the left
of the centre line, side B to the right.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Tuple

from ._math import (
    _F, _PointLike, as_point, clamp, dot, dot2, length, line_line_intersection,
    normalized, rotate90_ccw, vec2,
)
from .effector import INITIAL_SCALE_FACTOR, DisplacementResult, Effector, PointAttribute


@dataclass
class _BoxFactors:
    axial: float
    lateral: float


class BoxEffector(Effector):
    """Trapezoid strip effector.

    Parameters
    ----------
    position1, position2:
        End points of the centre line.  Default ``(0, 0)`` and ``(5, 0)``.
    distance1, distance2:
        Half-widths at each end.  Default 5.
    strength1, strength2, depth_strength1, depth_strength2:
        Strengths at each end, interpolated along the centre line.

    Notes
    -----
    The influence output is the lateral factor: 1 on the centre line
    (feather 0) falling to 0 at the sides.  The axial factor only
    interpolates strengths and half-widths.
    """

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("position1", "position2")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = (
        "distance1", "distance2", "strength1", "strength2",
        "depth_strength1", "depth_strength2",
    )

    position1 = PointAttribute()
    position2 = PointAttribute()
    handle1a = PointAttribute()
    handle1b = PointAttribute()
    handle2a = PointAttribute()
    handle2b = PointAttribute()

    def __init__(
        self,
        position1: _PointLike = (0.0, 0.0),
        position2: Optional[_PointLike] = None,
        distance1: float = INITIAL_SCALE_FACTOR,
        distance2: float = INITIAL_SCALE_FACTOR,
        strength1: float = 0.0,
        strength2: float = 0.0,
        depth_strength1: float = 0.0,
        depth_strength2: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.position1 = position1
        if position2 is None:
            position2 = self.position1 + vec2(INITIAL_SCALE_FACTOR, 0.0)
        self.position2 = position2
        self.distance1 = max(float(distance1), 0.0)
        self.distance2 = max(float(distance2), 0.0)
        self.strength1 = float(strength1)
        self.strength2 = float(strength2)
        self.depth_strength1 = float(depth_strength1)
        self.depth_strength2 = float(depth_strength2)
        self.update_effector()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def set_outward_distance(self, distance1: float, distance2: Optional[float] = None) -> None:
        """Set both half-widths (``distance2`` defaults to ``distance1``)."""
        self.distance1 = max(float(distance1), 0.0)
        self.distance2 = self.distance1 if distance2 is None else max(float(distance2), 0.0)

    def update_handle_points(self) -> None:
        """Recompute the four corner handles from positions and distances."""
        left = rotate90_ccw(normalized(self.position2 - self.position1))
        self.handle1a = left * self.distance1 + self.position1
        self.handle2a = left * self.distance2 + self.position2
        self.handle1b = 2.0 * self.position1 - self.handle1a
        self.handle2b = 2.0 * self.position2 - self.handle2a

    def update_effector(self) -> None:
        self.update_handle_points()
        self._calculate_bounding_box()

    def _calculate_bounding_box(self) -> None:
        self._reset_bounding_box()
        for h in (self.handle1a, self.handle1b, self.handle2a, self.handle2b):
            self._expand_bounding_box(h)

    def _translate(self, delta: _F) -> None:
        self.position1 = self.position1 + delta
        self.position2 = self.position2 + delta
        self.handle1a = self.handle1a + delta
        self.handle1b = self.handle1b + delta
        self.handle2a = self.handle2a + delta
        self.handle2b = self.handle2b + delta

    def max_distance_at(self, axial: float) -> float:
        """Half-width at axial factor *axial*."""
        return (self.distance2 - self.distance1) * axial + self.distance1

    def _axial_point(self, axial: float) -> _F:
        return (self.position2 - self.position1) * axial + self.position1

    # ------------------------------------------------------------------
    # Containment
    # ------------------------------------------------------------------

    def _in_strip(self, p: _F) -> bool:
        side_a = self.handle2a - self.handle1a
        end2 = self.handle2b - self.handle2a
        side_b = self.handle1b - self.handle2b
        end1 = self.handle1a - self.handle1b
        if dot2(side_a) <= 0 or dot2(end2) <= 0:
            return False
        return (
            dot(rotate90_ccw(side_a), p - self.handle1a) <= 0
            and dot(rotate90_ccw(end2), p - self.handle2a) <= 0
            and dot(rotate90_ccw(side_b), p - self.handle2b) <= 0
            and dot(rotate90_ccw(end1), p - self.handle1b) <= 0
        )

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        if not self._in_strip(p) or not self._passes_region(p, bypass):
            return None
        return True

    # ------------------------------------------------------------------
    # Influence
    # ------------------------------------------------------------------

    def _factors(self, p: _F) -> _BoxFactors:
        """Axial and lateral factors for a point already known to be inside."""
        d = self.position2 - self.position1
        d_len = length(d)
        if d_len == 0:
            return _BoxFactors(0.0, 0.0)
        d_unit = d / d_len
        axial = clamp(dot(p - self.position1, d_unit) / d_len, 0.0, 1.0)
        max_distance = self.max_distance_at(axial)
        feathered = max_distance * self.feather_amount
        fa = self.feather_amount

        if self.invert_feather_region:
            dist = length(p - self._axial_point(axial))
            lateral = 1.0 if fa == 0 or feathered == 0 else dist / feathered
            lateral = clamp(lateral, 0.0, 1.0)
            if self.invert_strength:
                lateral = 1.0 - lateral
            return _BoxFactors(axial, lateral)

        dist = abs(dot(rotate90_ccw(d_unit), p - self.position1))
        denom = max_distance - feathered
        lateral = 0.0 if fa == 1 or denom == 0 else (dist - feathered) / denom
        lateral = clamp(lateral, 0.0, 1.0)
        if not self.invert_strength:
            lateral = 1.0 - lateral
        return _BoxFactors(axial, lateral)

    def _strength(self, factors: _BoxFactors) -> float:
        return factors.lateral * ((self.strength2 - self.strength1) * factors.axial + self.strength1)

    def _depth_strength(self, factors: _BoxFactors) -> float:
        return factors.lateral * (
            (self.depth_strength2 - self.depth_strength1) * factors.axial + self.depth_strength1
        )

    def get_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        if self._locate(p, False) is None:
            return 0.0
        return self._strength(self._factors(p))

    def get_depth_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        if self._locate(p, False) is None:
            return 0.0
        return self._depth_strength(self._factors(p))

    # ------------------------------------------------------------------
    # Displacement
    # ------------------------------------------------------------------

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        factors = self._factors(p)
        s = self._strength(factors)
        axial_point = self._axial_point(factors.axial)
        to_line = axial_point - p

        if self.unilateral_displacement:
            xy = self._unilateral_displacement(p, axial_point, s)
        elif self.distance_from_center_equals_strength:
            if not self.repel:
                xy = to_line * factors.lateral
            else:
                to_edge = self.max_distance_at(factors.axial) - length(to_line)
                xy = -normalized(to_line) * to_edge * factors.lateral
        else:
            xy = normalized(to_line) * s
            if not self.repel:
                if dot(to_line - xy, to_line) <= 0:
                    xy = to_line
            else:
                xy = -xy
                edge = self.max_distance_at(factors.axial)
                if dot2(to_line - xy) >= edge * edge:
                    xy = -normalized(to_line) * (edge - length(to_line))

        return DisplacementResult.from_xy(factors.lateral, False, xy, self._depth_strength(factors))

    def _unilateral_displacement(self, p: _F, axial_point: _F, s: float) -> _F:
        """Move along the centre-line normal towards side A (attract) or
        side B (repel), stopping at that side."""
        normal = rotate90_ccw(self.position2 - self.position1)
        if not self.repel:
            xy = normalized(normal) * s
            isect = line_line_intersection(axial_point, axial_point + normal, self.handle1a, self.handle2a)
        else:
            xy = -normalized(normal) * s
            isect = line_line_intersection(axial_point, axial_point + normal, self.handle1b, self.handle2b)
        if isect is not None:
            to_side = isect - p
            if dot2(xy) >= dot2(to_side):
                xy = to_side
        return xy
