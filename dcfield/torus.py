"""Annulus-shaped effectors.

This module provides:

* :class:`TorusEffector` -- full ring of half-width ``distance_outward``
  around a centre line of radius ``|handle1 - center|``
* :class:`SemiTorusEffector` -- the ring slice between two handles, with
  optional semicircle end caps
* :class:`InterpSemiTorusEffector` -- a ring slice whose half-width and
  strengths are interpolated from handle1 to handle2

Displacement is radial: attraction pulls towards the centre line, repulsion
pushes out to the inner or outer rim.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar, Optional, Tuple

from ._math import (
    _F, _PointLike, as_point, clamp, dot, dot2, in_sector, length, normalized, sign, vec2,
)
from .circle import SemiCircleEffector
from .effector import (
    INITIAL_SCALE_FACTOR, DisplacementResult, Effector, PointAttribute, _rotate_handle,
)

# Offset that pushes a cap centre off the handle so its half-disc faces
# away from the ring.
ANTI_FLIP_OFFSET = 0.001

# Arcs shorter than this have no interior.
_MIN_ARC_LENGTH = 1e-9


# ===========================================================================
# Shared base
# ===========================================================================

class _TorusBase(Effector):
    """Centre of rotation + centre-line radius handle."""

    center = PointAttribute()
    handle1 = PointAttribute()

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.center = center
        if handle1 is None:
            handle1 = self.center + vec2(INITIAL_SCALE_FACTOR, 0.0)
        self.handle1 = handle1

    @property
    def radius(self) -> float:
        """Radius of the centre line."""
        return length(self.handle1 - self.center)

    def set_radius(self, radius: float) -> None:
        self.handle1 = _rotate_handle(self.center, self.handle1, radius)

    def _translate(self, delta: _F) -> None:
        self.center = self.center + delta
        self.handle1 = self.handle1 + delta

    def _in_annulus(self, p: _F, d: float) -> bool:
        r = self.radius
        inner = r - d
        outer = r + d
        rr = dot2(p - self.center)
        return inner * inner <= rr <= outer * outer

    def _ring_bounding_box(self, d: float) -> None:
        outer = self.radius + d
        offset = vec2(outer, outer)
        self.bounds_top_right = self.center + offset
        self.bounds_bottom_left = self.center - offset

    def _slice_bounding_box(self, handle2: _F, d: float) -> None:
        self._reset_bounding_box()
        r = self.radius
        inner = r - d
        outer = r + d
        c = self.center
        n1 = normalized(self.handle1 - c)
        n2 = normalized(handle2 - c)
        for n in (n1, n2):
            self._expand_bounding_box(n * outer + c)
            self._expand_bounding_box(n * inner + c)
        for axis_point in (vec2(outer, 0.0), vec2(0.0, outer), vec2(-outer, 0.0), vec2(0.0, -outer)):
            if in_sector(axis_point, n1, n2):
                self._expand_bounding_box(c + axis_point)

    def _ring_influence(self, p: _F, d: float) -> float:
        """Feathered influence for a point inside a ring of half-width *d*."""
        s = length(p - self.center) - self.radius
        sg = sign(s)
        fa = self.feather_amount
        feathered = d * fa * sg

        if self.invert_feather_region:
            f = 1.0 if fa == 0 or feathered == 0 else 1.0 - (feathered - s) / feathered
        else:
            denom = sg * d - feathered
            f = 1.0 if fa == 1 or denom == 0 else (feathered - s) / denom + 1.0

        f = clamp(f, 0.0, 1.0)
        return 1.0 - f if self.invert_strength else f

    def _scaled_influence(self, point: _PointLike, d: float, value: float) -> float:
        p = as_point(point)
        if self._locate(p, False) is None:
            return 0.0
        return self._ring_influence(p, d) * value

    def _radial_displacement(
        self, p: _F, f: float, d: float, strength: float, depth_strength: float
    ) -> DisplacementResult:
        to_center = self.center - p
        r_point = length(to_center)
        r_line = self.radius
        n = normalized(to_center)
        s = f * strength

        if self.unilateral_displacement:
            xy = n * s
            if not self.repel:
                inner = r_line - d
                if r_point - s < inner:
                    xy = n * (r_point - inner)
            else:
                xy = -xy
                outer = r_line + d
                if r_point + s > outer:
                    xy = -n * (outer - r_point)
        else:
            dr = r_point - r_line
            sg = sign(dr)
            if self.distance_from_center_equals_strength:
                if not self.repel:
                    xy = n * dr * f
                else:
                    xy = -n * (d * sg - dr) * f
            else:
                xy = n * s * sg
                if not self.repel:
                    if sign(dr - s * sg) != sg:
                        # crossed the centre line
                        xy = n * dr
                else:
                    xy = -xy
                    local = dr + s * sg
                    if local * local >= d * d:
                        xy = n * (dr - sg * d)

        return DisplacementResult.from_xy(f, False, xy, f * depth_strength)


# ===========================================================================
# Torus
# ===========================================================================

class TorusEffector(_TorusBase):
    """Full ring effector.

    Parameters
    ----------
    center:
        Centre of rotation.
    handle1:
        Point on the centre line; defaults to ``center + (5, 0)``.
    distance_outward:
        Half-width of the ring (minor radius).  Clamped to the centre-line
        radius by :meth:`update_effector`.
    strength, depth_strength:
        Peak planar and depth displacement.
    """

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("center", "handle1")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = ("distance_outward", "strength", "depth_strength")

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        distance_outward: float = 1.0,
        strength: float = 0.0,
        depth_strength: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(center, handle1, **kwargs)
        self.distance_outward = max(float(distance_outward), 0.0)
        self.strength = float(strength)
        self.depth_strength = float(depth_strength)
        self.update_effector()

    def set_outward_distance(self, distance: float) -> None:
        self.distance_outward = max(float(distance), 0.0)

    def update_effector(self) -> None:
        self.distance_outward = min(self.distance_outward, self.radius)
        self._calculate_bounding_box()

    def _calculate_bounding_box(self) -> None:
        self._ring_bounding_box(self.distance_outward)

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        if not self._in_annulus(p, self.distance_outward):
            return None
        if not self._passes_region(p, bypass):
            return None
        return True

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        f = self._ring_influence(p, self.distance_outward)
        return self._radial_displacement(p, f, self.distance_outward, self.strength, self.depth_strength)

    def get_strength_at(self, point: _PointLike) -> float:
        return self._scaled_influence(point, self.distance_outward, self.strength)

    def get_depth_strength_at(self, point: _PointLike) -> float:
        return self._scaled_influence(point, self.distance_outward, self.depth_strength)


class SemiTorusEffector(_TorusBase):
    """Ring slice between ``handle1`` and ``handle2`` (smaller angle).

    With ``use_start_and_end_caps`` a semicircle of radius
    ``distance_outward`` rounds off each end of the slice.  The caps are
    anonymous sub-shapes rebuilt by :meth:`update_effector`; they are checked
    before the ring itself.
    """

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("center", "handle1", "handle2")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = (
        "distance_outward", "strength", "depth_strength",
        "use_fast_rough_bounding_box", "use_start_and_end_caps",
    )

    handle2 = PointAttribute()

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        handle2: Optional[_PointLike] = None,
        distance_outward: float = 1.0,
        strength: float = 0.0,
        depth_strength: float = 0.0,
        *,
        use_fast_rough_bounding_box: bool = False,
        use_start_and_end_caps: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(center, handle1, **kwargs)
        if handle2 is None:
            handle2 = self.center + vec2(0.0, INITIAL_SCALE_FACTOR)
        self.handle2 = handle2
        self.distance_outward = max(float(distance_outward), 0.0)
        self.strength = float(strength)
        self.depth_strength = float(depth_strength)
        self.use_fast_rough_bounding_box = use_fast_rough_bounding_box
        self.use_start_and_end_caps = use_start_and_end_caps
        self.start_cap = SemiCircleEffector(anonymous=True)
        self.end_cap = SemiCircleEffector(anonymous=True)
        self.update_effector()

    def set_outward_distance(self, distance: float) -> None:
        self.distance_outward = max(float(distance), 0.0)

    def equalize_length_of_handles(self) -> None:
        """Put handle2 at handle1's distance from the centre."""
        self.handle2 = normalized(self.handle2 - self.center) * self.radius + self.center

    def is_point_in_sector(self, point: _PointLike) -> bool:
        """Does *point* lie in the angular slice (radius ignored)?"""
        dp = as_point(point) - self.center
        return self.enabled and self._in_slice(dp)

    def _in_slice(self, dp: _F) -> bool:
        return in_sector(dp, self.handle1 - self.center, self.handle2 - self.center)

    def update_effector(self) -> None:
        self.distance_outward = min(self.distance_outward, self.radius)
        self._update_caps()
        self._calculate_bounding_box()

    def _update_caps(self) -> None:
        if not self.use_start_and_end_caps:
            return
        for cap in (self.start_cap, self.end_cap):
            self.copy_properties_to(cap)
            cap.strength = self.strength
            cap.depth_strength = self.depth_strength

        d = self.distance_outward
        dir1 = normalized(self.handle1 - self.center)
        dir2 = normalized(self.handle2 - self.center)
        normal1 = vec2(dir1[1], -dir1[0])
        flip1 = normal1
        flip2 = vec2(-dir2[1], dir2[0])
        if dot(normal1, dir2) < 0:
            flip1 = -flip1
            flip2 = -flip2

        # handle order sets the unilateral direction
        h1 = self.handle1
        self.start_cap.center = flip1 * ANTI_FLIP_OFFSET + h1
        self.start_cap.handle1 = -dir1 * d + h1
        self.start_cap.handle2 = dir1 * d + h1

        end = dir2 * self.radius + self.center
        self.end_cap.center = flip2 * ANTI_FLIP_OFFSET + end
        self.end_cap.handle1 = -dir2 * d + end
        self.end_cap.handle2 = dir2 * d + end

        self.start_cap.update_effector()
        self.end_cap.update_effector()

    def _calculate_bounding_box(self) -> None:
        if self.use_fast_rough_bounding_box:
            self._ring_bounding_box(self.distance_outward)
            return
        self._slice_bounding_box(self.handle2, self.distance_outward)
        if self.use_start_and_end_caps:
            self._expand_bounding_box_by(self.start_cap)
            self._expand_bounding_box_by(self.end_cap)

    def _translate(self, delta: _F) -> None:
        super()._translate(delta)
        self.handle2 = self.handle2 + delta
        self.start_cap.move_by(delta)
        self.end_cap.move_by(delta)

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass) or not self._passes_region(p, bypass):
            return None
        if self.use_start_and_end_caps:
            for cap in (self.start_cap, self.end_cap):
                if cap._locate(p, bypass) is not None:
                    return cap
        if not self._in_annulus(p, self.distance_outward) or not self._in_slice(p - self.center):
            return None
        return self

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        if hit is not self:
            return hit._displacement(p, True)
        f = self._ring_influence(p, self.distance_outward)
        return self._radial_displacement(p, f, self.distance_outward, self.strength, self.depth_strength)

    def get_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        hit = self._locate(p, False)
        if hit is not None and hit is not self:
            return hit.get_strength_at(p)
        return self._scaled_influence(p, self.distance_outward, self.strength)

    def get_depth_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        hit = self._locate(p, False)
        if hit is not None and hit is not self:
            return hit.get_depth_strength_at(p)
        return self._scaled_influence(p, self.distance_outward, self.depth_strength)


# ===========================================================================
# Interpolated semi-torus
# ===========================================================================

class InterpSemiTorusEffector(_TorusBase):
    """Ring slice with half-width and strengths varying along the arc.

    The axial factor runs from 0 at ``handle1`` to 1 at ``handle2``.  The
    half-width is interpolated linearly from ``distance_outward1`` to
    ``distance_outward2``; strengths go piecewise linearly through
    ``strength1``, ``strength_center`` (at 0.5) and ``strength2``.

    :meth:`update_effector` puts ``handle2`` on the centre line and clamps
    each outward distance to its handle's radius.
    """

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("center", "handle1", "handle2")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = (
        "distance_outward1", "distance_outward2",
        "strength1", "strength2", "strength_center",
        "depth_strength1", "depth_strength2", "depth_strength_center",
    )

    handle2 = PointAttribute()

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        handle2: Optional[_PointLike] = None,
        *,
        distance_outward1: float = 1.0,
        distance_outward2: float = 1.0,
        strength1: float = 0.0,
        strength2: float = 0.0,
        strength_center: float = 0.0,
        depth_strength1: float = 0.0,
        depth_strength2: float = 0.0,
        depth_strength_center: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(center, handle1, **kwargs)
        if handle2 is None:
            handle2 = self.center + vec2(0.0, INITIAL_SCALE_FACTOR)
        self.handle2 = handle2
        self.distance_outward1 = max(float(distance_outward1), 0.0)
        self.distance_outward2 = max(float(distance_outward2), 0.0)
        self.strength1 = float(strength1)
        self.strength2 = float(strength2)
        self.strength_center = float(strength_center)
        self.depth_strength1 = float(depth_strength1)
        self.depth_strength2 = float(depth_strength2)
        self.depth_strength_center = float(depth_strength_center)
        self.update_effector()

    def _translate(self, delta: _F) -> None:
        super()._translate(delta)
        self.handle2 = self.handle2 + delta

    def update_effector(self) -> None:
        self.handle2 = normalized(self.handle2 - self.center) * self.radius + self.center
        self.distance_outward1 = min(self.distance_outward1, self.radius)
        self.distance_outward2 = min(self.distance_outward2, length(self.handle2 - self.center))
        self._calculate_bounding_box()

    def _calculate_bounding_box(self) -> None:
        self._slice_bounding_box(self.handle2, max(self.distance_outward1, self.distance_outward2))

    # ------------------------------------------------------------------
    # Axial interpolation
    # ------------------------------------------------------------------

    def get_arc_length(self) -> float:
        """Length of the centre line between the two handles."""
        n1 = normalized(self.handle1 - self.center)
        n2 = normalized(self.handle2 - self.center)
        return math.acos(clamp(dot(n1, n2), -1.0, 1.0)) * self.radius

    def get_axial_factor(self, point: _PointLike) -> float:
        """Arc length from handle1 to *point*'s direction over the total arc
        length (0 for a degenerate arc)."""
        arc = self.get_arc_length()
        if arc < _MIN_ARC_LENGTH:
            return 0.0
        return self._arc_to(as_point(point)) / arc

    def _arc_to(self, p: _F) -> float:
        n1 = normalized(self.handle1 - self.center)
        n_point = normalized(p - self.center)
        return math.acos(clamp(dot(n1, n_point), -1.0, 1.0)) * self.radius

    def interpolated_outward_distance(self, axial: float) -> float:
        return self.distance_outward1 + (self.distance_outward2 - self.distance_outward1) * axial

    def interpolated_strength(self, axial: float) -> float:
        return _interpolate_through_center(self.strength1, self.strength_center, self.strength2, axial)

    def interpolated_depth_strength(self, axial: float) -> float:
        return _interpolate_through_center(
            self.depth_strength1, self.depth_strength_center, self.depth_strength2, axial
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        if not self._in_annulus(p, max(self.distance_outward1, self.distance_outward2)):
            return None
        dp = p - self.center
        if not in_sector(dp, self.handle1 - self.center, self.handle2 - self.center):
            return None

        arc = self.get_arc_length()
        if arc < _MIN_ARC_LENGTH:
            return None
        axial = self._arc_to(p) / arc
        if abs(self.radius - length(dp)) > self.interpolated_outward_distance(axial):
            return None
        if not self._passes_region(p, bypass):
            return None
        return axial

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        axial = hit
        d = self.interpolated_outward_distance(axial)
        f = self._ring_influence(p, d)
        return self._radial_displacement(
            p, f, abs(d), self.interpolated_strength(axial), self.interpolated_depth_strength(axial)
        )

    def get_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        axial = self._locate(p, False)
        if axial is None:
            return 0.0
        return self._ring_influence(p, self.interpolated_outward_distance(axial)) * self.interpolated_strength(axial)

    def get_depth_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        axial = self._locate(p, False)
        if axial is None:
            return 0.0
        f = self._ring_influence(p, self.interpolated_outward_distance(axial))
        return f * self.interpolated_depth_strength(axial)


def _interpolate_through_center(v1: float, v_center: float, v2: float, t: float) -> float:
    if t < 0.5:
        return v1 + (v_center - v1) * (t / 0.5)
    return v_center + (v2 - v_center) * ((t - 0.5) / 0.5)
