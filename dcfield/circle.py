"""Circle and semicircle effectors.

This module provides:

* :class:`CircleEffector` -- full disc around a centre, radius set by a handle
* :class:`SemiCircleEffector` -- the slice of that disc between two handles

Both share :class:`_CircleBase`, which holds the feather formula and the
displacement rules (attract towards / repel away from the centre).
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional, Tuple

from ._math import (
    _F, _PointLike, as_point, clamp, dot, dot2, in_sector, length,
    line_circle_intersection, line_line_intersection, normalized, vec2,
)
from .effector import (
    INITIAL_SCALE_FACTOR, DisplacementResult, Effector, PointAttribute, _rotate_handle,
)


# ===========================================================================
# Shared base
# ===========================================================================

class _CircleBase(Effector):
    """Centre + radius handle, strength and depth strength."""

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("center", "handle1")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = (
        "strength", "depth_strength", "displacement_can_cross_center",
    )

    center = PointAttribute()
    handle1 = PointAttribute()

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        strength: float = 0.0,
        depth_strength: float = 0.0,
        *,
        displacement_can_cross_center: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.center = center
        if handle1 is None:
            r = 1.0 if self.id == -1 else INITIAL_SCALE_FACTOR
            handle1 = self.center + vec2(r, 0.0)
        self.handle1 = handle1
        self.strength = float(strength)
        self.depth_strength = float(depth_strength)
        self.displacement_can_cross_center = displacement_can_cross_center

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def radius(self) -> float:
        return length(self.handle1 - self.center)

    @property
    def radius_sqr(self) -> float:
        return dot2(self.handle1 - self.center)

    def set_radius(self, radius: float) -> None:
        """Move handle1 to *radius*, keeping its direction (+x if it has none)."""
        self.handle1 = _rotate_handle(self.center, self.handle1, radius)

    def _circle_bounding_box(self) -> None:
        r = self.radius
        offset = vec2(r, r)
        self.bounds_top_right = self.center + offset
        self.bounds_bottom_left = self.center - offset

    def is_inside_bounding_box(
        self, point: _PointLike, bypass_enabled: bool = False, margin: float = 0.0
    ) -> bool:
        """Use the exact test directly; it is cheaper than the box test.

        With a nonzero *margin* the regular box test is used.
        """
        if margin:
            return super().is_inside_bounding_box(point, bypass_enabled, margin)
        return self.is_inside_effector(point, bypass_enabled)

    def _translate(self, delta: _F) -> None:
        self.center = self.center + delta
        self.handle1 = self.handle1 + delta

    # ------------------------------------------------------------------
    # Influence
    # ------------------------------------------------------------------

    def _influence_factor(self, p: _F) -> float:
        """Feathered influence for a point already known to be inside."""
        radius = self.radius
        r = length(p - self.center)
        fa = self.feather_amount

        if self.invert_feather_region:
            feathered = radius * fa
            f = 1.0 if fa == 0 or feathered == 0 else r / feathered
            f = clamp(f, 0.0, 1.0)
            return 1.0 - f if self.invert_strength else f

        feathered = radius * fa
        denom = radius - feathered
        f = 0.0 if fa == 1 or denom == 0 else (r - feathered) / denom
        f = clamp(f, 0.0, 1.0)
        return f if self.invert_strength else 1.0 - f

    def get_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        if not self.is_inside_effector(p):
            return 0.0
        return self._influence_factor(p) * self.strength

    def get_depth_strength_at(self, point: _PointLike) -> float:
        p = as_point(point)
        if not self.is_inside_effector(p):
            return 0.0
        return self._influence_factor(p) * self.depth_strength

    # ------------------------------------------------------------------
    # Displacement
    # ------------------------------------------------------------------

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        f = self._influence_factor(p)
        depth = f * self.depth_strength
        locked = False
        to_center = self.center - p

        if self.unilateral_displacement:
            xy = self._unilateral_displacement(p, f)
        elif self.distance_from_center_equals_strength:
            if not self.repel:
                xy = to_center * f
                locked = f == 1
            else:
                to_edge = self.radius - length(to_center)
                xy = -normalized(to_center) * to_edge * f
        else:
            xy = normalized(to_center) * (f * self.strength)
            if not self.repel:
                if dot(to_center - xy, to_center) <= 0:
                    # overshoots the centre
                    if not self.displacement_can_cross_center:
                        xy = to_center
                        locked = True
                    else:
                        limit = length(to_center) + self.radius
                        if length(xy) > limit:
                            xy = normalized(xy) * limit
            else:
                xy = -xy
                if dot2(to_center - xy) >= self.radius_sqr:
                    xy = -normalized(to_center) * (self.radius - length(to_center))

        return DisplacementResult.from_xy(f, locked, xy, depth)

    def _unilateral_displacement(self, p: _F, f: float) -> _F:
        """Move along the handle direction, stopping at the far side of the
        circle."""
        radius = self.radius
        if radius == 0:
            return vec2(0.0, 0.0)
        direction = self.handle1 - self.center
        if self.repel:
            direction = -direction
        unit = direction / radius
        xy = unit * (f * self.strength)

        hits = line_circle_intersection(self.center, radius, p, p + direction)
        if hits is not None:
            isect1, isect2 = hits
            clamp_point = isect1 if dot(direction, isect1 - p) >= 0 else isect2
            if dot2(xy) > dot2(clamp_point - p):
                xy = unit * length(clamp_point - p)
        return xy


# ===========================================================================
# Variants
# ===========================================================================

class CircleEffector(_CircleBase):
    """Disc effector.

    Parameters
    ----------
    center:
        Circle centre.
    handle1:
        Point on the rim; ``|handle1 - center|`` is the radius.  Defaults to
        ``center + (5, 0)`` (``(1, 0)`` for anonymous shapes).
    strength, depth_strength:
        Peak planar and depth displacement.
    displacement_can_cross_center:
        Let an attracting displacement overshoot the centre, up to the far
        rim, instead of locking at it.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.update_effector()

    def _calculate_bounding_box(self) -> None:
        self._circle_bounding_box()

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        if dot2(p - self.center) > self.radius_sqr:
            return None
        if not self._passes_region(p, bypass):
            return None
        return True


class SemiCircleEffector(_CircleBase):
    """Slice of a disc between ``handle1`` and ``handle2``.

    The slice always spans the smaller angle between the two handles.
    ``handle2`` only contributes its direction; call
    :meth:`equalize_length_of_handles` to place it on the rim.
    """

    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ("center", "handle1", "handle2")
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = _CircleBase.SERIAL_SCALARS + (
        "use_fast_rough_bounding_box",
    )

    handle2 = PointAttribute()

    def __init__(
        self,
        center: _PointLike = (0.0, 0.0),
        handle1: Optional[_PointLike] = None,
        handle2: Optional[_PointLike] = None,
        strength: float = 0.0,
        depth_strength: float = 0.0,
        *,
        use_fast_rough_bounding_box: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(center, handle1, strength, depth_strength, **kwargs)
        if handle2 is None:
            handle2 = self.center + vec2(0.0, INITIAL_SCALE_FACTOR)
        self.handle2 = handle2
        self.use_fast_rough_bounding_box = use_fast_rough_bounding_box
        self.update_effector()

    def equalize_length_of_handles(self) -> None:
        """Put handle2 at handle1's distance from the centre."""
        self.handle2 = normalized(self.handle2 - self.center) * self.radius + self.center

    def _translate(self, delta: _F) -> None:
        super()._translate(delta)
        self.handle2 = self.handle2 + delta

    def _in_slice(self, d_point: _F) -> bool:
        return in_sector(d_point, self.handle1 - self.center, self.handle2 - self.center)

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        dp = p - self.center
        if dot2(dp) > self.radius_sqr or not self._in_slice(dp):
            return None
        if not self._passes_region(p, bypass):
            return None
        return True

    def _calculate_bounding_box(self) -> None:
        if self.use_fast_rough_bounding_box:
            self._circle_bounding_box()
            return

        self._reset_bounding_box()
        radius = self.radius
        self._expand_bounding_box(self.handle1)
        self._expand_bounding_box(normalized(self.handle2 - self.center) * radius + self.center)
        self._expand_bounding_box(self.center)
        for axis_point in (vec2(radius, 0.0), vec2(0.0, radius), vec2(-radius, 0.0), vec2(0.0, -radius)):
            if self._in_slice(axis_point):
                self._expand_bounding_box(self.center + axis_point)

    def _unilateral_displacement(self, p: _F, f: float) -> _F:
        xy = super()._unilateral_displacement(p, f)
        # do not cross the handle2 side
        isect = line_line_intersection(p, p + xy, self.center, self.handle2)
        if isect is not None:
            to_isect = isect - p
            if dot(xy, to_isect) >= 0 and dot2(xy) > dot2(to_isect):
                xy = to_isect
        return xy
