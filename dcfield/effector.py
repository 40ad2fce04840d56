"""Effector base class and the displacement result record.

Every concrete effector derives from :class:`Effector`, which holds the
attributes shared by all shapes (flags, feather, root position, bounding box,
boundary region) and implements the queries on top of two hooks:

* :meth:`Effector._locate` returns a per-query hit context (or ``None``),
* :meth:`Effector._displacement` turns that context into a
  :class:`DisplacementResult`.

Queries never mutate the effector, so the same shape can be queried with and
without the enabled/region bypass without side effects.
"""

from __future__ import annotations

import abc
import itertools
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterator, Optional, Tuple

import numpy as np

from ._math import _F, _PointLike, as_point, clamp, dot2, vec2, vec3
from .region import BoundaryRegion

# Size of freshly created effectors.
INITIAL_SCALE_FACTOR = 5.0

_id_counter = itertools.count()


class PointAttribute:
    """Descriptor for a 2-D point attribute.

    Assigned values are copied into a fresh ``(2,)`` float array, so callers
    may pass tuples and never share storage with the effector.
    """

    def __set_name__(self, owner: type, name: str) -> None:
        self._attr = "_" + name

    def __get__(self, obj: Any, objtype: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return getattr(obj, self._attr)

    def __set__(self, obj: Any, value: _PointLike) -> None:
        setattr(obj, self._attr, as_point(value))


# ===========================================================================
# Output record
# ===========================================================================

@dataclass(eq=False)
class DisplacementResult:
    """Output of a displacement query.

    Attributes
    ----------
    influence:
        Influence in ``[0, 1]``; the maximum over contributors when blended.
    locked_xy:
        The XY displacement hit a hard clamp (a circle centre) and the
        tracked target should stop moving in the plane.
    displacement:
        ``(x, y, depth)`` displacement.
    """

    influence: float = 0.0
    locked_xy: bool = False
    displacement: _F = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DisplacementResult):
            return NotImplemented
        return (
            bool(np.isclose(self.influence, other.influence))
            and self.locked_xy == other.locked_xy
            and bool(np.allclose(self.displacement, other.displacement))
        )

    __hash__ = None  # type: ignore[assignment]

    @property
    def xy(self) -> _F:
        return self.displacement[:2].copy()

    @property
    def depth(self) -> float:
        return float(self.displacement[2])

    @property
    def tangent(self) -> _F:
        """Direction perpendicular to the XY displacement."""
        return vec2(self.displacement[1], -self.displacement[0])

    @classmethod
    def zero(cls) -> "DisplacementResult":
        return cls()

    @classmethod
    def from_xy(cls, influence: float, locked_xy: bool, xy: _F, depth: float) -> "DisplacementResult":
        return cls(float(influence), bool(locked_xy), vec3(xy[0], xy[1], depth))


# ===========================================================================
# Base class
# ===========================================================================

class Effector(abc.ABC):
    """Base class for all displacement-field shapes.

    Parameters
    ----------
    name:
        Display name, used by :meth:`EffectorRegistry.find_by_name`.
    feather_amount:
        Fraction in ``[0, 1]`` controlling the influence ramp.
    root_position:
        Reference point for :meth:`move_to`.
    anonymous:
        Create without a unique id (``id == -1``); used for sub-shapes.

    Subclasses implement :meth:`_locate`, :meth:`_displacement`,
    :meth:`_translate`, :meth:`_calculate_bounding_box` and
    :meth:`get_strength_at` / :meth:`get_depth_strength_at`.
    """

    #: Vector attributes persisted by :mod:`dcfield.config`.
    SERIAL_VECTORS: ClassVar[Tuple[str, ...]] = ()
    #: Scalar / flag attributes persisted by :mod:`dcfield.config`.
    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = ()

    root_position = PointAttribute()

    def __init__(
        self,
        name: str = "Effector",
        *,
        feather_amount: float = 0.0,
        root_position: _PointLike = (0.0, 0.0),
        anonymous: bool = False,
    ) -> None:
        self.id: int = -1 if anonymous else next(_id_counter)
        self.name = name
        self.enabled = True

        self._feather_amount = 0.0
        self.feather_amount = feather_amount
        self.invert_feather_region = False

        self.repel = False
        self.invert_strength = False
        self.distance_from_center_equals_strength = False
        self.unilateral_displacement = False

        self.use_region_as_bounds = False
        self.boundary_region = BoundaryRegion()
        self.root_position = root_position

        self.bounds_top_right = vec2(-math.inf, -math.inf)
        self.bounds_bottom_left = vec2(math.inf, math.inf)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if other is None or type(self) is not type(other):
            return False
        if self.id == -1:
            return self is other
        return self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        if self.id == -1:
            return object.__hash__(self)
        return self.id + 1

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, id={self.id}, enabled={self.enabled}, "
            f"repel={self.repel}, invert_strength={self.invert_strength}, "
            f"distance_equals_strength={self.distance_from_center_equals_strength})"
        )

    # ------------------------------------------------------------------
    # Shared properties
    # ------------------------------------------------------------------

    @property
    def feather_amount(self) -> float:
        return self._feather_amount

    @feather_amount.setter
    def feather_amount(self, value: float) -> None:
        self._feather_amount = clamp(float(value), 0.0, 1.0)

    def copy_properties_to(self, other: "Effector") -> None:
        """Copy flags, feather and root position (not id, name, bounds or
        region) to *other*."""
        other.enabled = self.enabled
        other.feather_amount = self.feather_amount
        other.invert_feather_region = self.invert_feather_region
        other.root_position = self.root_position
        other.repel = self.repel
        other.invert_strength = self.invert_strength
        other.distance_from_center_equals_strength = self.distance_from_center_equals_strength
        other.unilateral_displacement = self.unilateral_displacement

    # ------------------------------------------------------------------
    # Bounding box
    # ------------------------------------------------------------------

    @property
    def bounding_box(self) -> Tuple[_F, _F]:
        """``(bottom_left, top_right)`` copies of the current box."""
        return self.bounds_bottom_left.copy(), self.bounds_top_right.copy()

    def is_inside_bounding_box(
        self, point: _PointLike, bypass_enabled: bool = False, margin: float = 0.0
    ) -> bool:
        """O(1) rejection test; *margin* grows the box on every side."""
        if not (self.enabled or bypass_enabled):
            return False
        p = as_point(point)
        bl = self.bounds_bottom_left
        tr = self.bounds_top_right
        return (bl[0] - margin <= p[0] <= tr[0] + margin) and (bl[1] - margin <= p[1] <= tr[1] + margin)

    def _reset_bounding_box(self) -> None:
        self.bounds_top_right = vec2(-math.inf, -math.inf)
        self.bounds_bottom_left = vec2(math.inf, math.inf)

    def _expand_bounding_box(self, point: _F) -> None:
        self.bounds_top_right = np.maximum(self.bounds_top_right, point)
        self.bounds_bottom_left = np.minimum(self.bounds_bottom_left, point)

    def _expand_bounding_box_by(self, other: "Effector") -> None:
        self.bounds_top_right = np.maximum(self.bounds_top_right, other.bounds_top_right)
        self.bounds_bottom_left = np.minimum(self.bounds_bottom_left, other.bounds_bottom_left)

    @abc.abstractmethod
    def _calculate_bounding_box(self) -> None:
        ...

    # ------------------------------------------------------------------
    # Update / move
    # ------------------------------------------------------------------

    def update_effector(self) -> None:
        """Refresh derived handles and the bounding box after a change."""
        self._calculate_bounding_box()

    @contextmanager
    def editing(self) -> Iterator["Effector"]:
        """Mutate inside the block; :meth:`update_effector` runs on exit."""
        try:
            yield self
        finally:
            self.update_effector()

    def move_to(self, point: _PointLike) -> None:
        """Translate all geometry so the root position lands on *point*.

        The bounding box and the boundary region move along; no update is
        needed afterwards.
        """
        p = as_point(point)
        delta = p - self.root_position
        self._translate(delta)
        self.root_position = p
        self.bounds_top_right = self.bounds_top_right + delta
        self.bounds_bottom_left = self.bounds_bottom_left + delta
        self.boundary_region.move_by(delta)

    def move_by(self, delta: _PointLike) -> None:
        self.move_to(self.root_position + as_point(delta))

    @abc.abstractmethod
    def _translate(self, delta: _F) -> None:
        """Shift the shape's own handles by *delta*."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_inside_region_boundary(self, point: _PointLike) -> bool:
        return self.boundary_region.is_point_inside(point)

    def _passes_region(self, p: _F, bypass: bool) -> bool:
        return bypass or not self.use_region_as_bounds or self.boundary_region.is_point_inside(p)

    def _is_active(self, bypass: bool) -> bool:
        return self.enabled or bypass

    @abc.abstractmethod
    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        """Return a hit context when *p* is inside, else ``None``."""

    @abc.abstractmethod
    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        """Displacement at *p*, given the context from :meth:`_locate`."""

    def is_inside_effector(self, point: _PointLike, bypass_enabled: bool = False) -> bool:
        """Exact containment test.

        With *bypass_enabled* the enabled flag and the region mask are
        ignored ("would be inside if enabled").
        """
        return self._locate(as_point(point), bypass_enabled) is not None

    def get_displacement_at(self, point: _PointLike) -> Tuple[bool, DisplacementResult]:
        """Return ``(inside, result)``; outside points give a zero result."""
        p = as_point(point)
        hit = self._locate(p, False)
        if hit is None:
            return False, DisplacementResult.zero()
        return True, self._displacement(p, hit)

    def displacement_at(self, point: _PointLike) -> _F:
        """Shortcut returning only the ``(x, y, depth)`` vector."""
        return self.get_displacement_at(point)[1].displacement

    @abc.abstractmethod
    def get_strength_at(self, point: _PointLike) -> float:
        ...

    @abc.abstractmethod
    def get_depth_strength_at(self, point: _PointLike) -> float:
        ...


def _rotate_handle(center: _F, handle: _F, radius: float) -> _F:
    """Place a handle at *radius* from *center* along the current handle
    direction (+x when the handle sits on the centre)."""
    d = handle - center
    mag = math.sqrt(dot2(d))
    if mag < 1e-5:
        return center + vec2(radius, 0.0)
    return center + d / mag * radius
