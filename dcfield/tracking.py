"""Helpers for moving a tracked target through the displacement field.

A camera rig follows a target; the field shifts the target's position and
bends its velocity and acceleration along the displacement tangent so the
target slides along an effector instead of fighting it.

:func:`lead_lag_velocity` and :func:`lead_lag_position` make the camera run
ahead of (or behind) a moving target; the smoothing itself lives in
:mod:`dcfield.smoothing`.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from ._math import _F, _PointLike, as_point, dot, dot2, normalized, vec2
from .config import FieldSettings, TrackerSettings
from .effector import DisplacementResult
from .registry import EffectorRegistry

# Axis speeds at or below this get no lead/lag.
LEAD_LAG_MIN_SPEED = 1e-3


def project_on_tangent(vector: _PointLike, result: DisplacementResult) -> _F:
    """Blend *vector* towards its projection on ``result.tangent``.

    ``(1 - f) * v + f * proj`` with ``f = result.influence``.  Locked
    results give zero; a zero tangent leaves *vector* unchanged.
    """
    v = as_point(vector)
    tangent = result.tangent
    if dot2(tangent) == 0:
        return vec2(0.0, 0.0) if result.locked_xy else v
    if result.locked_xy:
        return vec2(0.0, 0.0)
    proj = tangent * (dot(tangent, v) / dot2(tangent))
    f = result.influence
    return (1.0 - f) * v + f * proj


def displace_by_field(
    registry: EffectorRegistry,
    position: Sequence[float],
    velocity: _PointLike = (0.0, 0.0),
    acceleration: _PointLike = (0.0, 0.0),
    settings: Optional[FieldSettings] = None,
) -> Tuple[_F, _F, _F, DisplacementResult]:
    """Displace a tracked target.

    Parameters
    ----------
    registry:
        Effectors of the scene.
    position:
        Target position, 2-D or 3-D (only x and y are queried).
    velocity, acceleration:
        Planar target motion, bent along the displacement tangent.
    settings:
        Query options; defaults to :class:`FieldSettings`.

    Returns
    -------
    position:
        ``(3,)`` displaced position (depth added to z).
    velocity, acceleration:
        Adjusted ``(2,)`` vectors; unchanged when nothing was hit.
    result:
        The field output (zero when nothing was hit).
    """
    settings = settings or FieldSettings()
    pos = np.zeros(3)
    given = np.asarray(position, dtype=float)
    pos[: given.shape[0]] = given

    found, result = registry.query_displacement(
        pos[:2], settings.combine_overlaps, settings.limit_to_max_strength
    )
    v = as_point(velocity)
    a = as_point(acceleration)
    if not found:
        return pos, v, a, result
    return pos + result.displacement, project_on_tangent(v, result), project_on_tangent(a, result), result


def orthographic_size_for_depth(
    initial_size: float, depth: float, settings: Optional[FieldSettings] = None
) -> float:
    """Orthographic camera size for a depth displacement (zoom in for
    positive depth), never below ``settings.min_orthographic_size``."""
    settings = settings or FieldSettings()
    return max(
        initial_size - depth * settings.depth_to_orthographic_size_factor,
        settings.min_orthographic_size,
    )


# ===========================================================================
# Lead / lag
# ===========================================================================

def _as_vec3(v: Sequence[float]) -> _F:
    out = np.zeros(3)
    given = np.asarray(v, dtype=float).reshape(-1)
    out[: given.shape[0]] = given
    return out


def _lead_lag_limits(target_velocity: _F, settings: TrackerSettings) -> Tuple[_F, _F]:
    """Per-axis lead distances and ``[0, 1]`` speed factors.

    A box clamp keeps the configured x and y distances and ramps each axis
    with its own speed.  Otherwise the distances are scaled by the
    direction of travel (an ellipse) and ramp with the overall speed.
    """
    max_distance = vec2(settings.lead_lag_max_distance_x, settings.lead_lag_max_distance_y)
    direction = normalized(target_velocity[:2])
    if not settings.lead_lag_box_clamp:
        max_distance = np.abs(direction) * max_distance

    ramp = np.ones(2)
    if settings.lead_lag_max_at_velocity != 0:
        if settings.lead_lag_box_clamp:
            speed = np.abs(target_velocity[:2])
        else:
            speed = np.full(2, np.linalg.norm(target_velocity))
        ramp = np.clip(speed / settings.lead_lag_max_at_velocity, 0.0, 1.0)
    return max_distance, ramp


def lead_lag_velocity(
    target_velocity: Sequence[float], settings: TrackerSettings, influence: float = 1.0
) -> _F:
    """Scale the target velocity so a critically damped tracker settles
    ahead of the target.

    A tracker following a target at constant speed ``v`` trails it by
    ``v * smooth_time``; multiplying ``v`` by
    ``1 + max_distance / (smooth_time * |v|)`` shifts it forward by
    ``max_distance`` instead.  Negative distances make it lag.  The shift
    reaches its full size at ``settings.lead_lag_max_at_velocity``.

    Parameters
    ----------
    target_velocity:
        2-D or 3-D target velocity; z passes through unchanged.
    settings:
        Lead/lag distances and the tracker smooth times.
    influence:
        ``0`` returns *target_velocity*, ``1`` the fully compensated one.

    Returns
    -------
    ``(3,)`` compensated velocity.
    """
    v = _as_vec3(target_velocity)
    max_distance, ramp = _lead_lag_limits(v, settings)

    factor = np.ones(3)
    for axis in range(2):
        speed = abs(v[axis])
        if speed > LEAD_LAG_MIN_SPEED:
            factor[axis] = max_distance[axis] / (settings.smooth_time[axis] * speed) * ramp[axis] + 1.0
    return v + (v * factor - v) * influence


def lead_lag_position(
    target_position: Sequence[float],
    target_velocity: Sequence[float],
    settings: TrackerSettings,
    influence: float = 1.0,
) -> _F:
    """Offset the target position along its direction of travel.

    Gives the same lead as :func:`lead_lag_velocity`, applied to the
    position instead; z is never offset.
    """
    p = _as_vec3(target_position)
    v = _as_vec3(target_velocity)
    max_distance, ramp = _lead_lag_limits(v, settings)
    offset = normalized(v[:2]) * ramp * max_distance
    p[:2] += offset * influence
    return p
