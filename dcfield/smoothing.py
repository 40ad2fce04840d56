"""Mass-spring-damper smoothing for camera trackers.

A tracker is a unit mass on a spring pulled towards a target that moves with
constant acceleration during one step.  Each step evaluates the closed-form
solution of that system, so the result does not depend on sub-stepping.

This module provides:

* **Step functions**: :func:`critical_damped`,
  :func:`critical_damped_anti_frame_lag`, :func:`critical_damped_stable_clamp`,
  :func:`under_damped`, :func:`under_damped_anti_frame_lag`
* **Distance clamps**: :class:`ClampType`, :func:`clamp_max_distances`
* **Trackers**: :class:`SpringTracker1D`, :class:`CameraTracker`

Step functions work element-wise on numpy arrays (or plain floats) and
return ``(new_position, new_velocity)``.  The *anti frame lag* variants take
the target state at the end of the step (``t + dt``), for targets that were
advanced before the tracker runs.

``max_distance`` bounds how far the tracker may trail the target.  Hitting
the bound snaps the tracker to ``CLAMP_BIAS * max_distance`` from the target
and hands it the target's velocity.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

from ._math import NORMALIZE_EPS, _F
from .config import TrackerSettings

_ArrayLike = Union[float, Sequence[float], _F]

# Fraction of max_distance a clamped tracker is placed at.
CLAMP_BIAS = 0.999


class ClampType(enum.Enum):
    """Shape of the region the tracker may trail the target in."""

    BOX = "box"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    SPHERE = "sphere"


# ===========================================================================
# Helpers
# ===========================================================================

def _arr(x: _ArrayLike) -> _F:
    return np.asarray(x, dtype=float)


def _sign(x: _F) -> _F:
    return np.where(x >= 0.0, 1.0, -1.0)


def _vec3(v: _ArrayLike) -> _F:
    out = np.zeros(3)
    given = np.asarray(v, dtype=float).reshape(-1)
    out[: given.shape[0]] = given
    return out


def _normalized3(v: _F) -> _F:
    mag = float(np.linalg.norm(v))
    if mag > NORMALIZE_EPS:
        return v / mag
    return np.zeros_like(v)


def _anti_overshoot(
    enabled: npt.ArrayLike,
    position: _F,
    new_position: _F,
    new_velocity: _F,
    target_position: _F,
    target_velocity: _F,
) -> Tuple[_F, _F]:
    # Crossed the target while moving with it, faster than it.
    crossed = (target_position - position) * (target_position - new_position) < 0.0
    faster = (new_velocity - target_velocity) * target_velocity >= 0.0
    hit = np.asarray(enabled, dtype=bool) & crossed & faster
    return (
        np.where(hit, target_position, new_position),
        np.where(hit, target_velocity, new_velocity),
    )


# ===========================================================================
# Critically damped steps
# ===========================================================================

def critical_damped(
    position: _ArrayLike,
    velocity: _ArrayLike,
    target_position: _ArrayLike,
    target_velocity: _ArrayLike,
    target_acceleration: _ArrayLike,
    smooth_time: _ArrayLike,
    dt: float,
    max_distance: _ArrayLike = np.inf,
) -> Tuple[_F, _F]:
    """Advance a critically damped tracker by *dt*.

    Parameters
    ----------
    position, velocity:
        Tracker state at ``t``.
    target_position, target_velocity, target_acceleration:
        Target state at ``t``.
    smooth_time:
        Roughly the time to converge; the natural frequency is
        ``2 / smooth_time``.
    dt:
        Step length.
    max_distance:
        Largest allowed distance between tracker and target.

    Returns
    -------
    position, velocity:
        Tracker state at ``t + dt``.
    """
    x, v = _arr(position), _arr(velocity)
    tp, tv, ta = _arr(target_position), _arr(target_velocity), _arr(target_acceleration)
    md = _arr(max_distance)

    lam = -2.0 / _arr(smooth_time)
    c1 = np.clip(x - tp, -md, md)
    clamped = md - np.abs(c1) == 0.0
    c2 = v - tv - lam * c1
    e = np.exp(lam * dt)
    partial = (c1 + c2 * dt) * e

    new_vel = partial * lam + c2 * e + ta * dt + tv
    new_pos = partial + 0.5 * ta * dt * dt + tv * dt + tp
    future = tp + tv * dt + 0.5 * ta * dt * dt

    over = clamped | (np.abs(new_pos - future) >= md)
    new_pos = np.where(over, tp + _sign(new_pos - future) * md * CLAMP_BIAS, new_pos)
    new_vel = np.where(over, 0.5 * ta * dt + tv, new_vel)
    return new_pos, new_vel


def critical_damped_anti_frame_lag(
    position: _ArrayLike,
    velocity: _ArrayLike,
    target_position: _ArrayLike,
    target_velocity: _ArrayLike,
    target_acceleration: _ArrayLike,
    smooth_time: _ArrayLike,
    dt: float,
    max_distance: _ArrayLike = np.inf,
    anti_overshoot: npt.ArrayLike = False,
) -> Tuple[_F, _F]:
    """Critically damped step towards a target given at ``t + dt``.

    With *anti_overshoot* the tracker is snapped onto the target when it
    passes it while moving in the target's direction faster than the
    target.
    """
    x, v = _arr(position), _arr(velocity)
    tp, tv, ta = _arr(target_position), _arr(target_velocity), _arr(target_acceleration)
    md = _arr(max_distance)

    lam = -2.0 / _arr(smooth_time)
    c1 = np.clip(x - (tp + 0.5 * ta * dt * dt - tv * dt), -md, md)
    c2 = v - (tv - ta * dt) - lam * c1
    e = np.exp(lam * dt)
    partial = (c1 + c2 * dt) * e

    new_vel = partial * lam + c2 * e + tv
    new_pos = partial + tp

    over = np.abs(new_pos - tp) >= md
    new_pos = np.where(over, tp + _sign(new_pos - tp) * md * CLAMP_BIAS, new_pos)
    new_vel = np.where(over & (tv != 0.0), tv, new_vel)
    return _anti_overshoot(anti_overshoot, x, new_pos, new_vel, tp, tv)


def critical_damped_stable_clamp(
    position: _ArrayLike,
    velocity: _ArrayLike,
    previous_target_position: _ArrayLike,
    target_position: _ArrayLike,
    target_velocity: _ArrayLike,
    target_acceleration: _ArrayLike,
    smooth_time: _ArrayLike,
    dt: float,
    max_distance: _ArrayLike = np.inf,
    anti_overshoot: npt.ArrayLike = False,
) -> Tuple[_F, _F]:
    """Anti frame lag step that clamps stably for still targets.

    Axes whose target velocity is zero track *previous_target_position*
    instead of extrapolating backwards from *target_position*.  The clamp
    snaps to exactly *max_distance*.
    """
    x, v = _arr(position), _arr(velocity)
    prev = _arr(previous_target_position)
    tp, tv, ta = _arr(target_position), _arr(target_velocity), _arr(target_acceleration)
    md = _arr(max_distance)
    still = tv == 0.0

    lam = -2.0 / _arr(smooth_time)
    c1 = np.where(still, x - prev, x - (tp + 0.5 * ta * dt * dt - tv * dt))
    c1 = np.clip(c1, -md, md)
    c2 = v - tv - lam * c1
    e = np.exp(lam * dt)
    partial = (c1 + c2 * dt) * e

    new_vel = partial * lam + c2 * e + ta * dt + tv
    new_pos = partial + np.where(still, prev, tp)

    over = np.abs(new_pos - tp) >= md
    new_pos = np.where(over, tp + _sign(new_pos - tp) * md, new_pos)
    new_vel = np.where(over & ~still, tv, new_vel)
    return _anti_overshoot(anti_overshoot, x, new_pos, new_vel, tp, tv)


# ===========================================================================
# Under damped steps
# ===========================================================================

def _under_damped_roots(smooth_time: _ArrayLike, damping_ratio: _ArrayLike) -> Tuple[_F, _F]:
    omega = 2.0 / _arr(smooth_time)
    c = 2.0 * omega * _arr(damping_ratio)
    alpha = -c / 2.0
    beta = np.sqrt(np.abs(c * c - 4.0 * omega * omega))
    return alpha, beta


def under_damped(
    position: _ArrayLike,
    velocity: _ArrayLike,
    target_position: _ArrayLike,
    target_velocity: _ArrayLike,
    target_acceleration: _ArrayLike,
    smooth_time: _ArrayLike,
    dt: float,
    damping_ratio: _ArrayLike,
    max_distance: _ArrayLike = np.inf,
) -> Tuple[_F, _F]:
    """Under damped counterpart of :func:`critical_damped`.

    *damping_ratio* must lie in ``[0, 1)``; the tracker oscillates around
    the target before settling.
    """
    x, v = _arr(position), _arr(velocity)
    tp, tv, ta = _arr(target_position), _arr(target_velocity), _arr(target_acceleration)
    md = _arr(max_distance)
    alpha, beta = _under_damped_roots(smooth_time, damping_ratio)

    c1 = np.clip(x - tp, -md, md)
    clamped = md - np.abs(c1) == 0.0
    c2 = (v - tv - alpha * c1) / beta
    e = np.exp(alpha * dt)
    s, c = np.sin(beta * dt), np.cos(beta * dt)
    partial = e * (c1 * c + c2 * s)

    new_vel = alpha * partial + beta * e * (c2 * c - c1 * s) + tv + ta * dt
    new_pos = partial + 0.5 * ta * dt * dt + tv * dt + tp
    future = tp + tv * dt + 0.5 * ta * dt * dt

    over = clamped | (np.abs(new_pos - future) >= md)
    new_pos = np.where(over, tp + _sign(new_pos - future) * md * CLAMP_BIAS, new_pos)
    new_vel = np.where(over, 0.5 * ta * dt + tv, new_vel)
    return new_pos, new_vel


def under_damped_anti_frame_lag(
    position: _ArrayLike,
    velocity: _ArrayLike,
    target_position: _ArrayLike,
    target_velocity: _ArrayLike,
    target_acceleration: _ArrayLike,
    smooth_time: _ArrayLike,
    dt: float,
    damping_ratio: _ArrayLike,
    max_distance: _ArrayLike = np.inf,
) -> Tuple[_F, _F]:
    """Under damped step towards a target given at ``t + dt``."""
    x, v = _arr(position), _arr(velocity)
    tp, tv, ta = _arr(target_position), _arr(target_velocity), _arr(target_acceleration)
    md = _arr(max_distance)
    alpha, beta = _under_damped_roots(smooth_time, damping_ratio)

    c1 = np.clip(x - (tp + 0.5 * ta * dt * dt - tv * dt), -md, md)
    clamped = md - np.abs(c1) == 0.0
    c2 = (v - (tv - ta * dt) - alpha * c1) / beta
    e = np.exp(alpha * dt)
    s, c = np.sin(beta * dt), np.cos(beta * dt)
    partial = e * (c1 * c + c2 * s)

    new_vel = alpha * partial + beta * e * (c2 * c - c1 * s) + tv
    new_pos = partial + tp

    over = clamped | (np.abs(new_pos - tp) >= md)
    new_pos = np.where(over, tp + _sign(new_pos - tp) * md * CLAMP_BIAS, new_pos)
    new_vel = np.where(over, tv, new_vel)
    return new_pos, new_vel


# ===========================================================================
# Distance clamps
# ===========================================================================

def clamp_max_distances(
    position: _ArrayLike,
    target_position: _ArrayLike,
    max_distance: _ArrayLike,
    clamp_type: ClampType = ClampType.BOX,
) -> _F:
    """Per-axis distance limits that realise *clamp_type*.

    The step functions clamp each axis on its own, which bounds the tracker
    to a box.  For the other shapes the per-axis limits are shrunk to the
    components of the boundary point in the direction of the target:

    * ``CIRCLE``: radius ``max_distance[0]`` in the xy-plane.
    * ``ELLIPSE``: semi-axes ``max_distance[0]`` and ``max_distance[1]``.
    * ``SPHERE``: radius ``max_distance[0]`` in 3-D.

    Limits are only shrunk when the target lies outside the shape.
    """
    d = _vec3(target_position) - _vec3(position)
    limits = _vec3(max_distance)

    if clamp_type is ClampType.CIRCLE:
        d_xy = d[:2]
        if d_xy @ d_xy > limits[0] ** 2:
            limits[:2] = np.abs(_normalized3(d_xy) * limits[0])
    elif clamp_type is ClampType.ELLIPSE:
        d_xy = d[:2]
        mx2, my2 = limits[0] ** 2, limits[1] ** 2
        if d_xy @ d_xy > 0.0:
            t = 0.0 if mx2 == 0.0 or my2 == 0.0 else np.sqrt(1.0 / (d_xy[0] ** 2 / mx2 + d_xy[1] ** 2 / my2))
            on_ellipse = d_xy * t
            if on_ellipse @ on_ellipse < d_xy @ d_xy:
                limits[:2] = np.abs(on_ellipse)
    elif clamp_type is ClampType.SPHERE:
        if d @ d > limits[0] ** 2:
            limits = np.abs(_normalized3(d) * limits[0])
    return limits


# ===========================================================================
# Trackers
# ===========================================================================

@dataclass
class SpringTracker1D:
    """Single-axis tracker, e.g. for a zoom level or an angle."""

    smooth_time: float = 0.15
    damping_ratio: float = 0.5
    max_follow_distance: float = 100.0
    position: float = 0.0
    velocity: float = 0.0

    def set_initial_conditions(self, position: float, velocity: float) -> None:
        self.position = float(position)
        self.velocity = float(velocity)

    def critical_damped_step(
        self, target_position: float, target_velocity: float, dt: float, anti_frame_lag: bool = False
    ) -> float:
        step = critical_damped_anti_frame_lag if anti_frame_lag else critical_damped
        pos, vel = step(
            self.position, self.velocity, target_position, target_velocity, 0.0,
            self.smooth_time, dt, self.max_follow_distance,
        )
        self.position, self.velocity = float(pos), float(vel)
        return self.position

    def under_damped_step(
        self, target_position: float, target_velocity: float, dt: float, anti_frame_lag: bool = False
    ) -> float:
        step = under_damped_anti_frame_lag if anti_frame_lag else under_damped
        pos, vel = step(
            self.position, self.velocity, target_position, target_velocity, 0.0,
            self.smooth_time, dt, self.damping_ratio, self.max_follow_distance,
        )
        self.position, self.velocity = float(pos), float(vel)
        return self.position


class CameraTracker:
    """Three-axis camera tracker following a (displaced) target.

    Parameters
    ----------
    settings:
        Smoothing, clamping and acceleration limits; defaults to
        :class:`~dcfield.config.TrackerSettings`.
    position, velocity:
        Initial tracker state.

    Every ``*_step`` method limits the target acceleration, advances the
    tracker and returns its new ``(3,)`` position.
    """

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        position: _ArrayLike = (0.0, 0.0, 0.0),
        velocity: _ArrayLike = (0.0, 0.0, 0.0),
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.previous_target_position = np.zeros(3)
        self.set_initial_conditions(position, velocity)

    def set_initial_conditions(self, position: _ArrayLike, velocity: _ArrayLike) -> None:
        self.position = _vec3(position)
        self.velocity = _vec3(velocity)

    # -- settings as arrays ------------------------------------------------

    def _smooth_time(self) -> _F:
        return _vec3(self.settings.smooth_time)

    def _max_distance(self) -> _F:
        return _vec3(self.settings.max_follow_distance)

    def _anti_overshoot_axes(self) -> _F:
        s = self.settings
        return np.array([s.anti_overshoot_x, s.anti_overshoot_y, False])

    # -- acceleration limit ------------------------------------------------

    def limit_acceleration(self, acceleration: _ArrayLike) -> _F:
        """Limit the tracked target acceleration.

        Collisions and sudden stops show up as huge acceleration spikes.
        With ``link_threshold_x_to_y`` the whole vector is limited to
        ``acceleration_threshold_x``; otherwise x and y are limited on
        their own.  ``acceleration_over_threshold_is_zero`` drops an
        over-limit value instead of clamping it.
        """
        s = self.settings
        a = _vec3(acceleration)
        if s.link_threshold_x_to_y:
            if a @ a > s.acceleration_threshold_x ** 2:
                if s.acceleration_over_threshold_is_zero:
                    return np.zeros(3)
                return _normalized3(a) * s.acceleration_threshold_x
            return a
        limits = (s.acceleration_threshold_x, s.acceleration_threshold_y)
        for axis, limit in enumerate(limits):
            if s.acceleration_over_threshold_is_zero:
                if abs(a[axis]) > abs(limit):
                    a[axis] = 0.0
            else:
                a[axis] = min(max(a[axis], -limit), limit)
        return a

    # -- steps ------------------------------------------------------------

    def critical_damped_step(
        self,
        target_position: _ArrayLike,
        target_velocity: _ArrayLike,
        dt: float,
        target_acceleration: _ArrayLike = (0.0, 0.0, 0.0),
        clamp_type: ClampType = ClampType.CIRCLE,
    ) -> _F:
        """Frame-lag compensated critically damped step (target at ``t + dt``)."""
        tp, tv = _vec3(target_position), _vec3(target_velocity)
        ta = self.limit_acceleration(target_acceleration)
        compensated = tp - tv * dt + 0.5 * ta * dt * dt
        limits = clamp_max_distances(self.position, compensated, self._max_distance(), clamp_type)
        self.position, self.velocity = critical_damped_anti_frame_lag(
            self.position, self.velocity, tp, tv, ta, self._smooth_time(), dt, limits,
            self._anti_overshoot_axes(),
        )
        return self.position

    def critical_damped_step_no_frame_compensation(
        self,
        target_position: _ArrayLike,
        target_velocity: _ArrayLike,
        dt: float,
        target_acceleration: _ArrayLike = (0.0, 0.0, 0.0),
    ) -> _F:
        """Critically damped step towards a target given at ``t``, box clamp."""
        tp, tv = _vec3(target_position), _vec3(target_velocity)
        ta = self.limit_acceleration(target_acceleration)
        self.position, self.velocity = critical_damped(
            self.position, self.velocity, tp, tv, ta, self._smooth_time(), dt, self._max_distance(),
        )
        return self.position

    def critical_damped_stable_clamp_step(
        self,
        target_position: _ArrayLike,
        target_velocity: _ArrayLike,
        dt: float,
        target_acceleration: _ArrayLike = (0.0, 0.0, 0.0),
        clamp_type: ClampType = ClampType.CIRCLE,
    ) -> _F:
        """Like :meth:`critical_damped_step` but clamps stably when the
        target stands still.  Remembers *target_position* for the next
        step."""
        tp, tv = _vec3(target_position), _vec3(target_velocity)
        ta = self.limit_acceleration(target_acceleration)
        compensated = tp - tv * dt + 0.5 * ta * dt * dt
        limits = clamp_max_distances(self.position, compensated, self._max_distance(), clamp_type)
        self.position, self.velocity = critical_damped_stable_clamp(
            self.position, self.velocity, self.previous_target_position, tp, tv, ta,
            self._smooth_time(), dt, limits, self._anti_overshoot_axes(),
        )
        self.previous_target_position = tp
        return self.position

    def under_damped_step(
        self,
        target_position: _ArrayLike,
        target_velocity: _ArrayLike,
        dt: float,
        target_acceleration: _ArrayLike = (0.0, 0.0, 0.0),
        clamp_type: ClampType = ClampType.BOX,
    ) -> _F:
        """Frame-lag compensated under damped step."""
        tp, tv = _vec3(target_position), _vec3(target_velocity)
        ta = self.limit_acceleration(target_acceleration)
        compensated = tp - tv * dt + 0.5 * ta * dt * dt
        limits = clamp_max_distances(self.position, compensated, self._max_distance(), clamp_type)
        self.position, self.velocity = under_damped_anti_frame_lag(
            self.position, self.velocity, tp, tv, ta, self._smooth_time(), dt,
            _vec3(self.settings.damping_ratio), limits,
        )
        return self.position
