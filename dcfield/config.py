"""Scene configuration: YAML loader, dataclasses and effector (de)serialisation.

A scene file looks like::

    settings:
      combine_overlaps: true
      limit_to_max_strength: true
    effectors:
      - type: circle
        name: Pull
        center: [0.0, 0.0]
        handle1: [5.0, 0.0]
        strength: 2.0
      - type: chain
        nodes:
          - {point: [0, 0], strength: 1.0}
          - {point: [10, 0], strength: 1.0}
    tracker:
      smooth_time: [0.15, 0.15, 0.15]
      lead_lag_max_distance_x: 2.0

Every effector attribute round-trips through :func:`effector_to_dict` /
:func:`effector_from_dict`; ids are assigned fresh on load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml

from .box import BoxEffector
from .chain import ChainEffector, PathNodeData
from .circle import CircleEffector, SemiCircleEffector
from .effector import Effector
from .region import BoundaryRegion
from .registry import EffectorRegistry
from .torus import InterpSemiTorusEffector, SemiTorusEffector, TorusEffector

logger = logging.getLogger(__name__)

EFFECTOR_TYPES: Dict[str, Type[Effector]] = {
    "circle": CircleEffector,
    "semicircle": SemiCircleEffector,
    "torus": TorusEffector,
    "semitorus": SemiTorusEffector,
    "interp_semitorus": InterpSemiTorusEffector,
    "box": BoxEffector,
    "chain": ChainEffector,
}

# Shared attributes, in the order they are written.
_COMMON_FLAGS = (
    "enabled", "invert_feather_region", "repel", "invert_strength",
    "distance_from_center_equals_strength", "unilateral_displacement",
    "use_region_as_bounds",
)


@dataclass
class FieldSettings:
    """Options for querying the field."""
    combine_overlaps: bool = True
    limit_to_max_strength: bool = True
    depth_to_orthographic_size_factor: float = 0.5
    min_orthographic_size: float = 0.1


@dataclass
class TrackerSettings:
    """Spring-damper camera tracker and lead/lag options.

    Per-axis values are ``(x, y, z)``.  ``smooth_time`` is roughly the time
    the tracker needs to converge on a still target (natural frequency
    ``2 / smooth_time``); ``damping_ratio`` is only used by the
    under-damped steps and must lie in ``[0, 1)``.
    """
    smooth_time: Tuple[float, float, float] = (0.15, 0.15, 0.15)
    damping_ratio: Tuple[float, float, float] = (0.5, 0.5, 0.5)
    max_follow_distance: Tuple[float, float, float] = (100.0, 100.0, 100.0)
    anti_overshoot_x: bool = False
    anti_overshoot_y: bool = False
    acceleration_threshold_x: float = 100.0
    acceleration_threshold_y: float = 100.0
    link_threshold_x_to_y: bool = False
    acceleration_over_threshold_is_zero: bool = False
    # Lead (positive) or lag (negative) distance reached at
    # ``lead_lag_max_at_velocity``.
    lead_lag_max_distance_x: float = 0.0
    lead_lag_max_distance_y: float = 0.0
    lead_lag_max_at_velocity: float = 5.0
    lead_lag_box_clamp: bool = True


@dataclass
class SceneConfig:
    settings: FieldSettings = field(default_factory=FieldSettings)
    effectors: List[Effector] = field(default_factory=list)
    tracker: TrackerSettings = field(default_factory=TrackerSettings)


# ===========================================================================
# Parsing helpers
# ===========================================================================

def _vec(value: Any) -> List[float]:
    return [float(value[0]), float(value[1])]


def _type_key(effector: Effector) -> str:
    for key, cls in EFFECTOR_TYPES.items():
        if type(effector) is cls:
            return key
    raise ValueError(f"Unsupported effector type: {type(effector).__name__}")


def _parse_settings(d: Optional[Dict]) -> FieldSettings:
    if d is None:
        return FieldSettings()
    return FieldSettings(
        combine_overlaps=bool(d.get("combine_overlaps", True)),
        limit_to_max_strength=bool(d.get("limit_to_max_strength", True)),
        depth_to_orthographic_size_factor=float(d.get("depth_to_orthographic_size_factor", 0.5)),
        min_orthographic_size=float(d.get("min_orthographic_size", 0.1)),
    )


def _vec3(value: Any) -> Tuple[float, float, float]:
    return float(value[0]), float(value[1]), float(value[2])


_TRACKER_AXES = ("smooth_time", "damping_ratio", "max_follow_distance")
_TRACKER_FLAGS = (
    "anti_overshoot_x", "anti_overshoot_y", "link_threshold_x_to_y",
    "acceleration_over_threshold_is_zero", "lead_lag_box_clamp",
)
_TRACKER_SCALARS = (
    "acceleration_threshold_x", "acceleration_threshold_y",
    "lead_lag_max_distance_x", "lead_lag_max_distance_y", "lead_lag_max_at_velocity",
)


def _parse_tracker(d: Optional[Dict]) -> TrackerSettings:
    tracker = TrackerSettings()
    if d is None:
        return tracker
    for key in _TRACKER_AXES:
        if key in d:
            setattr(tracker, key, _vec3(d[key]))
    for key in _TRACKER_FLAGS:
        if key in d:
            setattr(tracker, key, bool(d[key]))
    for key in _TRACKER_SCALARS:
        if key in d:
            setattr(tracker, key, float(d[key]))
    return tracker


def _tracker_to_dict(tracker: TrackerSettings) -> Dict[str, Any]:
    d: Dict[str, Any] = {key: list(_vec3(getattr(tracker, key))) for key in _TRACKER_AXES}
    for key in _TRACKER_FLAGS:
        d[key] = bool(getattr(tracker, key))
    for key in _TRACKER_SCALARS:
        d[key] = float(getattr(tracker, key))
    return d


def _parse_region(d: Optional[Dict]) -> BoundaryRegion:
    if d is None:
        return BoundaryRegion()
    points = d.get("points")
    return BoundaryRegion(
        None if points is None else [_vec(p) for p in points],
        _vec(d.get("root_position", (0.0, 0.0))),
    )


def _parse_node(d: Dict) -> PathNodeData:
    return PathNodeData(
        _vec(d["point"]),
        strength=float(d.get("strength", 0.0)),
        depth_strength=float(d.get("depth_strength", 0.0)),
        desired_distance_outwards=float(d.get("desired_distance_outwards", 1.0)),
        desired_distance_pivot=float(d.get("desired_distance_pivot", 1.0)),
    )


def _node_to_dict(node: PathNodeData) -> Dict[str, Any]:
    return {
        "point": _vec(node.point),
        "strength": node.strength,
        "depth_strength": node.depth_strength,
        "desired_distance_outwards": node.desired_distance_outwards,
        "desired_distance_pivot": node.desired_distance_pivot,
    }


# ===========================================================================
# Effectors
# ===========================================================================

def effector_to_dict(effector: Effector) -> Dict[str, Any]:
    """Plain-data form of *effector* (YAML/JSON safe)."""
    d: Dict[str, Any] = {"type": _type_key(effector), "name": effector.name}
    for flag in _COMMON_FLAGS:
        d[flag] = bool(getattr(effector, flag))
    d["feather_amount"] = effector.feather_amount
    d["root_position"] = _vec(effector.root_position)
    d["boundary_region"] = {
        "points": [_vec(p) for p in effector.boundary_region.points],
        "root_position": _vec(effector.boundary_region.root_position),
    }
    for attr in effector.SERIAL_VECTORS:
        d[attr] = _vec(getattr(effector, attr))
    for attr in effector.SERIAL_SCALARS:
        value = getattr(effector, attr)
        d[attr] = value if isinstance(value, bool) else float(value)
    if isinstance(effector, ChainEffector):
        d["nodes"] = [_node_to_dict(n) for n in effector.nodes]
    return d


def effector_from_dict(d: Dict[str, Any]) -> Effector:
    """Build an effector from :func:`effector_to_dict` output.

    Missing keys keep the constructor defaults.

    Raises
    ------
    ValueError
        If ``d["type"]`` is not a known effector type.
    """
    key = d.get("type")
    cls = EFFECTOR_TYPES.get(key)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"Unknown effector type: {key!r} (expected one of {sorted(EFFECTOR_TYPES)})")

    effector: Effector
    if cls is ChainEffector:
        effector = ChainEffector(
            [_parse_node(n) for n in d.get("nodes", ())],
            use_start_and_end_caps=bool(d.get("use_start_and_end_caps", False)),
            use_as_loop=bool(d.get("use_as_loop", False)),
            use_fast_rough_bounding_box=bool(d.get("use_fast_rough_bounding_box", False)),
        )
    else:
        effector = cls()
        for attr in cls.SERIAL_VECTORS:
            if attr in d:
                setattr(effector, attr, _vec(d[attr]))
        for attr in cls.SERIAL_SCALARS:
            if attr in d:
                value = d[attr]
                setattr(effector, attr, value if isinstance(value, bool) else float(value))

    effector.name = str(d.get("name", effector.name))
    for flag in _COMMON_FLAGS:
        if flag in d:
            setattr(effector, flag, bool(d[flag]))
    effector.feather_amount = float(d.get("feather_amount", effector.feather_amount))
    if "root_position" in d:
        effector.root_position = _vec(d["root_position"])
    effector.boundary_region = _parse_region(d.get("boundary_region"))
    effector.update_effector()
    return effector


# ===========================================================================
# Scenes
# ===========================================================================

def scene_from_dict(data: Optional[Dict[str, Any]]) -> SceneConfig:
    data = data or {}
    return SceneConfig(
        settings=_parse_settings(data.get("settings")),
        effectors=[effector_from_dict(e) for e in data.get("effectors") or ()],
        tracker=_parse_tracker(data.get("tracker")),
    )


def scene_to_dict(scene: SceneConfig) -> Dict[str, Any]:
    s = scene.settings
    return {
        "settings": {
            "combine_overlaps": s.combine_overlaps,
            "limit_to_max_strength": s.limit_to_max_strength,
            "depth_to_orthographic_size_factor": s.depth_to_orthographic_size_factor,
            "min_orthographic_size": s.min_orthographic_size,
        },
        "effectors": [effector_to_dict(e) for e in scene.effectors],
        "tracker": _tracker_to_dict(scene.tracker),
    }


def load_scene(path: Union[str, Path]) -> SceneConfig:
    """Load a scene YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    scene = scene_from_dict(data)
    logger.info("Loaded %d effectors from %s", len(scene.effectors), path)
    return scene


def save_scene(scene: SceneConfig, path: Union[str, Path]) -> None:
    """Write *scene* as YAML."""
    with open(path, "w") as f:
        yaml.safe_dump(scene_to_dict(scene), f, sort_keys=False)
    logger.info("Saved %d effectors to %s", len(scene.effectors), path)


def build_registry(scene: SceneConfig) -> EffectorRegistry:
    """Registry holding the scene's effectors, in file order."""
    return EffectorRegistry(scene.effectors)
