"""
dcfield: 2D Displacement Fields for Camera Effectors
===================================================

A library of geometric "effectors" that displace a tracked point in the
plane (and in depth) so a following camera can be attracted to, repelled
from, or slid along regions of a 2-D scene.

Implemented features
--------------------
- Shapes: Circle, SemiCircle, Torus, SemiTorus, InterpSemiTorus, Box
- Composite chain of boxes and joints along a path: :class:`ChainEffector`
- Feathered influence, attract/repel, unilateral and distance-equals-strength
  displacement rules, boundary-region masks
- Blending of overlapping effectors: :func:`combine_displacements`
- Scene registry and queries: :class:`EffectorRegistry`
- YAML scene files: :func:`load_scene`, :func:`save_scene`
- Grid sampling: :func:`sample_displacement_field`
- Target tracking helpers: :func:`displace_by_field`, lead/lag compensation
- Spring-damper camera smoothing: :class:`CameraTracker`

Quick start
-----------

::

    from dcfield import CircleEffector, BoxEffector, EffectorRegistry

    pull = CircleEffector(center=(0, 0), handle1=(5, 0), strength=2.0)
    lane = BoxEffector((10, 0), (20, 0), 2, 2, strength1=1.0, strength2=1.0)

    registry = EffectorRegistry([pull, lane])
    found, result = registry.query_displacement((1.0, 1.0), combine_overlaps=True)
    if found:
        print(result.displacement, result.influence)
"""

from .aggregate import combine_displacements, query_field, weighted_average_displacement
from .box import BoxEffector
from .chain import ChainEffector, PathNodeData
from .circle import CircleEffector, SemiCircleEffector
from .config import (
    EFFECTOR_TYPES,
    FieldSettings,
    SceneConfig,
    TrackerSettings,
    build_registry,
    effector_from_dict,
    effector_to_dict,
    load_scene,
    save_scene,
    scene_from_dict,
    scene_to_dict,
)
from .effector import INITIAL_SCALE_FACTOR, DisplacementResult, Effector
from .grid import field_coordinates, load_field, sample_displacement_field, save_field
from .region import BoundaryRegion
from .registry import EffectorRegistry
from .smoothing import (
    CameraTracker,
    ClampType,
    SpringTracker1D,
    clamp_max_distances,
    critical_damped,
    critical_damped_anti_frame_lag,
    critical_damped_stable_clamp,
    under_damped,
    under_damped_anti_frame_lag,
)
from .torus import InterpSemiTorusEffector, SemiTorusEffector, TorusEffector
from .tracking import (
    displace_by_field,
    lead_lag_position,
    lead_lag_velocity,
    orthographic_size_for_depth,
    project_on_tangent,
)

__version__ = "0.1.0"

__all__ = [
    # Base types
    "Effector",
    "DisplacementResult",
    "BoundaryRegion",
    "INITIAL_SCALE_FACTOR",
    # Shapes
    "CircleEffector",
    "SemiCircleEffector",
    "TorusEffector",
    "SemiTorusEffector",
    "InterpSemiTorusEffector",
    "BoxEffector",
    "ChainEffector",
    "PathNodeData",
    # Field queries
    "combine_displacements",
    "weighted_average_displacement",
    "query_field",
    "EffectorRegistry",
    # Configuration
    "EFFECTOR_TYPES",
    "FieldSettings",
    "SceneConfig",
    "load_scene",
    "save_scene",
    "scene_from_dict",
    "scene_to_dict",
    "effector_to_dict",
    "effector_from_dict",
    "build_registry",
    # Grid
    "field_coordinates",
    "sample_displacement_field",
    "save_field",
    "load_field",
    # Tracking
    "displace_by_field",
    "project_on_tangent",
    "orthographic_size_for_depth",
    "lead_lag_velocity",
    "lead_lag_position",
    # Smoothing
    "TrackerSettings",
    "ClampType",
    "clamp_max_distances",
    "critical_damped",
    "critical_damped_anti_frame_lag",
    "critical_damped_stable_clamp",
    "under_damped",
    "under_damped_anti_frame_lag",
    "SpringTracker1D",
    "CameraTracker",
]
