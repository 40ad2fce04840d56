"""Composite chain effector.

A :class:`ChainEffector` strings :class:`~dcfield.box.BoxEffector` segments
and :class:`~dcfield.torus.InterpSemiTorusEffector` joints along a path of
:class:`PathNodeData` nodes, optionally closed into a loop or rounded off
with semicircle caps at the open ends.  All sub-shapes are anonymous and
fully derived from the nodes by :meth:`ChainEffector.update_effector`.
"""

from __future__ import annotations

import logging
import math
from typing import Any, ClassVar, Iterable, List, Optional, Tuple, Union

from ._math import (
    _F, _PointLike, approx_equal, as_point, dot, dot2, length, line_line_intersection,
    normalized, project_onto, rotate90_ccw, vec2,
)
from .aggregate import combine_displacements
from .box import BoxEffector
from .circle import SemiCircleEffector
from .effector import INITIAL_SCALE_FACTOR, DisplacementResult, Effector, PointAttribute
from .torus import ANTI_FLIP_OFFSET, InterpSemiTorusEffector

logger = logging.getLogger(__name__)

# Boxes shorter than this snap both joint widths to the smaller one.
_SHORT_SEGMENT = 1e-3


# ===========================================================================
# Path nodes
# ===========================================================================

class PathNodeData:
    """One node of a chain path.

    Parameters
    ----------
    point:
        Node position.
    strength, depth_strength:
        Strengths at the node; interpolated along the segments.
    desired_distance_outwards:
        Requested half-width at the node.
    desired_distance_pivot:
        Requested distance from the node to the joint's centre of rotation
        along the bisector.

    ``bisector`` and ``current_distance_pivot`` are derived by the chain
    update pass; the latter is read-only.
    """

    point = PointAttribute()
    bisector = PointAttribute()

    def __init__(
        self,
        point: _PointLike,
        strength: float = 0.0,
        depth_strength: float = 0.0,
        desired_distance_outwards: float = 1.0,
        desired_distance_pivot: float = 1.0,
        bisector: _PointLike = (0.0, 0.0),
    ) -> None:
        self.point = point
        self.bisector = bisector
        self.strength = float(strength)
        self.depth_strength = float(depth_strength)
        self.desired_distance_outwards = float(desired_distance_outwards)
        self.desired_distance_pivot = float(desired_distance_pivot)
        self._current_distance_pivot = self.desired_distance_pivot

    @property
    def current_distance_pivot(self) -> float:
        return self._current_distance_pivot

    def copy(self) -> "PathNodeData":
        """Independent copy (the current pivot resets to the desired one)."""
        return PathNodeData(
            self.point, self.strength, self.depth_strength,
            self.desired_distance_outwards, self.desired_distance_pivot, self.bisector,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathNodeData):
            return NotImplemented
        return (
            approx_equal(self.point, other.point)
            and approx_equal(self.bisector, other.bisector)
            and self.strength == other.strength
            and self.depth_strength == other.depth_strength
            and self.desired_distance_outwards == other.desired_distance_outwards
            and self.desired_distance_pivot == other.desired_distance_pivot
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"PathNodeData(point=({self.point[0]:g}, {self.point[1]:g}), "
            f"strength={self.strength:g}, depth_strength={self.depth_strength:g}, "
            f"outwards={self.desired_distance_outwards:g}, pivot={self.desired_distance_pivot:g})"
        )


_NodeLike = Union[PathNodeData, _PointLike]


# ===========================================================================
# Chain
# ===========================================================================

class ChainEffector(Effector):
    """Deformable strip along a poly-line.

    Parameters
    ----------
    nodes:
        Initial path as :class:`PathNodeData` or plain points.
    use_start_and_end_caps:
        Round off the two open ends with semicircles (ignored for loops).
    use_as_loop:
        Close the path; refused with fewer than three nodes.
    use_fast_rough_bounding_box:
        Build the bounding box from boxes and node offsets only.

    Notes
    -----
    Segment ``i`` joins node ``i`` to node ``i + 1`` (wrapping for loops).
    Joint ``i`` sits at node ``i``; joints at open ends have zero radius and
    contain nothing.  Overlapping sub-shapes are blended with
    :func:`~dcfield.aggregate.combine_displacements`.
    """

    SERIAL_SCALARS: ClassVar[Tuple[str, ...]] = (
        "use_start_and_end_caps", "use_as_loop", "use_fast_rough_bounding_box",
    )

    def __init__(
        self,
        nodes: Optional[Iterable[_NodeLike]] = None,
        *,
        use_start_and_end_caps: bool = False,
        use_as_loop: bool = False,
        use_fast_rough_bounding_box: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.use_start_and_end_caps = use_start_and_end_caps
        self.use_fast_rough_bounding_box = use_fast_rough_bounding_box
        self._use_as_loop = False

        self.nodes: List[PathNodeData] = []
        self.boxes: List[BoxEffector] = []
        self.joints: List[InterpSemiTorusEffector] = []
        self.caps: Tuple[SemiCircleEffector, SemiCircleEffector] = (
            SemiCircleEffector(anonymous=True),
            SemiCircleEffector(anonymous=True),
        )
        self._zero_caps()

        for node in nodes or ():
            self.nodes.append(node.copy() if isinstance(node, PathNodeData) else PathNodeData(node))
            self.joints.append(InterpSemiTorusEffector(anonymous=True))

        if use_as_loop:
            self._set_loop(True)
        self.update_effector()

    def __len__(self) -> int:
        return len(self.nodes)

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    @property
    def use_as_loop(self) -> bool:
        return self._use_as_loop

    @use_as_loop.setter
    def use_as_loop(self, value: bool) -> None:
        if self._set_loop(value):
            self.update_effector()

    def _set_loop(self, value: bool) -> bool:
        if value and len(self.nodes) < 3:
            logger.debug("Refusing loop for chain %r with %d nodes", self.name, len(self.nodes))
            return False
        self._use_as_loop = bool(value)
        return True

    @property
    def caps_active(self) -> bool:
        """Caps are only used on open chains with at least one segment."""
        return self.use_start_and_end_caps and not self._use_as_loop and bool(self.boxes)

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def initialize_two_nodes(self, with_caps: bool) -> None:
        """Reset to a single segment from ``(0, 0)`` to ``(5, 0)``."""
        self.nodes = []
        self.boxes = []
        self.joints = []
        self._use_as_loop = False
        self.use_start_and_end_caps = with_caps
        for p in (vec2(0.0, 0.0), vec2(INITIAL_SCALE_FACTOR, 0.0)):
            self.nodes.append(PathNodeData(
                p,
                desired_distance_outwards=INITIAL_SCALE_FACTOR,
                desired_distance_pivot=INITIAL_SCALE_FACTOR,
            ))
            self.joints.append(InterpSemiTorusEffector(anonymous=True))
        self.update_effector()

    def add_path_point(self, point: _PointLike) -> None:
        """Append a node with default parameters."""
        self.nodes.append(PathNodeData(point))
        self.joints.append(InterpSemiTorusEffector(anonymous=True))
        self.update_effector()

    def insert_path_node_at(self, index: int, point: _PointLike) -> bool:
        """Insert a node before *index*; out-of-range indices are ignored."""
        if index < 0 or index > len(self.nodes):
            logger.debug("Ignoring chain insert at %d (size %d)", index, len(self.nodes))
            return False
        self.nodes.insert(index, PathNodeData(point))
        self.joints.insert(index, InterpSemiTorusEffector(anonymous=True))
        self.update_effector()
        return True

    def remove_path_node_at(self, index: int) -> bool:
        """Remove the node at *index*; out-of-range indices are ignored."""
        if index < 0 or index >= len(self.nodes):
            logger.debug("Ignoring chain removal at %d (size %d)", index, len(self.nodes))
            return False
        del self.nodes[index]
        del self.joints[index]
        self.update_effector()
        return True

    def clear(self) -> None:
        """Remove every node and sub-shape."""
        self.nodes = []
        self.boxes = []
        self.joints = []
        self._use_as_loop = False
        self.update_effector()

    # ------------------------------------------------------------------
    # Node parameters (call update_effector() afterwards)
    # ------------------------------------------------------------------

    def _valid_index(self, index: int) -> bool:
        if 0 <= index < len(self.nodes):
            return True
        logger.debug("Ignoring chain node index %d (size %d)", index, len(self.nodes))
        return False

    def set_strength_at(self, index: int, strength: float) -> bool:
        if not self._valid_index(index):
            return False
        self.nodes[index].strength = float(strength)
        return True

    def set_depth_strength_at(self, index: int, depth_strength: float) -> bool:
        if not self._valid_index(index):
            return False
        self.nodes[index].depth_strength = float(depth_strength)
        return True

    def set_desired_outward_distance_at(self, index: int, distance: float) -> bool:
        if not self._valid_index(index):
            return False
        self.nodes[index].desired_distance_outwards = max(0.0, float(distance))
        return True

    def set_desired_pivot_distance_at(self, index: int, distance: float) -> bool:
        if not self._valid_index(index):
            return False
        self.nodes[index].desired_distance_pivot = max(0.0, float(distance))
        return True

    # ------------------------------------------------------------------
    # Update pass
    # ------------------------------------------------------------------

    def update_effector(self) -> None:
        n = len(self.nodes)
        if self._use_as_loop and n < 3:
            logger.debug("Chain %r dropped below 3 nodes, disabling loop", self.name)
            self._use_as_loop = False

        for i, node in enumerate(self.nodes):
            node.bisector = self._bisector(i)
            node._current_distance_pivot = max(0.0, node.desired_distance_pivot)

        self._resize(n)
        for i, box in enumerate(self.boxes):
            self.copy_properties_to(box)
            self._update_segment(i)

        # joints need every box in place first
        for i, joint in enumerate(self.joints):
            self.copy_properties_to(joint)
            self._place_boxes_at_pivot(i)
            self._set_joint_from_boxes(i)
            joint.update_effector()
            if self.unilateral_displacement:
                joint.repel = self.repel if self._bisector_on_side_a(i) else not self.repel

        if self.caps_active:
            self._update_caps()
        else:
            self._zero_caps()

        if n > 2:
            for i in range(len(self.boxes)):
                self._interpolate_segment(i)

        self._calculate_bounding_box()

    def _resize(self, n: int) -> None:
        while len(self.joints) < n:
            self.joints.append(InterpSemiTorusEffector(anonymous=True))
        del self.joints[n:]

        n_boxes = n if self._use_as_loop else max(n - 1, 0)
        while len(self.boxes) < n_boxes:
            box = BoxEffector(anonymous=True)
            self.copy_properties_to(box)
            self.boxes.append(box)
        del self.boxes[n_boxes:]

    def _adjacent(self, index: int) -> Tuple[int, int]:
        prev_i = index - 1
        next_i = index + 1
        if self._use_as_loop:
            if prev_i < 0:
                prev_i = len(self.nodes) - 1
            next_i %= len(self.nodes)
        return prev_i, next_i

    def _has_neighbours(self, index: int) -> bool:
        prev_i, next_i = self._adjacent(index)
        return prev_i >= 0 and next_i < len(self.nodes)

    def _bisector(self, index: int) -> _F:
        if not self._has_neighbours(index):
            return vec2(0.0, 0.0)
        prev_i, next_i = self._adjacent(index)
        c = self.nodes[index].point
        return normalized(
            normalized(self.nodes[prev_i].point - c) + normalized(self.nodes[next_i].point - c)
        )

    def _bisector_on_side_a(self, index: int) -> bool:
        """Does the path turn towards the boxes' A side at *index*?"""
        if not self._has_neighbours(index):
            return False
        prev_i, next_i = self._adjacent(index)
        d1 = self.nodes[index].point - self.nodes[prev_i].point
        d2 = self.nodes[next_i].point - self.nodes[index].point
        return dot(rotate90_ccw(d1), d2) >= 0

    def _update_segment(self, index: int) -> None:
        node1 = self.nodes[index]
        node2 = self.nodes[(index + 1) % len(self.nodes)]
        box = self.boxes[index]
        box.position1 = node1.point
        box.distance1 = node1.desired_distance_outwards
        box.strength1 = node1.strength
        box.depth_strength1 = node1.depth_strength
        box.position2 = node2.point
        box.distance2 = node2.desired_distance_outwards
        box.strength2 = node2.strength
        box.depth_strength2 = node2.depth_strength
        box.update_effector()

    def _find_max_pivot(self, index: int) -> Optional[Tuple[_F, float]]:
        """Nearest point on the bisector where it meets the perpendicular of
        either adjacent box end, and the distance from that box end."""
        prev_i, next_i = self._adjacent(index)
        p_prev = self.nodes[prev_i].point
        p_cur = self.nodes[index].point
        p_next = self.nodes[next_i].point
        bisector = self.nodes[index].bisector

        left_origin = self.boxes[prev_i].position1
        isect_left = line_line_intersection(
            p_cur, p_cur + bisector, left_origin, left_origin + rotate90_ccw(p_cur - p_prev)
        )
        if isect_left is None:
            return None
        right_origin = self.boxes[index].position2
        isect_right = line_line_intersection(
            p_cur, p_cur + bisector, right_origin, right_origin + rotate90_ccw(p_next - p_cur)
        )
        if isect_right is None:
            return None

        d_left = isect_left - left_origin
        d_right = isect_right - right_origin
        if dot2(d_left) > dot2(d_right):
            return isect_right, length(d_right)
        return isect_left, length(d_left)

    def _place_boxes_at_pivot(self, index: int) -> None:
        if not self._has_neighbours(index):
            return
        node = self.nodes[index]
        bisector = node.bisector
        if dot2(bisector) == 0:
            return

        prev_i, next_i = self._adjacent(index)
        p_cur = node.point
        pivot = node.current_distance_pivot
        max_outward = math.inf

        found = self._find_max_pivot(index)
        if found is not None:
            max_pivot, max_outward = found
            limit = dot(bisector, max_pivot - p_cur)
            if pivot >= limit:
                pivot = max(0.0, limit)
                node._current_distance_pivot = pivot

        offset = bisector * pivot
        projected_left = project_onto(offset, self.nodes[prev_i].point - p_cur)
        projected_right = project_onto(offset, self.nodes[next_i].point - p_cur)
        rejected = length(offset - projected_left)

        distance = min(node.desired_distance_outwards, max_outward, rejected)

        box_prev = self.boxes[prev_i]
        box_prev.position2 = projected_left + p_cur
        box_prev.distance2 = distance
        box_prev.update_effector()

        box_next = self.boxes[index]
        box_next.position1 = projected_right + p_cur
        box_next.distance1 = distance
        box_next.update_effector()

    def _set_joint_from_boxes(self, index: int) -> None:
        node = self.nodes[index]
        joint = self.joints[index]

        if self._has_neighbours(index):
            prev_i, _ = self._adjacent(index)
            box_prev = self.boxes[prev_i]
            box_next = self.boxes[index]
            joint.handle2 = box_prev.position2
            joint.handle1 = box_next.position1
            joint.center = node.bisector * node.current_distance_pivot + node.point
            joint.distance_outward1 = box_prev.distance2
            joint.distance_outward2 = box_prev.distance2
        else:
            # open end: zero radius, contains nothing
            joint.center = node.point
            joint.handle1 = node.point
            joint.handle2 = node.point
            joint.distance_outward1 = 0.0
            joint.distance_outward2 = 0.0

        joint.strength1 = joint.strength2 = joint.strength_center = node.strength
        joint.depth_strength1 = joint.depth_strength2 = joint.depth_strength_center = node.depth_strength

    def _zero_caps(self) -> None:
        for cap in self.caps:
            self.copy_properties_to(cap)
            cap.center = (0.0, 0.0)
            cap.handle1 = (0.0, 0.0)
            cap.handle2 = (0.0, 0.0)
            cap.update_effector()

    def _update_caps(self) -> None:
        start_cap, end_cap = self.caps
        first = self.nodes[0]
        last = self.nodes[-1]

        tangent = normalized(self.nodes[1].point - first.point)
        normal = vec2(tangent[1], -tangent[0])
        self.copy_properties_to(start_cap)
        start_cap.handle1 = first.point - normal * first.desired_distance_outwards
        start_cap.handle2 = first.point + normal * first.desired_distance_outwards
        start_cap.center = tangent * ANTI_FLIP_OFFSET + first.point
        start_cap.strength = self.boxes[0].strength1
        start_cap.depth_strength = self.boxes[0].depth_strength1

        tangent = normalized(self.nodes[-2].point - last.point)
        normal = vec2(tangent[1], -tangent[0])
        self.copy_properties_to(end_cap)
        end_cap.handle1 = last.point + normal * last.desired_distance_outwards
        end_cap.handle2 = last.point - normal * last.desired_distance_outwards
        end_cap.center = tangent * ANTI_FLIP_OFFSET + last.point
        end_cap.strength = self.boxes[-1].strength2
        end_cap.depth_strength = self.boxes[-1].depth_strength2

        start_cap.update_effector()
        end_cap.update_effector()

    def _interpolate_segment(self, index: int) -> None:
        """Spread node values over half-joint, box and half-joint of segment
        *index* so they vary continuously along the chain."""
        _, next_i = self._adjacent(index)
        node_c = self.nodes[index]
        node_n = self.nodes[next_i]
        box = self.boxes[index]
        joint_a = self.joints[index]
        joint_b = self.joints[next_i]
        last = len(self.boxes) - 1
        is_open = not self._use_as_loop

        part1 = joint_a.get_arc_length() / 2
        part2 = length(box.position2 - box.position1)
        part12 = part1 + part2
        part3 = joint_b.get_arc_length() / 2
        total = part12 + part3

        dist_c = node_c.desired_distance_outwards
        dist_n = node_n.desired_distance_outwards
        max_c = joint_a.radius
        max_n = length(joint_b.handle2 - joint_b.center)

        # open ends are bounded by the neighbouring joint only
        if is_open and index == 0:
            dist_n = min(dist_n, max_n)
            y3 = (joint_b.distance_outward1 + joint_b.distance_outward2) / 2
            if part3 > 0:
                dist_c = min(dist_c, y3 - (y3 - max_n) / part3 * (total - part1))
            if self.caps_active:
                self.caps[0].set_radius(dist_c)
                self.caps[0].update_effector()
        elif is_open and index == last:
            dist_c = min(dist_c, max_c)
            y0 = (joint_a.distance_outward1 + joint_a.distance_outward2) / 2
            if part1 > 0:
                dist_n = min(dist_n, y0 + (max_c - y0) / part1 * part12)
            if self.caps_active:
                self.caps[1].set_radius(dist_n)
                self.caps[1].update_effector()
        else:
            dist_c = min(dist_c, max_c)
            dist_n = min(dist_n, max_n)

        t_a = part1 / total if total > 0 else 0.0
        t_b = part12 / total if total > 0 else 1.0
        strength_a = node_c.strength + (node_n.strength - node_c.strength) * t_a
        depth_a = node_c.depth_strength + (node_n.depth_strength - node_c.depth_strength) * t_a
        dist_a = dist_c + (dist_n - dist_c) * t_a
        strength_b = node_c.strength + (node_n.strength - node_c.strength) * t_b
        depth_b = node_c.depth_strength + (node_n.depth_strength - node_c.depth_strength) * t_b
        dist_b = dist_c + (dist_n - dist_c) * t_b

        if not (is_open and index == last):
            dist_b = min(dist_b, max_n)
        if not (is_open and index == 0):
            dist_a = min(dist_a, max_c)

        if part2 < _SHORT_SEGMENT:
            dist_a = dist_b = min(dist_a, dist_b)

        joint_a.strength1 = box.strength1 = strength_a
        joint_a.depth_strength1 = box.depth_strength1 = depth_a
        joint_a.distance_outward1 = box.distance1 = dist_a
        joint_a.strength_center = node_c.strength
        joint_a.depth_strength_center = node_c.depth_strength

        joint_b.strength2 = box.strength2 = strength_b
        joint_b.depth_strength2 = box.depth_strength2 = depth_b
        joint_b.distance_outward2 = box.distance2 = dist_b
        joint_b.strength_center = node_n.strength
        joint_b.depth_strength_center = node_n.depth_strength

        joint_a.update_effector()
        joint_b.update_effector()
        box.update_effector()

    # ------------------------------------------------------------------
    # Bounding box / move
    # ------------------------------------------------------------------

    def _calculate_bounding_box(self) -> None:
        self._reset_bounding_box()
        rough = self.use_fast_rough_bounding_box

        for i, box in enumerate(self.boxes):
            self._expand_bounding_box_by(box)
            if rough and i != 0:
                offset = vec2(box.distance1, box.distance1)
                self._expand_bounding_box(self.nodes[i].point + offset)
                self._expand_bounding_box(self.nodes[i].point - offset)

        if rough and self._use_as_loop and self.boxes:
            d = self.boxes[-1].distance2
            offset = vec2(d, d)
            self._expand_bounding_box(self.nodes[0].point + offset)
            self._expand_bounding_box(self.nodes[0].point - offset)

        if not rough:
            for joint in self.joints:
                self._expand_bounding_box_by(joint)

        if self.caps_active:
            for cap in self.caps:
                self._expand_bounding_box_by(cap)

    def _translate(self, delta: _F) -> None:
        for node in self.nodes:
            node.point = node.point + delta
        for shape in (*self.boxes, *self.joints, *self.caps):
            shape.move_by(delta)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _sub_shapes(self) -> List[Effector]:
        shapes: List[Effector] = [*self.boxes, *self.joints]
        if self.caps_active:
            shapes.extend(self.caps)
        return shapes

    def _locate(self, p: _F, bypass: bool) -> Optional[Any]:
        if not self._is_active(bypass):
            return None
        if not self.is_inside_bounding_box(p, bypass_enabled=True):
            return None
        if not self._passes_region(p, bypass):
            return None
        hits = []
        for shape in self._sub_shapes():
            ctx = shape._locate(p, bypass)
            if ctx is not None:
                hits.append((shape, ctx))
        return hits or None

    def _displacement(self, p: _F, hit: Any) -> DisplacementResult:
        results = [shape._displacement(p, ctx) for shape, ctx in hit]
        return combine_displacements(results, limit_to_max_strength=True)

    def hit_shapes(self, point: _PointLike, bypass_enabled: bool = False) -> List[Effector]:
        """Sub-shapes containing *point*."""
        hits = self._locate(as_point(point), bypass_enabled)
        return [shape for shape, _ in hits or ()]

    def get_strength_at(self, point: _PointLike) -> float:
        """Planar magnitude of the blended displacement."""
        inside, result = self.get_displacement_at(point)
        return length(result.xy) if inside else 0.0

    def get_depth_strength_at(self, point: _PointLike) -> float:
        """Depth of the blended displacement."""
        inside, result = self.get_displacement_at(point)
        return result.depth if inside else 0.0
