"""Tests for dcfield.chain (PathNodeData and ChainEffector)."""

import numpy as np
import numpy.testing as npt
import pytest

from dcfield import BoxEffector, ChainEffector, PathNodeData


def _p(*xy) -> np.ndarray:
    return np.array(xy, dtype=float)


def _node(x, y, strength=1.0, outward=2.0, pivot=3.0) -> PathNodeData:
    return PathNodeData((x, y), strength=strength, desired_distance_outwards=outward,
                        desired_distance_pivot=pivot)


def _straight(**kwargs) -> ChainEffector:
    return ChainEffector([_node(0, 0), _node(10, 0)], **kwargs)


def _bent(**kwargs) -> ChainEffector:
    return ChainEffector([_node(0, 0), _node(10, 0), _node(10, 10)], **kwargs)


def _square_loop() -> ChainEffector:
    return ChainEffector(
        [_node(0, 0), _node(10, 0), _node(10, 10), _node(0, 10)],
        use_as_loop=True,
    )


def _graded(outward=(2.0, 2.0, 2.0), **kwargs) -> ChainEffector:
    """Bent chain with strengths 1, 3, 5 and depth strengths 2, 4, 6."""
    nodes = [
        PathNodeData(p, strength=s, depth_strength=2 * (i + 1),
                     desired_distance_outwards=w, desired_distance_pivot=3.0)
        for i, (p, s, w) in enumerate(zip([(0, 0), (10, 0), (10, 10)], [1.0, 3.0, 5.0], outward))
    ]
    return ChainEffector(nodes, **kwargs)


def _snapshot(chain):
    """Every derived value of the boxes, joints and caps, flattened."""
    values = [chain.bounding_box[0], chain.bounding_box[1]]
    for b in chain.boxes:
        values += [b.position1, b.position2, b.handle1a, b.handle1b, b.handle2a, b.handle2b,
                   b.distance1, b.distance2, b.strength1, b.strength2,
                   b.depth_strength1, b.depth_strength2]
    for j in chain.joints:
        values += [j.center, j.handle1, j.handle2, j.distance_outward1, j.distance_outward2,
                   j.strength1, j.strength2, j.strength_center,
                   j.depth_strength1, j.depth_strength2, j.depth_strength_center]
    for cap in chain.caps:
        values += [cap.center, cap.handle1, cap.handle2, cap.strength, cap.depth_strength]
    return [np.atleast_1d(np.array(v, dtype=float)) for v in values]


def _assert_snapshots_equal(after, before):
    assert len(after) == len(before)
    for a, b in zip(after, before):
        npt.assert_allclose(a, b, atol=1e-12)


# joint 1 of the bent chain: radius 3 / sqrt(2), quarter arc
_PIVOT_RADIUS = 3 / np.sqrt(2)
_BOX_LENGTH = 10 - _PIVOT_RADIUS
_HALF_JOINT_ARC = np.pi * _PIVOT_RADIUS / 4
# fraction of segment 0 covered by the box (the rest is half of joint 1)
_T = _BOX_LENGTH / (_BOX_LENGTH + _HALF_JOINT_ARC)


# ===========================================================================
# PathNodeData
# ===========================================================================

class TestPathNodeData:
    def test_defaults(self):
        n = PathNodeData((1, 2))
        assert n.desired_distance_outwards == 1.0
        assert n.desired_distance_pivot == 1.0
        assert n.current_distance_pivot == 1.0
        npt.assert_allclose(n.bisector, [0, 0])

    def test_current_pivot_read_only(self):
        n = PathNodeData((1, 2))
        with pytest.raises(AttributeError):
            n.current_distance_pivot = 3.0

    def test_equality_ignores_current_pivot(self):
        a = _node(1, 2)
        b = _node(1, 2)
        b._current_distance_pivot = 0.5
        assert a == b
        assert a != _node(1, 2, strength=2.0)

    def test_copy_is_independent(self):
        a = _node(1, 2)
        b = a.copy()
        b.point = (5, 5)
        npt.assert_allclose(a.point, [1, 2])
        assert a == a.copy()


# ===========================================================================
# Topology
# ===========================================================================

class TestTopology:
    def test_counts_open(self):
        c = _bent()
        assert len(c) == 3
        assert len(c.boxes) == 2
        assert len(c.joints) == 3

    def test_counts_loop(self):
        c = _square_loop()
        assert c.use_as_loop
        assert len(c.boxes) == 4
        assert len(c.joints) == 4

    def test_loop_refused_below_three_nodes(self):
        c = _straight()
        c.use_as_loop = True
        assert not c.use_as_loop
        assert len(c.boxes) == 1

    def test_loop_dropped_when_nodes_removed(self):
        c = ChainEffector([_node(0, 0), _node(10, 0), _node(10, 10)], use_as_loop=True)
        assert c.use_as_loop
        c.remove_path_node_at(2)
        assert not c.use_as_loop
        assert len(c.boxes) == 1

    def test_single_node_has_no_boxes(self):
        c = ChainEffector([_node(0, 0)])
        assert c.boxes == []
        assert not c.is_inside_effector(_p(0, 0))

    def test_empty(self):
        c = ChainEffector()
        assert len(c) == 0
        assert not c.is_inside_effector(_p(0, 0))

    def test_initialize_two_nodes(self):
        c = ChainEffector()
        c.initialize_two_nodes(with_caps=True)
        assert len(c) == 2
        npt.assert_allclose(c.nodes[1].point, [5, 0])
        assert c.nodes[0].desired_distance_outwards == 5.0
        assert c.caps_active

    def test_insert(self):
        c = _straight()
        assert c.insert_path_node_at(1, (5, 5))
        assert len(c) == 3
        npt.assert_allclose(c.nodes[1].point, [5, 5])
        assert len(c.boxes) == 2

    def test_insert_out_of_range(self):
        c = _straight()
        assert not c.insert_path_node_at(5, (5, 5))
        assert not c.insert_path_node_at(-1, (5, 5))
        assert len(c) == 2

    def test_remove_out_of_range(self):
        c = _straight()
        assert not c.remove_path_node_at(2)
        assert len(c) == 2

    def test_clear(self):
        c = _bent()
        c.clear()
        assert len(c) == 0
        assert c.boxes == [] and c.joints == []

    def test_node_setters(self):
        c = _straight()
        assert c.set_strength_at(0, 4.0)
        assert c.set_depth_strength_at(1, 2.0)
        assert c.set_desired_outward_distance_at(0, -1.0)
        assert c.set_desired_pivot_distance_at(1, -2.0)
        assert c.nodes[0].strength == 4.0
        assert c.nodes[1].depth_strength == 2.0
        assert c.nodes[0].desired_distance_outwards == 0.0
        assert c.nodes[1].desired_distance_pivot == 0.0
        assert not c.set_strength_at(2, 1.0)

    def test_add_remove_restores(self):
        c = _graded(use_start_and_end_caps=True)
        before = _snapshot(c)
        c.add_path_point((12, 0))
        assert len(c) == 4
        assert len(c.boxes) == 3
        assert c.remove_path_node_at(3)
        assert len(c) == 3
        _assert_snapshots_equal(_snapshot(c), before)

    def test_insert_remove_mid_chain_restores(self):
        c = _graded(use_start_and_end_caps=True)
        before = _snapshot(c)
        assert c.insert_path_node_at(1, (5, -3))
        assert len(c) == 4
        npt.assert_allclose(c.nodes[1].point, [5, -3])
        assert c.remove_path_node_at(1)
        assert len(c) == 3
        _assert_snapshots_equal(_snapshot(c), before)


# ===========================================================================
# Derived geometry
# ===========================================================================

class TestDerivedGeometry:
    def test_straight_bbox(self):
        bl, tr = _straight().bounding_box
        npt.assert_allclose(bl, [0, -2])
        npt.assert_allclose(tr, [10, 2])

    def test_bisectors(self):
        c = _bent()
        npt.assert_allclose(c.nodes[0].bisector, [0, 0])
        npt.assert_allclose(c.nodes[1].bisector, [-np.sqrt(0.5), np.sqrt(0.5)], atol=1e-12)
        npt.assert_allclose(c.nodes[2].bisector, [0, 0])

    def test_boxes_pulled_back_to_pivot(self):
        c = _bent()
        # pivot 3 along the bisector projects 3 / sqrt(2) onto each segment
        d = 3 / np.sqrt(2)
        npt.assert_allclose(c.boxes[0].position2, [10 - d, 0], atol=1e-12)
        npt.assert_allclose(c.boxes[1].position1, [10, d], atol=1e-12)
        assert c.nodes[1].current_distance_pivot == pytest.approx(3.0)

    def test_joint_at_pivot(self):
        c = _bent()
        d = 3 / np.sqrt(2)
        npt.assert_allclose(c.joints[1].center, [10 - d, d], atol=1e-12)
        assert c.joints[1].radius == pytest.approx(d)

    def test_pivot_clamped(self):
        c = ChainEffector([_node(0, 0), _node(2, 0, pivot=100.0), _node(2, 2)])
        assert c.nodes[1].current_distance_pivot < 100.0
        assert c.nodes[1].desired_distance_pivot == 100.0

    def test_outer_corner_covered_by_joint(self):
        c = _bent()
        assert c.is_inside_effector(_p(10.5, -0.5))
        hits = c.hit_shapes(_p(10.5, -0.5))
        assert any(h in c.joints for h in hits)

    def test_end_joints_contain_nothing(self):
        c = _straight()
        assert c.joints[0].radius == 0.0
        assert not c.joints[0].is_inside_effector(_p(0, 0))

    def test_caps(self):
        c = _straight(use_start_and_end_caps=True)
        assert c.is_inside_effector(_p(-1, 0))
        assert c.is_inside_effector(_p(11, 0))
        assert not c.is_inside_effector(_p(-1, 3))
        bl, tr = c.bounding_box
        assert bl[0] == pytest.approx(-2.0, abs=1e-2)
        assert tr[0] == pytest.approx(12.0, abs=1e-2)

    def test_no_caps(self):
        c = _straight()
        assert not c.caps_active
        assert not c.is_inside_effector(_p(-1, 0))

    def test_caps_inactive_on_loop(self):
        c = _square_loop()
        c.use_start_and_end_caps = True
        c.update_effector()
        assert not c.caps_active

    def test_rough_bbox_contains_precise(self):
        precise = _bent()
        rough = _bent(use_fast_rough_bounding_box=True)
        pbl, ptr = precise.bounding_box
        rbl, rtr = rough.bounding_box
        assert (rbl <= pbl + 1e-12).all()
        assert (rtr >= ptr - 1e-12).all()


# ===========================================================================
# Displacement
# ===========================================================================

class TestChainDisplacement:
    def test_straight_matches_box(self):
        c = _straight()
        box = BoxEffector((0, 0), (10, 0), 2, 2, strength1=1.0, strength2=1.0)
        for p in (_p(5, 1), _p(2, -1.5), _p(9, 0.2)):
            npt.assert_allclose(c.displacement_at(p), box.displacement_at(p), atol=1e-12)

    def test_outside_is_zero(self):
        inside, result = _bent().get_displacement_at(_p(-5, 8))
        assert not inside
        npt.assert_allclose(result.displacement, [0, 0, 0])

    def test_loop_hollow_center(self):
        c = _square_loop()
        assert not c.is_inside_effector(_p(5, 5))
        assert c.is_inside_effector(_p(5, 0.5))

    def test_flags_propagate(self):
        c = _straight()
        c.repel = True
        c.update_effector()
        assert all(b.repel for b in c.boxes)
        inside, result = c.get_displacement_at(_p(5, 1))
        assert inside
        assert result.xy[1] > 0

    def test_disabled(self):
        c = _straight()
        c.enabled = False
        assert not c.is_inside_effector(_p(5, 0))
        assert c.is_inside_effector(_p(5, 0), bypass_enabled=True)

    def test_strength_at(self):
        c = _straight()
        # lateral factor 0.5 times strength 1
        assert c.get_strength_at(_p(5, 1)) == pytest.approx(0.5)

    def test_move_round_trip(self):
        c = _bent(use_start_and_end_caps=True)
        bl, tr = c.bounding_box
        c.move_by((5, -3))
        assert c.is_inside_effector(_p(10, -3))
        npt.assert_allclose(c.nodes[1].point, [15, -3])
        c.move_by((-5, 3))
        bl2, tr2 = c.bounding_box
        npt.assert_allclose(bl2, bl, atol=1e-12)
        npt.assert_allclose(tr2, tr, atol=1e-12)
        npt.assert_allclose(c.joints[1].center, _bent().joints[1].center, atol=1e-12)

    def test_region_as_bounds(self):
        c = _bent()
        c.use_region_as_bounds = True
        c.boundary_region.set_points([(-1, -3), (6, -3), (6, 3), (-1, 3)])
        assert c.is_inside_effector(_p(3, 0.5))
        assert not c.is_inside_effector(_p(10.5, 5))
        assert c.is_inside_effector(_p(10.5, 5), bypass_enabled=True)
        inside, result = c.get_displacement_at(_p(10.5, 5))
        assert not inside
        npt.assert_allclose(result.displacement, [0, 0, 0])
        assert c.get_strength_at(_p(10.5, 5)) == 0.0


class TestUnilateralJoints:
    def test_left_turn_keeps_repel(self):
        c = _bent()
        c.unilateral_displacement = True
        c.update_effector()
        assert not c.joints[1].repel
        assert all(not b.repel for b in c.boxes)

    def test_right_turn_flips_repel(self):
        c = ChainEffector([_node(0, 0), _node(10, 0), _node(10, -10)])
        c.unilateral_displacement = True
        c.update_effector()
        assert c.joints[1].repel
        assert all(not b.repel for b in c.boxes)

    def test_flip_follows_chain_repel(self):
        c = ChainEffector([_node(0, 0), _node(10, 0), _node(10, -10)])
        c.unilateral_displacement = True
        c.repel = True
        c.update_effector()
        assert not c.joints[1].repel
        assert all(b.repel for b in c.boxes)

    def test_no_flip_without_unilateral(self):
        c = ChainEffector([_node(0, 0), _node(10, 0), _node(10, -10)])
        c.update_effector()
        assert not c.joints[1].repel


# ===========================================================================
# Interpolation along the chain
# ===========================================================================

class TestInterpolation:
    def test_strength_spread_over_box_and_joint(self):
        c = _graded()
        b0, b1 = c.boxes
        assert b0.strength1 == pytest.approx(1.0)
        assert b0.strength2 == pytest.approx(1 + 2 * _T)
        assert b1.strength1 == pytest.approx(5 - 2 * _T)
        assert b1.strength2 == pytest.approx(5.0)

    def test_joint_continuous_with_boxes(self):
        c = _graded()
        b0, b1 = c.boxes
        joint = c.joints[1]
        # handle2 meets box 0, handle1 meets box 1
        assert joint.strength2 == pytest.approx(b0.strength2)
        assert joint.strength1 == pytest.approx(b1.strength1)
        assert joint.strength_center == pytest.approx(3.0)
        assert joint.depth_strength_center == pytest.approx(4.0)

    def test_depth_strength_spread(self):
        c = _graded()
        b0, b1 = c.boxes
        assert b0.depth_strength1 == pytest.approx(2.0)
        assert b0.depth_strength2 == pytest.approx(2 + 2 * _T)
        assert b1.depth_strength1 == pytest.approx(6 - 2 * _T)
        assert b1.depth_strength2 == pytest.approx(6.0)
        assert c.joints[1].depth_strength2 == pytest.approx(b0.depth_strength2)

    def test_width_spread_and_clamped_to_joint(self):
        c = _graded(outward=(1.0, 2.0, 3.0))
        b0, b1 = c.boxes
        joint = c.joints[1]
        assert b0.distance1 == pytest.approx(1.0)
        assert b0.distance2 == pytest.approx(1 + _T)
        assert joint.distance_outward2 == pytest.approx(1 + _T)
        # 3 - _T would exceed the joint radius
        assert b1.distance1 == pytest.approx(_PIVOT_RADIUS)
        assert joint.distance_outward1 == pytest.approx(_PIVOT_RADIUS)
        assert b1.distance2 == pytest.approx(3.0)

    def test_start_cap_radius_clamped(self):
        c = _graded(outward=(5.0, 2.0, 2.0), use_start_and_end_caps=True)
        total = _BOX_LENGTH + _HALF_JOINT_ARC
        # widening from joint 1 (width 2, radius 3 / sqrt(2)) extrapolated to node 0
        limit = 2 + (_PIVOT_RADIUS - 2) / _HALF_JOINT_ARC * total
        assert limit < 5.0
        assert c.caps[0].radius == pytest.approx(limit)
        assert c.boxes[0].distance1 == pytest.approx(limit)

    def test_two_nodes_not_interpolated(self):
        c = ChainEffector([_node(0, 0, strength=1.0), _node(10, 0, strength=3.0)])
        assert c.boxes[0].strength1 == pytest.approx(1.0)
        assert c.boxes[0].strength2 == pytest.approx(3.0)
        assert c.boxes[0].distance2 == pytest.approx(2.0)
