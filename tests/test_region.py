"""Tests for dcfield.region.BoundaryRegion."""

import numpy as np
import numpy.testing as npt

from dcfield import BoundaryRegion


def _square(h: float = 5.0) -> BoundaryRegion:
    return BoundaryRegion([(-h, -h), (-h, h), (h, h), (h, -h)])


class TestContainment:
    def test_default_is_square_of_half_size_5(self):
        r = BoundaryRegion()
        assert len(r) == 4
        npt.assert_allclose(np.array(r.points), [[-5, -5], [-5, 5], [5, 5], [5, -5]])

    def test_center_inside(self):
        assert _square().is_point_inside((0, 0))

    def test_far_point_outside(self):
        assert not _square().is_point_inside((10, 0))

    def test_right_edge_outside(self):
        assert not _square().is_point_inside((5, 0))

    def test_left_edge_inside(self):
        assert _square().is_point_inside((-5, 0))

    def test_ray_through_vertex_counts_once(self):
        # the +x ray from (0, 0) passes through the apex (5, 0)
        diamond = BoundaryRegion([(-5, 0), (0, 5), (5, 0), (0, -5)])
        assert diamond.is_point_inside((0, 0))
        assert not diamond.is_point_inside((6, 0))

    def test_ray_grazing_vertex_does_not_count(self):
        # the +x ray from (0, 5) touches the top vertex of a triangle only
        tri = BoundaryRegion([(2, 0), (4, 5), (6, 0)])
        assert not tri.is_point_inside((0, 5))

    def test_concave(self):
        u_shape = BoundaryRegion([(0, 0), (0, 10), (3, 10), (3, 3), (7, 3), (7, 10), (10, 10), (10, 0)])
        assert u_shape.is_point_inside((1, 5))
        assert not u_shape.is_point_inside((5, 5))
        assert u_shape.is_point_inside((5, 1))

    def test_fewer_than_three_points_contains_nothing(self):
        r = BoundaryRegion([(0, 0), (1, 0)])
        assert not r.is_point_inside((0.5, 0.0))


class TestEditing:
    def test_add_point(self):
        r = _square()
        r.add_point((0, -7))
        assert len(r) == 5

    def test_insert_in_range(self):
        r = _square()
        assert r.insert_point_at(4, (0, -7))
        npt.assert_allclose(r.points[4], [0, -7])

    def test_insert_out_of_range_is_noop(self):
        r = _square()
        assert not r.insert_point_at(5, (0, 0))
        assert not r.insert_point_at(-1, (0, 0))
        assert len(r) == 4

    def test_remove(self):
        r = _square()
        assert r.remove_point_at(0)
        assert len(r) == 3

    def test_remove_refused_below_three(self):
        r = BoundaryRegion([(0, 0), (1, 0), (0, 1)])
        assert not r.remove_point_at(0)
        assert len(r) == 3

    def test_remove_out_of_range_is_noop(self):
        r = _square()
        assert not r.remove_point_at(4)
        assert len(r) == 4

    def test_set_points_refused_below_three(self):
        r = _square()
        assert not r.set_points([(0, 0), (1, 1)])
        assert len(r) == 4

    def test_move_by(self):
        r = _square()
        r.move_by((10, 0))
        assert r.is_point_inside((10, 0))
        assert not r.is_point_inside((0, 0))
        npt.assert_allclose(r.root_position, [10, 0])

    def test_move_to_round_trip(self):
        r = _square()
        r.move_to((3, -2))
        r.move_to((0, 0))
        npt.assert_allclose(np.array(r.points), np.array(_square().points), atol=1e-12)

    def test_copy_is_independent(self):
        r = _square()
        c = r.copy()
        c.move_by((1, 1))
        npt.assert_allclose(r.points[0], [-5, -5])
