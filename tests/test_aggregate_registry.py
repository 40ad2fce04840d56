"""Tests for blending overlapping effectors and the effector registry."""

import numpy as np
import numpy.testing as npt
import pytest

from dcfield import (
    BoxEffector,
    CircleEffector,
    DisplacementResult,
    EffectorRegistry,
    combine_displacements,
    query_field,
    weighted_average_displacement,
)


def _p(*xy) -> np.ndarray:
    return np.array(xy, dtype=float)


def _result(influence, xy, depth=0.0, locked=False) -> DisplacementResult:
    return DisplacementResult.from_xy(influence, locked, _p(*xy), depth)


# ===========================================================================
# combine_displacements
# ===========================================================================

class TestCombineDisplacements:
    def test_empty_is_zero(self):
        r = combine_displacements([])
        assert r.influence == 0.0
        assert not r.locked_xy
        npt.assert_allclose(r.displacement, [0, 0, 0])

    def test_single_is_unchanged(self):
        r = combine_displacements([_result(0.3, (1, 2), 3.0)])
        assert r.influence == pytest.approx(0.3)
        npt.assert_allclose(r.displacement, [1, 2, 3])

    def test_weighted_average(self):
        r = combine_displacements([_result(1.0, (2, 0)), _result(0.5, (0, 4))])
        npt.assert_allclose(r.displacement, [4 / 3, 4 / 3, 0], atol=1e-12)
        assert r.influence == pytest.approx(1.0)

    def test_zero_influence_sum(self):
        r = combine_displacements([_result(0.0, (2, 0)), _result(0.0, (0, 4))])
        npt.assert_allclose(r.displacement, [0, 0, 0])

    def test_locked_only_when_all_locked(self):
        both = combine_displacements([_result(1, (1, 0), locked=True), _result(1, (0, 1), locked=True)])
        one = combine_displacements([_result(1, (1, 0), locked=True), _result(1, (0, 1))])
        assert both.locked_xy
        assert not one.locked_xy

    def test_depth_is_blended(self):
        r = combine_displacements([_result(1.0, (0, 0), 2.0), _result(1.0, (0, 0), 4.0)])
        assert r.depth == pytest.approx(3.0)

    def test_limit_bounds_magnitude(self):
        results = [_result(0.7, (3, 0), 1.0), _result(0.2, (-1, 2), 0.0), _result(0.9, (0, -2))]
        r = combine_displacements(results, limit_to_max_strength=True)
        max_len = max(np.linalg.norm(x.displacement) for x in results)
        assert np.linalg.norm(r.displacement) <= max_len + 1e-12


class TestTwoCircles:
    def _pair(self):
        a = CircleEffector((0, 0), (5, 0), strength=2.0)
        b = CircleEffector((2, 0), (7, 0), strength=2.0)
        return a, b

    def test_combined_not_longer_than_each(self):
        a, b = self._pair()
        p = _p(1, 3)
        r = weighted_average_displacement(p, [a, b], limit_to_max_strength=True)
        for e in (a, b):
            single = e.get_displacement_at(p)[1]
            assert np.linalg.norm(r.displacement) <= np.linalg.norm(single.displacement) + 1e-12

    def test_symmetric_pull_cancels_sideways(self):
        a, b = self._pair()
        r = weighted_average_displacement(_p(1, 3), [a, b])
        assert r.xy[0] == pytest.approx(0.0, abs=1e-12)
        assert r.xy[1] < 0

    def test_query_field_first_hit(self):
        a, b = self._pair()
        found, r, hits = query_field(_p(1, 3), [a, b], combine_overlaps=False)
        assert found
        assert hits == [a]
        npt.assert_allclose(r.displacement, a.get_displacement_at(_p(1, 3))[1].displacement)

    def test_query_field_combined(self):
        a, b = self._pair()
        found, _, hits = query_field(_p(1, 3), [a, b], combine_overlaps=True)
        assert found
        assert hits == [a, b]

    def test_query_field_miss(self):
        a, b = self._pair()
        found, r, hits = query_field(_p(50, 50), [a, b], combine_overlaps=True)
        assert not found
        assert hits == []
        npt.assert_allclose(r.displacement, [0, 0, 0])


# ===========================================================================
# EffectorRegistry
# ===========================================================================

class TestRegistry:
    def test_register_and_len(self):
        reg = EffectorRegistry()
        c = CircleEffector()
        assert reg.register(c)
        assert len(reg) == 1
        assert c in reg

    def test_register_duplicate_refused(self):
        c = CircleEffector()
        reg = EffectorRegistry([c])
        assert not reg.register(c)
        assert len(reg) == 1

    def test_register_runs_update(self):
        c = CircleEffector()
        c.handle1 = (10, 0)
        EffectorRegistry([c])
        _, tr = c.bounding_box
        npt.assert_allclose(tr, [10, 10])

    def test_unregister_by_object_and_id(self):
        a, b = CircleEffector(), BoxEffector()
        reg = EffectorRegistry([a, b])
        assert reg.unregister(a)
        assert reg.unregister(b.id)
        assert len(reg) == 0
        assert not reg.unregister(a)

    def test_find_by_name(self):
        a = CircleEffector(name="pull")
        b = CircleEffector(name="push")
        reg = EffectorRegistry([a, b])
        assert reg.find_by_name("push") is b
        assert reg.find_by_name("missing") is None

    def test_iteration_order(self):
        a, b = CircleEffector(), BoxEffector()
        reg = EffectorRegistry([a, b])
        assert list(reg) == [a, b]

    def test_clear(self):
        reg = EffectorRegistry([CircleEffector()])
        reg.clear()
        assert len(reg) == 0

    def test_query_displacement(self):
        c = CircleEffector((0, 0), (5, 0), strength=2.0)
        reg = EffectorRegistry([c])
        found, r = reg.query_displacement((3, 0))
        assert found
        npt.assert_allclose(r.displacement, [-0.8, 0, 0], atol=1e-12)
        found, r = reg.query_displacement((30, 0))
        assert not found

    def test_query_skips_disabled(self):
        a = CircleEffector((0, 0), (5, 0), strength=2.0)
        b = CircleEffector((0, 0), (5, 0), strength=4.0)
        a.enabled = False
        reg = EffectorRegistry([a, b])
        hits, r = reg.query_displacement_and_effectors((3, 0))
        assert hits == [b]
        npt.assert_allclose(r.xy, [-1.6, 0], atol=1e-12)

    def test_query_and_effectors_combined(self):
        a = CircleEffector((0, 0), (5, 0), strength=2.0)
        b = BoxEffector((0, -1), (10, -1), 2, 2, strength1=1.0, strength2=1.0)
        reg = EffectorRegistry([a, b])
        hits, _ = reg.query_displacement_and_effectors((3, 0), combine_overlaps=True)
        assert hits == [a, b]
        hits, _ = reg.query_displacement_and_effectors((8, 0), combine_overlaps=True)
        assert hits == [b]
        hits, _ = reg.query_displacement_and_effectors((30, 0), combine_overlaps=True)
        assert hits == []
