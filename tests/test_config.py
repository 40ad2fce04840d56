"""Tests for dcfield.config (scene files and effector serialisation)."""

import numpy as np
import numpy.testing as npt
import pytest
import yaml

from dcfield import (
    BoxEffector,
    ChainEffector,
    CircleEffector,
    FieldSettings,
    InterpSemiTorusEffector,
    PathNodeData,
    SceneConfig,
    SemiCircleEffector,
    SemiTorusEffector,
    TorusEffector,
    TrackerSettings,
    build_registry,
    effector_from_dict,
    effector_to_dict,
    load_scene,
    save_scene,
    scene_from_dict,
    scene_to_dict,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _assert_same(a, b):
    """Recursive comparison with a float tolerance."""
    if isinstance(a, dict):
        assert set(a) == set(b)
        for key in a:
            _assert_same(a[key], b[key])
    elif isinstance(a, list):
        assert len(a) == len(b)
        for x, y in zip(a, b):
            _assert_same(x, y)
    elif isinstance(a, bool) or isinstance(a, str):
        assert a == b
    else:
        npt.assert_allclose(a, b, atol=1e-12)


def _all_variants():
    circle = CircleEffector((1, 2), (4, 2), strength=2.0, depth_strength=0.5,
                            displacement_can_cross_center=True, name="c", feather_amount=0.25)
    circle.repel = True
    circle.use_region_as_bounds = True
    circle.boundary_region.set_points([(0, 0), (0, 8), (8, 8), (8, 0), (4, -2)])

    semi = SemiCircleEffector((0, 0), (5, 0), (0, 5), 1.0, use_fast_rough_bounding_box=True)
    semi.unilateral_displacement = True

    torus = TorusEffector((3, 3), (8, 3), distance_outward=2, strength=1.5)
    torus.invert_feather_region = True

    semi_torus = SemiTorusEffector((0, 0), (5, 0), (0, 5), 2, 1.0, use_start_and_end_caps=True)
    semi_torus.invert_strength = True

    interp = InterpSemiTorusEffector((0, 0), (5, 0), (0, 5), distance_outward1=1, distance_outward2=2,
                                     strength1=1, strength2=3, strength_center=2)

    box = BoxEffector((0, 0), (10, 0), 1, 3, strength1=1, strength2=2, depth_strength2=4)
    box.distance_from_center_equals_strength = True
    box.enabled = False

    chain = ChainEffector(
        [PathNodeData((0, 0), 1.0, 0.5, 2.0, 3.0),
         PathNodeData((10, 0), 2.0, 0.0, 2.0, 3.0),
         PathNodeData((10, 10), 1.0, 0.0, 1.5, 3.0)],
        use_start_and_end_caps=True, name="path",
    )
    return [circle, semi, torus, semi_torus, interp, box, chain]


# ===========================================================================
# Effector dictionaries
# ===========================================================================

class TestEffectorDict:
    @pytest.mark.parametrize("index", range(7))
    def test_round_trip(self, index):
        effector = _all_variants()[index]
        d = effector_to_dict(effector)
        restored = effector_from_dict(d)
        assert type(restored) is type(effector)
        _assert_same(effector_to_dict(restored), d)

    def test_ids_reassigned(self):
        c = CircleEffector()
        restored = effector_from_dict(effector_to_dict(c))
        assert restored.id != c.id
        assert restored != c

    def test_restored_behaviour(self):
        box = BoxEffector((0, 0), (10, 0), 2, 2, strength1=5, strength2=5)
        restored = effector_from_dict(effector_to_dict(box))
        npt.assert_allclose(restored.displacement_at((5, 1)), box.displacement_at((5, 1)))

    def test_chain_nodes(self):
        chain = _all_variants()[-1]
        restored = effector_from_dict(effector_to_dict(chain))
        assert restored.nodes == chain.nodes
        assert restored.name == "path"
        assert restored.caps_active

    def test_chain_loop(self):
        chain = ChainEffector([(0, 0), (10, 0), (10, 10)], use_as_loop=True)
        restored = effector_from_dict(effector_to_dict(chain))
        assert restored.use_as_loop
        assert len(restored.boxes) == 3

    def test_type_keys(self):
        assert effector_to_dict(CircleEffector())["type"] == "circle"
        assert effector_to_dict(InterpSemiTorusEffector())["type"] == "interp_semitorus"

    def test_missing_keys_use_defaults(self):
        c = effector_from_dict({"type": "circle"})
        assert isinstance(c, CircleEffector)
        assert c.radius == pytest.approx(5.0)
        assert c.name == "Effector"

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown effector type"):
            effector_from_dict({"type": "hexagon"})

    def test_yaml_safe(self):
        for effector in _all_variants():
            text = yaml.safe_dump(effector_to_dict(effector))
            assert yaml.safe_load(text)["name"] == effector.name


# ===========================================================================
# Scenes
# ===========================================================================

class TestScene:
    def test_defaults(self):
        scene = scene_from_dict(None)
        assert scene.effectors == []
        assert scene.settings == FieldSettings()

    def test_settings(self):
        scene = scene_from_dict({"settings": {"combine_overlaps": False, "min_orthographic_size": 0.5}})
        assert not scene.settings.combine_overlaps
        assert scene.settings.limit_to_max_strength
        assert scene.settings.min_orthographic_size == 0.5

    def test_tracker_section(self):
        scene = scene_from_dict({
            "tracker": {
                "smooth_time": [0.2, 0.3, 0.4],
                "anti_overshoot_x": True,
                "lead_lag_max_distance_x": 2,
            }
        })
        t = scene.tracker
        assert t.smooth_time == (0.2, 0.3, 0.4)
        assert t.anti_overshoot_x is True
        assert t.lead_lag_max_distance_x == 2.0
        # untouched keys keep their defaults
        assert t.max_follow_distance == (100.0, 100.0, 100.0)
        assert t.lead_lag_box_clamp is True
        assert scene_from_dict(None).tracker == TrackerSettings()

    def test_tracker_round_trip(self, tmp_path):
        tracker = TrackerSettings(
            smooth_time=(0.1, 0.2, 0.3), damping_ratio=(0.4, 0.4, 0.9),
            link_threshold_x_to_y=True, acceleration_threshold_x=50.0,
            lead_lag_max_distance_y=-1.5, lead_lag_box_clamp=False,
        )
        path = tmp_path / "scene.yaml"
        save_scene(SceneConfig(tracker=tracker), path)
        assert load_scene(path).tracker == tracker
        assert yaml.safe_load(path.read_text())["tracker"]["smooth_time"] == [0.1, 0.2, 0.3]

    def test_save_load_round_trip(self, tmp_path):
        scene = SceneConfig(FieldSettings(combine_overlaps=False), _all_variants())
        path = tmp_path / "scene.yaml"
        save_scene(scene, path)
        loaded = load_scene(path)
        assert not loaded.settings.combine_overlaps
        assert len(loaded.effectors) == 7
        _assert_same(scene_to_dict(loaded), scene_to_dict(scene))

    def test_load_hand_written(self, tmp_path):
        path = tmp_path / "scene.yaml"
        path.write_text(
            "settings:\n"
            "  combine_overlaps: true\n"
            "effectors:\n"
            "  - type: circle\n"
            "    name: Pull\n"
            "    center: [0.0, 0.0]\n"
            "    handle1: [5.0, 0.0]\n"
            "    strength: 2.0\n"
            "  - type: chain\n"
            "    nodes:\n"
            "      - {point: [0, 0], strength: 1.0, desired_distance_outwards: 2}\n"
            "      - {point: [10, 0], strength: 1.0, desired_distance_outwards: 2}\n"
        )
        scene = load_scene(path)
        assert [type(e) for e in scene.effectors] == [CircleEffector, ChainEffector]
        registry = build_registry(scene)
        assert len(registry) == 2
        assert registry.find_by_name("Pull") is scene.effectors[0]
        found, result = registry.query_displacement((3, 0))
        assert found
        npt.assert_allclose(result.xy, [-0.8, 0], atol=1e-12)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_scene(tmp_path / "missing.yaml")
