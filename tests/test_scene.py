"""Tests for the scene model, presets and JSON scene files."""

import json
import math
import random

import pytest

from raytrace_errors import (
    InvalidGeometry, InvalidLight, InvalidMaterial, InvalidSceneSetting, SceneFormatError,
)
from raytrace_math import Vec3
from scene import (
    GROUND_CENTER, GROUND_RADIUS, Light, Material, RenderSettings, Scene, Sphere,
    build_scene, check_material, default_scene, load_scene, random_scene, render_size,
    validate_scene,
)


def minimal_doc(**overrides):
    doc = {
        "camera": {"position": [0, 0, 5]},
        "spheres": [{"center": [0, 0, -1], "radius": 1,
                     "material": {"color": [1, 1, 1]}}],
        "lights": [{"position": [2, 2, 2]}],
    }
    doc.update(overrides)
    return doc


class TestModel:

    def test_defaults(self):
        scene = Scene()
        assert scene.camera == Vec3(0.0, 0.0, 5.0)
        assert scene.max_depth == 5
        assert scene.settings.fov == 45.0
        assert scene.settings.background == Vec3(0.05, 0.05, 0.1)
        assert scene.settings.hit_epsilon == 1e-3
        assert scene.spheres == () and scene.lights == ()

    def test_builders_return_new_scene(self):
        m = Material(Vec3(1.0, 0.0, 0.0))
        base = Scene()
        grown = base.with_sphere((0, 0, 0), 1.0, m).with_light((1, 1, 1), (1, 1, 1), 0.5)
        moved = grown.with_camera((1, 2, 3)).with_max_depth(2)
        assert base.spheres == () and base.lights == ()
        assert len(grown.spheres) == 1 and len(grown.lights) == 1
        assert grown.camera == Vec3(0.0, 0.0, 5.0)
        assert moved.camera == Vec3(1.0, 2.0, 3.0)
        assert moved.max_depth == 2
        assert grown.max_depth == 5

    def test_scene_is_frozen(self):
        scene = Scene()
        with pytest.raises(AttributeError):
            scene.max_depth = 3

    def test_material_shared_by_reference(self):
        m = Material(Vec3(0.5, 0.5, 0.5))
        scene = Scene().with_sphere((0, 0, 0), 1.0, m).with_sphere((3, 0, 0), 2.0, m)
        assert scene.spheres[0].material is scene.spheres[1].material

    @pytest.mark.parametrize("radius", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_radius(self, radius):
        with pytest.raises(InvalidGeometry):
            Sphere((0, 0, 0), radius, Material(Vec3(1.0, 1.0, 1.0)))

    def test_invalid_shininess(self):
        with pytest.raises(InvalidMaterial):
            Material(Vec3(1.0, 1.0, 1.0), shininess=0.0)

    def test_strict_material_check(self):
        loose = Material(Vec3(1.0, 1.0, 1.0), reflectivity=1.5)
        # out-of-range values are allowed unless strict
        Scene().with_sphere((0, 0, 0), 1.0, loose)
        with pytest.raises(InvalidMaterial):
            Scene().with_sphere((0, 0, 0), 1.0, loose, strict=True)
        with pytest.raises(InvalidMaterial):
            check_material(Material(Vec3(1.2, 0.0, 0.0)))
        check_material(Material(Vec3(1.0, 0.0, 0.0), 0.0, 1.0, 1.0, 5.0, 1.0))

    def test_negative_light_intensity(self):
        with pytest.raises(InvalidLight):
            Light((0, 0, 0), (1, 1, 1), -0.1)

    @pytest.mark.parametrize("position", [(math.inf, 0, 0), (0, -math.inf, 0), (0, 0, math.nan)])
    def test_non_finite_light_position(self, position):
        with pytest.raises(InvalidLight):
            Scene().with_light(position)

    def test_non_finite_camera(self):
        with pytest.raises(InvalidSceneSetting):
            Scene().with_camera((0, math.inf, 5))

    @pytest.mark.parametrize("depth", [-1, 1.5, True])
    def test_invalid_max_depth(self, depth):
        with pytest.raises(InvalidSceneSetting):
            Scene(max_depth=depth)

    @pytest.mark.parametrize("changes", [
        {"fov": 0.0}, {"fov": 180.0}, {"hit_epsilon": -1e-3}, {"progress_every": 0},
    ])
    def test_invalid_settings(self, changes):
        with pytest.raises(InvalidSceneSetting):
            RenderSettings(**changes)

    def test_zero_max_depth_is_allowed(self):
        assert Scene(max_depth=0).max_depth == 0


class TestPresets:

    def test_default_scene(self):
        scene = default_scene()
        assert len(scene.spheres) == 4
        assert len(scene.lights) == 2
        assert scene.spheres[-1].center == GROUND_CENTER
        assert scene.lights[0].position == Vec3(2.0, 2.0, 2.0)
        assert default_scene() == scene

    def test_random_scene_is_reproducible(self):
        a = random_scene(random.Random(42))
        b = random_scene(random.Random(42))
        c = random_scene(random.Random(43))
        assert a == b
        assert a != c

    def test_random_scene_shape(self):
        scene = random_scene(random.Random(7))
        assert len(scene.spheres) == 6
        ground = scene.spheres[-1]
        assert ground.center == GROUND_CENTER and ground.radius == GROUND_RADIUS
        for sphere in scene.spheres[:5]:
            assert 0.2 <= sphere.radius < 0.5
            assert -2.0 <= sphere.center[0] < 2.0
            assert -1.0 <= sphere.center[1] < 1.0
            assert -2.0 <= sphere.center[2] < 0.0
            assert 0.0 <= sphere.material.reflectivity < 0.9
        assert scene.lights == default_scene().lights

    def test_random_scene_keeps_base(self):
        base = Scene(max_depth=2).with_camera((0, 1, 4))
        scene = random_scene(random.Random(1), base)
        assert scene.camera == Vec3(0.0, 1.0, 4.0)
        assert scene.max_depth == 2
        assert base.spheres == ()


class TestSceneFiles:

    def test_build_minimal(self):
        scene = build_scene(minimal_doc())
        assert len(scene.spheres) == 1
        assert scene.lights[0].color == Vec3(1.0, 1.0, 1.0)
        assert scene.lights[0].intensity == 1.0
        assert scene.spheres[0].material.ambient == 0.1
        assert render_size(minimal_doc()) == (400, 300)

    def test_named_materials_are_shared(self):
        doc = minimal_doc(
            materials={"chrome": {"color": [0.9, 0.9, 0.9], "reflectivity": 1.0}},
            spheres=[{"center": [0, 0, 0], "radius": 1, "material": "chrome"},
                     {"center": [3, 0, 0], "radius": 1, "material": "chrome"}],
        )
        scene = build_scene(doc)
        assert scene.spheres[0].material is scene.spheres[1].material
        assert scene.spheres[0].material.reflectivity == 1.0

    def test_render_block(self):
        doc = minimal_doc(
            camera={"position": [0, 0, 8], "fov": 60},
            render={"width": 32, "height": 16, "max_depth": 3,
                    "background": [0, 0, 0], "hit_epsilon": 1e-4, "progress_every": 4},
        )
        scene = build_scene(doc)
        assert scene.camera == Vec3(0.0, 0.0, 8.0)
        assert scene.max_depth == 3
        assert scene.settings.fov == 60.0
        assert scene.settings.background == Vec3(0.0, 0.0, 0.0)
        assert scene.settings.hit_epsilon == 1e-4
        assert scene.settings.progress_every == 4
        assert render_size(doc) == (32, 16)

    def test_strict_materials_flag(self):
        doc = minimal_doc(
            spheres=[{"center": [0, 0, 0], "radius": 1,
                      "material": {"color": [1, 1, 1], "diffuse": 2.0}}],
            render={"strict_materials": True},
        )
        with pytest.raises(InvalidMaterial):
            build_scene(doc)

    @pytest.mark.parametrize("doc, message", [
        ({"spheres": [], "lights": []}, "camera"),
        (minimal_doc(camera={"position": [0, 0]}), "camera.position"),
        (minimal_doc(spheres=[{"center": [0, 0, 0], "material": {"color": [1, 1, 1]}}]), "radius"),
        (minimal_doc(spheres=[{"center": [0, 0, 0], "radius": 1, "material": "nope"}]), "nope"),
        (minimal_doc(lights=[{"position": [0, 0, 0], "intensity": "bright"}]), "intensity"),
        (minimal_doc(render={"width": 10.5}), "render.width"),
        (minimal_doc(spheres={}), "spheres"),
    ])
    def test_validation_errors(self, doc, message):
        with pytest.raises(SceneFormatError, match=message):
            validate_scene(doc)

    def test_geometry_errors_surface_from_build(self):
        doc = minimal_doc(spheres=[{"center": [0, 0, 0], "radius": -2,
                                    "material": {"color": [1, 1, 1]}}])
        with pytest.raises(InvalidGeometry):
            build_scene(doc)

    def test_load_scene_from_file(self, tmp_path):
        path = tmp_path / "scene.json"
        path.write_text(json.dumps(minimal_doc()))
        assert build_scene(load_scene(str(path))) == build_scene(minimal_doc())

    def test_load_scene_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SceneFormatError):
            load_scene(str(path))

    def test_bundled_scene_matches_default_preset(self, project_root):
        scene = build_scene(load_scene(str(project_root / "scene.json")))
        assert scene == default_scene()


class TestSceneFileEdgeCases:

    def test_infinite_light_position_in_json(self, tmp_path):
        path = tmp_path / "scene.json"
        path.write_text(
            '{"camera": {"position": [0, 0, 5]},'
            ' "spheres": [],'
            ' "lights": [{"position": [Infinity, 0, 0]}]}'
        )
        with pytest.raises(InvalidLight):
            build_scene(load_scene(str(path)))

    @pytest.mark.parametrize("value", ["false", 0, 1, None])
    def test_strict_materials_must_be_boolean(self, value):
        with pytest.raises(SceneFormatError, match="strict_materials"):
            validate_scene(minimal_doc(render={"strict_materials": value}))

    def test_strict_materials_false_allows_loose_values(self):
        doc = minimal_doc(
            spheres=[{"center": [0, 0, 0], "radius": 1,
                      "material": {"color": [1, 1, 1], "diffuse": 2.0}}],
            render={"strict_materials": False},
        )
        assert build_scene(doc).spheres[0].material.diffuse == 2.0
