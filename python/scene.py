"""Scene model, presets, and loading/validation from scene.json"""
import json
import math
import random
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from raytrace_errors import (
    InvalidGeometry, InvalidLight, InvalidMaterial, InvalidSceneSetting, SceneFormatError,
)
from raytrace_math import Vec3, VecLike, is_finite, vec3

DEFAULT_CAMERA = Vec3(0.0, 0.0, 5.0)
DEFAULT_MAX_DEPTH = 5
DEFAULT_SIZE = (400, 300)


@dataclass(frozen=True)
class Material:
    """Surface response. Shared by reference between spheres."""
    color: Vec3
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0
    reflectivity: float = 0.5

    def __post_init__(self):
        object.__setattr__(self, "color", vec3(self.color))
        if not (self.shininess > 0 and math.isfinite(self.shininess)):
            raise InvalidMaterial(f"shininess must be > 0, got {self.shininess}")


def check_material(material: Material) -> None:
    """Strict range check: color in [0,1]^3 and coefficients in [0,1]."""
    if not all(0.0 <= c <= 1.0 for c in material.color):
        raise InvalidMaterial(f"color {tuple(material.color)} outside [0, 1]")
    for name in ("ambient", "diffuse", "specular", "reflectivity"):
        value = getattr(material, name)
        if not 0.0 <= value <= 1.0:
            raise InvalidMaterial(f"{name} must be in [0, 1], got {value}")


@dataclass(frozen=True)
class Sphere:
    center: Vec3
    radius: float
    material: Material

    def __post_init__(self):
        object.__setattr__(self, "center", vec3(self.center))
        if not is_finite(self.center):
            raise InvalidGeometry(f"sphere center {tuple(self.center)} is not finite")
        if not (self.radius > 0 and math.isfinite(self.radius)):
            raise InvalidGeometry(f"sphere radius must be > 0, got {self.radius}")


@dataclass(frozen=True)
class Light:
    position: Vec3
    color: Vec3 = Vec3(1.0, 1.0, 1.0)
    intensity: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "position", vec3(self.position))
        object.__setattr__(self, "color", vec3(self.color))
        if not is_finite(self.position):
            raise InvalidLight(f"light position {tuple(self.position)} is not finite")
        if not (self.intensity >= 0 and math.isfinite(self.intensity)):
            raise InvalidLight(f"light intensity must be >= 0, got {self.intensity}")


@dataclass(frozen=True)
class RenderSettings:
    """Tunable constants of the renderer.

    fov is the vertical field of view in degrees. hit_epsilon is the minimum
    distance along a ray before a hit counts; shadow_bias is how far shadow
    and reflection rays start off the surface along the normal.
    """
    fov: float = 45.0
    background: Vec3 = Vec3(0.05, 0.05, 0.1)
    hit_epsilon: float = 1e-3
    shadow_bias: float = 1e-3
    attenuation_epsilon: float = 1e-3
    progress_every: int = 20

    def __post_init__(self):
        object.__setattr__(self, "background", vec3(self.background))
        if not 0.0 < self.fov < 180.0:
            raise InvalidSceneSetting(f"fov must be in (0, 180), got {self.fov}")
        for name in ("hit_epsilon", "shadow_bias", "attenuation_epsilon"):
            if getattr(self, name) < 0:
                raise InvalidSceneSetting(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.progress_every < 1:
            raise InvalidSceneSetting(f"progress_every must be >= 1, got {self.progress_every}")


@dataclass(frozen=True)
class Scene:
    """Immutable snapshot of everything a render reads.

    The with_* methods return a new Scene; a renderer holding the old one
    keeps seeing the old one.
    """
    spheres: Tuple[Sphere, ...] = ()
    lights: Tuple[Light, ...] = ()
    camera: Vec3 = DEFAULT_CAMERA
    max_depth: int = DEFAULT_MAX_DEPTH
    settings: RenderSettings = field(default_factory=RenderSettings)

    def __post_init__(self):
        object.__setattr__(self, "spheres", tuple(self.spheres))
        object.__setattr__(self, "lights", tuple(self.lights))
        object.__setattr__(self, "camera", vec3(self.camera))
        if not is_finite(self.camera):
            raise InvalidSceneSetting(f"camera position {tuple(self.camera)} is not finite")
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) or self.max_depth < 0:
            raise InvalidSceneSetting(f"max_depth must be a non-negative int, got {self.max_depth!r}")

    def with_sphere(self, center: VecLike, radius: float, material: Material,
                    strict: bool = False) -> "Scene":
        if strict:
            check_material(material)
        return replace(self, spheres=self.spheres + (Sphere(vec3(center), radius, material),))

    def with_light(self, position: VecLike, color: VecLike = (1.0, 1.0, 1.0),
                   intensity: float = 1.0) -> "Scene":
        return replace(self, lights=self.lights + (Light(vec3(position), vec3(color), intensity),))

    def with_camera(self, position: VecLike) -> "Scene":
        return replace(self, camera=vec3(position))

    def with_max_depth(self, max_depth: int) -> "Scene":
        return replace(self, max_depth=max_depth)

    def with_settings(self, **changes: Any) -> "Scene":
        return replace(self, settings=replace(self.settings, **changes))

    def with_spheres(self, spheres) -> "Scene":
        return replace(self, spheres=tuple(spheres))


# Presets

GROUND_CENTER = Vec3(0.0, -100.5, 0.0)
GROUND_RADIUS = 100.0


def default_scene() -> Scene:
    """Pink, blue and gold spheres over a large mirror-ish ground, two lights."""
    return (Scene()
            .with_sphere((-1.0, 0.0, 0.0), 0.5, Material(Vec3(1.0, 0.7, 0.8), 0.1, 0.9, 0.9, 100, 0.3))
            .with_sphere((1.0, 0.0, 0.0), 0.5, Material(Vec3(0.3, 0.7, 1.0), 0.1, 0.9, 0.9, 100, 0.8))
            .with_sphere((0.0, -1.0, -1.0), 0.3, Material(Vec3(1.0, 0.8, 0.2), 0.2, 0.8, 1.0, 300, 0.9))
            .with_sphere(GROUND_CENTER, GROUND_RADIUS, Material(Vec3(0.8, 0.8, 0.8), 0.1, 0.5, 0.9, 100, 0.7))
            .with_light((2.0, 2.0, 2.0), (1.0, 1.0, 1.0), 1.0)
            .with_light((-2.0, 1.0, 1.0), (0.8, 0.9, 1.0), 0.6))


def random_scene(rng: random.Random, base: Optional[Scene] = None) -> Scene:
    """
    Five randomly placed and colored spheres plus the ground sphere.
    Lights, camera and settings come from base (default_scene() if omitted).
    """
    if base is None:
        base = default_scene()
    spheres = []
    for _ in range(5):
        center = Vec3((rng.random() - 0.5) * 4,
                      (rng.random() - 0.5) * 2,
                      (rng.random() - 0.5) * 2 - 1)
        radius = 0.2 + rng.random() * 0.3
        color = Vec3(rng.random(), rng.random(), rng.random())
        reflectivity = rng.random() * 0.9
        spheres.append(Sphere(center, radius, Material(color, 0.1, 0.9, 0.9, 100, reflectivity)))
    spheres.append(Sphere(GROUND_CENTER, GROUND_RADIUS,
                          Material(Vec3(0.8, 0.8, 0.8), 0.1, 0.5, 0.9, 100, 0.5)))
    return base.with_spheres(spheres)


# JSON scene files

MATERIAL_KEYS = ("ambient", "diffuse", "specular", "shininess", "reflectivity")
SETTING_KEYS = ("fov", "hit_epsilon", "shadow_bias", "attenuation_epsilon", "progress_every")


def load_scene(json_path: str = "scene.json") -> Dict[str, Any]:
    """Load scene configuration from JSON file."""
    with open(json_path, 'r') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SceneFormatError(f"{json_path}: invalid JSON ({e})") from e


def _require_vec(obj: Dict[str, Any], key: str, where: str) -> None:
    if key not in obj:
        raise SceneFormatError(f"{where} must have '{key}'")
    value = obj[key]
    if not isinstance(value, (list, tuple)) or len(value) != 3 \
            or not all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in value):
        raise SceneFormatError(f"{where}.{key} must be a list of 3 numbers, got {value!r}")


def _require_number(obj: Dict[str, Any], key: str, where: str, required: bool = True) -> None:
    if key not in obj:
        if required:
            raise SceneFormatError(f"{where} must have '{key}'")
        return
    value = obj[key]
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise SceneFormatError(f"{where}.{key} must be a number, got {value!r}")


def _validate_material(mat: Any, where: str) -> None:
    if not isinstance(mat, dict):
        raise SceneFormatError(f"{where} must be an object")
    _require_vec(mat, "color", where)
    for key in MATERIAL_KEYS:
        _require_number(mat, key, where, required=False)


def validate_scene(scene: Dict[str, Any]) -> None:
    """Structural validation of a scene document. Raises SceneFormatError."""
    if not isinstance(scene, dict):
        raise SceneFormatError("scene document must be a JSON object")
    for key in ("camera", "spheres", "lights"):
        if key not in scene:
            raise SceneFormatError(f"Scene must have '{key}'")

    cam = scene["camera"]
    if not isinstance(cam, dict):
        raise SceneFormatError("camera must be an object")
    _require_vec(cam, "position", "camera")
    _require_number(cam, "fov", "camera", required=False)

    materials = scene.get("materials", {})
    if not isinstance(materials, dict):
        raise SceneFormatError("materials must be an object mapping names to materials")
    for name, mat in materials.items():
        _validate_material(mat, f"materials.{name}")

    if not isinstance(scene["spheres"], list):
        raise SceneFormatError("spheres must be a list")
    for i, sphere in enumerate(scene["spheres"]):
        where = f"spheres[{i}]"
        if not isinstance(sphere, dict):
            raise SceneFormatError(f"{where} must be an object")
        _require_vec(sphere, "center", where)
        _require_number(sphere, "radius", where)
        if "material" not in sphere:
            raise SceneFormatError(f"{where} must have 'material'")
        mat = sphere["material"]
        if isinstance(mat, str):
            if mat not in materials:
                raise SceneFormatError(f"{where}.material refers to unknown material '{mat}'")
        else:
            _validate_material(mat, f"{where}.material")

    if not isinstance(scene["lights"], list):
        raise SceneFormatError("lights must be a list")
    for i, light in enumerate(scene["lights"]):
        where = f"lights[{i}]"
        if not isinstance(light, dict):
            raise SceneFormatError(f"{where} must be an object")
        _require_vec(light, "position", where)
        if "color" in light:
            _require_vec(light, "color", where)
        _require_number(light, "intensity", where, required=False)

    render = scene.get("render", {})
    if not isinstance(render, dict):
        raise SceneFormatError("render must be an object")
    for key in ("width", "height", "max_depth", "progress_every"):
        if key in render and (not isinstance(render[key], int) or isinstance(render[key], bool)):
            raise SceneFormatError(f"render.{key} must be an integer, got {render[key]!r}")
    if "strict_materials" in render and not isinstance(render["strict_materials"], bool):
        raise SceneFormatError(f"render.strict_materials must be true or false, got {render['strict_materials']!r}")
    for key in ("hit_epsilon", "shadow_bias", "attenuation_epsilon"):
        _require_number(render, key, "render", required=False)
    if "background" in render:
        _require_vec(render, "background", "render")


def _material_from_dict(mat: Dict[str, Any]) -> Material:
    kwargs = {key: float(mat[key]) for key in MATERIAL_KEYS if key in mat}
    return Material(vec3(mat["color"]), **kwargs)


def build_scene(data: Dict[str, Any]) -> Scene:
    """Validate a scene document and turn it into a Scene."""
    validate_scene(data)
    render = data.get("render", {})
    strict = render.get("strict_materials", False)

    named = {name: _material_from_dict(mat) for name, mat in data.get("materials", {}).items()}
    settings_kwargs = {key: render[key] for key in SETTING_KEYS if key in render}
    if "fov" in data["camera"]:
        settings_kwargs["fov"] = float(data["camera"]["fov"])
    if "background" in render:
        settings_kwargs["background"] = vec3(render["background"])

    scene = Scene(camera=vec3(data["camera"]["position"]),
                  max_depth=render.get("max_depth", DEFAULT_MAX_DEPTH),
                  settings=RenderSettings(**settings_kwargs))
    for sphere in data["spheres"]:
        mat = sphere["material"]
        material = named[mat] if isinstance(mat, str) else _material_from_dict(mat)
        scene = scene.with_sphere(sphere["center"], float(sphere["radius"]), material, strict=strict)
    for light in data["lights"]:
        scene = scene.with_light(light["position"], light.get("color", (1.0, 1.0, 1.0)),
                                 float(light.get("intensity", 1.0)))
    return scene


def render_size(data: Dict[str, Any]) -> Tuple[int, int]:
    render = data.get("render", {})
    return render.get("width", DEFAULT_SIZE[0]), render.get("height", DEFAULT_SIZE[1])
