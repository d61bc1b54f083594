"""
CPU Ray Tracer for spheres and point lights.
Whitted-style: Phong local shading, hard shadows and recursive mirror
reflection up to the scene's max depth.
"""
import argparse
import logging
import math
import os
import random
from datetime import datetime
from typing import Callable, NamedTuple, Optional, Sequence, Tuple

from PIL import Image

from raytrace_errors import InvalidSceneSetting, SceneError
from raytrace_math import (
    Ray, Vec3, add, clamp, clamp01, dot, length, mul, mul_vec, neg, norm, reflect, sub,
)
from scene import (
    Material, Scene, Sphere, build_scene, default_scene, load_scene, random_scene, render_size,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class HitRecord(NamedTuple):
    t: float
    point: Vec3
    normal: Vec3
    material: Material


# Ray intersection

def ray_sphere(sphere: Sphere, ray: Ray, epsilon: float = 1e-3) -> Optional[HitRecord]:
    """
    Ray-sphere intersection.
    Returns the nearest hit with t > epsilon, or None.
    """
    oc = sub(ray.origin, sphere.center)
    a = dot(ray.direction, ray.direction)
    b = 2.0 * dot(oc, ray.direction)
    c = dot(oc, oc) - sphere.radius * sphere.radius
    disc = b * b - 4 * a * c

    if disc < 0:
        return None

    sdisc = math.sqrt(disc)
    t0 = (-b - sdisc) / (2 * a)
    t1 = (-b + sdisc) / (2 * a)

    if t0 > epsilon:
        t = t0
    elif t1 > epsilon:
        t = t1
    else:
        return None

    hit = ray.at(t)
    n = norm(sub(hit, sphere.center))
    return HitRecord(t, hit, n, sphere.material)


def nearest_hit_index(spheres: Sequence[Sphere], ray: Ray,
                      epsilon: float = 1e-3) -> Tuple[Optional[int], Optional[HitRecord]]:
    """Closest hit over all spheres and its index; on equal t the earlier sphere wins."""
    nearest = None
    nearest_index = None
    for i, sphere in enumerate(spheres):
        hit = ray_sphere(sphere, ray, epsilon)
        if hit is not None and (nearest is None or hit.t < nearest.t):
            nearest, nearest_index = hit, i
    return nearest_index, nearest


def nearest_hit(spheres: Sequence[Sphere], ray: Ray, epsilon: float = 1e-3) -> Optional[HitRecord]:
    return nearest_hit_index(spheres, ray, epsilon)[1]


def occluded(spheres: Sequence[Sphere], ray: Ray, max_t: float, epsilon: float = 1e-3) -> bool:
    """True if any sphere is hit strictly closer than max_t."""
    for sphere in spheres:
        hit = ray_sphere(sphere, ray, epsilon)
        if hit is not None and hit.t < max_t:
            return True
    return False


# Shading

class Tracer:
    """Evaluates linear-space radiance along rays through a fixed scene."""

    def __init__(self, scene: Scene):
        self.scene = scene
        self.settings = scene.settings

    def trace(self, ray: Ray, depth: int = 0) -> Vec3:
        """Color seen along ray; the background once depth reaches max_depth."""
        if depth >= self.scene.max_depth:
            return self.settings.background

        hit = nearest_hit(self.scene.spheres, ray, self.settings.hit_epsilon)
        if hit is None:
            return self.settings.background

        return self.shade(hit, ray, depth)

    def shade(self, hit: HitRecord, ray: Ray, depth: int) -> Vec3:
        settings = self.settings
        material = hit.material
        view_dir = neg(ray.direction)
        offset_origin = add(hit.point, mul(hit.normal, settings.shadow_bias))

        color = mul(material.color, material.ambient)

        for light in self.scene.lights:
            to_light = sub(light.position, hit.point)
            dist_to_light = length(to_light)
            if dist_to_light == 0.0 or not math.isfinite(dist_to_light):
                # Every term below is zero for a light on the point or out of float range
                continue
            ldir = norm(to_light)

            shadow_ray = Ray(offset_origin, ldir)
            if occluded(self.scene.spheres, shadow_ray, dist_to_light, settings.hit_epsilon):
                continue

            # Lambertian, tinted by the light color
            ndotl = max(0.0, dot(hit.normal, ldir))
            diffuse = mul_vec(mul(material.color, material.diffuse * ndotl), light.color)

            # Phong specular
            reflect_dir = reflect(neg(ldir), hit.normal)
            spec = max(0.0, dot(view_dir, reflect_dir)) ** material.shininess
            specular = mul(light.color, material.specular * spec)

            attenuation = 1.0 / (dist_to_light * dist_to_light + settings.attenuation_epsilon)
            color = add(color, mul(add(diffuse, specular), light.intensity * attenuation))

        if material.reflectivity > 0 and depth < self.scene.max_depth:
            reflect_ray = Ray(offset_origin, reflect(ray.direction, hit.normal))
            reflected = self.trace(reflect_ray, depth + 1)
            r = clamp(material.reflectivity, 0.0, 1.0)
            color = add(mul(color, 1.0 - r), mul(reflected, r))

        return color


# Tone mapping

def aces(x: float) -> float:
    """ACES filmic curve approximation."""
    return (x * (2.51 * x + 0.03)) / (x * (2.43 * x + 0.59) + 0.14)


def to_srgb(x: float, gamma: float = 2.2) -> float:
    """Clamp to [0, 1] and gamma encode."""
    return pow(clamp01(x), 1.0 / gamma)


def encode_pixel(c: Vec3) -> Tuple[int, int, int, int]:
    """Linear color -> 8-bit RGBA with A fixed at 255."""
    r, g, b = (int(to_srgb(aces(max(0.0, ch))) * 255 + 0.5) for ch in c)
    return (r, g, b, 255)


# Camera

def primary_ray(x: int, y: int, width: int, height: int,
                camera: Vec3, fov: float = 45.0) -> Ray:
    """Ray from the camera through the center of pixel (x, y), looking down -z."""
    aspect = width / height
    scale = math.tan(math.radians(fov * 0.5))
    px = (2.0 * (x + 0.5) / width - 1.0) * aspect * scale
    py = (1.0 - 2.0 * (y + 0.5) / height) * scale
    return Ray(camera, (px, py, -1.0))


class Renderer:
    """Renders one Scene snapshot into a row-major RGBA buffer."""

    def __init__(self, scene: Scene, width: int, height: int,
                 progress: Optional[ProgressCallback] = None):
        if width < 1 or height < 1:
            raise InvalidSceneSetting(f"image size must be positive, got {width}x{height}")
        self.scene = scene
        self.width = width
        self.height = height
        self.progress = progress
        self.tracer = Tracer(scene)

    def linear_color(self, x: int, y: int) -> Vec3:
        """Untone-mapped color of pixel (x, y)."""
        ray = primary_ray(x, y, self.width, self.height, self.scene.camera, self.scene.settings.fov)
        return self.tracer.trace(ray, 0)

    def render(self) -> bytearray:
        W, H = self.width, self.height
        every = self.scene.settings.progress_every
        buf = bytearray(W * H * 4)

        logger.info("Rendering %dx%d image with max depth %d...", W, H, self.scene.max_depth)

        for y in range(H):
            if y % every == 0:
                logger.info("Progress: %d/%d (%d%%)", y, H, 100 * y // H)
                if self.progress is not None:
                    self.progress(y, H)
            for x in range(W):
                index = (y * W + x) * 4
                buf[index:index + 4] = bytes(encode_pixel(self.linear_color(x, y)))

        if self.progress is not None:
            self.progress(H, H)
        logger.info("Rendered %d pixels", W * H)
        return buf

    def render_image(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), bytes(self.render()))


def render_to_file(scene: Scene, width: int, height: int, output_path: str = "render.png") -> Image.Image:
    """Render scene and save it (format from the file extension)."""
    img = Renderer(scene, width, height).render_image()
    parent = os.path.dirname(output_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    img.save(output_path)
    logger.debug("Saved %s", output_path)
    return img


def default_scene_path() -> Optional[str]:
    here = os.path.dirname(os.path.abspath(__file__))
    for path in ("scene.json", os.path.join(here, "..", "scene.json")):
        if os.path.exists(path):
            return path
    return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Whitted ray tracer for spheres and point lights")
    parser.add_argument('--scene', type=str, default=None, help='Path to scene JSON file')
    parser.add_argument('--random', action='store_true', help='Replace the spheres with a random set')
    parser.add_argument('--seed', type=int, default=None, help='Seed for --random')
    parser.add_argument('--width', type=int, default=None, help='Image width')
    parser.add_argument('--height', type=int, default=None, help='Image height')
    parser.add_argument('--max-depth', type=int, default=None, help='Maximum reflection depth')
    parser.add_argument('--output', type=str, default=None, help='Output image path')
    parser.add_argument('--preview', action='store_true', help='Show interactive plotly preview instead')
    parser.add_argument('--log-level', type=str, default='INFO', help='Logging level')
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    scene_path = args.scene or default_scene_path()
    try:
        if scene_path is not None:
            scene_data = load_scene(scene_path)
            scene = build_scene(scene_data)
            width, height = render_size(scene_data)
        else:
            scene = default_scene()
            width, height = 400, 300

        if args.random:
            scene = random_scene(random.Random(args.seed), scene)
        if args.max_depth is not None:
            scene = scene.with_max_depth(args.max_depth)
        if args.width is not None:
            width = args.width
        if args.height is not None:
            height = args.height

        if args.preview:
            from preview_plotly import create_scene_preview
            create_scene_preview(scene).show()
            return 0

        output_path = args.output
        if output_path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"render_{timestamp}_d{scene.max_depth}_s{len(scene.spheres)}_{width}x{height}.png"
            output_path = os.path.join("renders", filename)

        render_to_file(scene, width, height, output_path)
    except (SceneError, OSError) as e:
        logger.error("%s", e)
        return 1

    print(f"Saved {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
