"""
Ray Path Inspection - follow a single ray through its chain of mirror
reflections and record every segment with the weight it carries.
"""
import logging
from typing import List, NamedTuple, Optional

from raytrace_cpu import nearest_hit_index, primary_ray
from raytrace_math import Ray, Vec3, add, clamp, mul, reflect
from scene import Scene, default_scene

logger = logging.getLogger(__name__)

SKY_DISTANCE = 100.0


class PathSegment(NamedTuple):
    start: Vec3
    end: Vec3
    weight: float                  # share of the pixel color this segment feeds
    sphere_index: Optional[int]    # None when the ray escaped to the sky


class RayPath:
    """Represents a traced ray path with segments and weights."""
    def __init__(self):
        self.segments: List[PathSegment] = []

    def add_segment(self, start: Vec3, end: Vec3, weight: float, sphere_index: Optional[int]):
        self.segments.append(PathSegment(start, end, weight, sphere_index))

    @property
    def escaped(self) -> bool:
        return bool(self.segments) and self.segments[-1].sphere_index is None

    @property
    def bounces(self) -> int:
        return sum(1 for s in self.segments if s.sphere_index is not None)

    def __len__(self) -> int:
        return len(self.segments)


def trace_ray_path(scene: Scene, ray: Ray) -> RayPath:
    """
    Follow ray through mirror reflections.

    Uses the same epsilon, surface offset and depth cap as the shading
    evaluator, so the recorded path is the one the renderer recurses along.
    A segment's weight is the product of the clamped reflectivities of the
    surfaces hit before it.
    """
    settings = scene.settings
    path = RayPath()
    weight = 1.0
    depth = 0

    while depth < scene.max_depth and weight > 0.0:
        nearest_index, nearest = nearest_hit_index(scene.spheres, ray, settings.hit_epsilon)
        if nearest is None:
            path.add_segment(ray.origin, ray.at(SKY_DISTANCE), weight, None)
            break

        path.add_segment(ray.origin, nearest.point, weight, nearest_index)

        r = clamp(nearest.material.reflectivity, 0.0, 1.0)
        if nearest.material.reflectivity <= 0:
            break
        weight *= r
        ray = Ray(add(nearest.point, mul(nearest.normal, settings.shadow_bias)),
                  reflect(ray.direction, nearest.normal))
        depth += 1

    logger.debug("Traced path: %d segments, %d bounces", len(path), path.bounces)
    return path


def trace_pixel_path(scene: Scene, x: int, y: int, width: int, height: int) -> RayPath:
    """Path of the primary ray through pixel (x, y)."""
    ray = primary_ray(x, y, width, height, scene.camera, scene.settings.fov)
    return trace_ray_path(scene, ray)


if __name__ == "__main__":
    W, H = 400, 300
    path = trace_pixel_path(default_scene(), W // 2, H // 2, W, H)
    for i, seg in enumerate(path.segments):
        target = "sky" if seg.sphere_index is None else f"sphere {seg.sphere_index}"
        start = ", ".join(f"{c:.3f}" for c in seg.start)
        end = ", ".join(f"{c:.3f}" for c in seg.end)
        print(f"  {i}: ({start}) -> ({end})  {target}  weight={seg.weight:.3f}")
    print(f"{path.bounces} bounces, escaped={path.escaped}")
