"""
Vector math utilities and rays.
Vectors are immutable 3-tuples; every function returns a new Vec3.
"""
import math
from typing import NamedTuple, Sequence

from raytrace_errors import DegenerateRay


class Vec3(NamedTuple):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


ZERO = Vec3(0.0, 0.0, 0.0)

# Anything indexable with three floats (Vec3, tuple, list)
VecLike = Sequence[float]


def vec3(v: VecLike) -> Vec3:
    if len(v) != 3:
        raise ValueError(f"expected 3 components, got {len(v)}")
    return Vec3(float(v[0]), float(v[1]), float(v[2]))


def add(a: VecLike, b: VecLike) -> Vec3:
    return Vec3(a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: VecLike, b: VecLike) -> Vec3:
    return Vec3(a[0] - b[0], a[1] - b[1], a[2] - b[2])


def mul(a: VecLike, s: float) -> Vec3:
    return Vec3(a[0] * s, a[1] * s, a[2] * s)


def mul_vec(a: VecLike, b: VecLike) -> Vec3:
    """Component-wise product (used to tint colors)."""
    return Vec3(a[0] * b[0], a[1] * b[1], a[2] * b[2])


def neg(a: VecLike) -> Vec3:
    return Vec3(-a[0], -a[1], -a[2])


def dot(a: VecLike, b: VecLike) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def length(v: VecLike) -> float:
    return math.hypot(v[0], v[1], v[2])


def norm(v: VecLike) -> Vec3:
    """Unit vector along v; the zero vector maps to itself."""
    l = length(v)
    if l == 0.0:
        return ZERO
    return Vec3(v[0] / l, v[1] / l, v[2] / l)


def reflect(rd: VecLike, n: VecLike) -> Vec3:
    """Reflect ray direction rd off surface with normal n."""
    return sub(rd, mul(n, 2.0 * dot(rd, n)))


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def is_finite(v: VecLike) -> bool:
    return all(math.isfinite(c) for c in v)


class Ray:
    """Origin plus a direction that is normalized on construction."""

    __slots__ = ("origin", "direction")

    def __init__(self, origin: VecLike, direction: VecLike):
        l = length(direction)
        if l == 0.0 or not math.isfinite(l):
            raise DegenerateRay(f"ray direction {tuple(direction)} cannot be normalized")
        self.origin = vec3(origin)
        self.direction = Vec3(direction[0] / l, direction[1] / l, direction[2] / l)

    def at(self, t: float) -> Vec3:
        return add(self.origin, mul(self.direction, t))

    def __repr__(self) -> str:
        return f"Ray(origin={tuple(self.origin)}, direction={tuple(self.direction)})"
