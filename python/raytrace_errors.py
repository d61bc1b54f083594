"""Exceptions raised while building scenes and renderers."""


class RayTracerError(Exception):
    """Base class for all ray tracer errors."""


class SceneError(RayTracerError):
    """A scene, its objects or its settings failed validation."""


class InvalidGeometry(SceneError):
    """Sphere radius is not a positive finite number."""


class DegenerateRay(SceneError):
    """Ray direction has zero length (or is not finite)."""


class InvalidMaterial(SceneError):
    """Material coefficients outside their documented ranges."""


class InvalidLight(SceneError):
    """Light intensity is negative or not finite."""


class InvalidSceneSetting(SceneError):
    """Camera, depth, image size or epsilon setting is out of range."""


class SceneFormatError(SceneError):
    """JSON scene document is missing keys or has malformed values."""
