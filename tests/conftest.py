"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from raytrace_math import Vec3
from scene import Material, Scene


@pytest.fixture
def white_material():
    """Matte white, no reflection."""
    return Material(Vec3(1.0, 1.0, 1.0), ambient=0.1, diffuse=1.0, specular=0.5,
                    shininess=10.0, reflectivity=0.0)


@pytest.fixture
def single_sphere_scene(white_material):
    """Unit sphere at (0,0,-1), one white light at (2,2,2), camera at (0,0,5)."""
    return (Scene(max_depth=1)
            .with_sphere((0.0, 0.0, -1.0), 1.0, white_material)
            .with_light((2.0, 2.0, 2.0), (1.0, 1.0, 1.0), 1.0))


@pytest.fixture
def empty_scene():
    return Scene().with_light((2.0, 2.0, 2.0))


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent
