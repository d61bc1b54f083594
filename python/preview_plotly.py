"""
Interactive 3D preview of the scene using Plotly.
Helps verify sphere placement, lights and camera before rendering.
"""
import math

import plotly.graph_objects as go

from raytrace_math import add, mul
from scene import Scene, Sphere, build_scene, default_scene, load_scene

SPHERE_STEPS = 16
VIEW_LINE_LENGTH = 3.0
MAX_PREVIEW_RADIUS = 10.0


def _rgb(color) -> str:
    r, g, b = (int(max(0.0, min(1.0, c)) * 255) for c in color)
    return f'rgb({r}, {g}, {b})'


def sphere_surface(sphere: Sphere, name: str) -> go.Surface:
    """Latitude/longitude grid for one sphere."""
    cx, cy, cz = sphere.center
    radius = sphere.radius
    xs, ys, zs = [], [], []
    for i in range(SPHERE_STEPS + 1):
        theta = math.pi * i / SPHERE_STEPS
        row_x, row_y, row_z = [], [], []
        for j in range(SPHERE_STEPS + 1):
            phi = 2 * math.pi * j / SPHERE_STEPS
            row_x.append(cx + radius * math.sin(theta) * math.cos(phi))
            row_y.append(cy + radius * math.cos(theta))
            row_z.append(cz + radius * math.sin(theta) * math.sin(phi))
        xs.append(row_x)
        ys.append(row_y)
        zs.append(row_z)

    color = _rgb(sphere.material.color)
    return go.Surface(
        x=xs, y=ys, z=zs,
        colorscale=[[0, color], [1, color]],
        showscale=False,
        # Ground-sized spheres are translucent so they don't hide the rest
        opacity=1.0 if radius <= MAX_PREVIEW_RADIUS else 0.3,
        name=name,
    )


def create_scene_preview(scene: Scene) -> go.Figure:
    """Create interactive 3D plot of scene."""
    fig = go.Figure()

    for i, sphere in enumerate(scene.spheres):
        fig.add_trace(sphere_surface(sphere, f'Sphere {i + 1}'))

    for i, light in enumerate(scene.lights):
        fig.add_trace(go.Scatter3d(
            x=[light.position[0]],
            y=[light.position[1]],
            z=[light.position[2]],
            mode='markers',
            marker=dict(size=6 + 6 * min(light.intensity, 1.0), color=_rgb(light.color), symbol='circle',
                        line=dict(color='orange', width=2)),
            name=f'Light {i + 1}'
        ))

    cam_pos = scene.camera
    look_at = add(cam_pos, mul((0.0, 0.0, -1.0), VIEW_LINE_LENGTH))

    fig.add_trace(go.Scatter3d(
        x=[cam_pos[0]],
        y=[cam_pos[1]],
        z=[cam_pos[2]],
        mode='markers',
        marker=dict(size=10, color='red', symbol='diamond'),
        name='Camera'
    ))

    fig.add_trace(go.Scatter3d(
        x=[cam_pos[0], look_at[0]],
        y=[cam_pos[1], look_at[1]],
        z=[cam_pos[2], look_at[2]],
        mode='lines',
        line=dict(color='red', width=3, dash='dash'),
        name='Camera Look'
    ))

    fig.update_layout(
        title=f"Scene Preview ({len(scene.spheres)} spheres, {len(scene.lights)} lights)",
        scene=dict(
            xaxis_title="X",
            yaxis_title="Y",
            zaxis_title="Z",
            aspectmode='data'
        ),
        width=1000,
        height=800
    )

    return fig


if __name__ == "__main__":
    import os

    scene_path = "../scene.json" if os.path.exists("../scene.json") else "scene.json"
    scene = build_scene(load_scene(scene_path)) if os.path.exists(scene_path) else default_scene()
    create_scene_preview(scene).show()
