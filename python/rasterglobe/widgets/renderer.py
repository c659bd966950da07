# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Matplotlib 3D rendering of the composed scene.

Each renderable SceneMesh becomes one Poly3DCollection on an Axes3D. Artists
are rebuilt when their mesh is replaced, updated in place when the overlay
scale changes, and removed before their mesh's resources are dropped.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from ..scene.composer import SceneComposer, SceneMesh
from ..scene.viewport import PerspectiveCamera

BASE_DPI = 100
WIREFRAME_COLOR = (0.2, 0.6, 1.0, 1.0)

# half extent of the rendered cube in world units
SCENE_EXTENT = 0.55


@dataclass
class _MeshArtist:
    artist: Poly3DCollection
    version: int
    scale: Tuple[float, float, float]


class MatplotlibSceneRenderer:
    """Draws a SceneComposer through a PerspectiveCamera.

    Args:
        composer: The scene to draw.
        camera: Camera providing view angles and field of view.
        figure: Figure to draw into. If None a pyplot figure is created.
        name: Name of the created pyplot figure.
    """

    def __init__(self, composer: SceneComposer, camera: PerspectiveCamera, figure=None, name: str = "rasterglobe"):
        self.composer = composer
        self.camera = camera

        if figure is None:
            plt.ioff()
            self.fig = plt.figure(name, clear=True)
            plt.ion()
            self._owns_figure = True
        else:
            self.fig = figure
            self._owns_figure = False

        self.ax = self.fig.add_subplot(projection="3d")
        self.ax.set_axis_off()
        # draw order is insertion order (base first), not depth sorted
        self.ax.computed_zorder = False
        for set_lim in (self.ax.set_xlim, self.ax.set_ylim, self.ax.set_zlim):
            set_lim(-SCENE_EXTENT, SCENE_EXTENT)

        self._reference_distance = camera.distance
        self._artists: Dict[str, _MeshArtist] = {}
        self._pixel_ratio = 1.0
        self.draw_count = 0

    # =========================================================================
    # sizing
    # =========================================================================

    def set_pixel_ratio(self, pixel_ratio: float) -> None:
        self._pixel_ratio = float(pixel_ratio)
        self.fig.set_dpi(BASE_DPI * self._pixel_ratio)

    def set_size(self, width: int, height: int) -> None:
        """Set the logical size; the backing buffer is size * pixel ratio."""
        self.fig.set_size_inches(width / BASE_DPI, height / BASE_DPI, forward=False)

    @property
    def pixel_ratio(self) -> float:
        return self._pixel_ratio

    @property
    def logical_size(self) -> Tuple[int, int]:
        width, height = self.fig.get_size_inches() * BASE_DPI
        return (int(round(width)), int(round(height)))

    @property
    def surface_size(self) -> Tuple[int, int]:
        """Backing buffer size in device pixels."""
        width, height = self.fig.bbox.size
        return (int(round(width)), int(round(height)))

    def connect_resize(self, callback: Callable) -> int:
        """Forward the canvas resize event (payload ignored by the callback)."""
        return self.fig.canvas.mpl_connect("resize_event", callback)

    # =========================================================================
    # artists
    # =========================================================================

    def _make_artist(self, mesh: SceneMesh) -> Poly3DCollection:
        quads = self.composer.quads(mesh.name)
        if mesh.material.wireframe and mesh.material.texture is None:
            artist = Poly3DCollection(quads, facecolors=(0, 0, 0, 0), edgecolors=WIREFRAME_COLOR, linewidths=0.2)
        else:
            artist = Poly3DCollection(quads, facecolors=self.composer.face_colors(mesh.name), linewidths=0)
        self.ax.add_collection3d(artist)
        return artist

    def _remove(self, name: str) -> None:
        entry = self._artists.pop(name)
        entry.artist.remove()

    def sync(self) -> None:
        """Bring the artists in line with the composer's meshes."""
        meshes = {mesh.name: mesh for mesh in self.composer.renderable_meshes()}

        for name in list(self._artists):
            mesh = meshes.get(name)
            if mesh is None or mesh.version != self._artists[name].version:
                self._remove(name)

        scale = self.composer.scale
        for zorder, mesh in enumerate(meshes.values()):
            entry = self._artists.get(mesh.name)
            if entry is None:
                entry = _MeshArtist(self._make_artist(mesh), mesh.version, scale)
                self._artists[mesh.name] = entry
            elif not mesh.is_base and entry.scale != scale:
                entry.artist.set_verts(self.composer.quads(mesh.name))
                entry.scale = scale

            entry.artist.set_zorder(zorder)
            entry.artist.set_visible(mesh.visible)

    def artist(self, name: str) -> Optional[Poly3DCollection]:
        entry = self._artists.get(name)
        return entry.artist if entry is not None else None

    @property
    def artist_names(self) -> Tuple[str, ...]:
        return tuple(self._artists)

    def apply_camera(self) -> None:
        camera = self.camera
        # azimuth 0 looks along -y in matplotlib; the camera's is measured from +x
        self.ax.view_init(elev=camera.elevation, azim=camera.azimuth - 90.0)
        self.ax.set_proj_type("persp", focal_length=camera.focal_length)
        self.ax.set_box_aspect((1, 1, 1), zoom=self._reference_distance / camera.distance)

    # =========================================================================
    # drawing
    # =========================================================================

    def draw(self) -> None:
        """Draw exactly one frame of the full scene."""
        self.sync()
        self.apply_camera()
        self.fig.canvas.draw()
        self.draw_count += 1

    def snapshot(self) -> np.ndarray:
        """RGBA copy of the last drawn frame."""
        return np.array(self.fig.canvas.buffer_rgba(), dtype=np.uint8, copy=True)

    def release(self) -> None:
        """Remove all artists."""
        for name in list(self._artists):
            self._remove(name)

    def close(self) -> None:
        self.release()
        if self._owns_figure:
            plt.close(self.fig)

    def __repr__(self) -> str:
        return f"MatplotlibSceneRenderer(artists={self.artist_names}, draws={self.draw_count})"
