# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Camera and viewport sizing."""

import logging
from typing import Optional, Tuple

import numpy as np

from .state import ViewportState

logger = logging.getLogger(__name__)


class PerspectiveCamera:
    """Perspective camera orbiting the origin.

    Args:
        fov: Vertical field of view in degrees.
        aspect: Width / height of the viewport.
        near: Near clipping distance.
        far: Far clipping distance.
        position: Initial camera position (x, y, z), looking at the origin.
    """

    def __init__(
        self,
        fov: float = 75.0,
        aspect: float = 1.0,
        near: float = 0.1,
        far: float = 100.0,
        position: Tuple[float, float, float] = (0.0, 0.0, 0.7),
    ):
        if not 0 < near < far:
            raise ValueError(f"ERROR[PerspectiveCamera]: need 0 < near < far, got near={near}, far={far}")
        self.fov = float(fov)
        self.aspect = float(aspect)
        self.near = float(near)
        self.far = float(far)

        x, y, z = (float(v) for v in position)
        self.distance = float(np.sqrt(x * x + y * y + z * z))
        if self.distance == 0:
            raise ValueError("ERROR[PerspectiveCamera]: camera position must not be the origin")
        self.elevation = float(np.rad2deg(np.arcsin(z / self.distance)))
        self.azimuth = float(np.rad2deg(np.arctan2(y, x)))

        self.projection_matrix = np.eye(4)
        self.update_projection_matrix()

    @property
    def position(self) -> Tuple[float, float, float]:
        azimuth = np.deg2rad(self.azimuth)
        elevation = np.deg2rad(self.elevation)
        return (
            float(self.distance * np.cos(elevation) * np.cos(azimuth)),
            float(self.distance * np.cos(elevation) * np.sin(azimuth)),
            float(self.distance * np.sin(elevation)),
        )

    @property
    def focal_length(self) -> float:
        """Focal length matching the vertical field of view."""
        return float(1.0 / np.tan(np.deg2rad(self.fov) / 2))

    def update_projection_matrix(self) -> np.ndarray:
        """Recompute the projection matrix from fov, aspect, near and far."""
        top = self.near * np.tan(np.deg2rad(self.fov) / 2)
        bottom = -top
        right = top * self.aspect
        left = -right
        near, far = self.near, self.far

        self.projection_matrix = np.array([
            [2 * near / (right - left), 0.0, (right + left) / (right - left), 0.0],
            [0.0, 2 * near / (top - bottom), (top + bottom) / (top - bottom), 0.0],
            [0.0, 0.0, -(far + near) / (far - near), -2 * far * near / (far - near)],
            [0.0, 0.0, -1.0, 0.0],
        ])
        return self.projection_matrix

    def orbit(self, azimuth: float = 0.0, elevation: float = 0.0) -> None:
        """Rotate the camera around the origin by the given angles (degrees)."""
        self.azimuth = (self.azimuth + azimuth + 180.0) % 360.0 - 180.0
        self.elevation = float(np.clip(self.elevation + elevation, -90.0, 90.0))

    def dolly(self, factor: float) -> None:
        """Multiply the distance to the origin, keeping it between near and far."""
        self.distance = float(np.clip(self.distance * factor, self.near, self.far))

    @classmethod
    def from_config(cls, config) -> "PerspectiveCamera":
        return cls(
            fov=config.fov,
            aspect=config.width / config.height if config.height > 0 else 1.0,
            near=config.near,
            far=config.far,
            position=config.camera_position,
        )

    def __repr__(self) -> str:
        return (
            f"PerspectiveCamera(fov={self.fov}, aspect={self.aspect:.3f}, "
            f"azimuth={self.azimuth:.1f}, elevation={self.elevation:.1f}, distance={self.distance:.3f})"
        )


class ViewportManager:
    """Keeps camera and rendering surface in sync with the host window.

    Args:
        camera: The camera to update.
        state: ViewportState written by resize.
        renderer: Optional rendering surface with set_size(width, height)
                  and set_pixel_ratio(ratio).
        window: Optional host window exposing width, height and
                device_pixel_ratio; read by on_window_resize.
        max_pixel_ratio: Upper bound of the applied pixel ratio.
    """

    def __init__(self, camera: PerspectiveCamera, state: Optional[ViewportState] = None, renderer=None, window=None,
                 max_pixel_ratio: float = 2.0):
        self.camera = camera
        self.state = state if state is not None else ViewportState()
        self.renderer = renderer
        self.window = window
        self.max_pixel_ratio = float(max_pixel_ratio)
        self.resize_count = 0

    def clamp_pixel_ratio(self, pixel_ratio: float) -> float:
        return min(float(pixel_ratio), self.max_pixel_ratio)

    @property
    def surface_size(self) -> Tuple[int, int]:
        """Size of the backing buffer in device pixels."""
        return self.state.physical_size

    def resize(self, width: int, height: int, pixel_ratio: Optional[float] = None) -> None:
        """Apply a new viewport size.

        Updates the camera aspect, recomputes the projection and resizes the
        rendering surface. The pixel ratio is capped at max_pixel_ratio.
        Calling resize again with the same arguments yields the same state.
        """
        if width <= 0 or height <= 0:
            # minimized windows report zero sizes; keep the last valid state
            logger.debug("Ignoring resize to %dx%d", width, height)
            return
        if pixel_ratio is None:
            pixel_ratio = self.state.pixel_ratio
        if pixel_ratio <= 0:
            raise ValueError(f"ERROR[ViewportManager]: pixel ratio must be > 0, got {pixel_ratio}")

        self.state.width = int(width)
        self.state.height = int(height)
        self.state.pixel_ratio = self.clamp_pixel_ratio(pixel_ratio)

        self.camera.aspect = self.state.aspect_ratio
        self.camera.update_projection_matrix()

        if self.renderer is not None:
            self.renderer.set_pixel_ratio(self.state.pixel_ratio)
            self.renderer.set_size(self.state.width, self.state.height)

        self.resize_count += 1
        logger.debug("Viewport resized to %dx%d @%.2f", self.state.width, self.state.height, self.state.pixel_ratio)

    def on_window_resize(self, *_) -> None:
        """Host window resize notification; the payload is ignored."""
        if self.window is None:
            return
        self.resize(self.window.width, self.window.height, self.window.device_pixel_ratio)
