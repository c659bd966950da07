# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Surface geometry for the base layer and the overlay patches.

Grids are stored in geographic space (lon, lat, height) together with their
texture coordinates (u, v). A Surface projects them into world (x, y, z)
coordinates: either a tilted unit plane or a sphere. Scaling of overlays is
applied in geographic space before the projection so that scale_z always
means "height above the base surface".
"""

from typing import Optional, Tuple

import numpy as np

from ..raster.coordinate_system import BoundingBox

FULL_CIRCLE_DEG = 360.0


# ==============================================================================
# grid
# ==============================================================================


class SurfaceGrid:
    """A regular (segments+1) x (segments+1) vertex grid.

    Attributes:
        lon: Longitude of each vertex (degrees).
        lat: Latitude of each vertex (degrees).
        height: Height above the base surface.
        u: Horizontal texture coordinate (may exceed 1 when repeated).
        v: Vertical texture coordinate, 1 at the northern edge.
    """

    def __init__(self, lon: np.ndarray, lat: np.ndarray, height: np.ndarray, u: np.ndarray, v: np.ndarray):
        self.lon = lon
        self.lat = lat
        self.height = height
        self.u = u
        self.v = v
        self.released = False

    @property
    def shape(self) -> Tuple[int, int]:
        return self.lon.shape

    @property
    def n_faces(self) -> int:
        rows, cols = self.shape
        return (rows - 1) * (cols - 1)

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(self.lon, self.lat)

    def face_uv(self) -> Tuple[np.ndarray, np.ndarray]:
        """Texture coordinates at the centre of each face (flattened)."""
        return _face_centers(self.u).ravel(), _face_centers(self.v).ravel()

    def scaled(self, scale: Tuple[float, float, float], center: Optional[Tuple[float, float]] = None) -> "SurfaceGrid":
        """Return a copy scaled about a (lon, lat) centre; z scales the height."""
        sx, sy, sz = scale
        if center is None:
            center = self.bounding_box.center
        clon, clat = center
        return SurfaceGrid(
            lon=clon + (self.lon - clon) * sx,
            lat=clat + (self.lat - clat) * sy,
            height=self.height * sz,
            u=self.u,
            v=self.v,
        )

    def release(self) -> None:
        """Drop the vertex buffers."""
        self.lon = self.lat = self.height = self.u = self.v = None
        self.released = True

    def __repr__(self) -> str:
        if self.released:
            return "SurfaceGrid(released)"
        return f"SurfaceGrid(shape={self.shape}, bounding_box={self.bounding_box.as_tuple()})"


def _face_centers(values: np.ndarray) -> np.ndarray:
    return 0.25 * (values[:-1, :-1] + values[1:, :-1] + values[1:, 1:] + values[:-1, 1:])


def make_grid(
    lon_range: Tuple[float, float],
    lat_range: Tuple[float, float],
    segments: int,
    height: float = 0.0,
    repeat: float = 1.0,
) -> SurfaceGrid:
    """Create a regular grid over a lon/lat extent.

    Args:
        lon_range: (west, east) in degrees.
        lat_range: (south, north) in degrees.
        segments: Subdivisions per axis (>= 1).
        height: Constant height of all vertices.
        repeat: Horizontal texture repeat; u runs from 0 to repeat.

    Returns:
        SurfaceGrid with row 0 at the northern edge.
    """
    if segments < 1:
        raise ValueError(f"ERROR[make_grid]: segments must be >= 1, got {segments}")

    t = np.linspace(0.0, 1.0, int(segments) + 1)
    u, v = np.meshgrid(t, t[::-1])

    lon = lon_range[0] + (lon_range[1] - lon_range[0]) * u
    lat = lat_range[0] + (lat_range[1] - lat_range[0]) * v

    return SurfaceGrid(lon=lon, lat=lat, height=np.full_like(lon, float(height)), u=u * repeat, v=v)


def wrap_repeat(
    texture_width: int,
    degrees_per_texel: Optional[float] = None,
    repeat_count: Optional[float] = None,
    lon_extent: float = FULL_CIRCLE_DEG,
) -> float:
    """Horizontal repeat so one texel covers degrees_per_texel on the surface.

    The repeat is the ratio of the surface's longitude extent to the
    longitude covered by the texture's native width:
    ``lon_extent / (texture_width * degrees_per_texel)``. Over a full circle
    (360 degrees) the texture tiles seamlessly.

    Args:
        texture_width: Native texture width in texels.
        degrees_per_texel: Longitude covered by one texel. If None the texture
                           is taken to cover the surface once (repeat 1).
        repeat_count: Explicit repeat, overrides the computation.
        lon_extent: Longitude span of the surface in degrees.
    """
    if repeat_count is not None:
        if repeat_count <= 0:
            raise ValueError(f"ERROR[wrap_repeat]: repeat_count must be > 0, got {repeat_count}")
        return float(repeat_count)
    if degrees_per_texel is None:
        return 1.0
    if texture_width <= 0 or degrees_per_texel <= 0:
        raise ValueError(
            f"ERROR[wrap_repeat]: texture width ({texture_width}) and degrees per texel "
            f"({degrees_per_texel}) must be > 0"
        )
    return abs(float(lon_extent)) / (texture_width * degrees_per_texel)


def overlay_grid(bounding_box: BoundingBox, segments: int, offset: float) -> SurfaceGrid:
    """Grid covering a dataset's bounding box, lifted by offset above the base."""
    return make_grid(
        (bounding_box.min_lon, bounding_box.max_lon),
        (bounding_box.min_lat, bounding_box.max_lat),
        segments,
        height=offset,
    )


# ==============================================================================
# texture sampling
# ==============================================================================


def sample_texture(pixels: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Nearest-texel lookup with horizontal repeat wrapping and vertical clamping.

    Args:
        pixels: (H, W, 4) uint8 RGBA texture, row 0 at the top.
        u: Horizontal texture coordinates (wrapped modulo 1).
        v: Vertical texture coordinates (clamped to [0, 1], 1 = top).

    Returns:
        (N, 4) float RGBA colors in [0, 1].
    """
    height, width = pixels.shape[:2]
    u = np.mod(np.asarray(u, dtype=float), 1.0)
    v = np.clip(np.asarray(v, dtype=float), 0.0, 1.0)

    cols = np.clip((u * width).astype(int), 0, width - 1)
    rows = np.clip(((1.0 - v) * height).astype(int), 0, height - 1)
    return pixels[rows, cols].astype(float) / 255.0


# ==============================================================================
# surfaces (geographic -> world)
# ==============================================================================


class PlaneSurface:
    """Unit plane centred on the origin, rotated about the x axis.

    The configured lon/lat extent maps to x, y in [-0.5, 0.5]; height is
    along the plane normal.
    """

    kind = "plane"

    def __init__(self, lon_range: Tuple[float, float], lat_range: Tuple[float, float], tilt_deg: float = 0.0):
        self.lon_range = tuple(lon_range)
        self.lat_range = tuple(lat_range)
        self.tilt_deg = float(tilt_deg)

        tilt = np.deg2rad(self.tilt_deg)
        self._rotation = np.array([
            [1.0, 0.0, 0.0],
            [0.0, np.cos(tilt), -np.sin(tilt)],
            [0.0, np.sin(tilt), np.cos(tilt)],
        ])

    def to_world(self, lon, lat, height) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        lon0, lon1 = self.lon_range
        lat0, lat1 = self.lat_range
        x = (np.asarray(lon, dtype=float) - 0.5 * (lon0 + lon1)) / (lon1 - lon0)
        y = (np.asarray(lat, dtype=float) - 0.5 * (lat0 + lat1)) / (lat1 - lat0)
        z = np.asarray(height, dtype=float) * np.ones_like(x)

        xyz = np.stack([x, y, z], axis=-1) @ self._rotation.T
        return xyz[..., 0], xyz[..., 1], xyz[..., 2]


class GlobeSurface:
    """Sphere of the given radius; height is added to the radius."""

    kind = "globe"

    def __init__(self, radius: float = 0.5):
        self.radius = float(radius)

    def to_world(self, lon, lat, height) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        lon = np.deg2rad(np.asarray(lon, dtype=float))
        lat = np.deg2rad(np.asarray(lat, dtype=float))
        r = self.radius + np.asarray(height, dtype=float)
        return (
            r * np.cos(lat) * np.cos(lon),
            r * np.cos(lat) * np.sin(lon),
            r * np.sin(lat),
        )


def make_surface(config):
    """Surface matching a ViewerConfig."""
    if config.surface == "globe":
        return GlobeSurface()
    return PlaneSurface(config.lon_range, config.lat_range, config.tilt_deg)


def world_quads(surface, grid: SurfaceGrid) -> np.ndarray:
    """Project a grid and split it into quads.

    Returns:
        (n_faces, 4, 3) array of world coordinates, one quad per grid cell.
    """
    x, y, z = surface.to_world(grid.lon, grid.lat, grid.height)
    xyz = np.stack([x, y, z], axis=-1)
    quads = np.stack([xyz[:-1, :-1], xyz[1:, :-1], xyz[1:, 1:], xyz[:-1, 1:]], axis=2)
    return quads.reshape(-1, 4, 3)
