"""Affine georeferencing for raster data.

Provides the pixel <-> geographic coordinate mapping derived from GeoTIFF
georeferencing tags, and the bounding box type used throughout the package.

The model is the restricted six coefficient affine transform

    lon = a + b * px + c * py
    lat = d + e * px + f * py

GeoTIFF tie point / pixel scale metadata yields c = e = 0 (no rotation), in
which case the inverse is solved per axis. Rotated transforms are inverted
with the general 2x2 inverse.
"""

from typing import Tuple, Union, List
from dataclasses import dataclass

import numpy as np
from affine import Affine

from ..core.errors import DegenerateTransform

# |det| below this is treated as singular
DETERMINANT_EPSILON = 1e-12

Number = Union[float, np.ndarray]


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box.

    Attributes:
        min_lon: Western edge (degrees).
        min_lat: Southern edge (degrees).
        max_lon: Eastern edge (degrees).
        max_lat: Northern edge (degrees).
    """
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def width(self) -> float:
        """Longitude span of the bounding box."""
        return self.max_lon - self.min_lon

    @property
    def height(self) -> float:
        """Latitude span of the bounding box."""
        return self.max_lat - self.min_lat

    @property
    def center(self) -> Tuple[float, float]:
        """Center point (lon, lat) of the bounding box."""
        return (
            (self.min_lon + self.max_lon) / 2,
            (self.min_lat + self.max_lat) / 2,
        )

    def contains(self, lon: float, lat: float) -> bool:
        """Check if a point is within the bounding box."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def lerp(self, t_lon: float, t_lat: float) -> Tuple[float, float]:
        """Interpolate a point inside the box.

        Args:
            t_lon: Fraction along the longitude axis, in [0, 1].
            t_lat: Fraction along the latitude axis, in [0, 1].

        Returns:
            Tuple of (lon, lat).
        """
        return (
            _lerp(self.min_lon, self.max_lon, t_lon),
            _lerp(self.min_lat, self.max_lat, t_lat),
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (min_lon, min_lat, max_lon, max_lat) tuple."""
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    @classmethod
    def from_points(cls, lon: np.ndarray, lat: np.ndarray) -> "BoundingBox":
        """Create a bounding box from arrays of lon and lat coordinates."""
        return cls(
            min_lon=float(np.nanmin(lon)),
            min_lat=float(np.nanmin(lat)),
            max_lon=float(np.nanmax(lon)),
            max_lat=float(np.nanmax(lat)),
        )


def _lerp(lo: float, hi: float, t: float) -> float:
    # exact at t = 0 and t = 1, never outside [lo, hi] for t in [0, 1]
    value = (1.0 - t) * lo + t * hi
    return min(max(value, lo), hi)


def _truncate(value: Number) -> Union[int, np.ndarray]:
    # truncates toward zero, not round-to-nearest
    if isinstance(value, np.ndarray):
        return np.trunc(value).astype(np.int64)
    return int(value)


class AffineGeoTransform:
    """Forward and inverse pixel <-> geographic transform.

    Coefficients follow ``lon = a + b*px + c*py`` and ``lat = d + e*px + f*py``.
    Instances are immutable; derive a new one if the dataset changes.

    Raises:
        DegenerateTransform: if the linear part is not invertible.
    """

    def __init__(self, a: float, b: float, c: float, d: float, e: float, f: float):
        self._coefficients = tuple(float(v) for v in (a, b, c, d, e, f))

        determinant = b * f - c * e
        if not np.isfinite(determinant) or abs(determinant) <= DETERMINANT_EPSILON:
            raise DegenerateTransform(
                f"ERROR[AffineGeoTransform]: coefficients {self._coefficients} are not invertible "
                f"(determinant={determinant})"
            )

        # affine.Affine maps (x, y) -> (a*x + b*y + c, d*x + e*y + f)
        self._affine = Affine(b, c, a, e, f, d)

        if c == 0 and e == 0:
            # per axis closed form
            self._inverse_coefficients = (-a / b, 1.0 / b, 0.0, -d / f, 0.0, 1.0 / f)
        else:
            inv = ~self._affine
            self._inverse_coefficients = (inv.c, inv.a, inv.b, inv.f, inv.d, inv.e)

    @classmethod
    def from_dataset(cls, dataset) -> "AffineGeoTransform":
        """Derive the transform from a RasterDataset."""
        return cls.from_tags(dataset.pixel_scale, dataset.tie_point)

    @classmethod
    def from_tags(cls, pixel_scale, tie_point) -> "AffineGeoTransform":
        """Derive the transform from a stored pixel scale and tie point.

        ``pixel_scale[1]`` must already be sign-flipped (north-up, see
        ``dataset.flip_north_up``), so it is used as is for the
        latitude-per-row coefficient. The tie point's pixel anchor is
        honoured, so the geographic anchor maps back to (px, py).
        """
        sx, sy, _ = pixel_scale
        px, py, _, gx, gy, _ = tie_point
        return cls(
            a=gx - sx * px,
            b=sx,
            c=0.0,
            d=gy - sy * py,
            e=0.0,
            f=sy,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def coefficients(self) -> Tuple[float, float, float, float, float, float]:
        """Forward coefficients (a, b, c, d, e, f)."""
        return self._coefficients

    @property
    def inverse_coefficients(self) -> Tuple[float, float, float, float, float, float]:
        """Inverse coefficients (a', b', c', d', e', f') mapping lon/lat to pixels."""
        return self._inverse_coefficients

    @property
    def affine(self) -> Affine:
        """Forward transform as an affine.Affine (x=px, y=py)."""
        return self._affine

    @property
    def resolution(self) -> Tuple[float, float]:
        """Pixel resolution (dlon, dlat) in degrees."""
        _, b, _, _, _, f = self._coefficients
        return (abs(b), abs(f))

    # =========================================================================
    # Coordinate transformations
    # =========================================================================

    def forward(self, px: Number, py: Number, round_to_int: bool = False) -> Tuple[Number, Number]:
        """Convert pixel coordinates to geographic coordinates.

        Args:
            px: Column (x in pixel space).
            py: Row (y in pixel space).
            round_to_int: Truncate results toward zero.

        Returns:
            Tuple of (lon, lat).
        """
        a, b, c, d, e, f = self._coefficients
        lon = a + b * px + c * py
        lat = d + e * px + f * py
        if round_to_int:
            return _truncate(lon), _truncate(lat)
        return lon, lat

    def inverse(self, lon: Number, lat: Number, round_to_int: bool = False) -> Tuple[Number, Number]:
        """Convert geographic coordinates to pixel coordinates.

        Args:
            lon: Longitude in degrees.
            lat: Latitude in degrees.
            round_to_int: Truncate results toward zero. Callers needing
                          centroid sampling must round themselves.

        Returns:
            Tuple of (px, py); floats unless round_to_int is set.
        """
        a, b, c, d, e, f = self._inverse_coefficients
        px = a + b * lon + c * lat
        py = d + e * lon + f * lat
        if round_to_int:
            return _truncate(px), _truncate(py)
        return px, py

    # =========================================================================
    # Extent
    # =========================================================================

    def corners(self, width: int, height: int) -> List[Tuple[float, float]]:
        """Geographic corners of a raster: top-left, top-right, bottom-right, bottom-left."""
        corners_px = [
            (0, 0),
            (width, 0),
            (width, height),
            (0, height),
        ]
        return [self.forward(px, py) for px, py in corners_px]

    def bounding_box(self, width: int, height: int) -> BoundingBox:
        """Bounding box of a raster with the given pixel dimensions."""
        corners = self.corners(width, height)
        return BoundingBox.from_points(
            np.array([lon for lon, _ in corners]),
            np.array([lat for _, lat in corners]),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, AffineGeoTransform):
            return NotImplemented
        return self._coefficients == other._coefficients

    def __hash__(self) -> int:
        return hash(self._coefficients)

    def __repr__(self) -> str:
        return f"AffineGeoTransform(coefficients={self._coefficients})"
