"""Immutable raster metadata record.

A RasterDataset is created once per successful decode from the raw GeoTIFF
georeferencing tags and never modified afterwards.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.errors import InvalidMetadata
from .coordinate_system import AffineGeoTransform, BoundingBox

PIXEL_SCALE_ARITY = 3
TIE_POINT_ARITY = 6


def flip_north_up(pixel_scale: Sequence[float]) -> Tuple[float, float, float]:
    """Flip the sign of the y pixel scale.

    GeoTIFF encodes the pixel height as a positive number although latitude
    decreases with increasing row. Storing sy negated makes the north-up
    convention explicit in the data instead of hiding it in the transform.
    """
    sx, sy, sz = pixel_scale
    return (float(sx), -float(sy), float(sz))


def _check_arity(name: str, values, expected: int) -> Tuple[float, ...]:
    if values is None:
        raise InvalidMetadata(f"ERROR[RasterDataset]: georeferencing tag '{name}' is missing")
    try:
        values = tuple(float(v) for v in values)
    except (TypeError, ValueError) as e:
        raise InvalidMetadata(f"ERROR[RasterDataset]: georeferencing tag '{name}' is malformed: {e}") from e
    if len(values) != expected:
        raise InvalidMetadata(
            f"ERROR[RasterDataset]: georeferencing tag '{name}' has {len(values)} elements, expected {expected}"
        )
    if not all(np.isfinite(values)):
        raise InvalidMetadata(f"ERROR[RasterDataset]: georeferencing tag '{name}' contains non finite values")
    return values


@dataclass(frozen=True)
class RasterDataset:
    """Georeferenced raster metadata.

    Attributes:
        width: Raster width in pixels.
        height: Raster height in pixels.
        pixel_scale: (sx, sy, sz) with sy already sign-flipped (north-up).
        tie_point: (px, py, pk, gx, gy, gz) pixel anchor and its geographic anchor.
        bounding_box: Geographic extent of the raster.
        source: Label of the source the dataset was decoded from.
        nodata: Nodata value of the source band, if any.
    """
    width: int
    height: int
    pixel_scale: Tuple[float, float, float]
    tie_point: Tuple[float, float, float, float, float, float]
    bounding_box: BoundingBox
    source: str = ""
    nodata: Optional[float] = None

    @classmethod
    def from_tags(
        cls,
        width: int,
        height: int,
        pixel_scale: Optional[Sequence[float]],
        tie_point: Optional[Sequence[float]],
        source: str = "",
        nodata: Optional[float] = None,
    ) -> "RasterDataset":
        """Create a dataset from raw ModelPixelScale / ModelTiepoint tag values.

        Args:
            width: Raster width in pixels.
            height: Raster height in pixels.
            pixel_scale: ModelPixelScale tag (sx, sy, sz) as encoded in the file.
            tie_point: ModelTiepoint tag (px, py, pk, gx, gy, gz), a single
                       tie point; read_geotiff_tags keeps the first of several.
            source: Label of the source (e.g. file path).
            nodata: Nodata value, if any.

        Raises:
            InvalidMetadata: if a tag is absent, has the wrong arity or the
                             x scale is not positive.
        """
        pixel_scale = _check_arity("ModelPixelScale", pixel_scale, PIXEL_SCALE_ARITY)
        tie_point = _check_arity("ModelTiepoint", tie_point, TIE_POINT_ARITY)

        if pixel_scale[0] <= 0:
            raise InvalidMetadata(f"ERROR[RasterDataset]: pixel scale x must be > 0, got {pixel_scale[0]}")
        if width <= 0 or height <= 0:
            raise InvalidMetadata(f"ERROR[RasterDataset]: invalid raster size {width}x{height}")

        pixel_scale = flip_north_up(pixel_scale)

        # a zero y scale raises DegenerateTransform here
        transform = AffineGeoTransform.from_tags(pixel_scale, tie_point)

        return cls(
            width=int(width),
            height=int(height),
            pixel_scale=pixel_scale,
            tie_point=tie_point,
            bounding_box=transform.bounding_box(width, height),
            source=str(source),
            nodata=nodata,
        )

    @cached_property
    def transform(self) -> AffineGeoTransform:
        """Pixel <-> geographic transform derived from the tags (built once per dataset)."""
        return AffineGeoTransform.from_dataset(self)

    @property
    def shape(self) -> Tuple[int, int]:
        """Raster shape (height, width)."""
        return (self.height, self.width)

    def __repr__(self) -> str:
        return (
            f"RasterDataset(source='{self.source}', size=({self.width}x{self.height}), "
            f"bounding_box={self.bounding_box.as_tuple()})"
        )
