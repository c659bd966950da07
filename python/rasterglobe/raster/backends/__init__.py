"""RasterBackend implementations for various raster sources."""

from .base import RasterBackend
from .geotiff_backend import GeoTiffBackend, read_geotiff_tags
from .array_backend import ArrayBackend

__all__ = [
    "RasterBackend",
    "GeoTiffBackend",
    "ArrayBackend",
    "read_geotiff_tags",
]
