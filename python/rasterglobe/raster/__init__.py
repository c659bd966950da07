"""Raster module for ingesting georeferenced rasters.

This module provides tools for decoding georeferenced raster data (e.g. a
satellite-derived methane concentration map) and mapping between pixel and
geographic coordinates.

Similar in design to a map builder, it uses:
- Pluggable backends (GeoTiff, in-memory arrays) for data loading
- An immutable RasterDataset holding the georeferencing metadata
- An affine transform for pixel <-> geographic coordinate mapping
- An asynchronous ingestion service that never blocks the render loop

Example:
    from rasterglobe.raster import RasterIngestionService

    service = RasterIngestionService()
    dataset = await service.load('map/methane.tiff')

    transform = dataset.transform
    lon, lat = transform.forward(0, 0)
    px, py = transform.inverse(lon, lat)
"""

from .coordinate_system import AffineGeoTransform, BoundingBox
from .dataset import RasterDataset, flip_north_up
from .backends import RasterBackend, GeoTiffBackend, ArrayBackend, read_geotiff_tags
from .ingestion import RasterIngestionService, IngestionState, handle_of

__all__ = [
    "AffineGeoTransform",
    "BoundingBox",
    "RasterDataset",
    "flip_north_up",
    "RasterBackend",
    "GeoTiffBackend",
    "ArrayBackend",
    "read_geotiff_tags",
    "RasterIngestionService",
    "IngestionState",
    "handle_of",
]
