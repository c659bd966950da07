"""GeoTiff backend for loading georeferenced raster data.

Uses rasterio for decoding the band data (including URLs through GDAL's
virtual file systems) and tifffile for reading the raw ModelPixelScale and
ModelTiepoint tags of local files.
"""

from typing import Optional, Tuple, Sequence
from pathlib import Path

import numpy as np
import rasterio
import tifffile
from rasterio.enums import Resampling
from rasterio.errors import RasterioIOError

from ...core.errors import AssetUnavailable
from .base import RasterBackend

PIXEL_SCALE_TAG = "ModelPixelScaleTag"
TIE_POINT_TAG = "ModelTiepointTag"
TIE_POINT_ARITY = 6


def read_geotiff_tags(path: str) -> Tuple[Optional[Tuple[float, ...]], Optional[Tuple[float, ...]]]:
    """Read the raw georeferencing tags of a local GeoTiff file.

    Args:
        path: Path to the GeoTiff file.

    Returns:
        Tuple of (ModelPixelScale, ModelTiepoint); None for absent tags. Of
        several tie points only the first is returned; a tie point tag whose
        length is not a multiple of six is returned unchanged.

    Raises:
        AssetUnavailable: if the file cannot be read.
    """
    try:
        with tifffile.TiffFile(path) as tif:
            page = tif.pages[0]
            scale_tag = page.tags.get(PIXEL_SCALE_TAG)
            tie_tag = page.tags.get(TIE_POINT_TAG)
            scale = tuple(scale_tag.value) if scale_tag is not None else None
            tie = tuple(tie_tag.value) if tie_tag is not None else None
    except (OSError, tifffile.TiffFileError) as e:
        raise AssetUnavailable(f"ERROR[read_geotiff_tags]: cannot read '{path}': {e}") from e
    if tie is not None and len(tie) > TIE_POINT_ARITY and len(tie) % TIE_POINT_ARITY == 0:
        tie = tie[:TIE_POINT_ARITY]
    return scale, tie


class GeoTiffBackend(RasterBackend):
    """Backend for loading data from GeoTiff files.

    Features:
    - Raw georeferencing tag access (tifffile) for local files
    - Tags reconstructed from the GDAL transform for remote sources
    - Downsampled reads via rasterio's out_shape
    - Automatic nodata handling and NaN conversion

    Raises:
        AssetUnavailable: if the source cannot be opened.
    """

    def __init__(
        self,
        path: str,
        band: int = 1,
    ):
        """Open a GeoTiff file.

        Args:
            path: Path or URL of the GeoTiff file.
            band: Band number to read (1-indexed). Default is 1.
        """
        self._path = str(path)
        self._band = band

        try:
            self._ds = rasterio.open(self._path, "r")
        except RasterioIOError as e:
            raise AssetUnavailable(f"ERROR[GeoTiffBackend]: cannot open '{self._path}': {e}") from e

        self._nodata = self._ds.nodata

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def source(self) -> str:
        return self._path

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._ds.height, self._ds.width)

    @property
    def nodata(self) -> Optional[float]:
        return self._nodata

    @property
    def is_local(self) -> bool:
        """True if the source is a file on the local file system."""
        return Path(self._path).is_file()

    # =========================================================================
    # Data access
    # =========================================================================

    def read_tags(self) -> Tuple[Optional[Sequence[float]], Optional[Sequence[float]]]:
        if self.is_local:
            return read_geotiff_tags(self._path)
        return self._tags_from_transform()

    def _tags_from_transform(self) -> Tuple[Optional[Sequence[float]], Optional[Sequence[float]]]:
        """Reconstruct the tags of a remote source from its GDAL transform.

        Only north-up rasters can be described by a pixel scale and a single
        tie point; rotated or ungeoreferenced sources report absent tags.
        """
        transform = self._ds.transform
        if self._ds.crs is None and transform.is_identity:
            return None, None
        if transform.b != 0 or transform.d != 0:
            return None, None
        pixel_scale = (transform.a, -transform.e, 0.0)
        tie_point = (0.0, 0.0, 0.0, transform.c, transform.f, 0.0)
        return pixel_scale, tie_point

    def read_data(self, max_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
        out_shape = self.compute_output_shape(self.shape, max_size)

        try:
            data = self._ds.read(
                self._band,
                out_shape=out_shape,
                resampling=Resampling.bilinear,
            )
        except RasterioIOError as e:
            raise AssetUnavailable(f"ERROR[GeoTiffBackend]: cannot read '{self._path}': {e}") from e

        # Convert to float32 and handle nodata
        data = data.astype(np.float32)
        if self._nodata is not None:
            data = np.where(data == self._nodata, np.nan, data)
        return data

    def close(self) -> None:
        """Close the rasterio dataset."""
        if self._ds is not None:
            self._ds.close()
            self._ds = None

    def __del__(self):
        """Ensure dataset is closed on garbage collection."""
        if getattr(self, "_ds", None) is not None:
            self.close()
