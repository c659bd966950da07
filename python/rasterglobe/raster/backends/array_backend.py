"""In-memory backend for raster data that is already decoded.

Useful for synthetic datasets, data produced by other pipelines and tests.
"""

from typing import Optional, Tuple, Sequence

import numpy as np

from .base import RasterBackend


class ArrayBackend(RasterBackend):
    """Backend serving a 2D numpy array with explicit georeferencing tags.

    Example:
        backend = ArrayBackend(
            data,
            pixel_scale=(0.01, 0.01, 0.0),
            tie_point=(0, 0, 0, -100.0, 40.0, 0),
            name="methane",
        )
    """

    def __init__(
        self,
        data: np.ndarray,
        pixel_scale: Optional[Sequence[float]],
        tie_point: Optional[Sequence[float]],
        name: str = "array",
        nodata: Optional[float] = None,
    ):
        """Wrap an array.

        Args:
            data: 2D array (height, width).
            pixel_scale: ModelPixelScale tag values as they would be encoded
                         in a GeoTiff (positive y scale), or None if absent.
            tie_point: ModelTiepoint tag values, or None if absent.
            name: Label used as source.
            nodata: Nodata value to replace with NaN on read.
        """
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"ERROR[ArrayBackend]: expected a 2D array, got shape {data.shape}")

        self._data = data
        self._pixel_scale = pixel_scale
        self._tie_point = tie_point
        self._name = name
        self._nodata = nodata

    @property
    def source(self) -> str:
        return self._name

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def nodata(self) -> Optional[float]:
        return self._nodata

    def read_tags(self) -> Tuple[Optional[Sequence[float]], Optional[Sequence[float]]]:
        return self._pixel_scale, self._tie_point

    def read_data(self, max_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
        data = self._data.astype(np.float32)
        if self._nodata is not None:
            data = np.where(data == self._nodata, np.nan, data)

        out_height, out_width = self.compute_output_shape(self.shape, max_size)
        if (out_height, out_width) != self.shape:
            # nearest neighbour decimation
            rows = (np.arange(out_height) * self.shape[0] / out_height).astype(int)
            cols = (np.arange(out_width) * self.shape[1] / out_width).astype(int)
            data = data[np.ix_(rows, cols)]
        return data
