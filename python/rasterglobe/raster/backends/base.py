"""Abstract base class for raster data backends.

Defines the interface that all raster sources must implement: the raw
georeferencing tags, the pixel dimensions and the decoded band data.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple, Sequence

import numpy as np

from ..dataset import RasterDataset


class RasterBackend(ABC):
    """Abstract base class for raster sources.

    Backends handle decoding georeferenced raster data from various sources
    (GeoTiff files, in-memory arrays, ...). They provide:

    - The raw ModelPixelScale / ModelTiepoint tag values
    - Pixel dimensions and nodata value
    - Band data as float32 with NaN for nodata

    Backends are used from a worker thread by the ingestion service and must
    not touch any viewer state.
    """

    # =========================================================================
    # Required properties
    # =========================================================================

    @property
    @abstractmethod
    def source(self) -> str:
        """Label of the source (file path, URL or name)."""
        pass

    @property
    @abstractmethod
    def shape(self) -> Tuple[int, int]:
        """Get the raster shape (height, width) in pixels."""
        pass

    @property
    @abstractmethod
    def nodata(self) -> Optional[float]:
        """Get the nodata value, or None if not defined."""
        pass

    # =========================================================================
    # Required methods
    # =========================================================================

    @abstractmethod
    def read_tags(self) -> Tuple[Optional[Sequence[float]], Optional[Sequence[float]]]:
        """Read the raw georeferencing tags.

        Returns:
            Tuple of (ModelPixelScale, ModelTiepoint) exactly as encoded in the
            source; either may be None if the tag is absent.
        """
        pass

    @abstractmethod
    def read_data(self, max_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
        """Read the band data.

        Args:
            max_size: Maximum output size as (height, width). If the raster is
                      larger, downsample to fit. If None, return full resolution.

        Returns:
            2D float32 array (NaN for nodata).
        """
        pass

    # =========================================================================
    # Optional methods (with default implementations)
    # =========================================================================

    def to_dataset(self) -> RasterDataset:
        """Build the RasterDataset from the raw tags.

        Raises:
            InvalidMetadata: if the tags are missing or malformed.
        """
        pixel_scale, tie_point = self.read_tags()
        height, width = self.shape
        return RasterDataset.from_tags(
            width=width,
            height=height,
            pixel_scale=pixel_scale,
            tie_point=tie_point,
            source=self.source,
            nodata=self.nodata,
        )

    def close(self) -> None:
        """Release any resources held by the backend.

        Override this if your backend holds open file handles or connections.
        Default implementation does nothing.
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes the backend."""
        self.close()
        return False

    @staticmethod
    def compute_output_shape(shape: Tuple[int, int], max_size: Optional[Tuple[int, int]]) -> Tuple[int, int]:
        """Compute the downsampled (height, width) that fits in max_size.

        The aspect ratio is preserved; no upsampling is performed.
        """
        height, width = shape
        if max_size is None:
            return (height, width)
        factor = max(height / max(1, max_size[0]), width / max(1, max_size[1]), 1.0)
        return (max(1, int(height / factor)), max(1, int(width / factor)))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source='{self.source}', shape={self.shape})"
