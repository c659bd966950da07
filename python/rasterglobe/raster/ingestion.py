"""Asynchronous raster ingestion.

Decoding runs in a single background worker thread so the event loop that
drives the render loop is never blocked. Each raster handle moves through

    UNLOADED -> LOADING -> READY | FAILED

A second load of a handle that is still LOADING awaits the pending decode
instead of starting another one. Retrying a FAILED handle is an explicit
``reload``; there is no automatic retry.

Example:
    service = RasterIngestionService()
    dataset = await service.load("map/methane.tiff")
    data = service.data("map/methane.tiff")
"""

from __future__ import annotations

import asyncio
import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

from ..core.errors import AssetUnavailable, RasterGlobeError
from .backends import RasterBackend, GeoTiffBackend
from .dataset import RasterDataset

logger = logging.getLogger(__name__)

RasterSource = Union[str, Path, RasterBackend]

# round trip error (pixels) above which the sanity check warns
ROUND_TRIP_TOLERANCE = 1e-6


class IngestionState(Enum):
    """Lifecycle of a raster handle."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class _Entry:
    state: IngestionState = IngestionState.UNLOADED
    task: Optional[asyncio.Task] = None
    dataset: Optional[RasterDataset] = None
    data: Optional[np.ndarray] = None
    error: Optional[BaseException] = None


def handle_of(source: RasterSource) -> str:
    """Return the handle identifying a raster source."""
    if isinstance(source, RasterBackend):
        return source.source
    return str(source)


class RasterIngestionService:
    """Loads georeferenced rasters without blocking the event loop.

    Args:
        max_size: Maximum (height, width) of the decoded band data.
        seed: Seed for the random interior point of the round-trip check.
    """

    def __init__(self, max_size: Optional[Tuple[int, int]] = (2000, 2000), seed: Optional[int] = None):
        self._max_size = max_size
        self._rng = np.random.default_rng(seed)
        self._executor = ThreadPoolExecutor(max_workers=1)
        self._entries: Dict[str, _Entry] = {}
        self._closed = False

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self, source: RasterSource) -> RasterDataset:
        """Load a raster, reusing a pending or finished decode of the same handle.

        Returns:
            The RasterDataset of the source.

        Raises:
            AssetUnavailable: the source cannot be read.
            InvalidMetadata: georeferencing tags are missing or malformed.
            asyncio.CancelledError: the load was cancelled via ``cancel``.
        """
        if self._closed:
            raise RuntimeError("ERROR[RasterIngestionService]: service is closed")

        handle = handle_of(source)
        entry = self._entries.setdefault(handle, _Entry())

        if entry.state is IngestionState.READY:
            return entry.dataset
        if entry.state is IngestionState.FAILED:
            raise entry.error

        if entry.task is None or entry.task.done():
            entry.state = IngestionState.LOADING
            entry.error = None
            entry.task = asyncio.get_running_loop().create_task(self._run(entry, handle, source))

        # shield: a cancelled waiter must not cancel the shared decode
        return await asyncio.shield(entry.task)

    async def reload(self, source: RasterSource) -> RasterDataset:
        """Discard a finished (READY or FAILED) result and load again."""
        handle = handle_of(source)
        entry = self._entries.get(handle)
        if entry is not None and entry.state is not IngestionState.LOADING:
            del self._entries[handle]
        return await self.load(source)

    async def _run(self, entry: _Entry, handle: str, source: RasterSource) -> RasterDataset:
        loop = asyncio.get_running_loop()
        try:
            dataset, data = await loop.run_in_executor(self._executor, self._decode, source)
        except asyncio.CancelledError:
            # result of an abandoned decode is never installed
            entry.state = IngestionState.UNLOADED
            entry.task = None
            raise
        except RasterGlobeError as e:
            self._fail(entry, handle, e)
            raise
        except OSError as e:
            error = AssetUnavailable(f"ERROR[RasterIngestionService]: cannot read '{handle}': {e}")
            self._fail(entry, handle, error)
            raise error from e
        except Exception as e:
            # backends may raise anything; the handle must not stay LOADING
            self._fail(entry, handle, e)
            raise

        entry.dataset = dataset
        entry.data = data
        entry.state = IngestionState.READY
        self._report(dataset)
        return dataset

    def _decode(self, source: RasterSource) -> Tuple[RasterDataset, np.ndarray]:
        """Decode metadata and band data (runs in the worker thread)."""
        if isinstance(source, RasterBackend):
            return source.to_dataset(), source.read_data(self._max_size)

        with GeoTiffBackend(str(source)) as backend:
            return backend.to_dataset(), backend.read_data(self._max_size)

    def _fail(self, entry: _Entry, handle: str, error: BaseException) -> None:
        entry.state = IngestionState.FAILED
        entry.error = error
        logger.warning("Ingestion of '%s' failed: %s", handle, error)

    def _report(self, dataset: RasterDataset) -> None:
        """Log the bounding box and a round-trip check on a random interior point."""
        bbox = dataset.bounding_box
        logger.info("Loaded '%s' (%dx%d), bounding box %s",
                    dataset.source, dataset.width, dataset.height, bbox.as_tuple())

        transform = dataset.transform
        t_lon, t_lat = self._rng.random(2)
        lon, lat = bbox.lerp(t_lon, t_lat)
        px, py = transform.inverse(lon, lat)
        lon2, lat2 = transform.forward(px, py)
        px2, py2 = transform.inverse(lon2, lat2)
        error = float(np.hypot(px2 - px, py2 - py))

        logger.info("Round trip check at (lon=%.6f, lat=%.6f) -> pixel (%.3f, %.3f), error %.3g px",
                    lon, lat, px, py, error)
        if error > ROUND_TRIP_TOLERANCE:
            warnings.warn(f"Round trip check of '{dataset.source}' is off by {error} pixels")

    # =========================================================================
    # State
    # =========================================================================

    def state(self, source: RasterSource) -> IngestionState:
        entry = self._entries.get(handle_of(source))
        return entry.state if entry is not None else IngestionState.UNLOADED

    def dataset(self, source: RasterSource) -> Optional[RasterDataset]:
        entry = self._entries.get(handle_of(source))
        return entry.dataset if entry is not None else None

    def data(self, source: RasterSource) -> Optional[np.ndarray]:
        """Decoded band data of a READY handle (float32, NaN for nodata)."""
        entry = self._entries.get(handle_of(source))
        return entry.data if entry is not None else None

    def error(self, source: RasterSource) -> Optional[BaseException]:
        entry = self._entries.get(handle_of(source))
        return entry.error if entry is not None else None

    @property
    def pending(self) -> int:
        """Number of handles currently LOADING."""
        return sum(1 for e in self._entries.values() if e.state is IngestionState.LOADING)

    # =========================================================================
    # Cancellation / cleanup
    # =========================================================================

    def cancel(self, source: RasterSource) -> bool:
        """Cancel a pending load. Returns True if a load was pending."""
        handle = handle_of(source)
        entry = self._entries.get(handle)
        if entry is None or entry.task is None or entry.task.done():
            return False
        entry.task.cancel()
        # the cancelled task finishes on a later loop turn; detach it so a
        # load issued right away starts a new decode
        self._entries[handle] = _Entry()
        return True

    def cancel_all(self) -> int:
        """Cancel all pending loads. Returns the number of cancelled loads."""
        return sum(1 for handle in list(self._entries) if self.cancel(handle))

    def close(self) -> None:
        """Cancel pending loads and shut the worker thread down."""
        self.cancel_all()
        self._executor.shutdown(wait=False)
        self._closed = True

    def __repr__(self) -> str:
        return f"RasterIngestionService(handles={len(self._entries)}, pending={self.pending})"
