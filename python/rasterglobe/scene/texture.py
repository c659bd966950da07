# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Overlay texture synthesis.

Two strategies produce an RGBA image for texture mapping:

- ``render``: the raster (or a placeholder pattern) is drawn as a single
  quad through an orthographic 2D axes into a fixed size offscreen Agg
  canvas, and the canvas buffer is copied out.
- ``direct``: a caller supplied buffer is passed through; only the dtype and
  channel layout are normalised to uint8 RGBA.

The texture size is fixed when the texture is synthesized and does not depend
on the viewport. Synthesis happens once per dataset, never per frame.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import imageio.v3 as iio
import matplotlib
import matplotlib.pyplot as plt
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.colors import Normalize
from matplotlib.figure import Figure

from ..core.asserts import assert_valid_argument
from ..core.config import TEXTURE_STRATEGIES
from ..core.errors import AssetUnavailable, TextureSynthesisFailure

logger = logging.getLogger(__name__)

OFFSCREEN_DPI = 100


@dataclass
class OverlayTexture:
    """A synthesized RGBA texture.

    Attributes:
        pixels: (height, width, 4) uint8 RGBA buffer, row 0 at the top.
        strategy: Strategy that produced the texture ('render', 'direct' or 'image').
        source: Label of the data the texture was made from.
    """
    pixels: np.ndarray
    strategy: str
    source: str = ""
    released: bool = False

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in texels."""
        return (self.width, self.height)

    def release(self) -> None:
        self.pixels = np.zeros((0, 0, 4), dtype=np.uint8)
        self.released = True


def _colormap(name: str):
    cmap = matplotlib.colormaps[name]
    # nodata (NaN) becomes fully transparent
    return cmap.with_extremes(bad=(0.0, 0.0, 0.0, 0.0))


def _value_range(data: np.ndarray) -> Tuple[float, float]:
    finite = data[np.isfinite(data)]
    if finite.size == 0:
        return 0.0, 1.0
    vmin, vmax = float(finite.min()), float(finite.max())
    if vmin == vmax:
        vmax = vmin + 1.0
    return vmin, vmax


def placeholder_pattern(width: int, height: int) -> np.ndarray:
    """Procedural gradient used while no raster data is available."""
    u = np.linspace(0.0, 1.0, width)[np.newaxis, :]
    v = np.linspace(1.0, 0.0, height)[:, np.newaxis]
    return 0.5 * (u + v)


def to_rgba8(data: np.ndarray, colormap: str = "viridis") -> np.ndarray:
    """Normalise an image buffer to (H, W, 4) uint8 RGBA.

    2D arrays are treated as scalar data and colour-mapped; (H, W, 3) gets an
    opaque alpha channel; float buffers are taken to be in [0, 1].

    Raises:
        TextureSynthesisFailure: if the buffer layout is not an image.
    """
    data = np.asarray(data)

    if data.ndim == 2:
        vmin, vmax = _value_range(data.astype(float))
        norm = Normalize(vmin=vmin, vmax=vmax)
        return _colormap(colormap)(norm(np.ma.masked_invalid(data.astype(float))), bytes=True)

    if data.ndim != 3 or data.shape[2] not in (3, 4):
        raise TextureSynthesisFailure(f"ERROR[to_rgba8]: buffer of shape {data.shape} is not an RGB(A) image")

    if data.dtype == np.uint8:
        rgba = data
    elif np.issubdtype(data.dtype, np.floating):
        rgba = np.round(np.clip(np.nan_to_num(data), 0.0, 1.0) * 255.0).astype(np.uint8)
    else:
        rgba = np.clip(data, 0, 255).astype(np.uint8)

    if rgba.shape[2] == 3:
        alpha = np.full(rgba.shape[:2] + (1,), 255, dtype=np.uint8)
        rgba = np.concatenate([rgba, alpha], axis=2)
    return np.ascontiguousarray(rgba)


def _fit(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    # Agg may round the canvas by one pixel; resample to the requested size
    if pixels.shape[:2] == (height, width):
        return pixels
    rows = np.minimum((np.arange(height) * pixels.shape[0]) // height, pixels.shape[0] - 1)
    cols = np.minimum((np.arange(width) * pixels.shape[1]) // width, pixels.shape[1] - 1)
    return pixels[rows][:, cols]


class OverlayTextureSynthesizer:
    """Produces overlay textures from raster data.

    Args:
        strategy: 'render' or 'direct'.
        texture_size: (width, height) of textures produced by 'render'.
        colormap: Matplotlib colormap name used to shade scalar data.
    """

    def __init__(self, strategy: str = "render", texture_size: Tuple[int, int] = (512, 512), colormap: str = "viridis"):
        assert_valid_argument("OverlayTextureSynthesizer", strategy, TEXTURE_STRATEGIES)
        if texture_size[0] <= 0 or texture_size[1] <= 0:
            raise ValueError(f"ERROR[OverlayTextureSynthesizer]: invalid texture size {texture_size}")

        self.strategy = strategy
        self.texture_size = (int(texture_size[0]), int(texture_size[1]))
        self.colormap = colormap

        # number of offscreen targets currently held
        self.active_targets = 0

    @classmethod
    def from_config(cls, config) -> "OverlayTextureSynthesizer":
        return cls(strategy=config.texture_strategy, texture_size=config.texture_size, colormap=config.colormap)

    def synthesize(self, data: Optional[np.ndarray] = None, source: str = "", strategy: Optional[str] = None) -> OverlayTexture:
        """Create a texture.

        Args:
            data: Decoded raster (2D) or image buffer. None draws the
                  placeholder pattern ('render' only).
            source: Label stored on the texture.
            strategy: Override of the configured strategy.

        Raises:
            TextureSynthesisFailure: if the texture cannot be produced.
        """
        strategy = strategy if strategy is not None else self.strategy
        assert_valid_argument("OverlayTextureSynthesizer.synthesize", strategy, TEXTURE_STRATEGIES)

        if strategy == "direct":
            if data is None:
                raise TextureSynthesisFailure(
                    "ERROR[OverlayTextureSynthesizer]: direct upload requires a buffer"
                )
            pixels = to_rgba8(data, self.colormap)
        else:
            pixels = self._render(data)

        logger.debug("Synthesized %s texture %dx%d for '%s'", strategy, pixels.shape[1], pixels.shape[0], source)
        return OverlayTexture(pixels=pixels, strategy=strategy, source=source)

    # =========================================================================
    # render-to-texture
    # =========================================================================

    @contextmanager
    def _offscreen_target(self):
        """Acquire an offscreen Agg figure; restore the active pyplot figure on exit."""
        previous = plt.gcf() if plt.get_fignums() else None
        width, height = self.texture_size

        fig = Figure(figsize=(width / OFFSCREEN_DPI, height / OFFSCREEN_DPI), dpi=OFFSCREEN_DPI)
        canvas = FigureCanvasAgg(fig)
        self.active_targets += 1
        try:
            yield fig, canvas
        finally:
            fig.clear()
            self.active_targets -= 1
            if previous is not None and plt.fignum_exists(previous.number):
                plt.figure(previous.number)

    def _render(self, data: Optional[np.ndarray]) -> np.ndarray:
        width, height = self.texture_size
        try:
            with self._offscreen_target() as (fig, canvas):
                fig.patch.set_alpha(0.0)
                ax = fig.add_axes([0.0, 0.0, 1.0, 1.0])
                ax.set_axis_off()
                ax.set_facecolor((0.0, 0.0, 0.0, 0.0))

                if data is None:
                    image = placeholder_pattern(width, height)
                    vmin, vmax = 0.0, 1.0
                else:
                    image = np.ma.masked_invalid(np.asarray(data, dtype=float))
                    vmin, vmax = _value_range(np.asarray(data, dtype=float))

                ax.imshow(
                    image,
                    cmap=_colormap(self.colormap),
                    vmin=vmin,
                    vmax=vmax,
                    origin="upper",
                    aspect="auto",
                    interpolation="nearest",
                    extent=(0.0, 1.0, 0.0, 1.0),
                )
                ax.set_xlim(0.0, 1.0)
                ax.set_ylim(0.0, 1.0)

                canvas.draw()
                pixels = np.array(canvas.buffer_rgba(), dtype=np.uint8, copy=True)
        except TextureSynthesisFailure:
            raise
        except (TypeError, ValueError, KeyError, RuntimeError, MemoryError) as e:
            raise TextureSynthesisFailure(f"ERROR[OverlayTextureSynthesizer]: render to texture failed: {e}") from e

        return _fit(pixels, width, height)

    def __repr__(self) -> str:
        return f"OverlayTextureSynthesizer(strategy='{self.strategy}', texture_size={self.texture_size})"


def load_base_texture(path: str, colormap: str = "viridis") -> OverlayTexture:
    """Load the base surface image.

    Raises:
        AssetUnavailable: if the image cannot be read.
    """
    try:
        image = iio.imread(str(path))
    except (OSError, ValueError) as e:
        raise AssetUnavailable(f"ERROR[load_base_texture]: cannot read '{path}': {e}") from e

    if image.ndim == 3 and image.shape[2] not in (3, 4):
        image = image[..., :3]
    return OverlayTexture(pixels=to_rgba8(image, colormap), strategy="image", source=str(path))
