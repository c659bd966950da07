# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Interactive viewer showing raster overlays on a plane or globe.

Example:
    from rasterglobe.widgets import GlobeViewer

    viewer = GlobeViewer()
    viewer.schedule_overlay('methane', 'map/methane.tiff')
    viewer.start()
"""

import asyncio
import logging
import warnings
from typing import List, Optional, Tuple

import ipywidgets
from IPython.display import display

from ..core.config import ViewerConfig
from ..core.errors import AssetUnavailable, InvalidMetadata, TextureSynthesisFailure
from ..raster.coordinate_system import BoundingBox
from ..raster.dataset import RasterDataset
from ..raster.ingestion import RasterIngestionService, RasterSource
from ..scene.composer import SceneComposer
from ..scene.render_loop import RenderLoopScheduler
from ..scene.state import ViewerState
from ..scene.texture import OverlayTexture, OverlayTextureSynthesizer, load_base_texture
from ..scene.viewport import PerspectiveCamera, ViewportManager
from .controlpanel import ControlPanel
from .renderer import BASE_DPI, MatplotlibSceneRenderer

logger = logging.getLogger(__name__)


class FigureWindow:
    """Host window view of a matplotlib figure: logical size and device pixel ratio."""

    def __init__(self, fig):
        self.fig = fig

    @property
    def width(self) -> int:
        return int(round(self.fig.get_size_inches()[0] * BASE_DPI))

    @property
    def height(self) -> int:
        return int(round(self.fig.get_size_inches()[1] * BASE_DPI))

    @property
    def device_pixel_ratio(self) -> float:
        return float(getattr(self.fig.canvas, "device_pixel_ratio", 1.0))


class GlobeViewer:
    """Raster overlay viewer.

    Args:
        config: Viewer settings. Defaults to ViewerConfig().
        base_texture: Optional image file used as base surface texture.
        figure: Figure to draw into. If None a pyplot figure is created.
        window: Host window for resize notifications. Defaults to the figure.
        max_size: Maximum (height, width) of decoded raster data.
        show: Display the widget immediately. Default True.
    """

    def __init__(
        self,
        config: Optional[ViewerConfig] = None,
        base_texture: Optional[str] = None,
        figure=None,
        window=None,
        max_size: Optional[Tuple[int, int]] = (2000, 2000),
        show: bool = True,
    ):
        self.config = config if config is not None else ViewerConfig()
        self.state = ViewerState.from_config(self.config)

        self.ingestion = RasterIngestionService(max_size=max_size)
        self.synthesizer = OverlayTextureSynthesizer.from_config(self.config)
        self.composer = SceneComposer(self.config)

        self.camera = PerspectiveCamera.from_config(self.config)
        self.renderer = MatplotlibSceneRenderer(self.composer, self.camera, figure=figure)
        self.viewport = ViewportManager(
            self.camera,
            self.state.viewport,
            renderer=self.renderer,
            window=window if window is not None else FigureWindow(self.renderer.fig),
            max_pixel_ratio=self.config.max_pixel_ratio,
        )
        self.viewport.resize(self.config.width, self.config.height, self.config.pixel_ratio)
        self.renderer.connect_resize(self.viewport.on_window_resize)

        self.render_loop = RenderLoopScheduler(
            self.state, self.composer, self.renderer.draw, frame_interval=self.config.frame_interval
        )

        self.panel = ControlPanel(self.state, self.config.layer_names, self.config.min_scale, self.config.max_scale)
        self.output = ipywidgets.Output()

        self._tasks: List[asyncio.Task] = []
        self._closed = False

        if base_texture is not None:
            self.set_base_texture(base_texture)

        if show:
            self.show()

    # =========================================================================
    # display / lifecycle
    # =========================================================================

    def show(self) -> None:
        layout = []
        canvas = self.renderer.fig.canvas
        if isinstance(canvas, ipywidgets.DOMWidget):
            layout.append(canvas)
        else:
            with self.output:
                display(self.renderer.fig)
        layout.append(self.panel.layout)
        layout.append(self.output)
        display(ipywidgets.VBox(layout))

    def start(self) -> asyncio.Task:
        """Start the render loop on the running event loop."""
        self._check_open()
        return self.render_loop.start()

    def stop(self) -> None:
        self.render_loop.stop()

    def tick(self) -> float:
        """Draw a single frame."""
        self._check_open()
        return self.render_loop.tick()

    def close(self) -> None:
        """Stop drawing, cancel pending ingestion and release the scene."""
        if self._closed:
            return
        self.render_loop.stop()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks.clear()
        self.ingestion.close()
        self.renderer.close()
        self.composer.release()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("ERROR[GlobeViewer]: viewer is closed")

    # =========================================================================
    # content
    # =========================================================================

    def set_base_texture(self, texture) -> Optional[OverlayTexture]:
        """Bind a base texture (OverlayTexture or image path).

        An unreadable image is reported as a warning and the base surface
        keeps its current appearance.
        """
        if not isinstance(texture, OverlayTexture):
            try:
                texture = load_base_texture(texture, self.config.colormap)
            except (AssetUnavailable, TextureSynthesisFailure) as e:
                warnings.warn(f"Failed to load base texture: {e}")
                return None
        self.composer.set_base_texture(texture)
        return texture

    async def load_overlay(self, layer: str, source: RasterSource) -> Optional[RasterDataset]:
        """Ingest a raster and show it on an overlay layer.

        Ingestion and synthesis failures are reported with warnings.warn; the
        overlay is then omitted and the render loop keeps running.

        Returns:
            The dataset, or None if the overlay could not be loaded.
        """
        self._check_open()
        if layer not in self.config.overlay_layers:
            raise ValueError(
                f"ERROR[GlobeViewer]: unknown overlay layer '{layer}', use any of '{self.config.overlay_layers}'"
            )

        try:
            dataset = await self.ingestion.load(source)
            texture = self.synthesizer.synthesize(self.ingestion.data(source), source=dataset.source)
        except (AssetUnavailable, InvalidMetadata, TextureSynthesisFailure) as e:
            warnings.warn(f"Failed to load overlay '{layer}': {e}")
            return None

        if self._closed:
            return None
        self.composer.set_overlay(layer, dataset, texture)
        logger.info("Overlay '%s' shows '%s'", layer, dataset.source)
        return dataset

    def schedule_overlay(self, layer: str, source: RasterSource) -> asyncio.Task:
        """Start load_overlay as a task on the running event loop."""
        task = asyncio.get_running_loop().create_task(self.load_overlay(layer, source))
        self._tasks = [t for t in self._tasks if not t.done()]
        self._tasks.append(task)
        return task

    def clear_overlay(self, layer: str) -> None:
        self.composer.clear_overlay(layer)

    # =========================================================================
    # state
    # =========================================================================

    def set_layer(self, name: str, visible: bool) -> None:
        self.state.set_layer(name, visible)
        self.panel.refresh()

    def set_scale(self, axis: str, value: float) -> float:
        applied = self.state.set_scale(axis, value)
        self.panel.refresh()
        return applied

    def orbit(self, azimuth: float = 0.0, elevation: float = 0.0) -> None:
        self.camera.orbit(azimuth, elevation)

    def overlay_bounds(self) -> Optional[BoundingBox]:
        """Combined bounding box of all placed overlays."""
        boxes = [m.dataset.bounding_box for m in self.composer.meshes if m.dataset is not None]
        if not boxes:
            return None
        return BoundingBox(
            min_lon=min(b.min_lon for b in boxes),
            min_lat=min(b.min_lat for b in boxes),
            max_lon=max(b.max_lon for b in boxes),
            max_lat=max(b.max_lat for b in boxes),
        )

    def __repr__(self) -> str:
        return f"GlobeViewer(layers={self.state.layers}, running={self.render_loop.running}, closed={self._closed})"
