# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

import asyncio
import logging
import threading

import imageio.v3 as iio
import numpy as np
import pytest
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from rasterglobe.core import DegenerateTransform
from rasterglobe.raster import ArrayBackend, IngestionState
from rasterglobe.scene import ViewerState
from rasterglobe.widgets import ControlPanel, GlobeViewer

LOGGER = logging.getLogger(__name__)


def agg_figure():
    fig = Figure()
    FigureCanvasAgg(fig)
    return fig


class GatedBackend(ArrayBackend):
    def __init__(self, gate):
        super().__init__(np.ones((20, 20)), (0.01, 0.01, 0.0), (0, 0, 0, -100.0, 40.0, 0), name="gated")
        self.gate = gate

    def read_data(self, max_size=None):
        self.gate.wait(5)
        return super().read_data(max_size)


class TestControlPanel:
    """
    This class contains unit tests for the two-way widget binding.
    """

    def test_widgets_write_state(self, small_config):
        state = ViewerState.from_config(small_config)
        panel = ControlPanel(state, small_config.layer_names)

        panel.w_scale["y"].value = 3.0
        panel.w_layers["cow"].value = False

        assert state.scale.scale_y == 3.0
        assert state.layers["cow"] is False
        assert set(panel.w_layers) == set(small_config.layer_names)

    def test_refresh_pushes_state_to_widgets(self, small_config):
        state = ViewerState.from_config(small_config)
        panel = ControlPanel(state, small_config.layer_names)

        state.set_scale("x", 10.0)
        state.set_layer("methane", False)
        panel.refresh()

        assert panel.w_scale["x"].value == 5.0
        assert panel.w_layers["methane"].value is False

    def test_folders(self, small_config):
        panel = ControlPanel(ViewerState.from_config(small_config), small_config.layer_names)

        assert panel.layout.get_title(0) == "Scale"
        assert panel.layout.get_title(1) == "Layer"
        assert panel.w_scale["z"].min == 0.1
        assert panel.w_scale["z"].max == 5.0


class TestGlobeViewer:
    """
    End to end tests of the viewer: ingestion -> transform -> texture -> composer -> render loop.
    """

    def make_viewer(self, config, **kwargs):
        return GlobeViewer(config, figure=agg_figure(), show=False, **kwargs)

    def test_methane_overlay_end_to_end(self, small_config, methane_tiff):
        async def scenario():
            viewer = self.make_viewer(small_config)
            dataset = await viewer.load_overlay("methane", methane_tiff)
            viewer.tick()
            return viewer, dataset

        viewer, dataset = asyncio.run(scenario())
        LOGGER.info(f"overlay dataset: {dataset}")

        transform = dataset.transform
        assert transform.forward(1000, 1000) == pytest.approx((-90.0, 30.0))
        assert dataset.bounding_box.as_tuple() == pytest.approx((-100.0, 30.0, -90.0, 40.0))
        assert transform.inverse(-95.0, 35.0) == pytest.approx((500.0, 500.0))

        mesh = viewer.composer.mesh("methane")
        assert mesh.renderable
        assert mesh.material.texture.size == small_config.texture_size
        assert viewer.renderer.artist_names == ("surface", "methane")
        assert viewer.overlay_bounds().as_tuple() == pytest.approx((-100.0, 30.0, -90.0, 40.0))
        viewer.close()

    def test_failed_overlay_warns_and_scene_keeps_drawing(self, small_config, tmp_path):
        async def scenario():
            viewer = self.make_viewer(small_config)
            with pytest.warns(UserWarning, match="cow"):
                result = await viewer.load_overlay("cow", tmp_path / "missing.tiff")
            viewer.tick()
            return viewer, result

        viewer, result = asyncio.run(scenario())

        assert result is None
        assert not viewer.composer.mesh("cow").renderable
        assert viewer.renderer.artist_names == ("surface",)
        assert viewer.render_loop.failed_frames == 0
        viewer.close()

    def test_degenerate_transform_propagates(self, small_config):
        backend = ArrayBackend(np.ones((4, 4)), (0.01, 0.0, 0.0), (0, 0, 0, 0.0, 0.0, 0), name="flat")

        async def scenario():
            viewer = self.make_viewer(small_config)
            try:
                with pytest.raises(DegenerateTransform):
                    await viewer.load_overlay("methane", backend)
            finally:
                viewer.close()

        asyncio.run(scenario())

    def test_unknown_overlay_layer_is_rejected(self, small_config):
        async def scenario():
            viewer = self.make_viewer(small_config)
            try:
                with pytest.raises(ValueError):
                    await viewer.load_overlay("surface", "anything.tiff")
            finally:
                viewer.close()

        asyncio.run(scenario())

    def test_close_cancels_pending_ingestion_and_stops_loop(self, small_config):
        gate = threading.Event()
        backend = GatedBackend(gate)

        async def scenario():
            viewer = self.make_viewer(small_config.with_changes(frame_interval=0.001))
            viewer.start()
            task = viewer.schedule_overlay("methane", backend)
            await asyncio.sleep(0.02)

            assert viewer.render_loop.running
            assert viewer.ingestion.state(backend) is IngestionState.LOADING

            viewer.close()
            gate.set()
            with pytest.raises(asyncio.CancelledError):
                await task
            return viewer

        viewer = asyncio.run(scenario())

        assert viewer.closed
        assert not viewer.render_loop.running
        assert viewer.ingestion.dataset(backend) is None
        assert not viewer.composer.mesh("methane").renderable
        assert viewer.render_loop.frame_count > 0
        with pytest.raises(RuntimeError):
            viewer.tick()

    def test_layer_and_scale_through_viewer(self, small_config):
        viewer = self.make_viewer(small_config)

        viewer.set_layer("someCrop", False)
        assert viewer.set_scale("z", 0.0) == 0.1
        viewer.tick()

        assert viewer.panel.w_layers["someCrop"].value is False
        assert viewer.panel.w_scale["z"].value == 0.1
        assert not viewer.composer.mesh("someCrop").visible
        assert viewer.composer.scale == (1.0, 1.0, 0.1)
        viewer.close()

    def test_initial_viewport_and_resize_notification(self, small_config):
        viewer = self.make_viewer(small_config.with_changes(pixel_ratio=4.0))

        assert viewer.state.viewport.pixel_ratio == 2.0
        assert viewer.renderer.surface_size == (1600, 1200)

        viewer.renderer.fig.set_size_inches(5.0, 2.5)
        viewer.viewport.on_window_resize()

        assert (viewer.state.viewport.width, viewer.state.viewport.height) == (500, 250)
        assert viewer.camera.aspect == pytest.approx(2.0)
        viewer.close()

    def test_base_texture(self, small_config, tmp_path):
        path = tmp_path / "earth.png"
        iio.imwrite(path, np.full((4, 8, 3), 90, dtype=np.uint8))

        viewer = self.make_viewer(small_config, base_texture=str(path))
        assert viewer.composer.base.material.texture.size == (8, 4)

        with pytest.warns(UserWarning):
            assert viewer.set_base_texture(str(tmp_path / "missing.png")) is None
        viewer.close()
