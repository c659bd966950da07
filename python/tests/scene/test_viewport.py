# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

from types import SimpleNamespace

import numpy as np
import pytest

from rasterglobe.core import ViewerConfig
from rasterglobe.scene import PerspectiveCamera, ViewportManager, ViewportState


class RecordingSurface:
    """Rendering surface stand-in recording size and pixel ratio calls."""

    def __init__(self):
        self.size = None
        self.pixel_ratio = None
        self.calls = 0

    def set_size(self, width, height):
        self.size = (width, height)
        self.calls += 1

    def set_pixel_ratio(self, ratio):
        self.pixel_ratio = ratio


class TestPerspectiveCamera:
    """
    This class contains unit tests for the perspective camera.
    """

    def test_from_config(self):
        camera = PerspectiveCamera.from_config(ViewerConfig())

        assert camera.fov == 75.0
        assert camera.aspect == pytest.approx(800 / 600)
        assert camera.position == pytest.approx((0.0, 0.0, 0.7), abs=1e-12)
        assert camera.elevation == pytest.approx(90.0)

    def test_projection_matrix(self):
        camera = PerspectiveCamera(fov=90.0, aspect=2.0, near=1.0, far=3.0)
        m = camera.projection_matrix

        assert m[0, 0] == pytest.approx(0.5)
        assert m[1, 1] == pytest.approx(1.0)
        assert m[2, 2] == pytest.approx(-2.0)
        assert m[2, 3] == pytest.approx(-3.0)
        assert m[3, 2] == -1.0

    def test_orbit_and_dolly(self):
        camera = PerspectiveCamera(position=(1.0, 0.0, 0.0))
        camera.orbit(azimuth=90.0)

        assert camera.position == pytest.approx((0.0, 1.0, 0.0), abs=1e-12)

        camera.orbit(elevation=200.0)
        assert camera.elevation == 90.0

        camera.dolly(1000.0)
        assert camera.distance == camera.far

    def test_invalid_clip_planes(self):
        with pytest.raises(ValueError):
            PerspectiveCamera(near=1.0, far=0.5)


class TestViewportManager:
    def make_viewport(self, window=None):
        surface = RecordingSurface()
        viewport = ViewportManager(PerspectiveCamera(), ViewportState(), renderer=surface, window=window)
        return viewport, surface

    def test_resize_is_idempotent(self):
        viewport, surface = self.make_viewport()

        viewport.resize(1024, 768, 1.5)
        projection = viewport.camera.projection_matrix.copy()
        size = viewport.surface_size

        viewport.resize(1024, 768, 1.5)

        assert np.array_equal(viewport.camera.projection_matrix, projection)
        assert viewport.surface_size == size == (1536, 1152)
        assert surface.size == (1024, 768)
        assert viewport.camera.aspect == pytest.approx(1024 / 768)

    def test_pixel_ratio_is_capped(self):
        viewport, surface = self.make_viewport()

        viewport.resize(800, 600, 3.0)

        assert viewport.state.pixel_ratio == 2.0
        assert surface.pixel_ratio == 2.0
        assert viewport.surface_size == (1600, 1200)

    def test_zero_size_keeps_last_state(self):
        viewport, surface = self.make_viewport()
        viewport.resize(800, 600, 1.0)
        viewport.resize(0, 0, 1.0)

        assert (viewport.state.width, viewport.state.height) == (800, 600)
        assert surface.calls == 1

    def test_window_notification_reads_window_itself(self):
        window = SimpleNamespace(width=640, height=480, device_pixel_ratio=2.5)
        viewport, surface = self.make_viewport(window)

        viewport.on_window_resize(object())

        assert surface.size == (640, 480)
        assert viewport.state.pixel_ratio == 2.0
        assert viewport.camera.aspect == pytest.approx(640 / 480)
