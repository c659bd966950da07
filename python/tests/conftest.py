# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

import matplotlib

matplotlib.use("Agg")

import pytest
import matplotlib.pyplot as plt

from rasterglobe.core import ViewerConfig
from rasterglobe.testing import make_test_raster, write_geotiff


@pytest.fixture
def small_config():
    """Coarse grids and small textures keep rendering tests fast."""
    return ViewerConfig(segments=4, texture_size=(32, 32))


@pytest.fixture
def methane_tiff(tmp_path):
    """1000x1000 GeoTIFF anchored at (-100, 40) with 0.01 degree pixels."""
    return write_geotiff(tmp_path / "methane.tiff", make_test_raster(1000, 1000), west=-100.0, north=40.0)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
