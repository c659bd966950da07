# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

import numpy as np
import pytest
import tifffile

from rasterglobe.core import AssetUnavailable, InvalidMetadata
from rasterglobe.raster import ArrayBackend, GeoTiffBackend, RasterBackend, read_geotiff_tags
from rasterglobe.testing import make_test_raster, write_geotiff

PIXEL_SCALE_CODE = 33550
TIE_POINT_CODE = 33922


class TestGeoTiffBackend:
    """
    This class contains unit tests for reading GeoTIFF files.
    """

    def test_read_raw_tags(self, methane_tiff):
        pixel_scale, tie_point = read_geotiff_tags(str(methane_tiff))

        assert pixel_scale == pytest.approx((0.01, 0.01, 0.0))
        assert tie_point == pytest.approx((0.0, 0.0, 0.0, -100.0, 40.0, 0.0))

    def test_first_of_several_tie_points_is_used(self, tmp_path):
        path = str(tmp_path / "tiepoints.tiff")
        tifffile.imwrite(
            path,
            np.zeros((10, 10), dtype=np.float32),
            extratags=[
                (PIXEL_SCALE_CODE, 12, 3, (0.5, 0.5, 0.0)),
                (TIE_POINT_CODE, 12, 12, (0, 0, 0, 10.0, 50.0, 0, 10, 10, 0, 15.0, 45.0, 0)),
            ],
        )

        pixel_scale, tie_point = read_geotiff_tags(path)
        assert tie_point == pytest.approx((0.0, 0.0, 0.0, 10.0, 50.0, 0.0))

        with GeoTiffBackend(path) as backend:
            dataset = backend.to_dataset()
        assert dataset.bounding_box.as_tuple() == pytest.approx((10.0, 45.0, 15.0, 50.0))

    def test_malformed_tie_point_tag_raises_invalid_metadata(self, tmp_path):
        path = str(tmp_path / "malformed.tiff")
        tifffile.imwrite(
            path,
            np.zeros((10, 10), dtype=np.float32),
            extratags=[
                (PIXEL_SCALE_CODE, 12, 3, (0.5, 0.5, 0.0)),
                (TIE_POINT_CODE, 12, 7, (0, 0, 0, 10.0, 50.0, 0, 1)),
            ],
        )

        assert len(read_geotiff_tags(path)[1]) == 7
        with GeoTiffBackend(path) as backend:
            with pytest.raises(InvalidMetadata):
                backend.to_dataset()

    def test_to_dataset(self, methane_tiff):
        with GeoTiffBackend(str(methane_tiff)) as backend:
            dataset = backend.to_dataset()
            assert backend.shape == (1000, 1000)
            assert backend.is_local

        assert dataset.bounding_box.as_tuple() == pytest.approx((-100.0, 30.0, -90.0, 40.0))
        assert dataset.transform.forward(1000, 1000) == pytest.approx((-90.0, 30.0))

    def test_tags_from_transform_match_raw_tags(self, methane_tiff):
        with GeoTiffBackend(str(methane_tiff)) as backend:
            pixel_scale, tie_point = backend._tags_from_transform()

        assert pixel_scale == pytest.approx((0.01, 0.01, 0.0))
        assert tie_point == pytest.approx((0.0, 0.0, 0.0, -100.0, 40.0, 0.0))

    def test_read_data_downsamples_and_converts_nodata(self, tmp_path):
        data = make_test_raster(400, 200, nodata=-9999.0)
        path = write_geotiff(tmp_path / "nodata.tiff", data, nodata=-9999.0)

        with GeoTiffBackend(str(path)) as backend:
            full = backend.read_data()
            small = backend.read_data(max_size=(50, 50))

        assert full.dtype == np.float32
        assert full.shape == (200, 400)
        assert np.isnan(full[0, 0])
        assert np.isfinite(full[100, 200])
        assert small.shape == (25, 50)

    def test_missing_file_raises_asset_unavailable(self, tmp_path):
        with pytest.raises(AssetUnavailable):
            GeoTiffBackend(str(tmp_path / "missing.tiff"))

        with pytest.raises(AssetUnavailable):
            read_geotiff_tags(str(tmp_path / "missing.tiff"))


class TestArrayBackend:
    def test_array_backend_dataset_and_decimation(self):
        backend = ArrayBackend(np.arange(100.0).reshape(10, 10), (1.0, 1.0, 0.0), (0, 0, 0, 0.0, 10.0, 0), name="ramp")

        dataset = backend.to_dataset()
        assert dataset.source == "ramp"
        assert dataset.bounding_box.as_tuple() == (0.0, 0.0, 10.0, 10.0)

        small = backend.read_data(max_size=(5, 5))
        assert small.shape == (5, 5)
        assert small[0, 0] == 0.0
        assert small[1, 1] == 22.0

    def test_missing_tags_raise_invalid_metadata(self):
        backend = ArrayBackend(np.zeros((4, 4)), None, (0, 0, 0, 0.0, 0.0, 0))
        with pytest.raises(InvalidMetadata):
            backend.to_dataset()

    def test_non_2d_data_is_rejected(self):
        with pytest.raises(ValueError):
            ArrayBackend(np.zeros((4, 4, 3)), (1.0, 1.0, 0.0), (0, 0, 0, 0.0, 0.0, 0))

    def test_compute_output_shape_keeps_aspect_and_never_upsamples(self):
        assert RasterBackend.compute_output_shape((1000, 500), None) == (1000, 500)
        assert RasterBackend.compute_output_shape((1000, 500), (100, 100)) == (100, 50)
        assert RasterBackend.compute_output_shape((10, 5), (100, 100)) == (10, 5)
