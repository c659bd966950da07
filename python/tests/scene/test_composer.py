# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

import numpy as np
import pytest

from rasterglobe.raster import RasterDataset
from rasterglobe.scene import OverlayTexture, SceneComposer, ScaleFactors


def opaque_texture(width=8, height=8):
    pixels = np.full((height, width, 4), 255, dtype=np.uint8)
    return OverlayTexture(pixels=pixels, strategy="direct")


def methane_dataset():
    return RasterDataset.from_tags(1000, 1000, (0.01, 0.01, 0.0), (0, 0, 0, -100.0, 40.0, 0))


class TestSceneComposer:
    """
    This class contains unit tests for mesh composition and visibility.
    """

    def test_one_mesh_per_declared_layer(self, small_config):
        composer = SceneComposer(small_config)

        assert composer.layer_names == ("surface", "methane", "cow", "someCrop")
        assert composer.base.renderable
        # overlays exist but have nothing to draw yet
        assert [m.name for m in composer.renderable_meshes()] == ["surface"]
        assert not composer.mesh("methane").renderable

    def test_sync_visibility(self, small_config):
        composer = SceneComposer(small_config)

        # Given layers {methane: true, cow: false}
        composer.sync_visibility({"methane": True, "cow": False})

        # Then
        assert composer.mesh("methane").visible
        assert not composer.mesh("cow").visible

        # toggling one layer leaves the others alone
        composer.sync_visibility({"cow": True})
        assert composer.mesh("cow").visible
        assert composer.mesh("methane").visible

        composer.sync_visibility({"methane": False})
        assert not composer.mesh("methane").visible
        assert composer.mesh("cow").visible

    def test_unknown_and_absent_layers(self, small_config):
        composer = SceneComposer(small_config)
        composer.sync_visibility({"someCrop": False})

        # unknown names are ignored, absent entries keep their last visibility
        composer.sync_visibility({"forest": False})
        assert not composer.mesh("someCrop").visible
        assert composer.mesh("surface").visible

        with pytest.raises(AssertionError):
            composer.mesh("forest")

    def test_set_overlay_places_transparent_patch(self, small_config):
        composer = SceneComposer(small_config)
        dataset = methane_dataset()

        mesh = composer.set_overlay("methane", dataset, opaque_texture())

        assert mesh.renderable
        assert mesh.dataset is dataset
        assert mesh.material.transparent
        assert mesh.geometry.bounding_box.as_tuple() == pytest.approx((-100.0, 30.0, -90.0, 40.0))
        assert np.allclose(composer.face_colors("methane")[:, 3], small_config.opacity)
        assert [m.name for m in composer.renderable_meshes()] == ["surface", "methane"]

    def test_replacing_releases_previous_geometry_and_material(self, small_config):
        composer = SceneComposer(small_config)
        first = composer.set_overlay("methane", methane_dataset(), opaque_texture())
        old_geometry, old_material, old_texture = first.geometry, first.material, first.material.texture
        version = first.version

        composer.set_overlay("methane", methane_dataset(), opaque_texture())

        assert old_geometry.released
        assert old_material.released
        assert old_texture.released
        assert first.version == version + 1

    def test_rebinding_same_texture_keeps_it(self, small_config):
        composer = SceneComposer(small_config)
        texture = opaque_texture()

        composer.set_base_texture(texture)
        composer.set_base_texture(texture)

        assert not texture.released
        assert composer.base.material.texture is texture

    def test_texture_shared_by_two_layers_survives_replacement(self, small_config):
        composer = SceneComposer(small_config)
        texture = opaque_texture()

        composer.set_overlay("methane", methane_dataset(), texture)
        composer.set_overlay("cow", methane_dataset(), texture)
        assert composer.mesh("cow").material.texture is not texture

        composer.set_overlay("methane", methane_dataset(), opaque_texture(width=4))

        assert texture.released
        cow_texture = composer.mesh("cow").material.texture
        assert not cow_texture.released
        assert cow_texture.size == (8, 8)
        assert composer.face_colors("cow").shape == (composer.mesh("cow").geometry.n_faces, 4)

    def test_clear_overlay(self, small_config):
        composer = SceneComposer(small_config)
        composer.set_overlay("cow", methane_dataset(), opaque_texture())
        composer.clear_overlay("cow")

        assert not composer.mesh("cow").renderable
        assert composer.mesh("cow").dataset is None
        with pytest.raises(ValueError):
            composer.clear_overlay("surface")

    def test_base_texture_wrap_repeat(self, small_config):
        composer = SceneComposer(small_config.with_changes(degrees_per_texel=0.5))
        composer.set_base_texture(opaque_texture(width=360))
        assert composer.repeat == pytest.approx(2.0)

        composer = SceneComposer(small_config.with_changes(degrees_per_texel=0.5, repeat_count=3))
        composer.set_base_texture(opaque_texture(width=360))
        assert composer.repeat == pytest.approx(3.0)

    def test_partial_extent_keeps_texel_size(self, small_config):
        config = small_config.with_changes(lon_range=(-180.0, 0.0), degrees_per_texel=0.5)
        composer = SceneComposer(config)
        composer.set_base_texture(opaque_texture(width=360))

        assert composer.repeat == pytest.approx(1.0)
        degrees_per_texel = (config.lon_range[1] - config.lon_range[0]) / (composer.repeat * 360)
        assert degrees_per_texel == pytest.approx(0.5)

    def test_apply_scale_moves_overlay_only(self, small_config):
        composer = SceneComposer(small_config)
        composer.set_overlay("methane", methane_dataset(), opaque_texture())
        base_before = composer.quads("surface")
        overlay_before = composer.quads("methane")

        assert composer.apply_scale(ScaleFactors(scale_x=2.0))
        assert not composer.apply_scale((2.0, 1.0, 1.0))

        assert np.array_equal(composer.quads("surface"), base_before)
        assert not np.allclose(composer.quads("methane"), overlay_before)
        assert composer.scaled_geometry(composer.mesh("methane")).bounding_box.width == pytest.approx(20.0)

    def test_globe_surface(self, small_config):
        composer = SceneComposer(small_config.with_changes(surface="globe"))
        quads = composer.quads("surface")

        assert quads.shape == (16, 4, 3)
        assert np.allclose(np.linalg.norm(quads, axis=2), 0.5)

    def test_release(self, small_config):
        composer = SceneComposer(small_config)
        composer.set_overlay("methane", methane_dataset(), opaque_texture())
        composer.release()

        assert composer.renderable_meshes() == []
