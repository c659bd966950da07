# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Scene composition.

The SceneComposer holds exactly one SceneMesh per declared layer: the base
surface and one mesh per overlay layer. Meshes are plain data (geometry grid
and material); the renderer turns them into artists. Replacing a mesh's
geometry or material always releases the previous one first.

A mesh owns the texture bound to it and releases it on replacement. A texture
that is already bound to another mesh is copied on binding.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..core.asserts import assert_valid_argument
from ..raster.dataset import RasterDataset
from .geometry import SurfaceGrid, make_grid, make_surface, overlay_grid, sample_texture, world_quads, wrap_repeat
from .state import ScaleFactors
from .texture import OverlayTexture

logger = logging.getLogger(__name__)

BASE_COLOR = (0.55, 0.6, 0.7, 1.0)


@dataclass
class Material:
    """Surface appearance of a mesh.

    Attributes:
        texture: Bound texture, or None for a flat colored surface.
        opacity: Alpha multiplier applied to the texture.
        transparent: True for overlay materials.
        wireframe: Draw edges only.
    """
    texture: Optional[OverlayTexture] = None
    opacity: float = 1.0
    transparent: bool = False
    wireframe: bool = False
    released: bool = False

    def release(self) -> None:
        if self.texture is not None:
            self.texture.release()
        self.texture = None
        self.released = True


class SceneMesh:
    """A renderable object bound to one layer.

    ``version`` increases every time geometry or material are replaced so
    renderers know when to rebuild their artists.
    """

    def __init__(self, name: str, kind: str, geometry: Optional[SurfaceGrid] = None, material: Optional[Material] = None):
        self.name = name
        self.kind = kind
        self.geometry = geometry
        self.material = material
        self.visible = True
        self.dataset: Optional[RasterDataset] = None
        self.version = 0

    @property
    def is_base(self) -> bool:
        return self.kind == "base"

    @property
    def renderable(self) -> bool:
        """Overlays become renderable once a texture is bound."""
        if self.geometry is None or self.material is None:
            return False
        return self.is_base or self.material.texture is not None

    def replace(self, geometry: Optional[SurfaceGrid], material: Optional[Material]) -> None:
        """Release the current geometry and material, then assign the new ones."""
        if self.material is not None and material is not None and self.material.texture is material.texture:
            # rebinding the same texture moves it to the new material
            self.material.texture = None
        self.release()
        self.geometry = geometry
        self.material = material
        self.version += 1

    def release(self) -> None:
        if self.geometry is not None:
            self.geometry.release()
            self.geometry = None
        if self.material is not None:
            self.material.release()
            self.material = None

    def __repr__(self) -> str:
        return f"SceneMesh(name='{self.name}', kind='{self.kind}', visible={self.visible}, renderable={self.renderable})"


class SceneComposer:
    """Builds and holds the meshes of all declared layers.

    Args:
        config: ViewerConfig with the declared layers and surface settings.
    """

    def __init__(self, config):
        self.config = config
        self.surface = make_surface(config)
        self._scale: Tuple[float, float, float] = (1.0, 1.0, 1.0)

        self._meshes: Dict[str, SceneMesh] = {}

        base = SceneMesh(config.base_layer, "base")
        base.replace(self._base_geometry(texture_width=None), Material(wireframe=config.wireframe))
        self._meshes[config.base_layer] = base

        for name in config.overlay_layers:
            self._meshes[name] = SceneMesh(name, "overlay")

    # =========================================================================
    # access
    # =========================================================================

    @property
    def layer_names(self) -> Tuple[str, ...]:
        return tuple(self._meshes)

    @property
    def meshes(self) -> List[SceneMesh]:
        return list(self._meshes.values())

    @property
    def base(self) -> SceneMesh:
        return self._meshes[self.config.base_layer]

    @property
    def scale(self) -> Tuple[float, float, float]:
        return self._scale

    def mesh(self, name: str) -> SceneMesh:
        assert_valid_argument("SceneComposer.mesh", name, self.layer_names)
        return self._meshes[name]

    def renderable_meshes(self) -> List[SceneMesh]:
        """Renderable meshes in draw order: base first, then overlays as declared."""
        return [m for m in self._meshes.values() if m.renderable]

    # =========================================================================
    # per frame
    # =========================================================================

    def sync_visibility(self, layers: Mapping[str, bool]) -> None:
        """Copy layer flags to the meshes.

        Unknown names are ignored; meshes without an entry keep their
        last-known visibility.
        """
        for name, visible in layers.items():
            mesh = self._meshes.get(name)
            if mesh is not None:
                mesh.visible = bool(visible)

    def apply_scale(self, scale: Union[ScaleFactors, Tuple[float, float, float]]) -> bool:
        """Set the overlay scale. Returns True if it changed."""
        if isinstance(scale, ScaleFactors):
            scale = scale.as_tuple()
        scale = tuple(float(s) for s in scale)
        if scale == self._scale:
            return False
        self._scale = scale
        return True

    # =========================================================================
    # mesh (re)building
    # =========================================================================

    def _base_geometry(self, texture_width: Optional[int]) -> SurfaceGrid:
        config = self.config
        if texture_width is None:
            repeat = wrap_repeat(1, None, config.repeat_count)
        else:
            lon_extent = config.lon_range[1] - config.lon_range[0]
            repeat = wrap_repeat(texture_width, config.degrees_per_texel, config.repeat_count, lon_extent)
        return make_grid(config.lon_range, config.lat_range, config.segments, repeat=repeat)

    def set_base_texture(self, texture: OverlayTexture) -> SceneMesh:
        """Bind a base texture; the wrap repeat follows the texture's native width."""
        base = self.base
        base.replace(
            self._base_geometry(texture_width=texture.width),
            Material(texture=self._owned(texture, base), wireframe=self.config.wireframe),
        )
        logger.debug("Base texture %dx%d bound, repeat %.3f", texture.width, texture.height, self.repeat)
        return base

    @property
    def repeat(self) -> float:
        """Current horizontal repeat of the base texture."""
        geometry = self.base.geometry
        if geometry is None or geometry.u.size == 0:
            return 1.0
        return float(geometry.u.max())

    def set_overlay(self, layer: str, dataset: RasterDataset, texture: OverlayTexture) -> SceneMesh:
        """Place a texture over a dataset's bounding box on an overlay layer."""
        mesh = self.mesh(layer)
        if mesh.is_base:
            raise ValueError(f"ERROR[SceneComposer]: '{layer}' is the base layer, use set_base_texture")

        mesh.replace(
            overlay_grid(dataset.bounding_box, self.config.segments, self.config.overlay_offset),
            Material(texture=self._owned(texture, mesh), opacity=self.config.opacity, transparent=True),
        )
        mesh.dataset = dataset
        logger.debug("Overlay '%s' placed over %s", layer, dataset.bounding_box.as_tuple())
        return mesh

    def _owned(self, texture: OverlayTexture, mesh: SceneMesh) -> OverlayTexture:
        """Texture to bind on mesh; a copy if another mesh already owns it."""
        for other in self._meshes.values():
            if other is not mesh and other.material is not None and other.material.texture is texture:
                logger.debug("Texture of '%s' copied for '%s'", other.name, mesh.name)
                return OverlayTexture(pixels=texture.pixels.copy(), strategy=texture.strategy, source=texture.source)
        return texture

    def clear_overlay(self, layer: str) -> None:
        mesh = self.mesh(layer)
        if mesh.is_base:
            raise ValueError(f"ERROR[SceneComposer]: '{layer}' is the base layer and cannot be cleared")
        mesh.replace(None, None)
        mesh.dataset = None

    def release(self) -> None:
        """Release all meshes."""
        for mesh in self._meshes.values():
            mesh.release()
            mesh.version += 1

    # =========================================================================
    # render data
    # =========================================================================

    def scaled_geometry(self, mesh: SceneMesh) -> SurfaceGrid:
        """Geometry with the current scale applied (overlays only)."""
        if mesh.is_base or self._scale == (1.0, 1.0, 1.0):
            return mesh.geometry
        return mesh.geometry.scaled(self._scale)

    def quads(self, name: str) -> np.ndarray:
        """World space quads (n_faces, 4, 3) of a renderable mesh."""
        mesh = self.mesh(name)
        if not mesh.renderable:
            raise ValueError(f"ERROR[SceneComposer]: mesh '{name}' is not renderable")
        return world_quads(self.surface, self.scaled_geometry(mesh))

    def face_colors(self, name: str) -> np.ndarray:
        """Per face RGBA colors (n_faces, 4) in [0, 1]."""
        mesh = self.mesh(name)
        if not mesh.renderable:
            raise ValueError(f"ERROR[SceneComposer]: mesh '{name}' is not renderable")

        material = mesh.material
        if material.texture is None:
            return np.tile(np.asarray(BASE_COLOR, dtype=float), (mesh.geometry.n_faces, 1))

        u, v = mesh.geometry.face_uv()
        colors = sample_texture(material.texture.pixels, u, v)
        colors[:, 3] *= material.opacity
        return colors

    def __repr__(self) -> str:
        return f"SceneComposer(layers={self.layer_names}, renderable={[m.name for m in self.renderable_meshes()]})"
