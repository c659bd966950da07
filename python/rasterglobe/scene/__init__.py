"""Scene module: everything between a decoded raster and a drawn frame.

- OverlayTextureSynthesizer turns raster data into an RGBA texture
- SceneComposer holds one SceneMesh per declared layer
- ViewportManager keeps the perspective camera in sync with the window
- RenderLoopScheduler ticks the composer and draws frames
- ViewerState is the mutable state shared by all of them

Example:
    from rasterglobe.core import ViewerConfig
    from rasterglobe.scene import SceneComposer, OverlayTextureSynthesizer

    config = ViewerConfig()
    composer = SceneComposer(config)
    texture = OverlayTextureSynthesizer.from_config(config).synthesize(data)
    composer.set_overlay('methane', dataset, texture)
"""

from .state import ViewerState, ScaleFactors, ViewportState
from .geometry import (
    SurfaceGrid,
    PlaneSurface,
    GlobeSurface,
    make_grid,
    make_surface,
    overlay_grid,
    wrap_repeat,
    sample_texture,
    world_quads,
)
from .texture import OverlayTexture, OverlayTextureSynthesizer, load_base_texture, to_rgba8, placeholder_pattern
from .composer import SceneComposer, SceneMesh, Material
from .viewport import PerspectiveCamera, ViewportManager
from .render_loop import RenderLoopScheduler

__all__ = [
    "ViewerState",
    "ScaleFactors",
    "ViewportState",
    "SurfaceGrid",
    "PlaneSurface",
    "GlobeSurface",
    "make_grid",
    "make_surface",
    "overlay_grid",
    "wrap_repeat",
    "sample_texture",
    "world_quads",
    "OverlayTexture",
    "OverlayTextureSynthesizer",
    "load_base_texture",
    "to_rgba8",
    "placeholder_pattern",
    "SceneComposer",
    "SceneMesh",
    "Material",
    "PerspectiveCamera",
    "ViewportManager",
    "RenderLoopScheduler",
]
