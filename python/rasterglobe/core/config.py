# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Viewer configuration.

All settings are plain keyword defaults so a viewer can be created with
``GlobeViewer()`` and tuned per call, e.g.
``GlobeViewer(ViewerConfig(surface="globe", opacity=0.7))``.
"""

from dataclasses import dataclass, asdict, replace
from typing import Optional, Tuple, Dict, Any

from .asserts import assert_length, assert_valid_argument, assert_in_range

SURFACE_KINDS = ("plane", "globe")
TEXTURE_STRATEGIES = ("render", "direct")


@dataclass(frozen=True)
class ViewerConfig:
    """Static settings for a GlobeViewer.

    Attributes:
        width: Initial viewport width in logical pixels.
        height: Initial viewport height in logical pixels.
        pixel_ratio: Initial device pixel ratio.
        max_pixel_ratio: Upper bound applied to any device pixel ratio.
        fov: Vertical field of view of the perspective camera (degrees).
        near: Near clipping distance.
        far: Far clipping distance.
        camera_position: Initial camera position (x, y, z).
        surface: Base surface kind, 'plane' or 'globe'.
        lon_range: Longitude extent (degrees) covered by the base surface.
        lat_range: Latitude extent (degrees) covered by the base surface.
        segments: Number of subdivisions per axis of the base surface.
        degrees_per_texel: Longitude covered by one texel of the base texture.
            If None, the texture is assumed to span lon_range once.
        repeat_count: Explicit horizontal repeat count (overrides the
            computed wrap repeat).
        base_layer: Layer name controlling the base surface.
        overlay_layers: Layer names of the overlay meshes.
        opacity: Opacity of overlay meshes.
        overlay_offset: Height of overlays above the base surface.
        min_scale: Lower clamp for user scale factors.
        max_scale: Upper clamp for user scale factors.
        texture_strategy: 'render' (render-to-texture) or 'direct' (buffer upload).
        texture_size: Fixed (width, height) of synthesized overlay textures.
        colormap: Matplotlib colormap used to shade raster values.
        frame_interval: Seconds between two render loop ticks.
        wireframe: Draw the base surface as wireframe.
        tilt_deg: Rotation of the plane surface around the x axis (degrees).
    """
    width: int = 800
    height: int = 600
    pixel_ratio: float = 1.0
    max_pixel_ratio: float = 2.0

    fov: float = 75.0
    near: float = 0.1
    far: float = 100.0
    camera_position: Tuple[float, float, float] = (0.0, 0.0, 0.7)

    surface: str = "plane"
    lon_range: Tuple[float, float] = (-180.0, 180.0)
    lat_range: Tuple[float, float] = (-90.0, 90.0)
    segments: int = 128
    degrees_per_texel: Optional[float] = None
    repeat_count: Optional[float] = None

    base_layer: str = "surface"
    overlay_layers: Tuple[str, ...] = ("methane", "cow", "someCrop")
    opacity: float = 0.5
    overlay_offset: float = 0.01

    min_scale: float = 0.1
    max_scale: float = 5.0

    texture_strategy: str = "render"
    texture_size: Tuple[int, int] = (512, 512)
    colormap: str = "viridis"

    frame_interval: float = 1.0 / 60.0
    wireframe: bool = False
    tilt_deg: float = -80.0

    def __post_init__(self):
        assert_valid_argument("ViewerConfig", self.surface, SURFACE_KINDS)
        assert_valid_argument("ViewerConfig", self.texture_strategy, TEXTURE_STRATEGIES)
        assert_length("ViewerConfig", (0, 0), [self.lon_range, self.lat_range, self.texture_size])
        assert_in_range("ViewerConfig", self.opacity, 0.0, 1.0)
        if self.min_scale > self.max_scale:
            raise ValueError(f"min_scale ({self.min_scale}) must be <= max_scale ({self.max_scale})")
        if self.base_layer in self.overlay_layers:
            raise ValueError(f"base layer '{self.base_layer}' must not also be an overlay layer")

    @property
    def layer_names(self) -> Tuple[str, ...]:
        """All declared layers, base first."""
        return (self.base_layer,) + tuple(self.overlay_layers)

    def with_changes(self, **kwargs: Any) -> "ViewerConfig":
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
