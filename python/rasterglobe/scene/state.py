"""Mutable viewer state.

The state is an explicit, serializable struct passed by reference into the
rendering and control-panel code. The control panel (or programmatic
defaults) writes it, the render loop reads it on every tick. All writes come
from callbacks serialized on the render thread, so no locking is needed.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, Tuple

import numpy as np

AXES = ("x", "y", "z")


@dataclass
class ScaleFactors:
    """User-adjustable overlay scale multipliers.

    Values outside [min_scale, max_scale] are clamped, never rejected.
    """
    scale_x: float = 1.0
    scale_y: float = 1.0
    scale_z: float = 1.0
    min_scale: float = 0.1
    max_scale: float = 5.0

    def __post_init__(self):
        for axis in AXES:
            self.set(axis, getattr(self, f"scale_{axis}"))

    def clamp(self, value: float) -> float:
        return float(np.clip(float(value), self.min_scale, self.max_scale))

    def set(self, axis: str, value: float) -> float:
        """Set one axis ('x', 'y' or 'z') and return the applied value."""
        if axis not in AXES:
            raise ValueError(f"ERROR[ScaleFactors]: unknown axis '{axis}', use any of '{AXES}'")
        applied = self.clamp(value)
        # object.__setattr__ keeps __setattr__ clamping from recursing
        object.__setattr__(self, f"scale_{axis}", applied)
        return applied

    def __setattr__(self, name, value):
        if name.startswith("scale_") and name[6:] in AXES and "max_scale" in self.__dict__:
            value = self.clamp(value)
        object.__setattr__(self, name, value)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.scale_x, self.scale_y, self.scale_z)


@dataclass
class ViewportState:
    """Size of the rendering surface. Written only by the resize handler."""
    width: int = 800
    height: int = 600
    pixel_ratio: float = 1.0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 1.0

    @property
    def physical_size(self) -> Tuple[int, int]:
        """Backing buffer size in device pixels."""
        return (int(round(self.width * self.pixel_ratio)), int(round(self.height * self.pixel_ratio)))


@dataclass
class ViewerState:
    """All mutable state read by the render loop.

    Attributes:
        layers: Mapping layer name -> visible.
        scale: Overlay scale factors.
        viewport: Current viewport size.
    """
    layers: Dict[str, bool] = field(default_factory=dict)
    scale: ScaleFactors = field(default_factory=ScaleFactors)
    viewport: ViewportState = field(default_factory=ViewportState)

    @classmethod
    def from_config(cls, config) -> "ViewerState":
        """Default state for a ViewerConfig: all layers visible, unit scale."""
        return cls(
            layers={name: True for name in config.layer_names},
            scale=ScaleFactors(min_scale=config.min_scale, max_scale=config.max_scale),
            viewport=ViewportState(width=config.width, height=config.height,
                                   pixel_ratio=min(config.pixel_ratio, config.max_pixel_ratio)),
        )

    def set_layer(self, name: str, visible: bool) -> None:
        self.layers[name] = bool(visible)

    def set_layers(self, names: Iterable[str], visible: bool) -> None:
        for name in names:
            self.set_layer(name, visible)

    def set_scale(self, axis: str, value: float) -> float:
        return self.scale.set(axis, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layers": dict(self.layers),
            "scale": {
                "x": self.scale.scale_x,
                "y": self.scale.scale_y,
                "z": self.scale.scale_z,
                "min": self.scale.min_scale,
                "max": self.scale.max_scale,
            },
            "viewport": {
                "width": self.viewport.width,
                "height": self.viewport.height,
                "pixel_ratio": self.viewport.pixel_ratio,
            },
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ViewerState":
        scale = d.get("scale", {})
        viewport = d.get("viewport", {})
        return cls(
            layers={str(k): bool(v) for k, v in d.get("layers", {}).items()},
            scale=ScaleFactors(
                scale_x=scale.get("x", 1.0),
                scale_y=scale.get("y", 1.0),
                scale_z=scale.get("z", 1.0),
                min_scale=scale.get("min", 0.1),
                max_scale=scale.get("max", 5.0),
            ),
            viewport=ViewportState(
                width=viewport.get("width", 800),
                height=viewport.get("height", 600),
                pixel_ratio=viewport.get("pixel_ratio", 1.0),
            ),
        )
