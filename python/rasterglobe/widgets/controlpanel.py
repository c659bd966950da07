# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

from typing import Dict, Sequence

import ipywidgets

from ..scene.state import AXES, ViewerState


class ControlPanel:
    """ipywidgets controls bound to a ViewerState.

    A "Scale" folder holds one slider per axis, a "Layer" folder one checkbox
    per layer. Widget changes are written to the state immediately (last
    write wins); ``refresh`` pushes programmatic state changes back to the
    widgets.
    """

    def __init__(self, state: ViewerState, layer_names: Sequence[str], min_scale: float = 0.1, max_scale: float = 5.0):
        self.state = state
        self._refreshing = False

        self.w_scale: Dict[str, ipywidgets.FloatSlider] = {}
        for axis in AXES:
            w = ipywidgets.FloatSlider(
                description=f"scale{axis.upper()}",
                min=min_scale,
                max=max_scale,
                step=0.01,
                value=getattr(state.scale, f"scale_{axis}"),
                continuous_update=True,
            )
            w.observe(self._make_scale_handler(axis), names=["value"])
            self.w_scale[axis] = w

        self.w_layers: Dict[str, ipywidgets.Checkbox] = {}
        for name in layer_names:
            w = ipywidgets.Checkbox(description=name, value=state.layers.get(name, True))
            w.observe(self._make_layer_handler(name), names=["value"])
            self.w_layers[name] = w

        self.layout = ipywidgets.Accordion(children=[
            ipywidgets.VBox(list(self.w_scale.values())),
            ipywidgets.VBox(list(self.w_layers.values())),
        ])
        self.layout.set_title(0, "Scale")
        self.layout.set_title(1, "Layer")

    def _make_scale_handler(self, axis):
        def handler(change):
            if self._refreshing:
                return
            applied = self.state.set_scale(axis, change["new"])
            if applied != change["new"]:
                self._set_widget(self.w_scale[axis], applied)
        return handler

    def _make_layer_handler(self, name):
        def handler(change):
            if self._refreshing:
                return
            self.state.set_layer(name, change["new"])
        return handler

    def _set_widget(self, widget, value) -> None:
        self._refreshing = True
        try:
            widget.value = value
        finally:
            self._refreshing = False

    def refresh(self) -> None:
        """Update the widgets from the state."""
        for axis, w in self.w_scale.items():
            self._set_widget(w, getattr(self.state.scale, f"scale_{axis}"))
        for name, w in self.w_layers.items():
            if name in self.state.layers:
                self._set_widget(w, self.state.layers[name])
