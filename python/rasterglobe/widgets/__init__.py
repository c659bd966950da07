# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

# folders
from .renderer import MatplotlibSceneRenderer
from .controlpanel import ControlPanel
from .globeviewer import GlobeViewer, FigureWindow

__all__ = ["MatplotlibSceneRenderer", "ControlPanel", "GlobeViewer", "FigureWindow"]
