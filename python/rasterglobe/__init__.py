# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

# Python folders
from . import core
from . import raster
from . import scene
from . import widgets
from . import testing

__version__ = "0.1.0"
