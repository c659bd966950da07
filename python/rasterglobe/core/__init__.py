# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

from . import asserts
from . import config
from . import errors

from .config import ViewerConfig
from .errors import (
    RasterGlobeError,
    AssetUnavailable,
    InvalidMetadata,
    DegenerateTransform,
    TextureSynthesisFailure,
)
