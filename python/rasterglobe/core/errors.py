# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Error kinds raised by the ingestion, transform and synthesis pipeline.

Each error also derives from the closest builtin exception so that callers
that only know about ``OSError``/``ValueError`` still catch them.
"""


class RasterGlobeError(Exception):
    """Base class for all rasterglobe errors."""


class AssetUnavailable(RasterGlobeError, OSError):
    """A raster or image resource could not be read (network/IO failure)."""


class InvalidMetadata(RasterGlobeError, ValueError):
    """Georeferencing tags are missing or have the wrong number of elements."""


class DegenerateTransform(RasterGlobeError, ArithmeticError):
    """Affine coefficients are not invertible (determinant is ~0)."""


class TextureSynthesisFailure(RasterGlobeError, RuntimeError):
    """The offscreen render target could not be acquired or drawn."""
