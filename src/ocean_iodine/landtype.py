"""Surface type classification from fractional land cover."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

# Fraction above which a surface class claims the cell.
DOMINANT_FRACTION = 0.5


class SurfaceType(IntEnum):
    WATER = 0
    LAND = 1
    ICE = 2


def classify_surface(
    frland: np.ndarray,
    frlandic: np.ndarray,
    frocean: np.ndarray,
    frseaice: np.ndarray,
    frlake: np.ndarray,
) -> np.ndarray:
    """Return an integer array of :class:`SurfaceType` codes.

    Ice (sea ice plus land ice) takes precedence, then open water (ocean plus
    lake); anything else is land. ``frland`` is accepted for interface
    symmetry with the host geo tools; land is the remainder class.
    """
    frland = np.asarray(frland, dtype=np.float64)
    ice = (np.asarray(frseaice, dtype=np.float64)
           + np.asarray(frlandic, dtype=np.float64)) > DOMINANT_FRACTION
    water = (np.asarray(frocean, dtype=np.float64)
             + np.asarray(frlake, dtype=np.float64)) > DOMINANT_FRACTION
    codes = np.full(frland.shape, SurfaceType.LAND, dtype=np.int8)
    codes[water] = SurfaceType.WATER
    codes[ice] = SurfaceType.ICE
    return codes


def ocean_mask(
    frland: np.ndarray,
    frlandic: np.ndarray,
    frocean: np.ndarray,
    frseaice: np.ndarray,
    frlake: np.ndarray,
) -> np.ndarray:
    return (
        classify_surface(frland, frlandic, frocean, frseaice, frlake)
        == SurfaceType.WATER
    )


__all__ = ["DOMINANT_FRACTION", "SurfaceType", "classify_surface", "ocean_mask"]
