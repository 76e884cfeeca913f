# -*- coding: utf-8 -*-
"""
Impasto: Kubelka-Munk colorant mixing and colorimetry
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Spectral Basis
==============
Reference tables and the immutable configuration every engine is built on.

A ``SpectralBasis`` bundles one wavelength grid with the colour-matching
functions and illuminant sampled on that same grid.  It also carries the
pre-normalised tristimulus weighting matrix, so integrating a reflectance
curve is a single dot product.

Normalisation Convention:
    The weights are scaled by

        k = 100 / Σ S(λ) · ȳ(λ)

    which maps the perfect reflecting diffuser to Y = 100.  The wavelength
    step Δλ appears in both numerator and denominator of the rectangle rule
    and cancels, so it is never multiplied in.  This only holds for evenly
    spaced grids, which is why uneven grids are rejected.

References:
    - CIE 15:2004 "Colorimetry" (1931 2° observer, D65 at 10 nm).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Optional, Sequence, TypeAlias, Union

import numpy as np
import numpy.typing as npt
from scipy.interpolate import Akima1DInterpolator, CubicSpline, PchipInterpolator

__all__ = [
    "ArrayFloat",
    "ArrayLike",
    "DEFAULT_WAVELENGTHS",
    "CIE1931_2DEG_CMFS",
    "D65_SPD",
    "SpectralBasis",
    "resample_curve",
]

# --- Type Aliases ---
ArrayFloat: TypeAlias = npt.NDArray[np.floating]
ArrayLike: TypeAlias = Union[ArrayFloat, Sequence[float]]

# --- Reference Tables ---

# 31 samples, 400–700 nm at 10 nm.
DEFAULT_WAVELENGTHS: Final[ArrayFloat] = np.arange(400.0, 701.0, 10.0)

# CIE 1931 2° standard observer, columns x̄, ȳ, z̄.
_CMF_X = [
    0.0143, 0.0435, 0.1344, 0.2839, 0.3483, 0.3362, 0.2908, 0.1954, 0.0956, 0.0320,
    0.0049, 0.0093, 0.0633, 0.1655, 0.2904, 0.4334, 0.5945, 0.7621, 0.9163, 1.0263,
    1.0622, 1.0026, 0.8544, 0.6424, 0.4479, 0.2835, 0.1649, 0.0874, 0.0468, 0.0227,
    0.0114,
]
_CMF_Y = [
    0.0004, 0.0012, 0.0040, 0.0116, 0.0230, 0.0380, 0.0600, 0.0910, 0.1390, 0.2080,
    0.3230, 0.5030, 0.7100, 0.8620, 0.9540, 0.9950, 0.9950, 0.9520, 0.8700, 0.7570,
    0.6310, 0.5030, 0.3810, 0.2650, 0.1750, 0.1070, 0.0610, 0.0320, 0.0170, 0.0082,
    0.0041,
]
_CMF_Z = [
    0.0679, 0.2074, 0.6456, 1.3856, 1.7471, 1.7721, 1.6692, 1.2876, 0.8130, 0.4652,
    0.2720, 0.1582, 0.0782, 0.0422, 0.0203, 0.0087, 0.0039, 0.0021, 0.0017, 0.0011,
    0.0008, 0.0003, 0.0002, 0.0000, 0.0000, 0.0000, 0.0000, 0.0000, 0.0000, 0.0000,
    0.0000,
]
CIE1931_2DEG_CMFS: Final[ArrayFloat] = np.column_stack((_CMF_X, _CMF_Y, _CMF_Z))

# CIE standard illuminant D65, relative to 1.0 at 560 nm.
D65_SPD: Final[ArrayFloat] = np.array([
    0.827549, 0.914860, 0.934318, 0.866823, 1.048650, 1.170080, 1.178120, 1.148610,
    1.159230, 1.088110, 1.093540, 1.078020, 1.047900, 1.076890, 1.044050, 1.040460,
    1.000000, 0.963342, 0.957880, 0.886856, 0.900062, 0.895991, 0.876987, 0.832886,
    0.836992, 0.800268, 0.802146, 0.822778, 0.782842, 0.697213, 0.716091,
], dtype=np.float64)

for _table in (DEFAULT_WAVELENGTHS, CIE1931_2DEG_CMFS, D65_SPD):
    _table.flags.writeable = False
del _table


# =============================================================================
# 1. VALIDATION HELPERS
# =============================================================================

def _frozen_array(values: ArrayLike, label: str, ndim: int) -> ArrayFloat:
    """Copy *values* to a read-only float64 array of the given rank."""
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != ndim:
        raise ValueError(f"{label} must be {ndim}-D, got shape {arr.shape}.")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{label} contains non-finite values.")
    arr.flags.writeable = False
    return arr


def _validate_grid(wavelengths: ArrayFloat) -> None:
    if wavelengths.size < 2:
        raise ValueError(
            f"Wavelength grid needs at least 2 samples, got {wavelengths.size}."
        )
    steps = np.diff(wavelengths)
    if not np.all(steps > 0):
        raise ValueError("Wavelength grid must be strictly monotonically increasing.")
    if not np.allclose(steps, steps[0], rtol=1e-9, atol=1e-9):
        raise ValueError(
            "Wavelength grid must be evenly spaced; the Y-normalisation "
            "relies on a constant step."
        )


# =============================================================================
# 2. RESAMPLING
# =============================================================================

def resample_curve(
    wavelengths: ArrayLike,
    values: ArrayLike,
    target: ArrayLike,
    method: str = "pchip",
) -> ArrayFloat:
    """
    Resample a tabulated curve onto *target* wavelengths.

    Args:
        wavelengths: Source grid (nm), strictly increasing.
        values: Source samples, same length as *wavelengths*.  A 2-D array
                of shape (N, K) resamples K columns at once.
        target: Destination grid (nm).  Must lie within the source range;
                extrapolating a reflectance curve is refused.
        method: 'linear', 'pchip' (default, shape preserving),
                'cubicspline' or 'akima'.

    Returns:
        Samples at *target*, shape (len(target),) or (len(target), K).
    """
    wl = np.asarray(wavelengths, dtype=np.float64)
    vals = np.asarray(values, dtype=np.float64)
    tgt = np.asarray(target, dtype=np.float64)

    if wl.ndim != 1 or vals.shape[0] != wl.shape[0]:
        raise ValueError(
            f"Length mismatch: values {vals.shape} vs wavelengths {wl.shape}."
        )
    if wl.size > 1 and not np.all(np.diff(wl) > 0):
        raise ValueError("Source wavelengths must be strictly increasing.")
    if tgt.size and (tgt.min() < wl[0] - 1e-9 or tgt.max() > wl[-1] + 1e-9):
        raise ValueError(
            f"Target range [{tgt.min():.2f}, {tgt.max():.2f}] nm lies outside "
            f"the tabulated range [{wl[0]:.2f}, {wl[-1]:.2f}] nm."
        )

    if method == "linear":
        if vals.ndim == 1:
            return np.interp(tgt, wl, vals)
        return np.column_stack([np.interp(tgt, wl, col) for col in vals.T])

    methods = {
        "pchip": lambda w, v: PchipInterpolator(w, v, axis=0, extrapolate=False),
        "cubicspline": lambda w, v: CubicSpline(w, v, axis=0, extrapolate=False),
        "akima": lambda w, v: Akima1DInterpolator(w, v, axis=0),
    }
    if method not in methods:
        raise ValueError(
            f"Unknown interpolation type '{method}'. "
            f"Choose from: {['linear', *methods.keys()]}"
        )
    # Clip guards the end points against round-off pushing them out of range.
    return methods[method](wl, vals)(np.clip(tgt, wl[0], wl[-1]))


# =============================================================================
# 3. SPECTRAL BASIS
# =============================================================================

@dataclass(slots=True, frozen=True, eq=False)
class SpectralBasis:
    """
    Immutable wavelength grid + observer + illuminant.

    All arrays are copied and flagged read-only on construction, so a basis
    can be shared freely between engines and threads.

    Attributes:
        wavelengths: (N,) grid in nm, strictly increasing, evenly spaced.
        cmfs: (N, 3) colour-matching functions x̄, ȳ, z̄.
        illuminant: (N,) relative spectral power distribution.
        observer_name: Label for the observer.
        illuminant_name: Label for the illuminant.
        tristimulus_weights: (N, 3) derived matrix ``k · S(λ) · cmf(λ)``.
    """
    wavelengths: ArrayFloat
    cmfs: ArrayFloat
    illuminant: ArrayFloat
    observer_name: str = "CIE 1931 2 Degree Standard Observer"
    illuminant_name: str = "D65"
    tristimulus_weights: ArrayFloat = field(init=False, repr=False)

    def __post_init__(self) -> None:
        wl = _frozen_array(self.wavelengths, "wavelengths", 1)
        _validate_grid(wl)
        cmfs = _frozen_array(self.cmfs, "cmfs", 2)
        illum = _frozen_array(self.illuminant, "illuminant", 1)

        if cmfs.shape != (wl.size, 3):
            raise ValueError(
                f"CMFs must be shape ({wl.size}, 3), got {cmfs.shape}."
            )
        if illum.shape != wl.shape:
            raise ValueError(
                f"Illuminant length {illum.size} != wavelength length {wl.size}."
            )

        denom = float(np.sum(illum * cmfs[:, 1]))
        if denom <= 0.0:
            raise ValueError("Illuminant and ȳ have no overlap; cannot normalise Y.")

        weights = cmfs * illum[:, np.newaxis] * (100.0 / denom)
        weights.flags.writeable = False

        object.__setattr__(self, "wavelengths", wl)
        object.__setattr__(self, "cmfs", cmfs)
        object.__setattr__(self, "illuminant", illum)
        object.__setattr__(self, "tristimulus_weights", weights)

    @classmethod
    def default(cls, wavelengths: Optional[ArrayLike] = None) -> SpectralBasis:
        """
        CIE 1931 2° / D65 basis.

        With no argument the bundled 400–700 nm / 10 nm tables are used as
        they are.  Any other grid gets the tables resampled with PCHIP and
        must lie within 400–700 nm.
        """
        if wavelengths is None:
            return cls(DEFAULT_WAVELENGTHS, CIE1931_2DEG_CMFS, D65_SPD)

        wl = np.asarray(wavelengths, dtype=np.float64)
        if wl.shape == DEFAULT_WAVELENGTHS.shape and np.array_equal(wl, DEFAULT_WAVELENGTHS):
            return cls(DEFAULT_WAVELENGTHS, CIE1931_2DEG_CMFS, D65_SPD)

        if wl.ndim != 1:
            raise ValueError(f"wavelengths must be 1-D, got shape {wl.shape}.")
        _validate_grid(wl)
        cmfs = resample_curve(DEFAULT_WAVELENGTHS, CIE1931_2DEG_CMFS, wl)
        illum = resample_curve(DEFAULT_WAVELENGTHS, D65_SPD, wl)
        # PCHIP never overshoots, but z̄ sits on exact zeros in the red.
        return cls(wl, np.maximum(cmfs, 0.0), illum)

    @property
    def size(self) -> int:
        """Number of grid samples, N."""
        return int(self.wavelengths.size)

    @property
    def interval(self) -> float:
        """Grid step in nm."""
        return float(self.wavelengths[1] - self.wavelengths[0])

    @property
    def white_point(self) -> ArrayFloat:
        """XYZ of the perfect reflecting diffuser (Y = 100)."""
        return self.tristimulus_weights.sum(axis=0)

    def __repr__(self) -> str:
        return (
            f"SpectralBasis(observer='{self.observer_name}', "
            f"illuminant='{self.illuminant_name}', wl_points={self.size}, "
            f"range=[{self.wavelengths[0]:.2f}, {self.wavelengths[-1]:.2f}])"
        )
