# -*- coding: utf-8 -*-
"""
Impasto: Kubelka-Munk colorant mixing and colorimetry
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Kubelka-Munk Mixing Engine
==========================
Single-constant Kubelka-Munk model for opaque colorant mixtures.

Each reflectance sample R is mapped to the absorption/scattering ratio

    K/S = (1 - R)² / 2R

which is additive across colorants weighted by concentration.  The mixed
K/S is mapped back with the inverse

    R = 1 + K/S - sqrt(K/S · (K/S + 2))

Boundaries:
    R <= 0 maps to ``KS_SENTINEL`` (finite, so weighted sums stay finite)
    and K/S >= ``KS_SENTINEL`` maps back to 0.  R >= 1 maps to 0 and
    K/S <= 0 maps back to exactly 1.

Input leniency:
    Reflectance outside [0, 1] is accepted and folded onto the boundaries
    above, with a warning.  A curve shorter than the grid is zero-filled
    (missing wavelengths count as black), also with a warning.  A curve
    longer than the grid, a negative or non-finite concentration, or a
    non-empty mixture whose concentrations sum to zero raise ``ValueError``.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Final, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
from numba import njit

from impasto_colorengine import (
    REF_WHITE_D65,
    ColorMetrics,
    ColorSpaceEngine,
    SpectralPipeline,
)
from impasto_spectra import ArrayFloat, ArrayLike, SpectralBasis

__all__ = [
    "KS_SENTINEL",
    "MixComponent",
    "ComponentLike",
    "KubelkaMunk",
]

# K/S stand-in for a totally absorbing sample.
KS_SENTINEL: Final[float] = 1.0e6


# =============================================================================
# 1. TRANSFORM KERNELS (Numba Optimized)
# =============================================================================

@njit(cache=True, fastmath=True)
def _reflectance_to_ks(r: float) -> float:
    """Forward Kubelka-Munk transform for one sample."""
    if r <= 0.0:
        return KS_SENTINEL
    if r >= 1.0:
        return 0.0
    return (1.0 - r) * (1.0 - r) / (2.0 * r)


@njit(cache=True, fastmath=True)
def _ks_to_reflectance(ks: float) -> float:
    """Inverse Kubelka-Munk transform for one sample."""
    if ks <= 0.0:
        return 1.0
    if ks >= KS_SENTINEL:
        return 0.0
    # Conjugate of 1 + ks - sqrt(ks(ks + 2)); no cancellation at large K/S.
    return 1.0 / (1.0 + ks + np.sqrt(ks * (ks + 2.0)))


@njit(cache=True, fastmath=True)
def _reflectance_to_ks_kernel(r: ArrayFloat) -> ArrayFloat:
    """1-D vectorised forward transform."""
    out = np.empty_like(r)
    for i in range(r.shape[0]):
        out[i] = _reflectance_to_ks(r[i])
    return out


@njit(cache=True, fastmath=True)
def _ks_to_reflectance_kernel(ks: ArrayFloat) -> ArrayFloat:
    """1-D vectorised inverse transform."""
    out = np.empty_like(ks)
    for i in range(ks.shape[0]):
        out[i] = _ks_to_reflectance(ks[i])
    return out


@njit(cache=True, fastmath=True)
def _mix_kernel(curves: ArrayFloat, weights: ArrayFloat) -> ArrayFloat:
    """
    Concentration-weighted K/S sum per wavelength.

    Args:
        curves: (M, N) reflectance, one row per component.
        weights: (M,) normalised concentrations.

    Returns:
        (N,) mixed reflectance.
    """
    m, n = curves.shape
    out = np.empty(n, dtype=np.float64)
    for j in range(n):
        total = 0.0
        for i in range(m):
            total += weights[i] * _reflectance_to_ks(curves[i, j])
        out[j] = _ks_to_reflectance(total)
    return out


# =============================================================================
# 2. MIXTURE COMPONENTS
# =============================================================================

@dataclass(slots=True, frozen=True, eq=False)
class MixComponent:
    """One colorant in a mixture: a reflectance curve and its relative amount."""
    reflectance: ArrayFloat
    concentration: float

    def __post_init__(self) -> None:
        curve = np.array(self.reflectance, dtype=np.float64)
        if curve.ndim != 1:
            raise ValueError(
                f"MixComponent reflectance must be 1-D, got shape {curve.shape}."
            )
        if not np.all(np.isfinite(curve)):
            raise ValueError("MixComponent reflectance contains non-finite values.")
        conc = float(self.concentration)
        if not np.isfinite(conc) or conc < 0.0:
            raise ValueError(
                f"MixComponent concentration must be finite and >= 0, got {conc}."
            )
        curve.flags.writeable = False
        object.__setattr__(self, "reflectance", curve)
        object.__setattr__(self, "concentration", conc)

    def __repr__(self) -> str:
        return (
            f"MixComponent(concentration={self.concentration:g}, "
            f"wl_points={self.reflectance.shape[0]})"
        )


ComponentLike = Union[MixComponent, Tuple[ArrayLike, float], Mapping[str, object]]


def _as_component(item: ComponentLike) -> MixComponent:
    if isinstance(item, MixComponent):
        return item
    if isinstance(item, tuple) and len(item) == 2:
        return MixComponent(*item)
    if isinstance(item, Mapping):
        return MixComponent(item["reflectance"], item["concentration"])
    raise TypeError(
        f"Unsupported mixture component {type(item).__name__}; expected "
        "MixComponent, a (reflectance, concentration) tuple or a mapping "
        "with those keys."
    )


def _stack_components(
    components: List[MixComponent], n_waves: int
) -> Tuple[ArrayFloat, ArrayFloat]:
    """
    Zero-fill curves onto an (M, N) matrix and normalise concentrations.

    Raises:
        ValueError: Curve longer than the grid, or zero total concentration.
    """
    total = float(sum(c.concentration for c in components))
    if total <= 0.0:
        raise ValueError(
            f"Total concentration of {len(components)} component(s) is zero; "
            "cannot normalise the mixture."
        )

    curves = np.zeros((len(components), n_waves), dtype=np.float64)
    for i, comp in enumerate(components):
        length = comp.reflectance.shape[0]
        if length > n_waves:
            raise ValueError(
                f"Component {i}: reflectance length {length} exceeds the "
                f"wavelength grid length {n_waves}."
            )
        if length < n_waves:
            warnings.warn(
                f"Component {i}: reflectance has {length} of {n_waves} samples; "
                "missing wavelengths are treated as reflectance 0.",
                stacklevel=3,
            )
        curves[i, :length] = comp.reflectance

    if np.any(curves < 0.0) or np.any(curves > 1.0):
        warnings.warn(
            "Reflectance outside [0, 1] was folded onto the Kubelka-Munk "
            "boundaries (R <= 0 is black, R >= 1 is a perfect reflector).",
            stacklevel=3,
        )

    weights = np.array([c.concentration for c in components], dtype=np.float64) / total
    return curves, weights


# =============================================================================
# 3. ENGINE
# =============================================================================

class KubelkaMunk:
    """
    Stateless Kubelka-Munk mixer and colorimeter.

    The engine holds nothing but its immutable ``SpectralBasis``, so a single
    instance can serve concurrent callers, and engines with different grids
    or observers can coexist.

    Args:
        basis: Ready-made spectral configuration.  Defaults to the CIE 1931
               2° observer under D65 on 400–700 nm at 10 nm.
        wavelengths: Alternative grid for the default tables (resampled).
                     Mutually exclusive with *basis*.

    Examples:
        km = KubelkaMunk()
        mixed = km.mix_reflectance([(yellow, 1.0), (cyan, 1.0)])
        km.reflectance_to_hex(mixed)
    """

    __slots__ = ("_basis",)

    def __init__(
        self,
        basis: Optional[SpectralBasis] = None,
        *,
        wavelengths: Optional[ArrayLike] = None,
    ) -> None:
        if basis is not None and wavelengths is not None:
            raise ValueError("Pass either a SpectralBasis or a wavelength grid, not both.")
        if basis is None:
            basis = SpectralBasis.default(wavelengths)
        self._basis = basis

    # -- configuration -----------------------------------------------------
    @property
    def basis(self) -> SpectralBasis:
        return self._basis

    @property
    def wavelengths(self) -> ArrayFloat:
        """The shared wavelength grid (read-only)."""
        return self._basis.wavelengths

    # -- Kubelka-Munk transform pair ---------------------------------------
    @staticmethod
    def reflectance_to_ks(reflectance: Union[float, ArrayLike]) -> Union[float, ArrayFloat]:
        """
        Reflectance → K/S.

        Accepts a scalar (returns ``float``) or an array of any shape.
        """
        if np.ndim(reflectance) == 0:
            return float(_reflectance_to_ks(float(reflectance)))
        arr = np.asarray(reflectance, dtype=np.float64)
        return _reflectance_to_ks_kernel(np.ascontiguousarray(arr.ravel())).reshape(arr.shape)

    @staticmethod
    def ks_to_reflectance(ks: Union[float, ArrayLike]) -> Union[float, ArrayFloat]:
        """
        K/S → reflectance.

        Accepts a scalar (returns ``float``) or an array of any shape.
        """
        if np.ndim(ks) == 0:
            return float(_ks_to_reflectance(float(ks)))
        arr = np.asarray(ks, dtype=np.float64)
        return _ks_to_reflectance_kernel(np.ascontiguousarray(arr.ravel())).reshape(arr.shape)

    # -- mixing ------------------------------------------------------------
    def mix_reflectance(self, components: Iterable[ComponentLike]) -> ArrayFloat:
        """
        Predicted reflectance of a colorant mixture.

        Concentrations are relative and normalised by their sum.  Mixing
        nothing yields a perfect white.

        Args:
            components: ``MixComponent`` objects, ``(curve, concentration)``
                        tuples or mappings with those two keys.

        Returns:
            (N,) reflectance curve on the engine grid, values in [0, 1].

        Raises:
            ValueError: Zero total concentration, negative concentration,
                        or a curve longer than the grid.
        """
        if components is None:
            return np.ones(self._basis.size, dtype=np.float64)
        comps = [_as_component(c) for c in components]
        if not comps:
            return np.ones(self._basis.size, dtype=np.float64)

        curves, weights = _stack_components(comps, self._basis.size)
        return _mix_kernel(curves, weights)

    # -- colorimetry -------------------------------------------------------
    def reflectance_to_xyz(self, reflectance: ArrayLike) -> ArrayFloat:
        """Reflectance (N,) or (M, N) → XYZ (0–100), shape (3,) or (M, 3)."""
        return SpectralPipeline.spectral_to_xyz(reflectance, self._basis)

    @staticmethod
    def xyz_to_rgb(xyz: ArrayLike) -> np.ndarray:
        """XYZ (0–100) → 8-bit sRGB ints, shape (3,) or (M, 3)."""
        return ColorSpaceEngine.xyz_to_srgb8(xyz)

    @staticmethod
    def rgb_to_hex(rgb: ArrayLike) -> Union[str, List[str]]:
        """8-bit RGB → ``#rrggbb``."""
        return ColorSpaceEngine.rgb_to_hex(rgb)

    @staticmethod
    def xyz_to_lab(xyz: ArrayLike, white: ArrayLike = REF_WHITE_D65) -> ArrayFloat:
        """XYZ (0–100) → CIELAB against *white* (default D65)."""
        return ColorSpaceEngine.xyz_to_lab(xyz, white)

    def reflectance_to_rgb(self, reflectance: ArrayLike) -> np.ndarray:
        return SpectralPipeline.spectral_to_srgb8(reflectance, self._basis)

    def reflectance_to_hex(self, reflectance: ArrayLike) -> Union[str, List[str]]:
        return ColorSpaceEngine.rgb_to_hex(self.reflectance_to_rgb(reflectance))

    def reflectance_to_lab(self, reflectance: ArrayLike) -> ArrayFloat:
        return SpectralPipeline.spectral_to_lab(reflectance, self._basis)

    # -- difference --------------------------------------------------------
    @staticmethod
    def color_difference(
        lab1: ArrayLike,
        lab2: ArrayLike,
        k_L: float = 1.0,
        k_C: float = 1.0,
        k_H: float = 1.0,
        textiles: bool = False,
    ) -> Union[float, ArrayFloat]:
        """
        CIEDE2000 difference between Lab colours.

        Symmetric in its operands.  Achromatic colours (a = b = 0) are
        handled by the formula's zero-chroma special cases.
        """
        return ColorMetrics.delta_E_2000(lab1, lab2, k_L=k_L, k_C=k_C, k_H=k_H,
                                         textiles=textiles)

    def __repr__(self) -> str:
        return f"KubelkaMunk({self._basis!r})"
