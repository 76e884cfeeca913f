# -*- coding: utf-8 -*-
"""
Impasto: Kubelka-Munk colorant mixing and colorimetry
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Colorimetry Engine
==================
Spectral integration, display encoding and perceptual difference for the
Kubelka-Munk mixer.

Scale convention:
    Tristimulus values live on the 0–100 scale throughout (perfect
    reflector Y = 100), matching the reference white used for CIELAB.
    Only the sRGB stage divides by 100 internally.

Constants:
    The CIELAB transform uses the rounded published constants
    (epsilon 0.008856, kappa 903.3, linear slope 7.787) rather than the
    exact rationals 216/24389 and 24389/27.  L* has its own piecewise
    definition and is *not* computed as 116·f(Yr) − 16 below the threshold.

References:
    - CIE 15:2004 "Colorimetry"
    - IEC 61966-2-1:1999 (sRGB Standard)
    - Sharma, G., Wu, W., & Dalal, E. N. (2005). "The CIEDE2000 color-difference formula".
"""

import functools
from typing import Any, Callable, Final, List, Tuple, Union

import numpy as np
from numba import float64, njit, prange

from impasto_spectra import ArrayFloat, ArrayLike, SpectralBasis

__all__ = [
    # --- Constants ---
    "REF_WHITE_D65",
    "LAB_EPSILON",
    "LAB_KAPPA",
    "LAB_SLOPE",
    "C25_7",
    "DEG2RAD",
    "RAD2DEG",
    "SRGB_LINEAR_THRESHOLD",

    # --- Matrices ---
    "M_XYZ_TO_SRGB_T",

    # --- Decorators ---
    "handle_shapes",

    # --- Classes ---
    "ColorSpaceEngine",
    "ColorMetrics",
    "SpectralPipeline",
]

# --- Constants & Pre-Transposed Matrices ---

# D65 reference white, 2° observer, 0–100 scale.
REF_WHITE_D65: Final[ArrayFloat] = np.array([95.047, 100.000, 108.883], dtype=np.float64)
REF_WHITE_D65.flags.writeable = False

# sRGB primaries, D65 white.  Four-decimal coefficients of IEC 61966-2-1.
# Pre-transposed so row-vector batches can be multiplied as ``xyz @ M.T``.
_M_XYZ_TO_SRGB_BASE = np.array([
    [ 3.2406, -1.5372, -0.4986],
    [-0.9689,  1.8758,  0.0415],
    [ 0.0557, -0.2040,  1.0570]
], dtype=np.float64)
M_XYZ_TO_SRGB_T: Final[ArrayFloat] = _M_XYZ_TO_SRGB_BASE.T.copy()
M_XYZ_TO_SRGB_T.flags.writeable = False

SRGB_LINEAR_THRESHOLD: Final[float] = 0.0031308

LAB_EPSILON: Final[float] = 0.008856
LAB_KAPPA: Final[float]   = 903.3
LAB_SLOPE: Final[float]   = 7.787

C25_7: Final[float]       = 25.0**7
DEG2RAD: Final[float]     = np.pi / 180.0
RAD2DEG: Final[float]     = 180.0 / np.pi


# =============================================================================
# 1. ROBUST DECORATORS
# =============================================================================

def handle_shapes(func: Callable[..., ArrayFloat]) -> Callable[..., ArrayFloat]:
    """
    Decorator to normalize inputs to (N, 3) and safeguard shape.

    Single triples are treated as one-row batches internally.

    Returns:
        The wrapped function with shape handling.
        - If input is (3,), returns (3,)
        - If input is (N, 3), returns (N, 3)
    """
    @functools.wraps(func)
    def wrapper(arr: ArrayLike, *args: Any, **kwargs: Any) -> ArrayFloat:
        arr = np.asarray(arr, dtype=np.float64)
        arr_in = np.ascontiguousarray(np.atleast_2d(arr))

        if arr_in.ndim != 2 or arr_in.shape[-1] != 3:
            raise ValueError(f"Expected shape (3,) or (N, 3), got {arr.shape}")

        res = func(arr_in, *args, **kwargs)

        if arr.ndim == 1:
            return res[0]
        return res
    return wrapper


# =============================================================================
# 2. LOW-LEVEL MATH KERNELS (Numba Optimized)
# =============================================================================

@njit(cache=True, fastmath=True)
def _fast_gamma_srgb(linear: ArrayFloat) -> ArrayFloat:
    """
    Applies the sRGB OETF to an (N, 3) array of linear values.

    Standard: IEC 61966-2-1.  Both branches are kept; values above 1.0 or
    below 0.0 pass through un-clipped and are clamped after quantisation.
    """
    n = linear.shape[0]
    out = np.empty_like(linear)
    for i in range(n):
        for c in range(3):
            v = linear[i, c]
            if v <= SRGB_LINEAR_THRESHOLD:
                out[i, c] = 12.92 * v
            else:
                out[i, c] = 1.055 * (v ** (1.0 / 2.4)) - 0.055
    return out


@njit(cache=True, fastmath=True)
def _lab_f(t: float) -> float:
    """CIELAB companding: cube root above epsilon, linear below."""
    if t > LAB_EPSILON:
        return t ** (1.0 / 3.0)
    return LAB_SLOPE * t + 16.0 / 116.0


@njit(cache=True, fastmath=True)
def _xyz_to_lab_kernel(xyz: ArrayFloat, white: ArrayFloat) -> ArrayFloat:
    """(N, 3) XYZ → (N, 3) Lab against *white*."""
    n = xyz.shape[0]
    out = np.empty_like(xyz)

    for i in range(n):
        xr = xyz[i, 0] / white[0]
        yr = xyz[i, 1] / white[1]
        zr = xyz[i, 2] / white[2]

        fx = _lab_f(xr)
        fy = _lab_f(yr)
        fz = _lab_f(zr)

        if yr > LAB_EPSILON:
            out[i, 0] = 116.0 * (yr ** (1.0 / 3.0)) - 16.0
        else:
            out[i, 0] = LAB_KAPPA * yr
        out[i, 1] = 500.0 * (fx - fy)
        out[i, 2] = 200.0 * (fy - fz)
    return out


@njit(float64(float64, float64, float64, float64, float64, float64, float64, float64, float64), cache=True, fastmath=True)
def _delta_e_2000_single(L1: float, a1: float, b1: float, L2: float, a2: float, b2: float, k_L: float, k_C: float, k_H: float) -> float:
    """Single-pair CIEDE2000 with parametric factors."""
    # Chroma-dependent rescaling of a*
    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar_7 = ((C1 + C2) * 0.5) ** 7
    G = 0.5 * (1.0 - np.sqrt(C_bar_7 / (C_bar_7 + C25_7)))
    a1_p = (1.0 + G) * a1
    a2_p = (1.0 + G) * a2
    C1_p = np.hypot(a1_p, b1)
    C2_p = np.hypot(a2_p, b2)

    h1_p = np.arctan2(b1, a1_p) * RAD2DEG
    if h1_p < 0.0:
        h1_p += 360.0
    h2_p = np.arctan2(b2, a2_p) * RAD2DEG
    if h2_p < 0.0:
        h2_p += 360.0

    dL_p = L2 - L1
    dC_p = C2_p - C1_p

    # Hue is undefined for a neutral colour: no hue difference at all.
    C_prod = C1_p * C2_p
    dH_p = 0.0
    if C_prod != 0.0:
        dh_p = h2_p - h1_p
        if dh_p > 180.0:
            dh_p -= 360.0
        elif dh_p < -180.0:
            dh_p += 360.0
        dH_p = 2.0 * np.sqrt(C_prod) * np.sin((dh_p * DEG2RAD) * 0.5)

    L_bar_p = (L1 + L2) * 0.5
    C_bar_p = (C1_p + C2_p) * 0.5

    # Neutral case keeps the plain sum, as in the published formula.
    if C_prod == 0.0:
        h_bar_p = h1_p + h2_p
    else:
        h_bar_p = (h1_p + h2_p) * 0.5
        if abs(h1_p - h2_p) > 180.0:
            if h1_p + h2_p < 360.0:
                h_bar_p += 180.0
            else:
                h_bar_p -= 180.0

    T = 1.0 - 0.17 * np.cos((h_bar_p - 30.0) * DEG2RAD) + \
        0.24 * np.cos((2.0 * h_bar_p) * DEG2RAD) + \
        0.32 * np.cos((3.0 * h_bar_p + 6.0) * DEG2RAD) - \
        0.20 * np.cos((4.0 * h_bar_p - 63.0) * DEG2RAD)

    C_bar_p_7 = C_bar_p ** 7
    d_theta = 60.0 * np.exp(-((h_bar_p - 275.0) / 25.0) ** 2)
    RT = -2.0 * np.sqrt(C_bar_p_7 / (C_bar_p_7 + C25_7)) * np.sin(d_theta * DEG2RAD)

    L_term = (L_bar_p - 50.0) ** 2
    SL = 1.0 + (0.015 * L_term) / np.sqrt(20.0 + L_term)
    SC = 1.0 + 0.045 * C_bar_p
    SH = 1.0 + 0.015 * C_bar_p * T

    t_L = dL_p / (k_L * SL)
    t_C = dC_p / (k_C * SC)
    t_H = dH_p / (k_H * SH)
    return np.sqrt(t_L * t_L + t_C * t_C + t_H * t_H + RT * t_C * t_H)


@njit(cache=True, fastmath=True, parallel=True)
def _batch_delta_e_2000(lab1: ArrayFloat, lab2: ArrayFloat, k_L: float, k_C: float, k_H: float) -> ArrayFloat:
    """Vectorized and Parallelized loop for CIEDE2000."""
    n = len(lab1)
    res = np.empty(n, dtype=np.float64)
    for i in prange(n):
        res[i] = _delta_e_2000_single(lab1[i, 0], lab1[i, 1], lab1[i, 2], lab2[i, 0], lab2[i, 1], lab2[i, 2], k_L, k_C, k_H)
    return res


# =============================================================================
# 3. COLOR SPACE ENGINE
# =============================================================================

class ColorSpaceEngine:
    """Static utility class for XYZ → display / perceptual transforms.

    ``_raw`` variants assume validated (N, 3) float64 input and are what the
    convenience pipelines chain together.
    """

    @staticmethod
    def _xyz_to_srgb_raw(xyz_array: ArrayFloat) -> ArrayFloat:
        """Raw XYZ (0–100) → encoded sRGB (nominally 0–1, unclipped)."""
        linear = np.dot(xyz_array * 0.01, M_XYZ_TO_SRGB_T)
        return _fast_gamma_srgb(np.ascontiguousarray(linear))

    @staticmethod
    def _quantize_8bit(scaled: ArrayFloat) -> np.ndarray:
        """Round 0–255 values half-up and clamp."""
        return np.clip(np.floor(scaled + 0.5), 0.0, 255.0).astype(np.int64)

    @staticmethod
    def _xyz_to_lab_raw(xyz_array: ArrayFloat, white: ArrayFloat = REF_WHITE_D65) -> ArrayFloat:
        """Raw XYZ → Lab.  *xyz_array* must be (N, 3) float64."""
        return _xyz_to_lab_kernel(xyz_array, np.ascontiguousarray(white, dtype=np.float64))

    @staticmethod
    @handle_shapes
    def xyz_to_srgb(xyz_array: ArrayFloat) -> ArrayFloat:
        """
        Converts XYZ (0–100, D65) to gamma-encoded sRGB floats.

        No clipping is applied, so out-of-gamut colours show up as values
        below 0 or above 1.

        Args:
            xyz_array: Input XYZ data, shape (N, 3) or (3,).

        Returns:
            Encoded sRGB, same shape.
        """
        return ColorSpaceEngine._xyz_to_srgb_raw(xyz_array)

    @staticmethod
    @handle_shapes
    def xyz_to_srgb8(xyz_array: ArrayFloat) -> np.ndarray:
        """
        Converts XYZ (0–100, D65) to 8-bit sRGB.

        Matrix, piecewise transfer function, ×255, round, clamp to
        [0, 255].  Out-of-gamut channels clamp rather than wrap.

        Args:
            xyz_array: Input XYZ data, shape (N, 3) or (3,).

        Returns:
            int64 array of r, g, b, same shape.
        """
        return ColorSpaceEngine._quantize_8bit(ColorSpaceEngine._xyz_to_srgb_raw(xyz_array) * 255.0)

    @staticmethod
    def rgb_to_hex(rgb: ArrayLike) -> Union[str, List[str]]:
        """
        Formats 8-bit RGB as ``#rrggbb`` (lowercase).

        Channels are rounded and clamped to [0, 255] first.  A single
        triple returns one string; an (N, 3) batch returns a list.
        """
        arr = np.asarray(rgb, dtype=np.float64)
        if arr.ndim not in (1, 2) or arr.shape[-1] != 3:
            raise ValueError(f"Expected shape (3,) or (N, 3), got {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("RGB values must be finite.")

        q = ColorSpaceEngine._quantize_8bit(arr)
        if q.ndim == 1:
            return "#{:02x}{:02x}{:02x}".format(*q)
        return ["#{:02x}{:02x}{:02x}".format(*row) for row in q]

    @staticmethod
    @handle_shapes
    def xyz_to_lab(xyz_array: ArrayFloat, white: ArrayFloat = REF_WHITE_D65) -> ArrayFloat:
        """
        Converts XYZ (0–100) to CIELAB.

        Args:
            xyz_array: Input XYZ data, shape (N, 3) or (3,).
            white: Reference white on the same scale (default D65).

        Returns:
            Lab coordinates, same shape.
        """
        white = np.asarray(white, dtype=np.float64)
        if white.shape != (3,) or np.any(white <= 0.0):
            raise ValueError(f"Reference white must be 3 positive values, got {white}")
        return ColorSpaceEngine._xyz_to_lab_raw(xyz_array, white)


# =============================================================================
# 4. OPTIMIZED METRICS
# =============================================================================

class ColorMetrics:
    @staticmethod
    def _prepare_inputs(lab1: ArrayLike, lab2: ArrayLike) -> Tuple[ArrayFloat, ArrayFloat]:
        """
        Broadcasting helper.

        ``broadcast_to`` yields a read-only strided view; it is materialised
        into a contiguous array before reaching the ``prange`` kernel.
        """
        l1 = np.ascontiguousarray(np.atleast_2d(np.asarray(lab1, dtype=np.float64)))
        l2 = np.ascontiguousarray(np.atleast_2d(np.asarray(lab2, dtype=np.float64)))

        if l1.ndim != 2 or l2.ndim != 2 or l1.shape[-1] != 3 or l2.shape[-1] != 3:
            raise ValueError(f"Inputs must have shape (N, 3), got {l1.shape} and {l2.shape}")

        if l1.shape[0] != l2.shape[0]:
            if l1.shape[0] == 1: l1 = np.ascontiguousarray(np.broadcast_to(l1, l2.shape))
            elif l2.shape[0] == 1: l2 = np.ascontiguousarray(np.broadcast_to(l2, l1.shape))
            else: raise ValueError(f"Shapes {l1.shape} and {l2.shape} are not broadcastable.")
        return l1, l2

    @staticmethod
    def delta_E_2000(lab1: ArrayLike, lab2: ArrayLike,
                     k_L: float = 1.0, k_C: float = 1.0, k_H: float = 1.0,
                     textiles: bool = False) -> Union[float, ArrayFloat]:
        """
        Calculates CIEDE2000 Color Difference.

        Args:
            lab1: Reference colors, shape (N, 3) or (3,).
            lab2: Sample colors, shape (N, 3) or (3,).
            k_L: Parametric lightness weight (default 1.0).
            k_C: Parametric chroma weight (default 1.0).
            k_H: Parametric hue weight (default 1.0).
            textiles: If True, overrides k_L=2.0, k_C=1.0, k_H=1.0 as per
                      CIE recommendation for textile applications.

        Returns:
            A float when both inputs are single colours, otherwise an (N,)
            array.  Supports broadcasting (1 vs N).
        """
        if textiles:
            k_L, k_C, k_H = 2.0, 1.0, 1.0
        if min(k_L, k_C, k_H) <= 0.0:
            raise ValueError(f"Parametric factors must be > 0, got {(k_L, k_C, k_H)}")

        l1, l2 = ColorMetrics._prepare_inputs(lab1, lab2)
        res = _batch_delta_e_2000(l1, l2, float(k_L), float(k_C), float(k_H))
        if np.ndim(lab1) == 1 and np.ndim(lab2) == 1:
            return float(res[0])
        return res


# =============================================================================
# 5. SPECTRAL PIPELINE
# =============================================================================

class SpectralPipeline:
    @staticmethod
    def spectral_to_xyz(reflectance: ArrayLike, basis: SpectralBasis) -> ArrayFloat:
        """
        Integrates reflectance against the basis observer and illuminant.

        Uses the basis' pre-normalised weights, so the perfect reflector
        returns Y = 100 and no Δλ factor is involved.

        Args:
            reflectance: Shape (N_waves,) or (N_samples, N_waves).  The last
                         dimension must equal the grid length exactly.
            basis: Spectral configuration.

        Returns:
            XYZ (0–100), shape (3,) or (N_samples, 3).
        """
        spd = np.asarray(reflectance, dtype=np.float64)
        if spd.ndim not in (1, 2):
            raise ValueError(f"Reflectance must be 1-D or 2-D, got shape {spd.shape}.")
        if spd.shape[-1] != basis.size:
            raise ValueError(
                f"Reflectance dimension mismatch. Expected last dim {basis.size}, "
                f"got {spd.shape[-1]}"
            )
        # (N, W) dot (W, 3) -> (N, 3)
        return np.dot(spd, basis.tristimulus_weights)

    @staticmethod
    def spectral_to_srgb8(reflectance: ArrayLike, basis: SpectralBasis) -> np.ndarray:
        """Reflectance → 8-bit sRGB."""
        return ColorSpaceEngine.xyz_to_srgb8(SpectralPipeline.spectral_to_xyz(reflectance, basis))

    @staticmethod
    def spectral_to_lab(reflectance: ArrayLike, basis: SpectralBasis,
                        white: ArrayFloat = REF_WHITE_D65) -> ArrayFloat:
        """Reflectance → CIELAB."""
        return ColorSpaceEngine.xyz_to_lab(SpectralPipeline.spectral_to_xyz(reflectance, basis), white)
