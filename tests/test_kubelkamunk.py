"""Kubelka-Munk mixing engine.

Tests for impasto_kubelkamunk:
    - Forward and inverse K/S transforms, boundaries and sentinel
    - MixComponent validation and immutability
    - mix_reflectance: identity, order and scale invariance, empty mixture
    - Lenient inputs: zero-filled short curves, folded out-of-range values
    - Engine configuration: default basis, custom grids, facade delegation

Property tests:
    - ks_to_reflectance(reflectance_to_ks(R)) ≈ R for R in (0, 1)
    - mixing one colorant returns its own curve

Run:
    pytest tests/test_kubelkamunk.py -v
"""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from impasto_colorengine import REF_WHITE_D65
from impasto_kubelkamunk import KS_SENTINEL, KubelkaMunk, MixComponent
from impasto_spectra import SpectralBasis


@pytest.fixture(scope="module")
def km():
    return KubelkaMunk()


@pytest.fixture
def ramp():
    return np.linspace(0.05, 0.95, 31)


# --- transform pair -----------------------------------------------------------

def test_reflectance_to_ks_known_values():
    assert KubelkaMunk.reflectance_to_ks(0.5) == pytest.approx(0.25)
    assert KubelkaMunk.reflectance_to_ks(0.2) == pytest.approx(1.6)


def test_reflectance_to_ks_boundaries():
    assert KubelkaMunk.reflectance_to_ks(0.0) == KS_SENTINEL
    assert KubelkaMunk.reflectance_to_ks(-0.1) == KS_SENTINEL
    assert KubelkaMunk.reflectance_to_ks(1.0) == 0.0
    assert KubelkaMunk.reflectance_to_ks(1.3) == 0.0


def test_ks_to_reflectance_boundaries():
    assert KubelkaMunk.ks_to_reflectance(0.0) == 1.0
    assert KubelkaMunk.ks_to_reflectance(-2.0) == 1.0
    assert KubelkaMunk.ks_to_reflectance(KS_SENTINEL) == 0.0
    assert KubelkaMunk.ks_to_reflectance(2.0 * KS_SENTINEL) == 0.0


def test_ks_to_reflectance_known_value():
    assert KubelkaMunk.ks_to_reflectance(0.25) == pytest.approx(0.5)


def test_boundary_round_trips_are_exact():
    assert KubelkaMunk.ks_to_reflectance(KubelkaMunk.reflectance_to_ks(1.0)) == 1.0
    assert KubelkaMunk.ks_to_reflectance(KubelkaMunk.reflectance_to_ks(0.0)) == 0.0


def test_transform_round_trip():
    r = np.linspace(1e-3, 0.999, 500)
    back = KubelkaMunk.ks_to_reflectance(KubelkaMunk.reflectance_to_ks(r))
    assert_allclose(back, r, rtol=1e-9)


def test_ks_is_monotonically_decreasing():
    ks = KubelkaMunk.reflectance_to_ks(np.linspace(0.01, 0.99, 99))
    assert np.all(np.diff(ks) < 0)


def test_transforms_preserve_shape():
    grid = np.full((2, 4), 0.5)
    ks = KubelkaMunk.reflectance_to_ks(grid)
    assert ks.shape == (2, 4)
    assert_allclose(ks, 0.25)
    assert KubelkaMunk.ks_to_reflectance(ks).shape == (2, 4)
    assert isinstance(KubelkaMunk.reflectance_to_ks(0.5), float)


# --- MixComponent -------------------------------------------------------------

def test_mix_component_copies_and_freezes(ramp):
    comp = MixComponent(ramp, 2)
    ramp[0] = 0.9
    assert comp.reflectance[0] == pytest.approx(0.05)
    assert isinstance(comp.concentration, float)
    with pytest.raises(ValueError):
        comp.reflectance[0] = 0.1
    with pytest.raises(AttributeError):
        comp.concentration = 3.0


@pytest.mark.parametrize("conc", [-1.0, np.nan, np.inf])
def test_mix_component_rejects_bad_concentration(ramp, conc):
    with pytest.raises(ValueError, match="concentration"):
        MixComponent(ramp, conc)


def test_mix_component_rejects_bad_curves():
    with pytest.raises(ValueError, match="1-D"):
        MixComponent(np.ones((2, 31)), 1.0)
    with pytest.raises(ValueError, match="non-finite"):
        MixComponent([0.5, np.nan, 0.5], 1.0)


# --- mixing -------------------------------------------------------------------

def test_single_component_is_identity(km, ramp):
    assert_allclose(km.mix_reflectance([(ramp, 3.0)]), ramp, rtol=1e-9)


def test_same_curve_twice_is_identity(km, ramp):
    assert_allclose(km.mix_reflectance([(ramp, 1.0), (ramp, 5.0)]), ramp, rtol=1e-9)


def test_mix_is_order_and_scale_invariant(km, ramp):
    other = ramp[::-1].copy()
    a = km.mix_reflectance([(ramp, 1.0), (other, 3.0)])
    b = km.mix_reflectance([(other, 3.0), (ramp, 1.0)])
    c = km.mix_reflectance([(ramp, 10.0), (other, 30.0)])
    assert_allclose(a, b, rtol=1e-12)
    assert_allclose(a, c, rtol=1e-12)


def test_mix_accepts_components_and_mappings(km, ramp):
    other = np.full(31, 0.3)
    expected = km.mix_reflectance([(ramp, 1.0), (other, 1.0)])
    via_objects = km.mix_reflectance([MixComponent(ramp, 1.0), MixComponent(other, 1.0)])
    via_dicts = km.mix_reflectance([
        {"reflectance": ramp, "concentration": 1.0},
        {"reflectance": other, "concentration": 1.0},
    ])
    assert_allclose(via_objects, expected)
    assert_allclose(via_dicts, expected)


def test_mix_result_lies_between_components(km):
    light = np.full(31, 0.8)
    dark = np.full(31, 0.1)
    mixed = km.mix_reflectance([(light, 1.0), (dark, 1.0)])
    assert np.all(mixed > 0.1)
    assert np.all(mixed < 0.8)


def test_black_dominates_a_white_mixture(km):
    white = np.full(31, 0.97)
    black = np.full(31, 0.03)
    mixed = km.mix_reflectance([(white, 1.0), (black, 1.0)])
    # Far below the arithmetic mean of 0.5: absorption is additive, not R.
    assert np.all(mixed < 0.1)


def test_zero_concentration_component_has_no_effect(km, ramp):
    black = np.zeros(31)
    assert_allclose(km.mix_reflectance([(ramp, 1.0), (black, 0.0)]), ramp, rtol=1e-9)


def test_empty_mixture_is_perfect_white(km):
    assert_array_equal(km.mix_reflectance([]), np.ones(31))
    assert_array_equal(km.mix_reflectance(None), np.ones(31))


def test_zero_total_concentration_raises(km, ramp):
    with pytest.raises(ValueError, match="Total concentration"):
        km.mix_reflectance([(ramp, 0.0), (ramp, 0.0)])


def test_negative_concentration_raises(km, ramp):
    with pytest.raises(ValueError):
        km.mix_reflectance([(ramp, 1.0), (ramp, -0.5)])


def test_unsupported_component_type_raises(km):
    with pytest.raises(TypeError, match="Unsupported mixture component"):
        km.mix_reflectance(["not a colorant"])


def test_long_curve_raises(km):
    with pytest.raises(ValueError, match="exceeds"):
        km.mix_reflectance([(np.full(32, 0.5), 1.0)])


def test_short_curve_is_zero_filled_with_warning(km):
    with pytest.warns(UserWarning, match="treated as reflectance 0"):
        mixed = km.mix_reflectance([(np.full(29, 0.5), 1.0)])
    assert_allclose(mixed[:29], 0.5, rtol=1e-9)
    assert_array_equal(mixed[29:], [0.0, 0.0])


def test_out_of_range_reflectance_is_folded_with_warning(km):
    curve = np.full(31, 0.5)
    curve[0] = -0.2
    curve[1] = 1.4
    with pytest.warns(UserWarning, match="outside \\[0, 1\\]"):
        mixed = km.mix_reflectance([(curve, 1.0)])
    assert mixed[0] == 0.0
    assert mixed[1] == 1.0
    assert np.all((mixed >= 0.0) & (mixed <= 1.0))


def test_in_range_mix_emits_no_warning(km, ramp):
    components = [(ramp, 1.0), (np.full(31, 0.4), 2.0)]
    km.mix_reflectance(components)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        km.mix_reflectance(components)


# --- configuration & facade ---------------------------------------------------

def test_default_engine_configuration(km):
    assert km.basis.size == 31
    assert km.wavelengths[0] == 400.0
    assert km.wavelengths[-1] == 700.0
    assert "KubelkaMunk" in repr(km)


def test_custom_grid_engine():
    engine = KubelkaMunk(wavelengths=np.arange(400.0, 701.0, 5.0))
    assert engine.basis.size == 61
    assert engine.mix_reflectance([]).shape == (61,)
    assert engine.reflectance_to_xyz(np.ones(61))[1] == pytest.approx(100.0)


def test_explicit_basis_is_used():
    basis = SpectralBasis.default()
    assert KubelkaMunk(basis).basis is basis
    with pytest.raises(ValueError, match="not both"):
        KubelkaMunk(basis, wavelengths=np.arange(400.0, 701.0, 10.0))


def test_engines_do_not_share_state():
    coarse = KubelkaMunk()
    fine = KubelkaMunk(wavelengths=np.arange(400.0, 701.0, 5.0))
    assert coarse.basis.size == 31
    assert fine.basis.size == 61


def test_perfect_reflector_colorimetry(km):
    white = np.ones(31)
    xyz = km.reflectance_to_xyz(white)
    assert xyz[1] == pytest.approx(100.0, abs=1e-9)
    assert np.all(km.reflectance_to_rgb(white) >= 250)
    lab = km.reflectance_to_lab(white)
    assert lab[0] == pytest.approx(100.0, abs=1e-6)
    assert abs(lab[1]) < 3.0
    assert abs(lab[2]) < 3.0


def test_black_colorimetry(km):
    black = np.zeros(31)
    assert_allclose(km.reflectance_to_xyz(black), [0.0, 0.0, 0.0])
    assert_array_equal(km.reflectance_to_rgb(black), [0, 0, 0])
    assert km.reflectance_to_hex(black) == "#000000"


def test_reflectance_batch(km, ramp):
    batch = np.vstack([np.ones(31), np.zeros(31), ramp])
    assert km.reflectance_to_xyz(batch).shape == (3, 3)
    hexes = km.reflectance_to_hex(batch)
    assert len(hexes) == 3
    assert hexes[1] == "#000000"


def test_reflectance_length_must_match_grid(km):
    with pytest.raises(ValueError):
        km.reflectance_to_xyz(np.ones(30))


def test_static_conversions_delegate(km):
    assert_array_equal(km.xyz_to_rgb(REF_WHITE_D65), [255, 255, 255])
    assert km.rgb_to_hex([17, 34, 51]) == "#112233"
    assert_allclose(km.xyz_to_lab(REF_WHITE_D65), [100.0, 0.0, 0.0], atol=1e-9)
    assert km.color_difference([50.0, 2.5, 0.0], [50.0, 0.0, -2.5]) == pytest.approx(4.3065, abs=1e-4)
