import math
import numpy as np

from pkgraph.config import KA_KE_TOLERANCE, LN2
from pkgraph.diagnostics import Diagnostics, FALLBACK_PARENT
from pkgraph.models.one_compartment import (
    absorption_rate, concentration, concentration_curve, elimination_rate,
    peak_time, peak_time_from_rates,
)


def test_rate_constants_from_half_lives():
    assert math.isclose(elimination_rate(6.0), LN2 / 6.0)
    assert math.isclose(absorption_rate(1.5), LN2 / 1.5)


def test_zero_at_and_before_dose():
    for dose, hl, up in [(500, 6, 1.5), (250, 4, 4), (0.001, 0.1, 0.1), (10000, 240, 24)]:
        assert concentration(0, dose, hl, up) == 0
        assert concentration(-1, dose, hl, up) == 0


def test_non_positive_dose_gives_zero():
    assert concentration(4, 0, 6, 1.5) == 0
    assert concentration(4, -100, 6, 1.5) == 0


def test_exact_values_at_half_life_multiples():
    """
    With t1/2 = 6 and uptake = 1.5, exp(-ke t) and exp(-ka t) are exact powers
    of 1/2 at t = 6 and t = 12, and ka/(ka-ke) = 4/3:
      C(6)  = 500 * 4/3 * (1/2 - 1/16)  = 500 * 7/12
      C(12) = 500 * 4/3 * (1/4 - 1/256) = 500 * 21/64
    """
    assert math.isclose(concentration(6, 500, 6, 1.5), 500 * 7 / 12, rel_tol=1e-12)
    assert math.isclose(concentration(12, 500, 6, 1.5), 500 * 21 / 64, rel_tol=1e-12)


def test_single_dose_reference_curve():
    assert math.isclose(peak_time(6, 1.5), 4.0, rel_tol=1e-12)
    assert math.isclose(concentration(4, 500, 6, 1.5), 314.98, abs_tol=0.01)
    assert math.isclose(concentration(48, 500, 6, 1.5), 2.604, abs_tol=0.001)


def test_dose_linearity():
    for t in [0.5, 1, 2, 4, 6, 12]:
        c1 = concentration(t, 500, 6, 1.5)
        c2 = concentration(t, 1000, 6, 1.5)
        assert math.isclose(c2, 2 * c1, rel_tol=1e-12)


def test_rises_to_tmax_then_falls():
    tmax = peak_time(6, 1.5)
    rising = [concentration(i * tmax / 40, 500, 6, 1.5) for i in range(1, 41)]
    falling = [concentration(tmax + i, 500, 6, 1.5) for i in range(0, 41)]
    assert all(b >= a for a, b in zip(rising, rising[1:]))
    assert all(b <= a for a, b in zip(falling, falling[1:]))


def test_fallback_formula_when_ka_equals_ke():
    """uptake == t1/2 gives ka == ke: C(t) = D * ka * t * exp(-ke t), peaking at D/e at t = 1/ke."""
    assert math.isclose(concentration(6, 250, 4, 4), 91.899, abs_tol=0.001)
    ke = elimination_rate(4)
    assert math.isclose(concentration(1 / ke, 250, 4, 4), 250 / math.e, rel_tol=1e-12)
    assert math.isclose(peak_time(4, 4), 1 / ke, rel_tol=1e-12)


def test_no_jump_across_the_tolerance_boundary():
    hl = 4.0
    ke = elimination_rate(hl)
    just_inside = LN2 / (ke + 0.9 * KA_KE_TOLERANCE)   # fallback
    just_outside = LN2 / (ke + 1.1 * KA_KE_TOLERANCE)  # standard
    for t in [0.5, 1, 2, 4, 6, 8, 12]:
        a = concentration(t, 250, hl, just_inside)
        b = concentration(t, 250, hl, just_outside)
        assert math.isclose(a, b, rel_tol=0.02)


def test_large_parameters():
    tmax = peak_time(240, 24)
    assert math.isclose(tmax, 88.585, abs_tol=0.01)
    assert math.isclose(concentration(tmax, 10000, 240, 24), 7742.64, abs_tol=0.5)


def test_never_negative():
    for dose, hl, up in [(500, 6, 1.5), (400, 2, 0.5), (250, 4, 4), (0.001, 0.1, 0.1), (10000, 240, 24), (100, 1, 20)]:
        for t in [0, 0.01, 0.1, 1, 5, 10, 50, 100, 500, 1000]:
            c = concentration(t, dose, hl, up)
            assert c >= 0 and math.isfinite(c)


def test_peak_time_sentinel_when_absorption_is_slower():
    assert peak_time(2, 6) == 0
    assert peak_time_from_rates(ke=0.5, ka=0.1) == 0


def test_peak_time_from_rates_matches_half_life_form():
    ke, ka = LN2 / 2, LN2 / 0.5
    assert math.isclose(peak_time_from_rates(ke, ka), 4 / 3, rel_tol=1e-12)
    assert math.isclose(peak_time(2, 0.5), 4 / 3, rel_tol=1e-12)


def test_explicit_peak_overrides_uptake():
    """With peak=2 the curve tops out at t=2, whatever the uptake says."""
    c = lambda t: concentration(t, 500, 6, 1.5, peak_h=2)
    assert c(2.0) > c(1.99)
    assert c(2.0) > c(2.01)
    assert not math.isclose(c(2.0), concentration(2.0, 500, 6, 1.5))


def test_vectorized_curve_matches_scalar():
    t = np.array([-3.0, 0.0, 0.5, 4.0, 12.0, 48.0])
    ke, ka = elimination_rate(6), absorption_rate(1.5)
    curve = concentration_curve(t, 500, ke, ka)
    expected = [concentration(x, 500, 6, 1.5) for x in t]
    assert np.allclose(curve, expected, rtol=1e-12, atol=0)


def test_fallback_reported_once_per_context(caplog):
    diag = Diagnostics()
    with caplog.at_level("WARNING", logger="pkgraph.diagnostics"):
        for t in [1, 2, 3, 4]:
            concentration(t, 250, 4, 4, diagnostics=diag)
    assert diag.seen(FALLBACK_PARENT)
    assert diag.counts[FALLBACK_PARENT] == 4
    assert len(caplog.records) == 1
