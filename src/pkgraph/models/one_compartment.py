# src/pkgraph/models/one_compartment.py
"""
One-compartment model with first-order absorption and elimination, in closed form.

    C(t) = Dose * ka / (ka - ke) * (exp(-ke t) - exp(-ka t))

When ka and ke are within KA_KE_TOLERANCE the ratio ka / (ka - ke) blows up,
so we switch to its limit as ka -> ke:

    C(t) = Dose * ka * t * exp(-ke t)

Values are relative (no volume term): callers normalize curves to their peak.
"""
from __future__ import annotations

import math

import numpy as np

from ..config import KA_KE_TOLERANCE, LN2, SolverSettings
from ..diagnostics import Diagnostics, FALLBACK_PARENT
from ..solvers import derive_absorption_rate_from_peak


def elimination_rate(half_life_h: float) -> float:
    """ke (1/h) from the elimination half-life."""
    return LN2 / half_life_h


def absorption_rate(uptake_h: float) -> float:
    """ka (1/h) from the absorption time."""
    return LN2 / uptake_h


def resolve_absorption_rate(half_life_h: float, uptake_h: float | None, peak_h: float | None = None,
                            settings: SolverSettings | None = None,
                            diagnostics: Diagnostics | None = None) -> float:
    """
    ka used by the concentration formula: derived from the desired peak time when
    one is given, otherwise from the uptake time.
    """
    if peak_h is not None:
        return derive_absorption_rate_from_peak(peak_h, elimination_rate(half_life_h),
                                                settings=settings, diagnostics=diagnostics)
    if uptake_h is None:
        raise ValueError("uptake_h is required when peak_h is not given.")
    return absorption_rate(uptake_h)


def peak_time_from_rates(ke: float, ka: float) -> float:
    """
    Tmax (h) = ln(ka/ke) / (ka - ke).

    ka ~ ke (within KA_KE_TOLERANCE) gives the limit 1/ke. ka <= ke otherwise
    returns 0: the engine treats absorption slower than elimination as having
    no peak to report. Milestones rely on that 0.
    """
    if abs(ka - ke) < KA_KE_TOLERANCE:
        return 1.0 / ke
    if ka <= ke:
        return 0.0
    return math.log(ka / ke) / (ka - ke)


def peak_time(half_life_h: float, uptake_h: float) -> float:
    """Tmax (h) for a half-life / uptake pair."""
    return peak_time_from_rates(elimination_rate(half_life_h), absorption_rate(uptake_h))


def concentration(time_h: float, dose: float, half_life_h: float, uptake_h: float | None,
                  peak_h: float | None = None, *,
                  settings: SolverSettings | None = None,
                  diagnostics: Diagnostics | None = None) -> float:
    """
    Single-dose relative concentration at time_h hours after the dose.

    Returns 0 for dose <= 0 or time_h <= 0. Never negative.
    """
    if dose <= 0 or time_h <= 0:
        return 0.0

    ke = elimination_rate(half_life_h)
    ka = resolve_absorption_rate(half_life_h, uptake_h, peak_h, settings=settings, diagnostics=diagnostics)

    if abs(ka - ke) < KA_KE_TOLERANCE:
        _note_fallback(diagnostics, ka, ke)
        c = dose * ka * time_h * math.exp(-ke * time_h)
    else:
        c = dose * (ka / (ka - ke)) * (math.exp(-ke * time_h) - math.exp(-ka * time_h))

    # Clamp floating-point undershoot near t=0 and at extreme ka/ke ratios.
    return max(0.0, c)


def concentration_curve(times_h, dose: float, ke: float, ka: float,
                        diagnostics: Diagnostics | None = None) -> np.ndarray:
    """
    Vectorized single-dose curve for already-resolved rate constants.
    times_h may contain non-positive entries (before the dose); those are 0.
    """
    t = np.asarray(times_h, dtype=float)
    if dose <= 0:
        return np.zeros_like(t)

    active = t > 0
    # Zero out inactive entries before exponentiating so negative times cannot overflow.
    ta = np.where(active, t, 0.0)

    if abs(ka - ke) < KA_KE_TOLERANCE:
        if np.any(active):
            _note_fallback(diagnostics, ka, ke)
        c = dose * ka * ta * np.exp(-ke * ta)
    else:
        c = dose * (ka / (ka - ke)) * (np.exp(-ke * ta) - np.exp(-ka * ta))

    return np.where(active, np.maximum(c, 0.0), 0.0)


def _note_fallback(diagnostics: Diagnostics | None, ka: float, ke: float) -> None:
    if diagnostics is not None:
        diagnostics.warn_once(FALLBACK_PARENT,
                              "ka and ke nearly equal; using the limit concentration formula.",
                              ka=ka, ke=ke)
