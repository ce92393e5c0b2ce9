# src/pkgraph/models/metabolite.py
"""
Active metabolite formed from the parent drug (sequential first-order steps).

Parent is eliminated with kp; a fraction fm of it becomes metabolite, which is
eliminated with km:

    M(t) = Dose * fm * kp / (km - kp) * (exp(-kp t) - exp(-km t))

with the limit Dose * fm * kp * t * exp(-kp t) when km ~ kp.
"""
from __future__ import annotations

import math

import numpy as np

from ..config import KA_KE_TOLERANCE
from ..diagnostics import Diagnostics, FALLBACK_METABOLITE
from .one_compartment import elimination_rate


def metabolite_concentration(time_h: float, dose: float, parent_half_life_h: float,
                             metabolite_half_life_h: float, fm: float, *,
                             diagnostics: Diagnostics | None = None) -> float:
    """Single-dose relative metabolite level. 0 for dose, fm or time_h <= 0."""
    if dose <= 0 or fm <= 0 or time_h <= 0:
        return 0.0

    kp = elimination_rate(parent_half_life_h)
    km = elimination_rate(metabolite_half_life_h)

    if abs(km - kp) < KA_KE_TOLERANCE:
        _note_fallback(diagnostics, kp, km)
        m = dose * fm * kp * time_h * math.exp(-kp * time_h)
    else:
        m = dose * fm * (kp / (km - kp)) * (math.exp(-kp * time_h) - math.exp(-km * time_h))

    return max(0.0, m)


def metabolite_curve(times_h, dose: float, parent_half_life_h: float,
                     metabolite_half_life_h: float, fm: float,
                     diagnostics: Diagnostics | None = None) -> np.ndarray:
    """Vectorized metabolite_concentration; non-positive times give 0."""
    t = np.asarray(times_h, dtype=float)
    if dose <= 0 or fm <= 0:
        return np.zeros_like(t)

    kp = elimination_rate(parent_half_life_h)
    km = elimination_rate(metabolite_half_life_h)
    active = t > 0
    ta = np.where(active, t, 0.0)

    if abs(km - kp) < KA_KE_TOLERANCE:
        if np.any(active):
            _note_fallback(diagnostics, kp, km)
        m = dose * fm * kp * ta * np.exp(-kp * ta)
    else:
        m = dose * fm * (kp / (km - kp)) * (np.exp(-kp * ta) - np.exp(-km * ta))

    return np.where(active, np.maximum(m, 0.0), 0.0)


def _note_fallback(diagnostics: Diagnostics | None, kp: float, km: float) -> None:
    if diagnostics is not None:
        diagnostics.warn_once(FALLBACK_METABOLITE,
                              "Parent and metabolite elimination rates nearly equal; using the limit formula.",
                              kp=kp, km=km)
