# src/pkgraph/solvers.py
"""
Inverse peak-time problem: which absorption rate constant puts Tmax where the
user asked for it?

The forward map ka -> tmax(ka) = ln(ka/ke) / (ka - ke) is continuous, equals
1/ke at ka = ke and is strictly decreasing in ka on both sides of it. So a
target below 1/ke has its ka in (ke, inf) and a target above 1/ke has its ka
in (0, ke). We expand a bracket geometrically until it contains the target,
then bisect. Bisection is kept over Newton because half-lives span 0.1 h to
240 h and a bracketing method cannot diverge.
"""
from __future__ import annotations

import logging
import math

import numpy as np
from scipy.optimize import bisect

from .config import DEFAULT_SOLVER, SolverSettings
from .diagnostics import Diagnostics, SOLVER_NOT_BRACKETED, SOLVER_NOT_CONVERGED, ensure

logger = logging.getLogger(__name__)

# Smallest relative tolerance scipy's bisect accepts.
_RTOL = 4 * float(np.finfo(float).eps)


def natural_peak_time(ke: float, ka: float) -> float:
    """
    Mathematical Tmax for any positive ka, ke (no sentinel for ka <= ke).
    Uses log1p near ka = ke where ln(ka/ke) and (ka - ke) both vanish.
    """
    if ka == ke:
        return 1.0 / ke
    r = (ka - ke) / ke
    if abs(r) < 1e-4:
        return math.log1p(r) / (ka - ke)
    return math.log(ka / ke) / (ka - ke)


def derive_absorption_rate_from_peak(tmax_h: float, ke: float,
                                     settings: SolverSettings | None = None,
                                     diagnostics: Diagnostics | None = None) -> float:
    """
    Find ka (1/h) such that natural_peak_time(ke, ka) == tmax_h.

    tmax_h <= 0 returns ke * instant_factor (near-instantaneous absorption).
    A target within critical_tol_h of 1/ke returns ke itself.
    If bisection runs out of iterations the current midpoint is returned.
    """
    s = settings or DEFAULT_SOLVER
    diag = ensure(diagnostics)

    if tmax_h <= 0:
        return ke * s.instant_factor

    critical = 1.0 / ke
    if abs(tmax_h - critical) < s.critical_tol_h:
        return ke

    def residual(ka: float) -> float:
        # Snapping to exactly 0 lets bisect stop as soon as Tmax is within tolerance.
        r = natural_peak_time(ke, ka) - tmax_h
        return 0.0 if abs(r) < s.tmax_tol_h else r

    if tmax_h < critical:
        # Fast absorption: residual(ke) > 0, grow the upper bound until residual <= 0.
        lo, hi = ke, ke * s.growth
        for _ in range(s.max_expansions):
            if residual(hi) <= 0:
                break
            lo, hi = hi, hi * s.growth
        else:
            return _unbracketed(diag, tmax_h, ke, hi)
    else:
        # Slow absorption: residual(ke) < 0, shrink the lower bound until residual >= 0.
        lo, hi = ke / s.growth, ke
        for _ in range(s.max_expansions):
            if residual(lo) >= 0:
                break
            lo, hi = lo / s.growth, lo
        else:
            return _unbracketed(diag, tmax_h, ke, lo)

    if residual(lo) == 0:
        return lo
    if residual(hi) == 0:
        return hi

    # Bisect on ln(ka): the bracket can sit many decades below ke, where an
    # absolute tolerance on ka itself would stop far too early.
    log_root, result = bisect(lambda u: residual(math.exp(u)), math.log(lo), math.log(hi),
                              xtol=s.log_ka_xtol, rtol=_RTOL,
                              maxiter=s.max_iter, full_output=True, disp=False)
    ka = math.exp(log_root)
    if not result.converged:
        diag.warn_once(SOLVER_NOT_CONVERGED,
                       "Peak-time solver hit its iteration budget; using best midpoint.",
                       tmax_h=tmax_h, ke=ke, ka=ka, iterations=result.iterations)
    logger.debug("ka=%.6g for tmax=%.6g h (ke=%.6g, %d iterations)",
                 ka, tmax_h, ke, result.iterations)
    return ka


def _unbracketed(diag: Diagnostics, tmax_h: float, ke: float, ka: float) -> float:
    diag.warn_once(SOLVER_NOT_BRACKETED,
                   "Could not bracket the requested peak time; using the widest bound tried.",
                   tmax_h=tmax_h, ke=ke, ka=ka)
    return ka
