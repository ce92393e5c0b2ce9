# src/pkgraph/config.py
import math
from dataclasses import dataclass

# All time is in HOURS, all rate constants in 1/h.
LN2 = math.log(2.0)

# |ka - ke| below this switches the concentration formulas to their limit form.
# Validation imports this same object for its "atypical kinetics" warning.
KA_KE_TOLERANCE = 0.001

DEFAULT_STEP_MINUTES = 15

# Half-life milestones stop once less than this fraction of peak remains.
MIN_REMAINING_FRACTION = 0.05

# Events closer than this (hours) are treated as the same instant.
EVENT_TIME_EPSILON = 0.001

# Auto-extended windows: last dose + TAIL_OFF_HALF_LIVES half-lives, clamped.
DEFAULT_WINDOW_HOURS = 48.0
TAIL_OFF_HALF_LIVES = 10.0
MIN_WINDOW_HOURS = 24.0
MAX_WINDOW_HOURS = 2520.0

# Cycled per prescription by get_graph_data.
SERIES_PALETTE = (
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
)


@dataclass(frozen=True)
class SolverSettings:
    """
    Knobs for deriving ka from a desired peak time.

    max_iter        : bisection iteration budget
    tmax_tol_h      : convergence tolerance on the peak time (h)
    log_ka_xtol     : bisection stops once the ln(ka) bracket is this narrow
    critical_tol_h  : |tmax - 1/ke| below this returns ka = ke directly
    growth          : geometric factor for bracket expansion
    max_expansions  : expansion steps before giving up on bracketing
    instant_factor  : ka = ke * instant_factor for tmax <= 0
    """
    max_iter: int = 100
    tmax_tol_h: float = 1e-10
    log_ka_xtol: float = 1e-14
    critical_tol_h: float = 1e-10
    growth: float = 2.0
    max_expansions: int = 1000
    instant_factor: float = 100.0


@dataclass(frozen=True)
class EngineSettings:
    """Defaults used by the accumulation and milestone layers."""
    step_minutes: float = DEFAULT_STEP_MINUTES
    min_remaining_fraction: float = MIN_REMAINING_FRACTION
    event_time_epsilon: float = EVENT_TIME_EPSILON
    solver: SolverSettings = SolverSettings()


DEFAULT_SOLVER = SolverSettings()
DEFAULT_ENGINE = EngineSettings()
