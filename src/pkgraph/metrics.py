# src/pkgraph/metrics.py
import numpy as np
from typing import Sequence, Tuple

from .types import TimeSeriesPoint


def as_arrays(points: Sequence[TimeSeriesPoint]) -> Tuple[np.ndarray, np.ndarray]:
    """Split a series into (t, C) arrays."""
    t = np.fromiter((p.time for p in points), dtype=float, count=len(points))
    C = np.fromiter((p.concentration for p in points), dtype=float, count=len(points))
    return t, C

def cmax(points: Sequence[TimeSeriesPoint]) -> float:
    """Highest relative concentration in the series."""
    _, C = as_arrays(points)
    return float(np.max(C))

def tmax(points: Sequence[TimeSeriesPoint]) -> float:
    """Time (h) of the first sample at the highest concentration."""
    t, C = as_arrays(points)
    return float(t[int(np.argmax(C))])

def cmax_tmax(points: Sequence[TimeSeriesPoint]) -> Tuple[float, float]:
    """Return Cmax and Tmax (h)."""
    t, C = as_arrays(points)
    idx = np.argmax(C)
    return float(C[idx]), float(t[idx])

def auc_trapz(points: Sequence[TimeSeriesPoint]) -> float:
    """Area under the relative curve via trapezoidal rule (h)."""
    t, C = as_arrays(points)
    return float(np.trapezoid(C, t))

def local_maxima(points: Sequence[TimeSeriesPoint]) -> list[TimeSeriesPoint]:
    """
    Interior samples strictly higher than the previous one and at least as high
    as the next: one entry per dose peak on a superposed curve.
    """
    _, C = as_arrays(points)
    if C.size < 3:
        return []
    idx = np.nonzero((C[1:-1] > C[:-2]) & (C[1:-1] >= C[2:]))[0] + 1
    return [points[int(i)] for i in idx]
