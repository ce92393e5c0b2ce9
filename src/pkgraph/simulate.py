# src/pkgraph/simulate.py
"""
Multi-dose accumulation.

Every dose contributes an independent single-dose curve (superposition). The
contributions are summed on a regular grid and the summed curve is normalized
so its peak is 1.0. Normalization has to wait for the whole grid: with repeated
doses the highest point is only known once every dose and timepoint is in.
"""
from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from .config import DEFAULT_ENGINE, SERIES_PALETTE, EngineSettings
from .diagnostics import Diagnostics, ensure
from .dosing import dose_offsets
from .models.metabolite import metabolite_curve
from .models.one_compartment import concentration_curve, elimination_rate, resolve_absorption_rate
from .types import GraphDataset, Prescription, TimeSeriesPoint

logger = logging.getLogger(__name__)


def time_grid(start_hours: float, end_hours: float, step_minutes: float) -> np.ndarray:
    """t_i = start + i*step for i = 0..ceil((end - start)*60/step)."""
    _validate_positive("step_minutes", step_minutes)
    steps = max(0, math.ceil((end_hours - start_hours) * 60.0 / step_minutes))
    return start_hours + np.arange(steps + 1, dtype=float) * step_minutes / 60.0


def normalize(values: np.ndarray) -> np.ndarray:
    """Scale so the maximum is exactly 1.0; an all-zero curve stays all zero."""
    values = np.maximum(np.asarray(values, dtype=float), 0.0)
    peak = float(np.max(values)) if values.size else 0.0
    if peak <= 0:
        return values
    return values / peak


def accumulate(prescription: Prescription, start_hours: float, end_hours: float,
               step_minutes: float | None = None, *,
               settings: EngineSettings = DEFAULT_ENGINE,
               diagnostics: Diagnostics | None = None) -> list[TimeSeriesPoint]:
    """
    Normalized parent-drug curve for one prescription over [start_hours, end_hours].

    Doses follow the prescription's daily times; a duration stops dosing at
    start + duration while the curve keeps decaying to end_hours.
    """
    diag = ensure(diagnostics)
    step = settings.step_minutes if step_minutes is None else step_minutes
    t = time_grid(start_hours, end_hours, step)
    doses = dose_offsets(prescription, start_hours, end_hours)
    logger.debug("accumulate %s: %d grid points, %d doses", prescription.name, t.size, len(doses))

    ke = elimination_rate(prescription.half_life)
    ka = resolve_absorption_rate(prescription.half_life, prescription.uptake, prescription.peak,
                                 settings=settings.solver, diagnostics=diag)

    total = np.zeros_like(t)
    for d in doses:
        if d > t[-1]:
            break
        total += concentration_curve(t - d, prescription.dose, ke, ka, diagnostics=diag)

    return _to_points(t, normalize(total))


def accumulate_metabolite(prescription: Prescription, start_hours: float, end_hours: float,
                          step_minutes: float | None = None, *,
                          settings: EngineSettings = DEFAULT_ENGINE,
                          diagnostics: Diagnostics | None = None) -> list[TimeSeriesPoint]:
    """
    Normalized metabolite curve, same grid and dosing rules as accumulate().
    Returns [] when the prescription lacks metabolite half-life or fraction.
    """
    if not prescription.has_metabolite:
        return []

    diag = ensure(diagnostics)
    step = settings.step_minutes if step_minutes is None else step_minutes
    t = time_grid(start_hours, end_hours, step)
    doses = dose_offsets(prescription, start_hours, end_hours)

    total = np.zeros_like(t)
    for d in doses:
        if d > t[-1]:
            break
        total += metabolite_curve(t - d, prescription.dose, prescription.half_life,
                                  prescription.metabolite_half_life,
                                  prescription.metabolite_conversion_fraction,
                                  diagnostics=diag)

    return _to_points(t, normalize(total))


def effective_end_hours(prescriptions: Sequence[Prescription], start_hours: float, end_hours: float) -> float:
    """end_hours, pushed out to cover the longest explicit prescription duration."""
    end = float(end_hours)
    for rx in prescriptions:
        duration_h = rx.duration_hours
        if duration_h is not None:
            end = max(end, start_hours + duration_h)
    return end


def get_graph_data(prescriptions: Sequence[Prescription], start_hours: float, end_hours: float, *,
                   settings: EngineSettings = DEFAULT_ENGINE,
                   diagnostics: Diagnostics | None = None) -> list[GraphDataset]:
    """
    One dataset per prescription (plus one per complete metabolite), each
    normalized against its own peak: comparison shows shape, not magnitude.

    Without a caller-supplied context each prescription gets its own, so every
    drug that hits a fallback is logged.
    """
    end = effective_end_hours(prescriptions, start_hours, end_hours)

    datasets: list[GraphDataset] = []
    for i, rx in enumerate(prescriptions):
        diag = ensure(diagnostics)
        color = SERIES_PALETTE[i % len(SERIES_PALETTE)]
        datasets.append(GraphDataset(
            label=f"{rx.name} {_format_dose(rx.dose)}mg ({rx.frequency})",
            data=tuple(accumulate(rx, start_hours, end, settings=settings, diagnostics=diag)),
            color=color,
            is_metabolite=False,
        ))
        if rx.has_metabolite:
            metabolite_label = rx.metabolite_name or f"{rx.name} - Metabolite"
            datasets.append(GraphDataset(
                label=f"{metabolite_label} ({rx.frequency})",
                data=tuple(accumulate_metabolite(rx, start_hours, end, settings=settings, diagnostics=diag)),
                color=color,
                is_metabolite=True,
            ))
    return datasets


def _to_points(t: np.ndarray, c: np.ndarray) -> list[TimeSeriesPoint]:
    return [TimeSeriesPoint(time=float(ti), concentration=float(ci)) for ti, ci in zip(t, c)]


def _format_dose(dose: float) -> str:
    """500.0 -> "500", 0.5 -> "0.5"."""
    return f"{dose:g}"


def _validate_positive(name: str, x: float) -> None:
    if not (x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")
