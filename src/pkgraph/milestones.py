# src/pkgraph/milestones.py
"""
Milestone timeline for a prescription.

Each dose runs through dose -> absorption_end -> peak -> half_life(1..k) ->
next_dose and stops early at the window end, at the next dose, or once less
than 5 % of the peak remains. Cycles are built independently, then merged by
one global sort and a dedup pass where a dose beats a next_dose at the same time.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from .config import DEFAULT_ENGINE, LN2, EngineSettings
from .diagnostics import Diagnostics, ensure
from .dosing import dose_offsets, dosing_window_end
from .models.one_compartment import peak_time, resolve_absorption_rate
from .types import MilestoneEvent, PkSummary, Prescription

logger = logging.getLogger(__name__)


def format_elapsed_time(hours: float) -> str:
    """0 -> "T+0h", 6.0 -> "T+6h", 1.5 -> "T+1.5h"."""
    if hours == 0:
        return "T+0h"
    if float(hours).is_integer():
        return f"T+{int(hours)}h"
    return f"T+{hours:.1f}h"


def generate_milestones(prescription: Prescription, start_hours: float, end_hours: float, *,
                        settings: EngineSettings = DEFAULT_ENGINE,
                        diagnostics: Diagnostics | None = None) -> list[MilestoneEvent]:
    """
    Sorted, de-duplicated milestone events for doses given in
    [start_hours, min(dosing end, end_hours)). No event lies after end_hours.
    """
    diag = ensure(diagnostics)
    rx = prescription

    dosing_end = min(dosing_window_end(rx, start_hours, end_hours), end_hours)
    doses = [d for d in dose_offsets(rx, start_hours, end_hours, include_prior=False) if d < dosing_end]
    if not doses:
        return []

    uptake_h, peak_h = _absorption_and_peak(rx, settings, diag)
    logger.debug("milestones %s: %d doses, uptake=%.3g h, peak=%.3g h", rx.name, len(doses), uptake_h, peak_h)

    events: list[MilestoneEvent] = []

    def emit(event_type, at_h, rel, description):
        events.append(MilestoneEvent(
            event_type=event_type,
            elapsed_hours=at_h,
            elapsed_label=format_elapsed_time(at_h - start_hours),
            relative_concentration=rel,
            description=description,
            prescription_name=rx.name,
        ))

    def in_cycle(at_h: float, next_h: Optional[float]) -> bool:
        return at_h <= end_hours and (next_h is None or at_h < next_h)

    for i, dose_h in enumerate(doses):
        next_h = doses[i + 1] if i + 1 < len(doses) else None

        emit("dose", dose_h, None, f"Dose {rx.dose:g}mg administered, absorption begins")

        absorbed_h = dose_h + uptake_h
        if in_cycle(absorbed_h, next_h):
            emit("absorption_end", absorbed_h, None, f"Absorption phase complete ({uptake_h:g}h)")

        peak_at_h = dose_h + peak_h
        if in_cycle(peak_at_h, next_h):
            emit("peak", peak_at_h, 1.0, f"Peak concentration (Cmax), Tmax {peak_h:g}h")

        k = 1
        while True:
            fraction = 0.5 ** k
            if fraction < settings.min_remaining_fraction:
                break
            decay_h = peak_at_h + k * rx.half_life
            if not in_cycle(decay_h, next_h):
                break
            noun = "half-life" if k == 1 else "half-lives"
            emit("half_life", decay_h, fraction,
                 f"{k} {noun} elapsed, ~{fraction * 100:g}% of peak")
            k += 1

        if next_h is not None and next_h <= end_hours:
            since_peak = next_h - peak_at_h
            remaining = 0.5 ** (since_peak / rx.half_life) if since_peak > 0 else 1.0
            emit("next_dose", next_h, remaining,
                 f"Next dose due, ~{remaining * 100:.1f}% of previous peak remaining")

    events.sort(key=lambda e: e.elapsed_hours)
    return deduplicate_events(events, settings.event_time_epsilon)


def deduplicate_events(events: Iterable[MilestoneEvent], epsilon_h: float = DEFAULT_ENGINE.event_time_epsilon
                       ) -> list[MilestoneEvent]:
    """
    Drop next_dose events that coincide (within epsilon_h) with a dose event;
    the dose takes the next_dose's place. Input must already be time-sorted.
    """
    out: list[MilestoneEvent] = []
    for event in events:
        if event.event_type == "dose":
            idx = _find_near(out, event.elapsed_hours, "next_dose", epsilon_h)
            if idx is not None:
                out[idx] = event
                continue
        elif event.event_type == "next_dose":
            if _find_near(out, event.elapsed_hours, "dose", epsilon_h) is not None:
                continue
        out.append(event)
    return out


def generate_summary_data(prescriptions: Sequence[Prescription], start_hours: float, end_hours: float, *,
                          settings: EngineSettings = DEFAULT_ENGINE) -> list[PkSummary]:
    """One milestone timeline per prescription, each with its own diagnostics context."""
    return [
        PkSummary(
            prescription_id=rx.id,
            prescription_name=rx.name,
            events=tuple(generate_milestones(rx, start_hours, end_hours, settings=settings,
                                             diagnostics=Diagnostics())),
        )
        for rx in prescriptions
    ]


def _absorption_and_peak(rx: Prescription, settings: EngineSettings, diag: Diagnostics) -> tuple[float, float]:
    """
    (uptake, peak) offsets in hours. A missing uptake is recovered from the ka that
    the peak implies; a missing peak comes from peak_time(), 0 included.
    """
    if rx.uptake is not None:
        uptake_h = rx.uptake
    else:
        ka = resolve_absorption_rate(rx.half_life, None, rx.peak, settings=settings.solver, diagnostics=diag)
        uptake_h = LN2 / ka
    peak_h = rx.peak if rx.peak is not None else peak_time(rx.half_life, uptake_h)
    return uptake_h, peak_h


def _find_near(events: list[MilestoneEvent], at_h: float, event_type: str, epsilon_h: float) -> Optional[int]:
    for i, e in enumerate(events):
        if e.event_type == event_type and abs(e.elapsed_hours - at_h) < epsilon_h:
            return i
    return None
