# src/pkgraph/dosing.py
from __future__ import annotations

import math
import re
from typing import Iterable, Sequence

import numpy as np

from .config import (DEFAULT_WINDOW_HOURS, MAX_WINDOW_HOURS, MIN_WINDOW_HOURS,
                     TAIL_OFF_HALF_LIVES)
from .types import Prescription

_CLOCK = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_clock_time(text: str) -> float:
    """
    "HH:MM" (24-hour) -> hours after midnight.
    Examples: "09:00" -> 9.0, "21:30" -> 21.5
    """
    m = _CLOCK.match(text.strip()) if isinstance(text, str) else None
    if m is None:
        raise ValueError(f"time must be HH:MM 24-hour (got {text!r}).")
    return int(m.group(1)) + int(m.group(2)) / 60.0


def expand_dose_times(times: Sequence[str], num_days: int) -> list[float]:
    """
    Repeat the daily clock times over num_days simulated days.

    times    : daily clock times, e.g. ["09:00", "21:00"]
    num_days : days 0 .. num_days-1 are expanded
    Returns the sorted dose offsets in hours from midnight of day 0,
    e.g. (["09:00", "21:00"], 2) -> [9, 21, 33, 45].
    """
    if num_days <= 0 or not times:
        return []
    clock_h = np.array([parse_clock_time(t) for t in times], dtype=float)
    day_starts = np.arange(num_days, dtype=float) * 24.0
    offsets = np.add.outer(day_starts, clock_h).ravel()
    return np.sort(offsets).tolist()


def days_to_cover(end_hours: float) -> int:
    """
    Days to expand so a window ending at end_hours is fully dosed.
    The extra day covers late-evening doses whose tail crosses midnight.
    """
    return max(0, math.ceil(end_hours / 24.0)) + 1


def dosing_window_end(prescription: Prescription, start_hours: float, end_hours: float) -> float:
    """Doses stop at start + duration when a duration is set, otherwise at end_hours."""
    duration_h = prescription.duration_hours
    if duration_h is None:
        return float(end_hours)
    return float(start_hours) + duration_h


def dose_offsets(prescription: Prescription, start_hours: float, end_hours: float,
                 *, include_prior: bool = True) -> list[float]:
    """
    Dose times (h) that feed a window [start_hours, end_hours].

    Without a duration, doses from day 0 onward count, including those before
    start_hours (their residual carries into the window) unless include_prior
    is False. With a duration, only doses in [start, start + duration) are given.
    Doses at or after the dosing window end are dropped.
    """
    dosing_end = dosing_window_end(prescription, start_hours, end_hours)
    horizon = max(float(end_hours), dosing_end)
    offsets = expand_dose_times(prescription.times, days_to_cover(horizon))

    lower = start_hours if (prescription.duration_hours is not None or not include_prior) else -math.inf
    return [d for d in offsets if lower <= d < dosing_end]


def last_dose_time(prescription: Prescription, num_days: int) -> float:
    """
    Time (h) of the last scheduled dose when the schedule runs for num_days days
    from midnight of day 0; a set duration cuts the schedule short. 0 if nothing is dosed.
    """
    if num_days <= 0:
        return 0.0
    offsets = expand_dose_times(prescription.times, num_days)
    duration_h = prescription.duration_hours
    if duration_h is not None:
        offsets = [d for d in offsets if d < duration_h]
    return max(offsets) if offsets else 0.0


def tail_off_duration(half_life_h: float, decay_factor: float = TAIL_OFF_HALF_LIVES) -> float:
    """Hours after the last dose for the curve to decay by decay_factor half-lives."""
    _validate_non_negative("decay_factor", decay_factor)
    return half_life_h * decay_factor


def auto_end_hours(prescriptions: Iterable[Prescription], base_end_hours: float = DEFAULT_WINDOW_HOURS) -> float:
    """
    Window end long enough for every prescription's last dose to tail off.

    Each prescription's schedule is expanded over the days covering base_end_hours;
    the result is last dose + tail-off, maximized over prescriptions and clamped to
    [MIN_WINDOW_HOURS, MAX_WINDOW_HOURS]. No prescriptions -> DEFAULT_WINDOW_HOURS.
    """
    prescriptions = list(prescriptions)
    if not prescriptions:
        return float(DEFAULT_WINDOW_HOURS)

    num_days = days_to_cover(base_end_hours)
    raw_end = max(last_dose_time(rx, num_days) + tail_off_duration(rx.half_life)
                  for rx in prescriptions)
    return max(MIN_WINDOW_HOURS, min(MAX_WINDOW_HOURS, raw_end))


# --------------------------
# Small input validators
# --------------------------
def _validate_non_negative(name: str, x: float) -> None:
    if x < 0:
        raise ValueError(f"{name} must be >= 0 (got {x}).")
