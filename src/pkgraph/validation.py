# src/pkgraph/validation.py
"""
Field-level checks for a Prescription before it reaches the engine.

Errors make the prescription unusable; warnings flag unusual but computable
kinetics. The ka ~ ke warning uses the same KA_KE_TOLERANCE that switches the
concentration formula, so the user is warned exactly when the fallback runs.
"""
from __future__ import annotations

from typing import Optional

from .config import KA_KE_TOLERANCE
from .dosing import parse_clock_time
from .models.one_compartment import elimination_rate, resolve_absorption_rate
from .types import FREQUENCY_MAP, Prescription, ValidationResult

# (min, max) per numeric field
LIMITS = {
    "dose": (0.001, 10000.0),
    "half_life": (0.1, 240.0),
    "peak": (0.1, 48.0),
    "uptake": (0.1, 24.0),
    "metabolite_half_life": (0.1, 1000.0),
    "metabolite_conversion_fraction": (0.0, 1.0),
}
NAME_MAX = 100
DURATION_MIN = 0.1
DURATION_MAX = {"days": 365.0, "hours": 8760.0}

_LABELS = {
    "dose": "Dose",
    "half_life": "Half-life",
    "peak": "Peak time",
    "uptake": "Uptake time",
    "metabolite_half_life": "Metabolite half-life",
    "metabolite_conversion_fraction": "Metabolite conversion fraction",
}


def validate_prescription(rx: Prescription) -> ValidationResult:
    errors: list[str] = []
    errors += _check_name(rx.name, "Name", required=True)
    errors += _check_range("dose", rx.dose, required=True)
    errors += _check_frequency_and_times(rx)
    errors += _check_range("half_life", rx.half_life, required=True)
    errors += _check_range("peak", rx.peak)
    errors += _check_range("uptake", rx.uptake)
    errors += _check_range("metabolite_half_life", rx.metabolite_half_life)
    errors += _check_range("metabolite_conversion_fraction", rx.metabolite_conversion_fraction)
    if rx.metabolite_name is not None:
        errors += _check_name(rx.metabolite_name, "Metabolite name", required=False)
    errors += _check_duration(rx.duration, rx.duration_unit)

    return ValidationResult(valid=not errors, errors=errors, warnings=_cross_field_warnings(rx))


def _check_name(name, label: str, required: bool) -> list[str]:
    if not isinstance(name, str):
        return [f"{label} must be a string"]
    trimmed = name.strip()
    if required and not trimmed:
        return [f"{label} must not be empty"]
    if len(trimmed) > NAME_MAX:
        return [f"{label} must be {NAME_MAX} characters or fewer"]
    return []


def _check_range(field: str, value: Optional[float], required: bool = False) -> list[str]:
    label = _LABELS[field]
    if value is None:
        return [f"{label} is required"] if required else []
    if not _is_number(value):
        return [f"{label} must be a number"]
    lo, hi = LIMITS[field]
    if value < lo:
        return [f"{label} must be at least {lo:g}"]
    if value > hi:
        return [f"{label} must be at most {hi:g}"]
    return []


def _check_frequency_and_times(rx: Prescription) -> list[str]:
    if rx.frequency not in FREQUENCY_MAP:
        return [f"Frequency must be one of: {', '.join(FREQUENCY_MAP)}"]
    if not rx.times:
        return ["At least one dosing time is required"]

    errors = []
    for t in rx.times:
        try:
            parse_clock_time(t)
        except ValueError:
            errors.append(f"Time {t!r} is not valid HH:MM 24-hour format")

    expected = FREQUENCY_MAP[rx.frequency]
    if expected is not None and len(rx.times) != expected:
        errors.append(f"Frequency '{rx.frequency}' requires exactly {expected} dosing time(s), "
                      f"but {len(rx.times)} provided")
    return errors


def _check_duration(duration: Optional[float], unit: Optional[str]) -> list[str]:
    if duration is None and unit is None:
        return []
    if unit is None:
        return ["Duration unit must be provided when duration is set"]
    if duration is None:
        return ["Duration value must be provided when duration unit is set"]
    if not _is_number(duration):
        return ["Duration must be a number"]
    if unit not in DURATION_MAX:
        return ["Duration unit must be 'days' or 'hours'"]

    errors = []
    if duration < DURATION_MIN:
        errors.append(f"Duration must be at least {DURATION_MIN:g}")
    if duration > DURATION_MAX[unit]:
        errors.append(f"Duration in {unit} must be at most {DURATION_MAX[unit]:g}")
    return errors


def _cross_field_warnings(rx: Prescription) -> list[str]:
    warnings = []

    has_life = rx.metabolite_half_life is not None
    has_fm = rx.metabolite_conversion_fraction is not None
    if has_life and not has_fm:
        warnings.append("Metabolite half-life provided but conversion fraction missing. "
                        "Both are required for metabolite visualization.")
    elif has_fm and not has_life:
        warnings.append("Metabolite conversion fraction provided but half-life missing. "
                        "Both are required for metabolite visualization.")

    # Kinetics checks only make sense on in-range inputs.
    if _check_range("half_life", rx.half_life, required=True):
        return warnings
    uptake_ok = not _check_range("uptake", rx.uptake, required=True)
    peak_ok = not _check_range("peak", rx.peak, required=True)

    if uptake_ok and rx.uptake >= rx.half_life:
        warnings.append(f"Uptake time ({rx.uptake:g}h) is greater than or equal to half-life "
                        f"({rx.half_life:g}h). This indicates atypical absorption kinetics.")

    if peak_ok or uptake_ok:
        # Same ka the engine will use: the peak wins over the uptake.
        ka = resolve_absorption_rate(rx.half_life, rx.uptake if uptake_ok else None,
                                     rx.peak if peak_ok else None)
        if abs(ka - elimination_rate(rx.half_life)) < KA_KE_TOLERANCE:
            warnings.append("Absorption and elimination rate constants are nearly equal (ka ~ ke). "
                            "The fallback formula will be used for calculations.")
    return warnings


def _is_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and x == x
