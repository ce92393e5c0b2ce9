# src/pkgraph/types.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, Optional, Tuple

# We keep *all* time in HOURS internally. (Easy math, avoids unit drift.)
FrequencyLabel = Literal["once", "qd", "bid", "tid", "qid", "q6h", "q8h", "q12h", "custom"]
DurationUnit = Literal["days", "hours"]
EventType = Literal["dose", "absorption_end", "peak", "half_life", "next_dose"]

# Expected number of daily clock times per frequency (None = any count).
FREQUENCY_MAP: dict[str, Optional[int]] = {
    "once": 1,
    "qd": 1,
    "bid": 2,
    "tid": 3,
    "qid": 4,
    "q6h": 4,
    "q8h": 3,
    "q12h": 2,
    "custom": None,
}


@dataclass(frozen=True)
class Prescription:
    """
    One medication as the user entered it.

    name            : drug name, used for labels
    frequency       : dosing frequency label (bid, tid, ...)
    times           : daily clock times, "HH:MM" 24-hour
    dose            : dose size (arbitrary mass unit, only relative values matter)
    half_life       : elimination half-life (h)
    uptake          : absorption time (h); ka = ln2 / uptake
    peak            : desired Tmax (h); when given, ka is derived from it instead of uptake
    metabolite_*    : optional active metabolite; both half-life and fm are needed to graph it
    duration        : optional course length, in duration_unit; dosing stops after it
    """
    name: str
    frequency: FrequencyLabel
    times: Tuple[str, ...]
    dose: float
    half_life: float
    uptake: Optional[float] = None
    peak: Optional[float] = None
    metabolite_half_life: Optional[float] = None
    metabolite_conversion_fraction: Optional[float] = None
    metabolite_name: Optional[str] = None
    duration: Optional[float] = None
    duration_unit: Optional[DurationUnit] = None
    id: Optional[str] = None

    def __post_init__(self):
        if self.uptake is None and self.peak is None:
            raise ValueError(f"Prescription '{self.name}' needs an uptake or a peak time.")
        # Accept any sequence of clock strings but store an immutable tuple.
        object.__setattr__(self, "times", tuple(self.times))

    @property
    def has_metabolite(self) -> bool:
        return self.metabolite_half_life is not None and self.metabolite_conversion_fraction is not None

    @property
    def duration_hours(self) -> Optional[float]:
        """Course length in hours, or None when no complete duration is set."""
        if self.duration is None or self.duration_unit is None:
            return None
        if self.duration_unit == "days":
            return float(self.duration) * 24.0
        return float(self.duration)

    def with_changes(self, **changes) -> "Prescription":
        return replace(self, **changes)


@dataclass(frozen=True)
class TimeSeriesPoint:
    time: float            # hours from simulation start reference (midnight of day 0)
    concentration: float   # relative, 0..1 after normalization


@dataclass(frozen=True)
class GraphDataset:
    label: str
    data: Tuple[TimeSeriesPoint, ...]
    color: Optional[str] = None
    is_metabolite: bool = False


@dataclass(frozen=True)
class MilestoneEvent:
    """
    A labelled point on a prescription's timeline.

    relative_concentration is None for dose and absorption_end events,
    1.0 for the peak and a fraction of the peak afterwards.
    """
    event_type: EventType
    elapsed_hours: float
    elapsed_label: str
    relative_concentration: Optional[float]
    description: str
    prescription_name: str


@dataclass(frozen=True)
class PkSummary:
    prescription_id: Optional[str]
    prescription_name: str
    events: Tuple[MilestoneEvent, ...]


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
