import pytest

from pkgraph import config, validation
from pkgraph.config import LN2
from pkgraph.validation import validate_prescription


def test_valid_prescription_passes(single_dose, with_metabolite):
    for rx in (single_dose, with_metabolite):
        result = validate_prescription(rx)
        assert result.valid
        assert result.errors == []
        assert result.warnings == []


@pytest.mark.parametrize("changes, message", [
    ({"name": "  "}, "Name must not be empty"),
    ({"name": "x" * 101}, "Name must be 100 characters or fewer"),
    ({"dose": 0}, "Dose must be at least 0.001"),
    ({"dose": 20000}, "Dose must be at most 10000"),
    ({"dose": True}, "Dose must be a number"),
    ({"half_life": 0.05}, "Half-life must be at least 0.1"),
    ({"half_life": 300}, "Half-life must be at most 240"),
    ({"uptake": 30}, "Uptake time must be at most 24"),
    ({"peak": 50}, "Peak time must be at most 48"),
    ({"metabolite_half_life": 2000}, "Metabolite half-life must be at most 1000"),
    ({"metabolite_conversion_fraction": 1.5}, "Metabolite conversion fraction must be at most 1"),
    ({"metabolite_name": "m" * 101}, "Metabolite name must be 100 characters or fewer"),
])
def test_field_errors(single_dose, changes, message):
    result = validate_prescription(single_dose.with_changes(**changes))
    assert not result.valid
    assert message in result.errors


def test_half_life_is_required(single_dose):
    result = validate_prescription(single_dose.with_changes(half_life=None))
    assert "Half-life is required" in result.errors


def test_frequency_and_times(single_dose, bid):
    assert validate_prescription(single_dose.with_changes(frequency="weekly")).errors == [
        "Frequency must be one of: once, qd, bid, tid, qid, q6h, q8h, q12h, custom",
    ]
    assert validate_prescription(bid.with_changes(times=("09:00",))).errors == [
        "Frequency 'bid' requires exactly 2 dosing time(s), but 1 provided",
    ]
    assert validate_prescription(bid.with_changes(times=())).errors == ["At least one dosing time is required"]
    errors = validate_prescription(bid.with_changes(times=("9:00", "21:00"))).errors
    assert errors == ["Time '9:00' is not valid HH:MM 24-hour format"]


def test_custom_frequency_accepts_any_count(single_dose):
    rx = single_dose.with_changes(frequency="custom", times=("06:00", "10:00", "14:00", "18:00", "22:00"))
    assert validate_prescription(rx).valid


@pytest.mark.parametrize("duration, unit, message", [
    (5, None, "Duration unit must be provided when duration is set"),
    (None, "days", "Duration value must be provided when duration unit is set"),
    (0.05, "days", "Duration must be at least 0.1"),
    (400, "days", "Duration in days must be at most 365"),
    (9000, "hours", "Duration in hours must be at most 8760"),
    (3, "weeks", "Duration unit must be 'days' or 'hours'"),
])
def test_duration_errors(single_dose, duration, unit, message):
    result = validate_prescription(single_dose.with_changes(duration=duration, duration_unit=unit))
    assert result.errors == [message]


def test_duration_in_range(single_dose):
    assert validate_prescription(single_dose.with_changes(duration=365, duration_unit="days")).valid
    assert validate_prescription(single_dose.with_changes(duration=8760, duration_unit="hours")).valid


def test_partial_metabolite_warns(with_metabolite):
    result = validate_prescription(with_metabolite.with_changes(metabolite_conversion_fraction=None))
    assert result.valid
    assert result.warnings == [
        "Metabolite half-life provided but conversion fraction missing. "
        "Both are required for metabolite visualization."
    ]
    result = validate_prescription(with_metabolite.with_changes(metabolite_half_life=None))
    assert result.warnings[0].startswith("Metabolite conversion fraction provided but half-life missing.")


def test_slow_uptake_warns_and_flags_fallback(ka_equals_ke):
    result = validate_prescription(ka_equals_ke)
    assert result.valid
    assert len(result.warnings) == 2
    assert result.warnings[0].startswith("Uptake time (4h) is greater than or equal to half-life (4h)")
    assert "ka ~ ke" in result.warnings[1]


def test_peak_at_natural_tmax_flags_fallback(single_dose):
    rx = single_dose.with_changes(peak=6 / LN2)
    result = validate_prescription(rx)
    assert result.valid
    assert len(result.warnings) == 1
    assert "ka ~ ke" in result.warnings[0]


def test_peak_overrides_uptake_for_fallback_check(ka_equals_ke):
    result = validate_prescription(ka_equals_ke.with_changes(peak=2))
    assert not any("ka ~ ke" in w for w in result.warnings)


def test_no_kinetics_warnings_for_out_of_range_half_life(ka_equals_ke):
    result = validate_prescription(ka_equals_ke.with_changes(half_life=500, uptake=500))
    assert not result.valid
    assert result.warnings == []


def test_shares_engine_tolerance():
    assert validation.KA_KE_TOLERANCE is config.KA_KE_TOLERANCE
