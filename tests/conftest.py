import pytest

from pkgraph.types import Prescription


@pytest.fixture
def single_dose():
    """500 mg once daily at 09:00, t1/2 6 h, uptake 1.5 h (Tmax exactly 4 h)."""
    return Prescription(name="Test Drug A", frequency="once", times=("09:00",),
                        dose=500, half_life=6, uptake=1.5)


@pytest.fixture
def bid():
    return Prescription(name="Test Drug B", frequency="bid", times=("09:00", "21:00"),
                        dose=500, half_life=6, uptake=1.5)


@pytest.fixture
def ka_equals_ke():
    """uptake == half-life, so ka == ke and the limit formula runs."""
    return Prescription(name="Test Drug C", frequency="bid", times=("08:00", "20:00"),
                        dose=250, half_life=4, uptake=4)


@pytest.fixture
def with_metabolite():
    return Prescription(name="Test Metabolite Drug", frequency="bid", times=("09:00", "21:00"),
                        dose=500, half_life=6, uptake=1.5, peak=2,
                        metabolite_half_life=12, metabolite_conversion_fraction=0.8)
