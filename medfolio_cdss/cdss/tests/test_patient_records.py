import datetime

import pytest

from cdss.medfolio.patient_records import (
    age_in_years,
    new_portfolio_id,
    search_patients,
    stamp_patient_write,
)

TODAY = datetime.date(2026, 10, 19)

PATIENTS = [
    {"id": "p1", "firstName": "Jane", "lastName": "Doe", "medicalPortfolioId": "MPI-1700000000001"},
    {"id": "p2", "firstName": "Ravi", "lastName": "Kumar", "medicalPortfolioId": "MPI-1700000000002"},
    {"id": "p3", "firstName": "Ann"},
]


def test_new_portfolio_id_uses_epoch_millis() -> None:
    assert new_portfolio_id(1_700_000_000_123) == "MPI-1700000000123"
    assert new_portfolio_id().startswith("MPI-")


@pytest.mark.parametrize("dob,age", [("1990-05-01", 36), ("1990-12-31", 36), ("2026-01-01", 0)])
def test_age_is_calendar_year_difference(dob: str, age: int) -> None:
    assert age_in_years(dob, TODAY) == age


def test_first_write_gets_portfolio_id_owner_and_age() -> None:
    # Act
    stamped = stamp_patient_write("p9", {"firstName": "Ann", "dateOfBirth": "1985-02-14"}, None, today=TODAY)

    # Assert
    assert stamped["medicalPortfolioId"].startswith("MPI-")
    assert stamped["ownerId"] == "p9"
    assert stamped["age"] == 41
    assert stamped["createdAt"].endswith("Z") and "updatedAt" in stamped


def test_later_writes_keep_portfolio_id() -> None:
    existing = {"id": "p9", "medicalPortfolioId": "MPI-1", "ownerId": "p9"}
    data = {"bloodGroup": "A-"}

    stamped = stamp_patient_write("p9", data, existing)

    assert "medicalPortfolioId" not in stamped and "ownerId" not in stamped and "age" not in stamped
    assert stamped["bloodGroup"] == "A-" and "updatedAt" in stamped
    assert data == {"bloodGroup": "A-"}


@pytest.mark.parametrize(
    "term,expected",
    [
        (None, ["p1", "p2", "p3"]),
        ("  ", ["p1", "p2", "p3"]),
        ("JANE", ["p1"]),
        ("ravi kumar", ["p2"]),
        ("mpi-17000000000", ["p1", "p2"]),
        ("0002", ["p2"]),
        ("ann", ["p3"]),
        ("zed", []),
    ],
)
def test_search_patients(term, expected) -> None:
    assert [p["id"] for p in search_patients(PATIENTS, term)] == expected
