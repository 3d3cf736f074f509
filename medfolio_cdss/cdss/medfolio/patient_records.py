"""
Bookkeeping fields of patient records.

Every write of a patient document goes through ``stamp_patient_write`` so the
portfolio id, owner, age and update time are set the same way whether the
record is created by a doctor or edited by its owner.
"""
from typing import Any, Dict, Iterable, List, Optional
import datetime
import time


def utc_timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def new_portfolio_id(now_ms: Optional[int] = None) -> str:
    """Medical Portfolio Identifier shown to staff, ``MPI-<epoch ms>``."""
    return f"MPI-{now_ms if now_ms is not None else int(time.time() * 1000)}"


def age_in_years(date_of_birth: str, today: Optional[datetime.date] = None) -> int:
    # Calendar-year difference, birthdays are not taken into account
    today = today or datetime.date.today()
    return today.year - datetime.date.fromisoformat(date_of_birth).year


def stamp_patient_write(patient_id: str, data: Dict[str, Any], existing: Optional[Dict[str, Any]],
                        today: Optional[datetime.date] = None) -> Dict[str, Any]:
    """
    Add the derived fields to a validated patient write.

    Args:
        patient_id: id of the patient document
        data: validated fields about to be merged
        existing: the stored document, None on the first write

    Returns:
        A new dict ready for a merge write.
    """
    stamped = dict(data)
    if existing is None:
        stamped["medicalPortfolioId"] = new_portfolio_id()
        stamped["ownerId"] = patient_id
        stamped["createdAt"] = utc_timestamp()
    if stamped.get("dateOfBirth"):
        stamped["age"] = age_in_years(stamped["dateOfBirth"], today)
    stamped["updatedAt"] = utc_timestamp()
    return stamped


def search_patients(patients: Iterable[Dict[str, Any]], term: Optional[str]) -> List[Dict[str, Any]]:
    """Case-insensitive match of the term against the full name or the portfolio id."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(patients)
    found = []
    for patient in patients:
        name = f"{patient.get('firstName') or ''} {patient.get('lastName') or ''}".strip().lower()
        mpi = str(patient.get("medicalPortfolioId") or "").lower()
        if needle in name or needle in mpi:
            found.append(patient)
    return found
