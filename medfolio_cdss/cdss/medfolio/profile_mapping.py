"""
Build conflict check requests from stored patient records.

The conflict flow expects five populated strings. Patient records are
loosely shaped (lists may be missing, free-text history fields may be empty),
so this module collapses absent data into fixed placeholder literals before
the flow is invoked.
"""
from typing import Any, Dict, Iterable, List, Optional

from .api.models.conflict_models import ConflictCheckRequest

NO_DATA = "None"
NO_CONDITIONS = "None specified"

# Free-text profile fields that describe health conditions, in prompt order
HEALTH_CONDITION_FIELDS = ("personalHistory", "cancerHistory", "geneticHistory")


def _join(values: Iterable[Any], default: str) -> str:
    names = [str(v).strip() for v in values if v is not None and str(v).strip()]
    return ", ".join(names) or default


def _names(items: Optional[List[Any]], key: str) -> List[Any]:
    """Name of each entry; entries stored as plain strings are names already."""
    if isinstance(items, str):
        items = [items]
    names = []
    for item in items or []:
        if isinstance(item, dict):
            names.append(item.get(key))
        elif isinstance(item, str):
            names.append(item)
        elif item is not None:
            raise ValueError(f"Unreadable {key} entry in patient record: {item!r}")
    return names


def build_conflict_request(patient: Dict[str, Any],
                           prescriptions: Optional[List[Dict[str, Any]]],
                           new_medication: str) -> ConflictCheckRequest:
    """
    Map a patient record and its prescriptions to a ConflictCheckRequest.

    Args:
        patient: the patient document ("patients/<id>")
        prescriptions: documents of "patients/<id>/prescriptions"
        new_medication: the medication about to be prescribed

    Returns:
        ConflictCheckRequest with every field populated.
    """
    patient = patient or {}
    return ConflictCheckRequest(
        current_prescriptions=_join(_names(prescriptions, "medicationName"), NO_DATA),
        past_medications=_join(_names(patient.get("pastMedications"), "name"), NO_DATA),
        allergies=_join(_names(patient.get("allergies"), "allergen"), NO_DATA),
        health_conditions=_join((patient.get(f) for f in HEALTH_CONDITION_FIELDS), NO_CONDITIONS),
        new_medication=new_medication.strip(),
    )


def looks_conflict_free(narrative: str) -> bool:
    # Case-insensitive substring match; "no conflicts are likely, but..." also matches.
    return "no conflict" in (narrative or "").lower()
