from typing import Any, Dict, List, Optional
from urllib.parse import quote

QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"

# Characters left unescaped by encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_emergency_url(base_url: str, patient_id: str) -> str:
    """Public page a responder opens after scanning the code."""
    return f"{base_url.rstrip('/')}/emergency/{quote(patient_id, safe='')}"


def build_qr_image_url(data: str, size: int = 300) -> str:
    """URL of a QR image rendered by the third-party service; nothing is generated locally."""
    if size <= 0:
        raise ValueError("QR code size must be positive")
    return f"{QR_SERVICE_URL}?size={size}x{size}&data={quote(data, safe=_URI_COMPONENT_SAFE)}"


def _allergy_entries(allergies: Any) -> List[Dict[str, Any]]:
    if isinstance(allergies, (str, dict)):
        allergies = [allergies]
    entries = []
    for allergy in allergies or []:
        if isinstance(allergy, dict):
            entries.append(allergy)
        elif isinstance(allergy, str) and allergy.strip():
            entries.append({"allergen": allergy.strip(), "severity": None})
    return entries


def emergency_summary(patient: Dict[str, Any], prescriptions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Critical information shown without a login: blood group, severe allergies, chronic conditions, contacts.

    Allergies with no recorded severity are listed with the severe ones.
    """
    name = " ".join(p for p in (patient.get("firstName"), patient.get("lastName")) if p)
    return {
        "name": name or None,
        "medicalPortfolioId": patient.get("medicalPortfolioId"),
        "bloodGroup": patient.get("bloodGroup") or "N/A",
        "severeAllergies": [a for a in _allergy_entries(patient.get("allergies"))
                            if a.get("severity") in ("Severe", None, "")],
        "chronicIllnesses": list(patient.get("chronicIllnesses") or []),
        "emergencyContacts": list(patient.get("emergencyContacts") or []),
        "currentMedications": [
            {k: p.get(k) for k in ("medicationName", "dosage", "frequency")}
            for p in prescriptions or []
        ],
    }
