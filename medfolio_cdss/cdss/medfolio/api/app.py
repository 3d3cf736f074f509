"""
HTTP surface of the medical portfolio service.

Run with: uvicorn --factory cdss.medfolio.api.app:create_app
"""
from typing import Any, Dict, Optional
import logging
import os
import uuid

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..base_record_store import BaseRecordStore, load_record_store
from ..emergency_qr import build_emergency_url, build_qr_image_url, emergency_summary
from ..patient_records import search_patients, stamp_patient_write, utc_timestamp
from ..profile_mapping import build_conflict_request, looks_conflict_free
from .models.conflict_models import (
    ConflictCheckResult,
    PatientConflictCheckRequest,
    PatientConflictCheckResponse,
)
from .models.record_models import (
    ROLE_PROFILE_MODELS,
    MedicalReportCreate,
    PatientCreate,
    PatientProfileUpdate,
    PrescriptionCreate,
)
from .security.auth import current_session, ensure_patient_access, require_roles
from .security.crypto import SessionClaims
from .services.conflict_llm import MedicationConflictLLM, load_settings
from .services.errors import ConflictCheckError, InputValidationError

logger = logging.getLogger(__name__)

CONFLICT_CHECK_FAILED = "Conflict check failed, please try again."

PATIENTS = "patients"

# Collection holding the profile of each role
ROLE_COLLECTIONS = {
    "patient": PATIENTS,
    "doctor": "doctors",
    "chemist": "pharmacies",
    "lab": "diagnosticLabs",
}


def _prescriptions(patient_id: str) -> str:
    return f"{PATIENTS}/{patient_id}/prescriptions"


def _medical_reports(patient_id: str) -> str:
    return f"{PATIENTS}/{patient_id}/medicalReports"


def create_app(conflict_llm: Optional[MedicationConflictLLM] = None,
               store: Optional[BaseRecordStore] = None,
               config_file: str = "config.yml",
               session_secret: Optional[bytes] = None,
               public_base_url: Optional[str] = None) -> FastAPI:
    logging.basicConfig(level=logging.INFO)

    settings: Dict[str, Any] = {}
    if conflict_llm is None or store is None or public_base_url is None:
        settings = load_settings(config_file)

    if store is None:
        store_config = settings.get('record_store', {})
        store = load_record_store(
            store_config.get('module_name', 'cdss.medfolio.sql_record_store'),
            store_config.get('class_name', 'SQLRecordStore'),
            store_config.get('config', {}),
        )
    if conflict_llm is None:
        conflict_llm = MedicationConflictLLM(settings=settings)
    if session_secret is None:
        session_secret = os.environ.get("MEDFOLIO_SESSION_SECRET", "").encode("utf-8")

    app = FastAPI(title="Medfolio CDSS API", version="0.1.0")
    app.state.session_secret = session_secret
    base_url = public_base_url or settings.get('public_base_url', "http://localhost:8000")

    @app.exception_handler(ConflictCheckError)
    def conflict_check_failed(request: Request, exc: ConflictCheckError):
        status = 422 if isinstance(exc, InputValidationError) else 502
        logger.error("Conflict check failed on %s: %s", request.url.path, exc,
                     exc_info=(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=status, content={"detail": CONFLICT_CHECK_FAILED})

    def _patient_or_404(patient_id: str) -> Dict[str, Any]:
        patient = store.get_record(PATIENTS, patient_id)
        if patient is None:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def _save_patient(patient_id: str, update: PatientProfileUpdate) -> Dict[str, Any]:
        existing = store.get_record(PATIENTS, patient_id)
        data = stamp_patient_write(patient_id, update.to_record(), existing)
        return store.set_record(PATIENTS, patient_id, data, merge=True)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/conflict-check", response_model=ConflictCheckResult)
    def conflict_check(payload: Dict[str, Any] = Body(...),
                       session: SessionClaims = Depends(require_roles("doctor", "chemist"))):
        return conflict_llm.check_medication_conflict(payload)

    @app.post("/api/patients/{patient_id}/conflict-check",
              response_model=PatientConflictCheckResponse, response_model_by_alias=True)
    def patient_conflict_check(patient_id: str, body: PatientConflictCheckRequest,
                               session: SessionClaims = Depends(require_roles("doctor", "chemist"))):
        patient = _patient_or_404(patient_id)
        prescriptions = store.query_records(_prescriptions(patient_id))
        try:
            request = build_conflict_request(patient, prescriptions, body.new_medication)
        except ValueError as e:
            raise InputValidationError("Invalid conflict check request") from e
        result = conflict_llm.check_medication_conflict(request)
        return PatientConflictCheckResponse(conflicts=result.conflicts,
                                            conflict_free=looks_conflict_free(result.conflicts))

    @app.get("/api/patients")
    def list_patients(q: Optional[str] = None,
                      session: SessionClaims = Depends(require_roles("doctor", "chemist", "lab"))):
        return search_patients(store.query_records(PATIENTS), q)

    @app.post("/api/patients", status_code=201)
    def create_patient(body: PatientCreate, session: SessionClaims = Depends(require_roles("doctor"))):
        patient_id = uuid.uuid4().hex
        update = PatientProfileUpdate.model_validate(body.to_record())
        patient = _save_patient(patient_id, update)
        logger.info("Patient %s (%s) created by %s", patient_id, patient["medicalPortfolioId"], session.uid)
        return patient

    @app.get("/api/patients/{patient_id}")
    def get_patient(patient_id: str, session: SessionClaims = Depends(current_session)):
        ensure_patient_access(session, patient_id, "doctor", "chemist", "lab")
        return _patient_or_404(patient_id)

    @app.put("/api/patients/{patient_id}")
    def update_patient(patient_id: str, body: PatientProfileUpdate,
                       session: SessionClaims = Depends(current_session)):
        ensure_patient_access(session, patient_id, "doctor")
        return _save_patient(patient_id, body)

    @app.get("/api/patients/{patient_id}/prescriptions")
    def list_prescriptions(patient_id: str, session: SessionClaims = Depends(current_session)):
        ensure_patient_access(session, patient_id, "doctor", "chemist")
        return store.query_records(_prescriptions(patient_id))

    @app.post("/api/patients/{patient_id}/prescriptions", status_code=201)
    def add_prescription(patient_id: str, body: PrescriptionCreate,
                         session: SessionClaims = Depends(require_roles("doctor"))):
        _patient_or_404(patient_id)
        doctor = store.get_record(ROLE_COLLECTIONS["doctor"], session.uid) or {}
        doctor_name = " ".join(p for p in (doctor.get("firstName"), doctor.get("lastName")) if p)
        data = {
            **body.to_record(),
            "patientId": patient_id,
            "doctorId": session.uid,
            "doctorName": doctor_name or None,
            "createdAt": utc_timestamp(),
        }
        doc_id = store.add_record(_prescriptions(patient_id), data)
        logger.info("Prescription %s added for patient %s by %s", doc_id, patient_id, session.uid)
        return {**data, "id": doc_id}

    @app.get("/api/patients/{patient_id}/medical-reports")
    def list_medical_reports(patient_id: str, session: SessionClaims = Depends(current_session)):
        ensure_patient_access(session, patient_id, "doctor", "lab")
        return store.query_records(_medical_reports(patient_id))

    @app.post("/api/patients/{patient_id}/medical-reports", status_code=201)
    def upload_medical_report(patient_id: str, body: MedicalReportCreate,
                              session: SessionClaims = Depends(require_roles("lab"))):
        _patient_or_404(patient_id)
        data = {
            **body.to_record(),
            "patientId": patient_id,
            "uploadedByLabId": session.uid,
            "createdAt": utc_timestamp(),
        }
        doc_id = store.add_record(_medical_reports(patient_id), data)
        logger.info("Report %s uploaded for patient %s by lab %s", doc_id, patient_id, session.uid)
        return {**data, "id": doc_id}

    @app.put("/api/me/profile")
    def update_own_profile(payload: Dict[str, Any] = Body(...),
                           session: SessionClaims = Depends(current_session)):
        try:
            update = ROLE_PROFILE_MODELS[session.role].model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e
        if session.role == "patient":
            return _save_patient(session.uid, update)
        data = {**update.to_record(), "updatedAt": utc_timestamp()}
        return store.set_record(ROLE_COLLECTIONS[session.role], session.uid, data, merge=True)

    @app.get("/api/patients/{patient_id}/emergency")
    def emergency(patient_id: str):
        patient = _patient_or_404(patient_id)
        return emergency_summary(patient, store.query_records(_prescriptions(patient_id)))

    @app.get("/api/patients/{patient_id}/qr-code")
    def qr_code(patient_id: str, session: SessionClaims = Depends(current_session)):
        ensure_patient_access(session, patient_id)
        _patient_or_404(patient_id)
        emergency_url = build_emergency_url(base_url, patient_id)
        return {"emergencyUrl": emergency_url, "qrCodeUrl": build_qr_image_url(emergency_url)}

    return app
