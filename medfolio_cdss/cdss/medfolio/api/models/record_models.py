import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Allergy(BaseModel):
    allergen: str = Field(min_length=1)
    severity: str = Field(min_length=1)
    triggers: Optional[str] = None


class ChronicIllness(BaseModel):
    illness: str = Field(min_length=1)
    diagnosed: Optional[str] = None
    notes: Optional[str] = None


class PastMedication(BaseModel):
    name: str = Field(min_length=1)
    reason: Optional[str] = None
    discontinued: Optional[str] = None


class Surgery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    procedure_name: str = Field(alias="procedureName", min_length=1)
    date: Optional[str] = None
    notes: Optional[str] = None


class EmergencyContact(BaseModel):
    name: str = Field(min_length=1)
    relation: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    """Partial profile merged into the stored record; unknown keys are rejected."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class PatientProfileUpdate(ProfileUpdate):
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    date_of_birth: Optional[datetime.date] = Field(default=None, alias="dateOfBirth")
    gender: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    blood_group: Optional[str] = Field(default=None, alias="bloodGroup")
    occupation: Optional[str] = None
    village: Optional[str] = None
    identification_marks: Optional[str] = Field(default=None, alias="identificationMarks")
    personal_history: Optional[str] = Field(default=None, alias="personalHistory")
    cancer_history: Optional[str] = Field(default=None, alias="cancerHistory")
    genetic_history: Optional[str] = Field(default=None, alias="geneticHistory")
    other_medicines: Optional[str] = Field(default=None, alias="otherMedicines")
    bowel_habits: Optional[str] = Field(default=None, alias="bowelHabits")
    family_history: Optional[List[str]] = Field(default=None, alias="familyHistory")
    allergies: Optional[List[Allergy]] = None
    chronic_illnesses: Optional[List[ChronicIllness]] = Field(default=None, alias="chronicIllnesses")
    past_medications: Optional[List[PastMedication]] = Field(default=None, alias="pastMedications")
    surgeries: Optional[List[Surgery]] = None
    emergency_contacts: Optional[List[EmergencyContact]] = Field(default=None, alias="emergencyContacts")


class PatientCreate(ProfileUpdate):
    """Minimal record a doctor enters for a new patient."""
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    date_of_birth: datetime.date = Field(alias="dateOfBirth")
    gender: str = Field(min_length=1)


class DoctorProfileUpdate(ProfileUpdate):
    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=1)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=1)
    specialization: Optional[str] = Field(default=None, min_length=1)
    hospital_id: Optional[str] = Field(default=None, alias="hospitalId", min_length=1)


class PharmacyProfileUpdate(ProfileUpdate):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)


class LabProfileUpdate(ProfileUpdate):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)


# Profile model of each role, for PUT /api/me/profile
ROLE_PROFILE_MODELS = {
    "patient": PatientProfileUpdate,
    "doctor": DoctorProfileUpdate,
    "chemist": PharmacyProfileUpdate,
    "lab": LabProfileUpdate,
}


class PrescriptionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    medication_name: str = Field(alias="medicationName", min_length=1)
    dosage: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    start_date: str = Field(alias="startDate", min_length=1)
    end_date: str = Field(alias="endDate", min_length=1)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class MedicalReportCreate(BaseModel):
    """Report metadata entered by a lab; files are not stored."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    report_name: str = Field(alias="reportName", min_length=1)
    report_type: Literal["PDF", "Image", "Other"] = Field(alias="reportType")
    report_category: Literal["Recent", "Archived"] = Field(alias="reportCategory")
    upload_date: str = Field(alias="uploadDate", min_length=1)
    file_url: Optional[str] = Field(default=None, alias="fileUrl")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)
