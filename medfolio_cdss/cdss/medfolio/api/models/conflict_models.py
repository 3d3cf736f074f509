from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConflictCheckRequest(BaseModel):
    """
    The five free-text fields describing a patient's medical profile and the
    medication about to be prescribed.

    Callers collapse absent data into a placeholder literal ("None") before
    building the request; no defaulting happens here.
    """
    model_config = ConfigDict(strict=True, extra="forbid", populate_by_name=True, frozen=True)

    current_prescriptions: str = Field(alias="currentPrescriptions", min_length=1,
                                       description="The patient's current list of prescriptions.")
    past_medications: str = Field(alias="pastMedications", min_length=1,
                                  description="The patient's past medications.")
    allergies: str = Field(alias="allergies", min_length=1,
                           description="The patient's allergies.")
    health_conditions: str = Field(alias="healthConditions", min_length=1,
                                   description="Heart/brain conditions, pregnancy status, reproductive health "
                                               "constraints. Pregnancy status is omitted when not pregnant.")
    new_medication: str = Field(alias="newMedication", min_length=1,
                                description="The new medication being prescribed.")

    @field_validator("*")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class ConflictCheckResult(BaseModel):
    """
    Narrative returned by the model. States "no conflicts found" explicitly
    when nothing was identified.
    """
    model_config = ConfigDict(strict=True, extra="forbid")

    conflicts: str = Field(min_length=1)

    @field_validator("conflicts")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("conflicts narrative must not be blank")
        return value


class PatientConflictCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_medication: str = Field(alias="newMedication", min_length=2)


class PatientConflictCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conflicts: str
    conflict_free: bool = Field(alias="conflictFree")
