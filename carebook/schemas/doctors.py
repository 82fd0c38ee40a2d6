"""Doctor schemas for request/response validation."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from carebook.schemas.common import CamelModel


class AvailabilitySlot(CamelModel):
    """Weekly availability window; overlaps are not validated."""

    day: str = Field(..., min_length=1, max_length=20)
    start_time: str = Field(..., min_length=1, max_length=20)
    end_time: str = Field(..., min_length=1, max_length=20)


class DoctorProfileUpdate(CamelModel):
    """Doctor onboarding / profile upsert payload."""

    model_config = ConfigDict(extra="ignore")

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, max_length=320)
    specialization: str | None = Field(None, min_length=1, max_length=200)
    experience_years: int | None = Field(None, ge=0)
    qualification: str | None = None
    contact_number: str | None = Field(None, max_length=30)
    consultation_fee: int | None = Field(None, ge=0)
    available_slots: list[AvailabilitySlot] | None = None
    biography: str | None = None

    @field_validator("experience_years", "consultation_fee", mode="before")
    @classmethod
    def blank_number_to_zero(cls, v: Any) -> Any:
        """Form inputs send numbers as strings; an empty field means 0."""
        if isinstance(v, str) and not v.strip():
            return 0
        return v


class DoctorResponse(CamelModel):
    """Doctor profile response."""

    id: UUID
    identity_id: str
    first_name: str
    last_name: str
    email: str
    specialization: str
    experience_years: int
    qualification: str
    contact_number: str
    consultation_fee: int
    available_slots: list[AvailabilitySlot] = Field(default_factory=list)
    biography: str = ""
    rating: float = 0.0
    total_patients: int = 0
    is_active: bool
    profile_completed: bool
    created_at: datetime
    updated_at: datetime


class DoctorProfileEnvelope(CamelModel):
    """Doctor profile lookup."""

    doctor: DoctorResponse


class DoctorSaveResponse(CamelModel):
    """Result of a doctor profile upsert."""

    success: bool = True
    doctor: DoctorResponse
    message: str = "Doctor profile saved"


class DoctorListItem(CamelModel):
    """Doctor entry in the public directory."""

    id: UUID
    first_name: str
    last_name: str
    specialization: str
    experience_years: int
    qualification: str
    consultation_fee: int
    rating: float
    total_patients: int
    biography: str
    available_slots: list[AvailabilitySlot] = Field(default_factory=list)


class DoctorListResponse(CamelModel):
    """Doctor directory."""

    doctors: list[DoctorListItem]
