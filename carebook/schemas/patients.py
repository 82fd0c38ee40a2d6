"""Patient schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import ConfigDict, Field

from carebook.schemas.common import CamelModel


class Gender(str, Enum):
    """Patient gender enumeration."""

    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Address(CamelModel):
    """Postal address."""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class EmergencyContact(CamelModel):
    """Emergency contact person."""

    name: str | None = None
    phone: str | None = None
    relationship: str | None = None


class MedicalHistory(CamelModel):
    """Self-reported medical history."""

    allergies: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)


class PatientProfileUpdate(CamelModel):
    """
    Patient profile upsert payload.

    Unknown keys (including ``identityId`` and ``id``) are dropped, so a
    client cannot rebind the profile to another identity.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(None, min_length=1, max_length=200)
    gender: Gender | None = None
    phone: str | None = Field(None, max_length=30)
    contact_number: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=320)
    date_of_birth: date | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    medical_history: MedicalHistory | None = None


class PatientResponse(CamelModel):
    """Patient profile response."""

    id: UUID
    identity_id: str
    name: str
    age: int | None = None
    gender: Gender | None = None
    phone: str | None = None
    email: str | None = None
    date_of_birth: date | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    medical_history: MedicalHistory | None = None
    created_at: datetime
    updated_at: datetime


class PatientProfileEnvelope(CamelModel):
    """Profile lookup; ``patient`` is null until onboarding."""

    patient: PatientResponse | None = None


class PatientSaveResponse(CamelModel):
    """Result of a profile upsert."""

    success: bool = True
    patient: PatientResponse
