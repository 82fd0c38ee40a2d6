"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from carebook.config import settings
from carebook.core.slots import normalize_time_label, to_calendar_day
from carebook.schemas.common import CamelModel
from carebook.schemas.doctors import AvailabilitySlot


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


# Status moves a doctor may make; terminal statuses map to nothing.
# Nothing returns to scheduled, so a paid appointment stays confirmed or completed.
STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


class PrescriptionItem(CamelModel):
    """Single prescribed medication."""

    medication: str = Field(..., min_length=1, max_length=200)
    dosage: str | None = Field(None, max_length=100)
    frequency: str | None = Field(None, max_length=100)
    duration: str | None = Field(None, max_length=100)


class SlotRequest(CamelModel):
    """Doctor, calendar day and time label identifying a slot."""

    doctor_id: UUID
    appointment_date: date
    appointment_time: str = Field(..., min_length=1, max_length=20)
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("appointment_date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        """Reduce dates and datetimes to the clinic-local calendar day."""
        if isinstance(v, str | date):
            return to_calendar_day(v, settings.clinic_timezone)
        return v

    @field_validator("appointment_time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        """Canonicalize the time label used for slot matching."""
        label = normalize_time_label(v)
        if not label:
            raise ValueError("Appointment time is required")
        return label

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        """Reject whitespace-only reasons."""
        if not v.strip():
            raise ValueError("Reason is required")
        return v.strip()


class BookingRequest(SlotRequest):
    """Schema for booking an appointment directly (pay later)."""

    consultation_fee: int | None = Field(None, gt=0)
    symptoms: list[str] = Field(default_factory=list)


class AppointmentResponse(CamelModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: str
    symptoms: list[str] = Field(default_factory=list)
    notes: str = ""
    diagnosis: str = ""
    prescription: list[PrescriptionItem] = Field(default_factory=list)
    consultation_fee: int
    payment_status: PaymentStatus
    payment_reference: str | None = None
    payment_order_id: str | None = None
    payment_method: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None


class BookingResponse(CamelModel):
    """Result of a direct booking."""

    success: bool = True
    appointment: AppointmentResponse
    message: str = "Appointment booked successfully"


class DoctorAppointmentUpdate(CamelModel):
    """Doctor-side update of one of their appointments."""

    appointment_id: UUID
    status: AppointmentStatus | None = None
    notes: str | None = Field(None, max_length=5000)
    diagnosis: str | None = Field(None, max_length=5000)
    prescription: list[PrescriptionItem] | None = None


class AppointmentUpdateResponse(CamelModel):
    """Result of a doctor-side update."""

    success: bool = True
    appointment: AppointmentResponse


class AppointmentPatientSummary(CamelModel):
    """Patient fields flattened for the doctor's view."""

    id: UUID
    first_name: str
    last_name: str
    email: str
    contact_number: str
    date_of_birth: date | None = None
    gender: str


class DoctorAppointmentItem(CamelModel):
    """Appointment as listed for the doctor."""

    id: UUID
    patient: AppointmentPatientSummary
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: str
    symptoms: list[str]
    consultation_fee: int
    notes: str
    diagnosis: str
    prescription: list[PrescriptionItem]
    payment_status: PaymentStatus


class DoctorAppointmentsResponse(CamelModel):
    """Doctor's appointment list."""

    appointments: list[DoctorAppointmentItem]


class AppointmentDoctorSummary(CamelModel):
    """Doctor fields populated for the patient's view."""

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
    available_slots: list[AvailabilitySlot]


class PatientAppointmentItem(CamelModel):
    """Appointment as listed for the patient."""

    id: UUID
    doctor: AppointmentDoctorSummary
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: str
    consultation_fee: int
    payment_status: PaymentStatus


class PatientAppointmentsResponse(CamelModel):
    """Patient's appointment list."""

    appointments: list[PatientAppointmentItem]
