"""Appointment endpoints."""

from fastapi import APIRouter, status

from carebook.dependencies import CurrentIdentity, DatabaseSession
from carebook.schemas.appointments import (
    AppointmentUpdateResponse,
    BookingRequest,
    BookingResponse,
    DoctorAppointmentsResponse,
    DoctorAppointmentUpdate,
    PatientAppointmentsResponse,
)
from carebook.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/book",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Book an appointment (pay later)",
)
async def book_appointment(
    data: BookingRequest,
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> BookingResponse:
    """
    Book a slot for the caller without taking payment.

    The appointment starts scheduled and unpaid. A caller without a patient
    profile gets ``{"success": false}`` instead of an error status.

    Args:
        data: Doctor, day, time and reason
        identity: Authenticated patient
        db: Database session

    Returns:
        Created appointment

    Raises:
        NotFoundException: If the doctor is missing or not bookable
        SlotConflictException: If the slot is already held
    """
    service = AppointmentService(db)
    appointment = await service.create_booking(identity.identity_id, data)
    return BookingResponse(appointment=appointment)


@router.get(
    "/doctor",
    response_model=DoctorAppointmentsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List the doctor's appointments",
)
async def list_doctor_appointments(
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> DoctorAppointmentsResponse:
    """List the calling doctor's appointments with patient details, newest first."""
    service = AppointmentService(db)
    return DoctorAppointmentsResponse(appointments=await service.list_for_doctor(identity.identity_id))


@router.put(
    "/doctor",
    response_model=AppointmentUpdateResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update one of the doctor's appointments",
)
async def update_doctor_appointment(
    data: DoctorAppointmentUpdate,
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> AppointmentUpdateResponse:
    """
    Update status, notes, diagnosis or prescription.

    Raises:
        NotFoundException: If the appointment is not the caller's
        ConflictException: If the appointment is completed, cancelled or a no-show
    """
    service = AppointmentService(db)
    appointment = await service.update_status(identity.identity_id, data)
    return AppointmentUpdateResponse(appointment=appointment)


@router.get(
    "/patient",
    response_model=PatientAppointmentsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List the patient's appointments",
)
async def list_patient_appointments(
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> PatientAppointmentsResponse:
    """List the calling patient's appointments with doctor details, newest first."""
    service = AppointmentService(db)
    return PatientAppointmentsResponse(appointments=await service.list_for_patient(identity.identity_id))
