"""Appointment ledger and slot availability."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.exceptions import (
    ConflictException,
    NotFoundException,
    ProfileIncompleteException,
    SlotConflictException,
    StoreUnavailableException,
)
from carebook.models.appointments import ACTIVE_STATUSES, appointments
from carebook.models.doctors import doctors
from carebook.models.patients import patients
from carebook.schemas.appointments import (
    STATUS_TRANSITIONS,
    AppointmentStatus,
    BookingRequest,
    DoctorAppointmentUpdate,
    PaymentStatus,
)
from carebook.services.doctor_service import DoctorService, is_bookable
from carebook.services.patient_service import PatientService

logger = structlog.get_logger(__name__)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    # ------------------------------------------------------------------
    # Slot availability
    # ------------------------------------------------------------------

    async def is_slot_free(self, doctor_id: UUID, appointment_date: date, appointment_time: str) -> bool:
        """
        Check whether a slot is free.

        A slot is taken while any appointment for the same doctor, calendar
        day and time label is scheduled or confirmed.

        Raises:
            StoreUnavailableException: If the store cannot answer; callers
                must not treat this as "free"
        """
        stmt = (
            select(appointments.c.id)
            .where(
                and_(
                    appointments.c.doctor_id == doctor_id,
                    appointments.c.appointment_date == appointment_date,
                    appointments.c.appointment_time == appointment_time,
                    appointments.c.status.in_(ACTIVE_STATUSES),
                )
            )
            .limit(1)
        )

        try:
            result = await self.db.execute(stmt)
        except (OperationalError, TimeoutError) as e:
            logger.error("slot_check_failed", doctor_id=str(doctor_id), error=str(e))
            raise StoreUnavailableException() from e

        return result.first() is None

    async def find_active_for_slot(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        appointment_date: date,
        appointment_time: str,
    ) -> dict | None:
        """Active appointment a patient holds for a slot, if any."""
        stmt = select(appointments).where(
            and_(
                appointments.c.patient_id == patient_id,
                appointments.c.doctor_id == doctor_id,
                appointments.c.appointment_date == appointment_date,
                appointments.c.appointment_time == appointment_time,
                appointments.c.status.in_(ACTIVE_STATUSES),
            )
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_by_payment_reference(self, payment_reference: str) -> dict | None:
        """Appointment already settled by a gateway payment, if any."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.payment_reference == payment_reference)
        )
        row = result.mappings().first()
        return dict(row) if row else None

    async def get_appointment(self, appointment_id: UUID) -> dict:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        result = await self.db.execute(select(appointments).where(appointments.c.id == appointment_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    async def create_booking(self, identity_id: str, data: BookingRequest) -> dict:
        """
        Book a slot for the calling patient, unpaid.

        Args:
            identity_id: External identity id of the patient
            data: Booking request

        Returns:
            Created appointment (scheduled / pending)

        Raises:
            ProfileIncompleteException: If the caller has no patient profile
            NotFoundException: If the doctor is missing or inactive
            SlotConflictException: If the slot is already held
        """
        patient = await PatientService(self.db).get_by_identity(identity_id)
        if not patient:
            raise ProfileIncompleteException()

        doctor = await self.get_bookable_doctor(data.doctor_id)

        if not await self.is_slot_free(doctor["id"], data.appointment_date, data.appointment_time):
            raise SlotConflictException()

        appointment = await self.insert_appointment(
            {
                "patient_id": patient["id"],
                "doctor_id": doctor["id"],
                "appointment_date": data.appointment_date,
                "appointment_time": data.appointment_time,
                "reason": data.reason,
                "symptoms": data.symptoms,
                "consultation_fee": data.consultation_fee or doctor["consultation_fee"],
                "status": AppointmentStatus.SCHEDULED.value,
                "payment_status": PaymentStatus.PENDING.value,
            }
        )

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment["id"]),
            doctor_id=str(doctor["id"]),
            appointment_date=data.appointment_date.isoformat(),
            appointment_time=data.appointment_time,
        )
        return appointment

    async def get_bookable_doctor(self, doctor_id: UUID) -> dict:
        """
        Get a doctor that can take bookings.

        Raises:
            NotFoundException: If the doctor is missing, inactive, not yet
                onboarded or has no consultation fee
        """
        doctor = await DoctorService().get_doctor_by_id(self.db, doctor_id)
        if not doctor or not is_bookable(doctor):
            raise NotFoundException("Doctor not found")
        return doctor

    async def insert_appointment(self, values: dict[str, Any]) -> dict:
        """
        Insert an appointment row.

        The active-slot unique index makes this the point where concurrent
        bookings for one slot are serialized.

        Raises:
            SlotConflictException: If the insert violates a unique index
        """
        stmt = insert(appointments).values(**values).returning(appointments)
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(
                "appointment_insert_conflict",
                doctor_id=str(values.get("doctor_id")),
                appointment_date=str(values.get("appointment_date")),
                appointment_time=values.get("appointment_time"),
            )
            raise SlotConflictException() from e

        row = result.mappings().one()
        await self.db.commit()
        return dict(row)

    async def update_status(self, identity_id: str, data: DoctorAppointmentUpdate) -> dict:
        """
        Update one of the calling doctor's appointments.

        Args:
            identity_id: External identity id of the doctor
            data: Fields to change

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If the caller is not a doctor or does not own it
            ConflictException: If the status change is not allowed
        """
        doctor = await DoctorService().get_by_identity(self.db, identity_id)
        if not doctor:
            raise NotFoundException("Doctor not found")

        result = await self.db.execute(
            select(appointments).where(
                and_(
                    appointments.c.id == data.appointment_id,
                    appointments.c.doctor_id == doctor["id"],
                )
            )
        )
        current = result.mappings().first()
        if not current:
            raise NotFoundException("Appointment not found")

        values: dict[str, Any] = {}
        for field in ("notes", "diagnosis"):
            value = getattr(data, field)
            if value is not None:
                values[field] = value

        if data.prescription is not None:
            values["prescription"] = [item.model_dump() for item in data.prescription]

        if data.status is not None and data.status.value != current["status"]:
            if data.status not in STATUS_TRANSITIONS[AppointmentStatus(current["status"])]:
                raise ConflictException(
                    f"Appointment cannot move from {current['status']} to {data.status.value}"
                )
            values["status"] = data.status.value
            if data.status == AppointmentStatus.CANCELLED:
                values["cancelled_at"] = datetime.now(UTC)

        if not values:
            return dict(current)

        stmt = (
            update(appointments)
            .where(appointments.c.id == data.appointment_id)
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()

        if "status" in values:
            logger.info(
                "appointment_status_changed",
                appointment_id=str(data.appointment_id),
                old_status=current["status"],
                new_status=values["status"],
            )

        return dict(row)

    async def mark_paid(
        self,
        appointment_id: UUID,
        payment_reference: str | None = None,
        payment_order_id: str | None = None,
        payment_method: str | None = None,
    ) -> dict:
        """
        Mark an appointment paid.

        Idempotent: an appointment that is already paid is returned as
        stored. A scheduled appointment is promoted to confirmed.

        Raises:
            NotFoundException: If appointment not found
            ConflictException: If the appointment was cancelled, missed or refunded
        """
        current = await self.get_appointment(appointment_id)

        if current["payment_status"] == PaymentStatus.PAID.value:
            return current

        if current["payment_status"] == PaymentStatus.REFUNDED.value:
            raise ConflictException("Appointment payment was refunded")

        if current["status"] in (AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value):
            raise ConflictException(f"Cannot take payment for a {current['status']} appointment")

        values: dict[str, Any] = {"payment_status": PaymentStatus.PAID.value}
        if current["status"] == AppointmentStatus.SCHEDULED.value:
            values["status"] = AppointmentStatus.CONFIRMED.value
        if payment_reference:
            values["payment_reference"] = payment_reference
        if payment_order_id:
            values["payment_order_id"] = payment_order_id
        if payment_method:
            values["payment_method"] = payment_method

        # The payment_status guard keeps a racing second call from re-applying
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.payment_status == PaymentStatus.PENDING.value,
                )
            )
            .values(**values)
            .returning(appointments)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("Payment reference is already applied to another appointment") from e

        row = result.mappings().first()
        await self.db.commit()

        if row is None:
            return await self.get_appointment(appointment_id)

        logger.info(
            "appointment_marked_paid",
            appointment_id=str(appointment_id),
            payment_reference=payment_reference,
        )
        return dict(row)

    async def mark_refunded(self, payment_reference: str) -> dict | None:
        """
        Record a refund for the appointment settled by ``payment_reference``.

        An active appointment is cancelled so its slot is released.

        Returns:
            Updated appointment, or None if no appointment carries the reference
        """
        current = await self.find_by_payment_reference(payment_reference)
        if current is None:
            return None

        if current["payment_status"] == PaymentStatus.REFUNDED.value:
            return current

        values: dict[str, Any] = {"payment_status": PaymentStatus.REFUNDED.value}
        if current["status"] in ACTIVE_STATUSES:
            values["status"] = AppointmentStatus.CANCELLED.value
            values["cancelled_at"] = datetime.now(UTC)

        stmt = (
            update(appointments)
            .where(appointments.c.id == current["id"])
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()

        logger.info(
            "appointment_refunded",
            appointment_id=str(current["id"]),
            payment_reference=payment_reference,
        )
        return dict(row)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def list_for_doctor(self, identity_id: str) -> list[dict]:
        """
        List the calling doctor's appointments, newest first.

        Patient fields are flattened, with defaults for anything missing.

        Raises:
            NotFoundException: If the caller has no doctor profile
        """
        doctor = await DoctorService().get_by_identity(self.db, identity_id)
        if not doctor:
            raise NotFoundException("Doctor not found")

        stmt = (
            select(
                appointments,
                patients.c.name.label("patient_name"),
                patients.c.email.label("patient_email"),
                patients.c.phone.label("patient_phone"),
                patients.c.date_of_birth.label("patient_date_of_birth"),
                patients.c.gender.label("patient_gender"),
            )
            .outerjoin(patients, appointments.c.patient_id == patients.c.id)
            .where(appointments.c.doctor_id == doctor["id"])
            .order_by(appointments.c.appointment_date.desc(), appointments.c.appointment_time.desc())
        )
        result = await self.db.execute(stmt)

        items = []
        for row in result.mappings().all():
            name_parts = (row["patient_name"] or "").split()
            items.append(
                {
                    "id": row["id"],
                    "patient": {
                        "id": row["patient_id"],
                        "first_name": name_parts[0] if name_parts else "Unknown",
                        "last_name": " ".join(name_parts[1:]),
                        "email": row["patient_email"] or "",
                        "contact_number": row["patient_phone"] or "",
                        "date_of_birth": row["patient_date_of_birth"],
                        "gender": row["patient_gender"] or "Unknown",
                    },
                    "appointment_date": row["appointment_date"],
                    "appointment_time": row["appointment_time"],
                    "status": row["status"],
                    "reason": row["reason"],
                    "symptoms": row["symptoms"] or [],
                    "consultation_fee": row["consultation_fee"],
                    "notes": row["notes"] or "",
                    "diagnosis": row["diagnosis"] or "",
                    "prescription": row["prescription"] or [],
                    "payment_status": row["payment_status"],
                }
            )
        return items

    async def list_for_patient(self, identity_id: str) -> list[dict]:
        """
        List the calling patient's appointments with doctor details, newest first.

        Appointments whose doctor no longer exists are left out. A caller
        without a patient profile gets an empty list.
        """
        patient = await PatientService(self.db).get_by_identity(identity_id)
        if not patient:
            return []

        stmt = (
            select(
                appointments,
                doctors.c.first_name,
                doctors.c.last_name,
                doctors.c.specialization,
                doctors.c.experience_years,
                doctors.c.qualification,
                doctors.c.consultation_fee.label("doctor_consultation_fee"),
                doctors.c.rating,
                doctors.c.total_patients,
                doctors.c.biography,
                doctors.c.available_slots,
            )
            .join(doctors, appointments.c.doctor_id == doctors.c.id)
            .where(appointments.c.patient_id == patient["id"])
            .order_by(appointments.c.appointment_date.desc(), appointments.c.appointment_time.desc())
        )
        result = await self.db.execute(stmt)

        return [
            {
                "id": row["id"],
                "doctor": {
                    "id": row["doctor_id"],
                    "first_name": row["first_name"],
                    "last_name": row["last_name"],
                    "specialization": row["specialization"],
                    "experience_years": row["experience_years"],
                    "qualification": row["qualification"],
                    "consultation_fee": row["doctor_consultation_fee"],
                    "rating": row["rating"],
                    "total_patients": row["total_patients"],
                    "biography": row["biography"],
                    "available_slots": row["available_slots"] or [],
                },
                "appointment_date": row["appointment_date"],
                "appointment_time": row["appointment_time"],
                "status": row["status"],
                "reason": row["reason"],
                "consultation_fee": row["consultation_fee"],
                "payment_status": row["payment_status"],
            }
            for row in result.mappings().all()
        ]
