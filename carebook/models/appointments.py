"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    text,
)

from carebook.models.metadata import metadata, utc_now

# Statuses that hold a slot
ACTIVE_STATUSES = ("scheduled", "confirmed")

_active_slot_clause = text("status IN ('scheduled', 'confirmed')")

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False, index=True),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False, index=True),
    # Slot: calendar day plus the doctor's time label
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", String(20), nullable=False),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled"),
    # Clinical details
    Column("reason", Text, nullable=False),
    Column("symptoms", JSON, nullable=False, default=list),
    Column("notes", Text, nullable=False, default=""),
    Column("diagnosis", Text, nullable=False, default=""),
    # [{medication, dosage, frequency, duration}, ...]
    Column("prescription", JSON, nullable=False, default=list),
    # Fee snapshot, copied from the doctor at booking time
    Column("consultation_fee", Integer, nullable=False),
    # Payment
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("payment_reference", Text, nullable=True, unique=True),
    Column("payment_order_id", Text, nullable=True, index=True),
    Column("payment_method", String(20), nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'paid', 'refunded')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint("consultation_fee >= 0", name="appointments_consultation_fee_check"),
    # At most one active appointment per slot
    Index(
        "uq_appointments_active_slot",
        "doctor_id",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=_active_slot_clause,
        sqlite_where=_active_slot_clause,
    ),
)
