"""Doctor model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)

from carebook.models.metadata import metadata, utc_now

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("identity_id", Text, nullable=False, unique=True, index=True),
    # Identity
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text, nullable=False, unique=True),
    # Professional credentials
    Column("specialization", String(200), nullable=False, index=True),
    Column("experience_years", Integer, nullable=False, default=0),
    Column("qualification", Text, nullable=False),
    Column("contact_number", String(30), nullable=False),
    # Practice information
    Column("consultation_fee", Integer, nullable=False, default=0),
    # [{day, startTime, endTime}, ...]
    Column("available_slots", JSON, nullable=False, default=list),
    Column("biography", Text, nullable=False, default=""),
    # Ratings
    Column("rating", Float, nullable=False, default=0.0),
    Column("total_patients", Integer, nullable=False, default=0),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True, index=True),
    Column("profile_completed", Boolean, nullable=False, default=False),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
    CheckConstraint("consultation_fee >= 0", name="doctors_consultation_fee_check"),
)
