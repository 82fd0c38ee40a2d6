"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)

from carebook.models.metadata import metadata, utc_now

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # External identity (auth provider uid)
    Column("identity_id", Text, nullable=False, unique=True, index=True),
    # Personal information
    Column("name", Text, nullable=False),
    Column("age", Integer),
    Column("gender", String(10)),
    Column("phone", String(30)),
    Column("email", Text),
    Column("date_of_birth", Date),
    # Nested documents: street/city/state/zipCode and name/phone/relationship
    Column("address", JSON),
    Column("emergency_contact", JSON),
    # allergies/conditions/medications string lists
    Column("medical_history", JSON),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
    CheckConstraint(
        "gender IS NULL OR gender IN ('Male', 'Female', 'Other')",
        name="patients_gender_check",
    ),
)
