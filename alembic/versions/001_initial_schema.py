"""Initial schema - patients, doctors and appointments.

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "patients",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("identity_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=10), nullable=True),
        sa.Column("phone", sa.VARCHAR(length=30), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", postgresql.JSON(), nullable=True),
        sa.Column("emergency_contact", postgresql.JSON(), nullable=True),
        sa.Column("medical_history", postgresql.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "gender IS NULL OR gender IN ('Male', 'Female', 'Other')",
            name="patients_gender_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_identity_id", "patients", ["identity_id"], unique=True)

    op.create_table(
        "doctors",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("identity_id", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("specialization", sa.VARCHAR(length=200), nullable=False),
        sa.Column("experience_years", sa.Integer(), server_default="0", nullable=False),
        sa.Column("qualification", sa.Text(), nullable=False),
        sa.Column("contact_number", sa.VARCHAR(length=30), nullable=False),
        sa.Column("consultation_fee", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "available_slots", postgresql.JSON(), server_default=sa.text("'[]'::json"), nullable=False
        ),
        sa.Column("biography", sa.Text(), server_default="", nullable=False),
        sa.Column("rating", sa.Float(), server_default="0", nullable=False),
        sa.Column("total_patients", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("profile_completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("consultation_fee >= 0", name="doctors_consultation_fee_check"),
        sa.CheckConstraint("experience_years >= 0", name="doctors_experience_years_check"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_doctors_email"),
    )
    op.create_index("ix_doctors_identity_id", "doctors", ["identity_id"], unique=True)
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])
    op.create_index("ix_doctors_is_active", "doctors", ["is_active"])

    op.create_table(
        "appointments",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.VARCHAR(length=20), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="scheduled", nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("symptoms", postgresql.JSON(), server_default=sa.text("'[]'::json"), nullable=False),
        sa.Column("notes", sa.Text(), server_default="", nullable=False),
        sa.Column("diagnosis", sa.Text(), server_default="", nullable=False),
        sa.Column(
            "prescription", postgresql.JSON(), server_default=sa.text("'[]'::json"), nullable=False
        ),
        sa.Column("consultation_fee", sa.Integer(), nullable=False),
        sa.Column("payment_status", sa.VARCHAR(length=20), server_default="pending", nullable=False),
        sa.Column("payment_reference", sa.Text(), nullable=True),
        sa.Column("payment_order_id", sa.Text(), nullable=True),
        sa.Column("payment_method", sa.VARCHAR(length=20), nullable=True),
        *_timestamps(),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="appointments_payment_status_check",
        ),
        sa.CheckConstraint("consultation_fee >= 0", name="appointments_consultation_fee_check"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_appointments_patient_id"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="fk_appointments_doctor_id"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_reference", name="uq_appointments_payment_reference"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("ix_appointments_payment_order_id", "appointments", ["payment_order_id"])

    # One active booking per doctor, day and time
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["doctor_id", "appointment_date", "appointment_time"],
        unique=True,
        postgresql_where=sa.text("status IN ('scheduled', 'confirmed')"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_index("ix_appointments_payment_order_id", table_name="appointments")
    op.drop_index("ix_appointments_doctor_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_doctors_is_active", table_name="doctors")
    op.drop_index("ix_doctors_specialization", table_name="doctors")
    op.drop_index("ix_doctors_identity_id", table_name="doctors")
    op.drop_table("doctors")

    op.drop_index("ix_patients_identity_id", table_name="patients")
    op.drop_table("patients")
