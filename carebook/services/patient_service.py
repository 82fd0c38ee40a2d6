"""Patient profile service."""

from datetime import date
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.models.patients import patients
from carebook.schemas.patients import PatientProfileUpdate

logger = structlog.get_logger(__name__)

DEFAULT_PATIENT_NAME = "New Patient"


def compute_age(date_of_birth: date, today: date | None = None) -> int:
    """Whole years between date of birth and today."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


class PatientService:
    """Service for patient profile operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_by_identity(self, identity_id: str) -> dict | None:
        """Get a patient profile by external identity id."""
        result = await self.db.execute(select(patients).where(patients.c.identity_id == identity_id))
        row = result.mappings().first()
        return dict(row) if row else None

    async def upsert_profile(self, identity_id: str, data: PatientProfileUpdate) -> dict:
        """
        Create or update the caller's patient profile.

        Replaces only the fields present in the payload, so repeating the
        same payload leaves the stored document unchanged. Age is derived
        from the date of birth, and ``contactNumber`` fills ``phone`` when
        ``phone`` itself is absent.

        Args:
            identity_id: External identity id of the caller
            data: Profile fields to set

        Returns:
            Stored patient profile
        """
        values = self._update_values(data)

        patient = await self._update(identity_id, values)
        if patient is None:
            try:
                patient = await self._insert(identity_id, values)
            except IntegrityError:
                # Concurrent first save for the same identity won the insert
                await self.db.rollback()
                patient = await self._update(identity_id, values)
                if patient is None:
                    raise

        logger.info("patient_profile_saved", patient_id=str(patient["id"]))
        return patient

    async def create_stub(
        self,
        identity_id: str,
        name: str | None,
        email: str | None,
    ) -> tuple[dict, bool]:
        """
        Create a minimal patient profile unless one already exists.

        Returns:
            Tuple of (profile, created)
        """
        existing = await self.get_by_identity(identity_id)
        if existing:
            return existing, False

        try:
            patient = await self._insert(
                identity_id,
                {"name": (name or "").strip() or DEFAULT_PATIENT_NAME, "email": email or ""},
            )
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_by_identity(identity_id)
            if existing is None:
                raise
            return existing, False

        logger.info("patient_stub_created", patient_id=str(patient["id"]))
        return patient, True

    @staticmethod
    def _update_values(data: PatientProfileUpdate) -> dict[str, Any]:
        """Map a profile payload onto column values."""
        values = data.model_dump(exclude_unset=True, exclude={"contact_number"})

        # name is required once stored
        if values.get("name") is None:
            values.pop("name", None)

        if data.contact_number and not data.phone:
            values["phone"] = data.contact_number

        if data.date_of_birth:
            values["age"] = compute_age(data.date_of_birth)

        if data.gender is not None:
            values["gender"] = data.gender.value

        return values

    async def _update(self, identity_id: str, values: dict[str, Any]) -> dict | None:
        if not values:
            return await self.get_by_identity(identity_id)

        stmt = (
            update(patients)
            .where(patients.c.identity_id == identity_id)
            .values(**values)
            .returning(patients)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()
        return dict(row) if row else None

    async def _insert(self, identity_id: str, values: dict[str, Any]) -> dict:
        insert_values = {"name": DEFAULT_PATIENT_NAME, **values, "identity_id": identity_id}
        stmt = insert(patients).values(**insert_values).returning(patients)
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()
        return dict(row)
