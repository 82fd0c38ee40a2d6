"""Doctor service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.exceptions import ConflictException
from carebook.core.redis_client import CacheManager
from carebook.models.doctors import doctors
from carebook.schemas.auth import Identity
from carebook.schemas.doctors import DoctorListItem, DoctorProfileUpdate

logger = structlog.get_logger(__name__)

# Placeholders for a stub created at role selection, before onboarding
STUB_DEFAULTS: dict[str, Any] = {
    "specialization": "General Practice",
    "experience_years": 0,
    "qualification": "To be updated",
    "contact_number": "Not provided",
    "consultation_fee": 0,
    "available_slots": [],
    "biography": "",
}


def placeholder_email(identity_id: str) -> str:
    """Unique stand-in email for identities that did not share one."""
    return f"{identity_id}@noemail.local"


# Listed in the directory and open for booking: onboarded, active and charging a fee
BOOKABLE = and_(
    doctors.c.is_active.is_(True),
    doctors.c.profile_completed.is_(True),
    doctors.c.consultation_fee > 0,
)


def is_bookable(doctor: dict) -> bool:
    """Whether a loaded doctor row matches BOOKABLE."""
    return bool(doctor["is_active"] and doctor["profile_completed"] and doctor["consultation_fee"] > 0)


class DoctorService:
    """Service for doctor operations."""

    # Cache TTL in seconds
    DOCTOR_LIST_CACHE_TTL = 300  # 5 minutes for the directory
    DOCTOR_LIST_CACHE_KEY = "doctor:list:active"

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    async def get_doctor_by_id(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get doctor by internal ID."""
        result = await db.execute(select(doctors).where(doctors.c.id == doctor_id))
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def get_by_identity(self, db: AsyncSession, identity_id: str) -> dict | None:
        """Get doctor by external identity id."""
        result = await db.execute(select(doctors).where(doctors.c.identity_id == identity_id))
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def list_active_doctors(self, db: AsyncSession) -> list[dict]:
        """
        List bookable doctors, best rated first.

        Results are cached briefly; profile saves invalidate the cache.
        """
        if self.cache:
            cached = self.cache.get_json(self.DOCTOR_LIST_CACHE_KEY)
            if cached is not None:
                return cached

        query = (
            select(doctors)
            .where(BOOKABLE)
            .order_by(doctors.c.rating.desc(), doctors.c.total_patients.desc())
        )
        result = await db.execute(query)
        items = [
            DoctorListItem.model_validate(dict(row)).model_dump(mode="json", by_alias=True)
            for row in result.mappings().all()
        ]

        if self.cache:
            self.cache.set_json(self.DOCTOR_LIST_CACHE_KEY, items, ttl=self.DOCTOR_LIST_CACHE_TTL)

        return items

    async def create_stub(
        self,
        db: AsyncSession,
        identity: Identity,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> tuple[dict, bool]:
        """
        Create a minimal doctor record unless one already exists.

        Returns:
            Tuple of (doctor, created)
        """
        existing = await self.get_by_identity(db, identity.identity_id)
        if existing:
            return existing, False

        values = {
            **STUB_DEFAULTS,
            "identity_id": identity.identity_id,
            "first_name": first_name or identity.first_name or "Doctor",
            "last_name": last_name or identity.last_name or "User",
            "email": email or identity.email or placeholder_email(identity.identity_id),
            "profile_completed": False,
            "is_active": False,
        }
        doctor = await self._insert(db, identity.identity_id, values)
        if doctor is None:
            existing = await self.get_by_identity(db, identity.identity_id)
            if existing is None:
                raise ConflictException("Doctor profile could not be created")
            return existing, False

        logger.info("doctor_stub_created", doctor_id=str(doctor["id"]))
        return doctor, True

    async def upsert_profile(
        self,
        db: AsyncSession,
        identity: Identity,
        data: DoctorProfileUpdate,
        complete: bool = True,
    ) -> dict:
        """
        Create or update the caller's doctor profile.

        Args:
            db: Database session
            identity: Authenticated caller
            data: Profile fields to set
            complete: Mark onboarding finished and the doctor active

        Returns:
            Stored doctor profile

        Raises:
            ConflictException: If the email belongs to another doctor
        """
        values = data.model_dump(mode="json", exclude_unset=True)
        values = {k: v for k, v in values.items() if v is not None}
        if complete:
            values.update(profile_completed=True, is_active=True)

        doctor = await self._update(db, identity.identity_id, values)
        if doctor is None:
            insert_values = {
                **STUB_DEFAULTS,
                "first_name": identity.first_name or "Doctor",
                "last_name": identity.last_name or "User",
                "email": identity.email or placeholder_email(identity.identity_id),
                **values,
                "identity_id": identity.identity_id,
            }
            doctor = await self._insert(db, identity.identity_id, insert_values)
            if doctor is None:
                doctor = await self._update(db, identity.identity_id, values)
                if doctor is None:
                    raise ConflictException("Doctor profile could not be saved")

        if self.cache:
            self.cache.delete_pattern("doctor:list:*")

        logger.info("doctor_profile_saved", doctor_id=str(doctor["id"]), completed=complete)
        return doctor

    async def _update(self, db: AsyncSession, identity_id: str, values: dict[str, Any]) -> dict | None:
        if not values:
            return await self.get_by_identity(db, identity_id)

        stmt = (
            update(doctors)
            .where(doctors.c.identity_id == identity_id)
            .values(**values)
            .returning(doctors)
        )
        try:
            result = await db.execute(stmt)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictException("Email is already registered to another doctor") from e

        row = result.mappings().first()
        await db.commit()
        return dict(row) if row else None

    async def _insert(self, db: AsyncSession, identity_id: str, values: dict[str, Any]) -> dict | None:
        """Insert a doctor; returns None when another request inserted the identity first."""
        try:
            result = await db.execute(insert(doctors).values(**values).returning(doctors))
        except IntegrityError as e:
            await db.rollback()
            if await self.get_by_identity(db, identity_id):
                return None
            raise ConflictException("Email is already registered to another doctor") from e

        row = result.mappings().one()
        await db.commit()
        return dict(row)
