"""Role selection and resolution."""

from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.redis_client import CacheManager
from carebook.schemas.auth import Identity
from carebook.schemas.doctors import DoctorProfileUpdate
from carebook.schemas.patients import PatientProfileUpdate
from carebook.schemas.users import (
    Role,
    RoleAssignmentRequest,
    RoleAssignmentResponse,
    RoleResponse,
    SaveUserRequest,
)
from carebook.services.doctor_service import DoctorService
from carebook.services.patient_service import PatientService


class UserService:
    """Service tying an external identity to a doctor or patient profile."""

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache."""
        self.db = db
        self.doctors = DoctorService(cache_manager)
        self.patients = PatientService(db)

    async def assign_role(
        self,
        identity: Identity,
        data: RoleAssignmentRequest,
    ) -> RoleAssignmentResponse:
        """
        Create the minimal profile for the selected role.

        Idempotent: an existing profile is returned untouched.
        """
        email = data.email or identity.email

        if data.role == Role.DOCTOR:
            profile, created = await self.doctors.create_stub(
                self.db,
                identity,
                first_name=data.first_name,
                last_name=data.last_name,
                email=email,
            )
        else:
            first = data.first_name or identity.first_name or ""
            last = data.last_name or identity.last_name or ""
            profile, created = await self.patients.create_stub(
                identity.identity_id,
                name=f"{first} {last}".strip() or identity.name,
                email=email,
            )

        label = data.role.value.capitalize()
        return RoleAssignmentResponse(
            message=f"{label} created successfully" if created else f"{label} already exists",
            role=data.role,
            profile_id=profile["id"],
            created=created,
        )

    async def save_user(self, identity: Identity, data: SaveUserRequest) -> None:
        """Upsert identity names onto the role's profile."""
        if data.role == Role.DOCTOR:
            update = DoctorProfileUpdate.model_validate(
                data.model_dump(include={"first_name", "last_name", "email"}, exclude_none=True)
            )
            await self.doctors.upsert_profile(self.db, identity, update, complete=False)
            return

        values = data.model_dump(include={"phone"}, exclude_none=True)
        email = data.email or identity.email
        if email:
            values["email"] = email
        name = f"{data.first_name or ''} {data.last_name or ''}".strip()
        if name:
            values["name"] = name
        await self.patients.upsert_profile(
            identity.identity_id, PatientProfileUpdate.model_validate(values)
        )

    async def resolve_role(self, identity: Identity) -> RoleResponse:
        """
        Resolve the caller's dashboard role from the profile store.

        A doctor profile takes precedence over a patient profile.
        """
        doctor = await self.doctors.get_by_identity(self.db, identity.identity_id)
        if doctor:
            return RoleResponse(
                role=Role.DOCTOR,
                profile_id=doctor["id"],
                profile_completed=doctor["profile_completed"],
            )

        patient = await self.patients.get_by_identity(identity.identity_id)
        if patient:
            return RoleResponse(role=Role.PATIENT, profile_id=patient["id"], profile_completed=True)

        return RoleResponse()
