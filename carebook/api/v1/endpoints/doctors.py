"""Doctor directory and profile endpoints."""

from fastapi import APIRouter, Depends, status

from carebook.core.exceptions import NotFoundException
from carebook.core.redis_client import CacheManager
from carebook.dependencies import CurrentIdentity, DatabaseSession, get_cache_manager
from carebook.schemas.doctors import (
    DoctorListResponse,
    DoctorProfileEnvelope,
    DoctorProfileUpdate,
    DoctorSaveResponse,
)
from carebook.services.doctor_service import DoctorService

router = APIRouter()


def get_doctor_service(
    cache_manager: CacheManager | None = Depends(get_cache_manager),
) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(cache_manager=cache_manager)


@router.get(
    "/doctors",
    response_model=DoctorListResponse,
    status_code=status.HTTP_200_OK,
    summary="List bookable doctors",
)
async def list_doctors(
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> DoctorListResponse:
    """
    List bookable doctors, best rated first.

    Ties on rating are broken by total patients.
    """
    doctors = await doctor_service.list_active_doctors(db)
    return DoctorListResponse(doctors=doctors)


@router.get(
    "/doctor/profile",
    response_model=DoctorProfileEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Get own doctor profile",
)
async def get_doctor_profile(
    identity: CurrentIdentity,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> DoctorProfileEnvelope:
    """Get the caller's doctor profile."""
    doctor = await doctor_service.get_by_identity(db, identity.identity_id)
    if not doctor:
        raise NotFoundException("Doctor profile not found")
    return DoctorProfileEnvelope(doctor=doctor)


@router.put(
    "/doctor/profile",
    response_model=DoctorSaveResponse,
    status_code=status.HTTP_200_OK,
    summary="Create or update own doctor profile",
)
async def save_doctor_profile(
    data: DoctorProfileUpdate,
    identity: CurrentIdentity,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> DoctorSaveResponse:
    """
    Create or update the caller's doctor profile.

    Saving marks onboarding complete and makes the doctor bookable.
    """
    doctor = await doctor_service.upsert_profile(db, identity, data)
    return DoctorSaveResponse(doctor=doctor)
