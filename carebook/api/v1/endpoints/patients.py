"""Patient profile endpoints."""

from fastapi import APIRouter, status

from carebook.dependencies import CurrentIdentity, DatabaseSession
from carebook.schemas.patients import (
    PatientProfileEnvelope,
    PatientProfileUpdate,
    PatientSaveResponse,
)
from carebook.services.patient_service import PatientService

router = APIRouter()


@router.get(
    "/profile",
    response_model=PatientProfileEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Get own patient profile",
)
async def get_patient_profile(
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> PatientProfileEnvelope:
    """Get the caller's patient profile; ``patient`` is null when there is none."""
    patient = await PatientService(db).get_by_identity(identity.identity_id)
    return PatientProfileEnvelope(patient=patient)


@router.put(
    "/profile",
    response_model=PatientSaveResponse,
    status_code=status.HTTP_200_OK,
    summary="Create or update own patient profile",
)
async def save_patient_profile(
    data: PatientProfileUpdate,
    identity: CurrentIdentity,
    db: DatabaseSession,
) -> PatientSaveResponse:
    """
    Create or update the caller's patient profile.

    Args:
        data: Profile fields; only the fields sent are replaced
        identity: Authenticated caller
        db: Database session

    Returns:
        Stored profile
    """
    patient = await PatientService(db).upsert_profile(identity.identity_id, data)
    return PatientSaveResponse(patient=patient)
