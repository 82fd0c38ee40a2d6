"""Role selection schemas."""

from enum import Enum
from uuid import UUID

from pydantic import ConfigDict, Field

from carebook.schemas.common import CamelModel


class Role(str, Enum):
    """Dashboard role, resolved once per session from the profile store."""

    DOCTOR = "doctor"
    PATIENT = "patient"


class RoleAssignmentRequest(CamelModel):
    """Create a minimal profile stub for the selected role."""

    role: Role
    email: str | None = Field(None, max_length=320)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class RoleAssignmentResponse(CamelModel):
    """Outcome of a role selection."""

    success: bool = True
    message: str
    role: Role
    profile_id: UUID
    created: bool


class SaveUserRequest(CamelModel):
    """Copy identity names onto the role's profile, creating it when absent."""

    model_config = ConfigDict(extra="ignore")

    role: Role
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=320)
    phone: str | None = Field(None, max_length=30)


class SaveUserResponse(CamelModel):
    """Result of a save-user call."""

    success: bool = True


class RoleResponse(CamelModel):
    """Current caller's role; null before role selection."""

    role: Role | None = None
    profile_id: UUID | None = None
    profile_completed: bool = False
