"""Authentication schemas."""

from pydantic import BaseModel, Field

from carebook.schemas.common import CamelModel


class FirebaseTokenRequest(CamelModel):
    """Firebase ID token exchange request."""

    id_token: str = Field(..., min_length=1, description="Firebase ID token from the client")


class TokenResponse(CamelModel):
    """Access token issued for an external identity."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    identity_id: str


class Identity(BaseModel):
    """Authenticated caller, as carried by the access token."""

    identity_id: str
    email: str | None = None
    name: str | None = None

    @property
    def first_name(self) -> str | None:
        """First word of the display name."""
        if not self.name:
            return None
        return self.name.split(" ", 1)[0] or None

    @property
    def last_name(self) -> str | None:
        """Everything after the first word of the display name."""
        if not self.name or " " not in self.name:
            return None
        return self.name.split(" ", 1)[1].strip() or None
