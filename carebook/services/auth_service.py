"""Authentication service for Firebase and JWT."""

from datetime import timedelta

import structlog

from carebook.config import settings
from carebook.core.exceptions import UnauthorizedException
from carebook.core.firebase import verify_firebase_token
from carebook.core.security import create_access_token, decode_access_token
from carebook.schemas.auth import Identity, TokenResponse

logger = structlog.get_logger(__name__)


class AuthService:
    """Exchanges external identity tokens for API access tokens."""

    async def verify_firebase_id_token(self, id_token: str) -> dict:
        """
        Verify Firebase ID token and extract its claims.

        Raises:
            UnauthorizedException: If token verification fails
        """
        try:
            return await verify_firebase_token(id_token)
        except ValueError as e:
            logger.warning("firebase_token_rejected", error=str(e))
            raise UnauthorizedException(str(e)) from e

    async def login_with_firebase(self, id_token: str) -> TokenResponse:
        """
        Verify a Firebase ID token and issue an access token for its uid.

        No profile is created here; the caller picks a role afterwards.
        """
        claims = await self.verify_firebase_id_token(id_token)
        identity = Identity(
            identity_id=claims["uid"],
            email=claims.get("email"),
            name=claims.get("name"),
        )
        logger.info("identity_authenticated", identity_id=identity.identity_id)
        return self.create_token(identity)

    def create_token(self, identity: Identity) -> TokenResponse:
        """Create an access token for an identity."""
        expires_minutes = settings.access_token_expire_minutes
        access_token = create_access_token(
            data={"sub": identity.identity_id, "email": identity.email, "name": identity.name},
            expires_delta=timedelta(minutes=expires_minutes),
        )
        return TokenResponse(
            access_token=access_token,
            expires_in=expires_minutes * 60,
            identity_id=identity.identity_id,
        )

    @staticmethod
    def identity_from_token(token: str) -> Identity | None:
        """
        Validate an access token and return the identity it carries.

        Returns:
            Identity if the token is valid, None otherwise
        """
        payload = decode_access_token(token)
        if payload is None:
            return None

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            return None

        return Identity(identity_id=subject, email=payload.get("email"), name=payload.get("name"))
