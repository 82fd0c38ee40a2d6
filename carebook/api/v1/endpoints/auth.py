"""Authentication endpoints."""

from fastapi import APIRouter, status

from carebook.schemas.auth import FirebaseTokenRequest, TokenResponse
from carebook.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/firebase/verify",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Firebase ID token verification",
)
async def firebase_verify(request: FirebaseTokenRequest) -> TokenResponse:
    """
    Exchange a Firebase ID token for an API access token.

    The access token's subject is the Firebase uid, which every profile
    and appointment operation uses as the caller's identity id.

    Args:
        request: Firebase ID token from the client

    Returns:
        Access token

    Raises:
        UnauthorizedException: If token verification fails
    """
    return await AuthService().login_with_firebase(request.id_token)
