"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import settings
from carebook.core.exceptions import UnauthorizedException
from carebook.core.razorpay import RazorpayClient
from carebook.core.redis_client import CacheManager, get_redis_client
from carebook.core.webhook_security import RazorpayWebhookVerifier
from carebook.database import get_db
from carebook.schemas.auth import Identity
from carebook.services.auth_service import AuthService
from carebook.services.summarizer_service import ReportSummarizer

# Security
security = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity:
    """
    Extract and validate the caller's identity from the access token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Identity carried by the token

    Raises:
        UnauthorizedException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    identity = AuthService.identity_from_token(credentials.credentials)
    if identity is None:
        raise UnauthorizedException("Could not validate credentials")

    return identity


def get_cache_manager() -> CacheManager | None:
    """Cache manager over the shared Redis client."""
    return CacheManager(get_redis_client())


@lru_cache
def get_razorpay_client() -> RazorpayClient:
    """
    Shared payment gateway client.

    Raises:
        ConfigurationException: If the gateway keys are not configured
    """
    return RazorpayClient(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        api_url=settings.razorpay_api_url,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache
def get_webhook_verifier() -> RazorpayWebhookVerifier:
    """
    Shared webhook signature verifier.

    Raises:
        ConfigurationException: If the webhook secret is not configured
    """
    return RazorpayWebhookVerifier(settings.razorpay_webhook_secret)


@lru_cache
def get_summarizer() -> ReportSummarizer:
    """
    Shared report summarizer.

    Raises:
        ConfigurationException: If the model API key is not configured
    """
    return ReportSummarizer(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        api_url=settings.openai_api_url,
        max_tokens=settings.summary_max_tokens,
        timeout=settings.http_timeout_seconds,
    )


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
CacheManagerDep = Annotated[CacheManager | None, Depends(get_cache_manager)]
RazorpayClientDep = Annotated[RazorpayClient, Depends(get_razorpay_client)]
WebhookVerifierDep = Annotated[RazorpayWebhookVerifier, Depends(get_webhook_verifier)]
SummarizerDep = Annotated[ReportSummarizer, Depends(get_summarizer)]
