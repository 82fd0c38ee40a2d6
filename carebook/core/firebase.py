"""Firebase Admin SDK initialization and ID token verification."""

import asyncio
import json
import os
import threading

import firebase_admin
from firebase_admin import auth, credentials
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None
_firebase_lock = threading.Lock()


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK once per process.

    Credentials are looked up in order: raw service account JSON, a service
    account file, then Application Default Credentials.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.
    """
    global _firebase_app

    with _firebase_lock:
        if _firebase_app is not None:
            logger.info("firebase_already_initialized")
            return

        cred = None

        if firebase_config_json:
            logger.info("firebase_init_from_json")
            cred = credentials.Certificate(json.loads(firebase_config_json))
        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("firebase_init_from_file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        try:
            if cred:
                _firebase_app = firebase_admin.initialize_app(cred)
            else:
                _firebase_app = firebase_admin.initialize_app()
                logger.info("firebase_init_default_credentials")
        except Exception as e:
            logger.error("firebase_init_failed", error=str(e))
            raise


async def verify_firebase_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token from the client

    Returns:
        Decoded token claims (``uid``, ``email``, ``name``, ...)

    Raises:
        ValueError: If the token is invalid, expired or cannot be checked
    """
    if _firebase_app is None:
        raise ValueError("Firebase is not initialized")

    try:
        # verify_id_token may fetch signing keys over the network
        decoded_token = await asyncio.to_thread(
            auth.verify_id_token, id_token, app=_firebase_app, clock_skew_seconds=10
        )
    except auth.InvalidIdTokenError as e:
        logger.warning("firebase_token_invalid", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}") from e
    except Exception as e:
        logger.error("firebase_token_verification_failed", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}") from e

    logger.info("firebase_token_verified", uid=decoded_token.get("uid"))
    return decoded_token
