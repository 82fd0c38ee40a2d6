"""HMAC signature helpers for Razorpay webhooks and checkout callbacks."""

import hashlib
import hmac

from carebook.core.exceptions import ConfigurationException, SignatureInvalidException


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 of payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two signatures without leaking timing; empty never matches."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class RazorpayWebhookVerifier:
    """Verifies ``x-razorpay-signature`` over the raw webhook body."""

    def __init__(self, secret: str):
        """
        Bind the verifier to the webhook shared secret.

        Raises:
            ConfigurationException: If the secret is not set
        """
        if not secret:
            raise ConfigurationException("RAZORPAY_WEBHOOK_SECRET is not configured")
        self._secret = secret

    def sign(self, body: bytes) -> str:
        """Signature the gateway would send for ``body``."""
        return compute_hmac_sha256(self._secret, body)

    def verify(self, body: bytes, signature: str | None) -> None:
        """
        Check a webhook signature.

        Args:
            body: Raw request body, exactly as received
            signature: Value of the ``x-razorpay-signature`` header

        Raises:
            SignatureInvalidException: If the header is missing or does not match
        """
        if not signature:
            raise SignatureInvalidException("No signature")
        if not constant_time_compare(self.sign(body), signature):
            raise SignatureInvalidException("Invalid signature")
