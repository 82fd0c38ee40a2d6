"""Payment endpoints."""

import json

import structlog
from fastapi import APIRouter, Header, Request, status

from carebook.core.exceptions import SignatureInvalidException
from carebook.dependencies import (
    CurrentIdentity,
    DatabaseSession,
    RazorpayClientDep,
    WebhookVerifierDep,
)
from carebook.schemas.payments import (
    CaptureRequest,
    CaptureResponse,
    CheckoutConfirmation,
    OrderRequest,
    OrderResponse,
    PaymentConfirmationResponse,
    WebhookAck,
)
from carebook.services.payment_service import PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/create-razorpay-order",
    response_model=OrderResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Create a payment order for a booking",
)
async def create_razorpay_order(
    data: OrderRequest,
    identity: CurrentIdentity,
    db: DatabaseSession,
    gateway: RazorpayClientDep,
) -> OrderResponse:
    """
    Create a gateway order carrying the booking intent.

    No appointment is created until the payment is captured.

    Raises:
        NotFoundException: If the patient or doctor does not exist
        SlotConflictException: If the slot is already held
    """
    service = PaymentService(db, gateway)
    return await service.create_order(identity.identity_id, data)


@router.post(
    "/verify",
    response_model=PaymentConfirmationResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Confirm a checkout payment",
)
async def verify_payment(
    data: CheckoutConfirmation,
    identity: CurrentIdentity,
    db: DatabaseSession,
    gateway: RazorpayClientDep,
) -> PaymentConfirmationResponse:
    """
    Reconcile a payment the client checkout reported as successful.

    Safe to call alongside the webhook: whichever arrives second is a replay.

    Raises:
        SignatureInvalidException: If the checkout signature does not match
        ForbiddenException: If the order belongs to another patient
        SlotConflictException: If another patient took the slot first
    """
    service = PaymentService(db, gateway)
    result = await service.confirm_checkout(identity.identity_id, data)
    return PaymentConfirmationResponse(appointment=result.appointment, replayed=result.replayed)


@router.post(
    "/razorpay-webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Gateway webhook",
)
async def razorpay_webhook(
    request: Request,
    db: DatabaseSession,
    gateway: RazorpayClientDep,
    verifier: WebhookVerifierDep,
    x_razorpay_signature: str | None = Header(None),
) -> WebhookAck:
    """
    Receive gateway payment events.

    The signature is checked over the raw body before anything is parsed.
    Once it passes, the event is always acknowledged; reconciliation
    failures are logged for follow-up.

    Raises:
        SignatureInvalidException: If the signature is missing or wrong
    """
    body = await request.body()
    try:
        verifier.verify(body, x_razorpay_signature)
    except SignatureInvalidException as e:
        logger.warning("webhook_signature_invalid", reason=e.message)
        raise

    try:
        event = json.loads(body)
    except ValueError as e:
        logger.error("webhook_payload_invalid", error=str(e), size=len(body))
        return WebhookAck()

    if not isinstance(event, dict):
        logger.error("webhook_payload_invalid", error="payload is not an object", size=len(body))
        return WebhookAck()

    logger.info("webhook_received", event_type=event.get("event"))

    service = PaymentService(db, gateway)
    await service.process_webhook_event(event)
    return WebhookAck()


@router.post(
    "",
    response_model=CaptureResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Mark an appointment paid",
)
async def capture_payment(
    data: CaptureRequest,
    identity: CurrentIdentity,
    db: DatabaseSession,
    gateway: RazorpayClientDep,
) -> CaptureResponse:
    """
    Mark one of the caller's appointments paid.

    The payment reference is checked with the gateway: it must be captured
    and match the appointment fee.

    Raises:
        NotFoundException: If the appointment is not the caller's
        BadRequestException: If the payment does not cover the appointment
    """
    service = PaymentService(db, gateway)
    appointment = await service.capture(identity.identity_id, data)
    return CaptureResponse(appointment=appointment)
