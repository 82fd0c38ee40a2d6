"""Payment order issuing and captured-payment reconciliation."""

from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import settings
from carebook.core.exceptions import (
    AppException,
    BadRequestException,
    ForbiddenException,
    NotFoundException,
    SlotConflictException,
)
from carebook.core.razorpay import RazorpayClient
from carebook.schemas.appointments import AppointmentStatus, PaymentStatus
from carebook.schemas.payments import (
    BookingIntent,
    CaptureRequest,
    CheckoutConfirmation,
    OrderRequest,
    OrderResponse,
)
from carebook.services.appointment_service import AppointmentService
from carebook.services.doctor_service import DoctorService
from carebook.services.patient_service import PatientService

logger = structlog.get_logger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_REFUNDED = "payment.refunded"


@dataclass
class ReconciliationResult:
    """Outcome of applying one captured payment to the ledger."""

    appointment: dict
    created: bool = False
    replayed: bool = False


class PaymentService:
    """Service for gateway orders and payment events."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: RazorpayClient,
        currency: str | None = None,
        minor_multiplier: int | None = None,
    ):
        """Initialize service with database session and payment gateway."""
        self.db = db
        self.gateway = gateway
        self.currency = currency or settings.payment_currency
        self.minor_multiplier = minor_multiplier or settings.currency_minor_multiplier
        self.appointments = AppointmentService(db)
        self.patients = PatientService(db)

    def to_minor_units(self, fee: int) -> int:
        """Convert a major-unit fee to the gateway's minor units."""
        return fee * self.minor_multiplier

    async def create_order(self, identity_id: str, data: OrderRequest) -> OrderResponse:
        """
        Create a gateway order carrying the booking intent.

        No appointment is written; the booking is created when the captured
        payment is reconciled.

        Args:
            identity_id: External identity id of the paying patient
            data: Slot and fee to pay for

        Returns:
            Order details for the client checkout

        Raises:
            NotFoundException: If the patient or doctor does not exist
            SlotConflictException: If the slot is already held
        """
        patient = await self.patients.get_by_identity(identity_id)
        if not patient:
            raise NotFoundException("Patient not found")

        doctor = await self.appointments.get_bookable_doctor(data.doctor_id)

        if not await self.appointments.is_slot_free(
            doctor["id"], data.appointment_date, data.appointment_time
        ):
            raise SlotConflictException()

        intent = BookingIntent(
            patient_id=patient["id"],
            doctor_id=doctor["id"],
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            reason=data.reason,
            consultation_fee=data.consultation_fee,
        )
        amount = self.to_minor_units(data.consultation_fee)
        receipt = f"appointment_{patient['id'].hex}_{data.appointment_date:%Y%m%d}"[:40]

        order = await self.gateway.create_order(
            amount=amount,
            currency=self.currency,
            receipt=receipt,
            notes=intent.to_notes(),
        )

        logger.info(
            "payment_order_created",
            order_id=order["id"],
            patient_id=str(patient["id"]),
            doctor_id=str(doctor["id"]),
            amount=amount,
        )

        return OrderResponse(
            order_id=order["id"],
            amount=order.get("amount", amount),
            currency=order.get("currency", self.currency),
            key_id=self.gateway.key_id,
        )

    async def reconcile_captured_payment(
        self,
        intent: BookingIntent,
        payment_id: str,
        order_id: str | None = None,
    ) -> ReconciliationResult:
        """
        Apply a captured payment to the ledger exactly once.

        Args:
            intent: Booking intent recovered from the order notes
            payment_id: Gateway payment id
            order_id: Gateway order id

        Returns:
            Reconciliation result

        Raises:
            NotFoundException: If the intent's doctor no longer exists
            SlotConflictException: If another patient holds the slot; the
                payment then needs a refund
        """
        existing = await self.appointments.find_by_payment_reference(payment_id)
        if existing:
            logger.info(
                "payment_replay_ignored",
                payment_id=payment_id,
                appointment_id=str(existing["id"]),
            )
            return ReconciliationResult(appointment=existing, replayed=True)

        held = await self.appointments.find_active_for_slot(
            intent.patient_id,
            intent.doctor_id,
            intent.appointment_date,
            intent.appointment_time,
        )
        if held:
            if held["payment_status"] == PaymentStatus.PAID.value:
                logger.info(
                    "payment_slot_already_paid",
                    payment_id=payment_id,
                    appointment_id=str(held["id"]),
                )
                return ReconciliationResult(appointment=held, replayed=True)

            appointment = await self.appointments.mark_paid(
                held["id"],
                payment_reference=payment_id,
                payment_order_id=order_id,
                payment_method=RazorpayClient.PAYMENT_METHOD,
            )
            return ReconciliationResult(appointment=appointment)

        doctor = await DoctorService().get_doctor_by_id(self.db, intent.doctor_id)
        if not doctor:
            raise NotFoundException("Doctor not found")

        try:
            appointment = await self.appointments.insert_appointment(
                {
                    "patient_id": intent.patient_id,
                    "doctor_id": intent.doctor_id,
                    "appointment_date": intent.appointment_date,
                    "appointment_time": intent.appointment_time,
                    "reason": intent.reason,
                    "consultation_fee": intent.consultation_fee,
                    "status": AppointmentStatus.CONFIRMED.value,
                    "payment_status": PaymentStatus.PAID.value,
                    "payment_reference": payment_id,
                    "payment_order_id": order_id,
                    "payment_method": RazorpayClient.PAYMENT_METHOD,
                }
            )
        except SlotConflictException:
            # A concurrent delivery of the same payment may have won the insert
            existing = await self.appointments.find_by_payment_reference(payment_id)
            if existing:
                return ReconciliationResult(appointment=existing, replayed=True)
            raise

        logger.info(
            "appointment_created_from_payment",
            appointment_id=str(appointment["id"]),
            payment_id=payment_id,
            order_id=order_id,
        )
        return ReconciliationResult(appointment=appointment, created=True)

    async def confirm_checkout(self, identity_id: str, data: CheckoutConfirmation) -> ReconciliationResult:
        """
        Reconcile a payment reported by the client checkout.

        Raises:
            SignatureInvalidException: If the checkout signature does not match
            ForbiddenException: If the order was not issued to the caller
        """
        self.gateway.verify_checkout_signature(
            data.razorpay_order_id,
            data.razorpay_payment_id,
            data.razorpay_signature,
        )

        order = await self.gateway.fetch_order(data.razorpay_order_id)
        intent = self._parse_intent(order.get("notes"))

        patient = await self.patients.get_by_identity(identity_id)
        if not patient or patient["id"] != intent.patient_id:
            logger.warning(
                "payment_confirmation_forbidden",
                order_id=data.razorpay_order_id,
                identity_id=identity_id,
            )
            raise ForbiddenException("Order does not belong to the current user")

        return await self.reconcile_captured_payment(
            intent,
            payment_id=data.razorpay_payment_id,
            order_id=data.razorpay_order_id,
        )

    async def process_webhook_event(self, event: dict[str, Any]) -> None:
        """
        Handle a signature-verified gateway event.

        Failures are logged, never raised: once the signature is valid the
        gateway always gets an acknowledgement.
        """
        event_type = event.get("event")
        payment = _entity(event, "payment")
        payment_id = payment.get("id")

        if event_type not in (PAYMENT_CAPTURED, PAYMENT_REFUNDED):
            logger.info("webhook_event_ignored", event_type=event_type)
            return

        if not payment_id:
            logger.warning("webhook_event_malformed", event_type=event_type)
            return

        try:
            if event_type == PAYMENT_CAPTURED:
                await self._handle_captured(payment, _entity(event, "order"))
            else:
                appointment = await self.appointments.mark_refunded(payment_id)
                if appointment is None:
                    logger.warning("refund_without_appointment", payment_id=payment_id)
        except SlotConflictException as e:
            logger.error(
                "payment_reconciliation_failed",
                event_type=event_type,
                payment_id=payment_id,
                error=e.message,
                needs_refund=True,
            )
        except (AppException, ValidationError, SQLAlchemyError) as e:
            logger.error(
                "payment_reconciliation_failed",
                event_type=event_type,
                payment_id=payment_id,
                error=str(e),
                needs_refund=False,
            )

    async def _handle_captured(self, payment: dict[str, Any], order: dict[str, Any]) -> None:
        order_id = order.get("id") or payment.get("order_id")
        notes = order.get("notes")
        if not notes and order_id:
            order = await self.gateway.fetch_order(order_id)
            notes = order.get("notes")

        intent = self._parse_intent(notes)
        await self.reconcile_captured_payment(intent, payment_id=payment["id"], order_id=order_id)

    async def capture(self, identity_id: str, data: CaptureRequest) -> dict:
        """
        Mark an existing appointment paid with a gateway-verified payment.

        Raises:
            NotFoundException: If the appointment is not the caller's
            BadRequestException: If the payment is not captured or the amount
                does not match the appointment fee
        """
        patient = await self.patients.get_by_identity(identity_id)
        appointment = await self.appointments.get_appointment(data.appointment_id)
        if not patient or appointment["patient_id"] != patient["id"]:
            raise NotFoundException("Appointment not found")

        if appointment["payment_status"] == PaymentStatus.PAID.value:
            return appointment

        payment = await self.gateway.fetch_payment(data.payment_reference)
        if payment.get("status") != "captured":
            raise BadRequestException("Payment has not been captured")

        expected = self.to_minor_units(appointment["consultation_fee"])
        if payment.get("amount") != expected:
            logger.warning(
                "payment_amount_mismatch",
                appointment_id=str(appointment["id"]),
                expected=expected,
                received=payment.get("amount"),
            )
            raise BadRequestException("Payment amount does not match the consultation fee")

        return await self.appointments.mark_paid(
            appointment["id"],
            payment_reference=data.payment_reference,
            payment_order_id=payment.get("order_id"),
            payment_method=RazorpayClient.PAYMENT_METHOD,
        )

    @staticmethod
    def _parse_intent(notes: Any) -> BookingIntent:
        """
        Rebuild a booking intent from order notes.

        Raises:
            BadRequestException: If the notes do not describe a booking
        """
        try:
            return BookingIntent.model_validate(notes or {})
        except ValidationError as e:
            raise BadRequestException("Order does not carry a booking intent") from e


def _entity(event: dict[str, Any], name: str) -> dict[str, Any]:
    """Pull ``payload.<name>.entity`` out of a gateway event."""
    payload = event.get("payload") or {}
    return (payload.get(name) or {}).get("entity") or {}

