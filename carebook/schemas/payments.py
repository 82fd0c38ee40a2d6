"""Payment schemas for request/response validation."""

from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from carebook.schemas.appointments import AppointmentResponse, SlotRequest
from carebook.schemas.common import CamelModel


class OrderRequest(SlotRequest):
    """Schema for creating a gateway order for a booking."""

    consultation_fee: int = Field(..., gt=0)


class OrderResponse(CamelModel):
    """Pending gateway order handed to the client checkout."""

    order_id: str
    amount: int
    currency: str
    key_id: str


class BookingIntent(SlotRequest):
    """
    Booking intent carried on a gateway order.

    Serialized into the order notes when the order is created and parsed
    back out of the payment event, so the reconciler needs nothing but the
    event to rebuild the booking.
    """

    patient_id: UUID
    consultation_fee: int = Field(..., ge=0)

    @field_validator("consultation_fee", mode="before")
    @classmethod
    def parse_fee(cls, v: Any) -> Any:
        """Gateway notes are strings; accept "100" and "100.0"."""
        if isinstance(v, str) and v.strip():
            return int(float(v))
        return v

    def to_notes(self) -> dict[str, str]:
        """Flatten into the string-only notes a gateway order accepts."""
        return {
            "patientId": str(self.patient_id),
            "doctorId": str(self.doctor_id),
            "appointmentDate": self.appointment_date.isoformat(),
            "appointmentTime": self.appointment_time,
            "reason": self.reason,
            "consultationFee": str(self.consultation_fee),
        }


class CheckoutConfirmation(CamelModel):
    """Values returned by the client checkout after a successful payment."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentConfirmationResponse(CamelModel):
    """Outcome of reconciling a captured payment."""

    success: bool = True
    appointment: AppointmentResponse
    replayed: bool = False


class CaptureRequest(CamelModel):
    """Manual capture of an existing appointment."""

    appointment_id: UUID
    payment_reference: str = Field(..., min_length=1)


class CaptureResponse(CamelModel):
    """Result of a manual capture."""

    success: bool = True
    appointment: AppointmentResponse


class WebhookAck(CamelModel):
    """Acknowledgement returned to the gateway."""

    received: bool = True
