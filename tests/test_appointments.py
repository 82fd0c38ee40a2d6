"""Tests for appointment booking and the doctor/patient views."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from carebook.core.exceptions import StoreUnavailableException
from carebook.services.appointment_service import AppointmentService


@pytest.mark.asyncio
async def test_book_appointment(
    client: AsyncClient,
    patient_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """A direct booking is scheduled, unpaid and snapshots the doctor's fee."""
    response = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Appointment booked successfully"
    appointment = data["appointment"]
    assert appointment["status"] == "scheduled"
    assert appointment["paymentStatus"] == "pending"
    assert appointment["consultationFee"] == 500
    assert appointment["appointmentDate"] == "2026-11-02"
    assert appointment["appointmentTime"] == "10:00"
    assert appointment["patientId"] == str(patient["id"])


@pytest.mark.asyncio
async def test_book_taken_slot_conflicts(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    patient: dict,
    other_patient: dict,
    booking_payload: dict,
    count_appointments,
) -> None:
    """Second patient asking for the same slot gets a 409."""
    first = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    assert first.status_code == 200

    second = await client.post(
        "/api/v1/appointments/book", json=booking_payload, headers=other_patient_headers
    )

    assert second.status_code == 409
    assert second.json()["error"] == "SlotConflictException"
    assert second.json()["message"] == "This time slot is already booked"
    assert await count_appointments() == 1


@pytest.mark.asyncio
async def test_slot_matching_normalizes_date_and_time(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    patient: dict,
    other_patient: dict,
    booking_payload: dict,
) -> None:
    """A UTC datetime and an unpadded hour land on the same clinic slot."""
    first = await client.post(
        "/api/v1/appointments/book",
        json={**booking_payload, "appointmentTime": "9:30"},
        headers=patient_headers,
    )
    assert first.status_code == 200
    assert first.json()["appointment"]["appointmentTime"] == "09:30"

    # 20:00 UTC on Nov 1 is 01:30 on Nov 2 in Asia/Kolkata
    second = await client.post(
        "/api/v1/appointments/book",
        json={
            **booking_payload,
            "appointmentDate": "2026-11-01T20:00:00.000Z",
            "appointmentTime": " 09:30 ",
        },
        headers=other_patient_headers,
    )
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_book_without_patient_profile_is_soft_failure(
    client: AsyncClient,
    patient_headers: dict,
    booking_payload: dict,
    count_appointments,
) -> None:
    """Missing patient profile answers 200 with success false."""
    response = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "Please complete your patient profile before booking.",
    }
    assert await count_appointments() == 0


@pytest.mark.asyncio
async def test_book_inactive_or_unknown_doctor(
    client: AsyncClient,
    patient_headers: dict,
    patient: dict,
    doctor_factory,
    booking_payload: dict,
) -> None:
    """Inactive and unknown doctors are both 404."""
    inactive = await doctor_factory(is_active=False)

    response = await client.post(
        "/api/v1/appointments/book",
        json={**booking_payload, "doctorId": str(inactive["id"])},
        headers=patient_headers,
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/v1/appointments/book",
        json={**booking_payload, "doctorId": str(uuid4())},
        headers=patient_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_book_missing_fields_is_400(
    client: AsyncClient,
    patient_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """Missing reason and blank time are validation errors."""
    payload = {k: v for k, v in booking_payload.items() if k != "reason"}
    response = await client.post("/api/v1/appointments/book", json=payload, headers=patient_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"

    response = await client.post(
        "/api/v1/appointments/book",
        json={**booking_payload, "appointmentTime": "   "},
        headers=patient_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_book_requires_authentication(client: AsyncClient, booking_payload: dict) -> None:
    """Requests without a bearer token are rejected."""
    response = await client.post("/api/v1/appointments/book", json=booking_payload)
    assert response.status_code == 401

    response = await client.post(
        "/api/v1/appointments/book",
        json=booking_payload,
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_concurrent_booking_loses_at_insert(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    patient: dict,
    other_patient: dict,
    booking_payload: dict,
    count_appointments,
    monkeypatch,
) -> None:
    """A booking that passed the pre-check still fails on the unique slot index."""
    first = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    assert first.status_code == 200

    # Simulate the second request having checked before the first one inserted
    monkeypatch.setattr(AppointmentService, "is_slot_free", AsyncMock(return_value=True))

    second = await client.post(
        "/api/v1/appointments/book", json=booking_payload, headers=other_patient_headers
    )

    assert second.status_code == 409
    assert await count_appointments() == 1


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    other_patient: dict,
    booking_payload: dict,
) -> None:
    """Cancelling releases the slot."""
    first = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    appointment_id = first.json()["appointment"]["id"]

    cancel = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "cancelled"},
        headers=doctor_headers,
    )
    assert cancel.status_code == 200
    assert cancel.json()["appointment"]["status"] == "cancelled"
    assert cancel.json()["appointment"]["cancelledAt"] is not None

    second = await client.post(
        "/api/v1/appointments/book", json=booking_payload, headers=other_patient_headers
    )
    assert second.status_code == 200


@pytest.mark.asyncio
async def test_doctor_update_notes_and_prescription(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """The owning doctor records clinical notes."""
    booked = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    appointment_id = booked.json()["appointment"]["id"]

    response = await client.put(
        "/api/v1/appointments/doctor",
        json={
            "appointmentId": appointment_id,
            "status": "completed",
            "notes": "Chest clear",
            "diagnosis": "Viral bronchitis",
            "prescription": [{"medication": "Paracetamol", "dosage": "500mg", "frequency": "TID"}],
        },
        headers=doctor_headers,
    )

    assert response.status_code == 200
    appointment = response.json()["appointment"]
    assert appointment["status"] == "completed"
    assert appointment["notes"] == "Chest clear"
    assert appointment["diagnosis"] == "Viral bronchitis"
    assert appointment["prescription"][0]["medication"] == "Paracetamol"
    assert appointment["consultationFee"] == 500


@pytest.mark.asyncio
async def test_terminal_status_cannot_change(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """Completed appointments do not move back to scheduled."""
    booked = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    appointment_id = booked.json()["appointment"]["id"]

    await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "completed"},
        headers=doctor_headers,
    )
    response = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "scheduled"},
        headers=doctor_headers,
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_paid_appointment_cannot_return_to_scheduled(
    client: AsyncClient,
    db_session,
    patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """A paid booking stays confirmed when the doctor tries to reschedule it."""
    booked = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    appointment_id = booked.json()["appointment"]["id"]

    booked_id = UUID(appointment_id)
    paid = await AppointmentService(db_session).mark_paid(booked_id, payment_reference="pay_manual_1")
    assert (paid["status"], paid["payment_status"]) == ("confirmed", "paid")

    response = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "scheduled"},
        headers=doctor_headers,
    )
    assert response.status_code == 409

    stored = await AppointmentService(db_session).get_appointment(booked_id)
    assert (stored["status"], stored["payment_status"]) == ("confirmed", "paid")

    response = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "completed"},
        headers=doctor_headers,
    )
    assert response.status_code == 200
    assert response.json()["appointment"]["status"] == "completed"
    assert response.json()["appointment"]["paymentStatus"] == "paid"


@pytest.mark.asyncio
async def test_doctor_cannot_update_foreign_appointment(
    client: AsyncClient,
    patient_headers: dict,
    make_auth_headers,
    patient: dict,
    doctor_factory,
    booking_payload: dict,
) -> None:
    """Another doctor gets a 404 and nothing changes."""
    booked = await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    appointment_id = booked.json()["appointment"]["id"]

    stranger = await doctor_factory()
    response = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "cancelled"},
        headers=make_auth_headers(stranger["identity_id"]),
    )
    assert response.status_code == 404

    # A patient is not a doctor either
    response = await client.put(
        "/api/v1/appointments/doctor",
        json={"appointmentId": appointment_id, "status": "cancelled"},
        headers=patient_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_doctor_and_patient_views(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    doctor: dict,
    booking_payload: dict,
) -> None:
    """Each side sees the other party's details."""
    await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)
    await client.post(
        "/api/v1/appointments/book",
        json={**booking_payload, "appointmentDate": "2026-11-05"},
        headers=patient_headers,
    )

    response = await client.get("/api/v1/appointments/doctor", headers=doctor_headers)
    assert response.status_code == 200
    items = response.json()["appointments"]
    assert [item["appointmentDate"] for item in items] == ["2026-11-05", "2026-11-02"]
    assert items[0]["patient"]["firstName"] == "Jane"
    assert items[0]["patient"]["lastName"] == "Doe"
    assert items[0]["patient"]["contactNumber"] == "+911234567890"
    assert items[0]["patient"]["gender"] == "Unknown"

    response = await client.get("/api/v1/appointments/patient", headers=patient_headers)
    assert response.status_code == 200
    items = response.json()["appointments"]
    assert len(items) == 2
    assert items[0]["doctor"]["id"] == str(doctor["id"])
    assert items[0]["doctor"]["specialization"] == "Diagnostics"
    assert items[0]["doctor"]["availableSlots"][0]["startTime"] == "09:00"
    assert items[0]["paymentStatus"] == "pending"


@pytest.mark.asyncio
async def test_patient_view_without_profile_is_empty(
    client: AsyncClient,
    make_auth_headers,
) -> None:
    response = await client.get(
        "/api/v1/appointments/patient", headers=make_auth_headers("nobody")
    )
    assert response.status_code == 200
    assert response.json() == {"appointments": []}


@pytest.mark.asyncio
async def test_fee_snapshot_survives_profile_change(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    patient: dict,
    booking_payload: dict,
) -> None:
    """Changing the doctor's fee does not touch existing appointments."""
    await client.post("/api/v1/appointments/book", json=booking_payload, headers=patient_headers)

    response = await client.put(
        "/api/v1/doctor/profile", json={"consultationFee": 900}, headers=doctor_headers
    )
    assert response.status_code == 200
    assert response.json()["doctor"]["consultationFee"] == 900

    response = await client.get("/api/v1/appointments/patient", headers=patient_headers)
    item = response.json()["appointments"][0]
    assert item["consultationFee"] == 500
    assert item["doctor"]["consultationFee"] == 900


@pytest.mark.asyncio
async def test_slot_check_fails_closed() -> None:
    """A store error is never read as a free slot."""
    session = MagicMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
    service = AppointmentService(session)

    with pytest.raises(StoreUnavailableException) as exc_info:
        await service.is_slot_free(uuid4(), date(2026, 11, 2), "10:00")

    assert exc_info.value.status_code == 503
    assert exc_info.value.retryable is True
