"""Tests for patient and doctor profiles and role selection."""

from datetime import date

import pytest
from httpx import AsyncClient

from carebook.services.patient_service import compute_age

PATIENT_PROFILE = {
    "name": "Jane Doe",
    "gender": "Female",
    "contactNumber": "+911234567890",
    "dateOfBirth": "1990-06-15",
    "address": {"street": "1 MG Road", "city": "Pune", "state": "MH", "zipCode": "411001"},
    "emergencyContact": {"name": "John Doe", "phone": "+919999999999", "relationship": "Spouse"},
    "medicalHistory": {"allergies": ["Penicillin"], "conditions": [], "medications": []},
}


@pytest.mark.asyncio
async def test_patient_profile_absent(client: AsyncClient, patient_headers: dict) -> None:
    response = await client.get("/api/v1/patients/profile", headers=patient_headers)
    assert response.status_code == 200
    assert response.json() == {"patient": None}


@pytest.mark.asyncio
async def test_patient_profile_upsert_is_idempotent(client: AsyncClient, patient_headers: dict) -> None:
    """Saving the same payload twice leaves one unchanged profile."""
    first = await client.put("/api/v1/patients/profile", json=PATIENT_PROFILE, headers=patient_headers)
    second = await client.put("/api/v1/patients/profile", json=PATIENT_PROFILE, headers=patient_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    one, two = first.json()["patient"], second.json()["patient"]
    assert one["id"] == two["id"]
    for key in ("name", "gender", "phone", "dateOfBirth", "age", "address", "emergencyContact", "medicalHistory"):
        assert one[key] == two[key]

    assert one["phone"] == "+911234567890"
    assert one["age"] == compute_age(date(1990, 6, 15))
    assert one["address"]["zipCode"] == "411001"

    response = await client.get("/api/v1/patients/profile", headers=patient_headers)
    assert response.json()["patient"]["id"] == one["id"]


@pytest.mark.asyncio
async def test_patient_profile_partial_update(client: AsyncClient, patient_headers: dict) -> None:
    """Fields not sent are kept."""
    await client.put("/api/v1/patients/profile", json=PATIENT_PROFILE, headers=patient_headers)

    response = await client.put(
        "/api/v1/patients/profile", json={"phone": "+910000000001"}, headers=patient_headers
    )

    patient = response.json()["patient"]
    assert patient["phone"] == "+910000000001"
    assert patient["name"] == "Jane Doe"
    assert patient["gender"] == "Female"


@pytest.mark.asyncio
async def test_patient_profile_rejects_bad_gender(client: AsyncClient, patient_headers: dict) -> None:
    response = await client.put(
        "/api/v1/patients/profile", json={**PATIENT_PROFILE, "gender": "Unknown"}, headers=patient_headers
    )
    assert response.status_code == 400


def test_compute_age_before_and_after_birthday() -> None:
    assert compute_age(date(1990, 6, 15), today=date(2026, 6, 14)) == 35
    assert compute_age(date(1990, 6, 15), today=date(2026, 6, 15)) == 36


@pytest.mark.asyncio
async def test_doctor_profile_lifecycle(client: AsyncClient, doctor_headers: dict) -> None:
    """A doctor appears in the directory once the profile is saved."""
    response = await client.get("/api/v1/doctor/profile", headers=doctor_headers)
    assert response.status_code == 404

    response = await client.put(
        "/api/v1/doctor/profile",
        json={
            "specialization": "Cardiology",
            "experienceYears": "",
            "qualification": "MBBS, MD",
            "contactNumber": "+911111111111",
            "consultationFee": 700,
            "availableSlots": [{"day": "Tuesday", "startTime": "10:00", "endTime": "13:00"}],
            "biography": "Heart specialist",
        },
        headers=doctor_headers,
    )
    assert response.status_code == 200
    doctor = response.json()["doctor"]
    assert doctor["profileCompleted"] is True
    assert doctor["isActive"] is True
    assert doctor["experienceYears"] == 0
    assert doctor["firstName"] == "Greg"
    assert doctor["email"] == "house@example.com"

    response = await client.get("/api/v1/doctor/profile", headers=doctor_headers)
    assert response.json()["doctor"]["availableSlots"][0]["startTime"] == "10:00"

    response = await client.get("/api/v1/doctors")
    assert [d["id"] for d in response.json()["doctors"]] == [doctor["id"]]


@pytest.mark.asyncio
async def test_doctor_email_conflict(client: AsyncClient, doctor_headers: dict, doctor_factory) -> None:
    taken = await doctor_factory()
    response = await client.put(
        "/api/v1/doctor/profile", json={"email": taken["email"]}, headers=doctor_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_doctor_directory_order(client: AsyncClient, doctor_factory) -> None:
    """Best rated first, then most patients; inactive doctors are hidden."""
    low = await doctor_factory(rating=3.5, total_patients=100)
    busy = await doctor_factory(rating=4.8, total_patients=300)
    quiet = await doctor_factory(rating=4.8, total_patients=20)
    await doctor_factory(rating=5.0, is_active=False)

    response = await client.get("/api/v1/doctors")

    assert response.status_code == 200
    ids = [d["id"] for d in response.json()["doctors"]]
    assert ids == [str(busy["id"]), str(quiet["id"]), str(low["id"])]


@pytest.mark.asyncio
async def test_role_selection_is_idempotent(client: AsyncClient, make_auth_headers) -> None:
    headers = make_auth_headers("new-uid", "new@example.com", "Ada Lovelace")

    response = await client.get("/api/v1/user/role", headers=headers)
    assert response.json()["role"] is None

    first = await client.post("/api/v1/user/role", json={"role": "patient"}, headers=headers)
    second = await client.post("/api/v1/user/role", json={"role": "patient"}, headers=headers)

    assert first.status_code == 200
    assert first.json()["created"] is True
    assert first.json()["message"] == "Patient created successfully"
    assert second.json()["created"] is False
    assert second.json()["profileId"] == first.json()["profileId"]

    response = await client.get("/api/v1/patients/profile", headers=headers)
    assert response.json()["patient"]["name"] == "Ada Lovelace"

    response = await client.get("/api/v1/user/role", headers=headers)
    assert response.json() == {
        "role": "patient",
        "profileId": first.json()["profileId"],
        "profileCompleted": True,
    }


@pytest.mark.asyncio
async def test_doctor_role_creates_hidden_stub(client: AsyncClient, make_auth_headers) -> None:
    """A doctor stub is incomplete and not listed until onboarding."""
    headers = make_auth_headers("doc-uid", None, "Meredith Grey")

    response = await client.post(
        "/api/v1/user/role",
        json={"role": "doctor", "firstName": "Meredith", "lastName": "Grey"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Doctor created successfully"

    response = await client.get("/api/v1/doctor/profile", headers=headers)
    doctor = response.json()["doctor"]
    assert doctor["profileCompleted"] is False
    assert doctor["email"] == "doc-uid@noemail.local"
    assert doctor["specialization"] == "General Practice"

    response = await client.get("/api/v1/user/role", headers=headers)
    assert response.json()["role"] == "doctor"
    assert response.json()["profileCompleted"] is False

    response = await client.get("/api/v1/doctors")
    assert doctor["id"] not in [d["id"] for d in response.json()["doctors"]]


@pytest.mark.asyncio
async def test_doctor_stub_cannot_be_booked(
    client: AsyncClient,
    make_auth_headers,
    patient_headers: dict,
    patient: dict,
    count_appointments,
) -> None:
    """A stub with no fee is not bookable even when the booking omits the fee."""
    headers = make_auth_headers("stub-uid", "stub@example.com", "Derek Shepherd")
    await client.post("/api/v1/user/role", json={"role": "doctor"}, headers=headers)
    stub = (await client.get("/api/v1/doctor/profile", headers=headers)).json()["doctor"]
    assert stub["consultationFee"] == 0

    payload = {
        "doctorId": stub["id"],
        "appointmentDate": "2026-11-03",
        "appointmentTime": "11:00",
        "reason": "Headache",
    }
    response = await client.post("/api/v1/appointments/book", json=payload, headers=patient_headers)
    assert response.status_code == 404
    assert await count_appointments() == 0

    # Onboarding without a fee still leaves the doctor unlisted
    await client.put("/api/v1/doctor/profile", json={"specialization": "Neurology"}, headers=headers)
    response = await client.get("/api/v1/doctors")
    assert stub["id"] not in [d["id"] for d in response.json()["doctors"]]

    await client.put("/api/v1/doctor/profile", json={"consultationFee": 800}, headers=headers)
    response = await client.get("/api/v1/doctors")
    assert stub["id"] in [d["id"] for d in response.json()["doctors"]]

    response = await client.post("/api/v1/appointments/book", json=payload, headers=patient_headers)
    assert response.status_code == 200
    assert response.json()["appointment"]["consultationFee"] == 800


@pytest.mark.asyncio
async def test_save_user_updates_names(client: AsyncClient, make_auth_headers) -> None:
    headers = make_auth_headers("save-uid", "save@example.com", None)

    response = await client.post(
        "/api/v1/save-user",
        json={"role": "patient", "firstName": "Grace", "lastName": "Hopper", "phone": "+15550100"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    patient = (await client.get("/api/v1/patients/profile", headers=headers)).json()["patient"]
    assert patient["name"] == "Grace Hopper"
    assert patient["phone"] == "+15550100"
    assert patient["email"] == "save@example.com"
