import json
import os
from collections.abc import AsyncGenerator, Callable
from datetime import timedelta
from itertools import count
from uuid import uuid4

# Settings are read at import time; tests never touch real services
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("CLINIC_TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("LOG_FORMAT", "console")

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

from carebook.core.razorpay import RazorpayClient
from carebook.core.security import create_access_token
from carebook.core.webhook_security import RazorpayWebhookVerifier
from carebook.database import get_db
from carebook.dependencies import (
    get_cache_manager,
    get_razorpay_client,
    get_summarizer,
    get_webhook_verifier,
)
from carebook.main import app
from carebook.models import appointments, doctors, metadata, patients
from carebook.services.summarizer_service import ReportSummarizer

RAZORPAY_KEY_ID = "rzp_test_key"
RAZORPAY_KEY_SECRET = "rzp_test_secret"
WEBHOOK_SECRET = "whsec_test"

PATIENT_IDENTITY = "patient-uid-1"
OTHER_PATIENT_IDENTITY = "patient-uid-2"
DOCTOR_IDENTITY = "doctor-uid-1"


class FakeRazorpay:
    """In-memory stand-in for the Razorpay orders and payments API."""

    def __init__(self) -> None:
        self.orders: dict[str, dict] = {}
        self.payments: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None
        self.raise_error: Exception | None = None
        self._ids = count(1)

    def add_payment(self, amount: int, status: str = "captured", order_id: str | None = None) -> dict:
        payment = {
            "id": f"pay_{next(self._ids)}",
            "entity": "payment",
            "amount": amount,
            "currency": "INR",
            "status": status,
            "order_id": order_id,
        }
        self.payments[payment["id"]] = payment
        return payment

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_status is not None:
            return httpx.Response(
                self.fail_status,
                json={"error": {"code": "SERVER_ERROR", "description": "Gateway failure"}},
            )

        path = request.url.path
        if request.method == "POST" and path == "/v1/orders":
            body = json.loads(request.content)
            order = {
                "id": f"order_{next(self._ids)}",
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "notes": body["notes"],
                "status": "created",
            }
            self.orders[order["id"]] = order
            return httpx.Response(200, json=order)

        if request.method == "GET" and path.startswith("/v1/orders/"):
            order = self.orders.get(path.rsplit("/", 1)[1])
            if order:
                return httpx.Response(200, json=order)

        if request.method == "GET" and path.startswith("/v1/payments/"):
            payment = self.payments.get(path.rsplit("/", 1)[1])
            if payment:
                return httpx.Response(200, json=payment)

        return httpx.Response(
            400,
            json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The id provided does not exist"}},
        )


class FakeChatModel:
    """Records chat completion requests and replies with a canned summary."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.reply: str | None = "- Patient name: Jane Doe\n- Key findings: normal"
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "boom"}})
        choices = [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": self.reply},
            }
        ]
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-test",
                "object": "chat.completion",
                "created": 1760572800,
                "model": "gpt-4o-mini",
                "choices": choices if self.reply is not None else [],
            },
        )


@pytest_asyncio.fixture
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:
    """Create an isolated database for one test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def razorpay() -> FakeRazorpay:
    return FakeRazorpay()


@pytest.fixture
def gateway(razorpay: FakeRazorpay) -> RazorpayClient:
    return RazorpayClient(
        key_id=RAZORPAY_KEY_ID,
        key_secret=RAZORPAY_KEY_SECRET,
        transport=httpx.MockTransport(razorpay.handler),
    )


@pytest.fixture
def webhook_verifier() -> RazorpayWebhookVerifier:
    return RazorpayWebhookVerifier(WEBHOOK_SECRET)


@pytest.fixture
def chat_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def summarizer(chat_model: FakeChatModel) -> ReportSummarizer:
    return ReportSummarizer(api_key="sk-test", transport=httpx.MockTransport(chat_model.handler))


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    gateway: RazorpayClient,
    webhook_verifier: RazorpayWebhookVerifier,
    summarizer: ReportSummarizer,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None
    app.dependency_overrides[get_razorpay_client] = lambda: gateway
    app.dependency_overrides[get_webhook_verifier] = lambda: webhook_verifier
    app.dependency_overrides[get_summarizer] = lambda: summarizer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_auth_headers() -> Callable[..., dict]:
    """Build bearer headers for an identity."""

    def _make(identity_id: str, email: str | None = None, name: str | None = None) -> dict:
        token = create_access_token(
            data={"sub": identity_id, "email": email, "name": name},
            expires_delta=timedelta(hours=1),
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def patient_headers(make_auth_headers) -> dict:
    return make_auth_headers(PATIENT_IDENTITY, "jane@example.com", "Jane Doe")


@pytest.fixture
def other_patient_headers(make_auth_headers) -> dict:
    return make_auth_headers(OTHER_PATIENT_IDENTITY, "john@example.com", "John Roe")


@pytest.fixture
def doctor_headers(make_auth_headers) -> dict:
    return make_auth_headers(DOCTOR_IDENTITY, "house@example.com", "Greg House")


async def _insert(db_session: AsyncSession, table, values: dict) -> dict:
    result = await db_session.execute(insert(table).values(**values).returning(table))
    row = result.mappings().one()
    await db_session.commit()
    return dict(row)


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> dict:
    """Patient profile for PATIENT_IDENTITY."""
    return await _insert(
        db_session,
        patients,
        {"identity_id": PATIENT_IDENTITY, "name": "Jane Doe", "email": "jane@example.com", "phone": "+911234567890"},
    )


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict:
    """Patient profile for OTHER_PATIENT_IDENTITY."""
    return await _insert(
        db_session,
        patients,
        {"identity_id": OTHER_PATIENT_IDENTITY, "name": "John Roe", "email": "john@example.com"},
    )


@pytest.fixture
def doctor_factory(db_session: AsyncSession) -> Callable:
    """Insert doctors with sensible defaults."""

    async def _create(**overrides) -> dict:
        suffix = uuid4().hex[:8]
        values = {
            "identity_id": f"doctor-{suffix}",
            "first_name": "Greg",
            "last_name": "House",
            "email": f"doctor-{suffix}@example.com",
            "specialization": "Diagnostics",
            "experience_years": 12,
            "qualification": "MD",
            "contact_number": "+910000000000",
            "consultation_fee": 500,
            "available_slots": [{"day": "Monday", "startTime": "09:00", "endTime": "17:00"}],
            "biography": "",
            "is_active": True,
            "profile_completed": True,
        }
        values.update(overrides)
        return await _insert(db_session, doctors, values)

    return _create


@pytest_asyncio.fixture
async def doctor(doctor_factory) -> dict:
    """Active doctor owned by DOCTOR_IDENTITY, fee 500."""
    return await doctor_factory(identity_id=DOCTOR_IDENTITY, email="house@example.com")


@pytest.fixture
def booking_payload(doctor: dict) -> dict:
    return {
        "doctorId": str(doctor["id"]),
        "appointmentDate": "2026-11-02",
        "appointmentTime": "10:00",
        "reason": "Persistent cough",
    }


@pytest.fixture
def count_appointments(db_session: AsyncSession) -> Callable:
    async def _count() -> int:
        result = await db_session.execute(select(func.count()).select_from(appointments))
        return result.scalar_one()

    return _count
