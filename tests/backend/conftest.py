import datetime as dt
import os
import uuid
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from app.core import db as db_module
from app.core.bootstrap import seed_roles_and_permissions
from app.core.clock import Clock
from app.core.security import hash_password
from app.api.v1.deps import get_clock, get_mailer
from app.main import app
from app.models import Account, AuthProvider, Role
from app.services.mail_base import MailDeliveryError, MailMessage, MailService
from app.services.sessions import SessionManager
from app.services.verification import VerificationCodeEngine


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


class FixedClock(Clock):
    """Clock that only moves when a test says so."""

    def __init__(self, now: dt.datetime):
        self.current = now

    def now(self) -> dt.datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + dt.timedelta(**delta)


class RecordingMailService(MailService):
    """Keeps every message instead of sending it; can be told to fail."""

    def __init__(self):
        self.messages: list[MailMessage] = []
        self.fail = False

    async def send(self, message: MailMessage) -> None:
        if self.fail:
            raise MailDeliveryError("provider down")
        self.messages.append(message)

    def is_available(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "Recording Mail"

    def last_code(self, to: Optional[str] = None) -> str:
        for message in reversed(self.messages):
            if to is None or message.to == to:
                return message.context["code"]
        raise AssertionError(f"no mail sent to {to}")


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch and the role catalog is seeded.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()
    await seed_roles_and_permissions()


@pytest.fixture
def clock() -> FixedClock:
    # Mid-day start, so advancing a few hours never crosses into another day by accident
    today = dt.datetime.now(dt.timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
    return FixedClock(today)


@pytest.fixture
def mailer() -> RecordingMailService:
    return RecordingMailService()


@pytest_asyncio.fixture
async def db():
    """Fresh schema for tests that talk to services directly."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db, clock, mailer):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB,
    the fixed clock and the recording mail service.
    """
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_mailer] = lambda: mailer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest.fixture
def sessions(clock) -> SessionManager:
    return SessionManager(clock=clock)


@pytest.fixture
def engine(mailer, clock) -> VerificationCodeEngine:
    return VerificationCodeEngine(mailer=mailer, clock=clock)


@pytest_asyncio.fixture
async def create_account(db, clock):
    """
    Factory fixture to create accounts directly via ORM.
    Returns (account, password).
    """

    async def _create_account(
        email: Optional[str] = None,
        password: str = "UserPass!23",
        role: Optional[str] = "user",
        **fields,
    ) -> tuple[Account, str]:
        fields.setdefault("created_at", clock.now())
        fields.setdefault("auth_provider", AuthProvider.PASSWORD)
        account = await Account.create(
            email=email or f"user_{uuid.uuid4().hex[:6]}@example.com",
            password_hash=hash_password(password),
            role=await Role.get(name=role) if role else None,
            **fields,
        )
        return account, password

    return _create_account


@pytest_asyncio.fixture
async def create_admin(create_account):
    """
    Factory fixture to create admin accounts for privileged endpoints.
    """

    async def _create_admin(password: str = "AdminPass!23") -> tuple[Account, str]:
        return await create_account(
            email=f"admin_{uuid.uuid4().hex[:6]}@example.com", password=password, role="admin"
        )

    return _create_admin


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    The session cookie is dropped so each request authenticates only with the header.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        token = resp.json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
