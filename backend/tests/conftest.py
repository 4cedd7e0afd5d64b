"""
Pytest configuration and shared fixtures for the Rex360 backend tests.

Provides an in-memory SQLite session, fake external services (identity,
object storage, payment gateway, mailer) and an HTTP client bound to the app
with get_db / get_services overridden.
"""
import io
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from deps import ServiceContainer, get_services
from domain.errors import PaymentGatewayUnavailableError, UpstreamServiceError
from main import app
from middleware.rate_limit import _limiter
from services.identity_service import Identity

# ── Test constants ───────────────────────────────────────────────────

ADMIN_EMAIL = "admin@rex360solutions.com"
ADMIN_TOKEN = "admin-token"
OTHER_TOKEN = "visitor-token"
WEBHOOK_SECRET = "sk_test_webhook_secret"
STORAGE_BASE = "https://cdn.test/storage/v1/object/public/uploads"


# ── Fakes ────────────────────────────────────────────────────────────


class FakeIdentityResolver:
    def __init__(self, tokens: dict):
        self.tokens = tokens
        self.calls = []

    async def resolve(self, token):
        self.calls.append(token)
        return self.tokens.get(token)


class FakeObjectStore:
    def __init__(self, fail_on=None):
        self.objects = {}
        self.fail_on = fail_on

    async def upload(self, key, data, content_type):
        if self.fail_on and self.fail_on(key):
            raise UpstreamServiceError("File upload failed")
        self.objects[key] = (data, content_type)

    def public_url(self, key):
        return f"{STORAGE_BASE}/{key}"


class FakeGateway:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def initialize_transaction(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise PaymentGatewayUnavailableError()
        return {
            "authorization_url": "https://checkout.paystack.com/abc123",
            "access_code": "abc123",
            "reference": "ref_test_001",
        }


class FakeMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, to, subject, html_body):
        if self.fail:
            raise UpstreamServiceError("Email delivery failed")
        self.sent.append({"to": to, "subject": subject, "html": html_body})


def make_image_bytes(fmt: str = "JPEG", size=(1600, 900), mode: str = "RGB") -> bytes:
    img = Image.new(mode, size, (200, 30, 30) if mode == "RGB" else (200, 30, 30, 128))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


# ── Rate limiter isolation ───────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    _limiter.reset()
    yield
    _limiter.reset()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


# ── Service Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def test_settings():
    return settings.model_copy(update={
        "admin_email": ADMIN_EMAIL,
        "paystack_secret_key": WEBHOOK_SECRET,
        "site_name": "Rex360 Test",
        "payment_callback_url": "https://rex360.test/payment-success",
        "image_variants_enabled": True,
        "max_upload_mb": 2,
    })


@pytest.fixture
def identity():
    return FakeIdentityResolver({
        ADMIN_TOKEN: Identity(id="admin-1", email=ADMIN_EMAIL),
        OTHER_TOKEN: Identity(id="user-2", email="visitor@example.com"),
    })


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def services(test_settings, identity, object_store, gateway, mailer) -> ServiceContainer:
    return ServiceContainer(
        settings=test_settings,
        identity=identity,
        object_store=object_store,
        payment_gateway=gateway,
        mailer=mailer,
    )


@pytest.fixture
async def client(db_session, services) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test DB and fake services."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def visitor_headers() -> dict:
    return {"Authorization": f"Bearer {OTHER_TOKEN}"}


# ── Test Data Fixtures ───────────────────────────────────────────────


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
async def sample_application(db_session):
    from db_models import Application

    app_row = Application(
        email="founder@example.com",
        business_name="Acme Ventures",
        service_name="Business Name Registration",
        details={"directors": ["Ada Obi"]},
        status="pending",
    )
    db_session.add(app_row)
    await db_session.commit()
    await db_session.refresh(app_row)
    return app_row


@pytest.fixture
async def sample_service(db_session):
    from db_models import Service

    service = Service(title="Limited Liability Company", price="₦85,000", description="Incorporation")
    db_session.add(service)
    await db_session.commit()
    await db_session.refresh(service)
    return service
