"""Test configuration and fixtures"""

from datetime import date
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from reservepay.config import Settings
from reservepay.database import Base, get_db
from reservepay.main import create_app
from reservepay.models.customer import Customer
from reservepay.models.reservation import Reservation, ReservationStatus
from reservepay.models.user import User, UserRole
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.mailer import MailDeliveryError
from reservepay.api.auth import create_access_token, create_customer_token, get_password_hash


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingMailer:
    """Mailer double that keeps every message it is asked to send"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, to, subject, body, tags=None, cc=None, bcc=None):
        if self.fail:
            raise MailDeliveryError("Mail API returned 500")
        self.sent.append({
            "to": to,
            "subject": subject,
            "body": body,
            "tags": dict(tags or {}),
            "cc": list(cc or []),
            "bcc": list(bcc or []),
        })
        return f"msg_{len(self.sent)}"

    def customer_messages(self):
        return [m for m in self.sent if m["tags"].get("kind") == "customer"]

    def staff_messages(self):
        return [m for m in self.sent if m["tags"].get("kind") == "admin"]


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url=TEST_DATABASE_URL,
        jwt_secret_key="test-secret-key",
        payment_mode="simulation",
        public_base_url="http://shop.test",
        admin_notify_to="owner@example.com,ops@example.com",
        admin_notify_cc="manager@example.com",
        admin_notify_bcc="audit@example.com",
        mail_api_key="",
        log_format="console",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    """Simulation-mode settings"""
    return make_settings()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def notifier(settings, mailer):
    return NotificationDispatcher(
        mailer,
        staff_to=settings.admin_notify_to_list,
        staff_cc=settings.admin_notify_cc_list,
        staff_bcc=settings.admin_notify_bcc_list,
        timeout=1.0,
    )


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


async def create_reservation(
    db: AsyncSession,
    customer: Customer,
    status: ReservationStatus = ReservationStatus.PENDING,
    amount: int = 7000,
    payment_reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Reservation:
    reservation = Reservation(
        id=uuid4(),
        customer_id=customer.id,
        date=date(2026, 11, 3),
        slot="10:00",
        adult_count=2,
        child_count=1,
        amount=amount,
        currency="jpy",
        status=status.value,
        payment_reference=payment_reference,
        notes=notes,
    )
    db.add(reservation)
    await db.commit()
    return reservation


@pytest.fixture
async def test_customer(test_db):
    """Create a test customer"""
    customer = Customer(
        id=uuid4(),
        name="Hanako Test",
        email="hanako@example.com",
        phone=None,
    )
    test_db.add(customer)
    await test_db.commit()

    return customer


@pytest.fixture
async def other_customer(test_db):
    customer = Customer(
        id=uuid4(),
        name="Someone Else",
        email="someone@example.com",
    )
    test_db.add(customer)
    await test_db.commit()

    return customer


@pytest.fixture
async def pending_reservation(test_db, test_customer):
    """Pending reservation for 2 adults + 1 child (7000 JPY)"""
    return await create_reservation(test_db, test_customer)


@pytest.fixture
async def test_staff_user(test_db):
    """Create a staff user"""
    user = User(
        id=uuid4(),
        email="staff@example.com",
        hashed_password=get_password_hash("staffpass123"),
        full_name="Staff User",
        role=UserRole.STAFF,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def test_admin_user(test_db):
    """Create an admin user"""
    user = User(
        id=uuid4(),
        email="admin@example.com",
        hashed_password=get_password_hash("adminpass123"),
        full_name="Admin User",
        role=UserRole.ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


def build_app(settings: Settings, notifier: NotificationDispatcher):
    app = create_app(settings)
    app.state.notifier = notifier
    return app


@pytest.fixture
def app(settings, notifier):
    return build_app(settings, notifier)


@pytest.fixture
async def client(app, test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def customer_headers(settings, test_customer):
    """Identity token for the owner of `pending_reservation`"""
    token = create_customer_token(test_customer, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers(settings, test_staff_user):
    token = create_access_token(test_staff_user, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(settings, test_admin_user):
    token = create_access_token(test_admin_user, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_reservation(test_db):
    """Factory for reservations in a given state"""
    async def _make(customer: Customer, **kwargs) -> Reservation:
        return await create_reservation(test_db, customer, **kwargs)
    return _make


@pytest.fixture
def live_settings():
    """Live (Stripe) payment settings"""
    return make_settings(
        payment_mode="live",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_secret",
    )


@pytest.fixture
def live_client(app, client, live_settings):
    """Test client against an app configured for live payments"""
    app.state.settings = live_settings
    return client
