"""Master test fixtures.

Environment variables are set BEFORE any application imports so that
``config.Settings()`` initialises with test-safe values and never
touches Docker secrets or a production database.
"""

import os, uuid

# ── Set test env vars before any app import ──────────────────────────
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite://",
    "POSTGRES_PASSWORD": "testpassword",
    "APP_SECRET_KEY": "test-secret-key-for-jwt-signing",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "SANITY_PROJECT_ID": "testproj",
    "PUBLIC_BASE_URL": "https://test.example.com",
})
for _var in ("MAILGUN_DOMAIN", "MAILGUN_API_KEY", "INTERNAL_EMAIL", "PDF_FONT_PATH"):
    os.environ.pop(_var, None)

import pytest

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Now safe to import application code
from config import settings
from models.base import Base, get_db
from models import OrderItem, PaymentStatus, Purchase, User, UserProfile
from auth.jwt import create_access_token


_test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
_TestSession = async_sessionmaker(_test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def _create_tables():
    """Create and drop SQLite tables around every test."""
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch):
    """Point blob storage at a per-test directory."""
    root = tmp_path / "blobs"
    monkeypatch.setattr(settings, "storage_root", str(root))
    return root


@pytest.fixture
async def db_session():
    """Yield a test DB session with auto-rollback."""
    async with _TestSession() as session:
        yield session


@pytest.fixture
async def test_client(db_session: AsyncSession):
    """HTTPX async client wired to the FastAPI app, with DB override.

    The startup event is NOT run; tables come from ``_create_tables``.
    """
    from main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def registered_user(db_session: AsyncSession) -> dict:
    """Insert a user and return ``{id, email, access_token}``."""
    from passlib.hash import bcrypt

    user_id = uuid.uuid4()
    user = User(id=user_id, email="test@example.com", hashed_password=bcrypt.hash("password123"))
    db_session.add(user)
    await db_session.commit()
    token = create_access_token(user_id)
    return {"id": user_id, "email": "test@example.com", "access_token": token}


@pytest.fixture
async def onboarded_user(db_session: AsyncSession, registered_user: dict) -> dict:
    """Registered user who has completed onboarding (has a profile)."""
    db_session.add(UserProfile(id=registered_user["id"], display_name="test", email=registered_user["email"]))
    await db_session.commit()
    return registered_user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> dict:
    """A second onboarded user, for ownership checks."""
    user_id = uuid.uuid4()
    db_session.add(User(id=user_id, email="other@example.com", hashed_password=None))
    await db_session.flush()
    db_session.add(UserProfile(id=user_id, display_name="other", email="other@example.com"))
    await db_session.commit()
    token = create_access_token(user_id)
    return {"id": user_id, "email": "other@example.com", "access_token": token}


@pytest.fixture
def auth_headers(registered_user: dict) -> dict[str, str]:
    """Authorization header for the registered test user."""
    return {"Authorization": f"Bearer {registered_user['access_token']}"}


@pytest.fixture
def make_purchase(db_session: AsyncSession):
    """Factory inserting a purchase with one order line; returns ``(purchase, item)``."""

    async def _make(
        user_id: uuid.UUID,
        *,
        status: PaymentStatus = PaymentStatus.PAID,
        session_id: str | None = "cs_test_123",
        remaining: int = 1,
        slug: str = "nnn-agreement-cn",
    ):
        purchase = Purchase(
            user_id=user_id,
            product_slug=slug,
            product_name="NNN Agreement",
            amount=19900,
            payment_status=status,
            stripe_session_id=session_id,
        )
        db_session.add(purchase)
        await db_session.flush()
        item = OrderItem(
            purchase_id=purchase.id,
            product_slug=slug,
            price_at_purchase=19900,
            generations_remaining=remaining,
        )
        db_session.add(item)
        await db_session.commit()
        return purchase, item

    return _make


NNN_FORM = {
    "disclosingPartyType": "Corporation",
    "disclosingPartyName": "Acme Imports LLC",
    "disclosingPartyAddress": "1 Market St, San Francisco",
    "disclosingPartyBusinessNumber": "BN-12345",
    "disclosingPartyCountry": "United States",
    "disclosingPartyJurisdiction": "California",
    "receivingPartyName": "Shenzhen Widget Co., Ltd.",
    "receivingPartyNameChinese": "深圳小部件有限公司",
    "receivingPartyAddress": "88 Keji Rd, Nanshan, Shenzhen",
    "receivingPartyUSCC": "91440300MA5ABCDE1X",
    "productName": "Folding Widget",
    "productDescription": "A collapsible aluminium widget with a patented hinge.",
    "productTrademark": "have",
    "arbitration": "HKIAC",
    "penaltyDamages": "fixedAmount",
    "penaltyAmount": "100,000",
    "agreementDuration": 5,
    "durationType": "years",
}


@pytest.fixture
def nnn_form() -> dict:
    """A complete, valid NNN agreement submission (camelCase, as the storefront posts it)."""
    return dict(NNN_FORM)
