"""
Pytest configuration and shared fixtures for the payments service tests.

Provides an httpx client against the FastAPI app, an in-memory SQLite DB,
and a fake algod client that serves canned pending-transaction responses.
"""
import base64
import hashlib

import pytest
from types import SimpleNamespace
from typing import AsyncGenerator

from algosdk import encoding
from algosdk.error import AlgodHTTPError
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import db_models  # noqa: F401  (registers tables on Base.metadata)
from config import settings
from database import Base, get_db
from deps import get_chain_client
from main import app
from middleware.auth import issue_access_token
from repository import PaymentRepository

# ── Test Configuration ───────────────────────────────────────────────
# Set test-only values for settings that would normally come from .env
if not settings.jwt_secret:
    settings.jwt_secret = "test-jwt-secret-for-pytest-only"


# ── Addresses ────────────────────────────────────────────────────────

def make_address(seed: int) -> str:
    """Deterministic valid Algorand address from a one-byte seed."""
    return encoding.encode_address(bytes([seed]) * 32)


def make_txid(label: str) -> str:
    """Deterministic well-formed transaction ID (52 base32 chars) for a readable label."""
    digest = hashlib.sha256(label.encode()).digest()
    return base64.b32encode(digest).decode().rstrip("=")


EVENT_WALLET = make_address(1)
PAYER_WALLET = make_address(2)
OTHER_WALLET = make_address(3)
INVALID_WALLET_SHORT = EVENT_WALLET[:40]
INVALID_WALLET_BAD_CHECKSUM = (
    EVENT_WALLET[:5] + ("B" if EVENT_WALLET[5] != "B" else "C") + EVENT_WALLET[6:]
)


# ── Fake algod ───────────────────────────────────────────────────────


class FakeAlgod:
    """
    Stand-in for algorand_client with the same method names.

    Unknown transaction IDs and accounts raise AlgodHTTPError(404) like the
    real node.
    """

    def __init__(self):
        self.transactions: dict[str, dict] = {}
        self.accounts: dict[str, dict] = {}
        self.lookups: list[str] = []
        self.fail_with: Exception | None = None

    def add_payment(
        self,
        tx_id: str,
        *,
        receiver,
        amount,
        sender=PAYER_WALLET,
        txn_type: str = "pay",
        confirmed_round: int = 1234,
    ) -> dict:
        body = {"type": txn_type, "amt": amount, "rcv": receiver, "snd": sender, "fee": 1000}
        response = {
            "confirmed-round": confirmed_round,
            "pool-error": "",
            "txn": {"sig": "c2ln", "txn": body},
        }
        self.transactions[tx_id] = response
        return response

    def add_raw(self, tx_id: str, response: dict) -> None:
        self.transactions[tx_id] = response

    def pending_transaction_info(self, tx_id: str) -> dict:
        self.lookups.append(tx_id)
        if self.fail_with is not None:
            raise self.fail_with
        if tx_id not in self.transactions:
            raise AlgodHTTPError("txn does not exist", 404)
        return self.transactions[tx_id]

    def account_info(self, address: str) -> dict:
        if self.fail_with is not None:
            raise self.fail_with
        if address not in self.accounts:
            raise AlgodHTTPError("account not found", 404)
        return self.accounts[address]

    def status(self) -> dict:
        if self.fail_with is not None:
            raise self.fail_with
        return {"last-round": 1000}

    def get_suggested_params(self):
        if self.fail_with is not None:
            raise self.fail_with
        return SimpleNamespace(
            fee=0, min_fee=1000, first=1000, last=2000,
            gen="testnet-v1.0", gh="SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
        )


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

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def repo(db_session: AsyncSession) -> PaymentRepository:
    return PaymentRepository(db_session)


@pytest.fixture
def fake_algod() -> FakeAlgod:
    return FakeAlgod()


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, fake_algod: FakeAlgod) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client against the app with the test DB session and fake algod.
    """
    async def override_get_db():
        yield db_session

    from middleware.rate_limit import limiter
    from routes.params import clear_params_cache
    clear_params_cache()
    limiter.reset()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_chain_client] = lambda: fake_algod

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def sample_user(db_session: AsyncSession):
    from db_models import User

    user = User(email="student@college.edu", full_name="Test Student")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession):
    from db_models import User

    user = User(email="other@college.edu", full_name="Other Student")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def paid_event(db_session: AsyncSession, other_user):
    """Ticketed event: 5 ALGO to EVENT_WALLET."""
    from db_models import Event

    event = Event(
        title="Hackathon Night",
        ticket_price=5,
        wallet_address=EVENT_WALLET,
        owner_id=other_user.id,
    )
    db_session.add(event)
    await db_session.commit()
    return event


@pytest.fixture
async def free_event(db_session: AsyncSession, other_user):
    from db_models import Event

    event = Event(title="Open Mic", ticket_price=0, owner_id=other_user.id)
    db_session.add(event)
    await db_session.commit()
    return event


@pytest.fixture
def auth_headers(sample_user) -> dict:
    """Authorization header with a valid JWT for sample_user."""
    token = issue_access_token(user_id=sample_user.id, email=sample_user.email)
    return {"Authorization": f"Bearer {token}"}
