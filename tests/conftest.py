"""
Pytest configuration and fixtures for the tradebook API tests.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import jwt
import pytest
import pytest_asyncio
from types import SimpleNamespace
from typing import AsyncGenerator, Dict, List, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from tradebook.main import app
from tradebook.database import Base, get_db
from tradebook.auth import TokenVerifier, get_token_verifier
from tradebook.services.llm import get_analysis_service
from tradebook.services.quotes import QuoteCache, QuoteRateLimited, QuoteService, get_quote_service


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_JWT_SECRET = "tradebook-test-secret-with-enough-bytes"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeQuoteProvider:
    """Quote provider returning canned prices and counting calls."""

    name = "fake"

    def __init__(self, prices: Optional[Dict[str, float]] = None, configured: bool = True):
        self.prices = dict(prices or {})
        self.configured = configured
        self.calls: List[str] = []
        self.rate_limited = False
        self.failure: Optional[Exception] = None

    async def fetch_price(self, symbol: str) -> float:
        self.calls.append(symbol)
        if self.rate_limited:
            raise QuoteRateLimited("Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day.")
        if self.failure is not None:
            raise self.failure
        if symbol not in self.prices:
            raise KeyError(symbol)
        return self.prices[symbol]

    async def aclose(self) -> None:
        return None


class FakeAnalysisService:
    """Stands in for the generative-text service."""

    def __init__(self, text: str = "Short-term trend looks neutral."):
        self.text = text
        self.symbols: List[str] = []

    async def analyze(self, symbol: str) -> str:
        self.symbols.append(symbol)
        return self.text


def make_token(subject: str, secret: str = TEST_JWT_SECRET, **claims) -> str:
    payload = {"sub": subject, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(uid: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(uid)}"}


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def quote_provider():
    return FakeQuoteProvider({"RELIANCE": 2900.0, "INFY": 1500.0, "AAPL": 200.0})


@pytest.fixture
def quote_service(quote_provider, clock):
    return QuoteService(quote_provider, cache=QuoteCache(ttl=300.0, clock=clock))


@pytest.fixture
def analysis_service():
    return FakeAnalysisService()


@pytest_asyncio.fixture
async def client(test_session, quote_service, analysis_service):
    """Create a test client with dependency overrides."""

    async def get_test_db():
        yield test_session

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_token_verifier] = lambda: TokenVerifier(secret=TEST_JWT_SECRET)
    app.dependency_overrides[get_quote_service] = lambda: quote_service
    app.dependency_overrides[get_analysis_service] = lambda: analysis_service

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth_header("alice")


@pytest.fixture
def bob():
    return auth_header("bob")


@pytest.fixture
def stub_alpaca_quote():
    """Build a minimal stand-in for an Alpaca Quote model."""
    def build(bid: float, ask: float):
        return SimpleNamespace(bid_price=bid, ask_price=ask)
    return build
