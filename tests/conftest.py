"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from remarked_booking.cache import MemoryCacheBackend, TokenCache
from remarked_booking.db import Base, get_session
from remarked_booking.gateway import RemarkedGateway
from remarked_booking.main import app, get_cache_backend, get_remarked_client
from remarked_booking.models import Restaurant
from remarked_booking.remarked_client import RemarkedClient

TEST_DATABASE_URL = "sqlite:///./test_app.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

REMARKED_BASE_URL = "https://remarked.test/api/v1"
WIDGET_URL = f"{REMARKED_BASE_URL}/ApiReservesWidget"
JSONRPC_URL = f"{REMARKED_BASE_URL}/api"
TOKEN_TTL_SECONDS = 3300


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
def db_session():
    """Provide a clean database for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_backend(clock) -> MemoryCacheBackend:
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def token_cache(cache_backend) -> TokenCache:
    return TokenCache(cache_backend, TOKEN_TTL_SECONDS)


@pytest.fixture
def remarked_router() -> respx.Router:
    """Stand-in for the ReMarked API; unmatched requests fail the test."""
    return respx.Router(assert_all_called=False, assert_all_mocked=True)


@pytest.fixture
def gateway(remarked_router) -> RemarkedGateway:
    return RemarkedGateway(
        REMARKED_BASE_URL,
        timeout=30,
        transport=httpx.MockTransport(remarked_router.handler),
    )


@pytest.fixture
def remarked_client(gateway, token_cache) -> RemarkedClient:
    return RemarkedClient(gateway, token_cache)


@pytest.fixture(scope="function")
def client(db_session, remarked_client, cache_backend):
    """FastAPI TestClient wired to the temporary database and fake provider."""

    def override_session():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_remarked_client] = lambda: remarked_client
    app.dependency_overrides[get_cache_backend] = lambda: cache_backend

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_restaurant(db_session) -> Restaurant:
    """Insert a bookable restaurant."""
    restaurant = Restaurant(
        id="V1",
        name="Чайхона на Арбате",
        city="Москва",
        address="ул. Арбат, 1",
        phone_number="+74950000000",
        is_active=True,
        remarked_point_id=203003,
    )
    db_session.add(restaurant)
    db_session.commit()
    return restaurant
