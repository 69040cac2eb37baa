"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from docanchor_api.db.base import Base
from docanchor_api.db.session import get_db
from docanchor_api.ledger.backends import InMemoryContractBackend
from docanchor_api.ledger.gateway import (
    ReadOnlyLedgerGateway,
    SigningLedgerGateway,
    get_read_gateway,
    get_signing_gateway,
)
from docanchor_api.main import app

import docanchor_api.models  # noqa: F401

# Use test database URL from environment or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")



@pytest.fixture(scope="function")
def db():
    """Create a test database session."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def ledger() -> InMemoryContractBackend:
    """Fresh in-memory report storage contract."""
    return InMemoryContractBackend()


@pytest.fixture
def signing_gateway(ledger) -> SigningLedgerGateway:
    return SigningLedgerGateway(ledger)


@pytest.fixture
def read_gateway(ledger) -> ReadOnlyLedgerGateway:
    return ReadOnlyLedgerGateway(ledger.read_only())


@pytest.fixture
def client(db, read_gateway, signing_gateway):
    """Test client wired to the test database and in-memory ledger."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_read_gateway] = lambda: read_gateway
    app.dependency_overrides[get_signing_gateway] = lambda: signing_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
