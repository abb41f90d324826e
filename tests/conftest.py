"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for TTL and cooldown tests
- In-memory repositories and a recording notifier
- A fully wired VendorRegistrationService
- An application instance running on the in-memory backend
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.repository.memory import InMemoryVendorProfileRepository, InMemoryVendorRepository
from src.api.main import create_app
from src.config.settings import Settings
from src.domain.credentials import CredentialService
from src.domain.pending import PendingRegistrationStore
from src.domain.registration import VendorRegistrationService
from tests.helpers import FakeClock, RecordingNotifier


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pending_store(clock: FakeClock) -> PendingRegistrationStore:
    return PendingRegistrationStore(clock=clock)


@pytest.fixture
def vendor_repository() -> InMemoryVendorRepository:
    return InMemoryVendorRepository()


@pytest.fixture
def profile_repository() -> InMemoryVendorProfileRepository:
    return InMemoryVendorProfileRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def credentials() -> CredentialService:
    # Wall clock: PyJWT checks exp/iat against real time
    return CredentialService(access_secret="test-access-secret", refresh_secret="test-refresh-secret")


@pytest.fixture
def service(
    vendor_repository: InMemoryVendorRepository,
    profile_repository: InMemoryVendorProfileRepository,
    pending_store: PendingRegistrationStore,
    credentials: CredentialService,
    notifier: RecordingNotifier,
) -> VendorRegistrationService:
    return VendorRegistrationService(
        vendors=vendor_repository,
        profiles=profile_repository,
        pending=pending_store,
        credentials=credentials,
        notifier=notifier,
        bcrypt_rounds=4,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        storage_backend="memory",
        bcrypt_cost=4,
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
    )


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI, clock: FakeClock, notifier: RecordingNotifier) -> Generator[TestClient, None, None]:
    """
    Test client with lifespan started.

    After startup the pending store is swapped for one on the fake clock and
    the notifier for a recording one.
    """
    with TestClient(app) as test_client:
        app.state.pending_store = PendingRegistrationStore(clock=clock)
        app.state.notifier = notifier
        yield test_client
