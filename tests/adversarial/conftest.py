"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition, brute force and
enumeration tests. Everything runs against the in-memory backend; the
pending store is process-local in every deployment.
"""

import pytest

from src.domain.registration import VendorRegistrationService
from tests.helpers import RecordingNotifier

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def pending_code(service: VendorRegistrationService, notifier: RecordingNotifier) -> str:
    """Start a signup for jane@x.com and return the emailed code."""
    service.register("Jane", "Doe", "jane@x.com", "Secret123")
    return notifier.last_code("jane@x.com")
