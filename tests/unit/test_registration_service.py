"""
Unit tests for VendorRegistrationService domain logic.

Runs the service against in-memory repositories, a fake-clock pending store
and a recording notifier to verify:
- Email normalization
- Pending signup (no durable record before verification)
- OTP invalidation, replay protection and attempt limit
- Resend cooldown
- Account creation, profile setup and step progression
- Login, logout, refresh rotation and status derivation
- Notification failures never break the workflow
"""

import logging
from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryVendorProfileRepository, InMemoryVendorRepository
from src.domain.exceptions import (
    AlreadyComplete,
    AlreadyExists,
    Deactivated,
    DuplicateRegistrationNumber,
    InvalidCode,
    InvalidCredentials,
    NoPendingRegistration,
    NotVerified,
    RateLimited,
    RegistrationNotFound,
    TooManyAttempts,
    Unauthorized,
    VendorNotFound,
)
from src.domain.models import NextAction, RegistrationStep, Vendor, VendorProfile
from src.domain.passwords import hash_password
from src.domain.registration import VendorRegistrationService
from tests.helpers import FakeClock, RecordingNotifier, make_profile_draft, wrong_code


def register_jane(service: VendorRegistrationService, email: str = "jane@x.com") -> None:
    service.register("Jane", "Doe", email, "Secret123")


def verified_vendor(service: VendorRegistrationService, notifier: RecordingNotifier, email: str = "jane@x.com"):
    register_jane(service, email)
    return service.verify_email(email, notifier.last_code(email))


class TestRegister:
    def test_register_returns_ticket(self, service: VendorRegistrationService) -> None:
        ticket = service.register("Jane", "Doe", "jane@x.com", "Secret123")
        assert ticket.email == "jane@x.com"
        assert ticket.next_step is RegistrationStep.EMAIL_VERIFICATION
        assert ticket.otp_expires_in == 600

    def test_register_normalizes_email(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        ticket = service.register("Jane", "Doe", "  Jane@X.COM ", "Secret123")
        assert ticket.email == "jane@x.com"
        assert notifier.otps[0][0] == "jane@x.com"

    def test_register_sends_otp(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        ticket = service.register("Jane", "Doe", "jane@x.com", "Secret123")
        assert notifier.otps == [("jane@x.com", ticket.otp, "registration")]

    def test_register_does_not_create_vendor(
        self, service: VendorRegistrationService, vendor_repository: InMemoryVendorRepository
    ) -> None:
        register_jane(service)
        assert vendor_repository.find_by_email("jane@x.com") is None

    def test_register_existing_vendor_fails(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        verified_vendor(service, notifier)
        with pytest.raises(AlreadyExists):
            register_jane(service)

    def test_register_twice_invalidates_first_code(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        first = service.register("Jane", "Doe", "jane@x.com", "Secret123")
        second = service.register("Jane", "Doe", "jane@x.com", "Secret123")
        if first.otp == second.otp:
            pytest.skip("Both draws produced the same code")

        with pytest.raises((InvalidCode, RegistrationNotFound)):
            service.verify_email("jane@x.com", first.otp)

    def test_register_again_replaces_draft(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        service.register("Jane", "Doe", "jane@x.com", "Secret123")
        service.register("Janet", "Doe", "jane@x.com", "Secret456")
        session = service.verify_email("jane@x.com", notifier.last_code("jane@x.com"))
        assert session.vendor.first_name == "Janet"

    def test_notifier_failure_is_not_fatal(
        self,
        vendor_repository: InMemoryVendorRepository,
        profile_repository: InMemoryVendorProfileRepository,
        pending_store,
        credentials,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        notifier = Mock()
        notifier.send_otp.side_effect = ConnectionError("SMTP down")
        notifier.send_welcome.side_effect = ConnectionError("SMTP down")
        service = VendorRegistrationService(
            vendors=vendor_repository,
            profiles=profile_repository,
            pending=pending_store,
            credentials=credentials,
            notifier=notifier,
            bcrypt_rounds=4,
        )

        with caplog.at_level(logging.WARNING):
            ticket = service.register("Jane", "Doe", "jane@x.com", "Secret123")
            session = service.verify_email("jane@x.com", ticket.otp)

        assert session.vendor.email == "jane@x.com"
        assert "Notification" in caplog.text


class TestResendOtp:
    def test_resend_without_pending_fails(self, service: VendorRegistrationService) -> None:
        with pytest.raises(NoPendingRegistration):
            service.resend_otp("jane@x.com")

    def test_resend_inside_cooldown_is_rate_limited(
        self, service: VendorRegistrationService, clock: FakeClock
    ) -> None:
        register_jane(service)
        clock.advance(seconds=30)
        with pytest.raises(RateLimited) as exc_info:
            service.resend_otp("jane@x.com")
        assert exc_info.value.remaining_seconds == 90

    def test_remaining_seconds_decrease(
        self, service: VendorRegistrationService, clock: FakeClock
    ) -> None:
        register_jane(service)
        remaining = []
        for _ in range(3):
            clock.advance(seconds=20)
            with pytest.raises(RateLimited) as exc_info:
                service.resend_otp("jane@x.com")
            remaining.append(exc_info.value.remaining_seconds)
        assert remaining == sorted(remaining, reverse=True)
        assert len(set(remaining)) == 3
        assert all(r > 0 for r in remaining)

    def test_resend_after_cooldown_issues_new_code(
        self, service: VendorRegistrationService, notifier: RecordingNotifier, clock: FakeClock
    ) -> None:
        register_jane(service)
        clock.advance(minutes=2)
        ticket = service.resend_otp("jane@x.com")
        assert ticket.otp_expires_in == 600
        assert len(notifier.otps) == 2
        assert notifier.last_code("jane@x.com") == ticket.otp

    def test_resent_code_verifies(
        self, service: VendorRegistrationService, clock: FakeClock
    ) -> None:
        register_jane(service)
        clock.advance(minutes=3)
        ticket = service.resend_otp("jane@x.com")
        session = service.verify_email("jane@x.com", ticket.otp)
        assert session.vendor.registration_step is RegistrationStep.PROFILE_SETUP

    def test_resend_after_pending_expired(
        self, service: VendorRegistrationService, clock: FakeClock
    ) -> None:
        register_jane(service)
        clock.advance(minutes=15)
        with pytest.raises(NoPendingRegistration):
            service.resend_otp("jane@x.com")


class TestVerifyEmail:
    def test_verify_creates_vendor(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        stored = vendor_repository.find_by_email("jane@x.com")

        assert stored is not None
        assert stored.id == session.vendor.id
        assert stored.is_email_verified is True
        assert stored.is_registration_complete is True
        assert stored.registration_completed_at is not None
        assert stored.registration_step is RegistrationStep.PROFILE_SETUP
        assert stored.is_profile_complete is False

    def test_password_hashed_at_persistence(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        verified_vendor(service, notifier)
        stored = vendor_repository.find_by_email("jane@x.com")
        assert stored.password_hash != "Secret123"
        assert stored.password_hash.startswith("$2")

    def test_verify_issues_tokens_and_records_refresh(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        credentials,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        principal = credentials.verify_access_token(session.tokens.access_token)
        assert principal.id == session.vendor.id
        stored = vendor_repository.find_by_id(session.vendor.id)
        assert [e.token for e in stored.refresh_tokens] == [session.tokens.refresh_token]

    def test_verify_sends_welcome(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        verified_vendor(service, notifier)
        assert notifier.welcomes == [("jane@x.com", "Jane Doe", "vendor")]

    def test_no_replay(self, service: VendorRegistrationService, notifier: RecordingNotifier) -> None:
        register_jane(service)
        code = notifier.last_code("jane@x.com")
        service.verify_email("jane@x.com", code)
        with pytest.raises(RegistrationNotFound):
            service.verify_email("jane@x.com", code)

    def test_wrong_code(self, service: VendorRegistrationService, notifier: RecordingNotifier) -> None:
        register_jane(service)
        with pytest.raises(InvalidCode):
            service.verify_email("jane@x.com", wrong_code(notifier.last_code("jane@x.com")))

    def test_sixth_attempt_blocked_even_with_correct_code(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        register_jane(service)
        code = notifier.last_code("jane@x.com")
        for _ in range(5):
            with pytest.raises(InvalidCode):
                service.verify_email("jane@x.com", wrong_code(code))
        with pytest.raises(TooManyAttempts):
            service.verify_email("jane@x.com", code)

    def test_race_guard_when_vendor_appears(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        """A vendor created between register and verify wins; verification fails."""
        register_jane(service)
        vendor_repository.create(
            Vendor(first_name="Jane", last_name="Doe", email="jane@x.com", password_hash="x")
        )
        with pytest.raises(AlreadyExists):
            service.verify_email("jane@x.com", notifier.last_code("jane@x.com"))


class TestSetupProfile:
    def test_setup_completes_registration(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        profile_repository: InMemoryVendorProfileRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        vendor, profile = service.setup_profile(session.vendor.id, make_profile_draft())

        assert vendor.is_profile_complete is True
        assert vendor.profile_completed_at is not None
        assert vendor.registration_step is RegistrationStep.COMPLETED
        assert profile.vendor_id == vendor.id
        assert profile_repository.find_by_vendor_id(vendor.id) is not None

    def test_duplicate_registration_number(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        other = verified_vendor(service, notifier, "other@x.com")
        service.setup_profile(other.vendor.id, make_profile_draft("REG-1"))

        session = verified_vendor(service, notifier, "jane@x.com")
        with pytest.raises(DuplicateRegistrationNumber):
            service.setup_profile(session.vendor.id, make_profile_draft("REG-1"))

        stored = vendor_repository.find_by_id(session.vendor.id)
        assert stored.registration_step is RegistrationStep.PROFILE_SETUP
        assert stored.is_profile_complete is False

    def test_already_complete(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.setup_profile(session.vendor.id, make_profile_draft())
        with pytest.raises(AlreadyComplete):
            service.setup_profile(session.vendor.id, make_profile_draft("REG-2"))

    def test_not_verified(
        self, service: VendorRegistrationService, vendor_repository: InMemoryVendorRepository
    ) -> None:
        vendor = vendor_repository.create(
            Vendor(first_name="Jane", last_name="Doe", email="jane@x.com", password_hash="x")
        )
        with pytest.raises(NotVerified):
            service.setup_profile(vendor.id, make_profile_draft())

    def test_unknown_vendor(self, service: VendorRegistrationService) -> None:
        with pytest.raises(VendorNotFound):
            service.setup_profile("missing", make_profile_draft())

    def test_resumes_after_partial_write(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        profile_repository: InMemoryVendorProfileRepository,
        clock: FakeClock,
    ) -> None:
        """Profile stored but flags never saved: retry finishes the flag update."""
        session = verified_vendor(service, notifier)
        profile_repository.create(
            VendorProfile.from_draft(session.vendor.id, make_profile_draft(), created_at=clock.now())
        )

        vendor, profile = service.setup_profile(session.vendor.id, make_profile_draft())

        assert vendor.registration_step is RegistrationStep.COMPLETED
        assert profile.business_registration_number == "REG123456"


class TestLogin:
    def test_login_success(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        verified_vendor(service, notifier)
        session = service.login("JANE@x.com", "Secret123")
        assert session.vendor.email == "jane@x.com"
        assert session.vendor.last_login is not None
        assert session.tokens.access_token

    def test_login_before_verification_fails(self, service: VendorRegistrationService) -> None:
        register_jane(service)
        with pytest.raises(InvalidCredentials):
            service.login("jane@x.com", "Secret123")

    def test_wrong_password_and_unknown_email_identical(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        verified_vendor(service, notifier)
        with pytest.raises(InvalidCredentials) as wrong_password:
            service.login("jane@x.com", "Wrong123")
        with pytest.raises(InvalidCredentials) as unknown_email:
            service.login("nobody@x.com", "Secret123")
        assert str(wrong_password.value) == str(unknown_email.value)

    def test_deactivated(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        vendor = vendor_repository.find_by_id(session.vendor.id)
        vendor.is_active = False
        vendor_repository.update(vendor)
        with pytest.raises(Deactivated):
            service.login("jane@x.com", "Secret123")

    def test_refresh_tokens_bounded_across_logins(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        first = verified_vendor(service, notifier)
        sessions = [service.login("jane@x.com", "Secret123") for _ in range(7)]

        stored = vendor_repository.find_by_id(first.vendor.id)
        tokens = [e.token for e in stored.refresh_tokens]
        assert len(tokens) == 5
        assert tokens == [s.tokens.refresh_token for s in sessions[-5:]]
        assert first.tokens.refresh_token not in tokens


class TestLogoutAndRefresh:
    def test_logout_removes_token(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        service.logout(session.vendor.id, session.tokens.refresh_token)
        assert vendor_repository.find_by_id(session.vendor.id).refresh_tokens == []

    def test_logout_is_idempotent(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.logout(session.vendor.id, session.tokens.refresh_token)
        service.logout(session.vendor.id, session.tokens.refresh_token)
        service.logout(session.vendor.id, "never-issued")

    def test_refresh_rotates_token(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        refreshed = service.refresh_session(session.tokens.refresh_token)

        tokens = [e.token for e in vendor_repository.find_by_id(session.vendor.id).refresh_tokens]
        assert tokens == [refreshed.tokens.refresh_token]

    def test_refresh_with_rotated_token_fails(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.refresh_session(session.tokens.refresh_token)
        with pytest.raises(Unauthorized):
            service.refresh_session(session.tokens.refresh_token)

    def test_refresh_after_logout_fails(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.logout(session.vendor.id, session.tokens.refresh_token)
        with pytest.raises(Unauthorized):
            service.refresh_session(session.tokens.refresh_token)

    def test_refresh_with_access_token_fails(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        with pytest.raises(Unauthorized):
            service.refresh_session(session.tokens.access_token)


class TestStatusAndProfile:
    def test_status_after_verification(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        status = service.registration_status(session.vendor.id)
        assert status.next_action is NextAction.COMPLETE_PROFILE
        assert status.can_add_products is False
        assert status.full_name == "Jane Doe"

    def test_status_after_profile(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.setup_profile(session.vendor.id, make_profile_draft())
        status = service.registration_status(session.vendor.id)
        assert status.next_action is NextAction.START_SELLING
        assert status.can_add_products is True
        assert status.registration_step is RegistrationStep.COMPLETED

    def test_get_profile_before_setup(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        vendor, profile = service.get_profile(session.vendor.id)
        assert vendor.id == session.vendor.id
        assert profile is None

    def test_get_profile_after_setup(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        service.setup_profile(session.vendor.id, make_profile_draft())
        _, profile = service.get_profile(session.vendor.id)
        assert profile.business_name == "ABC Pharmacy"

    def test_update_profile_ignores_restricted_fields(
        self, service: VendorRegistrationService, notifier: RecordingNotifier
    ) -> None:
        session = verified_vendor(service, notifier)
        vendor = service.update_profile(
            session.vendor.id,
            {
                "first_name": "Janet",
                "description": "Pharmacy supplies",
                "password_hash": hash_password("Hacked123", 4),
                "is_approved": True,
            },
        )
        assert vendor.first_name == "Janet"
        assert vendor.description == "Pharmacy supplies"
        assert vendor.is_approved is False
        assert service.login("jane@x.com", "Secret123").vendor.id == vendor.id

    def test_update_profile_never_clears_names(
        self,
        service: VendorRegistrationService,
        notifier: RecordingNotifier,
        vendor_repository: InMemoryVendorRepository,
    ) -> None:
        session = verified_vendor(service, notifier)
        vendor = service.update_profile(
            session.vendor.id, {"first_name": None, "last_name": None, "avatar": None}
        )
        assert vendor.full_name == "Jane Doe"
        assert vendor_repository.find_by_id(vendor.id).first_name == "Jane"
