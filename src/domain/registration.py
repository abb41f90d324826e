"""
Vendor registration domain service - two-step onboarding state machine.

This module contains the core business logic for vendor signup, session
issuance and profile completion.

Onboarding State Machine (Forward-Only Transitions)
===================================================

States:
- NO_RECORD: Nothing known about the email
- EMAIL_VERIFICATION: Signup submitted, OTP outstanding (pending store only,
  no durable record)
- PROFILE_SETUP: OTP verified, vendor account persisted
- COMPLETED: Business profile created (terminal)

Valid Transitions:
    NO_RECORD          -> EMAIL_VERIFICATION  (register)
    EMAIL_VERIFICATION -> EMAIL_VERIFICATION  (register again / resend OTP;
                                               the previous code is invalidated)
    EMAIL_VERIFICATION -> PROFILE_SETUP       (verify_email)
    PROFILE_SETUP      -> COMPLETED           (setup_profile)

A pending signup that expires simply disappears; the email returns to
NO_RECORD.

Write ordering: every multi-write operation persists the record that the
next step depends on first, so a failure between writes leaves a state the
same operation can be re-driven from.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .credentials import CredentialService
from .exceptions import (
    AlreadyComplete,
    AlreadyExists,
    Deactivated,
    DuplicateRegistrationNumber,
    InvalidCredentials,
    NoPendingRegistration,
    NotVerified,
    RateLimited,
    Unauthorized,
    VendorNotFound,
)
from .models import (
    OtpTicket,
    PrincipalKind,
    ProfileDraft,
    RegistrationDraft,
    RegistrationStatus,
    RegistrationStep,
    RegistrationTicket,
    Session,
    Vendor,
    VendorProfile,
    add_refresh_token,
    advance_registration_step,
    has_refresh_token,
    next_action,
    remove_refresh_token,
)
from .otp import generate_otp
from .passwords import hash_password, verify_password
from .pending import PendingRegistrationStore, normalize_email
from .ports import Clock, NotificationDispatcher, SystemClock, VendorProfileRepository, VendorRepository

logger = logging.getLogger(__name__)

OTP_PURPOSE_REGISTRATION = "registration"

# Vendor fields a vendor may change through update_profile
UPDATABLE_FIELDS = frozenset({"first_name", "last_name", "description", "avatar"})

# Updatable fields that can never be cleared
REQUIRED_FIELDS = frozenset({"first_name", "last_name"})


@dataclass
class VendorRegistrationService:
    """
    Domain service for vendor onboarding and sessions.

    Orchestrates the pending store, the durable repositories, token issuance
    and best-effort notifications.
    """

    vendors: VendorRepository
    profiles: VendorProfileRepository
    pending: PendingRegistrationStore
    credentials: CredentialService
    notifier: NotificationDispatcher
    clock: Clock = field(default_factory=SystemClock)
    otp_length: int = 6
    resend_cooldown_minutes: int = 2
    bcrypt_rounds: int = 10
    max_refresh_tokens: int = 5

    def register(self, first_name: str, last_name: str, email: str, password: str) -> RegistrationTicket:
        """
        Start a signup: hold the form data and send an OTP.

        Nothing is written to the durable store. Registering again for the
        same email replaces the draft and invalidates the earlier code.

        Raises:
            AlreadyExists: If a vendor account already uses this email
        """
        normalized_email = normalize_email(email)
        if self.vendors.find_by_email(normalized_email) is not None:
            raise AlreadyExists()

        if self.pending.get(normalized_email) is not None:
            logger.info("Restarting pending registration for %s", normalized_email)

        self.pending.store(
            normalized_email,
            RegistrationDraft(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=normalized_email,
                password=password,
            ),
        )
        code = self._issue_otp(normalized_email)

        return RegistrationTicket(
            email=normalized_email,
            next_step=RegistrationStep.EMAIL_VERIFICATION,
            otp_expires_in=self._otp_expires_in(),
            otp=code,
        )

    def resend_otp(self, email: str) -> OtpTicket:
        """
        Replace the OTP of a pending signup.

        Raises:
            NoPendingRegistration: If there is no live pending signup
            RateLimited: If the previous code was sent inside the cooldown
        """
        normalized_email = normalize_email(email)
        if self.pending.get(normalized_email) is None:
            raise NoPendingRegistration()

        remaining = self.pending.resend_cooldown_remaining(
            normalized_email, self.resend_cooldown_minutes
        )
        if remaining > 0:
            raise RateLimited(remaining)

        code = self._issue_otp(normalized_email)
        return OtpTicket(email=normalized_email, otp_expires_in=self._otp_expires_in(), otp=code)

    def verify_email(self, email: str, code: str) -> Session:
        """
        Prove control of the email and create the vendor account.

        Raises:
            RegistrationNotFound, TooManyAttempts, InvalidCode: From the
                pending store
            AlreadyExists: If another verification for this email won the race
        """
        normalized_email = normalize_email(email)
        draft = self.pending.verify_and_consume(normalized_email, code)

        if self.vendors.find_by_email(normalized_email) is not None:
            raise AlreadyExists()

        now = self.clock.now()
        vendor = Vendor(
            first_name=draft.first_name,
            last_name=draft.last_name,
            email=normalized_email,
            password_hash=hash_password(draft.password, self.bcrypt_rounds),
            is_email_verified=True,
            is_registration_complete=True,
            registration_completed_at=now,
        )
        advance_registration_step(vendor, RegistrationStep.PROFILE_SETUP)
        vendor = self.vendors.create(vendor)
        logger.info("Vendor account created: %s", vendor.id)

        session = self._start_session(vendor)
        self._notify(self.notifier.send_welcome, vendor.email, vendor.full_name, PrincipalKind.VENDOR.value)
        return session

    def setup_profile(self, vendor_id: str, draft: ProfileDraft) -> tuple[Vendor, VendorProfile]:
        """
        Attach the business profile and complete registration.

        If a previous attempt created the profile but failed before the
        vendor flags were saved, the existing profile is reused and only the
        flag update runs again.

        Raises:
            VendorNotFound, NotVerified, AlreadyComplete,
            DuplicateRegistrationNumber
        """
        vendor = self._get_vendor(vendor_id)
        if not vendor.is_email_verified:
            raise NotVerified()
        if vendor.is_profile_complete:
            raise AlreadyComplete()

        profile = self.profiles.find_by_vendor_id(vendor.id)
        if profile is None:
            existing = self.profiles.find_by_registration_number(draft.business_registration_number)
            if existing is not None:
                raise DuplicateRegistrationNumber()
            profile = self.profiles.create(
                VendorProfile.from_draft(vendor.id, draft, created_at=self.clock.now())
            )
        else:
            logger.warning("Profile already stored for vendor %s, completing flag update", vendor.id)

        vendor.is_profile_complete = True
        vendor.profile_completed_at = self.clock.now()
        advance_registration_step(vendor, RegistrationStep.COMPLETED)
        vendor = self.vendors.update(vendor)
        logger.info("Vendor %s completed registration", vendor.id)
        return vendor, profile

    def login(self, email: str, password: str) -> Session:
        """
        Authenticate with email and password.

        Unknown email and wrong password raise the same InvalidCredentials.

        Raises:
            InvalidCredentials, Deactivated
        """
        vendor = self.vendors.find_by_email(normalize_email(email))
        password_hash = vendor.password_hash if vendor is not None else None

        # Always run bcrypt so unknown emails are not faster to reject
        if not verify_password(password, password_hash) or vendor is None:
            raise InvalidCredentials()

        if not vendor.is_active:
            raise Deactivated()

        vendor.last_login = self.clock.now()
        return self._start_session(vendor)

    def logout(self, vendor_id: str, refresh_token: str) -> None:
        """Forget one refresh token. Unknown tokens are ignored."""
        vendor = self._get_vendor(vendor_id)
        remove_refresh_token(vendor, refresh_token)
        self.vendors.update(vendor)

    def refresh_session(self, refresh_token: str) -> Session:
        """
        Exchange a refresh token for a new token pair.

        The presented token must still be in the vendor's active list; it is
        replaced by the newly issued one.

        Raises:
            Unauthorized: Invalid token, unknown vendor or revoked token
        """
        vendor_id = self.credentials.verify_refresh_token(refresh_token)
        vendor = self.vendors.find_by_id(vendor_id)
        if vendor is None or not has_refresh_token(vendor, refresh_token):
            logger.info("Refresh rejected: token not active for vendor %s", vendor_id)
            raise Unauthorized()
        if not vendor.is_active:
            raise Deactivated()

        remove_refresh_token(vendor, refresh_token)
        return self._start_session(vendor)

    def registration_status(self, vendor_id: str) -> RegistrationStatus:
        vendor = self._get_vendor(vendor_id)
        return RegistrationStatus(
            vendor_id=vendor.id,
            email=vendor.email,
            full_name=vendor.full_name,
            is_email_verified=vendor.is_email_verified,
            is_profile_complete=vendor.is_profile_complete,
            registration_step=vendor.registration_step,
            can_add_products=vendor.is_email_verified and vendor.is_profile_complete,
            next_action=next_action(vendor),
        )

    def get_profile(self, vendor_id: str) -> tuple[Vendor, VendorProfile | None]:
        vendor = self._get_vendor(vendor_id)
        profile = self.profiles.find_by_vendor_id(vendor.id) if vendor.is_profile_complete else None
        return vendor, profile

    def update_profile(self, vendor_id: str, changes: Mapping[str, Any]) -> Vendor:
        """
        Update the vendor's own descriptive fields.

        Keys outside UPDATABLE_FIELDS (password, tokens, verification and
        approval flags, ...) are dropped.
        """
        vendor = self._get_vendor(vendor_id)
        dropped = set(changes) - UPDATABLE_FIELDS
        if dropped:
            logger.info("Ignoring restricted fields for vendor %s: %s", vendor.id, sorted(dropped))

        for name in UPDATABLE_FIELDS & set(changes):
            if changes[name] is None and name in REQUIRED_FIELDS:
                continue
            setattr(vendor, name, changes[name])
        vendor.updated_at = self.clock.now()
        return self.vendors.update(vendor)

    def _get_vendor(self, vendor_id: str) -> Vendor:
        vendor = self.vendors.find_by_id(vendor_id)
        if vendor is None:
            raise VendorNotFound()
        return vendor

    def _start_session(self, vendor: Vendor) -> Session:
        tokens = self.credentials.issue_pair(vendor.id, PrincipalKind.VENDOR)
        add_refresh_token(vendor, tokens.refresh_token, self.clock.now(), self.max_refresh_tokens)
        vendor = self.vendors.update(vendor)
        return Session(vendor=vendor, tokens=tokens)

    def _issue_otp(self, email: str) -> str:
        code = generate_otp(self.otp_length)
        self.pending.store_otp(email, code)
        self._notify(self.notifier.send_otp, email, code, OTP_PURPOSE_REGISTRATION)
        return code

    def _otp_expires_in(self) -> int:
        return int(self.pending.otp_ttl.total_seconds())

    def _notify(self, send: Callable[..., None], *args: Any) -> None:
        """Run a notifier call; failures are logged, never raised."""
        try:
            send(*args)
        except Exception:
            logger.warning("Notification %s failed", getattr(send, "__name__", send), exc_info=True)
