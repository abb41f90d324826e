"""
Domain records for vendor onboarding.

Plain dataclasses with no persistence behavior attached. Derived values
and lifecycle changes (step advancement, refresh-token bookkeeping, next
action) are explicit functions called by the registration service at the
transition points where they apply.

Registration Step (Forward-Only)
================================

    EMAIL_VERIFICATION -> PROFILE_SETUP -> COMPLETED

A vendor record is only written once the email OTP is verified, so durable
records start at PROFILE_SETUP. EMAIL_VERIFICATION is the step reported for
a signup that is still pending.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RegistrationStep(str, Enum):
    """Ordered vendor lifecycle marker."""

    EMAIL_VERIFICATION = "email_verification"
    PROFILE_SETUP = "profile_setup"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STEP_ORDER.index(self)


_STEP_ORDER = [
    RegistrationStep.EMAIL_VERIFICATION,
    RegistrationStep.PROFILE_SETUP,
    RegistrationStep.COMPLETED,
]


class NextAction(str, Enum):
    VERIFY_EMAIL = "verify_email"
    COMPLETE_PROFILE = "complete_profile"
    START_SELLING = "start_selling"


class BusinessType(str, Enum):
    PHARMACY = "pharmacy"
    CLINIC = "clinic"
    HOSPITAL = "hospital"
    LABORATORY = "laboratory"
    MEDICAL_EQUIPMENT = "medical_equipment"
    OTHER = "other"


class PrincipalKind(str, Enum):
    """Tag of an authenticated caller."""

    USER = "user"
    VENDOR = "vendor"
    ADMIN = "admin"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RegistrationDraft:
    """Signup form data held while the email is unverified."""

    first_name: str
    last_name: str
    email: str
    password: str


@dataclass
class PendingRegistration:
    draft: RegistrationDraft
    created_at: datetime
    expires_at: datetime


@dataclass
class PendingOTP:
    code_hash: str
    created_at: datetime
    expires_at: datetime
    attempts: int = 0


@dataclass
class RefreshTokenEntry:
    token: str
    created_at: datetime


@dataclass
class Vendor:
    first_name: str
    last_name: str
    email: str
    password_hash: str
    id: str = field(default_factory=new_id)
    is_email_verified: bool = False
    is_registration_complete: bool = False
    registration_completed_at: datetime | None = None
    registration_step: RegistrationStep = RegistrationStep.EMAIL_VERIFICATION
    is_profile_complete: bool = False
    profile_completed_at: datetime | None = None
    is_active: bool = True
    is_approved: bool = False
    refresh_tokens: list[RefreshTokenEntry] = field(default_factory=list)
    last_login: datetime | None = None
    description: str | None = None
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Address:
    street: str
    area: str
    city: str
    state: str
    pincode: str
    country: str = "India"
    landmark: str | None = None


@dataclass
class BankDetails:
    bank_name: str
    account_holder_name: str
    account_number: str
    ifsc_code: str
    branch_name: str


@dataclass
class ProfileDraft:
    """Business profile fields submitted at the profile setup step."""

    phone: str
    business_name: str
    business_type: BusinessType
    business_registration_number: str
    address: Address
    bank_details: BankDetails
    alternate_phone: str | None = None
    gst_number: str | None = None
    license_number: str | None = None
    description: str | None = None
    established_year: int | None = None


@dataclass
class VendorProfile:
    vendor_id: str
    phone: str
    business_name: str
    business_type: BusinessType
    business_registration_number: str
    address: Address
    bank_details: BankDetails
    alternate_phone: str | None = None
    gst_number: str | None = None
    license_number: str | None = None
    description: str | None = None
    established_year: int | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime | None = None

    @classmethod
    def from_draft(cls, vendor_id: str, draft: ProfileDraft, created_at: datetime) -> "VendorProfile":
        return cls(
            vendor_id=vendor_id,
            phone=draft.phone,
            business_name=draft.business_name,
            business_type=draft.business_type,
            business_registration_number=draft.business_registration_number,
            address=draft.address,
            bank_details=draft.bank_details,
            alternate_phone=draft.alternate_phone,
            gst_number=draft.gst_number,
            license_number=draft.license_number,
            description=draft.description,
            established_year=draft.established_year,
            created_at=created_at,
        )


@dataclass(frozen=True)
class Principal:
    """Authenticated caller: a tag plus the verified token claims."""

    kind: PrincipalKind
    id: str
    claims: dict[str, Any] = field(default_factory=dict)

    def is_a(self, *kinds: PrincipalKind) -> bool:
        return self.kind in kinds


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds


@dataclass
class Session:
    vendor: Vendor
    tokens: TokenPair


@dataclass
class RegistrationTicket:
    email: str
    next_step: RegistrationStep
    otp_expires_in: int
    otp: str


@dataclass
class OtpTicket:
    email: str
    otp_expires_in: int
    otp: str


@dataclass
class RegistrationStatus:
    vendor_id: str
    email: str
    full_name: str
    is_email_verified: bool
    is_profile_complete: bool
    registration_step: RegistrationStep
    can_add_products: bool
    next_action: NextAction


def advance_registration_step(vendor: Vendor, step: RegistrationStep) -> None:
    """Move the vendor forward. Going backwards raises ValueError."""
    if step.rank < vendor.registration_step.rank:
        raise ValueError(
            f"registration step cannot move from {vendor.registration_step.value} to {step.value}"
        )
    vendor.registration_step = step


def next_action(vendor: Vendor) -> NextAction:
    if not vendor.is_email_verified:
        return NextAction.VERIFY_EMAIL
    if not vendor.is_profile_complete:
        return NextAction.COMPLETE_PROFILE
    return NextAction.START_SELLING


def add_refresh_token(vendor: Vendor, token: str, issued_at: datetime, limit: int = 5) -> None:
    """Append a session token, keeping only the ``limit`` most recent."""
    vendor.refresh_tokens.append(RefreshTokenEntry(token=token, created_at=issued_at))
    if len(vendor.refresh_tokens) > limit:
        vendor.refresh_tokens = vendor.refresh_tokens[-limit:]


def remove_refresh_token(vendor: Vendor, token: str) -> None:
    vendor.refresh_tokens = [entry for entry in vendor.refresh_tokens if entry.token != token]


def has_refresh_token(vendor: Vendor, token: str) -> bool:
    return any(entry.token == token for entry in vendor.refresh_tokens)
