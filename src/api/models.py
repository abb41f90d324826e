"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON field names are camelCase; requests also accept the snake_case names.
"""

import re
from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.models import (
    Address,
    BankDetails,
    BusinessType,
    NextAction,
    ProfileDraft,
    RegistrationStatus,
    RegistrationStep,
    Session,
    Vendor,
    VendorProfile,
)

T = TypeVar("T")

_PASSWORD_CLASSES = (re.compile(r"[a-z]"), re.compile(r"[A-Z]"), re.compile(r"\d"))
_PHONE_PATTERN = r"^\+?[\d\s\-()]+$"
_GST_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# Requests


class RegisterRequest(CamelModel):
    """Request model for vendor registration (step 1)."""

    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str) -> str:
        if not all(pattern.search(value) for pattern in _PASSWORD_CLASSES):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return value


class VerifyEmailRequest(CamelModel):
    email: EmailStr
    # Length follows Settings.otp_length; the domain compares the value
    otp: str = Field(..., pattern=r"^\d+$", max_length=12, description="Numeric one-time code")


class ResendOtpRequest(CamelModel):
    email: EmailStr


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class AddressModel(CamelModel):
    street: str = Field(..., min_length=1)
    area: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^[1-9][0-9]{5}$")
    country: str = "India"
    landmark: str | None = None


class BankDetailsModel(CamelModel):
    bank_name: str = Field(..., min_length=1)
    account_holder_name: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    ifsc_code: str = Field(..., pattern=r"^[A-Z]{4}0[A-Z0-9]{6}$")
    branch_name: str = Field(..., min_length=1)


class ProfileSetupRequest(CamelModel):
    """Request model for business profile setup (step 2)."""

    phone: str = Field(..., pattern=_PHONE_PATTERN)
    alternate_phone: str | None = Field(None, pattern=_PHONE_PATTERN)
    business_name: str = Field(..., min_length=2, max_length=100)
    business_type: BusinessType
    business_registration_number: str = Field(..., min_length=1)
    gst_number: str | None = Field(None, pattern=_GST_PATTERN)
    license_number: str | None = None
    address: AddressModel
    bank_details: BankDetailsModel
    description: str | None = Field(None, max_length=500)
    established_year: int | None = Field(None, ge=1900)

    def to_draft(self) -> ProfileDraft:
        return ProfileDraft(
            phone=self.phone,
            alternate_phone=self.alternate_phone,
            business_name=self.business_name,
            business_type=self.business_type,
            business_registration_number=self.business_registration_number,
            gst_number=self.gst_number,
            license_number=self.license_number,
            address=Address(**self.address.model_dump()),
            bank_details=BankDetails(**self.bank_details.model_dump()),
            description=self.description,
            established_year=self.established_year,
        )


class ProfileUpdateRequest(CamelModel):
    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    description: str | None = Field(None, max_length=500)
    avatar: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def name_not_null(cls, value: str | None) -> str:
        # Omit a name to leave it unchanged; null would blank a required field
        if value is None:
            raise ValueError("Name cannot be null")
        return value


# Responses


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    status_code: int = 200
    message: str
    data: T | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorResponse(CamelModel):
    """Failure envelope. Carries no timestamp so equal errors are byte-identical."""

    success: bool = False
    status_code: int
    kind: str
    message: str
    errors: list[dict] | None = None
    retry_after: int | None = None


class RegisterData(CamelModel):
    email: str
    next_step: RegistrationStep
    otp_expires_in: int = Field(..., description="OTP lifetime in seconds")
    otp: str | None = Field(None, description="Only present in non-production builds")


class ResendOtpData(CamelModel):
    email: str
    otp_expires_in: int
    otp: str | None = None


class VendorSummary(CamelModel):
    """Public view of a vendor account (no password hash, no tokens)."""

    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    is_email_verified: bool
    is_registration_complete: bool
    registration_step: RegistrationStep
    is_profile_complete: bool
    is_active: bool
    is_approved: bool
    description: str | None = None
    avatar: str | None = None
    created_at: datetime | None = None
    last_login: datetime | None = None

    @classmethod
    def from_vendor(cls, vendor: Vendor) -> "VendorSummary":
        return cls(
            id=vendor.id,
            first_name=vendor.first_name,
            last_name=vendor.last_name,
            full_name=vendor.full_name,
            email=vendor.email,
            is_email_verified=vendor.is_email_verified,
            is_registration_complete=vendor.is_registration_complete,
            registration_step=vendor.registration_step,
            is_profile_complete=vendor.is_profile_complete,
            is_active=vendor.is_active,
            is_approved=vendor.is_approved,
            description=vendor.description,
            avatar=vendor.avatar,
            created_at=vendor.created_at,
            last_login=vendor.last_login,
        )


class SessionData(CamelModel):
    vendor: VendorSummary
    access_token: str
    refresh_token: str
    token_expiry: int = Field(..., description="Access token lifetime in seconds")

    @classmethod
    def from_session(cls, session: Session) -> "SessionData":
        return cls(
            vendor=VendorSummary.from_vendor(session.vendor),
            access_token=session.tokens.access_token,
            refresh_token=session.tokens.refresh_token,
            token_expiry=session.tokens.expires_in,
        )


class ProfileView(CamelModel):
    id: str
    vendor_id: str
    phone: str
    alternate_phone: str | None = None
    business_name: str
    business_type: BusinessType
    business_registration_number: str
    gst_number: str | None = None
    license_number: str | None = None
    address: AddressModel
    bank_details: BankDetailsModel
    description: str | None = None
    established_year: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_profile(cls, profile: VendorProfile) -> "ProfileView":
        return cls(
            id=profile.id,
            vendor_id=profile.vendor_id,
            phone=profile.phone,
            alternate_phone=profile.alternate_phone,
            business_name=profile.business_name,
            business_type=profile.business_type,
            business_registration_number=profile.business_registration_number,
            gst_number=profile.gst_number,
            license_number=profile.license_number,
            address=AddressModel(**vars(profile.address)),
            bank_details=BankDetailsModel(**vars(profile.bank_details)),
            description=profile.description,
            established_year=profile.established_year,
            created_at=profile.created_at,
        )


class ProfileSetupData(CamelModel):
    vendor: VendorSummary
    profile: ProfileView


class VendorProfileData(CamelModel):
    vendor: VendorSummary
    profile: ProfileView | None = None
    is_profile_complete: bool
    registration_step: RegistrationStep


class RegistrationStatusData(CamelModel):
    vendor_id: str
    email: str
    full_name: str
    is_email_verified: bool
    is_profile_complete: bool
    registration_step: RegistrationStep
    can_add_products: bool
    next_action: NextAction

    @classmethod
    def from_status(cls, status: RegistrationStatus) -> "RegistrationStatusData":
        return cls(**vars(status))
