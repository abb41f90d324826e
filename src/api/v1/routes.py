"""
API v1 routes.

Defines REST endpoints for vendor onboarding and sessions.

Domain exceptions propagate out of the handlers and are rendered by the
handlers in src.api.errors, so every failure uses the same envelope.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_app_settings, get_registration_service, require_vendor
from src.api.models import (
    ApiResponse,
    ErrorResponse,
    LoginRequest,
    LogoutRequest,
    ProfileSetupData,
    ProfileSetupRequest,
    ProfileUpdateRequest,
    ProfileView,
    RefreshTokenRequest,
    RegisterData,
    RegisterRequest,
    RegistrationStatusData,
    ResendOtpData,
    ResendOtpRequest,
    SessionData,
    VendorProfileData,
    VendorSummary,
    VerifyEmailRequest,
)
from src.config.settings import Settings
from src.domain.models import Principal
from src.domain.registration import VendorRegistrationService

router = APIRouter(prefix="/vendors", tags=["vendors"])

_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"}}


@router.post(
    "/register",
    response_model=ApiResponse[RegisterData],
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Vendor already exists"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
    summary="Register a new vendor",
    description="Submit basic identity and a password. A 6-digit code is sent to the email; "
    "no account exists until the code is verified.",
)
async def register(
    request_data: RegisterRequest,
    service: VendorRegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[RegisterData]:
    ticket = service.register(
        request_data.first_name, request_data.last_name, request_data.email, request_data.password
    )
    return ApiResponse[RegisterData](
        status_code=status.HTTP_201_CREATED,
        message="Registration initiated. Verify the OTP sent to your email to continue.",
        data=RegisterData(
            email=ticket.email,
            next_step=ticket.next_step,
            otp_expires_in=ticket.otp_expires_in,
            otp=ticket.otp if settings.expose_otp_in_response else None,
        ),
    )


@router.post(
    "/verify-email",
    response_model=ApiResponse[SessionData],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid OTP"},
        403: {"model": ErrorResponse, "description": "Too many OTP attempts"},
        404: {"model": ErrorResponse, "description": "OTP expired or registration not found"},
        409: {"model": ErrorResponse, "description": "Vendor already exists"},
    },
    summary="Verify email OTP",
    description="Verify the emailed code. On success the vendor account is created and a token pair issued.",
)
async def verify_email(
    request_data: VerifyEmailRequest,
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[SessionData]:
    session = service.verify_email(request_data.email, request_data.otp)
    return ApiResponse[SessionData](
        status_code=status.HTTP_201_CREATED,
        message="Email verified and vendor account created",
        data=SessionData.from_session(session),
    )


@router.post(
    "/resend-otp",
    response_model=ApiResponse[ResendOtpData],
    responses={
        404: {"model": ErrorResponse, "description": "No pending registration"},
        429: {"model": ErrorResponse, "description": "Resend cooldown active"},
    },
    summary="Resend registration OTP",
)
async def resend_otp(
    request_data: ResendOtpRequest,
    service: VendorRegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ResendOtpData]:
    ticket = service.resend_otp(request_data.email)
    return ApiResponse[ResendOtpData](
        message="OTP resent successfully",
        data=ResendOtpData(
            email=ticket.email,
            otp_expires_in=ticket.otp_expires_in,
            otp=ticket.otp if settings.expose_otp_in_response else None,
        ),
    )


@router.post(
    "/login",
    response_model=ApiResponse[SessionData],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account deactivated"},
    },
    summary="Log in with email and password",
)
async def login(
    request_data: LoginRequest,
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[SessionData]:
    session = service.login(request_data.email, request_data.password)
    return ApiResponse[SessionData](message="Login successful", data=SessionData.from_session(session))


@router.post(
    "/refresh-token",
    response_model=ApiResponse[SessionData],
    responses=_UNAUTHORIZED,
    summary="Exchange a refresh token for a new token pair",
)
async def refresh_token(
    request_data: RefreshTokenRequest,
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[SessionData]:
    session = service.refresh_session(request_data.refresh_token)
    return ApiResponse[SessionData](message="Token refreshed", data=SessionData.from_session(session))


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    responses=_UNAUTHORIZED,
    summary="Revoke a refresh token",
)
async def logout(
    request_data: LogoutRequest,
    principal: Principal = Depends(require_vendor),
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[None]:
    service.logout(principal.id, request_data.refresh_token)
    return ApiResponse[None](message="Logged out successfully")


@router.get(
    "/status",
    response_model=ApiResponse[RegistrationStatusData],
    responses=_UNAUTHORIZED,
    summary="Get registration status and next action",
)
async def registration_status(
    principal: Principal = Depends(require_vendor),
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[RegistrationStatusData]:
    registration = service.registration_status(principal.id)
    return ApiResponse[RegistrationStatusData](
        message="Registration status fetched successfully",
        data=RegistrationStatusData.from_status(registration),
    )


@router.post(
    "/setup-profile",
    response_model=ApiResponse[ProfileSetupData],
    responses={
        **_UNAUTHORIZED,
        403: {"model": ErrorResponse, "description": "Email not verified"},
        409: {"model": ErrorResponse, "description": "Profile complete or registration number taken"},
    },
    summary="Complete the business profile",
)
async def setup_profile(
    request_data: ProfileSetupRequest,
    principal: Principal = Depends(require_vendor),
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[ProfileSetupData]:
    vendor, profile = service.setup_profile(principal.id, request_data.to_draft())
    return ApiResponse[ProfileSetupData](
        message="Profile setup completed successfully",
        data=ProfileSetupData(
            vendor=VendorSummary.from_vendor(vendor), profile=ProfileView.from_profile(profile)
        ),
    )


@router.get(
    "/profile",
    response_model=ApiResponse[VendorProfileData],
    responses=_UNAUTHORIZED,
    summary="Get the vendor account and business profile",
)
async def get_profile(
    principal: Principal = Depends(require_vendor),
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[VendorProfileData]:
    vendor, profile = service.get_profile(principal.id)
    return ApiResponse[VendorProfileData](
        message="Profile fetched successfully",
        data=VendorProfileData(
            vendor=VendorSummary.from_vendor(vendor),
            profile=ProfileView.from_profile(profile) if profile is not None else None,
            is_profile_complete=vendor.is_profile_complete,
            registration_step=vendor.registration_step,
        ),
    )


@router.put(
    "/profile",
    response_model=ApiResponse[VendorSummary],
    responses=_UNAUTHORIZED,
    summary="Update vendor account details",
)
async def update_profile(
    request_data: ProfileUpdateRequest,
    principal: Principal = Depends(require_vendor),
    service: VendorRegistrationService = Depends(get_registration_service),
) -> ApiResponse[VendorSummary]:
    vendor = service.update_profile(principal.id, request_data.model_dump(exclude_unset=True))
    return ApiResponse[VendorSummary](
        message="Profile updated successfully", data=VendorSummary.from_vendor(vendor)
    )
