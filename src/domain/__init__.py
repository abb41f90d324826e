"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for vendor onboarding: the
pending registration store, OTP and password helpers, token issuance and
the registration state machine. It defines its own port interfaces for
infrastructure abstraction.
"""

from .credentials import CredentialService
from .exceptions import (
    AlreadyComplete,
    AlreadyExists,
    Deactivated,
    DuplicateRegistrationNumber,
    InvalidCode,
    InvalidCredentials,
    NoPendingRegistration,
    NotVerified,
    RateLimited,
    RegistrationError,
    RegistrationNotFound,
    TooManyAttempts,
    Unauthorized,
    ValidationFailed,
    VendorNotFound,
)
from .models import NextAction, Principal, PrincipalKind, RegistrationStep
from .pending import PendingRegistrationStore
from .ports import Clock, NotificationDispatcher, SystemClock, VendorProfileRepository, VendorRepository
from .registration import VendorRegistrationService

__all__ = [
    "AlreadyComplete",
    "AlreadyExists",
    "Clock",
    "CredentialService",
    "Deactivated",
    "DuplicateRegistrationNumber",
    "InvalidCode",
    "InvalidCredentials",
    "NextAction",
    "NoPendingRegistration",
    "NotVerified",
    "NotificationDispatcher",
    "PendingRegistrationStore",
    "Principal",
    "PrincipalKind",
    "RateLimited",
    "RegistrationError",
    "RegistrationNotFound",
    "RegistrationStep",
    "SystemClock",
    "TooManyAttempts",
    "Unauthorized",
    "ValidationFailed",
    "VendorNotFound",
    "VendorProfileRepository",
    "VendorRegistrationService",
    "VendorRepository",
]
