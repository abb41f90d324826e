"""
Domain exceptions - Semantic error types for vendor onboarding.

Every exception carries a stable machine-checkable ``kind`` and a
human-readable message. Messages never include storage details; the API
layer maps kinds to HTTP status codes.
"""


class RegistrationError(Exception):
    """Base class for vendor onboarding domain errors."""

    kind = "registration_error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AlreadyExists(RegistrationError):
    """A durable vendor account already uses this email."""

    kind = "already_exists"
    default_message = "Vendor already exists with this email"


class RegistrationNotFound(RegistrationError):
    """No live pending registration or OTP for this email."""

    kind = "not_found"
    default_message = "OTP expired or registration not found"


class InvalidCode(RegistrationError):
    """Supplied OTP does not match."""

    kind = "invalid_code"
    default_message = "Invalid OTP"


class TooManyAttempts(RegistrationError):
    """OTP attempt budget exhausted for the pending registration."""

    kind = "too_many_attempts"
    default_message = "Too many OTP attempts"


class NoPendingRegistration(RegistrationError):
    """Resend requested without a pending registration."""

    kind = "no_pending_registration"
    default_message = "No pending registration found for this email. Please register first."


class RateLimited(RegistrationError):
    """OTP resend requested inside the cooldown window."""

    kind = "rate_limited"
    default_message = "OTP already sent recently. Please wait before requesting again."

    def __init__(self, remaining_seconds: int, message: str | None = None) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(message)


class NotVerified(RegistrationError):
    kind = "not_verified"
    default_message = "Please verify your email first"


class AlreadyComplete(RegistrationError):
    kind = "already_complete"
    default_message = "Profile is already complete"


class DuplicateRegistrationNumber(RegistrationError):
    kind = "duplicate_registration_number"
    default_message = "Business registration number already exists"


class InvalidCredentials(RegistrationError):
    """Unknown email or wrong password. One message for both."""

    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class Deactivated(RegistrationError):
    kind = "deactivated"
    default_message = "Your account has been deactivated"


class Unauthorized(RegistrationError):
    """Token rejected. The specific reason is only logged."""

    kind = "unauthorized"
    default_message = "Not authorized to access this route"


class VendorNotFound(RegistrationError):
    kind = "vendor_not_found"
    default_message = "Vendor not found"


class ValidationFailed(RegistrationError):
    """Malformed input, rejected before any state mutation."""

    kind = "validation_failed"
    default_message = "Validation failed"

    def __init__(self, errors: list | None = None, message: str | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)
