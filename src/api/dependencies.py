"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Long-lived components (repositories, pending store, credential service,
notifier) are created once in the application lifespan and kept on
app.state; the registration service is assembled per request from them.
"""

from collections.abc import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config.settings import Settings
from src.domain.credentials import CredentialService
from src.domain.exceptions import Unauthorized
from src.domain.models import Principal, PrincipalKind
from src.domain.registration import VendorRegistrationService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_registration_service(request: Request) -> VendorRegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repositories, pending store, credential service and
    notifier for the domain service.
    """
    state = request.app.state
    settings: Settings = state.settings
    return VendorRegistrationService(
        vendors=state.vendor_repository,
        profiles=state.profile_repository,
        pending=state.pending_store,
        credentials=state.credentials,
        notifier=state.notifier,
        otp_length=settings.otp_length,
        resend_cooldown_minutes=settings.resend_cooldown_minutes,
        bcrypt_rounds=settings.bcrypt_cost,
        max_refresh_tokens=settings.max_refresh_tokens,
    )


# Bearer scheme for OpenAPI documentation; missing headers are handled below
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    credential_service: CredentialService = Depends(get_credential_service),
) -> Principal:
    """
    Decode the Bearer access token into the calling principal.

    Missing header, wrong scheme and every token failure raise the same
    Unauthorized.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized()
    return credential_service.verify_access_token(credentials.credentials)


def require_principal(*kinds: PrincipalKind) -> Callable[..., Principal]:
    """
    Dependency factory restricting a route to the given principal kinds.

    A principal of another kind gets the same Unauthorized as a bad token.

    Usage: Depends(require_principal(PrincipalKind.VENDOR))
    """

    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.is_a(*kinds):
            raise Unauthorized()
        return principal

    return checker


require_vendor = require_principal(PrincipalKind.VENDOR)
