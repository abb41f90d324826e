"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime, timezone
from typing import Protocol

from .models import Vendor, VendorProfile


class Clock(Protocol):
    """Source of the current time (timezone-aware UTC)."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock. Tests substitute a controllable clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class VendorRepository(Protocol):
    """Port interface for durable vendor accounts."""

    def create(self, vendor: Vendor) -> Vendor:
        """
        Insert a new vendor.

        Email uniqueness is enforced by the store; a conflicting insert
        raises AlreadyExists.

        Returns:
            The stored vendor (with store-assigned timestamps)
        """
        ...

    def find_by_email(self, email: str) -> Vendor | None:
        """Look up a vendor by normalized email."""
        ...

    def find_by_id(self, vendor_id: str) -> Vendor | None:
        """Point lookup by vendor id."""
        ...

    def update(self, vendor: Vendor) -> Vendor:
        """
        Persist all mutable vendor fields (last write wins).

        Raises:
            VendorNotFound: If the vendor no longer exists
        """
        ...


class VendorProfileRepository(Protocol):
    """Port interface for vendor business profiles."""

    def create(self, profile: VendorProfile) -> VendorProfile:
        """
        Insert a profile.

        Raises:
            DuplicateRegistrationNumber: If the business registration number
                (or the vendor) already has a profile
        """
        ...

    def find_by_vendor_id(self, vendor_id: str) -> VendorProfile | None: ...

    def find_by_registration_number(self, number: str) -> VendorProfile | None: ...


class NotificationDispatcher(Protocol):
    """
    Port interface for outbound messages.

    Calls are fire-and-forget from the workflow's perspective: the domain
    catches and logs anything an adapter raises.
    """

    def send_otp(self, email: str, code: str, purpose: str) -> None:
        """
        Deliver a one-time code.

        Args:
            email: Recipient email address
            code: Numeric one-time code
            purpose: What the code is for (e.g. "registration")
        """
        ...

    def send_welcome(self, email: str, name: str, role: str) -> None:
        """Deliver the welcome message after account creation."""
        ...
