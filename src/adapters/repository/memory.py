"""
In-memory repository adapters - Implement the vendor repository protocols.

Dict-backed stores guarded by a lock, enforcing the same uniqueness rules as
the PostgreSQL schema. Used for local development (storage_backend=memory)
and tests. Records are copied on the way in and out so callers never share
state with the store.
"""

import copy
import threading
from datetime import datetime, timezone

from src.domain.exceptions import AlreadyExists, DuplicateRegistrationNumber, VendorNotFound
from src.domain.models import Vendor, VendorProfile


class InMemoryVendorRepository:
    """Implements VendorRepository protocol with a process-local dict."""

    def __init__(self) -> None:
        self._vendors: dict[str, Vendor] = {}
        self._lock = threading.Lock()

    def create(self, vendor: Vendor) -> Vendor:
        with self._lock:
            if any(v.email == vendor.email for v in self._vendors.values()):
                raise AlreadyExists()
            stored = copy.deepcopy(vendor)
            now = datetime.now(timezone.utc)
            stored.created_at = stored.created_at or now
            stored.updated_at = now
            self._vendors[stored.id] = stored
            return copy.deepcopy(stored)

    def find_by_email(self, email: str) -> Vendor | None:
        with self._lock:
            for vendor in self._vendors.values():
                if vendor.email == email:
                    return copy.deepcopy(vendor)
        return None

    def find_by_id(self, vendor_id: str) -> Vendor | None:
        with self._lock:
            vendor = self._vendors.get(vendor_id)
            return copy.deepcopy(vendor) if vendor is not None else None

    def update(self, vendor: Vendor) -> Vendor:
        with self._lock:
            if vendor.id not in self._vendors:
                raise VendorNotFound()
            stored = copy.deepcopy(vendor)
            stored.updated_at = datetime.now(timezone.utc)
            self._vendors[stored.id] = stored
            return copy.deepcopy(stored)


class InMemoryVendorProfileRepository:
    """Implements VendorProfileRepository protocol with a process-local dict."""

    def __init__(self) -> None:
        self._profiles: dict[str, VendorProfile] = {}
        self._lock = threading.Lock()

    def create(self, profile: VendorProfile) -> VendorProfile:
        with self._lock:
            for existing in self._profiles.values():
                if (
                    existing.business_registration_number == profile.business_registration_number
                    or existing.vendor_id == profile.vendor_id
                ):
                    raise DuplicateRegistrationNumber()
            stored = copy.deepcopy(profile)
            stored.created_at = stored.created_at or datetime.now(timezone.utc)
            self._profiles[stored.id] = stored
            return copy.deepcopy(stored)

    def find_by_vendor_id(self, vendor_id: str) -> VendorProfile | None:
        return self._find(lambda p: p.vendor_id == vendor_id)

    def find_by_registration_number(self, number: str) -> VendorProfile | None:
        return self._find(lambda p: p.business_registration_number == number)

    def _find(self, predicate) -> VendorProfile | None:
        with self._lock:
            for profile in self._profiles.values():
                if predicate(profile):
                    return copy.deepcopy(profile)
        return None
