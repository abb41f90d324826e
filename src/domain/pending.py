"""
Pending registration store - transient signup data awaiting OTP proof.

Holds registration drafts and OTP records keyed by normalized email until
the email is verified or the entry expires. Nothing here is durable: a
process restart forgets every pending signup.

Expiry
======

- Registration drafts live 15 minutes, OTP records 10 minutes.
- Reads delete expired entries lazily.
- sweep_expired() purges everything that has expired, regardless of
  reads. The application runs it on a fixed interval.

Concurrency
===========

All mutations of a key happen under that key's lock. Locks are striped
(a fixed array indexed by a hash of the email) so the lock table does not
grow with traffic. verify_and_consume() holds the lock across check,
compare and delete, so a code can be consumed at most once.
"""

import logging
import math
import threading
import zlib
from datetime import timedelta

from .exceptions import InvalidCode, RegistrationNotFound, TooManyAttempts
from .models import PendingOTP, PendingRegistration, RegistrationDraft
from .otp import hash_otp, verify_otp
from .ports import Clock, SystemClock

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


def normalize_email(email: str) -> str:
    """Strip surrounding whitespace and lowercase."""
    return email.strip().lower()


class PendingRegistrationStore:
    """In-process, time-bounded holding area for unverified signups."""

    def __init__(
        self,
        clock: Clock | None = None,
        registration_ttl: timedelta = timedelta(minutes=15),
        otp_ttl: timedelta = timedelta(minutes=10),
        max_attempts: int = 5,
    ) -> None:
        self._clock = clock or SystemClock()
        self.registration_ttl = registration_ttl
        self.otp_ttl = otp_ttl
        self.max_attempts = max_attempts
        self._registrations: dict[str, PendingRegistration] = {}
        self._otps: dict[str, PendingOTP] = {}
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[zlib.crc32(key.encode()) % _LOCK_STRIPES]

    def store(self, email: str, draft: RegistrationDraft) -> PendingRegistration:
        """Upsert a registration draft. A previous entry is replaced."""
        key = normalize_email(email)
        now = self._clock.now()
        pending = PendingRegistration(
            draft=draft, created_at=now, expires_at=now + self.registration_ttl
        )
        with self._lock_for(key):
            replaced = key in self._registrations
            self._registrations[key] = pending
        if replaced:
            logger.info("Replaced pending registration for %s", key)
        else:
            logger.info("Stored pending registration for %s", key)
        return pending

    def store_otp(self, email: str, code: str) -> PendingOTP:
        """Upsert the OTP record, resetting attempts and expiry."""
        key = normalize_email(email)
        now = self._clock.now()
        otp = PendingOTP(
            code_hash=hash_otp(code), created_at=now, expires_at=now + self.otp_ttl
        )
        with self._lock_for(key):
            self._otps[key] = otp
        logger.debug("Stored OTP for %s", key)
        return otp

    def get(self, email: str) -> PendingRegistration | None:
        """Return the live registration draft, or None if absent or expired."""
        key = normalize_email(email)
        with self._lock_for(key):
            return self._live_registration(key)

    def get_otp(self, email: str) -> PendingOTP | None:
        """Return the live OTP record, or None if absent or expired."""
        key = normalize_email(email)
        with self._lock_for(key):
            return self._live_otp(key)

    def can_resend(self, email: str, cooldown_minutes: int = 2) -> bool:
        return self.resend_cooldown_remaining(email, cooldown_minutes) == 0

    def resend_cooldown_remaining(self, email: str, cooldown_minutes: int = 2) -> int:
        """Seconds until another OTP may be sent (0 if allowed now)."""
        key = normalize_email(email)
        with self._lock_for(key):
            otp = self._otps.get(key)
        if otp is None:
            return 0
        elapsed = self._clock.now() - otp.created_at
        remaining = timedelta(minutes=cooldown_minutes) - elapsed
        return max(0, math.ceil(remaining.total_seconds()))

    def verify_and_consume(self, email: str, code: str) -> RegistrationDraft:
        """
        Check a code and, on success, hand over the registration draft.

        Order of checks (all under the key lock):
        1. OTP or registration missing/expired -> RegistrationNotFound
        2. attempts already at the limit -> TooManyAttempts (record kept)
        3. code mismatch -> attempts += 1, InvalidCode (record kept)
        4. match -> both records deleted, draft returned

        Raises:
            RegistrationNotFound, TooManyAttempts, InvalidCode
        """
        key = normalize_email(email)
        with self._lock_for(key):
            otp = self._live_otp(key)
            pending = self._live_registration(key)
            if otp is None or pending is None:
                raise RegistrationNotFound()

            if otp.attempts >= self.max_attempts:
                raise TooManyAttempts()

            if not verify_otp(code, otp.code_hash):
                otp.attempts += 1
                logger.info(
                    "OTP mismatch for %s (attempt %s of %s)", key, otp.attempts, self.max_attempts
                )
                raise InvalidCode()

            del self._otps[key]
            del self._registrations[key]

        logger.info("OTP verified for %s", key)
        return pending.draft

    def sweep_expired(self) -> int:
        """
        Purge every expired registration and OTP record.

        Takes a snapshot of the keys first, then re-checks and deletes each
        entry under its own lock, so no lock is held for the whole scan.

        Returns:
            Number of records removed
        """
        registration_keys = list(self._registrations.keys())
        otp_keys = list(self._otps.keys())
        removed = 0

        for key in registration_keys:
            with self._lock_for(key):
                pending = self._registrations.get(key)
                if pending is not None and self._expired(pending.expires_at):
                    del self._registrations[key]
                    removed += 1

        for key in otp_keys:
            with self._lock_for(key):
                otp = self._otps.get(key)
                if otp is not None and self._expired(otp.expires_at):
                    del self._otps[key]
                    removed += 1

        if removed:
            logger.info("Swept %s expired pending record(s)", removed)
        return removed

    def stats(self) -> dict[str, int]:
        return {
            "pending_registrations": len(self._registrations),
            "pending_otps": len(self._otps),
        }

    def _expired(self, expires_at) -> bool:
        return self._clock.now() >= expires_at

    # Callers below must hold the key lock.

    def _live_registration(self, key: str) -> PendingRegistration | None:
        pending = self._registrations.get(key)
        if pending is None:
            return None
        if self._expired(pending.expires_at):
            del self._registrations[key]
            self._otps.pop(key, None)
            return None
        return pending

    def _live_otp(self, key: str) -> PendingOTP | None:
        otp = self._otps.get(key)
        if otp is None:
            return None
        if self._expired(otp.expires_at):
            del self._otps[key]
            return None
        return otp
