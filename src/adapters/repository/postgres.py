"""
PostgreSQL repository adapters - Implement the vendor repository protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Vendors and profiles are stored one row per record. Nested values that the
domain treats as a single document (refresh-token list, address, bank
details) live in JSONB columns and are written whole on every update.

Uniqueness (vendor email, profile registration number, one profile per
vendor) is enforced by UNIQUE constraints; a violation is translated into
the matching domain exception so callers never see driver errors.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.exceptions import AlreadyExists, DuplicateRegistrationNumber, VendorNotFound
from src.domain.models import (
    Address,
    BankDetails,
    BusinessType,
    RefreshTokenEntry,
    RegistrationStep,
    Vendor,
    VendorProfile,
)

logger = logging.getLogger(__name__)

_VENDOR_COLUMNS = """
    id, first_name, last_name, email, password_hash, is_email_verified,
    is_registration_complete, registration_completed_at, registration_step,
    is_profile_complete, profile_completed_at, is_active, is_approved,
    refresh_tokens, last_login, description, avatar, created_at, updated_at
"""

_PROFILE_COLUMNS = """
    id, vendor_id, phone, alternate_phone, business_name, business_type,
    business_registration_number, gst_number, license_number, address,
    bank_details, description, established_year, created_at
"""


def _tokens_to_json(entries: list[RefreshTokenEntry]) -> Jsonb:
    return Jsonb([{"token": e.token, "created_at": e.created_at.isoformat()} for e in entries])


def _tokens_from_json(raw: list[dict[str, Any]] | None) -> list[RefreshTokenEntry]:
    return [
        RefreshTokenEntry(token=item["token"], created_at=datetime.fromisoformat(item["created_at"]))
        for item in raw or []
    ]


def _row_to_vendor(row: dict[str, Any]) -> Vendor:
    return Vendor(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        password_hash=row["password_hash"],
        is_email_verified=row["is_email_verified"],
        is_registration_complete=row["is_registration_complete"],
        registration_completed_at=row["registration_completed_at"],
        registration_step=RegistrationStep(row["registration_step"]),
        is_profile_complete=row["is_profile_complete"],
        profile_completed_at=row["profile_completed_at"],
        is_active=row["is_active"],
        is_approved=row["is_approved"],
        refresh_tokens=_tokens_from_json(row["refresh_tokens"]),
        last_login=row["last_login"],
        description=row["description"],
        avatar=row["avatar"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_profile(row: dict[str, Any]) -> VendorProfile:
    return VendorProfile(
        id=row["id"],
        vendor_id=row["vendor_id"],
        phone=row["phone"],
        alternate_phone=row["alternate_phone"],
        business_name=row["business_name"],
        business_type=BusinessType(row["business_type"]),
        business_registration_number=row["business_registration_number"],
        gst_number=row["gst_number"],
        license_number=row["license_number"],
        address=Address(**row["address"]),
        bank_details=BankDetails(**row["bank_details"]),
        description=row["description"],
        established_year=row["established_year"],
        created_at=row["created_at"],
    )


class PostgresVendorRepository:
    """
    Implements VendorRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, vendor: Vendor) -> Vendor:
        """
        Insert a vendor row.

        The UNIQUE constraint on email decides concurrent inserts for the
        same address: exactly one succeeds, the rest raise AlreadyExists.
        """
        sql = f"""
            INSERT INTO vendors (
                id, first_name, last_name, email, password_hash, is_email_verified,
                is_registration_complete, registration_completed_at, registration_step,
                is_profile_complete, profile_completed_at, is_active, is_approved,
                refresh_tokens, last_login, description, avatar, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    COALESCE(%s, NOW()), NOW())
            RETURNING {_VENDOR_COLUMNS}
        """
        params = (
            vendor.id,
            vendor.first_name,
            vendor.last_name,
            vendor.email,
            vendor.password_hash,
            vendor.is_email_verified,
            vendor.is_registration_complete,
            vendor.registration_completed_at,
            vendor.registration_step.value,
            vendor.is_profile_complete,
            vendor.profile_completed_at,
            vendor.is_active,
            vendor.is_approved,
            _tokens_to_json(vendor.refresh_tokens),
            vendor.last_login,
            vendor.description,
            vendor.avatar,
            vendor.created_at,
        )

        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation:
            raise AlreadyExists() from None
        return _row_to_vendor(row)

    def find_by_email(self, email: str) -> Vendor | None:
        return self._fetch_one(f"SELECT {_VENDOR_COLUMNS} FROM vendors WHERE email = %s", (email,))

    def find_by_id(self, vendor_id: str) -> Vendor | None:
        return self._fetch_one(f"SELECT {_VENDOR_COLUMNS} FROM vendors WHERE id = %s", (vendor_id,))

    def update(self, vendor: Vendor) -> Vendor:
        """Write every mutable column (last write wins)."""
        sql = f"""
            UPDATE vendors
            SET first_name = %s,
                last_name = %s,
                password_hash = %s,
                is_email_verified = %s,
                is_registration_complete = %s,
                registration_completed_at = %s,
                registration_step = %s,
                is_profile_complete = %s,
                profile_completed_at = %s,
                is_active = %s,
                is_approved = %s,
                refresh_tokens = %s,
                last_login = %s,
                description = %s,
                avatar = %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_VENDOR_COLUMNS}
        """
        params = (
            vendor.first_name,
            vendor.last_name,
            vendor.password_hash,
            vendor.is_email_verified,
            vendor.is_registration_complete,
            vendor.registration_completed_at,
            vendor.registration_step.value,
            vendor.is_profile_complete,
            vendor.profile_completed_at,
            vendor.is_active,
            vendor.is_approved,
            _tokens_to_json(vendor.refresh_tokens),
            vendor.last_login,
            vendor.description,
            vendor.avatar,
            vendor.id,
        )

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise VendorNotFound()
        return _row_to_vendor(row)

    def _fetch_one(self, sql: str, params: tuple) -> Vendor | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _row_to_vendor(row) if row is not None else None


class PostgresVendorProfileRepository:
    """Implements VendorProfileRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, profile: VendorProfile) -> VendorProfile:
        """
        Insert a profile row.

        Both the registration number and the vendor id are UNIQUE; either
        violation raises DuplicateRegistrationNumber.
        """
        sql = f"""
            INSERT INTO vendor_profiles (
                id, vendor_id, phone, alternate_phone, business_name, business_type,
                business_registration_number, gst_number, license_number, address,
                bank_details, description, established_year, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()))
            RETURNING {_PROFILE_COLUMNS}
        """
        params = (
            profile.id,
            profile.vendor_id,
            profile.phone,
            profile.alternate_phone,
            profile.business_name,
            profile.business_type.value,
            profile.business_registration_number,
            profile.gst_number,
            profile.license_number,
            Jsonb(vars(profile.address)),
            Jsonb(vars(profile.bank_details)),
            profile.description,
            profile.established_year,
            profile.created_at,
        )

        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation as e:
            logger.info("Profile insert rejected by %s", e.diag.constraint_name)
            raise DuplicateRegistrationNumber() from None
        return _row_to_profile(row)

    def find_by_vendor_id(self, vendor_id: str) -> VendorProfile | None:
        return self._fetch_one(
            f"SELECT {_PROFILE_COLUMNS} FROM vendor_profiles WHERE vendor_id = %s", (vendor_id,)
        )

    def find_by_registration_number(self, number: str) -> VendorProfile | None:
        return self._fetch_one(
            f"SELECT {_PROFILE_COLUMNS} FROM vendor_profiles WHERE business_registration_number = %s",
            (number,),
        )

    def _fetch_one(self, sql: str, params: tuple) -> VendorProfile | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _row_to_profile(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %s migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
