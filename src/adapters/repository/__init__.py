"""Repository adapters - Database implementations."""

from .memory import InMemoryVendorProfileRepository, InMemoryVendorRepository
from .postgres import PostgresVendorProfileRepository, PostgresVendorRepository, run_migrations

__all__ = [
    "InMemoryVendorProfileRepository",
    "InMemoryVendorRepository",
    "PostgresVendorProfileRepository",
    "PostgresVendorRepository",
    "run_migrations",
]
