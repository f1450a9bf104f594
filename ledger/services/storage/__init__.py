"""
Storage Services Package

Provides abstract interfaces and the SQLAlchemy implementation for data
storage, plus the coordinator that groups store calls into atomic units.
"""

from ledger.services.storage.interface import (
    CredentialStoreInterface,
    LedgerStoreInterface,
)
from ledger.services.storage.coordinator import TransactionalCoordinator
from ledger.services.storage.sql import (
    SQLCredentialStore,
    SQLLedgerStore,
    create_engine_from_settings,
    init_schema,
)

__all__ = [
    # Interfaces
    "CredentialStoreInterface",
    "LedgerStoreInterface",
    # Atomic units
    "TransactionalCoordinator",
    # SQLAlchemy implementation
    "SQLCredentialStore",
    "SQLLedgerStore",
    "create_engine_from_settings",
    "init_schema",
]
