"""Services package."""

from ledger.services.auth_service import AuthService
from ledger.services.ledger_service import LedgerService
from ledger.services.storage import (
    CredentialStoreInterface,
    LedgerStoreInterface,
    SQLCredentialStore,
    SQLLedgerStore,
    TransactionalCoordinator,
    create_engine_from_settings,
    init_schema,
)

__all__ = [
    # Business services
    "AuthService",
    "LedgerService",
    # Storage services
    "CredentialStoreInterface",
    "LedgerStoreInterface",
    "SQLCredentialStore",
    "SQLLedgerStore",
    "TransactionalCoordinator",
    "create_engine_from_settings",
    "init_schema",
]
