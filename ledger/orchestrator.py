"""
Component Wiring for the Ledger

This module builds the object graph once at process start:

    Settings -> engine -> stores -> coordinator -> services

DESIGN DECISION: Settings are frozen and passed in by reference. Nothing
below this point reads the environment or a global, so tests can wire a
complete system against an in-memory database with their own settings.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from ledger.audit import AuditLogger, configure_logging
from ledger.config import Settings, get_settings
from ledger.services import (
    AuthService,
    LedgerService,
    SQLCredentialStore,
    SQLLedgerStore,
    TransactionalCoordinator,
    create_engine_from_settings,
    init_schema,
)
from ledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AppComponents:
    """Everything a request boundary needs, built once."""

    settings: Settings
    engine: AsyncEngine
    coordinator: TransactionalCoordinator
    ledger_service: LedgerService
    auth_service: AuthService

    async def start(self) -> None:
        """Reach the database and create missing tables."""
        await init_schema(self.engine, attempts=self.settings.database.connect_retries)
        logger.info(
            "ledger_started",
            environment=self.settings.app.app_environment,
        )

    async def close(self) -> None:
        """Release the connection pool."""
        await self.engine.dispose()


def create_app_components(
    settings: Optional[Settings] = None,
    configure_logs: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Frozen settings; loaded from the environment if None
        configure_logs: Whether to (re)configure structlog.
                        Set to False when the host already did.

    Returns:
        AppComponents (call start() before serving requests)
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.app.log_level)

    engine = create_engine_from_settings(settings.database)
    coordinator = TransactionalCoordinator(engine)
    validator = LedgerValidator()
    audit_logger = AuditLogger()

    ledger_service = LedgerService(
        store=SQLLedgerStore(default_page_limit=settings.app.default_page_limit),
        coordinator=coordinator,
        settings=settings.app,
        validator=validator,
        audit_logger=audit_logger,
    )
    auth_service = AuthService(
        store=SQLCredentialStore(),
        coordinator=coordinator,
        settings=settings.auth,
        validator=validator,
        audit_logger=audit_logger,
    )

    return AppComponents(
        settings=settings,
        engine=engine,
        coordinator=coordinator,
        ledger_service=ledger_service,
        auth_service=auth_service,
    )
