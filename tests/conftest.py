"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database (foreign keys on) wired
through the same factory the application uses.
"""

import pytest

from ledger.config import AppSettings, AuthSettings, DatabaseSettings, Settings
from ledger.models.ledger import CategoryCreate
from ledger.orchestrator import create_app_components


TEST_SECRET = "test-secret-key-0123456789abcdef"


def make_settings(**app_overrides) -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthSettings(jwt_secret=TEST_SECRET, bcrypt_rounds=4),
        app=AppSettings(**app_overrides),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
async def components(settings):
    components = create_app_components(settings, configure_logs=False)
    await components.start()
    yield components
    await components.close()


@pytest.fixture
def ledger_service(components):
    return components.ledger_service


@pytest.fixture
def auth_service(components):
    return components.auth_service


@pytest.fixture
async def alice(auth_service):
    return await auth_service.register_user("alice", "alice-password")


@pytest.fixture
async def bob(auth_service):
    return await auth_service.register_user("bob", "bob-password")


@pytest.fixture
async def groceries(ledger_service, alice):
    return await ledger_service.create_category(alice.id, CategoryCreate(name="Groceries"))


@pytest.fixture
def settings_factory():
    """Build settings with AppSettings overrides, e.g. max_category_depth."""
    return make_settings
