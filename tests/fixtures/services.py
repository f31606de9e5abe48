"""Service fixtures for testing."""

from collections.abc import AsyncGenerator, Mapping
from typing import Any
from urllib.parse import urlencode

import pytest
import pytest_asyncio

from src.app.core.models.identity import Provider
from src.app.core.services import (
    AuthSessionService,
    IdentityProvider,
    IdentityProviderRegistry,
    SessionBridge,
    TokenLedger,
    UserSessionService,
)
from src.app.core.services.database.db_session import DbSessionService
from src.app.core.storage.session_storage import InMemorySessionStorage
from src.app.runtime.config.config_data import RememberConfig, SecurityConfig
from tests.fixtures.core import FakeClock


class FakeIdentityProvider(IdentityProvider):
    """Provider whose 'exchange' returns a canned profile for any code."""

    def __init__(self, name: Provider, profile: Mapping[str, Any]):
        self.name = name
        self.profile = dict(profile)
        self.fail = False

    def authorization_url(self, state: str) -> str:
        return f"https://idp.test/{self.name}/authorize?{urlencode({'state': state})}"

    async def fetch_profile(self, params: Mapping[str, str]) -> Mapping[str, Any]:
        if self.fail or "code" not in params:
            raise RuntimeError("code exchange failed")
        return self.profile


@pytest.fixture
def google_profile() -> dict[str, Any]:
    return {
        "id": "g-1001",
        "displayName": "Ada Lovelace",
        "emails": [{"value": "ada@example.com"}],
        "photos": [{"value": "https://example.com/ada.png"}],
    }


@pytest.fixture
def fake_google(google_profile: dict[str, Any]) -> FakeIdentityProvider:
    return FakeIdentityProvider(Provider.GOOGLE, google_profile)


@pytest.fixture
def provider_registry(fake_google: FakeIdentityProvider) -> IdentityProviderRegistry:
    return IdentityProviderRegistry([fake_google])


@pytest.fixture
def ledger(
    db_service: DbSessionService, remember_config: RememberConfig, clock: FakeClock
) -> TokenLedger:
    """Ledger that has not been initialized yet."""
    return TokenLedger(db_service, remember_config, clock=clock)


@pytest_asyncio.fixture
async def ready_ledger(ledger: TokenLedger) -> AsyncGenerator[TokenLedger, None]:
    assert await ledger.initialize()
    yield ledger


@pytest.fixture
def session_storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture
def user_session_service(session_storage: InMemorySessionStorage) -> UserSessionService:
    return UserSessionService(session_storage, session_max_age=3600)


@pytest.fixture
def auth_session_service(session_storage: InMemorySessionStorage) -> AuthSessionService:
    return AuthSessionService(
        session_storage, SecurityConfig(allowed_redirect_hosts=["app.example.com"])
    )


@pytest.fixture
def session_bridge(
    ready_ledger: TokenLedger, user_session_service: UserSessionService
) -> SessionBridge:
    return SessionBridge(ready_ledger, user_session_service)
