from dataclasses import dataclass

from src.app.core.services import (
    AuthSessionService,
    DbSessionService,
    ExpiredTokenSweeper,
    IdentityProviderRegistry,
    SessionBridge,
    TokenLedger,
    UserSessionService,
)
from src.app.core.storage import SessionStorage
from src.app.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    database_service: DbSessionService
    token_ledger: TokenLedger
    token_sweeper: ExpiredTokenSweeper
    session_storage: SessionStorage
    user_session_service: UserSessionService
    auth_session_service: AuthSessionService
    session_bridge: SessionBridge
    provider_registry: IdentityProviderRegistry
