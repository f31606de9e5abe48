"""Core services exports."""

# Database Service
from .database.db_manage import DbManageService
from .database.db_session import DbSessionService

# Identity Providers
from .identity.providers import (
    IdentityProvider,
    IdentityProviderRegistry,
    normalize_profile,
)

# Remember-me
from .remember.sweeper import ExpiredTokenSweeper
from .remember.token_ledger import TokenLedger

# Session Services
from .session.auth_session import AuthSessionService
from .session.session_bridge import BridgeResult, SessionBridge
from .session.user_session import UserSessionService

__all__ = [
    # Database Service
    "DbManageService",
    "DbSessionService",
    # Identity Providers
    "IdentityProvider",
    "IdentityProviderRegistry",
    "normalize_profile",
    # Remember-me
    "ExpiredTokenSweeper",
    "TokenLedger",
    # Session Services
    "AuthSessionService",
    "BridgeResult",
    "SessionBridge",
    "UserSessionService",
]
