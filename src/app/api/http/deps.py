"""FastAPI dependency implementations."""

from fastapi import Request

from src.app.api.http.app_data import ApplicationDependencies
from src.app.core.services import (
    AuthSessionService,
    DbSessionService,
    IdentityProviderRegistry,
    SessionBridge,
    TokenLedger,
    UserSessionService,
)
from src.app.runtime.config.config_data import ConfigData


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_app_config(request: Request) -> ConfigData:
    """Get the configuration the application was built with."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.config


def get_database_service(request: Request) -> DbSessionService:
    """Get the database service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.database_service


def get_token_ledger(request: Request) -> TokenLedger:
    """Get the remember-me token ledger."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.token_ledger


def get_user_session_service(request: Request) -> UserSessionService:
    """Get the User Session service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.user_session_service


def get_auth_session_service(request: Request) -> AuthSessionService:
    """Get the Auth Session service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.auth_session_service


def get_session_bridge(request: Request) -> SessionBridge:
    """Get the session bridge."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.session_bridge


def get_provider_registry(request: Request) -> IdentityProviderRegistry:
    """Get the identity provider registry."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.provider_registry
