"""Browser login endpoints: provider redirects, callbacks, profile and logout."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger

from src.app.api.http.deps import (
    get_app_config,
    get_auth_session_service,
    get_provider_registry,
    get_session_bridge,
    get_token_ledger,
    get_user_session_service,
)
from src.app.core.models.identity import Provider
from src.app.core.security import token_fingerprint
from src.app.core.services import (
    AuthSessionService,
    IdentityProviderRegistry,
    SessionBridge,
    TokenLedger,
    UserSessionService,
)
from src.app.runtime.config.config_data import ConfigData

router = APIRouter(tags=["auth"])

AUTH_SESSION_COOKIE = "auth_session_id"


def _get_secure_cookie_settings(config: ConfigData) -> dict[str, Any]:
    """Cookie attributes shared by every cookie the gateway sets.

    HTTP-only always; Secure in production or when forced by configuration.
    SameSite=Lax lets the provider callback, a top-level GET navigation,
    carry the auth cookie.
    """
    return {
        "httponly": True,
        "secure": config.security.secure_cookies
        or config.app.environment == "production",
        "samesite": config.security.cookie_samesite,
        "path": "/",
    }


def _clear_session_cookies(response, config: ConfigData) -> None:
    response.delete_cookie(config.security.session_cookie_name, path="/")
    response.delete_cookie(config.remember.cookie_name, path="/")


@router.get("/failure")
async def login_failure() -> JSONResponse:
    """Generic failure landing page; details stay in the server log."""
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"authenticated": False, "detail": "Authentication failed"},
    )


@router.get("/profile")
async def get_profile(
    request: Request,
    config: ConfigData = Depends(get_app_config),
    user_session_service: UserSessionService = Depends(get_user_session_service),
    session_bridge: SessionBridge = Depends(get_session_bridge),
    token_ledger: TokenLedger = Depends(get_token_ledger),
) -> JSONResponse:
    """Current principal.

    Without a live session, a presented remember cookie is exchanged for a
    new session. A rejected remember cookie is cleared.
    """
    session_id = request.cookies.get(config.security.session_cookie_name)
    if session_id:
        user_session = await user_session_service.get_user_session(session_id)
        if user_session:
            return JSONResponse(
                {
                    "authenticated": True,
                    "user": user_session.identity.model_dump(mode="json"),
                    "restored": user_session.restored,
                }
            )

    remember_token = request.cookies.get(config.remember.cookie_name)
    if remember_token and config.remember.enabled:
        result = await session_bridge.on_cookie_presented(remember_token)
        if result is not None:
            response = JSONResponse(
                {
                    "authenticated": True,
                    "user": result.principal.model_dump(mode="json"),
                    "restored": True,
                }
            )
            response.set_cookie(
                key=config.security.session_cookie_name,
                value=result.session_id,
                max_age=config.app.session_max_age,
                **_get_secure_cookie_settings(config),
            )
            return response

    response = JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"authenticated": False},
    )
    if session_id:
        response.delete_cookie(config.security.session_cookie_name, path="/")
    # Keep the cookie while the store is down; it may still be valid
    if remember_token and (not config.remember.enabled or token_ledger.ready):
        response.delete_cookie(config.remember.cookie_name, path="/")
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(
    request: Request,
    config: ConfigData = Depends(get_app_config),
    session_bridge: SessionBridge = Depends(get_session_bridge),
) -> JSONResponse:
    """Sign out: revoke the remember token, end the session, clear cookies."""
    await session_bridge.on_logout(
        request.cookies.get(config.security.session_cookie_name),
        request.cookies.get(config.remember.cookie_name)
        if config.remember.enabled
        else None,
    )
    response = JSONResponse({"message": "Logged out"})
    _clear_session_cookies(response, config)
    return response


@router.post("/remember/revoke")
async def revoke_remember_token(
    request: Request,
    config: ConfigData = Depends(get_app_config),
    token_ledger: TokenLedger = Depends(get_token_ledger),
) -> JSONResponse:
    """Revoke the presented remember token without ending the session.

    With remember-me disabled the store is left alone and only the cookie is
    cleared.
    """
    token = request.cookies.get(config.remember.cookie_name, "")
    revoked = (
        await token_ledger.delete_token(token) if config.remember.enabled else False
    )
    response = JSONResponse({"revoked": revoked})
    response.delete_cookie(config.remember.cookie_name, path="/")
    return response


@router.post("/account/delete")
async def delete_account(
    request: Request,
    config: ConfigData = Depends(get_app_config),
    user_session_service: UserSessionService = Depends(get_user_session_service),
    session_bridge: SessionBridge = Depends(get_session_bridge),
    token_ledger: TokenLedger = Depends(get_token_ledger),
) -> JSONResponse:
    """Revoke every remember token of the signed-in principal and sign out."""
    session_id = request.cookies.get(config.security.session_cookie_name)
    user_session = (
        await user_session_service.get_user_session(session_id) if session_id else None
    )
    if not user_session:
        raise HTTPException(status_code=401, detail="No session found")

    identity = user_session.identity
    revoked = (
        await token_ledger.revoke_identity(identity.external_id, identity.provider)
        if config.remember.enabled
        else 0
    )
    await session_bridge.on_logout(session_id, None)

    logger.info(
        "Account data removed for {}:{} ({} remember tokens)",
        identity.provider,
        identity.external_id,
        revoked,
    )
    response = JSONResponse({"message": "Account deleted", "revoked_tokens": revoked})
    _clear_session_cookies(response, config)
    return response


@router.get("/{provider}")
async def initiate_login(
    provider: str,
    remember: bool = False,
    return_to: str | None = None,
    config: ConfigData = Depends(get_app_config),
    registry: IdentityProviderRegistry = Depends(get_provider_registry),
    auth_session_service: AuthSessionService = Depends(get_auth_session_service),
) -> RedirectResponse:
    """Start a provider login.

    ``remember=true`` asks for a remember-me token once the login succeeds.
    """
    identity_provider = registry.get(provider)
    if identity_provider is None:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")

    auth_session = await auth_session_service.create_auth_session(
        provider=Provider(provider),
        remember=remember,
        return_to=return_to,
    )

    response = RedirectResponse(
        url=identity_provider.authorization_url(auth_session.state),
        status_code=status.HTTP_302_FOUND,
    )
    response.set_cookie(
        key=AUTH_SESSION_COOKIE,
        value=auth_session.id,
        max_age=config.security.auth_session_ttl_seconds,
        **_get_secure_cookie_settings(config),
    )
    return response


@router.get("/{provider}/callback")
async def handle_callback(
    request: Request,
    provider: str,
    config: ConfigData = Depends(get_app_config),
    registry: IdentityProviderRegistry = Depends(get_provider_registry),
    auth_session_service: AuthSessionService = Depends(get_auth_session_service),
    session_bridge: SessionBridge = Depends(get_session_bridge),
) -> RedirectResponse:
    """Finish a provider login and establish the local session."""
    failure = RedirectResponse(url="/auth/failure", status_code=status.HTTP_302_FOUND)
    failure.delete_cookie(AUTH_SESSION_COOKIE, path="/")

    identity_provider = registry.get(provider)
    auth_session_id = request.cookies.get(AUTH_SESSION_COOKIE)
    if identity_provider is None or not auth_session_id:
        logger.warning("Callback without a login in progress for {}", provider)
        return failure

    auth_session = await auth_session_service.consume_auth_session(
        auth_session_id,
        request.query_params.get("state"),
        Provider(provider),
    )
    if auth_session is None:
        logger.warning("Callback state rejected for {}", provider)
        return failure

    try:
        identity = await identity_provider.complete(dict(request.query_params))
    except Exception:
        # Generic response; details stay server-side
        logger.exception("Authentication failed during callback")
        return failure

    result = await session_bridge.on_authenticated(
        identity, wants_persistence=auth_session.remember and config.remember.enabled
    )

    cookie_settings = _get_secure_cookie_settings(config)
    response = RedirectResponse(
        url=auth_session.return_to, status_code=status.HTTP_302_FOUND
    )
    response.delete_cookie(AUTH_SESSION_COOKIE, path="/")
    response.set_cookie(
        key=config.security.session_cookie_name,
        value=result.session_id,
        max_age=config.app.session_max_age,
        **cookie_settings,
    )
    if result.remember_token:
        response.set_cookie(
            key=config.remember.cookie_name,
            value=result.remember_token,
            max_age=result.remember_max_age,
            **cookie_settings,
        )
        logger.debug(
            "Remember cookie set for token {}", token_fingerprint(result.remember_token)
        )
    return response
