"""Glue between successful authentication, local sessions and remember-me."""

from dataclasses import dataclass

from loguru import logger

from src.app.core.errors import RememberMeError
from src.app.core.models.identity import Identity
from src.app.core.security import token_fingerprint
from src.app.core.services.remember.token_ledger import TokenLedger
from src.app.core.services.session.user_session import UserSessionService


@dataclass(frozen=True)
class BridgeResult:
    """Outcome of establishing a local session.

    ``remember_token`` is None when persistence was not requested or could
    not be provided; ``remember_max_age`` is the token's remaining lifetime
    in seconds, used as the cookie max-age.
    """

    principal: Identity
    session_id: str
    remember_token: str | None = None
    remember_max_age: int | None = None


class SessionBridge:
    """Turns authentication events into local sessions and remember tokens.

    Remember-me is an enhancement: ledger failures are logged and the login
    proceeds without it.
    """

    def __init__(
        self, token_ledger: TokenLedger, user_session_service: UserSessionService
    ):
        self._ledger = token_ledger
        self._sessions = user_session_service

    async def on_authenticated(
        self, identity: Identity, wants_persistence: bool
    ) -> BridgeResult:
        """Start a local session and, if asked, issue a remember token."""
        user_session = await self._sessions.create_user_session(identity)

        if not wants_persistence:
            return BridgeResult(principal=identity, session_id=user_session.id)

        try:
            remember_token = await self._ledger.issue(identity)
        except RememberMeError as e:
            logger.warning(
                "Remember-me unavailable, signing in without it",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return BridgeResult(principal=identity, session_id=user_session.id)

        lifetime = remember_token.expires_at - remember_token.created_at
        return BridgeResult(
            principal=identity,
            session_id=user_session.id,
            remember_token=remember_token.token,
            remember_max_age=int(lifetime.total_seconds()),
        )

    async def on_cookie_presented(self, token: str | None) -> BridgeResult | None:
        """Restore a session from a remember token.

        Returns None for missing, unknown or expired tokens and when the store
        cannot answer; the caller then falls back to a provider login.
        """
        if not token:
            return None

        try:
            identity = await self._ledger.validate_token(token)
        except RememberMeError as e:
            logger.warning(
                "Remember token {} could not be validated",
                token_fingerprint(token),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return None

        if identity is None:
            return None

        user_session = await self._sessions.create_user_session(identity, restored=True)
        logger.info(
            "Session restored from remember token {} for {}:{}",
            token_fingerprint(token),
            identity.provider,
            identity.external_id,
        )
        return BridgeResult(principal=identity, session_id=user_session.id)

    async def on_logout(
        self, session_id: str | None, remember_token: str | None
    ) -> None:
        """Revoke the remember token, then end the local session.

        Never raises: both steps are best-effort.
        """
        if remember_token:
            try:
                await self._ledger.delete_token(remember_token)
            except RememberMeError as e:
                logger.warning(
                    "Could not revoke remember token {} at logout",
                    token_fingerprint(remember_token),
                    error_type=type(e).__name__,
                    error_message=str(e),
                )

        if session_id:
            try:
                await self._sessions.delete_user_session(session_id)
            except Exception as e:
                logger.warning(
                    "Could not delete local session at logout",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
