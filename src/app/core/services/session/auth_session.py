import secrets

from src.app.core.models.identity import Provider
from src.app.core.models.session import AuthSession
from src.app.core.security import generate_state, sanitize_return_url
from src.app.core.storage.session_storage import SessionStorage
from src.app.runtime.config.config_data import SecurityConfig
from src.app.runtime.context import get_config


class AuthSessionService:
    """Login intents kept between the provider redirect and its callback."""

    def __init__(
        self,
        session_storage: SessionStorage,
        security_config: SecurityConfig | None = None,
    ) -> None:
        self._storage = session_storage
        self._security = security_config or get_config().security

    async def create_auth_session(
        self,
        provider: Provider,
        remember: bool = False,
        return_to: str | None = None,
    ) -> AuthSession:
        """Create a login intent for a provider redirect.

        Args:
            provider: Identity provider the browser is sent to
            remember: Whether the caller asked to stay signed in
            return_to: Post-auth redirect URI (sanitized)

        Returns:
            The stored intent; its ``state`` goes to the provider
        """
        security = self._security
        safe_return_to = sanitize_return_url(
            return_to, allowed_hosts=security.allowed_redirect_hosts
        )

        auth_session = AuthSession.create(
            session_id=secrets.token_urlsafe(32),
            state=generate_state(),
            provider=provider,
            remember=remember,
            return_to=safe_return_to,
            ttl_seconds=security.auth_session_ttl_seconds,
        )

        await self._storage.set(
            f"auth:{auth_session.id}", auth_session, security.auth_session_ttl_seconds
        )
        return auth_session

    async def get_auth_session(self, session_id: str) -> AuthSession | None:
        """Get a login intent by ID, or None if not found or expired."""
        auth_session = await self._storage.get(f"auth:{session_id}", AuthSession)

        if not auth_session:
            return None

        if auth_session.is_expired():
            await self._storage.delete(f"auth:{session_id}")
            return None

        return auth_session

    async def consume_auth_session(
        self,
        session_id: str,
        state: str | None,
        provider: Provider,
    ) -> AuthSession | None:
        """Validate and remove a login intent.

        The intent is deleted whatever the outcome, so a state value can be
        redeemed at most once.

        Args:
            session_id: Session identifier from the auth cookie
            state: State parameter echoed back by the provider
            provider: Provider named in the callback path

        Returns:
            Valid intent or None if validation fails
        """
        auth_session = await self.get_auth_session(session_id)
        if not auth_session:
            return None

        await self.delete_auth_session(session_id)

        # CSRF protection
        if not state or not secrets.compare_digest(state, auth_session.state):
            return None
        if auth_session.provider != provider:
            return None

        return auth_session

    async def delete_auth_session(self, session_id: str) -> None:
        await self._storage.delete(f"auth:{session_id}")

    async def purge_expired(self) -> int:
        """Cleanup expired intents from storage."""
        return await self._storage.cleanup_expired()
