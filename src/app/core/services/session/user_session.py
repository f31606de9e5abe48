import secrets

from src.app.core.models.identity import Identity
from src.app.core.models.session import UserSession
from src.app.core.storage.session_storage import SessionStorage
from src.app.runtime.context import get_config


class UserSessionService:
    """Service for managing local sessions of signed-in principals."""

    def __init__(
        self, session_storage: SessionStorage, session_max_age: int | None = None
    ) -> None:
        self._storage = session_storage
        self._session_max_age = session_max_age or get_config().app.session_max_age

    async def create_user_session(
        self, identity: Identity, restored: bool = False
    ) -> UserSession:
        """Establish a local session for ``identity``.

        Args:
            identity: Authenticated principal
            restored: True when the session comes from a remember-me token

        Returns:
            The stored session
        """
        user_session = UserSession.create(
            session_id=secrets.token_urlsafe(32),
            identity=identity,
            restored=restored,
            session_max_age=self._session_max_age,
        )

        await self._storage.set(
            f"user:{user_session.id}", user_session, self._session_max_age
        )
        return user_session

    async def get_user_session(self, session_id: str) -> UserSession | None:
        """Get user session by ID.

        Args:
            session_id: Session identifier

        Returns:
            User session or None if not found/expired
        """
        user_session = await self._storage.get(f"user:{session_id}", UserSession)

        if not user_session:
            return None

        if user_session.is_expired():
            await self._storage.delete(f"user:{session_id}")
            return None

        user_session.update_access()
        ttl = max(1, user_session.expires_at - user_session.last_accessed_at)
        await self._storage.set(f"user:{user_session.id}", user_session, ttl)

        return user_session

    async def delete_user_session(self, session_id: str) -> None:
        await self._storage.delete(f"user:{session_id}")

    async def purge_expired(self) -> int:
        """Cleanup expired sessions from storage."""
        return await self._storage.cleanup_expired()
