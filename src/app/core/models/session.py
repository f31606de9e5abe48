"""Local session models for the login flow and signed-in principals."""

import time

from pydantic import BaseModel, Field

from src.app.core.models.identity import Identity, Provider


class AuthSession(BaseModel):
    """Short-lived login intent created before redirecting to a provider."""

    id: str = Field(description="Session identifier")
    state: str = Field(description="CSRF state parameter")
    provider: Provider = Field(description="Identity provider")
    remember: bool = Field(default=False, description="Caller asked to stay signed in")
    return_to: str = Field(default="/", description="Sanitized post-auth redirect URL")
    created_at: int = Field(description="Creation timestamp")
    expires_at: int = Field(description="Expiration timestamp")

    @classmethod
    def create(
        cls,
        session_id: str,
        state: str,
        provider: Provider,
        remember: bool,
        return_to: str,
        ttl_seconds: int = 600,
    ) -> "AuthSession":
        """Create a new login intent with timestamps."""
        now = int(time.time())
        return cls(
            id=session_id,
            state=state,
            provider=provider,
            remember=remember,
            return_to=return_to,
            created_at=now,
            expires_at=now + ttl_seconds,
        )

    def is_expired(self) -> bool:
        """Check if the login intent is expired."""
        return time.time() > self.expires_at


class UserSession(BaseModel):
    """Local session of an authenticated principal."""

    id: str = Field(description="Session identifier")
    identity: Identity = Field(description="Authenticated principal")
    restored: bool = Field(
        default=False, description="Established from a remember-me token"
    )
    created_at: int = Field(description="Creation timestamp")
    last_accessed_at: int = Field(description="Last access timestamp")
    expires_at: int = Field(description="Session expiration timestamp")

    @classmethod
    def create(
        cls,
        session_id: str,
        identity: Identity,
        restored: bool = False,
        session_max_age: int = 3600,
    ) -> "UserSession":
        """Create a new user session with timestamps."""
        now = int(time.time())
        return cls(
            id=session_id,
            identity=identity,
            restored=restored,
            created_at=now,
            last_accessed_at=now,
            expires_at=now + session_max_age,
        )

    def is_expired(self) -> bool:
        """Check if session is expired."""
        return time.time() > self.expires_at

    def update_access(self) -> None:
        """Update last accessed time."""
        self.last_accessed_at = int(time.time())
