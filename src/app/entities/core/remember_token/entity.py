"""Remember-me token domain entity."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.app.core.models.identity import Identity, Provider


class RememberToken(BaseModel):
    """A persistent login credential bound to one external identity.

    Carries a denormalized snapshot of the identity taken at issuance so a
    returning browser can be signed in without asking the provider again.
    All timestamps are timezone-aware UTC.
    """

    token: str = Field(description="Opaque bearer value, primary lookup key")
    external_id: str = Field(description="Provider-side user id")
    provider: Provider = Field(description="Identity provider")
    email: str = Field(default="", description="Email address at issuance")
    display_name: str = Field(description="Display name at issuance")
    avatar_url: str | None = Field(default=None, description="Avatar URL at issuance")
    expires_at: datetime = Field(description="Absolute expiry, fixed at issuance")
    created_at: datetime = Field(description="Issuance time")
    last_used_at: datetime = Field(description="Last successful validation")

    @classmethod
    def issue(
        cls, token: str, identity: Identity, expires_at: datetime, now: datetime
    ) -> "RememberToken":
        """Build a fresh token row for ``identity``."""
        return cls(
            token=token,
            external_id=identity.external_id,
            provider=identity.provider,
            email=identity.email,
            display_name=identity.display_name,
            avatar_url=identity.avatar_url,
            expires_at=expires_at,
            created_at=now,
            last_used_at=now,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def to_identity(self) -> Identity:
        """Return the identity snapshot stored with the token."""
        return Identity(
            external_id=self.external_id,
            provider=self.provider,
            display_name=self.display_name,
            email=self.email,
            avatar_url=self.avatar_url,
        )
