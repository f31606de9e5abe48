"""Canonical identity produced by the identity provider adapters."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Provider(StrEnum):
    """Supported external identity providers."""

    GOOGLE = "google"
    FACEBOOK = "facebook"
    MICROSOFT = "microsoft"


class Identity(BaseModel):
    """A verified external identity.

    ``(external_id, provider)`` is the natural key of a principal. Providers
    may omit the email address or the avatar; a missing email is normalized
    to an empty string.
    """

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(min_length=1, description="Provider-side user id")
    provider: Provider = Field(description="Identity provider")
    display_name: str = Field(description="Display name reported by the provider")
    email: str = Field(default="", description="Email address, empty when omitted")
    avatar_url: str | None = Field(default=None, description="Profile picture URL")

    @field_validator("email", mode="before")
    @classmethod
    def _missing_email(cls, value: str | None) -> str:
        return value or ""

    @property
    def key(self) -> tuple[str, Provider]:
        """Natural key of the principal."""
        return self.external_id, self.provider
