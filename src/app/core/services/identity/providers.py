"""Identity provider adapters.

The OAuth code exchange lives in each concrete provider; this module only
defines the contract the routes depend on and the conversion of a provider
profile into the canonical :class:`Identity`.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from loguru import logger

from src.app.core.models.identity import Identity, Provider


class ProfileError(ValueError):
    """A provider profile lacks the fields needed to identify the user."""


def _first_value(entries: Any) -> str | None:
    # Profiles carry lists such as emails=[{"value": "a@b.c"}]
    if not entries:
        return None
    first = entries[0]
    if isinstance(first, Mapping):
        return first.get("value") or None
    return str(first) or None


def normalize_profile(provider: Provider | str, profile: Mapping[str, Any]) -> Identity:
    """Convert a provider profile payload into an :class:`Identity`.

    Args:
        provider: Provider that authenticated the user
        profile: Payload with ``id``, ``displayName`` and optional
            ``emails`` and ``photos`` lists

    Returns:
        Canonical identity; a missing email becomes ``""`` and a missing
        photo becomes None. Microsoft profiles never yield an avatar.

    Raises:
        ProfileError: If the provider or the user id is missing
    """
    try:
        provider = Provider(provider)
    except ValueError as e:
        raise ProfileError(f"Unsupported provider: {provider}") from e

    external_id = profile.get("id")
    if external_id in (None, ""):
        raise ProfileError(f"{provider} profile has no user id")

    email = _first_value(profile.get("emails"))
    avatar_url = None
    if provider is not Provider.MICROSOFT:
        avatar_url = _first_value(profile.get("photos"))

    return Identity(
        external_id=str(external_id),
        provider=provider,
        display_name=profile.get("displayName") or "",
        email=email,
        avatar_url=avatar_url,
    )


class IdentityProvider(ABC):
    """One external provider able to authenticate a browser."""

    name: Provider

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """URL the browser is redirected to, carrying ``state``."""

    @abstractmethod
    async def fetch_profile(self, params: Mapping[str, str]) -> Mapping[str, Any]:
        """Exchange the callback parameters for the user's profile payload."""

    async def complete(self, params: Mapping[str, str]) -> Identity:
        """Finish a login from the callback parameters."""
        profile = await self.fetch_profile(params)
        identity = normalize_profile(self.name, profile)
        logger.info("Authenticated {}:{}", identity.provider, identity.external_id)
        return identity


class IdentityProviderRegistry:
    """Name to provider lookup used by the login routes."""

    def __init__(self, providers: list[IdentityProvider] | None = None):
        self._providers: dict[Provider, IdentityProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: IdentityProvider) -> None:
        self._providers[Provider(provider.name)] = provider
        logger.debug("Registered identity provider {}", provider.name)

    def get(self, name: str) -> IdentityProvider | None:
        try:
            return self._providers.get(Provider(name))
        except ValueError:
            return None

    def names(self) -> list[str]:
        return [str(name) for name in self._providers]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __len__(self) -> int:
        return len(self._providers)
