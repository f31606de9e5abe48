"""Identity provider adapters."""

from .providers import (
    IdentityProvider,
    IdentityProviderRegistry,
    ProfileError,
    normalize_profile,
)

__all__ = [
    "IdentityProvider",
    "IdentityProviderRegistry",
    "ProfileError",
    "normalize_profile",
]
