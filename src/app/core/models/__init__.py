"""Identity and local session models."""

from .identity import Identity, Provider
from .session import AuthSession, UserSession

__all__ = ["AuthSession", "Identity", "Provider", "UserSession"]
