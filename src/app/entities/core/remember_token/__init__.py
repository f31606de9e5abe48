"""Remember token entity module.

- RememberToken: Domain entity for a persistent login credential
- RememberTokenTable: Database persistence model
- RememberTokenRepository: Data access layer
"""

from .entity import RememberToken
from .repository import RememberTokenRepository
from .table import RememberTokenTable

__all__ = ["RememberToken", "RememberTokenRepository", "RememberTokenTable"]
