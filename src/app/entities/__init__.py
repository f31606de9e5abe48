"""Entities organized by concept.

Each entity package holds its domain model (entity.py), its persistence
model (table.py) and its data access layer (repository.py).
"""

from .core.remember_token import (
    RememberToken,
    RememberTokenRepository,
    RememberTokenTable,
)

__all__ = [
    "RememberToken",
    "RememberTokenTable",
    "RememberTokenRepository",
]
