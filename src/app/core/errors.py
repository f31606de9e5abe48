"""Typed failures raised by the remember-me subsystem.

A missing or expired token is not an error: lookups return ``None``.
"""


class RememberMeError(Exception):
    """Base class for remember-me failures."""


class StorageFailure(RememberMeError):
    """A query or transaction failed after a connection was acquired.

    Also raised when a pool or driver timeout interrupts an operation.
    """


class StorageUnavailable(StorageFailure):
    """The persistent store cannot be reached (startup or call time)."""


class ValidationInputError(RememberMeError, ValueError):
    """Malformed caller input, rejected before any storage call."""
