"""Federated login gateway.

Provider sign-in, local sessions and persistent remember-me tokens kept in a
relational store.
"""

__version__ = "0.1.0"
