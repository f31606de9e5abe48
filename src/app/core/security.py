"""Random credentials and redirect hygiene for the login flow."""

import hashlib
import secrets
from urllib.parse import urlparse

REMEMBER_TOKEN_BYTES = 32
REMEMBER_TOKEN_LENGTH = REMEMBER_TOKEN_BYTES * 2


def generate_secure_token(length: int = 32) -> str:
    """URL-safe random string carrying ``length`` bytes of entropy.

    Used for login-intent ids, OAuth ``state`` and local session ids.
    """
    return secrets.token_urlsafe(length)


def generate_state() -> str:
    """OAuth ``state`` value binding a provider callback to its login intent."""
    return generate_secure_token(32)


def generate_remember_token() -> str:
    """Remember-me bearer credential: 256 random bits as 64 hex characters."""
    return secrets.token_hex(REMEMBER_TOKEN_BYTES)


def token_fingerprint(token: str | None) -> str:
    """Short, non-reversible label for a bearer token, safe to log."""
    if not token:
        return "-"
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:8]


def _is_local_path(url: str) -> bool:
    # "//host" is protocol-relative and leaves the site
    return (
        url.startswith("/")
        and not url.startswith("//")
        and all(ord(c) >= 32 for c in url)
    )


def sanitize_return_url(
    return_to: str | None, allowed_hosts: list[str] | None = None
) -> str:
    """Post-login redirect target, or ``"/"`` when ``return_to`` is unsafe.

    Args:
        return_to: Caller-supplied URL from the login request
        allowed_hosts: Hosts an absolute http(s) URL may point at

    Returns:
        ``return_to`` if it is a local path or an allowed absolute URL
    """
    if not return_to:
        return "/"

    candidate = return_to.strip()
    if _is_local_path(candidate):
        return candidate

    if not allowed_hosts or not candidate.startswith(("http://", "https://")):
        return "/"
    try:
        host = urlparse(candidate).hostname
    except ValueError:
        return "/"
    return candidate if host in allowed_hosts else "/"
