"""Tests for security utilities."""

import string

from src.app.core.security import (
    REMEMBER_TOKEN_LENGTH,
    generate_remember_token,
    generate_secure_token,
    generate_state,
    sanitize_return_url,
    token_fingerprint,
)


class TestTokenGeneration:
    """Random credentials and state values."""

    def test_generate_secure_token_is_url_safe(self):
        token = generate_secure_token()

        assert len(token) > 40
        assert "=" not in token
        assert "+" not in token
        assert "/" not in token

    def test_generate_state_unique(self):
        states = {generate_state() for _ in range(50)}

        assert len(states) == 50

    def test_remember_token_shape(self):
        token = generate_remember_token()

        assert len(token) == REMEMBER_TOKEN_LENGTH == 64
        assert set(token) <= set(string.hexdigits.lower())

    def test_remember_tokens_unique(self):
        tokens = {generate_remember_token() for _ in range(100)}

        assert len(tokens) == 100


class TestTokenFingerprint:
    """Log-safe token labels."""

    def test_stable_and_short(self):
        token = generate_remember_token()

        assert token_fingerprint(token) == token_fingerprint(token)
        assert len(token_fingerprint(token)) == 8
        assert token_fingerprint(token) not in token

    def test_missing_token(self):
        assert token_fingerprint(None) == "-"
        assert token_fingerprint("") == "-"


class TestReturnUrlSanitization:
    """Open-redirect protection for post-login return URLs."""

    def test_missing(self):
        assert sanitize_return_url(None) == "/"
        assert sanitize_return_url("") == "/"

    def test_relative_paths_kept(self):
        assert sanitize_return_url("/dashboard") == "/dashboard"
        assert sanitize_return_url("/users/profile?tab=1") == "/users/profile?tab=1"

    def test_protocol_relative_and_control_chars_rejected(self):
        assert sanitize_return_url("//evil.com") == "/"
        assert sanitize_return_url("/path\x00with\x01control") == "/"

    def test_absolute_requires_allowlist(self):
        allowed_hosts = ["app.example.com"]

        assert sanitize_return_url("https://evil.com") == "/"
        assert (
            sanitize_return_url("https://app.example.com/home", allowed_hosts)
            == "https://app.example.com/home"
        )
        assert sanitize_return_url("https://evil.com/steal", allowed_hosts) == "/"
        assert sanitize_return_url("not-a-url", allowed_hosts) == "/"
