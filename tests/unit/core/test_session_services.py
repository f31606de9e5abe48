"""Unit tests for login intents and local user sessions."""

import time

import pytest

from src.app.core.models.identity import Provider
from src.app.core.models.session import UserSession


class TestAuthSessionService:
    """Login intents between redirect and callback."""

    @pytest.mark.asyncio
    async def test_create_auth_session(self, auth_session_service):
        auth_session = await auth_session_service.create_auth_session(
            Provider.GOOGLE, remember=True, return_to="/dashboard"
        )

        assert auth_session.remember is True
        assert auth_session.return_to == "/dashboard"
        assert len(auth_session.state) > 20

        now = int(time.time())
        assert now + 500 < auth_session.expires_at <= now + 600

    @pytest.mark.parametrize(
        "return_to,expected",
        [
            (None, "/"),
            ("//evil.example.com/", "/"),
            ("https://evil.example.com/", "/"),
            ("https://app.example.com/home", "https://app.example.com/home"),
        ],
    )
    @pytest.mark.asyncio
    async def test_return_url_is_sanitized(
        self, auth_session_service, return_to, expected
    ):
        auth_session = await auth_session_service.create_auth_session(
            Provider.GOOGLE, return_to=return_to
        )

        assert auth_session.return_to == expected

    @pytest.mark.asyncio
    async def test_consume_with_matching_state(self, auth_session_service):
        created = await auth_session_service.create_auth_session(Provider.GOOGLE)

        consumed = await auth_session_service.consume_auth_session(
            created.id, created.state, Provider.GOOGLE
        )

        assert consumed is not None
        assert consumed.id == created.id

    @pytest.mark.asyncio
    async def test_consume_is_single_use(self, auth_session_service):
        created = await auth_session_service.create_auth_session(Provider.GOOGLE)
        await auth_session_service.consume_auth_session(
            created.id, created.state, Provider.GOOGLE
        )

        again = await auth_session_service.consume_auth_session(
            created.id, created.state, Provider.GOOGLE
        )

        assert again is None

    @pytest.mark.parametrize("state", [None, "", "forged"])
    @pytest.mark.asyncio
    async def test_consume_rejects_bad_state(self, auth_session_service, state):
        created = await auth_session_service.create_auth_session(Provider.GOOGLE)

        assert (
            await auth_session_service.consume_auth_session(
                created.id, state, Provider.GOOGLE
            )
            is None
        )
        assert await auth_session_service.get_auth_session(created.id) is None

    @pytest.mark.asyncio
    async def test_consume_rejects_other_provider(self, auth_session_service):
        created = await auth_session_service.create_auth_session(Provider.GOOGLE)

        result = await auth_session_service.consume_auth_session(
            created.id, created.state, Provider.FACEBOOK
        )

        assert result is None


class TestUserSessionService:
    """Local sessions of signed-in principals."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, user_session_service, google_identity):
        user_session = await user_session_service.create_user_session(google_identity)

        fetched = await user_session_service.get_user_session(user_session.id)

        assert fetched.identity == google_identity
        assert fetched.restored is False

    @pytest.mark.asyncio
    async def test_restored_flag(self, user_session_service, google_identity):
        user_session = await user_session_service.create_user_session(
            google_identity, restored=True
        )

        fetched = await user_session_service.get_user_session(user_session.id)

        assert fetched.restored is True

    @pytest.mark.asyncio
    async def test_unknown_session(self, user_session_service):
        assert await user_session_service.get_user_session("nope") is None

    @pytest.mark.asyncio
    async def test_expired_session_is_removed(
        self, user_session_service, session_storage, google_identity
    ):
        expired = UserSession.create("old", google_identity, session_max_age=-10)
        await session_storage.set("user:old", expired, 60)

        assert await user_session_service.get_user_session("old") is None
        assert await session_storage.exists("user:old") is False

    @pytest.mark.asyncio
    async def test_delete(self, user_session_service, google_identity):
        user_session = await user_session_service.create_user_session(google_identity)

        await user_session_service.delete_user_session(user_session.id)

        assert await user_session_service.get_user_session(user_session.id) is None
