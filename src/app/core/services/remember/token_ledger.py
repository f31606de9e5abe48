"""Remember-me token ledger.

Issues, validates, revokes and purges the persistent credentials that let a
returning browser be signed in without another round trip to its identity
provider. At most one token exists per ``(external_id, provider)``: issuing a
new one replaces the previous token in the same transaction.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from loguru import logger

from src.app.core.errors import StorageFailure, StorageUnavailable, ValidationInputError
from src.app.core.models.identity import Identity, Provider
from src.app.core.security import generate_remember_token, token_fingerprint
from src.app.core.services.database.db_manage import DbManageService
from src.app.core.services.database.db_session import DbSessionService
from src.app.entities.core.remember_token import RememberToken, RememberTokenRepository
from src.app.runtime.config.config_data import RememberConfig

# Longest value accepted from a cookie before it is rejected as malformed
MAX_TOKEN_INPUT_LENGTH = 256

# Minimum pause between re-initialization attempts while the store is down
REINIT_BACKOFF_SECONDS = 5.0


def utc_now() -> datetime:
    return datetime.now(UTC)


class TokenLedger:
    """Persistent remember-me token store.

    All public operations are coroutines; the blocking database work runs in
    a worker thread so the event loop is never held by a pool checkout.
    """

    def __init__(
        self,
        db_service: DbSessionService,
        remember_config: RememberConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._db = db_service
        self._schema = DbManageService(db_service)
        self._config = remember_config
        self._zone = ZoneInfo(remember_config.timezone)
        self._clock = clock
        self._ready = False
        self._next_attempt = 0.0

    @property
    def ready(self) -> bool:
        """True once the schema is in place and the store answered."""
        return self._ready

    @property
    def default_days(self) -> int:
        return self._config.days

    def expiry_for(self, issued_at: datetime, days: int) -> datetime:
        """Absolute expiry ``days`` calendar days after ``issued_at``.

        Days are counted in the configured time zone, so a token issued at
        10:00 local time expires at 10:00 local time even across a DST change.
        """
        local = issued_at.astimezone(self._zone)
        return (local + timedelta(days=days)).astimezone(UTC)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def _bootstrap(self) -> bool:
        if not self._db.health_check():
            return False
        try:
            self._schema.create_all()
            if self._config.sweep_on_startup:
                removed = self._purge_expired()
                logger.info("Startup sweep removed {} expired remember tokens", removed)
        except StorageFailure as e:
            logger.error(
                "Remember-me store bootstrap failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False
        return True

    async def initialize(self) -> bool:
        """Verify connectivity, create the schema and run the startup sweep.

        Returns:
            True when the ledger is ready. On False the gateway keeps running
            and remember-me stays disabled until a later call succeeds.
        """
        self._ready = await asyncio.to_thread(self._bootstrap)
        if self._ready:
            logger.info("Remember-me token ledger ready (backend={})", self._db.backend)
        else:
            self._next_attempt = time.monotonic() + REINIT_BACKOFF_SECONDS
            logger.error(
                "REMEMBER-ME DISABLED: persistent store unreachable at startup. "
                "Sign-in still works; 'stay signed in' is unavailable until the store recovers."
            )
        return self._ready

    async def _ensure_ready(self) -> None:
        if self._ready:
            return
        if time.monotonic() >= self._next_attempt:
            self._ready = await asyncio.to_thread(self._bootstrap)
            if self._ready:
                logger.info("Remember-me store recovered, ledger ready")
                return
            self._next_attempt = time.monotonic() + REINIT_BACKOFF_SECONDS
        logger.warning("Remember-me store unavailable, operation refused")
        raise StorageUnavailable("Remember-me store is not initialized")

    # ------------------------------------------------------------------
    # Input checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_token(token: str) -> str:
        if not isinstance(token, str) or not token.strip():
            raise ValidationInputError("Remember token must be a non-empty string")
        if len(token) > MAX_TOKEN_INPUT_LENGTH:
            raise ValidationInputError("Remember token is too long")
        return token

    @staticmethod
    def _check_principal(external_id: str, provider: Provider | str) -> Provider:
        if not isinstance(external_id, str) or not external_id:
            raise ValidationInputError("external_id must be a non-empty string")
        try:
            return Provider(provider)
        except ValueError as e:
            raise ValidationInputError(f"Unknown provider: {provider}") from e

    def _check_days(self, remember_days: int | None) -> int:
        days = self._config.days if remember_days is None else remember_days
        if not isinstance(days, int) or isinstance(days, bool) or days < 1:
            raise ValidationInputError("remember_days must be a positive integer")
        return days

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _issue(self, identity: Identity, days: int) -> RememberToken:
        now = self._clock()
        remember_token = RememberToken.issue(
            token=generate_remember_token(),
            identity=identity,
            expires_at=self.expiry_for(now, days),
            now=now,
        )
        with self._db.session_scope() as session:
            repository = RememberTokenRepository(session)
            replaced = repository.delete_for_identity(*identity.key)
            repository.add(remember_token)

        logger.info(
            "Issued remember token {} for {}:{} (replaced={}, expires_at={})",
            token_fingerprint(remember_token.token),
            identity.provider,
            identity.external_id,
            replaced,
            remember_token.expires_at.isoformat(),
        )
        return remember_token

    async def issue(
        self, identity: Identity, remember_days: int | None = None
    ) -> RememberToken:
        """Issue a token for ``identity`` and return the stored row.

        Any token previously held by the same identity is deleted in the same
        transaction.
        """
        days = self._check_days(remember_days)
        await self._ensure_ready()
        return await asyncio.to_thread(self._issue, identity, days)

    async def create_token(
        self, identity: Identity, remember_days: int | None = None
    ) -> str:
        """Issue a token for ``identity`` and return its bearer value."""
        remember_token = await self.issue(identity, remember_days)
        return remember_token.token

    def _validate(self, token: str) -> Identity | None:
        now = self._clock()
        with self._db.session_scope() as session:
            remember_token = RememberTokenRepository(session).get(token)

        if remember_token is None:
            logger.debug("Remember token {} not found", token_fingerprint(token))
            return None

        if remember_token.is_expired(now):
            with self._db.session_scope() as session:
                RememberTokenRepository(session).delete(token)
            logger.info(
                "Remember token {} expired at {}, removed",
                token_fingerprint(token),
                remember_token.expires_at.isoformat(),
            )
            return None

        try:
            with self._db.session_scope() as session:
                RememberTokenRepository(session).touch(token, now)
        except StorageFailure as e:
            logger.warning(
                "Could not record use of remember token {}",
                token_fingerprint(token),
                error_type=type(e).__name__,
                error_message=str(e),
            )

        return remember_token.to_identity()

    async def validate_token(self, token: str) -> Identity | None:
        """Return the identity snapshot bound to ``token``.

        Returns None for unknown tokens and for expired tokens, which are
        deleted on sight. The last-used timestamp is updated on success.
        """
        self._check_token(token)
        await self._ensure_ready()
        return await asyncio.to_thread(self._validate, token)

    def _delete(self, token: str) -> bool:
        with self._db.session_scope() as session:
            deleted = RememberTokenRepository(session).delete(token)
        logger.info(
            "Remember token {} revoked (existed={})", token_fingerprint(token), deleted
        )
        return deleted

    async def delete_token(self, token: str) -> bool:
        """Delete ``token``. Returns False when there was nothing to delete."""
        self._check_token(token)
        await self._ensure_ready()
        return await asyncio.to_thread(self._delete, token)

    def _purge_expired(self) -> int:
        with self._db.session_scope() as session:
            return RememberTokenRepository(session).delete_expired(self._clock())

    async def purge_expired(self) -> int:
        """Delete every token whose expiry has passed.

        Returns:
            Number of tokens removed
        """
        await self._ensure_ready()
        removed = await asyncio.to_thread(self._purge_expired)
        if removed:
            logger.info("Purged {} expired remember tokens", removed)
        return removed

    def _revoke_identity(self, external_id: str, provider: Provider) -> int:
        with self._db.session_scope() as session:
            removed = RememberTokenRepository(session).delete_for_identity(
                external_id, provider
            )
        logger.info(
            "Revoked {} remember tokens for {}:{}", removed, provider, external_id
        )
        return removed

    async def revoke_identity(self, external_id: str, provider: Provider) -> int:
        """Delete every token held by one principal."""
        provider = self._check_principal(external_id, provider)
        await self._ensure_ready()
        return await asyncio.to_thread(self._revoke_identity, external_id, provider)

    def _list_tokens(self, external_id: str, provider: Provider) -> list[RememberToken]:
        with self._db.session_scope() as session:
            return RememberTokenRepository(session).list_for_identity(
                external_id, provider
            )

    async def list_tokens(
        self, external_id: str, provider: Provider
    ) -> list[RememberToken]:
        """Tokens currently stored for one principal, oldest first."""
        provider = self._check_principal(external_id, provider)
        await self._ensure_ready()
        return await asyncio.to_thread(self._list_tokens, external_id, provider)
