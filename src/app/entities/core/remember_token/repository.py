"""Data-access layer for remember tokens."""

from datetime import UTC, datetime

from sqlalchemy import delete, update
from sqlmodel import Session, select

from src.app.core.models.identity import Provider
from src.app.entities.core.remember_token.entity import RememberToken
from src.app.entities.core.remember_token.table import RememberTokenTable


def to_storage_time(value: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form stored in the table."""
    return value.astimezone(UTC).replace(tzinfo=None)


def from_storage_time(value: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from the table."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class RememberTokenRepository:
    """Statements against the remember_tokens table.

    Every method runs inside the caller's session; transaction boundaries
    belong to the caller.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._table = RememberTokenTable.__table__

    def _execute(self, statement) -> int:
        result = self._session.connection().execute(statement)
        return result.rowcount or 0

    @staticmethod
    def _to_entity(row: RememberTokenTable) -> RememberToken:
        return RememberToken(
            token=row.token,
            external_id=row.external_id,
            provider=row.provider,
            email=row.email,
            display_name=row.display_name,
            avatar_url=row.avatar_url,
            expires_at=from_storage_time(row.expires_at),
            created_at=from_storage_time(row.created_at),
            last_used_at=from_storage_time(row.last_used_at),
        )

    def get(self, token: str) -> RememberToken | None:
        row = self._session.get(RememberTokenTable, token)
        if row is None:
            return None
        return self._to_entity(row)

    def list_for_identity(
        self, external_id: str, provider: Provider
    ) -> list[RememberToken]:
        statement = (
            select(RememberTokenTable)
            .where(RememberTokenTable.external_id == external_id)
            .where(RememberTokenTable.provider == provider)
            .order_by(RememberTokenTable.created_at)
        )
        return [self._to_entity(row) for row in self._session.exec(statement)]

    def add(self, remember_token: RememberToken) -> None:
        self._session.add(
            RememberTokenTable(
                token=remember_token.token,
                external_id=remember_token.external_id,
                provider=remember_token.provider,
                email=remember_token.email,
                display_name=remember_token.display_name,
                avatar_url=remember_token.avatar_url,
                expires_at=to_storage_time(remember_token.expires_at),
                created_at=to_storage_time(remember_token.created_at),
                last_used_at=to_storage_time(remember_token.last_used_at),
            )
        )
        self._session.flush()

    def delete_for_identity(self, external_id: str, provider: Provider) -> int:
        return self._execute(
            delete(self._table)
            .where(self._table.c.external_id == external_id)
            .where(self._table.c.provider == provider)
        )

    def touch(self, token: str, used_at: datetime) -> bool:
        return (
            self._execute(
                update(self._table)
                .where(self._table.c.token == token)
                .values(last_used_at=to_storage_time(used_at))
            )
            > 0
        )

    def delete(self, token: str) -> bool:
        return (
            self._execute(
                delete(self._table).where(self._table.c.token == token)
            )
            > 0
        )

    def delete_expired(self, now: datetime) -> int:
        return self._execute(
            delete(self._table).where(
                self._table.c.expires_at < to_storage_time(now)
            )
        )
