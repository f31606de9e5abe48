"""Schema bootstrap for the remember-me store."""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from src.app.core.errors import StorageFailure
from src.app.core.services.database.db_session import DbSessionService


class DbManageService:
    def __init__(self, db_session_service: DbSessionService):
        self._db = db_session_service

    def create_all(self) -> None:
        """Create the backing tables and indexes if they are absent.

        Idempotent: existing tables are left untouched.
        """
        from src.app.entities.core.remember_token import RememberTokenTable

        try:
            SQLModel.metadata.create_all(
                self._db.engine,
                tables=[RememberTokenTable.__table__],
                checkfirst=True,
            )
        except SQLAlchemyError as e:
            raise StorageFailure(f"Schema bootstrap failed: {e}") from e
        logger.info("Remember tokens table initialized")
