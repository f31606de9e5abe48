"""Database engine and transactional session scope used across the application."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from src.app.core.errors import StorageFailure, StorageUnavailable
from src.app.runtime.config.config_data import DatabaseConfig


class DbSessionService:
    """Owns the process-wide connection pool.

    Constructed once by the process entry point and passed to whatever needs
    storage; ``dispose()`` closes the pool at shutdown.
    """

    def __init__(self, db_config: DatabaseConfig, environment: str = "development"):
        self._config = db_config
        self._environment = environment
        self._backend = make_url(db_config.url).get_backend_name()

        engine_kwargs: dict[str, Any] = {
            "echo": db_config.echo,
            "pool_pre_ping": True,  # Validate connections before use
            "connect_args": self._get_connect_args(),
        }
        engine_kwargs.update(self._get_pool_args())

        logger.info(
            "Initializing {} database engine (pool_size={}, pool_timeout={}s)",
            self._backend,
            db_config.pool_size,
            db_config.pool_timeout,
        )
        self._engine = create_engine(db_config.connection_string, **engine_kwargs)
        self._disposed = False

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def backend(self) -> str:
        return self._backend

    def _is_memory_sqlite(self) -> bool:
        database = make_url(self._config.url).database
        return self._backend == "sqlite" and database in (None, "", ":memory:")

    def _get_pool_args(self) -> dict[str, Any]:
        if self._is_memory_sqlite():
            # One shared connection, otherwise every checkout sees an empty database
            return {"poolclass": StaticPool}
        return {
            "pool_size": self._config.pool_size,
            "max_overflow": self._config.max_overflow,
            "pool_timeout": self._config.pool_timeout,
            "pool_recycle": self._config.pool_recycle,
        }

    def _get_connect_args(self) -> dict[str, Any]:
        """Get database-specific connection arguments, including timeouts."""
        timeout = self._config.operation_timeout

        if self._backend == "sqlite":
            if self._environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider MariaDB or PostgreSQL."
                )
            # timeout is the lock wait for concurrent writers
            return {"check_same_thread": False, "timeout": timeout}

        if self._backend in ("mysql", "mariadb"):
            return {
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "write_timeout": timeout,
            }

        if self._backend == "postgresql":
            return {
                "connect_timeout": timeout,
                "application_name": f"{self._environment}_auth_gateway",
                "options": f"-c statement_timeout={timeout * 1000}",
            }

        return {}

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,  # Prevent lazy loading issues
            autoflush=True,
        )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Run the enclosed block as one transaction.

        Commits on success and rolls back on any error. A connection that
        cannot be acquired raises StorageUnavailable; a database error after
        acquisition raises StorageFailure.
        """
        if self._disposed:
            raise StorageUnavailable("Database pool has been closed")

        db = self.get_session()
        try:
            try:
                db.connection()
            except SQLAlchemyError as e:
                logger.error(
                    "Database connection could not be acquired",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                raise StorageUnavailable(f"Database unavailable: {e}") from e

            yield db
            db.commit()
        except StorageFailure:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "Database transaction failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise StorageFailure(f"Database operation failed: {e}") from e
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        if self._disposed:
            return False
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except SQLAlchemyError as e:
            logger.error(
                "Database health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    def get_pool_status(self) -> dict:
        """Get current connection pool status for monitoring."""
        pool = self._engine.pool
        return {
            "size": getattr(pool, "size", lambda: 0)(),
            "checked_in": getattr(pool, "checkedin", lambda: 0)(),
            "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            "overflow": getattr(pool, "overflow", lambda: 0)(),
        }

    def dispose(self) -> None:
        """Close every pooled connection. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._engine.dispose()
        logger.info("Database connection pool closed")
