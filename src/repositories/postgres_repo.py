"""PostgreSQL access using SQLAlchemy Core."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import QueuePool

from repositories.tables import metadata
from utils.error_handling import AppError, StorageError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def build_engine(db_url: str, pool_size: int = 1, max_overflow: int = 2) -> Engine:
    """Create a pooled engine sized for one Lambda container."""
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
    )


class Database:
    """
    Owns the engine and hands out short-lived connections and transactions.

    Created once by the process entry point and passed to services; call
    ``dispose`` on shutdown to release pooled connections.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, db_url: str) -> "Database":
        return cls(build_engine(db_url))

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Run a block inside BEGIN/COMMIT, rolling back on any exception.

        Integrity violations and domain errors propagate unchanged so callers
        can tell a duplicate apart from a broken connection.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except (AppError, IntegrityError):
            raise
        except SQLAlchemyError as exc:
            logger.error("Transaction failed and was rolled back", extra={"error": str(exc)})
            raise StorageError("Transaction failed") from exc

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Read-only style access outside an explicit transaction."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except AppError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Database query failed", extra={"error": str(exc)})
            raise StorageError("Query execution failed") from exc

    def health_check(self) -> bool:
        """Return True when a trivial SELECT succeeds."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text("SELECT 1 AS health_check")).fetchone()
                return row is not None
        except SQLAlchemyError as exc:
            logger.error("Database health check failed", extra={"error": str(exc)})
            return False

    def create_schema(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("Database connections closed")
