"""Database connection and session management for Card Vault Service."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

# Base class for all ORM models
Base = declarative_base()


def create_db_engine(
    database_url: str,
    echo: bool = False,
    statement_timeout_ms: int = 30000,
) -> Engine:
    """
    Create a SQLAlchemy engine with connection pooling.

    PostgreSQL engines get a pooled connection with UTC timezone and a
    statement timeout. SQLite engines (tests) share one in-memory connection
    across threads and enforce foreign keys.

    Args:
        database_url: Database connection URL
        echo: Log SQL statements
        statement_timeout_ms: PostgreSQL statement timeout

    Returns:
        Configured SQLAlchemy engine
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):  # type: ignore
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    engine = create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=10,  # Number of connections to keep open
        max_overflow=20,  # Additional connections when pool is full
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        echo=echo,
    )

    @event.listens_for(engine, "connect")
    def set_postgresql_pragma(dbapi_conn, connection_record):  # type: ignore
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.execute(f"SET statement_timeout='{int(statement_timeout_ms)}'")
        cursor.close()

    return engine


class Database:
    """Owns the engine and session factory for one process.

    Built once at startup and shared by every repository; there is no
    module-level engine.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False, statement_timeout_ms: int = 30000) -> "Database":
        return cls(create_db_engine(database_url, echo=echo, statement_timeout_ms=statement_timeout_ms))

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Usage:
            with database.session() as session:
                session.query(SecretEntry).filter_by(name='creditcard-...').first()

        Automatically commits on success, rolls back on exception.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_schema(self) -> None:
        """
        Create all tables that do not exist yet.

        The service has no migration tooling; the schema is created in place
        at startup.
        """
        # Models must be imported so their tables register on Base.metadata
        from card_vault.infrastructure import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        """
        Drop all tables.

        WARNING: This is destructive and should only be used for testing.
        """
        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> bool:
        """Check that a connection can be opened."""
        with self.engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
        return True

    def dispose(self) -> None:
        self.engine.dispose()
