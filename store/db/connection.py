"""
Database connection management.

Uses the SQLAlchemy asyncio extension, either against DATABASE_URL or
against Cloud SQL through the Cloud SQL Python Connector with IAM auth.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from google.cloud.sql.connector import Connector, create_async_connector
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from store import config
from store.db.mapping import get_store_model

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseConnection:
    """
    Manages the async engine and session factory.

    Usage:
        # Initialize at app startup
        await DatabaseConnection.initialize(
            instance_connection_name="project:region:instance",
            db_name="store",
            db_user="service-account@project.iam"
        )

        # Use sessions
        async with DatabaseConnection.session() as session:
            # perform database operations
            pass

        # Close at app shutdown
        await DatabaseConnection.close()
    """

    _engine: AsyncEngine | None = None
    _connector: Connector | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None
    _initialized: bool = False

    @classmethod
    async def initialize(
        cls,
        database_url: str | None = None,
        instance_connection_name: str | None = None,
        db_name: str | None = None,
        db_user: str | None = None,
        pool_size: int | None = None,
        max_overflow: int | None = None,
        pool_timeout: int | None = None,
        pool_recycle: int | None = None,
    ):
        """
        Initialize the engine and session factory.

        Args:
            database_url: SQLAlchemy async URL; takes precedence over Cloud SQL
            instance_connection_name: Cloud SQL instance (project:region:instance)
            db_name: Database name
            db_user: Database user (service account email for IAM auth)
            pool_size: Base connection pool size
            max_overflow: Additional connections allowed beyond pool_size
            pool_timeout: Seconds to wait for a connection
            pool_recycle: Recycle connections after this many seconds
        """
        if cls._initialized:
            return

        pool_options = {
            "pool_size": pool_size if pool_size is not None else config.DB_POOL_SIZE,
            "max_overflow": (
                max_overflow if max_overflow is not None else config.DB_MAX_OVERFLOW
            ),
            "pool_timeout": (
                pool_timeout if pool_timeout is not None else config.DB_POOL_TIMEOUT
            ),
            "pool_recycle": (
                pool_recycle if pool_recycle is not None else config.DB_POOL_RECYCLE
            ),
            "pool_pre_ping": True,  # Verify connections before use
        }

        database_url = database_url or config.DATABASE_URL
        if database_url:
            cls._engine = cls._create_url_engine(database_url, pool_options)
        else:
            cls._engine = await cls._create_cloud_sql_engine(
                instance_connection_name or config.INSTANCE_CONNECTION_NAME,
                db_name or config.DB_NAME,
                db_user or config.DB_USER,
                pool_options,
            )

        cls._session_factory = async_sessionmaker(
            bind=cls._engine, expire_on_commit=False
        )
        cls._initialized = True
        logger.info("Database initialized (%s)", cls._engine.dialect.name)

    @classmethod
    def _create_url_engine(cls, database_url: str, pool_options: dict) -> AsyncEngine:
        url = make_url(database_url)

        if url.get_backend_name() == "sqlite":
            # SQLite uses its own pool and enforces foreign keys only on request
            engine = create_async_engine(url, echo=config.SQL_ECHO)
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
            return engine

        return create_async_engine(url, echo=config.SQL_ECHO, **pool_options)

    @classmethod
    async def _create_cloud_sql_engine(
        cls,
        instance_connection_name: str | None,
        db_name: str,
        db_user: str | None,
        pool_options: dict,
    ) -> AsyncEngine:
        if not instance_connection_name:
            raise ValueError(
                "DATABASE_URL or INSTANCE_CONNECTION_NAME environment variable "
                "is required. Format: project:region:instance"
            )

        if not db_user:
            raise ValueError(
                "DB_USER environment variable is required. "
                "Should be service account email for IAM auth."
            )

        cls._connector = await create_async_connector()

        async def getconn():
            assert cls._connector is not None
            return await cls._connector.connect_async(
                instance_connection_name,
                "asyncpg",
                user=db_user,
                db=db_name,
                enable_iam_auth=True,
            )

        return create_async_engine(
            "postgresql+asyncpg://",
            async_creator=getconn,
            echo=config.SQL_ECHO,
            **pool_options,
        )

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        """Get the SQLAlchemy async engine."""
        if not cls._initialized or cls._engine is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )
        return cls._engine

    @classmethod
    @asynccontextmanager
    async def session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions.

        Automatically commits on success and rolls back on exception.

        Yields:
            SQLAlchemy AsyncSession

        Example:
            async with DatabaseConnection.session() as session:
                await session.execute(...)
        """
        session = cls.get_session()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    @classmethod
    def get_session(cls) -> AsyncSession:
        """
        Get a new database session.

        The caller is responsible for committing/rolling back and closing the session.
        For automatic lifecycle management, use the session() context manager instead.

        Returns:
            SQLAlchemy AsyncSession
        """
        if not cls._initialized or cls._session_factory is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )

        return cls._session_factory()

    @classmethod
    async def create_schema(cls):
        """Create every table of the store model that does not exist yet."""
        metadata = get_store_model().metadata
        async with cls.get_engine().begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready: %s", ", ".join(sorted(metadata.tables)))

    @classmethod
    async def close(cls):
        """Dispose the engine and close the connector."""
        if cls._engine:
            await cls._engine.dispose()
            cls._engine = None

        if cls._connector:
            await cls._connector.close_async()
            cls._connector = None

        cls._session_factory = None
        cls._initialized = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the database connection is initialized."""
        return cls._initialized
