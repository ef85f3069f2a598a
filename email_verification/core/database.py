"""Database configuration and session management."""
import logging
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class DatabaseManager:
    """Manages the async engine and the session factory handed to repositories."""

    def __init__(self):
        self._engine = None
        self._session_factory = None
        self._initialized = False

    def init(self, database_url: str, echo: bool = False, pool_size: int = 5) -> None:
        """
        Initialize the database engine and session factory.

        Args:
            database_url: Async SQLAlchemy URL (postgresql+asyncpg, sqlite+aiosqlite, ...)
            echo: Enable SQL query logging
            pool_size: Connection pool size (0 for NullPool)
        """
        if self._initialized:
            logger.warning("Database already initialized, skipping re-initialization")
            return

        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

        logger.info("Initializing database connection...")

        if database_url.startswith("sqlite"):
            # In-memory SQLite must share a single connection across sessions
            self._engine = create_async_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        elif pool_size == 0:
            self._engine = create_async_engine(
                database_url,
                echo=echo,
                poolclass=NullPool,
            )
        else:
            self._engine = create_async_engine(
                database_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=300,
            )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._initialized = True
        logger.info("Database connection initialized successfully")

    async def create_all(self) -> None:
        """Create all tables known to the metadata. Used by tests and local development."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        import email_verification.models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close the database engine and dispose of connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
            logger.info("Database connection closed")

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if not self._initialized or not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def check_connection(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            bool: True if connection is healthy, False otherwise
        """
        if not self._initialized or not self._engine:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False


# Global database manager instance, bound at application startup
db_manager = DatabaseManager()
