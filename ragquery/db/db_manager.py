import contextlib
from functools import lru_cache
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from ragquery.config import get_settings
from ragquery.exceptions import DatabaseConnectionError
from ragquery.logging_config import get_logger

log = get_logger(__name__)


class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None):
        settings = get_settings()
        url = database_url or settings.database_url
        # Ensure we use the async driver
        url = url.replace("postgresql://", "postgresql+psycopg://")
        statement_timeout_ms = int(settings.timeout.db_seconds * 1000)

        self.engine = create_async_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=10,
            connect_args={"options": f"-c statement_timeout={statement_timeout_ms}"},
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False
        )

    @contextlib.asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a transactional scope around a series of operations.

        Raises:
            DatabaseConnectionError: If no connection can be checked out
        """
        session = self.session_factory()
        try:
            # Connect up front so connection failures are not reported as query failures
            await session.connection()
        except Exception as e:
            await session.close()
            log.error("database_connection_failed", error=str(e))
            raise DatabaseConnectionError(f"Could not connect to database: {e}") from e

        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def dispose(self) -> None:
        await self.engine.dispose()


@lru_cache
def get_db_manager() -> DatabaseManager:
    """Shared manager for the configured database (engine created on first use)."""
    return DatabaseManager()
