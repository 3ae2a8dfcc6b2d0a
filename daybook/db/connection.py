"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from daybook.config import DATABASE_URL

logger = logging.getLogger(__name__)

# Connection bound to the transaction running in the current task, if any
_transaction_conn: ContextVar[Optional[psycopg.AsyncConnection]] = ContextVar(
    "daybook_transaction_conn", default=None
)


class Database:
    """Database connection pool manager"""

    def __init__(self, connection_string: str = DATABASE_URL):
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self) -> None:
        """Initialize connection pool"""
        logger.info("Initializing database connection pool")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=2,
            max_size=10,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    def pool_stats(self) -> dict:
        if not self._pool:
            return {}
        return self._pool.get_stats()

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get database connection from pool

        Inside transaction() this yields the transaction's connection, so
        query functions join it. Otherwise the pool commits on clean exit
        and rolls back on error.
        """
        active = _transaction_conn.get()
        if active is not None:
            yield active
            return

        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Run every query in the block on one connection, all-or-nothing"""
        if _transaction_conn.get() is not None:
            # Nested: join the outer transaction
            yield _transaction_conn.get()
            return

        async with self.connection() as conn:
            async with conn.transaction():
                token = _transaction_conn.set(conn)
                try:
                    yield conn
                finally:
                    _transaction_conn.reset(token)

    async def init_schema(self) -> None:
        """Create tables that do not exist yet"""
        from daybook.db.schema import SCHEMA_STATEMENTS

        async with self.connection() as conn:
            async with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    await cur.execute(statement)
        logger.info("Database schema ready")


# Global database instance
db = Database()
