"""Key-value storage for state that must outlive a single request.

Webhook deliveries are handled independently of each other, so anything
a later delivery needs (such as the progress of a plugin chain) is written
to a ``KeyValueStore`` injected into the request handler. Two
implementations are provided:

- ``InMemoryKeyValueStore`` for local development and tests
- ``PostgresKeyValueStore`` backed by a single JSONB table via asyncpg

Schema used by the PostgreSQL store:

    CREATE TABLE IF NOT EXISTS kernel_kv (
        key TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import asyncpg


logger = logging.getLogger(__name__)


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kernel_kv (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


class StorageError(Exception):
    """Raised when a storage operation fails.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class KeyValueStore(ABC):
    """Interface for JSON value storage keyed by string."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if absent."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable value under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._values.get(key)
        return copy.deepcopy(value)

    async def put(self, key: str, value: Any) -> None:
        # Reject values the PostgreSQL store could not persist either
        json.dumps(value)
        self._values[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def __len__(self) -> int:
        return len(self._values)


class PostgresKeyValueStore(KeyValueStore):
    """PostgreSQL implementation of ``KeyValueStore`` using asyncpg.

    Attributes:
        connection_string: PostgreSQL connection URL.
        min_pool_size: Minimum connections in pool.
        max_pool_size: Maximum connections in pool.

    Example:
        >>> async with PostgresKeyValueStore("postgresql://...") as store:
        ...     await store.put("state-id", {"current_plugin": 0})
    """

    def __init__(
        self,
        connection_string: str,
        min_pool_size: int = 1,
        max_pool_size: int = 5,
    ):
        self.connection_string = connection_string
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool, raising if not connected.

        Raises:
            StorageError: If the pool is not initialized.
        """
        if self._pool is None:
            raise StorageError(
                "Database pool not initialized. Call connect() first."
            )
        return self._pool

    async def connect(self) -> None:
        """Create the connection pool and ensure the table exists.

        Raises:
            StorageError: If connection fails.
        """
        if self._pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            logger.info(
                "Connecting to PostgreSQL",
                extra={
                    "min_pool_size": self.min_pool_size,
                    "max_pool_size": self.max_pool_size,
                },
            )
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
            )
            async with self._pool.acquire() as conn:
                await conn.execute(CREATE_TABLE_SQL)
            logger.info("PostgreSQL connection pool established")
        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={"error": str(e)},
            )
            raise StorageError(
                f"Failed to connect to PostgreSQL: {e}",
                original_error=e,
            ) from e

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            logger.info("Closing PostgreSQL connection pool")
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "PostgresKeyValueStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def get(self, key: str) -> Optional[Any]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT value FROM kernel_kv WHERE key = $1",
                    key,
                )
        except StorageError:
            raise
        except Exception as e:
            logger.error(
                "Failed to read key",
                extra={"key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to read key {key}: {e}", original_error=e) from e

        if row is None:
            return None
        return json.loads(row["value"])

    async def put(self, key: str, value: Any) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO kernel_kv (key, value, updated_at)
                    VALUES ($1, $2::jsonb, now())
                    ON CONFLICT (key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = now()
                    """,
                    key,
                    json.dumps(value),
                )
        except StorageError:
            raise
        except Exception as e:
            logger.error(
                "Failed to write key",
                extra={"key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to write key {key}: {e}", original_error=e) from e

        logger.debug("Stored key", extra={"key": key})

    async def delete(self, key: str) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("DELETE FROM kernel_kv WHERE key = $1", key)
        except StorageError:
            raise
        except Exception as e:
            logger.error(
                "Failed to delete key",
                extra={"key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to delete key {key}: {e}", original_error=e) from e
