"""
Key-value cache stores.

All stores share the same small async interface (`get`, `put`, `has`) so the snapshot cache and
the metadata resolver can be composed from any of them:

- `MemoryStore` keeps values in process memory.
- `JsonFileStore` keeps one JSON file per key on local disk using `aiofiles`.
- `PostgresStore` keeps values in a PostgreSQL table using `asyncpg` (see 'db/schema.sql').

Values are JSON-serializable objects. Every `put` replaces the whole value at once, so a reader
never observes a partially written value.
"""

import hashlib
import json
import logging
import os
from typing import Any, Protocol
import uuid

import aiofiles
import aiofiles.os
import asyncpg


logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any) -> None: ...

    async def has(self, key: str) -> bool: ...


class MemoryStore:
    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._values.get(key)

    async def put(self, key: str, value: Any) -> None:
        self._values[key] = value

    async def has(self, key: str) -> bool:
        return key in self._values


class JsonFileStore:
    """
    Durable store keeping one JSON document per key in a directory.

    File names are derived from a hash of the key, so keys may contain any character. Writes go
    to a temporary file first and are moved into place with an atomic replace.

    Parameters:
        directory (str): Directory holding the documents. Created on first write.
    """

    def __init__(self, directory: str) -> None:
        self.directory = directory

    def _path(self, key: str) -> str:
        digest = hashlib.sha256(key.encode()).hexdigest()
        return os.path.join(self.directory, f"{digest}.json")

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not await aiofiles.os.path.exists(path):
            return None

        async with aiofiles.open(path, "r", encoding="utf-8") as file:
            content = await file.read()
        return json.loads(content)["value"]

    async def put(self, key: str, value: Any) -> None:
        await aiofiles.os.makedirs(self.directory, exist_ok=True)
        path = self._path(key)
        temporary_path = f"{path}.{uuid.uuid4().hex}.tmp"

        async with aiofiles.open(temporary_path, "w", encoding="utf-8") as file:
            # Key kept next to the value for manual inspection
            await file.write(json.dumps({"key": key, "value": value}))
        await aiofiles.os.replace(temporary_path, path)
        logger.debug("Stored '%s' in '%s'.", key, path)

    async def has(self, key: str) -> bool:
        return await aiofiles.os.path.exists(self._path(key))


class PostgresStore:
    """
    Durable store backed by the 'leaderboard.cache_tb' table.

    Writes are a single upsert statement, which PostgreSQL applies atomically.

    Parameters:
        pool (asyncpg.Pool): The connection pool used for all queries.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, key: str) -> Any | None:
        value = await self.pool.fetchval(
            """
            SELECT
                cache_value
            FROM
                leaderboard.cache_tb
            WHERE
                cache_key = $1;
            """,
            key,
        )
        return None if value is None else json.loads(value)

    # Parametrized queries to prevent SQL injection attacks
    async def put(self, key: str, value: Any) -> None:
        await self.pool.execute(
            """
            INSERT INTO
                leaderboard.cache_tb (cache_key, cache_value, updated_at)
            VALUES
                ($1, $2::JSONB, NOW())
            ON CONFLICT (cache_key) DO UPDATE
            SET
                cache_value = EXCLUDED.cache_value,
                updated_at = EXCLUDED.updated_at;
            """,
            key,
            json.dumps(value),
        )
        logger.debug("Stored '%s' in cache table.", key)

    async def has(self, key: str) -> bool:
        return await self.pool.fetchval(
            """
            SELECT
                EXISTS (
                    SELECT
                        1
                    FROM
                        leaderboard.cache_tb
                    WHERE
                        cache_key = $1
                );
            """,
            key,
        )
