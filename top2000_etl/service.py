"""
Consumer-facing entry points.

`LeaderboardService` is what the presentation layer talks to: it serves the cached leaderboard
and resolves song metadata. `open_service` wires it to an HTTP session and to the configured
storage backend.
"""

import contextlib
import functools
import logging
import os
from typing import AsyncIterator

import aiohttp
import asyncpg

from . import config
from .metadata import ITunesCatalog, MetadataResolver
from .models import LeaderboardEntry, LeaderboardSnapshot, MetadataEntry
from .pipeline import run_ingestion
from .snapshot_cache import SnapshotCache
from .stores import CacheStore, JsonFileStore, PostgresStore
from .views import debut_entries, edition_entries


logger = logging.getLogger(__name__)


class LeaderboardService:
    def __init__(self, snapshot_cache: SnapshotCache, resolver: MetadataResolver) -> None:
        self.snapshot_cache = snapshot_cache
        self.resolver = resolver

    async def get_leaderboard(self) -> LeaderboardSnapshot:
        """
        Returns the leaderboard, rebuilding it when the cached one has expired.

        Raises:
            IngestionError: If the leaderboard could not be built and none was cached before.
        """
        return await self.snapshot_cache.get_leaderboard()

    async def get_edition(self, year: int, changes_only: bool = False) -> list[LeaderboardEntry]:
        """
        Returns the songs of one edition ordered by their position in it.

        Parameters:
            year (int): The edition.
            changes_only (bool): Only return the songs that entered or left the list in `year`.
        """
        return edition_entries(await self.get_leaderboard(), year, changes_only)

    async def get_debuts(self) -> list[LeaderboardEntry]:
        return debut_entries(await self.get_leaderboard())

    async def resolve_metadata(self, artist: str, title: str) -> MetadataEntry:
        return await self.resolver.resolve(artist, title)


@contextlib.asynccontextmanager
async def open_service(
    backend: str = config.STORAGE_BACKEND,
    storage_dir: str = config.STORAGE_DIR,
) -> AsyncIterator[LeaderboardService]:
    """
    Creates a `LeaderboardService` with its HTTP session and stores, closing them on exit.

    Parameters:
        backend (str): "file" for local JSON files or "postgres" for the database table.
        storage_dir (str): Directory of the "file" backend.

    Raises:
        ValueError: If the backend is unknown.
    """
    if backend not in ("file", "postgres"):
        raise ValueError(f"Unknown storage backend '{backend}'.")

    async with contextlib.AsyncExitStack() as stack:
        session = await stack.enter_async_context(aiohttp.ClientSession())

        if backend == "postgres":
            pool = await stack.enter_async_context(
                asyncpg.create_pool(
                    min_size=1,
                    max_size=4,
                    host=config.DB_HOST,
                    port=config.DB_PORT,
                    database=config.DB_NAME,
                    user=config.DB_USER,
                    password=config.DB_PASSWORD,
                )
            )
            snapshot_store: CacheStore = PostgresStore(pool)
            metadata_store: CacheStore = snapshot_store
        else:
            snapshot_store = JsonFileStore(os.path.join(storage_dir, "snapshot"))
            metadata_store = JsonFileStore(os.path.join(storage_dir, "metadata"))

        logger.debug("Using '%s' storage backend.", backend)
        yield LeaderboardService(
            SnapshotCache(snapshot_store, functools.partial(run_ingestion, session)),
            MetadataResolver(ITunesCatalog(session), durable_store=metadata_store),
        )
