"""
Time-limited cache of the finished leaderboard.

The whole snapshot is the unit of caching: it is stored as one value and replaced as one value.
A fresh snapshot is served as is. An expired or missing one triggers a full ingestion run; when
that run fails, the previous snapshot is served for as long as there is one.
"""

import asyncio
import datetime
import logging
import time
from typing import Awaitable, Callable

from . import config
from .errors import IngestionError
from .models import LeaderboardSnapshot
from .stores import CacheStore


logger = logging.getLogger(__name__)


SNAPSHOT_KEY = "leaderboard_snapshot"


def now_ms() -> int:
    return int(time.time() * 1000)


class SnapshotCache:
    """
    Serves the leaderboard from a store and rebuilds it when it expires.

    Only one ingestion run executes at a time per cache. Callers arriving while a run is in
    progress wait for it and are then served its result from the store.

    Parameters:
        store (CacheStore): Durable store holding the serialized snapshot.
        build (Callable[[], Awaitable[LeaderboardSnapshot]]): Runs the ingestion pipeline.
        ttl (datetime.timedelta): Maximum age of a snapshot that is served without a rebuild.
        clock (Callable[[], int]): Returns the current time in milliseconds since the epoch.
        key (str): Key of the snapshot in the store.
    """

    def __init__(
        self,
        store: CacheStore,
        build: Callable[[], Awaitable[LeaderboardSnapshot]],
        ttl: datetime.timedelta = datetime.timedelta(hours=config.SNAPSHOT_TTL_HOURS),
        clock: Callable[[], int] = now_ms,
        key: str = SNAPSHOT_KEY,
    ) -> None:
        self.store = store
        self.build = build
        self.ttl = ttl
        self.clock = clock
        self.key = key
        self._run_lock = asyncio.Lock()

    def is_fresh(self, snapshot: LeaderboardSnapshot) -> bool:
        age_ms = self.clock() - snapshot.built_at
        return age_ms < self.ttl.total_seconds() * 1000

    async def load(self) -> LeaderboardSnapshot | None:
        # A truncated blob raises json.JSONDecodeError, which is a ValueError
        try:
            data = await self.store.get(self.key)
            if data is None:
                return None
            return LeaderboardSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Stored snapshot '%s' could not be decoded and is ignored.", self.key)
            return None

    async def get_leaderboard(self) -> LeaderboardSnapshot:
        """
        Returns the current leaderboard snapshot.

        Returns:
            LeaderboardSnapshot: A fresh snapshot, a newly built one, or, when building failed, the
                previous snapshot regardless of its age.

        Raises:
            IngestionError: If building failed and no previous snapshot exists.
        """
        snapshot = await self.load()
        if snapshot is not None and self.is_fresh(snapshot):
            logger.debug("Serving cached snapshot built at %d.", snapshot.built_at)
            return snapshot

        async with self._run_lock:
            # Another caller may have finished a run while this one was waiting
            snapshot = await self.load()
            if snapshot is not None and self.is_fresh(snapshot):
                return snapshot

            return await self._rebuild(snapshot)

    async def _rebuild(self, previous: LeaderboardSnapshot | None) -> LeaderboardSnapshot:
        logger.info("Cached snapshot missing or expired; running ingestion.")
        try:
            snapshot = await self.build()
        except IngestionError as error:
            if previous is None:
                logger.error("Ingestion failed and no previous snapshot exists: %s", error)
                raise

            logger.warning(
                "Ingestion failed (%s); serving previous snapshot built at %d.",
                error,
                previous.built_at,
            )
            return previous

        try:
            await self.store.put(self.key, snapshot.to_dict())
        except Exception:
            logger.exception("Storing the new snapshot failed; serving it uncached.")
            return snapshot

        logger.info(
            "Stored new snapshot with %d entries (cutoff year %d).",
            len(snapshot.entries),
            snapshot.effective_cutoff_year,
        )
        return snapshot
