"""
Resolution of artwork and preview links for songs.

Lookups go through three tiers: an in-process store, an optional durable store, and finally the
public music catalog. The catalog is rate limited and flaky, so network traffic is kept down by:

- Coalescing: concurrent lookups of the same song share a single in-flight task.
- Negative caching: a song the catalog does not know is stored as an empty entry and never
  queried again.
- Backoff: when the catalog rate limits or the connection fails, the whole list of query variants
  is retried after a growing, jittered delay, for a bounded number of attempts.

Enrichment is cosmetic, so `MetadataResolver.resolve` never raises. Any failure is logged and
results in an empty entry.
"""

import asyncio
from dataclasses import dataclass
import logging
import random
import re
from typing import Any, Awaitable, Callable, Iterable, Protocol
import unicodedata

import aiohttp

from . import config
from .errors import RateLimitedError, UnexpectedContentTypeError
from .models import MetadataEntry
from .source import fetch
from .stores import CacheStore, MemoryStore


logger = logging.getLogger(__name__)


HTTP_FORBIDDEN = 403
HTTP_TOO_MANY_REQUESTS = 429
# The catalog throttles with either status
RATE_LIMIT_STATUSES = (HTTP_FORBIDDEN, HTTP_TOO_MANY_REQUESTS)
PREFETCH_STAGGER_SECONDS = 0.05

# Failures after which the complete list of query variants is tried again
RETRYABLE_ERRORS = (RateLimitedError, aiohttp.ClientConnectionError, asyncio.TimeoutError)


def normalize_text(text: str) -> str:
    """Lowercases, strips diacritics and apostrophes, and collapses whitespace."""
    text = unicodedata.normalize("NFD", text.lower())
    text = "".join(char for char in text if not unicodedata.combining(char))
    text = re.sub(r"['\u2018\u2019`\u00b4]", "", text)
    return " ".join(text.split())


def metadata_key(artist: str, title: str) -> str:
    return f"{normalize_text(artist)}|{normalize_text(title)}"


def strip_punctuation(text: str) -> str:
    return " ".join(re.sub(r"[^\w\s]", "", text.lower()).split())


# Query variants, tried in order until one yields a result
def artist_title_query(artist: str, title: str) -> str:
    return f"{normalize_text(artist)} {normalize_text(title)}"


def bare_artist_title_query(artist: str, title: str) -> str:
    return f"{strip_punctuation(artist)} {strip_punctuation(title)}"


def title_artist_query(artist: str, title: str) -> str:
    return f"{normalize_text(title)} {normalize_text(artist)}"


def title_query(artist: str, title: str) -> str:
    return normalize_text(title)


QUERY_VARIANTS: tuple[Callable[[str, str], str], ...] = (
    artist_title_query,
    bare_artist_title_query,
    title_artist_query,
    title_query,
)


def query_variants(artist: str, title: str) -> list[str]:
    terms = []
    for variant in QUERY_VARIANTS:
        term = variant(artist, title).strip()
        if term and term not in terms:
            terms.append(term)
    return terms


class Catalog(Protocol):
    async def search(self, term: str) -> MetadataEntry | None: ...


class ITunesCatalog:
    """
    Client for the iTunes Search API.

    Parameters:
        session (aiohttp.ClientSession): The HTTP client session for making requests.
        search_url (str): The URL of the search endpoint.
        country (str): Storefront country used to rank the results.
        timeout (aiohttp.ClientTimeout): Timeout of a single search request.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        search_url: str = config.CATALOG_SEARCH_URL,
        country: str = config.CATALOG_COUNTRY,
        timeout: aiohttp.ClientTimeout = aiohttp.ClientTimeout(total=5),
    ) -> None:
        self.session = session
        self.search_url = search_url
        self.country = country
        self.timeout = timeout

    async def search(self, term: str) -> MetadataEntry | None:
        """
        Searches the catalog for the best matching song.

        Returns:
            MetadataEntry | None: Links of the best match, or `None` when nothing matched.

        Raises:
            RateLimitedError: If the catalog answered with HTTP 403 or 429.
            aiohttp.ClientError: If the request fails otherwise.
        """
        params = {
            "term": term,
            "media": "music",
            "entity": "song",
            "limit": "1",
            "country": self.country,
        }
        try:
            data = await fetch(self.session, self.search_url, params=params, timeout=self.timeout)
        except aiohttp.ClientResponseError as error:
            if error.status in RATE_LIMIT_STATUSES:
                raise RateLimitedError(retry_after=_retry_after(error.headers)) from error
            raise

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            return None

        track = results[0]
        artwork_url = track.get("artworkUrl100")
        return MetadataEntry(
            cover_url=artwork_url.replace("100x100", "600x600") if artwork_url else None,
            preview_url=track.get("previewUrl"),
        )


def _retry_after(headers: Any) -> float | None:
    if not headers:
        return None
    try:
        return float(headers.get("Retry-After"))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff between attempts: `base_delay * factor ** (attempt - 1)`, capped at `max_delay`, plus a
    random jitter of up to `jitter` seconds.
    """

    base_delay: float = config.BASE_DELAY_SECONDS
    factor: float = config.BACKOFF_FACTOR
    max_delay: float = config.MAX_DELAY_SECONDS
    jitter: float = config.JITTER_SECONDS
    max_attempts: int = config.MAX_ATTEMPTS

    def delay(self, attempt: int, requested: float | None = None) -> float:
        delay = min(self.max_delay, self.base_delay * self.factor ** (attempt - 1))
        if requested is not None:
            delay = min(self.max_delay, max(delay, requested))
        return delay + random.uniform(0, self.jitter)


class MetadataResolver:
    """
    Resolves songs to artwork and preview links through tiered caches and the catalog.

    Parameters:
        catalog (Catalog): The catalog queried on a cache miss.
        durable_store (CacheStore | None): Store that survives restarts, if any.
        memory_store (CacheStore | None): In-process store. A new `MemoryStore` by default.
        retry_policy (RetryPolicy): Backoff applied to rate limits and connection failures.
        sleep (Callable[[float], Awaitable[Any]]): Used for backoff delays and prefetch stagger.
    """

    def __init__(
        self,
        catalog: Catalog,
        durable_store: CacheStore | None = None,
        memory_store: CacheStore | None = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.catalog = catalog
        self.durable_store = durable_store
        self.memory_store = memory_store if memory_store is not None else MemoryStore()
        self.retry_policy = retry_policy
        self.sleep = sleep
        self._pending: dict[str, asyncio.Task] = {}

    async def resolve(self, artist: str, title: str) -> MetadataEntry:
        """
        Returns the links for a song, querying the catalog at most once per song.

        Parameters:
            artist (str): The artist as listed on the leaderboard.
            title (str): The title as listed on the leaderboard.

        Returns:
            MetadataEntry: The links found, or an empty entry when the song is unknown to the
                catalog or resolution failed.
        """
        key = metadata_key(artist, title)
        try:
            cached = await self.memory_store.get(key)
            if cached is not None:
                return MetadataEntry.from_dict(cached)

            # No await between the lookup and the insert, so exactly one task exists per key
            task = self._pending.get(key)
            if task is None:
                task = asyncio.create_task(self._load(key, artist, title))
                self._pending[key] = task
                task.add_done_callback(lambda done: self._forget(key, done))

            # Shielded so a caller that is cancelled does not cancel the lookup of the others
            return await asyncio.shield(task)
        except Exception:
            logger.exception("Resolving metadata for '%s' failed.", key)
            return MetadataEntry.miss()

    async def is_resolved(self, artist: str, title: str) -> bool:
        """Whether a song already has a cached result, positive or negative."""
        key = metadata_key(artist, title)
        if await self.memory_store.has(key):
            return True
        return self.durable_store is not None and await self.durable_store.has(key)

    async def prefetch(
        self,
        songs: Iterable[tuple[str, str]],
        stagger: float = PREFETCH_STAGGER_SECONDS,
    ) -> list[MetadataEntry]:
        """Resolves a batch of (artist, title) pairs, starting one lookup every `stagger` seconds."""
        tasks = []
        for index, (artist, title) in enumerate(songs):
            if index:
                await self.sleep(stagger)
            tasks.append(asyncio.create_task(self.resolve(artist, title)))
        return list(await asyncio.gather(*tasks))

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _load(self, key: str, artist: str, title: str) -> MetadataEntry:
        if self.durable_store is not None:
            stored = await self._read_durable(key)
            if stored is not None:
                await self.memory_store.put(key, stored.to_dict())
                return stored

        entry = await self.lookup(artist, title)
        await self._remember(key, entry)
        return entry

    async def _read_durable(self, key: str) -> MetadataEntry | None:
        try:
            data = await self.durable_store.get(key)
        except Exception:
            logger.warning("Reading '%s' from the durable store failed.", key, exc_info=True)
            return None
        return None if data is None else MetadataEntry.from_dict(data)

    async def _remember(self, key: str, entry: MetadataEntry) -> None:
        await self.memory_store.put(key, entry.to_dict())
        if self.durable_store is None:
            return
        try:
            await self.durable_store.put(key, entry.to_dict())
        except Exception:
            logger.warning("Writing '%s' to the durable store failed.", key, exc_info=True)

    async def lookup(self, artist: str, title: str) -> MetadataEntry:
        """
        Queries the catalog for a song, retrying with backoff on rate limits and connection
        failures.

        Returns:
            MetadataEntry: The first variant's match, or an empty entry when no variant matched or
                every attempt was rate limited.
        """
        terms = query_variants(artist, title)
        max_attempts = self.retry_policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._search_variants(terms)
            except RETRYABLE_ERRORS as error:
                if attempt == max_attempts:
                    logger.warning(
                        "Giving up on '%s - %s' after %d attempts: %r",
                        artist,
                        title,
                        attempt,
                        error,
                    )
                    break

                requested = error.retry_after if isinstance(error, RateLimitedError) else None
                delay = self.retry_policy.delay(attempt, requested)
                logger.info(
                    "Catalog lookup for '%s - %s' failed (%r); retrying in %.2f seconds.",
                    artist,
                    title,
                    error,
                    delay,
                )
                await self.sleep(delay)

        return MetadataEntry.miss()

    async def _search_variants(self, terms: list[str]) -> MetadataEntry:
        for term in terms:
            try:
                entry = await self.catalog.search(term)
            except RETRYABLE_ERRORS:
                raise
            except (aiohttp.ClientError, UnexpectedContentTypeError, ValueError) as error:
                logger.debug("Catalog search for '%s' failed: %r", term, error)
                continue

            if entry is not None:
                logger.debug("Catalog search for '%s' matched.", term)
                return entry

        return MetadataEntry.miss()
