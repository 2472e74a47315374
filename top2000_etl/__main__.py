"""
Command line entry point.

Serves the leaderboard from the cache, rebuilding it when it has expired, and logs the top of
the list. With '--year' the songs of one edition are logged instead, and with '--changes' only
its newcomers and leavers. With '--prefetch' the artwork and preview links of the top entries
are resolved too, which warms the metadata cache for the presentation layer.

Usage:
    python -m top2000_etl [--top N] [--year YEAR [--changes]] [--prefetch]
"""

import argparse
import asyncio
import logging
import sys

from . import config
from .errors import IngestionError, UnsupportedPythonVersionError
from .models import LeaderboardEntry
from .service import open_service


logger = logging.getLogger(__name__)


PREFETCH_COUNT = 50


def configure_logging(level: str = config.LOGGING_LEVEL) -> None:
    if level in ("", "NOTSET"):
        logging.disable()
        level = logging.NOTSET

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s (line %(lineno)d): %(message)s",
    )


def log_edition(entries: list[LeaderboardEntry], year: int) -> None:
    for entry in entries:
        position = entry.record.position_in(year)
        logger.info(
            "%4s. %s - %s (all-time %d, previous edition %s)",
            position or "out",
            entry.record.artist,
            entry.record.title,
            entry.all_time_rank,
            entry.record.position_in(year - 1) or "-",
        )


async def main(top: int, prefetch: bool, year: int | None = None, changes: bool = False) -> int:
    """
    Main asynchronous entry point of the script.

    Parameters:
        top (int): Number of entries to log.
        prefetch (bool): Whether to resolve metadata for the top entries.
        year (int | None): Edition to log instead of the all-time list.
        changes (bool): Only log the newcomers and leavers of `year`.

    Returns:
        int: The process exit code.
    """
    async with open_service() as service:
        try:
            snapshot = await service.get_leaderboard()
        except IngestionError as error:
            logger.error("No leaderboard available: %s", error)
            return 1

        logger.info(
            "Leaderboard of %d songs, counted up to edition %d.",
            len(snapshot.entries),
            snapshot.effective_cutoff_year,
        )
        if year is not None:
            entries = await service.get_edition(year, changes_only=changes)
            logger.info("Edition %d: %d songs selected.", year, len(entries))
            log_edition(entries[:top], year)
        else:
            for entry in snapshot.entries[:top]:
                logger.info(
                    "%4d. %s - %s (%d points, previously %s)",
                    entry.all_time_rank,
                    entry.record.artist,
                    entry.record.title,
                    entry.total_score,
                    entry.previous_all_time_rank or "new",
                )

        if prefetch:
            songs = [
                (entry.record.artist, entry.record.title)
                for entry in snapshot.entries[:PREFETCH_COUNT]
            ]
            results = await service.resolver.prefetch(songs)
            found = sum(1 for result in results if result.cover_url or result.preview_url)
            logger.info("Resolved metadata for %d of %d songs.", found, len(results))

    logger.info("Script finished successfully.")
    return 0


if __name__ == "__main__":
    major, minor, *_ = sys.version_info
    if (major, minor) < (3, 10):
        raise UnsupportedPythonVersionError("Please upgrade to Python 3.10 or higher.")

    parser = argparse.ArgumentParser(prog="top2000_etl", description=__doc__.splitlines()[1])
    parser.add_argument("--top", type=int, default=10, help="number of entries to log")
    parser.add_argument("--year", type=int, help="log the songs of this edition")
    parser.add_argument(
        "--changes", action="store_true", help="only log the newcomers and leavers of '--year'"
    )
    parser.add_argument(
        "--prefetch", action="store_true", help="resolve metadata for the top entries"
    )
    arguments = parser.parse_args()

    configure_logging()
    logger.info("Script starting.")

    sys.exit(
        asyncio.run(main(arguments.top, arguments.prefetch, arguments.year, arguments.changes))
    )
