"""
The ingestion pipeline: source article to leaderboard snapshot.

1. Fetch the rendered source article.
2. Extract the ranking records from its ranking grid.
3. Determine the effective cutoff year and score every record.
4. Assign all-time positions.
"""

import logging

import aiohttp

from . import config
from .extract import extract_records
from .models import LeaderboardSnapshot
from .ranking import assign_ranks
from .scoring import determine_cutoff, score_records
from .snapshot_cache import now_ms
from .source import fetch_source_document


logger = logging.getLogger(__name__)


def build_leaderboard(
    html_content: str,
    partial_threshold: int = config.PARTIAL_EDITION_THRESHOLD,
    built_at: int | None = None,
) -> LeaderboardSnapshot:
    """
    Builds a leaderboard snapshot from the rendered source article.

    Parameters:
        html_content (str): The rendered markup of the source article.
        partial_threshold (int): Minimum number of ranked songs for the latest edition to count.
        built_at (int | None): Build time in milliseconds since the epoch. Defaults to now.

    Returns:
        LeaderboardSnapshot: The finished snapshot.

    Raises:
        NoQualifyingTableError: If no table looks like the ranking grid.
        EmptyResultError: If the ranking grid produced no valid rows.
    """
    records = extract_records(html_content)
    cutoff = determine_cutoff(records, partial_threshold)
    scored = score_records(records, cutoff.effective_cutoff_year)
    snapshot = assign_ranks(
        scored,
        cutoff.effective_cutoff_year,
        built_at if built_at is not None else now_ms(),
    )

    logger.info(
        "Built leaderboard of %d songs up to edition %d (latest edition %d, %s).",
        len(snapshot.entries),
        cutoff.effective_cutoff_year,
        cutoff.max_year,
        "partial" if cutoff.is_partial else "complete",
    )
    return snapshot


async def run_ingestion(
    session: aiohttp.ClientSession,
    api_url: str = config.SOURCE_API_URL,
    page: str = config.SOURCE_PAGE,
    partial_threshold: int = config.PARTIAL_EDITION_THRESHOLD,
) -> LeaderboardSnapshot:
    """Fetches the source article and builds a leaderboard snapshot from it."""
    html_content = await fetch_source_document(session, api_url, page)
    return build_leaderboard(html_content, partial_threshold)
