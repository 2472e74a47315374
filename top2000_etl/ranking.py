"""Assignment of all-time positions."""

import logging

from .models import LeaderboardEntry, LeaderboardSnapshot, ScoredRecord


logger = logging.getLogger(__name__)


def assign_ranks(
    scored: list[ScoredRecord], effective_cutoff_year: int, built_at: int
) -> LeaderboardSnapshot:
    """
    Orders scored records into a leaderboard snapshot.

    Records are sorted by total score, highest first, and numbered from 1. The previous all-time
    position comes from a separate ordering by the score before the cutoff year and is only set
    for records that already had points then; records without such points are new entries.
    Both sorts are stable, so records with equal scores keep the order they were passed in.

    Parameters:
        scored (list[ScoredRecord]): The scored records in document order.
        effective_cutoff_year (int): The latest edition counted in `total_score`.
        built_at (int): Build time in milliseconds since the epoch.

    Returns:
        LeaderboardSnapshot: The finished, immutable snapshot.
    """
    previous_ranks = {}
    by_previous_score = sorted(
        range(len(scored)), key=lambda i: scored[i].previous_total_score, reverse=True
    )
    for position, index in enumerate(by_previous_score, start=1):
        if scored[index].previous_total_score > 0:
            previous_ranks[index] = position

    by_total_score = sorted(
        range(len(scored)), key=lambda i: scored[i].total_score, reverse=True
    )
    entries = tuple(
        LeaderboardEntry(
            record=scored[index].record,
            total_score=scored[index].total_score,
            all_time_rank=position,
            previous_all_time_rank=previous_ranks.get(index),
        )
        for position, index in enumerate(by_total_score, start=1)
    )

    logger.debug("Assigned all-time ranks to %d entries.", len(entries))
    return LeaderboardSnapshot(
        entries=entries, built_at=built_at, effective_cutoff_year=effective_cutoff_year
    )
