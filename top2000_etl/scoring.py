"""
Scoring of ranking records.

Every edition awards `2001 - position` points to positions 1 through 2000. The latest edition is
only counted once it is complete enough: while it is still being published only a small top
slice is known, and counting it would reward exactly those few songs.
"""

from dataclasses import dataclass
import logging

from . import config
from .models import EditionRanking, RankingRecord, ScoredRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CutoffDecision:
    max_year: int
    count_at_max_year: int
    is_partial: bool
    effective_cutoff_year: int


def edition_points(ranking: EditionRanking, max_position: int = config.MAX_POSITION) -> int:
    if ranking.is_ranked and 1 <= ranking.position <= max_position:
        return max_position + 1 - ranking.position
    return 0


def determine_cutoff(
    records: list[RankingRecord],
    partial_threshold: int = config.PARTIAL_EDITION_THRESHOLD,
) -> CutoffDecision:
    """
    Determines the latest edition that counts towards the aggregate scores.

    The latest edition present in any record is treated as partially published when fewer than
    `partial_threshold` records have a position in it. A partial edition is excluded, so the
    effective cutoff year becomes the edition before it.

    Parameters:
        records (list[RankingRecord]): All ranking records of one ingestion run.
        partial_threshold (int): Minimum number of ranked records for the latest edition to count.

    Returns:
        CutoffDecision: The latest edition, how many records are ranked in it and the resulting
            effective cutoff year.

    Raises:
        ValueError: If no record contains any edition.
    """
    years = {year for record in records for year in record.rankings}
    if not years:
        raise ValueError("Cannot determine a cutoff year without any edition.")

    max_year = max(years)
    count_at_max_year = sum(
        1 for record in records if record.ranking_for(max_year).is_ranked
    )
    is_partial = count_at_max_year < partial_threshold
    effective_cutoff_year = max_year - 1 if is_partial else max_year

    if is_partial:
        logger.info(
            "Edition %d has only %d ranked songs (threshold %d) and is excluded from scoring.",
            max_year,
            count_at_max_year,
            partial_threshold,
        )
    return CutoffDecision(max_year, count_at_max_year, is_partial, effective_cutoff_year)


def aggregate_points(
    record: RankingRecord, up_to_year: int, max_position: int = config.MAX_POSITION
) -> int:
    return sum(
        edition_points(ranking, max_position)
        for year, ranking in record.rankings.items()
        if year <= up_to_year
    )


def score_record(
    record: RankingRecord, cutoff_year: int, max_position: int = config.MAX_POSITION
) -> ScoredRecord:
    return ScoredRecord(
        record=record,
        total_score=aggregate_points(record, cutoff_year, max_position),
        previous_total_score=aggregate_points(record, cutoff_year - 1, max_position),
    )


def score_records(
    records: list[RankingRecord], cutoff_year: int, max_position: int = config.MAX_POSITION
) -> list[ScoredRecord]:
    return [score_record(record, cutoff_year, max_position) for record in records]
