"""All-time leaderboard of a recurring annual music countdown."""

from .errors import (
    EmptyResultError,
    IngestionError,
    MalformedSourceError,
    NoQualifyingTableError,
    SourceUnavailableError,
)
from .metadata import MetadataResolver
from .models import LeaderboardEntry, LeaderboardSnapshot, MetadataEntry, RankingRecord
from .pipeline import build_leaderboard, run_ingestion
from .service import LeaderboardService, open_service
from .snapshot_cache import SnapshotCache
from .views import debut_entries, edition_entries, edition_years


__all__ = [
    "EmptyResultError",
    "IngestionError",
    "LeaderboardEntry",
    "LeaderboardService",
    "LeaderboardSnapshot",
    "MalformedSourceError",
    "MetadataEntry",
    "MetadataResolver",
    "NoQualifyingTableError",
    "RankingRecord",
    "SnapshotCache",
    "SourceUnavailableError",
    "build_leaderboard",
    "debut_entries",
    "edition_entries",
    "edition_years",
    "open_service",
    "run_ingestion",
]
