"""
Data model of the leaderboard ETL.

Rankings use an explicit tagged value instead of overloading `None`: a song can be ranked at a
position in an edition, confirmed as not listed in it, or unknown for it because the edition's
column was never seen. Persisted JSON keeps the compact layout used by consumers, where a year
mapped to `null` is "not listed" and a missing year is "unknown".
"""

from dataclasses import dataclass, field
import enum
from typing import Any


class RankingStatus(enum.Enum):
    RANKED = "ranked"
    NOT_LISTED = "not_listed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EditionRanking:
    """A song's standing in one edition."""

    status: RankingStatus
    position: int | None = None

    @classmethod
    def ranked(cls, position: int) -> "EditionRanking":
        return cls(RankingStatus.RANKED, position)

    @property
    def is_ranked(self) -> bool:
        return self.status is RankingStatus.RANKED


NOT_LISTED = EditionRanking(RankingStatus.NOT_LISTED)
UNKNOWN = EditionRanking(RankingStatus.UNKNOWN)


@dataclass(frozen=True)
class RankingRecord:
    """
    One song's per-edition chart positions.

    `id` is a slug of the artist and title. Two songs can produce the same slug; such collisions
    are kept as separate records.
    """

    id: str
    artist: str
    title: str
    release_year: int
    rankings: dict[int, EditionRanking] = field(default_factory=dict)

    def ranking_for(self, year: int) -> EditionRanking:
        return self.rankings.get(year, UNKNOWN)

    def position_in(self, year: int) -> int | None:
        ranking = self.ranking_for(year)
        return ranking.position if ranking.is_ranked else None

    def to_dict(self) -> dict[str, Any]:
        rankings = {}
        for year in sorted(self.rankings):
            ranking = self.rankings[year]
            if ranking.status is RankingStatus.UNKNOWN:
                continue
            rankings[str(year)] = ranking.position if ranking.is_ranked else None
        return {
            "id": self.id,
            "artist": self.artist,
            "title": self.title,
            "releaseYear": self.release_year,
            "rankings": rankings,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RankingRecord":
        rankings = {
            int(year): NOT_LISTED if position is None else EditionRanking.ranked(int(position))
            for year, position in data["rankings"].items()
        }
        return cls(
            id=data["id"],
            artist=data["artist"],
            title=data["title"],
            release_year=int(data.get("releaseYear", 0)),
            rankings=rankings,
        )


@dataclass(frozen=True)
class ScoredRecord:
    """
    A ranking record with its aggregate scores.

    `previous_total_score` is only used to derive the previous all-time position and is not
    carried over into leaderboard entries.
    """

    record: RankingRecord
    total_score: int
    previous_total_score: int


@dataclass(frozen=True)
class LeaderboardEntry:
    record: RankingRecord
    total_score: int
    all_time_rank: int
    previous_all_time_rank: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["totalScore"] = self.total_score
        data["allTimeRank"] = self.all_time_rank
        if self.previous_all_time_rank is not None:
            data["previousAllTimeRank"] = self.previous_all_time_rank
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            record=RankingRecord.from_dict(data),
            total_score=int(data["totalScore"]),
            all_time_rank=int(data["allTimeRank"]),
            previous_all_time_rank=data.get("previousAllTimeRank"),
        )


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """
    The complete, ranked output of one ingestion run.

    Attributes:
        entries (tuple[LeaderboardEntry, ...]): Entries ordered by all-time rank.
        built_at (int): Build time in milliseconds since the epoch.
        effective_cutoff_year (int): The latest edition counted towards the scores.
    """

    entries: tuple[LeaderboardEntry, ...]
    built_at: int
    effective_cutoff_year: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "builtAt": self.built_at,
            "effectiveCutoffYear": self.effective_cutoff_year,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeaderboardSnapshot":
        return cls(
            entries=tuple(LeaderboardEntry.from_dict(entry) for entry in data["entries"]),
            built_at=int(data["builtAt"]),
            effective_cutoff_year=int(data["effectiveCutoffYear"]),
        )


@dataclass(frozen=True)
class MetadataEntry:
    """
    Artwork and preview links for one song.

    An entry with both links set to `None` is a negative cache result: the catalog was asked and
    had nothing, so the song is never queried again.
    """

    cover_url: str | None = None
    preview_url: str | None = None

    @classmethod
    def miss(cls) -> "MetadataEntry":
        return cls(None, None)

    def to_dict(self) -> dict[str, str | None]:
        return {"coverUrl": self.cover_url, "previewUrl": self.preview_url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataEntry":
        return cls(data.get("coverUrl"), data.get("previewUrl"))
