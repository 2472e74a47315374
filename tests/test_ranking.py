"""Unit tests for all-time rank assignment."""

from top2000_etl.models import ScoredRecord
from top2000_etl.ranking import assign_ranks

from .builders import record


def _scored(record_id: str, total: int, previous: int) -> ScoredRecord:
    return ScoredRecord(record(record_id, {}), total, previous)


def test_ranks_follow_descending_total_score() -> None:
    scored = [_scored("c", 1, 0), _scored("a", 2000, 0), _scored("b", 1999, 0)]

    snapshot = assign_ranks(scored, 1999, built_at=1000)

    assert [(entry.record.id, entry.all_time_rank) for entry in snapshot.entries] == [
        ("a", 1),
        ("b", 2),
        ("c", 3),
    ]
    assert snapshot.effective_cutoff_year == 1999
    assert snapshot.built_at == 1000


def test_ranks_form_a_permutation_in_score_order() -> None:
    scored = [_scored(str(index), (index * 7919) % 101, 0) for index in range(50)]

    entries = assign_ranks(scored, 2000, built_at=0).entries

    assert sorted(entry.all_time_rank for entry in entries) == list(range(1, 51))
    totals = [entry.total_score for entry in entries]
    assert totals == sorted(totals, reverse=True)


def test_equal_scores_keep_input_order() -> None:
    scored = [_scored("first", 10, 0), _scored("second", 10, 0), _scored("top", 20, 0)]

    entries = assign_ranks(scored, 2000, built_at=0).entries

    assert [entry.record.id for entry in entries] == ["top", "first", "second"]


def test_previous_rank_only_for_songs_with_earlier_points() -> None:
    scored = [
        _scored("riser", 3000, 1000),
        _scored("steady", 2500, 2000),
        _scored("newcomer", 2400, 0),
    ]

    entries = {entry.record.id: entry for entry in assign_ranks(scored, 2001, 0).entries}

    assert entries["steady"].previous_all_time_rank == 1
    assert entries["riser"].previous_all_time_rank == 2
    assert entries["newcomer"].previous_all_time_rank is None
    assert entries["newcomer"].all_time_rank == 3
