"""
Per-edition views on a leaderboard snapshot.

These views answer which songs were listed in one edition, which entered or left the list in
that edition, and which songs debuted in the latest edition.
"""

from .models import LeaderboardEntry, LeaderboardSnapshot


# Sort position for songs without a position in the compared edition
UNPLACED = 9999


def edition_years(snapshot: LeaderboardSnapshot) -> list[int]:
    """Returns every edition present in the snapshot, latest first."""
    years = {year for entry in snapshot.entries for year in entry.record.rankings}
    return sorted(years, reverse=True)


def _is_listed(entry: LeaderboardEntry, year: int) -> bool:
    return entry.record.ranking_for(year).is_ranked


def edition_entries(
    snapshot: LeaderboardSnapshot, year: int, changes_only: bool = False
) -> list[LeaderboardEntry]:
    """
    Lists the entries of a single edition ordered by their position in it.

    Parameters:
        snapshot (LeaderboardSnapshot): The leaderboard to select from.
        year (int): The edition.
        changes_only (bool): Only return newcomers (listed in `year` but not the edition before)
            and leavers (listed the edition before but not in `year`). Leavers have no position
            in `year` and are ordered after the newcomers by their previous position. In the
            first edition every listed entry counts as a newcomer.

    Returns:
        list[LeaderboardEntry]: The selected entries.
    """
    previous_year = year - 1
    first_edition = min(edition_years(snapshot), default=year)

    if not changes_only or year <= first_edition:
        selected = [entry for entry in snapshot.entries if _is_listed(entry, year)]
    else:
        selected = [
            entry
            for entry in snapshot.entries
            if _is_listed(entry, year) != _is_listed(entry, previous_year)
        ]

    return sorted(
        selected,
        key=lambda entry: (
            entry.record.position_in(year) or UNPLACED,
            entry.record.position_in(previous_year) or UNPLACED,
        ),
    )


def debut_entries(snapshot: LeaderboardSnapshot) -> list[LeaderboardEntry]:
    """Returns entries listed in the latest edition that were never listed before, in all-time order."""
    years = edition_years(snapshot)
    if not years:
        return []

    latest, earlier = years[0], years[1:]
    return [
        entry
        for entry in snapshot.entries
        if _is_listed(entry, latest) and not any(_is_listed(entry, year) for year in earlier)
    ]
