"""Shared fixtures for the leaderboard ETL tests."""

import pytest

from .builders import GRID_YEARS, article, grid_row, grid_table, simple_table


@pytest.fixture
def sample_article() -> str:
    """An article with a navigation table and a ranking grid of five songs."""
    ranks = len(GRID_YEARS)
    rows = [
        grid_row(1, "Bohemian Rhapsody", "Queen<sup>[1]</sup>", 1975, [1] * ranks),
        grid_row(2, "Hotel California", "Eagles", 1977, [2] * ranks),
        grid_row(3, "Piano Man", "Billy Joel", 1973, [None] * (ranks - 1) + [1500]),
        "<tr><td></td><td></td><td></td><td></td>" + "<td>-</td>" * ranks + "</tr>",
        grid_row(4, "Avond", "Boudewijn de Groot", 1997, [None, 1200] + [3] * (ranks - 2)),
        grid_row(5, "Hallelujah", "Jeff Buckley", 1994, [None] * ranks),
    ]
    return article(simple_table(4, 10), grid_table(rows))
