"""Unit tests for extraction of ranking records from the source article."""

from bs4 import BeautifulSoup
import pytest

from top2000_etl.errors import EmptyResultError, NoQualifyingTableError
from top2000_etl.extract import (
    FALLBACK_ARTIST_INDEX,
    FALLBACK_TITLE_INDEX,
    artist_rule,
    classify_header,
    edition_year_rule,
    extract_records,
    find_ranking_table,
    make_record_id,
    map_columns,
    normalize_header_text,
    parse_ranking,
    parse_release_year,
    parse_rows,
    release_year_rule,
    title_rule,
)
from top2000_etl.models import NOT_LISTED, UNKNOWN, EditionRanking

from .builders import GRID_YEARS, article, grid_row, grid_table, simple_table


def test_find_ranking_table_selects_densest_table() -> None:
    """The 25 column table wins over the 4 column one."""
    rows = find_ranking_table(article(simple_table(4, 10), simple_table(25, 10)))

    assert len(rows) == 10
    assert len(rows[0].find_all("td")) == 25


def test_find_ranking_table_ignores_short_tables() -> None:
    """A wide table with fewer than 5 rows does not qualify."""
    assert find_ranking_table(article(simple_table(30, 4), simple_table(4, 10))) == []


def test_find_ranking_table_requires_more_than_twenty_columns() -> None:
    assert find_ranking_table(article(simple_table(20, 10))) == []
    assert len(find_ranking_table(article(simple_table(21, 10)))) == 10


def test_find_ranking_table_keeps_first_of_equal_width() -> None:
    first = simple_table(22, 6)
    second = simple_table(22, 8)

    assert len(find_ranking_table(article(first, second))) == 6


@pytest.mark.parametrize(
    ("text", "year"),
    [
        ("'99", 1999),
        ("\u201900", 2000),
        ("05", 2005),
        ("2023", 2023),
        ("1998", None),
        ("'89", None),
        ("2031", None),
        ("jaar", None),
        ("top 2000", None),
    ],
)
def test_edition_year_rule(text, year) -> None:
    assert edition_year_rule(text) == year


def test_role_rules_match_in_isolation() -> None:
    assert artist_rule("artiest") == "artist"
    assert artist_rule("artiest(en)") == "artist"
    assert title_rule("titel") == "title"
    assert title_rule("nummer") == "title"
    assert title_rule("nummers") is None
    assert release_year_rule("jaar") == "release_year"
    assert release_year_rule("jaar 2000") is None


def test_classify_header_returns_first_matching_rule() -> None:
    assert classify_header("artiest") == "artist"
    assert classify_header("'01") == 2001
    assert classify_header("nr.") is None


def test_normalize_header_text_strips_invisible_characters() -> None:
    assert normalize_header_text("Ar\u00adtiest\u200b") == "artiest"
    assert normalize_header_text("\u00a0Titel ") == "titel"
    assert normalize_header_text("Ar\u00a0tiest") == "artiest"
    assert classify_header(normalize_header_text("Ar\u00a0tiest")) == "artist"
    assert classify_header(normalize_header_text("'\u00a099")) == 1999


def _rows(html: str):
    return BeautifulSoup(html, "html.parser").find_all("tr")


def test_map_columns_recognises_roles() -> None:
    column_map = map_columns(_rows(grid_table([])))

    assert column_map.title_index == 1
    assert column_map.artist_index == 2
    assert column_map.release_year_index == 3
    assert column_map.edition_columns[4] == 1999
    assert column_map.edition_columns[4 + len(GRID_YEARS) - 1] == GRID_YEARS[-1]
    assert column_map.header_row_index == 0


def test_map_columns_tolerates_soft_hyphens_in_headers() -> None:
    column_map = map_columns(_rows(grid_table([], artist_header="Ar\u00adtiest")))

    assert column_map.artist_index == 2


def test_map_columns_tolerates_no_break_spaces_in_headers() -> None:
    column_map = map_columns(_rows(grid_table([], artist_header="Ar&nbsp;tiest")))

    assert column_map.artist_index == 2


def test_map_columns_falls_back_to_fixed_positions() -> None:
    column_map = map_columns(_rows(grid_table([], artist_header="Wie", title_header="Wat")))

    assert column_map.artist_index == FALLBACK_ARTIST_INDEX
    assert column_map.title_index == FALLBACK_TITLE_INDEX


def test_map_columns_stops_after_the_header_row() -> None:
    """A second header row of year-like cells is not scanned once editions were found."""
    html = grid_table([]).replace(
        "</table>", "<tr>" + "<th>2030</th>" * 30 + "</tr></table>"
    )

    column_map = map_columns(_rows(html))

    assert 2030 not in column_map.edition_columns.values()


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("12", EditionRanking.ranked(12)),
        ("1.000", EditionRanking.ranked(1000)),
        ("-", NOT_LISTED),
        ("", NOT_LISTED),
        ("0", NOT_LISTED),
        ("x", NOT_LISTED),
    ],
)
def test_parse_ranking(text, expected) -> None:
    assert parse_ranking(text) == expected


def test_parse_release_year() -> None:
    assert parse_release_year("1975") == 1975
    assert parse_release_year("75") == 0
    assert parse_release_year("ca. 1975") == 0
    assert parse_release_year("1899") == 0


def test_make_record_id() -> None:
    assert make_record_id("Queen", "Bohemian Rhapsody") == "queen-bohemian-rhapsody"
    assert make_record_id("AC/DC", "T.N.T.") == "ac-dc-t-n-t-"


def test_parse_rows_cleans_cells_and_records_rankings() -> None:
    ranks = [None, 1000] + [5] * (len(GRID_YEARS) - 2)
    rows = _rows(
        grid_table(
            [
                grid_row(
                    1,
                    'Bohemian Rhapsody<span class="sortkey">Bohemian</span>',
                    "Queen<sup class=\"reference\">[3]</sup>",
                    1975,
                    ranks,
                )
            ]
        )
    )

    (record,) = parse_rows(rows, map_columns(rows))

    assert record.id == "queen-bohemian-rhapsody"
    assert record.artist == "Queen"
    assert record.title == "Bohemian Rhapsody"
    assert record.release_year == 1975
    assert record.ranking_for(1999) == NOT_LISTED
    assert record.ranking_for(2000) == EditionRanking.ranked(1000)
    assert record.position_in(2020) == 5


def test_parse_rows_decodes_double_encoded_entities() -> None:
    rows = _rows(
        grid_table([grid_row(1, "Rock &amp;amp; Roll", "Led Zeppelin", 1971, [7] * len(GRID_YEARS))])
    )

    (record,) = parse_rows(rows, map_columns(rows))

    assert record.title == "Rock & Roll"


def test_parse_rows_discards_rows_without_rankings_or_names() -> None:
    ranks = [10] * len(GRID_YEARS)
    rows = _rows(
        grid_table(
            [
                grid_row(1, "Nothing", "Nobody", 1980, [None] * len(GRID_YEARS)),
                grid_row(2, "", "Nameless", 1980, ranks),
                grid_row(3, "Untitled", "", 1980, ranks),
                grid_row(4, "Kept", "Somebody", 1980, ranks),
            ]
        )
    )

    records = parse_rows(rows, map_columns(rows))

    assert [record.title for record in records] == ["Kept"]


def test_parse_rows_marks_unreached_columns_unknown() -> None:
    """A row one cell short keeps the missing edition as unknown, not as not listed."""
    ranks = [10] * len(GRID_YEARS)
    full_width = 4 + len(GRID_YEARS)
    rows = _rows(
        grid_table(
            [
                grid_row(1, "Short", "Row", 1980, ranks, cell_count=full_width - 1),
                grid_row(2, "Too", "Short", 1980, ranks, cell_count=full_width - 2),
            ]
        )
    )

    records = parse_rows(rows, map_columns(rows))

    assert [record.title for record in records] == ["Short"]
    assert records[0].ranking_for(GRID_YEARS[-1]) == UNKNOWN
    assert GRID_YEARS[-1] in records[0].rankings


def test_extract_records_reads_sample_article(sample_article) -> None:
    records = extract_records(sample_article)

    assert [record.artist for record in records] == [
        "Queen",
        "Eagles",
        "Billy Joel",
        "Boudewijn de Groot",
    ]


def test_extract_records_without_ranking_grid() -> None:
    with pytest.raises(NoQualifyingTableError):
        extract_records(article(simple_table(4, 10)))


def test_extract_records_without_valid_rows() -> None:
    rows = [grid_row(1, "Nothing", "Nobody", 1980, [None] * len(GRID_YEARS))] * 5

    with pytest.raises(EmptyResultError):
        extract_records(article(grid_table(rows)))
