"""
Extraction of per-song ranking history from the rendered source article.

The article contains many tables. The ranking grid is recognised as the densest one, with one
column per edition, and its header row is classified with a small ordered set of rules that
tolerate drift in the header texts. Each data row becomes a `RankingRecord`.

Note:
    This module depends on the layout of a single recurring article. Changes in that layout
    beyond header text drift may require updates to the parsing logic.
"""

import copy
from dataclasses import dataclass, field
import html
import logging
import re
from typing import Callable

from bs4 import BeautifulSoup
from bs4.element import Tag

from .errors import EmptyResultError, NoQualifyingTableError
from .models import NOT_LISTED, UNKNOWN, EditionRanking, RankingRecord


logger = logging.getLogger(__name__)


MIN_TABLE_ROWS = 5
MIN_TABLE_COLUMNS = 20
COLUMN_SAMPLE_ROWS = 3
HEADER_SCAN_ROWS = 5
MIN_EDITION_COLUMNS = 5

FIRST_EDITION_YEAR = 1999
LAST_EDITION_YEAR = 2030
TWO_DIGIT_YEAR_PIVOT = 90

# Standard layout of the article, only used when the header texts could not be matched
FALLBACK_ARTIST_INDEX = 2
FALLBACK_TITLE_INDEX = 1

INVISIBLE_CHARACTERS = re.compile("[\u00ad\u200b\u200c\u200d\ufeff]")
# Header texts drop no-break spaces too
HEADER_INVISIBLE_CHARACTERS = re.compile("[\u00a0\u00ad\u200b\u200c\u200d\ufeff]")
NOISE_SELECTOR = "sup, .reference, .sortkey, style, script"
EDITION_YEAR_PATTERN = re.compile(r"['\u2018\u2019`\u00b4]?(\d{4}|\d{2})")
RELEASE_YEAR_PATTERN = re.compile(r"\d{4}")
LEADING_NUMBER_PATTERN = re.compile(r"\d+")


def find_ranking_table(html_content: str) -> list[Tag]:
    """
    Selects the ranking grid among all tables of a document and returns its rows.

    A table qualifies when it has at least 5 rows and the widest of its first 3 rows has more
    than 20 cells. Among the qualifying tables, the widest one wins; on equal width the first one
    in document order is kept.

    Parameters:
        html_content (str): The rendered markup of the source article.

    Returns:
        list[Tag]: The rows of the chosen table, or an empty list when no table qualifies.
    """
    soup = BeautifulSoup(html_content, "html.parser")

    best_rows: list[Tag] = []
    best_columns = 0
    for table in soup.find_all("table"):
        rows = table.find_all("tr")
        if len(rows) < MIN_TABLE_ROWS:
            continue

        columns = max(
            len(row.find_all(["th", "td"])) for row in rows[:COLUMN_SAMPLE_ROWS]
        )
        if columns > MIN_TABLE_COLUMNS and columns > best_columns:
            best_columns = columns
            best_rows = rows

    if best_rows:
        logger.info("Found ranking table with %d columns.", best_columns)
    return best_rows


def normalize_header_text(text: str) -> str:
    text = HEADER_INVISIBLE_CHARACTERS.sub("", html.unescape(text))
    return " ".join(text.split()).lower()


def normalize_cell_text(text: str) -> str:
    text = INVISIBLE_CHARACTERS.sub("", text).replace("\u00a0", " ")
    # The article occasionally contains double encoded entities such as '&amp;amp;'
    return " ".join(html.unescape(text).split())


def visible_text(cell: Tag) -> str:
    """Returns the raw text of a cell without citations, sort keys and embedded styles."""
    cell = copy.copy(cell)
    for noise in cell.select(NOISE_SELECTOR):
        noise.decompose()
    return cell.get_text()


def clean_cell(cell: Tag) -> str:
    return normalize_cell_text(visible_text(cell))


def to_edition_year(value: int) -> int:
    if value < 100:
        return 1900 + value if value >= TWO_DIGIT_YEAR_PIVOT else 2000 + value
    return value


# Header rules. Each takes the normalized header text and returns the role it recognises, if any.
# A role is either one of the names below or an edition year.
ARTIST = "artist"
TITLE = "title"
RELEASE_YEAR = "release_year"


def artist_rule(text: str) -> str | None:
    return ARTIST if "artiest" in text else None


def title_rule(text: str) -> str | None:
    return TITLE if "titel" in text or text == "nummer" else None


def release_year_rule(text: str) -> str | None:
    return RELEASE_YEAR if text == "jaar" else None


def edition_year_rule(text: str) -> int | None:
    match = EDITION_YEAR_PATTERN.fullmatch(text)
    if not match:
        return None
    year = to_edition_year(int(match.group(1)))
    return year if FIRST_EDITION_YEAR <= year <= LAST_EDITION_YEAR else None


HEADER_RULES: tuple[Callable[[str], str | int | None], ...] = (
    artist_rule,
    title_rule,
    release_year_rule,
    edition_year_rule,
)


def classify_header(text: str) -> str | int | None:
    """Returns the role of the first header rule that matches, or `None`."""
    for rule in HEADER_RULES:
        role = rule(text)
        if role is not None:
            return role
    return None


@dataclass
class ColumnMap:
    """
    Roles of the ranking grid's columns.

    Attributes:
        artist_index (int): Column holding the artist.
        title_index (int): Column holding the title.
        release_year_index (int | None): Column holding the release year, if one was found.
        edition_columns (dict[int, int]): Column index to edition year.
        header_row_index (int): Index of the last header row; data starts after it.
    """

    artist_index: int = FALLBACK_ARTIST_INDEX
    title_index: int = FALLBACK_TITLE_INDEX
    release_year_index: int | None = None
    edition_columns: dict[int, int] = field(default_factory=dict)
    header_row_index: int = 0

    @property
    def highest_index(self) -> int:
        indices = [self.artist_index, self.title_index, *self.edition_columns]
        if self.release_year_index is not None:
            indices.append(self.release_year_index)
        return max(indices)


def map_columns(rows: list[Tag]) -> ColumnMap:
    """
    Classifies the columns of the ranking grid from its header rows.

    Header cells of the first rows are scanned until more than 5 edition year columns have been
    found. The artist and title columns fall back to fixed positions when their header texts
    are not recognised.

    Parameters:
        rows (list[Tag]): The rows of the ranking grid.

    Returns:
        ColumnMap: The column roles and the index of the header row.
    """
    artist_index = None
    title_index = None
    column_map = ColumnMap()

    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        for cell_index, cell in enumerate(row.find_all("th")):
            role = classify_header(normalize_header_text(visible_text(cell)))
            if role == ARTIST:
                artist_index = cell_index
            elif role == TITLE:
                title_index = cell_index
            elif role == RELEASE_YEAR:
                column_map.release_year_index = cell_index
            elif isinstance(role, int):
                column_map.edition_columns[cell_index] = role

        if len(column_map.edition_columns) > MIN_EDITION_COLUMNS:
            column_map.header_row_index = row_index
            break

    if artist_index is None:
        logger.warning(
            "Artist column not recognised, falling back to column %d.", FALLBACK_ARTIST_INDEX
        )
    else:
        column_map.artist_index = artist_index
    if title_index is None:
        logger.warning(
            "Title column not recognised, falling back to column %d.", FALLBACK_TITLE_INDEX
        )
    else:
        column_map.title_index = title_index

    logger.info(
        "Mapped columns: artist=%d, title=%d, release year=%s, editions=%d.",
        column_map.artist_index,
        column_map.title_index,
        column_map.release_year_index,
        len(column_map.edition_columns),
    )
    return column_map


def parse_ranking(text: str) -> EditionRanking:
    """
    Parses a ranking cell. Positions use '.' as thousands separator ('1.000'); anything that is
    not a positive number means the song was not listed that edition.
    """
    match = LEADING_NUMBER_PATTERN.match(text.replace(".", ""))
    if match and int(match.group()) > 0:
        return EditionRanking.ranked(int(match.group()))
    return NOT_LISTED


def parse_release_year(text: str) -> int:
    if RELEASE_YEAR_PATTERN.fullmatch(text) and 1900 <= int(text) <= 2100:
        return int(text)
    return 0


def make_record_id(artist: str, title: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", f"{artist}-{title}".lower())


def parse_row(row: Tag, column_map: ColumnMap) -> RankingRecord | None:
    """
    Turns one data row into a `RankingRecord`.

    Returns `None` for rows that are too short, lack an artist or title, or do not contain a
    single ranked edition (spacer and subtotal rows).
    """
    cells = row.find_all("td")
    if len(cells) < column_map.highest_index:
        return None

    def text_at(index: int) -> str:
        return clean_cell(cells[index]) if index < len(cells) else ""

    artist = text_at(column_map.artist_index)
    title = text_at(column_map.title_index)
    if not artist or not title:
        return None

    release_year = 0
    if column_map.release_year_index is not None:
        release_year = parse_release_year(text_at(column_map.release_year_index))

    rankings = {}
    for index, year in column_map.edition_columns.items():
        # A column this row does not reach was never observed for it
        rankings[year] = parse_ranking(clean_cell(cells[index])) if index < len(cells) else UNKNOWN

    if not any(ranking.is_ranked for ranking in rankings.values()):
        return None

    return RankingRecord(
        id=make_record_id(artist, title),
        artist=artist,
        title=title,
        release_year=release_year,
        rankings=rankings,
    )


def parse_rows(rows: list[Tag], column_map: ColumnMap) -> list[RankingRecord]:
    records = []
    for row in rows[column_map.header_row_index + 1 :]:
        record = parse_row(row, column_map)
        if record is not None:
            records.append(record)
    logger.info("Parsed %d ranking records.", len(records))
    return records


def extract_records(html_content: str) -> list[RankingRecord]:
    """
    Extracts all ranking records from the rendered source article.

    Parameters:
        html_content (str): The rendered markup of the source article.

    Returns:
        list[RankingRecord]: The records in document order.

    Raises:
        NoQualifyingTableError: If no table looks like the ranking grid.
        EmptyResultError: If the ranking grid produced no valid rows.
    """
    rows = find_ranking_table(html_content)
    if not rows:
        raise NoQualifyingTableError()

    records = parse_rows(rows, map_columns(rows))
    if not records:
        raise EmptyResultError()
    return records
