"""HTML and record builders shared by the tests."""

from top2000_etl.models import NOT_LISTED, EditionRanking, RankingRecord


GRID_YEARS = list(range(1999, 2021))


def format_rank(rank: int | None) -> str:
    if rank is None:
        return "-"
    # Positions above 999 use '.' as thousands separator in the article
    return f"{rank:,}".replace(",", ".")


def grid_row(number, title, artist, release_year, ranks, cell_count=None) -> str:
    cells = [str(number), title, artist, str(release_year)]
    cells += [format_rank(rank) for rank in ranks]
    if cell_count is not None:
        cells = cells[:cell_count]
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


def grid_table(rows, years=GRID_YEARS, artist_header="Artiest", title_header="Titel") -> str:
    header = f"<tr><th>Nr.</th><th>{title_header}</th><th>{artist_header}</th><th>Jaar</th>"
    header += "".join(f"<th>'{str(year)[2:]}</th>" for year in years) + "</tr>"
    body = "".join(rows)
    return f'<table class="wikitable sortable">{header}{body}</table>'


def simple_table(columns: int, rows: int) -> str:
    body = "".join(
        "<tr>" + "".join(f"<td>{row}-{column}</td>" for column in range(columns)) + "</tr>"
        for row in range(rows)
    )
    return f"<table>{body}</table>"


def article(*tables: str) -> str:
    return '<div class="mw-parser-output"><p>Intro</p>' + "".join(tables) + "</div>"


def record(record_id: str, rankings: dict[int, int | None], artist="Artist", title=None):
    return RankingRecord(
        id=record_id,
        artist=artist,
        title=title or record_id,
        release_year=0,
        rankings={
            year: NOT_LISTED if rank is None else EditionRanking.ranked(rank)
            for year, rank in rankings.items()
        },
    )
