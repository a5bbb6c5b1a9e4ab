"""
Resolve a catalog (TMDB) id for an imported record.

Order: direct tmdb_id, then IMDb id lookup, then free-text search with year
filtering, exact-title tie-breaking and popularity as the last resort.
"""

import re

from gallery.tmdb import TMDBClient, TMDBError, TMDBNotFound, release_year
from gallery.utils import fuzzy_match_score, log


IMDB_ID_PATTERN = re.compile(r"(tt\d+)", re.IGNORECASE)
CLOSE_TITLE_THRESHOLD = 90


def parse_tmdb_id(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        tmdb_id = int(str(value).strip())
    except ValueError:
        return None
    return tmdb_id if tmdb_id > 0 else None


def parse_imdb_id(value) -> str | None:
    """Pull a `tt1234567` id out of a bare id or an IMDb URL."""
    if not value:
        return None
    m = IMDB_ID_PATTERN.search(str(value))
    return m.group(1).lower() if m else None


def parse_year(value) -> int | None:
    """First plausible 4-digit year in a value ("1994", "1994-09-10(中国大陆)")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    m = re.search(r"\b(1[89]\d{2}|20\d{2})", str(value))
    return int(m.group(1)) if m else None


def _titles(candidate: dict) -> set[str]:
    keys = ("title", "original_title", "name", "original_name")
    return {candidate[k].strip().casefold() for k in keys if candidate.get(k)}


def pick_best_candidate(candidates: list[dict], title: str, year: int | None = None) -> dict | None:
    """Choose one search result for `title` (and `year`, when known)."""
    if not candidates:
        return None

    pool = candidates
    if year:
        same_year = [c for c in pool if release_year(c) == year]
        if same_year:
            pool = same_year

    wanted = title.strip().casefold()
    exact = [c for c in pool if wanted in _titles(c)]
    if exact:
        pool = exact
    else:
        close = [
            c for c in pool
            if max((fuzzy_match_score(title, t) for t in _titles(c)), default=0)
            >= CLOSE_TITLE_THRESHOLD
        ]
        if close:
            pool = close

    return max(pool, key=lambda c: c.get("popularity") or 0)


def resolve_match(client: TMDBClient, record: dict) -> dict | None:
    """Resolve {tmdb_id, media_type, matched_by} for a record, or None.

    Catalog errors propagate; the caller decides whether they are fatal.
    """
    media_type = record.get("media_type") or "movie"

    tmdb_id = parse_tmdb_id(record.get("tmdb_id"))
    if tmdb_id:
        return {"tmdb_id": tmdb_id, "media_type": media_type, "matched_by": "tmdb_id"}

    imdb_id = parse_imdb_id(record.get("imdb_id"))
    if imdb_id:
        try:
            found = client.find_by_imdb(imdb_id)
        except TMDBNotFound:
            found = {}
        for kind, key in (("movie", "movie_results"), ("tv", "tv_results")):
            results = found.get(key) or []
            if results:
                return {"tmdb_id": results[0]["id"], "media_type": kind, "matched_by": "imdb_id"}

    title = (record.get("title") or "").strip()
    if not title:
        return None

    year = parse_year(record.get("year"))
    for kind in ("movie", "tv"):
        candidates = client.search(title, kind)
        if not candidates:
            continue
        best = pick_best_candidate(candidates, title, year)
        return {"tmdb_id": best["id"], "media_type": kind, "matched_by": "search"}

    return None


def resolve_all(client: TMDBClient, records: list[dict]) -> tuple[list[dict], int]:
    """Annotate records with tmdb_id/media_type in place.

    Returns (records, unresolved_count). A failing lookup only affects its
    own record.
    """
    unresolved = 0
    for record in records:
        try:
            match = resolve_match(client, record)
        except TMDBError as e:
            log(f"  WARNING: catalog lookup failed for '{record.get('title')}': {e}")
            match = None
        if match:
            record["tmdb_id"] = match["tmdb_id"]
            record["media_type"] = match["media_type"]
        else:
            record["tmdb_id"] = None
            unresolved += 1
    return records, unresolved
