#!/usr/bin/env python3
"""
Import the movies rated on a TMDB account into the library as watched.

The TMDB rating (already 0-10) becomes the entry rating and the date the
rating was made becomes a watch date. With TMDB_V4_ACCESS_TOKEN the v4 API
is used, since only v4 returns rating timestamps; otherwise the v3 API with
TMDB_SESSION_ID. Both need TMDB_ACCOUNT_ID.

Usage:
  python gallery/import_tmdb_rated.py [--library=data/library.json] [--limit=N]
"""

import argparse
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    load_library_or_exit,
    normalize_date,
    parse_rating,
    save_library,
    upsert_entry,
)
from gallery.tmdb import TMDBClient, TMDBError, result_title
from gallery.utils import DEFAULT_LIBRARY_PATH, get_env, log, resolve_path


def rated_to_entry(item: dict) -> dict:
    watch_date = normalize_date(item.get("rated_at"))
    return {
        "id": item["id"],
        "title": result_title(item),
        "mediaType": "movie",
        "status": "watched",
        "watchDates": [watch_date] if watch_date else [],
        "rating": parse_rating(item.get("rating")),
    }


def import_rated(library: dict, items, limit: int = 0) -> tuple[int, int]:
    """Upsert rated movies. Returns (imported, without_date)."""
    imported = 0
    undated = 0
    for item in items:
        if limit and imported >= limit:
            break
        entry = rated_to_entry(item)
        if not entry["watchDates"]:
            undated += 1
        upsert_entry(library, entry)
        imported += 1
    return imported, undated


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Import TMDB account ratings into the library")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    parser.add_argument("--limit", type=int, default=0, help="Limit movies imported")
    args = parser.parse_args(argv)

    try:
        client = TMDBClient()
        account_id = get_env("TMDB_ACCOUNT_ID")
        access_token = get_env("TMDB_V4_ACCESS_TOKEN", required=False)
        session_id = get_env("TMDB_SESSION_ID", required=not access_token)
    except ValueError as e:
        log(f"ERROR: {e}")
        sys.exit(1)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    library = load_library_or_exit(library_path)

    items = client.iter_rated_movies(account_id, session_id=session_id, access_token=access_token)
    try:
        imported, undated = import_rated(library, items, limit=max(args.limit, 0))
    except TMDBError as e:
        log(f"ERROR: {e}")
        log("Library not modified.")
        sys.exit(1)

    save_library(library, library_path)
    log(f"Imported {imported} rated movies into {library_path}")
    if undated and not access_token:
        log("  WARNING: v3 responses carry no rating timestamps; set TMDB_V4_ACCESS_TOKEN "
            "to record watch dates.")


if __name__ == "__main__":
    main()
