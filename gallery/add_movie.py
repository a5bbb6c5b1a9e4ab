#!/usr/bin/env python3
"""
Add (or update) a movie in the library.

Searches TMDB by title, asks which result is meant, then asks for status,
watch dates, note and rating. An existing entry with the same TMDB id is
merged and moved to the list of its new status.

Usage:
  python gallery/add_movie.py [--library=data/library.json]
"""

import argparse
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    extract_watch_dates,
    find_entry,
    load_library_or_exit,
    parse_rating,
    parse_watch_dates,
    save_library,
    upsert_entry,
)
from gallery.prompts import ask, ask_status, choose_result
from gallery.tmdb import TMDBClient, TMDBError, result_title
from gallery.utils import DEFAULT_LIBRARY_PATH, log, resolve_path


def search_and_choose(client: TMDBClient, query: str) -> dict | None:
    """Search until the user picks a result or gives up (empty query)."""
    while query:
        results = client.search_movie(query)
        if results:
            chosen = choose_result(results)
            if chosen:
                return chosen
        else:
            print("No matching titles found, try other keywords.")
        query = ask("New search keywords (leave empty to cancel): ")
    return None


def build_entry(chosen: dict, title: str, status: str, watch_dates: list[str],
                note: str, rating, in_cinema: bool = False) -> dict:
    entry = {
        "id": chosen["id"],
        "title": title or result_title(chosen),
        "mediaType": "movie",
        "status": status,
        "note": note or None,
    }
    if watch_dates:
        entry["watchDates"] = watch_dates
    if rating is not None:
        entry["rating"] = rating
    if in_cinema:
        entry["inCinema"] = True
    return entry


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Add a movie to the library")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    args = parser.parse_args(argv)

    try:
        client = TMDBClient()
    except ValueError as e:
        log(f"ERROR: {e}")
        sys.exit(1)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    library = load_library_or_exit(library_path)

    print("=== Add a movie to the library ===")
    title = ask("Title: ", required=True)

    try:
        chosen = search_and_choose(client, title)
    except TMDBError as e:
        log(f"ERROR: {e}")
        sys.exit(1)
    if not chosen:
        print("Cancelled.")
        return

    print(f"Selected: {result_title(chosen)} (TMDB ID {chosen['id']})")
    status = ask_status()

    _, existing = find_entry(library, chosen["id"])

    watch_dates = []
    rating = None
    in_cinema = False
    if status == "watched":
        recorded = extract_watch_dates(existing)
        if recorded:
            print(f"Already recorded watch dates: {', '.join(recorded)}")
        watch_dates = parse_watch_dates(
            ask("Watch dates (YYYY-MM-DD, comma separated, empty for none): ")
        )

    note = ask("Note (optional): ")
    if status == "watched":
        in_cinema = ask("Seen in a cinema? (y/N): ").lower() in ("y", "yes")
        raw_rating = ask("Rating (0-10, optional): ")
        rating = parse_rating(raw_rating)
        if raw_rating and rating is None:
            print("Invalid rating, ignored.")

    upsert_entry(library, build_entry(chosen, title, status, watch_dates, note, rating, in_cinema))
    save_library(library, library_path)
    log(f"Updated {library_path}")
    log("Next: run `python gallery/build_snapshot.py` to refresh data/movies.json")


if __name__ == "__main__":
    main()
