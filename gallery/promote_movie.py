#!/usr/bin/env python3
"""
Mark entries from the "watching" list as watched.

Lists the watching entries, takes one or more numbers, adds a watch date
(today by default) and optionally one shared rating, then moves them to
"watched".

Usage:
  python gallery/promote_movie.py [--library=data/library.json]
"""

import argparse
import re
import sys
from datetime import date

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    extract_watch_dates,
    load_library_or_exit,
    normalize_date,
    parse_rating,
    save_library,
    upsert_entry,
)
from gallery.prompts import ask
from gallery.utils import DEFAULT_LIBRARY_PATH, log, resolve_path


def parse_selection(text: str, count: int) -> list[int]:
    """1-based indexes from "1, 3 4"; out-of-range and junk dropped."""
    indexes = []
    for part in re.split(r"[,，\s]+", text.strip()):
        if part.isdigit() and 1 <= int(part) <= count and int(part) not in indexes:
            indexes.append(int(part))
    return indexes


def promote(library: dict, entries: list[dict], watch_date: str, rating=None) -> list[dict]:
    """Move entries to watched with `watch_date` added. Returns the merged entries."""
    promoted = []
    for entry in entries:
        incoming = {
            "id": entry["id"],
            "status": "watched",
            "watchDates": [watch_date],
        }
        if rating is not None:
            incoming["rating"] = rating
        promoted.append(upsert_entry(library, incoming))
    return promoted


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Promote watching entries to watched")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    args = parser.parse_args(argv)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    library = load_library_or_exit(library_path)
    watching = list(library["watching"])

    if not watching:
        print('Nothing in the "watching" list.')
        return

    print("\nCurrently watching:")
    for index, movie in enumerate(watching, start=1):
        dates = extract_watch_dates(movie)
        line = f"{index}. {movie.get('title') or '(untitled)'}"
        if dates:
            line += f" | watched: {', '.join(dates)}"
        if movie.get("note"):
            line += f" | note: {movie['note']}"
        print(line)

    choice = ask("\nNumbers to mark as watched (comma separated, 0 to cancel): ", required=True)
    if choice == "0":
        print("Cancelled.")
        return

    indexes = parse_selection(choice, len(watching))
    if not indexes:
        print("No valid numbers chosen.")
        return

    today = date.today().isoformat()
    raw_date = ask(f"Watch date (default {today}): ")
    watch_date = normalize_date(raw_date or today)
    if not watch_date:
        print("Invalid date, using today.")
        watch_date = today

    rating = None
    if re.match(r"^y(es)?$", ask("Set one rating for all of them? (y/N): "), re.IGNORECASE):
        raw_rating = ask("Rating (0-10, optional): ")
        rating = parse_rating(raw_rating)
        if raw_rating and rating is None:
            print("Rating out of range, ignored.")

    promoted = promote(library, [watching[i - 1] for i in indexes], watch_date, rating)
    save_library(library, library_path)

    log(f"Moved {len(promoted)} entries to watched in {library_path}")
    log("Next: run `python gallery/build_snapshot.py` to refresh data/movies.json")


if __name__ == "__main__":
    main()
