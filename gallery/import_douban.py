#!/usr/bin/env python3
"""
Interactively import Douban records: each title is searched in TMDB and
the user picks the matching result (or skips it).

Usage:
  python gallery/import_douban.py [fromdouban.json] [--library=data/library.json]
"""

import argparse
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.douban import load_records
from gallery.import_from_json import record_to_entry
from gallery.library import load_library_or_exit, save_library, upsert_entry
from gallery.prompts import ask, choose_result
from gallery.tmdb import TMDBClient, TMDBError
from gallery.utils import DEFAULT_IMPORT_PATH, DEFAULT_LIBRARY_PATH, log, resolve_path


def choose_match(client: TMDBClient, title: str, position: int, total: int) -> dict | None:
    """Search for `title` until the user picks a result or skips."""
    query = title
    while True:
        results = client.search_movie(query)
        if not results:
            print(f"Nothing found for '{query}'.")
            query = ask("New search keywords (leave empty to skip): ")
            if not query:
                return None
            continue

        print(f"\n[{position}/{total}] {title}")
        chosen = choose_result(results, allow_skip=True)
        if chosen == "skip":
            return None
        if chosen:
            return chosen
        query = ask("New search keywords: ", required=True)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Interactively import Douban records")
    parser.add_argument("input", nargs="?", help=f"Import records (default: {DEFAULT_IMPORT_PATH})")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    args = parser.parse_args(argv)

    try:
        client = TMDBClient()
    except ValueError as e:
        log(f"ERROR: {e}")
        sys.exit(1)

    input_path = resolve_path(args.input, DEFAULT_IMPORT_PATH)
    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)

    log(f"Reading {input_path}")
    records = load_records(input_path)
    if not records:
        log("File is empty, nothing to do.")
        return

    library = load_library_or_exit(library_path)
    imported = 0
    skipped = 0

    for position, record in enumerate(records, start=1):
        title = (record.get("title") or "").strip()
        if not title:
            print(f"\n[{position}] No title, skipped.")
            skipped += 1
            continue

        try:
            match = choose_match(client, title, position, len(records))
        except TMDBError as e:
            log(f"  WARNING: search failed for '{title}': {e}")
            match = None
        if not match:
            print(f"Skipped: {title}")
            skipped += 1
            continue

        entry = record_to_entry({**record, "tmdb_id": match["id"], "media_type": "movie"})
        upsert_entry(library, entry)
        imported += 1

    if not imported:
        log("No records imported.")
        return

    save_library(library, library_path)
    log(f"Imported {imported} records into {library_path} ({skipped} skipped)")
    log("Next: run `python gallery/build_snapshot.py` to refresh data/movies.json")


if __name__ == "__main__":
    main()
