#!/usr/bin/env python3
"""
Export the library as CSV, in the same columns the import adapter reads.

One row per watch date (one row for entries without dates). Web videos are
left out since they have no catalog id to re-import with.

Usage:
  python gallery/export_library_csv.py [--library=data/library.json] [--output=data/library.csv]
"""

import argparse
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.douban import write_csv
from gallery.library import extract_watch_dates, iter_entries, load_library_or_exit, merge_dates
from gallery.utils import DEFAULT_LIBRARY_PATH, log, resolve_path


DEFAULT_OUTPUT_PATH = "data/library.csv"


def entry_to_records(entry: dict) -> list[dict]:
    base = {
        "title": entry.get("title") or "",
        "imdb_id": entry.get("imdbId"),
        "douban_url": entry.get("doubanUrl"),
        "note": entry.get("note"),
        "my_rating": entry.get("rating"),
        "tmdb_id": entry.get("id"),
        "media_type": entry.get("mediaType") or "movie",
    }
    dates = merge_dates(extract_watch_dates(entry)) or [""]
    return [{**base, "watch_date": d} for d in dates]


def library_to_records(library: dict, statuses=("watched",)) -> list[dict]:
    records = []
    for status, entry in iter_entries(library):
        if status not in statuses or entry.get("mediaType") == "web-video":
            continue
        records.extend(entry_to_records(entry))
    return records


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Export the watched list as CSV")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    parser.add_argument("--output", help=f"CSV file (default: {DEFAULT_OUTPUT_PATH})")
    args = parser.parse_args(argv)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    output_path = resolve_path(args.output, DEFAULT_OUTPUT_PATH)

    library = load_library_or_exit(library_path)
    records = library_to_records(library)
    write_csv(records, output_path)
    log(f"Wrote {len(records)} rows to {output_path}")


if __name__ == "__main__":
    main()
