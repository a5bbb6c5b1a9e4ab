#!/usr/bin/env python3
"""
Import records produced by export_douban_json.py into the library.

Every record with a TMDB id and a title becomes (or updates) a "watched"
entry: its watch date joins the existing dates, rating and note replace the
stored ones when present. Records without a TMDB id are skipped and counted.
No catalog access is needed.

Usage:
  python gallery/import_from_json.py [fromdouban.json] [--library=data/library.json] [--limit=N]
"""

import argparse
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.douban import load_records
from gallery.library import (
    library_counts,
    load_library_or_exit,
    normalize_date,
    parse_rating,
    save_library,
    upsert_entry,
)
from gallery.matching import parse_tmdb_id
from gallery.utils import DEFAULT_IMPORT_PATH, DEFAULT_LIBRARY_PATH, log, resolve_path


IMPORTABLE_MEDIA_TYPES = ("movie", "tv")


def record_to_entry(record: dict) -> dict | None:
    """Library entry for an import record, or None when it can't be imported."""
    tmdb_id = parse_tmdb_id(record.get("tmdb_id"))
    title = (record.get("title") or "").strip()
    media_type = record.get("media_type") or "movie"
    if not tmdb_id or not title or media_type not in IMPORTABLE_MEDIA_TYPES:
        return None

    watch_date = normalize_date(record.get("watch_date"))
    return {
        "id": tmdb_id,
        "title": title,
        "mediaType": media_type,
        "status": "watched",
        "watchDates": [watch_date] if watch_date else [],
        "rating": parse_rating(record.get("my_rating")),
        "note": (record.get("note") or "").strip() or None,
    }


def import_records(library: dict, records: list[dict], limit: int = 0) -> tuple[int, int]:
    """Upsert importable records. Returns (imported, skipped)."""
    imported = 0
    skipped = 0
    for record in records:
        if limit and imported >= limit:
            break
        entry = record_to_entry(record)
        if entry is None:
            skipped += 1
            continue
        upsert_entry(library, entry)
        imported += 1
    return imported, skipped


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Import fromdouban.json into the library")
    parser.add_argument("input", nargs="?", help=f"Import records (default: {DEFAULT_IMPORT_PATH})")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    parser.add_argument("--limit", type=int, default=0, help="Limit records imported")
    args = parser.parse_args(argv)

    input_path = resolve_path(args.input, DEFAULT_IMPORT_PATH)
    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)

    records = load_records(input_path)
    if not records:
        log(f"{input_path} is empty, nothing imported.")
        return

    library = load_library_or_exit(library_path)

    imported, skipped = import_records(library, records, limit=max(args.limit, 0))
    save_library(library, library_path)

    log(f"Imported {imported} records into the watched list of {library_path}")
    if skipped:
        log(f"  Skipped {skipped} records without a usable tmdb_id/title")
    if imported == 0:
        log("  Hint: run export_douban_json.py first so records carry tmdb_id.")
    log(f"  Library now: {library_counts(library)}")


if __name__ == "__main__":
    main()
